"""
Tests for the local cart.
"""

import pytest

from shared.config.constants import Limits
from shared.utils.exceptions import ProductNotAvailableError, ValidationError
from rest_api.services.cart import Cart


class TestCart:
    def test_add_merges_same_item(self, menu):
        cart = Cart()
        cart.add(menu["pizza"])
        cart.add(menu["pizza"], 2)
        cart.add(menu["soda"])

        assert len(cart) == 2
        assert cart.count() == 4
        assert cart.total() == 1200 * 3 + 300

    def test_lines_are_copies(self, menu):
        cart = Cart()
        cart.add(menu["pizza"])
        cart.lines()[0].quantity = 50
        assert cart.count() == 1

    def test_unavailable_item_refused(self, menu):
        with pytest.raises(ProductNotAvailableError):
            Cart().add(menu["soup"])

    def test_quantity_limits(self, menu):
        cart = Cart()
        with pytest.raises(ValidationError):
            cart.add(menu["pizza"], 0)
        cart.add(menu["pizza"], Limits.MAX_QUANTITY)
        with pytest.raises(ValidationError):
            cart.add(menu["pizza"])
        assert cart.count() == Limits.MAX_QUANTITY

    def test_set_quantity_zero_removes_line(self, menu):
        cart = Cart()
        cart.add(menu["pizza"])
        cart.add(menu["salad"])

        cart.set_quantity(menu["pizza"]["id"], 0)

        assert [l.menu_item_id for l in cart.lines()] == [menu["salad"]["id"]]

    def test_set_quantity_ignores_unknown_item(self, menu):
        cart = Cart()
        cart.set_quantity("missing", 3)
        assert cart.is_empty()

    def test_clear(self, menu):
        cart = Cart()
        cart.add(menu["pizza"])
        cart.clear()
        assert cart.is_empty()
        assert cart.total() == 0
