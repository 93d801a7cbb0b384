"""
Local Cart.

Lives only in the customer's session (never persisted). Placement turns
lines() into an order; the cart is cleared afterwards, on sign-out, or
on explicit clear().
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from shared.config.constants import Limits
from shared.utils.exceptions import ProductNotAvailableError, ValidationError
from rest_api.services.domain.menu_service import is_orderable


@dataclass
class CartLine:
    menu_item_id: str
    name: str
    price_cents: int
    quantity: int

    @property
    def subtotal_cents(self) -> int:
        return self.price_cents * self.quantity


class Cart:
    """Ordered cart lines keyed by menu item id."""

    def __init__(self) -> None:
        self._lines: list[CartLine] = []

    def _find(self, item_id: str) -> CartLine | None:
        return next((line for line in self._lines if line.menu_item_id == item_id), None)

    def add(self, item: dict[str, Any], quantity: int = 1) -> CartLine:
        """
        Add a menu item, merging with an existing line for the same item.

        Raises:
            ProductNotAvailableError: Item out of stock or hidden.
            ValidationError: Resulting quantity out of range.
        """
        if not is_orderable(item):
            raise ProductNotAvailableError(item.get("id", "") if item else "")
        if quantity < Limits.MIN_QUANTITY:
            raise ValidationError(f"Minimum quantity is {Limits.MIN_QUANTITY}", field="quantity")

        line = self._find(item["id"])
        new_quantity = quantity + (line.quantity if line else 0)
        if new_quantity > Limits.MAX_QUANTITY:
            raise ValidationError(f"Maximum quantity is {Limits.MAX_QUANTITY}", field="quantity")

        if line is None:
            line = CartLine(item["id"], item["name"], item["price_cents"], new_quantity)
            self._lines.append(line)
        else:
            line.quantity = new_quantity
        return line

    def remove(self, item_id: str) -> None:
        self._lines = [line for line in self._lines if line.menu_item_id != item_id]

    def set_quantity(self, item_id: str, quantity: int) -> None:
        """quantity <= 0 removes the line; unknown ids are ignored."""
        if quantity <= 0:
            self.remove(item_id)
            return
        if quantity > Limits.MAX_QUANTITY:
            raise ValidationError(f"Maximum quantity is {Limits.MAX_QUANTITY}", field="quantity")
        line = self._find(item_id)
        if line is not None:
            line.quantity = quantity

    def total(self) -> int:
        return sum(line.subtotal_cents for line in self._lines)

    def count(self) -> int:
        return sum(line.quantity for line in self._lines)

    def lines(self) -> list[CartLine]:
        return [CartLine(l.menu_item_id, l.name, l.price_cents, l.quantity) for l in self._lines]

    def is_empty(self) -> bool:
        return not self._lines

    def clear(self) -> None:
        self._lines = []

    def __len__(self) -> int:
        return len(self._lines)
