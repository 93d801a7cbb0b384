"""
Customer view: my orders, placing from the cart, cancel, bill, rating.
"""

from __future__ import annotations

from typing import Any

from shared.config.constants import OrderStatus

from rest_api.services.cart import Cart
from rest_api.services.domain import TableService

from .board import ActionResult, OrderBoard
from .capabilities import Action


class CustomerView(OrderBoard):
    """Orders whose customer_name is the signed-in customer's display name."""

    def available_tables(self) -> list[dict[str, Any]]:
        return TableService(self._store).list_available()

    def place_order(self, cart: Cart, table_number: int | None) -> ActionResult:
        """
        Place the cart at the chosen table. The cart is cleared only when
        the order was created.
        """
        if table_number is None:
            return ActionResult(False, "Please choose a table first")

        def write() -> dict[str, Any]:
            return self.orders_service.place_customer_order(self.identity, table_number, cart.lines())

        result = self.perform(Action.PLACE, self.identity.uid, write)
        if result.ok:
            cart.clear()
        return result

    def cancel(self, order_id: str) -> ActionResult:
        return self.transition(Action.CANCEL, order_id, OrderStatus.CANCELLED)

    def request_bill(self, order_id: str) -> ActionResult:
        return self.perform(
            Action.REQUEST_BILL,
            order_id,
            lambda: self.orders_service.request_bill(order_id, self.identity),
        )

    def rate(self, order_id: str, rating: int, comment: str | None = None) -> ActionResult:
        return self.perform(
            Action.RATE,
            order_id,
            lambda: self.orders_service.submit_rating(order_id, self.identity, rating, comment),
        )
