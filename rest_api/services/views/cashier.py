"""
Cashier view: served and billing orders, grouped per customer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from shared.config.constants import OrderStatus
from shared.utils.validators import normalize_name

from .board import ActionResult, OrderBoard
from .capabilities import Action


@dataclass(frozen=True)
class CustomerBill:
    customer_name: str
    orders: list[dict[str, Any]]
    total_cents: int


class CashierView(OrderBoard):
    """Orders between confirmation and completion, plus counter sales."""

    def group_by_customer(self) -> list[CustomerBill]:
        """One entry per customer (case-insensitive), ordered by name."""
        groups: dict[str, list[dict[str, Any]]] = {}
        for order in self.visible_orders():
            groups.setdefault(normalize_name(order["customer_name"]), []).append(order)
        return [
            CustomerBill(
                customer_name=orders[0]["customer_name"],
                orders=orders,
                total_cents=sum(o["total_cents"] for o in orders),
            )
            for _, orders in sorted(groups.items())
        ]

    def billable(self) -> list[dict[str, Any]]:
        return [o for o in self.orders if o["status"] in (OrderStatus.SERVED, OrderStatus.BILLING)]

    def process_bill(self, order_id: str) -> ActionResult:
        return self.transition(Action.PROCESS_BILL, order_id, OrderStatus.BILLING)

    def mark_complete(self, order_id: str) -> ActionResult:
        return self.transition(Action.MARK_COMPLETE, order_id, OrderStatus.COMPLETED)

    def ring_up(self, customer_name: str, lines: list[Any]) -> ActionResult:
        """Counter sale for a walk-in customer; value is the new order."""
        return self.perform(
            Action.COUNTER_SALE,
            f"counter-{normalize_name(customer_name)}",
            lambda: self.orders_service.place_counter_sale(self.identity, customer_name, lines),
        )

    def settle_customer(self, customer_name: str) -> ActionResult:
        """
        Bill and complete every settleable order of one customer. ok is
        False when any single write failed; value carries the SettleResult.
        """
        result = self.perform(
            Action.SETTLE_CUSTOMER,
            normalize_name(customer_name),
            lambda: self.orders_service.settle_customer(customer_name, self.identity),
        )
        if not result.ok:
            return result
        settle = result.value
        if settle.failed:
            return ActionResult(
                False,
                f"{len(settle.failed)} order(s) could not be settled. Please refresh and try again",
                settle,
            )
        return result
