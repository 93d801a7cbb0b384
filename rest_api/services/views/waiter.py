"""
Waiter view: every table's orders, confirm/cancel/serve/edit, placing on
a customer's behalf, table occupancy and the customer dashboard.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from shared.config.constants import Collections, OrderStatus
from shared.utils.validators import normalize_name

from rest_api.services.domain import TableService
from rest_api.services.store import Query, Subscription

from .board import ActionResult, OrderBoard
from .capabilities import Action


@dataclass(frozen=True)
class CustomerSummary:
    customer_name: str
    order_count: int
    revenue_cents: int
    active_orders: int
    last_order_at: datetime | None


def summarize_customers(orders: Iterable[dict[str, Any]]) -> list[CustomerSummary]:
    """
    Per-customer dashboard rows, most recent customer first.

    Revenue leaves out pending and cancelled orders; names are grouped
    case-insensitively.
    """
    groups: "OrderedDict[str, list[dict[str, Any]]]" = OrderedDict()
    for order in orders:
        groups.setdefault(normalize_name(order["customer_name"]), []).append(order)

    summaries = []
    for customer_orders in groups.values():
        last = max(customer_orders, key=lambda o: o["created_at"])
        summaries.append(CustomerSummary(
            customer_name=last["customer_name"],
            order_count=len(customer_orders),
            revenue_cents=sum(
                o["total_cents"] for o in customer_orders if o["status"] not in OrderStatus.NON_REVENUE
            ),
            active_orders=sum(1 for o in customer_orders if o["status"] in OrderStatus.ACTIVE),
            last_order_at=last["created_at"],
        ))
    summaries.sort(key=lambda s: s.last_order_at.timestamp() if s.last_order_at else 0.0, reverse=True)
    return summaries


class WaiterView(OrderBoard):
    """Orders with a table number, plus a live table list."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._tables: list[dict[str, Any]] = []
        self._tables_subscription: Subscription | None = None
        self.tables_service = TableService(self._store)

    def open(self) -> "WaiterView":
        super().open()
        if self._tables_subscription is None:
            self._tables_subscription = self._store.subscribe(
                Query(Collections.TABLES).order_by("table_number"),
                self._on_tables,
            )
        return self

    def close(self) -> None:
        if self._tables_subscription is not None:
            self._tables_subscription.unsubscribe()
            self._tables_subscription = None
        super().close()

    def _on_tables(self, snapshot: list[dict[str, Any]]) -> None:
        with self._lock:
            self._tables = snapshot

    @property
    def tables(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._tables)

    # =========================================================================
    # Dashboard
    # =========================================================================

    def ready_to_serve(self) -> dict[int, list[dict[str, Any]]]:
        """Ready orders grouped by table number, oldest first."""
        grouped: dict[int, list[dict[str, Any]]] = {}
        for order in sorted(self.orders, key=lambda o: o["created_at"]):
            if order["status"] == OrderStatus.READY:
                grouped.setdefault(order["table_number"], []).append(order)
        return dict(sorted(grouped.items()))

    def customer_summaries(self) -> list[CustomerSummary]:
        return summarize_customers(self.orders)

    def select_table(self, table_number: int | None) -> None:
        self.set_table_filter(table_number)

    def select_customer(self, customer_name: str | None) -> None:
        self.set_customer_filter(customer_name)

    # =========================================================================
    # Actions
    # =========================================================================

    def confirm(self, order_id: str) -> ActionResult:
        return self.transition(Action.CONFIRM, order_id, OrderStatus.CONFIRMED)

    def cancel(self, order_id: str) -> ActionResult:
        return self.transition(Action.CANCEL, order_id, OrderStatus.CANCELLED)

    def serve(self, order_id: str) -> ActionResult:
        return self.transition(Action.SERVE, order_id, OrderStatus.SERVED)

    def edit_quantity(self, order_id: str, item_index: int, quantity: int) -> ActionResult:
        seen = self.get(order_id)
        revision = seen["revision"] if seen is not None else None
        return self.perform(
            Action.EDIT_QUANTITY,
            order_id,
            lambda: self.orders_service.edit_item_quantity(
                order_id, item_index, quantity, self.identity, expected_revision=revision
            ),
        )

    def place_order(self, table_number: int, customer_name: str, lines: list[Any]) -> ActionResult:
        return self.perform(
            Action.PLACE_FOR_TABLE,
            f"table-{table_number}",
            lambda: self.orders_service.place_waiter_order(self.identity, table_number, customer_name, lines),
        )

    def set_table_status(self, table_id: str, status: str) -> ActionResult:
        return self.perform(
            Action.SET_TABLE_STATUS,
            table_id,
            lambda: self.tables_service.set_status(table_id, status, self.identity),
        )
