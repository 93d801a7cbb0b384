"""
Order Board.

A live, role-projected list of orders. The board subscribes to the shared
orders collection with its role's query, keeps the latest snapshot and
offers sorting, search and filters on top of it.

Actions never touch the local snapshot. perform() runs one write through
the domain service, keeps the (order, action) pair "in flight" while it
runs so a second click is refused, and reports an ActionResult. The new
state arrives through the subscription like any other change.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable

from shared.config.constants import OrderStatus
from shared.config.logging import get_logger
from shared.utils.exceptions import AppException
from shared.utils.validators import normalize_name, sanitize_search_term
from rest_api.services.domain import MenuService, OrderService
from rest_api.services.identity import SessionIdentity
from rest_api.services.store import DocumentStore, Subscription

from .capabilities import RoleCapabilities, available_actions, capabilities_for

logger = get_logger(__name__)

SORT_KEYS = ("newest", "oldest", "status", "table")

_STATUS_RANK = {status: index for index, status in enumerate(OrderStatus.LIFECYCLE)}


@dataclass(frozen=True)
class ActionResult:
    """What a view action reports back; error is user-facing."""

    ok: bool
    error: str | None = None
    value: Any = None


def _timestamp(order: dict[str, Any]) -> float:
    created = order.get("created_at")
    return created.timestamp() if created is not None else 0.0


def sort_orders(orders: list[dict[str, Any]], sort_key: str) -> list[dict[str, Any]]:
    if sort_key == "oldest":
        return sorted(orders, key=_timestamp)
    if sort_key == "status":
        return sorted(orders, key=lambda o: (_STATUS_RANK.get(o["status"], len(_STATUS_RANK)), -_timestamp(o)))
    if sort_key == "table":
        return sorted(
            orders,
            key=lambda o: (o["table_number"] is None, o["table_number"] or 0, -_timestamp(o)),
        )
    return sorted(orders, key=_timestamp, reverse=True)


def matches_search(order: dict[str, Any], term: str) -> bool:
    """Free-text match over customer name, item names and table number."""
    if not term:
        return True
    if term in order["customer_name"].lower():
        return True
    if order.get("table_number") is not None and term == str(order["table_number"]):
        return True
    return any(term in item["name"].lower() for item in order["items"])


class OrderBoard:
    """
    Usage:
        board = OrderBoard(store, identity)
        board.open()
        board.set_sort("oldest")
        for order in board.visible_orders():
            ...
        board.close()
    """

    def __init__(
        self,
        store: DocumentStore,
        identity: SessionIdentity,
        capabilities: RoleCapabilities | None = None,
        order_service: OrderService | None = None,
    ) -> None:
        self._store = store
        self.identity = identity
        self.capabilities = capabilities or capabilities_for(identity.role)
        self.orders_service = order_service or OrderService(store)
        self.menu_service = MenuService(store)

        self._orders: list[dict[str, Any]] = []
        self._subscription: Subscription | None = None
        self._listeners: list[Callable[[list[dict[str, Any]]], None]] = []
        self._in_flight: set[tuple[str, str]] = set()
        self._lock = threading.Lock()
        self.error: str | None = None

        self.sort_key = "newest"
        self.search_term = ""
        self.status_filter: str | None = None
        self.table_filter: int | None = None
        self.customer_filter: str | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def open(self) -> "OrderBoard":
        if self._subscription is None:
            self._subscription = self._store.subscribe(
                self.capabilities.query(self.identity),
                self._on_change,
                self._on_error,
            )
        return self

    def load(self) -> "OrderBoard":
        """One-shot projection without a live subscription (HTTP listings)."""
        self._on_change(self._store.query(self.capabilities.query(self.identity)))
        return self

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        with self._lock:
            self._listeners.clear()

    @property
    def is_open(self) -> bool:
        return self._subscription is not None

    def retry(self) -> None:
        """Resume live updates after a query failure."""
        if self._subscription is not None:
            self._subscription.resume()

    def add_listener(self, callback: Callable[[list[dict[str, Any]]], None]) -> Callable[[], None]:
        """callback receives visible_orders() after every change."""
        with self._lock:
            self._listeners.append(callback)

        def remove() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return remove

    def _on_change(self, snapshot: list[dict[str, Any]]) -> None:
        projection = [o for o in snapshot if self.capabilities.predicate(o, self.identity)]
        with self._lock:
            self._orders = projection
            self.error = None
            listeners = list(self._listeners)
        visible = self.visible_orders()
        for listener in listeners:
            listener(visible)

    def _on_error(self, exc: Exception) -> None:
        self.error = "Live updates are paused. Please retry."
        logger.warning("Order board subscription failed", role=self.identity.role, error=str(exc))

    # =========================================================================
    # Projection
    # =========================================================================

    @property
    def orders(self) -> list[dict[str, Any]]:
        """The role projection, unfiltered."""
        with self._lock:
            return list(self._orders)

    def get(self, order_id: str) -> dict[str, Any] | None:
        return next((o for o in self.orders if o["id"] == order_id), None)

    def set_sort(self, sort_key: str) -> None:
        if sort_key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {sort_key!r}")
        self.sort_key = sort_key

    def set_search(self, term: str | None) -> None:
        self.search_term = sanitize_search_term(term)

    def set_status_filter(self, status: str | None) -> None:
        if status is not None and status not in OrderStatus.ALL:
            raise ValueError(f"Unknown status: {status!r}")
        self.status_filter = status

    def set_table_filter(self, table_number: int | None) -> None:
        self.table_filter = table_number

    def set_customer_filter(self, customer_name: str | None) -> None:
        self.customer_filter = normalize_name(customer_name) or None

    def visible_orders(self) -> list[dict[str, Any]]:
        orders = self.orders
        if self.status_filter is not None:
            orders = [o for o in orders if o["status"] == self.status_filter]
        if self.table_filter is not None:
            orders = [o for o in orders if o["table_number"] == self.table_filter]
        if self.customer_filter:
            orders = [o for o in orders if normalize_name(o["customer_name"]) == self.customer_filter]
        if self.search_term:
            orders = [o for o in orders if matches_search(o, self.search_term)]
        return sort_orders(orders, self.sort_key)

    def available_actions(self, order: dict[str, Any]) -> frozenset[str]:
        return available_actions(self.capabilities, order, self.identity)

    # =========================================================================
    # Menu (category filter)
    # =========================================================================

    def menu(self, category: str | None = None, search: str | None = None) -> list[dict[str, Any]]:
        return self.menu_service.list_visible(category=category, search=search)

    def categories(self) -> list[str]:
        return self.menu_service.categories()

    # =========================================================================
    # Actions
    # =========================================================================

    def is_in_flight(self, target_id: str, action: str) -> bool:
        with self._lock:
            return (target_id, action) in self._in_flight

    def perform(self, action: str, target_id: str, write: Callable[[], Any]) -> ActionResult:
        """
        Run one write for an action, refusing duplicates while it runs.

        Domain errors become a failed ActionResult; the local projection is
        left alone either way.
        """
        if not self.capabilities.allows(action):
            return ActionResult(False, f"Your role cannot {action.replace('-', ' ')}")

        key = (target_id, action)
        with self._lock:
            if key in self._in_flight:
                return ActionResult(False, "This action is already in progress")
            self._in_flight.add(key)
        try:
            value = write()
        except AppException as e:
            return ActionResult(False, e.message)
        except ValueError as e:
            logger.warning("Rejected malformed action", action=action, target=target_id, error=str(e))
            return ActionResult(False, "Invalid request. Please check the details and try again")
        finally:
            with self._lock:
                self._in_flight.discard(key)
        return ActionResult(True, value=value)

    def transition(self, action: str, order_id: str, to_status: str) -> ActionResult:
        """Status action, conditioned on the status this board last saw."""
        seen = self.get(order_id)
        expected = seen["status"] if seen is not None else None
        return self.perform(
            action,
            order_id,
            lambda: self.orders_service.transition(order_id, to_status, self.identity, expected),
        )
