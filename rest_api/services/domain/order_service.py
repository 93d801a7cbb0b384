"""
Order Domain Service.

The write path of the order lifecycle. Every mutation is exactly one
conditional write (compare_and_set) conditioned on what the caller saw:
the status for transitions, the revision for item edits. Views never
change their local copy; they wait for the live query to deliver the
result of the write.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from shared.config.constants import (
    Collections,
    Limits,
    ORDER_INITIAL_STATUS,
    OrderStatus,
    Roles,
)
from shared.config.logging import orders_logger as logger
from shared.config.settings import Settings, settings as default_settings
from shared.utils.exceptions import (
    AppException,
    EmptyCartError,
    InsufficientRoleError,
    InvalidStateError,
    NotOrderOwnerError,
    OrderNotFoundError,
    ProductNotAvailableError,
    RatingAlreadySubmittedError,
    StaleOrderError,
    ValidationError,
)
from shared.utils.validators import normalize_name, validate_quantity, validate_rating
from rest_api.models import utcnow
from rest_api.services.domain import order_state_machine as machine
from rest_api.services.domain.menu_service import is_orderable
from rest_api.services.domain.table_service import TableService
from rest_api.services.identity import SessionIdentity
from rest_api.services.store import DocumentStore, Query


def compute_total(items: Iterable[Mapping[str, Any]]) -> int:
    """Order total in cents."""
    return sum(int(item["price_cents"]) * int(item["quantity"]) for item in items)


def _line_fields(line: Any) -> tuple[str, int]:
    """
    Accept cart lines as mappings or objects with menu_item_id/quantity.

    Raises:
        ValidationError: The line is missing a field or has a non-integer quantity.
    """
    try:
        if isinstance(line, Mapping):
            return str(line["menu_item_id"]), int(line["quantity"])
        return str(line.menu_item_id), int(line.quantity)
    except (KeyError, AttributeError, TypeError, ValueError):
        raise ValidationError("Malformed order line", field="items") from None


def _require_customer_name(customer_name: str | None) -> str:
    customer_name = (customer_name or "").strip()
    if not customer_name:
        raise ValidationError("Customer name is required", field="customer_name")
    if len(customer_name) > Limits.MAX_NAME_LENGTH:
        raise ValidationError("Customer name is too long", field="customer_name")
    return customer_name


@dataclass
class SettleResult:
    """Outcome of settling one customer's orders."""

    customer_name: str
    completed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class OrderService:
    """
    Domain service for Order operations.

    Usage:
        service = OrderService(store)
        order = service.place_customer_order(customer, 4, cart.lines())
        service.confirm(order["id"], waiter)
    """

    def __init__(self, store: DocumentStore, config: Settings | None = None):
        self._store = store
        self._settings = config or default_settings
        self._tables = TableService(store)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_order(self, order_id: str) -> dict[str, Any]:
        order = self._store.get(Collections.ORDERS, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def orders_for_customer(self, customer_name: str) -> list[dict[str, Any]]:
        return self._store.query(
            Query(Collections.ORDERS)
            .where("customer_name", "==", customer_name)
            .order_by("created_at", descending=True)
        )

    # =========================================================================
    # Placement
    # =========================================================================

    def _snapshot_items(self, cart_lines: Iterable[Any]) -> list[dict[str, Any]]:
        """
        Copy name and price from the current menu for each cart line.

        Repeated menu items are merged into one line.

        Raises:
            EmptyCartError: No lines.
            ValidationError: Quantity out of range.
            ProductNotAvailableError: Item missing, out of stock or hidden.
        """
        quantities: dict[str, int] = {}
        for line in cart_lines:
            menu_item_id, quantity = _line_fields(line)
            quantities[menu_item_id] = quantities.get(menu_item_id, 0) + quantity
        if not quantities:
            raise EmptyCartError()

        items = []
        for menu_item_id, quantity in quantities.items():
            try:
                validate_quantity(quantity)
            except ValueError as e:
                raise ValidationError(str(e), field="quantity", menu_item_id=menu_item_id)

            menu_item = self._store.get(Collections.MENU_ITEMS, menu_item_id)
            if not is_orderable(menu_item):
                raise ProductNotAvailableError(menu_item_id)

            items.append({
                "menu_item_id": menu_item_id,
                "name": menu_item["name"],
                "price_cents": menu_item["price_cents"],
                "quantity": quantity,
            })
        return items

    def _create_order(
        self,
        actor: SessionIdentity,
        table_number: int | None,
        customer_name: str,
        cart_lines: Iterable[Any],
        **extra: Any,
    ) -> dict[str, Any]:
        """table_number None places a counter sale."""
        items = self._snapshot_items(cart_lines)
        if table_number is not None:
            self._tables.get_by_number(table_number)

        status = ORDER_INITIAL_STATUS[actor.role]
        data = {
            "table_number": table_number,
            "is_counter_sale": table_number is None,
            "customer_name": customer_name,
            "items": items,
            "total_cents": compute_total(items),
            "status": status,
            "revision": 1,
            "placed_by": actor.uid,
            "updated_by": actor.uid,
            **extra,
        }
        if status != OrderStatus.PENDING:
            data.update(machine.audit_fields(status, actor, utcnow()))

        order = self._store.create(Collections.ORDERS, data)
        logger.info(
            "Order placed",
            order_id=order["id"],
            table_number=table_number,
            status=status,
            item_count=len(items),
            total_cents=order["total_cents"],
            actor=actor.uid,
            role=actor.role,
        )
        return order

    def place_customer_order(
        self,
        actor: SessionIdentity,
        table_number: int,
        cart_lines: Iterable[Any],
    ) -> dict[str, Any]:
        """
        Place a pending order for the signed-in customer.

        Raises:
            InsufficientRoleError: Caller is not a customer.
            EmptyCartError, ProductNotAvailableError, TableNotFoundError
        """
        if actor.role != Roles.CUSTOMER:
            raise InsufficientRoleError([Roles.CUSTOMER], actor=actor.uid)
        return self._create_order(
            actor,
            table_number,
            actor.display_name,
            cart_lines,
            customer_uid=actor.uid,
        )

    def place_waiter_order(
        self,
        actor: SessionIdentity,
        table_number: int,
        customer_name: str,
        cart_lines: Iterable[Any],
    ) -> dict[str, Any]:
        """
        Place an order on a customer's behalf; it starts confirmed.

        Raises:
            InsufficientRoleError: Caller is not a waiter.
            ValidationError: Blank customer name.
            EmptyCartError, ProductNotAvailableError, TableNotFoundError
        """
        if actor.role != Roles.WAITER:
            raise InsufficientRoleError([Roles.WAITER], actor=actor.uid)
        return self._create_order(
            actor,
            table_number,
            _require_customer_name(customer_name),
            cart_lines,
            waiter_name=actor.display_name,
        )

    def place_counter_sale(
        self,
        actor: SessionIdentity,
        customer_name: str,
        cart_lines: Iterable[Any],
    ) -> dict[str, Any]:
        """
        Ring up a walk-in sale at the register: no table, no kitchen.

        The order starts in billing (paid); the cashier completes it.

        Raises:
            InsufficientRoleError: Caller is not a cashier.
            ValidationError: Blank customer name.
            EmptyCartError, ProductNotAvailableError
        """
        if actor.role != Roles.CASHIER:
            raise InsufficientRoleError([Roles.CASHIER], actor=actor.uid)
        return self._create_order(
            actor,
            None,
            _require_customer_name(customer_name),
            cart_lines,
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    def transition(
        self,
        order_id: str,
        to_status: str,
        actor: SessionIdentity,
        expected_status: str | None = None,
    ) -> dict[str, Any]:
        """
        Move an order to to_status with one conditional write.

        Args:
            expected_status: The status the caller saw. Defaults to the
                status read now.

        Returns:
            The order after the write. If it already had to_status the
            call is a no-op and the order is returned unchanged.

        Raises:
            OrderNotFoundError, InvalidTransitionError, InsufficientRoleError,
            NotOrderOwnerError
            StaleOrderError: The order changed since the caller saw it.
        """
        order = self.get_order(order_id)

        if order["status"] == to_status:
            self._check_may_reach(order, to_status, actor)
            logger.debug("Transition already applied", order_id=order_id, status=to_status)
            return order

        if expected_status is not None and expected_status != order["status"]:
            raise StaleOrderError(order_id, expected=expected_status, actual=order["status"])

        from_status = order["status"]
        machine.validate(order, to_status, actor)

        changes = machine.audit_fields(to_status, actor, utcnow())
        applied = self._store.compare_and_set(
            Collections.ORDERS, order_id, {"status": from_status}, changes
        )
        if not applied:
            current = self.get_order(order_id)
            if current["status"] == to_status:
                # Someone else made the same change first
                return current
            raise StaleOrderError(order_id, expected=from_status, actual=current["status"])

        logger.info(
            "Order status changed",
            order_id=order_id,
            from_status=from_status,
            to_status=to_status,
            actor=actor.uid,
            role=actor.role,
        )
        updated = self.get_order(order_id)

        if to_status == OrderStatus.COMPLETED and self._settings.auto_release_table_on_complete:
            self._release_table_if_idle(updated, actor)
        return updated

    def _check_may_reach(self, order: dict[str, Any], to_status: str, actor: SessionIdentity) -> None:
        """Authorization for the idempotent no-op case."""
        allowed = machine.roles_reaching(to_status)
        if actor.role not in allowed:
            raise InsufficientRoleError(allowed, order_id=order["id"], actor=actor.uid)
        if actor.role == Roles.CUSTOMER and not machine.is_owner(order, actor):
            raise NotOrderOwnerError(order["id"], actor=actor.uid)

    def confirm(self, order_id: str, actor: SessionIdentity, expected_status: str | None = None):
        return self.transition(order_id, OrderStatus.CONFIRMED, actor, expected_status)

    def start_preparing(self, order_id: str, actor: SessionIdentity, expected_status: str | None = None):
        return self.transition(order_id, OrderStatus.PREPARING, actor, expected_status)

    def mark_ready(self, order_id: str, actor: SessionIdentity, expected_status: str | None = None):
        return self.transition(order_id, OrderStatus.READY, actor, expected_status)

    def serve(self, order_id: str, actor: SessionIdentity, expected_status: str | None = None):
        return self.transition(order_id, OrderStatus.SERVED, actor, expected_status)

    def process_bill(self, order_id: str, actor: SessionIdentity, expected_status: str | None = None):
        return self.transition(order_id, OrderStatus.BILLING, actor, expected_status)

    def mark_complete(self, order_id: str, actor: SessionIdentity, expected_status: str | None = None):
        return self.transition(order_id, OrderStatus.COMPLETED, actor, expected_status)

    def cancel(self, order_id: str, actor: SessionIdentity, expected_status: str | None = None):
        return self.transition(order_id, OrderStatus.CANCELLED, actor, expected_status)

    # =========================================================================
    # Item edits
    # =========================================================================

    def edit_item_quantity(
        self,
        order_id: str,
        item_index: int,
        quantity: int,
        actor: SessionIdentity,
        expected_revision: int | None = None,
    ) -> dict[str, Any]:
        """
        Change one line's quantity on a pending order (waiter only).

        quantity <= 0 removes the line. Removing the last line cancels the
        order in the same write. The total is recomputed.

        Raises:
            InsufficientRoleError: Caller is not a waiter.
            InvalidStateError: Order is no longer pending.
            ValidationError: Bad index or quantity.
            StaleOrderError: Order changed since expected_revision.
        """
        if actor.role != Roles.WAITER:
            raise InsufficientRoleError([Roles.WAITER], actor=actor.uid)

        order = self.get_order(order_id)
        revision = expected_revision if expected_revision is not None else order["revision"]
        if revision != order["revision"]:
            raise StaleOrderError(order_id, expected=revision, actual=order["revision"])
        if order["status"] != OrderStatus.PENDING:
            raise InvalidStateError("Order", order["status"], [OrderStatus.PENDING], order_id=order_id)

        items = [dict(item) for item in order["items"]]
        if not 0 <= item_index < len(items):
            raise ValidationError(f"Order has no item at position {item_index}", field="item_index")
        if quantity > Limits.MAX_QUANTITY:
            raise ValidationError(f"Maximum quantity is {Limits.MAX_QUANTITY}", field="quantity")

        if quantity <= 0:
            removed = items.pop(item_index)
            logger.info("Order item removed", order_id=order_id, menu_item_id=removed["menu_item_id"], actor=actor.uid)
        else:
            items[item_index]["quantity"] = quantity

        changes: dict[str, Any] = {
            "items": items,
            "total_cents": compute_total(items),
            "revision": order["revision"] + 1,
            "updated_by": actor.uid,
        }
        if not items:
            # An order with no lines left is cancelled
            changes.update(machine.audit_fields(OrderStatus.CANCELLED, actor, utcnow()))

        applied = self._store.compare_and_set(
            Collections.ORDERS,
            order_id,
            {"revision": order["revision"], "status": OrderStatus.PENDING},
            changes,
        )
        if not applied:
            current = self.get_order(order_id)
            raise StaleOrderError(order_id, expected=order["revision"], actual=current["revision"])

        if not items:
            logger.info("Order cancelled after last item removed", order_id=order_id, actor=actor.uid)
        return self.get_order(order_id)

    # =========================================================================
    # Customer follow-ups
    # =========================================================================

    def get_owned_order(self, order_id: str, actor: SessionIdentity) -> dict[str, Any]:
        """A customer's own order; anyone else's is refused."""
        if actor.role != Roles.CUSTOMER:
            raise InsufficientRoleError([Roles.CUSTOMER], actor=actor.uid)
        order = self.get_order(order_id)
        if not machine.is_owner(order, actor):
            raise NotOrderOwnerError(order_id, actor=actor.uid)
        return order

    def request_bill(self, order_id: str, actor: SessionIdentity) -> dict[str, Any]:
        """
        Flag a served order for the cashier. No status change; requesting
        twice is a no-op.

        Raises:
            InvalidStateError: Order is not served.
        """
        order = self.get_owned_order(order_id, actor)
        if order["status"] != OrderStatus.SERVED:
            raise InvalidStateError("Order", order["status"], [OrderStatus.SERVED], order_id=order_id)
        if order["bill_requested"]:
            return order

        applied = self._store.compare_and_set(
            Collections.ORDERS,
            order_id,
            {"status": OrderStatus.SERVED, "bill_requested": False},
            {"bill_requested": True, "bill_requested_at": utcnow(), "updated_by": actor.uid},
        )
        if not applied:
            current = self.get_order(order_id)
            if current["bill_requested"]:
                return current
            raise StaleOrderError(order_id, expected=OrderStatus.SERVED, actual=current["status"])

        logger.info("Bill requested", order_id=order_id, actor=actor.uid)
        return self.get_order(order_id)

    def submit_rating(
        self,
        order_id: str,
        actor: SessionIdentity,
        rating: int,
        comment: str | None = None,
    ) -> dict[str, Any]:
        """
        Rate a completed order, once.

        Raises:
            ValidationError: Rating outside 1..5 or comment too long.
            InvalidStateError: Order is not completed.
            RatingAlreadySubmittedError: Order already rated.
        """
        try:
            validate_rating(rating)
        except ValueError as e:
            raise ValidationError(str(e), field="rating")
        comment = comment.strip() if comment else None
        if comment and len(comment) > Limits.MAX_RATING_COMMENT_LENGTH:
            raise ValidationError("Comment is too long", field="comment")

        order = self.get_owned_order(order_id, actor)
        if order["status"] != OrderStatus.COMPLETED:
            raise InvalidStateError("Order", order["status"], [OrderStatus.COMPLETED], order_id=order_id)
        if order["rating"] is not None:
            raise RatingAlreadySubmittedError(order_id)

        applied = self._store.compare_and_set(
            Collections.ORDERS,
            order_id,
            {"status": OrderStatus.COMPLETED, "rating": None},
            {
                "rating": rating,
                "rating_comment": comment or None,
                "rated_at": utcnow(),
                "updated_by": actor.uid,
            },
        )
        if not applied:
            raise RatingAlreadySubmittedError(order_id)

        logger.info("Order rated", order_id=order_id, rating=rating, actor=actor.uid)
        return self.get_order(order_id)

    # =========================================================================
    # Cashier bulk settle
    # =========================================================================

    def settle_customer(self, customer_name: str, actor: SessionIdentity) -> SettleResult:
        """
        "Bill and complete all" for one customer.

        Orders are matched by customer name ignoring case and spacing, the
        same grouping the cashier board shows. Served orders are billed then completed, orders already in billing
        are completed, orders still in the kitchen pipeline are skipped.
        Each write is its own conditional write; a failure is recorded and
        the batch continues.

        Raises:
            InsufficientRoleError: Caller is not a cashier.
        """
        if actor.role != Roles.CASHIER:
            raise InsufficientRoleError([Roles.CASHIER], actor=actor.uid)

        result = SettleResult(customer_name=customer_name)
        key = normalize_name(customer_name)
        orders = [
            order for order in self._store.query(
                Query(Collections.ORDERS)
                .where("status", "not-in", list(OrderStatus.TERMINAL))
                .order_by("created_at")
            )
            if normalize_name(order["customer_name"]) == key
        ]

        for order in orders:
            order_id = order["id"]
            if order["status"] not in (OrderStatus.SERVED, OrderStatus.BILLING):
                result.skipped.append(order_id)
                continue
            try:
                if order["status"] == OrderStatus.SERVED:
                    self.process_bill(order_id, actor, expected_status=OrderStatus.SERVED)
                self.mark_complete(order_id, actor, expected_status=OrderStatus.BILLING)
            except AppException as e:
                result.failed.append((order_id, e.message))
                continue
            result.completed.append(order_id)

        logger.info(
            "Customer settled",
            customer_name=customer_name,
            completed=len(result.completed),
            skipped=len(result.skipped),
            failed=len(result.failed),
            actor=actor.uid,
        )
        return result

    # =========================================================================
    # Tables
    # =========================================================================

    def _release_table_if_idle(self, order: dict[str, Any], actor: SessionIdentity) -> None:
        if order.get("table_number") is None:
            return
        active = self._store.query(
            Query(Collections.ORDERS)
            .where("table_number", "==", order["table_number"])
            .where("status", "in", list(OrderStatus.ACTIVE))
            .take(1)
        )
        if not active:
            self._tables.release(order["table_number"], actor)
