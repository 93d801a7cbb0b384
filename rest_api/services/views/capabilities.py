"""
Role capability descriptors.

One OrderBoard serves every role; what differs is which orders the role
sees (a store query plus the matching local predicate) and which actions
it may take. Adding a role means adding a descriptor here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from shared.config.constants import Collections, OrderStatus, Roles
from shared.utils.exceptions import InsufficientRoleError
from rest_api.services.domain import order_state_machine as machine
from rest_api.services.identity import SessionIdentity
from rest_api.services.store import Query


class Action:
    """Action names shared by views, routers and the WebSocket feed."""

    PLACE = "place"
    PLACE_FOR_TABLE = "place-for-any-table"
    CANCEL = "cancel"
    REQUEST_BILL = "request-bill"
    RATE = "rate"
    CONFIRM = "confirm"
    EDIT_QUANTITY = "edit-quantity"
    SERVE = "serve"
    SET_TABLE_STATUS = "set-table-status"
    START_PREPARING = "start-preparing"
    MARK_READY = "mark-ready"
    TOGGLE_AVAILABILITY = "toggle-availability"
    PROCESS_BILL = "process-bill"
    MARK_COMPLETE = "mark-complete"
    SETTLE_CUSTOMER = "settle-customer"
    COUNTER_SALE = "counter-sale"


# Action -> target status, for actions that are plain transitions
TRANSITION_ACTIONS: dict[str, str] = {
    Action.CANCEL: OrderStatus.CANCELLED,
    Action.CONFIRM: OrderStatus.CONFIRMED,
    Action.SERVE: OrderStatus.SERVED,
    Action.START_PREPARING: OrderStatus.PREPARING,
    Action.MARK_READY: OrderStatus.READY,
    Action.PROCESS_BILL: OrderStatus.BILLING,
    Action.MARK_COMPLETE: OrderStatus.COMPLETED,
}


@dataclass(frozen=True)
class RoleCapabilities:
    """
    role: the role this descriptor is for
    query: builds the store query for a session
    predicate: the same filter evaluated on one order document
    actions: everything the role may do from its board
    """

    role: str
    query: Callable[[SessionIdentity], Query]
    predicate: Callable[[dict[str, Any], SessionIdentity], bool]
    actions: frozenset[str]

    def allows(self, action: str) -> bool:
        return action in self.actions


def _orders() -> Query:
    return Query(Collections.ORDERS)


CUSTOMER = RoleCapabilities(
    role=Roles.CUSTOMER,
    query=lambda identity: _orders().where("customer_name", "==", identity.display_name),
    predicate=lambda order, identity: order["customer_name"] == identity.display_name,
    actions=frozenset({Action.PLACE, Action.CANCEL, Action.REQUEST_BILL, Action.RATE}),
)

WAITER = RoleCapabilities(
    role=Roles.WAITER,
    query=lambda identity: _orders().where("table_number", "not-null"),
    predicate=lambda order, identity: order["table_number"] is not None,
    actions=frozenset({
        Action.CONFIRM,
        Action.CANCEL,
        Action.EDIT_QUANTITY,
        Action.SERVE,
        Action.PLACE_FOR_TABLE,
        Action.SET_TABLE_STATUS,
    }),
)

CHEF = RoleCapabilities(
    role=Roles.CHEF,
    query=lambda identity: (
        _orders()
        .where("status", "not-in", sorted(OrderStatus.KITCHEN_HIDDEN))
        .where("table_number", "not-null")
    ),
    predicate=lambda order, identity: (
        order["status"] not in OrderStatus.KITCHEN_HIDDEN and order["table_number"] is not None
    ),
    actions=frozenset({Action.START_PREPARING, Action.MARK_READY, Action.TOGGLE_AVAILABILITY}),
)

CASHIER = RoleCapabilities(
    role=Roles.CASHIER,
    query=lambda identity: _orders().where("status", "not-in", sorted(OrderStatus.BILLING_HIDDEN)),
    predicate=lambda order, identity: order["status"] not in OrderStatus.BILLING_HIDDEN,
    actions=frozenset({
        Action.PROCESS_BILL,
        Action.MARK_COMPLETE,
        Action.SETTLE_CUSTOMER,
        Action.COUNTER_SALE,
    }),
)

ROLE_CAPABILITIES: dict[str, RoleCapabilities] = {
    Roles.CUSTOMER: CUSTOMER,
    Roles.WAITER: WAITER,
    Roles.CHEF: CHEF,
    Roles.CASHIER: CASHIER,
}


def capabilities_for(role: str) -> RoleCapabilities:
    """
    Raises:
        InsufficientRoleError: The role has no order board (admin).
    """
    try:
        return ROLE_CAPABILITIES[role]
    except KeyError:
        raise InsufficientRoleError(list(ROLE_CAPABILITIES), role=role) from None


def available_actions(
    capabilities: RoleCapabilities,
    order: dict[str, Any],
    identity: SessionIdentity,
) -> frozenset[str]:
    """Actions the board should offer on this order right now."""
    targets = machine.allowed_transitions(order, identity)
    actions = {
        action for action, target in TRANSITION_ACTIONS.items()
        if target in targets and capabilities.allows(action)
    }

    status = order["status"]
    if capabilities.allows(Action.EDIT_QUANTITY) and status == OrderStatus.PENDING:
        actions.add(Action.EDIT_QUANTITY)
    if identity.role == Roles.CUSTOMER and machine.is_owner(order, identity):
        if status == OrderStatus.SERVED and not order.get("bill_requested"):
            actions.add(Action.REQUEST_BILL)
        if status == OrderStatus.COMPLETED and order.get("rating") is None:
            actions.add(Action.RATE)
    return frozenset(actions)
