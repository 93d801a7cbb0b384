"""
Order State Machine.

Pure rules, no I/O: which status changes exist, who may perform them and
which audit fields accompany them. OrderService performs the actual
conditional write.

    pending -> confirmed -> preparing -> ready -> served -> billing -> completed
       \\__________\\____________\\__________\\-> cancelled
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from shared.config.constants import (
    ORDER_AUDIT_FIELDS,
    ORDER_TRANSITION_ROLES,
    ORDER_TRANSITIONS,
    OrderStatus,
    Roles,
)
from shared.utils.exceptions import (
    InsufficientRoleError,
    InvalidTransitionError,
    NotOrderOwnerError,
)

if TYPE_CHECKING:
    from rest_api.services.identity import SessionIdentity


def is_terminal(status: str) -> bool:
    return status in OrderStatus.TERMINAL


def is_owner(order: dict[str, Any], actor: "SessionIdentity") -> bool:
    """
    Whether the customer placed this order.

    Orders placed by the customer carry their uid; the name is the
    fallback correlation key for orders a waiter placed on their behalf.
    """
    if order.get("customer_uid"):
        return order["customer_uid"] == actor.uid
    return order.get("customer_name") == actor.display_name


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in ORDER_TRANSITIONS.get(from_status, frozenset())


def validate(order: dict[str, Any], to_status: str, actor: "SessionIdentity") -> None:
    """
    Check that actor may move order to to_status right now.

    Raises:
        InvalidTransitionError: The edge does not exist.
        InsufficientRoleError: The edge exists but not for this role.
        NotOrderOwnerError: A customer acting on someone else's order.
    """
    from_status = order["status"]
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(
            "order", from_status, to_status, order_id=order.get("id"), actor=actor.uid
        )

    allowed_roles = ORDER_TRANSITION_ROLES.get((from_status, to_status), frozenset())
    if actor.role not in allowed_roles:
        raise InsufficientRoleError(
            allowed_roles, order_id=order.get("id"), actor=actor.uid, role=actor.role
        )

    if actor.role == Roles.CUSTOMER and not is_owner(order, actor):
        raise NotOrderOwnerError(order["id"], actor=actor.uid)


def allowed_transitions(order: dict[str, Any], actor: "SessionIdentity") -> frozenset[str]:
    """Targets the actor could move this order to right now."""
    from_status = order["status"]
    allowed = set()
    for to_status in ORDER_TRANSITIONS.get(from_status, frozenset()):
        if actor.role not in ORDER_TRANSITION_ROLES.get((from_status, to_status), frozenset()):
            continue
        if actor.role == Roles.CUSTOMER and not is_owner(order, actor):
            continue
        allowed.add(to_status)
    return frozenset(allowed)


def audit_fields(to_status: str, actor: "SessionIdentity", now: datetime) -> dict[str, Any]:
    """Fields written atomically with a status change."""
    fields: dict[str, Any] = {"status": to_status, "updated_by": actor.uid}
    if to_status in ORDER_AUDIT_FIELDS:
        by_field, at_field = ORDER_AUDIT_FIELDS[to_status]
        fields[by_field] = actor.uid
        fields[at_field] = now
    return fields


def roles_reaching(to_status: str) -> frozenset[str]:
    """Roles that may move some order into to_status."""
    roles: set[str] = set()
    for (_, target), allowed in ORDER_TRANSITION_ROLES.items():
        if target == to_status:
            roles |= allowed
    return frozenset(roles)
