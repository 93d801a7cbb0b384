"""
Centralized constants for the backend application.
Avoids magic strings for roles, statuses and transition rules.

Usage:
    from shared.config.constants import Roles, OrderStatus, ORDER_TRANSITIONS

    if status == OrderStatus.PENDING:
        ...
"""

from enum import IntEnum
from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """User role constants (single tagged role per user profile)."""

    ADMIN: Final[str] = "admin"
    WAITER: Final[str] = "waiter"
    CHEF: Final[str] = "chef"
    CASHIER: Final[str] = "cashier"
    CUSTOMER: Final[str] = "customer"

    ALL: Final[list[str]] = [ADMIN, WAITER, CHEF, CASHIER, CUSTOMER]


STAFF_ROLES: Final[frozenset[str]] = frozenset(
    {Roles.ADMIN, Roles.WAITER, Roles.CHEF, Roles.CASHIER}
)


# =============================================================================
# Entity Status Constants
# =============================================================================


class OrderStatus:
    """Order status constants."""

    PENDING: Final[str] = "pending"
    CONFIRMED: Final[str] = "confirmed"
    PREPARING: Final[str] = "preparing"
    READY: Final[str] = "ready"
    SERVED: Final[str] = "served"
    BILLING: Final[str] = "billing"
    COMPLETED: Final[str] = "completed"
    CANCELLED: Final[str] = "cancelled"

    # Lifecycle order, used for "by status" sorting
    LIFECYCLE: Final[list[str]] = [
        PENDING, CONFIRMED, PREPARING, READY, SERVED, BILLING, COMPLETED, CANCELLED,
    ]
    ALL: Final[frozenset[str]] = frozenset(LIFECYCLE)
    TERMINAL: Final[frozenset[str]] = frozenset({COMPLETED, CANCELLED})
    CANCELLABLE: Final[frozenset[str]] = frozenset({PENDING, CONFIRMED, PREPARING, READY})
    ACTIVE: Final[frozenset[str]] = frozenset(
        {PENDING, CONFIRMED, PREPARING, READY, SERVED, BILLING}
    )
    # Orders the kitchen works on or has worked on
    KITCHEN_HIDDEN: Final[frozenset[str]] = frozenset({PENDING, CANCELLED})
    # Orders outside the cashier's billing pipeline
    BILLING_HIDDEN: Final[frozenset[str]] = frozenset({PENDING, CANCELLED, COMPLETED})
    # Orders that do not count towards revenue summaries
    NON_REVENUE: Final[frozenset[str]] = frozenset({PENDING, CANCELLED})


class TableStatus:
    """Dining table occupancy constants."""

    AVAILABLE: Final[str] = "available"
    OCCUPIED: Final[str] = "occupied"
    RESERVED: Final[str] = "reserved"

    ALL: Final[frozenset[str]] = frozenset({AVAILABLE, OCCUPIED, RESERVED})
    # Statuses a waiter may set directly; reserved is set out of band
    WAITER_SETTABLE: Final[frozenset[str]] = frozenset({AVAILABLE, OCCUPIED})


# =============================================================================
# Status Transitions
# =============================================================================

# Valid order status transitions (from -> allowed to states)
# pending -> confirmed -> preparing -> ready -> served -> billing -> completed
ORDER_TRANSITIONS: Final[dict[str, frozenset[str]]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.SERVED, OrderStatus.CANCELLED}),
    OrderStatus.SERVED: frozenset({OrderStatus.BILLING}),
    OrderStatus.BILLING: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),  # Terminal state
    OrderStatus.CANCELLED: frozenset(),  # Terminal state
}

# Role-based transition restrictions
# Format: (from_status, to_status) -> allowed roles
ORDER_TRANSITION_ROLES: Final[dict[tuple[str, str], frozenset[str]]] = {
    (OrderStatus.PENDING, OrderStatus.CONFIRMED): frozenset({Roles.WAITER}),
    (OrderStatus.CONFIRMED, OrderStatus.PREPARING): frozenset({Roles.CHEF}),
    (OrderStatus.PREPARING, OrderStatus.READY): frozenset({Roles.CHEF}),
    (OrderStatus.READY, OrderStatus.SERVED): frozenset({Roles.WAITER}),
    (OrderStatus.SERVED, OrderStatus.BILLING): frozenset({Roles.CASHIER}),
    (OrderStatus.BILLING, OrderStatus.COMPLETED): frozenset({Roles.CASHIER}),
    # Customers may only cancel their own order while it is still pending
    (OrderStatus.PENDING, OrderStatus.CANCELLED): frozenset({Roles.WAITER, Roles.CUSTOMER}),
    (OrderStatus.CONFIRMED, OrderStatus.CANCELLED): frozenset({Roles.WAITER}),
    (OrderStatus.PREPARING, OrderStatus.CANCELLED): frozenset({Roles.WAITER}),
    (OrderStatus.READY, OrderStatus.CANCELLED): frozenset({Roles.WAITER}),
}

# Initial status of a newly placed order, by placing role
ORDER_INITIAL_STATUS: Final[dict[str, str]] = {
    Roles.CUSTOMER: OrderStatus.PENDING,
    # Waiter-placed orders skip pending
    Roles.WAITER: OrderStatus.CONFIRMED,
    # Counter sales are paid at the register and never reach the kitchen
    Roles.CASHIER: OrderStatus.BILLING,
}

# Audit fields written together with the status, by target status
# Format: to_status -> (actor field, timestamp field)
ORDER_AUDIT_FIELDS: Final[dict[str, tuple[str, str]]] = {
    OrderStatus.CONFIRMED: ("confirmed_by", "confirmed_at"),
    OrderStatus.PREPARING: ("prepared_by", "prepared_at"),
    OrderStatus.READY: ("ready_by", "ready_at"),
    OrderStatus.SERVED: ("served_by", "served_at"),
    OrderStatus.BILLING: ("billed_by", "billed_at"),
    OrderStatus.COMPLETED: ("completed_by", "completed_at"),
    OrderStatus.CANCELLED: ("cancelled_by", "cancelled_at"),
}


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    MIN_QUANTITY: Final[int] = 1
    MAX_QUANTITY: Final[int] = 99

    MIN_RATING: Final[int] = 1
    MAX_RATING: Final[int] = 5
    MAX_RATING_COMMENT_LENGTH: Final[int] = 1000

    MAX_NAME_LENGTH: Final[int] = 200
    MAX_CATEGORY_LENGTH: Final[int] = 100
    MAX_SEARCH_TERM_LENGTH: Final[int] = 100


# =============================================================================
# Collections (document store)
# =============================================================================


class Collections:
    """Document store collection names."""

    ORDERS: Final[str] = "orders"
    TABLES: Final[str] = "tables"
    MENU_ITEMS: Final[str] = "menu_items"
    USERS: Final[str] = "users"


# =============================================================================
# Event Types (Redis change feed)
# =============================================================================


class EventType:
    """Change feed event type constants."""

    DOCUMENT_CREATED: Final[str] = "DOCUMENT_CREATED"
    DOCUMENT_UPDATED: Final[str] = "DOCUMENT_UPDATED"


# =============================================================================
# WebSocket close codes (live order feed)
# =============================================================================


class WSCloseCode(IntEnum):
    """Close codes for /ws/orders. Custom codes live in 4000-4999."""

    NORMAL = 1000
    GOING_AWAY = 1001
    POLICY_VIOLATION = 1008  # Bad sort or filter parameter
    SERVER_ERROR = 1011
    SERVER_OVERLOADED = 1013

    AUTH_FAILED = 4001  # Token missing, invalid or expired
    FORBIDDEN = 4003  # Role without an order board (admin)
