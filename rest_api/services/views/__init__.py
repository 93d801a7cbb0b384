"""
Role-scoped order views.

Every role gets the same OrderBoard machinery configured by its
RoleCapabilities; the subclasses only add role actions and groupings.

Usage:
    board = open_board(store, identity)
    board.add_listener(render)
"""

from __future__ import annotations

from shared.config.constants import Roles

from rest_api.services.identity import SessionIdentity
from rest_api.services.store import DocumentStore

from .board import ActionResult, OrderBoard, matches_search, sort_orders, SORT_KEYS
from .capabilities import (
    Action,
    RoleCapabilities,
    ROLE_CAPABILITIES,
    available_actions,
    capabilities_for,
)
from .cashier import CashierView, CustomerBill
from .chef import ChefView
from .customer import CustomerView
from .waiter import CustomerSummary, WaiterView, summarize_customers

VIEW_CLASSES: dict[str, type[OrderBoard]] = {
    Roles.CUSTOMER: CustomerView,
    Roles.WAITER: WaiterView,
    Roles.CHEF: ChefView,
    Roles.CASHIER: CashierView,
}


def open_board(store: DocumentStore, identity: SessionIdentity) -> OrderBoard:
    """
    Create and open the board for the identity's role.

    Raises:
        InsufficientRoleError: The role has no order board.
    """
    capabilities = capabilities_for(identity.role)
    return VIEW_CLASSES[identity.role](store, identity, capabilities).open()


__all__ = [
    "Action",
    "ActionResult",
    "CashierView",
    "ChefView",
    "CustomerBill",
    "CustomerSummary",
    "CustomerView",
    "OrderBoard",
    "RoleCapabilities",
    "ROLE_CAPABILITIES",
    "SORT_KEYS",
    "VIEW_CLASSES",
    "WaiterView",
    "available_actions",
    "capabilities_for",
    "matches_search",
    "open_board",
    "sort_orders",
    "summarize_customers",
]
