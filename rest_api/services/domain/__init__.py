"""
Domain Services - Application Layer.

Services contain the business rules and perform writes through the
DocumentStore; routers and role views stay thin.

Structure:
    Router / Role view (thin)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    DocumentStore (conditional writes, live queries)
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import OrderService

    service = OrderService(store)
    service.confirm(order_id, waiter)
"""

from . import order_state_machine
from .menu_service import MenuService, is_orderable
from .order_service import OrderService, SettleResult, compute_total
from .table_service import TableService

__all__ = [
    "order_state_machine",
    "MenuService",
    "OrderService",
    "SettleResult",
    "TableService",
    "compute_total",
    "is_orderable",
]
