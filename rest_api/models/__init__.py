"""
SQLAlchemy ORM Models Package.

One model per document collection:
- base: Base class and DocumentMixin
- order: Order (orders)
- table: DiningTable (tables)
- menu: MenuItem (menu_items)
- user: UserProfile (users)
"""

from shared.config.constants import Collections

from .base import Base, DocumentMixin, new_document_id, utcnow
from .order import Order
from .table import DiningTable
from .menu import MenuItem
from .user import UserProfile

# Collection name -> model
COLLECTION_MODELS = {
    Collections.ORDERS: Order,
    Collections.TABLES: DiningTable,
    Collections.MENU_ITEMS: MenuItem,
    Collections.USERS: UserProfile,
}

__all__ = [
    "Base",
    "DocumentMixin",
    "new_document_id",
    "utcnow",
    "Order",
    "DiningTable",
    "MenuItem",
    "UserProfile",
    "COLLECTION_MODELS",
]
