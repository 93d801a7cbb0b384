"""
Seed data for development and testing.
Creates dining tables, a small menu and one approved account per role.
"""

from shared.config.constants import Collections, Roles, TableStatus
from shared.config.logging import get_logger
from shared.security.password import hash_password
from rest_api.services.store import DocumentStore, Query

logger = get_logger(__name__)


# =============================================================================
# Constants for seed data
# =============================================================================

TABLE_COUNT = 10
DEFAULT_TABLE_CAPACITY = 4

DEMO_PASSWORD = "smartserve123"

DEMO_USERS = [
    {"email": "admin@demo.com", "first_name": "Ada", "last_name": "Admin", "role": Roles.ADMIN},
    {"email": "waiter@demo.com", "first_name": "Walt", "last_name": "Waiter", "role": Roles.WAITER},
    {"email": "chef@demo.com", "first_name": "Chloe", "last_name": "Chef", "role": Roles.CHEF},
    {"email": "cashier@demo.com", "first_name": "Cass", "last_name": "Cashier", "role": Roles.CASHIER},
    {"email": "customer@demo.com", "first_name": "Carl", "last_name": "Customer", "role": Roles.CUSTOMER},
]

DEMO_MENU = [
    {"name": "Garlic Bread", "description": "Toasted baguette, garlic butter", "price_cents": 450, "category": "Starters"},
    {"name": "Tomato Soup", "description": "Roasted tomatoes and basil", "price_cents": 600, "category": "Starters"},
    {"name": "Margherita Pizza", "description": "Tomato, mozzarella, basil", "price_cents": 1200, "category": "Mains"},
    {"name": "Grilled Salmon", "description": "With seasonal greens", "price_cents": 1850, "category": "Mains"},
    {"name": "Mushroom Risotto", "description": "Arborio rice, parmesan", "price_cents": 1400, "category": "Mains"},
    {"name": "Tiramisu", "description": None, "price_cents": 700, "category": "Desserts"},
    {"name": "Lemonade", "description": "Freshly squeezed", "price_cents": 350, "category": "Drinks"},
    {"name": "Espresso", "description": None, "price_cents": 250, "category": "Drinks"},
]


def _is_empty(store: DocumentStore, collection: str) -> bool:
    return not store.query(Query(collection).take(1))


def seed_tables(store: DocumentStore) -> int:
    """Tables 1..TABLE_COUNT, all available. Idempotent."""
    if not _is_empty(store, Collections.TABLES):
        logger.info("Tables already seeded, skipping")
        return 0
    for number in range(1, TABLE_COUNT + 1):
        store.create(Collections.TABLES, {
            "table_number": number,
            "capacity": DEFAULT_TABLE_CAPACITY,
            "status": TableStatus.AVAILABLE,
        })
    return TABLE_COUNT


def seed_menu(store: DocumentStore) -> int:
    if not _is_empty(store, Collections.MENU_ITEMS):
        logger.info("Menu already seeded, skipping")
        return 0
    for item in DEMO_MENU:
        store.create(Collections.MENU_ITEMS, {**item, "available": True, "is_visible": True})
    return len(DEMO_MENU)


def seed_users(store: DocumentStore) -> int:
    """One approved account per role; existing emails are left alone."""
    created = 0
    password_hash = hash_password(DEMO_PASSWORD)
    for user in DEMO_USERS:
        if store.find_one(Collections.USERS, email=user["email"]) is not None:
            continue
        store.create(Collections.USERS, {**user, "password_hash": password_hash, "approved": True})
        created += 1
    return created


def seed(store: DocumentStore) -> None:
    """Seed demo data. Safe to run on every startup."""
    tables = seed_tables(store)
    menu_items = seed_menu(store)
    users = seed_users(store)
    logger.info("Demo data seeded", tables=tables, menu_items=menu_items, users=users)
