"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_DEMO_DATA", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LIVE_QUERY_REDIS_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shared.config.constants import Collections, OrderStatus, Roles, TableStatus
from shared.security.password import hash_password
from rest_api.core.dependencies import get_store
from rest_api.main import app
from rest_api.models import Base
from rest_api.services.domain import OrderService
from rest_api.services.identity import SessionIdentity
from rest_api.services.store import DocumentStore


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

PASSWORDS = {
    Roles.ADMIN: "adminpass123",
    Roles.WAITER: "waiter123",
    Roles.CHEF: "chef12345",
    Roles.CASHIER: "cashier123",
    Roles.CUSTOMER: "customer123",
}


@pytest.fixture(scope="function")
def store():
    """
    A fresh document store for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)
    try:
        yield DocumentStore(TestingSessionLocal)
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(store):
    """
    Create a test client with the document store override.
    """
    app.dependency_overrides[get_store] = lambda: store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Users
# =============================================================================


def create_user(store, role, email=None, first_name=None, last_name="Tester", approved=True):
    """Create a user profile and return its SessionIdentity."""
    profile = store.create(Collections.USERS, {
        "email": email or f"{role}@test.com",
        "password_hash": hash_password(PASSWORDS[role]),
        "first_name": first_name or role.capitalize(),
        "last_name": last_name,
        "role": role,
        "approved": approved,
    })
    return SessionIdentity.from_profile(profile)


@pytest.fixture
def admin(store):
    return create_user(store, Roles.ADMIN)


@pytest.fixture
def waiter(store):
    return create_user(store, Roles.WAITER)


@pytest.fixture
def chef(store):
    return create_user(store, Roles.CHEF)


@pytest.fixture
def cashier(store):
    return create_user(store, Roles.CASHIER)


@pytest.fixture
def customer(store):
    """Customer 'Ann Smith'."""
    return create_user(store, Roles.CUSTOMER, email="ann@test.com", first_name="Ann", last_name="Smith")


@pytest.fixture
def other_customer(store):
    """Customer 'Bob Jones'."""
    return create_user(store, Roles.CUSTOMER, email="bob@test.com", first_name="Bob", last_name="Jones")


def login_headers(client, email, password):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, f"Login failed: {response.json()}"
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client, admin):
    return login_headers(client, admin.email, PASSWORDS[Roles.ADMIN])


@pytest.fixture
def waiter_headers(client, waiter):
    return login_headers(client, waiter.email, PASSWORDS[Roles.WAITER])


@pytest.fixture
def chef_headers(client, chef):
    return login_headers(client, chef.email, PASSWORDS[Roles.CHEF])


@pytest.fixture
def cashier_headers(client, cashier):
    return login_headers(client, cashier.email, PASSWORDS[Roles.CASHIER])


@pytest.fixture
def customer_headers(client, customer):
    return login_headers(client, customer.email, PASSWORDS[Roles.CUSTOMER])


# =============================================================================
# Tables and menu
# =============================================================================


@pytest.fixture
def tables(store):
    """Tables 1-4, all available."""
    return [
        store.create(Collections.TABLES, {
            "table_number": number,
            "capacity": 4,
            "status": TableStatus.AVAILABLE,
        })
        for number in range(1, 5)
    ]


@pytest.fixture
def menu(store):
    """Menu keyed by short name: pizza, salad, soda (in stock) and soup (sold out)."""
    items = {
        "pizza": {"name": "Margherita Pizza", "price_cents": 1200, "category": "Mains", "description": "Tomato and mozzarella"},
        "salad": {"name": "Green Salad", "price_cents": 750, "category": "Starters", "description": None},
        "soda": {"name": "Lemon Soda", "price_cents": 300, "category": "Drinks", "description": "Sparkling"},
        "soup": {"name": "Tomato Soup", "price_cents": 600, "category": "Starters", "description": None, "available": False},
    }
    return {
        key: store.create(Collections.MENU_ITEMS, {"available": True, "is_visible": True, **data})
        for key, data in items.items()
    }


def line(item, quantity=1):
    """Cart line payload for an order request."""
    return {"menu_item_id": item["id"], "quantity": quantity}


# =============================================================================
# Lifecycle helpers
# =============================================================================


def advance(service, order_id, to_status, staff):
    """Walk an order forward along the lifecycle up to to_status."""
    steps = [
        (OrderStatus.CONFIRMED, service.confirm, "waiter"),
        (OrderStatus.PREPARING, service.start_preparing, "chef"),
        (OrderStatus.READY, service.mark_ready, "chef"),
        (OrderStatus.SERVED, service.serve, "waiter"),
        (OrderStatus.BILLING, service.process_bill, "cashier"),
        (OrderStatus.COMPLETED, service.mark_complete, "cashier"),
    ]
    rank = OrderStatus.LIFECYCLE.index
    order = service.get_order(order_id)
    for status, action, role in steps:
        if rank(status) > rank(to_status):
            break
        if rank(order["status"]) >= rank(status):
            continue
        order = action(order_id, staff[role])
    return order


@pytest.fixture
def service(store):
    return OrderService(store)


@pytest.fixture
def staff(waiter, chef, cashier):
    """Staff identities keyed by role, as advance() expects."""
    return {"waiter": waiter, "chef": chef, "cashier": cashier}
