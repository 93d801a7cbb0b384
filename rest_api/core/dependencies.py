"""
FastAPI dependencies shared by the routers.

The process-wide DocumentStore (and its LiveQueryHub) is created lazily;
tests replace it through app.dependency_overrides[get_store].
"""

from __future__ import annotations

import threading
from typing import Any

from fastapi import Depends

from shared.infrastructure.db import SessionLocal
from shared.security.auth import current_user_context, require_roles
from rest_api.services.domain import MenuService, OrderService, TableService
from rest_api.services.identity import IdentityProvider, SessionIdentity
from rest_api.services.store import DocumentStore

_store: DocumentStore | None = None
_store_lock = threading.Lock()


def get_store() -> DocumentStore:
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = DocumentStore(SessionLocal)
    return _store


def get_identity(ctx: dict[str, Any] = Depends(current_user_context)) -> SessionIdentity:
    return SessionIdentity.from_claims(ctx)


def identity_with_role(*roles: str):
    """
    Dependency factory: the caller's identity, restricted to roles.

    Usage:
        @router.get("/orders")
        def list_orders(identity: SessionIdentity = Depends(identity_with_role(Roles.CHEF))):
            ...
    """

    def dependency(ctx: dict[str, Any] = Depends(current_user_context)) -> SessionIdentity:
        require_roles(ctx, list(roles))
        return SessionIdentity.from_claims(ctx)

    return dependency


def get_identity_provider(store: DocumentStore = Depends(get_store)) -> IdentityProvider:
    return IdentityProvider(store)


def get_order_service(store: DocumentStore = Depends(get_store)) -> OrderService:
    return OrderService(store)


def get_table_service(store: DocumentStore = Depends(get_store)) -> TableService:
    return TableService(store)


def get_menu_service(store: DocumentStore = Depends(get_store)) -> MenuService:
    return MenuService(store)
