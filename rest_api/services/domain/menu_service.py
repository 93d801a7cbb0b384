"""
Menu catalog and stock availability.
"""

from __future__ import annotations

from typing import Any

from shared.config.constants import Collections, Roles
from shared.config.logging import kitchen_logger as logger
from shared.utils.exceptions import InsufficientRoleError, MenuItemNotFoundError
from shared.utils.validators import sanitize_search_term
from rest_api.services.identity import SessionIdentity
from rest_api.services.store import DocumentStore, Query


def is_orderable(item: dict[str, Any] | None) -> bool:
    """In stock and shown in the catalog."""
    return bool(item) and bool(item["available"]) and bool(item["is_visible"])


class MenuService:
    """Domain service for the menu catalog."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def visible_items_query(self) -> Query:
        return (
            Query(Collections.MENU_ITEMS)
            .where("is_visible", "==", True)
            .order_by("category")
            .order_by("name")
        )

    def list_visible(
        self,
        category: str | None = None,
        search: str | None = None,
    ) -> list[dict[str, Any]]:
        """Visible items, optionally narrowed by category and name/description search."""
        query = self.visible_items_query()
        if category:
            query = query.where("category", "==", category)
        items = self._store.query(query)

        term = sanitize_search_term(search)
        if term:
            items = [
                item for item in items
                if term in item["name"].lower() or term in (item.get("description") or "").lower()
            ]
        return items

    def categories(self) -> list[str]:
        return sorted({item["category"] for item in self._store.query(self.visible_items_query())})

    def get_item(self, item_id: str) -> dict[str, Any]:
        item = self._store.get(Collections.MENU_ITEMS, item_id)
        if item is None:
            raise MenuItemNotFoundError(item_id)
        return item

    def set_availability(self, item_id: str, available: bool, actor: SessionIdentity) -> dict[str, Any]:
        """
        Kitchen stock toggle.

        Raises:
            InsufficientRoleError: Caller is not a chef.
            MenuItemNotFoundError: No such item.
        """
        if actor.role != Roles.CHEF:
            raise InsufficientRoleError([Roles.CHEF], actor=actor.uid)
        self.get_item(item_id)

        item = self._store.update(
            Collections.MENU_ITEMS, item_id, {"available": available, "updated_by": actor.uid}
        )
        logger.info("Menu item availability changed", item_id=item_id, available=available, actor=actor.uid)
        return item
