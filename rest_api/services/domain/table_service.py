"""
Table Occupancy Tracker.

Waiters flip tables between available and occupied; 'reserved' is only
set by an administrator. Customer table selection reads the status at
selection time and does not reserve the table.
"""

from __future__ import annotations

from typing import Any

from shared.config.constants import Collections, Roles, TableStatus
from shared.config.logging import waiter_logger as logger
from shared.utils.exceptions import (
    InsufficientRoleError,
    TableNotFoundError,
    TableUnavailableError,
    ValidationError,
)
from rest_api.services.identity import SessionIdentity
from rest_api.services.store import DocumentStore, Query


class TableService:
    """Domain service for dining table occupancy."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def list_tables(self) -> list[dict[str, Any]]:
        return self._store.query(Query(Collections.TABLES).order_by("table_number"))

    def list_available(self) -> list[dict[str, Any]]:
        return self._store.query(
            Query(Collections.TABLES)
            .where("status", "==", TableStatus.AVAILABLE)
            .order_by("table_number")
        )

    def get_by_number(self, table_number: int) -> dict[str, Any]:
        table = self._store.find_one(Collections.TABLES, table_number=table_number)
        if table is None:
            raise TableNotFoundError(table_number)
        return table

    def select_table(self, table_number: int) -> dict[str, Any]:
        """
        Customer table choice. Consults the status now, reserves nothing.

        Raises:
            TableNotFoundError: No such table.
            TableUnavailableError: Table is not available.
        """
        table = self.get_by_number(table_number)
        if table["status"] != TableStatus.AVAILABLE:
            raise TableUnavailableError(table_number, table["status"])
        return table

    def set_status(self, table_id: str, status: str, actor: SessionIdentity) -> dict[str, Any]:
        """
        Set occupancy. Waiters toggle available/occupied, admins may also reserve.

        Raises:
            InsufficientRoleError: Caller is neither waiter nor admin.
            ValidationError: Unknown status, or waiter setting 'reserved'.
            TableNotFoundError: No such table.
        """
        if actor.role not in (Roles.WAITER, Roles.ADMIN):
            raise InsufficientRoleError([Roles.WAITER, Roles.ADMIN], actor=actor.uid)
        if status not in TableStatus.ALL:
            raise ValidationError(f"Unknown table status '{status}'", field="status", value=status)
        if actor.role == Roles.WAITER and status not in TableStatus.WAITER_SETTABLE:
            raise ValidationError("Only an administrator can reserve a table", field="status", value=status)

        if self._store.get(Collections.TABLES, table_id) is None:
            raise TableNotFoundError(table_id)

        table = self._store.update(
            Collections.TABLES, table_id, {"status": status, "updated_by": actor.uid}
        )
        logger.info(
            "Table status changed",
            table_number=table["table_number"],
            status=status,
            actor=actor.uid,
        )
        return table

    def release(self, table_number: int, actor: SessionIdentity) -> dict[str, Any] | None:
        """Mark a table available (used by auto-release on completion)."""
        table = self._store.find_one(Collections.TABLES, table_number=table_number)
        if table is None or table["status"] == TableStatus.AVAILABLE:
            return table
        table = self._store.update(
            Collections.TABLES,
            table["id"],
            {"status": TableStatus.AVAILABLE, "updated_by": actor.uid},
        )
        logger.info("Table released", table_number=table_number, actor=actor.uid)
        return table
