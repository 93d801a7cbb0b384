"""
Document Store.

Collection-oriented facade over the ORM models: every operation opens its
own short session, commits, and then tells the LiveQueryHub so open
subscriptions re-query. Documents are plain dicts (see
DocumentMixin.to_document).

compare_and_set() is the only primitive the order lifecycle writes with:
a single UPDATE ... WHERE id = :id AND <expected fields> checked through
its rowcount, so two racing writers cannot both succeed.
"""

from __future__ import annotations

from typing import Any, Callable

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.constants import EventType
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import DatabaseError, NotFoundError
from rest_api.models import COLLECTION_MODELS, utcnow

from .live_query import LiveQueryHub, Subscription
from .query import Query

logger = get_logger(__name__)

# Fields the store manages itself
_PROTECTED_FIELDS = frozenset({"id", "created_at"})


class DocumentStore:
    """
    Usage:
        store = DocumentStore(SessionLocal)
        order = store.create("orders", {...})
        ok = store.compare_and_set("orders", order["id"], {"status": "ready"}, {"status": "served"})
        sub = store.subscribe(Query("orders"), on_change=render)
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        hub: LiveQueryHub | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.hub = hub or LiveQueryHub()
        self.hub.bind(self.query)

    @staticmethod
    def _model(collection: str) -> type:
        try:
            return COLLECTION_MODELS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection!r}") from None

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        model = self._model(collection)
        with self._session_factory() as db:
            obj = db.get(model, document_id)
            return obj.to_document() if obj is not None else None

    def query(self, query: Query) -> list[dict[str, Any]]:
        model = self._model(query.collection)
        with self._session_factory() as db:
            rows = db.scalars(query.to_select(model)).all()
            return [row.to_document() for row in rows]

    def find_one(self, collection: str, **equals: Any) -> dict[str, Any] | None:
        """First document whose fields equal the given values."""
        query = Query(collection)
        for field_name, value in equals.items():
            query = query.where(field_name, "==", value)
        results = self.query(query.take(1))
        return results[0] if results else None

    # =========================================================================
    # Writes
    # =========================================================================

    def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a document. id and timestamps are assigned by the store."""
        model = self._model(collection)
        now = utcnow()
        fields = {k: v for k, v in data.items() if k not in _PROTECTED_FIELDS}
        fields["created_at"] = now
        fields["last_updated"] = now

        with self._session_factory() as db:
            obj = model(**fields)
            db.add(obj)
            self._commit(db, f"create {collection} document")
            db.refresh(obj)
            doc = obj.to_document()

        self.hub.notify(collection, doc["id"], EventType.DOCUMENT_CREATED)
        return doc

    def update(
        self,
        collection: str,
        document_id: str,
        changes: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Last-writer-wins update of the given fields.

        Raises:
            NotFoundError: If the document does not exist.
        """
        model = self._model(collection)
        values = self._write_values(model, changes)

        with self._session_factory() as db:
            result = db.execute(
                update(model).where(model.id == document_id).values(**values)
            )
            if result.rowcount == 0:
                db.rollback()
                raise NotFoundError(collection, document_id)
            self._commit(db, f"update {collection} document")
            doc = db.get(model, document_id).to_document()

        self.hub.notify(collection, document_id, EventType.DOCUMENT_UPDATED)
        return doc

    def compare_and_set(
        self,
        collection: str,
        document_id: str,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> bool:
        """
        Apply changes only if every expected field still holds.

        Returns:
            True if the write was applied, False if the document is missing
            or any expected field differs.
        """
        model = self._model(collection)
        values = self._write_values(model, changes)

        stmt = update(model).where(model.id == document_id)
        for field_name, value in expected.items():
            column = getattr(model, field_name)
            stmt = stmt.where(column.is_(None) if value is None else column == value)

        with self._session_factory() as db:
            result = db.execute(stmt.values(**values))
            if result.rowcount != 1:
                db.rollback()
                logger.debug(
                    "Conditional write rejected",
                    collection=collection,
                    document_id=document_id,
                    expected=expected,
                )
                return False
            self._commit(db, f"update {collection} document")

        self.hub.notify(collection, document_id, EventType.DOCUMENT_UPDATED)
        return True

    # =========================================================================
    # Live queries
    # =========================================================================

    def subscribe(
        self,
        query: Query,
        on_change: Callable[[list[dict[str, Any]]], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Subscription:
        """
        Live query. on_change fires now with the current result, then
        whenever a committed write changes it. Returns the subscription;
        calling it unsubscribes.
        """
        return self.hub.subscribe(query, on_change, on_error)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _write_values(model: type, changes: dict[str, Any]) -> dict[str, Any]:
        values = {k: v for k, v in changes.items() if k not in _PROTECTED_FIELDS}
        values["last_updated"] = utcnow()
        if hasattr(model, "revision") and "revision" not in values:
            values["revision"] = model.revision + 1
        return values

    @staticmethod
    def _commit(db: Session, operation: str) -> None:
        try:
            safe_commit(db)
        except SQLAlchemyError as e:
            logger.error("Store write failed", operation=operation, error=str(e), exc_info=True)
            raise DatabaseError(operation) from e

    def ensure_exists(self, collection: str, document_id: str) -> dict[str, Any]:
        doc = self.get(collection, document_id)
        if doc is None:
            raise NotFoundError(collection, document_id)
        return doc
