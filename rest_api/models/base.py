"""
Base class and DocumentMixin for all SQLAlchemy ORM models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_document_id() -> str:
    """Opaque document id, assigned once at creation."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class DocumentMixin:
    """
    Mixin for models exposed as documents of the store.

    Fields added:
    - id: opaque string key
    - created_at: set once by the store
    - last_updated: stamped on every write
    - updated_by: uid of the last writer, if any

    Methods:
    - to_document(): plain dict snapshot of every column
    """

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_document_id)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    def to_document(self) -> dict[str, Any]:
        """Snapshot of the row as a document (column name -> value)."""
        doc: dict[str, Any] = {}
        for column in self.__table__.columns:  # type: ignore[attr-defined]
            value = getattr(self, column.key)
            if isinstance(value, list):
                # JSON columns: copy so callers never alias ORM state
                value = [dict(v) if isinstance(v, dict) else v for v in value]
            doc[column.key] = value
        return doc

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"
