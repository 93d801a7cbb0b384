"""
Query description for the document store.

A Query is immutable; builders return new instances:

    Query(Collections.ORDERS).where("status", "not-in", ["pending"]).order_by("created_at", descending=True)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from sqlalchemy import Select, select

# Supported comparison operators
OPERATORS = frozenset({"==", "!=", "in", "not-in", "is-null", "not-null"})


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any = None

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op!r}")
        if self.op in ("in", "not-in") and not isinstance(self.value, (list, tuple, set, frozenset)):
            raise ValueError(f"Operator {self.op!r} needs a collection value")


@dataclass(frozen=True)
class Ordering:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class Query:
    """Filters are ANDed; ordering is applied in sequence."""

    collection: str
    filters: tuple[Filter, ...] = field(default_factory=tuple)
    ordering: tuple[Ordering, ...] = field(default_factory=tuple)
    limit: int | None = None

    def where(self, field_name: str, op: str, value: Any = None) -> "Query":
        if op in ("in", "not-in"):
            value = tuple(value)
        return replace(self, filters=self.filters + (Filter(field_name, op, value),))

    def order_by(self, field_name: str, descending: bool = False) -> "Query":
        return replace(self, ordering=self.ordering + (Ordering(field_name, descending),))

    def take(self, limit: int) -> "Query":
        return replace(self, limit=limit)

    def to_select(self, model: type) -> Select:
        """Compile to a SQLAlchemy SELECT against the collection's model."""
        stmt = select(model)
        for f in self.filters:
            column = getattr(model, f.field, None)
            if column is None:
                raise ValueError(f"Unknown field {f.field!r} for {self.collection}")
            if f.op == "==":
                stmt = stmt.where(column.is_(None) if f.value is None else column == f.value)
            elif f.op == "!=":
                stmt = stmt.where(column.is_not(None) if f.value is None else column != f.value)
            elif f.op == "in":
                stmt = stmt.where(column.in_(list(f.value)))
            elif f.op == "not-in":
                stmt = stmt.where(column.not_in(list(f.value)))
            elif f.op == "is-null":
                stmt = stmt.where(column.is_(None))
            else:
                stmt = stmt.where(column.is_not(None))

        for o in self.ordering:
            column = getattr(model, o.field, None)
            if column is None:
                raise ValueError(f"Unknown field {o.field!r} for {self.collection}")
            stmt = stmt.order_by(column.desc() if o.descending else column.asc())
        # Stable order for snapshot comparison
        stmt = stmt.order_by(model.id.asc())

        if self.limit is not None:
            stmt = stmt.limit(self.limit)
        return stmt
