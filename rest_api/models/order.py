"""
Order Model.

Items are stored as a JSON list of snapshots copied from the menu at
placement time: {menu_item_id, name, price_cents, quantity}.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shared.config.constants import OrderStatus

from .base import Base, DocumentMixin


class Order(DocumentMixin, Base):
    """
    One customer order at one table.
    Inherits: id, created_at, last_updated, updated_by from DocumentMixin.

    Status walk: pending -> confirmed -> preparing -> ready -> served ->
    billing -> completed, with cancelled reachable before serving.
    Every status write is conditional on the previous status, and
    'revision' is bumped on every write so item edits can be conditional too.
    """

    __tablename__ = "restaurant_order"

    # Null only for counter sales (is_counter_sale=True)
    table_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    is_counter_sale: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    customer_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    customer_uid: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    total_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.PENDING, index=True
    )
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Placement bookkeeping
    placed_by: Mapped[Optional[str]] = mapped_column(String(36))
    waiter_name: Mapped[Optional[str]] = mapped_column(String(200))

    # Audit trail, one pair per lifecycle step
    confirmed_by: Mapped[Optional[str]] = mapped_column(String(36))
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    prepared_by: Mapped[Optional[str]] = mapped_column(String(36))
    prepared_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    ready_by: Mapped[Optional[str]] = mapped_column(String(36))
    ready_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    served_by: Mapped[Optional[str]] = mapped_column(String(36))
    served_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    billed_by: Mapped[Optional[str]] = mapped_column(String(36))
    billed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_by: Mapped[Optional[str]] = mapped_column(String(36))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_by: Mapped[Optional[str]] = mapped_column(String(36))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    bill_requested: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    bill_requested_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    rating: Mapped[Optional[int]] = mapped_column(Integer)
    rating_comment: Mapped[Optional[str]] = mapped_column(Text)
    rated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        # Role boards filter by status and sort by creation time
        Index("ix_order_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, table={self.table_number}, status='{self.status}')>"
