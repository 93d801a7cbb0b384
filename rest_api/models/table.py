"""
Dining Table Model.
"""

from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from shared.config.constants import TableStatus

from .base import Base, DocumentMixin


class DiningTable(DocumentMixin, Base):
    """
    Physical table in the restaurant.
    Occupancy is maintained by waiters; 'reserved' is set out of band.
    """

    # "table" is a reserved SQL keyword
    __tablename__ = "dining_table"

    table_number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    capacity: Mapped[int] = mapped_column(Integer, default=4, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=TableStatus.AVAILABLE, nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<DiningTable(number={self.table_number}, status='{self.status}')>"
