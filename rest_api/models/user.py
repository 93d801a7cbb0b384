"""
User Profile Model.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shared.config.constants import Roles

from .base import Base, DocumentMixin


class UserProfile(DocumentMixin, Base):
    """
    Any person who can sign in: staff member or customer.

    The role is a single tagged field, so resolving a signed-in user is
    one lookup. Staff accounts need an administrator's approval before
    they can sign in; customers are approved on registration.
    """

    __tablename__ = "user_profile"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Roles.CUSTOMER)
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Set when an admin approves or rejects a staff sign-up
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(36))
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<UserProfile(id={self.id}, email='{self.email}', role='{self.role}')>"
