"""SQLAlchemy models for the user directory.

Rows are owned by the registration/auth service; this service only reads them to
resolve uploaders, invitees, commenters and requester roles.
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import Column, ForeignKey, LargeBinary, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql.sqltypes import TIMESTAMP

from app.core.database import Base
from app.core.db_defaults import timestamp_default


def new_uuid() -> str:
    return str(uuid.uuid4())


def canonical_account_id(value) -> Optional[str]:
    """Return *value* as a lowercase hyphenated UUID string, or None if it is not one."""
    if not isinstance(value, str):
        return None
    try:
        return str(uuid.UUID(value.strip()))
    except ValueError:
        return None


def is_account_id(value) -> bool:
    """Return True when *value* has the shape of an account id (a UUID)."""
    return canonical_account_id(value) is not None


class User(Base):
    """Registered account."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_uuid)
    email = Column(String, nullable=False, unique=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )

    profile = relationship(
        "UserProfile", back_populates="user", uselist=False, passive_deletes=True
    )

    @property
    def display_name(self) -> str:
        full = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full or self.email


class UserProfile(Base):
    """Academic profile; `role` stays empty until the user picks one."""

    __tablename__ = "user_profiles"

    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role = Column(String, nullable=True)
    primary_institution = Column(String, nullable=True)
    image = Column(LargeBinary, nullable=True)

    user = relationship("User", back_populates="profile")

    @property
    def display_name(self) -> str:
        return self.user.display_name if self.user else "Unknown User"

    @property
    def has_role(self) -> bool:
        return bool(self.role and self.role.strip())


__all__ = ["User", "UserProfile", "canonical_account_id", "is_account_id", "new_uuid"]
