"""Material domain models: the material record and its engagement rows."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.core.db_defaults import string_list_type, timestamp_default
from app.modules.materials.accessibility import AccessibilityRule, parse_accessibility
from app.modules.users.models import is_account_id, new_uuid


class Material(Base):
    """An uploaded work.

    ``content`` holds the gzip-compressed upload and ``content_hash`` the SHA-256
    hex digest of exactly those stored bytes. ``contributors`` mixes accepted
    account ids and free-text names of unregistered co-authors, in insertion order.
    """

    __tablename__ = "materials"

    id = Column(String(36), primary_key=True, default=new_uuid)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    primary_author = Column(String, nullable=False, index=True)
    contributors = Column(string_list_type(), nullable=False, default=list)

    content = Column(LargeBinary, nullable=False)
    content_hash = Column(String(64), nullable=False)
    file_name = Column(String, nullable=True)
    content_type = Column(String, nullable=False, default="application/pdf")
    image = Column(LargeBinary, nullable=True)

    material_type = Column(String, nullable=True)
    technical_type = Column(String, nullable=True)
    target_audience = Column(String, nullable=True)
    disciplines = Column(string_list_type(), nullable=False, default=list)
    accessibility = Column(string_list_type(), nullable=True)
    author_permission = Column(Boolean, nullable=False, default=False)

    date_uploaded = Column(DateTime(timezone=True), server_default=timestamp_default())
    total_reads = Column(Integer, nullable=False, default=0)
    total_comments = Column(Integer, nullable=False, default=0)
    average_rating = Column(Float, nullable=False, default=3.0)

    comments = relationship(
        "MaterialComment",
        back_populates="material",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    ratings = relationship(
        "MaterialRating",
        back_populates="material",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def accessibility_rule(self) -> AccessibilityRule:
        return parse_accessibility(self.accessibility)

    @accessibility_rule.setter
    def accessibility_rule(self, rule: AccessibilityRule) -> None:
        self.accessibility = rule.to_storage()

    @property
    def contributor_account_ids(self) -> list[str]:
        return [c for c in (self.contributors or []) if is_account_id(c)]

    @property
    def contributor_names(self) -> list[str]:
        return [c for c in (self.contributors or []) if not is_account_id(c)]

    @property
    def primary_author_is_account(self) -> bool:
        return is_account_id(self.primary_author)

    def is_owned_by(self, user_id: str) -> bool:
        """Primary author or an accepted known-account contributor."""
        return user_id == self.primary_author or user_id in self.contributor_account_ids


class MaterialComment(Base):
    __tablename__ = "material_comments"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(
        String(36),
        ForeignKey("materials.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(36), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=timestamp_default())

    material = relationship("Material", back_populates="comments")


class MaterialRating(Base):
    __tablename__ = "material_ratings"
    __table_args__ = (
        UniqueConstraint("material_id", "user_id", name="uq_material_rating_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(
        String(36),
        ForeignKey("materials.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(36), nullable=False)
    value = Column(Integer, nullable=False)
    rated_at = Column(DateTime(timezone=True), server_default=timestamp_default())

    material = relationship("Material", back_populates="ratings")


class ReadingListEntry(Base):
    """A material saved to a user's reading list."""

    __tablename__ = "reading_list_entries"
    __table_args__ = (
        UniqueConstraint("user_id", "material_id", name="uq_reading_list_user_material"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    material_id = Column(
        String(36),
        ForeignKey("materials.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    added_at = Column(DateTime(timezone=True), server_default=timestamp_default())
    read_count = Column(Integer, nullable=False, default=1)
    download_count = Column(Integer, nullable=False, default=0)


__all__ = ["Material", "MaterialComment", "MaterialRating", "ReadingListEntry"]
