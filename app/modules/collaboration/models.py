"""Collaboration domain models.

A ``CollaborationRequest`` invites N authors to a material. Each invitee has an
entry inside the request (``CollaborationInvitee``) and a denormalized
``PendingCollaboration`` row used for "my pending requests" lookups; both carry the
same action at all times. Accepted authors are recorded on the material's
``Collaboration`` roster.
"""

import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.core.db_defaults import timestamp_default


class InviteeAction(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


def derive_request_status(actions) -> RequestStatus:
    """Rejection wins over everything; acceptance needs every invitee."""
    actions = list(actions)
    if any(action == InviteeAction.REJECTED for action in actions):
        return RequestStatus.REJECTED
    if actions and all(action == InviteeAction.ACCEPTED for action in actions):
        return RequestStatus.ACCEPTED
    return RequestStatus.PENDING


class CollaborationRequest(Base):
    __tablename__ = "collaboration_requests"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(
        String(36),
        ForeignKey("materials.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    requested_by = Column(String(36), nullable=False, index=True)
    status = Column(
        Enum(RequestStatus, name="collaboration_request_status"),
        nullable=False,
        default=RequestStatus.PENDING,
    )
    created_at = Column(DateTime(timezone=True), server_default=timestamp_default())

    invitees = relationship(
        "CollaborationInvitee",
        back_populates="request",
        order_by="CollaborationInvitee.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    pending_entries = relationship(
        "PendingCollaboration",
        back_populates="request",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def invitee(self, author_id: str):
        return next((entry for entry in self.invitees if entry.author_id == author_id), None)

    def rederive_status(self) -> RequestStatus:
        self.status = derive_request_status(entry.action for entry in self.invitees)
        return self.status


class CollaborationInvitee(Base):
    """Per-invitee action inside a request."""

    __tablename__ = "collaboration_invitees"
    __table_args__ = (
        UniqueConstraint("request_id", "author_id", name="uq_invitee_request_author"),
    )

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(
        Integer,
        ForeignKey("collaboration_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id = Column(String(36), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    action = Column(
        Enum(InviteeAction, name="collaboration_invitee_action"),
        nullable=False,
        default=InviteeAction.PENDING,
    )

    request = relationship("CollaborationRequest", back_populates="invitees")


class PendingCollaboration(Base):
    """Denormalized mirror of one invitee's action, keyed for per-user lookup."""

    __tablename__ = "pending_collaborations"
    __table_args__ = (
        UniqueConstraint("request_id", "requested_to", name="uq_pending_request_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(
        Integer,
        ForeignKey("collaboration_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    requested_to = Column(String(36), nullable=False, index=True)
    user_action = Column(
        Enum(InviteeAction, name="pending_collaboration_action"),
        nullable=False,
        default=InviteeAction.PENDING,
    )

    request = relationship("CollaborationRequest", back_populates="pending_entries")


class Collaboration(Base):
    """Accepted roster of a material; created on the first acceptance."""

    __tablename__ = "collaborations"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(
        String(36),
        ForeignKey("materials.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=timestamp_default())

    members = relationship(
        "CollaborationMember",
        back_populates="collaboration",
        order_by="CollaborationMember.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def has_member(self, author_id: str) -> bool:
        return any(member.author_id == author_id for member in self.members)


class CollaborationMember(Base):
    __tablename__ = "collaboration_members"
    __table_args__ = (
        UniqueConstraint(
            "collaboration_id", "author_id", name="uq_collaboration_member_author"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    collaboration_id = Column(
        Integer, ForeignKey("collaborations.id", ondelete="CASCADE"), nullable=False
    )
    author_id = Column(String(36), nullable=False)
    accepted_at = Column(DateTime(timezone=True), server_default=timestamp_default())

    collaboration = relationship("Collaboration", back_populates="members")


__all__ = [
    "Collaboration",
    "CollaborationInvitee",
    "CollaborationMember",
    "CollaborationRequest",
    "InviteeAction",
    "PendingCollaboration",
    "RequestStatus",
    "derive_request_status",
]
