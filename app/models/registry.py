"""Aggregates every SQLAlchemy model so metadata discovery (Alembic, test setup)
sees the full schema. New code should import from the relevant module package.
"""

from app.core.database import Base

from app.modules.users.models import User, UserProfile
from app.modules.materials.models import (
    Material,
    MaterialComment,
    MaterialRating,
    ReadingListEntry,
)
from app.modules.collaboration.models import (
    Collaboration,
    CollaborationInvitee,
    CollaborationMember,
    CollaborationRequest,
    InviteeAction,
    PendingCollaboration,
    RequestStatus,
)

__all__ = [
    "Base",
    "User",
    "UserProfile",
    "Material",
    "MaterialComment",
    "MaterialRating",
    "ReadingListEntry",
    "Collaboration",
    "CollaborationInvitee",
    "CollaborationMember",
    "CollaborationRequest",
    "InviteeAction",
    "PendingCollaboration",
    "RequestStatus",
]
