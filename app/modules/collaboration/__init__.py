from .models import (
    Collaboration,
    CollaborationInvitee,
    CollaborationMember,
    CollaborationRequest,
    InviteeAction,
    PendingCollaboration,
    RequestStatus,
    derive_request_status,
)
from .schemas import (
    CollaborationRequestOut,
    InviteeOut,
    PendingCollaborationOut,
    PendingInvitationOut,
    TransitionOut,
)

__all__ = [
    "Collaboration",
    "CollaborationInvitee",
    "CollaborationMember",
    "CollaborationRequest",
    "InviteeAction",
    "PendingCollaboration",
    "RequestStatus",
    "derive_request_status",
    "CollaborationRequestOut",
    "InviteeOut",
    "PendingCollaborationOut",
    "PendingInvitationOut",
    "TransitionOut",
]
