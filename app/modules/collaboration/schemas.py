from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from .models import InviteeAction, RequestStatus


class InviteeOut(BaseModel):
    author_id: str
    action: InviteeAction
    position: int

    model_config = ConfigDict(from_attributes=True)


class CollaborationRequestOut(BaseModel):
    id: int
    material_id: str
    requested_by: str
    status: RequestStatus
    created_at: Optional[datetime] = None
    invitees: List[InviteeOut] = []

    model_config = ConfigDict(from_attributes=True)


class PendingCollaborationOut(BaseModel):
    id: int
    request_id: int
    requested_to: str
    user_action: InviteeAction

    model_config = ConfigDict(from_attributes=True)


class PendingInvitationOut(PendingCollaborationOut):
    """A pending entry together with the material it concerns."""

    material_id: str
    material_title: Optional[str] = None
    requested_by: str


class TransitionOut(BaseModel):
    request_id: int
    author_id: str
    action: InviteeAction
    status: RequestStatus
    contributors: List[str] = []
