from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.modules.collaboration.schemas import (
    CollaborationRequestOut,
    PendingInvitationOut,
    TransitionOut,
)
from app.services.collaboration import CollaborationWorkflow

router = APIRouter(prefix="/collaboration-requests", tags=["Collaboration"])


def get_collaboration_workflow(db: Session = Depends(get_db)) -> CollaborationWorkflow:
    return CollaborationWorkflow(db)


@router.get("/pending", response_model=List[PendingInvitationOut])
def list_pending_invitations(
    user_id: str = Query(...),
    workflow: CollaborationWorkflow = Depends(get_collaboration_workflow),
):
    """Invitations still awaiting *user_id*'s answer."""
    return workflow.pending_for_user(user_id)


@router.get("/sent", response_model=List[CollaborationRequestOut])
def list_sent_requests(
    user_id: str = Query(...),
    workflow: CollaborationWorkflow = Depends(get_collaboration_workflow),
):
    return workflow.sent_by_user(user_id)


@router.get("/{request_id}", response_model=CollaborationRequestOut)
def get_collaboration_request(
    request_id: int,
    workflow: CollaborationWorkflow = Depends(get_collaboration_workflow),
):
    return workflow.get_request(request_id)


@router.post("/{request_id}/invitees/{author_id}/accept", response_model=TransitionOut)
def accept_collaboration(
    request_id: int,
    author_id: str,
    workflow: CollaborationWorkflow = Depends(get_collaboration_workflow),
):
    """Accept an invitation; the author joins the roster and the material's contributors."""
    return workflow.accept(request_id, author_id)


@router.post("/{request_id}/invitees/{author_id}/reject", response_model=TransitionOut)
def reject_collaboration(
    request_id: int,
    author_id: str,
    workflow: CollaborationWorkflow = Depends(get_collaboration_workflow),
):
    return workflow.reject(request_id, author_id)
