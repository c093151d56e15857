"""Collaboration request workflow.

Each (request, invitee) pair moves pending -> accepted or pending -> rejected and
never leaves a terminal state. Every transition writes the invitee entry and its
pending mirror together, re-derives the request status, and on acceptance adds
the author to the material roster and contributor list, all in one transaction.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.core.database import atomic
from app.core.exceptions import (
    CollaborationRequestNotFoundException,
    InvalidTransitionException,
    InviteeNotFoundException,
    PendingEntryNotFoundException,
    ResourceConflictException,
    ResourceNotFoundException,
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
from app.modules.collaboration.schemas import PendingInvitationOut, TransitionOut
from app.modules.materials.models import Material
from app.modules.users.models import canonical_account_id

logger = logging.getLogger(__name__)


class CollaborationWorkflow:
    """Creates collaboration requests and applies invitee transitions."""

    def __init__(self, db: Session):
        self.db = db

    # ---- creation -------------------------------------------------------

    def create_request(
        self, material: Material, requested_by: str, invitee_ids: Iterable[str]
    ) -> Tuple[Optional[CollaborationRequest], List[PendingCollaboration]]:
        """Stage one request plus one pending entry per invitee.

        Only flushes; the caller owns the transaction so the request commits
        together with whatever created the material.
        """
        ordered: list[str] = []
        for author_id in invitee_ids:
            if author_id and author_id not in ordered and author_id != material.primary_author:
                ordered.append(author_id)
        if not ordered:
            return None, []

        request = CollaborationRequest(
            material_id=material.id,
            requested_by=requested_by,
            status=RequestStatus.PENDING,
        )
        request.invitees = [
            CollaborationInvitee(author_id=author_id, position=index, action=InviteeAction.PENDING)
            for index, author_id in enumerate(ordered)
        ]
        pending = [
            PendingCollaboration(requested_to=author_id, user_action=InviteeAction.PENDING)
            for author_id in ordered
        ]
        request.pending_entries = pending
        self.db.add(request)
        self.db.flush()
        logger.info(
            "Collaboration request %s created for material %s with %d invitee(s)",
            request.id,
            material.id,
            len(ordered),
            extra={"event": "collaboration_requested", "material_id": material.id},
        )
        return request, pending

    # ---- transitions ----------------------------------------------------

    def accept(self, request_id: int, author_id: str) -> TransitionOut:
        author_id = canonical_account_id(author_id) or author_id
        with atomic(self.db, operation="collaboration acceptance"):
            request, invitee, pending = self._load_transition(request_id, author_id)
            if invitee.action == InviteeAction.REJECTED:
                raise InvalidTransitionException("rejected", "accepted")
            material = self._lock_material(request.material_id)
            if invitee.action == InviteeAction.PENDING:
                invitee.action = InviteeAction.ACCEPTED
                pending.user_action = InviteeAction.ACCEPTED
                self._join_roster(material, author_id)
            request.rederive_status()
            self._flush_transition(request_id, author_id)
            result = self._summary(request, author_id, invitee.action, material)
            material_id = request.material_id

        logger.info(
            "Author %s accepted collaboration request %s (status=%s)",
            author_id,
            request_id,
            result.status.value,
            extra={"event": "collaboration_accepted", "material_id": material_id},
        )
        return result

    def reject(self, request_id: int, author_id: str) -> TransitionOut:
        author_id = canonical_account_id(author_id) or author_id
        with atomic(self.db, operation="collaboration rejection"):
            request, invitee, pending = self._load_transition(request_id, author_id)
            if invitee.action == InviteeAction.ACCEPTED:
                raise InvalidTransitionException("accepted", "rejected")
            if invitee.action == InviteeAction.PENDING:
                invitee.action = InviteeAction.REJECTED
                pending.user_action = InviteeAction.REJECTED
            request.rederive_status()
            self._flush_transition(request_id, author_id)
            material = self.db.get(Material, request.material_id)
            result = self._summary(request, author_id, invitee.action, material)
            material_id = request.material_id

        logger.info(
            "Author %s rejected collaboration request %s (status=%s)",
            author_id,
            request_id,
            result.status.value,
            extra={"event": "collaboration_rejected", "material_id": material_id},
        )
        return result

    # ---- lookups --------------------------------------------------------

    def get_request(self, request_id: int) -> CollaborationRequest:
        request = (
            self.db.query(CollaborationRequest)
            .options(selectinload(CollaborationRequest.invitees))
            .filter(CollaborationRequest.id == request_id)
            .first()
        )
        if request is None:
            raise CollaborationRequestNotFoundException(request_id)
        return request

    def pending_for_user(self, user_id: str) -> List[PendingInvitationOut]:
        rows = (
            self.db.query(PendingCollaboration, CollaborationRequest, Material.title)
            .join(CollaborationRequest, PendingCollaboration.request_id == CollaborationRequest.id)
            .join(Material, CollaborationRequest.material_id == Material.id)
            .filter(
                PendingCollaboration.requested_to == user_id,
                PendingCollaboration.user_action == InviteeAction.PENDING,
            )
            .order_by(desc(CollaborationRequest.created_at), desc(CollaborationRequest.id))
            .all()
        )
        return [
            PendingInvitationOut(
                id=entry.id,
                request_id=entry.request_id,
                requested_to=entry.requested_to,
                user_action=entry.user_action,
                material_id=request.material_id,
                material_title=title,
                requested_by=request.requested_by,
            )
            for entry, request, title in rows
        ]

    def sent_by_user(self, user_id: str) -> List[CollaborationRequest]:
        return (
            self.db.query(CollaborationRequest)
            .options(selectinload(CollaborationRequest.invitees))
            .filter(CollaborationRequest.requested_by == user_id)
            .order_by(desc(CollaborationRequest.created_at), desc(CollaborationRequest.id))
            .all()
        )

    # ---- helpers --------------------------------------------------------

    def _load_transition(
        self, request_id: int, author_id: str
    ) -> Tuple[CollaborationRequest, CollaborationInvitee, PendingCollaboration]:
        request = (
            self.db.query(CollaborationRequest)
            .filter(CollaborationRequest.id == request_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if request is None:
            raise CollaborationRequestNotFoundException(request_id)
        invitee = request.invitee(author_id)
        if invitee is None:
            raise InviteeNotFoundException(request_id, author_id)
        pending = (
            self.db.query(PendingCollaboration)
            .filter(
                PendingCollaboration.request_id == request_id,
                PendingCollaboration.requested_to == author_id,
            )
            .with_for_update()
            .first()
        )
        if pending is None:
            raise PendingEntryNotFoundException(request_id, author_id)
        return request, invitee, pending

    def _lock_material(self, material_id: str) -> Material:
        material = (
            self.db.query(Material)
            .filter(Material.id == material_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if material is None:
            raise ResourceNotFoundException("Material", material_id)
        return material

    def _join_roster(self, material: Material, author_id: str) -> None:
        collaboration = (
            self.db.query(Collaboration).filter(Collaboration.material_id == material.id).first()
        )
        if collaboration is None:
            collaboration = Collaboration(material_id=material.id)
            self.db.add(collaboration)
        if not collaboration.has_member(author_id):
            collaboration.members.append(CollaborationMember(author_id=author_id))

        contributors = list(material.contributors or [])
        if author_id not in contributors and author_id != material.primary_author:
            # Reassign so the list column is marked dirty.
            material.contributors = contributors + [author_id]

    def _flush_transition(self, request_id: int, author_id: str) -> None:
        try:
            self.db.flush()
        except IntegrityError as exc:
            logger.warning(
                "Concurrent transition for request %s author %s: %s",
                request_id,
                author_id,
                exc.orig,
            )
            raise ResourceConflictException(
                "This invitation was updated concurrently; please retry",
                details={"request_id": request_id, "author_id": author_id},
            ) from exc

    @staticmethod
    def _summary(
        request: CollaborationRequest,
        author_id: str,
        action: InviteeAction,
        material: Optional[Material],
    ) -> TransitionOut:
        return TransitionOut(
            request_id=request.id,
            author_id=author_id,
            action=action,
            status=request.status,
            contributors=list(material.contributors or []) if material else [],
        )

