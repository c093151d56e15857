"""Persistence operations for materials and the rows that hang off them."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.database import atomic
from app.core.exceptions import ResourceAlreadyExistsException, ResourceNotFoundException
from app.modules.collaboration.models import (
    Collaboration,
    CollaborationInvitee,
    CollaborationMember,
    CollaborationRequest,
    PendingCollaboration,
)
from app.modules.materials.models import (
    Material,
    MaterialComment,
    MaterialRating,
    ReadingListEntry,
)

logger = logging.getLogger(__name__)


class MaterialRepository:
    """Entity store for Material records."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, material_id: str, *, lock: bool = False) -> Material:
        query = self.db.query(Material).filter(Material.id == material_id)
        if lock:
            query = query.with_for_update().populate_existing()
        material = query.first()
        if material is None:
            raise ResourceNotFoundException("Material", material_id)
        return material

    def exists(self, material_id: str) -> bool:
        return (
            self.db.query(Material.id).filter(Material.id == material_id).first() is not None
        )

    def add(self, material: Material) -> Material:
        self.db.add(material)
        self.db.flush()
        return material

    def increment_reads(self, material_id: str) -> int:
        """Bump the read counter in SQL and return the stored value."""
        with atomic(self.db, operation="read counter update"):
            self.db.query(Material).filter(Material.id == material_id).update(
                {Material.total_reads: Material.total_reads + 1},
                synchronize_session=False,
            )
        return self.db.execute(
            select(Material.total_reads).where(Material.id == material_id)
        ).scalar_one()

    def similar(self, material: Material, limit: Optional[int] = None) -> List[dict]:
        """Materials sharing at least one discipline with *material*, self excluded."""
        disciplines = set(material.disciplines or [])
        if not disciplines:
            return []
        rows = (
            self.db.query(Material.id, Material.title, Material.disciplines)
            .filter(Material.id != material.id)
            .order_by(desc(Material.date_uploaded), Material.id)
            .all()
        )
        similar = [
            {"id": row.id, "title": row.title}
            for row in rows
            if disciplines.intersection(row.disciplines or [])
        ]
        return similar[:limit] if limit else similar

    def delete_cascade(self, material_id: str) -> None:
        """Delete a material and every dependent record in one transaction."""
        with atomic(self.db, operation="material deletion"):
            self.get(material_id, lock=True)
            request_ids = select(CollaborationRequest.id).where(
                CollaborationRequest.material_id == material_id
            )
            collaboration_ids = select(Collaboration.id).where(
                Collaboration.material_id == material_id
            )
            self.db.query(PendingCollaboration).filter(
                PendingCollaboration.request_id.in_(request_ids)
            ).delete(synchronize_session=False)
            self.db.query(CollaborationInvitee).filter(
                CollaborationInvitee.request_id.in_(request_ids)
            ).delete(synchronize_session=False)
            self.db.query(CollaborationRequest).filter(
                CollaborationRequest.material_id == material_id
            ).delete(synchronize_session=False)
            self.db.query(CollaborationMember).filter(
                CollaborationMember.collaboration_id.in_(collaboration_ids)
            ).delete(synchronize_session=False)
            self.db.query(Collaboration).filter(
                Collaboration.material_id == material_id
            ).delete(synchronize_session=False)
            for model in (MaterialComment, MaterialRating, ReadingListEntry):
                self.db.query(model).filter(model.material_id == material_id).delete(
                    synchronize_session=False
                )
            self.db.query(Material).filter(Material.id == material_id).delete(
                synchronize_session=False
            )
        logger.info(
            "Material %s deleted with dependents",
            material_id,
            extra={"event": "material_deleted", "material_id": material_id},
        )

    # ---- reading list ---------------------------------------------------

    def add_to_reading_list(self, user_id: str, material_id: str) -> ReadingListEntry:
        if not self.exists(material_id):
            raise ResourceNotFoundException("Material", material_id)
        existing = (
            self.db.query(ReadingListEntry)
            .filter(
                ReadingListEntry.user_id == user_id,
                ReadingListEntry.material_id == material_id,
            )
            .first()
        )
        if existing is not None:
            raise ResourceAlreadyExistsException("Reading list entry", field="material_id")
        entry = ReadingListEntry(user_id=user_id, material_id=material_id)
        with atomic(self.db, operation="reading list update"):
            self.db.add(entry)
            try:
                self.db.flush()
            except IntegrityError as exc:  # pragma: no cover - concurrent duplicate insert
                raise ResourceAlreadyExistsException(
                    "Reading list entry", field="material_id"
                ) from exc
        self.db.refresh(entry)
        return entry

    def record_read(self, user_id: str, material_id: str) -> None:
        self._bump_reading_list(user_id, material_id, ReadingListEntry.read_count, "read")

    def record_download(self, user_id: str, material_id: str) -> None:
        self._bump_reading_list(
            user_id, material_id, ReadingListEntry.download_count, "download"
        )

    def _bump_reading_list(self, user_id: str, material_id: str, counter, action: str) -> None:
        """Increment *counter* on the requester's reading-list entry, if there is one."""
        with atomic(self.db, operation=f"{action} counter update"):
            self.db.query(ReadingListEntry).filter(
                ReadingListEntry.user_id == user_id,
                ReadingListEntry.material_id == material_id,
            ).update({counter: counter + 1}, synchronize_session=False)

    def reading_list(self, user_id: str) -> List[ReadingListEntry]:
        return (
            self.db.query(ReadingListEntry)
            .filter(ReadingListEntry.user_id == user_id)
            .order_by(desc(ReadingListEntry.added_at), desc(ReadingListEntry.id))
            .all()
        )

