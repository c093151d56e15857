"""Material update and delete orchestration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from app.core.config import settings as default_settings
from app.core.database import atomic
from app.core.exceptions import (
    FileSizeLimitException,
    PermissionDeniedException,
    UnknownUserException,
    ValidationException,
)
from app.modules.ledger import LedgerClient, LedgerResult, LedgerStatus
from app.modules.materials import content_store
from app.modules.materials.accessibility import parse_accessibility
from app.modules.materials.models import Material
from app.modules.materials.repository import MaterialRepository
from app.modules.media import make_thumbnail
from app.modules.users.service import UserDirectory
from app.services.materials.ingestion import clean_tags, split_contributors

logger = logging.getLogger(__name__)


@dataclass
class MaterialUpdate:
    """Fields left as None are not changed."""

    user_id: Optional[str]
    title: Optional[str] = None
    description: Optional[str] = None
    material_type: Optional[str] = None
    technical_type: Optional[str] = None
    target_audience: Optional[str] = None
    disciplines: Optional[Sequence[str]] = None
    accessibility: object = None
    author_permission: Optional[bool] = None
    contributors: Optional[Sequence[str]] = None
    file_bytes: Optional[bytes] = None
    file_name: Optional[str] = None
    content_type: Optional[str] = None
    image_bytes: Optional[bytes] = None

    def touches_ownership(self) -> bool:
        return (
            self.accessibility is not None
            or self.author_permission is not None
            or self.contributors is not None
        )


@dataclass
class UpdateResult:
    material: Material
    file_replaced: bool
    ledger: LedgerResult


class MaterialManagementService:
    def __init__(
        self,
        db: Session,
        ledger: Optional[LedgerClient] = None,
        *,
        settings=None,
        directory: Optional[UserDirectory] = None,
    ):
        self.db = db
        self.ledger = ledger
        self.settings = settings or default_settings
        self.directory = directory or UserDirectory(db)
        self.materials = MaterialRepository(db)

    async def update(self, material_id: str, changes: MaterialUpdate) -> UpdateResult:
        editor = self.directory.find_user_by_id(changes.user_id)
        if editor is None:
            raise UnknownUserException(changes.user_id)
        if changes.file_bytes is not None and len(changes.file_bytes) > self.settings.max_upload_bytes:
            raise FileSizeLimitException(f"{self.settings.max_upload_bytes} bytes")

        file_replaced = False
        with atomic(self.db, operation="material update"):
            material = self.materials.get(material_id, lock=True)
            self._authorize(material, editor.id, changes)
            self._apply_metadata(material, changes)
            if changes.file_bytes:
                stored = content_store.pack(changes.file_bytes)
                material.content = stored.blob
                material.content_hash = stored.content_hash
                if changes.file_name:
                    material.file_name = changes.file_name
                if changes.content_type:
                    material.content_type = changes.content_type
                file_replaced = True
            if changes.image_bytes:
                image = make_thumbnail(changes.image_bytes, self.settings.thumbnail_size)
                if image is not None:
                    material.image = image
            new_hash = material.content_hash

        logger.info(
            "Material %s updated by %s (file_replaced=%s)",
            material_id,
            editor.id,
            file_replaced,
            extra={"event": "material_updated", "material_id": material_id},
        )
        ledger = LedgerResult(LedgerStatus.DISABLED)
        if file_replaced and self.ledger is not None:
            ledger = await self.ledger.register_hash(material_id, new_hash)
        self.db.refresh(material)
        return UpdateResult(material=material, file_replaced=file_replaced, ledger=ledger)

    async def delete(self, material_id: str) -> LedgerResult:
        """Delete locally first; ledger deregistration is best-effort afterwards."""
        self.materials.delete_cascade(material_id)
        if self.ledger is None:
            return LedgerResult(LedgerStatus.DISABLED)
        result = await self.ledger.deregister(material_id)
        if result.status in (LedgerStatus.TIMEOUT, LedgerStatus.ERROR):
            logger.warning(
                "Material %s deleted but ledger deregistration %s",
                material_id,
                result.status.value,
                extra={"event": "ledger_degraded", "material_id": material_id},
            )
        return result

    # ---- helpers --------------------------------------------------------

    @staticmethod
    def _authorize(material: Material, user_id: str, changes: MaterialUpdate) -> None:
        is_primary = user_id == material.primary_author
        if is_primary:
            return
        if not (material.author_permission and user_id in material.contributor_account_ids):
            raise PermissionDeniedException("You are not allowed to update this material")
        if changes.touches_ownership():
            raise PermissionDeniedException(
                "Only the primary author can change contributors, accessibility or permissions"
            )

    @staticmethod
    def _apply_metadata(material: Material, changes: MaterialUpdate) -> None:
        if changes.title is not None:
            title = changes.title.strip()
            if not title:
                raise ValidationException("Material title is required", field="title")
            material.title = title
        for attr in ("description", "material_type", "technical_type", "target_audience"):
            value = getattr(changes, attr)
            if value is not None:
                setattr(material, attr, value)
        if changes.disciplines is not None:
            material.disciplines = clean_tags(changes.disciplines)
        if changes.accessibility is not None:
            try:
                material.accessibility_rule = parse_accessibility(changes.accessibility)
            except ValueError as exc:
                raise ValidationException(str(exc), field="accessibility") from exc
        if changes.author_permission is not None:
            material.author_permission = changes.author_permission
        if changes.contributors is not None:
            account_ids, names = split_contributors(changes.contributors, material.primary_author)
            if account_ids:
                raise ValidationException(
                    "Registered co-authors join through collaboration requests",
                    field="contributors",
                )
            material.contributors = material.contributor_account_ids + names
