"""Material upload pipeline.

Order of work: validate the payload and uploader, compress and hash, build the
display image, then persist the material together with its collaboration
request in one transaction. The ledger is told about the new hash only after
that commit, and its failure is reported rather than undone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.config import settings as default_settings
from app.core.database import atomic
from app.core.exceptions import (
    FileSizeLimitException,
    MissingPayloadException,
    UnknownUserException,
    ValidationException,
)
from app.modules.collaboration.models import CollaborationRequest, PendingCollaboration
from app.modules.ledger import LedgerClient, LedgerResult, LedgerStatus
from app.modules.materials import content_store
from app.modules.materials.accessibility import parse_accessibility
from app.modules.materials.models import Material
from app.modules.materials.repository import MaterialRepository
from app.modules.media import display_image
from app.modules.users.models import canonical_account_id
from app.modules.users.service import UserDirectory
from app.services.collaboration.service import CollaborationWorkflow
from app.services.engagement.service import bayesian_average

logger = logging.getLogger(__name__)

_LEDGER_INGEST_STATUS = {
    LedgerStatus.OK: "registered",
    LedgerStatus.DISABLED: "skipped",
    LedgerStatus.TIMEOUT: "timeout",
    LedgerStatus.ERROR: "error",
}


@dataclass
class MaterialUpload:
    user_id: Optional[str]
    file_bytes: Optional[bytes]
    title: Optional[str]
    file_name: Optional[str] = None
    content_type: Optional[str] = None
    image_bytes: Optional[bytes] = None
    description: Optional[str] = None
    material_type: Optional[str] = None
    technical_type: Optional[str] = None
    target_audience: Optional[str] = None
    disciplines: Sequence[str] = ()
    accessibility: object = None
    author_permission: bool = False
    contributors: Sequence[str] = ()


@dataclass
class IngestionResult:
    material: Material
    collab_request: Optional[CollaborationRequest] = None
    pending_requests: List[PendingCollaboration] = field(default_factory=list)
    ledger_status: str = "skipped"
    ledger_detail: Optional[str] = None


def split_contributors(
    raw: Sequence[Optional[str]], uploader_id: str
) -> tuple[list[str], list[str]]:
    """Partition contributor identifiers into account ids and free-text names.

    Values are trimmed and de-duplicated in order; account ids are returned in
    canonical UUID form and the uploader is dropped.
    """
    account_ids: list[str] = []
    names: list[str] = []
    seen: set[str] = {uploader_id}
    for value in raw or ():
        if value is None:
            continue
        candidate = str(value).strip()
        account_id = canonical_account_id(candidate)
        if account_id is not None:
            candidate = account_id
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        (account_ids if account_id is not None else names).append(candidate)
    return account_ids, names


def clean_tags(values: Sequence[Optional[str]]) -> list[str]:
    tags: list[str] = []
    for value in values or ():
        if value is None:
            continue
        for part in str(value).split(","):
            part = part.strip()
            if part and part not in tags:
                tags.append(part)
    return tags


class IngestionPipeline:
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
        self.workflow = CollaborationWorkflow(db)

    async def ingest(self, upload: MaterialUpload) -> IngestionResult:
        if not upload.file_bytes:
            raise MissingPayloadException("file")
        if len(upload.file_bytes) > self.settings.max_upload_bytes:
            raise FileSizeLimitException(f"{self.settings.max_upload_bytes} bytes")

        uploader = self.directory.find_user_by_id(upload.user_id)
        if uploader is None:
            raise UnknownUserException(upload.user_id)

        title = (upload.title or "").strip()
        if not title:
            raise ValidationException("Material title is required", field="title")

        try:
            rule = parse_accessibility(upload.accessibility)
        except ValueError as exc:
            raise ValidationException(str(exc), field="accessibility") from exc

        account_ids, names = split_contributors(upload.contributors, uploader.id)
        known = self.directory.find_users(account_ids)
        unknown = [account_id for account_id in account_ids if account_id not in known]
        if unknown:
            raise ValidationException(
                f"Unknown contributor account(s): {', '.join(unknown)}", field="contributors"
            )

        stored = content_store.pack(upload.file_bytes)
        image = display_image(
            upload.image_bytes,
            size=self.settings.thumbnail_size,
            fallback_dir=self.settings.fallback_images_path,
        )

        with atomic(self.db, operation="material ingestion"):
            material = Material(
                title=title,
                description=upload.description,
                primary_author=uploader.id,
                contributors=names,
                content=stored.blob,
                content_hash=stored.content_hash,
                file_name=upload.file_name,
                content_type=upload.content_type or "application/pdf",
                image=image,
                material_type=upload.material_type,
                technical_type=upload.technical_type,
                target_audience=upload.target_audience,
                disciplines=clean_tags(upload.disciplines),
                author_permission=bool(upload.author_permission),
                total_reads=0,
                total_comments=0,
                average_rating=bayesian_average([]),
            )
            material.accessibility_rule = rule
            self.materials.add(material)
            collab_request, pending = self.workflow.create_request(
                material, uploader.id, account_ids
            )

        logger.info(
            "Material %s ingested (%d bytes stored, %d invitee(s))",
            material.id,
            len(stored.blob),
            len(pending),
            extra={"event": "material_ingested", "material_id": material.id},
        )

        ledger = await self._register(material.id, stored.content_hash)
        return IngestionResult(
            material=material,
            collab_request=collab_request,
            pending_requests=pending,
            ledger_status=_LEDGER_INGEST_STATUS[ledger.status],
            ledger_detail=ledger.detail if ledger.status != LedgerStatus.OK else ledger.value,
        )

    async def _register(self, material_id: str, content_hash: str) -> LedgerResult:
        if self.ledger is None:
            return LedgerResult(LedgerStatus.DISABLED)
        result = await self.ledger.register_hash(material_id, content_hash)
        if result.status in (LedgerStatus.TIMEOUT, LedgerStatus.ERROR):
            logger.warning(
                "Material %s persisted but ledger registration %s",
                material_id,
                result.status.value,
                extra={"event": "ledger_degraded", "material_id": material_id},
            )
        return result
