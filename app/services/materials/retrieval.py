"""Material read pipeline: gate, verify, decompress, then assemble the page data."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import IntegrityFailureException, UnknownUserException
from app.modules.materials import content_store
from app.modules.materials.documents import extract_stats
from app.modules.materials.models import Material
from app.modules.materials.repository import MaterialRepository
from app.modules.materials.schemas import (
    AuthorOut,
    MaterialDetails,
    MaterialDocument,
    MaterialOut,
    RatingOut,
    SimilarMaterial,
    UserRating,
)
from app.modules.users.models import User
from app.modules.users.service import UserDirectory
from app.services.engagement.service import EngagementService
from app.services.materials.access_gate import AccessGate

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"
NOT_REGISTERED = "Not registered"


@dataclass(frozen=True)
class OpenedMaterial:
    material: Material
    data: bytes
    requester: User


def combined_authors(material: Material, users: dict) -> List[AuthorOut]:
    """Primary author, then known-account contributors, then free-text names."""

    def account(user_id: str) -> Optional[AuthorOut]:
        user = users.get(user_id)
        if user is None:
            return None
        profile = user.profile
        return AuthorOut(
            user_id=user.id,
            name=user.display_name,
            image=profile.image if profile is not None else None,
            primary_institution=(
                profile.primary_institution
                if profile is not None and profile.primary_institution
                else NOT_SPECIFIED
            ),
        )

    authors: List[AuthorOut] = []
    free_text: List[str] = []
    if material.primary_author_is_account:
        primary = account(material.primary_author)
        if primary is not None:
            authors.append(primary)
    else:
        free_text.append(material.primary_author)

    for contributor_id in material.contributor_account_ids:
        author = account(contributor_id)
        if author is not None:
            authors.append(author)

    free_text.extend(material.contributor_names)
    authors.extend(
        AuthorOut(name=name, image=None, primary_institution=NOT_REGISTERED)
        for name in free_text
    )
    return authors


class RetrievalPipeline:
    def __init__(
        self,
        db: Session,
        gate: AccessGate,
        *,
        directory: Optional[UserDirectory] = None,
        engagement: Optional[EngagementService] = None,
    ):
        self.db = db
        self.gate = gate
        self.directory = directory or UserDirectory(db)
        self.materials = MaterialRepository(db)
        self.engagement = engagement or EngagementService(db, self.directory)

    async def open(self, material_id: str, requester_id: Optional[str]) -> OpenedMaterial:
        """Run the gate and integrity checks and return the decompressed bytes."""
        material = self.materials.get(material_id)
        requester = self.directory.find_user_by_id(requester_id)
        if requester is None:
            raise UnknownUserException(requester_id)

        decision = await self.gate.evaluate(material, requester.id, requester.profile)
        self.gate.enforce(decision, material.id)

        if not content_store.verify(material.content, material.content_hash):
            logger.error(
                "Stored content hash mismatch for material %s",
                material.id,
                extra={"event": "integrity_failure", "material_id": material.id},
            )
            raise IntegrityFailureException(material.id)
        data = content_store.decompress(material.content, material_id=material.id)
        return OpenedMaterial(material=material, data=data, requester=requester)

    async def retrieve(self, material_id: str, requester_id: Optional[str]) -> MaterialDetails:
        opened = await self.open(material_id, requester_id)
        material = opened.material
        stats = extract_stats(opened.data)

        users = self.directory.find_users(
            [material.primary_author, *material.contributor_account_ids]
        )
        authors = combined_authors(material, users)
        similar = [SimilarMaterial(**row) for row in self.materials.similar(material)]
        ratings = [RatingOut.model_validate(r) for r in self.engagement.list_ratings(material.id)]
        own_rating = self.engagement.user_rating(material.id, opened.requester.id)
        comments = self.engagement.annotated_comments(material.id)

        document = MaterialDocument(
            **MaterialOut.model_validate(material).model_dump(),
            material_file=base64.b64encode(opened.data).decode("ascii"),
            total_pages=stats.total_pages,
            total_words=stats.total_words,
        )
        document.total_reads = self.materials.increment_reads(material.id)
        self.materials.record_read(opened.requester.id, material.id)

        return MaterialDetails(
            material_data=document,
            combined_authors=authors,
            similar=similar,
            ratings=ratings,
            user_rating=UserRating.model_validate(own_rating) if own_rating else None,
            comments=comments,
        )

    async def download(self, material_id: str, requester_id: Optional[str]) -> OpenedMaterial:
        opened = await self.open(material_id, requester_id)
        self.materials.record_download(opened.requester.id, opened.material.id)
        return opened
