"""Comment and rating store for materials.

Writes keep the material counters in step: adding a comment recounts
``total_comments`` and rating recomputes ``average_rating`` as a Bayesian
average pulled towards a prior of 3 stars with the weight of 5 ratings.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from app.core.database import atomic
from app.core.exceptions import UnknownUserException
from app.modules.materials.models import MaterialComment, MaterialRating
from app.modules.materials.repository import MaterialRepository
from app.modules.materials.schemas import CommentOut
from app.modules.users.service import UserDirectory

logger = logging.getLogger(__name__)

PRIOR_MEAN = 3
PRIOR_WEIGHT = 5


def bayesian_average(
    values: Iterable[int],
    prior_mean: float = PRIOR_MEAN,
    prior_weight: int = PRIOR_WEIGHT,
) -> float:
    values = list(values)
    if not values:
        return float(prior_mean)
    return round((prior_weight * prior_mean + sum(values)) / (prior_weight + len(values)), 2)


class EngagementService:
    def __init__(self, db: Session, directory: Optional[UserDirectory] = None):
        self.db = db
        self.directory = directory or UserDirectory(db)
        self.materials = MaterialRepository(db)

    # ---- comments -------------------------------------------------------

    def add_comment(self, material_id: str, user_id: str, content: str) -> MaterialComment:
        if self.directory.find_user_by_id(user_id) is None:
            raise UnknownUserException(user_id)
        with atomic(self.db, operation="comment creation"):
            material = self.materials.get(material_id, lock=True)
            comment = MaterialComment(material_id=material.id, user_id=user_id, content=content)
            self.db.add(comment)
            self.db.flush()
            material.total_comments = (
                self.db.query(func.count(MaterialComment.id))
                .filter(MaterialComment.material_id == material.id)
                .scalar()
            )
        self.db.refresh(comment)
        return comment

    def list_comments(self, material_id: str) -> List[MaterialComment]:
        return (
            self.db.query(MaterialComment)
            .filter(MaterialComment.material_id == material_id)
            .order_by(desc(MaterialComment.created_at), desc(MaterialComment.id))
            .all()
        )

    def annotated_comments(self, material_id: str) -> List[CommentOut]:
        """Comments newest first, each with the commenter's name, image and role."""
        comments = self.list_comments(material_id)
        users = self.directory.find_users(comment.user_id for comment in comments)
        annotated = []
        for comment in comments:
            user = users.get(comment.user_id)
            profile = user.profile if user is not None else None
            annotated.append(
                CommentOut(
                    id=comment.id,
                    material_id=comment.material_id,
                    user_id=comment.user_id,
                    content=comment.content,
                    created_at=comment.created_at,
                    user_name=user.display_name if profile is not None else "Unknown User",
                    user_image=profile.image if profile is not None else None,
                    user_role=(profile.role if profile is not None and profile.has_role else "User"),
                )
            )
        return annotated

    # ---- ratings --------------------------------------------------------

    def rate(self, material_id: str, user_id: str, value: int) -> float:
        """Add or replace *user_id*'s rating and return the new average."""
        if self.directory.find_user_by_id(user_id) is None:
            raise UnknownUserException(user_id)
        with atomic(self.db, operation="rating update"):
            material = self.materials.get(material_id, lock=True)
            rating = (
                self.db.query(MaterialRating)
                .filter(
                    MaterialRating.material_id == material.id,
                    MaterialRating.user_id == user_id,
                )
                .first()
            )
            now = datetime.now(timezone.utc)
            if rating is None:
                self.db.add(
                    MaterialRating(material_id=material.id, user_id=user_id, value=value, rated_at=now)
                )
            else:
                rating.value = value
                rating.rated_at = now
            self.db.flush()
            values = [
                row.value
                for row in self.db.query(MaterialRating.value).filter(
                    MaterialRating.material_id == material.id
                )
            ]
            material.average_rating = bayesian_average(values)
            average = material.average_rating
        logger.info(
            "Material %s rated %s by %s (average=%s)",
            material_id,
            value,
            user_id,
            average,
            extra={"material_id": material_id},
        )
        return average

    def list_ratings(self, material_id: str) -> List[MaterialRating]:
        return (
            self.db.query(MaterialRating)
            .filter(MaterialRating.material_id == material_id)
            .order_by(desc(MaterialRating.rated_at), desc(MaterialRating.id))
            .all()
        )

    def user_rating(self, material_id: str, user_id: Optional[str]) -> Optional[MaterialRating]:
        if not user_id:
            return None
        return (
            self.db.query(MaterialRating)
            .filter(
                MaterialRating.material_id == material_id,
                MaterialRating.user_id == user_id,
            )
            .first()
        )


__all__ = ["EngagementService", "bayesian_average"]
