"""Comment and rating endpoints for materials."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.modules.materials.schemas import (
    CommentCreate,
    CommentOut,
    RatingCreate,
    RatingOut,
)
from app.services.engagement import EngagementService

router = APIRouter(prefix="/materials", tags=["Engagement"])


def get_engagement_service(db: Session = Depends(get_db)) -> EngagementService:
    return EngagementService(db)


@router.post(
    "/{material_id}/comments",
    status_code=status.HTTP_201_CREATED,
    response_model=CommentOut,
)
def add_comment(
    material_id: str,
    payload: CommentCreate,
    service: EngagementService = Depends(get_engagement_service),
):
    comment = service.add_comment(material_id, payload.user_id, payload.content)
    return CommentOut.model_validate(comment)


@router.post("/{material_id}/ratings", status_code=status.HTTP_201_CREATED)
def rate_material(
    material_id: str,
    payload: RatingCreate,
    service: EngagementService = Depends(get_engagement_service),
):
    average = service.rate(material_id, payload.user_id, payload.value)
    return {"message": "Rating added!", "average_rating": average}


@router.get("/{material_id}/ratings", response_model=List[RatingOut])
def list_ratings(
    material_id: str,
    service: EngagementService = Depends(get_engagement_service),
):
    """Ratings newest first; 404 when the material does not exist."""
    service.materials.get(material_id)
    return service.list_ratings(material_id)
