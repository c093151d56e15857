"""Pydantic response/request models for materials and their engagement rows."""

import base64
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.modules.collaboration.schemas import CollaborationRequestOut, PendingCollaborationOut


def _encode_binary(value):
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value


class MaterialOut(BaseModel):
    """Material metadata; never carries the stored file bytes."""

    id: str
    title: str
    description: Optional[str] = None
    primary_author: str
    contributors: List[str] = []
    content_hash: str
    file_name: Optional[str] = None
    content_type: str
    image: Optional[str] = None
    material_type: Optional[str] = None
    technical_type: Optional[str] = None
    target_audience: Optional[str] = None
    disciplines: List[str] = []
    accessibility: Optional[List[str]] = None
    author_permission: bool = False
    date_uploaded: Optional[datetime] = None
    total_reads: int = 0
    total_comments: int = 0
    average_rating: float = 3.0

    model_config = ConfigDict(from_attributes=True)

    encode_image = field_validator("image", mode="before")(_encode_binary)

    @field_validator("contributors", "disciplines", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value or []


class MaterialDocument(MaterialOut):
    """Material metadata plus the decompressed file and its derived statistics."""

    material_file: str
    total_pages: Optional[int] = None
    total_words: int = 0


class SimilarMaterial(BaseModel):
    id: str
    title: str

    model_config = ConfigDict(from_attributes=True)


class AuthorOut(BaseModel):
    user_id: Optional[str] = None
    name: str
    image: Optional[str] = None
    primary_institution: str

    encode_image = field_validator("image", mode="before")(_encode_binary)


class RatingCreate(BaseModel):
    user_id: str
    value: int = Field(ge=1, le=5)


class RatingOut(BaseModel):
    id: int
    material_id: str
    user_id: str
    value: int
    rated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserRating(BaseModel):
    value: int
    rated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CommentCreate(BaseModel):
    user_id: str
    content: str = Field(min_length=1, max_length=5000)


class CommentOut(BaseModel):
    id: int
    material_id: str
    user_id: str
    content: str
    created_at: Optional[datetime] = None
    user_name: str = "Unknown User"
    user_image: Optional[str] = None
    user_role: str = "User"

    model_config = ConfigDict(from_attributes=True)

    encode_image = field_validator("user_image", mode="before")(_encode_binary)


class MaterialDetails(BaseModel):
    material_data: MaterialDocument
    combined_authors: List[AuthorOut]
    similar: List[SimilarMaterial]
    ratings: List[RatingOut]
    user_rating: Optional[UserRating] = None
    comments: List[CommentOut]


class LedgerOutcome(BaseModel):
    status: str
    detail: Optional[str] = None


class ReadingListEntryOut(BaseModel):
    id: int
    user_id: str
    material_id: str
    added_at: Optional[datetime] = None
    read_count: int
    download_count: int

    model_config = ConfigDict(from_attributes=True)


class MaterialDeleted(BaseModel):
    message: str
    ledger: LedgerOutcome


class MaterialIngested(BaseModel):
    material: MaterialOut
    collab_request: Optional[CollaborationRequestOut] = None
    pending_requests: List[PendingCollaborationOut] = []
    ledger: LedgerOutcome


class MaterialUpdated(BaseModel):
    material: MaterialOut
    file_replaced: bool
    ledger: LedgerOutcome
