"""Material endpoints: upload, gated read and download, update, delete, reading list.

Identity comes from the external auth service; callers pass the acting user id
explicitly (`user_id` / `requester_id`).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_ledger
from app.core.config import settings
from app.core.database import get_db
from app.core.middleware.rate_limit import UPLOAD_LIMIT, limiter
from app.modules.collaboration.schemas import CollaborationRequestOut, PendingCollaborationOut
from app.modules.ledger import LedgerClient
from app.modules.materials.schemas import (
    LedgerOutcome,
    MaterialDeleted,
    MaterialDetails,
    MaterialIngested,
    MaterialOut,
    MaterialUpdated,
    ReadingListEntryOut,
)
from app.services.materials import (
    AccessGate,
    IngestionPipeline,
    MaterialManagementService,
    MaterialRepository,
    MaterialUpdate,
    MaterialUpload,
    RetrievalPipeline,
)

router = APIRouter(tags=["Materials"])


def get_ingestion_pipeline(
    db: Session = Depends(get_db), ledger: LedgerClient = Depends(get_ledger)
) -> IngestionPipeline:
    return IngestionPipeline(db, ledger)


def get_retrieval_pipeline(
    db: Session = Depends(get_db), ledger: LedgerClient = Depends(get_ledger)
) -> RetrievalPipeline:
    gate = AccessGate(ledger, corroborate=settings.ledger_corroboration)
    return RetrievalPipeline(db, gate)


def get_management_service(
    db: Session = Depends(get_db), ledger: LedgerClient = Depends(get_ledger)
) -> MaterialManagementService:
    return MaterialManagementService(db, ledger)


def get_material_repository(db: Session = Depends(get_db)) -> MaterialRepository:
    return MaterialRepository(db)


async def _read_upload(upload: Optional[UploadFile]) -> Optional[bytes]:
    if upload is None:
        return None
    data = await upload.read()
    return data or None


@router.post(
    "/materials", status_code=status.HTTP_201_CREATED, response_model=MaterialIngested
)
@limiter.limit(UPLOAD_LIMIT)
async def upload_material(
    request: Request,
    user_id: str = Form(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    material_type: Optional[str] = Form(None),
    technical_type: Optional[str] = Form(None),
    target_audience: Optional[str] = Form(None),
    disciplines: List[str] = Form([]),
    accessibility: Optional[List[str]] = Form(None),
    author_permission: bool = Form(False),
    contributors: List[str] = Form([]),
    file: Optional[UploadFile] = File(None),
    image: Optional[UploadFile] = File(None),
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
):
    """
    Upload a material.

    The file is gzip-compressed and hashed before storage. Contributors that are
    account ids receive a collaboration request; anything else is kept as a
    free-text co-author name. The response reports the ledger registration
    status separately from the (already committed) material.
    """
    upload = MaterialUpload(
        user_id=user_id,
        file_bytes=await _read_upload(file),
        file_name=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
        image_bytes=await _read_upload(image),
        title=title,
        description=description,
        material_type=material_type,
        technical_type=technical_type,
        target_audience=target_audience,
        disciplines=disciplines,
        accessibility=accessibility,
        author_permission=author_permission,
        contributors=contributors,
    )
    result = await pipeline.ingest(upload)
    return MaterialIngested(
        material=MaterialOut.model_validate(result.material),
        collab_request=(
            CollaborationRequestOut.model_validate(result.collab_request)
            if result.collab_request is not None
            else None
        ),
        pending_requests=[
            PendingCollaborationOut.model_validate(entry) for entry in result.pending_requests
        ],
        ledger=LedgerOutcome(status=result.ledger_status, detail=result.ledger_detail),
    )


@router.get("/materials/{material_id}", response_model=MaterialDetails)
async def get_material(
    material_id: str,
    requester_id: str = Query(...),
    pipeline: RetrievalPipeline = Depends(get_retrieval_pipeline),
):
    """Open a material: access gate, integrity check, then the full page data."""
    return await pipeline.retrieve(material_id, requester_id)


@router.get("/materials/{material_id}/download")
async def download_material(
    material_id: str,
    requester_id: str = Query(...),
    pipeline: RetrievalPipeline = Depends(get_retrieval_pipeline),
):
    opened = await pipeline.download(material_id, requester_id)
    material = opened.material
    filename = material.file_name or f"{material.title}.pdf"
    return Response(
        content=opened.data,
        media_type=material.content_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/materials/{material_id}", response_model=MaterialUpdated)
async def update_material(
    material_id: str,
    user_id: str = Form(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    material_type: Optional[str] = Form(None),
    technical_type: Optional[str] = Form(None),
    target_audience: Optional[str] = Form(None),
    disciplines: Optional[List[str]] = Form(None),
    accessibility: Optional[List[str]] = Form(None),
    author_permission: Optional[bool] = Form(None),
    contributors: Optional[List[str]] = Form(None),
    file: Optional[UploadFile] = File(None),
    image: Optional[UploadFile] = File(None),
    service: MaterialManagementService = Depends(get_management_service),
):
    changes = MaterialUpdate(
        user_id=user_id,
        title=title,
        description=description,
        material_type=material_type,
        technical_type=technical_type,
        target_audience=target_audience,
        disciplines=disciplines,
        accessibility=accessibility,
        author_permission=author_permission,
        contributors=contributors,
        file_bytes=await _read_upload(file),
        file_name=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
        image_bytes=await _read_upload(image),
    )
    result = await service.update(material_id, changes)
    return MaterialUpdated(
        material=MaterialOut.model_validate(result.material),
        file_replaced=result.file_replaced,
        ledger=LedgerOutcome(status=result.ledger.status.value, detail=result.ledger.detail),
    )


@router.delete("/materials/{material_id}", response_model=MaterialDeleted)
async def delete_material(
    material_id: str,
    service: MaterialManagementService = Depends(get_management_service),
):
    ledger = await service.delete(material_id)
    return MaterialDeleted(
        message="Material deleted successfully.",
        ledger=LedgerOutcome(status=ledger.status.value, detail=ledger.detail),
    )


@router.post(
    "/materials/{material_id}/reading-list",
    status_code=status.HTTP_201_CREATED,
    response_model=ReadingListEntryOut,
)
def add_to_reading_list(
    material_id: str,
    user_id: str = Query(...),
    repository: MaterialRepository = Depends(get_material_repository),
):
    return repository.add_to_reading_list(user_id, material_id)


@router.get("/users/{user_id}/reading-list", response_model=List[ReadingListEntryOut])
def get_reading_list(
    user_id: str,
    repository: MaterialRepository = Depends(get_material_repository),
):
    return repository.reading_list(user_id)
