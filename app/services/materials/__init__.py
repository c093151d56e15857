"""Materials service exports."""

from app.modules.materials.repository import MaterialRepository
from app.services.materials.access_gate import AccessDecision, AccessGate, AccessOutcome
from app.services.materials.ingestion import IngestionPipeline, IngestionResult, MaterialUpload
from app.services.materials.management import MaterialManagementService, MaterialUpdate
from app.services.materials.retrieval import RetrievalPipeline

__all__ = [
    "AccessDecision",
    "AccessGate",
    "AccessOutcome",
    "IngestionPipeline",
    "IngestionResult",
    "MaterialManagementService",
    "MaterialRepository",
    "MaterialUpdate",
    "MaterialUpload",
    "RetrievalPipeline",
]
