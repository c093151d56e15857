"""Shared FastAPI dependencies for process-wide service handles."""

from fastapi import Request

from app.core.config import settings
from app.modules.ledger import LedgerClient, build_ledger_client


def get_ledger(request: Request) -> LedgerClient:
    """Return the ledger client built during application startup."""
    ledger = getattr(request.app.state, "ledger", None)
    if ledger is None:
        # Apps created without running the lifespan (e.g. bare TestClient calls).
        ledger = build_ledger_client(settings)
        request.app.state.ledger = ledger
    return ledger
