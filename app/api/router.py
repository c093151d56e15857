"""Centralized API router registration with feature grouping.

Groups:
- Materials: upload, gated read/download, update, delete, reading list.
- Collaboration: request lookups and invitee accept/reject transitions.
- Engagement: comments and ratings.
"""

from fastapi import APIRouter

from app.routers import collaboration, engagement, materials

api_router = APIRouter()

api_router.include_router(materials.router)
api_router.include_router(collaboration.router)
api_router.include_router(engagement.router)

__all__ = ["api_router"]
