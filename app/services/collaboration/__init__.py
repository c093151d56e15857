"""Collaboration service exports."""

from app.services.collaboration.service import CollaborationWorkflow

__all__ = ["CollaborationWorkflow"]
