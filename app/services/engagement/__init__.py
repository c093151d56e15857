"""Engagement (comments and ratings) service exports."""

from app.services.engagement.service import EngagementService, bayesian_average

__all__ = ["EngagementService", "bayesian_average"]
