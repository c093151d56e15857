"""User directory package exports."""

from .models import User, UserProfile, is_account_id
from .service import UserDirectory

__all__ = ["User", "UserProfile", "UserDirectory", "is_account_id"]
