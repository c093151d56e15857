"""Read-only lookups over the user directory."""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy.orm import Session, joinedload

from .models import User, UserProfile, canonical_account_id


class UserDirectory:
    """Resolves account ids to users and academic profiles.

    Ids are matched in canonical UUID form, so `85EBC87D-...` finds `85ebc87d-...`.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_user_by_id(self, user_id: Optional[str]) -> Optional[User]:
        account_id = canonical_account_id(user_id)
        if account_id is None:
            return None
        return self.db.query(User).filter(User.id == account_id).first()

    def find_profile_by_user_id(self, user_id: Optional[str]) -> Optional[UserProfile]:
        account_id = canonical_account_id(user_id)
        if account_id is None:
            return None
        return (
            self.db.query(UserProfile)
            .options(joinedload(UserProfile.user))
            .filter(UserProfile.user_id == account_id)
            .first()
        )

    def find_users(self, user_ids: Iterable[str]) -> dict[str, User]:
        """Map each existing id in *user_ids* (canonical form) to its User, profile eagerly loaded."""
        ids = {canonical_account_id(user_id) for user_id in user_ids} - {None}
        if not ids:
            return {}
        users = (
            self.db.query(User)
            .options(joinedload(User.profile))
            .filter(User.id.in_(ids))
            .all()
        )
        return {user.id: user for user in users}
