"""Access gate for material files.

Ownership (primary author or accepted known-account contributor) admits
unconditionally; otherwise the requester needs a role and the material's
accessibility rule decides. When ledger corroboration is on, an admitted request
is additionally checked against the hash the ledger attests.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from app.core.exceptions import (
    AccessDeniedException,
    ExternalAttestationException,
    IntegrityFailureException,
    IntegrityUnknownException,
    RoleNotSetException,
)
from app.modules.ledger import LedgerClient, LedgerStatus
from app.modules.materials.models import Material
from app.modules.users.models import UserProfile

logger = logging.getLogger(__name__)


class AccessOutcome(str, enum.Enum):
    ADMIT = "admit"
    DENY = "deny"
    ROLE_NOT_SET = "role_not_set"
    INTEGRITY_FAILURE = "integrity_failure"
    INTEGRITY_UNKNOWN = "integrity_unknown"


@dataclass(frozen=True)
class AccessDecision:
    outcome: AccessOutcome
    reason: Optional[str] = None
    by_ownership: bool = False
    role: Optional[str] = None

    @property
    def admitted(self) -> bool:
        return self.outcome == AccessOutcome.ADMIT


def evaluate_role(
    material: Material, requester_id: Optional[str], profile: Optional[UserProfile]
) -> AccessDecision:
    """Role and ownership check alone, without the ledger."""
    if requester_id and material.is_owned_by(requester_id):
        return AccessDecision(AccessOutcome.ADMIT, reason="owner", by_ownership=True)

    role = profile.role.strip() if profile is not None and profile.has_role else None
    if role is None:
        return AccessDecision(AccessOutcome.ROLE_NOT_SET, reason="role_not_set")

    if material.accessibility_rule.allows(role):
        return AccessDecision(AccessOutcome.ADMIT, reason="role_allowed", role=role)
    return AccessDecision(AccessOutcome.DENY, reason="role_not_allowed", role=role)


class AccessGate:
    def __init__(self, ledger: Optional[LedgerClient] = None, *, corroborate: bool = False):
        self.ledger = ledger
        self.corroborate = corroborate

    async def evaluate(
        self,
        material: Material,
        requester_id: Optional[str],
        profile: Optional[UserProfile],
    ) -> AccessDecision:
        decision = evaluate_role(material, requester_id, profile)
        if not decision.admitted or not self.corroborate:
            return decision
        return await self._corroborate(material, decision)

    async def _corroborate(self, material: Material, decision: AccessDecision) -> AccessDecision:
        if self.ledger is None:
            return AccessDecision(
                AccessOutcome.INTEGRITY_UNKNOWN,
                reason=LedgerStatus.DISABLED.value,
                by_ownership=decision.by_ownership,
                role=decision.role,
            )
        result = await self.ledger.get_hash(material.id)
        if not result.ok:
            return AccessDecision(
                AccessOutcome.INTEGRITY_UNKNOWN,
                reason=result.status.value,
                by_ownership=decision.by_ownership,
                role=decision.role,
            )
        if (result.value or "").lower() != (material.content_hash or "").lower():
            return AccessDecision(
                AccessOutcome.INTEGRITY_FAILURE,
                reason="ledger_hash_mismatch",
                by_ownership=decision.by_ownership,
                role=decision.role,
            )
        return decision

    @staticmethod
    def enforce(decision: AccessDecision, material_id: Optional[str] = None) -> None:
        """Raise the matching application error unless the decision admits."""
        if decision.admitted:
            return
        if decision.outcome == AccessOutcome.ROLE_NOT_SET:
            raise RoleNotSetException()
        if decision.outcome == AccessOutcome.DENY:
            raise AccessDeniedException(material_id, decision.role)
        if decision.outcome == AccessOutcome.INTEGRITY_FAILURE:
            logger.error(
                "Ledger hash mismatch for material %s",
                material_id,
                extra={"event": "integrity_failure", "material_id": material_id},
            )
            raise IntegrityFailureException(material_id, reason=decision.reason)
        if decision.reason == LedgerStatus.ERROR.value:
            raise ExternalAttestationException(
                "The integrity ledger could not be reached. Please try again later."
            )
        raise IntegrityUnknownException(material_id, reason=decision.reason)
