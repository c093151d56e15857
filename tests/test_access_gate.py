import uuid

import pytest

from app.core.exceptions import (
    AccessDeniedException,
    ExternalAttestationException,
    IntegrityFailureException,
    IntegrityUnknownException,
    RoleNotSetException,
)
from app.modules.ledger import LedgerStatus
from app.modules.materials.accessibility import OPEN, RestrictedTo
from app.modules.materials.models import Material
from app.modules.users.models import UserProfile
from app.services.materials.access_gate import AccessGate, AccessOutcome, evaluate_role
from tests.factories import FakeLedger

OWNER = str(uuid.uuid4())
COAUTHOR = str(uuid.uuid4())
READER = str(uuid.uuid4())


def _material(rule=OPEN, contributors=None):
    material = Material(
        id=str(uuid.uuid4()),
        title="Thermodynamics",
        primary_author=OWNER,
        contributors=contributors if contributors is not None else [COAUTHOR, "Jane Roe"],
        content_hash="ab" * 32,
    )
    material.accessibility_rule = rule
    return material


def _profile(role):
    return UserProfile(user_id=READER, role=role)


def test_owner_and_accepted_contributor_bypass_role():
    material = _material(RestrictedTo(frozenset({"Faculty"})))

    owner = evaluate_role(material, OWNER, None)
    coauthor = evaluate_role(material, COAUTHOR, _profile(""))

    assert owner.admitted and owner.by_ownership
    assert coauthor.admitted and coauthor.by_ownership


def test_free_text_contributor_name_is_not_ownership():
    material = _material(contributors=["Jane Roe"])

    decision = evaluate_role(material, "Jane Roe", None)

    assert decision.outcome == AccessOutcome.ROLE_NOT_SET


@pytest.mark.parametrize("role", [None, "", "   "])
def test_missing_role_is_role_not_set(role):
    decision = evaluate_role(_material(), READER, _profile(role))

    assert decision.outcome == AccessOutcome.ROLE_NOT_SET


def test_role_rule_decides_for_non_owners():
    material = _material(RestrictedTo(frozenset({"Faculty"})))

    assert evaluate_role(material, READER, _profile("Faculty")).admitted
    denied = evaluate_role(material, READER, _profile("Student"))
    assert denied.outcome == AccessOutcome.DENY
    assert denied.role == "Student"
    assert evaluate_role(_material(OPEN), READER, _profile("Student")).admitted


@pytest.mark.asyncio
async def test_gate_without_corroboration_never_calls_ledger():
    ledger = FakeLedger()
    gate = AccessGate(ledger, corroborate=False)

    decision = await gate.evaluate(_material(), OWNER, None)

    assert decision.admitted
    assert ledger.calls == []


@pytest.mark.asyncio
async def test_corroboration_admits_on_matching_hash():
    material = _material()
    ledger = FakeLedger()
    ledger.hashes[material.id] = material.content_hash.upper()

    decision = await AccessGate(ledger, corroborate=True).evaluate(material, OWNER, None)

    assert decision.admitted
    assert ledger.calls == [("get", material.id)]


@pytest.mark.asyncio
async def test_corroboration_mismatch_is_integrity_failure():
    material = _material()
    ledger = FakeLedger()
    ledger.hashes[material.id] = "cd" * 32

    decision = await AccessGate(ledger, corroborate=True).evaluate(material, OWNER, None)

    assert decision.outcome == AccessOutcome.INTEGRITY_FAILURE
    with pytest.raises(IntegrityFailureException):
        AccessGate.enforce(decision, material.id)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "mode, expected",
    [
        (LedgerStatus.TIMEOUT, IntegrityUnknownException),
        (LedgerStatus.ERROR, ExternalAttestationException),
    ],
)
async def test_corroboration_degraded_ledger_denies(mode, expected):
    material = _material()
    ledger = FakeLedger()
    ledger.mode = mode

    decision = await AccessGate(ledger, corroborate=True).evaluate(material, OWNER, None)

    assert decision.outcome == AccessOutcome.INTEGRITY_UNKNOWN
    assert decision.reason == mode.value
    with pytest.raises(expected) as exc_info:
        AccessGate.enforce(decision, material.id)
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_corroboration_without_ledger_is_unknown():
    decision = await AccessGate(None, corroborate=True).evaluate(_material(), OWNER, None)

    assert decision.outcome == AccessOutcome.INTEGRITY_UNKNOWN
    assert decision.reason == "disabled"


@pytest.mark.asyncio
async def test_denied_request_skips_ledger():
    ledger = FakeLedger()
    gate = AccessGate(ledger, corroborate=True)

    decision = await gate.evaluate(
        _material(RestrictedTo(frozenset({"Faculty"}))), READER, _profile("Student")
    )

    assert decision.outcome == AccessOutcome.DENY
    assert ledger.calls == []


def test_enforce_maps_outcomes_to_errors():
    material = _material(RestrictedTo(frozenset({"Faculty"})))

    with pytest.raises(RoleNotSetException):
        AccessGate.enforce(evaluate_role(material, READER, None), material.id)
    with pytest.raises(AccessDeniedException) as exc_info:
        AccessGate.enforce(evaluate_role(material, READER, _profile("Student")), material.id)
    assert exc_info.value.details == {"material_id": material.id, "role": "Student"}
    AccessGate.enforce(evaluate_role(material, OWNER, None), material.id)
