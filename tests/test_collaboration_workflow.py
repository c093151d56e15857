import pytest
from sqlalchemy.orm import Session

from app.core.exceptions import (
    CollaborationRequestNotFoundException,
    InvalidTransitionException,
    InviteeNotFoundException,
    PendingEntryNotFoundException,
    ResourceConflictException,
)
from app.modules.collaboration.models import (
    Collaboration,
    InviteeAction,
    PendingCollaboration,
    RequestStatus,
    derive_request_status,
)
from app.modules.materials import content_store
from app.modules.materials.models import Material
from app.services.collaboration import CollaborationWorkflow
from tests.factories import make_user


def _material_with_invites(session, owner, invitee_ids, contributors=None):
    stored = content_store.pack(b"draft chapter")
    material = Material(
        title="Shared Chapter",
        primary_author=owner.id,
        contributors=contributors or [],
        content=stored.blob,
        content_hash=stored.content_hash,
        disciplines=[],
    )
    session.add(material)
    session.flush()
    request, _ = CollaborationWorkflow(session).create_request(material, owner.id, invitee_ids)
    session.commit()
    return material, request


@pytest.fixture
def authors(session):
    owner = make_user(session, first_name="Owner")
    a = make_user(session, first_name="Alice")
    b = make_user(session, first_name="Bob")
    return owner, a, b


@pytest.mark.parametrize(
    "actions, expected",
    [
        ([], RequestStatus.PENDING),
        ([InviteeAction.PENDING, InviteeAction.PENDING], RequestStatus.PENDING),
        ([InviteeAction.ACCEPTED, InviteeAction.PENDING], RequestStatus.PENDING),
        ([InviteeAction.ACCEPTED, InviteeAction.ACCEPTED], RequestStatus.ACCEPTED),
        ([InviteeAction.ACCEPTED, InviteeAction.REJECTED], RequestStatus.REJECTED),
        ([InviteeAction.PENDING, InviteeAction.REJECTED], RequestStatus.REJECTED),
    ],
)
def test_derive_request_status(actions, expected):
    assert derive_request_status(actions) == expected


def test_create_request_skips_owner_and_duplicates(session, authors):
    owner, a, b = authors

    _, request = _material_with_invites(session, owner, [a.id, owner.id, a.id, b.id])

    assert [entry.author_id for entry in request.invitees] == [a.id, b.id]
    assert [entry.position for entry in request.invitees] == [0, 1]
    assert {entry.requested_to for entry in request.pending_entries} == {a.id, b.id}


def test_accept_all_invitees_accepts_request(session, authors):
    owner, a, b = authors
    material, request = _material_with_invites(session, owner, [a.id, b.id], ["Jane Doe"])
    workflow = CollaborationWorkflow(session)

    first = workflow.accept(request.id, a.id)
    assert first.status == RequestStatus.PENDING
    assert first.contributors == ["Jane Doe", a.id]

    second = workflow.accept(request.id, b.id)
    assert second.status == RequestStatus.ACCEPTED
    assert second.contributors == ["Jane Doe", a.id, b.id]

    roster = session.query(Collaboration).filter_by(material_id=material.id).one()
    assert [member.author_id for member in roster.members] == [a.id, b.id]
    pending = session.query(PendingCollaboration).filter_by(request_id=request.id).all()
    assert {entry.user_action for entry in pending} == {InviteeAction.ACCEPTED}


def test_accept_then_reject_rejects_request(session, authors):
    owner, a, b = authors
    material, request = _material_with_invites(session, owner, [a.id, b.id])
    workflow = CollaborationWorkflow(session)

    workflow.accept(request.id, a.id)
    result = workflow.reject(request.id, b.id)

    assert result.status == RequestStatus.REJECTED
    assert result.action == InviteeAction.REJECTED
    session.refresh(material)
    assert material.contributors == [a.id]


def test_reject_first_is_rejected_even_after_later_accept(session, authors):
    owner, a, b = authors
    _, request = _material_with_invites(session, owner, [a.id, b.id])
    workflow = CollaborationWorkflow(session)

    workflow.reject(request.id, a.id)
    result = workflow.accept(request.id, b.id)

    assert result.status == RequestStatus.REJECTED


def test_accept_twice_does_not_duplicate_contributor(session, authors):
    owner, a, _ = authors
    material, request = _material_with_invites(session, owner, [a.id])
    workflow = CollaborationWorkflow(session)

    workflow.accept(request.id, a.id)
    again = workflow.accept(request.id, a.id)

    assert again.contributors == [a.id]
    roster = session.query(Collaboration).filter_by(material_id=material.id).one()
    assert len(roster.members) == 1
    session.refresh(material)
    assert material.contributors.count(a.id) == 1


def test_accept_matches_author_id_in_any_uuid_form(session, authors):
    owner, a, _ = authors
    _, request = _material_with_invites(session, owner, [a.id])

    result = CollaborationWorkflow(session).accept(request.id, a.id.upper())

    assert result.author_id == a.id
    assert result.contributors == [a.id]


def test_concurrent_accepts_from_two_sessions_add_the_author_once(session, authors, monkeypatch):
    if session.get_bind().dialect.name != "sqlite":
        pytest.skip("interleaving relies on SQLite ignoring FOR UPDATE")
    owner, a, _ = authors
    material, request = _material_with_invites(session, owner, [a.id])
    request_id, material_id, author_id = request.id, material.id, a.id

    other = Session(bind=session.get_bind(), autoflush=False)
    first = CollaborationWorkflow(session)
    second = CollaborationWorkflow(other)
    load = second._load_transition

    def load_then_let_first_session_commit(*args):
        # The second session holds the still-pending invitee when the first commits.
        loaded = load(*args)
        first.accept(request_id, author_id)
        return loaded

    monkeypatch.setattr(second, "_load_transition", load_then_let_first_session_commit)
    try:
        try:
            outcome = second.accept(request_id, author_id)
        except ResourceConflictException as exc:
            assert exc.status_code == 409
        else:
            assert outcome.contributors == [author_id]
    finally:
        other.close()

    session.expire_all()
    roster = session.query(Collaboration).filter_by(material_id=material_id).one()
    assert [member.author_id for member in roster.members] == [author_id]
    assert session.get(Material, material_id).contributors == [author_id]
    stored = CollaborationWorkflow(session).get_request(request_id)
    assert stored.status == RequestStatus.ACCEPTED
    assert [entry.action for entry in stored.invitees] == [InviteeAction.ACCEPTED]


def test_reject_twice_is_a_no_op(session, authors):
    owner, a, _ = authors
    _, request = _material_with_invites(session, owner, [a.id])
    workflow = CollaborationWorkflow(session)

    workflow.reject(request.id, a.id)
    again = workflow.reject(request.id, a.id)

    assert again.status == RequestStatus.REJECTED


def test_terminal_states_cannot_flip(session, authors):
    owner, a, b = authors
    material, request = _material_with_invites(session, owner, [a.id, b.id])
    workflow = CollaborationWorkflow(session)
    workflow.accept(request.id, a.id)
    workflow.reject(request.id, b.id)

    with pytest.raises(InvalidTransitionException):
        workflow.reject(request.id, a.id)
    with pytest.raises(InvalidTransitionException) as exc_info:
        workflow.accept(request.id, b.id)

    assert exc_info.value.status_code == 409
    session.refresh(material)
    assert material.contributors == [a.id]


def test_transition_errors_are_distinct(session, authors):
    owner, a, b = authors
    _, request = _material_with_invites(session, owner, [a.id])
    workflow = CollaborationWorkflow(session)

    with pytest.raises(CollaborationRequestNotFoundException):
        workflow.accept(request.id + 1000, a.id)
    with pytest.raises(InviteeNotFoundException):
        workflow.accept(request.id, b.id)

    session.query(PendingCollaboration).filter_by(request_id=request.id).delete()
    session.commit()
    with pytest.raises(PendingEntryNotFoundException):
        workflow.reject(request.id, a.id)


def test_pending_and_sent_lookups(session, authors):
    owner, a, b = authors
    material, request = _material_with_invites(session, owner, [a.id, b.id])
    workflow = CollaborationWorkflow(session)
    workflow.accept(request.id, a.id)

    assert workflow.pending_for_user(a.id) == []
    pending = workflow.pending_for_user(b.id)
    assert len(pending) == 1
    assert pending[0].material_id == material.id
    assert pending[0].material_title == "Shared Chapter"
    assert pending[0].requested_by == owner.id

    sent = workflow.sent_by_user(owner.id)
    assert [item.id for item in sent] == [request.id]
    assert workflow.get_request(request.id).invitee(a.id).action == InviteeAction.ACCEPTED
