import uuid

import pytest

from app.core.exceptions import (
    FileSizeLimitException,
    MissingPayloadException,
    UnknownUserException,
    ValidationException,
)
from app.modules.collaboration.models import (
    CollaborationRequest,
    InviteeAction,
    PendingCollaboration,
    RequestStatus,
)
from app.modules.ledger import LedgerStatus
from app.modules.materials import content_store
from app.modules.materials.accessibility import RestrictedTo
from app.modules.materials.models import Material
from app.services.materials.ingestion import (
    IngestionPipeline,
    MaterialUpload,
    clean_tags,
    split_contributors,
)
from app.services.engagement import bayesian_average
from tests.factories import FakeLedger, make_user, pdf_bytes, png_bytes


def _upload(user_id, **overrides):
    fields = dict(
        user_id=user_id,
        file_bytes=pdf_bytes(),
        title="Linear Algebra Notes",
        file_name="notes.pdf",
        content_type="application/pdf",
        disciplines=["Mathematics"],
    )
    fields.update(overrides)
    return MaterialUpload(**fields)


def test_split_contributors_partitions_and_dedupes():
    uploader = str(uuid.uuid4())
    known = str(uuid.uuid4())

    account_ids, names = split_contributors(
        [known, " Jane Doe (external) ", uploader, known, "", None, "Jane Doe (external)"],
        uploader,
    )

    assert account_ids == [known]
    assert names == ["Jane Doe (external)"]


def test_split_contributors_canonicalizes_account_ids():
    uploader = str(uuid.uuid4())
    known = uuid.uuid4()

    account_ids, names = split_contributors(
        [
            str(known).upper(),
            "{" + str(known) + "}",
            known.urn,
            known.hex,
            uploader.upper(),
        ],
        uploader,
    )

    assert account_ids == [str(known)]
    assert names == []


def test_clean_tags_splits_comma_values():
    assert clean_tags(["Physics, Chemistry", "Physics", None, " "]) == ["Physics", "Chemistry"]


@pytest.mark.asyncio
async def test_ingest_invites_known_accounts_and_keeps_free_text_names(session):
    uploader = make_user(session)
    invitee = make_user(session, first_name="Grace", last_name="Hopper")
    ledger = FakeLedger()
    pipeline = IngestionPipeline(session, ledger)

    result = await pipeline.ingest(
        _upload(uploader.id, contributors=[invitee.id, "Jane Doe (external)"])
    )

    material = session.get(Material, result.material.id)
    assert material.primary_author == uploader.id
    assert material.contributors == ["Jane Doe (external)"]
    assert uploader.id not in material.contributors

    request = result.collab_request
    assert request is not None
    assert request.status == RequestStatus.PENDING
    assert [entry.author_id for entry in request.invitees] == [invitee.id]
    assert [entry.requested_to for entry in result.pending_requests] == [invitee.id]
    assert all(entry.user_action == InviteeAction.PENDING for entry in result.pending_requests)

    assert content_store.verify(material.content, material.content_hash)
    assert content_store.decompress(material.content) == pdf_bytes()
    assert result.ledger_status == "registered"
    assert ledger.hashes[material.id] == material.content_hash


@pytest.mark.asyncio
async def test_ingest_resolves_account_ids_sent_in_other_uuid_forms(session):
    uploader = make_user(session)
    invitee = make_user(session, first_name="Grace", last_name="Hopper")
    uploader_id, invitee_id = uploader.id, invitee.id

    result = await IngestionPipeline(session).ingest(
        _upload(uploader_id.upper(), contributors=[invitee_id.upper(), invitee_id])
    )

    assert result.material.primary_author == uploader_id
    assert [entry.author_id for entry in result.collab_request.invitees] == [invitee_id]
    assert [entry.requested_to for entry in result.pending_requests] == [invitee_id]


@pytest.mark.asyncio
async def test_ingest_without_known_contributors_creates_no_request(session):
    uploader = make_user(session)

    result = await IngestionPipeline(session).ingest(
        _upload(uploader.id, contributors=["Someone Offline"])
    )

    assert result.collab_request is None
    assert result.pending_requests == []
    assert result.ledger_status == "skipped"
    assert session.query(CollaborationRequest).count() == 0


@pytest.mark.asyncio
async def test_ingest_persists_when_ledger_times_out(session):
    uploader = make_user(session)
    ledger = FakeLedger()
    ledger.mode = LedgerStatus.TIMEOUT

    result = await IngestionPipeline(session, ledger).ingest(_upload(uploader.id))

    assert result.ledger_status == "timeout"
    assert session.get(Material, result.material.id) is not None


@pytest.mark.asyncio
async def test_new_material_starts_at_the_prior_average(session):
    uploader = make_user(session)

    result = await IngestionPipeline(session).ingest(_upload(uploader.id))

    material = session.get(Material, result.material.id)
    assert material.average_rating == bayesian_average([]) == 3.0
    assert material.total_reads == 0
    assert material.total_comments == 0


@pytest.mark.asyncio
async def test_ingest_stores_accessibility_and_tags(session):
    uploader = make_user(session)

    result = await IngestionPipeline(session).ingest(
        _upload(
            uploader.id,
            accessibility=["Faculty"],
            disciplines=["Physics, Mathematics"],
            author_permission=True,
        )
    )

    material = session.get(Material, result.material.id)
    assert material.accessibility_rule == RestrictedTo(frozenset({"Faculty"}))
    assert material.disciplines == ["Physics", "Mathematics"]
    assert material.author_permission is True
    assert material.total_reads == 0


@pytest.mark.asyncio
async def test_ingest_uses_fallback_image_when_none_uploaded(session):
    uploader = make_user(session)

    result = await IngestionPipeline(session).ingest(_upload(uploader.id))

    assert result.material.image is not None
    assert result.material.image.startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_ingest_survives_unreadable_image(session):
    uploader = make_user(session)

    result = await IngestionPipeline(session).ingest(
        _upload(uploader.id, image_bytes=b"not an image")
    )

    assert result.material.image is None


@pytest.mark.asyncio
async def test_ingest_normalizes_uploaded_image(session):
    uploader = make_user(session)

    result = await IngestionPipeline(session).ingest(
        _upload(uploader.id, image_bytes=png_bytes(size=(900, 200)))
    )

    assert result.material.image.startswith(b"\x89PNG")


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [None, b""])
async def test_ingest_requires_a_file(session, payload):
    uploader = make_user(session)

    with pytest.raises(MissingPayloadException):
        await IngestionPipeline(session).ingest(_upload(uploader.id, file_bytes=payload))
    assert session.query(Material).count() == 0


@pytest.mark.asyncio
async def test_ingest_rejects_oversized_files(session, monkeypatch):
    uploader = make_user(session)
    pipeline = IngestionPipeline(session)
    monkeypatch.setattr(pipeline.settings, "max_upload_bytes", 10)

    with pytest.raises(FileSizeLimitException):
        await pipeline.ingest(_upload(uploader.id, file_bytes=b"x" * 11))


@pytest.mark.asyncio
async def test_ingest_rejects_unknown_uploader(session):
    with pytest.raises(UnknownUserException):
        await IngestionPipeline(session).ingest(_upload(str(uuid.uuid4())))


@pytest.mark.asyncio
async def test_ingest_rejects_unresolvable_contributor_ids(session):
    uploader = make_user(session)

    with pytest.raises(ValidationException) as exc_info:
        await IngestionPipeline(session).ingest(
            _upload(uploader.id, contributors=[str(uuid.uuid4())])
        )

    assert exc_info.value.details["field"] == "contributors"
    assert session.query(Material).count() == 0
    assert session.query(PendingCollaboration).count() == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, field",
    [({"title": "   "}, "title"), ({"accessibility": 7}, "accessibility")],
)
async def test_ingest_validates_metadata(session, overrides, field):
    uploader = make_user(session)

    with pytest.raises(ValidationException) as exc_info:
        await IngestionPipeline(session).ingest(_upload(uploader.id, **overrides))

    assert exc_info.value.details["field"] == field
