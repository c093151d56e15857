import uuid

import pytest

from app.core.exceptions import ResourceAlreadyExistsException, ResourceNotFoundException, UnknownUserException
from app.modules.materials import content_store
from app.modules.materials.models import Material
from app.services.engagement import EngagementService, bayesian_average
from app.services.materials import MaterialRepository
from tests.factories import make_user


def _material(session, owner):
    stored = content_store.pack(b"syllabus")
    material = Material(
        title="Syllabus",
        primary_author=owner.id,
        contributors=[],
        content=stored.blob,
        content_hash=stored.content_hash,
        disciplines=[],
    )
    session.add(material)
    session.commit()
    return material


def test_bayesian_average_pulls_towards_prior():
    assert bayesian_average([]) == 3.0
    assert bayesian_average([5]) == 3.33
    assert bayesian_average([5] * 95) == 4.9
    assert bayesian_average([1, 1], prior_mean=3, prior_weight=0) == 1.0


def test_rating_upserts_and_recomputes_average(session):
    owner = make_user(session)
    reader = make_user(session, first_name="Reader")
    material = _material(session, owner)
    service = EngagementService(session)

    assert service.rate(material.id, reader.id, 5) == 3.33
    assert service.rate(material.id, reader.id, 1) == 2.67
    assert service.rate(material.id, owner.id, 4) == 2.86

    assert len(service.list_ratings(material.id)) == 2
    assert service.user_rating(material.id, reader.id).value == 1
    assert service.user_rating(material.id, None) is None
    session.refresh(material)
    assert material.average_rating == 2.86


def test_comments_update_counter(session):
    owner = make_user(session)
    material = _material(session, owner)
    service = EngagementService(session)

    service.add_comment(material.id, owner.id, "First")
    service.add_comment(material.id, owner.id, "Second")

    session.refresh(material)
    assert material.total_comments == 2
    assert {c.content for c in service.list_comments(material.id)} == {"First", "Second"}


def test_engagement_requires_known_user_and_material(session):
    owner = make_user(session)
    material = _material(session, owner)
    service = EngagementService(session)

    with pytest.raises(UnknownUserException):
        service.add_comment(material.id, str(uuid.uuid4()), "hi")
    with pytest.raises(UnknownUserException):
        service.rate(material.id, "not-an-id", 3)
    with pytest.raises(ResourceNotFoundException):
        service.rate(str(uuid.uuid4()), owner.id, 3)


def test_reading_list_rejects_duplicates(session):
    owner = make_user(session)
    material = _material(session, owner)
    repository = MaterialRepository(session)

    entry = repository.add_to_reading_list(owner.id, material.id)
    assert entry.download_count == 0

    with pytest.raises(ResourceAlreadyExistsException):
        repository.add_to_reading_list(owner.id, material.id)
    with pytest.raises(ResourceNotFoundException):
        repository.add_to_reading_list(owner.id, str(uuid.uuid4()))
    assert [item.material_id for item in repository.reading_list(owner.id)] == [material.id]
