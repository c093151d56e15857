import pytest

from app.modules.materials.accessibility import OPEN, Open, RestrictedTo, parse_accessibility
from app.modules.materials.models import Material


@pytest.mark.parametrize(
    "raw",
    [None, "", "   ", [], {}, {"Student": False}, [None, ""]],
)
def test_empty_shapes_mean_open(raw):
    assert parse_accessibility(raw) == OPEN


@pytest.mark.parametrize(
    "raw",
    [
        ["Student", "Faculty"],
        "Student, Faculty",
        '["Student", "Faculty"]',
        '{"Student": true, "Faculty": true, "Guest": false}',
        {"Student": True, "Faculty": 1},
        ["Student,Faculty"],
    ],
)
def test_restricted_shapes_resolve_to_the_same_rule(raw):
    assert parse_accessibility(raw) == RestrictedTo(frozenset({"Student", "Faculty"}))


@pytest.mark.parametrize("raw", [42, "[not json", [["Student"]], [{"Student": True}]])
def test_unparseable_shapes_raise(raw):
    with pytest.raises(ValueError):
        parse_accessibility(raw)


def test_rule_allows():
    restricted = RestrictedTo(frozenset({"Faculty"}))

    assert Open().allows("Student")
    assert restricted.allows("Faculty")
    assert not restricted.allows("Student")


def test_material_round_trips_rule_through_storage():
    material = Material()
    material.accessibility_rule = RestrictedTo(frozenset({"Student", "Faculty"}))

    assert material.accessibility == ["Faculty", "Student"]
    assert material.accessibility_rule == RestrictedTo(frozenset({"Student", "Faculty"}))

    material.accessibility_rule = OPEN
    assert material.accessibility is None
    assert material.accessibility_rule == OPEN
