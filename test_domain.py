"""Tests for domain entities and dependency graph validation."""

import pytest

from domain import (
    Example,
    SegmentCategory,
    SourceInfo,
    Spec,
    format_req_id,
    req_id_sort_key,
    validate_depends_graph,
)
from shared.exceptions import SpecValidationError


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("functional_requirement", SegmentCategory.FUNCTIONAL_REQUIREMENT),
        (" Non_Functional_Requirement ", SegmentCategory.NON_FUNCTIONAL_REQUIREMENT),
        ("overview", SegmentCategory.OVERVIEW),
        ("glossary", SegmentCategory.OTHER),
        ("", SegmentCategory.OTHER),
        (None, SegmentCategory.OTHER),
    ],
)
def test_category_normalize(raw, expected):
    assert SegmentCategory.normalize(raw) is expected


def test_example_targets():
    targets = {c for c in SegmentCategory if c.is_example_target}
    assert targets == {SegmentCategory.FUNCTIONAL_REQUIREMENT, SegmentCategory.NON_FUNCTIONAL_REQUIREMENT}


def test_example_validity_requires_all_fields():
    assert Example("a", "b", "c").is_valid()
    assert not Example("a", "  ", "c").is_valid()


def test_spec_validate_rules():
    Spec(id="REQ-001", title="Login").validate()
    Spec(id="REQ-1000", title="Four digits allowed").validate()

    invalid = [
        Spec(id="", title="x"),
        Spec(id="REQ-01", title="x"),
        Spec(id="REQ-001", title="   "),
        Spec(id="REQ-001", title="x", examples=[Example("a", "", "c")]),
        Spec(id="REQ-001", title="x", depends=["bad"]),
        Spec(id="REQ-001", title="x", depends=["REQ-001"]),
        Spec(id="REQ-001", title="x", depends=["REQ-002", "REQ-002"]),
    ]
    for spec in invalid:
        with pytest.raises(SpecValidationError):
            spec.validate()


def test_spec_to_dict_omits_empty_fields():
    spec = Spec(id="REQ-001", title="Login")
    assert spec.to_dict() == {"id": "REQ-001", "title": "Login"}

    spec.source = SourceInfo(segment_id="seg-0001", heading_path=["A", "B"])
    spec.examples = [Example("a", "b", "c", id="E1")]
    data = spec.to_dict()
    assert data["source"] == {"segment_id": "seg-0001", "heading_path": ["A", "B"]}
    assert data["examples"] == [{"id": "E1", "given": "a", "when": "b", "then": "c"}]
    assert Spec.from_dict(data).to_dict() == data


def test_normalize_fills_missing_example_ids():
    spec = Spec(
        id="REQ-001",
        title="x",
        examples=[Example("a", "b", "c", id="E2"), Example("d", "e", "f")],
    )
    spec.normalize()
    assert [e.id for e in spec.examples] == ["E2", "E3"]


def test_req_id_helpers():
    assert format_req_id(7) == "REQ-007"
    assert format_req_id(1234) == "REQ-1234"
    assert sorted(["REQ-010", "REQ-002", "other", "REQ-1000"], key=req_id_sort_key) == [
        "REQ-002",
        "REQ-010",
        "REQ-1000",
        "other",
    ]


def test_depends_graph_ok():
    specs = [
        Spec(id="REQ-001", title="a"),
        Spec(id="REQ-002", title="b", depends=["REQ-001"]),
        Spec(id="REQ-003", title="c", depends=["REQ-001", "REQ-002"]),
    ]
    validate_depends_graph(specs)


def test_depends_graph_missing_target():
    specs = [Spec(id="REQ-001", title="a", depends=["REQ-009"])]
    with pytest.raises(SpecValidationError, match="REQ-009 which does not exist"):
        validate_depends_graph(specs)


def test_depends_graph_cycle_path():
    specs = [
        Spec(id="REQ-001", title="a", depends=["REQ-002"]),
        Spec(id="REQ-002", title="b", depends=["REQ-001"]),
    ]
    with pytest.raises(SpecValidationError, match="REQ-001 -> REQ-002 -> REQ-001"):
        validate_depends_graph(specs)
