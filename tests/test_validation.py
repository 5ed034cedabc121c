"""Tests for chart validation and import payload checks."""

import pytest

from chart_core.errors import ImportValidationError
from chart_core.models import make_node
from chart_core.validation import (
    IssueSeverity,
    check_import_payload,
    validate_chart,
    validation_summary,
)

from conftest import geo, person


def _messages(issues, severity):
    return [i.message for i in issues if i.severity == severity]


def test_empty_chart_is_info() -> None:
    issues = validate_chart({}, {})
    assert [i.severity for i in issues] == [IssueSeverity.INFO]
    assert validation_summary(issues)["valid"]


def test_valid_chart() -> None:
    nodes = {
        "g": make_node("group", node_id="g", name="Sales"),
        "a": person("a", department="Sales", children=["b"]),
        "b": person("b"),
    }
    geometries = {k: geo(0, 0) for k in nodes}
    assert validate_chart(nodes, geometries) == []


def test_structural_errors() -> None:
    nodes = {
        "a": person("a", children=["b", "ghost"]),
        "b": person("b", children=["a"]),
        "c": person("c", children=["b"]),
    }
    geometries = {"a": geo(0, 0), "b": geo(0, 0)}
    errors = _messages(validate_chart(nodes, geometries), IssueSeverity.ERROR)
    assert "Node has no geometry" in errors
    assert "Child references non-existent node: ghost" in errors
    assert any(m.startswith("Node has multiple parents") for m in errors)
    assert errors.count("Node is part of a cycle") == 2
    assert not validation_summary(validate_chart(nodes, geometries))["valid"]


def test_unknown_department_is_warning() -> None:
    nodes = {"a": person("a", department="Nowhere")}
    issues = validate_chart(nodes, {"a": geo(0, 0)})
    assert _messages(issues, IssueSeverity.WARNING) == ["Department 'Nowhere' matches no group"]


@pytest.mark.parametrize("payload", [
    [],
    {"nodes": []},
    {"nodes": {}, "positions": []},
    {"nodes": [["a"]], "positions": [["a", {}]]},
    {"nodes": [["a", {}], ["a", {}]], "positions": [["a", {}]]},
    {"nodes": [["a", {}]], "positions": [["b", {}]]},
    {"nodes": [], "positions": [], "drawings": "nope"},
])
def test_import_payload_rejected(payload) -> None:
    with pytest.raises(ImportValidationError):
        check_import_payload(payload)


def test_import_payload_accepted() -> None:
    check_import_payload({"nodes": [["a", {"type": "employee"}]], "positions": [["a", {"x": 1, "y": 2}]]})
    check_import_payload({"nodes": [], "positions": []})
