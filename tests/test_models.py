"""Tests for chart records and their JSON form."""

import pytest
from pydantic import ValidationError

from chart_core.models import (
    ChartDocument,
    FunctionalNode,
    Geometry,
    GroupNode,
    NodeType,
    ShapeNode,
    make_node,
    parse_node,
    update_node_fields,
)


def test_make_node_defaults() -> None:
    node = make_node(NodeType.MANAGER)
    assert isinstance(node, FunctionalNode)
    assert node.id.startswith("n")
    assert node.name == "New Role"
    assert make_node("group").name == "New Area"
    assert make_node("note").name == "New Note"


def test_discriminated_parse_accepts_camel_case() -> None:
    node = parse_node({"id": "s", "type": "shape", "shapeType": "star", "fontSize": 20})
    assert isinstance(node, ShapeNode)
    assert node.shape_type.value == "star"
    assert node.font_size == 20


def test_unknown_type_rejected() -> None:
    with pytest.raises(ValidationError):
        parse_node({"id": "x", "type": "robot"})


def test_records_are_frozen() -> None:
    node = make_node("employee")
    with pytest.raises(ValidationError):
        node.name = "changed"


def test_null_department_and_children() -> None:
    node = parse_node({"id": "a", "type": "employee", "department": None, "children": None})
    assert node.department == ""
    assert node.children == ()


def test_update_node_fields_can_change_variant() -> None:
    node = make_node("employee", node_id="a", name="Ada")
    group = update_node_fields(node, {"type": "group", "avatarIcon": "x"})
    assert isinstance(group, GroupNode)
    assert group.id == "a" and group.name == "Ada"

    renamed = update_node_fields(node, {"name": "Grace", "bogus": 1})
    assert renamed.name == "Grace"


def test_json_uses_camel_case() -> None:
    data = make_node("employee", node_id="a", avatar_icon="🧑").to_json_dict()
    assert data["avatarIcon"] == "🧑"
    assert data["avatarImage"] is None
    assert Geometry(x=1, y=2).to_json_dict() == {"x": 1, "y": 2}


def test_document_fills_missing_record_ids() -> None:
    doc = ChartDocument.from_json_dict({
        "nodes": [["a", {"type": "employee", "name": "A"}]],
        "positions": [["a", {"x": 0, "y": 0}]],
    })
    assert doc.nodes[0][1].id == "a"
    assert doc.drawings == []
    assert doc.to_json_dict()["nodes"][0][0] == "a"
