"""Tests for the tree auto-layout."""

from chart_core.layout import (
    LayoutConfig,
    auto_layout,
    capture_anchors,
    sort_children_by_department,
)
from chart_core.models import make_node

from conftest import geo, person


def _department_chart():
    nodes = {
        "A": person("A", children=["D", "B", "C"], node_type="executive"),
        "B": person("B", department="X"),
        "C": person("C", department="X"),
        "D": person("D", department="Y"),
        "gx": make_node("group", node_id="gx", name="X"),
    }
    geometries = {
        "A": geo(0, 0),
        "B": geo(10, 10),
        "C": geo(20, 20),
        "D": geo(30, 30),
        "gx": geo(5000, 5000, 300, 300),
    }
    return nodes, geometries


def test_children_sorted_by_department() -> None:
    nodes, _ = _department_chart()
    assert sort_children_by_department(nodes)["A"].children == ("B", "C", "D")


def test_department_blocks_and_margins() -> None:
    nodes, geometries = _department_chart()
    result = auto_layout(nodes, geometries)
    g = result.geometries

    # Same department: one card slot plus the small node margin apart
    assert g["C"].x - g["B"].x == 250 + 80
    # Different departments: padding on both sides plus the wide margin
    assert g["D"].x - g["C"].x == 250 + 150 + 800 + 150
    assert g["B"].y == g["C"].y == g["D"].y == 450
    assert g["A"].y == 50

    # Parent centered over its subtree (2230 wide)
    assert g["A"].x + 104 == 2230 / 2


def test_group_fits_its_members() -> None:
    nodes, geometries = _department_chart()
    g = auto_layout(nodes, geometries).geometries
    left = g["B"].x - 100
    right = g["C"].x + 208 + 100
    assert g["gx"].x == left
    assert g["gx"].width == right - left
    assert g["gx"].y == g["B"].y - 100
    assert g["gx"].height == 100 + 100 + 140


def test_keys_preserved_and_non_functional_untouched() -> None:
    nodes, geometries = _department_chart()
    nodes["n"] = make_node("note", node_id="n")
    geometries["n"] = geo(-900, -900, 200, 200)
    nodes["orphan"] = person("orphan", children=["orphan2"])
    nodes["orphan2"] = person("orphan2", children=["orphan"])
    geometries["orphan"] = geo(1, 2)
    geometries["orphan2"] = geo(3, 4)

    result = auto_layout(nodes, geometries)
    assert set(result.geometries) == set(nodes)
    assert result.geometries["n"] == geometries["n"]
    # A cycle with no root is never placed and keeps its geometry
    assert result.geometries["orphan"] == geometries["orphan"]


def test_separate_roots_do_not_overlap() -> None:
    nodes = {"r1": person("r1"), "r2": person("r2")}
    geometries = {"r1": geo(0, 0), "r2": geo(0, 0)}
    g = auto_layout(nodes, geometries).geometries
    assert g["r2"].x - g["r1"].x == 250 + 800 + 200


def test_anchored_text_follows_group() -> None:
    nodes, geometries = _department_chart()
    nodes["t"] = make_node("text", node_id="t")
    geometries["t"] = geo(5010, 5020, 150, 50)
    assert capture_anchors(nodes, geometries)["t"].group_id == "gx"

    g = auto_layout(nodes, geometries).geometries
    assert g["t"].x - g["gx"].x == 10
    assert g["t"].y - g["gx"].y == 20


def test_layout_is_deterministic_and_pure() -> None:
    nodes, geometries = _department_chart()
    before = dict(geometries)
    first = auto_layout(nodes, geometries)
    second = auto_layout(nodes, geometries)
    assert first.geometries == second.geometries
    assert geometries == before


def test_custom_config() -> None:
    nodes, geometries = _department_chart()
    g = auto_layout(nodes, geometries, LayoutConfig(node_margin=0, level_height=100)).geometries
    assert g["C"].x - g["B"].x == 250
    assert g["B"].y == 150
