"""Tests for copy/paste staging."""

from chart_core.clipboard import Clipboard
from chart_core.models import Drawing

from conftest import geo, person


def _chart():
    nodes = {
        "a": person("a", children=["b", "outside"]),
        "b": person("b"),
        "outside": person("outside"),
    }
    geometries = {"a": geo(100, 100), "b": geo(300, 400), "outside": geo(0, 0)}
    drawings = [Drawing(id="d1", path="M 50 200 L 60 210")]
    return nodes, geometries, drawings


def _ids():
    counter = iter(range(100))
    return lambda: f"new{next(counter)}"


def test_paste_offsets_from_top_left() -> None:
    clipboard = Clipboard()
    nodes, geometries, drawings = _chart()
    assert clipboard.copy(nodes, geometries, drawings, ["a", "b"], ["d1"]) == 3

    result = clipboard.paste(1000, 1000, node_id_factory=_ids(), drawing_id_factory=lambda: "d2")
    # Top-left of the copied items was (50, 100)
    assert result.geometries["new0"].x == 1050
    assert result.geometries["new0"].y == 1000
    assert result.geometries["new1"].x == 1250
    assert result.drawings[0].id == "d2"
    assert result.drawings[0].path == "M 1000 1100 L 1010 1110"


def test_paste_remaps_children_and_drops_outside_links() -> None:
    clipboard = Clipboard()
    nodes, geometries, drawings = _chart()
    clipboard.copy(nodes, geometries, drawings, ["a", "b"], [])
    result = clipboard.paste(0, 0, node_id_factory=_ids())
    new_a = next(n for n in result.nodes if n.name == "a")
    assert new_a.children == ("new1",)


def test_paste_twice_gives_fresh_ids() -> None:
    clipboard = Clipboard()
    nodes, geometries, drawings = _chart()
    clipboard.copy(nodes, geometries, drawings, ["b"], [])
    first = clipboard.paste(0, 0)
    second = clipboard.paste(0, 0)
    assert first.node_ids != second.node_ids


def test_empty_copy_keeps_contents() -> None:
    clipboard = Clipboard()
    nodes, geometries, drawings = _chart()
    clipboard.copy(nodes, geometries, drawings, ["b"], [])
    assert clipboard.copy(nodes, geometries, drawings, [], []) == 1
    assert len(clipboard) == 1


def test_paste_empty_clipboard() -> None:
    result = Clipboard().paste(10, 10)
    assert result.nodes == [] and result.drawings == []
