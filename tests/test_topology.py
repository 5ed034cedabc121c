"""Tests for hierarchy edits."""

import pytest

from chart_core.errors import CycleError, NodeNotFoundError
from chart_core.topology import (
    detach,
    find_cycle_nodes,
    find_roots,
    is_descendant,
    link,
    parent_of,
    strip_dangling,
    unlink,
)

from conftest import person


def _tree() -> dict:
    return {
        "a": person("a", children=["b", "c"], node_type="executive"),
        "b": person("b", children=["d"]),
        "c": person("c"),
        "d": person("d"),
    }


def _apply(nodes: dict, changed: dict) -> dict:
    return {**nodes, **changed}


def test_is_descendant() -> None:
    nodes = _tree()
    assert is_descendant(nodes, "a", "d")
    assert not is_descendant(nodes, "c", "d")


def test_link_appends_child() -> None:
    nodes = _apply(_tree(), link(_tree(), "c", "d"))
    assert nodes["c"].children == ("d",)
    # Single parent: d left its old parent
    assert nodes["b"].children == ()
    assert parent_of(nodes, "d") == "c"


def test_link_noops() -> None:
    nodes = _tree()
    assert link(nodes, "a", "a") == {}
    assert link(nodes, "a", "b") == {}


def test_link_rejects_cycle() -> None:
    with pytest.raises(CycleError):
        link(_tree(), "d", "a")


def test_link_unknown_node() -> None:
    with pytest.raises(NodeNotFoundError):
        link(_tree(), "a", "nope")


def test_unlink() -> None:
    nodes = _tree()
    changed = unlink(nodes, "a", "c")
    assert changed["a"].children == ("b",)
    assert unlink(nodes, "c", "a") == {}


def test_detach_strips_every_reference() -> None:
    nodes = _tree()
    nodes["c"] = nodes["c"].model_copy(update={"children": ("b",)})
    changed = detach(nodes, "b")
    assert set(changed) == {"a", "c"}
    assert "b" not in changed["a"].children


def test_strip_dangling() -> None:
    nodes = {"a": person("a", children=["x", "b"]), "b": person("b")}
    changed = strip_dangling(nodes)
    assert changed["a"].children == ("b",)


def test_find_roots_ignores_non_functional() -> None:
    from chart_core.models import make_node

    nodes = _tree()
    nodes["n"] = make_node("note", node_id="n")
    nodes["e"] = person("e")
    assert find_roots(nodes) == ["a", "e"]


def test_find_cycle_nodes() -> None:
    nodes = {
        "a": person("a", children=["b"]),
        "b": person("b", children=["a"]),
        "c": person("c"),
    }
    assert find_cycle_nodes(nodes) == {"a", "b"}
    assert find_cycle_nodes(_tree()) == set()
