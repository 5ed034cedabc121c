"""Tests for the entity store."""

import pytest

from chart_core.errors import ChartError, NodeNotFoundError
from chart_core.models import Drawing
from chart_core.store import EntityStore

from conftest import geo, person


def _store() -> EntityStore:
    store = EntityStore()
    store.add_node(person("a", children=["b", "ghost"]), geo(0, 0))
    store.add_node(person("b"), geo(0, 200))
    return store


def test_reads_return_copies() -> None:
    store = _store()
    nodes = store.nodes
    nodes.pop("a")
    assert "a" in store
    assert len(store) == 2


def test_edges_skip_unresolved_children() -> None:
    edges = _store().edges()
    assert [(e.id, e.source_id, e.target_id) for e in edges] == [("a-b", "a", "b")]


def test_add_duplicate_rejected() -> None:
    store = _store()
    with pytest.raises(ChartError):
        store.add_node(person("a"), geo(5, 5))


def test_replace_all_requires_matching_keys() -> None:
    store = _store()
    with pytest.raises(ChartError):
        store.replace_all({"a": person("a")}, {}, [])
    # Unchanged after the rejected call
    assert set(store.nodes) == {"a", "b"}


def test_set_unknown_node_raises() -> None:
    store = _store()
    with pytest.raises(NodeNotFoundError):
        store.set_node(person("zzz"))
    with pytest.raises(NodeNotFoundError):
        store.set_geometry("zzz", geo(0, 0))


def test_snapshot_is_isolated() -> None:
    store = _store()
    snap = store.snapshot()
    store.remove_node("b")
    store.append_drawing(Drawing(id="d1", path="M0 0 L1 1"))
    assert set(snap.nodes) == {"a", "b"}
    assert snap.drawings == ()
    store.restore(snap)
    assert set(store.geometries) == {"a", "b"}
    assert store.drawings == []


def test_remove_drawings_counts() -> None:
    store = EntityStore()
    store.append_drawing(Drawing(id="d1", path="M0 0"))
    store.append_drawing(Drawing(id="d2", path="M0 0"))
    assert store.remove_drawings(["d1", "missing"]) == 1
    assert [d.id for d in store.drawings] == ["d2"]
