"""Tests for the bounded undo/redo history."""

import pytest

from chart_core.history import History
from chart_core.store import ChartSnapshot

from conftest import geo, person


def _snap(tag: str) -> ChartSnapshot:
    return ChartSnapshot(nodes={tag: person(tag)}, geometries={tag: geo(0, 0)})


def test_undo_redo_round_trip() -> None:
    h = History()
    h.record(_snap("a"))
    previous = h.undo(_snap("b"))
    assert set(previous.nodes) == {"a"}
    following = h.redo(previous)
    assert set(following.nodes) == {"b"}
    assert h.can_undo and not h.can_redo


def test_empty_history_returns_none() -> None:
    h = History()
    assert h.undo(_snap("a")) is None
    assert h.redo(_snap("a")) is None


def test_record_clears_redo() -> None:
    h = History()
    h.record(_snap("a"))
    h.undo(_snap("b"))
    assert h.can_redo
    h.record(_snap("c"))
    assert not h.can_redo


def test_depth_is_bounded() -> None:
    h = History(max_history=3)
    for i in range(10):
        h.record(_snap(str(i)))
    assert h.undo_depth == 3
    # Oldest snapshots were dropped first
    restored = [set(h.undo(_snap("x")).nodes) for _ in range(3)]
    assert restored == [{"9"}, {"8"}, {"7"}]
    assert h.undo(_snap("x")) is None


def test_invalid_depth() -> None:
    with pytest.raises(ValueError):
        History(max_history=0)


def test_discard_redo_and_clear() -> None:
    h = History()
    h.record(_snap("a"))
    h.undo(_snap("b"))
    h.discard_redo()
    assert not h.can_redo
    h.record(_snap("c"))
    h.clear()
    assert h.undo_depth == 0 and h.redo_depth == 0
