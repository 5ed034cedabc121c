"""Shared helpers for chart tests."""

import pytest

from chart_backend.chart_manager import ChartManager
from chart_core.models import Geometry, make_node


def person(node_id, department="", children=(), node_type="employee", name=None):
    return make_node(
        node_type,
        node_id=node_id,
        name=name or node_id,
        department=department,
        children=tuple(children),
    )


def geo(x, y, width=208, height=100) -> Geometry:
    return Geometry(x=x, y=y, width=width, height=height)


@pytest.fixture
def manager() -> ChartManager:
    """A fresh engine with an empty whiteboard."""
    m = ChartManager(max_history=50)
    m.new_chart("whiteboard")
    return m
