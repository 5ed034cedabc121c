"""Tests for the MCP tools, with the backend replaced by a recorder."""

import json

import pytest

from chart_mcp import server


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def fake_request(method, endpoint, **kwargs):
        recorded.append((method, endpoint, kwargs))
        return {"success": True}

    monkeypatch.setattr(server, "api_request", fake_request)
    return recorded


def test_get_current(calls) -> None:
    assert json.loads(server.chart_get_current()) == {"success": True}
    assert calls == [("GET", "/chart", {})]


def test_add_node_sends_options(calls) -> None:
    server.chart_add_node(type="manager", x=5, y=6, name="Ada")
    method, endpoint, kwargs = calls[0]
    assert (method, endpoint) == ("POST", "/nodes")
    assert kwargs["json"]["type"] == "manager"
    assert kwargs["json"]["options"] == {"name": "Ada"}


def test_link_and_unlink(calls) -> None:
    server.chart_link("a", "b")
    server.chart_unlink("a", "b")
    assert calls[0][2]["json"] == {"source_id": "a", "target_id": "b"}
    assert calls[1][:2] == ("DELETE", "/links/a/b")


def test_move_node_rederives_membership(calls) -> None:
    server.chart_move_node("a", 1, 2)
    assert [c[:2] for c in calls] == [
        ("PUT", "/nodes/a/position"),
        ("POST", "/nodes/a/membership"),
    ]


def test_delete_nodes_selects_first(calls) -> None:
    server.chart_delete_nodes(["a", "b"])
    assert calls[0] == ("PUT", "/selection", {"json": {"node_ids": ["a", "b"]}})
    assert calls[1][:2] == ("POST", "/selection/delete")


def test_api_errors_surface(monkeypatch) -> None:
    def failing(method, endpoint, **kwargs):
        raise server.ApiError("API error: boom")

    monkeypatch.setattr(server, "api_request", failing)
    with pytest.raises(server.ApiError):
        server.chart_undo()
