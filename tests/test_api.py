"""Tests for the REST and WebSocket surface."""

import pytest
from fastapi.testclient import TestClient

from chart_backend.chart_manager import chart_manager
from chart_backend.main import app


@pytest.fixture
def client():
    with TestClient(app) as c:
        chart_manager.new_chart("whiteboard")
        yield c


def _add(client, node_type="employee", x=0, y=0, **options) -> str:
    response = client.post("/api/nodes", json={"type": node_type, "x": x, "y": y, "options": options})
    assert response.status_code == 200
    return response.json()["node"]["id"]


def test_health(client) -> None:
    assert client.get("/api/health").json()["status"] == "ok"


def test_startup_loads_default_template() -> None:
    with TestClient(app) as c:
        state = c.get("/api/chart").json()
        assert len(state["chart"]["nodes"]) == 10
        assert state["edges"]
        assert not state["can_undo"]


def test_create_and_get_node(client) -> None:
    node_id = _add(client, "manager", 10, 20, name="Ada")
    body = client.get(f"/api/nodes/{node_id}").json()
    assert body["node"]["name"] == "Ada"
    assert body["geometry"]["x"] == 10
    assert client.get("/api/nodes/missing").status_code == 404


def test_invalid_node_type(client) -> None:
    response = client.post("/api/nodes", json={"type": "robot"})
    assert response.status_code == 422


def test_update_node(client) -> None:
    node_id = _add(client)
    response = client.patch(f"/api/nodes/{node_id}", json={"name": "Grace", "avatarIcon": "x"})
    assert response.json()["changed"] == [node_id]
    assert chart_manager.get_node(node_id).avatar_icon == "x"


def test_link_errors(client) -> None:
    a = _add(client, "manager")
    b = _add(client)
    assert client.post("/api/links", json={"source_id": a, "target_id": b}).json()["linked"]
    cycle = client.post("/api/links", json={"source_id": b, "target_id": a})
    assert cycle.status_code == 409
    missing = client.post("/api/links", json={"source_id": a, "target_id": "nope"})
    assert missing.status_code == 404
    assert client.get("/api/edges").json()["edges"][0]["sourceId"] == a

    assert client.delete(f"/api/links/{a}/{b}").json()["removed"]


def test_undo_redo(client) -> None:
    node_id = _add(client)
    assert client.post("/api/undo").json()["success"]
    assert chart_manager.get_node(node_id) is None
    assert client.post("/api/redo").json()["success"]
    assert not client.post("/api/redo").json()["success"]


def test_template_and_validation(client) -> None:
    assert client.post("/api/chart/template", json={"name": "nope"}).status_code == 400
    client.post("/api/chart/template", json={"name": "functional"})
    report = client.get("/api/chart/validate").json()
    assert report["valid"]
    assert report["errors"] == 0


def test_export_import(client) -> None:
    client.post("/api/chart/template", json={"name": "functional"})
    exported = client.get("/api/chart/export").json()
    client.post("/api/chart/new")
    assert client.post("/api/chart/import", json=exported).json()["success"]
    assert client.get("/api/chart/export").json() == exported

    bad = client.post("/api/chart/import", json={"nodes": 1, "positions": []})
    assert bad.status_code == 400


def test_selection_clipboard_and_delete(client) -> None:
    a = _add(client, x=100, y=100)
    client.put("/api/selection", json={"node_ids": [a]})
    assert client.post("/api/clipboard/copy").json()["count"] == 1
    ids = client.post("/api/clipboard/paste", json={"x": 500, "y": 500}).json()["ids"]
    assert len(ids) == 1
    assert chart_manager.get_geometry(ids[0]).x == 500
    assert client.post("/api/selection/delete").json()["deleted"]
    assert chart_manager.get_node(ids[0]) is None


def test_drawings(client) -> None:
    drawing_id = client.post("/api/drawings", json={"points": [[0, 0], [5, 5]]}).json()["id"]
    assert client.post("/api/drawings/erase", json={"x": 3, "y": 3}).json()["ids"] == [drawing_id]
    assert client.delete(f"/api/drawings/{drawing_id}").status_code == 404
    assert client.post("/api/drawings", json={}).status_code == 400


def test_view(client) -> None:
    assert client.post("/api/view/zoom-in").json()["viewport"]["zoom"] == 110
    assert client.post("/api/view/reset").json()["viewport"]["zoom"] == 100
    viewport = client.post("/api/view/pan", json={"dx": 10, "dy": -5}).json()["viewport"]
    assert viewport["pan"] == {"x": 10, "y": -5}


def test_save_and_open(client, tmp_path) -> None:
    _add(client)
    target = tmp_path / "chart.json"
    assert client.post("/api/chart/save", json={"file_path": str(target)}).json()["success"]
    assert client.post("/api/chart/open", json={"file_path": str(target)}).json()["success"]
    missing = client.post("/api/chart/open", json={"file_path": str(tmp_path / "nope.json")})
    assert missing.status_code == 404


def _receive_until(ws, message_type: str, limit: int = 5) -> dict:
    for _ in range(limit):
        message = ws.receive_json()
        if message["type"] == message_type:
            return message
    raise AssertionError(f"no {message_type} message received")


def test_websocket_receives_updates(client) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.send_text("ping")
        _receive_until(ws, "pong")
        _add(client)
        assert _receive_until(ws, "chart_updated") == {"type": "chart_updated"}


def test_select_unknown_drawing(client) -> None:
    assert client.post("/api/selection/drawings/nope").status_code == 404
