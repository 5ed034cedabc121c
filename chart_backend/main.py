"""
Chartflow Backend - FastAPI Application

This is the main entry point for the chart backend.
It provides:
- REST API for chart commands (nodes, links, drawings, clipboard, layout,
  templates, undo/redo, import/export, file ops)
- WebSocket endpoint for real-time updates
- CORS configuration for local frontend development
"""
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Body, FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from chart_core import (
    CreateDrawingRequest,
    CreateNodeRequest,
    CycleError,
    DrawingNotFoundError,
    FilePathRequest,
    LinkRequest,
    MoveNodeRequest,
    NodeNotFoundError,
    PasteRequest,
    ResizeNodeRequest,
    SelectionRequest,
    TemplateRequest,
    UpdateNodeRequest,
    validation_summary,
)
from chart_backend.chart_manager import chart_manager
from chart_backend.websocket_manager import ws_manager

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = os.environ.get("CHARTFLOW_DEFAULT_TEMPLATE", "functional")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "CHARTFLOW_CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173",
    ).split(",")
    if origin.strip()
]


def http_error(e: Exception) -> HTTPException:
    """Map engine errors to HTTP status codes."""
    if isinstance(e, (NodeNotFoundError, DrawingNotFoundError, FileNotFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, CycleError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


# --- Async change notification ---
# Bridge between sync ChartManager callbacks and async WebSocket broadcasts

_change_event: Optional[asyncio.Event] = None
_loop: Optional[asyncio.AbstractEventLoop] = None


def on_chart_change():
    """Callback for chart changes - sets event for async handler."""
    # Commands may run outside the event loop thread
    if _loop is not None and _change_event is not None:
        _loop.call_soon_threadsafe(_change_event.set)


async def change_broadcaster(event: asyncio.Event):
    """Background task that broadcasts changes to WebSocket clients."""
    while True:
        await event.wait()
        event.clear()
        await ws_manager.notify_chart_updated()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    global _change_event, _loop
    _change_event = asyncio.Event()
    _loop = asyncio.get_running_loop()
    chart_manager.on_change(on_chart_change)
    chart_manager.new_chart(DEFAULT_TEMPLATE)
    logger.info("Started with the %s template", DEFAULT_TEMPLATE)

    broadcaster_task = asyncio.create_task(change_broadcaster(_change_event))

    yield

    chart_manager.remove_change_callback(on_chart_change)
    _change_event = None
    _loop = None
    broadcaster_task.cancel()
    try:
        await broadcaster_task
    except asyncio.CancelledError:
        pass


# --- FastAPI App ---

app = FastAPI(
    title="Chartflow API",
    description="Backend API for the organizational chart editor",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request models local to the HTTP layer ---

class SaveChartRequest(BaseModel):
    file_path: Optional[str] = None


class EraseRequest(BaseModel):
    x: float
    y: float
    threshold: float = 10


class OffsetRequest(BaseModel):
    dx: float
    dy: float
    record_history: bool = True


class FitRequest(BaseModel):
    width: float
    height: float


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "connections": ws_manager.connection_count}


# --- Chart State ---

@app.get("/api/chart")
async def get_chart():
    """Get the current chart state."""
    return chart_manager.get_state()


@app.get("/api/chart/flat")
async def get_flat_nodes():
    """Render list of nodes, groups first."""
    return {"success": True, "nodes": chart_manager.flat_nodes()}


@app.get("/api/chart/validate")
async def validate_chart():
    """Check the chart's structural invariants."""
    issues = chart_manager.validate()
    return {
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        **validation_summary(issues),
    }


@app.get("/api/chart/export")
async def export_chart():
    """Export the chart as a JSON snapshot."""
    return chart_manager.export_json()


@app.post("/api/chart/import")
async def import_chart(data: Any = Body(...)):
    """Replace the chart with an exported snapshot (undoable)."""
    try:
        chart_manager.import_json(data)
    except ValueError as e:
        raise http_error(e)
    return {"success": True}


# --- File Operations ---

@app.post("/api/chart/new")
async def new_chart(template: str = Query(default="whiteboard")):
    """Start a new chart from a template, with an empty history."""
    try:
        chart_manager.new_chart(template)
    except ValueError as e:
        raise http_error(e)
    return {"success": True, "chart": chart_manager.export_json()}


@app.post("/api/chart/template")
async def load_template(request: TemplateRequest):
    """Replace the chart with a template (undoable)."""
    try:
        chart_manager.load_template(request.name)
    except ValueError as e:
        raise http_error(e)
    return {"success": True, "chart": chart_manager.export_json()}


@app.post("/api/chart/open")
async def open_chart(request: FilePathRequest):
    """Open a chart from a JSON file."""
    try:
        chart_manager.open_chart(request.file_path)
    except (FileNotFoundError, ValueError) as e:
        raise http_error(e)
    return {"success": True, "file_path": str(chart_manager.file_path)}


@app.post("/api/chart/save")
async def save_chart(request: SaveChartRequest):
    """Save the chart to a JSON file."""
    try:
        path = chart_manager.save_chart(request.file_path)
    except ValueError as e:
        raise http_error(e)
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save: {e}")
    return {"success": True, "file_path": str(path)}


# --- Undo/Redo ---

@app.post("/api/undo")
async def undo():
    """Undo the last action."""
    if chart_manager.undo():
        return {"success": True}
    return {"success": False, "message": "Nothing to undo"}


@app.post("/api/redo")
async def redo():
    """Redo the last undone action."""
    if chart_manager.redo():
        return {"success": True}
    return {"success": False, "message": "Nothing to redo"}


@app.post("/api/history")
async def save_history():
    """Record the current state, e.g. before a drag that moves without history."""
    chart_manager.save_history()
    return {"success": True}


# --- Node Operations ---

@app.post("/api/nodes")
async def create_node(request: CreateNodeRequest):
    """Create a new node."""
    try:
        node_id = chart_manager.add_node(
            request.type,
            request.x,
            request.y,
            request.options,
            width=request.width,
            height=request.height,
        )
    except ValueError as e:
        raise http_error(e)
    return {"success": True, "node": chart_manager.get_node(node_id).to_json_dict()}


@app.post("/api/nodes/member")
async def add_member():
    """Add an employee under the selected node."""
    node_id = chart_manager.add_member()
    return {"success": True, "node": chart_manager.get_node(node_id).to_json_dict()}


@app.patch("/api/nodes")
async def update_selected_nodes(
    request: UpdateNodeRequest,
    record_history: bool = Query(default=True),
):
    """Apply a partial update to every selected node."""
    try:
        changed = chart_manager.update_node(
            request.model_extra or {}, record_history=record_history
        )
    except ValueError as e:
        raise http_error(e)
    return {"success": True, "changed": changed}


@app.get("/api/nodes/{node_id}")
async def get_node(node_id: str):
    """Get a specific node with its geometry."""
    node = chart_manager.get_node(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return {
        "success": True,
        "node": node.to_json_dict(),
        "geometry": chart_manager.get_geometry(node_id).to_json_dict(),
    }


@app.patch("/api/nodes/{node_id}")
async def update_node(
    node_id: str,
    request: UpdateNodeRequest,
    record_history: bool = Query(default=True),
):
    """Apply a partial update to one node."""
    if chart_manager.get_node(node_id) is None:
        raise HTTPException(status_code=404, detail="Node not found")
    try:
        changed = chart_manager.update_node(
            request.model_extra or {}, node_ids=[node_id], record_history=record_history
        )
    except ValueError as e:
        raise http_error(e)
    return {"success": True, "changed": changed}


@app.put("/api/nodes/{node_id}/position")
async def move_node(node_id: str, request: MoveNodeRequest):
    try:
        chart_manager.update_geometry(
            node_id, request.x, request.y, record_history=request.record_history
        )
    except ValueError as e:
        raise http_error(e)
    return {"success": True, "geometry": chart_manager.get_geometry(node_id).to_json_dict()}


@app.put("/api/nodes/{node_id}/size")
async def resize_node(node_id: str, request: ResizeNodeRequest):
    try:
        chart_manager.resize(
            node_id, request.width, request.height, record_history=request.record_history
        )
    except ValueError as e:
        raise http_error(e)
    return {"success": True, "geometry": chart_manager.get_geometry(node_id).to_json_dict()}


@app.post("/api/nodes/{node_id}/membership")
async def update_node_membership(node_id: str):
    """Re-derive a node's department from the groups it overlaps."""
    node = chart_manager.get_node(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")
    if node.type == "group":
        changed = chart_manager.update_group_membership(node_id)
    else:
        changed = chart_manager.update_node_membership(node_id)
    return {"success": True, "changed": changed}


# --- Links ---

@app.get("/api/edges")
async def list_edges():
    return {"success": True, "edges": [e.to_json_dict() for e in chart_manager.edges()]}


@app.post("/api/links")
async def link_nodes(request: LinkRequest):
    """Make target a child of source."""
    try:
        linked = chart_manager.link(request.source_id, request.target_id)
    except ValueError as e:
        raise http_error(e)
    return {"success": True, "linked": linked}


@app.delete("/api/links/{source_id}/{target_id}")
async def unlink_nodes(source_id: str, target_id: str):
    return {"success": True, "removed": chart_manager.unlink(source_id, target_id)}


@app.delete("/api/edges/selected")
async def delete_selected_edge():
    return {"success": True, "removed": chart_manager.delete_selected_edge()}


# --- Selection ---

@app.put("/api/selection")
async def set_selection(request: SelectionRequest):
    """Replace the selection."""
    if request.edge_id:
        chart_manager.select_edge(request.edge_id)
    else:
        chart_manager.select(request.node_ids, request.drawing_ids)
    return {"success": True, "selection": chart_manager.selection.to_dict()}


@app.post("/api/selection/nodes/{node_id}")
async def select_node(node_id: str, multi: bool = Query(default=False)):
    try:
        chart_manager.select_node(node_id, multi)
    except ValueError as e:
        raise http_error(e)
    return {"success": True, "selection": chart_manager.selection.to_dict()}


@app.post("/api/selection/drawings/{drawing_id}")
async def select_drawing(drawing_id: str, multi: bool = Query(default=False)):
    try:
        chart_manager.select_drawing(drawing_id, multi)
    except ValueError as e:
        raise http_error(e)
    return {"success": True, "selection": chart_manager.selection.to_dict()}


@app.post("/api/selection/all")
async def select_all():
    chart_manager.select_all()
    return {"success": True, "selection": chart_manager.selection.to_dict()}


@app.delete("/api/selection")
async def clear_selection():
    chart_manager.clear_selection()
    return {"success": True}


@app.post("/api/selection/delete")
async def delete_selection():
    """Delete the selected nodes and drawings."""
    return {"success": True, "deleted": chart_manager.delete_selection()}


# --- Clipboard ---

@app.post("/api/clipboard/copy")
async def copy_selection():
    return {"success": True, "count": chart_manager.copy()}


@app.post("/api/clipboard/cut")
async def cut_selection():
    return {"success": True, "deleted": chart_manager.cut()}


@app.post("/api/clipboard/paste")
async def paste(request: PasteRequest):
    """Paste the clipboard at a world position."""
    return {"success": True, "ids": chart_manager.paste(request.x, request.y)}


# --- Layout ---

@app.post("/api/layout")
async def auto_layout():
    """Re-lay out the hierarchy."""
    return {"success": chart_manager.auto_layout()}


# --- Drawings ---

@app.post("/api/drawings")
async def create_drawing(request: CreateDrawingRequest):
    try:
        drawing_id = chart_manager.add_drawing(
            path=request.path,
            points=request.points,
            color=request.color,
            stroke_width=request.stroke_width,
        )
    except ValueError as e:
        raise http_error(e)
    return {"success": True, "id": drawing_id}


@app.delete("/api/drawings/{drawing_id}")
async def delete_drawing(drawing_id: str):
    if not chart_manager.delete_drawing(drawing_id):
        raise HTTPException(status_code=404, detail="Drawing not found")
    return {"success": True}


@app.delete("/api/drawings")
async def clear_drawings():
    return {"success": True, "cleared": chart_manager.clear_drawings()}


@app.post("/api/drawings/erase")
async def erase_drawings(request: EraseRequest):
    """Erase drawings near a point."""
    return {"success": True, "ids": chart_manager.erase_at(request.x, request.y, request.threshold)}


@app.post("/api/drawings/move")
async def move_drawings(request: OffsetRequest):
    moved = chart_manager.move_selected_drawings(
        request.dx, request.dy, record_history=request.record_history
    )
    return {"success": True, "moved": moved}


# --- View ---

@app.post("/api/view/zoom-in")
async def zoom_in():
    chart_manager.zoom_in()
    return {"success": True, "viewport": chart_manager.viewport.to_dict()}


@app.post("/api/view/zoom-out")
async def zoom_out():
    chart_manager.zoom_out()
    return {"success": True, "viewport": chart_manager.viewport.to_dict()}


@app.post("/api/view/reset")
async def reset_view():
    chart_manager.reset_view()
    return {"success": True, "viewport": chart_manager.viewport.to_dict()}


@app.post("/api/view/pan")
async def pan_view(request: OffsetRequest):
    chart_manager.pan_by(request.dx, request.dy)
    return {"success": True, "viewport": chart_manager.viewport.to_dict()}


@app.post("/api/view/fit")
async def zoom_to_fit(request: FitRequest):
    """Fit all content into a container of the given size."""
    chart_manager.zoom_to_fit(request.width, request.height)
    return {"success": True, "viewport": chart_manager.viewport.to_dict()}


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Clients connect here to receive chart_updated events.
    """
    await ws_manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text('{"type": "pong"}')
    except WebSocketDisconnect:
        await ws_manager.disconnect(websocket)


# --- Run with uvicorn ---

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        app,
        host=os.environ.get("CHARTFLOW_HOST", "127.0.0.1"),
        port=int(os.environ.get("CHARTFLOW_PORT", 8765)),
    )
