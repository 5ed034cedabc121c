#!/usr/bin/env python3
"""
Chartflow MCP Server

Provides MCP tools for AI agents to read and edit the open chart.
All changes are immediately reflected in connected editors via WebSocket updates.
"""

import json
import os
from typing import Optional

import httpx
from mcp.server.fastmcp import FastMCP

# Backend API URL
API_BASE = os.environ.get("CHARTFLOW_API_BASE", "http://127.0.0.1:8765/api")

# Create MCP server
mcp = FastMCP("chartflow")


class ApiError(Exception):
    """The backend rejected a request."""


# --- HTTP Client Helper ---

def api_request(method: str, endpoint: str, **kwargs) -> dict:
    """Make a request to the chart backend."""
    url = f"{API_BASE}{endpoint}"
    with httpx.Client(timeout=30.0) as client:
        if method == "GET":
            response = client.get(url, params=kwargs.get("params"))
        elif method in ("POST", "PATCH", "PUT"):
            response = client.request(
                method, url, json=kwargs.get("json"), params=kwargs.get("params")
            )
        elif method == "DELETE":
            response = client.delete(url)
        else:
            raise ValueError(f"Unknown method: {method}")

        if response.status_code >= 400:
            error = response.json().get("detail", "Unknown error")
            raise ApiError(f"API error: {error}")

        return response.json()


# ============================================================================
# INSPECTION TOOLS
# ============================================================================

@mcp.tool()
def chart_get_current() -> str:
    """
    Get the full current chart state.

    Returns the exported chart (nodes and positions as [id, record] pairs,
    drawings), the derived parent → child edges, the selection, the viewport
    and undo/redo availability. Call this before making changes.
    """
    result = api_request("GET", "/chart")
    return json.dumps(result, indent=2)


@mcp.tool()
def chart_get_node(node_id: str) -> str:
    """
    Get one node and its geometry.

    Args:
        node_id: ID of the node
    """
    result = api_request("GET", f"/nodes/{node_id}")
    return json.dumps(result, indent=2)


@mcp.tool()
def chart_validate() -> str:
    """
    Check the chart for structural problems.

    Reports dangling children, nodes with several parents, cycles, nodes
    without a geometry and departments that match no group.
    """
    result = api_request("GET", "/chart/validate")
    return json.dumps(result, indent=2)


# ============================================================================
# NODE TOOLS
# ============================================================================

@mcp.tool()
def chart_add_node(
    type: str = "employee",
    x: float = 100,
    y: float = 100,
    name: Optional[str] = None,
    role: Optional[str] = None,
    department: Optional[str] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
) -> str:
    """
    Add a node to the chart.

    Args:
        type: executive, manager, employee, note, shape, group or text
        x: Left edge in world coordinates
        y: Top edge in world coordinates
        name: Display name (defaults depend on the type)
        role: Job title for functional nodes
        department: Department name; normally derived from overlapping groups
        width: Optional width (type default when omitted)
        height: Optional height (type default when omitted)

    A new group immediately tags the functional nodes it overlaps with its name.
    """
    options = {
        key: value
        for key, value in {"name": name, "role": role, "department": department}.items()
        if value is not None
    }
    result = api_request("POST", "/nodes", json={
        "type": type,
        "x": x,
        "y": y,
        "options": options,
        "width": width,
        "height": height,
    })
    return json.dumps(result, indent=2)


@mcp.tool()
def chart_update_node(node_id: str, fields: dict) -> str:
    """
    Update fields of a node.

    Args:
        node_id: ID of the node
        fields: Fields to change, e.g. {"name": "Ada", "role": "CTO"}.
            camelCase or snake_case keys are accepted. Renaming a group also
            renames the department of the nodes tagged with its old name.
    """
    result = api_request("PATCH", f"/nodes/{node_id}", json=fields)
    return json.dumps(result, indent=2)


@mcp.tool()
def chart_move_node(node_id: str, x: float, y: float) -> str:
    """Move a node to a new world position."""
    result = api_request("PUT", f"/nodes/{node_id}/position", json={"x": x, "y": y})
    api_request("POST", f"/nodes/{node_id}/membership")
    return json.dumps(result, indent=2)


@mcp.tool()
def chart_delete_nodes(node_ids: list[str]) -> str:
    """
    Delete nodes and every edge touching them.

    Args:
        node_ids: IDs of the nodes to delete
    """
    api_request("PUT", "/selection", json={"node_ids": node_ids})
    result = api_request("POST", "/selection/delete")
    return json.dumps(result, indent=2)


# ============================================================================
# HIERARCHY TOOLS
# ============================================================================

@mcp.tool()
def chart_link(parent_id: str, child_id: str) -> str:
    """
    Make child_id report to parent_id.

    The child is detached from its previous parent first. Links that would
    create a cycle are rejected.
    """
    result = api_request("POST", "/links", json={"source_id": parent_id, "target_id": child_id})
    return json.dumps(result, indent=2)


@mcp.tool()
def chart_unlink(parent_id: str, child_id: str) -> str:
    """Remove the reporting line parent_id → child_id."""
    result = api_request("DELETE", f"/links/{parent_id}/{child_id}")
    return json.dumps(result, indent=2)


@mcp.tool()
def chart_auto_layout() -> str:
    """
    Re-lay out the hierarchy as a top-down tree.

    Siblings are grouped by department and group areas are resized to fit
    their members. Notes, shapes and text inside a group move with it.
    """
    result = api_request("POST", "/layout")
    return json.dumps(result, indent=2)


# ============================================================================
# CHART TOOLS
# ============================================================================

@mcp.tool()
def chart_load_template(name: str = "functional") -> str:
    """
    Replace the chart with a template ("functional" or "whiteboard").

    The replacement can be undone.
    """
    result = api_request("POST", "/chart/template", json={"name": name})
    return json.dumps(result, indent=2)


@mcp.tool()
def chart_undo() -> str:
    """Undo the last change."""
    result = api_request("POST", "/undo")
    return json.dumps(result, indent=2)


@mcp.tool()
def chart_redo() -> str:
    """Redo the last undone change."""
    result = api_request("POST", "/redo")
    return json.dumps(result, indent=2)


@mcp.tool()
def chart_save(file_path: Optional[str] = None) -> str:
    """
    Save the chart as JSON.

    Args:
        file_path: Target path. Omit to save to the currently open file.
    """
    result = api_request("POST", "/chart/save", json={"file_path": file_path})
    return json.dumps(result, indent=2)


@mcp.tool()
def chart_open(file_path: str) -> str:
    """Open a chart JSON file, replacing the current chart."""
    result = api_request("POST", "/chart/open", json={"file_path": file_path})
    return json.dumps(result, indent=2)


# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    mcp.run()
