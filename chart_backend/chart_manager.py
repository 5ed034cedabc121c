"""
Chart Manager - the chart state engine.

This module implements:
- Single chart state (one chart open at a time), owned by an EntityStore
- Bounded snapshot-based undo/redo; history is always saved *before* the
  mutation it guards
- Topology edits (link/unlink/delete) that keep the hierarchy a tree
- Geometric group membership and department rename propagation
- Auto-layout, templates, clipboard, selection and viewport
- JSON import/export with automatic rollback of failed imports

Every public command either completes or raises before touching state.
Commands that would change nothing return early without a history entry.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from chart_core.clipboard import Clipboard
from chart_core.errors import (
    ChartError,
    CycleError,
    DrawingNotFoundError,
    ImportApplyError,
    ImportValidationError,
    NodeNotFoundError,
)
from chart_core.geometry import Rect, bounding_rect, path_bounds, shift_path, smooth_path
from chart_core.history import DEFAULT_MAX_HISTORY, History
from chart_core.layout import LayoutConfig, auto_layout
from chart_core.membership import (
    node_rect,
    rename_department,
    update_group_membership,
    update_node_membership,
)
from chart_core.models import (
    ChartDocument,
    ChartEdge,
    ChartNode,
    Drawing,
    Geometry,
    default_size,
    make_node,
    normalize_node_fields,
    update_node_fields,
)
from chart_core.store import ChartSnapshot, EntityStore
from chart_core.templates import ChartTemplate, get_template
from chart_core import topology
from chart_core.validation import (
    IssueSeverity,
    ValidationIssue,
    check_import_payload,
    validate_chart,
)
from chart_core.view import Selection, Viewport

logger = logging.getLogger(__name__)

# Spacing used when adding a member under the selected node
MEMBER_SPACING_X = 240
MEMBER_OFFSET_Y = 180


class ChartManager:
    """
    Manages a single chart's state, history and clipboard.

    Features:
    - O(1) node/geometry lookups through the entity store
    - Snapshot-based undo/redo history with a maximum depth
    - Change callbacks for real-time sync

    Collaborators only read published snapshots (every read returns a
    copy) or call the commands below; nothing outside holds a live alias
    into the store.
    """

    def __init__(
        self,
        max_history: int = DEFAULT_MAX_HISTORY,
        layout_config: Optional[LayoutConfig] = None,
    ):
        self._store = EntityStore()
        self._history = History(max_history)
        self._clipboard = Clipboard()
        self._layout_config = layout_config or LayoutConfig()
        self._file_path: Optional[Path] = None
        self._dirty = False  # True if unsaved changes exist
        self._on_change_callbacks: list[Callable] = []
        self.selection = Selection()
        self.viewport = Viewport()

    # --- Properties ---

    @property
    def nodes(self) -> dict[str, ChartNode]:
        return self._store.nodes

    @property
    def geometries(self) -> dict[str, Geometry]:
        return self._store.geometries

    @property
    def drawings(self) -> list[Drawing]:
        return self._store.drawings

    @property
    def history(self) -> History:
        return self._history

    @property
    def clipboard(self) -> Clipboard:
        return self._clipboard

    @property
    def file_path(self) -> Optional[Path]:
        """Get the current file path."""
        return self._file_path

    @property
    def is_dirty(self) -> bool:
        """Check if there are unsaved changes."""
        return self._dirty

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    def snapshot(self) -> ChartSnapshot:
        return self._store.snapshot()

    def get_node(self, node_id: str) -> Optional[ChartNode]:
        """Get a node by ID (O(1) lookup)."""
        return self._store.get_node(node_id)

    def get_geometry(self, node_id: str) -> Optional[Geometry]:
        return self._store.get_geometry(node_id)

    def edges(self) -> list[ChartEdge]:
        """Parent → child edges derived from ``children``."""
        return self._store.edges()

    def selected_node(self) -> Optional[ChartNode]:
        """The most recently selected node."""
        last_id = self.selection.last_node_id
        return self._store.get_node(last_id) if last_id else None

    def flat_nodes(self) -> list[dict]:
        """Render list: groups first (drawn underneath), then everything else."""
        nodes = self._store.nodes
        geometries = self._store.geometries
        ordered = sorted(nodes.values(), key=lambda n: 0 if n.type == "group" else 1)
        result = []
        for node in ordered:
            geometry = geometries.get(node.id, Geometry())
            width, height = geometry.size_for(node.type)
            result.append({
                "data": node.to_json_dict(),
                "x": geometry.x,
                "y": geometry.y,
                "width": width,
                "height": height,
            })
        return result

    def content_bounds(self) -> Optional[Rect]:
        """Union of all node rectangles and non-degenerate drawing bounds."""
        nodes = self._store.nodes
        rects = [
            node_rect(nodes[node_id], geometry)
            for node_id, geometry in self._store.geometries.items()
        ]
        for drawing in self._store.drawings:
            bounds = path_bounds(drawing.path)
            if bounds.width > 0:
                rects.append(bounds)
        return bounding_rect(rects)

    # --- Change Callbacks ---

    def on_change(self, callback: Callable):
        """Register a callback for chart changes."""
        self._on_change_callbacks.append(callback)

    def remove_change_callback(self, callback: Callable):
        if callback in self._on_change_callbacks:
            self._on_change_callbacks.remove(callback)

    def _notify_change(self):
        """Notify all registered callbacks of a change."""
        for callback in self._on_change_callbacks:
            callback()

    def _changed(self):
        self._dirty = True
        self._notify_change()

    # --- History Management ---

    def save_history(self):
        """Save current state to history before a mutation."""
        self._history.record(self._store.snapshot())

    def undo(self) -> bool:
        """Undo the last action."""
        previous = self._history.undo(self._store.snapshot())
        if previous is None:
            return False
        self._store.restore(previous)
        # No ghost selections of records that may no longer exist
        self.selection.clear()
        self._changed()
        return True

    def redo(self) -> bool:
        """Redo the last undone action."""
        following = self._history.redo(self._store.snapshot())
        if following is None:
            return False
        self._store.restore(following)
        self.selection.clear()
        self._changed()
        return True

    # --- Chart lifecycle ---

    def _apply_template(self, template: ChartTemplate):
        self._store.replace_all(template.nodes, template.geometries, [])
        if template.nodes:
            result = auto_layout(self._store.nodes, self._store.geometries, self._layout_config)
            self._store.replace_all(result.nodes, result.geometries, self._store.drawings)
        self.selection.clear()

    def new_chart(self, template: str = "whiteboard"):
        """Start over from a template with an empty history."""
        chart = get_template(template)
        self._apply_template(chart)
        self._history.clear()
        self.viewport.reset()
        self._file_path = None
        self._dirty = False
        self._notify_change()

    def load_template(self, name: str):
        """Replace the chart with a template (undoable)."""
        chart = get_template(name)
        self.save_history()
        self._apply_template(chart)
        self._changed()

    def save_chart(self, file_path: Optional[str | Path] = None) -> Path:
        """
        Save the chart to a JSON file.

        If file_path is provided, save to that path (Save As).
        Otherwise, save to the current file_path.
        """
        if file_path:
            path = Path(file_path)
        elif self._file_path:
            path = self._file_path
        else:
            raise ChartError("No file path specified and no current file path")

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.export_json(), f, indent=2, ensure_ascii=False)

        self._file_path = path
        self._dirty = False
        logger.info("Saved chart to %s", path)
        return path

    def open_chart(self, file_path: str | Path):
        """Open a chart from a JSON export; starts a fresh history."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Chart file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ImportValidationError(f"Not a JSON file: {e}") from e

        self.import_json(data)
        self._history.clear()
        self._file_path = path
        self._dirty = False

    # --- Import / Export ---

    def export_document(self) -> ChartDocument:
        return ChartDocument(
            nodes=list(self._store.nodes.items()),
            positions=list(self._store.geometries.items()),
            drawings=self._store.drawings,
        )

    def export_json(self) -> dict:
        return self.export_document().to_json_dict()

    def import_json(self, data: Any):
        """
        Replace the chart with an exported snapshot.

        Malformed payloads are rejected before history is touched. If the
        payload fails while being applied, the chart is rolled back through
        undo and the redo entry for the broken state is discarded.
        """
        check_import_payload(data)

        self.save_history()
        try:
            document = ChartDocument.from_json_dict(data)
            nodes: dict[str, ChartNode] = {}
            for node_id, node in document.nodes:
                if node.id != node_id:
                    raise ChartError(f"Node entry {node_id} holds a record with id {node.id}")
                nodes[node_id] = node
            nodes.update(topology.strip_dangling(nodes))
            geometries = dict(document.positions)

            errors = [
                issue for issue in validate_chart(nodes, geometries, document.drawings)
                if issue.severity == IssueSeverity.ERROR
            ]
            if errors:
                raise ChartError("; ".join(
                    f"{issue.message} ({issue.node_id})" for issue in errors
                ))

            self._store.replace_all(nodes, geometries, document.drawings)
            self.selection.clear()
        except (ValueError, TypeError) as e:
            logger.exception("Error processing imported chart data")
            self.undo()
            self._history.discard_redo()
            raise ImportApplyError(
                f"Could not apply the imported data, the chart was restored: {e}"
            ) from e

        self._changed()

    # --- Node Operations ---

    def add_node(
        self,
        node_type: str,
        x: float,
        y: float,
        options: Optional[dict[str, Any]] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> str:
        """Add a new node; returns its id. New groups adopt overlapping nodes."""
        node = make_node(node_type, **(options or {}))
        default_w, default_h = default_size(node.type)
        geometry = Geometry(x=x, y=y, width=width or default_w, height=height or default_h)

        self.save_history()
        self._store.add_node(node, geometry)
        if node.type == "group":
            self._store.set_nodes(update_group_membership(
                self._store.nodes, self._store.geometries, node.id
            ).values())
        self._changed()
        return node.id

    def add_member(self) -> str:
        """Add an employee under the last selected node (or beside the content)."""
        parent_id = self.selection.last_node_id
        parent = self._store.get_node(parent_id) if parent_id else None
        geometries = self._store.geometries

        new_x, new_y = 100.0, 100.0
        if parent is not None:
            parent_geometry = geometries[parent.id]
            new_x = parent_geometry.x + len(parent.children) * MEMBER_SPACING_X
            new_y = parent_geometry.y + MEMBER_OFFSET_Y
        elif geometries:
            new_x = max(0, max(g.x for g in geometries.values())) + 250

        node = make_node("employee")
        self.save_history()
        self._store.add_node(node, Geometry(x=new_x, y=new_y, width=208, height=100))
        if parent is not None:
            self._store.set_nodes(topology.link(self._store.nodes, parent.id, node.id).values())
        self.selection.set([node.id])
        self._changed()
        return node.id

    def update_node(
        self,
        changes: dict[str, Any],
        node_ids: Optional[Iterable[str]] = None,
        record_history: bool = True,
    ) -> list[str]:
        """
        Apply a partial update to the selected nodes (or ``node_ids``).

        Renaming a group renames the department of every node that carried
        the old name. Hierarchy edges cannot be edited here; use link/unlink.
        Returns the ids of changed nodes.
        """
        targets = list(node_ids) if node_ids is not None else list(self.selection.node_ids)
        fields = normalize_node_fields(changes)
        fields.pop("children", None)
        if not targets or not fields:
            return []

        original = self._store.nodes
        working = dict(original)
        for node_id in targets:
            node = working.get(node_id)
            if node is None:
                continue
            new_name = fields.get("name")
            if node.type == "group" and new_name is not None and new_name != node.name:
                working.update(rename_department(working, node.name, new_name))
                node = working[node_id]
            working[node_id] = update_node_fields(node, fields)

        changed = [node_id for node_id, node in working.items() if original[node_id] != node]
        if not changed:
            return []

        if record_history:
            self.save_history()
        self._store.set_nodes(working[node_id] for node_id in changed)
        self._changed()
        return changed

    def update_geometry(self, node_id: str, x: float, y: float, record_history: bool = True):
        """Move a node, keeping its size."""
        current = self._store.get_geometry(node_id)
        if current is None:
            raise NodeNotFoundError(node_id)
        if current.x == x and current.y == y:
            return

        if record_history:
            self.save_history()
        self._store.set_geometry(node_id, current.model_copy(update={"x": x, "y": y}))
        self._changed()

    def resize(self, node_id: str, width: float, height: float, record_history: bool = True):
        """Resize a node; changes of one unit or less are ignored."""
        node = self._store.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        current = self._store.get_geometry(node_id)
        current_w, current_h = current.size_for(node.type)
        if abs(current_w - width) <= 1 and abs(current_h - height) <= 1:
            return

        if record_history:
            self.save_history()
        self._store.set_geometry(node_id, current.model_copy(update={
            "width": width,
            "height": height,
        }))
        self._changed()

    # --- Group membership ---

    def update_group_membership(self, group_id: str) -> list[str]:
        """Re-tag functional nodes against one group (after a group drag)."""
        changed = update_group_membership(self._store.nodes, self._store.geometries, group_id)
        if changed:
            self._store.set_nodes(changed.values())
            self._changed()
        return list(changed)

    def update_node_membership(self, node_id: str) -> list[str]:
        """Re-tag one node against all groups (after a node drag)."""
        changed = update_node_membership(self._store.nodes, self._store.geometries, node_id)
        if changed:
            self._store.set_nodes(changed.values())
            self._changed()
        return list(changed)

    # --- Topology ---

    def link(self, source_id: str, target_id: str) -> bool:
        """
        Make ``target_id`` a child of ``source_id``.

        Returns False for self-links and existing edges.

        Raises:
            CycleError: if ``source_id`` descends from ``target_id``
        """
        try:
            changed = topology.link(self._store.nodes, source_id, target_id)
        except CycleError:
            logger.debug("Rejected link %s -> %s (cycle)", source_id, target_id)
            raise
        if not changed:
            logger.debug("Ignoring link %s -> %s (no-op)", source_id, target_id)
            return False

        self.save_history()
        self._store.set_nodes(changed.values())
        self._changed()
        return True

    def unlink(self, source_id: str, target_id: str) -> bool:
        """Remove the edge ``source_id`` → ``target_id`` if it exists."""
        changed = topology.unlink(self._store.nodes, source_id, target_id)
        if not changed:
            return False

        self.save_history()
        self._store.set_nodes(changed.values())
        self._changed()
        return True

    def delete_selected_edge(self) -> bool:
        edge_id = self.selection.edge_id
        if not edge_id:
            return False
        edge = next((e for e in self._store.edges() if e.id == edge_id), None)
        if edge is None:
            self.selection.edge_id = None
            return False

        removed = self.unlink(edge.source_id, edge.target_id)
        self.selection.edge_id = None
        return removed

    def delete_selection(self) -> bool:
        """Delete selected nodes (and their edges) and selected drawings."""
        nodes = self._store.nodes
        geometries = self._store.geometries
        node_ids = [n for n in self.selection.node_ids if n in nodes]
        selected_drawings = set(self.selection.drawing_ids)
        drawing_ids = {d.id for d in self._store.drawings if d.id in selected_drawings}
        if not node_ids and not drawing_ids:
            return False

        self.save_history()
        for node_id in node_ids:
            nodes.update(topology.detach(nodes, node_id))
            del nodes[node_id]
            geometries.pop(node_id, None)
        drawings = [d for d in self._store.drawings if d.id not in drawing_ids]
        self._store.replace_all(nodes, geometries, drawings)

        self.selection.clear()
        self._changed()
        return True

    # --- Drawings ---

    def add_drawing(
        self,
        path: Optional[str] = None,
        points: Optional[list[tuple[float, float]]] = None,
        color: str = "#0f172a",
        stroke_width: float = 3,
    ) -> str:
        """Add a freehand stroke from a path or from raw samples (smoothed)."""
        if points:
            path = smooth_path([(float(x), float(y)) for x, y in points])
        if not path:
            raise ChartError("A drawing needs a path or at least one point")

        drawing = Drawing(path=path, color=color, stroke_width=stroke_width)
        self.save_history()
        self._store.append_drawing(drawing)
        self._changed()
        return drawing.id

    def delete_drawing(self, drawing_id: str) -> bool:
        if self._store.get_drawing(drawing_id) is None:
            return False
        self.save_history()
        self._store.remove_drawings([drawing_id])
        self.selection.discard(drawing_ids=[drawing_id])
        self._changed()
        return True

    def erase_at(self, x: float, y: float, threshold: float = 10) -> list[str]:
        """Delete every drawing whose bounds (grown by ``threshold``) contain the point."""
        hit = [
            d.id for d in self._store.drawings
            if path_bounds(d.path).contains_point(x, y, margin=threshold)
        ]
        if not hit:
            return []
        self.save_history()
        self._store.remove_drawings(hit)
        self.selection.discard(drawing_ids=hit)
        self._changed()
        return hit

    def clear_drawings(self) -> bool:
        if not self._store.drawings:
            return False
        self.save_history()
        self._store.remove_drawings([d.id for d in self._store.drawings])
        self.selection.discard(drawing_ids=list(self.selection.drawing_ids))
        self._changed()
        return True

    def move_selected_drawings(self, dx: float, dy: float, record_history: bool = True) -> bool:
        selected = set(self.selection.drawing_ids)
        moving = [d for d in self._store.drawings if d.id in selected]
        if not moving or (dx == 0 and dy == 0):
            return False
        if record_history:
            self.save_history()
        for drawing in moving:
            self._store.replace_drawing(drawing.model_copy(update={
                "path": shift_path(drawing.path, dx, dy),
            }))
        self._changed()
        return True

    # --- Clipboard ---

    def copy(self) -> int:
        """Copy the selection; an empty selection keeps the clipboard as is."""
        return self._clipboard.copy(
            self._store.nodes,
            self._store.geometries,
            self._store.drawings,
            self.selection.node_ids,
            self.selection.drawing_ids,
        )

    def cut(self) -> bool:
        self.copy()
        return self.delete_selection()

    def paste(self, target_x: float, target_y: float) -> list[str]:
        """
        Paste the clipboard with its top-left corner at the target point.

        The pasted items become the selection. Pasted groups re-derive the
        membership of the nodes they now overlap. Returns the new ids.
        """
        if not self._clipboard:
            return []

        pasted = self._clipboard.paste(target_x, target_y)
        self.save_history()
        for node in pasted.nodes:
            self._store.add_node(node, pasted.geometries[node.id])
        for drawing in pasted.drawings:
            self._store.append_drawing(drawing)
        self.selection.set(pasted.node_ids, pasted.drawing_ids)

        for group_id in pasted.group_ids:
            self._store.set_nodes(update_group_membership(
                self._store.nodes, self._store.geometries, group_id
            ).values())

        self._changed()
        return pasted.node_ids + pasted.drawing_ids

    # --- Layout ---

    def auto_layout(self) -> bool:
        """Re-lay out the hierarchy. Returns False when there is nothing to arrange."""
        nodes = self._store.nodes
        has_groups = any(node.type == "group" for node in nodes.values())
        if not topology.find_roots(nodes) and not has_groups:
            return False

        self.save_history()
        result = auto_layout(self._store.nodes, self._store.geometries, self._layout_config)
        self._store.replace_all(result.nodes, result.geometries, self._store.drawings)
        self._changed()
        return True

    # --- Selection & View ---

    def select_node(self, node_id: str, multi: bool = False):
        if node_id not in self._store:
            raise NodeNotFoundError(node_id)
        self.selection.select_node(node_id, multi)
        self._notify_change()

    def select_drawing(self, drawing_id: str, multi: bool = False):
        if self._store.get_drawing(drawing_id) is None:
            raise DrawingNotFoundError(drawing_id)
        self.selection.select_drawing(drawing_id, multi)
        self._notify_change()

    def select_edge(self, edge_id: str):
        self.selection.select_edge(edge_id)
        self._notify_change()

    def select(self, node_ids: Iterable[str] = (), drawing_ids: Iterable[str] = ()):
        """Replace the selection, ignoring ids that do not exist."""
        drawing_set = {d.id for d in self._store.drawings}
        self.selection.set(
            [n for n in node_ids if n in self._store],
            [d for d in drawing_ids if d in drawing_set],
        )
        self._notify_change()

    def select_all(self):
        self.selection.set(self._store.nodes, [d.id for d in self._store.drawings])
        self._notify_change()

    def clear_selection(self):
        self.selection.clear()
        self._notify_change()

    def zoom_in(self):
        self.viewport.zoom_in()
        self._notify_change()

    def zoom_out(self):
        self.viewport.zoom_out()
        self._notify_change()

    def reset_view(self):
        self.viewport.reset()
        self._notify_change()

    def pan_by(self, dx: float, dy: float):
        self.viewport.pan_by(dx, dy)
        self._notify_change()

    def zoom_to_fit(self, container_width: float, container_height: float):
        self.viewport.zoom_to_fit(self.content_bounds(), container_width, container_height)
        self._notify_change()

    def validate(self) -> list[ValidationIssue]:
        """Check the structural invariants of the current chart."""
        return validate_chart(self._store.nodes, self._store.geometries, self._store.drawings)

    # --- State ---

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        return {
            "chart": self.export_json(),
            "edges": [e.to_json_dict() for e in self.edges()],
            "selection": self.selection.to_dict(),
            "viewport": self.viewport.to_dict(),
            "file_path": str(self._file_path) if self._file_path else None,
            "is_dirty": self._dirty,
            "can_undo": self.can_undo,
            "can_redo": self.can_redo,
        }


# Global instance for the application
chart_manager = ChartManager(
    max_history=int(os.environ.get("CHARTFLOW_MAX_HISTORY", DEFAULT_MAX_HISTORY))
)
