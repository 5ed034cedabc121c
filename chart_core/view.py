"""
Selection and viewport state.

Thin state read by renderers: which nodes/drawings/edge are selected, and
the zoom/pan of the canvas. Zoom is a percentage (100 = 1:1).
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .geometry import Rect

MIN_ZOOM = 10
MAX_ZOOM = 500
ZOOM_STEP = 10
FIT_PADDING = 100
FIT_MAX_SCALE = 1.5


@dataclass
class Selection:
    """Currently selected items. Node ids keep selection order."""
    node_ids: list[str] = field(default_factory=list)
    drawing_ids: list[str] = field(default_factory=list)
    edge_id: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.node_ids) + len(self.drawing_ids)

    @property
    def last_node_id(self) -> Optional[str]:
        return self.node_ids[-1] if self.node_ids else None

    def select_node(self, node_id: str, multi: bool = False) -> None:
        """Select a node; with ``multi`` toggle it within the current selection."""
        self.edge_id = None
        if multi:
            if node_id in self.node_ids:
                self.node_ids.remove(node_id)
            else:
                self.node_ids.append(node_id)
        else:
            self.node_ids = [node_id]
            self.drawing_ids = []

    def select_drawing(self, drawing_id: str, multi: bool = False) -> None:
        self.edge_id = None
        if multi:
            if drawing_id in self.drawing_ids:
                self.drawing_ids.remove(drawing_id)
            else:
                self.drawing_ids.append(drawing_id)
        else:
            self.drawing_ids = [drawing_id]
            self.node_ids = []

    def select_edge(self, edge_id: str) -> None:
        self.node_ids = []
        self.drawing_ids = []
        self.edge_id = edge_id

    def set(self, node_ids: Iterable[str] = (), drawing_ids: Iterable[str] = ()) -> None:
        self.node_ids = list(dict.fromkeys(node_ids))
        self.drawing_ids = list(dict.fromkeys(drawing_ids))
        self.edge_id = None

    def discard(self, node_ids: Iterable[str] = (), drawing_ids: Iterable[str] = ()) -> None:
        node_ids, drawing_ids = set(node_ids), set(drawing_ids)
        self.node_ids = [n for n in self.node_ids if n not in node_ids]
        self.drawing_ids = [d for d in self.drawing_ids if d not in drawing_ids]

    def clear(self) -> None:
        self.node_ids = []
        self.drawing_ids = []
        self.edge_id = None

    def to_dict(self) -> dict:
        return {
            "node_ids": list(self.node_ids),
            "drawing_ids": list(self.drawing_ids),
            "edge_id": self.edge_id,
        }


@dataclass
class Viewport:
    """Canvas zoom (percent) and pan offset (screen pixels)."""
    zoom: int = 100
    pan_x: float = 0
    pan_y: float = 0

    def zoom_in(self) -> None:
        self.zoom = min(self.zoom + ZOOM_STEP, MAX_ZOOM)

    def zoom_out(self) -> None:
        self.zoom = max(self.zoom - ZOOM_STEP, MIN_ZOOM)

    def reset(self) -> None:
        self.zoom = 100
        self.pan_x = 0
        self.pan_y = 0

    def pan_by(self, dx: float, dy: float) -> None:
        self.pan_x += dx
        self.pan_y += dy

    def zoom_to_fit(
        self,
        content: Optional[Rect],
        container_width: float,
        container_height: float,
    ) -> None:
        """
        Zoom and pan so ``content`` fills the container.

        The scale is capped at 150% so a single small item is not blown up,
        and never drops below 1%. An empty chart resets the view.
        """
        if content is None:
            self.reset()
            return

        content_w = content.width + FIT_PADDING * 2
        content_h = content.height + FIT_PADDING * 2
        scale = min(container_width / content_w, container_height / content_h, FIT_MAX_SCALE)
        self.zoom = max(math.floor(scale * 100), 1)

        final_scale = self.zoom / 100
        self.pan_x = container_width / 2 - content.cx * final_scale
        self.pan_y = container_height / 2 - content.cy * final_scale

    def to_dict(self) -> dict:
        return {"zoom": self.zoom, "pan": {"x": self.pan_x, "y": self.pan_y}}
