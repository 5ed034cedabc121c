"""
Clipboard - copy a selection of nodes and drawings, paste with fresh ids.

Copy stores each item with its bounding box. Paste moves the whole set so
that its top-left corner lands on the target point, gives every item a new
id, and rewires ``children`` through an old → new id table. Children that
were not copied along with their parent are dropped.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Literal, Mapping, Union

from .geometry import Rect, path_bounds, shift_path
from .models import (
    ChartNode,
    Drawing,
    Geometry,
    generate_drawing_id,
    generate_node_id,
)


@dataclass(frozen=True)
class ClipboardItem:
    """A copied record plus the rectangle it occupied."""
    kind: Literal["node", "drawing"]
    data: Union[ChartNode, Drawing]
    bounds: Rect


@dataclass
class PasteResult:
    """Records to insert for one paste."""
    nodes: list[ChartNode] = field(default_factory=list)
    geometries: dict[str, Geometry] = field(default_factory=dict)
    drawings: list[Drawing] = field(default_factory=list)

    @property
    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]

    @property
    def drawing_ids(self) -> list[str]:
        return [drawing.id for drawing in self.drawings]

    @property
    def group_ids(self) -> list[str]:
        return [node.id for node in self.nodes if node.type == "group"]


class Clipboard:
    """Transient staging area between copy and paste."""

    def __init__(self):
        self._items: list[ClipboardItem] = []

    @property
    def items(self) -> list[ClipboardItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def clear(self) -> None:
        self._items = []

    def copy(
        self,
        nodes: Mapping[str, ChartNode],
        geometries: Mapping[str, Geometry],
        drawings: Iterable[Drawing],
        node_ids: Iterable[str],
        drawing_ids: Iterable[str],
    ) -> int:
        """
        Replace the clipboard with the selected nodes and drawings.

        An empty selection leaves the previous contents untouched.
        Returns the number of items now on the clipboard.
        """
        node_ids = list(node_ids)
        drawing_ids = set(drawing_ids)
        if not node_ids and not drawing_ids:
            return len(self._items)

        items: list[ClipboardItem] = []
        for node_id in node_ids:
            node = nodes.get(node_id)
            geometry = geometries.get(node_id)
            if node is None or geometry is None:
                continue
            width, height = geometry.size_for(node.type)
            items.append(ClipboardItem(
                kind="node",
                data=node,
                bounds=Rect(geometry.x, geometry.y, width, height),
            ))

        for drawing in drawings:
            if drawing.id in drawing_ids:
                items.append(ClipboardItem(
                    kind="drawing",
                    data=drawing,
                    bounds=path_bounds(drawing.path),
                ))

        self._items = items
        return len(items)

    def paste(
        self,
        target_x: float,
        target_y: float,
        node_id_factory: Callable[[], str] = generate_node_id,
        drawing_id_factory: Callable[[], str] = generate_drawing_id,
    ) -> PasteResult:
        """Build new records placing the clipboard's top-left at (target_x, target_y)."""
        result = PasteResult()
        if not self._items:
            return result

        min_x = min(item.bounds.x for item in self._items)
        min_y = min(item.bounds.y for item in self._items)
        dx = target_x - min_x
        dy = target_y - min_y

        id_map: dict[str, str] = {}
        for item in self._items:
            if item.kind == "node":
                id_map[item.data.id] = node_id_factory()

        for item in self._items:
            if item.kind == "node":
                node = item.data
                new_id = id_map[node.id]
                result.nodes.append(node.model_copy(update={
                    "id": new_id,
                    "children": tuple(id_map[c] for c in node.children if c in id_map),
                }))
                result.geometries[new_id] = Geometry(
                    x=item.bounds.x + dx,
                    y=item.bounds.y + dy,
                    width=item.bounds.width,
                    height=item.bounds.height,
                )
            else:
                drawing = item.data
                result.drawings.append(drawing.model_copy(update={
                    "id": drawing_id_factory(),
                    "path": shift_path(drawing.path, dx, dy),
                }))

        return result
