"""
Entity store - owns nodes, geometries and drawings.

The store is the only holder of chart state. It guarantees that the node
and geometry maps always have the same keys, and every read returns a
fresh container, so callers can iterate a snapshot while the engine keeps
writing. Records themselves are frozen pydantic models, which makes the
shallow container copies safe to share.

No topology or geometry semantics are checked here; that belongs to the
topology, membership and layout modules.
"""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from .errors import ChartError, NodeNotFoundError
from .models import ChartEdge, ChartNode, Drawing, Geometry


@dataclass(frozen=True)
class ChartSnapshot:
    """An immutable copy of the whole store, the unit of undo/redo."""
    nodes: dict[str, ChartNode] = field(default_factory=dict)
    geometries: dict[str, Geometry] = field(default_factory=dict)
    drawings: tuple[Drawing, ...] = ()


class EntityStore:
    """
    Single-writer container for chart records.

    Features:
    - O(1) node/geometry lookups by id
    - Insertion-ordered maps (export and layout order)
    - Copy-on-read snapshots
    """

    def __init__(self):
        self._nodes: dict[str, ChartNode] = {}
        self._geometries: dict[str, Geometry] = {}
        self._drawings: list[Drawing] = []

    # --- Reads ---

    @property
    def nodes(self) -> dict[str, ChartNode]:
        """Copy of the node map."""
        return dict(self._nodes)

    @property
    def geometries(self) -> dict[str, Geometry]:
        """Copy of the geometry map."""
        return dict(self._geometries)

    @property
    def drawings(self) -> list[Drawing]:
        """Copy of the drawing list."""
        return list(self._drawings)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get_node(self, node_id: str) -> Optional[ChartNode]:
        """Get a node by ID (O(1) lookup)."""
        return self._nodes.get(node_id)

    def get_geometry(self, node_id: str) -> Optional[Geometry]:
        """Get a node's geometry by ID (O(1) lookup)."""
        return self._geometries.get(node_id)

    def get_drawing(self, drawing_id: str) -> Optional[Drawing]:
        for drawing in self._drawings:
            if drawing.id == drawing_id:
                return drawing
        return None

    def snapshot(self) -> ChartSnapshot:
        return ChartSnapshot(
            nodes=dict(self._nodes),
            geometries=dict(self._geometries),
            drawings=tuple(self._drawings),
        )

    def edges(self) -> list[ChartEdge]:
        """Parent → child edges, skipping children that no longer resolve."""
        edges: list[ChartEdge] = []
        for node in self._nodes.values():
            for child_id in node.children:
                if child_id in self._nodes:
                    edges.append(ChartEdge(
                        id=f"{node.id}-{child_id}",
                        source_id=node.id,
                        target_id=child_id,
                    ))
        return edges

    # --- Writes ---

    def replace_all(
        self,
        nodes: Mapping[str, ChartNode],
        geometries: Mapping[str, Geometry],
        drawings: Iterable[Drawing],
    ) -> None:
        """Swap in a complete new state. Rejects mismatched key sets."""
        if set(nodes) != set(geometries):
            missing = sorted(set(nodes) ^ set(geometries))
            raise ChartError(f"Nodes and geometries do not match for ids: {', '.join(missing)}")
        self._nodes = dict(nodes)
        self._geometries = dict(geometries)
        self._drawings = list(drawings)

    def restore(self, snapshot: ChartSnapshot) -> None:
        self.replace_all(snapshot.nodes, snapshot.geometries, snapshot.drawings)

    def clear(self) -> None:
        self._nodes = {}
        self._geometries = {}
        self._drawings = []

    def add_node(self, node: ChartNode, geometry: Geometry) -> None:
        """Insert a node together with its geometry."""
        if node.id in self._nodes:
            raise ChartError(f"Duplicate node id: {node.id}")
        self._nodes[node.id] = node
        self._geometries[node.id] = geometry

    def set_node(self, node: ChartNode) -> None:
        """Replace an existing node record."""
        if node.id not in self._nodes:
            raise NodeNotFoundError(node.id)
        self._nodes[node.id] = node

    def set_nodes(self, nodes: Iterable[ChartNode]) -> None:
        """Replace several existing node records at once."""
        nodes = list(nodes)
        for node in nodes:
            if node.id not in self._nodes:
                raise NodeNotFoundError(node.id)
        for node in nodes:
            self._nodes[node.id] = node

    def set_geometry(self, node_id: str, geometry: Geometry) -> None:
        """Replace the geometry of an existing node."""
        if node_id not in self._nodes:
            raise NodeNotFoundError(node_id)
        self._geometries[node_id] = geometry

    def set_geometries(self, geometries: Mapping[str, Geometry]) -> None:
        for node_id in geometries:
            if node_id not in self._nodes:
                raise NodeNotFoundError(node_id)
        self._geometries.update(geometries)

    def remove_node(self, node_id: str) -> None:
        """Remove a node and its geometry (callers strip edges first)."""
        if node_id not in self._nodes:
            raise NodeNotFoundError(node_id)
        del self._nodes[node_id]
        del self._geometries[node_id]

    def append_drawing(self, drawing: Drawing) -> None:
        self._drawings.append(drawing)

    def replace_drawing(self, drawing: Drawing) -> None:
        self._drawings = [drawing if d.id == drawing.id else d for d in self._drawings]

    def remove_drawings(self, drawing_ids: Iterable[str]) -> int:
        """Remove drawings by id; returns how many were removed."""
        doomed = set(drawing_ids)
        before = len(self._drawings)
        self._drawings = [d for d in self._drawings if d.id not in doomed]
        return before - len(self._drawings)
