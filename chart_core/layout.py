"""
Auto-layout for organizational charts.

Recomputes the geometry of every functional node as a top-down tree:
1. Anchor capture: text/note/shape nodes whose center sits inside a group
   remember their offset from that group's corner
2. Department sort: siblings are stably sorted by department so each
   department forms one contiguous block
3. Subtree measurement: leaves are one card wide; blocks of the same
   department get side padding, different departments a wide margin
4. Placement: parents are centered over their subtree, one level per depth
5. Everything that is not a functional node keeps its geometry
6. Group fit: each group is resized around its members plus padding
7. Anchored nodes are moved along with their group

The layout is a pure function of (nodes, geometries): it returns new
records and never mutates its inputs.
"""

from dataclasses import dataclass
from typing import Mapping, Optional

from .geometry import bounding_rect
from .membership import group_members, node_rect
from .models import ANCHORABLE_TYPES, ChartNode, FUNCTIONAL_TYPES, Geometry
from .topology import find_roots


@dataclass
class LayoutConfig:
    """Spacing constants for the tree layout (world units)."""
    card_width: float = 250        # Horizontal slot of a leaf
    level_height: float = 400      # Vertical distance between depths
    top_offset: float = 50         # y of the root row
    node_margin: float = 80        # Gap between siblings of one department
    group_padding: float = 150     # Side padding around a department block
    group_margin: float = 800      # Gap between department blocks
    root_gap: float = 200          # Extra gap between separate trees
    box_padding_side: float = 100  # Group rectangle padding
    box_padding_top: float = 100
    box_padding_bottom: float = 140  # Leaves room for the group label


@dataclass(frozen=True)
class Anchor:
    """Offset of a freeform node from its enclosing group's top-left corner."""
    group_id: str
    offset_x: float
    offset_y: float


@dataclass
class LayoutResult:
    """Nodes (with department-sorted children) and their new geometries."""
    nodes: dict[str, ChartNode]
    geometries: dict[str, Geometry]


def capture_anchors(
    nodes: Mapping[str, ChartNode],
    geometries: Mapping[str, Geometry],
) -> dict[str, Anchor]:
    """
    Find freeform nodes visually nested inside a group.

    A text/note/shape node is anchored when its center lies inside a
    group's rectangle (edges inclusive). If several groups contain it, the
    last one in store order wins, matching the group drawn on top.
    """
    groups = [
        (group, node_rect(group, geometries[group.id]))
        for group in nodes.values()
        if group.type == "group" and group.id in geometries
    ]
    anchors: dict[str, Anchor] = {}
    for node in nodes.values():
        if node.type not in ANCHORABLE_TYPES or node.id not in geometries:
            continue
        rect = node_rect(node, geometries[node.id])
        for group, group_rect in groups:
            if group_rect.contains_point(rect.cx, rect.cy):
                anchors[node.id] = Anchor(
                    group_id=group.id,
                    offset_x=rect.x - group_rect.x,
                    offset_y=rect.y - group_rect.y,
                )
    return anchors


def sort_children_by_department(nodes: Mapping[str, ChartNode]) -> dict[str, ChartNode]:
    """
    Stable-sort every children sequence by the children's department.

    Nodes without a department (or unknown ids) sort first. Returns the
    full node map with only the reordered records replaced.
    """
    def department_of(node_id: str) -> str:
        child = nodes.get(node_id)
        return child.department if child is not None else ""

    result: dict[str, ChartNode] = {}
    for node in nodes.values():
        if len(node.children) > 1:
            ordered = tuple(sorted(node.children, key=department_of))
            if ordered != node.children:
                node = node.model_copy(update={"children": ordered})
        result[node.id] = node
    return result


def department_blocks(
    nodes: Mapping[str, ChartNode],
    children: tuple[str, ...],
) -> list[tuple[str, list[str]]]:
    """Split a children sequence into runs of equal department."""
    blocks: list[tuple[str, list[str]]] = []
    for child_id in children:
        child = nodes.get(child_id)
        department = child.department if child is not None else ""
        if blocks and blocks[-1][0] == department:
            blocks[-1][1].append(child_id)
        else:
            blocks.append((department, [child_id]))
    return blocks


class _TreeLayout:
    """Measure/place recursion over one node map."""

    def __init__(
        self,
        nodes: Mapping[str, ChartNode],
        geometries: Mapping[str, Geometry],
        config: LayoutConfig,
    ):
        self.nodes = nodes
        self.geometries = geometries
        self.cfg = config
        self.placed: dict[str, Geometry] = {}
        self._widths: dict[str, float] = {}
        self._measuring: set[str] = set()

    def measure(self, node_id: str) -> float:
        """Horizontal space the subtree rooted at ``node_id`` needs."""
        if node_id in self._widths:
            return self._widths[node_id]
        node = self.nodes.get(node_id)
        if node is None:
            return 0
        if not node.children or node_id in self._measuring:
            return self.cfg.card_width

        self._measuring.add(node_id)
        total = 0.0
        blocks = department_blocks(self.nodes, node.children)
        for index, (department, members) in enumerate(blocks):
            block = sum(self.measure(child_id) for child_id in members)
            block += self.cfg.node_margin * (len(members) - 1)
            if department:
                block += self.cfg.group_padding * 2
            total += block
            if index < len(blocks) - 1:
                total += self.cfg.group_margin
        self._measuring.discard(node_id)

        self._widths[node_id] = total
        return total

    def place(self, node_id: str, x: float, depth: int) -> None:
        """Center ``node_id`` over its subtree starting at ``x``, then recurse."""
        node = self.nodes.get(node_id)
        if node is None or node_id in self.placed:
            return

        center = x + self.measure(node_id) / 2
        old = self.geometries.get(node_id, Geometry())
        width, height = old.size_for(node.type)
        self.placed[node_id] = Geometry(
            x=center - width / 2,
            y=depth * self.cfg.level_height + self.cfg.top_offset,
            width=width,
            height=height,
        )

        current_x = x
        blocks = department_blocks(self.nodes, node.children)
        for index, (department, members) in enumerate(blocks):
            if department:
                current_x += self.cfg.group_padding
            for position, child_id in enumerate(members):
                if position > 0:
                    current_x += self.cfg.node_margin
                child_width = self.measure(child_id)
                self.place(child_id, current_x, depth + 1)
                current_x += child_width
            if department:
                current_x += self.cfg.group_padding
            if index < len(blocks) - 1:
                current_x += self.cfg.group_margin


def fit_group(
    group: ChartNode,
    members: list[ChartNode],
    geometries: Mapping[str, Geometry],
    config: LayoutConfig,
) -> Optional[Geometry]:
    """Rectangle around the members' geometries plus padding; None if no members."""
    bounds = bounding_rect(
        node_rect(member, geometries[member.id])
        for member in members
        if member.id in geometries
    )
    if bounds is None:
        return None
    return Geometry(
        x=bounds.x - config.box_padding_side,
        y=bounds.y - config.box_padding_top,
        width=bounds.width + config.box_padding_side * 2,
        height=bounds.height + config.box_padding_top + config.box_padding_bottom,
    )


def auto_layout(
    nodes: Mapping[str, ChartNode],
    geometries: Mapping[str, Geometry],
    config: LayoutConfig | None = None,
) -> LayoutResult:
    """
    Lay out the functional hierarchy as a tree.

    Args:
        nodes: Current node map (store order is the layout order)
        geometries: Current geometry map, same keys as ``nodes``
        config: Spacing constants

    Returns:
        LayoutResult with every node (children re-sorted by department)
        and a geometry for every node
    """
    cfg = config or LayoutConfig()

    anchors = capture_anchors(nodes, geometries)
    sorted_nodes = sort_children_by_department(nodes)

    tree = _TreeLayout(sorted_nodes, geometries, cfg)
    root_x = 0.0
    for root_id in find_roots(sorted_nodes):
        width = tree.measure(root_id)
        tree.place(root_id, root_x, 0)
        root_x += width + cfg.group_margin + cfg.root_gap

    new_geometries: dict[str, Geometry] = {}
    for node_id, old in geometries.items():
        node = sorted_nodes.get(node_id)
        if node is not None and node.type in FUNCTIONAL_TYPES and node_id in tree.placed:
            new_geometries[node_id] = tree.placed[node_id]
        else:
            new_geometries[node_id] = old

    for group in sorted_nodes.values():
        if group.type != "group":
            continue
        fitted = fit_group(group, group_members(sorted_nodes, group), new_geometries, cfg)
        if fitted is not None:
            new_geometries[group.id] = fitted

    for node_id, anchor in anchors.items():
        group_geometry = new_geometries.get(anchor.group_id)
        if group_geometry is None or node_id not in new_geometries:
            continue
        new_geometries[node_id] = new_geometries[node_id].model_copy(update={
            "x": group_geometry.x + anchor.offset_x,
            "y": group_geometry.y + anchor.offset_y,
        })

    return LayoutResult(nodes=sorted_nodes, geometries=new_geometries)
