"""
Group membership - infer a functional node's department from geometry.

A functional node belongs to the group whose rectangle overlaps it the
most. Departments are plain strings equal to a group's name, so renaming
a group must be propagated to its members.

Tie-break: groups are visited in store (insertion) order and only a
strictly larger overlap replaces the current best, so the earliest group
wins a tie.
"""

from typing import Mapping, Optional

from .geometry import Rect, overlap_area
from .models import ChartNode, FUNCTIONAL_TYPES, Geometry


def node_rect(node: ChartNode, geometry: Geometry) -> Rect:
    """Rectangle of a node, using the type's default size when unsized."""
    width, height = geometry.size_for(node.type)
    return Rect(geometry.x, geometry.y, width, height)


def _with_department(node: ChartNode, department: str) -> ChartNode:
    return node.model_copy(update={"department": department})


def update_group_membership(
    nodes: Mapping[str, ChartNode],
    geometries: Mapping[str, Geometry],
    group_id: str,
) -> dict[str, ChartNode]:
    """
    Re-evaluate every functional node against one group.

    Nodes touching the group adopt its name; nodes that carry the group's
    name but no longer touch it are orphaned. Returns changed records.
    """
    group = nodes.get(group_id)
    group_geometry = geometries.get(group_id)
    if group is None or group_geometry is None or group.type != "group":
        return {}

    group_rect = node_rect(group, group_geometry)
    changed: dict[str, ChartNode] = {}
    for node in nodes.values():
        if node.type not in FUNCTIONAL_TYPES or node.id == group_id:
            continue
        geometry = geometries.get(node.id)
        if geometry is None:
            continue
        if overlap_area(group_rect, node_rect(node, geometry)) > 0:
            if node.department != group.name:
                changed[node.id] = _with_department(node, group.name)
        elif node.department == group.name:
            changed[node.id] = _with_department(node, "")
    return changed


def best_group(
    nodes: Mapping[str, ChartNode],
    geometries: Mapping[str, Geometry],
    node_id: str,
) -> Optional[ChartNode]:
    """The group overlapping ``node_id`` the most, or None."""
    node = nodes[node_id]
    rect = node_rect(node, geometries[node_id])
    best: Optional[ChartNode] = None
    max_overlap = 0.0
    for group in nodes.values():
        if group.type != "group" or group.id == node_id:
            continue
        group_geometry = geometries.get(group.id)
        if group_geometry is None:
            continue
        overlap = overlap_area(rect, node_rect(group, group_geometry))
        if overlap > max_overlap:
            max_overlap = overlap
            best = group
    return best


def update_node_membership(
    nodes: Mapping[str, ChartNode],
    geometries: Mapping[str, Geometry],
    node_id: str,
) -> dict[str, ChartNode]:
    """Re-evaluate one functional node against all groups."""
    node = nodes.get(node_id)
    if node is None or node_id not in geometries or node.type not in FUNCTIONAL_TYPES:
        return {}

    group = best_group(nodes, geometries, node_id)
    department = group.name if group is not None else ""
    if node.department == department:
        return {}
    return {node_id: _with_department(node, department)}


def rename_department(
    nodes: Mapping[str, ChartNode],
    old_name: str,
    new_name: str,
) -> dict[str, ChartNode]:
    """Move every functional node tagged ``old_name`` over to ``new_name``.

    An empty name means "no department" and never matches.
    """
    if not old_name or old_name == new_name:
        return {}
    return {
        node.id: _with_department(node, new_name)
        for node in nodes.values()
        if node.type in FUNCTIONAL_TYPES and node.department == old_name
    }


def group_members(nodes: Mapping[str, ChartNode], group: ChartNode) -> list[ChartNode]:
    """Functional nodes whose department names ``group``."""
    return [
        node for node in nodes.values()
        if node.type in FUNCTIONAL_TYPES
        and node.id != group.id
        and node.department == group.name
    ]
