"""
Topology - the parent → children hierarchy stored inside node records.

All functions are pure: they read a node map and return the node records
that must change. The hierarchy is a single-parent tree:
- linking never creates a cycle
- linking detaches the child from any previous parent first
- removing a node strips it from every ``children`` sequence
"""

from typing import Mapping, Optional

from .errors import CycleError, NodeNotFoundError
from .models import ChartNode, FUNCTIONAL_TYPES


def iter_descendants(nodes: Mapping[str, ChartNode], root_id: str):
    """Yield descendant ids of ``root_id`` depth-first, in document order."""
    root = nodes.get(root_id)
    if root is None:
        return
    seen: set[str] = set()
    stack = list(reversed(root.children))
    while stack:
        node_id = stack.pop()
        if node_id in seen:
            continue
        seen.add(node_id)
        yield node_id
        child = nodes.get(node_id)
        if child is not None:
            stack.extend(reversed(child.children))


def is_descendant(nodes: Mapping[str, ChartNode], root_id: str, search_id: str) -> bool:
    """True if ``search_id`` is reachable from ``root_id`` via ``children``."""
    return any(node_id == search_id for node_id in iter_descendants(nodes, root_id))


def parent_of(nodes: Mapping[str, ChartNode], child_id: str) -> Optional[str]:
    """Id of the node listing ``child_id`` in its children, if any."""
    for node in nodes.values():
        if child_id in node.children:
            return node.id
    return None


def detach(nodes: Mapping[str, ChartNode], child_id: str) -> dict[str, ChartNode]:
    """Strip ``child_id`` from every children sequence that lists it."""
    changed: dict[str, ChartNode] = {}
    for node in nodes.values():
        if child_id in node.children:
            changed[node.id] = node.model_copy(update={
                "children": tuple(c for c in node.children if c != child_id),
            })
    return changed


def link(
    nodes: Mapping[str, ChartNode],
    source_id: str,
    target_id: str,
) -> dict[str, ChartNode]:
    """
    Make ``target_id`` the last child of ``source_id``.

    Returns the changed node records; an empty dict means the call was a
    no-op (self-link or edge already present).

    Raises:
        NodeNotFoundError: if either id is unknown
        CycleError: if ``source_id`` is already a descendant of ``target_id``
    """
    if source_id not in nodes:
        raise NodeNotFoundError(source_id)
    if target_id not in nodes:
        raise NodeNotFoundError(target_id)
    if source_id == target_id:
        return {}

    source = nodes[source_id]
    if target_id in source.children:
        return {}

    if is_descendant(nodes, target_id, source_id):
        raise CycleError(source_id, target_id)

    changed = detach(nodes, target_id)
    source = changed.get(source_id, source)
    changed[source_id] = source.model_copy(update={
        "children": source.children + (target_id,),
    })
    return changed


def unlink(
    nodes: Mapping[str, ChartNode],
    source_id: str,
    target_id: str,
) -> dict[str, ChartNode]:
    """Remove ``target_id`` from ``source_id``'s children; empty dict if absent."""
    source = nodes.get(source_id)
    if source is None or target_id not in source.children:
        return {}
    return {
        source_id: source.model_copy(update={
            "children": tuple(c for c in source.children if c != target_id),
        })
    }


def strip_dangling(nodes: Mapping[str, ChartNode]) -> dict[str, ChartNode]:
    """Drop children ids that do not resolve to a node."""
    changed: dict[str, ChartNode] = {}
    for node in nodes.values():
        kept = tuple(c for c in node.children if c in nodes)
        if kept != node.children:
            changed[node.id] = node.model_copy(update={"children": kept})
    return changed


def find_roots(nodes: Mapping[str, ChartNode]) -> list[str]:
    """Functional nodes that no ``children`` sequence references, in store order."""
    referenced: set[str] = set()
    for node in nodes.values():
        referenced.update(node.children)
    return [
        node.id for node in nodes.values()
        if node.id not in referenced and node.type in FUNCTIONAL_TYPES
    ]


def find_cycle_nodes(nodes: Mapping[str, ChartNode]) -> set[str]:
    """Ids of nodes that can reach themselves through ``children``."""
    return {node_id for node_id in nodes if is_descendant(nodes, node_id, node_id)}
