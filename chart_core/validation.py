"""
Chart validation - Check charts for structural issues.

Provides validation that can be used by both the backend and MCP tools
to ensure chart integrity, and the shape check applied to import payloads
before any state is touched.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from .errors import ImportValidationError
from .models import ChartNode, Drawing, FUNCTIONAL_TYPES, Geometry
from .topology import find_cycle_nodes


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a chart."""
    severity: IssueSeverity
    message: str
    node_id: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.node_id:
            result["node_id"] = self.node_id
        return result


def validate_chart(
    nodes: Mapping[str, ChartNode],
    geometries: Mapping[str, Geometry],
    drawings: Iterable[Drawing] = (),
) -> list[ValidationIssue]:
    """
    Validate a chart and return a list of issues.

    Checks for:
    - Nodes without geometry / geometry without node - ERROR
    - Children that do not resolve to a node - ERROR
    - Cycles in the hierarchy - ERROR
    - Nodes listed under more than one parent - ERROR
    - Departments that match no group name - WARNING
    - Empty chart - INFO

    Args:
        nodes: Node map
        geometries: Geometry map
        drawings: Freehand drawings

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    if not nodes and not list(drawings):
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Chart is empty"
        ))
        return issues

    for node_id in nodes.keys() - geometries.keys():
        issues.append(ValidationIssue(
            severity=IssueSeverity.ERROR,
            message="Node has no geometry",
            node_id=node_id
        ))
    for node_id in geometries.keys() - nodes.keys():
        issues.append(ValidationIssue(
            severity=IssueSeverity.ERROR,
            message="Geometry references non-existent node",
            node_id=node_id
        ))

    parents: dict[str, list[str]] = {}
    for node in nodes.values():
        for child_id in node.children:
            if child_id not in nodes:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    message=f"Child references non-existent node: {child_id}",
                    node_id=node.id
                ))
            parents.setdefault(child_id, []).append(node.id)

    for child_id, parent_ids in parents.items():
        if len(parent_ids) > 1:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Node has multiple parents: {', '.join(parent_ids)}",
                node_id=child_id
            ))

    for node_id in sorted(find_cycle_nodes(nodes)):
        issues.append(ValidationIssue(
            severity=IssueSeverity.ERROR,
            message="Node is part of a cycle",
            node_id=node_id
        ))

    group_names = {n.name for n in nodes.values() if n.type == "group"}
    for node in nodes.values():
        if node.type in FUNCTIONAL_TYPES and node.department and node.department not in group_names:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Department '{node.department}' matches no group",
                node_id=node.id
            ))

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    errors = len([i for i in issues if i.severity == IssueSeverity.ERROR])
    return {
        "total": len(issues),
        "errors": errors,
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": errors == 0
    }


def check_import_payload(data: Any) -> None:
    """
    Reject payloads that are not shaped like an export.

    ``nodes`` and ``positions`` must be arrays of [id, record] pairs
    covering the same ids; ``drawings`` is optional.

    Raises:
        ImportValidationError: describing the first problem found
    """
    if not isinstance(data, dict):
        raise ImportValidationError("Invalid JSON format for import: expected an object")
    for key in ("nodes", "positions"):
        if not isinstance(data.get(key), list):
            raise ImportValidationError(f"Invalid JSON format for import: '{key}' must be an array")

    def ids_of(key: str) -> list[str]:
        ids = []
        for entry in data[key]:
            if not (isinstance(entry, (list, tuple)) and len(entry) == 2 and isinstance(entry[0], str)):
                raise ImportValidationError(
                    f"Invalid JSON format for import: '{key}' entries must be [id, record] pairs"
                )
            ids.append(entry[0])
        return ids

    node_ids = ids_of("nodes")
    position_ids = ids_of("positions")
    if len(set(node_ids)) != len(node_ids):
        raise ImportValidationError("Invalid JSON format for import: duplicate node ids")
    if set(node_ids) != set(position_ids):
        raise ImportValidationError("Invalid JSON format for import: nodes and positions do not match")
    if "drawings" in data and data["drawings"] is not None and not isinstance(data["drawings"], list):
        raise ImportValidationError("Invalid JSON format for import: 'drawings' must be an array")
