"""
Chart Core - Shared models, geometry, topology, membership, layout and history.

This module provides the chart state engine's building blocks used by both
the backend API and the MCP tools, ensuring a single source of truth for
all chart logic.
"""

from .models import (
    # Enums
    NodeType,
    ShapeType,
    AvatarType,
    FUNCTIONAL_TYPES,
    # Core models
    ChartNode,
    FunctionalNode,
    ShapeNode,
    TextNode,
    GroupNode,
    Geometry,
    Drawing,
    ChartEdge,
    ChartDocument,
    make_node,
    parse_node,
    # Request models (for API)
    CreateNodeRequest,
    UpdateNodeRequest,
    MoveNodeRequest,
    ResizeNodeRequest,
    LinkRequest,
    SelectionRequest,
    PasteRequest,
    CreateDrawingRequest,
    TemplateRequest,
    FilePathRequest,
)
from .errors import (
    ChartError,
    NodeNotFoundError,
    CycleError,
    DrawingNotFoundError,
    ImportValidationError,
    ImportApplyError,
    UnknownTemplateError,
)
from .geometry import Rect, overlap_area, path_bounds, shift_path, smooth_path
from .store import ChartSnapshot, EntityStore
from .history import History
from .clipboard import Clipboard
from .layout import LayoutConfig, auto_layout
from .validation import validate_chart, validation_summary, ValidationIssue, IssueSeverity

__all__ = [
    # Enums
    "NodeType",
    "ShapeType",
    "AvatarType",
    "FUNCTIONAL_TYPES",
    # Models
    "ChartNode",
    "FunctionalNode",
    "ShapeNode",
    "TextNode",
    "GroupNode",
    "Geometry",
    "Drawing",
    "ChartEdge",
    "ChartDocument",
    "make_node",
    "parse_node",
    # Request models
    "CreateNodeRequest",
    "UpdateNodeRequest",
    "MoveNodeRequest",
    "ResizeNodeRequest",
    "LinkRequest",
    "SelectionRequest",
    "PasteRequest",
    "CreateDrawingRequest",
    "TemplateRequest",
    "FilePathRequest",
    # Errors
    "ChartError",
    "NodeNotFoundError",
    "CycleError",
    "DrawingNotFoundError",
    "ImportValidationError",
    "ImportApplyError",
    "UnknownTemplateError",
    # Geometry
    "Rect",
    "overlap_area",
    "path_bounds",
    "shift_path",
    "smooth_path",
    # Engine parts
    "ChartSnapshot",
    "EntityStore",
    "History",
    "Clipboard",
    "LayoutConfig",
    "auto_layout",
    # Validation
    "validate_chart",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
]
