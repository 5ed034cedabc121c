"""
Core data models for charts.

These models define the canonical schema for a chart:
- Nodes, a discriminated union on ``type`` (functional cards, shapes/notes,
  free text and group areas)
- Geometries, one per node, in world coordinates
- Freehand drawings carrying an SVG-style path
- The export document used for file save/load

Field Naming Convention:
- Python code uses snake_case attribute names
- JSON serialization uses camelCase aliases (``avatarType``, ``shapeType``,
  ``strokeWidth``...) so exported files stay compatible with older exports
- Either spelling is accepted on input

All records are frozen. Hierarchy edges live only in ``children`` and are
stored as tuples, so a record handed out by the store can never be mutated
behind the engine's back.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union, get_args
import uuid

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


class NodeType(str, Enum):
    """Discriminant for chart nodes."""
    EXECUTIVE = "executive"
    MANAGER = "manager"
    EMPLOYEE = "employee"
    NOTE = "note"
    SHAPE = "shape"
    GROUP = "group"
    TEXT = "text"


class ShapeType(str, Enum):
    """Outline drawn for shape and note nodes."""
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    TRIANGLE = "triangle"
    STAR = "star"
    DIAMOND = "diamond"


class AvatarType(str, Enum):
    IMAGE = "image"
    ICON = "icon"


# Nodes that take part in the hierarchy and the tree layout
FUNCTIONAL_TYPES = frozenset({"executive", "manager", "employee"})

# Freeform nodes that ride along with an enclosing group on relayout
ANCHORABLE_TYPES = frozenset({"text", "note", "shape"})

# Width/height used whenever a geometry does not carry its own size
DEFAULT_SIZES: dict[str, tuple[float, float]] = {
    "executive": (208, 100),
    "manager": (208, 100),
    "employee": (208, 100),
    "note": (200, 200),
    "shape": (150, 150),
    "group": (300, 300),
    "text": (150, 50),
}

DEFAULT_NAMES: dict[str, str] = {
    "note": "New Note",
    "shape": "New Shape",
    "group": "New Area",
    "text": "Type text...",
}


def default_size(node_type: str) -> tuple[float, float]:
    """Fallback (width, height) for a node type."""
    return DEFAULT_SIZES.get(node_type, (208, 100))


def generate_node_id() -> str:
    """Generate a unique node ID."""
    return f"n{uuid.uuid4().hex[:8]}"


def generate_drawing_id() -> str:
    """Generate a unique drawing ID."""
    return f"d{uuid.uuid4().hex[:8]}"


class ChartModel(BaseModel):
    """Base configuration shared by every chart record."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Nodes ---

class BaseNode(ChartModel):
    """Fields common to every node variant."""
    id: str = Field(default_factory=generate_node_id)
    name: str = ""
    role: str = ""
    department: str = ""
    children: tuple[str, ...] = ()
    # Styling
    background_color: str = "#ffffff"
    border_color: str = "#cbd5e1"
    border_width: float = 2
    name_color: str = "#0f172a"
    role_color: str = "#475569"
    department_color: str = "#64748b"

    @field_validator("department", "role", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("children", mode="before")
    @classmethod
    def _none_to_no_children(cls, value: Any) -> Any:
        return () if value is None else value

    def to_json_dict(self) -> dict:
        """Like the base dump, but null fields are kept so they survive a round trip."""
        return self.model_dump(mode="json", by_alias=True)

    @property
    def is_functional(self) -> bool:
        return self.type in FUNCTIONAL_TYPES

    @property
    def is_group(self) -> bool:
        return self.type == NodeType.GROUP.value


class FunctionalNode(BaseNode):
    """A person or team card in the organizational hierarchy."""
    type: Literal["executive", "manager", "employee"] = "employee"
    name: str = "New Role"
    role: str = "Position"
    level: Optional[str] = "P0 - Egresado"
    avatar_type: AvatarType = AvatarType.ICON
    avatar_image: Optional[str] = None
    avatar_icon: Optional[str] = "person"


class TypographyFields(BaseNode):
    """Text styling shared by node variants that carry free text."""
    font_size: float = 14
    font_family: str = "sans-serif"
    font_weight: str = "normal"
    font_style: str = "normal"
    text_decoration: str = "none"
    text_align: Literal["left", "center", "right"] = "center"


class ShapeNode(TypographyFields):
    """A sticky note or a geometric shape."""
    type: Literal["note", "shape"] = "shape"
    name: str = "New Shape"
    shape_type: ShapeType = ShapeType.RECTANGLE
    border_radius: float = 8


class TextNode(TypographyFields):
    """A free-floating text label."""
    type: Literal["text"] = "text"
    name: str = "Type text..."
    background_color: str = "transparent"
    border_width: float = 0


class GroupNode(BaseNode):
    """A rectangular area whose name tags the functional nodes it overlaps."""
    type: Literal["group"] = "group"
    name: str = "New Area"
    background_color: str = "transparent"
    name_color: str = "#64748b"
    border_radius: float = 16


ChartNode = Annotated[
    Union[FunctionalNode, ShapeNode, TextNode, GroupNode],
    Field(discriminator="type"),
]

_node_adapter: TypeAdapter = TypeAdapter(ChartNode)

_VARIANTS_BY_TYPE: dict[str, type[BaseNode]] = {
    node_type: variant
    for variant in (FunctionalNode, ShapeNode, TextNode, GroupNode)
    for node_type in get_args(variant.model_fields["type"].annotation)
}

# Every accepted input key (field name or alias) mapped to its field name
_FIELD_NAMES: dict[str, str] = {}
for _variant in _VARIANTS_BY_TYPE.values():
    for _name, _info in _variant.model_fields.items():
        _FIELD_NAMES[_name] = _name
        if _info.alias:
            _FIELD_NAMES[_info.alias] = _name


def parse_node(data: Any) -> "ChartNode":
    """Validate a dict (or an existing node) into the matching node variant."""
    if isinstance(data, BaseNode):
        return data
    return _node_adapter.validate_python(data)


def normalize_node_fields(changes: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase/snake_case keys to field names, dropping unknown keys."""
    result: dict[str, Any] = {}
    for key, value in changes.items():
        name = _FIELD_NAMES.get(key)
        if name is not None and name != "id":
            result[name] = value
    return result


def make_node(node_type: str, node_id: Optional[str] = None, **fields: Any) -> "ChartNode":
    """Build a new node of ``node_type`` with variant defaults."""
    if isinstance(node_type, Enum):
        node_type = node_type.value
    data = normalize_node_fields(fields)
    data["type"] = node_type
    if node_id is not None:
        data["id"] = node_id
    if node_type not in FUNCTIONAL_TYPES and node_type in DEFAULT_NAMES:
        data.setdefault("name", DEFAULT_NAMES[node_type])
    return parse_node(data)


def update_node_fields(node: "ChartNode", changes: dict[str, Any]) -> "ChartNode":
    """Return a copy of ``node`` with ``changes`` applied and re-validated.

    Keys the node's variant does not know are ignored, so a partial update
    applied to a mixed selection only touches the fields each node has.
    A change of ``type`` may move the node to another variant.
    """
    normalized = normalize_node_fields(changes)
    target_type = normalized.get("type", node.type)
    if isinstance(target_type, Enum):
        target_type = target_type.value
    variant = _VARIANTS_BY_TYPE.get(target_type)
    if variant is None:
        raise ValueError(f"Unknown node type: {target_type}")
    data = {k: v for k, v in node.model_dump().items() if k in variant.model_fields}
    for key, value in normalized.items():
        if key in variant.model_fields:
            data[key] = value
    data["type"] = target_type
    return parse_node(data)


# --- Geometry & drawings ---

class Geometry(ChartModel):
    """Position (and optional size) of a node in world coordinates."""
    x: float = 0
    y: float = 0
    width: Optional[float] = None
    height: Optional[float] = None

    def size_for(self, node_type: str) -> tuple[float, float]:
        """Resolve (width, height), falling back to the type's default size."""
        dw, dh = default_size(node_type)
        return (self.width or dw, self.height or dh)


class Drawing(ChartModel):
    """A freehand stroke."""
    id: str = Field(default_factory=generate_drawing_id)
    path: str = ""  # SVG path 'd' attribute (M, L, Q, C commands)
    color: str = "#0f172a"
    stroke_width: float = 3


class ChartEdge(ChartModel):
    """A parent → child edge, derived from ``children`` on every read."""
    id: str
    source_id: str
    target_id: str


# --- Export document ---

class ChartDocument(ChartModel):
    """
    The snapshot export format.
    This is what gets saved to/loaded from JSON files.
    """
    nodes: list[tuple[str, ChartNode]] = Field(default_factory=list)
    positions: list[tuple[str, Geometry]] = Field(default_factory=list)
    drawings: list[Drawing] = Field(default_factory=list)

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict (ordered [id, record] pairs)."""
        return {
            "nodes": [[nid, node.to_json_dict()] for nid, node in self.nodes],
            "positions": [[nid, pos.to_json_dict()] for nid, pos in self.positions],
            "drawings": [d.to_json_dict() for d in self.drawings],
        }

    @classmethod
    def from_json_dict(cls, data: dict) -> "ChartDocument":
        """Create a document from a JSON dict (drawings optional in older exports)."""
        drawings = data.get("drawings")
        nodes = [
            (nid, {"id": nid, **record} if isinstance(record, dict) else record)
            for nid, record in data["nodes"]
        ]
        return cls(
            nodes=nodes,
            positions=data["positions"],
            drawings=drawings if isinstance(drawings, list) else [],
        )


# --- API Request/Response Models ---

class CreateNodeRequest(BaseModel):
    """Request to create a new node."""
    type: NodeType = NodeType.EMPLOYEE
    x: float = 100
    y: float = 100
    options: dict[str, Any] = Field(default_factory=dict)
    width: Optional[float] = None
    height: Optional[float] = None


class UpdateNodeRequest(BaseModel):
    """Partial update applied to every selected node."""
    model_config = ConfigDict(extra="allow")


class MoveNodeRequest(BaseModel):
    x: float
    y: float
    record_history: bool = True


class ResizeNodeRequest(BaseModel):
    width: float
    height: float
    record_history: bool = True


class LinkRequest(BaseModel):
    """Request to link a parent (source) to a child (target)."""
    source_id: str
    target_id: str


class SelectionRequest(BaseModel):
    node_ids: list[str] = Field(default_factory=list)
    drawing_ids: list[str] = Field(default_factory=list)
    edge_id: Optional[str] = None


class PasteRequest(BaseModel):
    x: float
    y: float


class CreateDrawingRequest(BaseModel):
    """Either a ready path or raw pointer samples to smooth."""
    path: Optional[str] = None
    points: Optional[list[tuple[float, float]]] = None
    color: str = "#0f172a"
    stroke_width: float = 3


class TemplateRequest(BaseModel):
    name: str = "functional"


class FilePathRequest(BaseModel):
    file_path: str
