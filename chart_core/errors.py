"""
Chart errors.

Every error subclasses ValueError so callers that only care about
"the command was rejected" can keep catching ValueError.
"""


class ChartError(ValueError):
    """Base class for rejected chart commands."""


class NodeNotFoundError(ChartError):
    """A command referenced a node id that is not in the store."""

    def __init__(self, node_id: str):
        super().__init__(f"Node not found: {node_id}")
        self.node_id = node_id


class CycleError(ChartError):
    """Linking would make a node its own ancestor."""

    def __init__(self, source_id: str, target_id: str):
        super().__init__(
            f"Cannot connect {source_id} -> {target_id}: this would create a cycle"
        )
        self.source_id = source_id
        self.target_id = target_id


class ImportValidationError(ChartError):
    """Import payload rejected before any state was touched."""


class ImportApplyError(ChartError):
    """Import failed while being applied; the chart was rolled back."""


class UnknownTemplateError(ChartError):
    """Requested chart template does not exist."""


class DrawingNotFoundError(ChartError):
    """A command referenced a drawing id that is not in the store."""

    def __init__(self, drawing_id: str):
        super().__init__(f"Drawing not found: {drawing_id}")
        self.drawing_id = drawing_id
