"""
Built-in chart templates.

Templates return raw records; positions are placeholders that the
auto-layout replaces when the template is loaded.
"""

from dataclasses import dataclass, field
from typing import Callable

from .errors import UnknownTemplateError
from .models import ChartNode, Geometry, make_node

PERSON_STYLE = {
    "background_color": "#ffffff",
    "border_color": "#cbd5e1",
    "border_width": 2,
    "name_color": "#0f172a",
    "role_color": "#475569",
    "department_color": "#64748b",
    "level": "P4 - Facilitar",
    "avatar_icon": "person",
}

GROUP_STYLE = {
    "background_color": "#fef9c3",
    "border_color": "#fde047",
    "border_width": 2,
    "name_color": "#854d0e",
    "border_radius": 16,
}


@dataclass
class ChartTemplate:
    nodes: dict[str, ChartNode] = field(default_factory=dict)
    geometries: dict[str, Geometry] = field(default_factory=dict)

    def add_person(self, node_id, name, role, node_type, department, x, y, children=(), **options):
        self.nodes[node_id] = make_node(
            node_type, node_id=node_id, name=name, role=role,
            department=department, children=tuple(children),
            **{**PERSON_STYLE, **options},
        )
        self.geometries[node_id] = Geometry(x=x, y=y, width=208, height=100)

    def add_group(self, node_id, name, x, y, width, height):
        self.nodes[node_id] = make_node("group", node_id=node_id, name=name, **GROUP_STYLE)
        self.geometries[node_id] = Geometry(x=x, y=y, width=width, height=height)


def functional_chart() -> ChartTemplate:
    """A small company: a CEO over two departments of two teams each."""
    t = ChartTemplate()
    t.add_group("g1", "Management", 500, 50, 300, 300)
    t.add_group("g2", "Growth", 200, 250, 300, 300)
    t.add_group("g3", "Product", 800, 250, 300, 300)

    t.add_person("1", "Sarah Connor", "CEO / Founder", "executive", "Management", 600, 50,
                 ["2", "3"], avatar_icon="👩‍💼")
    t.add_person("2", "James Wright", "Marketing VP", "manager", "Growth", 350, 250, ["2-1", "2-2"])
    t.add_person("2-1", "Growth Team", "Lead", "employee", "Growth", 250, 450)
    t.add_person("2-2", "Brand Team", "Lead", "employee", "Growth", 450, 450)
    t.add_person("3", "Emily Chen", "Engineering VP", "manager", "Product", 850, 250, ["3-1", "3-2"])
    t.add_person("3-1", "Frontend", "Team A", "employee", "Product", 750, 450)
    t.add_person("3-2", "Backend", "Team B", "employee", "Product", 950, 450)
    return t


def whiteboard() -> ChartTemplate:
    """An empty canvas."""
    return ChartTemplate()


TEMPLATES: dict[str, Callable[[], ChartTemplate]] = {
    "functional": functional_chart,
    "whiteboard": whiteboard,
}


def get_template(name: str) -> ChartTemplate:
    try:
        factory = TEMPLATES[name]
    except KeyError:
        raise UnknownTemplateError(
            f"Unknown template: {name} (available: {', '.join(TEMPLATES)})"
        ) from None
    return factory()
