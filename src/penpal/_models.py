"""Graph and project document models.

These are the editor-facing, serializable shapes: nodes carry only data
(type tag, property values, flags). Compute functions live in the node
type registry and are looked up by `Node.type`.
"""

from __future__ import annotations

from enum import StrEnum, auto
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


PROJECT_FORMAT_VERSION = "1.0"


class PropertyKind(StrEnum):
    """The kind of a node property. Drives editor widgets and value coercion."""

    FLOAT = auto()
    INT = auto()
    VEC2 = auto()
    COLOR = auto()
    STRING = auto()
    CODE = auto()
    FILE = auto()
    MENU = auto()
    BOOLEAN = auto()
    MODIFICATIONS = auto()  # edit log carried by the Edit node
    INTERNAL = auto()  # operator state, never user-editable


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MenuOption(_CamelModel):
    value: str
    label: str


class Property(_CamelModel):
    """A configured property value on a node, plus the hints the editor shows."""

    kind: PropertyKind = Field(alias="type")
    value: Any = None
    min: Any = None
    max: Any = None
    visible: bool = True
    label: str | None = None
    options: list[MenuOption] | None = None
    extension: str | None = None
    language: str | None = None
    step: float | None = None


class Position(_CamelModel):
    x: float = 0.0
    y: float = 0.0


class Node(_CamelModel):
    """A typed operator instance in the graph.

    Attributes:
        id: Unique node id.
        type: Registry tag selecting the node's compute function.
        properties: Property values by name.
        bypass: When set, the node passes its first input through unchanged.
        is_output: Marks the node whose result is the graph's drawing.

    """

    id: str
    type: str
    properties: dict[str, Property] = Field(default_factory=dict)
    bypass: bool = False
    is_output: bool = False
    label: str | None = None
    position: Position = Field(default_factory=Position)

    @model_validator(mode="before")
    @classmethod
    def _lift_editor_data(cls, data: Any) -> Any:
        """Accept the editor's nested `data` layout.

        The editor stores `{id, type, position, data: {label, properties,
        bypass, isOutput, ...callbacks}}`. Callbacks are dropped; everything
        else is lifted to the flat form.
        """
        if not isinstance(data, dict) or "data" not in data:
            return data
        lifted = {k: v for k, v in data.items() if k != "data"}
        nested = data["data"] or {}
        for key in ("label", "properties", "bypass", "isOutput", "is_output"):
            if key in nested and key not in lifted:
                lifted[key] = nested[key]
        return lifted

    def property_value(self, name: str, default: Any = None) -> Any:
        prop = self.properties.get(name)
        return default if prop is None else prop.value


class Edge(_CamelModel):
    """A directed connection from a source node's output to a target node's input."""

    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None


class Viewport(_CamelModel):
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0


class CanvasSettings(_CamelModel):
    mode: str = "2d"
    show_points: bool = True
    live_update: bool = True


class ProjectDocument(_CamelModel):
    """A saved project: the graph plus editor view state."""

    version: str = PROJECT_FORMAT_VERSION
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    viewport: Viewport = Field(default_factory=Viewport)
    canvas_settings: CanvasSettings = Field(default_factory=CanvasSettings)

    def output_node(self) -> Node | None:
        """The first node flagged as output, if any."""
        return next((node for node in self.nodes if node.is_output), None)

    def get_node(self, node_id: str) -> Node:
        """Get a node by id.

        Raises:
            KeyError: If no node has this id.

        """
        for node in self.nodes:
            if node.id == node_id:
                return node
        msg = f"Node '{node_id}' not found in project"
        raise KeyError(msg)
