"""Table of node types keyed by type tag."""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Any

from penpal._models import Node

from ._node_type import InputHandle, NodeType
from ._property_spec import PropertyError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Mapping

    from ._node_type import ComputeFn, PropertyChangeHook
    from ._property_spec import PropertySpec

logger = logging.getLogger(__name__)


class NodeRegistry:
    """Maps node type tags to `NodeType` records.

    Nodes in a graph only carry data; the evaluator looks up their compute
    function here by `Node.type`.

    Example:
        >>> registry = NodeRegistry()
        >>> @registry.operator("noop", label="No-op")
        ... def noop(inputs, properties):
        ...     return inputs["input"]
        >>> "noop" in registry
        True

    """

    def __init__(self, node_types: Iterable[NodeType] = ()) -> None:
        self._types: dict[str, NodeType] = {}
        for node_type in node_types:
            self.register(node_type)

    def register(self, node_type: NodeType) -> NodeType:
        """Add a node type.

        Raises:
            KeyError: If the tag is already registered.

        """
        if node_type.tag in self._types:
            msg = f"Node type '{node_type.tag}' is already registered."
            raise KeyError(msg)
        self._types[node_type.tag] = node_type
        logger.debug("Registered node type '%s'", node_type.tag)
        return node_type

    def operator(  # noqa: PLR0913
        self,
        tag: str,
        *,
        label: str,
        category: str = "Utility",
        description: str = "",
        inputs: Iterable[str | InputHandle] = ("input",),
        outputs: Iterable[str] = ("output",),
        properties: Mapping[str, PropertySpec] | None = None,
        feedback_handle: str | None = None,
        body_output: str | None = None,
        on_property_change: PropertyChangeHook | None = None,
    ) -> Callable[[ComputeFn], ComputeFn]:
        """Decorator registering a compute function as a node type.

        The decorated function is returned unchanged so it can still be
        called directly.

        Args:
            tag: Type tag stored in `Node.type`.
            label: Display name.
            category: Menu category.
            description: One-line description.
            inputs: Input handles; plain strings declare single inputs.
            outputs: Output handles.
            properties: Property schema.
            feedback_handle: Input handle excluded from dependency resolution.
            body_output: Output handle feeding the loop body.
            on_property_change: Hook run when the editor changes a property.

        """

        def decorator(func: ComputeFn) -> ComputeFn:
            self.register(
                NodeType(
                    tag=tag,
                    label=label,
                    compute=func,
                    category=category,
                    description=description,
                    inputs=tuple(h if isinstance(h, InputHandle) else InputHandle(h) for h in inputs),
                    outputs=tuple(outputs),
                    properties=dict(properties or {}),
                    feedback_handle=feedback_handle,
                    body_output=body_output,
                    on_property_change=on_property_change,
                ),
            )
            return func

        return decorator

    def get(self, tag: str) -> NodeType | None:
        return self._types.get(tag)

    def __getitem__(self, tag: str) -> NodeType:
        try:
            return self._types[tag]
        except KeyError:
            msg = f"Unknown node type '{tag}'"
            raise KeyError(msg) from None

    def __contains__(self, tag: object) -> bool:
        return tag in self._types

    def __iter__(self) -> Iterator[NodeType]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)

    def tags(self) -> list[str]:
        return list(self._types)

    def categories(self) -> dict[str, list[NodeType]]:
        """Node types grouped by menu category, in registration order."""
        grouped: dict[str, list[NodeType]] = {}
        for node_type in self._types.values():
            grouped.setdefault(node_type.category, []).append(node_type)
        return grouped

    def create_node(self, tag: str, node_id: str, **fields: Any) -> Node:
        """Build a node of type `tag` carrying the schema's default properties.

        Raises:
            KeyError: If the tag is not registered.

        """
        node_type = self[tag]
        properties = {name: spec.to_property() for name, spec in node_type.properties.items()}
        return Node(id=node_id, type=tag, properties=properties, label=node_type.label, **fields)

    def resolve_properties(self, node: Node) -> dict[str, Any]:
        """Merge a node's property values over its type's defaults and validate them.

        Values for properties the schema does not declare are passed through
        as stored.

        Returns:
            Property values by name, converted to the types compute functions expect.

        Raises:
            KeyError: If the node's type is not registered.
            PropertyError: If a value is malformed or out of bounds.

        """
        node_type = self[node.type]
        resolved: dict[str, Any] = {name: prop.value for name, prop in node.properties.items()}
        for name, spec in node_type.properties.items():
            resolved[name] = spec.coerce(name, node.property_value(name))
        return resolved

    def apply_property_change(self, node: Node, name: str, value: Any) -> Node:
        """Set one property, running the type's change hook, and return the updated node.

        Raises:
            KeyError: If the node's type is not registered.
            PropertyError: If the type does not declare `name`.

        """
        node_type = self[node.type]
        if name not in node_type.properties:
            msg = f"Node type '{node.type}' has no property '{name}'"
            raise PropertyError(msg)

        updates: dict[str, Any] = {name: value}
        if node_type.on_property_change is not None:
            current = {key: prop.value for key, prop in node.properties.items()}
            updates.update(node_type.on_property_change(name, value, current) or {})

        properties = dict(node.properties)
        for key, new_value in updates.items():
            spec = node_type.properties.get(key)
            base = properties.get(key) or (spec.to_property() if spec is not None else None)
            if base is None:
                logger.warning("Ignoring update to undeclared property '%s' on node '%s'", key, node.id)
                continue
            properties[key] = base.model_copy(update={"value": new_value})
        return node.model_copy(update={"properties": properties})


default_registry = NodeRegistry()


def get_default_registry() -> NodeRegistry:
    """The registry holding the built-in operators."""
    importlib.import_module("penpal._ops")
    return default_registry
