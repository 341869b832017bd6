"""Immutable view of a graph taken at the start of an evaluation."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from penpal._graph import DependencyGraph
from penpal._models import Edge, Node

if TYPE_CHECKING:
    from collections.abc import Iterable

    from penpal._registry import NodeRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GraphSnapshot:
    """Deep copy of the editor's nodes and edges.

    The editor may keep mutating its own lists while an evaluation is
    suspended; the evaluator only ever reads the snapshot.

    Attributes:
        nodes: Nodes by id, in document order. For duplicate ids the first
            node wins.
        edges: Edges in document order.
        duplicate_ids: Node ids that appeared more than once.
        invalid: Validation messages for dict nodes that carry an id but are
            otherwise malformed. Such nodes are kept as placeholders so they
            can be reported as node errors.
        rejected: Descriptions of dict nodes without an id and of malformed
            edges, which take no part in the evaluation.

    """

    nodes: Mapping[str, Node] = field(default_factory=dict)
    edges: tuple[Edge, ...] = ()
    duplicate_ids: tuple[str, ...] = ()
    invalid: Mapping[str, str] = field(default_factory=dict)
    rejected: tuple[str, ...] = ()

    @classmethod
    def from_graph(
        cls,
        nodes: Iterable[Node | Mapping[str, Any]],
        edges: Iterable[Edge | Mapping[str, Any]],
    ) -> GraphSnapshot:
        """Copy nodes and edges, validating any given as plain dicts.

        Malformed dicts never raise: see `invalid` and `rejected`.
        """
        by_id: dict[str, Node] = {}
        duplicates: list[str] = []
        invalid: dict[str, str] = {}
        rejected: list[str] = []
        for position, raw in enumerate(nodes):
            if isinstance(raw, Node):
                node = raw.model_copy(deep=True)
            else:
                try:
                    node = Node.model_validate(raw)
                except ValidationError as e:
                    node_id = raw.get("id") if isinstance(raw, Mapping) else None
                    if not isinstance(node_id, str):
                        rejected.append(f"Node #{position} is invalid: {_describe(e)}")
                        continue
                    node_type = raw.get("type")
                    node = Node.model_construct(id=node_id, type=node_type if isinstance(node_type, str) else "")
                    if node_id not in by_id:
                        invalid[node_id] = _describe(e)
            if node.id in by_id:
                duplicates.append(node.id)
                continue
            by_id[node.id] = node

        copied: list[Edge] = []
        for position, raw in enumerate(edges):
            if isinstance(raw, Edge):
                copied.append(raw.model_copy(deep=True))
                continue
            try:
                copied.append(Edge.model_validate(raw))
            except ValidationError as e:
                rejected.append(f"Edge #{position} is invalid: {_describe(e)}")

        if duplicates:
            logger.warning("Ignoring nodes with duplicate ids: %s", ", ".join(duplicates))
        for problem in rejected:
            logger.warning("%s", problem)
        return cls(
            nodes=by_id,
            edges=tuple(copied),
            duplicate_ids=tuple(duplicates),
            invalid=invalid,
            rejected=tuple(rejected),
        )

    def incoming(self, node_id: str) -> list[Edge]:
        """Edges ending at `node_id`, in document order."""
        return [edge for edge in self.edges if edge.target == node_id]

    def outgoing(self, node_id: str) -> list[Edge]:
        """Edges leaving `node_id`, in document order."""
        return [edge for edge in self.edges if edge.source == node_id]

    def output_nodes(self) -> list[Node]:
        return [node for node in self.nodes.values() if node.is_output]

    def is_feedback(self, edge: Edge, registry: NodeRegistry) -> bool:
        """Whether `edge` feeds a node's feedback handle (the Loop's `loopIn`)."""
        target = self.nodes.get(edge.target)
        if target is None:
            return False
        node_type = registry.get(target.type)
        return node_type is not None and node_type.feedback_handle is not None and (
            edge.target_handle == node_type.feedback_handle
        )

    def dependency_graph(self, registry: NodeRegistry) -> DependencyGraph[str]:
        """Graph of the snapshot's nodes over all non-feedback edges between existing nodes."""
        return DependencyGraph.from_edges(
            (
                (edge.source, edge.target)
                for edge in self.edges
                if edge.source in self.nodes and edge.target in self.nodes and not self.is_feedback(edge, registry)
            ),
            nodes=self.nodes,
        )

    def validate(self, registry: NodeRegistry) -> list[str]:  # noqa: C901
        """Report structural problems without evaluating anything.

        The evaluator tolerates all of these (each becomes a node error or a
        no-op); this is for the editor and the `check` command.

        Returns:
            Human-readable problem descriptions, empty if the graph is sound.

        """
        problems = [f"Duplicate node id '{node_id}'" for node_id in self.duplicate_ids]
        problems.extend(self.rejected)
        problems.extend(f"Node '{node_id}' is invalid: {message}" for node_id, message in self.invalid.items())

        outputs = self.output_nodes()
        if len(outputs) > 1:
            problems.append(f"Multiple output nodes: {', '.join(node.id for node in outputs)}")

        for node in self.nodes.values():
            if node.id not in self.invalid and node.type not in registry:
                problems.append(f"Node '{node.id}' has unknown type '{node.type}'")

        for edge in self.edges:
            for end in (edge.source, edge.target):
                if end not in self.nodes:
                    problems.append(f"Edge '{edge.id}' references missing node '{end}'")
            target = self.nodes.get(edge.target)
            node_type = registry.get(target.type) if target is not None else None
            if (
                node_type is not None
                and edge.target_handle is not None
                and edge.target_handle not in node_type.input_names()
            ):
                problems.append(f"Edge '{edge.id}' targets undeclared input '{edge.target_handle}' on '{edge.target}'")

        cycle = self.dependency_graph(registry).find_cycle()
        if cycle is not None:
            problems.append(f"Cycle detected: {' -> '.join(cycle)}")

        return problems


def _describe(error: ValidationError) -> str:
    """One-line summary of a pydantic validation error."""
    parts = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"]) or "value"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)
