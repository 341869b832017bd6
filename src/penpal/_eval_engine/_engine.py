"""Asynchronous graph evaluator."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any

from penpal._registry import NodeInputs, NodeResult, PropertyError, get_default_registry

from ._resolution import cyclic_nodes, feedback_edges, handle_of, input_edges, loop_body
from ._snapshot import GraphSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from penpal._canvas import Canvas
    from penpal._models import Edge, Node
    from penpal._registry import FeedbackRunner, NodeRegistry, NodeType

logger = logging.getLogger(__name__)


class Evaluator:
    """Computes a result for every node of a snapshot.

    Nodes are resolved recursively, inputs first, and each is computed at
    most once: results are memoized for the lifetime of the evaluator. An
    evaluator is meant for a single pass; build a new one per evaluation.

    Errors never escape: an upstream error short-circuits its consumers
    with `"Input error: <cause>"` without running their compute function,
    and exceptions raised by compute functions become the node's error.

    Args:
        snapshot: The graph to evaluate.
        registry: Node types used to look up compute functions.
        seed: Results to treat as already computed. Loop bodies use this
            to offer the carried canvas and reuse results from outside the
            body.

    """

    def __init__(
        self,
        snapshot: GraphSnapshot,
        registry: NodeRegistry,
        *,
        seed: Mapping[str, NodeResult] | None = None,
    ) -> None:
        self.snapshot = snapshot
        self.registry = registry
        self._results: dict[str, NodeResult] = dict(seed or {})
        self._active: set[str] = set()
        self._cyclic = cyclic_nodes(snapshot, registry)

    @property
    def results(self) -> dict[str, NodeResult]:
        """Results computed (or seeded) so far."""
        return dict(self._results)

    async def evaluate(self) -> dict[str, NodeResult]:
        """Resolve every node in document order.

        Returns:
            A result for each node id of the snapshot.

        """
        logger.debug("Evaluating %d node(s)", len(self.snapshot.nodes))
        return {node_id: await self.resolve(node_id) for node_id in self.snapshot.nodes}

    async def resolve(self, node_id: str) -> NodeResult:
        """Compute (or fetch from the memo) one node's result."""
        if node_id in self._results:
            return self._results[node_id]

        node = self.snapshot.nodes.get(node_id)
        if node is None:
            return NodeResult.fail(f"Node '{node_id}' not found")

        if node_id in self.snapshot.invalid:
            result = NodeResult.fail(f"Invalid node '{node_id}': {self.snapshot.invalid[node_id]}")
        elif node_id in self._cyclic or node_id in self._active:
            result = NodeResult.fail(f"Cycle detected at node '{node_id}'")
        else:
            self._active.add(node_id)
            try:
                result = await self._compute(node)
            finally:
                self._active.discard(node_id)

        self._results[node_id] = result
        if result.error is not None:
            logger.debug("Node '%s' failed: %s", node_id, result.error)
        return result

    async def _compute(self, node: Node) -> NodeResult:
        if node.bypass:
            return await self._bypass(node)

        node_type = self.registry.get(node.type)
        if node_type is None:
            return NodeResult.fail(f"Unknown node type '{node.type}'")

        entries: list[tuple[str, NodeResult]] = []
        for edge in input_edges(self.snapshot, node.id, self.registry):
            upstream = (await self.resolve(edge.source)).output(edge.source_handle)
            if upstream.error is not None:
                return NodeResult.fail(f"Input error: {upstream.error}")
            entries.append((handle_of(edge), upstream))

        try:
            properties = self.registry.resolve_properties(node)
        except PropertyError as e:
            return NodeResult.fail(str(e))

        inputs = NodeInputs(entries=tuple(entries), feedback=self._feedback_runner(node, node_type))
        logger.debug("Computing '%s' (%s)", node.id, node.type)
        try:
            result = node_type.compute(inputs, properties)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:  # noqa: BLE001
            logger.exception("Node '%s' (%s) raised", node.id, node.type)
            return NodeResult.fail(f"{node_type.label} failed: {e}")

        if not isinstance(result, NodeResult):
            return NodeResult.fail(f"{node_type.label} returned {type(result).__name__} instead of a result")
        return result

    async def _bypass(self, node: Node) -> NodeResult:
        """Pass the first input edge's result through unchanged."""
        edges = input_edges(self.snapshot, node.id, self.registry)
        logger.debug("Bypassing '%s'", node.id)
        if not edges:
            return NodeResult()
        first = edges[0]
        return (await self.resolve(first.source)).output(first.source_handle)

    def _feedback_runner(self, node: Node, node_type: NodeType) -> FeedbackRunner | None:
        """Build the callable a looping node uses to run its body once."""
        if node_type.feedback_handle is None:
            return None
        returns = feedback_edges(self.snapshot, node.id, self.registry)
        if not returns:
            return None

        body = loop_body(self.snapshot, node.id, node_type.body_output, self.registry)
        logger.debug("Loop '%s' body: %s", node.id, sorted(body))

        async def run_body(canvas: Canvas, iteration: int) -> NodeResult:
            seed = {node_id: result for node_id, result in self._results.items() if node_id not in body}
            seed[node.id] = NodeResult.ok(canvas, dict.fromkeys(node_type.outputs, canvas))
            inner = Evaluator(self.snapshot, self.registry, seed=seed)
            logger.debug("Loop '%s' iteration %d", node.id, iteration + 1)
            edge = returns[0]
            return (await inner.resolve(edge.source)).output(edge.source_handle)

        return run_body


async def compute_graph(
    nodes: Iterable[Node | Mapping[str, Any]],
    edges: Iterable[Edge | Mapping[str, Any]],
    *,
    registry: NodeRegistry | None = None,
) -> dict[str, NodeResult]:
    """Evaluate a graph and return every node's result.

    This never raises for problems inside the graph: malformed node dicts,
    unknown node types, dangling edges, cycles, invalid properties and
    failing operators are all reported through `NodeResult.error`. Node
    dicts without an id and malformed edge dicts are left out with a
    warning.

    Args:
        nodes: Nodes, as models or editor-shaped dicts.
        edges: Edges, as models or dicts.
        registry: Node types to use. Defaults to the built-in operators.

    Returns:
        Mapping from node id to result, in node order.

    Example:
        >>> results = asyncio.run(compute_graph(document.nodes, document.edges))
        >>> results["grid"].result.points

    """
    snapshot = GraphSnapshot.from_graph(nodes, edges)
    return await Evaluator(snapshot, registry or get_default_registry()).evaluate()


def run_graph(
    nodes: Iterable[Node | Mapping[str, Any]],
    edges: Iterable[Edge | Mapping[str, Any]],
    *,
    registry: NodeRegistry | None = None,
) -> dict[str, NodeResult]:
    """Synchronous wrapper around `compute_graph` for scripts and the CLI."""
    return asyncio.run(compute_graph(nodes, edges, registry=registry))
