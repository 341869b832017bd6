"""Input resolution helpers for the evaluator."""

from __future__ import annotations

from typing import TYPE_CHECKING

from penpal._registry import DEFAULT_HANDLE

if TYPE_CHECKING:
    from penpal._models import Edge
    from penpal._registry import NodeRegistry

    from ._snapshot import GraphSnapshot


def handle_of(edge: Edge) -> str:
    """The input handle an edge lands on (`"default"` when unnamed)."""
    return edge.target_handle or DEFAULT_HANDLE


def input_edges(snapshot: GraphSnapshot, node_id: str, registry: NodeRegistry) -> list[Edge]:
    """Edges resolved as normal inputs of `node_id`, in document order."""
    return [edge for edge in snapshot.incoming(node_id) if not snapshot.is_feedback(edge, registry)]


def feedback_edges(snapshot: GraphSnapshot, node_id: str, registry: NodeRegistry) -> list[Edge]:
    return [edge for edge in snapshot.incoming(node_id) if snapshot.is_feedback(edge, registry)]


def cyclic_nodes(snapshot: GraphSnapshot, registry: NodeRegistry) -> frozenset[str]:
    """Nodes lying on a dependency cycle (feedback edges excluded)."""
    graph = snapshot.dependency_graph(registry)
    return frozenset(node for node in graph.nodes if node in graph.descendants(node))


def loop_body(
    snapshot: GraphSnapshot,
    loop_id: str,
    body_handle: str | None,
    registry: NodeRegistry,
) -> frozenset[str]:
    """Nodes between a loop's body output and its feedback input.

    These are the nodes reachable from an edge leaving `body_handle` (any
    output when None) that also reach a feedback edge back into the loop.
    """
    graph = snapshot.dependency_graph(registry)
    starts = {
        edge.target
        for edge in snapshot.outgoing(loop_id)
        if body_handle is None or edge.source_handle == body_handle
    }
    ends = {edge.source for edge in feedback_edges(snapshot, loop_id, registry)}

    body: set[str] = set()
    for start in starts:
        for end in ends:
            if start == end or end in graph.descendants(start):
                body |= {start, end} | graph.between(start, end)
    return frozenset(body - {loop_id})
