"""Evaluation engine module for penpal.

The evaluator takes an immutable snapshot of a graph and computes a
`NodeResult` for every node, memoizing results within one pass.

Key types:
- GraphSnapshot: Deep copy of nodes and edges, plus structural validation
- Evaluator: One evaluation pass over a snapshot
- compute_graph: Coroutine evaluating a node and edge list
- run_graph: Synchronous wrapper around compute_graph
"""

from ._engine import Evaluator, compute_graph, run_graph
from ._snapshot import GraphSnapshot

__all__ = [
    "Evaluator",
    "GraphSnapshot",
    "compute_graph",
    "run_graph",
]
