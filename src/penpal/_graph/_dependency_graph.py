"""Immutable dependency graph over node ids."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ._algorithms import find_cycle

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True, slots=True)
class DependencyGraph[T]:
    """A directed graph of "depends on" relationships between nodes.

    An edge (a, b) means b consumes a's output. Adjacency is stored as
    tuples in edge insertion order.

    Attributes:
        _upstream: Mapping from node to the nodes it reads from.
        _downstream: Mapping from node to the nodes that read from it.

    """

    _upstream: dict[T, tuple[T, ...]] = field(default_factory=dict)
    _downstream: dict[T, tuple[T, ...]] = field(default_factory=dict)

    @classmethod
    def from_edges(cls, edges: Iterable[tuple[T, T]], nodes: Iterable[T] = ()) -> DependencyGraph[T]:
        """Build a graph from (source, target) pairs plus optional isolated nodes.

        Duplicate edges collapse to one.

        Example:
            >>> graph = DependencyGraph.from_edges([("canvas", "grid")], nodes=["note"])
            >>> sorted(graph.ancestors("grid"))
            ['canvas']

        """
        upstream: dict[T, list[T]] = {}
        downstream: dict[T, list[T]] = {}

        for node in nodes:
            upstream.setdefault(node, [])
            downstream.setdefault(node, [])

        for src, dst in edges:
            upstream.setdefault(src, [])
            downstream.setdefault(dst, [])
            if src not in upstream.setdefault(dst, []):
                upstream[dst].append(src)
            if dst not in downstream.setdefault(src, []):
                downstream[src].append(dst)

        return cls(
            _upstream={k: tuple(v) for k, v in upstream.items()},
            _downstream={k: tuple(v) for k, v in downstream.items()},
        )

    @property
    def nodes(self) -> tuple[T, ...]:
        """All nodes, in first-seen order."""
        return tuple(self._upstream)

    def ancestors(self, node: T) -> frozenset[T]:
        """All nodes `node` transitively depends on."""
        return self._walk(node, self._upstream)

    def descendants(self, node: T) -> frozenset[T]:
        """All nodes that transitively depend on `node`."""
        return self._walk(node, self._downstream)

    def between(self, start: T, end: T) -> frozenset[T]:
        """Nodes lying on some path from `start` to `end`, endpoints excluded."""
        on_path = (self.descendants(start) | {end}) & (self.ancestors(end) | {start})
        return on_path - {start, end}

    def find_cycle(self) -> list[T] | None:
        """One dependency cycle (first node repeated at the end), or None."""
        return find_cycle(self._downstream)

    def _walk(self, node: T, adjacency: dict[T, tuple[T, ...]]) -> frozenset[T]:
        visited: set[T] = set()
        stack = list(adjacency.get(node, ()))
        while stack:
            current = stack.pop()
            if current not in visited:
                visited.add(current)
                stack.extend(adjacency.get(current, ()))
        return frozenset(visited)
