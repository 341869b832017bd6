"""Dependency graph abstractions used by the evaluator and the CLI.

- DependencyGraph[T]: an immutable directed graph over node ids
- find_cycle: cycle detection over an adjacency mapping
"""

from ._algorithms import find_cycle
from ._dependency_graph import DependencyGraph

__all__ = ["DependencyGraph", "find_cycle"]
