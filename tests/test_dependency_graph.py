"""Tests for DependencyGraph and graph algorithms."""

import pytest

from penpal._graph import DependencyGraph, find_cycle


class TestFindCycle:
    """Tests for find_cycle."""

    def test_acyclic_returns_none(self) -> None:
        assert find_cycle({"a": ["b"], "b": []}) is None

    def test_reports_cycle_path(self) -> None:
        cycle = find_cycle({"x": ["a"], "a": ["b"], "b": ["c"], "c": ["a"]})

        assert cycle is not None
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}

    def test_self_loop(self) -> None:
        assert find_cycle({"a": ["a"]}) == ["a", "a"]


class TestDependencyGraph:
    """Tests for DependencyGraph queries."""

    @pytest.fixture
    def graph(self) -> DependencyGraph[str]:
        #   canvas -> grid -> connect -> merge
        #   canvas -> circle ----------> merge
        return DependencyGraph.from_edges(
            [
                ("canvas", "grid"),
                ("grid", "connect"),
                ("connect", "merge"),
                ("canvas", "circle"),
                ("circle", "merge"),
            ],
            nodes=["note"],
        )

    def test_nodes_in_first_seen_order(self, graph: DependencyGraph[str]) -> None:
        assert graph.nodes == ("note", "canvas", "grid", "connect", "merge", "circle")

    def test_ancestors_and_descendants(self, graph: DependencyGraph[str]) -> None:
        assert graph.ancestors("connect") == {"grid", "canvas"}
        assert graph.descendants("grid") == {"connect", "merge"}
        assert graph.ancestors("note") == frozenset()
        assert graph.descendants("missing") == frozenset()

    def test_between(self, graph: DependencyGraph[str]) -> None:
        assert graph.between("canvas", "merge") == {"grid", "connect", "circle"}
        assert graph.between("grid", "merge") == {"connect"}
        assert graph.between("circle", "connect") == frozenset()

    def test_duplicate_edges_collapse(self) -> None:
        graph = DependencyGraph.from_edges([("a", "b"), ("a", "b")])

        assert graph.nodes == ("a", "b")
        assert graph.ancestors("b") == {"a"}

    def test_find_cycle(self) -> None:
        assert DependencyGraph.from_edges([("a", "b"), ("b", "a")]).find_cycle() is not None
        assert DependencyGraph.from_edges([("a", "b")]).find_cycle() is None
