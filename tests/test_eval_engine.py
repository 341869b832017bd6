"""Tests for the evaluation engine module."""

import asyncio
from typing import Any

import pytest

from penpal import Canvas, Edge, Node, NodeInputs, NodeRegistry, NodeResult, get_default_registry
from penpal._eval_engine import Evaluator, GraphSnapshot, compute_graph, run_graph


def _node(node_id: str, node_type: str, *, bypass: bool = False, is_output: bool = False, **values: Any) -> Node:
    node = get_default_registry().create_node(node_type, node_id, bypass=bypass, is_output=is_output)
    properties = dict(node.properties)
    for name, value in values.items():
        properties[name] = properties[name].model_copy(update={"value": value})
    return node.model_copy(update={"properties": properties})


def _edge(source: str, target: str, *, source_handle: str | None = None, target_handle: str | None = None) -> Edge:
    return Edge(
        id=f"{source}-{target}-{target_handle or 'default'}",
        source=source,
        target=target,
        source_handle=source_handle,
        target_handle=target_handle,
    )


def _spy_registry(calls: list[str]) -> NodeRegistry:
    registry = NodeRegistry()

    @registry.operator("source", label="Source", inputs=())
    def source(inputs: NodeInputs, properties: dict[str, Any]) -> NodeResult:
        calls.append("source")
        canvas = Canvas()
        canvas.point(1, 1)
        return NodeResult.ok(canvas)

    @registry.operator("broken", label="Broken", inputs=())
    def broken(inputs: NodeInputs, properties: dict[str, Any]) -> NodeResult:
        calls.append("broken")
        return NodeResult.fail("boom")

    @registry.operator("spy", label="Spy")
    def spy(inputs: NodeInputs, properties: dict[str, Any]) -> NodeResult:
        calls.append("spy")
        return NodeResult.ok(inputs.canvas())

    @registry.operator("raiser", label="Raiser")
    def raiser(inputs: NodeInputs, properties: dict[str, Any]) -> NodeResult:
        msg = "kaboom"
        raise RuntimeError(msg)

    @registry.operator("wrong", label="Wrong")
    def wrong(inputs: NodeInputs, properties: dict[str, Any]) -> NodeResult:
        return 42  # type: ignore[return-value]

    @registry.operator("slow", label="Slow")
    async def slow(inputs: NodeInputs, properties: dict[str, Any]) -> NodeResult:
        calls.append("slow")
        await asyncio.sleep(0)
        return NodeResult.ok(inputs.canvas())

    return registry


class TestBasicEvaluation:
    """Tests for plain dependency-ordered evaluation."""

    def test_grid_and_connect(self) -> None:
        """A 2x2 grid connected within its spacing yields the four sides."""
        nodes = [
            _node("canvas", "canvas", size={"x": 40, "y": 40}),
            _node("grid", "pointGrid", spacing=20),
            _node("connect", "connect", radius=20, is_output=True),
        ]
        edges = [_edge("canvas", "grid"), _edge("grid", "connect")]

        results = run_graph(nodes, edges)

        canvas = results["connect"].result
        assert results["connect"].error is None
        assert canvas is not None
        assert [(p.x, p.y) for p in canvas.points] == [(0, 0), (20, 0), (0, 20), (20, 20)]
        assert len(canvas.lines) == 4

    def test_subdivide_splits_segment(self) -> None:
        """A 4-unit segment with maxLength 1 becomes four pieces."""
        nodes = [
            _node("canvas", "canvas"),
            _node("line", "line", start={"x": 0, "y": 0}, end={"x": 4, "y": 0}),
            _node("subdivide", "subdivide", maxLength=1),
        ]
        edges = [_edge("canvas", "line"), _edge("line", "subdivide")]

        canvas = run_graph(nodes, edges)["subdivide"].result

        assert canvas is not None
        assert len(canvas.lines) == 1
        assert len(canvas.lines[0].points) == 5
        assert len(canvas.points) == 5
        assert [canvas.points[i].x for i in canvas.lines[0].points] == [0, 1, 2, 3, 4]

    def test_results_cover_every_node(self) -> None:
        nodes = [_node("a", "canvas"), _node("b", "canvas")]

        results = run_graph(nodes, [])

        assert list(results) == ["a", "b"]

    def test_evaluation_is_deterministic(self) -> None:
        """Two passes over the same graph produce identical canvases."""
        nodes = [
            _node("canvas", "canvas", size={"x": 100, "y": 100}),
            _node("grid", "pointGrid", spacing=10),
            _node("connect", "connect", radius=15, probability=0.5, seed=7),
        ]
        edges = [_edge("canvas", "grid"), _edge("grid", "connect")]

        first = run_graph(nodes, edges)
        second = run_graph(nodes, edges)

        assert first["connect"].result is not None
        assert first["connect"].result.to_dict() == second["connect"].result.to_dict()

    def test_compute_graph_accepts_dicts(self) -> None:
        """Editor-shaped dicts with nested `data` are accepted."""
        nodes = [
            {
                "id": "c",
                "type": "canvas",
                "data": {"properties": {"size": {"type": "vec2", "value": {"x": 10, "y": 20}}}},
            },
        ]

        results = asyncio.run(compute_graph(nodes, []))

        assert results["c"].result is not None
        assert results["c"].result.size.y == 20

    def test_upstream_computed_once(self) -> None:
        """A node feeding two consumers is computed a single time."""
        calls: list[str] = []
        registry = _spy_registry(calls)
        nodes = [Node(id="s", type="source"), Node(id="a", type="spy"), Node(id="b", type="spy")]
        edges = [_edge("s", "a"), _edge("s", "b")]

        run_graph(nodes, edges, registry=registry)

        assert calls.count("source") == 1
        assert calls.count("spy") == 2

    def test_snapshot_isolated_from_caller(self) -> None:
        """Mutating the caller's nodes after the snapshot does not affect evaluation."""
        node = _node("c", "canvas", size={"x": 10, "y": 10})
        snapshot = GraphSnapshot.from_graph([node], [])
        node.properties["size"].value = {"x": 500, "y": 500}

        results = asyncio.run(Evaluator(snapshot, get_default_registry()).evaluate())

        assert results["c"].result is not None
        assert results["c"].result.size.x == 10


class TestBypass:
    """Tests for bypassed nodes."""

    def test_bypass_passes_input_through(self) -> None:
        nodes = [
            _node("canvas", "canvas"),
            _node("grid", "pointGrid", spacing=50),
            _node("move", "transform", bypass=True, translate={"x": 100, "y": 0}),
        ]
        edges = [_edge("canvas", "grid"), _edge("grid", "move")]

        results = run_graph(nodes, edges)

        assert results["move"].result is not None
        assert results["move"].result.to_dict() == results["grid"].result.to_dict()

    def test_bypass_without_input_is_empty(self) -> None:
        results = run_graph([_node("move", "transform", bypass=True)], [])

        assert results["move"] == NodeResult()

    def test_bypass_skips_compute(self) -> None:
        calls: list[str] = []
        registry = _spy_registry(calls)
        nodes = [Node(id="s", type="source"), Node(id="spy", type="spy", bypass=True)]

        results = run_graph(nodes, [_edge("s", "spy")], registry=registry)

        assert calls == ["source"]
        assert results["spy"].result is results["s"].result


class TestErrorPropagation:
    """Tests for errors flowing through the graph."""

    def test_input_error_short_circuits(self) -> None:
        """Consumers of a failed node report an input error without computing."""
        calls: list[str] = []
        registry = _spy_registry(calls)
        nodes = [Node(id="bad", type="broken"), Node(id="first", type="spy"), Node(id="second", type="spy")]
        edges = [_edge("bad", "first"), _edge("first", "second")]

        results = run_graph(nodes, edges, registry=registry)

        assert calls == ["broken"]
        assert results["bad"].error == "boom"
        assert results["first"].error == "Input error: boom"
        assert results["second"].error == "Input error: Input error: boom"
        assert results["second"].result is None

    def test_merge_short_circuits_on_any_failed_input(self) -> None:
        nodes = [
            _node("canvas", "canvas"),
            _node("grid", "pointGrid", spacing=0),
            _node("merge", "merge"),
        ]
        edges = [_edge("canvas", "merge"), _edge("grid", "merge")]

        results = run_graph(nodes, edges)

        assert results["grid"].error is not None
        assert results["merge"].error == f"Input error: {results['grid'].error}"
        assert results["merge"].result is None

    def test_invalid_property_becomes_error(self) -> None:
        nodes = [_node("canvas", "canvas"), _node("grid", "pointGrid", spacing=0)]

        results = run_graph(nodes, [_edge("canvas", "grid")])

        assert results["grid"].error == "Property 'Spacing' must be >= 0.1 (got 0.0)"

    def test_exception_becomes_error(self) -> None:
        registry = _spy_registry([])
        nodes = [Node(id="s", type="source"), Node(id="r", type="raiser")]

        results = run_graph(nodes, [_edge("s", "r")], registry=registry)

        assert results["r"].error == "Raiser failed: kaboom"

    def test_non_result_return_becomes_error(self) -> None:
        registry = _spy_registry([])

        results = run_graph([Node(id="w", type="wrong")], [], registry=registry)

        assert results["w"].error is not None
        assert "returned int" in results["w"].error

    def test_unknown_node_type(self) -> None:
        results = run_graph([Node(id="x", type="bogus")], [])

        assert results["x"].error == "Unknown node type 'bogus'"

    def test_dangling_edge(self) -> None:
        nodes = [_node("move", "transform")]

        results = run_graph(nodes, [_edge("ghost", "move")])

        assert results["move"].error == "Input error: Node 'ghost' not found"
        assert "ghost" not in results

    def test_cycle_reported_on_each_member(self) -> None:
        nodes = [_node("a", "transform"), _node("b", "transform"), _node("c", "transform")]
        edges = [_edge("a", "b"), _edge("b", "a"), _edge("b", "c")]

        results = run_graph(nodes, edges)

        assert results["a"].error == "Cycle detected at node 'a'"
        assert results["b"].error == "Cycle detected at node 'b'"
        assert results["c"].error == "Input error: Cycle detected at node 'b'"

    def test_missing_required_input(self) -> None:
        results = run_graph([_node("grid", "pointGrid")], [])

        assert results["grid"].error == "Point Grid requires a canvas input"

    def test_malformed_node_dict_becomes_node_error(self) -> None:
        nodes = [
            {"id": "c", "type": "canvas", "properties": {"size": {"value": {"x": 10, "y": 10}}}},
            {"id": "move", "type": "transform"},
        ]
        edges = [{"id": "e1", "source": "c", "target": "move"}]

        results = asyncio.run(compute_graph(nodes, edges))

        error = results["c"].error
        assert error is not None
        assert error.startswith("Invalid node 'c': ")
        assert "Field required" in error
        assert results["move"].error == f"Input error: {error}"

    def test_node_without_id_and_bad_edge_are_dropped(self) -> None:
        nodes = [{"type": "canvas"}, {"id": "c", "type": "canvas"}]
        edges = [{"id": "e1", "source": "c"}]

        results = asyncio.run(compute_graph(nodes, edges))

        assert list(results) == ["c"]
        assert results["c"].error is None


class TestAsyncOperators:
    """Tests for coroutine compute functions."""

    def test_async_operator_is_awaited(self) -> None:
        calls: list[str] = []
        registry = _spy_registry(calls)
        nodes = [Node(id="s", type="source"), Node(id="slow", type="slow")]

        results = asyncio.run(compute_graph(nodes, [_edge("s", "slow")], registry=registry))

        assert calls == ["source", "slow"]
        assert results["slow"].result is results["s"].result


class TestLoop:
    """Tests for the Loop node."""

    @pytest.fixture
    def loop_graph(self) -> tuple[list[Node], list[Edge]]:
        nodes = [
            _node("canvas", "canvas"),
            _node("line", "line", start={"x": 0, "y": 0}, end={"x": 10, "y": 0}),
            _node("loop", "loop", iterations=3),
            _node("move", "transform", translate={"x": 10, "y": 0}),
            _node("after", "transform", translate={"x": 0, "y": 5}),
        ]
        edges = [
            _edge("canvas", "line"),
            _edge("line", "loop", target_handle="initial"),
            _edge("loop", "move", source_handle="loopOut"),
            _edge("move", "loop", target_handle="loopIn"),
            _edge("loop", "after", source_handle="result"),
        ]
        return nodes, edges

    def test_loop_runs_body_iterations_times(self, loop_graph: tuple[list[Node], list[Edge]]) -> None:
        results = run_graph(*loop_graph)

        canvas = results["loop"].result
        assert results["loop"].error is None
        assert canvas is not None
        assert [p.x for p in canvas.points] == [30, 40]

    def test_loop_result_handle_feeds_downstream(self, loop_graph: tuple[list[Node], list[Edge]]) -> None:
        results = run_graph(*loop_graph)

        after = results["after"].result
        assert after is not None
        assert [(p.x, p.y) for p in after.points] == [(30, 5), (40, 5)]

    def test_loop_is_not_a_cycle(self, loop_graph: tuple[list[Node], list[Edge]]) -> None:
        nodes, edges = loop_graph

        assert GraphSnapshot.from_graph(nodes, edges).validate(get_default_registry()) == []

    def test_loop_without_body_passes_initial_through(self) -> None:
        nodes = [_node("canvas", "canvas"), _node("loop", "loop", iterations=10)]

        results = run_graph(nodes, [_edge("canvas", "loop", target_handle="initial")])

        assert results["loop"].result is not None
        assert results["loop"].result.to_dict() == results["canvas"].result.to_dict()

    def test_loop_requires_initial(self) -> None:
        results = run_graph([_node("loop", "loop")], [])

        assert results["loop"].error == "Loop requires an initial input"

    def test_body_error_stops_loop(self) -> None:
        nodes = [
            _node("canvas", "canvas"),
            _node("loop", "loop", iterations=3),
            _node("grid", "pointGrid", spacing=0),
        ]
        edges = [
            _edge("canvas", "loop", target_handle="initial"),
            _edge("loop", "grid", source_handle="loopOut"),
            _edge("grid", "loop", target_handle="loopIn"),
        ]

        results = run_graph(nodes, edges)

        assert results["loop"].error is not None
        assert results["loop"].error.startswith("Loop body error on iteration 1: Property 'Spacing'")


class TestGraphSnapshotValidation:
    """Tests for structural validation."""

    def test_reports_problems(self) -> None:
        nodes = [
            _node("a", "canvas", is_output=True),
            _node("a", "canvas"),
            _node("b", "transform", is_output=True),
            Node(id="x", type="bogus"),
        ]
        edges = [
            _edge("a", "b", target_handle="nope"),
            _edge("ghost", "b"),
        ]

        problems = GraphSnapshot.from_graph(nodes, edges).validate(get_default_registry())

        assert "Duplicate node id 'a'" in problems
        assert "Multiple output nodes: a, b" in problems
        assert "Node 'x' has unknown type 'bogus'" in problems
        assert "Edge 'ghost-b-default' references missing node 'ghost'" in problems
        assert "Edge 'a-b-nope' targets undeclared input 'nope' on 'b'" in problems

    def test_reports_malformed_dicts(self) -> None:
        nodes = [{"type": "canvas"}, {"id": "c", "type": "canvas", "bypass": "sometimes"}]
        edges = [{"id": "e1", "target": "c"}]

        snapshot = GraphSnapshot.from_graph(nodes, edges)
        problems = snapshot.validate(get_default_registry())

        assert list(snapshot.invalid) == ["c"]
        assert snapshot.edges == ()
        assert any(problem.startswith("Node #0 is invalid: id") for problem in problems)
        assert any(problem.startswith("Edge #0 is invalid: source") for problem in problems)
        assert any(problem.startswith("Node 'c' is invalid: bypass") for problem in problems)

    def test_reports_cycle(self) -> None:
        nodes = [_node("a", "transform"), _node("b", "transform")]
        edges = [_edge("a", "b"), _edge("b", "a")]

        problems = GraphSnapshot.from_graph(nodes, edges).validate(get_default_registry())

        assert problems == ["Cycle detected: a -> b -> a"]
