"""Tests for the node type registry and property schemas."""

from typing import Any

import pytest

from penpal import (
    Canvas,
    InputHandle,
    NodeInputs,
    NodeRegistry,
    NodeResult,
    PropertyError,
    PropertyKind,
    PropertySpec,
    Vec2,
    get_default_registry,
)
from penpal._modifications import MovePoint

BUILT_IN_TAGS = {
    "canvas",
    "pointGrid",
    "line",
    "circle",
    "connect",
    "clone",
    "duplicate",
    "transform",
    "crop",
    "cleanup",
    "subdivide",
    "fuse",
    "close",
    "attributes",
    "edit",
    "softTransform",
    "code",
    "merge",
    "loop",
    "exportSVG",
}


class TestNodeRegistry:
    """Tests for registering and looking up node types."""

    def test_operator_decorator_registers(self) -> None:
        registry = NodeRegistry()

        @registry.operator("noop", label="No-op", inputs=("input", InputHandle("extra", multi=True)))
        def noop(inputs: NodeInputs, properties: dict[str, Any]) -> NodeResult:
            return inputs["input"]

        node_type = registry["noop"]
        assert node_type.compute is noop
        assert node_type.input_names() == ("input", "extra")
        assert node_type.inputs[1].multi
        assert node_type.outputs == ("output",)
        assert "noop" in registry
        assert len(registry) == 1

    def test_duplicate_tag_rejected(self) -> None:
        registry = NodeRegistry()
        registry.operator("a", label="A")(lambda inputs, properties: NodeResult())

        with pytest.raises(KeyError, match="already registered"):
            registry.operator("a", label="A again")(lambda inputs, properties: NodeResult())

    def test_unknown_tag(self) -> None:
        registry = NodeRegistry()

        assert registry.get("missing") is None
        with pytest.raises(KeyError, match="Unknown node type 'missing'"):
            registry["missing"]

    def test_default_registry_has_built_ins(self) -> None:
        registry = get_default_registry()

        assert set(registry.tags()) == BUILT_IN_TAGS
        assert set(registry.categories()) == {"Generate", "Modify", "Deform", "Utility", "Export"}
        assert registry["loop"].feedback_handle == "loopIn"
        assert registry["loop"].outputs == ("loopOut", "result")
        assert registry["canvas"].inputs == ()

    def test_create_node_uses_schema_defaults(self) -> None:
        node = get_default_registry().create_node("circle", "c1")

        assert node.type == "circle"
        assert node.label == "Circle"
        assert node.property_value("radius") == 100.0
        assert node.property_value("center") == {"x": 400, "y": 300}
        assert node.properties["center"].kind == PropertyKind.VEC2

    def test_resolve_properties(self) -> None:
        registry = get_default_registry()
        node = registry.create_node("circle", "c1")
        node.properties.pop("radius")

        resolved = registry.resolve_properties(node)

        assert resolved["radius"] == 100.0
        assert resolved["center"] == Vec2(400, 300)

    def test_apply_property_change_rejects_unknown(self) -> None:
        registry = get_default_registry()
        node = registry.create_node("circle", "c1")

        with pytest.raises(PropertyError, match="has no property 'bogus'"):
            registry.apply_property_change(node, "bogus", 1)


class TestPropertySpec:
    """Tests for value coercion and bounds."""

    def test_none_uses_default(self) -> None:
        spec = PropertySpec(PropertyKind.FLOAT, 2.5, "Width")

        assert spec.coerce("width", None) == 2.5

    @pytest.mark.parametrize(
        ("kind", "raw", "expected"),
        [
            (PropertyKind.FLOAT, "1.5", 1.5),
            (PropertyKind.INT, 3.0, 3),
            (PropertyKind.VEC2, {"x": 1, "y": 2}, Vec2(1, 2)),
            (PropertyKind.VEC2, [3, 4], Vec2(3, 4)),
            (PropertyKind.VEC2, 5, Vec2(5, 5)),
            (PropertyKind.BOOLEAN, 1, True),
            (PropertyKind.COLOR, "#fff", "#fff"),
        ],
    )
    def test_conversion(self, kind: PropertyKind, raw: object, expected: object) -> None:
        assert PropertySpec(kind).coerce("value", raw) == expected

    def test_out_of_range(self) -> None:
        spec = PropertySpec(PropertyKind.INT, 1, "Copies", min=1, max=100)

        with pytest.raises(PropertyError, match=r"Property 'Copies' must be <= 100 \(got 101\)"):
            spec.coerce("copies", 101)

    def test_vec2_bounds_per_axis(self) -> None:
        spec = PropertySpec(PropertyKind.VEC2, Vec2(0, 0), "Size", min=Vec2(1, 1))

        with pytest.raises(PropertyError, match=r"Property 'Size.y' must be >= 1"):
            spec.coerce("size", {"x": 5, "y": 0})

    def test_menu_options(self) -> None:
        spec = PropertySpec(PropertyKind.MENU, "a", "Mode", options=(("a", "A"), ("b", "B")))

        assert spec.coerce("mode", "b") == "b"
        with pytest.raises(PropertyError, match="must be one of: a, b"):
            spec.coerce("mode", "c")

    def test_invalid_value(self) -> None:
        with pytest.raises(PropertyError, match="invalid float value"):
            PropertySpec(PropertyKind.FLOAT, 0.0, "Radius").coerce("radius", "wide")

    def test_modifications_are_parsed(self) -> None:
        spec = PropertySpec(PropertyKind.MODIFICATIONS, [])

        (entry,) = spec.coerce("modifications", [{"type": "MOVE_POINT", "pointIndex": 0, "newPos": {"x": 1, "y": 2}}])

        assert isinstance(entry, MovePoint)

    def test_default_is_not_shared(self) -> None:
        spec = PropertySpec(PropertyKind.MODIFICATIONS, [])

        first = spec.coerce("modifications", None)
        first.append("x")

        assert spec.coerce("modifications", None) == []


class TestNodeInputs:
    """Tests for the inputs mapping passed to compute functions."""

    def test_handles_and_fallback(self) -> None:
        canvas = Canvas()
        inputs = NodeInputs(entries=(("default", NodeResult.ok(canvas)), ("extra", NodeResult())))

        assert list(inputs) == ["default", "extra"]
        assert len(inputs) == 2
        assert inputs.canvas() is canvas
        assert inputs.canvas("extra") is None

    def test_all_keeps_every_edge(self) -> None:
        a, b = NodeResult.ok(Canvas()), NodeResult.ok(Canvas())
        inputs = NodeInputs(entries=(("input", a), ("input", b)))

        assert inputs["input"] is a
        assert inputs.all("input") == [a, b]
        assert len(inputs) == 1

    def test_named_output(self) -> None:
        main, side = Canvas(), Canvas.blank(1, 1)
        result = NodeResult.ok(main, {"side": side})

        assert result.output("side").result is side
        assert result.output("other") is result
        assert result.output(None) is result
