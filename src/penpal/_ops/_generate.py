"""Operators that create geometry."""

from __future__ import annotations

import logging
import math
import random
from typing import TYPE_CHECKING, Any

from penpal._canvas import DEFAULT_BACKGROUND, Canvas, Vec2
from penpal._models import PropertyKind
from penpal._registry import InputHandle, NodeResult, PropertySpec, default_registry

from ._common import COORD_MAX, COORD_MIN, Affine, color_spec, thickness_spec, transform_specs

if TYPE_CHECKING:
    from collections.abc import Mapping

    from penpal._registry import NodeInputs

logger = logging.getLogger(__name__)


@default_registry.operator(
    "canvas",
    label="Canvas",
    category="Generate",
    description="Creates an empty canvas",
    inputs=(),
    properties={
        "size": PropertySpec(PropertyKind.VEC2, Vec2(800, 600), "Size", min=Vec2(1, 1), max=COORD_MAX),
        "backgroundColor": color_spec("Background color", DEFAULT_BACKGROUND),
    },
)
def canvas_op(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:  # noqa: ARG001
    size: Vec2 = properties["size"]
    return NodeResult.ok(Canvas.blank(size.x, size.y, properties["backgroundColor"]))


@default_registry.operator(
    "pointGrid",
    label="Point Grid",
    category="Generate",
    description="Fills the canvas with a regular grid of points",
    properties={"spacing": PropertySpec(PropertyKind.FLOAT, 20.0, "Spacing", min=0.1, max=100.0)},
)
def point_grid(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Add a point every `spacing` units over the canvas, row by row."""
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Point Grid requires a canvas input")

    canvas = source.clone()
    spacing: float = properties["spacing"]
    columns = math.ceil(canvas.size.x / spacing)
    rows = math.ceil(canvas.size.y / spacing)
    for row in range(rows):
        for column in range(columns):
            canvas.point(column * spacing, row * spacing)
    logger.debug("Point grid: %d x %d points", columns, rows)
    return NodeResult.ok(canvas)


@default_registry.operator(
    "line",
    label="Line",
    category="Generate",
    description="Adds a line to the canvas",
    properties={
        "start": PropertySpec(PropertyKind.VEC2, Vec2(0, 0), "Start Point", min=COORD_MIN, max=COORD_MAX),
        "end": PropertySpec(PropertyKind.VEC2, Vec2(100, 100), "End Point", min=COORD_MIN, max=COORD_MAX),
        "color": color_spec(),
        "thickness": thickness_spec(),
    },
)
def line_op(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Line requires a canvas input")

    canvas = source.clone()
    canvas.segment(
        properties["start"],
        properties["end"],
        color=properties["color"],
        thickness=properties["thickness"],
    )
    return NodeResult.ok(canvas)


@default_registry.operator(
    "circle",
    label="Circle",
    category="Generate",
    description="Adds a tessellated circle to the canvas",
    properties={
        "center": PropertySpec(PropertyKind.VEC2, Vec2(400, 300), "Center", min=COORD_MIN, max=COORD_MAX),
        "radius": PropertySpec(PropertyKind.FLOAT, 100.0, "Radius", min=0.1, max=10000.0),
        "maxEdgeLength": PropertySpec(PropertyKind.FLOAT, 5.0, "Max Edge Length", min=0.1, max=1000.0),
        "color": color_spec(),
        "thickness": thickness_spec(),
    },
)
def circle_op(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Circle requires a canvas input")

    canvas = source.clone()
    center: Vec2 = properties["center"]
    canvas.circle(
        center.x,
        center.y,
        properties["radius"],
        properties["maxEdgeLength"],
        color=properties["color"],
        thickness=properties["thickness"],
    )
    return NodeResult.ok(canvas)


@default_registry.operator(
    "connect",
    label="Connect",
    category="Generate",
    description="Connects points within a given radius",
    properties={
        "radius": PropertySpec(PropertyKind.FLOAT, 50.0, "Connection Radius", min=0.1, max=1000.0),
        "probability": PropertySpec(PropertyKind.FLOAT, 1.0, "Connection Probability", min=0.0, max=1.0),
        "seed": PropertySpec(PropertyKind.INT, 1, "Random Seed", min=0, max=10000),
        "usePointProbability": PropertySpec(PropertyKind.BOOLEAN, False, "Use Point Probability"),
        "lineColor": color_spec("Line Color"),
        "lineThickness": thickness_spec("Line Thickness"),
    },
)
def connect(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Join every pair of points closer than `radius` with a two-point line.

    With `probability < 1` each candidate pair is kept only if a seeded
    draw falls below it. With `usePointProbability` a second draw is made
    against the lesser `pprob` attribute of the two points (default 1).
    """
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Connect requires a canvas input")

    canvas = source.clone()
    rng = random.Random(properties["seed"])
    radius: float = properties["radius"]
    probability: float = properties["probability"]
    use_point_probability: bool = properties["usePointProbability"]

    points = canvas.points
    for i in range(len(points)):
        for j in range(i + 1, len(points)):
            p1, p2 = points[i], points[j]
            if math.hypot(p2.x - p1.x, p2.y - p1.y) > radius:
                continue
            if probability < 1.0 and rng.random() >= probability:
                continue
            if use_point_probability:
                threshold = min(p1.attributes.get("pprob", 1.0), p2.attributes.get("pprob", 1.0))
                if rng.random() >= threshold:
                    continue
            canvas.line([i, j], color=properties["lineColor"], thickness=properties["lineThickness"])

    return NodeResult.ok(canvas)


@default_registry.operator(
    "clone",
    label="Clone",
    category="Generate",
    description="Stamps the source geometry at every target point",
    inputs=(InputHandle("source", "Source"), InputHandle("target", "Target")),
)
def clone_op(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:  # noqa: ARG001
    """Copy the source canvas's geometry onto each point of the target canvas.

    Each copy is offset by `target_point - source_centroid`. Unconnected
    source points are stamped first, then every line, creating its points
    on demand. The target's own points and lines are kept.
    """
    source = inputs.canvas("source")
    target = inputs.canvas("target")
    if source is None or target is None:
        return NodeResult.fail("Clone requires both source and target canvas inputs")

    canvas = target.clone()
    if not source.points:
        return NodeResult.ok(canvas)

    center = source.points_center()
    unconnected = source.unconnected_indices()
    for anchor in target.points:
        offset = Vec2(anchor.x - center.x, anchor.y - center.y)
        index_map: dict[int, int] = {}

        def stamp(index: int, offset: Vec2 = offset, index_map: dict[int, int] = index_map) -> int:
            if index not in index_map:
                original = source.points[index]
                index_map[index] = canvas.point(original.x + offset.x, original.y + offset.y, original.attributes)
            return index_map[index]

        for index in unconnected:
            stamp(index)
        for source_line in source.lines:
            ref = canvas.line(
                [stamp(index) for index in source_line.points],
                color=source_line.color,
                thickness=source_line.thickness,
            )
            canvas.lines[ref.line_id].attributes = dict(source_line.attributes)

    return NodeResult.ok(canvas)


@default_registry.operator(
    "duplicate",
    label="Duplicate",
    category="Generate",
    description="Creates transformed copies of the input",
    properties={
        "copies": PropertySpec(PropertyKind.INT, 1, "Number of Copies", min=1, max=100),
        **transform_specs(
            translate=Vec2(10, 0),
            labels=("Translate per Copy", "Rotate per Copy (degrees)", "Scale per Copy"),
        ),
    },
)
def duplicate(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Merge `copies` instances of the input, copy 0 being the input itself.

    Copy `i` is rotated by `i * rotate`, scaled by `scale ** i` about the
    input's bounds centre and translated by `i * translate`.
    """
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Duplicate requires a canvas input")

    translate: Vec2 = properties["translate"]
    scale: Vec2 = properties["scale"]
    pivot = source.bounds().center

    result = source.clone()
    for i in range(1, properties["copies"]):
        copy = source.clone()
        Affine.from_degrees(
            pivot,
            properties["rotate"] * i,
            Vec2(scale.x**i, scale.y**i),
            Vec2(translate.x * i, translate.y * i),
            uniform=properties["uniformScale"],
        ).apply_to(copy)
        result = result.merge(copy)
    return NodeResult.ok(result)
