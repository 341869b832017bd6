"""Operators that rework existing geometry."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from penpal._canvas import Canvas, Line, Point, Vec2
from penpal._models import PropertyKind
from penpal._registry import NodeResult, PropertySpec, default_registry

from ._common import COORD_MAX, COORD_MIN, Affine, transform_specs

if TYPE_CHECKING:
    from collections.abc import Mapping

    from penpal._registry import NodeInputs

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.0001


@default_registry.operator(
    "transform",
    label="Transform",
    category="Modify",
    description="Transforms canvas content (translate, rotate, scale)",
    properties={
        **transform_specs(translate=Vec2(0, 0), labels=("Translate", "Rotate (degrees)", "Scale")),
        "pivotMode": PropertySpec(
            PropertyKind.MENU,
            "center",
            "Pivot Mode",
            options=(("center", "Center"), ("custom", "Custom")),
        ),
        "pivot": PropertySpec(PropertyKind.VEC2, Vec2(0, 0), "Pivot Point", min=COORD_MIN, max=COORD_MAX),
    },
)
def transform(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Rotate, then scale about the pivot, then translate.

    The pivot is the centre of the input's bounds, or `pivot` when
    `pivotMode` is `custom`.
    """
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Transform requires a canvas input")

    canvas = source.clone()
    pivot = canvas.bounds().center if properties["pivotMode"] == "center" else properties["pivot"]
    Affine.from_degrees(
        pivot,
        properties["rotate"],
        properties["scale"],
        properties["translate"],
        uniform=properties["uniformScale"],
    ).apply_to(canvas)
    return NodeResult.ok(canvas)


@default_registry.operator(
    "crop",
    label="Crop",
    category="Modify",
    description="Crops canvas content to a rectangle",
    properties={
        "x": PropertySpec(PropertyKind.FLOAT, 0.0, "X Position", min=-10000.0, max=10000.0),
        "y": PropertySpec(PropertyKind.FLOAT, 0.0, "Y Position", min=-10000.0, max=10000.0),
        "width": PropertySpec(PropertyKind.FLOAT, 100.0, "Width", min=0.0, max=10000.0),
        "height": PropertySpec(PropertyKind.FLOAT, 100.0, "Height", min=0.0, max=10000.0),
    },
)
def crop(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Drop points outside the rectangle and re-index lines.

    Without an input the result is an empty canvas of the crop's size.
    """
    source = inputs.canvas()
    if source is None:
        return NodeResult.ok(Canvas.blank(properties["width"], properties["height"]))

    canvas = source.clone()
    x, y = properties["x"], properties["y"]
    outside = [
        index
        for index, point in enumerate(canvas.points)
        if not (x <= point.x <= x + properties["width"] and y <= point.y <= y + properties["height"])
    ]
    canvas.remove_points(outside)
    return NodeResult.ok(canvas)


def _same_position(p1: Point, p2: Point, tolerance: float) -> bool:
    return abs(p1.x - p2.x) < tolerance and abs(p1.y - p2.y) < tolerance


def _same_path(canvas: Canvas, first: Line, second: Line, tolerance: float) -> bool:
    """Whether two lines pass through the same positions, in either direction."""
    if len(first.points) != len(second.points):
        return False
    a = [canvas.points[i] for i in first.points]
    b = [canvas.points[i] for i in second.points]
    return all(_same_position(p, q, tolerance) for p, q in zip(a, b, strict=True)) or all(
        _same_position(p, q, tolerance) for p, q in zip(a, reversed(b), strict=True)
    )


@default_registry.operator(
    "cleanup",
    label="Cleanup",
    category="Modify",
    description="Removes duplicate points and lines",
    properties={
        "tolerance": PropertySpec(PropertyKind.FLOAT, DEFAULT_TOLERANCE, "Position Tolerance", min=0.00001, max=1.0),
    },
)
def cleanup(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Remove duplicate lines, then duplicate unconnected points.

    Of each group of duplicates the most recently added is kept. Points
    orphaned by a dropped line take part in the point pass.
    """
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Cleanup requires a canvas input")

    canvas = source.clone()
    tolerance: float = properties["tolerance"]

    kept_lines = [
        line
        for i, line in enumerate(canvas.lines)
        if not any(_same_path(canvas, line, later, tolerance) for later in canvas.lines[i + 1 :])
    ]
    removed_lines = len(canvas.lines) - len(kept_lines)
    canvas.lines = kept_lines

    survivors: list[Point] = []
    duplicates: list[int] = []
    for index in reversed(canvas.unconnected_indices()):
        point = canvas.points[index]
        if any(_same_position(point, other, tolerance) for other in survivors):
            duplicates.append(index)
        else:
            survivors.append(point)
    canvas.remove_points(duplicates)

    logger.debug("Cleanup removed %d line(s) and %d point(s)", removed_lines, len(duplicates))
    return NodeResult.ok(canvas)


@default_registry.operator(
    "subdivide",
    label="Subdivide",
    category="Modify",
    description="Splits line segments longer than a maximum length",
    properties={
        "maxLength": PropertySpec(PropertyKind.FLOAT, 1.0, "Max Segment Length", min=0.1, max=1000.0),
    },
)
def subdivide(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Insert evenly spaced points so no segment exceeds `maxLength`.

    A segment of length `d` becomes `ceil(d / maxLength)` pieces. New points
    copy the attributes of the segment's first point.
    """
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Subdivide requires a canvas input")

    canvas = source.clone()
    max_length: float = properties["maxLength"]

    for line in canvas.lines:
        path = [line.points[0]]
        for start_index, end_index in zip(line.points, line.points[1:], strict=False):
            start = canvas.points[start_index]
            end = canvas.points[end_index]
            dx, dy = end.x - start.x, end.y - start.y
            pieces = math.ceil(math.hypot(dx, dy) / max_length)
            path.extend(
                canvas.point(start.x + dx * step / pieces, start.y + dy * step / pieces, start.attributes)
                for step in range(1, pieces)
            )
            path.append(end_index)
        line.points = path

    return NodeResult.ok(canvas)


def _join(current: list[int], other: list[int]) -> list[int] | None:
    """Join two polylines that share an endpoint, or None if they do not."""
    if current[-1] == other[0]:
        return current + other[1:]
    if current[-1] == other[-1]:
        return current + other[-2::-1]
    if current[0] == other[-1]:
        return other + current[1:]
    if current[0] == other[0]:
        return other[:0:-1] + current
    return None


@default_registry.operator(
    "fuse",
    label="Fuse",
    category="Modify",
    description="Joins lines that share endpoints into polylines",
)
def fuse(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:  # noqa: ARG001
    """Merge lines sharing an endpoint and a stroke style until none remain."""
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Fuse requires a canvas input")

    canvas = source.clone()
    modified = True
    while modified:
        modified = False
        fused: list[Line] = []
        used: set[int] = set()
        for i, line in enumerate(canvas.lines):
            if i in used:
                continue
            used.add(i)
            current = line.copy()
            found = True
            while found:
                found = False
                for j, other in enumerate(canvas.lines):
                    if j in used or (other.color, other.thickness) != (current.color, current.thickness):
                        continue
                    joined = _join(current.points, other.points)
                    if joined is not None:
                        current.points = joined
                        used.add(j)
                        found = modified = True
                        break
            fused.append(current)
        canvas.lines = fused

    return NodeResult.ok(canvas)


@default_registry.operator(
    "close",
    label="Close",
    category="Modify",
    description="Closes open polylines",
)
def close(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:  # noqa: ARG001
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Close requires a canvas input")

    canvas = source.clone()
    for line in canvas.lines:
        if len(line.points) > 2 and line.points[0] != line.points[-1]:  # noqa: PLR2004
            line.points.append(line.points[0])
    return NodeResult.ok(canvas)


@default_registry.operator(
    "attributes",
    label="Attributes",
    category="Modify",
    description="Sets an attribute on points or lines",
    properties={
        "target": PropertySpec(
            PropertyKind.MENU,
            "points",
            "Target",
            options=(("points", "Points"), ("lines", "Lines"), ("all", "All")),
        ),
        "attributeName": PropertySpec(PropertyKind.STRING, "", "Attribute Name"),
        "attributeType": PropertySpec(
            PropertyKind.MENU,
            "float",
            "Attribute Type",
            options=(("float", "Float"), ("int", "Integer"), ("vec2", "Vector 2D"), ("color", "Color")),
        ),
        "floatValue": PropertySpec(PropertyKind.FLOAT, 0.0, "Value", visible=False),
        "intValue": PropertySpec(PropertyKind.INT, 0, "Value", visible=False),
        "vec2Value": PropertySpec(PropertyKind.VEC2, Vec2(0, 0), "Value", visible=False),
        "colorValue": PropertySpec(PropertyKind.COLOR, "#000000", "Value", visible=False),
    },
)
def attributes(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Set `attributeName` to the value matching `attributeType`.

    Vector values are stored as `{"x": ..., "y": ...}` dictionaries.
    """
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Attributes requires a canvas input")

    name: str = properties["attributeName"].strip()
    if not name:
        return NodeResult.fail("Attribute name cannot be empty")

    kind: str = properties["attributeType"]
    value = properties[f"{kind}Value"]
    if isinstance(value, Vec2):
        value = value.to_dict()

    canvas = source.clone()
    target: str = properties["target"]
    if target in ("points", "all"):
        for point in canvas.points:
            point.attributes[name] = value
    if target in ("lines", "all"):
        for line in canvas.lines:
            line.attributes[name] = value
    return NodeResult.ok(canvas)
