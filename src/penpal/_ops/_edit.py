"""Replay of interactive edits recorded by the editor."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from penpal._modifications import (
    AddPoint,
    AddPointToLine,
    CreateLine,
    DeleteLine,
    DeletePoint,
    Modification,
    MovePoint,
    RemovePointFromLine,
)
from penpal._models import PropertyKind
from penpal._registry import NodeResult, PropertySpec, default_registry

if TYPE_CHECKING:
    from collections.abc import Mapping

    from penpal._canvas import Canvas
    from penpal._registry import NodeInputs

logger = logging.getLogger(__name__)


def apply_modification(canvas: Canvas, modification: Modification) -> bool:  # noqa: C901, PLR0911
    """Apply one edit to `canvas` in place.

    Returns:
        False if the edit referenced a point or line that does not exist and
        was skipped, True otherwise.

    """
    match modification:
        case MovePoint(point_index=index, new_pos=pos):
            point = canvas.get_point(index)
            if point is None:
                return False
            point.x, point.y = pos.x, pos.y
        case AddPoint(position=pos):
            canvas.point(pos.x, pos.y)
        case DeletePoint(point_index=index):
            if not canvas.has_point(index):
                return False
            canvas.remove_points([index])
        case CreateLine(points=indices, color=color, thickness=thickness):
            if len(indices) < 2 or not all(canvas.has_point(i) for i in indices):  # noqa: PLR2004
                return False
            canvas.line(indices, color=color, thickness=thickness)
        case DeleteLine(line_index=index):
            if not 0 <= index < len(canvas.lines):
                return False
            del canvas.lines[index]
        case AddPointToLine(line_index=line_index, point_index=index, position=position):
            if not 0 <= line_index < len(canvas.lines) or not canvas.has_point(index):
                return False
            points = canvas.lines[line_index].points
            points.insert(len(points) if position is None else position, index)
        case RemovePointFromLine(line_index=line_index, point_index=index):
            if not 0 <= line_index < len(canvas.lines) or index not in canvas.lines[line_index].points:
                return False
            line = canvas.lines[line_index]
            line.points = [i for i in line.points if i != index]
            if len(line.points) < 2:  # noqa: PLR2004
                del canvas.lines[line_index]
    return True


@default_registry.operator(
    "edit",
    label="Edit",
    category="Modify",
    description="Applies edits made on the canvas",
    properties={
        "modifications": PropertySpec(PropertyKind.MODIFICATIONS, [], "Modifications", visible=False),
    },
)
def edit(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Replay the modification log, in order, onto a clone of the input.

    Entries that reference missing points or lines are skipped.
    """
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Edit requires a canvas input")

    canvas = source.clone()
    for position, modification in enumerate(properties["modifications"]):
        if not apply_modification(canvas, modification):
            logger.warning("Skipping edit #%d (%s): target no longer exists", position, modification.type)
    return NodeResult.ok(canvas)
