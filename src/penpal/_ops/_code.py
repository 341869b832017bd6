"""User-programmable operator."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from penpal._canvas import Canvas
from penpal._models import PropertyKind
from penpal._registry import NodeResult, PropertySpec, default_registry

from ._sandbox import compile_snippet

if TYPE_CHECKING:
    from collections.abc import Mapping

    from penpal._registry import NodeInputs

logger = logging.getLogger(__name__)


class CodeMode(StrEnum):
    GLOBAL = "global"
    POINT = "point"
    LINE = "line"


MODE_PARAMS: dict[CodeMode, tuple[str, ...]] = {
    CodeMode.GLOBAL: ("canvas",),
    CodeMode.POINT: ("point", "index", "canvas"),
    CodeMode.LINE: ("line", "index", "canvas"),
}

TEMPLATES: dict[CodeMode, str] = {
    CodeMode.GLOBAL: """\
# Modify the canvas directly, or return a new one.
# Example:
# canvas.point(0, 0)
# return canvas
""",
    CodeMode.POINT: """\
# Runs once per point.
# Available variables:
# point - the current point (x, y, attributes)
# index - the point's index
# Example:
# point.x += 10
# point.attributes["visited"] = True
""",
    CodeMode.LINE: """\
# Runs once per line.
# Available variables:
# line - the current line (points, color, thickness, attributes)
# index - the line's index
# Example:
# line.color = "#ff0000"
# line.thickness *= 2
""",
}


def swap_template(name: str, value: Any, properties: Mapping[str, Any]) -> dict[str, Any] | None:  # noqa: ARG001
    """Replace the code with the new mode's template when the mode changes."""
    if name == "mode" and value in TEMPLATES:
        return {"code": TEMPLATES[CodeMode(value)]}
    return None


@default_registry.operator(
    "code",
    label="Code",
    category="Utility",
    description="Runs custom Python code on canvas elements",
    properties={
        "mode": PropertySpec(
            PropertyKind.MENU,
            CodeMode.GLOBAL.value,
            "Execution Mode",
            options=(("global", "Global"), ("point", "Per Point"), ("line", "Per Line")),
        ),
        "code": PropertySpec(PropertyKind.CODE, TEMPLATES[CodeMode.GLOBAL], "Code", language="python"),
    },
    on_property_change=swap_template,
)
def code(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Run the snippet on a clone of the input.

    In `global` mode the snippet sees `canvas` and may return a replacement
    canvas. In `point` and `line` mode it runs once per element with
    `point`/`line`, `index` and `canvas` bound, over the elements present
    when it starts. Syntax problems are reported as compilation errors and
    exceptions raised by the snippet as runtime errors.
    """
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Code requires a canvas input")

    mode = CodeMode(properties["mode"])
    try:
        func = compile_snippet(properties["code"], MODE_PARAMS[mode])
    except SyntaxError as e:
        return NodeResult.fail(f"Code compilation error: {e.msg}")

    canvas = source.clone()
    try:
        match mode:
            case CodeMode.GLOBAL:
                returned = func(canvas)
                if isinstance(returned, Canvas):
                    canvas = returned
            case CodeMode.POINT:
                for index, point in enumerate(list(canvas.points)):
                    func(point, index, canvas)
            case CodeMode.LINE:
                for index, line in enumerate(list(canvas.lines)):
                    func(line, index, canvas)
    except Exception as e:  # noqa: BLE001
        logger.debug("Code node raised", exc_info=True)
        return NodeResult.fail(f"Runtime error: {e}")

    for line_id, line in enumerate(canvas.lines):
        if len(line.points) < 2 or not all(canvas.has_point(i) for i in line.points):  # noqa: PLR2004
            return NodeResult.fail(f"Runtime error: line {line_id} references missing points {line.points}")
    return NodeResult.ok(canvas)
