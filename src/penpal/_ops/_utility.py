"""Flow-control operators: merge and loop."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from penpal._canvas import Canvas
from penpal._models import PropertyKind
from penpal._registry import InputHandle, NodeResult, PropertySpec, default_registry

if TYPE_CHECKING:
    from collections.abc import Mapping

    from penpal._registry import NodeInputs

logger = logging.getLogger(__name__)

LOOP_FEEDBACK_HANDLE = "loopIn"
LOOP_BODY_HANDLE = "loopOut"
LOOP_RESULT_HANDLE = "result"


@default_registry.operator(
    "merge",
    label="Merge",
    category="Utility",
    description="Combines every connected canvas into one",
    inputs=(InputHandle("input", "Inputs", multi=True),),
)
def merge(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:  # noqa: ARG001
    """Fold all input canvases left to right with `Canvas.merge`.

    Inputs without a canvas are skipped. The first canvas's background wins.
    """
    canvases = [entry.result for entry in inputs.all() if isinstance(entry.result, Canvas)]
    if not canvases:
        return NodeResult.fail("Merge requires at least one canvas input")

    merged = canvases[0].clone()
    for other in canvases[1:]:
        merged = merged.merge(other)
    return NodeResult.ok(merged)


@default_registry.operator(
    "loop",
    label="Loop",
    category="Utility",
    description="Runs the connected sub-graph a number of times",
    inputs=(InputHandle("initial", "Initial"), InputHandle(LOOP_FEEDBACK_HANDLE, "Loop In")),
    outputs=(LOOP_BODY_HANDLE, LOOP_RESULT_HANDLE),
    properties={"iterations": PropertySpec(PropertyKind.INT, 5, "Iterations", min=1, max=1000, step=1)},
    feedback_handle=LOOP_FEEDBACK_HANDLE,
    body_output=LOOP_BODY_HANDLE,
)
async def loop(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Feed a canvas through the loop body `iterations` times.

    Each iteration offers the carried canvas on `loopOut` and runs the body
    (the nodes between `loopOut` and `loopIn`); the canvas arriving on
    `loopIn` becomes the next iteration's canvas. Without a body the initial
    canvas passes through unchanged.

    The node's main result and its `result` output are the final canvas;
    `loopOut` holds the canvas offered on the last iteration.
    """
    initial = inputs.canvas("initial")
    if initial is None:
        return NodeResult.fail("Loop requires an initial input")

    current = initial.clone()
    offered = current
    if inputs.feedback is None:
        return NodeResult.ok(current, {LOOP_RESULT_HANDLE: current, LOOP_BODY_HANDLE: offered})

    for iteration in range(properties["iterations"]):
        offered = current
        fed = await inputs.feedback(offered, iteration)
        if fed.error is not None:
            return NodeResult.fail(f"Loop body error on iteration {iteration + 1}: {fed.error}")
        if isinstance(fed.result, Canvas):
            current = fed.result.clone()
        logger.debug("Loop iteration %d: %d point(s)", iteration + 1, len(current.points))

    return NodeResult.ok(current, {LOOP_RESULT_HANDLE: current, LOOP_BODY_HANDLE: offered})
