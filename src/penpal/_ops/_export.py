"""File export operator."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from penpal._context import resolve_project_path
from penpal._models import PropertyKind
from penpal._registry import NodeResult, PropertySpec, default_registry
from penpal._svg import write_svg

if TYPE_CHECKING:
    from collections.abc import Mapping

    from penpal._registry import NodeInputs

logger = logging.getLogger(__name__)


@default_registry.operator(
    "exportSVG",
    label="Export SVG",
    category="Export",
    description="Writes the input canvas to an SVG file",
    properties={
        "filePath": PropertySpec(PropertyKind.FILE, "", "File Path", extension=".svg"),
        "millimeters": PropertySpec(PropertyKind.BOOLEAN, False, "Millimetre Units"),
        "includeBackground": PropertySpec(PropertyKind.BOOLEAN, False, "Include Background"),
    },
)
async def export_svg(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Write the input to `filePath` and pass it through.

    Relative paths resolve against the project directory when one is set.
    """
    canvas = inputs.canvas()
    if canvas is None:
        return NodeResult.fail("Export SVG requires a canvas input")

    file_path: str = properties["filePath"].strip()
    if not file_path:
        return NodeResult.fail("No output file specified")

    path = resolve_project_path(file_path)
    try:
        await asyncio.to_thread(
            write_svg,
            canvas,
            path,
            millimeters=properties["millimeters"],
            include_background=properties["includeBackground"],
        )
    except OSError as e:
        return NodeResult.fail(f"Failed to save SVG: {e}")

    logger.info("Exported SVG to %s", path)
    return NodeResult.ok(canvas)
