"""SVG rendering of canvases for pen plotters."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from htpy import Element, g, line, polyline, rect, svg

if TYPE_CHECKING:
    from penpal._canvas import Canvas, Line

logger = logging.getLogger(__name__)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

# CSS pixels per millimetre.
MM_TO_PX = 96 / 25.4


def _fmt(value: float) -> str:
    """Format a coordinate compactly (no trailing zeros)."""
    if value == int(value):
        return str(int(value))
    return f"{value:.4f}".rstrip("0").rstrip(".")


def group_lines_by_color(canvas: Canvas) -> dict[str, list[Line]]:
    """Lines bucketed by stroke colour, in order of first appearance."""
    layers: dict[str, list[Line]] = {}
    for entry in canvas.lines:
        layers.setdefault(entry.color, []).append(entry)
    return layers


def _render_line(canvas: Canvas, entry: Line, scale: float) -> Element:
    coords = [(canvas.points[i].x * scale, canvas.points[i].y * scale) for i in entry.points]
    stroke = {"stroke-width": _fmt(entry.thickness * scale)}
    if len(coords) == 2:  # noqa: PLR2004
        (x1, y1), (x2, y2) = coords
        return line(stroke, x1=_fmt(x1), y1=_fmt(y1), x2=_fmt(x2), y2=_fmt(y2))
    return polyline(stroke, points=" ".join(f"{_fmt(x)},{_fmt(y)}" for x, y in coords))


def render_svg(canvas: Canvas, *, millimeters: bool = False, include_background: bool = False) -> str:
    """Render a canvas as an SVG document.

    Lines are grouped into one `<g>` layer per colour so plotter software can
    map layers to pens. Two-point lines become `<line>` elements and longer
    chains `<polyline>` elements. Unconnected points are not drawn.

    Args:
        canvas: The canvas to render.
        millimeters: Treat canvas units as millimetres and scale geometry to
            CSS pixels (96 / 25.4 per unit).
        include_background: Emit a background rectangle in the canvas colour.

    Returns:
        The SVG document, including the XML declaration.

    """
    scale = MM_TO_PX if millimeters else 1.0
    width = canvas.size.x * scale
    height = canvas.size.y * scale

    layers = [
        g(
            {"stroke-linecap": "round", "stroke-linejoin": "round"},
            id=f"layer-{number}",
            stroke=color,
            fill="none",
        )[(_render_line(canvas, entry, scale) for entry in entries)]
        for number, (color, entries) in enumerate(group_lines_by_color(canvas).items(), start=1)
    ]
    background = (
        rect(x="0", y="0", width=_fmt(width), height=_fmt(height), fill=canvas.background_color)
        if include_background
        else None
    )

    document = svg(
        xmlns=SVG_NAMESPACE,
        width=_fmt(width),
        height=_fmt(height),
        viewBox=f"0 0 {_fmt(width)} {_fmt(height)}",
    )[background, layers]
    return XML_DECLARATION + str(document) + "\n"


def write_svg(
    canvas: Canvas,
    path: Path | str,
    *,
    millimeters: bool = False,
    include_background: bool = False,
) -> Path:
    """Render `canvas` and write it to `path`, creating parent directories.

    Returns:
        The path written.

    Raises:
        OSError: If the file cannot be written.

    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        render_svg(canvas, millimeters=millimeters, include_background=include_background),
        encoding="utf-8",
    )
    logger.debug("Wrote %d line(s) to %s", len(canvas.lines), path)
    return path
