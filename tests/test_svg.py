"""Tests for SVG rendering and the Export SVG operator."""

import asyncio
from pathlib import Path

import pytest

from penpal import Canvas, NodeInputs, NodeResult, get_default_registry, project_dir, render_svg, write_svg
from penpal._ops import export_svg
from penpal._svg import group_lines_by_color


@pytest.fixture
def drawing() -> Canvas:
    canvas = Canvas.blank(100, 50, "#eeeeee")
    canvas.line([(0, 0), (10, 0)])
    canvas.line([(0, 0), (10, 0), (10, 10)], color="#ff0000", thickness=2)
    canvas.line([(20, 20), (30, 30)])
    canvas.point(70, 70)
    return canvas


def _export_props(**overrides: object) -> dict[str, object]:
    specs = get_default_registry()["exportSVG"].properties
    return {name: spec.coerce(name, overrides.get(name)) for name, spec in specs.items()}


class TestRenderSvg:
    """Tests for render_svg."""

    def test_document_header(self, drawing: Canvas) -> None:
        svg = render_svg(drawing)

        assert svg.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<svg')
        assert 'xmlns="http://www.w3.org/2000/svg"' in svg
        assert 'viewBox="0 0 100 50"' in svg
        assert 'width="100"' in svg

    def test_layers_grouped_by_color(self, drawing: Canvas) -> None:
        svg = render_svg(drawing)

        assert list(group_lines_by_color(drawing)) == ["#000000", "#ff0000"]
        assert 'id="layer-1"' in svg
        assert 'id="layer-2"' in svg
        assert 'stroke="#ff0000"' in svg
        assert svg.count("<g ") == 2

    def test_line_and_polyline_elements(self, drawing: Canvas) -> None:
        svg = render_svg(drawing)

        assert svg.count("<line ") == 2
        assert svg.count("<polyline ") == 1
        assert 'points="0,0 10,0 10,10"' in svg
        assert 'x2="30"' in svg
        assert 'stroke-width="2"' in svg

    def test_unconnected_points_not_drawn(self, drawing: Canvas) -> None:
        assert "70" not in render_svg(drawing).split("<g", 1)[1]

    def test_background_is_optional(self, drawing: Canvas) -> None:
        assert "<rect" not in render_svg(drawing)
        assert 'fill="#eeeeee"' in render_svg(drawing, include_background=True)

    def test_millimeter_scaling(self, drawing: Canvas) -> None:
        svg = render_svg(drawing, millimeters=True)

        assert 'width="377.9528"' in svg
        assert 'x2="37.7953"' in svg

    def test_empty_canvas(self) -> None:
        svg = render_svg(Canvas())

        assert "<g " not in svg
        assert svg.rstrip().endswith("</svg>")


class TestWriteSvg:
    """Tests for write_svg."""

    def test_creates_parent_directories(self, tmp_path: Path, drawing: Canvas) -> None:
        target = tmp_path / "nested" / "out.svg"

        written = write_svg(drawing, target)

        assert written == target
        assert target.read_text(encoding="utf-8") == render_svg(drawing)


class TestExportSvgOperator:
    """Tests for the Export SVG operator."""

    def test_writes_relative_to_project_dir(self, tmp_path: Path, drawing: Canvas) -> None:
        inputs = NodeInputs.of(input=NodeResult.ok(drawing))

        with project_dir(tmp_path):
            result = asyncio.run(export_svg(inputs, _export_props(filePath="plots/drawing.svg")))

        assert result.error is None
        assert result.result is drawing
        assert (tmp_path / "plots" / "drawing.svg").is_file()

    def test_requires_file_path(self, drawing: Canvas) -> None:
        inputs = NodeInputs.of(input=NodeResult.ok(drawing))

        result = asyncio.run(export_svg(inputs, _export_props()))

        assert result.error == "No output file specified"

    def test_reports_write_failure(self, tmp_path: Path, drawing: Canvas) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        inputs = NodeInputs.of(input=NodeResult.ok(drawing))

        result = asyncio.run(export_svg(inputs, _export_props(filePath=str(blocker / "out.svg"))))

        assert result.error is not None
        assert result.error.startswith("Failed to save SVG: ")
