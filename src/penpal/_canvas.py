"""In-memory vector canvas: the value that flows along graph edges."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

logger = logging.getLogger(__name__)

DEFAULT_BACKGROUND = "#ffffff"
DEFAULT_LINE_COLOR = "#000000"
DEFAULT_LINE_THICKNESS = 1.0


class GeometryError(ValueError):
    """Invalid geometry request (missing point index, degenerate circle, ...)."""


@dataclass(frozen=True, slots=True)
class Vec2:
    """A 2D vector used for sizes, offsets and pivots."""

    x: float
    y: float

    def __add__(self, other: Vec2) -> Vec2:
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        return Vec2(self.x - other.x, self.y - other.y)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True, slots=True)
class Bounds:
    """Axis-aligned bounding rectangle of a set of points."""

    min_x: float = 0.0
    min_y: float = 0.0
    max_x: float = 0.0
    max_y: float = 0.0

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Vec2:
        return Vec2((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    def contains(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y


@dataclass(slots=True)
class Point:
    """A canvas point. Its index in `Canvas.points` is its identity."""

    x: float
    y: float
    attributes: dict[str, Any] = field(default_factory=dict)

    def copy(self) -> Point:
        return Point(self.x, self.y, dict(self.attributes))


@dataclass(slots=True)
class Line:
    """An ordered chain of point indices drawn with one stroke."""

    points: list[int]
    color: str = DEFAULT_LINE_COLOR
    thickness: float = DEFAULT_LINE_THICKNESS
    attributes: dict[str, Any] = field(default_factory=dict)

    def copy(self) -> Line:
        return Line(list(self.points), self.color, self.thickness, dict(self.attributes))

    @property
    def is_closed(self) -> bool:
        return len(self.points) > 2 and self.points[0] == self.points[-1]


@dataclass(frozen=True, slots=True)
class LineRef:
    """Handle returned by `Canvas.line`."""

    line_id: int
    point_ids: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class CircleRef:
    """Handle returned by `Canvas.circle`. `point_ids` excludes the closing repeat."""

    line_id: int
    point_ids: tuple[int, ...]


@dataclass(slots=True)
class Canvas:
    """A vector drawing: dimensions, background, points and lines.

    Canvas values are treated as values by the operators: an operator clones
    its input before mutating it, so a canvas returned by one node is never
    changed by another.

    Attributes:
        size: Drawing dimensions.
        background_color: CSS colour string of the background.
        points: Point list. Line entries index into it.
        lines: Line list.

    """

    size: Vec2 = field(default_factory=lambda: Vec2(800, 600))
    background_color: str = DEFAULT_BACKGROUND
    points: list[Point] = field(default_factory=list)
    lines: list[Line] = field(default_factory=list)

    @classmethod
    def blank(cls, width: float, height: float, background_color: str = DEFAULT_BACKGROUND) -> Canvas:
        return cls(size=Vec2(width, height), background_color=background_color)

    # -- points ---------------------------------------------------------------

    def point(self, x: float, y: float, attributes: dict[str, Any] | None = None) -> int:
        """Append a point and return its index."""
        self.points.append(Point(x, y, dict(attributes or {})))
        return len(self.points) - 1

    def get_point(self, index: int) -> Point | None:
        """Get the point at `index`, or None if it does not exist."""
        if 0 <= index < len(self.points):
            return self.points[index]
        return None

    def has_point(self, index: int) -> bool:
        return 0 <= index < len(self.points)

    def find_point(self, x: float, y: float) -> int | None:
        """Return the index of the first point exactly at (x, y)."""
        for index, point in enumerate(self.points):
            if point.x == x and point.y == y:
                return index
        return None

    def set_point_attributes(self, index: int, attributes: dict[str, Any]) -> bool:
        """Merge `attributes` into the point's attributes. Returns False if missing."""
        point = self.get_point(index)
        if point is None:
            return False
        point.attributes.update(attributes)
        return True

    def get_point_attributes(self, index: int, key: str | None = None) -> Any:
        """Get a copy of a point's attributes, or a single attribute if `key` is given."""
        point = self.get_point(index)
        if point is None:
            return None
        if key is not None:
            return point.attributes.get(key)
        return dict(point.attributes)

    def iter_points(self) -> Iterator[Point]:
        yield from self.points

    # -- lines ----------------------------------------------------------------

    def line(
        self,
        points: Sequence[int] | Sequence[tuple[float, float]],
        *,
        color: str = DEFAULT_LINE_COLOR,
        thickness: float = DEFAULT_LINE_THICKNESS,
        attributes: dict[str, Any] | None = None,
    ) -> LineRef:
        """Add a line through existing point indices or raw coordinates.

        Args:
            points: Either point indices, or `(x, y)` pairs for which new
                points are created.
            color: Stroke colour.
            thickness: Stroke thickness.
            attributes: Attributes given to any points created from coordinates.

        Returns:
            The new line's index and the point indices it uses.

        Raises:
            GeometryError: If an index does not reference an existing point.

        """
        point_ids: list[int] = []
        for entry in points:
            if isinstance(entry, (tuple, list)):
                x, y = entry
                point_ids.append(self.point(x, y, attributes))
                continue
            if not isinstance(entry, int) or isinstance(entry, bool):
                msg = f"Point index must be an integer, got {entry!r}"
                raise GeometryError(msg)
            if not self.has_point(entry):
                msg = f"Point with index {entry} does not exist (canvas has {len(self.points)} points)"
                raise GeometryError(msg)
            point_ids.append(entry)

        self.lines.append(Line(point_ids, color, thickness))
        return LineRef(line_id=len(self.lines) - 1, point_ids=tuple(point_ids))

    def segment(
        self,
        start: Vec2,
        end: Vec2,
        *,
        color: str = DEFAULT_LINE_COLOR,
        thickness: float = DEFAULT_LINE_THICKNESS,
    ) -> LineRef:
        """Add a two-point line, reusing points that already sit at either end."""
        start_index = self.find_point(start.x, start.y)
        if start_index is None:
            start_index = self.point(start.x, start.y)
        end_index = self.find_point(end.x, end.y)
        if end_index is None:
            end_index = self.point(end.x, end.y)
        return self.line([start_index, end_index], color=color, thickness=thickness)

    def circle(
        self,
        center_x: float,
        center_y: float,
        radius: float,
        max_edge_length: float,
        attributes: dict[str, Any] | None = None,
        *,
        color: str = DEFAULT_LINE_COLOR,
        thickness: float = DEFAULT_LINE_THICKNESS,
    ) -> CircleRef:
        """Tessellate a circle into a closed line.

        The circumference is split into `ceil(2 * pi * radius / max_edge_length)`
        equal angular steps; the line repeats its first point id at the end.

        Raises:
            GeometryError: If `radius` or `max_edge_length` is not positive.

        """
        if radius <= 0 or max_edge_length <= 0:
            msg = f"Circle needs a positive radius and edge length (got {radius}, {max_edge_length})"
            raise GeometryError(msg)

        steps = math.ceil(2 * math.pi * radius / max_edge_length)
        angle_step = 2 * math.pi / steps
        point_ids = [
            self.point(
                center_x + radius * math.cos(i * angle_step),
                center_y + radius * math.sin(i * angle_step),
                attributes,
            )
            for i in range(steps)
        ]
        ref = self.line([*point_ids, point_ids[0]], color=color, thickness=thickness)
        return CircleRef(line_id=ref.line_id, point_ids=tuple(point_ids))

    def get_line_points(self, line_id: int) -> list[Point] | None:
        """Get the points a line passes through, or None if the line does not exist."""
        if not 0 <= line_id < len(self.lines):
            return None
        return [self.points[index] for index in self.lines[line_id].points]

    def iter_lines(self) -> Iterator[Line]:
        yield from self.lines

    # -- whole-canvas operations ---------------------------------------------

    def clone(self) -> Canvas:
        """Deep-copy the canvas (points with their attributes, and lines)."""
        return Canvas(
            size=self.size,
            background_color=self.background_color,
            points=[point.copy() for point in self.points],
            lines=[line.copy() for line in self.lines],
        )

    def merge(self, other: Canvas) -> Canvas:
        """Return a new canvas holding both canvases' geometry.

        The result takes the larger of each dimension and this canvas's
        background colour. `other`'s line indices are shifted by the number
        of points in this canvas.
        """
        merged = Canvas(
            size=Vec2(max(self.size.x, other.size.x), max(self.size.y, other.size.y)),
            background_color=self.background_color,
            points=[point.copy() for point in self.points],
            lines=[line.copy() for line in self.lines],
        )
        offset = len(self.points)
        merged.points.extend(point.copy() for point in other.points)
        for line in other.lines:
            shifted = line.copy()
            shifted.points = [index + offset for index in line.points]
            merged.lines.append(shifted)
        return merged

    def bounds(self) -> Bounds:
        """Bounding rectangle of all points (a zero rectangle when empty)."""
        if not self.points:
            return Bounds()
        xs = [point.x for point in self.points]
        ys = [point.y for point in self.points]
        return Bounds(min(xs), min(ys), max(xs), max(ys))

    def center(self) -> Vec2:
        """Midpoint of the canvas dimensions."""
        return Vec2(self.size.x / 2, self.size.y / 2)

    def points_center(self) -> Vec2:
        """Centroid of the points, or the canvas midpoint when there are none."""
        if not self.points:
            return self.center()
        count = len(self.points)
        return Vec2(
            sum(point.x for point in self.points) / count,
            sum(point.y for point in self.points) / count,
        )

    def connected_indices(self) -> set[int]:
        return {index for line in self.lines for index in line.points}

    def unconnected_indices(self) -> list[int]:
        """Indices of points not referenced by any line, in order."""
        connected = self.connected_indices()
        return [index for index in range(len(self.points)) if index not in connected]

    def unconnected_points(self) -> list[Point]:
        return [self.points[index] for index in self.unconnected_indices()]

    def remove_points(self, indices: Iterable[int]) -> dict[int, int]:
        """Remove points in place and re-index every line.

        Line references to removed points are dropped, and lines left with
        fewer than two points are discarded.

        Returns:
            Mapping from old index to new index for the surviving points.

        """
        removed = set(indices)
        index_map: dict[int, int] = {}
        kept: list[Point] = []
        for old_index, point in enumerate(self.points):
            if old_index in removed:
                continue
            index_map[old_index] = len(kept)
            kept.append(point)

        remapped: list[Line] = []
        for line in self.lines:
            line.points = [index_map[index] for index in line.points if index in index_map]
            if len(line.points) >= 2:
                remapped.append(line)

        if len(remapped) != len(self.lines):
            logger.debug("Dropped %d line(s) left with fewer than 2 points", len(self.lines) - len(remapped))

        self.points = kept
        self.lines = remapped
        return index_map

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form, for inspection dumps and tests."""
        return {
            "size": self.size.to_dict(),
            "backgroundColor": self.background_color,
            "points": [{"x": p.x, "y": p.y, "attributes": dict(p.attributes)} for p in self.points],
            "lines": [
                {
                    "points": list(line.points),
                    "color": line.color,
                    "thickness": line.thickness,
                    "attributes": dict(line.attributes),
                }
                for line in self.lines
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Canvas:
        size = data.get("size", {"x": 800, "y": 600})
        canvas = cls(
            size=Vec2(size["x"], size["y"]),
            background_color=data.get("backgroundColor", DEFAULT_BACKGROUND),
        )
        canvas.points = [Point(p["x"], p["y"], dict(p.get("attributes", {}))) for p in data.get("points", [])]
        for entry in data.get("lines", []):
            ref = canvas.line(
                entry["points"],
                color=entry.get("color", DEFAULT_LINE_COLOR),
                thickness=entry.get("thickness", DEFAULT_LINE_THICKNESS),
            )
            canvas.lines[ref.line_id].attributes = dict(entry.get("attributes", {}))
        return canvas
