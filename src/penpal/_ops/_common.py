"""Helpers shared by the built-in operators."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from penpal._canvas import DEFAULT_LINE_COLOR, Vec2
from penpal._models import PropertyKind
from penpal._registry import PropertySpec

if TYPE_CHECKING:
    from penpal._canvas import Canvas

COORD_MIN = Vec2(-10000, -10000)
COORD_MAX = Vec2(10000, 10000)


def color_spec(label: str = "Color", default: str = DEFAULT_LINE_COLOR) -> PropertySpec:
    return PropertySpec(PropertyKind.COLOR, default, label)


def thickness_spec(label: str = "Thickness") -> PropertySpec:
    return PropertySpec(PropertyKind.FLOAT, 1.0, label, min=0.1, max=100.0)


def transform_specs(*, translate: Vec2, labels: tuple[str, str, str]) -> dict[str, PropertySpec]:
    """The translate / rotate / scale / uniformScale block used by several operators."""
    translate_label, rotate_label, scale_label = labels
    return {
        "translate": PropertySpec(PropertyKind.VEC2, translate, translate_label, min=COORD_MIN, max=COORD_MAX),
        "rotate": PropertySpec(PropertyKind.FLOAT, 0.0, rotate_label, min=-360.0, max=360.0),
        "scale": PropertySpec(PropertyKind.VEC2, Vec2(1, 1), scale_label, min=Vec2(-100, -100), max=Vec2(100, 100)),
        "uniformScale": PropertySpec(PropertyKind.BOOLEAN, True, "Uniform Scale"),
    }


@dataclass(frozen=True, slots=True)
class Affine:
    """Rotate-then-scale about a pivot, followed by an offset.

    Maps p to `scale * rotate(p - pivot) + pivot + offset`.
    """

    pivot: Vec2
    rotation: float = 0.0
    scale: Vec2 = Vec2(1, 1)
    offset: Vec2 = Vec2(0, 0)

    @classmethod
    def from_degrees(cls, pivot: Vec2, degrees: float, scale: Vec2, offset: Vec2, *, uniform: bool) -> Affine:
        sy = scale.x if uniform else scale.y
        return cls(pivot, math.radians(degrees), Vec2(scale.x, sy), offset)

    def apply(self, x: float, y: float) -> tuple[float, float]:
        dx = x - self.pivot.x
        dy = y - self.pivot.y
        cos = math.cos(self.rotation)
        sin = math.sin(self.rotation)
        rx = dx * cos - dy * sin
        ry = dx * sin + dy * cos
        return (
            rx * self.scale.x + self.pivot.x + self.offset.x,
            ry * self.scale.y + self.pivot.y + self.offset.y,
        )

    def apply_to(self, canvas: Canvas) -> None:
        """Transform every point of `canvas` in place."""
        for point in canvas.points:
            point.x, point.y = self.apply(point.x, point.y)
