"""Distance-weighted deformation."""

from __future__ import annotations

import math
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from penpal._canvas import Vec2
from penpal._models import PropertyKind
from penpal._registry import NodeResult, PropertySpec, default_registry

from ._common import COORD_MAX, COORD_MIN, transform_specs

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from penpal._registry import NodeInputs


class Decay(StrEnum):
    LINEAR = "linear"
    SMOOTH = "smooth"
    EXPONENTIAL = "exponential"


DECAY_FUNCTIONS: dict[Decay, Callable[[float], float]] = {
    Decay.LINEAR: lambda t: 1 - t,
    Decay.SMOOTH: lambda t: math.cos(t * math.pi / 2),
    Decay.EXPONENTIAL: lambda t: math.exp(-4 * t),
}


def falloff(distance: float, radius: float, decay: Decay, *, inverse: bool = False) -> float:
    """Transform strength at `distance` from the pivot, in [0, 1].

    `t = distance / radius` is clamped to [0, 1]; points at the pivot get
    full strength and points at or beyond the radius none (swapped when
    `inverse` is set).
    """
    if distance >= radius:
        strength = 0.0
    elif distance <= 0:
        strength = 1.0
    else:
        strength = DECAY_FUNCTIONS[decay](distance / radius)
    return 1 - strength if inverse else strength


@default_registry.operator(
    "softTransform",
    label="Soft Transform",
    category="Deform",
    description="Transforms canvas content with distance-based falloff",
    properties={
        **transform_specs(translate=Vec2(0, 0), labels=("Translate", "Rotate (degrees)", "Scale")),
        "pivot": PropertySpec(PropertyKind.VEC2, Vec2(0, 0), "Pivot Point", min=COORD_MIN, max=COORD_MAX),
        "radius": PropertySpec(PropertyKind.FLOAT, 100.0, "Radius", min=0.0, max=10000.0),
        "decayFunction": PropertySpec(
            PropertyKind.MENU,
            Decay.LINEAR.value,
            "Decay Function",
            options=tuple((decay.value, decay.value.capitalize()) for decay in Decay),
        ),
        "inverse": PropertySpec(PropertyKind.BOOLEAN, False, "Inverse Effect"),
    },
)
def soft_transform(inputs: NodeInputs, properties: Mapping[str, Any]) -> NodeResult:
    """Apply translate, rotate and scale to each point, weighted by falloff.

    A point with strength `w` is translated by `w * translate`, then rotated
    by `w * rotate` and scaled by `1 + (scale - 1) * w` about the pivot.
    """
    source = inputs.canvas()
    if source is None:
        return NodeResult.fail("Soft Transform requires a canvas input")

    canvas = source.clone()
    translate: Vec2 = properties["translate"]
    scale: Vec2 = properties["scale"]
    sx = scale.x
    sy = scale.x if properties["uniformScale"] else scale.y
    rotation = math.radians(properties["rotate"])
    pivot: Vec2 = properties["pivot"]
    decay = Decay(properties["decayFunction"])

    for point in canvas.points:
        weight = falloff(
            math.hypot(point.x - pivot.x, point.y - pivot.y),
            properties["radius"],
            decay,
            inverse=properties["inverse"],
        )
        dx = point.x + translate.x * weight - pivot.x
        dy = point.y + translate.y * weight - pivot.y
        cos = math.cos(rotation * weight)
        sin = math.sin(rotation * weight)
        rx = dx * cos - dy * sin
        ry = dx * sin + dy * cos
        point.x = rx * (1 + (sx - 1) * weight) + pivot.x
        point.y = ry * (1 + (sy - 1) * weight) + pivot.y

    return NodeResult.ok(canvas)
