from __future__ import annotations

import math
from typing import Iterable

from pygame.math import Vector2


def rad2deg(radians: float) -> float:
    return (radians * 180.0) / math.pi


def forward_vector(heading: float, distance: float) -> Vector2:
    # Heading 0 points toward -y (screen up); positive headings turn clockwise on screen.
    return Vector2(0.0, -distance).rotate(heading)


def wrap_position(x: float, y: float, width: float, height: float) -> Vector2:
    if x < 0:
        x = width
    if x > width:
        x = 0.0
    if y < 0:
        y = height
    if y > height:
        y = 0.0
    return Vector2(x, y)


def bearing_deg(origin: Vector2, target: Vector2) -> float:
    return rad2deg(math.atan2(target.y - origin.y, target.x - origin.x))


def circular_mean_deg(headings: Iterable[float]) -> float:
    sin_sum = 0.0
    cos_sum = 0.0
    for heading in headings:
        radians = math.radians(heading)
        sin_sum += math.sin(radians)
        cos_sum += math.cos(radians)
    return math.degrees(math.atan2(sin_sum, cos_sum))
