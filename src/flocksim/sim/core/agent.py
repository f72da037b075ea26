from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from pygame.math import Vector2

WHITE: Tuple[int, int, int] = (255, 255, 255)


@dataclass(slots=True)
class Boid:
    position: Vector2 = field(default_factory=Vector2)
    heading: float = 0.0
    color: Tuple[int, int, int] = WHITE
    size: float = 10
    move_speed: float = 200
    separation_factor: float = 3
    alignment_factor: float = 9
    cohesion_factor: float = 14

    @property
    def separation_distance(self) -> float:
        return self.size * self.separation_factor

    @property
    def alignment_distance(self) -> float:
        return self.size * self.alignment_factor

    @property
    def cohesion_distance(self) -> float:
        return self.size * self.cohesion_factor
