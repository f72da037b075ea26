from __future__ import annotations

import math
from typing import Sequence

from ..core.agent import Boid
from ..types.metrics import TickMetrics
from .steering import Behavior


def polarization(boids: Sequence[Boid]) -> float:
    """Length of the mean unit heading vector: 1.0 when every boid points the same way."""
    if not boids:
        return 0.0
    sin_sum = 0.0
    cos_sum = 0.0
    for boid in boids:
        radians = math.radians(boid.heading)
        sin_sum += math.sin(radians)
        cos_sum += math.cos(radians)
    return math.hypot(sin_sum, cos_sum) / len(boids)


def create_metrics(
    tick: int,
    boids: Sequence[Boid],
    behaviors: Sequence[Behavior],
    neighbor_checks: int,
    duration_ms: float,
) -> TickMetrics:
    counts = {behavior: 0 for behavior in Behavior}
    for behavior in behaviors:
        counts[behavior] += 1
    return TickMetrics(
        tick=tick,
        population=len(boids),
        separating=counts[Behavior.SEPARATION],
        aligning=counts[Behavior.ALIGNMENT],
        cohering=counts[Behavior.COHESION],
        idle=counts[Behavior.NONE],
        neighbor_checks=neighbor_checks,
        polarization=polarization(boids),
        tick_duration_ms=duration_ms,
    )
