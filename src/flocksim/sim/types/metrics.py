from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    separating: int
    aligning: int
    cohering: int
    idle: int
    neighbor_checks: int
    polarization: float
    tick_duration_ms: float = 0.0
