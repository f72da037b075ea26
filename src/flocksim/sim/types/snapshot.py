from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from .metrics import TickMetrics


@dataclass(frozen=True, slots=True)
class BoidView:
    x: float
    y: float
    heading: float
    size: float
    color: Tuple[int, int, int]
    cohesion_radius: float
    alignment_radius: float
    separation_radius: float


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    boids: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float


@dataclass(slots=True)
class SnapshotMetadata:
    flock_size: int
    sim_dt: float
    tick_rate: float
    seed: int
    config_version: str
    circular_alignment: bool
