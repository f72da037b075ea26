from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Dict, List, Sequence, Tuple

from pygame.math import Vector2

from .agent import Boid
from .config import SimulationConfig
from .rng import DeterministicRng
from ..systems import metrics as metrics_system
from ..systems.steering import Behavior, update_boid
from ..types.metrics import TickMetrics
from ..types.snapshot import BoidView, Snapshot, SnapshotMetadata, SnapshotWorld
from ..types.world_size import WorldSize

logger = logging.getLogger(__name__)

Flock = Tuple[Boid, ...]


@dataclass(frozen=True, slots=True)
class FrameResult:
    boids: Flock
    behaviors: Tuple[Behavior, ...]
    neighbor_checks: int


def generate(world_size: WorldSize, rng: DeterministicRng, config: SimulationConfig | None = None) -> Flock:
    config = config if config is not None else SimulationConfig()
    world_size.validate()
    if config.flock_size <= 0:
        raise ValueError(f"Flock size must be positive, got {config.flock_size}")
    heading_low, heading_high = config.spawn.heading_range
    channel_low, channel_high = config.spawn.color_channel_range
    max_x = int(world_size.width)
    max_y = int(world_size.height)
    boid_config = config.boid
    boids: List[Boid] = []
    for _ in range(config.flock_size):
        x = rng.next_int(0, max_x)
        y = rng.next_int(0, max_y)
        heading = rng.next_int(heading_low, heading_high)
        color = (
            rng.next_int(channel_low, channel_high),
            rng.next_int(channel_low, channel_high),
            rng.next_int(channel_low, channel_high),
        )
        boids.append(
            Boid(
                position=Vector2(x, y),
                heading=float(heading),
                color=color,
                size=boid_config.size,
                move_speed=boid_config.move_speed,
                separation_factor=boid_config.separation_factor,
                alignment_factor=boid_config.alignment_factor,
                cohesion_factor=boid_config.cohesion_factor,
            )
        )
    logger.debug("Generated %d boids in a %sx%s world", len(boids), world_size.width, world_size.height)
    return tuple(boids)


def advance_frame(
    flock: Sequence[Boid],
    dt: float,
    world_size: WorldSize,
    circular_alignment: bool = False,
) -> FrameResult:
    world_size.validate()
    if dt < 0:
        raise ValueError(f"Elapsed time must be non-negative, got {dt}")
    snapshot: Flock = tuple(flock)
    if not snapshot:
        raise ValueError("Cannot advance an empty flock")
    updated: List[Boid] = []
    behaviors: List[Behavior] = []
    neighbor_checks = 0
    for boid in snapshot:
        new_boid, behavior, checks = update_boid(boid, dt, snapshot, world_size, circular_alignment)
        updated.append(new_boid)
        behaviors.append(behavior)
        neighbor_checks += checks
    return FrameResult(boids=tuple(updated), behaviors=tuple(behaviors), neighbor_checks=neighbor_checks)


def advance(
    flock: Sequence[Boid],
    dt: float,
    world_size: WorldSize,
    circular_alignment: bool = False,
) -> Flock:
    return advance_frame(flock, dt, world_size, circular_alignment).boids


class World:
    def __init__(self, config: SimulationConfig, rng: DeterministicRng | None = None):
        self._config = config
        self._rng = rng if rng is not None else DeterministicRng(config.seed)
        self._world_size = WorldSize(config.world_width, config.world_height).validate()
        self._metrics: TickMetrics | None = None
        self._boids: Flock = generate(self._world_size, self._rng, config)

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def boids(self) -> Flock:
        return self._boids

    @property
    def world_size(self) -> WorldSize:
        return self._world_size

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def replace_boids(self, boids: Sequence[Boid]) -> None:
        boids = tuple(boids)
        if not boids:
            raise ValueError("A flock needs at least one boid")
        self._boids = boids
        self._metrics = None

    def reset(self) -> None:
        # The random stream keeps running so every reset yields a fresh flock.
        self._boids = generate(self._world_size, self._rng, self._config)
        self._metrics = None

    def resize(self, width: float, height: float) -> None:
        self._world_size = WorldSize(width, height).validate()
        logger.debug("World resized to %sx%s", width, height)

    def step(self, tick: int, dt: float | None = None) -> TickMetrics:
        start = perf_counter()
        dt = self._config.time_step if dt is None else dt
        frame = advance_frame(self._boids, dt, self._world_size, self._config.circular_alignment)
        self._boids = frame.boids
        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            tick, frame.boids, frame.behaviors, frame.neighbor_checks, duration_ms
        )
        return self._metrics

    def views(self) -> List[BoidView]:
        return [self._boid_view(boid) for boid in self._boids]

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._idle_metrics(tick)
        metadata = SnapshotMetadata(
            flock_size=len(self._boids),
            sim_dt=self._config.time_step,
            tick_rate=0.0 if self._config.time_step <= 0 else 1.0 / self._config.time_step,
            seed=self._config.seed,
            config_version=self._config.config_version,
            circular_alignment=self._config.circular_alignment,
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            boids=[self._view_payload(view) for view in self.views()],
            world=SnapshotWorld(width=self._world_size.width, height=self._world_size.height),
            metadata=metadata,
        )

    @staticmethod
    def _boid_view(boid: Boid) -> BoidView:
        return BoidView(
            x=boid.position.x,
            y=boid.position.y,
            heading=boid.heading,
            size=boid.size,
            color=boid.color,
            cohesion_radius=boid.cohesion_distance,
            alignment_radius=boid.alignment_distance,
            separation_radius=boid.separation_distance,
        )

    @staticmethod
    def _view_payload(view: BoidView) -> Dict[str, object]:
        return {
            "x": view.x,
            "y": view.y,
            "heading": view.heading,
            "size": view.size,
            "color": list(view.color),
            "cohesion_radius": view.cohesion_radius,
            "alignment_radius": view.alignment_radius,
            "separation_radius": view.separation_radius,
        }

    def _idle_metrics(self, tick: int) -> TickMetrics:
        return metrics_system.create_metrics(tick, self._boids, (), 0, 0.0)
