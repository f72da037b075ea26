from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


@dataclass
class BoidConfig:
    size: float = 10
    move_speed: float = 200
    separation_factor: float = 3
    alignment_factor: float = 9
    cohesion_factor: float = 14

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError(f"Boid size must be positive, got {self.size}")
        if self.move_speed < 0:
            raise ValueError(f"Boid move_speed must be non-negative, got {self.move_speed}")
        # Each tier searches the previous tier's result, so the ranges must nest.
        if not 0 < self.separation_factor <= self.alignment_factor <= self.cohesion_factor:
            raise ValueError(
                "Range factors must satisfy 0 < separation <= alignment <= cohesion, got "
                f"{self.separation_factor}, {self.alignment_factor}, {self.cohesion_factor}"
            )


@dataclass
class SpawnConfig:
    heading_range: tuple[int, int] = (-180, 179)
    color_channel_range: tuple[int, int] = (50, 255)


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 60.0
    flock_size: int = 40
    world_width: float = 800.0
    world_height: float = 600.0
    seed: int = 42
    config_version: str = "v1"
    circular_alignment: bool = False
    boid: BoidConfig = field(default_factory=BoidConfig)
    spawn: SpawnConfig = field(default_factory=SpawnConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        logger.debug("Loaded simulation config from %s", path)
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


def load_config(raw: dict) -> SimulationConfig:
    default_spawn = SpawnConfig()
    spawn_raw = raw.get("spawn", {})

    def _pair(value: tuple[int, int] | list[int] | None, default: tuple[int, int]) -> tuple[int, int]:
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return (int(value[0]), int(value[1]))
        return default

    boid_raw = raw.get("boid", {})
    _reject_unknown_keys(BoidConfig, boid_raw, "boid")
    _reject_unknown_keys(SpawnConfig, spawn_raw, "spawn")
    _reject_unknown_keys(SimulationConfig, raw, None)

    boid = BoidConfig(**boid_raw)
    spawn = SpawnConfig(
        heading_range=_pair(spawn_raw.get("heading_range"), default_spawn.heading_range),
        color_channel_range=_pair(spawn_raw.get("color_channel_range"), default_spawn.color_channel_range),
    )
    sim_values = {k: v for k, v in raw.items() if k not in {"boid", "spawn"}}
    return SimulationConfig(boid=boid, spawn=spawn, **sim_values)


def _reject_unknown_keys(config_type: type, raw: dict, section: str | None) -> None:
    known = {item.name for item in fields(config_type)}
    unknown = sorted(str(key) for key in raw if key not in known)
    if unknown:
        where = f"'{section}' section" if section else "top level"
        raise ValueError(f"Unknown config key(s) at {where}: {', '.join(unknown)}")
