from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Sequence

from pygame.math import Vector2

from ..core.agent import Boid
from ..types.world_size import WorldSize
from ..utils.math2d import bearing_deg, circular_mean_deg, forward_vector, wrap_position


class Behavior(str, Enum):
    SEPARATION = "separation"
    ALIGNMENT = "alignment"
    COHESION = "cohesion"
    NONE = "none"


@dataclass(slots=True)
class Tiers:
    cohesion: List[Boid]
    alignment: List[Boid]
    separation: List[Boid]
    neighbor_checks: int


def flockmates(origin: Vector2, boids: Iterable[Boid], distance: float) -> List[Boid]:
    ox = origin.x
    oy = origin.y
    distance_sq = distance * distance
    result: List[Boid] = []
    for other in boids:
        dx = other.position.x - ox
        dy = other.position.y - oy
        if dx * dx + dy * dy < distance_sq:
            result.append(other)
    return result


def center_of_mass(boids: Sequence[Boid]) -> Vector2:
    count = len(boids)
    if count == 0:
        raise ValueError("Center of mass of an empty set is undefined")
    sum_x = 0.0
    sum_y = 0.0
    for boid in boids:
        sum_x += boid.position.x
        sum_y += boid.position.y
    return Vector2(sum_x / count, sum_y / count)


def collect_tiers(boid: Boid, flock: Sequence[Boid]) -> Tiers:
    """Nested neighbour sets around ``boid``'s frame-start position.

    ``flock`` must contain ``boid`` itself. Each tier is searched over the
    previous tier's members only, so separation is a subset of alignment and
    alignment a subset of cohesion.
    """
    origin = boid.position
    cohesion = flockmates(origin, flock, boid.cohesion_distance)
    checks = len(flock)
    if len(cohesion) <= 1:
        return Tiers(cohesion=cohesion, alignment=list(cohesion), separation=list(cohesion), neighbor_checks=checks)
    alignment = flockmates(origin, cohesion, boid.alignment_distance)
    separation = flockmates(origin, alignment, boid.separation_distance)
    checks += len(cohesion) + len(alignment)
    return Tiers(cohesion=cohesion, alignment=alignment, separation=separation, neighbor_checks=checks)


def integrate_position(boid: Boid, dt: float, world_size: WorldSize) -> Vector2:
    moved = boid.position + forward_vector(boid.heading, boid.move_speed * dt)
    return wrap_position(moved.x, moved.y, world_size.width, world_size.height)


def resolve_heading(boid: Boid, tiers: Tiers, circular_alignment: bool = False) -> tuple[float, Behavior]:
    if len(tiers.separation) > 1:
        # +90 turns the bearing into a heading, +180 points it away from the crowd.
        return bearing_deg(boid.position, center_of_mass(tiers.separation)) + 270.0, Behavior.SEPARATION
    if len(tiers.alignment) > 1:
        headings = [mate.heading for mate in tiers.alignment]
        if circular_alignment:
            return circular_mean_deg(headings), Behavior.ALIGNMENT
        # Raw mean: -170 and 170 average to 0, not 180.
        return sum(headings) / len(headings), Behavior.ALIGNMENT
    if len(tiers.cohesion) > 1:
        return bearing_deg(boid.position, center_of_mass(tiers.cohesion)) + 90.0, Behavior.COHESION
    return boid.heading, Behavior.NONE


def update_boid(
    boid: Boid,
    dt: float,
    flock: Sequence[Boid],
    world_size: WorldSize,
    circular_alignment: bool = False,
) -> tuple[Boid, Behavior, int]:
    """Return ``boid`` advanced by one frame.

    ``flock`` is the read-only frame-start snapshot and includes ``boid``.
    Neighbour distances and bearings are measured from the frame-start
    position; the returned boid carries the integrated position and the
    heading chosen by the highest-priority tier with company.
    """
    position = integrate_position(boid, dt, world_size)
    tiers = collect_tiers(boid, flock)
    heading, behavior = resolve_heading(boid, tiers, circular_alignment)
    return replace(boid, position=position, heading=heading), behavior, tiers.neighbor_checks
