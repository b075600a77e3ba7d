from __future__ import annotations

from typing import List

from ..core.boid import Boid
from ..types.metrics import TickMetrics


def average_speed(boids: List[Boid]) -> float:
    if not boids:
        return 0.0
    return sum(boid.velocity.length() for boid in boids) / len(boids)


def create_metrics(
    tick: int,
    boids: List[Boid],
    spawned: int,
    removed: int,
    pair_checks: int,
    interacting: int,
    pointer_affected: int,
    wall_corrections: int,
    duration_ms: float,
) -> TickMetrics:
    return TickMetrics(
        tick=tick,
        population=len(boids),
        spawned=spawned,
        removed=removed,
        pair_checks=pair_checks,
        interacting=interacting,
        pointer_affected=pointer_affected,
        wall_corrections=wall_corrections,
        average_speed=average_speed(boids),
        tick_duration_ms=duration_ms,
    )
