from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    spawned: int
    removed: int
    pair_checks: int
    interacting: int
    pointer_affected: int
    wall_corrections: int
    average_speed: float
    tick_duration_ms: float = 0.0
