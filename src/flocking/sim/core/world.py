from __future__ import annotations

import copy
import logging
from dataclasses import fields
from time import perf_counter
from typing import Any, Dict, List, Optional, Sequence

from pygame.math import Vector2

from .boid import Boid
from .config import FlockParameters, SimulationConfig
from .rng import DeterministicRng
from ..systems import flocking, metrics as metrics_system, motion, pointer, population, walls
from ..systems.pointer import PointerControl, PointerState
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld

logger = logging.getLogger(__name__)


class World:
    def __init__(self, config: SimulationConfig, rng: Optional[DeterministicRng] = None):
        self._config = config
        self._params = config.params
        self._initial_params = copy.copy(config.params)
        self._rng = rng if rng is not None else DeterministicRng(config.seed)
        self._boids: List[Boid] = []
        self._pointer = PointerState()
        self._pending_resize: Optional[tuple[float, float]] = None
        self._next_id = 0
        self._metrics: TickMetrics | None = None
        self._bootstrap_population()

    @property
    def boids(self) -> List[Boid]:
        return self._boids

    @property
    def params(self) -> FlockParameters:
        return self._params

    @property
    def pointer(self) -> PointerState:
        return self._pointer

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def reset(self) -> None:
        # The live store is shared with the host, so restore it in place.
        for item in fields(self._initial_params):
            setattr(self._params, item.name, getattr(self._initial_params, item.name))
        self._boids.clear()
        self._rng.reset()
        self._pointer.clear()
        self._pending_resize = None
        self._next_id = 0
        self._metrics = None
        self._bootstrap_population()
        logger.info("World reset with %d boids", len(self._boids))

    def step(self, tick: int, dt: Optional[float] = None) -> TickMetrics:
        start = perf_counter()
        dt = self._config.time_step if dt is None else dt
        # One parameter snapshot for the whole tick; the host edits the live
        # store only between ticks.
        params = copy.copy(self._params)
        boids = self._boids

        spawned, removed, self._next_id = population.reconcile(params, boids, self._rng, self._next_id)
        pair_checks, interacting = flocking.flock(params, boids, self._rng)
        pointer_affected = pointer.apply_pointer(params, boids, self._pointer)
        wall_corrections = walls.handle_walls(params, boids)
        motion.fly(boids, dt)
        self._apply_pending_resize()

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            tick,
            boids,
            spawned,
            removed,
            pair_checks,
            interacting,
            pointer_affected,
            wall_corrections,
            elapsed_ms,
        )
        self._metrics = metrics
        return metrics

    def set_pointer(
        self, position: Optional[Sequence[float]], control: Optional[PointerControl | str]
    ) -> None:
        if position is not None and len(position) != 2:
            raise ValueError(f"Pointer position needs two coordinates, got {len(position)}")
        target = None if position is None else Vector2(float(position[0]), float(position[1]))
        held = None if control is None else PointerControl(control)
        self._pointer.position = target
        self._pointer.control = held

    def request_resize(self, width: float, height: float) -> None:
        # Only the latest request before the late phase is applied.
        self._pending_resize = (float(width), float(height))

    def restart(self) -> None:
        population.restart(self._params, self._boids, self._rng)

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._empty_metrics(tick)
        params = self._params
        metadata = SnapshotMetadata(
            sim_dt=self._config.time_step,
            tick_rate=0.0 if self._config.time_step <= 0 else 1.0 / self._config.time_step,
            seed=self._rng.seed,
            config_version=self._config.config_version,
            bounce_off_walls=params.bounce_off_walls,
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            boids=[self._boid_snapshot(boid) for boid in self._boids],
            world=SnapshotWorld(width=params.window_width, height=params.window_height),
            metadata=metadata,
        )

    def _bootstrap_population(self) -> None:
        _, _, self._next_id = population.reconcile(self._params, self._boids, self._rng, self._next_id)

    def _apply_pending_resize(self) -> None:
        if self._pending_resize is None:
            return
        width, height = self._pending_resize
        self._pending_resize = None
        population.resize(self._params, self._boids, width, height)

    def _empty_metrics(self, tick: int) -> TickMetrics:
        return metrics_system.create_metrics(tick, self._boids, 0, 0, 0, 0, 0, 0, 0.0)

    @staticmethod
    def _boid_snapshot(boid: Boid) -> Dict[str, Any]:
        return {
            "id": boid.id,
            "x": boid.position.x,
            "y": boid.position.y,
            "vx": boid.velocity.x,
            "vy": boid.velocity.y,
            "speed": boid.velocity.length(),
            "heading": boid.heading,
            "hue": boid.hue,
            "size": boid.size,
            "weight": boid.weight,
        }
