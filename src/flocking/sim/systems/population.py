from __future__ import annotations

import logging
from typing import List

from pygame.math import Vector2

from ..core.boid import Boid
from ..core.config import FlockParameters
from ..core.rng import DeterministicRng
from ..utils.math2d import _clamp_value, _heading_from_velocity

logger = logging.getLogger(__name__)

WEIGHT_RATE = 20.0
WEIGHT_SCALE = 10.0


def sample_weight(rng: DeterministicRng) -> float:
    return 1.0 + rng.next_exponential(WEIGHT_RATE) * WEIGHT_SCALE


def spawn_boids(
    params: FlockParameters, boids: List[Boid], rng: DeterministicRng, how_many: int, next_id: int
) -> int:
    max_speed = params.max_speed
    for i in range(1, how_many + 1):
        weight = sample_weight(rng)
        position = rng.next_point(params.x_range(), params.y_range())
        velocity = Vector2(
            rng.next_range(-max_speed, max_speed),
            rng.next_range(-max_speed, max_speed),
        )
        boids.append(
            Boid(
                id=next_id,
                position=position,
                velocity=velocity,
                weight=weight,
                heading=_heading_from_velocity(velocity),
                hue=360.0 * i / how_many,
            )
        )
        next_id += 1
    return next_id


def reconcile(
    params: FlockParameters, boids: List[Boid], rng: DeterministicRng, next_id: int
) -> tuple[int, int, int]:
    target = max(0, int(params.number_of_boids))
    current = len(boids)
    if current < target:
        next_id = spawn_boids(params, boids, rng, target - current, next_id)
        logger.debug("Spawned %d boids (population %d)", target - current, target)
        return target - current, 0, next_id
    if current > target:
        # newest first
        del boids[target:]
        logger.debug("Removed %d boids (population %d)", current - target, target)
        return 0, current - target, next_id
    return 0, 0, next_id


def restart(params: FlockParameters, boids: List[Boid], rng: DeterministicRng) -> None:
    x_range = params.x_range()
    y_range = params.y_range()
    for boid in boids:
        boid.position = rng.next_point(x_range, y_range)
    logger.info("Restarted %d boids inside %.0fx%.0f", len(boids), params.window_width, params.window_height)


def resize(params: FlockParameters, boids: List[Boid], width: float, height: float) -> bool:
    if params.window_width == width and params.window_height == height:
        return False
    params.window_width = float(width)
    params.window_height = float(height)
    min_x, min_y = params.min_position()
    max_x, max_y = params.max_position()
    for boid in boids:
        boid.position.update(
            _clamp_value(boid.position.x, min_x, max_x),
            _clamp_value(boid.position.y, min_y, max_y),
        )
    logger.info("Viewport resized to %.0fx%.0f", width, height)
    return True

