from __future__ import annotations

import math
from typing import List

from pygame.math import Vector2

from ..core.boid import Boid
from ..utils.math2d import _angle_between, _hue_from_direction, _safe_normalize, _wrap_angle


def _forward(heading: float) -> Vector2:
    return Vector2(math.cos(heading), math.sin(heading))


def turn_towards_velocity(boid: Boid) -> None:
    target = _safe_normalize(boid.velocity)
    if target.length_squared() == 0.0:
        return
    # shortest arc from the current forward direction
    boid.heading = _wrap_angle(boid.heading + _angle_between(_forward(boid.heading), target))
    boid.hue = _hue_from_direction(target)


def fly(boids: List[Boid], dt: float) -> None:
    for boid in boids:
        turn_towards_velocity(boid)
        boid.position.update(
            boid.position.x + boid.velocity.x * dt,
            boid.position.y + boid.velocity.y * dt,
        )
