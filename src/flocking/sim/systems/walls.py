from __future__ import annotations

import math
from typing import List

from ..core.boid import Boid
from ..core.config import FlockParameters


def _heading_outward(coordinate: float, speed: float) -> bool:
    return math.copysign(1.0, speed) == math.copysign(1.0, coordinate)


def handle_walls(params: FlockParameters, boids: List[Boid]) -> int:
    # wrap mode mirrors the boid to the opposite edge
    bounce = params.bounce_off_walls
    corrections = 0
    for boid in boids:
        position = boid.position
        velocity = boid.velocity
        if not params.contains_x(position.x) and _heading_outward(position.x, velocity.x):
            if bounce:
                velocity.x = -velocity.x
            else:
                position.x = -position.x
            corrections += 1
        if not params.contains_y(position.y) and _heading_outward(position.y, velocity.y):
            if bounce:
                velocity.y = -velocity.y
            else:
                position.y = -position.y
            corrections += 1
    return corrections
