from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pygame.math import Vector2

from ..core.boid import Boid
from ..core.config import FlockParameters
from ..utils.math2d import _clamp_length_max

POINTER_REACH = 4.0
POINTER_GAIN = 0.5


class PointerControl(str, Enum):
    ATTRACT = "attract"
    REPEL = "repel"

    @property
    def sign(self) -> float:
        return 1.0 if self is PointerControl.ATTRACT else -1.0


@dataclass
class PointerState:
    position: Optional[Vector2] = None
    control: Optional[PointerControl] = None

    @property
    def active(self) -> bool:
        return self.position is not None and self.control is not None

    def clear(self) -> None:
        self.position = None
        self.control = None


def apply_pointer(params: FlockParameters, boids: List[Boid], pointer: PointerState) -> int:
    if not pointer.active:
        return 0
    target = pointer.position
    sign = pointer.control.sign
    reach = params.view_distance * POINTER_REACH
    gain = sign * params.steering_force * params.cohesion_force * POINTER_GAIN
    affected = 0
    for boid in boids:
        if boid.position.distance_to(target) > reach:
            continue
        pull = (target - boid.position) * gain
        boid.velocity = _clamp_length_max(boid.velocity + pull, params.max_speed)
        affected += 1
    return affected
