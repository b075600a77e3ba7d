from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector2

BIRD_SIZE = 2.0


@dataclass(slots=True)
class Interaction:
    neighbours: int = 0
    cohesion: Vector2 = field(default_factory=Vector2)
    separation: Vector2 = field(default_factory=Vector2)
    alignment: Vector2 = field(default_factory=Vector2)

    def reset(self) -> None:
        self.neighbours = 0
        self.cohesion.update(0.0, 0.0)
        self.separation.update(0.0, 0.0)
        self.alignment.update(0.0, 0.0)


@dataclass(slots=True)
class Boid:
    id: int
    position: Vector2
    velocity: Vector2
    weight: float = 1.0
    heading: float = 0.0
    hue: float = 0.0
    interaction: Interaction = field(default_factory=Interaction)

    @property
    def size(self) -> float:
        return BIRD_SIZE * self.weight
