from __future__ import annotations

import random

from pygame.math import Vector2


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_range(self, low: float, high: float) -> float:
        if high <= low:
            return low
        return self._random.uniform(low, high)

    def next_exponential(self, rate: float) -> float:
        return self._random.expovariate(rate)

    def next_point(self, x_range: tuple[float, float], y_range: tuple[float, float]) -> Vector2:
        return Vector2(self.next_range(*x_range), self.next_range(*y_range))
