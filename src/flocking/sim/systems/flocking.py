from __future__ import annotations

import math
from typing import List

from pygame.math import Vector2

from ..core.boid import Boid
from ..core.config import FlockParameters
from ..core.rng import DeterministicRng
from ..utils.math2d import _clamp_length, _clamp_length_max, _cosine_similarity

MIN_DISTANCE = 0.001


def separation_factor(distance: float, bias: float) -> float:
    return 1.0 / max(distance, MIN_DISTANCE) ** bias


def alignment_factor(similarity: float, bias: float) -> float:
    factor = bias**similarity / max(bias, 1.0 / bias)
    if not math.isfinite(factor):
        return 0.0
    return factor


def influence_weights(weight_a: float, weight_b: float) -> tuple[float, float]:
    ratio = (weight_b * weight_b) / (weight_a * weight_a)
    return ratio, 1.0 / ratio


def accumulate_pair(params: FlockParameters, first: Boid, second: Boid, distance: float) -> None:
    distance = max(distance, MIN_DISTANCE)
    separation = separation_factor(distance, params.separation_bias)
    similarity = _cosine_similarity(first.velocity, second.velocity)
    alignment = alignment_factor(similarity, params.alignment_bias)
    second_on_first, first_on_second = influence_weights(first.weight, second.weight)
    offset = first.position - second.position

    calc = first.interaction
    calc.neighbours += 1
    calc.cohesion += second.position * second_on_first
    calc.separation += offset * (separation * second_on_first)
    calc.alignment += second.velocity * (alignment * second_on_first)

    calc = second.interaction
    calc.neighbours += 1
    calc.cohesion += first.position * first_on_second
    calc.separation -= offset * (separation * first_on_second)
    calc.alignment += first.velocity * (alignment * first_on_second)


def apply_steering(params: FlockParameters, boid: Boid) -> bool:
    calc = boid.interaction
    if calc.neighbours <= 0:
        return False
    steering = params.steering_force
    cohesion = -_clamp_length_max(calc.cohesion / calc.neighbours, steering)
    separation = _clamp_length_max(calc.separation, steering)
    alignment = _clamp_length_max(calc.alignment, steering)

    velocity = (
        boid.velocity
        + cohesion * params.cohesion_force
        + separation * params.separation_force
        + alignment * params.alignment_force
    )
    if math.isfinite(velocity.x) and math.isfinite(velocity.y):
        boid.velocity = _clamp_length(velocity, params.min_speed, params.max_speed)
    calc.reset()
    return True


def flock(params: FlockParameters, boids: List[Boid], rng: DeterministicRng) -> tuple[int, int]:
    fidelity = params.fidelity
    view_distance = params.view_distance
    view_distance_sq = view_distance * view_distance
    pair_checks = 0
    count = len(boids)
    for i in range(count):
        first = boids[i]
        first_pos: Vector2 = first.position
        for j in range(i + 1, count):
            if rng.next_float() >= fidelity:
                continue
            pair_checks += 1
            second = boids[j]
            distance_sq = first_pos.distance_squared_to(second.position)
            if distance_sq > view_distance_sq:
                continue
            accumulate_pair(params, first, second, math.sqrt(distance_sq))

    interacting = 0
    for boid in boids:
        if apply_steering(params, boid):
            interacting += 1
    return pair_checks, interacting
