from __future__ import annotations

import math

import pytest
from pygame.math import Vector2
from pytest import approx

from flocking.sim.core.boid import Boid
from flocking.sim.core.config import FlockParameters
from flocking.sim.core.rng import DeterministicRng
from flocking.sim.systems import population
from flocking.sim.systems.flocking import (
    accumulate_pair,
    alignment_factor,
    flock,
    influence_weights,
    separation_factor,
)
from flocking.sim.utils.math2d import _cosine_similarity


def _pair_params(**overrides) -> FlockParameters:
    values = dict(
        view_distance=75.0,
        fidelity=1.0,
        separation_bias=1.0,
        alignment_bias=2.0,
        cohesion_force=0.5,
        separation_force=2.0,
        alignment_force=0.1,
        steering_force=100.0,
        min_speed=25.0,
        max_speed=100.0,
    )
    values.update(overrides)
    return FlockParameters(**values)


def _xy(vector: Vector2) -> tuple[float, float]:
    return (vector.x, vector.y)


def _pair() -> list[Boid]:
    return [
        Boid(id=0, position=Vector2(-5.0, 0.0), velocity=Vector2(30.0, 0.0)),
        Boid(id=1, position=Vector2(5.0, 0.0), velocity=Vector2(30.0, 0.0)),
    ]


def test_separation_factor_falls_off_with_distance():
    assert separation_factor(10.0, 1.0) == approx(0.1)
    assert separation_factor(20.0, 1.0) == approx(separation_factor(10.0, 1.0) / 2.0)
    for bias in (0.3, 1.0, 2.5):
        values = [separation_factor(d, bias) for d in (0.5, 1.0, 5.0, 50.0)]
        assert values == sorted(values, reverse=True)


def test_separation_factor_floors_distance():
    assert separation_factor(0.0, 1.0) == approx(1000.0)
    assert math.isfinite(separation_factor(0.0, 3.0))


def test_alignment_factor_peaks_at_preferred_heading():
    assert alignment_factor(1.0, 2.0) == approx(1.0)
    assert alignment_factor(-1.0, 0.5) == approx(1.0)
    assert alignment_factor(-1.0, 2.0) == approx(0.25)
    assert alignment_factor(1.0, 0.5) == approx(0.25)
    assert alignment_factor(0.3, 1.0) == approx(1.0)
    for similarity in (-1.0, -0.2, 0.0, 0.7, 1.0):
        assert alignment_factor(similarity, 7.0) <= 1.0 + 1e-12


def test_heavier_neighbours_pull_harder():
    on_light, on_heavy = influence_weights(1.0, 2.0)
    assert on_light == approx(4.0)
    assert on_heavy == approx(0.25)


def test_cosine_similarity_of_stationary_boid_is_zero():
    assert _cosine_similarity(Vector2(), Vector2(3.0, 4.0)) == 0.0
    assert _cosine_similarity(Vector2(), Vector2()) == 0.0
    assert _cosine_similarity(Vector2(1.0, 0.0), Vector2(-2.0, 0.0)) == approx(-1.0)


def test_accumulate_pair_records_both_sides():
    params = _pair_params()
    first, second = _pair()

    accumulate_pair(params, first, second, 10.0)

    assert first.interaction.neighbours == 1
    assert second.interaction.neighbours == 1
    assert _xy(first.interaction.cohesion) == approx((5.0, 0.0))
    assert _xy(second.interaction.cohesion) == approx((-5.0, 0.0))
    assert _xy(first.interaction.separation) == approx((-1.0, 0.0))
    assert _xy(second.interaction.separation) == approx((1.0, 0.0))
    assert _xy(first.interaction.alignment) == approx((30.0, 0.0))
    assert _xy(second.interaction.alignment) == approx((30.0, 0.0))



def test_accumulate_pair_scales_by_relative_weight():
    params = _pair_params()
    light = Boid(id=0, position=Vector2(-5.0, 0.0), velocity=Vector2(30.0, 0.0), weight=1.0)
    heavy = Boid(id=1, position=Vector2(5.0, 0.0), velocity=Vector2(30.0, 0.0), weight=2.0)

    accumulate_pair(params, light, heavy, 10.0)

    # the light boid feels the heavy one 4x, the heavy one feels the light one 0.25x
    assert _xy(light.interaction.cohesion) == approx((20.0, 0.0))
    assert _xy(heavy.interaction.cohesion) == approx((-1.25, 0.0))
    assert _xy(light.interaction.separation) == approx((-4.0, 0.0))
    assert _xy(heavy.interaction.separation) == approx((0.25, 0.0))
    assert _xy(light.interaction.alignment) == approx((120.0, 0.0))
    assert _xy(heavy.interaction.alignment) == approx((7.5, 0.0))


def test_two_boid_step_matches_force_model():
    params = _pair_params()
    boids = _pair()

    pair_checks, interacting = flock(params, boids, DeterministicRng(3))

    assert pair_checks == 1
    assert interacting == 2
    # v + 0.5 * cohesion + 2 * separation + 0.1 * alignment
    assert boids[0].velocity.x == approx(30.0 - 2.5 - 2.0 + 3.0)
    assert boids[1].velocity.x == approx(30.0 + 2.5 + 2.0 + 3.0)
    assert boids[0].velocity.y == approx(0.0)
    assert boids[1].velocity.y == approx(0.0)
    for boid in boids:
        assert boid.interaction.neighbours == 0
        assert boid.interaction.cohesion.length() == 0.0


def test_steering_terms_are_clamped_to_steering_force():
    params = _pair_params(steering_force=0.5)
    boids = _pair()

    flock(params, boids, DeterministicRng(3))

    assert boids[0].velocity.x == approx(30.0 - 0.25 - 1.0 + 0.05)


def test_pairs_beyond_view_distance_do_not_interact():
    params = _pair_params(view_distance=75.0)
    boids = [
        Boid(id=0, position=Vector2(0.0, 0.0), velocity=Vector2(30.0, 0.0)),
        Boid(id=1, position=Vector2(100.0, 0.0), velocity=Vector2(-40.0, 10.0)),
    ]

    for fidelity in (0.25, 1.0):
        params.fidelity = fidelity
        flock(params, boids, DeterministicRng(5))

    assert boids[0].velocity == Vector2(30.0, 0.0)
    assert boids[1].velocity == Vector2(-40.0, 10.0)


def test_zero_fidelity_never_evaluates_pairs():
    params = _pair_params(fidelity=0.0)
    boids = _pair()

    pair_checks, interacting = flock(params, boids, DeterministicRng(11))

    assert pair_checks == 0
    assert interacting == 0
    assert [b.velocity for b in boids] == [Vector2(30.0, 0.0), Vector2(30.0, 0.0)]


def test_stationary_boid_never_gets_nan_velocity():
    params = _pair_params(steering_force=1.0)
    boids = [
        Boid(id=0, position=Vector2(0.0, 0.0), velocity=Vector2()),
        Boid(id=1, position=Vector2(3.0, 4.0), velocity=Vector2()),
    ]

    flock(params, boids, DeterministicRng(1))

    for boid in boids:
        assert math.isfinite(boid.velocity.x)
        assert math.isfinite(boid.velocity.y)


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_steered_boids_end_inside_speed_band(seed):
    params = FlockParameters(
        window_width=200.0,
        window_height=200.0,
        number_of_boids=40,
        view_distance=500.0,
        fidelity=1.0,
        min_speed=25.0,
        max_speed=60.0,
    )
    rng = DeterministicRng(seed)
    boids: list[Boid] = []
    population.reconcile(params, boids, rng, 0)

    _, interacting = flock(params, boids, rng)

    assert interacting == len(boids)
    for boid in boids:
        speed = boid.velocity.length()
        assert params.min_speed - 1e-9 <= speed <= params.max_speed + 1e-9
