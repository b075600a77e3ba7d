import math

import pytest

from flocking.sim.core.config import FlockParameters, SimulationConfig
from flocking.sim.core.world import World


@pytest.mark.slow
def test_long_run_stays_finite_and_bounded():
    config = SimulationConfig(seed=21, params=FlockParameters(number_of_boids=150))
    world = World(config)
    params = world.params

    interacting_tail = []
    for tick in range(600):
        metrics = world.step(tick)
        if tick >= 500:
            interacting_tail.append(metrics.interacting)

    for boid in world.boids:
        assert math.isfinite(boid.position.x) and math.isfinite(boid.position.y)
        assert boid.velocity.length() <= params.max_speed + 1e-6
        # wrap mode mirrors boids back before they drift far off screen
        assert abs(boid.position.x) <= params.window_width
        assert abs(boid.position.y) <= params.window_height
    summary = f"avg_interacting={sum(interacting_tail) / len(interacting_tail):.1f}"
    assert min(interacting_tail) > 0, summary
