from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import ConfigError, SimulationConfig
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

_BASIC_HEADER = [
    "tick",
    "population",
    "pair_checks",
    "interacting",
    "avg_speed",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "spawned",
    "removed",
    "pair_checks",
    "interacting",
    "pointer_affected",
    "wall_corrections",
    "avg_speed",
    "tick_ms",
    "interacting_ratio",
    "pair_checks_per_boid",
    "min_speed_seen",
    "max_speed_seen",
    "heading_order",
    "centroid_x",
    "centroid_y",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.pair_checks,
        metrics.interacting,
        f"{metrics.average_speed:.4f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: TickMetrics, tick_ms: float) -> list[object]:
    population = metrics.population
    if population <= 0:
        interacting_ratio = 0.0
        pair_checks_per_boid = 0.0
        min_speed = 0.0
        max_speed = 0.0
        heading_order = 0.0
        centroid_x = 0.0
        centroid_y = 0.0
    else:
        interacting_ratio = metrics.interacting / population
        pair_checks_per_boid = metrics.pair_checks / population
        speeds = []
        sum_x = 0.0
        sum_y = 0.0
        dir_x = 0.0
        dir_y = 0.0
        for boid in world.boids:
            speed = boid.velocity.length()
            speeds.append(speed)
            sum_x += boid.position.x
            sum_y += boid.position.y
            if speed > 0.0:
                dir_x += boid.velocity.x / speed
                dir_y += boid.velocity.y / speed
        min_speed = min(speeds)
        max_speed = max(speeds)
        # 1.0 when every boid flies the same way, near 0 when headings cancel
        heading_order = math.hypot(dir_x, dir_y) / population
        centroid_x = sum_x / population
        centroid_y = sum_y / population

    return [
        metrics.tick,
        population,
        metrics.spawned,
        metrics.removed,
        metrics.pair_checks,
        metrics.interacting,
        metrics.pointer_affected,
        metrics.wall_corrections,
        f"{metrics.average_speed:.4f}",
        f"{tick_ms:.3f}",
        f"{interacting_ratio:.4f}",
        f"{pair_checks_per_boid:.4f}",
        f"{min_speed:.4f}",
        f"{max_speed:.4f}",
        f"{heading_order:.4f}",
        f"{centroid_x:.4f}",
        f"{centroid_y:.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 600,
    config_path: Optional[Path] = None,
) -> World:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    world = World(config)
    logger.info("Running %d headless steps with %d boids (seed %d)", steps, len(world.boids), config.seed)

    tick_ms_series: list[float] = []
    speed_series: list[float] = []
    pair_checks_series: list[float] = []
    interacting_series: list[float] = []

    csv_file = Path(log_path).open("w", newline="") if log_path else None
    try:
        writer = None
        if csv_file:
            writer = csv.writer(csv_file)
            writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

        for tick in range(steps):
            metrics = world.step(tick)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            tick_ms_series.append(tick_ms)
            speed_series.append(metrics.average_speed)
            pair_checks_series.append(float(metrics.pair_checks))
            interacting_series.append(float(metrics.interacting))
            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "population": len(world.boids),
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "tick_ms": _summary_stats(tick_ms_series),
            "average_speed": _summary_stats(speed_series),
            "pair_checks": _summary_stats(pair_checks_series),
            "interacting": _summary_stats(interacting_series),
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "average_speed": _summary_stats(speed_series[tail_slice]),
                "interacting": _summary_stats(interacting_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless flocking simulation")
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=600,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        run_headless(
            args.steps,
            args.seed,
            args.log,
            deterministic_log=args.deterministic_log,
            log_format=args.log_format,
            summary_path=args.summary,
            summary_window=args.summary_window,
            config_path=args.config,
        )
    except ConfigError as exc:
        parser.exit(2, f"invalid config: {exc}\n")


if __name__ == "__main__":
    main()
