from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List

import yaml

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    pass


# Ranges offered by the parameter panel. Updates coming from the panel (or the
# HTTP host) are clamped into these.
PARAMETER_RANGES: Dict[str, tuple[float, float]] = {
    "number_of_boids": (8, 2048),
    "view_distance": (0.0, 500.0),
    "cohesion_force": (0.0, 100.0),
    "separation_force": (0.0, 100.0),
    "separation_bias": (0.01, 10.0),
    "alignment_force": (0.0, 100.0),
    "alignment_bias": (0.01, 100.0),
    "steering_force": (0.0, 100.0),
    "fidelity": (0.01, 1.0),
    "min_speed": (10.0, 500.0),
    "max_speed": (10.0, 500.0),
}


@dataclass
class FlockParameters:
    window_width: float = 640.0
    window_height: float = 480.0
    number_of_boids: int = 512
    view_distance: float = 75.0
    cohesion_force: float = 2.5
    separation_force: float = 1.8
    separation_bias: float = 1.1
    alignment_force: float = 1.1
    alignment_bias: float = 1.5
    steering_force: float = 0.8
    fidelity: float = 0.9
    min_speed: float = 25.0
    max_speed: float = 100.0
    bounce_off_walls: bool = False

    def x_range(self) -> tuple[float, float]:
        return (-self.window_width / 2.0, self.window_width / 2.0)

    def y_range(self) -> tuple[float, float]:
        return (-self.window_height / 2.0, self.window_height / 2.0)

    def contains_x(self, x: float) -> bool:
        low, high = self.x_range()
        return low <= x < high

    def contains_y(self, y: float) -> bool:
        low, high = self.y_range()
        return low <= y < high

    def min_position(self) -> tuple[float, float]:
        return (-self.window_width / 2.0, -self.window_height / 2.0)

    def max_position(self) -> tuple[float, float]:
        return (self.window_width / 2.0, self.window_height / 2.0)

    def apply_update(self, changes: Dict[str, Any]) -> List[str]:
        # Nothing is written unless every value coerces. The extent only changes
        # through a resize.
        if not isinstance(changes, dict):
            raise ConfigError(f"Expected a mapping of parameters, got {type(changes).__name__}")
        known = set(PARAMETER_RANGES) | {"bounce_off_walls"}
        extent = sorted(set(changes) & {"window_width", "window_height"})
        if extent:
            raise ConfigError(f"Viewport extent changes through resize, not {', '.join(extent)}")
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigError(f"Unknown parameter(s): {', '.join(unknown)}")

        updates = {
            name: _coerce_parameter(name, value)
            for name, value in changes.items()
            if name not in ("min_speed", "max_speed")
        }
        # max first when both change, so min is bounded by the new max
        max_speed = self.max_speed
        if "max_speed" in changes:
            low, high = PARAMETER_RANGES["max_speed"]
            floor = low if "min_speed" in changes else max(low, self.min_speed)
            max_speed = max(floor, min(high, float(changes["max_speed"])))
            updates["max_speed"] = max_speed
        if "min_speed" in changes:
            low, _ = PARAMETER_RANGES["min_speed"]
            updates["min_speed"] = max(low, min(max_speed, float(changes["min_speed"])))

        changed = [name for name, value in updates.items() if getattr(self, name) != value]
        for name, value in updates.items():
            setattr(self, name, value)
        return changed

    def validate(self) -> None:
        problems = []
        if self.window_width <= 0 or self.window_height <= 0:
            problems.append("window extent must be positive")
        if self.number_of_boids <= 0:
            problems.append("number_of_boids must be positive")
        if self.view_distance <= 0:
            problems.append("view_distance must be positive")
        for name in ("cohesion_force", "separation_force", "alignment_force", "steering_force"):
            if getattr(self, name) < 0:
                problems.append(f"{name} must not be negative")
        if self.separation_bias <= 0:
            problems.append("separation_bias must be positive")
        if self.alignment_bias <= 0:
            problems.append("alignment_bias must be positive")
        if not 0.0 < self.fidelity <= 1.0:
            problems.append("fidelity must be in (0, 1]")
        if self.min_speed < 0 or self.min_speed > self.max_speed:
            problems.append("speed bounds must satisfy 0 <= min_speed <= max_speed")
        if problems:
            raise ConfigError("; ".join(problems))


def _coerce_parameter(name: str, value: Any) -> Any:
    if name == "bounce_off_walls":
        return bool(value)
    if name == "number_of_boids":
        low, high = PARAMETER_RANGES[name]
        return int(max(low, min(high, int(value))))
    low, high = PARAMETER_RANGES[name]
    return max(low, min(high, float(value)))


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 60.0
    seed: int = 42
    config_version: str = "v1"
    params: FlockParameters = field(default_factory=FlockParameters)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        config = load_config(data)
        logger.info("Loaded simulation config from %s", path)
        return config


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


def load_config(raw: dict) -> SimulationConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected a mapping at the top level, got {type(raw).__name__}")
    sim_fields = {f.name for f in fields(SimulationConfig)} - {"params"}
    param_fields = {f.name for f in fields(FlockParameters)}
    unknown = sorted(set(raw) - sim_fields - {"params"})
    params_raw = raw.get("params") or {}
    unknown += sorted(f"params.{key}" for key in set(params_raw) - param_fields)
    if unknown:
        logger.error("Rejected config with unknown keys: %s", unknown)
        raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")

    params = FlockParameters(**params_raw)
    params.number_of_boids = int(params.number_of_boids)
    params.bounce_off_walls = bool(params.bounce_off_walls)
    try:
        params.validate()
    except ConfigError:
        logger.error("Rejected invalid flock parameters: %s", params_raw)
        raise
    sim_values = {k: v for k, v in raw.items() if k != "params"}
    config = SimulationConfig(params=params, **sim_values)
    if config.time_step <= 0:
        raise ConfigError("time_step must be positive")
    return config
