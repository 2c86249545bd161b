from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict

import yaml

_COLOR_PATTERN = re.compile(r"^#?([0-9a-fA-F]{6})$")


class ConfigurationError(ValueError):
    """Raised when a configuration cannot produce a valid simulation run."""


def parse_color(value: str) -> tuple[int, int, int]:
    match = _COLOR_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ConfigurationError(f"Invalid color: {value!r} (expected '#rrggbb')")
    digits = match.group(1)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


@dataclass(frozen=True)
class SensorConfig:
    angle: float = math.pi / 4
    distance: float = 15.0


@dataclass(frozen=True)
class SteeringConfig:
    wander_jitter: float = 0.2
    idle_jitter: float = 0.4
    max_turn: float = 0.8
    base_speed: float = 2.0
    speed_gain: float = 2.0
    min_speed: float = 0.5
    intensity_ceiling: float = 255.0
    initial_speed_min: float = 2.0
    initial_speed_max: float = 4.0


@dataclass(frozen=True)
class AttractorConfig:
    enabled: bool = True
    time_step: float = 0.005
    amplitude_x: float = 0.7
    amplitude_y: float = 0.7
    frequency_x: float = 1.0
    frequency_y: float = 0.5
    inner_radius: float = 120.0
    outer_radius: float = 320.0
    snap_probability: float = 0.05
    snap_noise: float = 0.5
    snap_speed_boost: float = 1.0
    far_speed_boost: float = 0.5


@dataclass(frozen=True)
class SpawnConfig:
    # "rect" covers center +/- extent * size / 2, "disc" a radius of extent * min(size) / 2
    shape: str = "rect"
    center: tuple[float, float] = (0.5, 0.5)
    extent: float = 1.0


@dataclass(frozen=True)
class TrailConfig:
    deposit_amount: float = 30.0
    evaporation_rate: float = 0.003
    diffusion_rate: float = 0.0


@dataclass(frozen=True)
class SimulationConfig:
    display_width: int = 800
    display_height: int = 600
    resolution: int = 2
    particle_count: int = 5000
    seed: int = 42
    color: str = "#ffffff"
    config_version: str = "v1"
    sensor: SensorConfig = field(default_factory=SensorConfig)
    steering: SteeringConfig = field(default_factory=SteeringConfig)
    attractor: AttractorConfig = field(default_factory=AttractorConfig)
    spawn: SpawnConfig = field(default_factory=SpawnConfig)
    trail: TrailConfig = field(default_factory=TrailConfig)

    @property
    def width(self) -> int:
        return int(self.display_width) // max(1, int(self.resolution))

    @property
    def height(self) -> int:
        return int(self.display_height) // max(1, int(self.resolution))

    @property
    def tint(self) -> tuple[int, int, int]:
        return parse_color(self.color)

    def validate(self) -> "SimulationConfig":
        if int(self.resolution) <= 0:
            raise ConfigurationError(f"resolution must be positive, got {self.resolution}")
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(
                f"Field dimensions must be positive, got {self.width}x{self.height} "
                f"(display {self.display_width}x{self.display_height} / {self.resolution})"
            )
        if int(self.particle_count) <= 0:
            raise ConfigurationError(f"particle_count must be positive, got {self.particle_count}")
        if not 0.0 <= self.trail.evaporation_rate < 1.0:
            raise ConfigurationError(
                f"evaporation_rate must be in [0, 1), got {self.trail.evaporation_rate}"
            )
        if not 0.0 <= self.trail.diffusion_rate <= 1.0:
            raise ConfigurationError(f"diffusion_rate must be in [0, 1], got {self.trail.diffusion_rate}")
        if self.trail.deposit_amount < 0.0 or not math.isfinite(self.trail.deposit_amount):
            raise ConfigurationError(f"deposit_amount must be finite and >= 0, got {self.trail.deposit_amount}")
        if self.sensor.distance < 0.0:
            raise ConfigurationError(f"sensor distance must be >= 0, got {self.sensor.distance}")
        steering = self.steering
        if steering.intensity_ceiling <= 0.0:
            raise ConfigurationError("intensity_ceiling must be positive")
        if steering.min_speed < 0.0:
            raise ConfigurationError("min_speed must be >= 0")
        if steering.initial_speed_max < steering.initial_speed_min:
            raise ConfigurationError("initial_speed_max must be >= initial_speed_min")
        attractor = self.attractor
        if not 0.0 <= attractor.snap_probability <= 1.0:
            raise ConfigurationError(f"snap_probability must be in [0, 1], got {attractor.snap_probability}")
        if attractor.outer_radius < attractor.inner_radius:
            raise ConfigurationError("attractor outer_radius must be >= inner_radius")
        if self.spawn.shape not in {"rect", "disc"}:
            raise ConfigurationError(f"Unknown spawn shape: {self.spawn.shape}")
        if self.spawn.extent < 0.0:
            raise ConfigurationError("spawn extent must be >= 0")
        parse_color(self.color)
        return self

    def with_overrides(self, overrides: Dict[str, Any]) -> "SimulationConfig":
        """Return a new config with flat control-panel parameters applied.

        Unknown keys raise ``ConfigurationError``. The returned config is
        validated, so callers can treat it as the next run's configuration.
        """
        top: Dict[str, Any] = {}
        sensor: Dict[str, Any] = {}
        trail_values: Dict[str, Any] = {}
        attractor: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key in _TOP_LEVEL_OVERRIDES:
                top[_TOP_LEVEL_OVERRIDES[key]] = value
            elif key in _SENSOR_OVERRIDES:
                sensor[_SENSOR_OVERRIDES[key]] = float(value)
            elif key in _TRAIL_OVERRIDES:
                trail_values[_TRAIL_OVERRIDES[key]] = float(value)
            elif key in _ATTRACTOR_OVERRIDES:
                attractor[_ATTRACTOR_OVERRIDES[key]] = value
            else:
                raise ConfigurationError(f"Unknown parameter: {key}")
        for name in ("particle_count", "resolution", "display_width", "display_height", "seed"):
            if name in top:
                top[name] = int(top[name])
        if "amplitude_x" in attractor:
            attractor["amplitude_x"] = 1.0 / max(1e-6, float(attractor["amplitude_x"]))
        if "amplitude_y" in attractor:
            attractor["amplitude_y"] = 1.0 / max(1e-6, float(attractor["amplitude_y"]))
        updated = replace(
            self,
            sensor=replace(self.sensor, **sensor),
            trail=replace(self.trail, **trail_values),
            attractor=replace(self.attractor, **attractor),
            **top,
        )
        return updated.validate()

    def to_flat(self) -> Dict[str, Any]:
        return {
            "particle_count": self.particle_count,
            "sensor_angle": self.sensor.angle,
            "sensor_distance": self.sensor.distance,
            "deposit_amount": self.trail.deposit_amount,
            "evaporation_rate": self.trail.evaporation_rate,
            "diffusion_rate": self.trail.diffusion_rate,
            "resolution": self.resolution,
            "color": self.color,
            "display_width": self.display_width,
            "display_height": self.display_height,
            "seed": self.seed,
            "attractor_enabled": self.attractor.enabled,
        }

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


# Control-panel names; x/y multipliers divide the attractor's reach.
_TOP_LEVEL_OVERRIDES = {
    "particle_count": "particle_count",
    "resolution": "resolution",
    "color": "color",
    "display_width": "display_width",
    "display_height": "display_height",
    "seed": "seed",
}
_SENSOR_OVERRIDES = {"sensor_angle": "angle", "sensor_distance": "distance"}
_TRAIL_OVERRIDES = {
    "deposit_amount": "deposit_amount",
    "evaporation_rate": "evaporation_rate",
    "diffusion_rate": "diffusion_rate",
}
_ATTRACTOR_OVERRIDES = {
    "attractor_enabled": "enabled",
    "x_multiplier": "amplitude_x",
    "y_multiplier": "amplitude_y",
}


@dataclass(frozen=True)
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2
    tick_interval: float = 1.0 / 60.0


def load_config(raw: dict) -> SimulationConfig:
    def _section(name: str, cls: type) -> Any:
        values = raw.get(name) or {}
        if not isinstance(values, dict):
            raise ConfigurationError(f"Section '{name}' must be a mapping")
        try:
            return cls(**values)
        except TypeError as exc:
            raise ConfigurationError(f"Invalid '{name}' section: {exc}") from exc

    spawn_raw = dict(raw.get("spawn") or {})
    if "center" in spawn_raw:
        center = spawn_raw["center"]
        if not isinstance(center, (tuple, list)) or len(center) != 2:
            raise ConfigurationError("spawn.center must be a pair")
        spawn_raw["center"] = (float(center[0]), float(center[1]))

    sections = {"sensor", "steering", "attractor", "spawn", "trail"}
    sim_values = {k: v for k, v in raw.items() if k not in sections}
    try:
        config = SimulationConfig(
            sensor=_section("sensor", SensorConfig),
            steering=_section("steering", SteeringConfig),
            attractor=_section("attractor", AttractorConfig),
            spawn=SpawnConfig(**spawn_raw),
            trail=_section("trail", TrailConfig),
            **sim_values,
        )
    except TypeError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
    return config.validate()
