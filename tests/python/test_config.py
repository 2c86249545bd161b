from __future__ import annotations

import math
from pathlib import Path

import pytest
import yaml
from pytest import approx

from slimetrail.sim.core.config import (
    ConfigurationError,
    SimulationConfig,
    load_config,
    parse_color,
)

ROOT = Path(__file__).resolve().parents[2]


def test_defaults_are_valid_and_derive_working_resolution():
    config = SimulationConfig().validate()

    assert config.width == config.display_width // config.resolution
    assert config.height == config.display_height // config.resolution
    assert config.sensor.angle == approx(math.pi / 4)
    assert config.tint == (255, 255, 255)


def test_config_is_immutable():
    config = SimulationConfig()
    with pytest.raises(AttributeError):
        config.particle_count = 10  # type: ignore[misc]


@pytest.mark.parametrize("value, expected", [("#ff8000", (255, 128, 0)), ("00FF10", (0, 255, 16))])
def test_parse_color(value, expected):
    assert parse_color(value) == expected


@pytest.mark.parametrize("value", ["#fff", "red", "", "#gg0000"])
def test_parse_color_rejects_garbage(value):
    with pytest.raises(ConfigurationError):
        parse_color(value)


def test_load_config_reads_nested_sections(tmp_path):
    raw = {
        "display_width": 320,
        "display_height": 200,
        "resolution": 4,
        "particle_count": 250,
        "sensor": {"angle": 0.5, "distance": 9.0},
        "trail": {"deposit_amount": 12.0, "evaporation_rate": 0.01, "diffusion_rate": 0.25},
        "attractor": {"enabled": False},
        "spawn": {"shape": "disc", "center": [0.25, 0.75], "extent": 0.3},
    }
    path = tmp_path / "sim.yaml"
    path.write_text(yaml.safe_dump(raw))

    config = SimulationConfig.from_yaml(path)

    assert (config.width, config.height) == (80, 50)
    assert config.sensor.distance == approx(9.0)
    assert config.trail.diffusion_rate == approx(0.25)
    assert not config.attractor.enabled
    assert config.spawn.center == (0.25, 0.75)


def test_load_config_rejects_unknown_keys():
    with pytest.raises(ConfigurationError):
        load_config({"sensor": {"range": 4.0}})
    with pytest.raises(ConfigurationError):
        load_config({"particles": 10})


def test_load_config_validates():
    with pytest.raises(ConfigurationError):
        load_config({"particle_count": 0})


def test_overrides_map_control_panel_names():
    config = SimulationConfig().with_overrides(
        {
            "particle_count": "1500",
            "sensor_angle": 0.3,
            "sensor_distance": 20,
            "deposit_amount": 50,
            "evaporation_rate": 0.005,
            "diffusion_rate": 0.1,
            "resolution": 4,
            "color": "#00ff00",
            "x_multiplier": 2,
            "y_multiplier": 4,
        }
    )

    assert config.particle_count == 1500
    assert config.sensor.angle == approx(0.3)
    assert config.sensor.distance == approx(20.0)
    assert config.trail.deposit_amount == approx(50.0)
    assert config.trail.evaporation_rate == approx(0.005)
    assert config.trail.diffusion_rate == approx(0.1)
    assert config.resolution == 4
    assert config.tint == (0, 255, 0)
    assert config.attractor.amplitude_x == approx(0.5)
    assert config.attractor.amplitude_y == approx(0.25)


def test_overrides_leave_base_untouched_and_reject_unknown():
    base = SimulationConfig()
    base.with_overrides({"particle_count": 10})
    assert base.particle_count == SimulationConfig().particle_count

    with pytest.raises(ConfigurationError):
        base.with_overrides({"warp_speed": 9})
    with pytest.raises(ConfigurationError):
        base.with_overrides({"evaporation_rate": 2.0})


def test_flat_view_round_trips_through_overrides():
    config = SimulationConfig()
    flat = config.to_flat()
    flat.pop("attractor_enabled")

    assert config.with_overrides(flat) == config


@pytest.mark.config_change
def test_default_yaml_matches_dataclass_defaults():
    config = SimulationConfig.from_yaml(ROOT / "configs" / "default.yaml")

    assert config == SimulationConfig()
