from __future__ import annotations

import math

import numpy as np
import pytest
from pytest import approx

from slimetrail.sim.core.config import (
    AttractorConfig,
    ConfigurationError,
    SensorConfig,
    SimulationConfig,
    TrailConfig,
)
from slimetrail.sim.core.engine import EngineState, SimulationEngine
from slimetrail.sim.core.rng import DeterministicRng
from slimetrail.sim.systems import motion


def _small_config(**overrides) -> SimulationConfig:
    values = dict(
        display_width=64,
        display_height=48,
        resolution=1,
        particle_count=120,
        seed=5,
        attractor=AttractorConfig(inner_radius=10.0, outer_radius=30.0),
    )
    values.update(overrides)
    return SimulationConfig(**values)


def _single_particle_config(**overrides) -> SimulationConfig:
    values = dict(
        display_width=100,
        display_height=100,
        resolution=1,
        particle_count=1,
        seed=21,
        sensor=SensorConfig(angle=math.pi / 4, distance=15.0),
        trail=TrailConfig(deposit_amount=40.0, evaporation_rate=0.0),
        attractor=AttractorConfig(enabled=False),
    )
    values.update(overrides)
    return SimulationConfig(**values)


def _trajectory(engine: SimulationEngine, ticks: int) -> list[tuple[float, float, float, float]]:
    for _ in range(ticks):
        engine.tick()
    return [(p.position.x, p.position.y, p.heading, p.speed) for p in engine.particles]


def test_engine_starts_ready_with_allocated_state():
    engine = SimulationEngine(_small_config())

    assert engine.state is EngineState.READY
    assert engine.field.shape == (48, 64)
    assert len(engine.particles) == 120
    assert engine.tick_count == 0
    assert engine.metrics is None


def test_positions_stay_in_bounds_and_field_non_negative():
    engine = SimulationEngine(_small_config(trail=TrailConfig(evaporation_rate=0.05, diffusion_rate=0.2)))

    for _ in range(60):
        engine.tick()
        for particle in engine.particles:
            assert 0.0 <= particle.position.x < 64
            assert 0.0 <= particle.position.y < 48
        field = engine.field
        assert np.all(field >= 0.0)
        assert np.all(np.isfinite(field))


def test_tick_returns_metrics():
    engine = SimulationEngine(_small_config())
    metrics = engine.tick()

    assert metrics.tick == 1
    assert metrics.population == 120
    assert metrics.field_total > 0.0
    assert metrics.field_peak > 0.0
    assert metrics.average_speed >= engine.config.steering.min_speed
    assert engine.metrics is metrics


def test_decay_without_deposits_is_geometric():
    config = _small_config(trail=TrailConfig(deposit_amount=0.0, evaporation_rate=0.1))
    engine = SimulationEngine(config)
    engine.scalar_field.deposit(10.0, 10.0, 50.0)

    previous = engine.field[10, 10]
    for _ in range(30):
        engine.tick()
        current = engine.field[10, 10]
        assert current == approx(previous * 0.9)
        assert current < previous
        previous = current


def test_same_seed_gives_identical_trajectories():
    a = SimulationEngine(_small_config())
    b = SimulationEngine(_small_config())

    assert _trajectory(a, 40) == _trajectory(b, 40)
    assert np.array_equal(a.field, b.field)


def test_injected_rng_drives_the_run():
    config = _small_config()
    a = SimulationEngine(config, rng=DeterministicRng(99))
    b = SimulationEngine(config, rng=DeterministicRng(99))
    c = SimulationEngine(config, rng=DeterministicRng(100))

    ta = _trajectory(a, 10)
    assert ta == _trajectory(b, 10)
    assert ta != _trajectory(c, 10)


def test_single_particle_on_fresh_field_only_wanders_and_deposits_once():
    engine = SimulationEngine(_single_particle_config())
    particle = engine.particles[0]
    particle.position.update(50.0, 50.0)
    particle.heading = 0.0
    steering = engine.config.steering

    engine.tick()

    assert abs(particle.heading) <= steering.idle_jitter * 0.5
    assert particle.speed == approx(steering.base_speed)
    assert particle.position.x == approx(50.0 + math.cos(particle.heading) * particle.speed)
    assert particle.position.y == approx(50.0 + math.sin(particle.heading) * particle.speed)

    field = engine.field
    assert np.count_nonzero(field) == 1
    assert field[int(particle.position.y), int(particle.position.x)] == approx(40.0)
    assert field.sum() == approx(40.0)


def test_decay_applies_after_the_ticks_deposit():
    engine = SimulationEngine(
        _single_particle_config(trail=TrailConfig(deposit_amount=40.0, evaporation_rate=0.1))
    )

    engine.tick()

    field = engine.field
    assert np.count_nonzero(field) == 1
    assert field.sum() == approx(40.0 * 0.9)


def test_tick_while_ticking_raises_and_engine_recovers(monkeypatch):
    engine = SimulationEngine(_single_particle_config())
    visited = []

    def reentrant_deposit(particle, field, amount):
        assert engine.state is EngineState.TICKING
        with pytest.raises(RuntimeError):
            engine.tick()
        with pytest.raises(RuntimeError):
            engine.reset()
        visited.append(particle.id)

    monkeypatch.setattr(motion, "deposit", reentrant_deposit)
    engine.tick()

    assert visited == [0]
    assert engine.state is EngineState.READY
    assert engine.tick_count == 1


def test_particle_wraps_across_right_edge():
    engine = SimulationEngine(_single_particle_config())
    particle = engine.particles[0]
    particle.position.update(100 - 0.5, 50.0)
    particle.heading = 0.0

    engine.tick()

    assert 0.0 <= particle.position.x < particle.speed - 0.5
    assert 0.0 <= particle.position.y < 100


def test_particle_wraps_across_top_edge():
    engine = SimulationEngine(_single_particle_config())
    particle = engine.particles[0]
    particle.position.update(50.0, 0.25)
    particle.heading = -math.pi / 2

    engine.tick()

    assert particle.position.y > 90.0
    assert particle.position.y < 100.0


def test_reconfigure_reallocates_everything():
    engine = SimulationEngine(_small_config())
    for _ in range(5):
        engine.tick()

    engine.reconfigure(_small_config(resolution=2, particle_count=30))

    assert engine.state is EngineState.READY
    assert engine.field.shape == (24, 32)
    assert engine.field.sum() == 0.0
    assert len(engine.particles) == 30
    assert engine.tick_count == 0


def test_invalid_reconfigure_keeps_previous_run():
    engine = SimulationEngine(_small_config())
    engine.tick()

    with pytest.raises(ConfigurationError):
        engine.reconfigure(_small_config(particle_count=0))

    assert engine.state is EngineState.READY
    assert len(engine.particles) == 120
    assert engine.tick_count == 1


def test_reset_replays_the_same_run():
    engine = SimulationEngine(_small_config())
    first = _trajectory(engine, 15)

    engine.reset()
    assert engine.tick_count == 0
    assert engine.field.sum() == 0.0
    assert _trajectory(engine, 15) == first


@pytest.mark.parametrize(
    "overrides",
    [
        {"display_width": 0},
        {"display_height": -10},
        {"resolution": 0},
        {"display_width": 3, "resolution": 4},
        {"particle_count": 0},
        {"particle_count": -5},
        {"trail": TrailConfig(evaporation_rate=1.0)},
        {"trail": TrailConfig(diffusion_rate=1.5)},
        {"color": "not-a-color"},
    ],
)
def test_invalid_configuration_fails_before_any_tick(overrides):
    with pytest.raises(ConfigurationError):
        SimulationEngine(_small_config(**overrides))


def test_attractor_advances_each_tick():
    engine = SimulationEngine(_small_config())
    start = engine.attractor_center
    metrics = engine.tick()

    assert (metrics.attractor_x, metrics.attractor_y) != (start.x, start.y)
    assert (engine.attractor_center.x, engine.attractor_center.y) == (metrics.attractor_x, metrics.attractor_y)


def test_snapshot_reports_metadata():
    engine = SimulationEngine(_small_config(color="#ff8000"))
    engine.tick()
    snapshot = engine.snapshot(include_particles=True)

    assert snapshot.tick == 1
    assert snapshot.metadata.width == 64
    assert snapshot.metadata.height == 48
    assert snapshot.metadata.seed == 5
    assert snapshot.metadata.color == "#ff8000"
    assert snapshot.attractor.enabled
    assert len(snapshot.particles) == 120
    assert {"id", "x", "y", "heading", "speed"} <= set(snapshot.particles[0])
