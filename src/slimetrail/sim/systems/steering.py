from __future__ import annotations

from pygame.math import Vector2

from ..core.config import AttractorConfig, SteeringConfig
from ..core.particle import Particle
from ..core.rng import DeterministicRng
from ..utils.math2d import _heading_toward


def steer(
    particle: Particle,
    readings: tuple[float, float, float],
    config: SteeringConfig,
    rng: DeterministicRng,
) -> None:
    left, front, right = readings
    if front > left and front > right:
        particle.heading += (rng.next_float() - 0.5) * config.wander_jitter
    elif left > right:
        particle.heading -= rng.next_float() * config.max_turn
    elif right > left:
        particle.heading += rng.next_float() * config.max_turn
    else:
        particle.heading += (rng.next_float() - 0.5) * config.idle_jitter

    strongest = max(left, front, right)
    signal = strongest / config.intensity_ceiling
    particle.speed = max(config.min_speed, config.base_speed + signal * config.speed_gain)


def apply_attractor_bias(
    particle: Particle,
    center: Vector2,
    config: AttractorConfig,
    rng: DeterministicRng,
) -> None:
    distance = particle.position.distance_to(center)
    if distance > config.inner_radius and rng.next_float() < config.snap_probability:
        bearing = _heading_toward(particle.position, center)
        particle.heading = bearing + (rng.next_float() - 0.5) * config.snap_noise
        particle.speed += config.snap_speed_boost
    if distance > config.outer_radius:
        particle.speed += config.far_speed_boost
