from __future__ import annotations

from ..core.config import SensorConfig
from ..core.field import ScalarField
from ..core.particle import Particle
from ..utils.math2d import _probe_point


def sense(particle: Particle, angle_offset: float, field: ScalarField, distance: float) -> float:
    probe_x, probe_y = _probe_point(particle.position, particle.heading + angle_offset, distance)
    return field.sample(probe_x, probe_y)


def sense_triplet(particle: Particle, field: ScalarField, sensor: SensorConfig) -> tuple[float, float, float]:
    """Left, front and right readings in that order."""
    left = sense(particle, -sensor.angle, field, sensor.distance)
    front = sense(particle, 0.0, field, sensor.distance)
    right = sense(particle, sensor.angle, field, sensor.distance)
    return (left, front, right)
