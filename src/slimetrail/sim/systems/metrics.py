from __future__ import annotations

from typing import Iterable

from pygame.math import Vector2

from ..core.field import ScalarField
from ..core.particle import Particle
from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    particles: Iterable[Particle],
    field: ScalarField,
    attractor: Vector2,
    duration_ms: float,
) -> TickMetrics:
    population = 0
    speed_sum = 0.0
    for particle in particles:
        population += 1
        speed_sum += particle.speed
    return TickMetrics(
        tick=tick,
        population=population,
        field_total=field.total(),
        field_peak=field.peak(),
        average_speed=speed_sum / population if population else 0.0,
        attractor_x=attractor.x,
        attractor_y=attractor.y,
        tick_duration_ms=duration_ms,
    )
