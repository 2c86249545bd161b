from __future__ import annotations

import math

from ..core.field import ScalarField
from ..core.particle import Particle
from ..utils.math2d import _wrap_position


def advance(particle: Particle, width: float, height: float) -> None:
    position = particle.position
    position.update(
        position.x + math.cos(particle.heading) * particle.speed,
        position.y + math.sin(particle.heading) * particle.speed,
    )
    _wrap_position(position, width, height)


def deposit(particle: Particle, field: ScalarField, amount: float) -> None:
    field.deposit(particle.position.x, particle.position.y, amount)
