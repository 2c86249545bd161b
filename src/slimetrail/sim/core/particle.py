from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector2


@dataclass(slots=True)
class Particle:
    id: int
    position: Vector2 = field(default_factory=Vector2)
    heading: float = 0.0
    speed: float = 0.0
