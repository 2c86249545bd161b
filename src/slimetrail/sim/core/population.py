from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterator, List

from pygame.math import Vector2

from .config import SpawnConfig
from .particle import Particle
from .rng import DeterministicRng
from ..utils.math2d import _wrap


@dataclass(frozen=True)
class SeedRegion:
    shape: str
    center: tuple[float, float]
    half_width: float
    half_height: float
    radius: float
    bounds: tuple[float, float]

    @staticmethod
    def from_config(spawn: SpawnConfig, width: float, height: float) -> "SeedRegion":
        cx = spawn.center[0] * width
        cy = spawn.center[1] * height
        return SeedRegion(
            shape=spawn.shape,
            center=(cx, cy),
            half_width=spawn.extent * width * 0.5,
            half_height=spawn.extent * height * 0.5,
            radius=spawn.extent * min(width, height) * 0.5,
            bounds=(float(width), float(height)),
        )

    def sample(self, rng: DeterministicRng) -> Vector2:
        cx, cy = self.center
        if self.shape == "disc":
            # sqrt keeps the density uniform over the disc area
            r = self.radius * math.sqrt(rng.next_float())
            theta = rng.next_angle()
            x = cx + math.cos(theta) * r
            y = cy + math.sin(theta) * r
        else:
            x = cx + rng.next_range(-self.half_width, self.half_width)
            y = cy + rng.next_range(-self.half_height, self.half_height)
        width, height = self.bounds
        return Vector2(_wrap(x, width), _wrap(y, height))


class ParticlePopulation:
    def __init__(self, rng: DeterministicRng):
        self._rng = rng
        self._particles: List[Particle] = []
        self._order: List[int] = []

    @property
    def particles(self) -> List[Particle]:
        return self._particles

    def __len__(self) -> int:
        return len(self._particles)

    def __iter__(self) -> Iterator[Particle]:
        return iter(self._particles)

    def initialize(
        self,
        count: int,
        seed_region: SeedRegion,
        speed_range: tuple[float, float] = (2.0, 4.0),
    ) -> None:
        if count <= 0:
            raise ValueError(f"Population size must be positive, got {count}")
        low, high = speed_range
        if high < low:
            low, high = high, low
        self._particles = []
        for index in range(count):
            position = seed_region.sample(self._rng)
            self._particles.append(
                Particle(
                    id=index,
                    position=position,
                    heading=self._rng.next_angle(),
                    speed=self._rng.next_range(low, high),
                )
            )
        self._order = list(range(count))

    def for_each_in_random_order(self, visitor: Callable[[Particle], None]) -> None:
        order = self._order
        self._rng.shuffle(order)
        particles = self._particles
        for index in order:
            visitor(particles[index])
