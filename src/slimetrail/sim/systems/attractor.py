from __future__ import annotations

import math

from pygame.math import Vector2

from ..core.config import AttractorConfig


class AttractorDriver:
    """Lissajous-style wander of a target point around a fixed origin.

    The center is a pure function of the accumulated time, so two drivers
    advanced by the same steps report identical centers.
    """

    def __init__(self, config: AttractorConfig, width: float, height: float):
        self._config = config
        self._origin = Vector2(width * 0.5, height * 0.5)
        self._radius_x = config.amplitude_x * width * 0.5
        self._radius_y = config.amplitude_y * height * 0.5
        self._time = 0.0
        self._center = self._compute_center()

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def time(self) -> float:
        return self._time

    @property
    def center(self) -> Vector2:
        return Vector2(self._center)

    def reset(self) -> None:
        self._time = 0.0
        self._center = self._compute_center()

    def advance(self, dt: float | None = None) -> Vector2:
        if not self._config.enabled:
            return Vector2(self._origin)
        self._time += self._config.time_step if dt is None else dt
        self._center = self._compute_center()
        return Vector2(self._center)

    def _compute_center(self) -> Vector2:
        if not self._config.enabled:
            return Vector2(self._origin)
        return Vector2(
            self._origin.x + math.sin(self._time * self._config.frequency_x) * self._radius_x,
            self._origin.y + math.cos(self._time * self._config.frequency_y) * self._radius_y,
        )
