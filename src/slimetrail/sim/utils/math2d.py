from __future__ import annotations

import math

from pygame.math import Vector2


def _wrap(value: float, size: float) -> float:
    wrapped = value % size
    # -tiny % size rounds to size itself
    if wrapped >= size:
        return 0.0
    return wrapped


def _wrap_position(position: Vector2, width: float, height: float) -> None:
    position.update(_wrap(position.x, width), _wrap(position.y, height))


def _heading_toward(origin: Vector2, target: Vector2) -> float:
    dx = target.x - origin.x
    dy = target.y - origin.y
    if dx * dx + dy * dy < 1e-12:
        return 0.0
    return math.atan2(dy, dx)


def _probe_point(position: Vector2, angle: float, distance: float) -> tuple[float, float]:
    return (position.x + math.cos(angle) * distance, position.y + math.sin(angle) * distance)
