from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    field_total: float
    field_peak: float
    average_speed: float
    attractor_x: float
    attractor_y: float
    tick_duration_ms: float = 0.0
