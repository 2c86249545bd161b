from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    metadata: "SnapshotMetadata"
    attractor: "SnapshotAttractor"
    particles: List[Dict[str, Any]]


@dataclass(slots=True)
class SnapshotMetadata:
    width: int
    height: int
    resolution: int
    seed: int
    config_version: str
    color: str


@dataclass(slots=True)
class SnapshotAttractor:
    enabled: bool
    x: float
    y: float
