from __future__ import annotations

import logging
from enum import Enum
from time import perf_counter
from typing import List

import numpy as np
import numpy.typing as npt
from pygame.math import Vector2

from .config import SimulationConfig
from .field import ScalarField
from .particle import Particle
from .population import ParticlePopulation, SeedRegion
from .rng import DeterministicRng
from ..systems import metrics as metrics_system, motion, sensing, steering
from ..systems.attractor import AttractorDriver
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotAttractor, SnapshotMetadata

logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    UNINITIALIZED = "Uninitialized"
    READY = "Ready"
    TICKING = "Ticking"


class SimulationEngine:
    """Couples a particle population to a trail field one discrete tick at a time.

    Every configuration change goes through ``reconfigure``, which throws away
    the field, the population and the attractor and builds them again. There
    is no incremental resize.
    """

    def __init__(self, config: SimulationConfig, rng: DeterministicRng | None = None):
        self._state = EngineState.UNINITIALIZED
        self._config = config
        self._rng = rng if rng is not None else DeterministicRng(config.seed)
        self._field: ScalarField | None = None
        self._population: ParticlePopulation | None = None
        self._attractor: AttractorDriver | None = None
        self._attractor_center = Vector2()
        self._tick = 0
        self._metrics: TickMetrics | None = None
        self._initialize()

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def particles(self) -> List[Particle]:
        return self._require_population().particles

    @property
    def field(self) -> npt.NDArray[np.float64]:
        return self._require_field().view()

    @property
    def scalar_field(self) -> ScalarField:
        return self._require_field()

    @property
    def attractor_center(self) -> Vector2:
        return Vector2(self._attractor_center)

    def reconfigure(self, config: SimulationConfig, rng: DeterministicRng | None = None) -> None:
        if self._state is EngineState.TICKING:
            raise RuntimeError("Cannot reconfigure while a tick is in progress")
        config.validate()
        self._teardown()
        self._config = config
        self._rng = rng if rng is not None else DeterministicRng(config.seed)
        self._initialize()

    def reset(self) -> None:
        if self._state is EngineState.TICKING:
            raise RuntimeError("Cannot reset while a tick is in progress")
        self._teardown()
        self._rng.reset()
        self._initialize()

    def tick(self) -> TickMetrics:
        if self._state is not EngineState.READY:
            raise RuntimeError(f"Engine is not ready to tick (state: {self._state.value})")
        start = perf_counter()
        self._state = EngineState.TICKING
        config = self._config
        field = self._require_field()
        population = self._require_population()
        attractor = self._require_attractor()
        rng = self._rng
        width = field.width
        height = field.height
        sensor = config.sensor
        steering_config = config.steering
        attractor_config = config.attractor
        deposit_amount = config.trail.deposit_amount

        try:
            center = attractor.advance()
            self._attractor_center = center
            bias = attractor.enabled

            def update(particle: Particle) -> None:
                readings = sensing.sense_triplet(particle, field, sensor)
                steering.steer(particle, readings, steering_config, rng)
                if bias:
                    steering.apply_attractor_bias(particle, center, attractor_config, rng)
                motion.advance(particle, width, height)
                motion.deposit(particle, field, deposit_amount)

            population.for_each_in_random_order(update)
            field.decay(config.trail.evaporation_rate)
            field.diffuse(config.trail.diffusion_rate)
        finally:
            self._state = EngineState.READY

        self._tick += 1
        elapsed_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            self._tick, population, field, self._attractor_center, elapsed_ms
        )
        logger.debug(
            "tick %d: total=%.3f peak=%.3f (%.2f ms)",
            self._tick,
            self._metrics.field_total,
            self._metrics.field_peak,
            elapsed_ms,
        )
        return self._metrics

    def snapshot(self, include_particles: bool = False) -> Snapshot:
        config = self._config
        field = self._require_field()
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(
                self._tick, self._require_population(), field, self._attractor_center, 0.0
            )
        particles = []
        if include_particles:
            particles = [
                {
                    "id": particle.id,
                    "x": particle.position.x,
                    "y": particle.position.y,
                    "heading": particle.heading,
                    "speed": particle.speed,
                }
                for particle in self._require_population()
            ]
        return Snapshot(
            tick=self._tick,
            metrics=metrics,
            metadata=SnapshotMetadata(
                width=field.width,
                height=field.height,
                resolution=config.resolution,
                seed=config.seed,
                config_version=config.config_version,
                color=config.color,
            ),
            attractor=SnapshotAttractor(
                enabled=config.attractor.enabled,
                x=self._attractor_center.x,
                y=self._attractor_center.y,
            ),
            particles=particles,
        )

    def _initialize(self) -> None:
        config = self._config.validate()
        width = config.width
        height = config.height
        self._field = ScalarField(width, height)
        population = ParticlePopulation(self._rng)
        population.initialize(
            config.particle_count,
            SeedRegion.from_config(config.spawn, width, height),
            (config.steering.initial_speed_min, config.steering.initial_speed_max),
        )
        self._population = population
        self._attractor = AttractorDriver(config.attractor, width, height)
        self._attractor_center = self._attractor.center
        self._tick = 0
        self._metrics = None
        self._state = EngineState.READY
        logger.info(
            "Simulation initialized: %dx%d field, %d particles, seed %d",
            width,
            height,
            config.particle_count,
            config.seed,
        )

    def _teardown(self) -> None:
        self._state = EngineState.UNINITIALIZED
        self._field = None
        self._population = None
        self._attractor = None
        self._metrics = None

    def _require_field(self) -> ScalarField:
        if self._field is None:
            raise RuntimeError("Engine is not initialized")
        return self._field

    def _require_population(self) -> ParticlePopulation:
        if self._population is None:
            raise RuntimeError("Engine is not initialized")
        return self._population

    def _require_attractor(self) -> AttractorDriver:
        if self._attractor is None:
            raise RuntimeError("Engine is not initialized")
        return self._attractor
