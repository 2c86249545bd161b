from __future__ import annotations

import argparse
import csv
import json
import logging
from pathlib import Path
from typing import Optional

import numpy as np

from ..logging_config import setup_logging
from ..sim.core.config import SimulationConfig
from ..sim.core.engine import SimulationEngine
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

_BASIC_HEADER = [
    "tick",
    "population",
    "field_total",
    "field_peak",
    "avg_speed",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "field_total",
    "field_peak",
    "field_mean",
    "occupied_cells",
    "coverage",
    "avg_speed",
    "min_speed",
    "max_speed",
    "attractor_x",
    "attractor_y",
    "tick_ms",
    "tick_ms_per_particle",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        f"{metrics.field_total:.4f}",
        f"{metrics.field_peak:.4f}",
        f"{metrics.average_speed:.4f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(engine: SimulationEngine, metrics: TickMetrics, tick_ms: float) -> list[object]:
    field = engine.field
    cell_count = field.size
    occupied_cells = int(np.count_nonzero(field))
    population = metrics.population
    if population <= 0:
        min_speed = 0.0
        max_speed = 0.0
        tick_ms_per_particle = 0.0
    else:
        speeds = [particle.speed for particle in engine.particles]
        min_speed = min(speeds)
        max_speed = max(speeds)
        tick_ms_per_particle = tick_ms / population

    return [
        metrics.tick,
        population,
        f"{metrics.field_total:.4f}",
        f"{metrics.field_peak:.4f}",
        f"{metrics.field_total / cell_count if cell_count else 0.0:.6f}",
        occupied_cells,
        f"{occupied_cells / cell_count if cell_count else 0.0:.6f}",
        f"{metrics.average_speed:.4f}",
        f"{min_speed:.4f}",
        f"{max_speed:.4f}",
        f"{metrics.attractor_x:.4f}",
        f"{metrics.attractor_y:.4f}",
        f"{tick_ms:.3f}",
        f"{tick_ms_per_particle:.6f}",
    ]


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p95": 0.0}
    series = np.asarray(values, dtype=np.float64)
    p50, p95 = np.percentile(series, [50.0, 95.0])
    return {
        "min": float(series.min()),
        "max": float(series.max()),
        "avg": float(series.mean()),
        "p50": float(p50),
        "p95": float(p95),
    }


def _speed_trail_coupling(speeds: list[float], peaks: list[float]) -> float:
    # Pearson r of mean speed against peak trail intensity; 0 when undefined
    if len(speeds) < 2 or np.ptp(speeds) == 0.0 or np.ptp(peaks) == 0.0:
        return 0.0
    return float(np.clip(np.corrcoef(speeds, peaks)[0, 1], -1.0, 1.0))


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 5000,
    config: Optional[SimulationConfig] = None,
) -> SimulationEngine:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config = config if config is not None else SimulationConfig()
    if seed is not None:
        config = config.with_overrides({"seed": seed})
    engine = SimulationEngine(config)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    total_series: list[float] = []
    peak_series: list[float] = []
    speed_series: list[float] = []

    try:
        for _ in range(steps):
            metrics = engine.tick()
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms

            if summary_path:
                tick_ms_series.append(tick_ms)
                total_series.append(metrics.field_total)
                peak_series.append(metrics.field_peak)
                speed_series.append(metrics.average_speed)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(engine, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    logger.info("Headless run finished after %d ticks", engine.tick_count)

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "field": {"width": config.width, "height": config.height},
            "particles": config.particle_count,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "tick_ms": _summary_stats(tick_ms_series),
            "field_total": _summary_stats(total_series),
            "field_peak": _summary_stats(peak_series),
            "avg_speed": _summary_stats(speed_series),
            "speed_trail_coupling": _speed_trail_coupling(speed_series, peak_series),
            "tail_window": {
                "window": window,
                "field_total": _summary_stats(total_series[tail_slice]),
                "avg_speed": _summary_stats(speed_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
        logger.info("Summary written to %s", summary_path)

    return engine


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless slime trail simulation")
    parser.add_argument("--steps", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=5000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)
    config = SimulationConfig.from_yaml(args.config) if args.config else None
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config=config,
    )


if __name__ == "__main__":
    main()
