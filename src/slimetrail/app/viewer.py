from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

import numpy as np
import numpy.typing as npt
import pygame

from ..logging_config import setup_logging
from ..sim.core.config import SimulationConfig
from ..sim.core.engine import SimulationEngine
from .render import fade_frame, render_field, to_surface_array

logger = logging.getLogger(__name__)


def draw_field(
    engine: SimulationEngine,
    target: pygame.Surface,
    previous: Optional[npt.NDArray[np.uint8]] = None,
    fade: float = 0.0,
) -> npt.NDArray[np.uint8]:
    field = engine.field
    rgb = render_field(field, engine.config.tint)
    if previous is not None and fade > 0.0 and previous.shape == rgb.shape:
        rgb = fade_frame(previous, rgb, field, fade)
    frame = pygame.surfarray.make_surface(to_surface_array(rgb))
    if frame.get_size() != target.get_size():
        frame = pygame.transform.scale(frame, target.get_size())
    target.blit(frame, (0, 0))
    return rgb


def run_viewer(
    config: SimulationConfig,
    max_fps: int = 60,
    max_ticks: Optional[int] = None,
    fade: float = 0.1,
) -> None:
    engine = SimulationEngine(config)
    pygame.init()
    try:
        screen = pygame.display.set_mode((config.display_width, config.display_height))
        pygame.display.set_caption("Slime Trail")
        clock = pygame.time.Clock()
        paused = False
        running = True
        frame = None
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        running = False
                    elif event.key == pygame.K_SPACE:
                        paused = not paused
                    elif event.key == pygame.K_r:
                        engine.reset()
                        frame = None
                        logger.info("Simulation reset")

            if not paused:
                engine.tick()
                if max_ticks is not None and engine.tick_count >= max_ticks:
                    running = False
            frame = draw_field(engine, screen, previous=frame, fade=fade)
            pygame.display.flip()
            clock.tick(max_fps)
    finally:
        pygame.quit()


def main() -> None:
    parser = argparse.ArgumentParser(description="Live slime trail viewer")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--fps", type=int, default=60)
    parser.add_argument("--ticks", type=int, default=None, help="Exit after this many ticks")
    parser.add_argument("--fade", type=float, default=0.1, help="Per-frame afterglow fade, 0 disables")
    args = parser.parse_args()

    setup_logging()
    config = SimulationConfig.from_yaml(args.config) if args.config else SimulationConfig()
    if args.seed is not None:
        config = config.with_overrides({"seed": args.seed})
    run_viewer(config, max_fps=args.fps, max_ticks=args.ticks, fade=args.fade)


if __name__ == "__main__":
    main()
