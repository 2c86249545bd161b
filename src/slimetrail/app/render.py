from __future__ import annotations

import numpy as np
import numpy.typing as npt


def render_field(
    field: npt.NDArray[np.float64],
    tint: tuple[int, int, int],
    ceiling: float = 255.0,
) -> npt.NDArray[np.uint8]:
    """Map intensities to RGB as ``min(255, v) * tint / 255`` per channel.

    Returns a ``(height, width, 3)`` uint8 array in row-major field order.
    """
    level = np.minimum(field, ceiling) * (255.0 / ceiling)
    channels = np.asarray(tint, dtype=np.float64)
    rgb = level[:, :, np.newaxis] * channels[np.newaxis, np.newaxis, :] / 255.0
    return np.clip(rgb, 0.0, 255.0).astype(np.uint8)


def to_surface_array(rgb: npt.NDArray[np.uint8]) -> npt.NDArray[np.uint8]:
    # pygame surfarray indexes as [x, y]
    return np.ascontiguousarray(rgb.transpose(1, 0, 2))


def fade_frame(
    previous: npt.NDArray[np.uint8],
    rgb: npt.NDArray[np.uint8],
    field: npt.NDArray[np.float64],
    fade: float,
) -> npt.NDArray[np.uint8]:
    """Darken ``previous`` by ``fade`` and paint cells holding trail from ``rgb``.

    Empty cells keep a dimming afterglow of earlier frames instead of going
    black at once.
    """
    faded = previous.astype(np.float64) * (1.0 - fade)
    occupied = field > 0.0
    faded[occupied] = rgb[occupied]
    return np.clip(faded, 0.0, 255.0).astype(np.uint8)
