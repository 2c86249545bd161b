from __future__ import annotations

import math

import numpy as np
import numpy.typing as npt


class ScalarField:
    """Trail grid of non-negative intensities indexed as ``grid[y, x]``.

    Lookups floor continuous coordinates to the containing cell. Coordinates
    outside ``[0, width) x [0, height)`` read as zero and ignore deposits.
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Field dimensions must be positive, got {width}x{height}")
        self._width = int(width)
        self._height = int(height)
        self._grid: npt.NDArray[np.float64] = np.zeros((self._height, self._width), dtype=np.float64)
        self._scratch: npt.NDArray[np.float64] = np.zeros_like(self._grid)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def clear(self) -> None:
        self._grid.fill(0.0)

    def sample(self, x: float, y: float) -> float:
        key = self._cell_key(x, y)
        if key is None:
            return 0.0
        return float(self._grid[key[1], key[0]])

    def deposit(self, x: float, y: float, amount: float) -> None:
        if amount <= 0.0:
            return
        key = self._cell_key(x, y)
        if key is None:
            return
        self._grid[key[1], key[0]] += amount

    def decay(self, rate: float) -> None:
        if rate <= 0.0:
            return
        self._grid *= 1.0 - rate

    def diffuse(self, rate: float) -> None:
        """Blend each cell toward the mean of its four toroidal neighbors.

        ``v' = v + rate * (mean4(v) - v)``. Total intensity is preserved and a
        rate in ``[0, 1]`` keeps every cell non-negative.
        """
        if rate <= 0.0:
            return
        grid = self._grid
        scratch = self._scratch
        np.add(np.roll(grid, 1, axis=0), np.roll(grid, -1, axis=0), out=scratch)
        scratch += np.roll(grid, 1, axis=1)
        scratch += np.roll(grid, -1, axis=1)
        scratch *= 0.25
        scratch -= grid
        scratch *= rate
        grid += scratch
        np.maximum(grid, 0.0, out=grid)

    def view(self) -> npt.NDArray[np.float64]:
        view = self._grid.view()
        view.flags.writeable = False
        return view

    def total(self) -> float:
        return float(self._grid.sum())

    def peak(self) -> float:
        return float(self._grid.max())

    def _cell_key(self, x: float, y: float) -> tuple[int, int] | None:
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        ix = math.floor(x)
        iy = math.floor(y)
        if 0 <= ix < self._width and 0 <= iy < self._height:
            return (ix, iy)
        return None
