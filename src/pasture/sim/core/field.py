from __future__ import annotations

import math
from typing import Dict, List, Sequence

from .config import FieldConfig
from .rng import DeterministicRng


class ResourceField:
    """Fixed-size grid of plant density, each cell kept within [0, plant_max].

    Continuous coordinates span ``width`` x ``height`` and map onto a square
    ``resolution`` x ``resolution`` grid.
    """

    def __init__(self, config: FieldConfig):
        self._config = config
        self._width = float(config.width)
        self._height = float(config.height)
        self._resolution = max(2, int(config.resolution))
        self._max = float(config.plant_max)
        self._cells: List[float] = [0.0] * (self._resolution * self._resolution)

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def resolution(self) -> int:
        return self._resolution

    @property
    def plant_max(self) -> float:
        return self._max

    def cell(self, ix: int, iy: int) -> float:
        return self._cells[iy * self._resolution + ix]

    def values(self) -> tuple[float, ...]:
        return tuple(self._cells)

    def total(self) -> float:
        return math.fsum(self._cells)

    def load(self, values: Sequence[float]) -> None:
        if len(values) != len(self._cells):
            raise ValueError(f"Expected {len(self._cells)} cells, got {len(values)}")
        for value in values:
            if not 0.0 <= value <= self._max:
                raise ValueError(f"Cell value {value!r} outside [0, {self._max}]")
        self._cells[:] = [float(value) for value in values]

    def _cell_index(self, x: float, y: float) -> int:
        last = self._resolution - 1
        ix = max(0, min(last, int(math.floor(x / self._width * self._resolution))))
        iy = max(0, min(last, int(math.floor(y / self._height * self._resolution))))
        return iy * self._resolution + ix

    def sample(self, x: float, y: float) -> float:
        res = self._resolution
        upper = res - 1e-6
        gx = max(0.0, min(upper, x / self._width * res))
        gy = max(0.0, min(upper, y / self._height * res))
        x0 = int(gx)
        y0 = int(gy)
        x1 = min(res - 1, x0 + 1)
        y1 = min(res - 1, y0 + 1)
        tx = gx - x0
        ty = gy - y0
        cells = self._cells
        a = cells[y0 * res + x0]
        b = cells[y0 * res + x1]
        c = cells[y1 * res + x0]
        d = cells[y1 * res + x1]
        ab = a + (b - a) * tx
        cd = c + (d - c) * tx
        return ab + (cd - ab) * ty

    def consume(self, x: float, y: float, amount: float) -> float:
        if amount <= 0.0:
            return 0.0
        key = self._cell_index(x, y)
        taken = min(self._cells[key], amount)
        self._cells[key] -= taken
        assert 0.0 <= self._cells[key] <= self._max
        return taken

    def deposit(self, x: float, y: float, amount: float) -> None:
        if amount <= 0.0:
            return
        key = self._cell_index(x, y)
        self._cells[key] = min(self._max, self._cells[key] + amount)
        assert 0.0 <= self._cells[key] <= self._max

    def regrow(self) -> None:
        rate = self._config.growth_rate
        top = self._max
        self._cells[:] = [min(top, max(0.0, value + rate * (top - value))) for value in self._cells]

    def reset(self, rng: DeterministicRng) -> None:
        cells = self._cells
        for i in range(len(cells)):
            cells[i] = 0.0
        config = self._config
        for _ in range(max(0, int(config.reset_patches))):
            self.deposit(
                rng.next_range(0.0, self._width),
                rng.next_range(0.0, self._height),
                rng.next_range(config.patch_amount_min, config.patch_amount_max),
            )

    def export_cells(self, floor: float | None = None) -> Dict[str, object]:
        floor = self._config.display_floor if floor is None else floor
        res = self._resolution
        cells = [
            {"x": index % res, "y": index // res, "value": value}
            for index, value in enumerate(self._cells)
            if value > floor
        ]
        return {
            "cells": cells,
            "resolution": res,
            "cell_width": self._width / res,
            "cell_height": self._height / res,
        }
