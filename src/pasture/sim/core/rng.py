from __future__ import annotations

import math
import random
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


class DeterministicRng:
    """Single random source for the engine; tests may substitute a scripted subclass."""

    def __init__(self, seed: Optional[int] = None):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_symmetric(self, magnitude: float) -> float:
        return self.next_range(-magnitude, magnitude)

    def next_int(self, max_value: int) -> int:
        return self._random.randrange(max_value)

    def next_angle(self) -> float:
        return self.next_range(0.0, 2.0 * math.pi)

    def chance(self, probability: float) -> bool:
        return self.next_float() < probability

    def sample_choice(self, items: Sequence[T]) -> Optional[T]:
        if not items:
            return None
        return items[self.next_int(len(items))]
