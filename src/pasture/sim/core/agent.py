from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional

from pygame.math import Vector2

from .config import TRAIT_NAMES


class AgentKind(str, Enum):
    GRAZER = "grazer"
    HUNTER = "hunter"


@dataclass(slots=True)
class Genome:
    speed: float = 0.5
    turn: float = 0.5
    greed: float = 0.5
    caution: float = 0.5
    bite: float = 0.5
    size: float = 0.5

    @classmethod
    def from_mapping(cls, values: Mapping[str, float]) -> "Genome":
        return cls(**{name: float(values[name]) for name in TRAIT_NAMES})

    @classmethod
    def from_sequence(cls, values: Iterable[float]) -> "Genome":
        return cls(*(float(value) for value in values))

    def as_tuple(self) -> tuple[float, float, float, float, float, float]:
        return (self.speed, self.turn, self.greed, self.caution, self.bite, self.size)

    def as_dict(self) -> dict[str, float]:
        return dict(zip(TRAIT_NAMES, self.as_tuple()))

    def copy(self) -> "Genome":
        return Genome(*self.as_tuple())

    def distance(self, centroid: Iterable[float]) -> float:
        return math.sqrt(sum((a - b) * (a - b) for a, b in zip(self.as_tuple(), centroid)))

    def in_bounds(self) -> bool:
        return all(0.0 <= value <= 1.0 for value in self.as_tuple())


@dataclass(slots=True)
class Agent:
    id: int
    kind: AgentKind
    position: Vector2
    heading: float
    energy: float
    genome: Genome = field(default_factory=Genome)
    velocity: Vector2 = field(default_factory=Vector2)
    age: int = 0
    cooldown: int = 0
    species_id: Optional[int] = None
    generation: int = 0
