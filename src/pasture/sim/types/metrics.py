from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(slots=True)
class TickMetrics:
    tick: int
    grazers: int
    hunters: int
    births: int
    deaths: int
    pressure: float
    species: int
    average_grazer_energy: float
    average_hunter_energy: float
    plant_total: float
    tick_duration_ms: float = 0.0


@dataclass(slots=True)
class SpeciesCount:
    id: int
    kind: str
    name: str
    color: str
    count: int


@dataclass(slots=True)
class PopulationStats:
    tick: int
    grazers: int
    hunters: int
    pressure: float
    grazer_traits: Dict[str, float] = field(default_factory=dict)
    hunter_traits: Dict[str, float] = field(default_factory=dict)
    species: list[SpeciesCount] = field(default_factory=list)
