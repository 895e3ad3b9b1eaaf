from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import PopulationStats, TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    stats: PopulationStats
    agents: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"
    fields: "SnapshotFields"


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float


@dataclass(slots=True)
class SnapshotMetadata:
    tick_divisor: int
    frame_rate: float
    seed: int | None
    config_version: str


@dataclass(slots=True)
class SnapshotFields:
    plants: Dict[str, Any]
