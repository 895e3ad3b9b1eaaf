from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List

from ..core.agent import Agent
from ..core.config import TRAIT_NAMES
from ..types.metrics import PopulationStats, SpeciesCount, TickMetrics
from .pressure import current_pressure

if TYPE_CHECKING:
    from ..core.world import World


def _mean_energy(agents: List[Agent]) -> float:
    if not agents:
        return 0.0
    return sum(agent.energy for agent in agents) / len(agents)


def trait_averages(agents: List[Agent]) -> Dict[str, float]:
    if not agents:
        return {}
    totals = [0.0] * len(TRAIT_NAMES)
    for agent in agents:
        for i, value in enumerate(agent.genome.as_tuple()):
            totals[i] += value
    count = len(agents)
    return {name: total / count for name, total in zip(TRAIT_NAMES, totals)}


def create_metrics(world: World, births: int, deaths: int, duration_ms: float) -> TickMetrics:
    return TickMetrics(
        tick=world.tick,
        grazers=len(world.grazers),
        hunters=len(world.hunters),
        births=births,
        deaths=deaths,
        pressure=current_pressure(world),
        species=len(world.species),
        average_grazer_energy=_mean_energy(world.grazers),
        average_hunter_energy=_mean_energy(world.hunters),
        plant_total=world.field.total(),
        tick_duration_ms=duration_ms,
    )


def population_stats(world: World) -> PopulationStats:
    live: Dict[int, int] = {}
    for agents in (world.grazers, world.hunters):
        for agent in agents:
            if agent.species_id in world.species:
                live[agent.species_id] = live.get(agent.species_id, 0) + 1
    species = [
        SpeciesCount(id=entry.id, kind=entry.kind.value, name=entry.name, color=entry.color, count=live.get(entry.id, 0))
        for entry in world.species
    ]
    species.sort(key=lambda entry: (-entry.count, entry.id))
    return PopulationStats(
        tick=world.tick,
        grazers=len(world.grazers),
        hunters=len(world.hunters),
        pressure=current_pressure(world),
        grazer_traits=trait_averages(world.grazers),
        hunter_traits=trait_averages(world.hunters),
        species=species,
    )
