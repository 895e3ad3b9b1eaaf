from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List

from ..core.agent import Agent
from ..core.species import Species

if TYPE_CHECKING:
    from ..core.world import World


def assign_species(world: World, parent: Agent, child: Agent) -> Species | None:
    """Pick the newborn's species: parent's, else nearest within merge range, else a new one."""
    config = world.config.speciation
    registry = world.species
    genome = child.genome

    parent_species = registry.get(parent.species_id)
    if parent_species is not None and genome.distance(parent_species.centroid) <= config.split_threshold:
        child.species_id = parent_species.id
        return parent_species

    nearest, distance = registry.nearest(child.kind, genome)
    if nearest is not None and distance <= config.merge_threshold:
        child.species_id = nearest.id
        return nearest

    if len(registry) >= config.max_species:
        fallback = nearest if nearest is not None else parent_species
        child.species_id = fallback.id if fallback is not None else None
        return fallback

    created = registry.create(child.kind, genome, world.tick, world.rng)
    child.species_id = created.id
    return created


def recompute_species_stats(world: World) -> None:
    registry = world.species
    sums: Dict[int, List[float]] = {}
    for species in registry:
        species.count = 0
    for agents in (world.grazers, world.hunters):
        for agent in agents:
            species = registry.get(agent.species_id)
            if species is None:
                continue
            species.count += 1
            totals = sums.get(species.id)
            if totals is None:
                totals = [0.0] * 6
                sums[species.id] = totals
            for i, value in enumerate(agent.genome.as_tuple()):
                totals[i] += value

    grace = world.config.speciation.grace_ticks
    expired = []
    for species in registry:
        if species.count > 0:
            totals = sums[species.id]
            species.centroid = [total / species.count for total in totals]
            species.last_seen_tick = world.tick
        elif world.tick - species.last_seen_tick > grace:
            expired.append(species.id)
    for species_id in expired:
        registry.remove(species_id)


def should_recompute(world: World) -> bool:
    interval = max(1, int(world.config.speciation.stats_interval))
    return world.tick % interval == 0
