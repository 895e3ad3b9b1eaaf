from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, List

from pygame.math import Vector2

from ..core.agent import Agent, AgentKind, Genome
from ..core.config import TRAIT_NAMES
from ..utils.math2d import _clamp_value, _wrap_coordinate
from . import speciation
from .pressure import current_pressure, grazer_may_reproduce, hunter_may_reproduce

if TYPE_CHECKING:
    from ..core.world import World

ELIGIBILITY: Dict[AgentKind, Callable[["World", Agent], bool]] = {
    AgentKind.GRAZER: grazer_may_reproduce,
    AgentKind.HUNTER: hunter_may_reproduce,
}


def is_dead(world: World, agent: Agent) -> bool:
    return agent.energy <= 0.0 or agent.age > world.config.lifecycle.max_age


def nutrient_return(world: World, agent: Agent) -> float:
    lifecycle = world.config.lifecycle
    return lifecycle.nutrient_return * (lifecycle.nutrient_size_base + agent.genome.size)


def death_sweep(world: World, agents: List[Agent]) -> int:
    survivors = []
    deaths = 0
    for agent in agents:
        if is_dead(world, agent):
            world.field.deposit(agent.position.x, agent.position.y, nutrient_return(world, agent))
            deaths += 1
        else:
            survivors.append(agent)
    agents[:] = survivors
    return deaths


def reproduction_cost(world: World, agent: Agent) -> float:
    lifecycle = world.config.lifecycle
    return lifecycle.reproduction_cost * (
        lifecycle.reproduction_cost_size_base + lifecycle.reproduction_cost_size_slope * agent.genome.size
    )


def reproduction_chance(world: World, agent: Agent, pressure: float) -> float:
    lifecycle = world.config.lifecycle
    base = lifecycle.reproduction_chance * (1.0 - lifecycle.pressure_reproduction_damping * pressure)
    return _clamp_value(base * (1.0 - lifecycle.size_reproduction_penalty * agent.genome.size), 0.0, 1.0)


def can_reproduce(world: World, agent: Agent) -> bool:
    if agent.cooldown > 0:
        return False
    if agent.energy <= world.config.lifecycle.reproduction_threshold:
        return False
    return ELIGIBILITY[agent.kind](world, agent)


def mutate_genome(world: World, genome: Genome) -> Genome:
    evolution = world.config.evolution
    rng = world.rng
    child = genome.copy()
    for name in TRAIT_NAMES:
        if rng.chance(evolution.mutation_probability):
            value = getattr(child, name) + rng.next_symmetric(evolution.mutation_strength)
            setattr(child, name, _clamp_value(value, 0.0, 1.0))
    assert child.in_bounds()
    return child


def clone_mutated(world: World, parent: Agent) -> Agent:
    lifecycle = world.config.lifecycle
    rng = world.rng
    offset = lifecycle.offspring_offset
    x = _wrap_coordinate(parent.position.x + rng.next_symmetric(offset), world.field.width)
    y = _wrap_coordinate(parent.position.y + rng.next_symmetric(offset), world.field.height)
    child = Agent(
        id=world.allocate_agent_id(),
        kind=parent.kind,
        position=Vector2(x, y),
        heading=rng.next_angle(),
        energy=lifecycle.offspring_energy,
        genome=mutate_genome(world, parent.genome),
        cooldown=lifecycle.cooldown,
        generation=parent.generation + 1,
    )
    speciation.assign_species(world, parent, child)
    return child


def reproduce(world: World, parent: Agent) -> Agent:
    cost = reproduction_cost(world, parent)
    parent.energy -= cost
    assert parent.energy >= 0.0
    parent.cooldown = world.config.lifecycle.cooldown
    return clone_mutated(world, parent)


def reproduction_sweep(world: World, agents: List[Agent]) -> int:
    births = 0
    for parent in list(agents):
        if not can_reproduce(world, parent):
            continue
        if not world.rng.chance(reproduction_chance(world, parent, current_pressure(world))):
            continue
        agents.append(reproduce(world, parent))
        births += 1
    return births


def apply_life_cycle(world: World, agents: List[Agent]) -> tuple[int, int]:
    deaths = death_sweep(world, agents)
    births = reproduction_sweep(world, agents)
    return births, deaths
