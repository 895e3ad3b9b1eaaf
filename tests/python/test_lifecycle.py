from __future__ import annotations

import math

from pygame.math import Vector2
from pytest import approx

from pasture.sim.core.agent import Agent, AgentKind, Genome
from pasture.sim.core.config import (
    EvolutionConfig,
    FieldConfig,
    GrazerConfig,
    HunterConfig,
    LifecycleConfig,
    SimulationConfig,
)
from pasture.sim.core.world import World
from pasture.sim.systems import lifecycle


def _world(rng=None, **sections) -> World:
    values = dict(
        seed=13,
        plants=FieldConfig(reset_patches=0, growth_rate=0.0),
        grazer=GrazerConfig(start_count=0),
        hunter=HunterConfig(start_count=0),
    )
    values.update(sections)
    return World(SimulationConfig(**values), rng=rng)


def _seed_genome(world: World, kind: AgentKind) -> Genome:
    traits = world.config.speciation.grazer_seed if kind is AgentKind.GRAZER else world.config.speciation.hunter_seed
    return Genome.from_mapping(traits)


def _seed_species_id(world: World, kind: AgentKind) -> int:
    return world.species.of_kind(kind)[0].id


def _agent(world: World, kind: AgentKind, energy: float, x: float = 200.0, y: float = 200.0) -> Agent:
    agent = Agent(
        id=world.allocate_agent_id(),
        kind=kind,
        position=Vector2(x, y),
        heading=0.0,
        energy=energy,
        genome=_seed_genome(world, kind),
        species_id=_seed_species_id(world, kind),
    )
    world.population(kind).append(agent)
    return agent


def test_forced_starvation_dies_within_one_tick():
    world = _world()
    _agent(world, AgentKind.GRAZER, energy=math.ulp(0.0))
    total_before = world.field.total()

    world.step()

    assert world.grazers == []
    assert world.field.total() > total_before
    assert world.metrics.deaths == 1


def test_old_age_death_returns_size_scaled_nutrients():
    world = _world()
    small = _agent(world, AgentKind.HUNTER, energy=5.0, x=100.0, y=100.0)
    large = _agent(world, AgentKind.HUNTER, energy=5.0, x=500.0, y=500.0)
    small.genome.size = 0.0
    large.genome.size = 1.0
    small.age = large.age = world.config.lifecycle.max_age + 1

    deaths = lifecycle.death_sweep(world, world.hunters)

    assert deaths == 2
    assert world.hunters == []
    assert world.field.sample(500.0, 500.0) >= 0.0
    assert lifecycle.nutrient_return(world, large) > lifecycle.nutrient_return(world, small)
    assert world.field.cell(62, 93) == approx(lifecycle.nutrient_return(world, large))


def test_death_deposit_never_exceeds_upper_bound():
    world = _world()
    world.field.load([world.field.plant_max] * (world.field.resolution**2))
    agent = _agent(world, AgentKind.GRAZER, energy=0.0)
    agent.genome.size = 1.0

    lifecycle.death_sweep(world, world.grazers)

    assert max(world.field.values()) == world.field.plant_max


def test_forced_reproduction_produces_one_offspring(scripted_rng):
    world = _world(rng=scripted_rng(default=0.0), evolution=EvolutionConfig(mutation_probability=0.0))
    world.field.load([1.0] * (world.field.resolution**2))
    parent = _agent(world, AgentKind.GRAZER, energy=0.0)
    cost = lifecycle.reproduction_cost(world, parent)
    parent.energy = world.config.lifecycle.reproduction_threshold + cost + 1e-6
    energy_before = parent.energy

    births = lifecycle.reproduction_sweep(world, world.grazers)

    assert births == 1
    assert len(world.grazers) == 2
    child = world.grazers[1]
    assert parent.cooldown == world.config.lifecycle.cooldown
    assert parent.energy == energy_before - cost
    assert parent.energy >= 0.0
    assert child.kind is AgentKind.GRAZER
    assert child.energy == world.config.lifecycle.offspring_energy
    assert child.cooldown == world.config.lifecycle.cooldown
    assert child.generation == parent.generation + 1
    assert child.genome == parent.genome
    assert child.species_id == parent.species_id
    offset = world.config.lifecycle.offspring_offset
    assert abs(child.position.x - parent.position.x) <= offset
    assert abs(child.position.y - parent.position.y) <= offset


def test_reproduction_blocked_by_cooldown_threshold_and_gate(scripted_rng):
    world = _world(rng=scripted_rng(default=0.0))
    world.field.load([1.0] * (world.field.resolution**2))
    cooling = _agent(world, AgentKind.GRAZER, energy=5.0)
    cooling.cooldown = 1
    _agent(world, AgentKind.GRAZER, energy=world.config.lifecycle.reproduction_threshold)
    lonely_hunter = _agent(world, AgentKind.HUNTER, energy=5.0)

    assert lifecycle.reproduction_sweep(world, world.grazers) == 0
    assert lifecycle.reproduction_sweep(world, world.hunters) == 0
    assert lonely_hunter.cooldown == 0


def test_reproduction_threshold_exceeds_largest_cost():
    config = LifecycleConfig()
    largest_cost = config.reproduction_cost * (config.reproduction_cost_size_base + config.reproduction_cost_size_slope)
    assert config.reproduction_threshold > largest_cost


def test_reproduction_chance_falls_with_pressure_and_size():
    world = _world()
    agent = _agent(world, AgentKind.GRAZER, energy=2.0)
    agent.genome.size = 0.0
    relaxed = lifecycle.reproduction_chance(world, agent, 0.0)
    crowded = lifecycle.reproduction_chance(world, agent, 1.0)
    agent.genome.size = 1.0
    heavy = lifecycle.reproduction_chance(world, agent, 0.0)

    assert relaxed == approx(world.config.lifecycle.reproduction_chance)
    assert 0.0 <= crowded < relaxed
    assert heavy < relaxed


def test_mutation_keeps_traits_in_unit_interval(scripted_rng):
    world = _world(
        rng=scripted_rng(default=0.0, seed=99),
        evolution=EvolutionConfig(mutation_probability=1.0, mutation_strength=1.0),
    )
    genome = Genome(0.0, 1.0, 0.0, 1.0, 0.5, 0.99)

    for _ in range(200):
        genome = lifecycle.mutate_genome(world, genome)
        assert genome.in_bounds()


def test_mutation_disabled_copies_genome():
    world = _world(evolution=EvolutionConfig(mutation_probability=0.0))
    genome = Genome(0.1, 0.2, 0.3, 0.4, 0.5, 0.6)

    child = lifecycle.mutate_genome(world, genome)

    assert child == genome
    assert child is not genome
