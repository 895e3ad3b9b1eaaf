from __future__ import annotations

import logging

import pytest
from pytest import approx

from pasture.sim.core.agent import AgentKind
from pasture.sim.core.config import (
    EvolutionConfig,
    FieldConfig,
    GrazerConfig,
    HunterConfig,
    SimulationConfig,
    SpeciationConfig,
)
from pasture.sim.core.world import World, advance_tick, reset_world


def _busy_config(seed: int = 1234) -> SimulationConfig:
    return SimulationConfig(
        seed=seed,
        plants=FieldConfig(resolution=40, reset_patches=150),
        grazer=GrazerConfig(start_count=40),
        hunter=HunterConfig(start_count=6),
    )


def run_steps(config: SimulationConfig, steps: int):
    world = World(config)
    history = []
    for _ in range(steps):
        metrics = world.step()
        history.append((metrics.grazers, metrics.hunters, metrics.births, metrics.deaths, metrics.species))
    return history, world


def test_reset_seeds_one_agent_and_one_species_per_kind():
    world = reset_world(SimulationConfig(seed=3))

    assert world.tick == 0
    assert len(world.grazers) == 1
    assert len(world.hunters) == 1
    assert len(world.species) == 2
    assert world.grazers[0].species_id == world.species.of_kind(AgentKind.GRAZER)[0].id
    assert world.hunters[0].species_id == world.species.of_kind(AgentKind.HUNTER)[0].id
    assert world.grazers[0].energy == approx(world.config.lifecycle.adult_energy)
    assert world.field.total() > 0.0


def test_deterministic_steps():
    result_a, _ = run_steps(_busy_config(), 60)
    # recreate config to ensure RNG resets
    result_b, _ = run_steps(_busy_config(), 60)
    assert result_a == result_b


def test_reset_restores_initial_state():
    world = World(_busy_config(seed=5))
    first = world.export_state()
    for _ in range(25):
        world.step()

    world.reset()

    assert world.export_state() == first


def test_bounds_hold_over_many_ticks():
    world = World(_busy_config(seed=77))
    width, height = world.field.width, world.field.height
    ids_seen = set()

    for expected_tick in range(1, 201):
        advance_tick(world)
        assert world.tick == expected_tick
        assert all(0.0 <= value <= world.field.plant_max for value in world.field.values())
        for agent in world.grazers + world.hunters:
            assert 0.0 <= agent.position.x <= width
            assert 0.0 <= agent.position.y <= height
            assert agent.energy > 0.0
            assert agent.genome.in_bounds()
            assert agent.cooldown >= 0
        assert all(agent.kind is AgentKind.GRAZER for agent in world.grazers)
        assert all(agent.kind is AgentKind.HUNTER for agent in world.hunters)
        ids = [agent.id for agent in world.grazers + world.hunters]
        assert len(ids) == len(set(ids))
        ids_seen.update(ids)
        assert 0.0 <= world.pressure() <= 1.0

    assert max(ids_seen) < world.next_agent_id


def test_extinct_population_is_not_reseeded():
    config = SimulationConfig(seed=9, grazer=GrazerConfig(start_count=3), hunter=HunterConfig(start_count=0))
    world = World(config)

    for _ in range(40):
        world.step()

    assert world.hunters == []


def test_metrics_report_counts_after_tick():
    world = World(_busy_config(seed=11))

    metrics = world.step()

    assert world.metrics is metrics
    assert metrics.tick == 1
    assert metrics.grazers == len(world.grazers)
    assert metrics.hunters == len(world.hunters)
    assert metrics.species == len(world.species)
    assert metrics.plant_total == approx(world.field.total())
    assert metrics.tick_duration_ms >= 0.0


def test_update_tunables_clamps_and_rejects_unknown(caplog):
    world = World(SimulationConfig(seed=1))

    with caplog.at_level(logging.WARNING, logger="pasture.world"):
        values = world.update_tunables(growth_rate=3.0, mutation_strength=0.3, tick_divisor=0)

    assert values["growth_rate"] == 1.0
    assert values["mutation_strength"] == approx(0.3)
    assert values["tick_divisor"] == 1
    assert values["merge_threshold"] == approx(values["split_threshold"] * 0.6)
    assert world.config.plants.growth_rate == 1.0
    assert "growth_rate" in caplog.text

    with pytest.raises(KeyError):
        world.update_tunables(warp_speed=2.0)
    with pytest.raises(KeyError):
        world.update_tunables(merge_threshold=0.1)


def test_unknown_tunable_leaves_others_untouched():
    world = World(SimulationConfig(seed=1))

    with pytest.raises(KeyError):
        world.update_tunables(growth_rate=0.5, bogus=1.0)

    assert world.config.plants.growth_rate == approx(0.015)


def test_out_of_range_config_is_clamped_with_warning(caplog):
    config = SimulationConfig(
        seed=2,
        evolution=EvolutionConfig(mutation_probability=1.7),
        speciation=SpeciationConfig(split_threshold=5.0),
    )

    with caplog.at_level(logging.WARNING, logger="pasture.world"):
        world = World(config)

    assert world.config.evolution.mutation_probability == 1.0
    assert world.config.speciation.split_threshold == approx(2.45)
    assert "mutation_probability" in caplog.text
    assert "split_threshold" in caplog.text


def test_runtime_growth_rate_applies_next_tick():
    config = SimulationConfig(
        seed=6,
        plants=FieldConfig(resolution=8, reset_patches=0, growth_rate=0.0),
        grazer=GrazerConfig(start_count=0),
        hunter=HunterConfig(start_count=0),
    )
    world = World(config)
    world.field.load([0.5] * 64)

    world.step()
    assert world.field.total() == approx(32.0)

    world.update_tunables(growth_rate=0.5)
    world.step()
    assert world.field.total() == approx(64.0 * 0.75)


def test_snapshot_contains_metadata_and_agent_signals():
    world = World(_busy_config(seed=7))
    world.step()

    snapshot = world.snapshot()

    assert snapshot.tick == 1
    assert snapshot.world.width == approx(960.0)
    assert snapshot.world.height == approx(640.0)
    assert snapshot.metadata.seed == 7
    assert snapshot.metadata.tick_divisor == 1
    assert snapshot.metrics.grazers == len(world.grazers)
    assert len(snapshot.agents) == len(world.grazers) + len(world.hunters)
    payload = snapshot.agents[0]
    for key in ["id", "kind", "x", "y", "vx", "vy", "heading", "energy", "genome", "species", "color"]:
        assert key in payload
    assert payload["heading"] == approx(world.grazers[0].heading)
    assert snapshot.fields.plants["resolution"] == 40


def test_statistics_group_live_species():
    world = World(_busy_config(seed=12))

    stats = world.statistics()

    assert stats.grazers == 40
    assert stats.hunters == 6
    assert [entry.count for entry in stats.species] == [40, 6]
    assert stats.species[0].kind == "grazer"
    assert set(stats.grazer_traits) == {"speed", "turn", "greed", "caution", "bite", "size"}
    assert stats.grazer_traits["speed"] == approx(world.config.speciation.grazer_seed["speed"])


@pytest.mark.parametrize("bad", ["abc", None, float("nan")])
def test_invalid_tunable_value_leaves_all_tunables_untouched(bad):
    world = World(SimulationConfig(seed=1))
    before = world.update_tunables()

    with pytest.raises(ValueError):
        world.update_tunables(growth_rate=0.5, mutation_strength=bad)

    assert world.update_tunables() == before
    assert world.config.plants.growth_rate == approx(0.015)


def test_infinite_tick_divisor_is_clamped():
    world = World(SimulationConfig(seed=1))

    values = world.update_tunables(tick_divisor=float("inf"), growth_rate=float("-inf"))

    assert values["tick_divisor"] == 600
    assert isinstance(values["tick_divisor"], int)
    assert values["growth_rate"] == 0.0
