from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Optional, Set

from pygame.math import Vector2

from .agent import Agent, AgentKind, Genome
from .config import TUNABLES, SimulationConfig, clamp_tunables, coerce_tunable, get_tunables, set_tunable
from .field import ResourceField
from .rng import DeterministicRng
from .species import SpeciesRegistry
from ..persistence import WorldState, decode_state, encode_state
from ..systems import behavior, lifecycle, metrics as metrics_system, speciation
from ..systems.pressure import current_pressure
from ..types.metrics import PopulationStats, TickMetrics
from ..types.snapshot import Snapshot, SnapshotFields, SnapshotMetadata, SnapshotWorld

logger = logging.getLogger("pasture.world")


class World:
    """Field, both populations, the species arena and the tick counter."""

    def __init__(self, config: Optional[SimulationConfig] = None, rng: Optional[DeterministicRng] = None):
        self._config = config if config is not None else SimulationConfig()
        for name in clamp_tunables(self._config):
            logger.warning("tunable %s out of range, clamped to %r", name, get_tunables(self._config)[name])
        self._rng = rng if rng is not None else DeterministicRng(self._config.seed)
        self._field = ResourceField(self._config.plants)
        self._species = SpeciesRegistry()
        self._grazers: List[Agent] = []
        self._hunters: List[Agent] = []
        self._tick = 0
        self._next_agent_id = 0
        self._metrics: TickMetrics | None = None
        self._extinct: Set[AgentKind] = set()
        self.reset()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def rng(self) -> DeterministicRng:
        return self._rng

    @property
    def field(self) -> ResourceField:
        return self._field

    @property
    def species(self) -> SpeciesRegistry:
        return self._species

    @property
    def grazers(self) -> List[Agent]:
        return self._grazers

    @property
    def hunters(self) -> List[Agent]:
        return self._hunters

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def next_agent_id(self) -> int:
        return self._next_agent_id

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def population(self, kind: AgentKind) -> List[Agent]:
        return self._grazers if kind is AgentKind.GRAZER else self._hunters

    def pressure(self) -> float:
        return current_pressure(self)

    def allocate_agent_id(self) -> int:
        agent_id = self._next_agent_id
        self._next_agent_id += 1
        return agent_id

    def reset(self) -> None:
        self._rng.reset()
        self._grazers.clear()
        self._hunters.clear()
        self._species.clear()
        self._tick = 0
        self._next_agent_id = 0
        self._metrics = None
        self._extinct.clear()
        self._field.reset(self._rng)
        seeds = {
            AgentKind.GRAZER: (self._config.speciation.grazer_seed, self._config.grazer.start_count),
            AgentKind.HUNTER: (self._config.speciation.hunter_seed, self._config.hunter.start_count),
        }
        for kind, (traits, count) in seeds.items():
            genome = Genome.from_mapping(traits)
            seed_species = self._species.create(kind, genome, self._tick, self._rng)
            for _ in range(max(0, int(count))):
                self.population(kind).append(self.spawn(kind, genome.copy(), seed_species.id))
        logger.info(
            "world reset: %d grazers, %d hunters, %d plant patches",
            len(self._grazers),
            len(self._hunters),
            self._config.plants.reset_patches,
        )

    def spawn(self, kind: AgentKind, genome: Genome, species_id: Optional[int]) -> Agent:
        return Agent(
            id=self.allocate_agent_id(),
            kind=kind,
            position=Vector2(
                self._rng.next_range(0.0, self._field.width),
                self._rng.next_range(0.0, self._field.height),
            ),
            heading=self._rng.next_angle(),
            energy=self._config.lifecycle.adult_energy,
            genome=genome,
            species_id=species_id,
        )

    def step(self) -> TickMetrics:
        start = perf_counter()
        self._field.regrow()
        behavior.run_behaviors(self, self._grazers)
        behavior.run_behaviors(self, self._hunters)
        grazer_births, grazer_deaths = lifecycle.apply_life_cycle(self, self._grazers)
        hunter_births, hunter_deaths = lifecycle.apply_life_cycle(self, self._hunters)
        self._tick += 1
        if speciation.should_recompute(self):
            speciation.recompute_species_stats(self)
        self._note_extinctions()

        elapsed_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            self,
            births=grazer_births + hunter_births,
            deaths=grazer_deaths + hunter_deaths,
            duration_ms=elapsed_ms,
        )
        return self._metrics

    def _note_extinctions(self) -> None:
        for kind in AgentKind:
            if self.population(kind):
                self._extinct.discard(kind)
            elif kind not in self._extinct:
                self._extinct.add(kind)
                logger.info("%s population extinct at tick %d", kind.value, self._tick)

    def update_tunables(self, **values: float) -> Dict[str, float]:
        """Apply runtime tunables all at once; a bad name or value leaves every tunable unchanged."""
        for name in values:
            if name not in TUNABLES:
                raise KeyError(name)
        for name, value in values.items():
            coerce_tunable(name, value)
        for name, value in values.items():
            if set_tunable(self._config, name, value):
                logger.warning("tunable %s=%r out of range, clamped", name, value)
        return get_tunables(self._config)

    def statistics(self) -> PopulationStats:
        return metrics_system.population_stats(self)

    def snapshot(self) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else metrics_system.create_metrics(self, 0, 0, 0.0)
        agents_payload = [self._agent_snapshot(agent) for agent in self._grazers]
        agents_payload.extend(self._agent_snapshot(agent) for agent in self._hunters)
        return Snapshot(
            tick=self._tick,
            metrics=metrics,
            stats=self.statistics(),
            agents=agents_payload,
            world=SnapshotWorld(width=self._field.width, height=self._field.height),
            metadata=SnapshotMetadata(
                tick_divisor=self._config.tick_divisor,
                frame_rate=self._config.frame_rate,
                seed=self._config.seed,
                config_version=self._config.config_version,
            ),
            fields=SnapshotFields(plants=self._field.export_cells()),
        )

    def _agent_snapshot(self, agent: Agent) -> Dict[str, Any]:
        species = self._species.get(agent.species_id)
        return {
            "id": agent.id,
            "kind": agent.kind.value,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "heading": agent.heading,
            "energy": agent.energy,
            "age": agent.age,
            "generation": agent.generation,
            "genome": agent.genome.as_dict(),
            "species": species.id if species is not None else None,
            "color": species.color if species is not None else None,
        }

    def export_state(self) -> Dict[str, Any]:
        return encode_state(self)

    def restore(self, payload: Dict[str, Any]) -> None:
        """Replace the whole state from ``payload``; on a format error nothing changes."""
        try:
            state = decode_state(payload, self._config)
        except ValueError:
            logger.warning("rejected world state restore", exc_info=True)
            raise
        self._install(state)

    def _install(self, state: WorldState) -> None:
        self._tick = state.tick
        self._next_agent_id = state.next_agent_id
        self._field.load(state.cells)
        self._species.replace(state.species, state.next_species_id)
        self._grazers[:] = state.grazers
        self._hunters[:] = state.hunters
        self._metrics = None
        self._extinct = {kind for kind in AgentKind if not self.population(kind)}
        logger.info(
            "world restored at tick %d: %d grazers, %d hunters, %d species",
            self._tick,
            len(self._grazers),
            len(self._hunters),
            len(self._species),
        )


def reset_world(config: Optional[SimulationConfig] = None, rng: Optional[DeterministicRng] = None) -> World:
    return World(config, rng)


def advance_tick(world: World) -> World:
    world.step()
    return world
