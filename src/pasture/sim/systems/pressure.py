from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.agent import Agent
from ..core.config import RegulatorConfig
from ..utils.math2d import _clamp_value, _sigmoid

if TYPE_CHECKING:
    from ..core.world import World


def population_pressure(config: RegulatorConfig, grazer_count: int, hunter_count: int) -> float:
    grazer_term = _sigmoid((grazer_count - config.target_grazers) / max(1e-9, config.grazer_softness))
    hunter_term = _sigmoid((hunter_count - config.target_hunters) / max(1e-9, config.hunter_softness))
    return _clamp_value(config.grazer_weight * grazer_term + config.hunter_weight * hunter_term, 0.0, 1.0)


def current_pressure(world: World) -> float:
    return population_pressure(world.config.regulator, len(world.grazers), len(world.hunters))


def crowd_cost_factor(world: World, pressure: float) -> float:
    return 1.0 + world.config.movement.crowd_cost_slope * pressure


def grazer_may_reproduce(world: World, agent: Agent) -> bool:
    density = world.field.sample(agent.position.x, agent.position.y)
    return density > world.config.regulator.grazer_density_gate


def hunter_may_reproduce(world: World, agent: Agent) -> bool:
    regulator = world.config.regulator
    grazers = len(world.grazers)
    return grazers >= regulator.hunter_prey_floor and grazers >= regulator.hunter_prey_ratio * len(world.hunters)
