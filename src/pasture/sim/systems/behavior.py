from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Protocol

from ..core.agent import Agent, AgentKind
from ..utils.math2d import _dist_sq_xy, _wrap_coordinate
from . import steering
from .pressure import crowd_cost_factor, current_pressure

if TYPE_CHECKING:
    from ..core.world import World


@dataclass(slots=True)
class Perception:
    forage_x: float = 0.0
    forage_y: float = 0.0
    forage_density: float = -1.0
    nearest: Optional[Agent] = None
    nearest_dist_sq: float = math.inf


class Behavior(Protocol):
    """One controller per agent kind, run phase by phase each tick."""

    def sense(self, world: World, agent: Agent) -> Perception: ...

    def steer(self, world: World, agent: Agent, perception: Perception) -> None: ...

    def act(self, world: World, agent: Agent, perception: Perception) -> None: ...

    def metabolize(self, world: World, agent: Agent, pressure: float) -> None: ...


def nearest_agent(agent: Agent, others: List[Agent], limit_sq: float = math.inf) -> tuple[Optional[Agent], float]:
    """Brute-force nearest neighbour strictly inside ``limit_sq``."""
    best: Optional[Agent] = None
    best_sq = limit_sq
    ax = agent.position.x
    ay = agent.position.y
    for other in others:
        dist_sq = _dist_sq_xy(ax, ay, other.position.x, other.position.y)
        if dist_sq < best_sq:
            best = other
            best_sq = dist_sq
    return best, best_sq


def _hunger_cost(world: World, agent: Agent, base: float, pressure: float) -> float:
    movement = world.config.movement
    size_factor = movement.hunger_size_base + movement.hunger_size_slope * agent.genome.size
    return base * size_factor * crowd_cost_factor(world, pressure)


class GrazerBehavior:
    def sense(self, world: World, agent: Agent) -> Perception:
        config = world.config.grazer
        field = world.field
        width = field.width
        height = field.height
        vision = steering.vision_range(world, agent, config.vision)
        center = (config.fan_rays - 1) * 0.5
        perception = Perception(forage_x=agent.position.x, forage_y=agent.position.y)
        for i in range(config.fan_rays):
            angle = agent.heading + (i - center) * config.fan_spacing
            sx = _wrap_coordinate(agent.position.x + math.cos(angle) * vision, width)
            sy = _wrap_coordinate(agent.position.y + math.sin(angle) * vision, height)
            density = field.sample(sx, sy)
            if density > perception.forage_density:
                perception.forage_density = density
                perception.forage_x = sx
                perception.forage_y = sy
        perception.nearest, perception.nearest_dist_sq = nearest_agent(agent, world.hunters)
        return perception

    def danger_radius(self, world: World, agent: Agent) -> float:
        config = world.config.grazer
        return config.danger_radius * (1.0 + config.danger_size_bonus * agent.genome.size)

    def steer(self, world: World, agent: Agent, perception: Perception) -> None:
        config = world.config.grazer
        genome = agent.genome
        radius = self.danger_radius(world, agent)
        threat = perception.nearest
        if threat is not None and perception.nearest_dist_sq < radius * radius and genome.caution > config.caution_threshold:
            steering.steer_away(world, agent, threat, config.flee_strength * genome.caution)
            return
        chase = config.chase_base + genome.greed * config.chase_greed_slope
        steering.steer_toward(world, agent, perception.forage_x, perception.forage_y, chase)
        if world.rng.chance(config.wander_chance * (1.0 - genome.greed)):
            steering.wander(world, agent)

    def act(self, world: World, agent: Agent, perception: Perception) -> None:
        config = world.config.grazer
        genome = agent.genome
        rate = (
            config.eat_rate
            * (config.eat_greed_base + genome.greed)
            * (config.eat_size_base + config.eat_size_slope * genome.size)
        )
        eaten = world.field.consume(agent.position.x, agent.position.y, rate)
        agent.energy += eaten * config.conversion

    def metabolize(self, world: World, agent: Agent, pressure: float) -> None:
        agent.energy -= _hunger_cost(world, agent, world.config.grazer.hunger, pressure)


class HunterBehavior:
    def sense(self, world: World, agent: Agent) -> Perception:
        vision = steering.vision_range(world, agent, world.config.hunter.vision)
        perception = Perception(forage_x=agent.position.x, forage_y=agent.position.y)
        perception.nearest, perception.nearest_dist_sq = nearest_agent(agent, world.grazers, vision * vision)
        return perception

    def engage_radius(self, world: World, agent: Agent) -> float:
        config = world.config.hunter
        return config.engage_radius + config.engage_size_bonus * agent.genome.size

    def damage(self, world: World, agent: Agent) -> float:
        config = world.config.hunter
        genome = agent.genome
        return (
            config.damage
            * (config.damage_bite_base + genome.bite)
            * (config.damage_size_base + config.damage_size_slope * genome.size)
        )

    def steer(self, world: World, agent: Agent, perception: Perception) -> None:
        config = world.config.hunter
        target = perception.nearest
        if target is None:
            if world.rng.chance(config.patrol_wander_chance):
                steering.wander(world, agent)
            return
        strength = config.pursuit_base + agent.genome.bite * config.pursuit_bite_slope
        steering.steer_toward(world, agent, target.position.x, target.position.y, strength)

    def act(self, world: World, agent: Agent, perception: Perception) -> None:
        target = perception.nearest
        if target is None:
            return
        radius = self.engage_radius(world, agent)
        if perception.nearest_dist_sq >= radius * radius:
            return
        stolen = min(max(0.0, target.energy), self.damage(world, agent))
        target.energy -= stolen
        agent.energy += stolen * world.config.hunter.conversion

    def metabolize(self, world: World, agent: Agent, pressure: float) -> None:
        agent.energy -= _hunger_cost(world, agent, world.config.hunter.hunger, pressure)


BEHAVIORS: Dict[AgentKind, Behavior] = {
    AgentKind.GRAZER: GrazerBehavior(),
    AgentKind.HUNTER: HunterBehavior(),
}


def run_behavior(world: World, agent: Agent) -> None:
    behavior = BEHAVIORS[agent.kind]
    perception = behavior.sense(world, agent)
    behavior.steer(world, agent, perception)
    behavior.act(world, agent, perception)
    behavior.metabolize(world, agent, current_pressure(world))
    steering.move(world, agent)


def run_behaviors(world: World, agents: List[Agent]) -> None:
    for agent in agents:
        run_behavior(world, agent)
