from __future__ import annotations

import math
from typing import TYPE_CHECKING

from ..core.agent import Agent
from ..utils.math2d import _clamp_value, _wrap_angle, _wrap_position
from .pressure import crowd_cost_factor, current_pressure

if TYPE_CHECKING:
    from ..core.world import World


def max_turn(world: World, agent: Agent, strength: float) -> float:
    movement = world.config.movement
    return (movement.turn_rate_base + agent.genome.turn * movement.turn_rate_slope) * strength


def steer_toward(world: World, agent: Agent, target_x: float, target_y: float, strength: float) -> None:
    bearing = math.atan2(target_y - agent.position.y, target_x - agent.position.x)
    delta = _wrap_angle(bearing - agent.heading)
    limit = max_turn(world, agent, strength)
    agent.heading += _clamp_value(delta, -limit, limit)


def steer_away(world: World, agent: Agent, threat: Agent, strength: float) -> None:
    away_x = agent.position.x + (agent.position.x - threat.position.x)
    away_y = agent.position.y + (agent.position.y - threat.position.y)
    steer_toward(world, agent, away_x, away_y, strength)


def wander(world: World, agent: Agent) -> None:
    movement = world.config.movement
    amplitude = movement.wander_base + (1.0 - agent.genome.turn) * movement.wander_turn_slope
    agent.heading += world.rng.next_symmetric(amplitude)


def vision_range(world: World, agent: Agent, base: float) -> float:
    return base * (1.0 - world.config.movement.size_vision_penalty * agent.genome.size)


def effective_speed(world: World, agent: Agent) -> float:
    movement = world.config.movement
    genome = agent.genome
    speed = movement.speed_min + genome.speed * (movement.speed_max - movement.speed_min)
    return speed * (1.0 - movement.size_speed_penalty * genome.size)


def size_cost_factor(world: World, agent: Agent) -> float:
    movement = world.config.movement
    return movement.size_cost_base + movement.size_cost_slope * agent.genome.size


def move_cost(world: World, agent: Agent, pressure: float) -> float:
    movement = world.config.movement
    speed_factor = movement.move_cost_speed_base + agent.genome.speed * movement.move_cost_speed_slope
    return movement.base_move_cost * size_cost_factor(world, agent) * crowd_cost_factor(world, pressure) * speed_factor


def move(world: World, agent: Agent) -> None:
    agent.energy -= move_cost(world, agent, current_pressure(world))
    speed = effective_speed(world, agent)
    agent.velocity.update(math.cos(agent.heading) * speed, math.sin(agent.heading) * speed)
    agent.position.update(agent.position.x + agent.velocity.x, agent.position.y + agent.velocity.y)
    _wrap_position(agent.position, world.field.width, world.field.height)
    agent.age += 1
    if agent.cooldown > 0:
        agent.cooldown -= 1
