"""Versioned external form of the whole world state.

The encoded form is a JSON-compatible dict. Everything round-trips exactly except
genome traits, which are stored as integers in ``[0, GENOME_SCALE]``; decoding
reproduces each trait within ``GENOME_TOLERANCE``.
"""
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from pygame.math import Vector2

from .core.agent import Agent, AgentKind, Genome
from .core.config import TRAIT_NAMES, SimulationConfig
from .core.species import Species

if TYPE_CHECKING:
    from .core.world import World

FORMAT_NAME = "pasture.world"
FORMAT_VERSION = 1
GENOME_SCALE = 1000
GENOME_TOLERANCE = 0.5 / GENOME_SCALE


class StateFormatError(ValueError):
    pass


@dataclass(slots=True)
class WorldState:
    tick: int
    next_agent_id: int
    next_species_id: int
    cells: List[float]
    species: List[Species]
    grazers: List[Agent]
    hunters: List[Agent]


def quantize_trait(value: float) -> int:
    return int(round(value * GENOME_SCALE))


def dequantize_trait(value: int) -> float:
    return value / GENOME_SCALE


def _encode_agent(agent: Agent) -> Dict[str, Any]:
    return {
        "id": agent.id,
        "x": agent.position.x,
        "y": agent.position.y,
        "vx": agent.velocity.x,
        "vy": agent.velocity.y,
        "heading": agent.heading,
        "energy": agent.energy,
        "age": agent.age,
        "cooldown": agent.cooldown,
        "generation": agent.generation,
        "species": agent.species_id,
        "genome": [quantize_trait(value) for value in agent.genome.as_tuple()],
    }


def _encode_species(species: Species) -> Dict[str, Any]:
    return {
        "id": species.id,
        "kind": species.kind.value,
        "name": species.name,
        "color": species.color,
        "centroid": list(species.centroid),
        "created_tick": species.created_tick,
        "count": species.count,
        "last_seen_tick": species.last_seen_tick,
    }


def encode_state(world: World) -> Dict[str, Any]:
    field = world.field
    return {
        "format": FORMAT_NAME,
        "version": FORMAT_VERSION,
        "tick": world.tick,
        "next_agent_id": world.next_agent_id,
        "next_species_id": world.species.next_id,
        "field": {
            "width": field.width,
            "height": field.height,
            "resolution": field.resolution,
            "cells": list(field.values()),
        },
        "species": [_encode_species(species) for species in world.species],
        "grazers": [_encode_agent(agent) for agent in world.grazers],
        "hunters": [_encode_agent(agent) for agent in world.hunters],
    }


def _get(mapping: Mapping[str, Any], key: str, where: str) -> Any:
    if not isinstance(mapping, Mapping):
        raise StateFormatError(f"{where}: expected an object")
    if key not in mapping:
        raise StateFormatError(f"{where}: missing '{key}'")
    return mapping[key]


def _int(mapping: Mapping[str, Any], key: str, where: str, minimum: Optional[int] = 0) -> int:
    value = _get(mapping, key, where)
    if isinstance(value, bool) or not isinstance(value, int):
        raise StateFormatError(f"{where}.{key}: expected an integer")
    if minimum is not None and value < minimum:
        raise StateFormatError(f"{where}.{key}: must be >= {minimum}")
    return value


def _float(mapping: Mapping[str, Any], key: str, where: str) -> float:
    return _as_float(_get(mapping, key, where), f"{where}.{key}")


def _as_float(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise StateFormatError(f"{where}: expected a number")
    value = float(value)
    if not math.isfinite(value):
        raise StateFormatError(f"{where}: must be finite")
    return value


def _list(mapping: Mapping[str, Any], key: str, where: str) -> list:
    value = _get(mapping, key, where)
    if not isinstance(value, list):
        raise StateFormatError(f"{where}.{key}: expected a list")
    return value


def _decode_species(raw: Any, where: str) -> Species:
    kind_value = _get(raw, "kind", where)
    try:
        kind = AgentKind(kind_value)
    except ValueError:
        raise StateFormatError(f"{where}.kind: unknown kind {kind_value!r}") from None
    centroid = [_as_float(value, f"{where}.centroid") for value in _list(raw, "centroid", where)]
    if len(centroid) != len(TRAIT_NAMES):
        raise StateFormatError(f"{where}.centroid: expected {len(TRAIT_NAMES)} values")
    name = _get(raw, "name", where)
    color = _get(raw, "color", where)
    if not isinstance(name, str) or not isinstance(color, str):
        raise StateFormatError(f"{where}: name and color must be strings")
    return Species(
        id=_int(raw, "id", where, minimum=1),
        kind=kind,
        name=name,
        color=color,
        centroid=centroid,
        created_tick=_int(raw, "created_tick", where),
        count=_int(raw, "count", where),
        last_seen_tick=_int(raw, "last_seen_tick", where),
    )


def _decode_agent(raw: Any, kind: AgentKind, species_kinds: Dict[int, AgentKind], where: str) -> Agent:
    genome_raw = _list(raw, "genome", where)
    if len(genome_raw) != len(TRAIT_NAMES):
        raise StateFormatError(f"{where}.genome: expected {len(TRAIT_NAMES)} traits")
    traits = []
    for value in genome_raw:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= GENOME_SCALE:
            raise StateFormatError(f"{where}.genome: traits must be integers in [0, {GENOME_SCALE}]")
        traits.append(dequantize_trait(value))
    species_id = _get(raw, "species", where)
    if species_id is not None and (isinstance(species_id, bool) or not isinstance(species_id, int)):
        raise StateFormatError(f"{where}.species: expected an integer or null")
    if species_id in species_kinds and species_kinds[species_id] is not kind:
        raise StateFormatError(f"{where}.species: species {species_id} is not a {kind.value} species")
    return Agent(
        id=_int(raw, "id", where),
        kind=kind,
        position=Vector2(_float(raw, "x", where), _float(raw, "y", where)),
        velocity=Vector2(_float(raw, "vx", where), _float(raw, "vy", where)),
        heading=_float(raw, "heading", where),
        energy=_float(raw, "energy", where),
        age=_int(raw, "age", where),
        cooldown=_int(raw, "cooldown", where),
        generation=_int(raw, "generation", where),
        species_id=species_id if species_id in species_kinds else None,
        genome=Genome.from_sequence(traits),
    )


def decode_state(payload: Any, config: SimulationConfig) -> WorldState:
    """Validate ``payload`` completely and build fresh state objects from it."""
    if _get(payload, "format", "state") != FORMAT_NAME:
        raise StateFormatError("state: unrecognised format tag")
    version = _get(payload, "version", "state")
    if version != FORMAT_VERSION:
        raise StateFormatError(f"state: unsupported version {version!r}")

    field_raw = _get(payload, "field", "state")
    resolution = _int(field_raw, "resolution", "field", minimum=2)
    if resolution != max(2, int(config.plants.resolution)):
        raise StateFormatError("field.resolution: does not match configuration")
    for key, expected in (("width", config.plants.width), ("height", config.plants.height)):
        if _float(field_raw, key, "field") != float(expected):
            raise StateFormatError(f"field.{key}: does not match configuration")
    cells = [_as_float(value, "field.cells") for value in _list(field_raw, "cells", "field")]
    if len(cells) != resolution * resolution:
        raise StateFormatError("field.cells: wrong number of cells")
    plant_max = float(config.plants.plant_max)
    if any(not 0.0 <= value <= plant_max for value in cells):
        raise StateFormatError("field.cells: value out of bounds")

    species = [_decode_species(raw, f"species[{i}]") for i, raw in enumerate(_list(payload, "species", "state"))]
    species_ids = {entry.id for entry in species}
    if len(species_ids) != len(species):
        raise StateFormatError("species: duplicate ids")
    next_species_id = _int(payload, "next_species_id", "state", minimum=1)
    if species_ids and next_species_id <= max(species_ids):
        raise StateFormatError("state.next_species_id: must exceed every species id")

    species_kinds = {entry.id: entry.kind for entry in species}
    populations = {}
    for kind, key in ((AgentKind.GRAZER, "grazers"), (AgentKind.HUNTER, "hunters")):
        populations[kind] = [
            _decode_agent(raw, kind, species_kinds, f"{key}[{i}]")
            for i, raw in enumerate(_list(payload, key, "state"))
        ]
    agent_ids = [agent.id for agents in populations.values() for agent in agents]
    if len(set(agent_ids)) != len(agent_ids):
        raise StateFormatError("agents: duplicate ids")
    next_agent_id = _int(payload, "next_agent_id", "state")
    if agent_ids and next_agent_id <= max(agent_ids):
        raise StateFormatError("state.next_agent_id: must exceed every agent id")

    return WorldState(
        tick=_int(payload, "tick", "state"),
        next_agent_id=next_agent_id,
        next_species_id=next_species_id,
        cells=cells,
        species=species,
        grazers=populations[AgentKind.GRAZER],
        hunters=populations[AgentKind.HUNTER],
    )


def serialize_world(world: World) -> Dict[str, Any]:
    return encode_state(world)


def restore_world(world: World, payload: Any) -> None:
    world.restore(payload)


def save_world(world: World, path: Path) -> None:
    Path(path).write_text(json.dumps(encode_state(world)))


def load_world(world: World, path: Path) -> None:
    try:
        payload = json.loads(Path(path).read_text())
    except json.JSONDecodeError as exc:
        raise StateFormatError(f"{path}: not valid JSON ({exc.msg})") from exc
    world.restore(payload)
