from __future__ import annotations

import colorsys
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence

from .agent import AgentKind, Genome
from .rng import DeterministicRng

logger = logging.getLogger("pasture.species")

_GOLDEN_RATIO_CONJUGATE = 0.618033988749895
_ONSETS = ("b", "c", "d", "f", "g", "k", "l", "m", "n", "p", "r", "s", "t", "v", "z", "th", "sh", "qu")
_VOWELS = ("a", "e", "i", "o", "u", "ae", "io", "y")
_GRAZER_ENDINGS = ("ia", "ella", "ora", "ina", "ula")
_HUNTER_ENDINGS = ("ax", "or", "yx", "ard", "esh")


@dataclass(slots=True)
class Species:
    id: int
    kind: AgentKind
    name: str
    color: str
    centroid: List[float]
    created_tick: int
    count: int = 0
    last_seen_tick: int = 0


def species_color(species_id: int, kind: AgentKind) -> str:
    """Stable color per id: golden-ratio hue walk, lighter for grazers."""
    hue = (species_id * _GOLDEN_RATIO_CONJUGATE) % 1.0
    if kind is AgentKind.GRAZER:
        lightness, saturation = 0.62, 0.55
    else:
        lightness, saturation = 0.5, 0.75
    r, g, b = colorsys.hls_to_rgb(hue, lightness, saturation)
    return "#{:02x}{:02x}{:02x}".format(round(r * 255), round(g * 255), round(b * 255))


def species_name(rng: DeterministicRng, kind: AgentKind) -> str:
    syllables = 1 + rng.next_int(2)
    stem = "".join(rng.sample_choice(_ONSETS) + rng.sample_choice(_VOWELS) for _ in range(syllables))
    stem += rng.sample_choice(_ONSETS)
    endings = _GRAZER_ENDINGS if kind is AgentKind.GRAZER else _HUNTER_ENDINGS
    return (stem + rng.sample_choice(endings)).capitalize()


class SpeciesRegistry:
    """Arena of species keyed by integer id. Agents hold ids, never records."""

    def __init__(self) -> None:
        self._species: Dict[int, Species] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._species)

    def __iter__(self) -> Iterator[Species]:
        return iter(self._species.values())

    def __contains__(self, species_id: object) -> bool:
        return species_id in self._species

    @property
    def next_id(self) -> int:
        return self._next_id

    def get(self, species_id: Optional[int]) -> Optional[Species]:
        if species_id is None:
            return None
        return self._species.get(species_id)

    def of_kind(self, kind: AgentKind) -> List[Species]:
        return [species for species in self._species.values() if species.kind is kind]

    def clear(self) -> None:
        self._species.clear()
        self._next_id = 1

    def create(self, kind: AgentKind, genome: Genome, tick: int, rng: DeterministicRng) -> Species:
        species_id = self._next_id
        self._next_id += 1
        species = Species(
            id=species_id,
            kind=kind,
            name=species_name(rng, kind),
            color=species_color(species_id, kind),
            centroid=list(genome.as_tuple()),
            created_tick=tick,
            last_seen_tick=tick,
        )
        self._species[species_id] = species
        logger.debug("species %d (%s, %s) created at tick %d", species_id, species.name, kind.value, tick)
        return species

    def remove(self, species_id: int) -> None:
        removed = self._species.pop(species_id, None)
        if removed is not None:
            logger.debug("species %d (%s) collected", species_id, removed.name)

    def nearest(self, kind: AgentKind, genome: Genome) -> tuple[Optional[Species], float]:
        best: Optional[Species] = None
        best_distance = float("inf")
        for species in self._species.values():
            if species.kind is not kind:
                continue
            distance = genome.distance(species.centroid)
            if distance < best_distance:
                best = species
                best_distance = distance
        return best, best_distance

    def replace(self, species: Sequence[Species], next_id: int) -> None:
        self._species = {entry.id: entry for entry in species}
        self._next_id = next_id
