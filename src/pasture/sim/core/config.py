from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from ..utils.math2d import _clamp_value

TRAIT_NAMES: tuple[str, ...] = ("speed", "turn", "greed", "caution", "bite", "size")


@dataclass
class FieldConfig:
    width: float = 960.0
    height: float = 640.0
    resolution: int = 120
    plant_max: float = 1.0
    growth_rate: float = 0.015
    reset_patches: int = 500
    patch_amount_min: float = 0.2
    patch_amount_max: float = 1.0
    display_floor: float = 0.02


@dataclass
class MovementConfig:
    speed_min: float = 0.25
    speed_max: float = 2.2
    size_speed_penalty: float = 0.35
    base_move_cost: float = 0.0035
    move_cost_speed_base: float = 0.65
    move_cost_speed_slope: float = 1.2
    size_cost_base: float = 0.7
    size_cost_slope: float = 0.6
    crowd_cost_slope: float = 1.5
    turn_rate_base: float = 0.08
    turn_rate_slope: float = 0.25
    wander_base: float = 0.02
    wander_turn_slope: float = 0.05
    size_vision_penalty: float = 0.3
    hunger_size_base: float = 0.6
    hunger_size_slope: float = 0.8


@dataclass
class GrazerConfig:
    vision: float = 28.0
    fan_rays: int = 8
    fan_spacing: float = 0.35
    danger_radius: float = 42.0
    danger_size_bonus: float = 0.2
    caution_threshold: float = 0.05
    flee_strength: float = 1.35
    chase_base: float = 0.2
    chase_greed_slope: float = 1.1
    wander_chance: float = 0.15
    eat_rate: float = 0.18
    eat_greed_base: float = 0.7
    eat_size_base: float = 0.8
    eat_size_slope: float = 0.4
    conversion: float = 0.75
    hunger: float = 0.0008
    start_count: int = 1


@dataclass
class HunterConfig:
    vision: float = 40.0
    pursuit_base: float = 0.7
    pursuit_bite_slope: float = 1.0
    patrol_wander_chance: float = 0.55
    engage_radius: float = 6.5
    engage_size_bonus: float = 4.0
    damage: float = 0.35
    damage_bite_base: float = 0.6
    damage_size_base: float = 0.7
    damage_size_slope: float = 0.6
    conversion: float = 0.9
    hunger: float = 0.0015
    start_count: int = 1


@dataclass
class RegulatorConfig:
    target_grazers: float = 180.0
    grazer_softness: float = 40.0
    target_hunters: float = 60.0
    hunter_softness: float = 20.0
    grazer_weight: float = 0.55
    hunter_weight: float = 0.45
    grazer_density_gate: float = 0.25
    hunter_prey_ratio: float = 3.0
    hunter_prey_floor: int = 12


@dataclass
class LifecycleConfig:
    max_age: int = 20000
    nutrient_return: float = 0.35
    nutrient_size_base: float = 0.5
    reproduction_threshold: float = 1.25
    reproduction_cost: float = 0.55
    reproduction_cost_size_base: float = 0.7
    reproduction_cost_size_slope: float = 0.6
    reproduction_chance: float = 0.22
    pressure_reproduction_damping: float = 0.85
    size_reproduction_penalty: float = 0.4
    cooldown: int = 90
    adult_energy: float = 0.9
    offspring_energy: float = 0.6
    offspring_offset: float = 10.0


@dataclass
class EvolutionConfig:
    mutation_probability: float = 0.12
    mutation_strength: float = 0.12


@dataclass
class SpeciationConfig:
    split_threshold: float = 0.22
    merge_factor: float = 0.6
    max_species: int = 64
    stats_interval: int = 30
    grace_ticks: int = 1800
    grazer_seed: Dict[str, float] = field(
        default_factory=lambda: {
            "speed": 0.55,
            "turn": 0.45,
            "greed": 0.5,
            "caution": 0.4,
            "bite": 0.2,
            "size": 0.35,
        }
    )
    hunter_seed: Dict[str, float] = field(
        default_factory=lambda: {
            "speed": 0.6,
            "turn": 0.5,
            "greed": 0.5,
            "caution": 0.15,
            "bite": 0.5,
            "size": 0.5,
        }
    )

    @property
    def merge_threshold(self) -> float:
        return self.split_threshold * self.merge_factor


@dataclass
class SimulationConfig:
    seed: Optional[int] = None
    tick_divisor: int = 1
    frame_rate: float = 60.0
    config_version: str = "v1"
    plants: FieldConfig = field(default_factory=FieldConfig)
    movement: MovementConfig = field(default_factory=MovementConfig)
    grazer: GrazerConfig = field(default_factory=GrazerConfig)
    hunter: HunterConfig = field(default_factory=HunterConfig)
    regulator: RegulatorConfig = field(default_factory=RegulatorConfig)
    lifecycle: LifecycleConfig = field(default_factory=LifecycleConfig)
    evolution: EvolutionConfig = field(default_factory=EvolutionConfig)
    speciation: SpeciationConfig = field(default_factory=SpeciationConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


# Runtime tunables: name -> (section, attribute, low, high, cast)
TUNABLES: Dict[str, tuple[Optional[str], str, float, float, type]] = {
    "tick_divisor": (None, "tick_divisor", 1, 600, int),
    "growth_rate": ("plants", "growth_rate", 0.0, 1.0, float),
    "mutation_probability": ("evolution", "mutation_probability", 0.0, 1.0, float),
    "mutation_strength": ("evolution", "mutation_strength", 0.0, 1.0, float),
    "split_threshold": ("speciation", "split_threshold", 0.01, 2.45, float),
}


def _tunable_owner(config: SimulationConfig, section: Optional[str]) -> object:
    return config if section is None else getattr(config, section)


def get_tunables(config: SimulationConfig) -> Dict[str, float]:
    values: Dict[str, float] = {}
    for name, (section, attr, _low, _high, _cast) in TUNABLES.items():
        values[name] = getattr(_tunable_owner(config, section), attr)
    values["merge_threshold"] = config.speciation.merge_threshold
    return values


def coerce_tunable(name: str, value: float) -> tuple[float, bool]:
    """Cast and clamp a tunable without assigning it. Returns (value, clamped)."""
    _section_name, _attr, low, high, cast = TUNABLES[name]
    try:
        requested = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Tunable {name} needs a number, got {value!r}") from None
    if math.isnan(requested):
        raise ValueError(f"Tunable {name} cannot be NaN")
    bounded = _clamp_value(requested, low, high)
    return cast(bounded), bounded != requested


def set_tunable(config: SimulationConfig, name: str, value: float) -> bool:
    """Assign a tunable, clamped into range. Returns True if clamping changed it."""
    section, attr, _low, _high, _cast = TUNABLES[name]
    clamped, changed = coerce_tunable(name, value)
    setattr(_tunable_owner(config, section), attr, clamped)
    return changed


def clamp_tunables(config: SimulationConfig) -> List[str]:
    changed = []
    for name in TUNABLES:
        section, attr, _low, _high, _cast = TUNABLES[name]
        if set_tunable(config, name, getattr(_tunable_owner(config, section), attr)):
            changed.append(name)
    return changed


def _section(cls: type, raw: Optional[dict]):
    raw = raw or {}
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {sorted(unknown)}")
    return cls(**raw)


def load_config(raw: dict) -> SimulationConfig:
    sections = {
        "plants": FieldConfig,
        "movement": MovementConfig,
        "grazer": GrazerConfig,
        "hunter": HunterConfig,
        "regulator": RegulatorConfig,
        "lifecycle": LifecycleConfig,
        "evolution": EvolutionConfig,
        "speciation": SpeciationConfig,
    }
    unknown = set(raw) - {f.name for f in fields(SimulationConfig)}
    if unknown:
        raise ValueError(f"Unknown SimulationConfig keys: {sorted(unknown)}")
    built = {name: _section(cls, raw.get(name)) for name, cls in sections.items()}
    speciation_raw = raw.get("speciation") or {}
    for seed_key in ("grazer_seed", "hunter_seed"):
        defaults = getattr(SpeciationConfig(), seed_key)
        merged = dict(defaults)
        merged.update(speciation_raw.get(seed_key) or {})
        setattr(built["speciation"], seed_key, {name: float(merged[name]) for name in TRAIT_NAMES})
    sim_values = {k: v for k, v in raw.items() if k not in sections}
    return SimulationConfig(**built, **sim_values)


def config_to_dict(config: object) -> dict:
    out = {}
    for f in fields(config):
        value = getattr(config, f.name)
        out[f.name] = config_to_dict(value) if is_dataclass(value) else value
    return out
