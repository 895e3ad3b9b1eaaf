from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import TRAIT_NAMES, SimulationConfig
from ..sim.core.world import World
from ..sim.persistence import load_world, save_world
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger("pasture.headless")

_BASIC_HEADER = [
    "tick",
    "grazers",
    "hunters",
    "births",
    "deaths",
    "pressure",
    "species",
    "tick_ms",
]

_DETAILED_HEADER = _BASIC_HEADER + [
    "avg_grazer_energy",
    "avg_hunter_energy",
    "plant_total",
    "births_per_agent",
    "deaths_per_agent",
    "hunter_ratio",
    "largest_species",
    "largest_species_share",
    *(f"grazer_{name}" for name in TRAIT_NAMES),
    *(f"hunter_{name}" for name in TRAIT_NAMES),
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.grazers,
        metrics.hunters,
        metrics.births,
        metrics.deaths,
        f"{metrics.pressure:.4f}",
        metrics.species,
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: TickMetrics, tick_ms: float) -> list[object]:
    population = metrics.grazers + metrics.hunters
    stats = world.statistics()
    if population <= 0:
        births_per_agent = 0.0
        deaths_per_agent = 0.0
        hunter_ratio = 0.0
    else:
        births_per_agent = metrics.births / population
        deaths_per_agent = metrics.deaths / population
        hunter_ratio = metrics.hunters / population
    largest = stats.species[0] if stats.species and stats.species[0].count > 0 else None
    largest_share = 0.0 if largest is None or population <= 0 else largest.count / population
    grazer_traits = [f"{stats.grazer_traits.get(name, 0.0):.4f}" for name in TRAIT_NAMES]
    hunter_traits = [f"{stats.hunter_traits.get(name, 0.0):.4f}" for name in TRAIT_NAMES]
    return _format_basic_row(metrics, tick_ms) + [
        f"{metrics.average_grazer_energy:.4f}",
        f"{metrics.average_hunter_energy:.4f}",
        f"{metrics.plant_total:.4f}",
        f"{births_per_agent:.4f}",
        f"{deaths_per_agent:.4f}",
        f"{hunter_ratio:.4f}",
        "" if largest is None else largest.name,
        f"{largest_share:.4f}",
        *grazer_traits,
        *hunter_traits,
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def _first_zero(series: list[int], ticks: list[int]) -> Optional[int]:
    for value, tick in zip(series, ticks):
        if value == 0:
            return tick
    return None


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 5000,
    config_path: Optional[Path] = None,
    load_path: Optional[Path] = None,
    save_path: Optional[Path] = None,
) -> World:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    world = World(config)
    if load_path:
        load_world(world, load_path)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    ticks: list[int] = []
    tick_ms_series: list[float] = []
    grazer_series: list[int] = []
    hunter_series: list[int] = []
    pressure_series: list[float] = []
    species_series: list[int] = []

    try:
        for _ in range(steps):
            metrics = world.step()
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            ticks.append(metrics.tick)
            tick_ms_series.append(tick_ms)
            grazer_series.append(metrics.grazers)
            hunter_series.append(metrics.hunters)
            pressure_series.append(metrics.pressure)
            species_series.append(metrics.species)
            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    logger.info(
        "ran %d ticks: %d grazers, %d hunters, %d species",
        steps,
        len(world.grazers),
        len(world.hunters),
        len(world.species),
    )

    if save_path:
        save_world(world, save_path)

    if summary_path:
        window = max(1, int(summary_window))
        tail = slice(max(0, len(ticks) - window), len(ticks))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "final_tick": world.tick,
            "tick_ms": _summary_stats(tick_ms_series),
            "grazers": _summary_stats([float(v) for v in grazer_series]),
            "hunters": _summary_stats([float(v) for v in hunter_series]),
            "pressure": _summary_stats(pressure_series),
            "species": _summary_stats([float(v) for v in species_series]),
            "extinctions": {
                "grazers": _first_zero(grazer_series, ticks),
                "hunters": _first_zero(hunter_series, ticks),
            },
            "tail_window": {
                "window": window,
                "grazers": _summary_stats([float(v) for v in grazer_series[tail]]),
                "hunters": _summary_stats([float(v) for v in hunter_series[tail]]),
                "pressure": _summary_stats(pressure_series[tail]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless pasture simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=5000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--load", type=Path, default=None, help="World state JSON to resume from")
    parser.add_argument("--save", type=Path, default=None, help="Write the final world state JSON here")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config_path=args.config,
        load_path=args.load,
        save_path=args.save,
    )


if __name__ == "__main__":
    main()
