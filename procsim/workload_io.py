from __future__ import annotations

import csv
import json
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from .state import DEFAULT_TOTAL_MEMORY_MB

APP_NAMES = (
    "Chrome", "VSCode", "Spotify", "Discord", "Slack",
    "Teams", "Excel", "Photoshop", "Steam", "Zoom",
    "Firefox", "Notepad", "Calculator", "Paint", "OneDrive",
)


@dataclass
class ProcessSpec:
    """
    Parameters for one process to be created in a simulation.
    """

    name: str
    burst_time: int
    priority: int = 1
    memory_mb: int = 0


def load_workload(path: str | Path) -> List[ProcessSpec]:
    """
    Load a workload from a JSON or CSV file into a list of ProcessSpec objects.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        return _load_json(path)
    if suffix == ".csv":
        return _load_csv(path)

    raise ValueError(f"Unsupported workload format: {suffix} (use .json or .csv)")


def _load_json(path: Path) -> List[ProcessSpec]:
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, list):
        raise ValueError("JSON workload must be a list of process objects")

    return [_spec_from_mapping(entry) for entry in raw]


def _load_csv(path: Path) -> List[ProcessSpec]:
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        return [_spec_from_mapping(row) for row in reader]


def _optional_int(mapping, key: str, default: int) -> int:
    value = mapping.get(key)
    if value in (None, ""):
        return default
    return int(value)


def _spec_from_mapping(mapping) -> ProcessSpec:
    try:
        name = str(mapping["name"])
        burst_time = int(mapping["burst_time"])
        priority = _optional_int(mapping, "priority", 1)
        memory_mb = _optional_int(mapping, "memory_mb", 0)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid process entry: {mapping!r}") from exc

    return ProcessSpec(name=name, burst_time=burst_time, priority=priority, memory_mb=memory_mb)


def generate_random_workload(
    count: int = 10,
    seed: Optional[int] = None,
    memory_budget_mb: Optional[int] = DEFAULT_TOTAL_MEMORY_MB,
) -> List[ProcessSpec]:
    """
    Random demo processes: 100-999 ms bursts, priority 1-10, 50-499 MB.
    The same seed always gives the same workload.

    With a ``memory_budget_mb`` each process is capped to an even share of
    what is left, so the whole workload fits in memory at once. Pass
    ``None`` to draw memory without a cap.
    """
    rng = random.Random(seed)
    specs: List[ProcessSpec] = []
    remaining = memory_budget_mb
    for i in range(count):
        name = f"{rng.choice(APP_NAMES)} {i + 1}"
        burst_time = rng.randrange(100, 1000)
        priority = rng.randrange(1, 11)
        memory_mb = rng.randrange(50, 500)
        if remaining is not None:
            memory_mb = min(memory_mb, remaining // (count - i))
            remaining -= memory_mb
        specs.append(ProcessSpec(name=name, burst_time=burst_time, priority=priority, memory_mb=memory_mb))
    return specs


def populate(simulation, specs: Iterable[ProcessSpec]) -> list:
    """
    Create every spec in ``simulation``; rejected specs are skipped (the
    simulation reports them in its activity log).
    """
    created = []
    for spec in specs:
        process = simulation.create_process(spec.name, spec.burst_time, spec.priority, spec.memory_mb)
        if process is not None:
            created.append(process)
    return created
