from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

from .algorithms import ALGORITHMS


@dataclass(frozen=True)
class SimulationConfig:
    tick_interval_ms: int = 10
    round_robin_quantum_ms: int = 50
    total_memory_mb: int = 1024
    activity_log_capacity: int = 100
    enforce_memory_limit: bool = True
    algorithm: str = "fcfs"

    def __post_init__(self) -> None:
        for name in ("tick_interval_ms", "round_robin_quantum_ms", "total_memory_mb", "activity_log_capacity"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if not isinstance(self.algorithm, str) or self.algorithm.lower() not in ALGORITHMS:
            raise ValueError(f"Unknown algorithm '{self.algorithm}' (use {', '.join(ALGORITHMS)})")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "SimulationConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(mapping) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**dict(mapping))

    def with_overrides(self, **overrides: Any) -> "SimulationConfig":
        """
        Copy with every non-None override applied (CLI flags win over the file).
        """
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return asdict(self)


def load_config(path: str | Path) -> SimulationConfig:
    """
    Load a JSON configuration file into a SimulationConfig.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Configuration in {path} must be a JSON object")

    return SimulationConfig.from_mapping(raw)
