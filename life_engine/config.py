"""
config.py

Simulation-wide tunables. The uppercase block holds the defaults; a
`WorldConfig` is the immutable value a Grid hands to `step()` each tick.
Setters on the Grid swap in a new config instead of mutating one.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict


# ============================================================
# CONFIG
# ============================================================

FOOD_PRODUCTION_PROB = 0.005   # per Empty tile per tick
MAX_ORGANISMS = 1000           # 0 disables the cap
LIFESPAN_MULTIPLIER = 100      # ticks of life per body cell
INSTA_KILL = False
FOOD_BLOCKS_REPRODUCTION = True

# Independent mutation rolls, applied when a child mutates
ADD_CELL_PROB = 0.5
CHANGE_CELL_PROB = 0.3
REMOVE_CELL_PROB = 0.2


@dataclass(frozen=True)
class WorldConfig:
    food_production_prob: float = FOOD_PRODUCTION_PROB
    max_organisms: int = MAX_ORGANISMS
    lifespan_multiplier: int = LIFESPAN_MULTIPLIER
    insta_kill: bool = INSTA_KILL
    food_blocks_reproduction: bool = FOOD_BLOCKS_REPRODUCTION
    add_cell_prob: float = ADD_CELL_PROB
    change_cell_prob: float = CHANGE_CELL_PROB
    remove_cell_prob: float = REMOVE_CELL_PROB

    def __post_init__(self):
        for name in ("food_production_prob", "add_cell_prob", "change_cell_prob", "remove_cell_prob"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        for name in ("max_organisms", "lifespan_multiplier"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        for name in ("insta_kill", "food_blocks_reproduction"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be true or false, got {getattr(self, name)!r}")
        if self.max_organisms < 0:
            raise ValueError(f"max_organisms must be >= 0, got {self.max_organisms}")
        if self.lifespan_multiplier < 0:
            raise ValueError(f"lifespan_multiplier must be >= 0, got {self.lifespan_multiplier}")

    def replace(self, **changes) -> "WorldConfig":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorldConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(unknown)}")
        return cls(**data)


def load_config(path: str | Path) -> WorldConfig:
    """Read a JSON object of overrides on top of the defaults."""
    with Path(path).open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return WorldConfig.from_dict(data)


def save_config(config: WorldConfig, path: str | Path) -> None:
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8") as handle:
        json.dump(config.to_dict(), handle, indent=2)
