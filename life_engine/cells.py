"""
cells.py

Shared tile and body-cell vocabulary: cell states, the fixed colour contract,
cardinal directions, and the neighbourhood offsets used by every phase.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple

import numpy as np


class CellState(IntEnum):
    EMPTY = 0
    FOOD = 1
    WALL = 2
    MOUTH = 3
    PRODUCER = 4
    MOVER = 5
    KILLER = 6
    ARMOR = 7
    EYE = 8


ENVIRONMENT_STATES = (CellState.EMPTY, CellState.FOOD, CellState.WALL)
BODY_STATES = (
    CellState.MOUTH,
    CellState.PRODUCER,
    CellState.MOVER,
    CellState.KILLER,
    CellState.ARMOR,
    CellState.EYE,
)

# Packed 0xRRGGBB per state
COLORS = {
    CellState.EMPTY: 0x0E1318,
    CellState.FOOD: 0x2F7AB7,
    CellState.WALL: 0x808080,
    CellState.MOUTH: 0xDEB14D,
    CellState.PRODUCER: 0x15DE59,
    CellState.MOVER: 0x60D4FF,
    CellState.KILLER: 0xF82380,
    CellState.ARMOR: 0x7230DB,
    CellState.EYE: 0xB6C1EA,
}

COLOR_TABLE = np.array([COLORS[s] for s in CellState], dtype=np.uint32)

NEIGHBORS4: Tuple[Tuple[int, int], ...] = ((0, 1), (1, 0), (0, -1), (-1, 0))
NEIGHBORS8: Tuple[Tuple[int, int], ...] = (
    (0, -1), (1, -1), (1, 0), (1, 1),
    (0, 1), (-1, 1), (-1, 0), (-1, -1),
)


def color(state: int) -> int:
    return COLORS[CellState(state)]


def unpack_rgb(packed: int) -> Tuple[int, int, int]:
    return (packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF


def random_body_state(rng: np.random.Generator, exclude: Optional[CellState] = None) -> CellState:
    """Uniform draw over body states, optionally skipping `exclude`."""
    choices = [s for s in BODY_STATES if s != exclude]
    return choices[int(rng.integers(0, len(choices)))]


class Direction(IntEnum):
    UP = 0
    RIGHT = 1
    DOWN = 2
    LEFT = 3

    @property
    def delta(self) -> Tuple[int, int]:
        return _DELTAS[self]

    def opposite(self) -> "Direction":
        return Direction((self + 2) % 4)

    def rotate(self, by: "Direction") -> "Direction":
        return Direction((self + by) % 4)

    @classmethod
    def random(cls, rng: np.random.Generator) -> "Direction":
        return cls(int(rng.integers(0, 4)))


_DELTAS = {
    Direction.UP: (0, -1),
    Direction.RIGHT: (1, 0),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
}


@dataclass(frozen=True)
class Cell:
    """One grid tile as seen by callers."""
    state: CellState
    owner: Optional[int] = None
