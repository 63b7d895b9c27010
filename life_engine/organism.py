"""
organism.py

Organisms are body plans of typed cells laid out relative to an anchor tile.
They never touch the grid directly: the Grid passes in occupancy callbacks and
a random generator, and the organism decides how to move, rotate, age, feed
and mutate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .cells import NEIGHBORS4, CellState, Direction, random_body_state
from .config import WorldConfig


# ============================================================
# CONFIG
# ============================================================

DEFAULT_MUTABILITY = 5       # percent chance a child mutates
DEFAULT_MOVE_RANGE = 4       # steps before a new move direction is drawn
BIRTH_BUFFER = 2             # tiles kept between parent and child bodies
INHERIT_ROTATION_PROB = 0.5
MOVE_RANGE_MUTATION_PROB = 0.10
MUTABILITY_MUTATION_PROB = 0.10
BLOCKED_REROLL_PROB = 0.5

PositionCheck = Callable[[int, int], bool]

# Relative layouts as (state, dx, dy); the first entry is the anchor.
PRESETS: Dict[str, Tuple[Tuple[CellState, int, int], ...]] = {
    "basic": (
        (CellState.MOUTH, 0, 0),
        (CellState.PRODUCER, 1, 1),
        (CellState.PRODUCER, -1, -1),
    ),
    "producer": (
        (CellState.MOUTH, 0, 0),
        (CellState.PRODUCER, 1, 0),
        (CellState.PRODUCER, -1, 0),
        (CellState.PRODUCER, 0, 1),
        (CellState.PRODUCER, 0, -1),
    ),
    "hunter": (
        (CellState.MOUTH, 0, 0),
        (CellState.MOVER, 1, 0),
        (CellState.KILLER, 0, 1),
        (CellState.EYE, -1, 0),
    ),
    "armored": (
        (CellState.MOUTH, 0, 0),
        (CellState.PRODUCER, 1, 0),
        (CellState.PRODUCER, -1, 0),
        (CellState.ARMOR, 0, 1),
        (CellState.ARMOR, 0, -1),
    ),
}
FALLBACK_PRESET = (
    (CellState.MOUTH, 0, 0),
    (CellState.PRODUCER, 1, 0),
    (CellState.PRODUCER, -1, 0),
)


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass
class OrganismCell:
    state: CellState
    dx: int
    dy: int
    facing: Optional[Direction] = None  # eyes only

    @classmethod
    def new(cls, state: CellState, dx: int, dy: int, rng: np.random.Generator | None = None) -> "OrganismCell":
        facing = None
        if state == CellState.EYE:
            facing = Direction.random(rng) if rng is not None else Direction.UP
        return cls(state=state, dx=dx, dy=dy, facing=facing)

    def rotated(self, rotation: Direction) -> Tuple[int, int]:
        if rotation == Direction.UP:
            return self.dx, self.dy
        if rotation == Direction.RIGHT:
            return self.dy, -self.dx
        if rotation == Direction.DOWN:
            return -self.dx, -self.dy
        return -self.dy, self.dx

    def absolute_facing(self, rotation: Direction) -> Optional[Direction]:
        if self.facing is None:
            return None
        return self.facing.rotate(rotation)

    def copy(self) -> "OrganismCell":
        return OrganismCell(self.state, self.dx, self.dy, self.facing)


@dataclass
class Organism:
    x: int
    y: int
    cells: List[OrganismCell] = field(default_factory=list)
    id: Optional[int] = None
    rotation: Direction = Direction.UP
    move_direction: Direction = Direction.UP
    move_range: int = DEFAULT_MOVE_RANGE
    move_counter: int = 0
    food_collected: int = 0
    health: int = 0
    lifetime: int = 0
    mutability: int = DEFAULT_MUTABILITY
    is_alive: bool = True

    def __post_init__(self):
        if self.cells and self.health == 0:
            self.health = len(self.cells)

    # ---- construction ----

    @classmethod
    def from_layout(
        cls,
        x: int,
        y: int,
        layout: Sequence[Tuple[CellState, int, int]],
        rng: np.random.Generator | None = None,
    ) -> "Organism":
        org = cls(x=x, y=y)
        if rng is not None:
            org.move_direction = Direction.random(rng)
        for state, dx, dy in layout:
            org.add_cell(state, dx, dy, rng)
        return org

    @classmethod
    def preset(cls, kind: str, x: int, y: int, rng: np.random.Generator | None = None) -> "Organism":
        return cls.from_layout(x, y, PRESETS.get(kind, FALLBACK_PRESET), rng)

    @classmethod
    def from_parent(
        cls,
        parent: "Organism",
        x: int,
        y: int,
        rng: np.random.Generator,
        config: WorldConfig,
    ) -> "Organism":
        """Offspring carrying a possibly mutated copy of the parent's body plan."""
        if rng.random() < INHERIT_ROTATION_PROB:
            rotation = parent.rotation
        else:
            rotation = Direction.random(rng)
        child = cls(
            x=x,
            y=y,
            cells=[c.copy() for c in parent.cells],
            rotation=rotation,
            move_direction=Direction.random(rng),
            move_range=parent.move_range,
            mutability=parent.mutability,
        )
        if rng.integers(0, 100) < child.mutability:
            child.mutate(rng, config)
            if rng.random() < MOVE_RANGE_MUTATION_PROB:
                child.move_range = max(1, child.move_range + int(rng.integers(-2, 3)))
            if rng.random() < MUTABILITY_MUTATION_PROB:
                child.mutability = min(100, max(1, child.mutability + int(rng.integers(-1, 2))))
        child.health = len(child.cells)
        return child

    def add_cell(self, state: CellState, dx: int, dy: int, rng: np.random.Generator | None = None) -> None:
        self.cells.append(OrganismCell.new(state, dx, dy, rng))
        self.health = len(self.cells)

    # ---- body-plan queries ----

    def can_add_cell_at(self, dx: int, dy: int) -> bool:
        return not any(c.dx == dx and c.dy == dy for c in self.cells)

    def cell_position(self, cell: OrganismCell) -> Tuple[int, int]:
        rdx, rdy = cell.rotated(self.rotation)
        return self.x + rdx, self.y + rdy

    def footprint(
        self,
        x: int | None = None,
        y: int | None = None,
        rotation: Direction | None = None,
    ) -> List[Tuple[int, int]]:
        """Absolute tiles covered by the body plan at a given (or current) pose."""
        ax = self.x if x is None else x
        ay = self.y if y is None else y
        rot = self.rotation if rotation is None else rotation
        out = []
        for cell in self.cells:
            rdx, rdy = cell.rotated(rot)
            out.append((ax + rdx, ay + rdy))
        return out

    def cells_of(self, state: CellState) -> List[OrganismCell]:
        return [c for c in self.cells if c.state == state]

    def has_state(self, state: CellState) -> bool:
        return any(c.state == state for c in self.cells)

    def has_movers(self) -> bool:
        return self.has_state(CellState.MOVER)

    def has_eyes(self) -> bool:
        return self.has_state(CellState.EYE)

    def has_producers(self) -> bool:
        return self.has_state(CellState.PRODUCER)

    def food_needed_to_reproduce(self) -> int:
        base_food = len(self.cells)
        return base_food + 1 if self.has_movers() else base_food

    def max_lifespan(self, lifespan_multiplier: int) -> int:
        return len(self.cells) * lifespan_multiplier

    def extent(self) -> int:
        return max((max(abs(c.dx), abs(c.dy)) for c in self.cells), default=0)

    def birth_distance(self) -> int:
        return 2 * self.extent() + BIRTH_BUFFER

    # ---- mutation ----

    def mutate(self, rng: np.random.Generator, config: WorldConfig) -> None:
        if rng.random() < config.add_cell_prob:
            self._mutate_add(rng)
        if rng.random() < config.change_cell_prob:
            self._mutate_change(rng)
        if rng.random() < config.remove_cell_prob:
            self._mutate_remove(rng)
        self.health = len(self.cells)

    def _non_anchor_indices(self) -> List[int]:
        return [i for i, c in enumerate(self.cells) if (c.dx, c.dy) != (0, 0)]

    def _mutate_add(self, rng: np.random.Generator) -> None:
        if not self.cells:
            return
        base = self.cells[int(rng.integers(0, len(self.cells)))]
        free = [
            (base.dx + dx, base.dy + dy)
            for dx, dy in NEIGHBORS4
            if self.can_add_cell_at(base.dx + dx, base.dy + dy)
        ]
        if not free:
            return
        dx, dy = free[int(rng.integers(0, len(free)))]
        self.add_cell(random_body_state(rng), dx, dy, rng)

    def _mutate_change(self, rng: np.random.Generator) -> None:
        candidates = self._non_anchor_indices()
        if not candidates:
            return
        cell = self.cells[candidates[int(rng.integers(0, len(candidates)))]]
        cell.state = random_body_state(rng, exclude=cell.state)
        cell.facing = Direction.random(rng) if cell.state == CellState.EYE else None

    def _mutate_remove(self, rng: np.random.Generator) -> None:
        candidates = self._non_anchor_indices()
        if not candidates:
            return
        del self.cells[candidates[int(rng.integers(0, len(candidates)))]]

    # ---- behaviour ----

    def _fits(self, x: int, y: int, rotation: Direction, is_position_clear: PositionCheck) -> bool:
        own = set(self.footprint())
        return all(
            pos in own or is_position_clear(pos[0], pos[1])
            for pos in self.footprint(x, y, rotation)
        )

    def try_move(self, is_position_clear: PositionCheck, rng: np.random.Generator) -> bool:
        if not self.has_movers():
            return False

        dx, dy = self.move_direction.delta
        new_x, new_y = self.x + dx, self.y + dy

        if self._fits(new_x, new_y, self.rotation, is_position_clear):
            self.x, self.y = new_x, new_y
            self.move_counter += 1
            if self.move_counter >= self.move_range:
                self.move_direction = Direction.random(rng)
                self.move_counter = 0
            return True

        if rng.random() < BLOCKED_REROLL_PROB:
            self.move_direction = Direction.random(rng)
            self.move_counter = 0
        return False

    def try_rotate(self, is_position_clear: PositionCheck, rng: np.random.Generator) -> bool:
        new_rotation = Direction.random(rng)
        if self._fits(self.x, self.y, new_rotation, is_position_clear):
            self.rotation = new_rotation
            return True
        return False

    def harm(self) -> None:
        if self.health > 0:
            self.health -= 1
        if self.health == 0:
            self.is_alive = False

    def update(
        self,
        lifespan_multiplier: int,
        is_position_clear: PositionCheck,
        has_food_at: PositionCheck,
        rng: np.random.Generator,
    ) -> None:
        """Age by one tick, credit adjacent food to mouths, then move or rotate."""
        if not self.is_alive:
            return

        self.lifetime += 1
        if self.lifetime >= self.max_lifespan(lifespan_multiplier):
            self.is_alive = False
            return

        for cell in self.cells_of(CellState.MOUTH):
            cx, cy = self.cell_position(cell)
            for dx, dy in NEIGHBORS4:
                if has_food_at(cx + dx, cy + dy):
                    self.food_collected += 1

        if self.has_movers():
            if not self.try_move(is_position_clear, rng):
                self.try_rotate(is_position_clear, rng)
