"""
world.py

The Grid owns the tile matrix, the organism registry and the derived colour
buffer, and runs the per-tick pipeline:

1) eating, 2) combat, 3) organism update, 4) reproduction,
5) cleanup, 6) food growth, 7) pixel sync.

Tiles store owner ids, never organism objects. An id is only valid while the
organism is registered; cleanup scrubs every tile an organism owns before its
id leaves the registry.

Usage
-----
>>> grid = Grid(100, 100, seed=42)
>>> grid.origin_of_life()
True
>>> stats = grid.step()
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set, Tuple

import numpy as np

from .cells import COLOR_TABLE, NEIGHBORS4, NEIGHBORS8, Cell, CellState
from .config import WorldConfig
from .organism import Organism


# ============================================================
# CONFIG
# ============================================================

NO_OWNER = -1
FIRST_ORGANISM_ID = 1
PRODUCER_FOOD_PROB = 0.02   # per Producer cell, per Empty neighbour, per tick
BIRTH_JITTER = 2            # extra tiles added to the birth distance, drawn 0..BIRTH_JITTER


# ============================================================
# HELPERS
# ============================================================

def line_points(x0: int, y0: int, x1: int, y1: int) -> List[Tuple[int, int]]:
    """Integer Bresenham line from (x0, y0) to (x1, y1), both ends included."""
    points = []
    dx = abs(x1 - x0)
    dy = -abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx + dy
    x, y = x0, y0
    while True:
        points.append((x, y))
        if x == x1 and y == y1:
            break
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x += sx
        if e2 <= dx:
            err += dx
            y += sy
    return points


def chebyshev_distance(x1: int, y1: int, x2: int, y2: int) -> int:
    return max(abs(x1 - x2), abs(y1 - y2))


def neighbor4_masks(mask: np.ndarray) -> List[np.ndarray]:
    """For each orthogonal direction, the tiles that sit next to a True tile (no wrapping)."""
    H, W = mask.shape
    up = np.zeros_like(mask)
    down = np.zeros_like(mask)
    left = np.zeros_like(mask)
    right = np.zeros_like(mask)
    if H > 1:
        up[:-1, :] = mask[1:, :]
        down[1:, :] = mask[:-1, :]
    if W > 1:
        left[:, :-1] = mask[:, 1:]
        right[:, 1:] = mask[:, :-1]
    return [up, down, left, right]


# ============================================================
# GRID
# ============================================================

class Grid:
    def __init__(
        self,
        width: int,
        height: int,
        config: WorldConfig | None = None,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
    ):
        self.width = max(0, int(width))
        self.height = max(0, int(height))
        self.config = config if config is not None else WorldConfig()
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        H, W = self.height, self.width
        self.states = np.zeros((H, W), dtype=np.int8)
        self.owners = np.full((H, W), NO_OWNER, dtype=np.int64)
        self.pixels = np.full((H, W), COLOR_TABLE[CellState.EMPTY], dtype=np.uint32)

        self.organisms: Dict[int, Organism] = {}
        self.next_organism_id = FIRST_ORGANISM_ID
        self.ticks = 0

    # ---- tile access ----

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_cell(self, x: int, y: int) -> Optional[Cell]:
        if not self.in_bounds(x, y):
            return None
        owner = int(self.owners[y, x])
        return Cell(CellState(int(self.states[y, x])), None if owner == NO_OWNER else owner)

    def get_pixel(self, x: int, y: int) -> int:
        if not self.in_bounds(x, y):
            return 0x000000
        return int(self.pixels[y, x])

    def set_cell(self, x: int, y: int, state: CellState, owner: int | None = None) -> bool:
        if not self.in_bounds(x, y):
            return False
        self.states[y, x] = state
        self.owners[y, x] = NO_OWNER if owner is None else owner
        self.pixels[y, x] = COLOR_TABLE[state]
        return True

    def is_position_clear(self, x: int, y: int) -> bool:
        if not self.in_bounds(x, y):
            return False
        return self.states[y, x] in (CellState.EMPTY, CellState.FOOD)

    def has_food_at(self, x: int, y: int) -> bool:
        return self.in_bounds(x, y) and self.states[y, x] == CellState.FOOD

    def organism_at(self, x: int, y: int) -> Optional[Organism]:
        if not self.in_bounds(x, y):
            return None
        return self.organisms.get(int(self.owners[y, x]))

    # ---- configuration setters ----

    def set_food_production_prob(self, prob: float) -> None:
        self.config = self.config.replace(food_production_prob=prob)

    def set_max_organisms(self, max_organisms: int) -> None:
        self.config = self.config.replace(max_organisms=max_organisms)

    def set_lifespan_multiplier(self, multiplier: int) -> None:
        self.config = self.config.replace(lifespan_multiplier=multiplier)

    def set_insta_kill(self, insta_kill: bool) -> None:
        self.config = self.config.replace(insta_kill=insta_kill)

    def set_food_blocks_reproduction(self, blocks: bool) -> None:
        self.config = self.config.replace(food_blocks_reproduction=blocks)

    # ---- organisms ----

    @property
    def organism_count(self) -> int:
        return len(self.organisms)

    def alive_organisms(self) -> List[Organism]:
        return [org for org in self.organisms.values() if org.is_alive]

    def _at_capacity(self, population: int, config: WorldConfig) -> bool:
        return config.max_organisms > 0 and population >= config.max_organisms

    def _can_place(
        self,
        organism: Organism,
        config: WorldConfig,
        reserved: Set[Tuple[int, int]] | None = None,
    ) -> bool:
        seen: Set[Tuple[int, int]] = set()
        for x, y in organism.footprint():
            if not self.in_bounds(x, y) or (x, y) in seen:
                return False
            if reserved and (x, y) in reserved:
                return False
            seen.add((x, y))
            state = self.states[y, x]
            if state == CellState.EMPTY:
                continue
            if state == CellState.FOOD and not config.food_blocks_reproduction:
                continue
            return False
        return True

    def _stamp(self, organism: Organism) -> None:
        for cell in organism.cells:
            x, y = organism.cell_position(cell)
            self.set_cell(x, y, cell.state, organism.id)

    def _scrub(self, organism_id: int, tiles: Iterable[Tuple[int, int]], state: CellState) -> None:
        """Reset tiles still owned by `organism_id` to `state` with no owner."""
        for x, y in tiles:
            if self.in_bounds(x, y) and self.owners[y, x] == organism_id:
                self.set_cell(x, y, state)

    def add_organism(self, organism: Organism) -> bool:
        """Validate and stamp an organism; nothing is written unless every cell fits."""
        if self._at_capacity(len(self.organisms), self.config):
            return False
        if not organism.cells:
            return False
        if organism.id is not None and organism.id in self.organisms:
            return False
        if not self._can_place(organism, self.config):
            return False

        if organism.id is None:
            organism.id = self.next_organism_id
        self.next_organism_id = max(self.next_organism_id, organism.id + 1)
        self.organisms[organism.id] = organism
        self._stamp(organism)
        return True

    def create_basic_organism(self, x: int, y: int) -> bool:
        return self.add_organism(Organism.preset("basic", x, y, self.rng))

    def add_custom_organism(self, x: int, y: int, kind: str) -> bool:
        return self.add_organism(Organism.preset(kind, x, y, self.rng))

    def origin_of_life(self) -> bool:
        return self.create_basic_organism(self.width // 2, self.height // 2)

    def reset(self, clear_walls: bool = False) -> None:
        if clear_walls:
            self.states.fill(CellState.EMPTY)
        else:
            self.states[self.states != CellState.WALL] = CellState.EMPTY
        self.owners.fill(NO_OWNER)
        self.organisms.clear()
        self.next_organism_id = FIRST_ORGANISM_ID
        self.ticks = 0
        self._sync_pixels()

    # ============================================================
    # STEP PIPELINE
    # ============================================================

    def step(self, config: WorldConfig | None = None) -> Dict[str, int]:
        cfg = config if config is not None else self.config

        eaten = self._eat_phase()
        hits, kills = self._combat_phase(cfg)
        self._update_phase(cfg)
        births = self._reproduction_phase(cfg)
        deaths = self._cleanup_phase(cfg)
        self._food_growth_phase(cfg)
        self._sync_pixels()

        self.ticks += 1
        return {
            "tick": self.ticks,
            "eaten": eaten,
            "hits": hits,
            "kills": kills,
            "births": births,
            "deaths": deaths,
            "population": len(self.organisms),
        }

    def _eat_phase(self) -> int:
        # Credit first, clear after: two mouths on one tile both get fed.
        meals: List[Tuple[Organism, Tuple[int, int]]] = []
        for org in self.alive_organisms():
            for cell in org.cells_of(CellState.MOUTH):
                cx, cy = org.cell_position(cell)
                for dx, dy in NEIGHBORS4:
                    if self.has_food_at(cx + dx, cy + dy):
                        meals.append((org, (cx + dx, cy + dy)))

        for org, _ in meals:
            org.food_collected += 1
        for x, y in {tile for _, tile in meals}:
            self.set_cell(x, y, CellState.EMPTY)
        return len(meals)

    def _combat_phase(self, config: WorldConfig) -> Tuple[int, int]:
        damage: Dict[int, int] = {}
        for org in self.alive_organisms():
            for cell in org.cells_of(CellState.KILLER):
                cx, cy = org.cell_position(cell)
                for dx, dy in NEIGHBORS4:
                    tx, ty = cx + dx, cy + dy
                    if not self.in_bounds(tx, ty):
                        continue
                    target_id = int(self.owners[ty, tx])
                    if target_id == NO_OWNER or target_id == org.id:
                        continue
                    if self.states[ty, tx] == CellState.ARMOR:
                        continue
                    damage[target_id] = damage.get(target_id, 0) + 1

        kills = 0
        for target_id, points in damage.items():
            target = self.organisms.get(target_id)
            if target is None or not target.is_alive:
                continue
            if config.insta_kill:
                target.is_alive = False
            else:
                for _ in range(points):
                    target.harm()
            if not target.is_alive:
                kills += 1
        return sum(damage.values()), kills

    def _update_phase(self, config: WorldConfig) -> None:
        # Decisions read a frozen copy; writes go to the live arrays afterwards.
        frozen = self.states.copy()
        H, W = frozen.shape

        def is_position_clear(x: int, y: int) -> bool:
            return 0 <= x < W and 0 <= y < H and frozen[y, x] in (CellState.EMPTY, CellState.FOOD)

        def has_food_at(x: int, y: int) -> bool:
            return 0 <= x < W and 0 <= y < H and frozen[y, x] == CellState.FOOD

        survivors = []
        for org in self.alive_organisms():
            pose = (org.x, org.y, org.rotation, org.move_direction, org.move_counter)
            old_tiles = org.footprint()
            org.update(config.lifespan_multiplier, is_position_clear, has_food_at, self.rng)
            if org.is_alive:
                survivors.append((org, pose, old_tiles))

        for org, _, old_tiles in survivors:
            self._scrub(org.id, old_tiles, CellState.EMPTY)

        # Two movers may claim the same tile; the later one in registry order stays put.
        for org, pose, _ in survivors:
            if not self._tiles_free(org.footprint()):
                org.x, org.y, org.rotation, org.move_direction, org.move_counter = pose
            self._stamp(org)

    def _tiles_free(self, tiles: Iterable[Tuple[int, int]]) -> bool:
        for x, y in tiles:
            if not self.in_bounds(x, y) or self.owners[y, x] != NO_OWNER:
                return False
            if self.states[y, x] not in (CellState.EMPTY, CellState.FOOD):
                return False
        return True

    def _reproduction_phase(self, config: WorldConfig) -> int:
        reserved: Set[Tuple[int, int]] = set()
        queued: List[Organism] = []
        parents = self.alive_organisms()
        population = len(parents)

        for parent in parents:
            cost = parent.food_needed_to_reproduce()
            if parent.food_collected < cost:
                continue
            if self._at_capacity(population + len(queued), config):
                break
            child = self._spawn_offspring(parent, config, reserved)
            if child is None:
                continue
            child.id = self.next_organism_id
            self.next_organism_id += 1
            parent.food_collected -= cost
            reserved.update(child.footprint())
            queued.append(child)

        for child in queued:
            self.organisms[child.id] = child
            self._stamp(child)
        return len(queued)

    def _spawn_offspring(
        self,
        parent: Organism,
        config: WorldConfig,
        reserved: Set[Tuple[int, int]],
    ) -> Optional[Organism]:
        distance = parent.birth_distance()
        for idx in self.rng.permutation(len(NEIGHBORS8)):
            dx, dy = NEIGHBORS8[int(idx)]
            offset = distance + int(self.rng.integers(0, BIRTH_JITTER + 1))
            x, y = parent.x + dx * offset, parent.y + dy * offset
            if not self.in_bounds(x, y):
                continue
            child = Organism.from_parent(parent, x, y, self.rng, config)
            if not self._can_place(child, config, reserved):
                continue
            if not self._path_clear(parent, x, y, reserved):
                continue
            return child
        return None

    def _path_clear(self, parent: Organism, x: int, y: int, reserved: Set[Tuple[int, int]]) -> bool:
        for px, py in line_points(parent.x, parent.y, x, y):
            if self.in_bounds(px, py) and self.owners[py, px] == parent.id:
                continue
            if (px, py) in reserved or not self.is_position_clear(px, py):
                return False
        return True

    def _cleanup_phase(self, config: WorldConfig) -> int:
        # A cap lowered below the population evicts the newest organisms.
        if config.max_organisms > 0:
            alive = self.alive_organisms()
            for org in alive[config.max_organisms:]:
                org.is_alive = False

        dead = [org for org in self.organisms.values() if not org.is_alive]
        for org in dead:
            self._scrub(org.id, org.footprint(), CellState.FOOD)
            del self.organisms[org.id]
        return len(dead)

    def _food_growth_phase(self, config: WorldConfig) -> None:
        if self.states.size == 0:
            return
        shape = self.states.shape

        if config.food_production_prob > 0.0:
            spawn = (self.states == CellState.EMPTY) & (self.rng.random(shape) < config.food_production_prob)
            self.states[spawn] = CellState.FOOD

        producers = self.states == CellState.PRODUCER
        if not producers.any():
            return
        for offered in neighbor4_masks(producers):
            grow = offered & (self.states == CellState.EMPTY) & (self.rng.random(shape) < PRODUCER_FOOD_PROB)
            self.states[grow] = CellState.FOOD

    def _sync_pixels(self) -> None:
        self.pixels[...] = COLOR_TABLE[self.states]

    # ---- presentation helpers ----

    def counts(self) -> Dict[str, int]:
        """Tile count per state name."""
        totals = np.bincount(self.states.ravel().astype(np.int64), minlength=len(CellState))
        return {state.name.lower(): int(totals[state]) for state in CellState}

    def as_rgb(self) -> np.ndarray:
        """Return an (H, W, 3) float array in [0, 1] for visualization."""
        rgb = np.zeros((self.height, self.width, 3), dtype=np.float32)
        rgb[..., 0] = (self.pixels >> 16) & 0xFF
        rgb[..., 1] = (self.pixels >> 8) & 0xFF
        rgb[..., 2] = self.pixels & 0xFF
        return rgb / 255.0
