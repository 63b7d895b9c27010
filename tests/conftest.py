"""
Pytest configuration for life_engine tests.
"""
import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from life_engine.cells import COLOR_TABLE, CellState
from life_engine.config import WorldConfig
from life_engine.organism import Organism, OrganismCell
from life_engine.world import NO_OWNER, Grid


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def rng():
    """Seeded generator so organism-level draws are replayable."""
    return np.random.default_rng(1234)


@pytest.fixture
def quiet_config():
    """No spontaneous food: only what a test places is on the grid."""
    return WorldConfig(food_production_prob=0.0)


@pytest.fixture
def quiet_grid(quiet_config):
    return Grid(40, 40, config=quiet_config, seed=7)


# ==============================================================================
# Helpers
# ==============================================================================

def make_organism(x, y, *cells, **kwargs):
    """Build an organism from (state, dx, dy) triples."""
    return Organism(x=x, y=y, cells=[OrganismCell(state, dx, dy) for state, dx, dy in cells], **kwargs)


def assert_owner_invariant(grid):
    """Every owned tile belongs to a registered organism whose body covers it, and vice versa."""
    expected = {}
    for org in grid.organisms.values():
        for pos in org.footprint():
            assert pos not in expected, f"tile {pos} claimed twice"
            expected[pos] = org.id

    ys, xs = np.nonzero(grid.owners != NO_OWNER)
    owned = {(int(x), int(y)): int(grid.owners[y, x]) for y, x in zip(ys, xs)}
    assert owned == expected


def assert_pixels_in_sync(grid):
    assert np.array_equal(grid.pixels, COLOR_TABLE[grid.states])


def snapshot(grid):
    return (
        grid.states.copy(),
        grid.owners.copy(),
        grid.pixels.copy(),
        dict(grid.organisms),
        grid.next_organism_id,
    )


def assert_unchanged(grid, before):
    states, owners, pixels, organisms, next_id = before
    assert np.array_equal(grid.states, states)
    assert np.array_equal(grid.owners, owners)
    assert np.array_equal(grid.pixels, pixels)
    assert grid.organisms == organisms
    assert grid.next_organism_id == next_id


INERT = CellState.ARMOR
