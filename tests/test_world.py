import numpy as np
import pytest

from life_engine.cells import COLORS, Cell, CellState
from life_engine.config import WorldConfig
from life_engine.world import NO_OWNER, Grid, chebyshev_distance, line_points

from conftest import (
    INERT,
    assert_owner_invariant,
    assert_pixels_in_sync,
    assert_unchanged,
    make_organism,
    snapshot,
)


# ---- tile access ----

def test_new_grid_is_empty():
    grid = Grid(8, 5)
    assert grid.states.shape == (5, 8)
    assert grid.get_cell(0, 0) == Cell(CellState.EMPTY, None)
    assert grid.get_pixel(7, 4) == COLORS[CellState.EMPTY]
    assert grid.organism_count == 0
    assert grid.next_organism_id == 1


@pytest.mark.parametrize("x, y", [(-1, 0), (0, -1), (8, 0), (0, 5), (100, 100)])
def test_out_of_bounds_queries_are_safe(x, y):
    grid = Grid(8, 5)
    assert grid.get_cell(x, y) is None
    assert grid.get_pixel(x, y) == 0
    assert not grid.is_position_clear(x, y)
    assert not grid.has_food_at(x, y)
    assert grid.organism_at(x, y) is None
    assert not grid.set_cell(x, y, CellState.WALL)


def test_set_cell_updates_state_owner_and_pixel():
    grid = Grid(4, 4)
    assert grid.set_cell(1, 2, CellState.KILLER, 9)
    assert grid.get_cell(1, 2) == Cell(CellState.KILLER, 9)
    assert grid.get_pixel(1, 2) == 0xF82380
    grid.set_cell(1, 2, CellState.FOOD)
    assert grid.get_cell(1, 2) == Cell(CellState.FOOD, None)
    assert grid.has_food_at(1, 2)
    assert grid.is_position_clear(1, 2)
    grid.set_cell(1, 2, CellState.WALL)
    assert not grid.is_position_clear(1, 2)


# ---- placement ----

def test_add_organism_stamps_body_and_assigns_id(quiet_grid):
    org = make_organism(10, 10, (CellState.MOUTH, 0, 0), (CellState.KILLER, 1, 0))
    assert quiet_grid.add_organism(org)
    assert org.id == 1
    assert quiet_grid.next_organism_id == 2
    assert quiet_grid.get_cell(10, 10) == Cell(CellState.MOUTH, 1)
    assert quiet_grid.get_cell(11, 10) == Cell(CellState.KILLER, 1)
    assert quiet_grid.organism_at(11, 10) is org
    assert_owner_invariant(quiet_grid)
    assert_pixels_in_sync(quiet_grid)


def test_failed_placement_on_wall_changes_nothing(quiet_grid):
    assert quiet_grid.add_organism(make_organism(5, 5, (CellState.MOUTH, 0, 0)))
    quiet_grid.set_cell(21, 20, CellState.WALL)
    before = snapshot(quiet_grid)

    blocked = make_organism(20, 20, (CellState.MOUTH, 0, 0), (CellState.PRODUCER, 1, 0))
    assert not quiet_grid.add_organism(blocked)
    assert blocked.id is None
    assert_unchanged(quiet_grid, before)


def test_failed_placement_out_of_bounds_changes_nothing(quiet_grid):
    before = snapshot(quiet_grid)
    edge = make_organism(39, 0, (CellState.MOUTH, 0, 0), (CellState.PRODUCER, 1, 0))
    assert not quiet_grid.add_organism(edge)
    assert_unchanged(quiet_grid, before)


def test_failed_placement_on_other_organism(quiet_grid):
    assert quiet_grid.add_organism(make_organism(5, 5, (CellState.MOUTH, 0, 0), (INERT, 1, 0)))
    before = snapshot(quiet_grid)
    assert not quiet_grid.add_organism(make_organism(6, 5, (CellState.MOUTH, 0, 0)))
    assert_unchanged(quiet_grid, before)


def test_empty_body_is_rejected(quiet_grid):
    assert not quiet_grid.add_organism(make_organism(5, 5))


def test_food_blocks_reproduction_controls_placement_on_food(quiet_config):
    blocking = Grid(10, 10, config=quiet_config.replace(food_blocks_reproduction=True), seed=1)
    blocking.set_cell(3, 3, CellState.FOOD)
    assert not blocking.add_organism(make_organism(3, 3, (CellState.MOUTH, 0, 0)))

    permissive = Grid(10, 10, config=quiet_config.replace(food_blocks_reproduction=False), seed=1)
    permissive.set_cell(3, 3, CellState.FOOD)
    assert permissive.add_organism(make_organism(3, 3, (CellState.MOUTH, 0, 0)))
    assert permissive.get_cell(3, 3).state == CellState.MOUTH


def test_population_cap_rejects_placement(quiet_config):
    grid = Grid(20, 20, config=quiet_config.replace(max_organisms=1), seed=1)
    assert grid.add_organism(make_organism(2, 2, (CellState.MOUTH, 0, 0)))
    assert not grid.add_organism(make_organism(10, 10, (CellState.MOUTH, 0, 0)))
    grid.set_max_organisms(0)
    assert grid.add_organism(make_organism(10, 10, (CellState.MOUTH, 0, 0)))


def test_explicit_ids_are_kept_and_never_reused(quiet_grid):
    first = make_organism(5, 5, (CellState.MOUTH, 0, 0), id=10)
    assert quiet_grid.add_organism(first)
    assert quiet_grid.next_organism_id == 11
    assert not quiet_grid.add_organism(make_organism(20, 20, (CellState.MOUTH, 0, 0), id=10))
    second = make_organism(20, 20, (CellState.MOUTH, 0, 0))
    assert quiet_grid.add_organism(second)
    assert second.id == 11


def test_basic_custom_and_origin_of_life():
    grid = Grid(31, 21, seed=3)
    assert grid.origin_of_life()
    org = grid.organisms[1]
    assert (org.x, org.y) == (15, 10)
    assert grid.get_cell(15, 10).state == CellState.MOUTH
    assert not grid.origin_of_life()
    assert grid.create_basic_organism(3, 3)
    assert grid.add_custom_organism(25, 5, "hunter")
    assert grid.organism_at(25, 5).has_movers()
    assert grid.organism_count == 3
    assert_owner_invariant(grid)


def test_setters_swap_config():
    grid = Grid(5, 5)
    original = grid.config
    grid.set_food_production_prob(0.25)
    grid.set_lifespan_multiplier(7)
    grid.set_insta_kill(True)
    grid.set_food_blocks_reproduction(False)
    assert grid.config == WorldConfig(
        food_production_prob=0.25,
        lifespan_multiplier=7,
        insta_kill=True,
        food_blocks_reproduction=False,
    )
    assert original == WorldConfig()
    with pytest.raises(ValueError):
        grid.set_food_production_prob(3.0)


# ---- reset ----

def populated_grid():
    grid = Grid(20, 20, seed=5)
    grid.set_cell(0, 0, CellState.WALL)
    grid.set_cell(19, 19, CellState.WALL)
    grid.set_cell(4, 4, CellState.FOOD)
    grid.origin_of_life()
    grid.add_custom_organism(4, 15, "armored")
    grid.step()
    return grid


def test_reset_keeps_walls():
    grid = populated_grid()
    grid.reset(clear_walls=False)
    assert grid.organism_count == 0
    assert grid.next_organism_id == 1
    walls = grid.states == CellState.WALL
    assert walls[0, 0] and walls[19, 19]
    assert walls.sum() == 2
    assert np.all(grid.states[~walls] == CellState.EMPTY)
    assert np.all(grid.owners == NO_OWNER)
    assert_pixels_in_sync(grid)


def test_reset_clears_walls():
    grid = populated_grid()
    grid.reset(clear_walls=True)
    assert grid.organism_count == 0
    assert np.all(grid.states == CellState.EMPTY)
    assert np.all(grid.owners == NO_OWNER)
    assert np.all(grid.pixels == COLORS[CellState.EMPTY])


# ---- degenerate grids ----

def test_zero_area_grid_never_places():
    grid = Grid(0, 0, seed=1)
    assert not grid.origin_of_life()
    assert not grid.add_organism(make_organism(0, 0, (CellState.MOUTH, 0, 0)))
    stats = grid.step()
    assert stats["population"] == 0
    assert grid.as_rgb().shape == (0, 0, 3)


def test_negative_dimensions_clamp_to_empty():
    grid = Grid(-4, 3)
    assert grid.width == 0
    assert grid.get_cell(0, 0) is None


# ---- presentation helpers ----

def test_counts_and_rgb():
    grid = Grid(4, 3)
    grid.set_cell(0, 0, CellState.FOOD)
    grid.set_cell(1, 0, CellState.WALL)
    counts = grid.counts()
    assert counts["food"] == 1
    assert counts["wall"] == 1
    assert counts["empty"] == 10
    rgb = grid.as_rgb()
    assert rgb.shape == (3, 4, 3)
    assert np.allclose(rgb[0, 1], [0x80 / 255.0] * 3)


# ---- line rasterization ----

def test_line_points_endpoints_and_shape():
    assert line_points(2, 2, 2, 2) == [(2, 2)]
    assert line_points(0, 0, 3, 0) == [(0, 0), (1, 0), (2, 0), (3, 0)]
    assert line_points(0, 0, -2, -2) == [(0, 0), (-1, -1), (-2, -2)]
    assert line_points(0, 0, 0, 3) == [(0, 0), (0, 1), (0, 2), (0, 3)]


@pytest.mark.parametrize("end", [(7, 3), (-5, 2), (1, -6), (-4, -4)])
def test_line_points_are_connected(end):
    points = line_points(0, 0, *end)
    assert points[0] == (0, 0)
    assert points[-1] == end
    assert len(points) == max(abs(end[0]), abs(end[1])) + 1
    for (x0, y0), (x1, y1) in zip(points, points[1:]):
        assert chebyshev_distance(x0, y0, x1, y1) == 1
