import numpy as np

from life_engine.cells import (
    BODY_STATES,
    COLOR_TABLE,
    COLORS,
    NEIGHBORS4,
    NEIGHBORS8,
    Cell,
    CellState,
    Direction,
    color,
    random_body_state,
    unpack_rgb,
)


def test_color_contract():
    assert color(CellState.EMPTY) == 0x0E1318
    assert color(CellState.FOOD) == 0x2F7AB7
    assert color(CellState.WALL) == 0x808080
    assert color(CellState.MOUTH) == 0xDEB14D
    assert color(CellState.PRODUCER) == 0x15DE59
    assert color(CellState.MOVER) == 0x60D4FF
    assert color(CellState.KILLER) == 0xF82380
    assert color(CellState.ARMOR) == 0x7230DB
    assert color(CellState.EYE) == 0xB6C1EA


def test_color_table_matches_mapping():
    assert len(COLOR_TABLE) == len(CellState)
    for state, packed in COLORS.items():
        assert COLOR_TABLE[state] == packed


def test_unpack_rgb():
    assert unpack_rgb(0xDEB14D) == (0xDE, 0xB1, 0x4D)
    assert unpack_rgb(0x000000) == (0, 0, 0)


def test_direction_deltas_and_turns():
    assert Direction.UP.delta == (0, -1)
    assert Direction.RIGHT.delta == (1, 0)
    assert Direction.DOWN.delta == (0, 1)
    assert Direction.LEFT.delta == (-1, 0)
    assert Direction.UP.opposite() == Direction.DOWN
    assert Direction.LEFT.opposite() == Direction.RIGHT
    assert Direction.LEFT.rotate(Direction.RIGHT) == Direction.UP
    assert Direction.RIGHT.rotate(Direction.DOWN) == Direction.LEFT


def test_random_direction_covers_all():
    rng = np.random.default_rng(0)
    seen = {Direction.random(rng) for _ in range(200)}
    assert seen == set(Direction)


def test_random_body_state_never_environmental():
    rng = np.random.default_rng(0)
    draws = [random_body_state(rng) for _ in range(300)]
    assert set(draws) == set(BODY_STATES)


def test_random_body_state_exclusion():
    rng = np.random.default_rng(0)
    draws = {random_body_state(rng, exclude=CellState.MOUTH) for _ in range(300)}
    assert CellState.MOUTH not in draws
    assert len(draws) == len(BODY_STATES) - 1


def test_neighborhoods():
    assert len(set(NEIGHBORS4)) == 4
    assert len(set(NEIGHBORS8)) == 8
    assert set(NEIGHBORS4) < set(NEIGHBORS8)
    assert (0, 0) not in NEIGHBORS8


def test_cell_defaults_to_unowned():
    cell = Cell(CellState.FOOD)
    assert cell.owner is None
    assert Cell(CellState.MOUTH, 3) == Cell(CellState.MOUTH, 3)
