"""Evolving cellular organisms on a discrete 2D grid."""

from .cells import BODY_STATES, COLORS, Cell, CellState, Direction, color
from .config import WorldConfig, load_config, save_config
from .organism import PRESETS, Organism, OrganismCell
from .world import Grid, line_points

__all__ = [
    "BODY_STATES",
    "COLORS",
    "Cell",
    "CellState",
    "Direction",
    "Grid",
    "Organism",
    "OrganismCell",
    "PRESETS",
    "WorldConfig",
    "color",
    "line_points",
    "load_config",
    "save_config",
]

__version__ = "0.1.0"
