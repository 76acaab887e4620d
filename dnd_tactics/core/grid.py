"""
Combat Grid.

The battle map as an immutable set of 5-foot cells with elevation,
obstacles, terrain tags and stair connections. Occupancy is not stored on
the grid; it is derived from combatant positions when needed.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from dnd_tactics.core.errors import ErrorCode, GridError
from dnd_tactics.core.rules_config import DiagonalRule
from dnd_tactics.models.maps import (
    MapPreset,
    Obstacle,
    StairConnection,
    TerrainDefinition,
    TerrainType,
)

logger = logging.getLogger(__name__)

Position = Tuple[int, int]

FEET_PER_SQUARE = 5


@dataclass(frozen=True)
class GridCell:
    """A single cell in the combat grid."""
    x: int
    y: int
    elevation: int = 0
    obstacle: Optional[Obstacle] = None
    terrain: Optional[TerrainType] = None
    stair: Optional[StairConnection] = None

    @property
    def blocks_movement(self) -> bool:
        return self.obstacle is not None and self.obstacle.blocks_movement

    @property
    def blocks_sight(self) -> bool:
        return self.obstacle is not None and self.obstacle.blocks_line_of_sight

    @property
    def is_difficult(self) -> bool:
        """Difficult, hazard and water terrain all cost double movement."""
        return self.terrain is not None


@dataclass(frozen=True)
class CombatGrid:
    """
    The tactical combat grid.

    Every coordinate in [0, width) x [0, height) has a cell; cells not given
    at construction are plain open ground.
    """
    width: int = 8
    height: int = 8
    cells: Dict[Position, GridCell] = field(default_factory=dict)

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise GridError(
                f"Grid dimensions must be positive, got {self.width}x{self.height}",
                details={"width": self.width, "height": self.height},
            )
        filled = dict(self.cells)
        for pos in filled:
            if not self.is_valid_position(*pos):
                raise GridError(
                    f"Cell {pos} is outside the {self.width}x{self.height} grid",
                    code=ErrorCode.GRID_OUT_OF_BOUNDS,
                    details={"x": pos[0], "y": pos[1]},
                )
        for x in range(self.width):
            for y in range(self.height):
                if (x, y) not in filled:
                    filled[(x, y)] = GridCell(x=x, y=y)
        object.__setattr__(self, "cells", filled)

    def get_cell(self, x: int, y: int) -> Optional[GridCell]:
        """Get a cell by coordinates, or None outside the grid."""
        return self.cells.get((x, y))

    def is_valid_position(self, x: int, y: int) -> bool:
        """Check if coordinates are within the grid."""
        return 0 <= x < self.width and 0 <= y < self.height

    def get_adjacent_cells(self, x: int, y: int) -> List[Position]:
        """All in-bounds neighbors, cardinal directions first."""
        adjacent = []
        for dx, dy in [(0, 1), (0, -1), (1, 0), (-1, 0), (1, 1), (1, -1), (-1, 1), (-1, -1)]:
            nx, ny = x + dx, y + dy
            if self.is_valid_position(nx, ny):
                adjacent.append((nx, ny))
        return adjacent

    def to_dict(self) -> Dict:
        """Serialize the non-empty cells of the grid."""
        return {
            "width": self.width,
            "height": self.height,
            "cells": {
                f"{x},{y}": {
                    "elevation": cell.elevation,
                    "terrain": cell.terrain.value if cell.terrain else None,
                    "obstacle": cell.obstacle.model_dump() if cell.obstacle else None,
                    "stair": cell.stair.model_dump() if cell.stair else None,
                }
                for (x, y), cell in sorted(self.cells.items())
                if cell.elevation or cell.terrain or cell.obstacle or cell.stair
            },
        }


def build_grid(
    width: int,
    height: int,
    terrain: Iterable[TerrainDefinition] = ()
) -> CombatGrid:
    """
    Create a combat grid from sparse terrain definitions.

    Raises:
        GridError: If a definition lies outside the grid
    """
    cells: Dict[Position, GridCell] = {}
    for definition in terrain:
        if not (0 <= definition.x < width and 0 <= definition.y < height):
            raise GridError(
                f"Terrain at ({definition.x}, {definition.y}) is outside the {width}x{height} grid",
                code=ErrorCode.GRID_OUT_OF_BOUNDS,
                details={"x": definition.x, "y": definition.y},
            )
        cells[(definition.x, definition.y)] = GridCell(
            x=definition.x,
            y=definition.y,
            elevation=definition.elevation,
            obstacle=definition.obstacle,
            terrain=definition.terrain,
            stair=definition.stair_connection,
        )
    grid = CombatGrid(width=width, height=height, cells=cells)
    logger.debug("Built %dx%d grid with %d terrain cells", width, height, len(cells))
    return grid


def build_grid_from_preset(preset: MapPreset) -> CombatGrid:
    """Create a combat grid from a map preset."""
    return build_grid(preset.grid_width, preset.grid_height, preset.terrain)


# ============================================================================
# DISTANCE
# ============================================================================

def get_distance_between_positions(a: Position, b: Position) -> int:
    """Chebyshev distance in feet: every step, diagonal or not, is 5ft."""
    return max(abs(b[0] - a[0]), abs(b[1] - a[1])) * FEET_PER_SQUARE


def get_diagonal_distance(a: Position, b: Position) -> int:
    """
    Distance in feet using the 5-10-5 diagonal rule.

    1 diagonal = 5ft, 2 = 15ft, 3 = 20ft, 4 = 30ft.
    """
    dx = abs(b[0] - a[0])
    dy = abs(b[1] - a[1])
    diagonals = min(dx, dy)
    straights = max(dx, dy) - diagonals
    return (straights + diagonals + diagonals // 2) * FEET_PER_SQUARE


def get_distance_for_rule(a: Position, b: Position, rule: DiagonalRule) -> int:
    """Distance in feet under the given diagonal rule."""
    if rule == DiagonalRule.ALTERNATING:
        return get_diagonal_distance(a, b)
    return get_distance_between_positions(a, b)


def is_adjacent(a: Position, b: Position) -> bool:
    """True for the same or a neighboring cell."""
    return abs(b[0] - a[0]) <= 1 and abs(b[1] - a[1]) <= 1


def get_push_destination(
    grid: CombatGrid,
    source: Position,
    target: Position,
    distance_ft: int,
    occupied: Iterable[Position] = ()
) -> Position:
    """
    Where a target ends up when shoved straight away from ``source``.

    The push moves one square at a time and stops before leaving the grid,
    entering a movement-blocking obstacle or an occupied cell.
    """
    dx = target[0] - source[0]
    dy = target[1] - source[1]
    if dx == 0 and dy == 0:
        return tuple(target)

    step_x = (dx > 0) - (dx < 0)
    step_y = (dy > 0) - (dy < 0)
    blocked = set(occupied)
    x, y = target
    for _ in range(distance_ft // FEET_PER_SQUARE):
        cell = grid.get_cell(x + step_x, y + step_y)
        if cell is None or cell.blocks_movement or (cell.x, cell.y) in blocked:
            break
        x, y = cell.x, cell.y
    return (x, y)
