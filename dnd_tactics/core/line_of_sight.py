"""
Line of Sight.

Bresenham lines between cell centers decide whether a wall or fogged cell
sits between two positions. A line is always traced from the smaller
endpoint to the larger one, so the cells checked from A to B are exactly
those checked from B to A.
"""
from dataclasses import dataclass
from typing import AbstractSet, List, Optional, Tuple
import math

from dnd_tactics.core.grid import (
    CombatGrid,
    GridCell,
    Position,
    FEET_PER_SQUARE,
    get_distance_for_rule,
    is_adjacent,
)
from dnd_tactics.core.rules_config import get_rules_config

Fog = AbstractSet[Position]


@dataclass(frozen=True)
class RangedTargetCheck:
    """Result of a combined range and line-of-sight check."""
    can_target: bool
    blocked_by: Optional[Position] = None


def blocks_line_of_sight(cell: Optional[GridCell]) -> bool:
    """Check if a cell holds a sight-blocking obstacle."""
    return cell is not None and cell.blocks_sight


def _bresenham(start: Position, end: Position) -> List[Position]:
    """All cells from start to end, both included."""
    x0, y0 = start
    x1, y1 = end
    dx = abs(x1 - x0)
    dy = abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx - dy

    cells = []
    while True:
        cells.append((x0, y0))
        if x0 == x1 and y0 == y1:
            break
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x0 += sx
        if e2 < dx:
            err += dx
            y0 += sy
    return cells


def get_line_between(a: Position, b: Position) -> List[Position]:
    """
    Cells strictly between a and b, ordered from a to b.

    Adjacent or identical positions have nothing between them.
    """
    if is_adjacent(a, b):
        return []
    if tuple(a) <= tuple(b):
        return _bresenham(a, b)[1:-1]
    line = _bresenham(b, a)[1:-1]
    line.reverse()
    return line


def get_first_obstruction(
    grid: CombatGrid,
    a: Position,
    b: Position,
    fog: Optional[Fog]
) -> Optional[Position]:
    for pos in get_line_between(a, b):
        if blocks_line_of_sight(grid.get_cell(*pos)):
            return pos
        if fog and pos in fog:
            return pos
    return None


def has_line_of_sight(
    grid: CombatGrid,
    from_pos: Position,
    to_pos: Position,
    fog: Optional[Fog] = None
) -> bool:
    """
    Check for a clear line between two positions.

    Adjacent cells always see each other, even in fog. Otherwise fog on
    either endpoint, or a wall or fog anywhere between them, blocks sight.
    """
    if is_adjacent(from_pos, to_pos):
        return True
    if fog and (from_pos in fog or to_pos in fog):
        return False
    return get_first_obstruction(grid, from_pos, to_pos, fog) is None


def can_target_with_ranged_attack(
    grid: CombatGrid,
    attacker: Position,
    target: Position,
    range_ft: int,
    fog: Optional[Fog] = None
) -> RangedTargetCheck:
    """
    Range check first, then line of sight.

    An out-of-range target is rejected without looking at walls, so
    ``blocked_by`` is only set when the target is in range but hidden.
    """
    distance = get_distance_for_rule(attacker, target, get_rules_config().ranged_diagonal_rule)
    if distance > range_ft:
        return RangedTargetCheck(can_target=False)

    if is_adjacent(attacker, target):
        return RangedTargetCheck(can_target=True)

    if fog:
        if attacker in fog:
            return RangedTargetCheck(can_target=False, blocked_by=attacker)
        if target in fog:
            return RangedTargetCheck(can_target=False, blocked_by=target)

    blocked_by = get_first_obstruction(grid, attacker, target, fog)
    if blocked_by is not None:
        return RangedTargetCheck(can_target=False, blocked_by=blocked_by)
    return RangedTargetCheck(can_target=True)


def get_line_targets(
    grid: CombatGrid,
    origin: Position,
    direction: Tuple[float, float],
    max_range: int
) -> List[Position]:
    """
    Cells covered by a line effect from origin along direction.

    The line runs max_range feet, stops at the grid edge and stops before
    the first sight-blocking obstacle. The origin itself is not included.
    """
    magnitude = math.hypot(direction[0], direction[1])
    if magnitude == 0:
        return []

    max_squares = max_range // FEET_PER_SQUARE
    end = (
        origin[0] + round(direction[0] / magnitude * max_squares),
        origin[1] + round(direction[1] / magnitude * max_squares),
    )
    if end == tuple(origin):
        return []

    targets = []
    for pos in get_line_between(origin, end) + [end]:
        cell = grid.get_cell(*pos)
        if cell is None or blocks_line_of_sight(cell):
            break
        targets.append(pos)
    return targets
