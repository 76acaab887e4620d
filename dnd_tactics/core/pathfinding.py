"""
Pathfinding.

A* shortest paths and Dijkstra reachability over the combat grid. Step
costs honor obstacles, elevation (stairs only), difficult terrain and the
configured diagonal rule. Under the 5-10-5 rule a step's price depends on
how many diagonals came before it, so search states are keyed by
(position, diagonal parity).
"""
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Optional, Set, Tuple
import heapq
import logging
import math

from dnd_tactics.core.damage_resolution import is_dead
from dnd_tactics.core.grid import CombatGrid, Position, FEET_PER_SQUARE
from dnd_tactics.core.rules_config import DiagonalRule, get_rules_config
from dnd_tactics.models.combatant import Combatant

logger = logging.getLogger(__name__)

INF = math.inf
STAIR_COST = 5


@dataclass
class PathNode:
    """A node in the pathfinding graph."""
    x: int
    y: int
    diagonal_count: int = 0
    g_cost: float = 0  # Cost from start
    h_cost: float = 0  # Heuristic (estimated cost to goal)
    parent: Optional["PathNode"] = None

    @property
    def f_cost(self) -> float:
        return self.g_cost + self.h_cost

    @property
    def state(self) -> Tuple[int, int, int]:
        return (self.x, self.y, self.diagonal_count % 2)

    def __lt__(self, other: "PathNode") -> bool:
        """For heap comparison; ties go to the node closer to the goal."""
        if self.f_cost == other.f_cost:
            return self.h_cost < other.h_cost
        return self.f_cost < other.f_cost


def heuristic(a: Position, b: Position) -> int:
    """Heuristic for A* (Chebyshev distance in feet, never overestimates)."""
    return max(abs(b[0] - a[0]), abs(b[1] - a[1])) * FEET_PER_SQUARE


def _step_cost(from_pos: Position, to_pos: Position, diagonal_count: int) -> Tuple[int, int]:
    dx = abs(to_pos[0] - from_pos[0])
    dy = abs(to_pos[1] - from_pos[1])
    if dx == 0 and dy == 0:
        return 0, diagonal_count
    if dx == 1 and dy == 1:
        new_count = diagonal_count + 1
        if get_rules_config().movement_diagonal_rule == DiagonalRule.ALTERNATING:
            return (5 if new_count % 2 == 1 else 10), new_count
        return FEET_PER_SQUARE, new_count
    return FEET_PER_SQUARE, diagonal_count


def get_movement_cost(
    grid: CombatGrid,
    from_pos: Position,
    to_pos: Position,
    diagonal_count: int = 0
) -> Tuple[float, int]:
    """
    Cost in feet of one step between adjacent cells.

    Returns:
        (cost, new_diagonal_count); cost is infinite when the step is illegal
    """
    from_cell = grid.get_cell(*from_pos)
    to_cell = grid.get_cell(*to_pos)
    if from_cell is None or to_cell is None:
        return INF, diagonal_count

    if to_cell.blocks_movement:
        return INF, diagonal_count

    if from_cell.elevation != to_cell.elevation:
        stair = from_cell.stair
        if (
            stair is not None
            and (stair.target_x, stair.target_y) == tuple(to_pos)
            and stair.target_elevation == to_cell.elevation
        ):
            cost, new_count = _step_cost(from_pos, to_pos, diagonal_count)
            return cost + STAIR_COST, new_count
        return INF, diagonal_count

    cost, new_count = _step_cost(from_pos, to_pos, diagonal_count)
    if to_cell.is_difficult:
        cost *= 2
    return cost, new_count


def find_path(
    grid: CombatGrid,
    start: Position,
    end: Position,
    occupied: AbstractSet[Position] = frozenset(),
    max_cost: Optional[float] = None
) -> Optional[List[Position]]:
    """
    Find the cheapest path using A*.

    Occupied cells cannot be entered, except the destination itself so a
    path can be planned up to a target standing there.

    Returns:
        Positions from start to end inclusive, or None if unreachable
        (or only reachable for more than max_cost)
    """
    start = tuple(start)
    end = tuple(end)
    end_cell = grid.get_cell(*end)
    if end_cell is None or end_cell.blocks_movement or grid.get_cell(*start) is None:
        return None
    if start == end:
        return [start]

    start_node = PathNode(x=start[0], y=start[1], h_cost=heuristic(start, end))
    open_set: List[PathNode] = [start_node]
    best_g: Dict[Tuple[int, int, int], float] = {start_node.state: 0}
    closed_set: Set[Tuple[int, int, int]] = set()

    while open_set:
        current = heapq.heappop(open_set)
        if current.state in closed_set:
            continue
        closed_set.add(current.state)

        if (current.x, current.y) == end:
            path = []
            node = current
            while node:
                path.append((node.x, node.y))
                node = node.parent
            path.reverse()
            return path

        for neighbor in grid.get_adjacent_cells(current.x, current.y):
            if neighbor in occupied and neighbor != end:
                continue

            move_cost, new_count = get_movement_cost(
                grid, (current.x, current.y), neighbor, current.diagonal_count
            )
            if move_cost == INF:
                continue

            g_cost = current.g_cost + move_cost
            if max_cost is not None and g_cost > max_cost:
                continue

            node = PathNode(
                x=neighbor[0],
                y=neighbor[1],
                diagonal_count=new_count,
                g_cost=g_cost,
                h_cost=heuristic(neighbor, end),
                parent=current,
            )
            if node.state in closed_set or g_cost >= best_g.get(node.state, INF):
                continue
            best_g[node.state] = g_cost
            heapq.heappush(open_set, node)

    return None


def calculate_path_cost(grid: CombatGrid, path: List[Position]) -> float:
    """Total movement cost of a path (infinite if any step is illegal)."""
    total = 0
    diagonal_count = 0
    for step_from, step_to in zip(path, path[1:]):
        cost, diagonal_count = get_movement_cost(grid, step_from, step_to, diagonal_count)
        if cost == INF:
            return INF
        total += cost
    return total


def get_reachable_positions(
    grid: CombatGrid,
    origin: Position,
    budget: float,
    occupied: AbstractSet[Position] = frozenset()
) -> Dict[Position, float]:
    """
    Every cell reachable within a movement budget, with its cheapest cost.

    The origin and occupied cells are never included; occupied cells cannot
    be passed through either.
    """
    origin = tuple(origin)
    best: Dict[Position, float] = {}
    seen: Dict[Tuple[int, int, int], float] = {(origin[0], origin[1], 0): 0}
    queue: List[Tuple[float, int, int, int]] = [(0, origin[0], origin[1], 0)]

    while queue:
        cost, x, y, diagonal_count = heapq.heappop(queue)
        if cost > seen.get((x, y, diagonal_count % 2), INF):
            continue

        for neighbor in grid.get_adjacent_cells(x, y):
            if neighbor in occupied:
                continue
            move_cost, new_count = get_movement_cost(grid, (x, y), neighbor, diagonal_count)
            if move_cost == INF:
                continue
            new_cost = cost + move_cost
            if new_cost > budget:
                continue
            state = (neighbor[0], neighbor[1], new_count % 2)
            if seen.get(state, INF) <= new_cost:
                continue
            seen[state] = new_cost
            heapq.heappush(queue, (new_cost, neighbor[0], neighbor[1], new_count))
            if neighbor != origin and new_cost < best.get(neighbor, INF):
                best[neighbor] = new_cost

    return best


def get_occupied_positions(
    combatants: Iterable[Combatant],
    exclude_ids: Iterable[str] = ()
) -> Set[Position]:
    """Cells held by living combatants. Dead bodies do not block."""
    excluded = set(exclude_ids)
    return {
        tuple(c.position)
        for c in combatants
        if c.id not in excluded and not is_dead(c)
    }
