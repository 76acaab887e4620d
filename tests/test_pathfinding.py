"""Tests for A* pathfinding and movement costs."""
import math

from dnd_tactics.core.grid import build_grid
from dnd_tactics.core.pathfinding import (
    calculate_path_cost,
    find_path,
    get_movement_cost,
    get_occupied_positions,
    get_reachable_positions,
)
from dnd_tactics.core.rules_config import DiagonalRule, RulesContext
from dnd_tactics.models import StairConnection, TerrainDefinition, TerrainType

from conftest import build_character, build_monster, build_open_grid, build_walled_grid


class TestFindPath:
    """Tests for find_path."""

    def test_straight_path(self):
        """A straight walk should visit every square in between."""
        path = find_path(build_open_grid(), (0, 0), (3, 0))
        assert path == [(0, 0), (1, 0), (2, 0), (3, 0)]

    def test_same_start_and_end(self):
        """Start equals end gives a one-cell path."""
        assert find_path(build_open_grid(), (2, 2), (2, 2)) == [(2, 2)]

    def test_routes_around_walls(self):
        """The path should detour around a wall and never enter it."""
        walls = [(2, 0), (2, 1), (2, 2)]
        grid = build_walled_grid(walls, width=5, height=5)
        path = find_path(grid, (0, 1), (4, 1))
        assert path is not None
        assert path[0] == (0, 1) and path[-1] == (4, 1)
        assert not set(path) & set(walls)

    def test_wall_destination_is_unreachable(self):
        """A wall cannot be a destination."""
        grid = build_walled_grid([(3, 0)])
        assert find_path(grid, (0, 0), (3, 0)) is None

    def test_fully_enclosed_is_unreachable(self):
        """No path exists into a walled-off pocket."""
        grid = build_walled_grid([(1, 0), (0, 1), (1, 1)], width=4, height=4)
        assert find_path(grid, (3, 3), (0, 0)) is None

    def test_occupied_cells_block_except_destination(self):
        """Occupied cells are avoided, but the destination may be occupied."""
        grid = build_open_grid(5, 1)
        assert find_path(grid, (0, 0), (4, 0), occupied={(2, 0)}) is None
        assert find_path(grid, (0, 0), (2, 0), occupied={(2, 0)}) == [(0, 0), (1, 0), (2, 0)]

    def test_max_cost_limits_search(self):
        """Paths costing more than max_cost are not returned."""
        grid = build_open_grid()
        assert find_path(grid, (0, 0), (6, 0), max_cost=25) is None
        assert find_path(grid, (0, 0), (5, 0), max_cost=25) is not None


class TestMovementCost:
    """Tests for step and path costs."""

    def test_alternating_diagonals(self):
        """Two diagonal steps cost 15ft under the 5-10-5 rule."""
        grid = build_open_grid()
        assert calculate_path_cost(grid, [(0, 0), (1, 1), (2, 2)]) == 15

    def test_chebyshev_diagonals(self):
        """Every diagonal costs 5ft under the simple rule."""
        grid = build_open_grid()
        with RulesContext(movement_diagonal_rule=DiagonalRule.CHEBYSHEV):
            assert calculate_path_cost(grid, [(0, 0), (1, 1), (2, 2)]) == 10

    def test_difficult_terrain_doubles(self):
        """Entering difficult terrain costs double."""
        grid = build_grid(5, 5, [TerrainDefinition(x=1, y=0, terrain=TerrainType.DIFFICULT)])
        assert get_movement_cost(grid, (0, 0), (1, 0))[0] == 10

    def test_water_counts_as_difficult(self):
        """Water costs double like difficult terrain."""
        grid = build_grid(5, 5, [TerrainDefinition(x=1, y=0, terrain=TerrainType.WATER)])
        assert calculate_path_cost(grid, [(0, 0), (1, 0), (2, 0)]) == 15

    def test_elevation_change_needs_stairs(self):
        """Climbing without stairs is impossible; stairs add a surcharge."""
        cliff = build_grid(5, 5, [TerrainDefinition(x=1, y=0, elevation=1)])
        assert get_movement_cost(cliff, (0, 0), (1, 0))[0] == math.inf

        stairs = build_grid(5, 5, [
            TerrainDefinition(
                x=0, y=0,
                stair_connection=StairConnection(target_x=1, target_y=0, target_elevation=1, direction="up"),
            ),
            TerrainDefinition(x=1, y=0, elevation=1),
        ])
        assert get_movement_cost(stairs, (0, 0), (1, 0))[0] == 10

    def test_wall_step_is_infinite(self):
        """Stepping into a wall is illegal."""
        grid = build_walled_grid([(1, 0)])
        assert calculate_path_cost(grid, [(0, 0), (1, 0)]) == math.inf


class TestReachablePositions:
    """Tests for get_reachable_positions."""

    def test_single_step_budget(self):
        """A 5ft budget reaches the three neighbors of a corner."""
        reachable = get_reachable_positions(build_open_grid(), (0, 0), 5)
        assert set(reachable) == {(0, 1), (1, 0), (1, 1)}
        assert all(cost == 5 for cost in reachable.values())

    def test_origin_and_occupied_excluded(self):
        """The origin and occupied cells are never reachable."""
        reachable = get_reachable_positions(build_open_grid(), (0, 0), 10, occupied={(1, 0)})
        assert (0, 0) not in reachable
        assert (1, 0) not in reachable
        assert (2, 1) in reachable


class TestOccupiedPositions:
    """Tests for get_occupied_positions."""

    def test_dead_bodies_do_not_block(self):
        """Dead monsters should not occupy their cell."""
        alive = build_monster(id="alive", position=(1, 0))
        dead = build_monster(id="dead", position=(2, 0), current_hp=0)
        hero = build_character(position=(0, 0))
        assert get_occupied_positions([alive, dead, hero]) == {(1, 0), (0, 0)}

    def test_excluded_ids(self):
        """The moving combatant can be excluded."""
        hero = build_character(position=(0, 0))
        goblin = build_monster(position=(3, 3))
        assert get_occupied_positions([hero, goblin], exclude_ids=[hero.id]) == {(3, 3)}
