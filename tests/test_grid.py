"""Tests for the combat grid, line of sight and area templates."""
import itertools

import pytest

from dnd_tactics.core.aoe_shapes import (
    aoe_originates_from_caster,
    get_aoe_affected_cells,
    get_cone_cells,
    get_cube_cells,
    get_sphere_cells,
)
from dnd_tactics.core.errors import ErrorCode, GridError
from dnd_tactics.core.grid import (
    CombatGrid,
    GridCell,
    build_grid,
    build_grid_from_preset,
    get_diagonal_distance,
    get_distance_between_positions,
    get_push_destination,
    is_adjacent,
)
from dnd_tactics.core.line_of_sight import (
    can_target_with_ranged_attack,
    get_line_targets,
    has_line_of_sight,
)
from dnd_tactics.models import MapPreset, Obstacle, TerrainDefinition, TerrainType
from dnd_tactics.models.spells import AoEType

from conftest import build_open_grid, build_walled_grid


class TestCombatGrid:
    """Tests for grid construction."""

    def test_every_cell_exists(self):
        """Cells not given at construction should be open ground."""
        grid = CombatGrid(width=4, height=3)
        assert len(grid.cells) == 12
        assert grid.get_cell(3, 2) == GridCell(x=3, y=2)
        assert grid.get_cell(4, 0) is None

    def test_invalid_dimensions_raise(self):
        """Non-positive dimensions should raise GridError."""
        with pytest.raises(GridError):
            CombatGrid(width=0, height=5)

    def test_terrain_outside_grid_raises(self):
        """Terrain definitions outside the grid are a data error."""
        with pytest.raises(GridError) as exc_info:
            build_grid(5, 5, [TerrainDefinition(x=5, y=0, terrain=TerrainType.WATER)])
        assert exc_info.value.code == ErrorCode.GRID_OUT_OF_BOUNDS

    def test_build_from_preset(self):
        """Presets should carry obstacles and terrain into cells."""
        preset = MapPreset(
            id="ruins",
            name="Ruins",
            grid_width=6,
            grid_height=6,
            terrain=[
                TerrainDefinition(x=2, y=2, obstacle=Obstacle(type="pillar")),
                TerrainDefinition(x=3, y=3, terrain=TerrainType.DIFFICULT),
            ],
        )
        grid = build_grid_from_preset(preset)
        assert grid.get_cell(2, 2).blocks_movement is True
        assert grid.get_cell(3, 3).is_difficult is True
        assert grid.get_cell(0, 0).blocks_sight is False

    def test_adjacent_cells_stay_in_bounds(self):
        """A corner cell should have exactly three neighbors."""
        grid = build_open_grid(5, 5)
        assert sorted(grid.get_adjacent_cells(0, 0)) == [(0, 1), (1, 0), (1, 1)]


class TestDistance:
    """Tests for distance helpers."""

    def test_chebyshev_distance(self):
        """Every step, diagonal or not, should count 5 feet."""
        assert get_distance_between_positions((0, 0), (3, 4)) == 20

    def test_alternating_diagonals(self):
        """5-10-5: two diagonals cost 15 feet, four cost 30."""
        assert get_diagonal_distance((0, 0), (1, 1)) == 5
        assert get_diagonal_distance((0, 0), (2, 2)) == 15
        assert get_diagonal_distance((0, 0), (4, 4)) == 30

    def test_is_adjacent(self):
        """Diagonal neighbors are adjacent, two squares away is not."""
        assert is_adjacent((2, 2), (3, 3)) is True
        assert is_adjacent((2, 2), (4, 2)) is False


class TestPushDestination:
    """Tests for straight-line pushes."""

    def test_push_moves_away_from_source(self):
        """A 10ft push should move the target two squares away."""
        grid = build_open_grid()
        assert get_push_destination(grid, (0, 0), (1, 0), 10) == (3, 0)

    def test_push_stops_before_wall(self):
        """A wall should stop the push on the square before it."""
        grid = build_walled_grid([(3, 0)])
        assert get_push_destination(grid, (0, 0), (1, 0), 10) == (2, 0)

    def test_push_stops_before_occupied_cell(self):
        """Creatures in the way should stop the push."""
        grid = build_open_grid()
        assert get_push_destination(grid, (0, 0), (1, 0), 10, occupied=[(2, 0)]) == (1, 0)

    def test_push_stops_at_grid_edge(self):
        """The push should not leave the grid."""
        grid = build_open_grid(3, 3)
        assert get_push_destination(grid, (0, 0), (1, 1), 15) == (2, 2)

    def test_same_position_does_not_move(self):
        """Without a direction there is nowhere to push."""
        grid = build_open_grid()
        assert get_push_destination(grid, (2, 2), (2, 2), 10) == (2, 2)


class TestLineOfSight:
    """Tests for line of sight."""

    def test_clear_line(self):
        """Open ground should never block sight."""
        grid = build_open_grid()
        assert has_line_of_sight(grid, (0, 0), (7, 3)) is True

    def test_wall_blocks(self):
        """A wall between two positions should block sight."""
        grid = build_walled_grid([(2, 0)])
        assert has_line_of_sight(grid, (0, 0), (4, 0)) is False

    def test_symmetric_for_any_walls(self):
        """A sees B exactly when B sees A, whatever the walls."""
        grid = build_walled_grid([(2, 1), (3, 3), (5, 2), (4, 5), (1, 4)], width=7, height=7)
        positions = [(x, y) for x in range(7) for y in range(7)]
        for a, b in itertools.combinations(positions, 2):
            assert has_line_of_sight(grid, a, b) == has_line_of_sight(grid, b, a), (a, b)

    def test_adjacent_always_visible(self):
        """Adjacent cells should see each other even in fog."""
        grid = build_open_grid()
        assert has_line_of_sight(grid, (0, 0), (1, 1), fog={(0, 0), (1, 1)}) is True

    def test_fog_on_endpoint_blocks(self):
        """Fog on either endpoint should block sight at range."""
        grid = build_open_grid()
        assert has_line_of_sight(grid, (0, 0), (5, 0), fog={(5, 0)}) is False
        assert has_line_of_sight(grid, (0, 0), (5, 0), fog={(0, 0)}) is False

    def test_fog_between_blocks(self):
        """Fog between two positions should block sight."""
        grid = build_open_grid()
        assert has_line_of_sight(grid, (0, 0), (5, 0), fog={(3, 0)}) is False


class TestRangedTargeting:
    """Tests for the combined range and sight check."""

    def test_out_of_range_checked_before_walls(self):
        """One square beyond range behind a wall should not report the wall."""
        grid = build_walled_grid([(3, 0)])
        check = can_target_with_ranged_attack(grid, (0, 0), (7, 0), 30)
        assert check.can_target is False
        assert check.blocked_by is None

    def test_in_range_behind_wall_reports_wall(self):
        """In range but hidden should name the blocking cell."""
        grid = build_walled_grid([(3, 0)])
        check = can_target_with_ranged_attack(grid, (0, 0), (5, 0), 30)
        assert check.can_target is False
        assert check.blocked_by == (3, 0)

    def test_fogged_target_reports_target_cell(self):
        """A target standing in fog should be named as the blocker."""
        grid = build_open_grid()
        check = can_target_with_ranged_attack(grid, (0, 0), (5, 0), 30, fog={(5, 0)})
        assert check.blocked_by == (5, 0)

    def test_clear_shot(self):
        """Open ground within range should be targetable."""
        grid = build_open_grid()
        assert can_target_with_ranged_attack(grid, (0, 0), (5, 0), 30).can_target is True


class TestLineTargets:
    """Tests for line effects."""

    def test_line_covers_its_length(self):
        """A 20ft line should cover four squares, endpoint included."""
        grid = build_open_grid()
        assert get_line_targets(grid, (0, 0), (1, 0), 20) == [(1, 0), (2, 0), (3, 0), (4, 0)]

    def test_line_stops_before_wall(self):
        """The line should stop before the first wall."""
        grid = build_walled_grid([(3, 0)])
        assert get_line_targets(grid, (0, 0), (1, 0), 20) == [(1, 0), (2, 0)]

    def test_zero_direction(self):
        """No direction means no line."""
        assert get_line_targets(build_open_grid(), (0, 0), (0, 0), 20) == []


class TestAreaOfEffect:
    """Tests for area templates."""

    def test_sphere_footprint(self):
        """A 5ft radius should cover the center and its four orthogonal neighbors."""
        assert get_sphere_cells((5, 5), 5) == {(5, 5), (4, 5), (6, 5), (5, 4), (5, 6)}

    def test_cube_footprint(self):
        """A 15ft cube should cover a 3x3 block."""
        cells = get_cube_cells((5, 5), 15)
        assert len(cells) == 9
        assert (4, 4) in cells and (6, 6) in cells

    def test_cone_points_at_target(self):
        """A cone should extend toward the aim point but not behind the caster."""
        cells = get_cone_cells((0, 0), (3, 0), 15)
        assert {(1, 0), (2, 0), (3, 0)} <= cells
        assert (0, 0) not in cells
        assert (-1, 0) not in cells
        assert (0, 2) not in cells

    def test_cylinder_uses_sphere_footprint(self):
        """Cylinders and spheres share a footprint."""
        assert get_aoe_affected_cells(AoEType.CYLINDER, 10, (0, 0), (5, 5)) == get_sphere_cells((5, 5), 10)

    def test_line_template_is_narrow(self):
        """A line should not spread to 45 degrees."""
        cells = get_aoe_affected_cells(AoEType.LINE, 30, (0, 0), (6, 0))
        assert (6, 0) in cells
        assert (3, 3) not in cells

    def test_origin(self):
        """Cones and lines start at the caster."""
        assert aoe_originates_from_caster(AoEType.CONE) is True
        assert aoe_originates_from_caster(AoEType.SPHERE) is False
