"""
Area of effect templates.

Converts a spell's shape and size into the set of grid positions it covers.
Cones and lines emanate from the caster toward a target point; spheres,
cylinders and cubes are centered on the target point.
"""
from typing import Set
import math

from dnd_tactics.core.grid import Position, FEET_PER_SQUARE
from dnd_tactics.models.spells import AoEType

CONE_HALF_ANGLE = math.pi / 4   # 45 degrees for clean grid cones
LINE_HALF_ANGLE = math.pi / 8   # 22.5 degrees, a narrow cone


def _squares(size_ft: int) -> int:
    return math.ceil(size_ft / FEET_PER_SQUARE)


def _normalize_angle(angle: float) -> float:
    while angle > math.pi:
        angle -= 2 * math.pi
    while angle < -math.pi:
        angle += 2 * math.pi
    return angle


def _wedge(origin: Position, target: Position, size_ft: int, half_angle: float) -> Set[Position]:
    """Cells within Chebyshev reach of origin and half_angle of the aim line."""
    cells = set()
    reach = _squares(size_ft)
    aim = math.atan2(target[1] - origin[1], target[0] - origin[0])

    for dy in range(-reach, reach + 1):
        for dx in range(-reach, reach + 1):
            if dx == 0 and dy == 0:
                continue
            if max(abs(dx), abs(dy)) > reach:
                continue
            if abs(_normalize_angle(math.atan2(dy, dx) - aim)) <= half_angle:
                cells.add((origin[0] + dx, origin[1] + dy))
    return cells


def get_cone_cells(origin: Position, target: Position, size_ft: int) -> Set[Position]:
    return _wedge(origin, target, size_ft, CONE_HALF_ANGLE)


def get_line_cells(origin: Position, target: Position, length_ft: int) -> Set[Position]:
    return _wedge(origin, target, length_ft, LINE_HALF_ANGLE)


def get_sphere_cells(center: Position, radius_ft: int) -> Set[Position]:
    """Circular footprint (Euclidean distance in squares)."""
    cells = set()
    radius = _squares(radius_ft)
    for dx in range(-radius, radius + 1):
        for dy in range(-radius, radius + 1):
            if math.sqrt(dx * dx + dy * dy) <= radius:
                cells.add((center[0] + dx, center[1] + dy))
    return cells


def get_cube_cells(center: Position, size_ft: int) -> Set[Position]:
    half = _squares(size_ft) // 2
    return {
        (center[0] + dx, center[1] + dy)
        for dx in range(-half, half + 1)
        for dy in range(-half, half + 1)
    }


def get_aoe_affected_cells(
    aoe_type: AoEType,
    size_ft: int,
    origin: Position,
    target: Position
) -> Set[Position]:
    """
    Get every position covered by an area of effect.

    Args:
        aoe_type: Shape of the area
        size_ft: Cone/line length, sphere/cylinder radius or cube side
        origin: Caster position (used by cones and lines)
        target: Aim point or center
    """
    aoe_type = AoEType(aoe_type)
    if aoe_type == AoEType.CONE:
        return get_cone_cells(origin, target, size_ft)
    if aoe_type in (AoEType.SPHERE, AoEType.CYLINDER):
        return get_sphere_cells(target, size_ft)
    if aoe_type == AoEType.CUBE:
        return get_cube_cells(target, size_ft)
    if aoe_type == AoEType.LINE:
        return get_line_cells(origin, target, size_ft)
    return set()


def aoe_originates_from_caster(aoe_type: AoEType) -> bool:
    return AoEType(aoe_type) in (AoEType.CONE, AoEType.LINE)
