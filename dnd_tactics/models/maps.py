"""Battle map presets: grid size plus a sparse list of terrain cells."""
from enum import Enum
from typing import List, Literal, Optional

from pydantic import Field

from .common import EngineModel


class TerrainType(str, Enum):
    """Terrain tags. All of them cost double movement."""
    DIFFICULT = "difficult"
    HAZARD = "hazard"
    WATER = "water"


class Obstacle(EngineModel):
    type: Literal["wall", "pillar", "furniture", "boulder", "tree"] = "wall"
    blocks_movement: bool = True
    blocks_line_of_sight: bool = True


class StairConnection(EngineModel):
    target_x: int
    target_y: int
    target_elevation: int
    direction: Literal["up", "down"]


class TerrainDefinition(EngineModel):
    x: int
    y: int
    terrain: Optional[TerrainType] = None
    obstacle: Optional[Obstacle] = None
    elevation: int = 0
    stair_connection: Optional[StairConnection] = None


class MapPreset(EngineModel):
    id: str
    name: str
    description: str = ""
    grid_width: int = Field(gt=0)
    grid_height: int = Field(gt=0)
    terrain: List[TerrainDefinition] = Field(default_factory=list)
