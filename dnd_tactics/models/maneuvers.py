"""Battle Master maneuver definitions."""
from enum import Enum
from typing import Optional

from .common import AbilityName, Condition, EngineModel


class ManeuverTrigger(str, Enum):
    """When a maneuver can be used."""
    ON_HIT = "on_hit"              # After a weapon attack hits
    PRE_ATTACK = "pre_attack"      # Before or after the attack roll
    BONUS_ACTION = "bonus_action"
    REACTION = "reaction"


class ManeuverSave(EngineModel):
    ability: AbilityName
    effect: str  # What happens on a failed save


class Maneuver(EngineModel):
    id: str
    name: str
    description: str = ""
    trigger: ManeuverTrigger
    adds_damage_die: bool = False
    adds_to_attack_roll: bool = False
    requires_weapon_attack: bool = True
    requires_melee_weapon: bool = False
    saving_throw: Optional[ManeuverSave] = None
    condition: Optional[Condition] = None
    condition_duration: Optional[int] = None  # Rounds, -1 = until removed
    push_distance: Optional[int] = None  # Feet
    damage_reduction: bool = False
    sweep_damage: bool = False
