"""Origin feat definitions."""
from enum import Enum
from typing import Optional

from .common import EngineModel


class OriginFeatTrigger(str, Enum):
    """When an origin feat comes into play in combat."""
    PASSIVE = "passive"                  # Enhanced unarmed strike
    ON_INITIATIVE = "on_initiative"      # Alert proficiency bonus
    POST_INITIATIVE = "post_initiative"  # Alert swap
    ON_ATTACK_ROLL = "on_attack_roll"    # Luck points, Heroic Inspiration
    ON_DAMAGE_ROLL = "on_damage_roll"    # Savage Attacker
    ON_HIT = "on_hit"                    # Tavern Brawler push
    ACTION = "action"                    # Battle Medic


class OriginFeat(EngineModel):
    id: str
    name: str
    description: str = ""
    # None for feats with no combat effect (Crafter, Skilled, Tough, ...)
    trigger: Optional[OriginFeatTrigger] = None
    uses_per_turn: Optional[int] = None
    repeatable: bool = False

    @property
    def affects_combat(self) -> bool:
        return self.trigger is not None
