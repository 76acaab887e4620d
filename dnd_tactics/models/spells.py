"""
Spell definitions as consumed by the combat engine.

Only combat-relevant data is modeled: damage, saves, attack type, area of
effect, projectiles and reaction triggers. Spells are read-only catalog
entities supplied by the caller.
"""
from enum import Enum
from typing import Dict, Literal, Optional

from pydantic import Field

from .common import AbilityName, Condition, DamageType, EngineModel


class SpellSchool(str, Enum):
    """The eight schools of magic."""
    ABJURATION = "abjuration"
    CONJURATION = "conjuration"
    DIVINATION = "divination"
    ENCHANTMENT = "enchantment"
    EVOCATION = "evocation"
    ILLUSION = "illusion"
    NECROMANCY = "necromancy"
    TRANSMUTATION = "transmutation"


class AoEType(str, Enum):
    """Area of effect shapes."""
    CONE = "cone"
    CUBE = "cube"
    CYLINDER = "cylinder"
    LINE = "line"
    SPHERE = "sphere"


class SpellDamage(EngineModel):
    type: DamageType
    dice: str
    # Cantrip tiers: character level -> dice, e.g. {5: "2d10", 11: "3d10"}
    scaling: Dict[int, str] = Field(default_factory=dict)


class AreaOfEffect(EngineModel):
    type: AoEType
    size: int  # Feet
    # "self" shapes emanate from the caster (Thunder Wave), "point" is freely placed
    origin: Optional[Literal["self", "point"]] = None


class Projectiles(EngineModel):
    """Multi-projectile spells (Magic Missile, Scorching Ray)."""
    count: int
    damage_per_projectile: str
    scaling_per_slot_level: int = 0


class UpcastDice(EngineModel):
    """Extra damage dice when cast with a higher slot."""
    dice_per_level: str  # e.g. "1d6"
    per_levels: int = 1  # Slot levels above base needed per increment


class ReactionEffect(EngineModel):
    type: Literal["ac_bonus", "negate_spell", "resistance"]
    value: Optional[int] = None
    damage_type: Optional[DamageType] = None


class SpellReaction(EngineModel):
    trigger: Literal["on_hit", "on_magic_missile", "enemy_casts_spell", "take_damage"]
    effect: ReactionEffect


class Spell(EngineModel):
    """A spell definition."""
    id: str
    name: str
    level: int = Field(default=0, ge=0, le=9)  # 0 for cantrips
    school: SpellSchool = SpellSchool.EVOCATION
    casting_time: str = "1 action"
    range: str = "Self"
    duration: str = "Instantaneous"
    concentration: bool = False
    description: str = ""

    damage: Optional[SpellDamage] = None
    saving_throw: Optional[AbilityName] = None
    attack_type: Optional[Literal["melee", "ranged"]] = None
    auto_hit: bool = False
    area_of_effect: Optional[AreaOfEffect] = None
    projectiles: Optional[Projectiles] = None
    reaction: Optional[SpellReaction] = None

    condition_on_hit: Optional[Condition] = None
    condition_on_failed_save: Optional[Condition] = None
    # Replace the base die when the target is below max HP (Toll the Dead: "d12")
    damaged_target_die_upgrade: Optional[str] = None
    upcast_dice: Optional[UpcastDice] = None

    @property
    def is_cantrip(self) -> bool:
        return self.level == 0

    @property
    def is_bonus_action(self) -> bool:
        return "bonus action" in self.casting_time.lower()

    @property
    def is_reaction(self) -> bool:
        return "reaction" in self.casting_time.lower()
