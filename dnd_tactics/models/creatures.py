"""
Characters, monsters and the equipment they carry.

These are fully resolved catalog entities: the engine reads them but never
changes them. Live combat state belongs on Combatant.
"""
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import Field

from .common import (
    AbilityName,
    Condition,
    DamageType,
    EngineModel,
    FightingStyle,
    Size,
    WeaponMastery,
)
from .features import ClassFeature, RacialAbility
from .spells import Spell


def get_ability_modifier(score: int) -> int:
    """Calculate ability modifier from score: (score - 10) // 2."""
    return (score - 10) // 2


def get_proficiency_bonus(level: int) -> int:
    """Proficiency bonus by total level (+2 at 1-4, +6 at 17-20)."""
    return (max(1, level) - 1) // 4 + 2


class AbilityScores(EngineModel):
    strength: int = 10
    dexterity: int = 10
    constitution: int = 10
    intelligence: int = 10
    wisdom: int = 10
    charisma: int = 10

    def get(self, ability: AbilityName) -> int:
        return getattr(self, AbilityName(ability).value)

    def modifier(self, ability: AbilityName) -> int:
        return get_ability_modifier(self.get(ability))


# =============================================================================
# Equipment
# =============================================================================

class WeaponProperty(str, Enum):
    AMMUNITION = "ammunition"
    FINESSE = "finesse"
    HEAVY = "heavy"
    LIGHT = "light"
    LOADING = "loading"
    RANGE = "range"
    REACH = "reach"
    SPECIAL = "special"
    THROWN = "thrown"
    TWO_HANDED = "two-handed"
    VERSATILE = "versatile"


class WeaponRange(EngineModel):
    normal: int
    long: int


class Weapon(EngineModel):
    id: str
    name: str
    category: Literal["simple", "martial"] = "simple"
    type: Literal["melee", "ranged"] = "melee"
    damage: str = "1d4"
    damage_type: DamageType = DamageType.BLUDGEONING
    properties: List[WeaponProperty] = Field(default_factory=list)
    range: Optional[WeaponRange] = None
    versatile_damage: Optional[str] = None
    mastery: Optional[WeaponMastery] = None

    def has_property(self, prop: WeaponProperty) -> bool:
        return WeaponProperty(prop) in self.properties

    @property
    def is_ranged(self) -> bool:
        return self.type == "ranged"


class Armor(EngineModel):
    id: str
    name: str
    category: Literal["light", "medium", "heavy", "shield"] = "light"
    base_ac: int = 11
    dex_bonus: bool = True
    max_dex_bonus: Optional[int] = None


class Equipment(EngineModel):
    melee_weapon: Optional[Weapon] = None
    ranged_weapon: Optional[Weapon] = None
    offhand_weapon: Optional[Weapon] = None  # Light weapon for two-weapon fighting
    armor: Optional[Armor] = None
    shield: Optional[Armor] = None


# =============================================================================
# Classes and races
# =============================================================================

class SpellcastingInfo(EngineModel):
    ability: AbilityName
    prepared_caster: bool = False


class Subclass(EngineModel):
    id: str
    name: str
    features: List[ClassFeature] = Field(default_factory=list)


class CharacterClass(EngineModel):
    id: str
    name: str
    hit_die: int = 8
    saving_throw_proficiencies: List[AbilityName] = Field(default_factory=list)
    features: List[ClassFeature] = Field(default_factory=list)
    subclass_level: int = 3
    spellcasting: Optional[SpellcastingInfo] = None


class Race(EngineModel):
    id: str
    name: str
    size: Size = Size.MEDIUM
    speed: int = 30
    abilities: List[RacialAbility] = Field(default_factory=list)


class SpellSlot(EngineModel):
    max: int
    current: int


class Character(EngineModel):
    """A player character as built outside the engine."""
    id: str
    name: str
    race: Race
    character_class: CharacterClass
    subclass: Optional[Subclass] = None
    level: int = Field(default=1, ge=1, le=20)
    ability_scores: AbilityScores = Field(default_factory=AbilityScores)
    max_hp: int = 10
    ac: int = 10
    speed: int = 30
    saving_throw_proficiencies: List[AbilityName] = Field(default_factory=list)
    equipment: Equipment = Field(default_factory=Equipment)
    spell_slots: Optional[Dict[int, SpellSlot]] = None
    known_spells: List[Spell] = Field(default_factory=list)
    prepared_spells: List[Spell] = Field(default_factory=list)
    fighting_styles: List[FightingStyle] = Field(default_factory=list)
    mastered_weapon_ids: List[str] = Field(default_factory=list)
    known_maneuver_ids: List[str] = Field(default_factory=list)
    origin_feat_ids: List[str] = Field(default_factory=list)

    @property
    def proficiency_bonus(self) -> int:
        return get_proficiency_bonus(self.level)

    @property
    def is_spellcaster(self) -> bool:
        return self.character_class.spellcasting is not None


class MonsterSpeed(EngineModel):
    walk: int = 30
    fly: Optional[int] = None
    swim: Optional[int] = None
    climb: Optional[int] = None


class MonsterSave(EngineModel):
    ability: AbilityName
    dc: int


class MonsterAction(EngineModel):
    name: str
    description: str = ""
    attack_bonus: Optional[int] = None
    damage: Optional[str] = None
    damage_type: Optional[DamageType] = None
    reach: Optional[int] = None
    range: Optional[WeaponRange] = None
    saving_throw: Optional[MonsterSave] = None

    @property
    def is_ranged(self) -> bool:
        return self.range is not None and self.reach is None


class Monster(EngineModel):
    """A monster stat block."""
    id: str
    name: str
    size: Size = Size.MEDIUM
    creature_type: str = "humanoid"
    ac: int = 10
    hp: int = 1
    hit_dice: str = "1d8"
    speed: MonsterSpeed = Field(default_factory=MonsterSpeed)
    ability_scores: AbilityScores = Field(default_factory=AbilityScores)
    saving_throws: Dict[AbilityName, int] = Field(default_factory=dict)
    damage_resistances: List[DamageType] = Field(default_factory=list)
    damage_immunities: List[DamageType] = Field(default_factory=list)
    damage_vulnerabilities: List[DamageType] = Field(default_factory=list)
    condition_immunities: List[Condition] = Field(default_factory=list)
    challenge_rating: float = 0
    actions: List[MonsterAction] = Field(default_factory=list)
    reactions: List[MonsterAction] = Field(default_factory=list)
