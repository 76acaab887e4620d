# Domain models

from .common import (
    AbilityName,
    Condition,
    DamageType,
    EngineModel,
    FightingStyle,
    Size,
    WeaponMastery,
)

from .creatures import (
    AbilityScores,
    Armor,
    Character,
    CharacterClass,
    Equipment,
    Monster,
    MonsterAction,
    MonsterSave,
    MonsterSpeed,
    Race,
    SpellcastingInfo,
    SpellSlot,
    Subclass,
    Weapon,
    WeaponProperty,
    WeaponRange,
    get_ability_modifier,
    get_proficiency_bonus,
)

from .spells import (
    AoEType,
    AreaOfEffect,
    Projectiles,
    Spell,
    SpellDamage,
    SpellReaction,
    SpellSchool,
    UpcastDice,
)

from .maneuvers import Maneuver, ManeuverSave, ManeuverTrigger

from .feats import OriginFeat, OriginFeatTrigger

from .combatant import ActiveCondition, Combatant, DeathSaves, Position, VexedBy

from .maps import MapPreset, Obstacle, StairConnection, TerrainDefinition, TerrainType

__all__ = [
    # Common
    "AbilityName",
    "Condition",
    "DamageType",
    "EngineModel",
    "FightingStyle",
    "Size",
    "WeaponMastery",
    # Creatures
    "AbilityScores",
    "Armor",
    "Character",
    "CharacterClass",
    "Equipment",
    "Monster",
    "MonsterAction",
    "MonsterSave",
    "MonsterSpeed",
    "Race",
    "SpellcastingInfo",
    "SpellSlot",
    "Subclass",
    "Weapon",
    "WeaponProperty",
    "WeaponRange",
    "get_ability_modifier",
    "get_proficiency_bonus",
    # Spells
    "AoEType",
    "AreaOfEffect",
    "Projectiles",
    "Spell",
    "SpellDamage",
    "SpellReaction",
    "SpellSchool",
    "UpcastDice",
    # Maneuvers
    "Maneuver",
    "ManeuverSave",
    "ManeuverTrigger",
    # Feats
    "OriginFeat",
    "OriginFeatTrigger",
    # Combatant
    "ActiveCondition",
    "Combatant",
    "DeathSaves",
    "Position",
    "VexedBy",
    # Maps
    "MapPreset",
    "Obstacle",
    "StairConnection",
    "TerrainDefinition",
    "TerrainType",
]
