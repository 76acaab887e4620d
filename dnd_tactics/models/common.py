"""Shared enumerations for the domain models."""
from enum import Enum

from pydantic import BaseModel, ConfigDict


class AbilityName(str, Enum):
    """The six ability scores."""
    STRENGTH = "strength"
    DEXTERITY = "dexterity"
    CONSTITUTION = "constitution"
    INTELLIGENCE = "intelligence"
    WISDOM = "wisdom"
    CHARISMA = "charisma"


class Size(str, Enum):
    """Creature sizes, smallest first."""
    TINY = "tiny"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    HUGE = "huge"
    GARGANTUAN = "gargantuan"


class DamageType(str, Enum):
    """Damage types in D&D 5e."""
    ACID = "acid"
    BLUDGEONING = "bludgeoning"
    COLD = "cold"
    FIRE = "fire"
    FORCE = "force"
    LIGHTNING = "lightning"
    NECROTIC = "necrotic"
    PIERCING = "piercing"
    POISON = "poison"
    PSYCHIC = "psychic"
    RADIANT = "radiant"
    SLASHING = "slashing"
    THUNDER = "thunder"


class Condition(str, Enum):
    """Conditions plus the engine's own tactical markers."""
    BLINDED = "blinded"
    CHARMED = "charmed"
    DEAFENED = "deafened"
    FRIGHTENED = "frightened"
    GRAPPLED = "grappled"
    INCAPACITATED = "incapacitated"
    INVISIBLE = "invisible"
    PARALYZED = "paralyzed"
    PETRIFIED = "petrified"
    POISONED = "poisoned"
    PRONE = "prone"
    RESTRAINED = "restrained"
    STUNNED = "stunned"
    UNCONSCIOUS = "unconscious"
    EXHAUSTION = "exhaustion"
    # Tactical markers
    DODGING = "dodging"
    HIDDEN = "hidden"
    DISENGAGING = "disengaging"
    DASHING = "dashing"
    SHIELDED = "shielded"
    EVASIVE = "evasive"
    SAPPED = "sapped"
    SLOWED = "slowed"
    GOADED = "goaded"
    DISTRACTED = "distracted"
    BLADE_WARD = "blade_ward"


class WeaponMastery(str, Enum):
    """Weapon mastery properties."""
    CLEAVE = "cleave"
    GRAZE = "graze"
    NICK = "nick"
    PUSH = "push"
    SAP = "sap"
    SLOW = "slow"
    TOPPLE = "topple"
    VEX = "vex"


class FightingStyle(str, Enum):
    """Fighting styles."""
    ARCHERY = "archery"            # +2 to ranged attack rolls
    DEFENSE = "defense"            # +1 AC when wearing armor
    DUELING = "dueling"            # +2 damage with a one-handed melee weapon
    GREAT_WEAPON = "great_weapon"  # Reroll 1s and 2s on two-handed damage
    PROTECTION = "protection"      # Reaction: disadvantage on attack vs adjacent ally
    TWO_WEAPON = "two_weapon"      # Ability modifier on off-hand damage


class EngineModel(BaseModel):
    """Base for read-only engine entities; copy with model_copy(update=...)."""
    model_config = ConfigDict(frozen=True)
