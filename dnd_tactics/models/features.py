"""
Class features and racial abilities as tagged unions.

Each kind is its own small model with a literal ``type`` tag. The unions
``ClassFeature`` and ``RacialAbility`` are pydantic discriminated unions, so
feature lists parse straight from catalog dictionaries.
"""
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import Field

from .common import AbilityName, Condition, DamageType, EngineModel, FightingStyle, WeaponMastery


class FeatureTrigger(str, Enum):
    """When a class feature comes into play."""
    PASSIVE = "passive"
    ON_ATTACK_ROLL = "on_attack_roll"
    ON_DAMAGE_ROLL = "on_damage_roll"
    START_OF_TURN = "start_of_turn"
    BONUS_ACTION = "bonus_action"
    ACTION = "action"
    REACTION = "reaction"


class _ClassFeatureBase(EngineModel):
    id: str
    name: str
    level: int = 1  # Earliest character level at which the feature applies
    description: str = ""
    trigger: FeatureTrigger = FeatureTrigger.PASSIVE
    max_uses: Optional[int] = None  # Per combat, None = unlimited


class SecondWindFeature(_ClassFeatureBase):
    type: Literal["second_wind"] = "second_wind"
    trigger: FeatureTrigger = FeatureTrigger.BONUS_ACTION
    heal_dice: str = "1d10"
    heal_bonus_per_level: bool = True
    max_uses_at_levels: Optional[Dict[int, int]] = None


class FightingStyleFeature(_ClassFeatureBase):
    type: Literal["fighting_style"] = "fighting_style"
    style: Optional[FightingStyle] = None
    available_styles: List[FightingStyle] = Field(default_factory=list)


class AdditionalFightingStyleFeature(_ClassFeatureBase):
    type: Literal["additional_fighting_style"] = "additional_fighting_style"


class SneakAttackFeature(_ClassFeatureBase):
    type: Literal["sneak_attack"] = "sneak_attack"
    trigger: FeatureTrigger = FeatureTrigger.ON_ATTACK_ROLL
    base_dice: str = "1d6"
    dice_scaling: Dict[int, str] = Field(default_factory=dict)


class ActionSurgeFeature(_ClassFeatureBase):
    type: Literal["action_surge"] = "action_surge"
    trigger: FeatureTrigger = FeatureTrigger.ACTION
    max_uses_at_levels: Optional[Dict[int, int]] = None


class CunningActionFeature(_ClassFeatureBase):
    type: Literal["cunning_action"] = "cunning_action"
    trigger: FeatureTrigger = FeatureTrigger.BONUS_ACTION
    allowed_actions: List[Literal["dash", "disengage", "hide"]] = Field(
        default_factory=lambda: ["dash", "disengage", "hide"]
    )


class ExtraAttackFeature(_ClassFeatureBase):
    type: Literal["extra_attack"] = "extra_attack"
    attack_count: int = 2  # Total attacks per Attack action


class ImprovedCriticalFeature(_ClassFeatureBase):
    type: Literal["improved_critical"] = "improved_critical"
    critical_range: int = 19  # Lowest natural roll that crits


class IndomitableFeature(_ClassFeatureBase):
    type: Literal["indomitable"] = "indomitable"
    trigger: FeatureTrigger = FeatureTrigger.REACTION
    max_uses_at_levels: Optional[Dict[int, int]] = None


class CombatSuperiorityFeature(_ClassFeatureBase):
    type: Literal["combat_superiority"] = "combat_superiority"
    superiority_dice_count: int = 4
    superiority_die_size: int = 8
    maneuvers_known: int = 3
    superiority_dice_at_levels: Optional[Dict[int, int]] = None
    superiority_die_size_at_levels: Optional[Dict[int, int]] = None
    maneuvers_known_at_levels: Optional[Dict[int, int]] = None


class RelentlessFeature(_ClassFeatureBase):
    type: Literal["relentless"] = "relentless"
    trigger: FeatureTrigger = FeatureTrigger.START_OF_TURN


class WeaponMasteryFeature(_ClassFeatureBase):
    type: Literal["weapon_mastery"] = "weapon_mastery"
    mastered_weapon_count: int = 2
    mastered_weapon_count_at_levels: Optional[Dict[int, int]] = None


class TacticalMasterFeature(_ClassFeatureBase):
    type: Literal["tactical_master"] = "tactical_master"
    allowed_masteries: List[WeaponMastery] = Field(
        default_factory=lambda: [WeaponMastery.PUSH, WeaponMastery.SAP, WeaponMastery.SLOW]
    )


class StudiedAttacksFeature(_ClassFeatureBase):
    type: Literal["studied_attacks"] = "studied_attacks"


class HeroicWarriorFeature(_ClassFeatureBase):
    type: Literal["heroic_warrior"] = "heroic_warrior"
    trigger: FeatureTrigger = FeatureTrigger.START_OF_TURN


class SurvivorFeature(_ClassFeatureBase):
    type: Literal["survivor"] = "survivor"
    trigger: FeatureTrigger = FeatureTrigger.START_OF_TURN
    rally_heal_base: int = 5  # Heroic Rally heals this + CON modifier


class RemarkableAthleteFeature(_ClassFeatureBase):
    type: Literal["remarkable_athlete"] = "remarkable_athlete"


class GenericClassFeature(_ClassFeatureBase):
    type: Literal["generic"] = "generic"


ClassFeature = Annotated[
    Union[
        SecondWindFeature,
        FightingStyleFeature,
        AdditionalFightingStyleFeature,
        SneakAttackFeature,
        ActionSurgeFeature,
        CunningActionFeature,
        ExtraAttackFeature,
        ImprovedCriticalFeature,
        IndomitableFeature,
        CombatSuperiorityFeature,
        RelentlessFeature,
        WeaponMasteryFeature,
        TacticalMasterFeature,
        StudiedAttacksFeature,
        HeroicWarriorFeature,
        SurvivorFeature,
        RemarkableAthleteFeature,
        GenericClassFeature,
    ],
    Field(discriminator="type"),
]


def is_second_wind_feature(feature) -> bool:
    return isinstance(feature, SecondWindFeature)


def is_fighting_style_feature(feature) -> bool:
    return isinstance(feature, FightingStyleFeature)


def is_sneak_attack_feature(feature) -> bool:
    return isinstance(feature, SneakAttackFeature)


def is_action_surge_feature(feature) -> bool:
    return isinstance(feature, ActionSurgeFeature)


def is_cunning_action_feature(feature) -> bool:
    return isinstance(feature, CunningActionFeature)


def is_extra_attack_feature(feature) -> bool:
    return isinstance(feature, ExtraAttackFeature)


def is_improved_critical_feature(feature) -> bool:
    return isinstance(feature, ImprovedCriticalFeature)


def is_indomitable_feature(feature) -> bool:
    return isinstance(feature, IndomitableFeature)


def is_combat_superiority_feature(feature) -> bool:
    return isinstance(feature, CombatSuperiorityFeature)


def is_relentless_feature(feature) -> bool:
    return isinstance(feature, RelentlessFeature)


def is_weapon_mastery_feature(feature) -> bool:
    return isinstance(feature, WeaponMasteryFeature)


# =============================================================================
# Racial abilities
# =============================================================================

class RacialTrigger(str, Enum):
    """When a racial ability comes into play."""
    PASSIVE = "passive"
    ON_DAMAGE_TAKEN = "on_damage_taken"
    ON_ATTACK_ROLL = "on_attack_roll"
    ON_ABILITY_CHECK = "on_ability_check"
    ON_SAVING_THROW = "on_saving_throw"
    ACTION = "action"
    BONUS_ACTION = "bonus_action"
    REACTION = "reaction"


class _RacialAbilityBase(EngineModel):
    id: str
    name: str
    description: str = ""
    trigger: RacialTrigger = RacialTrigger.PASSIVE
    max_uses: Optional[int] = None  # Per combat, None = unlimited


class ResistanceAbility(_RacialAbilityBase):
    type: Literal["resistance"] = "resistance"
    damage_types: List[DamageType] = Field(default_factory=list)
    resistance_level: Literal["resistance", "immunity"] = "resistance"


class DarkvisionAbility(_RacialAbilityBase):
    type: Literal["darkvision"] = "darkvision"
    range: int = 60


class SaveAdvantageAbility(_RacialAbilityBase):
    type: Literal["save_advantage"] = "save_advantage"
    trigger: RacialTrigger = RacialTrigger.ON_SAVING_THROW
    conditions: List[Condition] = Field(default_factory=list)
    damage_types: List[DamageType] = Field(default_factory=list)
    magic_saves: bool = False


class RerollAbility(_RacialAbilityBase):
    type: Literal["reroll"] = "reroll"
    applies_to: List[Literal["attack", "ability_check", "saving_throw"]] = Field(
        default_factory=lambda: ["attack", "ability_check", "saving_throw"]
    )
    trigger_value: int = 1  # Reroll when the d20 shows this or lower


class TriggeredHealAbility(_RacialAbilityBase):
    type: Literal["triggered_heal"] = "triggered_heal"
    trigger: RacialTrigger = RacialTrigger.ON_DAMAGE_TAKEN
    trigger_condition: Literal["drop_to_zero"] = "drop_to_zero"
    heal_amount: int = 1


class BonusDamageAbility(_RacialAbilityBase):
    type: Literal["bonus_damage"] = "bonus_damage"
    trigger: RacialTrigger = RacialTrigger.ON_ATTACK_ROLL
    trigger_condition: Literal["critical_hit"] = "critical_hit"
    bonus_dice: str = "1d6"


class BreathWeaponAbility(_RacialAbilityBase):
    """Replaces one attack of the Attack action with a save-for-half area blast."""
    type: Literal["breath_weapon"] = "breath_weapon"
    trigger: RacialTrigger = RacialTrigger.ACTION
    damage_type: DamageType = DamageType.FIRE
    damage_dice: str = "1d10"
    damage_scaling: Dict[int, str] = Field(default_factory=dict)  # Character level -> dice
    shape: Literal["cone", "line"] = "cone"
    size: int = 15  # Feet
    saving_throw: AbilityName = AbilityName.DEXTERITY
    dc_ability: AbilityName = AbilityName.CONSTITUTION


class TraitAbility(_RacialAbilityBase):
    type: Literal["trait"] = "trait"


RacialAbility = Annotated[
    Union[
        ResistanceAbility,
        DarkvisionAbility,
        SaveAdvantageAbility,
        RerollAbility,
        TriggeredHealAbility,
        BonusDamageAbility,
        BreathWeaponAbility,
        TraitAbility,
    ],
    Field(discriminator="type"),
]


def is_resistance_ability(ability) -> bool:
    return isinstance(ability, ResistanceAbility)


def is_save_advantage_ability(ability) -> bool:
    return isinstance(ability, SaveAdvantageAbility)


def is_reroll_ability(ability) -> bool:
    return isinstance(ability, RerollAbility)


def is_triggered_heal_ability(ability) -> bool:
    return isinstance(ability, TriggeredHealAbility)


def is_bonus_damage_ability(ability) -> bool:
    return isinstance(ability, BonusDamageAbility)


def is_breath_weapon_ability(ability) -> bool:
    return isinstance(ability, BreathWeaponAbility)
