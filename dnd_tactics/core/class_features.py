"""
Class Features System.

Read-only queries over a combatant's class and subclass features: which
features are active at the character's level, level-scaled use limits,
and the bonuses those features grant. Nothing here is cached on the
combatant; every value is recomputed from level, equipment and features.

A feature is active when ``character.level >= feature.level``. Monsters
have no class features.
"""
from typing import Dict, List, Optional, Sequence, Tuple, Type, TypeVar
import logging

from dnd_tactics.core.dice import roll
from dnd_tactics.core.grid import get_distance_between_positions
from dnd_tactics.models.combatant import Combatant
from dnd_tactics.models.common import FightingStyle, WeaponMastery
from dnd_tactics.models.creatures import Weapon, WeaponProperty
from dnd_tactics.models.features import (
    ActionSurgeFeature,
    ClassFeature,
    CunningActionFeature,
    ExtraAttackFeature,
    FightingStyleFeature,
    HeroicWarriorFeature,
    ImprovedCriticalFeature,
    IndomitableFeature,
    RemarkableAthleteFeature,
    SecondWindFeature,
    SneakAttackFeature,
    StudiedAttacksFeature,
    SurvivorFeature,
    TacticalMasterFeature,
)

logger = logging.getLogger(__name__)

F = TypeVar("F")

UNLIMITED = -1


# =============================================================================
# FEATURE ACCESS
# =============================================================================

def get_combatant_class_features(combatant: Combatant) -> List[ClassFeature]:
    """All class and subclass features active at the combatant's level."""
    character = combatant.character
    if character is None:
        return []
    features = list(character.character_class.features)
    if character.subclass is not None:
        features.extend(character.subclass.features)
    return [f for f in features if f.level <= character.level]


def get_feature_of_type(combatant: Combatant, feature_type: Type[F]) -> Optional[F]:
    """First active feature of the given kind, in declaration order."""
    for feature in get_combatant_class_features(combatant):
        if isinstance(feature, feature_type):
            return feature
    return None


def get_features_of_type(combatant: Combatant, feature_type: Type[F]) -> List[F]:
    return [f for f in get_combatant_class_features(combatant) if isinstance(f, feature_type)]


def get_max_uses_at_level(
    max_uses: Optional[int],
    max_uses_at_levels: Optional[Dict[int, int]],
    level: int
) -> Optional[int]:
    """
    Resolve a level-scaled use limit.

    The value at the highest threshold not above ``level`` wins; below every
    threshold the base ``max_uses`` applies.
    """
    effective = max_uses
    if max_uses_at_levels:
        for threshold, value in sorted(max_uses_at_levels.items()):
            if level >= threshold:
                effective = value
    return effective


def _scaled_max(combatant: Combatant, feature) -> int:
    """Max uses for a limited feature; 0 when the feature has no limit set."""
    if feature is None or feature.max_uses is None:
        return 0
    return get_max_uses_at_level(feature.max_uses, feature.max_uses_at_levels, combatant.level)


def _uses_left(combatant: Combatant, feature_id: str, max_uses: int,
               uses: Optional[Dict[str, int]]) -> int:
    pool = combatant.class_feature_uses if uses is None else uses
    return pool.get(feature_id, max_uses)


# =============================================================================
# SECOND WIND
# =============================================================================

def get_second_wind_feature(combatant: Combatant) -> Optional[SecondWindFeature]:
    return get_feature_of_type(combatant, SecondWindFeature)


def get_second_wind_max_uses(combatant: Combatant) -> int:
    """Max Second Wind uses; -1 means unlimited."""
    feature = get_second_wind_feature(combatant)
    if feature is None:
        return 0
    if feature.max_uses is None:
        return UNLIMITED
    return get_max_uses_at_level(feature.max_uses, feature.max_uses_at_levels, combatant.level)


def can_use_second_wind(combatant: Combatant, uses: Optional[Dict[str, int]] = None) -> bool:
    """Needs the feature, a free bonus action and a use left."""
    feature = get_second_wind_feature(combatant)
    if feature is None or combatant.has_bonus_acted:
        return False
    max_uses = get_second_wind_max_uses(combatant)
    if max_uses == UNLIMITED:
        return True
    return _uses_left(combatant, feature.id, max_uses, uses) > 0


def roll_second_wind(combatant: Combatant) -> Tuple[int, List[int]]:
    """
    Roll Second Wind healing.

    Returns:
        (total, rolls); total is the heal dice plus character level when the
        feature scales with level
    """
    feature = get_second_wind_feature(combatant)
    if feature is None:
        return 0, []
    result = roll(feature.heal_dice)
    total = result.total
    if feature.heal_bonus_per_level:
        total += combatant.level
    return total, list(result.rolls)


def get_second_wind_uses(combatant: Combatant, uses: Optional[Dict[str, int]] = None) -> int:
    feature = get_second_wind_feature(combatant)
    if feature is None:
        return 0
    max_uses = get_second_wind_max_uses(combatant)
    if max_uses == UNLIMITED:
        return UNLIMITED
    return _uses_left(combatant, feature.id, max_uses, uses)


# =============================================================================
# FIGHTING STYLE
# =============================================================================

def get_fighting_style_feature(combatant: Combatant) -> Optional[FightingStyleFeature]:
    return get_feature_of_type(combatant, FightingStyleFeature)


def get_fighting_style(combatant: Combatant) -> Optional[FightingStyle]:
    """
    The combatant's primary fighting style.

    The character's own selection comes first; the feature's fixed style is
    the fallback.
    """
    character = combatant.character
    if character is None:
        return None
    if character.fighting_styles:
        return character.fighting_styles[0]
    feature = get_fighting_style_feature(combatant)
    return feature.style if feature else None


def get_all_fighting_styles(combatant: Combatant) -> List[FightingStyle]:
    character = combatant.character
    return list(character.fighting_styles) if character else []


def has_fighting_style(combatant: Combatant, style: FightingStyle) -> bool:
    return FightingStyle(style) in get_all_fighting_styles(combatant)


def get_archery_bonus(combatant: Combatant) -> int:
    """+2 to ranged attack rolls."""
    return 2 if get_fighting_style(combatant) == FightingStyle.ARCHERY else 0


def get_dueling_bonus(combatant: Combatant, weapon: Optional[Weapon]) -> int:
    """+2 damage with a melee weapon that is not two-handed."""
    if get_fighting_style(combatant) != FightingStyle.DUELING or weapon is None:
        return 0
    if weapon.type != "melee" or weapon.has_property(WeaponProperty.TWO_HANDED):
        return 0
    return 2


def get_defense_bonus(combatant: Combatant) -> int:
    """+1 AC while wearing armor."""
    if get_fighting_style(combatant) != FightingStyle.DEFENSE:
        return 0
    character = combatant.character
    return 1 if character is not None and character.equipment.armor is not None else 0


# =============================================================================
# SNEAK ATTACK
# =============================================================================

def get_sneak_attack_feature(combatant: Combatant) -> Optional[SneakAttackFeature]:
    return get_feature_of_type(combatant, SneakAttackFeature)


def get_sneak_attack_dice(combatant: Combatant) -> str:
    """Sneak Attack dice at the combatant's level ("0" without the feature)."""
    feature = get_sneak_attack_feature(combatant)
    if feature is None:
        return "0"
    dice = feature.base_dice
    for threshold, scaled in sorted(feature.dice_scaling.items()):
        if combatant.level >= threshold:
            dice = scaled
    return dice


def is_weapon_valid_for_sneak_attack(weapon: Optional[Weapon]) -> bool:
    """Finesse or ranged weapons qualify."""
    if weapon is None:
        return False
    return weapon.has_property(WeaponProperty.FINESSE) or weapon.type == "ranged"


def can_sneak_attack(
    attacker: Combatant,
    target: Combatant,
    weapon: Optional[Weapon],
    has_advantage: bool,
    has_disadvantage: bool,
    combatants: Sequence[Combatant],
    used_this_turn: Optional[bool] = None
) -> bool:
    """
    Check if Sneak Attack applies to this attack.

    Requires the feature, no Sneak Attack yet this turn, a finesse or ranged
    weapon and no disadvantage, plus either advantage or a living ally of
    the attacker within 5 feet of the target.
    """
    if get_sneak_attack_feature(attacker) is None:
        return False
    used = attacker.used_sneak_attack_this_turn if used_this_turn is None else used_this_turn
    if used:
        return False
    if not is_weapon_valid_for_sneak_attack(weapon):
        return False
    if has_disadvantage:
        return False
    if has_advantage:
        return True

    for ally in combatants:
        if ally.type != attacker.type or ally.id == attacker.id or ally.id == target.id:
            continue
        if ally.current_hp <= 0:
            continue
        if get_distance_between_positions(ally.position, target.position) <= 5:
            return True
    return False


def roll_sneak_attack_damage(combatant: Combatant, critical: bool = False) -> Tuple[int, List[int]]:
    result = roll(get_sneak_attack_dice(combatant), critical=critical)
    return result.total, list(result.rolls)


# =============================================================================
# ACTION SURGE
# =============================================================================

def get_action_surge_feature(combatant: Combatant) -> Optional[ActionSurgeFeature]:
    return get_feature_of_type(combatant, ActionSurgeFeature)


def get_action_surge_max_uses(combatant: Combatant) -> int:
    return _scaled_max(combatant, get_action_surge_feature(combatant))


def can_use_action_surge(combatant: Combatant, uses: Optional[Dict[str, int]] = None) -> bool:
    feature = get_action_surge_feature(combatant)
    max_uses = get_action_surge_max_uses(combatant)
    if feature is None or max_uses <= 0:
        return False
    return _uses_left(combatant, feature.id, max_uses, uses) > 0


def get_action_surge_uses(combatant: Combatant, uses: Optional[Dict[str, int]] = None) -> int:
    feature = get_action_surge_feature(combatant)
    max_uses = get_action_surge_max_uses(combatant)
    if feature is None or max_uses <= 0:
        return 0
    return _uses_left(combatant, feature.id, max_uses, uses)


# =============================================================================
# CUNNING ACTION
# =============================================================================

def get_cunning_action_feature(combatant: Combatant) -> Optional[CunningActionFeature]:
    return get_feature_of_type(combatant, CunningActionFeature)


def has_cunning_action(combatant: Combatant) -> bool:
    return get_cunning_action_feature(combatant) is not None


def can_use_cunning_action(combatant: Combatant, action: str) -> bool:
    """Check one Cunning Action option ("dash", "disengage" or "hide")."""
    feature = get_cunning_action_feature(combatant)
    if feature is None or combatant.has_bonus_acted:
        return False
    return action in feature.allowed_actions


# =============================================================================
# EXTRA ATTACK
# =============================================================================

def get_max_attacks_per_action(combatant: Combatant) -> int:
    """Attacks per Attack action: the best Extra Attack count, not the sum."""
    features = get_features_of_type(combatant, ExtraAttackFeature)
    if not features:
        return 1
    return max(f.attack_count for f in features)


def can_make_another_attack(combatant: Combatant) -> bool:
    return combatant.attacks_made_this_turn < get_max_attacks_per_action(combatant)


def has_used_all_attacks(combatant: Combatant) -> bool:
    return combatant.attacks_made_this_turn >= get_max_attacks_per_action(combatant)


# =============================================================================
# IMPROVED CRITICAL
# =============================================================================

def get_critical_range(combatant: Combatant) -> int:
    """
    Lowest natural d20 roll that crits.

    20 by default; Improved Critical (19) and Superior Critical (18) stack
    by taking the lowest value.
    """
    features = get_features_of_type(combatant, ImprovedCriticalFeature)
    if not features:
        return 20
    return min(f.critical_range for f in features)


def is_critical_hit(combatant: Combatant, natural_roll: int) -> bool:
    return natural_roll >= get_critical_range(combatant)


# =============================================================================
# INDOMITABLE
# =============================================================================

def get_indomitable_feature(combatant: Combatant) -> Optional[IndomitableFeature]:
    return get_feature_of_type(combatant, IndomitableFeature)


def get_indomitable_max_uses(combatant: Combatant) -> int:
    """1 use at level 9, 2 at 13, 3 at 17 with the standard table."""
    return _scaled_max(combatant, get_indomitable_feature(combatant))


def can_use_indomitable(combatant: Combatant, uses: Optional[Dict[str, int]] = None) -> bool:
    feature = get_indomitable_feature(combatant)
    max_uses = get_indomitable_max_uses(combatant)
    if feature is None or max_uses <= 0:
        return False
    return _uses_left(combatant, feature.id, max_uses, uses) > 0


def get_indomitable_uses(combatant: Combatant, uses: Optional[Dict[str, int]] = None) -> int:
    feature = get_indomitable_feature(combatant)
    max_uses = get_indomitable_max_uses(combatant)
    if feature is None or max_uses <= 0:
        return 0
    return _uses_left(combatant, feature.id, max_uses, uses)


def get_indomitable_bonus(combatant: Combatant) -> int:
    """Fighters add their level to the Indomitable reroll."""
    character = combatant.character
    if character is None or character.character_class.id != "fighter":
        return 0
    return character.level


# =============================================================================
# FIGHTER AND CHAMPION PASSIVES
# =============================================================================

def get_tactical_master_masteries(combatant: Combatant) -> List[WeaponMastery]:
    """Masteries Tactical Master may swap in (push, sap, slow)."""
    feature = get_feature_of_type(combatant, TacticalMasterFeature)
    return list(feature.allowed_masteries) if feature else []


def has_studied_attacks(combatant: Combatant) -> bool:
    return get_feature_of_type(combatant, StudiedAttacksFeature) is not None


def has_heroic_warrior(combatant: Combatant) -> bool:
    return get_feature_of_type(combatant, HeroicWarriorFeature) is not None


def get_survivor_feature(combatant: Combatant) -> Optional[SurvivorFeature]:
    return get_feature_of_type(combatant, SurvivorFeature)


def has_survivor(combatant: Combatant) -> bool:
    return get_survivor_feature(combatant) is not None


def has_remarkable_athlete(combatant: Combatant) -> bool:
    return get_feature_of_type(combatant, RemarkableAthleteFeature) is not None


# =============================================================================
# USAGE TRACKING
# =============================================================================

def initialize_class_feature_uses(combatant: Combatant) -> Dict[str, int]:
    """Starting use counts for every limited feature the combatant has."""
    uses: Dict[str, int] = {}
    for feature in get_combatant_class_features(combatant):
        if feature.max_uses is None:
            continue
        if isinstance(feature, SecondWindFeature):
            uses[feature.id] = get_second_wind_max_uses(combatant)
        elif isinstance(feature, IndomitableFeature):
            uses[feature.id] = get_indomitable_max_uses(combatant)
        elif isinstance(feature, ActionSurgeFeature):
            uses[feature.id] = get_action_surge_max_uses(combatant)
        else:
            uses[feature.id] = feature.max_uses
    return uses


def use_class_feature(
    combatant: Combatant,
    feature_id: str,
    uses: Optional[Dict[str, int]] = None
) -> Tuple[Dict[str, int], int]:
    """
    Spend one use of a feature.

    Returns:
        (new uses dict, uses remaining); unlimited or unknown features
        return the pool unchanged with -1 remaining
    """
    pool = dict(combatant.class_feature_uses if uses is None else uses)
    feature = next((f for f in get_combatant_class_features(combatant) if f.id == feature_id), None)
    if feature is None or feature.max_uses is None:
        return pool, UNLIMITED

    max_uses = get_max_uses_at_level(
        feature.max_uses, getattr(feature, "max_uses_at_levels", None), combatant.level
    )
    remaining = max(0, pool.get(feature_id, max_uses) - 1)
    pool[feature_id] = remaining
    logger.debug("%s used %s (%d left)", combatant.name, feature_id, remaining)
    return pool, remaining
