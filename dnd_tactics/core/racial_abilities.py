"""
Racial abilities in combat.

Queries over a character's race: resistances, advantage on certain saves,
Lucky-style rerolls, Relentless Endurance, Savage Attacks and Breath
Weapon. Limited abilities track their remaining uses in
``combatant.racial_ability_uses``.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Type, TypeVar

from dnd_tactics.core.dice import roll
from dnd_tactics.models.combatant import Combatant
from dnd_tactics.models.common import AbilityName, Condition, DamageType
from dnd_tactics.models.features import (
    BonusDamageAbility,
    BreathWeaponAbility,
    RacialAbility,
    RerollAbility,
    ResistanceAbility,
    SaveAdvantageAbility,
    TriggeredHealAbility,
)

A = TypeVar("A")


@dataclass(frozen=True)
class ResistanceResult:
    damage: int
    applied: Optional[ResistanceAbility] = None


@dataclass(frozen=True)
class BreathWeaponStatus:
    available: bool
    ability: Optional[BreathWeaponAbility] = None
    uses_remaining: int = 0


def get_combatant_racial_abilities(combatant: Combatant) -> List[RacialAbility]:
    character = combatant.character
    return list(character.race.abilities) if character else []


def get_abilities_of_type(combatant: Combatant, ability_type: Type[A]) -> List[A]:
    return [a for a in get_combatant_racial_abilities(combatant) if isinstance(a, ability_type)]


def _has_uses(ability, uses: Dict[str, int]) -> bool:
    if ability.max_uses is None:
        return True
    return uses.get(ability.id, ability.max_uses) > 0


def apply_damage_resistance(
    combatant: Combatant,
    damage: int,
    damage_type: DamageType,
    uses: Optional[Dict[str, int]] = None
) -> ResistanceResult:
    """Halve (resistance) or zero (immunity) damage of a matching type."""
    pool = combatant.racial_ability_uses if uses is None else uses
    for ability in get_abilities_of_type(combatant, ResistanceAbility):
        if DamageType(damage_type) not in ability.damage_types:
            continue
        if not _has_uses(ability, pool):
            continue
        if ability.resistance_level == "immunity":
            return ResistanceResult(damage=0, applied=ability)
        return ResistanceResult(damage=damage // 2, applied=ability)
    return ResistanceResult(damage=damage)


def check_save_advantage(
    combatant: Combatant,
    condition: Optional[Condition] = None,
    damage_type: Optional[DamageType] = None,
    is_magic: bool = False
) -> Optional[SaveAdvantageAbility]:
    """The racial ability granting advantage on this save, if any."""
    for ability in get_abilities_of_type(combatant, SaveAdvantageAbility):
        if condition is not None and Condition(condition) in ability.conditions:
            return ability
        if damage_type is not None and DamageType(damage_type) in ability.damage_types:
            return ability
        if is_magic and ability.magic_saves:
            return ability
    return None


def check_reroll_eligible(
    combatant: Combatant,
    roll_type: str,
    dice_value: int
) -> Optional[RerollAbility]:
    """Lucky: the reroll ability that covers this natural roll, if any."""
    for ability in get_abilities_of_type(combatant, RerollAbility):
        if roll_type in ability.applies_to and dice_value <= ability.trigger_value:
            return ability
    return None


def check_relentless_endurance(
    combatant: Combatant,
    uses: Optional[Dict[str, int]] = None
) -> Optional[TriggeredHealAbility]:
    """A usable drop-to-zero heal ability, if the combatant has one."""
    pool = combatant.racial_ability_uses if uses is None else uses
    for ability in get_abilities_of_type(combatant, TriggeredHealAbility):
        if ability.trigger_condition == "drop_to_zero" and _has_uses(ability, pool):
            return ability
    return None


def check_savage_attacks(combatant: Combatant, is_critical: bool) -> Optional[BonusDamageAbility]:
    if not is_critical:
        return None
    for ability in get_abilities_of_type(combatant, BonusDamageAbility):
        if ability.trigger_condition == "critical_hit":
            return ability
    return None


def roll_savage_attacks_damage(
    ability: BonusDamageAbility,
    weapon_damage_die: Optional[str] = None
) -> Tuple[int, List[int]]:
    """Roll one extra weapon damage die (or the ability's own dice)."""
    result = roll(weapon_damage_die or ability.bonus_dice)
    return result.total, list(result.rolls)


def get_breath_weapon(
    combatant: Combatant,
    uses: Optional[Dict[str, int]] = None
) -> BreathWeaponStatus:
    """The combatant's breath weapon and how many uses it has left."""
    abilities = get_abilities_of_type(combatant, BreathWeaponAbility)
    if not abilities:
        return BreathWeaponStatus(available=False)
    ability = abilities[0]
    pool = combatant.racial_ability_uses if uses is None else uses
    max_uses = ability.max_uses if ability.max_uses is not None else 1
    remaining = pool.get(ability.id, max_uses)
    return BreathWeaponStatus(available=remaining > 0, ability=ability, uses_remaining=remaining)


def calculate_breath_weapon_dc(combatant: Combatant, ability: BreathWeaponAbility) -> int:
    """8 + the DC ability modifier + proficiency bonus; 10 for monsters."""
    character = combatant.character
    if character is None:
        return 10
    return 8 + combatant.ability_modifier(AbilityName(ability.dc_ability)) + character.proficiency_bonus


def get_breath_weapon_damage(combatant: Combatant, ability: BreathWeaponAbility) -> str:
    """Damage dice for the combatant's level (the highest threshold reached)."""
    dice = ability.damage_dice
    for threshold in sorted(ability.damage_scaling):
        if combatant.level >= threshold:
            dice = ability.damage_scaling[threshold]
    return dice


def roll_breath_weapon_damage(combatant: Combatant, ability: BreathWeaponAbility) -> Tuple[int, List[int]]:
    result = roll(get_breath_weapon_damage(combatant, ability))
    return result.total, list(result.rolls)


def initialize_racial_ability_uses(combatant: Combatant) -> Dict[str, int]:
    return {
        a.id: a.max_uses
        for a in get_combatant_racial_abilities(combatant)
        if a.max_uses is not None
    }


def can_use_racial_ability(
    combatant: Combatant,
    ability_id: str,
    uses: Optional[Dict[str, int]] = None
) -> bool:
    pool = combatant.racial_ability_uses if uses is None else uses
    ability = next((a for a in get_combatant_racial_abilities(combatant) if a.id == ability_id), None)
    return ability is not None and _has_uses(ability, pool)


def use_racial_ability(
    combatant: Combatant,
    ability_id: str,
    uses: Optional[Dict[str, int]] = None
) -> Tuple[Dict[str, int], int]:
    """
    Spend one use of a racial ability.

    Returns:
        (new uses dict, uses remaining); -1 for unlimited or unknown abilities
    """
    pool = dict(combatant.racial_ability_uses if uses is None else uses)
    ability = next((a for a in get_combatant_racial_abilities(combatant) if a.id == ability_id), None)
    if ability is None or ability.max_uses is None:
        return pool, -1
    remaining = max(0, pool.get(ability_id, ability.max_uses) - 1)
    pool[ability_id] = remaining
    return pool, remaining
