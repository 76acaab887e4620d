"""
Saving throws for combatants.

Characters add proficiency on their class's (or their own) proficient
saves; monsters use their stat block's listed save bonus when present.
Racial advantage (Fey Ancestry, Brave, Gnome Cunning, ...) and Lucky
rerolls are folded in here so every caller gets them.
"""
from dataclasses import dataclass
from typing import Optional
import logging

from dnd_tactics.core.dice import D20Result, RollMode, roll_d20, roll_die
from dnd_tactics.core.racial_abilities import check_reroll_eligible, check_save_advantage
from dnd_tactics.models.combatant import Combatant
from dnd_tactics.models.common import AbilityName, Condition, DamageType

logger = logging.getLogger(__name__)


@dataclass
class SavingThrowResult:
    roll: D20Result
    success: bool
    dc: int
    modifier: int


def get_saving_throw_modifier(combatant: Combatant, ability: AbilityName) -> int:
    """Ability modifier, plus proficiency or the monster's listed save bonus."""
    ability = AbilityName(ability)
    base = combatant.ability_modifier(ability)

    character = combatant.character
    if character is not None:
        proficient = (
            ability in character.saving_throw_proficiencies
            or ability in character.character_class.saving_throw_proficiencies
        )
        return base + character.proficiency_bonus if proficient else base

    listed = combatant.monster.saving_throws.get(ability)
    return listed if listed is not None else base


def roll_combatant_saving_throw(
    combatant: Combatant,
    ability: AbilityName,
    dc: int,
    mode: RollMode = RollMode.NORMAL,
    condition: Optional[Condition] = None,
    damage_type: Optional[DamageType] = None,
    is_magic: bool = False
) -> SavingThrowResult:
    """
    Roll a save against a DC.

    Args:
        combatant: Who is saving
        ability: Which ability the save uses
        dc: Difficulty class
        mode: Advantage/disadvantage from the caller
        condition: Condition the save resists (for racial advantage)
        damage_type: Damage type the save resists (for racial advantage)
        is_magic: Whether the effect is a spell (Gnome Cunning style)
    """
    modifier = get_saving_throw_modifier(combatant, ability)

    advantage = mode is RollMode.ADVANTAGE
    disadvantage = mode is RollMode.DISADVANTAGE
    if check_save_advantage(combatant, condition, damage_type, is_magic) is not None:
        advantage = True

    result = roll_d20(modifier=modifier, advantage=advantage, disadvantage=disadvantage)

    if result.natural_1 and check_reroll_eligible(combatant, "saving_throw", 1) is not None:
        result = result.with_reroll(roll_die(20))
        logger.debug("%s rerolls a natural 1 on a save", combatant.name)

    return SavingThrowResult(
        roll=result,
        success=result.total >= dc,
        dc=dc,
        modifier=modifier,
    )
