"""
Death Saving Throws.

A character at 0 HP who is neither stable nor dead rolls a death save at
the start of each of its turns:
- DC 10 (configurable) d20 roll
- Natural 20: Regain 1 HP and consciousness
- Natural 1: Counts as 2 failures
- 3 successes: Stabilize (unconscious but no longer dying)
- 3 failures: Death

Damage taken while down is handled by damage resolution, not here.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple
import logging

from dnd_tactics.core.damage_resolution import DEATH_SAVE_FAILURES_TO_DIE, is_dead
from dnd_tactics.core.dice import roll_d20
from dnd_tactics.core.rules_config import get_rules_config
from dnd_tactics.models.combatant import ActiveCondition, Combatant, DeathSaves
from dnd_tactics.models.common import Condition

logger = logging.getLogger(__name__)

SUCCESSES_TO_STABILIZE = 3


class DeathSaveOutcome(str, Enum):
    """Possible outcomes of a death save."""
    CONTINUE = "continue"  # Still dying, need more saves
    STABILIZED = "stabilized"  # 3 successes, unconscious but stable
    REVIVED = "revived"  # Natural 20, regain 1 HP
    DEAD = "dead"  # 3 failures, character dies


@dataclass
class DeathSaveResult:
    """Result of a single death saving throw."""
    roll: int  # The natural d20 roll
    modified_roll: int
    modifier: int
    dc: int
    success: bool
    critical_success: bool  # Natural 20
    critical_failure: bool  # Natural 1
    total_successes: int  # After this save
    total_failures: int  # After this save
    outcome: DeathSaveOutcome
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roll": self.roll,
            "modified_roll": self.modified_roll,
            "modifier": self.modifier,
            "dc": self.dc,
            "success": self.success,
            "critical_success": self.critical_success,
            "critical_failure": self.critical_failure,
            "total_successes": self.total_successes,
            "total_failures": self.total_failures,
            "outcome": self.outcome.value,
            "description": self.description,
        }


def needs_death_save(combatant: Combatant) -> bool:
    """Only dying characters roll: at 0 HP, not stable, not dead."""
    return (
        combatant.is_character
        and combatant.current_hp == 0
        and not combatant.is_stable
        and not is_dead(combatant)
    )


def roll_death_save(
    combatant: Combatant,
    modifier: int = 0,
    advantage: bool = False,
    disadvantage: bool = False
) -> Tuple[DeathSaveResult, Combatant]:
    """
    Make a death saving throw for a dying character.

    Args:
        combatant: The dying character
        modifier: Bonus to the roll (rare, but some features grant this)
        advantage: Roll twice, take higher
        disadvantage: Roll twice, take lower

    Returns:
        (result, updated combatant)
    """
    dc = get_rules_config().death_save_dc
    d20 = roll_d20(modifier=modifier, advantage=advantage, disadvantage=disadvantage)
    natural = d20.natural_roll
    successes = combatant.death_saves.successes
    failures = combatant.death_saves.failures

    if d20.natural_20:
        revived = combatant.model_copy(update={
            "current_hp": min(1, combatant.max_hp),
            "death_saves": DeathSaves(),
            "is_stable": False,
            "conditions": [
                c for c in combatant.conditions if c.condition != Condition.UNCONSCIOUS
            ],
        })
        logger.debug("%s revived on a natural 20", combatant.name)
        result = DeathSaveResult(
            roll=natural,
            modified_roll=d20.total,
            modifier=modifier,
            dc=dc,
            success=True,
            critical_success=True,
            critical_failure=False,
            total_successes=0,
            total_failures=0,
            outcome=DeathSaveOutcome.REVIVED,
            description=f"Natural 20! {combatant.name} regains 1 HP and wakes up!",
        )
        return result, revived

    if d20.natural_1:
        success = False
        failures += 2
    else:
        success = d20.total >= dc
        if success:
            successes += 1
        else:
            failures += 1

    failures = min(failures, DEATH_SAVE_FAILURES_TO_DIE)
    update = {"death_saves": DeathSaves(successes=successes, failures=failures)}

    if failures >= DEATH_SAVE_FAILURES_TO_DIE:
        outcome = DeathSaveOutcome.DEAD
        update["conditions"] = [
            c for c in combatant.conditions if c.condition != Condition.PRONE
        ] + [ActiveCondition(condition=Condition.PRONE, duration=-1)]
        description = f"Failure! ({failures}/3) - {combatant.name} has died!"
        logger.debug("%s died from failed death saves", combatant.name)
    elif successes >= SUCCESSES_TO_STABILIZE:
        outcome = DeathSaveOutcome.STABILIZED
        update["is_stable"] = True
        description = f"Success! ({successes}/3) - {combatant.name} is now stable"
    else:
        outcome = DeathSaveOutcome.CONTINUE
        label = "Natural 1! Two failures" if d20.natural_1 else ("Success!" if success else "Failure!")
        description = f"{label} ({successes}/3 successes, {failures}/3 failures)"

    result = DeathSaveResult(
        roll=natural,
        modified_roll=d20.total,
        modifier=modifier,
        dc=dc,
        success=success,
        critical_success=False,
        critical_failure=d20.natural_1,
        total_successes=successes,
        total_failures=failures,
        outcome=outcome,
        description=description,
    )
    return result, combatant.model_copy(update=update)


def stabilize(combatant: Combatant) -> Combatant:
    """Stabilize a dying character (Spare the Dying, Medicine check)."""
    if not needs_death_save(combatant):
        return combatant
    return combatant.model_copy(update={
        "is_stable": True,
        "death_saves": DeathSaves(),
    })
