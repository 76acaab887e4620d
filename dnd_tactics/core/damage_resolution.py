"""
Damage Resolution.

Turns a damage amount into the state changes it causes: new HP,
unconsciousness, monster death, death-save failures for characters already
down, and Relentless Endurance. The result describes the change; the
caller applies it (``apply_damage_application``) and appends the deferred
log entries after its own damage message.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import logging

from dnd_tactics.core.combat_log import LogEntry, LogEntryType
from dnd_tactics.core.racial_abilities import (
    apply_damage_resistance,
    check_relentless_endurance,
    use_racial_ability,
)
from dnd_tactics.models.combatant import ActiveCondition, Combatant, DeathSaves
from dnd_tactics.models.common import Condition, DamageType

logger = logging.getLogger(__name__)

DEATH_SAVE_FAILURES_TO_DIE = 3


@dataclass
class DamageApplication:
    """Everything that follows from one instance of damage."""
    new_hp: int
    was_conscious: bool
    fell_unconscious: bool = False
    monster_died: bool = False
    character_died: bool = False
    death_save_failure_added: bool = False
    new_death_save_failures: int = 0
    relentless_endurance_used: bool = False
    new_racial_ability_uses: Dict[str, int] = field(default_factory=dict)
    new_conditions: List[ActiveCondition] = field(default_factory=list)
    deferred_log_entries: List[LogEntry] = field(default_factory=list)


def is_dead(combatant: Combatant) -> bool:
    """
    Monsters die at 0 HP; characters only at three death-save failures.

    A character at 0 HP with fewer failures is unconscious, not dead.
    """
    if combatant.is_monster:
        return combatant.current_hp <= 0
    return combatant.death_saves.failures >= DEATH_SAVE_FAILURES_TO_DIE


def check_combat_end(combatants: Sequence[Combatant]) -> Optional[str]:
    """
    Returns:
        "victory" when every monster is dead, "defeat" when every character
        is dead, None while the fight goes on
    """
    characters = [c for c in combatants if c.is_character]
    monsters = [c for c in combatants if c.is_monster]

    if monsters and all(is_dead(m) for m in monsters):
        return "victory"
    if characters and all(is_dead(c) for c in characters):
        return "defeat"
    return None


def _with_prone(conditions: List[ActiveCondition]) -> List[ActiveCondition]:
    kept = [c for c in conditions if c.condition != Condition.PRONE]
    return kept + [ActiveCondition(condition=Condition.PRONE, duration=-1)]


def calculate_damage_application(target: Combatant, amount: int) -> DamageApplication:
    """
    Work out the effect of ``amount`` damage on ``target``.

    Rules, in order:
    1. HP never drops below 0; zero or negative damage changes nothing.
    2. A conscious character with a drop-to-zero heal (Relentless Endurance)
       falls to its heal amount instead of 0 and spends a use.
    3. A character reaching 0 falls unconscious. A character already at 0
       and not stable takes one death-save failure; the third kills it.
    4. A monster reaching 0 dies.
    5. Existing conditions are kept; new ones are appended.
    """
    was_conscious = target.current_hp > 0
    application = DamageApplication(
        new_hp=target.current_hp,
        was_conscious=was_conscious,
        new_death_save_failures=target.death_saves.failures,
        new_racial_ability_uses=dict(target.racial_ability_uses),
        new_conditions=list(target.conditions),
    )
    if amount <= 0:
        return application

    log = application.deferred_log_entries
    new_hp = max(0, target.current_hp - amount)

    if new_hp == 0 and was_conscious and target.is_character:
        ability = check_relentless_endurance(target)
        if ability is not None:
            new_hp = ability.heal_amount
            application.new_racial_ability_uses, _ = use_racial_ability(target, ability.id)
            application.relentless_endurance_used = True
            log.append(LogEntry(
                type=LogEntryType.ABILITY,
                message=(
                    f"{target.name} uses {ability.name} and drops to {new_hp} HP "
                    f"instead of falling unconscious!"
                ),
                actor_id=target.id,
                actor_name=target.name,
            ))

    application.new_hp = new_hp

    if new_hp == 0 and was_conscious:
        if target.is_monster:
            application.monster_died = True
            application.new_conditions = _with_prone(application.new_conditions)
            log.append(LogEntry(
                type=LogEntryType.DEATH,
                message=f"{target.name} has been slain!",
                actor_id=target.id,
                actor_name=target.name,
            ))
            logger.debug("%s died", target.name)
        else:
            application.fell_unconscious = True
            application.new_conditions.append(
                ActiveCondition(condition=Condition.UNCONSCIOUS, duration=-1)
            )
            log.append(LogEntry(
                type=LogEntryType.DEATH,
                message=f"{target.name} falls unconscious!",
                actor_id=target.id,
                actor_name=target.name,
            ))

    already_down = (
        target.is_character
        and not was_conscious
        and not target.is_stable
        and not is_dead(target)
    )
    if already_down:
        failures = target.death_saves.failures + 1
        application.death_save_failure_added = True
        application.new_death_save_failures = failures
        if failures >= DEATH_SAVE_FAILURES_TO_DIE:
            application.character_died = True
            application.new_conditions = _with_prone(application.new_conditions)
            log.append(LogEntry(
                type=LogEntryType.DEATH,
                message=f"{target.name} has died from damage while unconscious!",
                actor_id=target.id,
                actor_name=target.name,
            ))
            logger.debug("%s died from damage at 0 HP", target.name)
        else:
            log.append(LogEntry(
                type=LogEntryType.DEATH_SAVE,
                message=(
                    f"{target.name} takes damage while unconscious - death save failure! "
                    f"({failures}/{DEATH_SAVE_FAILURES_TO_DIE})"
                ),
                actor_id=target.id,
                actor_name=target.name,
            ))

    return application


def apply_damage_application(target: Combatant, application: DamageApplication) -> Combatant:
    """Fold a damage application into a new combatant."""
    return target.model_copy(update={
        "current_hp": application.new_hp,
        "conditions": list(application.new_conditions),
        "racial_ability_uses": dict(application.new_racial_ability_uses),
        "death_saves": DeathSaves(
            successes=target.death_saves.successes,
            failures=application.new_death_save_failures,
        ),
    })


def get_damage_after_resistances(
    target: Combatant,
    amount: int,
    damage_type: Optional[DamageType] = None
) -> int:
    """
    Damage left after resistances, immunities and vulnerabilities.

    Racial resistances apply to characters; monsters use their stat block.
    """
    if damage_type is None or amount <= 0:
        return amount
    damage_type = DamageType(damage_type)
    monster = target.monster
    if monster is None:
        return apply_damage_resistance(target, amount, damage_type).damage
    if damage_type in monster.damage_immunities:
        return 0
    if damage_type in monster.damage_resistances:
        return amount // 2
    if damage_type in monster.damage_vulnerabilities:
        return amount * 2
    return amount


def apply_typed_damage(
    target: Combatant,
    amount: int,
    damage_type: Optional[DamageType] = None
) -> DamageApplication:
    """Resolve damage of a given type against ``target``."""
    return calculate_damage_application(
        target, get_damage_after_resistances(target, amount, damage_type)
    )


def apply_healing(target: Combatant, amount: int) -> Combatant:
    """
    Heal up to max HP.

    Healing a character at 0 HP wakes it up: death saves reset and
    unconsciousness ends. The dead stay dead.
    """
    if amount <= 0 or is_dead(target):
        return target
    new_hp = min(target.max_hp, target.current_hp + amount)
    update = {"current_hp": new_hp}
    if target.current_hp == 0 and target.is_character:
        update["death_saves"] = DeathSaves()
        update["is_stable"] = False
        update["conditions"] = [
            c for c in target.conditions if c.condition != Condition.UNCONSCIOUS
        ]
    return target.model_copy(update=update)
