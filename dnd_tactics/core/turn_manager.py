"""
Turn Manager.

Per-turn state transitions for one combatant:
- Reset of per-turn action economy and one-shot flags
- Condition duration ticking (only at the owner's own turn start)
- Start-of-turn triggered features (Heroic Warrior, Heroic Rally)
- Skip detection for the dead
- Initiative rolls, combat-start resources and turn order (with Alert)
- Turn advancement

Everything returns values; the orchestrator folds them into its roster.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from dnd_tactics.core.class_features import get_survivor_feature, has_heroic_warrior
from dnd_tactics.core.combat_log import LogEntry, LogEntryType
from dnd_tactics.core.damage_resolution import is_dead
from dnd_tactics.core.dice import roll_d20
from dnd_tactics.core.maneuvers import check_relentless
from dnd_tactics.core.origin_feats import (
    get_initiative_total,
    initialize_feat_uses,
    starts_with_heroic_inspiration,
)
from dnd_tactics.core.racial_abilities import initialize_racial_ability_uses
from dnd_tactics.models.combatant import ActiveCondition, Combatant
from dnd_tactics.models.common import AbilityName, Condition

logger = logging.getLogger(__name__)


@dataclass
class ConditionExpiry:
    conditions: List[ActiveCondition]
    expired_condition_names: List[str] = field(default_factory=list)
    evasive_expired: bool = False


@dataclass
class StartOfTurnEffect:
    """A passive feature that fires as a turn begins."""
    type: str  # "heroic_warrior" or "heroic_rally"
    combatant_id: str
    combatant_name: str
    log_type: LogEntryType
    message: str
    grant_heroic_inspiration: bool = False
    heal_amount: Optional[int] = None
    new_hp: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "combatant_id": self.combatant_id,
            "combatant_name": self.combatant_name,
            "log_type": self.log_type.value,
            "message": self.message,
            "grant_heroic_inspiration": self.grant_heroic_inspiration,
            "heal_amount": self.heal_amount,
            "new_hp": self.new_hp,
        }


@dataclass
class TurnStartResult:
    """The combatant as its turn begins, plus what happened on the way."""
    combatant: Combatant
    expired_condition_names: List[str] = field(default_factory=list)
    effects: List[StartOfTurnEffect] = field(default_factory=list)
    relentless_triggered: bool = False
    log_entries: List[LogEntry] = field(default_factory=list)


def get_turn_reset_fields() -> Dict[str, Any]:
    """
    The patch applied when a combatant's turn resets.

    ``has_reacted`` is not part of it: a reaction stays spent until the
    combatant's own next turn starts, which ``start_turn`` handles.
    """
    return {
        "has_acted": False,
        "has_bonus_acted": False,
        "movement_used": 0,
        "attacks_made_this_turn": 0,
        "used_sneak_attack_this_turn": False,
        "used_cleave_this_turn": False,
        "used_nick_this_turn": False,
        "used_maneuver_this_attack": False,
        "feint_target": None,
        "feint_bonus_damage": None,
        "lunging_attack_bonus": None,
        "used_savage_attacker_this_turn": False,
        "used_tavern_brawler_push_this_turn": False,
    }


def calculate_condition_expiry(combatant: Combatant) -> ConditionExpiry:
    """
    Tick every timed condition down by one.

    Durations of 1 expire now; -1 and None never expire on their own.
    """
    kept = []
    expired = []
    for active in combatant.conditions:
        if active.duration is None or active.duration == -1:
            kept.append(active)
            continue
        remaining = active.duration - 1
        if remaining <= 0:
            expired.append(active.condition.value)
            continue
        kept.append(active.model_copy(update={"duration": remaining}))

    return ConditionExpiry(
        conditions=kept,
        expired_condition_names=expired,
        evasive_expired=Condition.EVASIVE.value in expired,
    )


def calculate_start_of_turn_effects(combatant: Combatant) -> List[StartOfTurnEffect]:
    """Heroic Warrior first, then Heroic Rally; either, both or neither."""
    effects = []

    if not combatant.heroic_inspiration and has_heroic_warrior(combatant):
        effects.append(StartOfTurnEffect(
            type="heroic_warrior",
            combatant_id=combatant.id,
            combatant_name=combatant.name,
            log_type=LogEntryType.OTHER,
            message=f"Heroic Warrior: {combatant.name} gains Heroic Inspiration",
            grant_heroic_inspiration=True,
        ))

    survivor = get_survivor_feature(combatant)
    if survivor is not None and 0 < combatant.current_hp <= combatant.max_hp // 2:
        healing = survivor.rally_heal_base + combatant.ability_modifier(AbilityName.CONSTITUTION)
        new_hp = min(combatant.current_hp + max(0, healing), combatant.max_hp)
        actual = new_hp - combatant.current_hp
        effects.append(StartOfTurnEffect(
            type="heroic_rally",
            combatant_id=combatant.id,
            combatant_name=combatant.name,
            log_type=LogEntryType.HEAL,
            message=(
                f"Heroic Rally: {combatant.name} regains {actual} HP "
                f"({combatant.current_hp} -> {new_hp})"
            ),
            heal_amount=actual,
            new_hp=new_hp,
        ))

    return effects


def should_skip_turn(combatant: Combatant) -> bool:
    """Only the dead skip; an unconscious character still rolls death saves."""
    return is_dead(combatant)


def start_turn(combatant: Combatant) -> TurnStartResult:
    """
    Begin a combatant's turn.

    Order: per-turn reset and reaction refresh, condition ticking, Evasive
    Footwork cleanup, Relentless, then start-of-turn effects.
    """
    update = get_turn_reset_fields()
    update["has_reacted"] = False

    expiry = calculate_condition_expiry(combatant)
    update["conditions"] = expiry.conditions
    # The AC bonus lasts until the start of the combatant's next turn
    update["evasive_footwork_bonus"] = None

    log_entries = []
    for name in expiry.expired_condition_names:
        log_entries.append(LogEntry(
            type=LogEntryType.CONDITION,
            message=f"{combatant.name} is no longer {name}",
            actor_id=combatant.id,
            actor_name=combatant.name,
        ))

    relentless = check_relentless(combatant)
    if relentless:
        update["superiority_dice_remaining"] = 1
        log_entries.append(LogEntry(
            type=LogEntryType.ABILITY,
            message=f"Relentless: {combatant.name} regains a superiority die",
            actor_id=combatant.id,
            actor_name=combatant.name,
        ))

    updated = combatant.model_copy(update=update)

    effects = calculate_start_of_turn_effects(updated)
    for effect in effects:
        if effect.grant_heroic_inspiration:
            updated = updated.model_copy(update={"heroic_inspiration": True})
        if effect.new_hp is not None:
            updated = updated.model_copy(update={"current_hp": effect.new_hp})
        log_entries.append(LogEntry(
            type=effect.log_type,
            message=effect.message,
            actor_id=combatant.id,
            actor_name=combatant.name,
        ))

    logger.debug("Turn start for %s (%d effects)", combatant.name, len(effects))
    return TurnStartResult(
        combatant=updated,
        expired_condition_names=expiry.expired_condition_names,
        effects=effects,
        relentless_triggered=relentless,
        log_entries=log_entries,
    )


def roll_initiative(combatant: Combatant) -> int:
    """d20 + DEX modifier. Alert is added when the order is built, not stored."""
    return roll_d20(modifier=combatant.ability_modifier(AbilityName.DEXTERITY)).total


def prepare_for_combat(combatant: Combatant) -> Combatant:
    """Roll initiative and fill per-combat resources: racial and feat uses, Heroic Inspiration."""
    return combatant.model_copy(update={
        "initiative": roll_initiative(combatant),
        "racial_ability_uses": initialize_racial_ability_uses(combatant),
        "feat_uses": initialize_feat_uses(combatant),
        "heroic_inspiration": combatant.heroic_inspiration or starts_with_heroic_inspiration(combatant),
    })


def build_turn_order(combatants: Sequence[Combatant]) -> List[str]:
    """
    Combatant ids by initiative, highest first. The dead are left out.

    Alert adds the proficiency bonus on top of the stored roll; DEX breaks ties.
    """
    living = [c for c in combatants if not is_dead(c)]
    ordered = sorted(
        living,
        key=lambda c: (get_initiative_total(c), c.ability_scores.dexterity),
        reverse=True,
    )
    return [c.id for c in ordered]


def get_next_turn_index(
    turn_order: Sequence[str],
    combatants: Sequence[Combatant],
    current_index: int
) -> Tuple[Optional[int], bool]:
    """
    Find whose turn is next, skipping anyone who should not act.

    Returns:
        (next index, whether a new round started); index is None when no
        one in the order can act
    """
    if not turn_order:
        return None, False

    by_id = {c.id: c for c in combatants}
    wrapped = False
    index = current_index
    for _ in range(len(turn_order)):
        index += 1
        if index >= len(turn_order):
            index = 0
            wrapped = True
        candidate = by_id.get(turn_order[index])
        if candidate is not None and not should_skip_turn(candidate):
            return index, wrapped
    return None, wrapped
