"""
Battle Master Maneuver Engine.

Superiority dice economy and maneuver resolution:
- Die size, pool size and maneuvers known scale with level
- Save DC = 8 + proficiency + max(STR, DEX)
- On-hit maneuvers add the die to damage and may force a save
- Reaction, pre-attack and bonus-action maneuvers return the rolled value
  for the caller to apply (AC bonus, damage reduction, attack bonus)

Results describe what happened; the caller spends the die with
``spend_superiority_die`` and applies conditions or movement.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import logging

from dnd_tactics.core.class_features import get_feature_of_type, get_max_uses_at_level
from dnd_tactics.core.dice import roll, roll_saving_throw
from dnd_tactics.core.grid import CombatGrid, Position, get_push_destination, is_adjacent
from dnd_tactics.core.pathfinding import get_occupied_positions
from dnd_tactics.core.rules_config import get_rules_config
from dnd_tactics.data.maneuvers import get_maneuver_by_id
from dnd_tactics.models.combatant import ActiveCondition, Combatant
from dnd_tactics.models.common import AbilityName, DamageType
from dnd_tactics.models.creatures import get_proficiency_bonus
from dnd_tactics.models.features import CombatSuperiorityFeature, RelentlessFeature
from dnd_tactics.models.maneuvers import Maneuver, ManeuverTrigger

logger = logging.getLogger(__name__)


@dataclass
class ManeuverCheck:
    can_use: bool
    reason: Optional[str] = None


@dataclass
class ManeuverSaveResult:
    success: bool
    roll: int
    total: int
    dc: int


@dataclass
class ManeuverResult:
    """Outcome of using one maneuver."""
    success: bool
    maneuver_id: str
    maneuver_name: str
    superiority_die_roll: int
    superiority_die_size: int
    message: str = ""
    bonus_damage: Optional[int] = None
    attack_bonus: Optional[int] = None
    ac_bonus: Optional[int] = None
    damage_reduced: Optional[int] = None
    saving_throw_made: Optional[bool] = None
    condition_applied: Optional[str] = None
    conditions_applied: List[ActiveCondition] = field(default_factory=list)
    push_applied: bool = False
    push_destination: Optional[Position] = None
    sweep_target_id: Optional[str] = None
    sweep_damage: Optional[int] = None
    sweep_damage_type: Optional[DamageType] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "maneuver_id": self.maneuver_id,
            "maneuver_name": self.maneuver_name,
            "superiority_die_roll": self.superiority_die_roll,
            "superiority_die_size": self.superiority_die_size,
            "message": self.message,
            "bonus_damage": self.bonus_damage,
            "attack_bonus": self.attack_bonus,
            "ac_bonus": self.ac_bonus,
            "damage_reduced": self.damage_reduced,
            "saving_throw_made": self.saving_throw_made,
            "condition_applied": self.condition_applied,
            "conditions_applied": [c.model_dump(mode="json") for c in self.conditions_applied],
            "push_applied": self.push_applied,
            "push_destination": list(self.push_destination) if self.push_destination else None,
            "sweep_target_id": self.sweep_target_id,
            "sweep_damage": self.sweep_damage,
            "sweep_damage_type": self.sweep_damage_type.value if self.sweep_damage_type else None,
        }


@dataclass
class SuperiorityRoll:
    total: int
    rolls: List[int]
    die_size: int


# =============================================================================
# FEATURE DETECTION
# =============================================================================

def get_combat_superiority_feature(combatant: Combatant) -> Optional[CombatSuperiorityFeature]:
    return get_feature_of_type(combatant, CombatSuperiorityFeature)


def get_relentless_feature(combatant: Combatant) -> Optional[RelentlessFeature]:
    return get_feature_of_type(combatant, RelentlessFeature)


def has_combat_superiority(combatant: Combatant) -> bool:
    return get_combat_superiority_feature(combatant) is not None


# =============================================================================
# SUPERIORITY DICE
# =============================================================================

def get_superiority_die_size(combatant: Combatant) -> int:
    """d8, d10 from level 10, d12 from level 18; 0 without the feature."""
    feature = get_combat_superiority_feature(combatant)
    if feature is None:
        return 0
    return get_max_uses_at_level(
        feature.superiority_die_size, feature.superiority_die_size_at_levels, combatant.level
    )


def get_max_superiority_dice(combatant: Combatant) -> int:
    """4 dice, 5 from level 7, 6 from level 15."""
    feature = get_combat_superiority_feature(combatant)
    if feature is None:
        return 0
    return get_max_uses_at_level(
        feature.superiority_dice_count, feature.superiority_dice_at_levels, combatant.level
    )


def get_maneuvers_known_count(combatant: Combatant) -> int:
    """3 maneuvers, then 5 at 7, 7 at 10 and 9 at 15."""
    feature = get_combat_superiority_feature(combatant)
    if feature is None:
        return 0
    return get_max_uses_at_level(
        feature.maneuvers_known, feature.maneuvers_known_at_levels, combatant.level
    )


def initialize_superiority_dice(combatant: Combatant) -> int:
    return get_max_superiority_dice(combatant)


def check_relentless(combatant: Combatant) -> bool:
    """
    Relentless: True when the combatant should regain one die.

    The caller sets ``superiority_dice_remaining`` to 1.
    """
    if get_relentless_feature(combatant) is None:
        return False
    return combatant.superiority_dice_remaining == 0


def get_maneuver_save_dc(combatant: Combatant) -> int:
    """8 + proficiency bonus + the better of STR and DEX."""
    if not combatant.is_character:
        return get_rules_config().monster_maneuver_save_dc
    strength = combatant.ability_modifier(AbilityName.STRENGTH)
    dexterity = combatant.ability_modifier(AbilityName.DEXTERITY)
    return 8 + get_proficiency_bonus(combatant.level) + max(strength, dexterity)


def roll_superiority_die(combatant: Combatant) -> SuperiorityRoll:
    die_size = get_superiority_die_size(combatant)
    if die_size == 0:
        return SuperiorityRoll(total=0, rolls=[], die_size=0)
    result = roll(f"1d{die_size}")
    return SuperiorityRoll(total=result.total, rolls=list(result.rolls), die_size=die_size)


def spend_superiority_die(combatant: Combatant) -> Combatant:
    """Use one die from the pool (never below 0)."""
    return combatant.model_copy(update={
        "superiority_dice_remaining": max(0, combatant.superiority_dice_remaining - 1),
        "used_maneuver_this_attack": True,
    })


# =============================================================================
# AVAILABILITY
# =============================================================================

def can_use_maneuver(combatant: Combatant, maneuver_id: str) -> ManeuverCheck:
    """Check the feature, the dice pool, the known list and reaction economy."""
    if not has_combat_superiority(combatant):
        return ManeuverCheck(can_use=False, reason="No Combat Superiority feature")

    if combatant.superiority_dice_remaining <= 0:
        return ManeuverCheck(can_use=False, reason="No superiority dice remaining")

    character = combatant.character
    if maneuver_id not in character.known_maneuver_ids:
        return ManeuverCheck(can_use=False, reason="Maneuver not known")

    maneuver = get_maneuver_by_id(maneuver_id)
    if maneuver is None:
        return ManeuverCheck(can_use=False, reason="Maneuver not found")

    if maneuver.trigger == ManeuverTrigger.REACTION and combatant.has_reacted:
        return ManeuverCheck(can_use=False, reason="Reaction already used")

    return ManeuverCheck(can_use=True)


def get_available_maneuvers(combatant: Combatant, trigger: ManeuverTrigger) -> List[Maneuver]:
    """Known maneuvers of one trigger type that can be used right now."""
    character = combatant.character
    if character is None:
        return []

    available = []
    for maneuver_id in character.known_maneuver_ids:
        maneuver = get_maneuver_by_id(maneuver_id)
        if maneuver is None or maneuver.trigger != ManeuverTrigger(trigger):
            continue
        if can_use_maneuver(combatant, maneuver_id).can_use:
            available.append(maneuver)
    return available


# =============================================================================
# RESOLUTION
# =============================================================================

def make_maneuver_saving_throw(
    target: Combatant,
    save_dc: int,
    ability: AbilityName
) -> ManeuverSaveResult:
    """The target's d20 + ability modifier against the maneuver DC."""
    result = roll_saving_throw(modifier=target.ability_modifier(AbilityName(ability)))
    return ManeuverSaveResult(
        success=result.total >= save_dc,
        roll=result.natural_roll,
        total=result.total,
        dc=save_dc,
    )


def _condition_for(maneuver: Maneuver, attacker: Combatant) -> ActiveCondition:
    return ActiveCondition(
        condition=maneuver.condition,
        duration=maneuver.condition_duration,
        source=attacker.id,
    )


def apply_on_hit_maneuver(
    attacker: Combatant,
    target: Combatant,
    maneuver: Maneuver,
    grid: Optional[CombatGrid] = None,
    all_combatants: Sequence[Combatant] = ()
) -> ManeuverResult:
    """
    Resolve an on-hit maneuver.

    The superiority die is added to damage when the maneuver says so. A
    failed save applies the maneuver's condition and/or push; a successful
    save still keeps the bonus damage. Maneuvers with a condition but no
    save apply it directly.
    """
    die = roll_superiority_die(attacker)
    result = ManeuverResult(
        success=True,
        maneuver_id=maneuver.id,
        maneuver_name=maneuver.name,
        superiority_die_roll=die.total,
        superiority_die_size=die.die_size,
    )
    if maneuver.adds_damage_die:
        result.bonus_damage = die.total

    damage_text = f" +{result.bonus_damage} damage." if result.bonus_damage else ""

    if maneuver.saving_throw is None:
        if maneuver.condition is not None:
            result.condition_applied = maneuver.condition.value
            result.conditions_applied.append(_condition_for(maneuver, attacker))
        result.message = f"{attacker.name} uses {maneuver.name}!{damage_text}"
        if result.condition_applied:
            result.message += f" {target.name} is {result.condition_applied}!"
        logger.debug("%s: %s on %s", maneuver.id, attacker.name, target.name)
        return result

    save_dc = get_maneuver_save_dc(attacker)
    save = make_maneuver_saving_throw(target, save_dc, maneuver.saving_throw.ability)
    result.saving_throw_made = save.success

    if not save.success:
        if maneuver.condition is not None:
            result.condition_applied = maneuver.condition.value
            result.conditions_applied.append(_condition_for(maneuver, attacker))
        if maneuver.push_distance:
            result.push_applied = True
            if grid is not None:
                occupied = get_occupied_positions(all_combatants, exclude_ids=[target.id])
                result.push_destination = get_push_destination(
                    grid, attacker.position, target.position, maneuver.push_distance, occupied
                )

    ability = maneuver.saving_throw.ability.value[:3].upper()
    result.message = (
        f"{attacker.name} uses {maneuver.name}!{damage_text} "
        f"{target.name} {'succeeds' if save.success else 'fails'} the {ability} save "
        f"({save.total} vs DC {save_dc})."
    )
    if result.condition_applied:
        result.message += f" {target.name} is {result.condition_applied}!"
    if result.push_applied:
        result.message += f" {target.name} is pushed {maneuver.push_distance} feet!"

    logger.debug(
        "%s: %s vs %s, save %s (%d vs DC %d)",
        maneuver.id, attacker.name, target.name,
        "made" if save.success else "failed", save.total, save_dc,
    )
    return result


def apply_parry(defender: Combatant, incoming_damage: int) -> ManeuverResult:
    """Reduce incoming damage by die + DEX, never below zero damage."""
    die = roll_superiority_die(defender)
    dex_mod = defender.ability_modifier(AbilityName.DEXTERITY) if defender.is_character else 0
    reduction = min(max(0, die.total + dex_mod), max(0, incoming_damage))
    return ManeuverResult(
        success=True,
        maneuver_id="parry",
        maneuver_name="Parry",
        superiority_die_roll=die.total,
        superiority_die_size=die.die_size,
        damage_reduced=reduction,
        message=(
            f"{defender.name} uses Parry! Reduces damage by {reduction} "
            f"({die.total} + {dex_mod} DEX)."
        ),
    )


def apply_precision_attack(attacker: Combatant) -> ManeuverResult:
    die = roll_superiority_die(attacker)
    return ManeuverResult(
        success=True,
        maneuver_id="precision-attack",
        maneuver_name="Precision Attack",
        superiority_die_roll=die.total,
        superiority_die_size=die.die_size,
        attack_bonus=die.total,
        message=f"{attacker.name} uses Precision Attack! +{die.total} to attack roll.",
    )


def prepare_riposte(attacker: Combatant) -> ManeuverResult:
    """Riposte: the counter-attack itself is resolved by the caller."""
    die = roll_superiority_die(attacker)
    return ManeuverResult(
        success=True,
        maneuver_id="riposte",
        maneuver_name="Riposte",
        superiority_die_roll=die.total,
        superiority_die_size=die.die_size,
        bonus_damage=die.total,
        message=f"{attacker.name} uses Riposte! +{die.total} damage if the attack hits.",
    )


def find_sweep_target(
    attacker: Combatant,
    original_target: Combatant,
    all_combatants: Sequence[Combatant]
) -> Optional[Combatant]:
    """A living enemy adjacent to both the attacker and the original target."""
    for candidate in all_combatants:
        if candidate.id in (original_target.id, attacker.id):
            continue
        if candidate.current_hp <= 0 or candidate.type == attacker.type:
            continue
        if not is_adjacent(candidate.position, original_target.position):
            continue
        if not is_adjacent(candidate.position, attacker.position):
            continue
        return candidate
    return None


def _sweep_ac(combatant: Combatant) -> int:
    return combatant.data.ac + (combatant.evasive_footwork_bonus or 0)


def apply_sweeping_attack(
    attacker: Combatant,
    original_target: Combatant,
    original_attack_total: int,
    all_combatants: Sequence[Combatant],
    damage_type: DamageType
) -> ManeuverResult:
    """Deal the die as damage to a second enemy the attack roll would also hit."""
    die = roll_superiority_die(attacker)
    result = ManeuverResult(
        success=False,
        maneuver_id="sweeping-attack",
        maneuver_name="Sweeping Attack",
        superiority_die_roll=die.total,
        superiority_die_size=die.die_size,
    )

    sweep_target = find_sweep_target(attacker, original_target, all_combatants)
    if sweep_target is None:
        result.message = f"{attacker.name} uses Sweeping Attack but there are no valid targets nearby!"
        return result

    sweep_ac = _sweep_ac(sweep_target)
    if original_attack_total < sweep_ac:
        result.message = (
            f"{attacker.name} uses Sweeping Attack but the attack would miss "
            f"{sweep_target.name} (AC {sweep_ac})!"
        )
        return result

    result.success = True
    result.sweep_target_id = sweep_target.id
    result.sweep_damage = die.total
    result.sweep_damage_type = DamageType(damage_type)
    result.message = f"{attacker.name} uses Sweeping Attack! {sweep_target.name} takes {die.total} damage!"
    return result


def apply_evasive_footwork(combatant: Combatant) -> ManeuverResult:
    die = roll_superiority_die(combatant)
    return ManeuverResult(
        success=True,
        maneuver_id="evasive-footwork",
        maneuver_name="Evasive Footwork",
        superiority_die_roll=die.total,
        superiority_die_size=die.die_size,
        ac_bonus=die.total,
        message=f"{combatant.name} uses Evasive Footwork! +{die.total} AC and Disengage.",
    )


def apply_feinting_attack(combatant: Combatant, target_name: str) -> ManeuverResult:
    die = roll_superiority_die(combatant)
    return ManeuverResult(
        success=True,
        maneuver_id="feinting-attack",
        maneuver_name="Feinting Attack",
        superiority_die_roll=die.total,
        superiority_die_size=die.die_size,
        bonus_damage=die.total,
        message=(
            f"{combatant.name} feints against {target_name}! "
            f"Advantage on next attack with +{die.total} damage on hit."
        ),
    )


def apply_lunging_attack(combatant: Combatant) -> ManeuverResult:
    die = roll_superiority_die(combatant)
    return ManeuverResult(
        success=True,
        maneuver_id="lunging-attack",
        maneuver_name="Lunging Attack",
        superiority_die_roll=die.total,
        superiority_die_size=die.die_size,
        bonus_damage=die.total,
        message=(
            f"{combatant.name} uses Lunging Attack! "
            f"Dash and +{die.total} damage if moved 5ft before melee hit."
        ),
    )
