"""
Weapon Mastery properties.

A character who has mastered a weapon gets its mastery effect:
- On hit: Push (10ft), Sap (disadvantage on next attack), Slow (-10ft
  speed), Topple (CON save or prone), Vex (advantage on next attack)
- Cleave: a second attack against a creature next to the first target
- Graze: ability modifier as damage on a miss
- Nick: the light-weapon extra attack is part of the Attack action

Tactical Master lets the attacker swap in Push, Sap or Slow for a weapon's
own mastery. The whole system can be switched off in the rules config.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import logging

from dnd_tactics.core.class_features import (
    get_feature_of_type,
    get_max_uses_at_level,
    get_tactical_master_masteries,
)
from dnd_tactics.core.grid import (
    CombatGrid,
    Position,
    get_distance_between_positions,
    get_push_destination,
)
from dnd_tactics.core.pathfinding import get_occupied_positions
from dnd_tactics.core.rules_config import is_weapon_mastery_enabled
from dnd_tactics.core.saving_throws import roll_combatant_saving_throw
from dnd_tactics.models.combatant import ActiveCondition, Combatant, VexedBy
from dnd_tactics.models.common import AbilityName, Condition, WeaponMastery
from dnd_tactics.models.creatures import Weapon, WeaponProperty
from dnd_tactics.models.features import WeaponMasteryFeature

logger = logging.getLogger(__name__)

PUSH_DISTANCE = 10
SLOW_SPEED_REDUCTION = 10

MASTERY_DESCRIPTIONS: Dict[WeaponMastery, str] = {
    WeaponMastery.CLEAVE: (
        "On hit, make a second attack against another creature within 5ft "
        "(no ability modifier to damage). Once per turn."
    ),
    WeaponMastery.GRAZE: "On miss, deal damage equal to your ability modifier (minimum 0).",
    WeaponMastery.NICK: "Make an extra light weapon attack as part of your Attack action. Once per turn.",
    WeaponMastery.PUSH: "On hit, push the target 10ft away from you.",
    WeaponMastery.SAP: "On hit, the target has disadvantage on its next attack roll.",
    WeaponMastery.SLOW: "On hit, reduce the target's speed by 10ft until your next turn.",
    WeaponMastery.TOPPLE: "On hit, the target must make a CON save or fall prone.",
    WeaponMastery.VEX: "On hit, you have advantage on your next attack against that target.",
}


@dataclass
class MasteryEffectResult:
    """What a mastery property did (or offers) after an attack."""
    mastery: WeaponMastery
    applied: bool
    description: str
    graze_damage: Optional[int] = None
    push_destination: Optional[Position] = None
    push_distance: Optional[int] = None
    cleave_targets: List[Combatant] = field(default_factory=list)
    save_passed: Optional[bool] = None
    save_roll: Optional[int] = None
    save_dc: Optional[int] = None
    speed_reduction: Optional[int] = None
    conditions_applied: List[ActiveCondition] = field(default_factory=list)
    vexed_by: Optional[VexedBy] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mastery": self.mastery.value,
            "applied": self.applied,
            "description": self.description,
            "graze_damage": self.graze_damage,
            "push_destination": list(self.push_destination) if self.push_destination else None,
            "push_distance": self.push_distance,
            "cleave_target_ids": [c.id for c in self.cleave_targets],
            "save_passed": self.save_passed,
            "save_roll": self.save_roll,
            "save_dc": self.save_dc,
            "speed_reduction": self.speed_reduction,
            "conditions_applied": [c.model_dump(mode="json") for c in self.conditions_applied],
            "vexed_by": self.vexed_by.model_dump() if self.vexed_by else None,
        }


# =============================================================================
# MASTERY ACCESS
# =============================================================================

def has_mastered_weapon(combatant: Combatant, weapon_id: str) -> bool:
    character = combatant.character
    return character is not None and weapon_id in character.mastered_weapon_ids


def get_active_mastery(
    combatant: Combatant,
    weapon: Weapon,
    override: Optional[WeaponMastery] = None
) -> Optional[WeaponMastery]:
    """
    The mastery property this combatant gets from a weapon, if any.

    ``override`` is a Tactical Master swap; it is honored only when the
    combatant has that feature and the swap is one it allows.
    """
    if not is_weapon_mastery_enabled():
        return None
    if weapon.mastery is None or not has_mastered_weapon(combatant, weapon.id):
        return None
    if override is not None and WeaponMastery(override) in get_tactical_master_masteries(combatant):
        return WeaponMastery(override)
    return weapon.mastery


def get_max_mastered_weapons(combatant: Combatant) -> int:
    feature = get_feature_of_type(combatant, WeaponMasteryFeature)
    if feature is None:
        return 0
    return get_max_uses_at_level(
        feature.mastered_weapon_count, feature.mastered_weapon_count_at_levels, combatant.level
    )


def get_mastery_save_dc(attacker: Combatant) -> int:
    """8 + proficiency + the better of STR and DEX."""
    best = max(
        attacker.ability_modifier(AbilityName.STRENGTH),
        attacker.ability_modifier(AbilityName.DEXTERITY),
    )
    character = attacker.character
    proficiency = character.proficiency_bonus if character is not None else 0
    return 8 + proficiency + best


# =============================================================================
# ON-HIT EFFECTS
# =============================================================================

def _push(
    attacker: Combatant,
    target: Combatant,
    grid: CombatGrid,
    all_combatants: Sequence[Combatant]
) -> MasteryEffectResult:
    if tuple(attacker.position) == tuple(target.position):
        return MasteryEffectResult(
            mastery=WeaponMastery.PUSH,
            applied=False,
            description="Target is at same position, cannot push",
        )

    occupied = get_occupied_positions(all_combatants, exclude_ids=[target.id])
    destination = get_push_destination(grid, attacker.position, target.position, PUSH_DISTANCE, occupied)
    distance = get_distance_between_positions(target.position, destination)
    if distance == 0:
        return MasteryEffectResult(
            mastery=WeaponMastery.PUSH,
            applied=False,
            description="Target could not be pushed (blocked)",
        )
    return MasteryEffectResult(
        mastery=WeaponMastery.PUSH,
        applied=True,
        description=f"Pushed {target.name} {distance}ft",
        push_destination=destination,
        push_distance=distance,
    )


def _topple(attacker: Combatant, target: Combatant) -> MasteryEffectResult:
    dc = get_mastery_save_dc(attacker)
    save = roll_combatant_saving_throw(target, AbilityName.CONSTITUTION, dc, condition=Condition.PRONE)
    if save.success:
        description = f"{target.name} resisted being toppled (CON save: {save.roll.total} vs DC {dc})"
        conditions = []
    else:
        description = f"{target.name} is knocked prone (failed CON save: {save.roll.total} vs DC {dc})"
        conditions = [ActiveCondition(condition=Condition.PRONE, duration=-1, source=attacker.id)]
    return MasteryEffectResult(
        mastery=WeaponMastery.TOPPLE,
        applied=not save.success,
        description=description,
        save_passed=save.success,
        save_roll=save.roll.total,
        save_dc=dc,
        conditions_applied=conditions,
    )


def apply_on_hit_mastery_effect(
    attacker: Combatant,
    target: Combatant,
    weapon: Weapon,
    grid: CombatGrid,
    all_combatants: Sequence[Combatant],
    current_round: int,
    override: Optional[WeaponMastery] = None
) -> Optional[MasteryEffectResult]:
    """
    Resolve the weapon's mastery after a hit.

    Returns None when no mastery applies on hit (none mastered, Nick, Graze).
    Cleave reports its candidate targets; the second attack is up to the
    caller.
    """
    mastery = get_active_mastery(attacker, weapon, override)
    if mastery is None:
        return None

    if mastery == WeaponMastery.PUSH:
        return _push(attacker, target, grid, all_combatants)

    if mastery == WeaponMastery.SAP:
        return MasteryEffectResult(
            mastery=mastery,
            applied=True,
            description=f"{target.name} is sapped (disadvantage on next attack)",
            conditions_applied=[
                ActiveCondition(condition=Condition.SAPPED, duration=1, source=attacker.id)
            ],
        )

    if mastery == WeaponMastery.SLOW:
        return MasteryEffectResult(
            mastery=mastery,
            applied=True,
            description=f"{target.name}'s speed is reduced by {SLOW_SPEED_REDUCTION}ft",
            speed_reduction=SLOW_SPEED_REDUCTION,
            conditions_applied=[
                ActiveCondition(condition=Condition.SLOWED, duration=1, source=attacker.id)
            ],
        )

    if mastery == WeaponMastery.TOPPLE:
        return _topple(attacker, target)

    if mastery == WeaponMastery.VEX:
        return MasteryEffectResult(
            mastery=mastery,
            applied=True,
            description=f"{attacker.name} has advantage on next attack against {target.name}",
            vexed_by=VexedBy(attacker_id=attacker.id, expires_on_round=current_round + 1),
        )

    if mastery == WeaponMastery.CLEAVE:
        if attacker.used_cleave_this_turn:
            return None
        return MasteryEffectResult(
            mastery=mastery,
            applied=False,
            description="Cleave available after this attack",
            cleave_targets=get_cleave_targets(attacker, target, all_combatants, weapon),
        )

    # Nick is part of the Attack action and Graze only triggers on a miss
    return None


# =============================================================================
# CLEAVE / GRAZE / NICK
# =============================================================================

def get_cleave_targets(
    attacker: Combatant,
    original_target: Combatant,
    all_combatants: Sequence[Combatant],
    weapon: Weapon
) -> List[Combatant]:
    """Living enemies within 5ft of the original target and in the attacker's reach."""
    reach = 10 if weapon.has_property(WeaponProperty.REACH) else 5
    targets = []
    for candidate in all_combatants:
        if candidate.current_hp <= 0:
            continue
        if candidate.id in (attacker.id, original_target.id):
            continue
        if candidate.type == attacker.type:
            continue
        if get_distance_between_positions(candidate.position, original_target.position) > 5:
            continue
        if get_distance_between_positions(candidate.position, attacker.position) > reach:
            continue
        targets.append(candidate)
    return targets


def get_graze_damage(attacker: Combatant, weapon: Weapon) -> int:
    """The attack's ability modifier, never negative."""
    if not attacker.is_character:
        return 0
    strength = attacker.ability_modifier(AbilityName.STRENGTH)
    dexterity = attacker.ability_modifier(AbilityName.DEXTERITY)
    if weapon.has_property(WeaponProperty.FINESSE):
        modifier = max(strength, dexterity)
    elif weapon.is_ranged:
        modifier = dexterity
    else:
        modifier = strength
    return max(0, modifier)


def apply_graze_on_miss(
    attacker: Combatant,
    target: Combatant,
    weapon: Weapon
) -> Optional[MasteryEffectResult]:
    if get_active_mastery(attacker, weapon) != WeaponMastery.GRAZE:
        return None

    damage = get_graze_damage(attacker, weapon)
    if damage > 0:
        description = (
            f"Graze: {attacker.name} deals {damage} {weapon.damage_type.value} "
            f"damage to {target.name}"
        )
    else:
        description = "Graze: No damage (ability modifier is 0 or negative)"
    return MasteryEffectResult(
        mastery=WeaponMastery.GRAZE,
        applied=damage > 0,
        description=description,
        graze_damage=damage,
    )


def can_use_nick_attack(attacker: Combatant, weapon: Weapon) -> bool:
    if get_active_mastery(attacker, weapon) != WeaponMastery.NICK:
        return False
    if attacker.used_nick_this_turn:
        return False
    return weapon.has_property(WeaponProperty.LIGHT)


# =============================================================================
# LINGERING EFFECTS
# =============================================================================

def has_vex_advantage(attacker: Combatant, target: Combatant, current_round: int) -> bool:
    vexed = target.vexed_by
    if vexed is None or vexed.attacker_id != attacker.id:
        return False
    return vexed.expires_on_round >= current_round


def get_mastery_description(mastery: WeaponMastery) -> str:
    return MASTERY_DESCRIPTIONS.get(WeaponMastery(mastery), "")
