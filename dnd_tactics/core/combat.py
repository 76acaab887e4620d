"""
Attack Resolution.

Weapon and monster-action attacks:
- Attack and damage bonuses from ability scores, proficiency and
  fighting styles
- Advantage/disadvantage from conditions, vex, feints and studied attacks
- Range and line-of-sight gating when a grid is supplied
- Natural 1 misses, natural 20 (or the Improved Critical range) crits
- Helpless targets within 5ft take critical hits
- Savage Attacks and Sneak Attack riders

Saving throws live in ``saving_throws`` and are re-exported here.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from dnd_tactics.core.class_features import (
    can_sneak_attack,
    get_archery_bonus,
    get_critical_range,
    get_defense_bonus,
    get_dueling_bonus,
    roll_sneak_attack_damage,
)
from dnd_tactics.core.dice import (
    D20Result,
    DiceRollResult,
    RollMode,
    get_die_size,
    roll_d20,
    roll_damage,
    roll_die,
)
from dnd_tactics.core.grid import CombatGrid, Position, get_distance_between_positions
from dnd_tactics.core.line_of_sight import Fog, get_first_obstruction, has_line_of_sight
from dnd_tactics.core.racial_abilities import (
    check_reroll_eligible,
    check_savage_attacks,
    roll_savage_attacks_damage,
)
from dnd_tactics.core.rules_config import get_rules_config
from dnd_tactics.core.saving_throws import (  # noqa: F401
    SavingThrowResult,
    get_saving_throw_modifier,
    roll_combatant_saving_throw,
)
from dnd_tactics.core.weapon_mastery import has_vex_advantage
from dnd_tactics.models.combatant import Combatant
from dnd_tactics.models.common import AbilityName, Condition, DamageType
from dnd_tactics.models.creatures import MonsterAction, Weapon, WeaponProperty

logger = logging.getLogger(__name__)

DEFAULT_RANGED_NORMAL = 30
MELEE_REACH = 5

INCAPACITATING_CONDITIONS = frozenset({
    Condition.INCAPACITATED,
    Condition.PARALYZED,
    Condition.PETRIFIED,
    Condition.STUNNED,
    Condition.UNCONSCIOUS,
})
IMMOBILIZING_CONDITIONS = frozenset({
    Condition.GRAPPLED,
    Condition.PARALYZED,
    Condition.PETRIFIED,
    Condition.RESTRAINED,
    Condition.STUNNED,
    Condition.UNCONSCIOUS,
})
HELPLESS_CONDITIONS = frozenset({Condition.PARALYZED, Condition.UNCONSCIOUS})


@dataclass
class CanAttackResult:
    can_attack: bool
    reason: Optional[str] = None  # "out_of_range" or "no_line_of_sight"
    blocked_by_position: Optional[Position] = None


@dataclass
class AttackOptions:
    """Inputs to one attack roll."""
    attacker: Combatant
    target: Combatant
    weapon: Optional[Weapon] = None
    monster_action: Optional[MonsterAction] = None
    mode: RollMode = RollMode.NORMAL
    all_combatants: Sequence[Combatant] = ()
    used_sneak_attack_this_turn: Optional[bool] = None
    grid: Optional[CombatGrid] = None
    fog: Optional[Fog] = None
    current_round: int = 0
    bonus_to_hit: int = 0  # e.g. Precision Attack


@dataclass
class AttackResult:
    hit: bool
    critical: bool
    critical_miss: bool
    attack_roll: Optional[D20Result]
    target_ac: int
    damage: Optional[DiceRollResult] = None
    damage_type: Optional[DamageType] = None
    savage_attacks_damage: Optional[Tuple[int, List[int]]] = None
    sneak_attack_damage: Optional[Tuple[int, List[int]]] = None
    sneak_attack_used: bool = False
    blade_ward_penalty: int = 0
    blocked_reason: Optional[str] = None
    blocked_by_position: Optional[Position] = None
    mode: RollMode = RollMode.NORMAL
    notes: List[str] = field(default_factory=list)

    @property
    def total_damage(self) -> int:
        if not self.hit:
            return 0
        total = self.damage.total if self.damage else 0
        if self.savage_attacks_damage:
            total += self.savage_attacks_damage[0]
        if self.sneak_attack_damage:
            total += self.sneak_attack_damage[0]
        return total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hit": self.hit,
            "critical": self.critical,
            "critical_miss": self.critical_miss,
            "attack_roll": self.attack_roll.breakdown if self.attack_roll else None,
            "natural_roll": self.attack_roll.natural_roll if self.attack_roll else None,
            "attack_total": self.attack_roll.total if self.attack_roll else None,
            "target_ac": self.target_ac,
            "damage": self.damage.total if self.damage else None,
            "damage_type": self.damage_type.value if self.damage_type else None,
            "savage_attacks_damage": self.savage_attacks_damage[0] if self.savage_attacks_damage else None,
            "sneak_attack_damage": self.sneak_attack_damage[0] if self.sneak_attack_damage else None,
            "sneak_attack_used": self.sneak_attack_used,
            "total_damage": self.total_damage,
            "blocked_reason": self.blocked_reason,
            "mode": self.mode.value,
        }


# =============================================================================
# BONUSES AND AC
# =============================================================================

def _weapon_ability_modifier(combatant: Combatant, weapon: Weapon) -> int:
    strength = combatant.ability_modifier(AbilityName.STRENGTH)
    dexterity = combatant.ability_modifier(AbilityName.DEXTERITY)
    if weapon.has_property(WeaponProperty.FINESSE):
        return max(strength, dexterity)
    if weapon.is_ranged:
        return dexterity
    return strength


def get_character_attack_bonus(combatant: Combatant, weapon: Weapon) -> int:
    """Ability modifier (finesse picks the better of STR/DEX) + proficiency."""
    character = combatant.character
    proficiency = character.proficiency_bonus if character is not None else 0
    return _weapon_ability_modifier(combatant, weapon) + proficiency


def get_character_damage_bonus(combatant: Combatant, weapon: Weapon) -> int:
    return _weapon_ability_modifier(combatant, weapon)


def get_combatant_ac(combatant: Combatant) -> int:
    """Base AC + Defense fighting style + Evasive Footwork."""
    return (
        combatant.data.ac
        + get_defense_bonus(combatant)
        + (combatant.evasive_footwork_bonus or 0)
    )


def get_attack_advantage(
    attacker: Combatant,
    target: Combatant,
    base_mode: RollMode = RollMode.NORMAL,
    is_ranged: bool = False,
    current_round: int = 0
) -> RollMode:
    """
    Net advantage for one attack.

    Any source of advantage and any source of disadvantage cancel out,
    no matter how many of each there are.
    """
    advantage = base_mode is RollMode.ADVANTAGE
    disadvantage = base_mode is RollMode.DISADVANTAGE

    # Attacker
    if attacker.has_condition(Condition.INVISIBLE) or attacker.has_condition(Condition.HIDDEN):
        advantage = True
    for condition in (
        Condition.BLINDED,
        Condition.POISONED,
        Condition.RESTRAINED,
        Condition.PRONE,
        Condition.SAPPED,
        Condition.FRIGHTENED,
    ):
        if attacker.has_condition(condition):
            disadvantage = True
    if attacker.has_condition(Condition.GOADED) and attacker.goaded_by not in (None, target.id):
        disadvantage = True
    if attacker.feint_target == target.id or attacker.studied_target_id == target.id:
        advantage = True

    # Target
    for condition in (
        Condition.BLINDED,
        Condition.PARALYZED,
        Condition.RESTRAINED,
        Condition.STUNNED,
        Condition.UNCONSCIOUS,
        Condition.DISTRACTED,
    ):
        if target.has_condition(condition):
            advantage = True
    if target.has_condition(Condition.INVISIBLE) or target.has_condition(Condition.DODGING):
        disadvantage = True
    if target.has_condition(Condition.PRONE):
        if is_ranged or get_distance(attacker, target) > MELEE_REACH:
            disadvantage = True
        else:
            advantage = True

    if has_vex_advantage(attacker, target, current_round):
        advantage = True

    return RollMode.from_flags(advantage, disadvantage)


# =============================================================================
# ATTACK
# =============================================================================

def _attack_profile(
    attacker: Combatant,
    weapon: Optional[Weapon],
    monster_action: Optional[MonsterAction]
) -> Tuple[int, str, int, DamageType]:
    """(attack bonus, damage dice, damage modifier, damage type)"""
    if attacker.is_character and weapon is not None:
        attack_bonus = get_character_attack_bonus(attacker, weapon)
        if weapon.is_ranged:
            attack_bonus += get_archery_bonus(attacker)
        damage_bonus = get_character_damage_bonus(attacker, weapon) + get_dueling_bonus(attacker, weapon)
        return attack_bonus, weapon.damage, damage_bonus, weapon.damage_type

    if attacker.is_monster and monster_action is not None:
        return (
            monster_action.attack_bonus or 0,
            monster_action.damage or "1d4",
            0,
            monster_action.damage_type or DamageType.BLUDGEONING,
        )

    # Unarmed strike
    strength = attacker.ability_modifier(AbilityName.STRENGTH)
    return strength, "1", strength, DamageType.BLUDGEONING


def _savage_attacks(attacker: Combatant, weapon: Optional[Weapon]) -> Optional[Tuple[int, List[int]]]:
    ability = check_savage_attacks(attacker, True)
    if ability is None or weapon is None:
        return None
    die_size = get_die_size(weapon.damage) or 6
    return roll_savage_attacks_damage(ability, f"1d{die_size}")


def resolve_attack(options: AttackOptions) -> AttackResult:
    """
    Resolve one weapon or monster-action attack.

    With a grid, targets out of range or out of sight are rejected before
    any dice are rolled (``blocked_reason`` set, no attack roll).
    """
    attacker = options.attacker
    target = options.target
    weapon = options.weapon
    monster_action = options.monster_action
    target_ac = get_combatant_ac(target)

    if options.grid is not None:
        check = can_attack_target(attacker, target, options.grid, weapon, monster_action, options.fog)
        if not check.can_attack:
            return AttackResult(
                hit=False,
                critical=False,
                critical_miss=False,
                attack_roll=None,
                target_ac=target_ac,
                blocked_reason=check.reason,
                blocked_by_position=check.blocked_by_position,
            )

    attack_bonus, damage_dice, damage_bonus, damage_type = _attack_profile(
        attacker, weapon, monster_action
    )
    attack_bonus += options.bonus_to_hit
    ranged = is_ranged_attack(weapon, monster_action)
    mode = get_attack_advantage(attacker, target, options.mode, ranged, options.current_round)

    attack_roll = roll_d20(
        modifier=attack_bonus,
        advantage=mode is RollMode.ADVANTAGE,
        disadvantage=mode is RollMode.DISADVANTAGE,
    )
    notes = []

    if attack_roll.natural_1 and check_reroll_eligible(attacker, "attack", 1) is not None:
        attack_roll = attack_roll.with_reroll(roll_die(20))
        notes.append("lucky_reroll")

    if attack_roll.natural_1:
        return AttackResult(
            hit=False,
            critical=False,
            critical_miss=True,
            attack_roll=attack_roll,
            target_ac=target_ac,
            mode=mode,
            notes=notes,
        )

    blade_ward_penalty = 0
    if target.has_condition(Condition.BLADE_WARD):
        blade_ward_penalty = roll_die(4)
        attack_roll = attack_roll.with_penalty(blade_ward_penalty)

    critical = attack_roll.natural_roll >= get_critical_range(attacker)
    hit = critical or attack_roll.total >= target_ac
    if not hit:
        return AttackResult(
            hit=False,
            critical=False,
            critical_miss=False,
            attack_roll=attack_roll,
            target_ac=target_ac,
            blade_ward_penalty=blade_ward_penalty,
            mode=mode,
            notes=notes,
        )

    if (
        not critical
        and get_rules_config().auto_crit_helpless
        and get_distance(attacker, target) <= MELEE_REACH
        and any(target.has_condition(c) for c in HELPLESS_CONDITIONS)
    ):
        critical = True
        notes.append("helpless_target")

    damage = roll_damage(damage_dice, modifier=damage_bonus, critical=critical)
    savage = _savage_attacks(attacker, weapon) if critical else None

    # A natural crit counts as advantage for Sneak Attack
    sneak_advantage = mode is RollMode.ADVANTAGE or attack_roll.natural_roll >= get_critical_range(attacker)
    sneak = None
    sneak_used = False
    if can_sneak_attack(
        attacker,
        target,
        weapon,
        sneak_advantage,
        mode is RollMode.DISADVANTAGE,
        options.all_combatants,
        options.used_sneak_attack_this_turn,
    ):
        sneak = roll_sneak_attack_damage(attacker, critical=critical)
        sneak_used = True

    logger.debug(
        "%s hits %s (%s vs AC %d)%s",
        attacker.name, target.name, attack_roll.breakdown, target_ac,
        " CRIT" if critical else "",
    )
    return AttackResult(
        hit=True,
        critical=critical,
        critical_miss=False,
        attack_roll=attack_roll,
        target_ac=target_ac,
        damage=damage,
        damage_type=DamageType(damage_type),
        savage_attacks_damage=savage,
        sneak_attack_damage=sneak,
        sneak_attack_used=sneak_used,
        blade_ward_penalty=blade_ward_penalty,
        mode=mode,
        notes=notes,
    )


# =============================================================================
# DISTANCE AND RANGE
# =============================================================================

def get_distance(a: Combatant, b: Combatant) -> int:
    """Chebyshev distance between two combatants, in feet."""
    return get_distance_between_positions(a.position, b.position)


def get_melee_range(weapon: Optional[Weapon] = None, monster_action: Optional[MonsterAction] = None) -> int:
    if weapon is not None and not weapon.is_ranged:
        return 10 if weapon.has_property(WeaponProperty.REACH) else MELEE_REACH
    if monster_action is not None and monster_action.reach:
        return monster_action.reach
    return MELEE_REACH


def is_ranged_attack(weapon: Optional[Weapon] = None, monster_action: Optional[MonsterAction] = None) -> bool:
    if weapon is not None:
        return weapon.is_ranged
    if monster_action is not None:
        return monster_action.is_ranged
    return False


def is_in_range(
    attacker: Combatant,
    target: Combatant,
    weapon: Optional[Weapon] = None,
    monster_action: Optional[MonsterAction] = None
) -> bool:
    """Reach or normal range only; line of sight is checked separately."""
    distance = get_distance(attacker, target)

    if weapon is not None:
        if weapon.is_ranged:
            normal = weapon.range.normal if weapon.range else DEFAULT_RANGED_NORMAL
            return distance <= normal
        return distance <= get_melee_range(weapon)

    if monster_action is not None:
        if monster_action.reach:
            return distance <= monster_action.reach
        if monster_action.range is not None:
            return distance <= monster_action.range.normal

    return distance <= MELEE_REACH


def can_attack_target(
    attacker: Combatant,
    target: Combatant,
    grid: CombatGrid,
    weapon: Optional[Weapon] = None,
    monster_action: Optional[MonsterAction] = None,
    fog: Optional[Fog] = None
) -> CanAttackResult:
    """Range first; ranged attacks then need line of sight."""
    if not is_in_range(attacker, target, weapon, monster_action):
        return CanAttackResult(can_attack=False, reason="out_of_range")

    if is_ranged_attack(weapon, monster_action):
        if not has_line_of_sight(grid, attacker.position, target.position, fog):
            blocked_by = get_first_obstruction(grid, attacker.position, target.position, fog)
            if blocked_by is None and fog:
                blocked_by = attacker.position if attacker.position in fog else target.position
            return CanAttackResult(
                can_attack=False,
                reason="no_line_of_sight",
                blocked_by_position=blocked_by,
            )

    return CanAttackResult(can_attack=True)


def select_weapon_for_target(
    attacker: Combatant,
    target: Combatant,
    grid: CombatGrid,
    melee_weapon: Optional[Weapon] = None,
    ranged_weapon: Optional[Weapon] = None,
    fog: Optional[Fog] = None
) -> Optional[Weapon]:
    """
    Pick melee when the target is in reach, else ranged when it can be seen.

    Without explicit weapons the character's equipped ones are used. A lone
    weapon is returned even if it cannot reach; the attack's range check
    rejects it later.
    """
    character = attacker.character
    if melee_weapon is None and ranged_weapon is None and character is not None:
        melee_weapon = character.equipment.melee_weapon
        ranged_weapon = character.equipment.ranged_weapon

    distance = get_distance(attacker, target)

    if melee_weapon is not None and distance <= get_melee_range(melee_weapon):
        return melee_weapon

    if ranged_weapon is not None:
        normal = ranged_weapon.range.normal if ranged_weapon.range else DEFAULT_RANGED_NORMAL
        if distance <= normal and has_line_of_sight(grid, attacker.position, target.position, fog):
            return ranged_weapon

    if melee_weapon is not None and ranged_weapon is None:
        return melee_weapon
    if ranged_weapon is not None and melee_weapon is None:
        return ranged_weapon
    return None


def has_ranged_disadvantage(
    attacker: Combatant,
    target: Combatant,
    all_combatants: Sequence[Combatant],
    weapon: Optional[Weapon] = None
) -> bool:
    """A living enemy within 5ft, or a shot beyond normal range."""
    for other in all_combatants:
        if other.id == attacker.id or other.type == attacker.type or other.current_hp <= 0:
            continue
        if get_distance(attacker, other) <= MELEE_REACH:
            return True

    if weapon is not None and weapon.range is not None:
        distance = get_distance(attacker, target)
        return weapon.range.normal < distance <= weapon.range.long
    return False


# =============================================================================
# ACTION GATES
# =============================================================================

def can_take_actions(combatant: Combatant) -> bool:
    return not any(c.condition in INCAPACITATING_CONDITIONS for c in combatant.conditions)


def can_move(combatant: Combatant) -> bool:
    return not any(c.condition in IMMOBILIZING_CONDITIONS for c in combatant.conditions)


def get_speed(combatant: Combatant) -> int:
    """Walking speed after Slow; 0 when the combatant cannot move."""
    if not can_move(combatant):
        return 0
    character = combatant.character
    speed = character.speed if character is not None else combatant.monster.speed.walk
    if combatant.has_condition(Condition.SLOWED):
        speed -= 10
    return max(0, speed)
