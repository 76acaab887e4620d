"""
Tactical AI - turn planning for automated combatants.

One deterministic pass per turn:
1. Pick the best target
2. Bonus actions first (Second Wind when hurt, Cunning Action)
3. Attack if something in the kit reaches the target now
4. Otherwise walk toward it along an A* path and attack if that put it
   in reach
5. Always finish with "end"
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
import logging

from dnd_tactics.core.class_features import (
    can_use_cunning_action,
    can_use_second_wind,
    get_max_attacks_per_action,
    has_cunning_action,
)
from dnd_tactics.core.combat import can_attack_target, can_take_actions, get_distance, get_speed
from dnd_tactics.core.grid import CombatGrid, Position, get_distance_between_positions
from dnd_tactics.core.line_of_sight import Fog
from dnd_tactics.core.pathfinding import (
    calculate_path_cost,
    find_path,
    get_occupied_positions,
    get_reachable_positions,
)
from dnd_tactics.models.combatant import Combatant
from dnd_tactics.models.creatures import MonsterAction, Weapon

from .targeting import find_best_target, find_nearest_enemy, get_enemies

logger = logging.getLogger(__name__)

SECOND_WIND_HP_THRESHOLD = 0.5
DISENGAGE_HP_THRESHOLD = 0.4
DASH_MIN_DISTANCE = 15


class ActionType(str, Enum):
    """Types of actions the AI can take."""
    MOVE = "move"
    ATTACK = "attack"
    END = "end"
    SECOND_WIND = "second_wind"
    CUNNING_DASH = "cunning_dash"
    CUNNING_DISENGAGE = "cunning_disengage"
    CUNNING_HIDE = "cunning_hide"


@dataclass
class AttackOption:
    """Something an automated combatant can attack with."""
    name: str
    weapon: Optional[Weapon] = None
    monster_action: Optional[MonsterAction] = None

    @property
    def is_ranged(self) -> bool:
        if self.weapon is not None:
            return self.weapon.is_ranged
        return self.monster_action is not None and self.monster_action.is_ranged


@dataclass
class AIAction:
    type: ActionType
    target_id: Optional[str] = None
    target_position: Optional[Position] = None
    attack: Optional[AttackOption] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "type": self.type.value,
            "target_id": self.target_id,
            "target_position": self.target_position,
            "attack": self.attack.name if self.attack else None,
        }


@dataclass
class AIDecision:
    """Ordered actions for one turn; the last one is always END."""
    actions: List[AIAction] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"actions": [a.to_dict() for a in self.actions]}


# =============================================================================
# ATTACK SELECTION
# =============================================================================

def get_attack_options(combatant: Combatant) -> List[AttackOption]:
    """Monster actions that attack or deal damage; a character's equipped weapons."""
    monster = combatant.monster
    if monster is not None:
        return [
            AttackOption(name=action.name, monster_action=action)
            for action in monster.actions
            if action.attack_bonus is not None or action.damage
        ]

    equipment = combatant.character.equipment
    options = []
    for weapon in (equipment.melee_weapon, equipment.ranged_weapon):
        if weapon is not None:
            options.append(AttackOption(name=weapon.name, weapon=weapon))
    return options


def _can_use(
    combatant: Combatant,
    target: Combatant,
    option: AttackOption,
    grid: CombatGrid,
    fog: Optional[Fog]
) -> bool:
    return can_attack_target(
        combatant, target, grid, option.weapon, option.monster_action, fog
    ).can_attack


def get_best_usable_attack(
    combatant: Combatant,
    target: Combatant,
    grid: CombatGrid,
    fog: Optional[Fog] = None
) -> Optional[AttackOption]:
    """
    Melee that reaches the target, else ranged in normal range with line of
    sight, else the first option so movement can still be planned.
    """
    options = get_attack_options(combatant)
    if not options:
        return None

    for option in options:
        if not option.is_ranged and _can_use(combatant, target, option, grid, fog):
            return option
    for option in options:
        if option.is_ranged and _can_use(combatant, target, option, grid, fog):
            return option
    return options[0]


# =============================================================================
# MOVEMENT
# =============================================================================

def get_position_toward_target(
    current: Position,
    target: Position,
    max_movement: float,
    grid: CombatGrid,
    occupied: Sequence[Position] = ()
) -> Optional[Position]:
    """
    Furthest point along an A* path to ``target`` within budget.

    Never returns the target's own cell. When there is no path, falls back
    to the reachable cell closest to the target, and only if it is closer
    than where we stand. None means stay put.
    """
    if max_movement <= 0:
        return None
    current = tuple(current)
    target = tuple(target)
    occupied = set(occupied)

    path = find_path(grid, current, target, occupied)
    if path and len(path) > 1:
        used = 0
        last_index = 0
        for i in range(1, len(path)):
            step_cost = calculate_path_cost(grid, [path[i - 1], path[i]])
            if used + step_cost > max_movement:
                break
            used += step_cost
            last_index = i

        if last_index > 0:
            if path[last_index] == target:
                last_index -= 1
            destination = path[last_index]
            if destination != current:
                return destination
            return None

    reachable = get_reachable_positions(grid, current, max_movement, occupied)
    best = None
    best_distance = float("inf")
    for position in reachable:
        if position == target:
            continue
        distance = get_distance_between_positions(position, target)
        if distance < best_distance:
            best_distance = distance
            best = position

    if best is not None and best_distance < get_distance_between_positions(current, target):
        return best
    return None


# =============================================================================
# BONUS ACTIONS
# =============================================================================

def _hp_fraction(combatant: Combatant) -> float:
    return combatant.current_hp / combatant.max_hp if combatant.max_hp else 0


def should_use_second_wind(combatant: Combatant) -> bool:
    if _hp_fraction(combatant) >= SECOND_WIND_HP_THRESHOLD:
        return False
    return can_use_second_wind(combatant)


def get_cunning_action_to_use(
    combatant: Combatant,
    combatants: Sequence[Combatant]
) -> Optional[AIAction]:
    if not has_cunning_action(combatant):
        return None

    enemies = get_enemies(combatants, combatant)
    nearby = [e for e in enemies if get_distance(combatant, e) <= 5]

    if (len(nearby) >= 2 and _hp_fraction(combatant) < DISENGAGE_HP_THRESHOLD
            and can_use_cunning_action(combatant, "disengage")):
        return AIAction(type=ActionType.CUNNING_DISENGAGE)

    if not nearby and can_use_cunning_action(combatant, "dash"):
        nearest = find_nearest_enemy(combatants, combatant)
        if nearest is not None and get_distance(combatant, nearest) > DASH_MIN_DISTANCE:
            return AIAction(type=ActionType.CUNNING_DASH)

    return None


# =============================================================================
# DECISION
# =============================================================================

def decide_monster_action(
    monster: Combatant,
    combatants: Sequence[Combatant],
    grid: CombatGrid,
    fog: Optional[Fog] = None
) -> AIDecision:
    """
    Plan an automated combatant's whole turn.

    Works for characters under AI control too; the name follows the common
    case.
    """
    end = AIAction(type=ActionType.END)

    if not can_take_actions(monster):
        return AIDecision(actions=[end])

    target = find_best_target(combatants, monster)
    if target is None:
        return AIDecision(actions=[end])

    actions: List[AIAction] = []
    if monster.is_character and should_use_second_wind(monster):
        actions.append(AIAction(type=ActionType.SECOND_WIND))

    dashed = False
    cunning = get_cunning_action_to_use(monster, combatants)
    if cunning is not None and not actions:
        actions.append(cunning)
        dashed = cunning.type == ActionType.CUNNING_DASH

    attack = get_best_usable_attack(monster, target, grid, fog)
    attacks_remaining = get_max_attacks_per_action(monster) - monster.attacks_made_this_turn
    can_attack_now = attack is not None and _can_use(monster, target, attack, grid, fog)

    if can_attack_now:
        if attacks_remaining > 0:
            actions.append(AIAction(type=ActionType.ATTACK, target_id=target.id, attack=attack))
        actions.append(end)
        logger.debug("%s attacks %s with %s", monster.name, target.name, attack.name)
        return AIDecision(actions=actions)

    speed = get_speed(monster)
    remaining_movement = speed - monster.movement_used + (speed if dashed else 0)
    occupied = get_occupied_positions(combatants, exclude_ids=[monster.id])
    destination = get_position_toward_target(
        monster.position, target.position, remaining_movement, grid, occupied
    )

    if destination is not None:
        actions.append(AIAction(type=ActionType.MOVE, target_position=destination))
        moved = monster.model_copy(update={"position": destination})
        if attack is not None and attacks_remaining > 0 and _can_use(moved, target, attack, grid, fog):
            actions.append(AIAction(type=ActionType.ATTACK, target_id=target.id, attack=attack))
        logger.debug("%s moves to %s toward %s", monster.name, destination, target.name)

    actions.append(end)
    return AIDecision(actions=actions)


def get_next_ai_action(
    monster: Combatant,
    combatants: Sequence[Combatant],
    grid: CombatGrid,
    fog: Optional[Fog] = None
) -> AIAction:
    """First action of the planned turn, for step-by-step execution."""
    decision = decide_monster_action(monster, combatants, grid, fog)
    return decision.actions[0] if decision.actions else AIAction(type=ActionType.END)
