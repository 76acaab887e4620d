"""
AI Target Evaluation.

Scores living enemies so an automated combatant picks who to go after:
closer targets first, then wounded ones, spellcasters and anyone holding
concentration.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from dnd_tactics.core.combat import get_distance
from dnd_tactics.models.combatant import Combatant

BASE_SCORE = 100
DISTANCE_PENALTY_PER_FOOT = 2
NEARLY_DEAD_BONUS = 40   # Below 25% HP
WOUNDED_BONUS = 20       # Below 50% HP
SPELLCASTER_BONUS = 15
CONCENTRATING_BONUS = 25


@dataclass
class TargetScore:
    """Evaluation score for a potential target."""
    target_id: str
    target_name: str
    total_score: float
    reasons: List[str] = field(default_factory=list)


def get_enemies(combatants: Sequence[Combatant], self_combatant: Combatant) -> List[Combatant]:
    """Combatants of the other side still standing. Same type means same side."""
    return [
        c for c in combatants
        if c.id != self_combatant.id
        and c.current_hp > 0
        and c.type != self_combatant.type
    ]


def evaluate_target(self_combatant: Combatant, target: Combatant) -> TargetScore:
    """Score a single target, keeping the reasons for debugging."""
    score = BASE_SCORE
    reasons = []

    distance = get_distance(self_combatant, target)
    score -= distance * DISTANCE_PENALTY_PER_FOOT

    hp_fraction = target.current_hp / target.max_hp if target.max_hp else 0
    if hp_fraction < 0.25:
        score += NEARLY_DEAD_BONUS
        reasons.append("nearly dead")
    elif hp_fraction < 0.5:
        score += WOUNDED_BONUS
        reasons.append("wounded")

    character = target.character
    if character is not None and character.is_spellcaster:
        score += SPELLCASTER_BONUS
        reasons.append("spellcaster")

    if target.concentrating_on:
        score += CONCENTRATING_BONUS
        reasons.append("concentrating")

    return TargetScore(
        target_id=target.id,
        target_name=target.name,
        total_score=score,
        reasons=reasons,
    )


def score_target(self_combatant: Combatant, target: Combatant) -> float:
    return evaluate_target(self_combatant, target).total_score


def find_best_target(combatants: Sequence[Combatant], self_combatant: Combatant) -> Optional[Combatant]:
    """Highest scoring enemy; ties go to whoever was seen first."""
    best = None
    best_score = float("-inf")
    for enemy in get_enemies(combatants, self_combatant):
        score = score_target(self_combatant, enemy)
        if score > best_score:
            best_score = score
            best = enemy
    return best


def find_nearest_enemy(combatants: Sequence[Combatant], self_combatant: Combatant) -> Optional[Combatant]:
    nearest = None
    nearest_distance = float("inf")
    for enemy in get_enemies(combatants, self_combatant):
        distance = get_distance(self_combatant, enemy)
        if distance < nearest_distance:
            nearest_distance = distance
            nearest = enemy
    return nearest
