"""
Enemy AI.

Deterministic turn planning for automated combatants.

Modules:
- targeting: Target scoring and selection
- tactical_ai: Attack choice, movement and the per-turn decision
"""
from .targeting import (
    TargetScore,
    evaluate_target,
    find_best_target,
    find_nearest_enemy,
    get_enemies,
    score_target,
)
from .tactical_ai import (
    ActionType,
    AIAction,
    AIDecision,
    AttackOption,
    decide_monster_action,
    get_attack_options,
    get_best_usable_attack,
    get_next_ai_action,
    get_position_toward_target,
)

__all__ = [
    # Targeting
    'TargetScore',
    'evaluate_target',
    'find_best_target',
    'find_nearest_enemy',
    'get_enemies',
    'score_target',
    # Decision
    'ActionType',
    'AIAction',
    'AIDecision',
    'AttackOption',
    'decide_monster_action',
    'get_attack_options',
    'get_best_usable_attack',
    'get_next_ai_action',
    'get_position_toward_target',
]
