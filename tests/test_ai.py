"""Tests for AI target selection and turn planning."""
from dnd_tactics.core.ai import (
    ActionType,
    decide_monster_action,
    evaluate_target,
    find_best_target,
    find_nearest_enemy,
    get_best_usable_attack,
    get_enemies,
    get_next_ai_action,
    get_position_toward_target,
)
from dnd_tactics.models import AbilityName, Condition, Equipment

from conftest import (
    FIGHTER_FEATURES,
    RAPIER,
    SHORTBOW,
    build_character,
    build_monster,
    build_open_grid,
    build_rogue,
    build_walled_grid,
    condition,
)


def _types(decision):
    return [a.type for a in decision.actions]


class TestTargetScoring:
    """Tests for evaluate_target and target choice."""

    def test_distance_penalty(self):
        """An unhurt adjacent target scores 100 - 2 per foot."""
        score = evaluate_target(build_character(), build_monster())
        assert score.total_score == 90
        assert score.reasons == []

    def test_wounded_bonuses(self):
        """Below half HP adds 20; below a quarter adds 40 instead."""
        hero = build_character()
        assert evaluate_target(hero, build_monster(current_hp=3)).total_score == 110
        nearly_dead = evaluate_target(hero, build_monster(current_hp=1))
        assert nearly_dead.total_score == 130
        assert nearly_dead.reasons == ["nearly dead"]

    def test_spellcaster_and_concentration(self):
        """Casters and concentrating targets are preferred."""
        goblin = build_monster()
        wizard = build_character(
            id="wizard", position=(0, 0), spellcasting_ability=AbilityName.INTELLIGENCE,
            concentrating_on="bless",
        )
        score = evaluate_target(goblin, wizard)
        assert score.total_score == 90 + 15 + 25
        assert score.reasons == ["spellcaster", "concentrating"]

    def test_best_target_prefers_wounded(self):
        """A nearly dead goblin a square further beats a healthy adjacent one."""
        hero = build_character()
        healthy = build_monster(id="healthy", position=(1, 0))
        dying = build_monster(id="dying", position=(2, 0), current_hp=1)
        assert find_best_target([hero, healthy, dying], hero).id == "dying"
        assert find_nearest_enemy([hero, healthy, dying], hero).id == "healthy"

    def test_ignores_downed_and_allies(self):
        """Characters at 0 HP and same-side combatants are never targets."""
        goblin = build_monster()
        downed = build_character(current_hp=0)
        other_goblin = build_monster(id="other", position=(2, 0))
        assert get_enemies([goblin, downed, other_goblin], goblin) == []
        assert find_best_target([goblin, downed, other_goblin], goblin) is None


class TestAttackChoice:
    """Tests for get_best_usable_attack."""

    def test_melee_then_ranged(self):
        """Rapier when adjacent, shortbow when at range."""
        rogue = build_rogue()
        grid = build_open_grid()
        assert get_best_usable_attack(rogue, build_monster(position=(1, 0)), grid).weapon == RAPIER
        assert get_best_usable_attack(rogue, build_monster(position=(5, 0)), grid).weapon == SHORTBOW

    def test_falls_back_to_first_option(self):
        """With nothing usable the first option is kept for movement planning."""
        rogue = build_rogue()
        grid = build_walled_grid([(2, 0)])
        assert get_best_usable_attack(rogue, build_monster(position=(5, 0)), grid).weapon == RAPIER

    def test_monster_options(self):
        """Monsters attack with their stat block actions."""
        option = get_best_usable_attack(build_monster(), build_character(), build_open_grid())
        assert option.name == "Scimitar"
        assert option.is_ranged is False


class TestMovement:
    """Tests for get_position_toward_target."""

    def test_stops_next_to_target(self):
        """Movement never ends on the target's cell."""
        grid = build_open_grid()
        assert get_position_toward_target((5, 0), (0, 0), 30, grid) == (1, 0)

    def test_budget_limits_distance(self):
        """Only as far as the movement budget allows."""
        assert get_position_toward_target((5, 0), (0, 0), 10, build_open_grid()) == (3, 0)

    def test_no_movement(self):
        """Zero movement or already adjacent means stay put."""
        grid = build_open_grid()
        assert get_position_toward_target((5, 0), (0, 0), 0, grid) is None
        assert get_position_toward_target((1, 0), (0, 0), 30, grid) is None


class TestDecideMonsterAction:
    """Tests for whole-turn planning."""

    def test_attack_adjacent(self):
        """An adjacent goblin attacks and ends its turn."""
        hero = build_character()
        goblin = build_monster()
        decision = decide_monster_action(goblin, [hero, goblin], build_open_grid())
        assert _types(decision) == [ActionType.ATTACK, ActionType.END]
        assert decision.actions[0].target_id == "hero"
        assert decision.actions[0].attack.name == "Scimitar"

    def test_move_then_attack(self):
        """A distant goblin closes in and attacks."""
        hero = build_character()
        goblin = build_monster(position=(5, 0))
        decision = decide_monster_action(goblin, [hero, goblin], build_open_grid())
        assert _types(decision) == [ActionType.MOVE, ActionType.ATTACK, ActionType.END]
        assert decision.actions[0].target_position == (1, 0)

    def test_move_without_reaching(self):
        """A slow goblin moves as far as it can and ends its turn."""
        hero = build_character()
        goblin = build_monster(position=(5, 0), speed=10)
        decision = decide_monster_action(goblin, [hero, goblin], build_open_grid())
        assert _types(decision) == [ActionType.MOVE, ActionType.END]
        assert decision.actions[0].target_position == (3, 0)

    def test_incapacitated(self):
        """A stunned goblin does nothing."""
        hero = build_character()
        goblin = build_monster(conditions=[condition(Condition.STUNNED, 1)])
        assert _types(decide_monster_action(goblin, [hero, goblin], build_open_grid())) == [ActionType.END]

    def test_no_enemies(self):
        """Nothing to fight means the turn ends."""
        goblin = build_monster()
        downed = build_character(current_hp=0)
        assert _types(decide_monster_action(goblin, [goblin, downed], build_open_grid())) == [ActionType.END]

    def test_second_wind_when_hurt(self):
        """An AI fighter below half HP uses Second Wind first."""
        fighter = build_character(features=FIGHTER_FEATURES, current_hp=10)
        goblin = build_monster()
        decision = decide_monster_action(fighter, [fighter, goblin], build_open_grid())
        assert _types(decision) == [ActionType.SECOND_WIND, ActionType.ATTACK, ActionType.END]

    def test_rogue_dashes_to_distant_enemy(self):
        """Cunning Action Dash doubles the movement budget."""
        rogue = build_rogue(equipment=Equipment(melee_weapon=RAPIER))
        goblin = build_monster(position=(8, 0))
        decision = decide_monster_action(rogue, [rogue, goblin], build_open_grid())
        assert _types(decision) == [
            ActionType.CUNNING_DASH, ActionType.MOVE, ActionType.ATTACK, ActionType.END,
        ]
        assert decision.actions[1].target_position == (7, 0)

    def test_rogue_disengages_when_surrounded(self):
        """A badly hurt rogue with two adjacent enemies disengages."""
        rogue = build_rogue(current_hp=10)
        first = build_monster(id="first", position=(1, 0))
        second = build_monster(id="second", position=(0, 1))
        decision = decide_monster_action(rogue, [rogue, first, second], build_open_grid())
        assert _types(decision) == [ActionType.CUNNING_DISENGAGE, ActionType.ATTACK, ActionType.END]
        assert decision.actions[1].target_id == "first"

    def test_no_attacks_left(self):
        """With its attacks spent the goblin just ends its turn."""
        hero = build_character()
        goblin = build_monster(attacks_made_this_turn=1)
        assert _types(decide_monster_action(goblin, [hero, goblin], build_open_grid())) == [ActionType.END]

    def test_next_action_and_to_dict(self):
        """get_next_ai_action returns the first planned step."""
        hero = build_character()
        goblin = build_monster(position=(5, 0))
        action = get_next_ai_action(goblin, [hero, goblin], build_open_grid())
        assert action.type == ActionType.MOVE
        assert action.to_dict()["type"] == "move"
