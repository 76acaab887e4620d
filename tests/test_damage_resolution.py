"""Tests for damage application, healing and racial defenses."""
from dnd_tactics.core.combat_log import LogEntryType
from dnd_tactics.core.damage_resolution import (
    apply_damage_application,
    apply_healing,
    apply_typed_damage,
    calculate_damage_application,
    check_combat_end,
    is_dead,
)
from dnd_tactics.models import Condition, DamageType, DeathSaves, Race
from dnd_tactics.models.features import ResistanceAbility

from conftest import HALF_ORC_ABILITIES, build_character, build_monster, condition

HALF_ORC = Race(id="half-orc", name="Half-Orc", abilities=HALF_ORC_ABILITIES)
DWARF = Race(
    id="dwarf",
    name="Dwarf",
    abilities=[ResistanceAbility(id="dwarven-resilience", name="Dwarven Resilience",
                                 damage_types=[DamageType.POISON])],
)


def _dying(**kwargs):
    return build_character(current_hp=0, conditions=[condition(Condition.UNCONSCIOUS, -1)], **kwargs)


class TestHitPointFloor:
    """Tests for HP bounds."""

    def test_hp_never_below_zero(self):
        """No amount of damage takes HP below 0."""
        fighter = build_character(max_hp=40)
        for amount in range(0, 61):
            assert calculate_damage_application(fighter, amount).new_hp >= 0

    def test_zero_damage_changes_nothing(self):
        """Zero or negative damage is a no-op."""
        fighter = build_character(current_hp=12)
        for amount in (0, -5):
            application = calculate_damage_application(fighter, amount)
            assert application.new_hp == 12
            assert application.deferred_log_entries == []
            assert application.new_conditions == fighter.conditions

    def test_existing_conditions_kept(self):
        """Damage keeps whatever conditions the target already has."""
        fighter = build_character(conditions=[condition(Condition.POISONED, 2)])
        application = calculate_damage_application(fighter, 5)
        assert application.new_conditions == fighter.conditions


class TestDroppingToZero:
    """Tests for falling unconscious and monster death."""

    def test_character_falls_unconscious(self):
        """A character at 0 HP is unconscious, not dead."""
        fighter = build_character(current_hp=5)
        application = calculate_damage_application(fighter, 8)
        assert application.fell_unconscious is True
        assert application.new_hp == 0
        assert any(c.condition == Condition.UNCONSCIOUS for c in application.new_conditions)
        assert application.deferred_log_entries[0].type == LogEntryType.DEATH

        downed = apply_damage_application(fighter, application)
        assert downed.current_hp == 0
        assert is_dead(downed) is False

    def test_monster_dies_and_falls_prone(self):
        """A monster at 0 HP is dead and prone."""
        goblin = build_monster()
        application = calculate_damage_application(goblin, 10)
        assert application.monster_died is True
        assert any(c.condition == Condition.PRONE for c in application.new_conditions)
        assert "has been slain" in application.deferred_log_entries[0].message
        assert is_dead(apply_damage_application(goblin, application)) is True


class TestDamageWhileDown:
    """Tests for death-save failures from damage at 0 HP."""

    def test_each_hit_adds_one_failure(self):
        """Failures rise by exactly one per hit until death at three."""
        target = _dying()
        for expected in (1, 2, 3):
            application = calculate_damage_application(target, 4)
            assert application.death_save_failure_added is True
            assert application.new_death_save_failures == expected
            assert application.character_died is (expected == 3)
            target = apply_damage_application(target, application)
        assert is_dead(target) is True

    def test_dead_character_takes_no_more_failures(self):
        """Damage to a dead character adds nothing."""
        dead = _dying(death_saves=DeathSaves(failures=3))
        application = calculate_damage_application(dead, 4)
        assert application.death_save_failure_added is False
        assert application.new_death_save_failures == 3

    def test_stable_character_takes_no_failure(self):
        """A stable character does not gain failures from damage."""
        stable = _dying(is_stable=True)
        application = calculate_damage_application(stable, 4)
        assert application.death_save_failure_added is False


class TestRelentlessEndurance:
    """Tests for the drop-to-zero heal."""

    def test_drops_to_one_instead(self):
        """A half-orc at 10 HP taking 10 drops to 1 and spends the use."""
        orc = build_character(race=HALF_ORC, current_hp=10)
        application = calculate_damage_application(orc, 10)
        assert application.new_hp == 1
        assert application.relentless_endurance_used is True
        assert application.fell_unconscious is False
        assert application.new_racial_ability_uses == {"relentless-endurance": 0}

        orc = apply_damage_application(orc, application)
        assert orc.current_hp == 1
        assert not orc.has_condition(Condition.UNCONSCIOUS)

        second = calculate_damage_application(orc, 10)
        assert second.new_hp == 0
        assert second.relentless_endurance_used is False
        assert second.fell_unconscious is True

    def test_not_used_on_survivable_damage(self):
        """Damage that leaves HP above 0 does not spend the use."""
        orc = build_character(race=HALF_ORC, current_hp=10)
        application = calculate_damage_application(orc, 4)
        assert application.relentless_endurance_used is False
        assert application.new_racial_ability_uses == {}


class TestTypedDamage:
    """Tests for resistances, immunities and vulnerabilities."""

    def test_monster_resistance_halves(self):
        """Resistance halves, rounding down."""
        skeleton = build_monster(max_hp=20, monster_fields={"damage_resistances": [DamageType.PIERCING]})
        assert apply_typed_damage(skeleton, 7, DamageType.PIERCING).new_hp == 17

    def test_monster_immunity(self):
        """Immunity negates the damage."""
        skeleton = build_monster(max_hp=20, monster_fields={"damage_immunities": [DamageType.POISON]})
        assert apply_typed_damage(skeleton, 9, DamageType.POISON).new_hp == 20

    def test_monster_vulnerability_doubles(self):
        """Vulnerability doubles the damage."""
        skeleton = build_monster(max_hp=20, monster_fields={"damage_vulnerabilities": [DamageType.BLUDGEONING]})
        assert apply_typed_damage(skeleton, 4, DamageType.BLUDGEONING).new_hp == 12

    def test_racial_resistance(self):
        """A dwarf halves poison damage."""
        dwarf = build_character(race=DWARF, max_hp=30)
        assert apply_typed_damage(dwarf, 9, DamageType.POISON).new_hp == 26
        assert apply_typed_damage(dwarf, 9, DamageType.FIRE).new_hp == 21

    def test_untyped_damage(self):
        """Without a type the full amount applies."""
        goblin = build_monster(max_hp=20, monster_fields={"damage_resistances": [DamageType.FIRE]})
        assert apply_typed_damage(goblin, 6).new_hp == 14


class TestHealing:
    """Tests for apply_healing."""

    def test_capped_at_max(self):
        """Healing never exceeds max HP."""
        fighter = build_character(max_hp=40, current_hp=35)
        assert apply_healing(fighter, 20).current_hp == 40

    def test_healing_from_zero_wakes(self):
        """Healing a dying character resets saves and ends unconsciousness."""
        dying = _dying(death_saves=DeathSaves(successes=1, failures=2))
        healed = apply_healing(dying, 5)
        assert healed.current_hp == 5
        assert healed.death_saves == DeathSaves()
        assert not healed.has_condition(Condition.UNCONSCIOUS)

    def test_dead_stay_dead(self):
        """The dead cannot be healed."""
        dead = _dying(death_saves=DeathSaves(failures=3))
        assert apply_healing(dead, 10).current_hp == 0
        goblin = build_monster(current_hp=0)
        assert apply_healing(goblin, 5).current_hp == 0


class TestCombatEnd:
    """Tests for check_combat_end."""

    def test_victory(self):
        """All monsters dead is a victory."""
        assert check_combat_end([build_character(), build_monster(current_hp=0)]) == "victory"

    def test_defeat(self):
        """All characters dead is a defeat."""
        dead = _dying(death_saves=DeathSaves(failures=3))
        assert check_combat_end([dead, build_monster()]) == "defeat"

    def test_unconscious_character_keeps_fight_going(self):
        """A dying character is not dead yet."""
        assert check_combat_end([_dying(), build_monster()]) is None
