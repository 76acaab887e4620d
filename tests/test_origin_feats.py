"""Tests for origin feats in combat."""
import pytest

from dnd_tactics.core.errors import CatalogLookupError
from dnd_tactics.core.origin_feats import (
    apply_healing_reroll,
    calculate_push_position,
    can_swap_initiative,
    can_tavern_brawler_push,
    can_use_battle_medic,
    can_use_heroic_inspiration,
    can_use_luck_point,
    can_use_savage_attacker,
    get_alert_initiative_bonus,
    get_battle_medic_targets,
    get_combatant_origin_feats,
    get_eligible_swap_targets,
    get_initiative_total,
    get_luck_points,
    get_luck_points_remaining,
    get_tavern_brawler_damage,
    get_unarmed_damage_type,
    has_feat,
    initialize_feat_uses,
    is_unarmed_strike,
    roll_battle_medic_healing,
    roll_savage_attacker_damage,
    roll_tavern_brawler_damage,
    spend_luck_point,
    starts_with_heroic_inspiration,
    swap_initiative,
    use_feat_charge,
)
from dnd_tactics.data.origin_feats import (
    get_all_origin_feats,
    get_combat_origin_feats,
    require_origin_feat,
)
from dnd_tactics.models import Condition, DamageType, Race

from conftest import LONGSWORD, build_character, build_monster, build_open_grid, build_walled_grid, condition

ELF = Race(id="elf", name="Elf")


def build_feat_character(*feat_ids: str, **kwargs):
    """A level 5 character (proficiency +3) with the given origin feats."""
    return build_character(character_fields={"origin_feat_ids": list(feat_ids)}, **kwargs)


class TestCatalog:
    """Tests for the origin feat catalog and feat access."""

    def test_catalog(self):
        """Ten origin feats, six of which matter in combat."""
        assert len(get_all_origin_feats()) == 10
        assert {f.id for f in get_combat_origin_feats()} == {
            "alert", "healer", "lucky", "musician", "savage-attacker", "tavern-brawler",
        }
        assert require_origin_feat("skilled").repeatable is True

    def test_unknown_feat(self):
        """Strict lookup raises for an unknown id."""
        with pytest.raises(CatalogLookupError):
            require_origin_feat("sharpshooter")

    def test_has_feat(self):
        """Characters have the feats they took; monsters have none."""
        hero = build_feat_character("alert")
        assert has_feat(hero, "alert") is True
        assert has_feat(hero, "lucky") is False
        assert has_feat(build_monster(), "alert") is False

    def test_combat_feats_only(self):
        """Feats without a combat effect are left out."""
        hero = build_feat_character("alert", "tough", "lucky", "crafter")
        assert [f.id for f in get_combatant_origin_feats(hero)] == ["alert", "lucky"]
        assert get_combatant_origin_feats(build_monster()) == []


class TestAlert:
    """Tests for the Alert feat."""

    def test_initiative_bonus(self):
        """Alert adds the proficiency bonus."""
        assert get_alert_initiative_bonus(build_feat_character("alert")) == 3
        assert get_alert_initiative_bonus(build_feat_character("alert", level=9)) == 4
        assert get_alert_initiative_bonus(build_character()) == 0
        assert get_alert_initiative_bonus(build_monster()) == 0

    def test_initiative_total(self):
        """The stored roll plus Alert."""
        assert get_initiative_total(build_feat_character("alert", initiative=12)) == 15
        assert get_initiative_total(build_monster(initiative=12)) == 12

    def test_swap_targets(self):
        """Allies on the same side who are not incapacitated."""
        hero = build_feat_character("alert")
        ally = build_character(id="ally")
        dazed = build_character(id="dazed", conditions=[condition(Condition.INCAPACITATED)])
        goblin = build_monster()
        targets = get_eligible_swap_targets(hero, [hero, ally, dazed, goblin])
        assert [t.id for t in targets] == ["ally"]

    def test_incapacitated_cannot_swap(self):
        """An incapacitated Alert holder cannot swap."""
        hero = build_feat_character("alert", conditions=[condition(Condition.INCAPACITATED)])
        assert can_swap_initiative(hero) is False
        assert get_eligible_swap_targets(hero, [build_character(id="ally")]) == []
        assert can_swap_initiative(build_character()) is False

    def test_swap_exchanges_totals(self):
        """Each side ends up with the other's total."""
        hero = build_feat_character("alert", initiative=10)
        ally = build_character(id="ally", initiative=17)

        new_hero, new_ally = swap_initiative(hero, ally)
        assert get_initiative_total(new_hero) == 17
        assert get_initiative_total(new_ally) == 13
        assert new_hero.initiative == 14

    def test_swap_with_enemy_refused(self):
        """Enemies are never swap targets."""
        assert swap_initiative(build_feat_character("alert"), build_monster()) is None


class TestBattleMedic:
    """Tests for the Healer feat."""

    def test_needs_action(self):
        """Battle Medic takes the action."""
        assert can_use_battle_medic(build_feat_character("healer")) is True
        assert can_use_battle_medic(build_feat_character("healer", has_acted=True)) is False
        assert can_use_battle_medic(build_character()) is False

    def test_targets(self):
        """Self or adjacent wounded allies who are still conscious."""
        healer = build_feat_character("healer", current_hp=30, position=(0, 0))
        adjacent = build_character(id="adjacent", current_hp=10, position=(1, 1))
        far = build_character(id="far", current_hp=10, position=(3, 0))
        healthy = build_character(id="healthy", position=(0, 1))
        down = build_character(id="down", current_hp=0, position=(1, 0))
        goblin = build_monster(current_hp=3, position=(1, 0))

        targets = get_battle_medic_targets(healer, [healer, adjacent, far, healthy, down, goblin])
        assert [t.id for t in targets] == ["hero", "adjacent"]

    def test_healing_roll(self, dice):
        """Hit Die plus proficiency."""
        dice.queue(6)
        result = roll_battle_medic_healing(build_feat_character("healer"), 8)
        assert result.total == 9
        assert result.rerolled is False
        assert result.breakdown == "[6] + 3 = 9"

    def test_healing_reroll_on_one(self, dice):
        """A 1 is rolled again once and the new value kept."""
        dice.queue(1, 5)
        result = roll_battle_medic_healing(build_feat_character("healer"), 8)
        assert result.total == 8
        assert result.rolls == [5]
        assert result.rerolled is True
        assert result.breakdown == "[5] (rerolled 1) + 3 = 8"
        assert dice.requested == [8, 8]

    def test_apply_healing_reroll(self, dice):
        """Only the 1s are rerolled."""
        dice.queue(3, 6)
        assert apply_healing_reroll([1, 4, 1], 6) == ([3, 4, 6], True)
        assert apply_healing_reroll([2, 5], 6) == ([2, 5], False)
        assert dice.requested == [6, 6]


class TestLucky:
    """Tests for luck points."""

    def test_luck_points(self):
        """Luck points equal the proficiency bonus."""
        assert get_luck_points(build_feat_character("lucky")) == 3
        assert get_luck_points(build_character()) == 0

    def test_remaining(self):
        """Unspent points default to the maximum."""
        lucky = build_feat_character("lucky")
        assert get_luck_points_remaining(lucky) == 3
        assert get_luck_points_remaining(lucky, {"lucky": 1}) == 1
        assert can_use_luck_point(lucky, {"lucky": 0}) is False
        assert can_use_luck_point(build_character()) is False

    def test_spend(self):
        """Spending decrements the pool and never goes below 0."""
        lucky = spend_luck_point(build_feat_character("lucky"))
        assert lucky.feat_uses == {"lucky": 2}
        empty = spend_luck_point(build_feat_character("lucky", feat_uses={"lucky": 0}))
        assert empty.feat_uses == {"lucky": 0}

    def test_initialize_uses(self):
        """Only Lucky is tracked per combat."""
        assert initialize_feat_uses(build_feat_character("lucky", "alert")) == {"lucky": 3}
        assert initialize_feat_uses(build_feat_character("alert")) == {}

    def test_use_feat_charge(self):
        """Returns a new dict and leaves the old one alone."""
        uses = {"lucky": 2}
        assert use_feat_charge("lucky", uses, 3) == {"lucky": 1}
        assert use_feat_charge("other", uses, 2) == {"lucky": 2, "other": 1}
        assert uses == {"lucky": 2}


class TestSavageAttacker:
    """Tests for Savage Attacker."""

    def test_once_per_turn(self):
        """Usable once per turn with the feat."""
        assert can_use_savage_attacker(build_feat_character("savage-attacker")) is True
        used = build_feat_character("savage-attacker", used_savage_attacker_this_turn=True)
        assert can_use_savage_attacker(used) is False
        assert can_use_savage_attacker(build_character()) is False

    def test_keeps_better_roll(self, dice):
        """Both rolls are kept and the higher total is offered."""
        dice.queue(3, 7)
        result = roll_savage_attacker_damage("1d8+2")
        assert result.first.total == 5
        assert result.second.total == 9
        assert result.better is result.second

    def test_tie_keeps_first(self, dice):
        """On a tie the first roll is used."""
        dice.queue(4, 4)
        result = roll_savage_attacker_damage("1d8")
        assert result.better is result.first

    def test_critical_doubles_both(self, dice):
        """Each roll doubles its dice on a crit."""
        dice.queue(1, 2, 3, 4)
        result = roll_savage_attacker_damage("1d8", critical=True)
        assert result.first.rolls == [1, 2]
        assert result.second.rolls == [3, 4]
        assert dice.requested == [8, 8, 8, 8]


class TestTavernBrawler:
    """Tests for Tavern Brawler."""

    def test_unarmed_strike(self):
        """No weapon or the unarmed pseudo-weapon."""
        assert is_unarmed_strike(None) is True
        assert is_unarmed_strike(LONGSWORD.model_copy(update={"id": "unarmed"})) is True
        assert is_unarmed_strike(LONGSWORD) is False
        assert get_unarmed_damage_type() == DamageType.BLUDGEONING

    def test_damage_expression(self):
        """1d4 + STR with the feat, a flat 1 without."""
        assert get_tavern_brawler_damage(
            build_feat_character("tavern-brawler", ability_scores={"strength": 16})
        ) == "1d4+3"
        assert get_tavern_brawler_damage(
            build_feat_character("tavern-brawler", ability_scores={"strength": 8})
        ) == "1d4-1"
        assert get_tavern_brawler_damage(build_character()) == "1"

    def test_roll(self, dice):
        """1d4 plus STR."""
        dice.queue(3)
        brawler = build_feat_character("tavern-brawler", ability_scores={"strength": 16})
        result = roll_tavern_brawler_damage(brawler)
        assert result.total == 6
        assert result.breakdown == "[3]+3 = 6"

    def test_reroll_ones(self, dice):
        """A 1 is rerolled once."""
        dice.queue(1, 4)
        brawler = build_feat_character("tavern-brawler", ability_scores={"strength": 16})
        result = roll_tavern_brawler_damage(brawler)
        assert result.rolls == [4]
        assert result.total == 7
        assert result.breakdown == "[4]+3 (rerolled 1s) = 7"

    def test_critical(self, dice):
        """Two d4s on a crit; only the 1 is rerolled."""
        dice.queue(2, 1, 3)
        brawler = build_feat_character("tavern-brawler", ability_scores={"strength": 16})
        result = roll_tavern_brawler_damage(brawler, critical=True)
        assert result.rolls == [2, 3]
        assert result.total == 8
        assert result.breakdown == "CRIT! [2, 3]+3 (rerolled 1s) = 8"
        assert dice.requested == [4, 4, 4]

    def test_monster_rolls_nothing(self, dice):
        """Monsters deal nothing through this path."""
        assert roll_tavern_brawler_damage(build_monster()).total == 0
        assert dice.requested == []

    def test_push_once_per_turn(self):
        """The push is once per turn."""
        assert can_tavern_brawler_push(build_feat_character("tavern-brawler")) is True
        used = build_feat_character("tavern-brawler", used_tavern_brawler_push_this_turn=True)
        assert can_tavern_brawler_push(used) is False

    def test_push_straight_away(self):
        """The target moves one square directly away."""
        grid = build_open_grid()
        brawler = build_feat_character("tavern-brawler", position=(2, 2))
        assert calculate_push_position(brawler, build_monster(position=(3, 2)), grid) == (4, 2)
        assert calculate_push_position(brawler, build_monster(position=(3, 3)), grid) == (4, 4)

    def test_push_blocked(self):
        """Grid edges, walls and living creatures stop the push."""
        brawler = build_feat_character("tavern-brawler", position=(8, 2))
        target = build_monster(position=(9, 2))
        assert calculate_push_position(brawler, target, build_open_grid()) is None

        brawler = build_feat_character("tavern-brawler", position=(2, 2))
        target = build_monster(position=(3, 2))
        assert calculate_push_position(brawler, target, build_walled_grid([(4, 2)])) is None

        bystander = build_monster(id="bystander", position=(4, 2))
        corpse = build_monster(id="bystander", position=(4, 2), current_hp=0)
        assert calculate_push_position(brawler, target, build_open_grid(), [bystander]) is None
        assert calculate_push_position(brawler, target, build_open_grid(), [corpse]) == (4, 2)


class TestHeroicInspiration:
    """Tests for Musician and Heroic Inspiration at combat start."""

    def test_starts_with_inspiration(self):
        """Musicians and humans start with it; others do not."""
        assert starts_with_heroic_inspiration(build_character()) is True
        assert starts_with_heroic_inspiration(build_character(race=ELF)) is False
        assert starts_with_heroic_inspiration(build_feat_character("musician", race=ELF)) is True
        assert starts_with_heroic_inspiration(build_monster()) is False

    def test_can_use(self):
        """Usable while the combatant holds it."""
        assert can_use_heroic_inspiration(build_character(heroic_inspiration=True)) is True
        assert can_use_heroic_inspiration(build_character()) is False
