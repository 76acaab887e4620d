"""
D&D Tactics Engine - Test Configuration and Fixtures
Shared builders and a scripted dice source for pytest.
"""
import random
from typing import Any, Dict, Iterable, List, Optional

import pytest

from dnd_tactics.core.dice import use_rng
from dnd_tactics.core.grid import CombatGrid, build_grid
from dnd_tactics.core.rules_config import reset_rules_config
from dnd_tactics.models import (
    AbilityScores,
    ActiveCondition,
    Armor,
    Character,
    CharacterClass,
    Combatant,
    Condition,
    Equipment,
    Monster,
    MonsterAction,
    MonsterSpeed,
    Obstacle,
    Race,
    Subclass,
    Weapon,
    WeaponProperty,
    WeaponRange,
)
from dnd_tactics.models.common import AbilityName, DamageType, WeaponMastery
from dnd_tactics.models.features import (
    ActionSurgeFeature,
    CombatSuperiorityFeature,
    CunningActionFeature,
    ExtraAttackFeature,
    HeroicWarriorFeature,
    ImprovedCriticalFeature,
    IndomitableFeature,
    RelentlessFeature,
    SecondWindFeature,
    SneakAttackFeature,
    SurvivorFeature,
    TriggeredHealAbility,
    BonusDamageAbility,
    BreathWeaponAbility,
    WeaponMasteryFeature,
)
from dnd_tactics.models.maps import TerrainDefinition


class ScriptedRandom(random.Random):
    """
    A random source that hands out queued die results.

    Once the queue is empty it falls back to a fixed-seed generator so a
    test never depends on system entropy.
    """

    def __init__(self):
        super().__init__(0)
        self.queued: List[int] = []
        self.requested: List[int] = []

    def queue(self, *values: int) -> "ScriptedRandom":
        self.queued.extend(values)
        return self

    def randint(self, a: int, b: int) -> int:
        self.requested.append(b)
        if self.queued:
            value = self.queued.pop(0)
            assert a <= value <= b, f"scripted roll {value} outside {a}..{b}"
            return value
        return super().randint(a, b)


@pytest.fixture
def dice():
    """Install a scripted random source for the duration of a test."""
    rng = ScriptedRandom()
    with use_rng(rng):
        yield rng


@pytest.fixture(autouse=True)
def _default_rules():
    """Every test starts from the standard rules preset."""
    reset_rules_config()
    yield
    reset_rules_config()


# ==================== Weapons ====================

LONGSWORD = Weapon(
    id="longsword",
    name="Longsword",
    category="martial",
    damage="1d8",
    damage_type=DamageType.SLASHING,
    properties=[WeaponProperty.VERSATILE],
    mastery=WeaponMastery.SAP,
)
GREATAXE = Weapon(
    id="greataxe",
    name="Greataxe",
    category="martial",
    damage="1d12",
    damage_type=DamageType.SLASHING,
    properties=[WeaponProperty.HEAVY, WeaponProperty.TWO_HANDED],
    mastery=WeaponMastery.CLEAVE,
)
RAPIER = Weapon(
    id="rapier",
    name="Rapier",
    category="martial",
    damage="1d8",
    damage_type=DamageType.PIERCING,
    properties=[WeaponProperty.FINESSE],
    mastery=WeaponMastery.VEX,
)
LONGBOW = Weapon(
    id="longbow",
    name="Longbow",
    category="martial",
    type="ranged",
    damage="1d8",
    damage_type=DamageType.PIERCING,
    properties=[WeaponProperty.AMMUNITION, WeaponProperty.HEAVY, WeaponProperty.TWO_HANDED],
    range=WeaponRange(normal=150, long=600),
    mastery=WeaponMastery.SLOW,
)
SHORTBOW = Weapon(
    id="shortbow",
    name="Shortbow",
    type="ranged",
    damage="1d6",
    damage_type=DamageType.PIERCING,
    properties=[WeaponProperty.AMMUNITION, WeaponProperty.TWO_HANDED],
    range=WeaponRange(normal=80, long=320),
    mastery=WeaponMastery.VEX,
)
CHAIN_MAIL = Armor(id="chain-mail", name="Chain Mail", category="heavy", base_ac=16, dex_bonus=False)


# ==================== Features ====================

CHAMPION_FEATURES = [
    ImprovedCriticalFeature(id="improved-critical", name="Improved Critical", level=3, critical_range=19),
    HeroicWarriorFeature(id="heroic-warrior", name="Heroic Warrior", level=10),
    ImprovedCriticalFeature(id="superior-critical", name="Superior Critical", level=15, critical_range=18),
    SurvivorFeature(id="survivor", name="Survivor", level=18),
]

BATTLE_MASTER_FEATURES = [
    CombatSuperiorityFeature(
        id="combat-superiority",
        name="Combat Superiority",
        level=3,
        superiority_dice_at_levels={7: 5, 15: 6},
        superiority_die_size_at_levels={10: 10, 18: 12},
        maneuvers_known_at_levels={7: 5, 10: 7, 15: 9},
    ),
    RelentlessFeature(id="relentless", name="Relentless", level=15),
]

FIGHTER_FEATURES = [
    SecondWindFeature(id="second-wind", name="Second Wind", max_uses=2, max_uses_at_levels={4: 3, 10: 4}),
    ActionSurgeFeature(id="action-surge", name="Action Surge", level=2, max_uses=1, max_uses_at_levels={17: 2}),
    WeaponMasteryFeature(
        id="weapon-mastery", name="Weapon Mastery", mastered_weapon_count=3,
        mastered_weapon_count_at_levels={4: 4, 10: 5, 16: 6},
    ),
    ExtraAttackFeature(id="extra-attack", name="Extra Attack", level=5, attack_count=2),
    IndomitableFeature(id="indomitable", name="Indomitable", level=9, max_uses=1,
                       max_uses_at_levels={13: 2, 17: 3}),
]

ROGUE_FEATURES = [
    SneakAttackFeature(
        id="sneak-attack",
        name="Sneak Attack",
        base_dice="1d6",
        dice_scaling={3: "2d6", 5: "3d6", 7: "4d6"},
    ),
    CunningActionFeature(id="cunning-action", name="Cunning Action", level=2),
]

HALF_ORC_ABILITIES = [
    TriggeredHealAbility(id="relentless-endurance", name="Relentless Endurance", max_uses=1),
    BonusDamageAbility(id="savage-attacks", name="Savage Attacks"),
]


# ==================== Builders ====================

HUMAN = Race(id="human", name="Human")
DRAGONBORN = Race(
    id="dragonborn",
    name="Dragonborn",
    abilities=[
        BreathWeaponAbility(
            id="breath-weapon",
            name="Breath Weapon",
            damage_scaling={1: "1d10", 5: "2d10", 11: "3d10", 17: "4d10"},
            max_uses=2,
        ),
    ],
)


def build_character(
    id: str = "hero",
    name: str = "Hero",
    level: int = 5,
    class_id: str = "fighter",
    features: Iterable = (),
    subclass_features: Optional[Iterable] = None,
    race: Race = HUMAN,
    ability_scores: Optional[Dict[str, int]] = None,
    ac: int = 16,
    max_hp: int = 40,
    current_hp: Optional[int] = None,
    position=(0, 0),
    equipment: Optional[Equipment] = None,
    spellcasting_ability: Optional[AbilityName] = None,
    save_proficiencies: Iterable[AbilityName] = (),
    character_fields: Optional[Dict[str, Any]] = None,
    **combatant_fields: Any,
) -> Combatant:
    """A character combatant with sensible defaults for tests."""
    spellcasting = None
    if spellcasting_ability is not None:
        spellcasting = {"ability": spellcasting_ability}
    character = Character(
        id=id,
        name=name,
        race=race,
        character_class=CharacterClass(
            id=class_id,
            name=class_id.title(),
            features=list(features),
            saving_throw_proficiencies=list(save_proficiencies),
            spellcasting=spellcasting,
        ),
        subclass=(
            Subclass(id="subclass", name="Subclass", features=list(subclass_features))
            if subclass_features is not None else None
        ),
        level=level,
        ability_scores=AbilityScores(**(ability_scores or {})),
        max_hp=max_hp,
        ac=ac,
        equipment=equipment or Equipment(melee_weapon=LONGSWORD),
        **(character_fields or {}),
    )
    return Combatant(
        id=id,
        name=name,
        type="character",
        data=character,
        position=position,
        current_hp=max_hp if current_hp is None else current_hp,
        max_hp=max_hp,
        **combatant_fields,
    )


def build_monster(
    id: str = "goblin",
    name: str = "Goblin",
    ac: int = 13,
    max_hp: int = 7,
    current_hp: Optional[int] = None,
    position=(1, 0),
    actions: Optional[List[MonsterAction]] = None,
    ability_scores: Optional[Dict[str, int]] = None,
    speed: int = 30,
    monster_fields: Optional[Dict[str, Any]] = None,
    **combatant_fields: Any,
) -> Combatant:
    """A monster combatant; defaults to a goblin with a scimitar."""
    monster = Monster(
        id=id,
        name=name,
        ac=ac,
        hp=max_hp,
        speed=MonsterSpeed(walk=speed),
        ability_scores=AbilityScores(**(ability_scores or {})),
        actions=actions if actions is not None else [
            MonsterAction(
                name="Scimitar",
                attack_bonus=4,
                damage="1d6+2",
                damage_type=DamageType.SLASHING,
                reach=5,
            ),
        ],
        **(monster_fields or {}),
    )
    return Combatant(
        id=id,
        name=name,
        type="monster",
        data=monster,
        position=position,
        current_hp=max_hp if current_hp is None else current_hp,
        max_hp=max_hp,
        **combatant_fields,
    )


def build_champion(level: int, **kwargs: Any) -> Combatant:
    return build_character(
        id=kwargs.pop("id", "champion"),
        name=kwargs.pop("name", "Champion"),
        level=level,
        features=FIGHTER_FEATURES,
        subclass_features=CHAMPION_FEATURES,
        **kwargs,
    )


def build_battle_master(level: int = 5, maneuvers: Iterable[str] = ("trip-attack",), **kwargs: Any) -> Combatant:
    kwargs.setdefault("ability_scores", {"strength": 16, "dexterity": 14})
    kwargs.setdefault("superiority_dice_remaining", 4)
    return build_character(
        id=kwargs.pop("id", "battle-master"),
        name=kwargs.pop("name", "Battle Master"),
        level=level,
        features=FIGHTER_FEATURES,
        subclass_features=BATTLE_MASTER_FEATURES,
        character_fields={"known_maneuver_ids": list(maneuvers)},
        **kwargs,
    )


def build_rogue(level: int = 5, **kwargs: Any) -> Combatant:
    kwargs.setdefault("ability_scores", {"dexterity": 16})
    kwargs.setdefault("equipment", Equipment(melee_weapon=RAPIER, ranged_weapon=SHORTBOW))
    return build_character(
        id=kwargs.pop("id", "rogue"),
        name=kwargs.pop("name", "Rogue"),
        level=level,
        class_id="rogue",
        features=ROGUE_FEATURES,
        **kwargs,
    )


def build_dragonborn(level: int = 5, **kwargs: Any) -> Combatant:
    """A dragonborn fighter with CON 14 (breath DC 13 at level 5)."""
    kwargs.setdefault("ability_scores", {"strength": 16, "constitution": 14})
    return build_character(
        id=kwargs.pop("id", "dragonborn"),
        name=kwargs.pop("name", "Dragonborn"),
        level=level,
        features=FIGHTER_FEATURES,
        race=DRAGONBORN,
        **kwargs,
    )


def build_open_grid(width: int = 10, height: int = 10) -> CombatGrid:
    return build_grid(width, height)


def build_walled_grid(walls: Iterable, width: int = 10, height: int = 10) -> CombatGrid:
    return build_grid(
        width,
        height,
        [TerrainDefinition(x=x, y=y, obstacle=Obstacle(type="wall")) for x, y in walls],
    )


def condition(name: Condition, duration: Optional[int] = None, source: Optional[str] = None) -> ActiveCondition:
    return ActiveCondition(condition=name, duration=duration, source=source)


@pytest.fixture
def open_grid() -> CombatGrid:
    return build_open_grid()


@pytest.fixture
def fighter() -> Combatant:
    return build_character()


@pytest.fixture
def goblin() -> Combatant:
    return build_monster()
