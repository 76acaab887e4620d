"""
Live combat state for one participant.

Combatant is frozen. Engine functions return new combatants built with
``model_copy(update=...)`` and never mutate the one they were given.
"""
from typing import Dict, List, Literal, Optional, Tuple, Union

from pydantic import Field, model_validator

from dnd_tactics.core.errors import InvalidCombatantError

from .common import AbilityName, Condition, EngineModel
from .creatures import AbilityScores, Character, Monster, get_ability_modifier

Position = Tuple[int, int]


class ActiveCondition(EngineModel):
    condition: Condition
    # Turns remaining; -1 = indefinite, None = until cured
    duration: Optional[int] = None
    source: Optional[str] = None


class DeathSaves(EngineModel):
    successes: int = 0
    failures: int = 0


class VexedBy(EngineModel):
    attacker_id: str
    expires_on_round: int


class Combatant(EngineModel):
    """A character or monster taking part in an encounter."""
    id: str
    name: str
    type: Literal["character", "monster"]
    data: Union[Character, Monster]
    position: Position = (0, 0)
    initiative: int = 0  # Rolled d20 + DEX; Alert is added when the order is built
    current_hp: int
    max_hp: int
    temporary_hp: int = 0
    conditions: List[ActiveCondition] = Field(default_factory=list)
    concentrating_on: Optional[str] = None  # Spell id

    # Action economy
    has_acted: bool = False
    has_bonus_acted: bool = False
    has_reacted: bool = False
    movement_used: int = 0
    attacks_made_this_turn: int = 0

    # Resource pools
    class_feature_uses: Dict[str, int] = Field(default_factory=dict)
    racial_ability_uses: Dict[str, int] = Field(default_factory=dict)
    feat_uses: Dict[str, int] = Field(default_factory=dict)
    magic_initiate_free_uses: Dict[str, bool] = Field(default_factory=dict)
    superiority_dice_remaining: int = 0

    # Death saves
    death_saves: DeathSaves = Field(default_factory=DeathSaves)
    is_stable: bool = False

    # One-shot flags
    used_sneak_attack_this_turn: bool = False
    used_maneuver_this_attack: bool = False
    used_cleave_this_turn: bool = False
    used_nick_this_turn: bool = False
    used_savage_attacker_this_turn: bool = False
    used_tavern_brawler_push_this_turn: bool = False

    # Transient bonuses
    feint_target: Optional[str] = None
    feint_bonus_damage: Optional[int] = None
    lunging_attack_bonus: Optional[int] = None
    evasive_footwork_bonus: Optional[int] = None
    goaded_by: Optional[str] = None
    studied_target_id: Optional[str] = None
    vexed_by: Optional[VexedBy] = None
    heroic_inspiration: bool = False

    @model_validator(mode="after")
    def _check_consistency(self) -> "Combatant":
        expected = Character if self.type == "character" else Monster
        if not isinstance(self.data, expected):
            raise InvalidCombatantError(
                f"Combatant of type '{self.type}' carries {type(self.data).__name__} data",
                combatant_id=self.id,
            )
        if self.max_hp < 0 or not 0 <= self.current_hp <= self.max_hp:
            raise InvalidCombatantError(
                f"current_hp {self.current_hp} outside 0..{self.max_hp}",
                combatant_id=self.id,
            )
        return self

    @property
    def is_character(self) -> bool:
        return self.type == "character"

    @property
    def is_monster(self) -> bool:
        return self.type == "monster"

    @property
    def character(self) -> Optional[Character]:
        return self.data if isinstance(self.data, Character) else None

    @property
    def monster(self) -> Optional[Monster]:
        return self.data if isinstance(self.data, Monster) else None

    @property
    def level(self) -> int:
        """Character level; monsters count as level 0."""
        return self.data.level if isinstance(self.data, Character) else 0

    @property
    def ability_scores(self) -> AbilityScores:
        return self.data.ability_scores

    def ability_modifier(self, ability: AbilityName) -> int:
        return get_ability_modifier(self.ability_scores.get(ability))

    def has_condition(self, condition: Union[Condition, str]) -> bool:
        name = Condition(condition)
        return any(c.condition == name for c in self.conditions)

    def get_condition(self, condition: Union[Condition, str]) -> Optional[ActiveCondition]:
        name = Condition(condition)
        for active in self.conditions:
            if active.condition == name:
                return active
        return None
