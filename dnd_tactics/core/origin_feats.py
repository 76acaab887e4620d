"""
Origin Feats in combat.

Queries and rolls for the origin feats that matter in a fight: Alert,
Healer (Battle Medic), Lucky, Savage Attacker, Tavern Brawler and
Musician. Feats come from ``character.origin_feat_ids``; limited uses
live in ``combatant.feat_uses`` and once-per-turn flags on the combatant.
Monsters have no origin feats.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from dnd_tactics.core.damage_resolution import is_dead
from dnd_tactics.core.dice import DiceRollResult, roll, roll_damage, roll_die
from dnd_tactics.core.grid import CombatGrid, get_push_destination
from dnd_tactics.data.origin_feats import get_origin_feat_by_id
from dnd_tactics.models.combatant import Combatant, Position
from dnd_tactics.models.common import AbilityName, Condition, DamageType
from dnd_tactics.models.creatures import Weapon
from dnd_tactics.models.feats import OriginFeat

logger = logging.getLogger(__name__)

ALERT = "alert"
HEALER = "healer"
LUCKY = "lucky"
MUSICIAN = "musician"
SAVAGE_ATTACKER = "savage-attacker"
TAVERN_BRAWLER = "tavern-brawler"

UNARMED_STRIKE_ID = "unarmed"
TAVERN_BRAWLER_PUSH_FEET = 5


@dataclass
class FeatRoll:
    """One feat-modified roll and how it was reached."""
    total: int
    rolls: List[int]
    rerolled: bool
    breakdown: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "rolls": self.rolls,
            "rerolled": self.rerolled,
            "breakdown": self.breakdown,
        }


@dataclass
class SavageAttackerRoll:
    """Both damage rolls; the attacker may use either."""
    first: DiceRollResult
    second: DiceRollResult

    @property
    def better(self) -> DiceRollResult:
        return self.first if self.first.total >= self.second.total else self.second


# =============================================================================
# FEAT ACCESS
# =============================================================================

def has_feat(combatant: Combatant, feat_id: str) -> bool:
    character = combatant.character
    return character is not None and feat_id in character.origin_feat_ids


def get_combatant_origin_feats(combatant: Combatant) -> List[OriginFeat]:
    """Combat-relevant origin feats, in the order the character took them."""
    character = combatant.character
    if character is None:
        return []
    feats = [get_origin_feat_by_id(fid) for fid in character.origin_feat_ids]
    return [f for f in feats if f is not None and f.affects_combat]


def _proficiency(combatant: Combatant) -> int:
    character = combatant.character
    return character.proficiency_bonus if character is not None else 0


def _is_incapacitated(combatant: Combatant) -> bool:
    return combatant.has_condition(Condition.INCAPACITATED)


# =============================================================================
# ALERT
# =============================================================================

def get_alert_initiative_bonus(combatant: Combatant) -> int:
    """Alert adds the proficiency bonus to initiative."""
    if not has_feat(combatant, ALERT):
        return 0
    return _proficiency(combatant)


def can_swap_initiative(combatant: Combatant) -> bool:
    return has_feat(combatant, ALERT) and not _is_incapacitated(combatant)


def get_eligible_swap_targets(swapper: Combatant, all_combatants: Sequence[Combatant]) -> List[Combatant]:
    """Allies on the same side who are not incapacitated."""
    if not can_swap_initiative(swapper):
        return []
    return [
        c for c in all_combatants
        if c.id != swapper.id and c.type == swapper.type and not _is_incapacitated(c)
    ]


def get_initiative_total(combatant: Combatant) -> int:
    """Rolled initiative plus Alert."""
    return combatant.initiative + get_alert_initiative_bonus(combatant)


def swap_initiative(swapper: Combatant, ally: Combatant) -> Optional[Tuple[Combatant, Combatant]]:
    """
    Exchange initiative totals with an ally.

    Stored rolls are adjusted so each side ends up with the other's total
    once its own Alert bonus is added back. Returns None when the swap is
    not allowed.
    """
    if not get_eligible_swap_targets(swapper, [ally]):
        return None
    swapper_total = get_initiative_total(swapper)
    ally_total = get_initiative_total(ally)
    logger.debug("%s swaps initiative with %s (%d <-> %d)", swapper.name, ally.name, swapper_total, ally_total)
    return (
        swapper.model_copy(update={"initiative": ally_total - get_alert_initiative_bonus(swapper)}),
        ally.model_copy(update={"initiative": swapper_total - get_alert_initiative_bonus(ally)}),
    )


# =============================================================================
# HEALER
# =============================================================================

def can_use_battle_medic(combatant: Combatant) -> bool:
    """Battle Medic takes the action."""
    return has_feat(combatant, HEALER) and not combatant.has_acted


def get_battle_medic_targets(healer: Combatant, all_combatants: Sequence[Combatant]) -> List[Combatant]:
    """The healer or an adjacent ally who is wounded but still conscious."""
    if not can_use_battle_medic(healer):
        return []
    targets = []
    for candidate in all_combatants:
        if not 0 < candidate.current_hp < candidate.max_hp:
            continue
        if candidate.id == healer.id:
            targets.append(candidate)
            continue
        if candidate.type != healer.type:
            continue
        dx = abs(candidate.position[0] - healer.position[0])
        dy = abs(candidate.position[1] - healer.position[1])
        if dx <= 1 and dy <= 1:
            targets.append(candidate)
    return targets


def roll_battle_medic_healing(healer: Combatant, target_hit_die: int) -> FeatRoll:
    """Roll the target's Hit Die (rerolling a 1 once) and add the healer's proficiency."""
    proficiency = _proficiency(healer)
    value = roll_die(target_hit_die)
    rerolled = value == 1
    if rerolled:
        value = roll_die(target_hit_die)

    total = value + proficiency
    note = " (rerolled 1)" if rerolled else ""
    return FeatRoll(
        total=total,
        rolls=[value],
        rerolled=rerolled,
        breakdown=f"[{value}]{note} + {proficiency} = {total}",
    )


def _reroll_ones(rolls: Sequence[int], die_size: int) -> Tuple[List[int], bool]:
    new_rolls = [roll_die(die_size) if r == 1 else r for r in rolls]
    return new_rolls, any(r == 1 for r in rolls)


def apply_healing_reroll(rolls: Sequence[int], die_size: int) -> Tuple[List[int], bool]:
    """Healing Rerolls: every 1 on a healing die is rolled again and the new value kept."""
    return _reroll_ones(rolls, die_size)


# =============================================================================
# LUCKY
# =============================================================================

def get_luck_points(combatant: Combatant) -> int:
    """Maximum luck points: the proficiency bonus."""
    if not has_feat(combatant, LUCKY):
        return 0
    return _proficiency(combatant)


def get_luck_points_remaining(combatant: Combatant, uses: Optional[Dict[str, int]] = None) -> int:
    max_points = get_luck_points(combatant)
    if max_points == 0:
        return 0
    pool = combatant.feat_uses if uses is None else uses
    return pool.get(LUCKY, max_points)


def can_use_luck_point(combatant: Combatant, uses: Optional[Dict[str, int]] = None) -> bool:
    return get_luck_points_remaining(combatant, uses) > 0


def spend_luck_point(combatant: Combatant) -> Combatant:
    """Use one luck point (never below 0)."""
    uses = use_feat_charge(LUCKY, combatant.feat_uses, get_luck_points(combatant))
    return combatant.model_copy(update={"feat_uses": uses})


# =============================================================================
# SAVAGE ATTACKER
# =============================================================================

def can_use_savage_attacker(combatant: Combatant) -> bool:
    return has_feat(combatant, SAVAGE_ATTACKER) and not combatant.used_savage_attacker_this_turn


def roll_savage_attacker_damage(damage_expression: str, critical: bool = False) -> SavageAttackerRoll:
    return SavageAttackerRoll(
        first=roll_damage(damage_expression, critical=critical),
        second=roll_damage(damage_expression, critical=critical),
    )


# =============================================================================
# TAVERN BRAWLER
# =============================================================================

def is_unarmed_strike(weapon: Optional[Weapon]) -> bool:
    return weapon is None or weapon.id == UNARMED_STRIKE_ID


def has_tavern_brawler(combatant: Combatant) -> bool:
    return has_feat(combatant, TAVERN_BRAWLER)


def _signed(modifier: int) -> str:
    return f"+{modifier}" if modifier >= 0 else str(modifier)


def get_tavern_brawler_damage(combatant: Combatant) -> str:
    """1d4 + STR with the feat; a flat 1 otherwise."""
    if not has_tavern_brawler(combatant):
        return "1"
    return f"1d4{_signed(combatant.ability_modifier(AbilityName.STRENGTH))}"


def roll_tavern_brawler_damage(combatant: Combatant, critical: bool = False) -> FeatRoll:
    """
    Enhanced unarmed strike damage.

    1d4 (2d4 on a crit), each 1 rerolled once, plus the STR modifier.
    Monsters deal nothing through this path.
    """
    if not combatant.is_character:
        return FeatRoll(total=0, rolls=[], rerolled=False, breakdown="0")

    strength = combatant.ability_modifier(AbilityName.STRENGTH)
    first = roll(f"{2 if critical else 1}d4").rolls
    rolls, rerolled = _reroll_ones(first, 4)
    total = sum(rolls) + strength

    crit = "CRIT! " if critical else ""
    note = " (rerolled 1s)" if rerolled else ""
    return FeatRoll(
        total=total,
        rolls=rolls,
        rerolled=rerolled,
        breakdown=f"{crit}[{', '.join(str(r) for r in rolls)}]{_signed(strength)}{note} = {total}",
    )


def can_tavern_brawler_push(combatant: Combatant) -> bool:
    return has_tavern_brawler(combatant) and not combatant.used_tavern_brawler_push_this_turn


def calculate_push_position(
    attacker: Combatant,
    target: Combatant,
    grid: CombatGrid,
    all_combatants: Sequence[Combatant] = ()
) -> Optional[Position]:
    """
    Where a Tavern Brawler push moves the target, 5 feet straight away.

    None when the push cannot happen: attacker and target share a cell,
    or the next cell is off the grid, blocked or occupied by a living
    creature.
    """
    occupied = [
        tuple(c.position) for c in all_combatants
        if c.id not in (attacker.id, target.id) and not is_dead(c)
    ]
    destination = get_push_destination(
        grid, attacker.position, target.position, TAVERN_BRAWLER_PUSH_FEET, occupied
    )
    if destination == tuple(target.position):
        return None
    return destination


def get_unarmed_damage_type() -> DamageType:
    return DamageType.BLUDGEONING


# =============================================================================
# MUSICIAN AND HEROIC INSPIRATION
# =============================================================================

def has_musician(combatant: Combatant) -> bool:
    return has_feat(combatant, MUSICIAN)


def starts_with_heroic_inspiration(combatant: Combatant) -> bool:
    """Musicians and humans begin combat with Heroic Inspiration."""
    if has_musician(combatant):
        return True
    character = combatant.character
    return character is not None and character.race.id == "human"


def can_use_heroic_inspiration(combatant: Combatant) -> bool:
    return combatant.heroic_inspiration


# =============================================================================
# USAGE TRACKING
# =============================================================================

def initialize_feat_uses(combatant: Combatant) -> Dict[str, int]:
    """Starting use counts; only Lucky is limited per combat."""
    uses: Dict[str, int] = {}
    if has_feat(combatant, LUCKY):
        uses[LUCKY] = get_luck_points(combatant)
    return uses


def use_feat_charge(feat_id: str, uses: Dict[str, int], max_uses: int) -> Dict[str, int]:
    """A new uses dict with one charge of ``feat_id`` spent."""
    current = uses.get(feat_id, max_uses)
    return {**uses, feat_id: max(0, current - 1)}
