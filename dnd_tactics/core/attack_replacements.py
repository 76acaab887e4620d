"""
Attack Replacements.

Options that stand in for one attack of the Attack action. Today that is
the Breath Weapon: an area blast where every creature inside rolls a save
for half damage. A replacement uses one of the attacker's attacks, so a
fighter with Extra Attack can breathe and still swing.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import logging

from dnd_tactics.core.aoe_shapes import get_aoe_affected_cells
from dnd_tactics.core.class_features import get_max_attacks_per_action
from dnd_tactics.core.damage_resolution import (
    DamageApplication,
    calculate_damage_application,
    get_damage_after_resistances,
    is_dead,
)
from dnd_tactics.core.dice import roll
from dnd_tactics.core.racial_abilities import (
    calculate_breath_weapon_dc,
    get_abilities_of_type,
    get_breath_weapon,
    get_breath_weapon_damage,
    roll_breath_weapon_damage,
    use_racial_ability,
)
from dnd_tactics.core.saving_throws import SavingThrowResult, roll_combatant_saving_throw
from dnd_tactics.models.combatant import Combatant, Position
from dnd_tactics.models.common import AbilityName, DamageType
from dnd_tactics.models.features import BreathWeaponAbility
from dnd_tactics.models.spells import AoEType

logger = logging.getLogger(__name__)

BREATH_WEAPON_PREFIX = "breath-weapon-"


@dataclass
class AttackReplacement:
    """An area attack that can replace one attack of the Attack action."""
    id: str
    name: str
    source: str
    source_id: str
    aoe_type: AoEType
    aoe_size: int
    damage_type: DamageType
    damage_dice: str
    saving_throw: AbilityName
    dc_ability: AbilityName
    dc: int
    uses_remaining: Optional[int] = None
    max_uses: Optional[int] = None
    targeting_type: str = "aoe"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "source": self.source,
            "source_id": self.source_id,
            "targeting_type": self.targeting_type,
            "aoe_type": self.aoe_type.value,
            "aoe_size": self.aoe_size,
            "damage_type": self.damage_type.value,
            "damage_dice": self.damage_dice,
            "saving_throw": self.saving_throw.value,
            "dc_ability": self.dc_ability.value,
            "dc": self.dc,
            "uses_remaining": self.uses_remaining,
            "max_uses": self.max_uses,
        }


@dataclass
class AoETargetResult:
    target_id: str
    target_name: str
    save: SavingThrowResult
    saved: bool
    damage_dealt: int
    resistance_applied: bool
    application: DamageApplication

    @property
    def save_roll(self) -> int:
        return self.save.roll.natural_roll

    @property
    def save_total(self) -> int:
        return self.save.roll.total


@dataclass
class AoEAttackResult:
    attacker_id: str
    replacement_id: str
    replacement_name: str
    damage_rolled: int
    damage_type: DamageType
    dc: int
    saving_throw: AbilityName
    targets: List[AoETargetResult] = field(default_factory=list)


# =============================================================================
# AVAILABILITY
# =============================================================================

def get_breath_weapon_replacement(
    combatant: Combatant,
    uses: Optional[Dict[str, int]] = None
) -> Optional[AttackReplacement]:
    """The Breath Weapon as an attack replacement; uses_remaining is 0 when spent."""
    status = get_breath_weapon(combatant, uses)
    ability = status.ability
    if ability is None:
        return None

    damage_type = DamageType(ability.damage_type)
    return AttackReplacement(
        id=f"{BREATH_WEAPON_PREFIX}{ability.id}",
        name=f"Breath Weapon ({damage_type.value.capitalize()})",
        source="racial",
        source_id=ability.id,
        aoe_type=AoEType(ability.shape),
        aoe_size=ability.size,
        damage_type=damage_type,
        damage_dice=get_breath_weapon_damage(combatant, ability),
        saving_throw=AbilityName(ability.saving_throw),
        dc_ability=AbilityName(ability.dc_ability),
        dc=calculate_breath_weapon_dc(combatant, ability),
        uses_remaining=status.uses_remaining if status.available else 0,
        max_uses=ability.max_uses,
    )


def get_available_attack_replacements(
    combatant: Combatant,
    uses: Optional[Dict[str, int]] = None
) -> List[AttackReplacement]:
    """Every attack replacement the combatant has, spent or not."""
    replacements = []
    breath = get_breath_weapon_replacement(combatant, uses)
    if breath is not None:
        replacements.append(breath)
    return replacements


def can_use_attack_replacement(combatant: Combatant, replacement: AttackReplacement) -> bool:
    """
    Uses left, an attack left in the Attack action, and the action not
    already spent on something other than attacking.
    """
    if replacement.uses_remaining is not None and replacement.uses_remaining <= 0:
        return False
    if combatant.attacks_made_this_turn >= get_max_attacks_per_action(combatant):
        return False
    if combatant.has_acted and combatant.attacks_made_this_turn == 0:
        return False
    return True


def get_attack_replacement_by_id(
    combatant: Combatant,
    replacement_id: str,
    uses: Optional[Dict[str, int]] = None
) -> Optional[AttackReplacement]:
    return next(
        (r for r in get_available_attack_replacements(combatant, uses) if r.id == replacement_id),
        None,
    )


def has_usable_attack_replacements(combatant: Combatant) -> bool:
    return any(
        can_use_attack_replacement(combatant, r)
        for r in get_available_attack_replacements(combatant)
    )


# =============================================================================
# RESOLUTION
# =============================================================================

def find_replacement_targets(
    attacker: Combatant,
    replacement: AttackReplacement,
    target_position: Position,
    combatants: Sequence[Combatant]
) -> List[Combatant]:
    """Every living creature other than the attacker inside the area, allies included."""
    cells = get_aoe_affected_cells(
        replacement.aoe_type, replacement.aoe_size, attacker.position, target_position
    )
    return [
        c for c in combatants
        if c.id != attacker.id and not is_dead(c) and tuple(c.position) in cells
    ]


def _roll_replacement_damage(attacker: Combatant, replacement: AttackReplacement) -> int:
    abilities = [
        a for a in get_abilities_of_type(attacker, BreathWeaponAbility)
        if a.id == replacement.source_id
    ]
    if abilities:
        total, _ = roll_breath_weapon_damage(attacker, abilities[0])
        return total
    return roll(replacement.damage_dice).total


def resolve_attack_replacement(
    attacker: Combatant,
    replacement: AttackReplacement,
    targets: Sequence[Combatant]
) -> AoEAttackResult:
    """
    Roll damage once, then each target saves.

    A successful save halves the damage (rounded down) before resistances
    and immunities. Each target result carries the DamageApplication the
    caller folds into that combatant.
    """
    damage_rolled = _roll_replacement_damage(attacker, replacement)
    result = AoEAttackResult(
        attacker_id=attacker.id,
        replacement_id=replacement.id,
        replacement_name=replacement.name,
        damage_rolled=damage_rolled,
        damage_type=replacement.damage_type,
        dc=replacement.dc,
        saving_throw=replacement.saving_throw,
    )

    for target in targets:
        save = roll_combatant_saving_throw(
            target, replacement.saving_throw, replacement.dc, damage_type=replacement.damage_type
        )
        damage = damage_rolled // 2 if save.success else damage_rolled
        dealt = get_damage_after_resistances(target, damage, replacement.damage_type)
        result.targets.append(AoETargetResult(
            target_id=target.id,
            target_name=target.name,
            save=save,
            saved=save.success,
            damage_dealt=dealt,
            resistance_applied=dealt < damage,
            application=calculate_damage_application(target, dealt),
        ))

    logger.debug(
        "%s uses %s: %d %s damage, DC %d, %d target(s)",
        attacker.name, replacement.name, damage_rolled,
        replacement.damage_type.value, replacement.dc, len(result.targets),
    )
    return result


def spend_attack_replacement(attacker: Combatant, replacement: AttackReplacement) -> Combatant:
    """
    Count the replacement as one attack and spend its use.

    The action is used up once the last attack of the Attack action is made.
    """
    new_uses, _ = use_racial_ability(attacker, replacement.source_id)
    attacks_made = attacker.attacks_made_this_turn + 1
    return attacker.model_copy(update={
        "racial_ability_uses": new_uses,
        "attacks_made_this_turn": attacks_made,
        "has_acted": attacks_made >= get_max_attacks_per_action(attacker),
    })
