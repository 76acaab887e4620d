"""
Spell Casting.

Legality checks and resolution for spells in combat:
- Action economy (action / bonus action; reactions need a trigger)
- Spell slots, upcasting and Magic Initiate free casts
- Spell attacks, saving throws and multi-projectile spells
- Area of effect targeting
- Cantrip damage tiers and upcast dice
- Reaction spells (Shield) and concentration checks

Validation returns reasoned rejections; nothing here raises for a rule
failure.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import re

from dnd_tactics.core.aoe_shapes import get_aoe_affected_cells
from dnd_tactics.core.class_features import can_use_indomitable
from dnd_tactics.core.combat import get_combatant_ac
from dnd_tactics.core.damage_resolution import is_dead
from dnd_tactics.core.dice import D20Result, DiceRollResult, roll_d20, roll_damage, roll_die
from dnd_tactics.core.grid import Position
from dnd_tactics.core.rules_config import is_cantrip_scaling_enabled
from dnd_tactics.core.saving_throws import SavingThrowResult, roll_combatant_saving_throw
from dnd_tactics.models.combatant import Combatant
from dnd_tactics.models.common import AbilityName, Condition, DamageType
from dnd_tactics.models.creatures import Character, SpellSlot
from dnd_tactics.models.spells import Spell

logger = logging.getLogger(__name__)

SHIELD_AC_BONUS = 5
_SIMPLE_DICE = re.compile(r"^(\d+)d(\d+)$")
_FIRST_DIE = re.compile(r"d\d+")


@dataclass
class SpellCastValidation:
    can_cast: bool
    is_bonus_action: bool = False
    reason: Optional[str] = None


@dataclass
class SpellSlotValidation:
    can_cast: bool
    use_magic_initiate_free_use: bool = False
    slot_level: Optional[int] = None
    slots_remaining: Optional[int] = None
    reason: Optional[str] = None


@dataclass
class SpellAttackResult:
    hit: bool
    critical: bool
    natural_one: bool
    attack_roll: D20Result
    target_ac: int
    damage_type: Optional[DamageType] = None
    damage: Optional[DiceRollResult] = None
    blade_ward_penalty: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hit": self.hit,
            "critical": self.critical,
            "natural_one": self.natural_one,
            "attack_roll": self.attack_roll.breakdown,
            "attack_total": self.attack_roll.total,
            "target_ac": self.target_ac,
            "damage": self.damage.total if self.damage else None,
            "damage_type": self.damage_type.value if self.damage_type else None,
        }


@dataclass
class SpellSaveResult:
    saved: bool
    save: SavingThrowResult
    dc: int
    damage: Optional[DiceRollResult]
    half_damage: int
    damage_type: Optional[DamageType]
    effective_dice: Optional[str]
    condition_applied: Optional[Condition] = None
    # Reroll options for a failed save
    can_use_indomitable: bool = False
    can_use_heroic_inspiration: bool = False

    @property
    def damage_taken(self) -> int:
        if self.damage is None:
            return 0
        return self.half_damage if self.saved else self.damage.total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "saved": self.saved,
            "save_roll": self.save.roll.breakdown,
            "save_total": self.save.roll.total,
            "natural_roll": self.save.roll.natural_roll,
            "modifier": self.save.modifier,
            "dc": self.dc,
            "damage": self.damage.total if self.damage else None,
            "half_damage": self.half_damage,
            "damage_taken": self.damage_taken,
            "damage_type": self.damage_type.value if self.damage_type else None,
            "effective_dice": self.effective_dice,
            "condition_applied": self.condition_applied.value if self.condition_applied else None,
            "can_use_indomitable": self.can_use_indomitable,
            "can_use_heroic_inspiration": self.can_use_heroic_inspiration,
        }


@dataclass
class ProjectileAssignment:
    target_id: str
    count: int


@dataclass
class ProjectileTargetResult:
    target_id: str
    target_name: str
    total_damage: int
    per_projectile_damages: List[int] = field(default_factory=list)
    damage_type: DamageType = DamageType.FORCE
    count: int = 0


@dataclass
class ShieldReactionResult:
    new_ac: int
    ac_bonus: int
    attack_blocked: bool


# =============================================================================
# CASTER STATS
# =============================================================================

def _spellcasting_modifier(character: Optional[Character]) -> Optional[int]:
    if character is None:
        return None
    spellcasting = character.character_class.spellcasting
    if spellcasting is None:
        return None
    return character.ability_scores.modifier(spellcasting.ability)


def get_spell_save_dc(character: Optional[Character]) -> int:
    """8 + proficiency + spellcasting modifier; 10 for non-casters and monsters."""
    modifier = _spellcasting_modifier(character)
    if modifier is None:
        return 10
    return 8 + character.proficiency_bonus + modifier


def get_spell_attack_bonus(character: Optional[Character]) -> int:
    """Proficiency + spellcasting modifier; 0 for non-casters and monsters."""
    modifier = _spellcasting_modifier(character)
    if modifier is None:
        return 0
    return character.proficiency_bonus + modifier


# =============================================================================
# VALIDATION
# =============================================================================

def validate_spell_casting(caster: Combatant, spell: Spell) -> SpellCastValidation:
    """
    Action economy check for casting. Spell slots are checked separately
    by ``validate_spell_slot``.
    """
    if not caster.is_character:
        return SpellCastValidation(can_cast=False, reason="Only characters can cast spells")

    if spell.is_reaction:
        return SpellCastValidation(can_cast=False, reason="Reaction spells require a trigger")

    is_bonus_action = spell.is_bonus_action
    if is_bonus_action and caster.has_bonus_acted:
        return SpellCastValidation(
            can_cast=False, is_bonus_action=True, reason="Bonus action already used"
        )
    if not is_bonus_action and caster.has_acted:
        return SpellCastValidation(can_cast=False, reason="Action already used")

    return SpellCastValidation(can_cast=True, is_bonus_action=is_bonus_action)


def validate_spell_slot(
    caster: Combatant,
    spell: Spell,
    cast_at_level: Optional[int] = None
) -> SpellSlotValidation:
    """
    Check slot availability for a leveled spell.

    Cantrips always pass. A Magic Initiate free use covers a base-level
    cast only. ``cast_at_level`` below the spell's level is ignored.
    """
    if spell.is_cantrip:
        return SpellSlotValidation(can_cast=True)

    if cast_at_level is None and caster.magic_initiate_free_uses.get(spell.id) is True:
        return SpellSlotValidation(can_cast=True, use_magic_initiate_free_use=True)

    effective_level = cast_at_level if cast_at_level and cast_at_level >= spell.level else spell.level

    character = caster.character
    spell_slots = character.spell_slots if character is not None else None
    if not spell_slots:
        return SpellSlotValidation(can_cast=False, reason="No spell slots")

    slot = spell_slots.get(effective_level)
    if slot is None or slot.current <= 0:
        return SpellSlotValidation(
            can_cast=False,
            slot_level=effective_level,
            reason=f"No level {effective_level} spell slots remaining",
        )

    return SpellSlotValidation(
        can_cast=True,
        slot_level=effective_level,
        slots_remaining=slot.current,
    )


def expend_spell_slot(
    caster: Combatant,
    spell: Spell,
    validation: SpellSlotValidation
) -> Combatant:
    """Spend the slot (or the Magic Initiate free use) a validation approved."""
    if not validation.can_cast or spell.is_cantrip:
        return caster

    if validation.use_magic_initiate_free_use:
        free_uses = dict(caster.magic_initiate_free_uses)
        free_uses[spell.id] = False
        return caster.model_copy(update={"magic_initiate_free_uses": free_uses})

    character = caster.character
    slot = character.spell_slots[validation.slot_level]
    slots = dict(character.spell_slots)
    slots[validation.slot_level] = SpellSlot(max=slot.max, current=max(0, slot.current - 1))
    return caster.model_copy(update={
        "data": character.model_copy(update={"spell_slots": slots}),
    })


# =============================================================================
# DAMAGE DICE
# =============================================================================

def get_scaled_cantrip_dice(spell: Spell, caster_level: int) -> Optional[str]:
    """
    Cantrip damage at a character level: the highest tier whose level is
    at or below ``caster_level``. Leveled spells keep their base dice.
    """
    if spell.damage is None:
        return None
    dice = spell.damage.dice
    if not spell.is_cantrip or not is_cantrip_scaling_enabled():
        return dice
    for threshold, scaled in sorted(spell.damage.scaling.items()):
        if caster_level >= threshold:
            dice = scaled
    return dice


def get_effective_damage_dice(
    spell: Spell,
    caster_level: int,
    cast_at_level: Optional[int] = None
) -> Optional[str]:
    """Cantrip tier dice, plus upcast dice for leveled spells cast higher."""
    base = get_scaled_cantrip_dice(spell, caster_level)
    if base is None:
        return None

    upcast = spell.upcast_dice
    if cast_at_level and cast_at_level > spell.level and upcast is not None:
        times = (cast_at_level - spell.level) // max(1, upcast.per_levels)
        match = _SIMPLE_DICE.match(upcast.dice_per_level)
        if times > 0 and match:
            extra = int(match.group(1)) * times
            return f"{base}+{extra}d{match.group(2)}"
    return base


def get_projectile_count(spell: Spell, cast_at_level: Optional[int] = None) -> int:
    """Projectiles at a slot level (Magic Missile: 3, +1 per level above 1st)."""
    if spell.projectiles is None:
        return 0
    levels_above = max(0, (cast_at_level or spell.level) - spell.level)
    return spell.projectiles.count + spell.projectiles.scaling_per_slot_level * levels_above


# =============================================================================
# TARGETING
# =============================================================================

def find_aoe_targets(
    caster: Combatant,
    spell: Spell,
    combatants: Sequence[Combatant],
    target_position: Optional[Position] = None,
    target_id: Optional[str] = None
) -> List[Combatant]:
    """
    Living enemies of the caster inside a spell's area.

    The area is aimed at ``target_position``, or at the current position of
    ``target_id`` when no position is given. Characters only hit monsters
    and monsters only hit characters.
    """
    aoe = spell.area_of_effect
    if aoe is None:
        return []

    aim = target_position
    if aim is None and target_id is not None:
        aim = next((c.position for c in combatants if c.id == target_id), None)
    if aim is None:
        return []

    cells = get_aoe_affected_cells(aoe.type, aoe.size, caster.position, aim)
    targets = []
    for combatant in combatants:
        if combatant.id == caster.id or is_dead(combatant):
            continue
        if combatant.type == caster.type:
            continue
        if tuple(combatant.position) in cells:
            targets.append(combatant)
    return targets


# =============================================================================
# RESOLUTION
# =============================================================================

def resolve_spell_attack(
    caster: Combatant,
    target: Combatant,
    spell: Spell,
    scaled_damage_dice: Optional[str]
) -> SpellAttackResult:
    """
    One spell attack roll.

    Natural 1 always misses; natural 20 always hits and crits. Blade Ward
    on the target subtracts 1d4 from the roll.
    """
    attack_roll = roll_d20(modifier=get_spell_attack_bonus(caster.character))
    target_ac = get_combatant_ac(target)
    damage_type = spell.damage.type if spell.damage else None

    if attack_roll.natural_1:
        return SpellAttackResult(
            hit=False,
            critical=False,
            natural_one=True,
            attack_roll=attack_roll,
            target_ac=target_ac,
            damage_type=damage_type,
        )

    penalty = 0
    if target.has_condition(Condition.BLADE_WARD):
        penalty = roll_die(4)
        attack_roll = attack_roll.with_penalty(penalty)

    if attack_roll.natural_20 or attack_roll.total >= target_ac:
        critical = attack_roll.natural_20
        damage = roll_damage(scaled_damage_dice, critical=critical) if scaled_damage_dice else None
        return SpellAttackResult(
            hit=True,
            critical=critical,
            natural_one=False,
            attack_roll=attack_roll,
            target_ac=target_ac,
            damage_type=damage_type,
            damage=damage,
            blade_ward_penalty=penalty,
        )

    return SpellAttackResult(
        hit=False,
        critical=False,
        natural_one=False,
        attack_roll=attack_roll,
        target_ac=target_ac,
        damage_type=damage_type,
        blade_ward_penalty=penalty,
    )


def _upgrade_die(dice: str, upgraded_die: str) -> str:
    match = _FIRST_DIE.search(dice)
    if match is None:
        return dice
    return dice.replace(match.group(0), upgraded_die)


def resolve_spell_save(
    caster: Combatant,
    target: Combatant,
    spell: Spell,
    scaled_damage_dice: Optional[str]
) -> SpellSaveResult:
    """
    The target saves against the caster's spell DC.

    Success halves damage (rounded down); failure takes it all plus the
    spell's failed-save condition. The upgraded die (Toll the Dead) is used
    only when the target is below its max HP.
    """
    dc = get_spell_save_dc(caster.character)

    effective_dice = scaled_damage_dice
    if effective_dice and spell.damaged_target_die_upgrade and target.current_hp < target.max_hp:
        effective_dice = _upgrade_die(effective_dice, spell.damaged_target_die_upgrade)

    save = roll_combatant_saving_throw(
        target,
        spell.saving_throw or AbilityName.DEXTERITY,
        dc,
        condition=spell.condition_on_failed_save,
        damage_type=spell.damage.type if spell.damage else None,
        is_magic=True,
    )
    damage = roll_damage(effective_dice) if effective_dice else None
    failed_character_save = not save.success and target.is_character

    return SpellSaveResult(
        saved=save.success,
        save=save,
        dc=dc,
        damage=damage,
        half_damage=damage.total // 2 if damage else 0,
        damage_type=spell.damage.type if spell.damage else None,
        effective_dice=effective_dice,
        condition_applied=None if save.success else spell.condition_on_failed_save,
        can_use_indomitable=failed_character_save and can_use_indomitable(target),
        can_use_heroic_inspiration=failed_character_save and target.heroic_inspiration,
    )


def resolve_projectiles(
    spell: Spell,
    assignments: Sequence[ProjectileAssignment],
    combatants: Sequence[Combatant]
) -> List[ProjectileTargetResult]:
    """Roll each projectile separately and total them per target. Dead targets are skipped."""
    if spell.projectiles is None:
        return []
    damage_type = spell.damage.type if spell.damage else DamageType.FORCE
    by_id = {c.id: c for c in combatants}

    results = []
    for assignment in assignments:
        target = by_id.get(assignment.target_id)
        if target is None or is_dead(target):
            continue
        rolls = [
            roll_damage(spell.projectiles.damage_per_projectile).total
            for _ in range(assignment.count)
        ]
        results.append(ProjectileTargetResult(
            target_id=target.id,
            target_name=target.name,
            total_damage=sum(rolls),
            per_projectile_damages=rolls,
            damage_type=damage_type,
            count=assignment.count,
        ))
    return results


# =============================================================================
# REACTIONS AND CONCENTRATION
# =============================================================================

def get_available_reaction_spells(combatant: Combatant, trigger: str) -> List[Spell]:
    """Known or prepared reaction spells for a trigger that can be cast now."""
    character = combatant.character
    if character is None or combatant.has_reacted:
        return []

    available = []
    seen = set()
    for spell in list(character.known_spells) + list(character.prepared_spells):
        if spell.id in seen or spell.reaction is None or spell.reaction.trigger != trigger:
            continue
        seen.add(spell.id)
        if spell.level > 0 and character.spell_slots:
            slot = character.spell_slots.get(spell.level)
            if slot is None or slot.current <= 0:
                continue
        available.append(spell)
    return available


def calculate_shield_reaction(
    attack_roll: int,
    current_ac: int,
    ac_bonus: int = SHIELD_AC_BONUS
) -> ShieldReactionResult:
    new_ac = current_ac + ac_bonus
    return ShieldReactionResult(
        new_ac=new_ac,
        ac_bonus=ac_bonus,
        attack_blocked=attack_roll < new_ac,
    )


def start_concentration(caster: Combatant, spell: Spell) -> Combatant:
    """Concentrating on a new spell ends the previous one."""
    if not spell.concentration:
        return caster
    return caster.model_copy(update={"concentrating_on": spell.id})


def get_concentration_dc(damage: int) -> int:
    return max(10, damage // 2)


def roll_concentration_check(combatant: Combatant, damage: int) -> Tuple[bool, Combatant]:
    """
    CON save to keep concentrating after taking damage.

    Returns:
        (kept concentration, updated combatant)
    """
    if combatant.concentrating_on is None or damage <= 0:
        return True, combatant
    save = roll_combatant_saving_throw(
        combatant, AbilityName.CONSTITUTION, get_concentration_dc(damage)
    )
    if save.success:
        return True, combatant
    logger.debug("%s loses concentration on %s", combatant.name, combatant.concentrating_on)
    return False, combatant.model_copy(update={"concentrating_on": None})
