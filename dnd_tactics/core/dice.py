"""
Dice rolling system for D&D 5e mechanics.

Handles all dice operations including:
- Standard dice (d4, d6, d8, d10, d12, d20, d100)
- Advantage and disadvantage on d20 rolls
- Dice notation parsing (2d6+3, 1d8+1d6, flat 1+2, etc.)
- Critical hit detection (natural 20) and fumbles (natural 1)

Every roll in the engine draws from one module-level random source, so a
test or simulation can seed it or swap in a scripted generator.
"""
import random
import re
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from dnd_tactics.config import get_settings
from dnd_tactics.core.errors import DiceNotationError


_rng: random.Random = random.Random(get_settings().DICE_SEED)


def get_rng() -> random.Random:
    """Get the random source used for every roll."""
    return _rng


def set_rng(rng: random.Random) -> None:
    """Replace the random source used for every roll."""
    global _rng
    _rng = rng


def seed_dice(seed: Optional[int]) -> None:
    """Reseed the current random source."""
    _rng.seed(seed)


@contextmanager
def use_rng(rng: random.Random) -> Iterator[random.Random]:
    """Temporarily roll from another random source."""
    previous = get_rng()
    set_rng(rng)
    try:
        yield rng
    finally:
        set_rng(previous)


class RollMode(str, Enum):
    """How a d20 is rolled."""
    NORMAL = "normal"
    ADVANTAGE = "advantage"
    DISADVANTAGE = "disadvantage"

    @classmethod
    def from_flags(cls, advantage: bool, disadvantage: bool) -> "RollMode":
        """Advantage and disadvantage cancel each other out."""
        if advantage and not disadvantage:
            return cls.ADVANTAGE
        if disadvantage and not advantage:
            return cls.DISADVANTAGE
        return cls.NORMAL


@dataclass(frozen=True)
class D20Result:
    """Result of a d20 roll, tracking advantage/disadvantage and criticals."""
    rolls: List[int]  # All dice rolled (2 if advantage/disadvantage, +1 per reroll)
    modifier: int
    total: int
    natural_roll: int  # The d20 value used after selection/reroll
    advantage: bool = False
    disadvantage: bool = False
    rerolled: bool = False

    @property
    def natural_20(self) -> bool:
        return self.natural_roll == 20

    @property
    def natural_1(self) -> bool:
        return self.natural_roll == 1

    @property
    def breakdown(self) -> str:
        """Human-readable summary, e.g. 'd20(15)+5 = 20'."""
        if self.advantage or self.disadvantage:
            tag = "adv" if self.advantage else "dis"
            dice = f"d20{tag}[{', '.join(str(r) for r in self.rolls)}]"
        else:
            dice = f"d20({self.natural_roll})"
        if self.modifier > 0:
            dice += f"+{self.modifier}"
        elif self.modifier < 0:
            dice += str(self.modifier)
        return f"{dice} = {self.total}"

    def with_reroll(self, new_roll: int) -> "D20Result":
        """Replace the natural roll (Halfling Lucky style rerolls)."""
        return replace(
            self,
            rolls=self.rolls + [new_roll],
            natural_roll=new_roll,
            total=new_roll + self.modifier,
            rerolled=True,
        )

    def with_penalty(self, penalty: int) -> "D20Result":
        """Subtract a flat penalty from the total (e.g. Blade Ward's 1d4)."""
        return replace(self, total=self.total - penalty)


@dataclass(frozen=True)
class DiceRollResult:
    """Result of evaluating a dice expression."""
    expression: str
    rolls: List[int] = field(default_factory=list)  # Individual dice results
    modifier: int = 0  # Sum of flat modifiers
    total: int = 0
    is_critical: bool = False  # If true, dice were doubled

    @property
    def breakdown(self) -> str:
        parts = [f"[{', '.join(str(r) for r in self.rolls)}]"] if self.rolls else []
        if self.modifier or not parts:
            parts.append(str(self.modifier))
        return f"{'+'.join(parts).replace('+-', '-')} = {self.total}"


def roll_die(sides: int) -> int:
    """Roll a single die with the given number of sides."""
    if sides < 1:
        raise ValueError(f"Invalid die: d{sides}")
    return _rng.randint(1, sides)


def roll_d20(modifier: int = 0, advantage: bool = False, disadvantage: bool = False) -> D20Result:
    """
    Roll a d20 with optional advantage/disadvantage.

    Args:
        modifier: Bonus to add to the roll (attack bonus, save modifier, etc.)
        advantage: If True, roll twice and take the higher
        disadvantage: If True, roll twice and take the lower

    Returns:
        D20Result with all roll information

    Note: If both advantage and disadvantage are True, they cancel out
          and a single die is rolled.
    """
    mode = RollMode.from_flags(advantage, disadvantage)

    if mode is RollMode.NORMAL:
        rolls = [roll_die(20)]
        base_roll = rolls[0]
    else:
        rolls = [roll_die(20), roll_die(20)]
        base_roll = max(rolls) if mode is RollMode.ADVANTAGE else min(rolls)

    return D20Result(
        rolls=rolls,
        modifier=modifier,
        total=base_roll + modifier,
        natural_roll=base_roll,
        advantage=mode is RollMode.ADVANTAGE,
        disadvantage=mode is RollMode.DISADVANTAGE,
    )


def roll_with_mode(modifier: int = 0, mode: RollMode = RollMode.NORMAL) -> D20Result:
    """Roll a d20 using a RollMode instead of two flags."""
    return roll_d20(
        modifier=modifier,
        advantage=mode is RollMode.ADVANTAGE,
        disadvantage=mode is RollMode.DISADVANTAGE,
    )


_DICE_TERM = re.compile(r'^([+-]?)(\d*)d(\d+)$')
_FLAT_TERM = re.compile(r'^[+-]?\d+$')


def parse_dice_notation(notation: str) -> List[Tuple[int, int, int]]:
    """
    Parse dice notation into components.

    Args:
        notation: Dice notation like "2d6+3", "1d8+1d6", "3d4-1", or flat "1+2"

    Returns:
        List of (count, sides, modifier) tuples.
        For "2d6+3+1d4", returns [(2, 6, 0), (1, 4, 3)].
        A flat expression returns [(0, 0, total)].

    Raises:
        DiceNotationError: If notation is invalid
    """
    if not notation or not notation.strip():
        raise DiceNotationError(notation or "")

    cleaned = notation.lower().replace(" ", "")
    components = []

    # Split by + or - while keeping the sign
    parts = re.split(r'(?=[+-])', cleaned)

    current_modifier = 0

    for part in parts:
        if not part:
            continue

        dice_match = _DICE_TERM.match(part)
        if dice_match:
            sign = -1 if dice_match.group(1) == '-' else 1
            count = int(dice_match.group(2)) if dice_match.group(2) else 1
            sides = int(dice_match.group(3))
            if sides < 1:
                raise DiceNotationError(notation)
            components.append((sign * count, sides, 0))
        elif _FLAT_TERM.match(part):
            current_modifier += int(part)
        else:
            raise DiceNotationError(notation)

    # Add the modifier to the last component, or create a flat one if none
    if components:
        count, sides, _ = components[-1]
        components[-1] = (count, sides, current_modifier)
    else:
        components.append((0, 0, current_modifier))

    return components


def roll(expression: str, critical: bool = False) -> DiceRollResult:
    """
    Evaluate a dice expression.

    Args:
        expression: Dice notation like "2d6", "1d8+2", "2d6+1d4" or "1+3"
        critical: If True, double the number of dice rolled

    Examples:
        roll("1d8+3") -> rolls 1d8, adds 3
        roll("2d6", critical=True) -> rolls 4d6
    """
    components = parse_dice_notation(expression)
    all_rolls: List[int] = []
    modifier = 0
    total = 0

    for count, sides, flat_mod in components:
        modifier += flat_mod
        total += flat_mod
        if sides == 0:
            continue

        num_dice = abs(count) * (2 if critical else 1)
        sign = 1 if count >= 0 else -1
        for _ in range(num_dice):
            value = roll_die(sides)
            all_rolls.append(value * sign)
            total += value * sign

    return DiceRollResult(
        expression=expression,
        rolls=all_rolls,
        modifier=modifier,
        total=total,
        is_critical=critical,
    )


def roll_damage(notation: str, modifier: int = 0, critical: bool = False) -> DiceRollResult:
    """
    Roll damage dice from notation.

    Args:
        notation: Dice notation like "2d6", "1d8+2", "2d6+1d4"
        modifier: Additional modifier to add (weapon/ability bonus)
        critical: If True, double the number of dice rolled

    Damage never goes below 0.
    """
    result = roll(notation, critical=critical)
    return replace(
        result,
        modifier=result.modifier + modifier,
        total=max(0, result.total + modifier),
    )


def get_die_size(notation: str) -> Optional[int]:
    """Return the size of the first die in a notation ("2d6+3" -> 6)."""
    for count, sides, _ in parse_dice_notation(notation):
        if sides:
            return sides
    return None


def roll_saving_throw(
    modifier: int = 0,
    advantage: bool = False,
    disadvantage: bool = False
) -> D20Result:
    """Roll a saving throw for comparison against a DC."""
    return roll_d20(modifier=modifier, advantage=advantage, disadvantage=disadvantage)
