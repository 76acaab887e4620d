"""
Battle Master maneuver catalog.

Thirteen maneuvers covering every trigger type. Lookups return None for
unknown ids; ``require_maneuver`` raises for callers that treat a missing id
as a data error.
"""
from typing import Dict, List, Optional

from dnd_tactics.core.errors import CatalogLookupError
from dnd_tactics.models.common import AbilityName, Condition
from dnd_tactics.models.maneuvers import Maneuver, ManeuverSave, ManeuverTrigger


MANEUVERS: List[Maneuver] = [
    # =========================================================================
    # Pre-attack
    # =========================================================================
    Maneuver(
        id="precision-attack",
        name="Precision Attack",
        description="When you make a weapon attack roll, add the superiority die to the roll.",
        trigger=ManeuverTrigger.PRE_ATTACK,
        adds_to_attack_roll=True,
    ),

    # =========================================================================
    # On hit
    # =========================================================================
    Maneuver(
        id="trip-attack",
        name="Trip Attack",
        description="Add the superiority die to damage. The target makes a Strength save or falls prone.",
        trigger=ManeuverTrigger.ON_HIT,
        adds_damage_die=True,
        saving_throw=ManeuverSave(ability=AbilityName.STRENGTH, effect="Knocked prone"),
        condition=Condition.PRONE,
        condition_duration=-1,  # Until the target stands up
    ),
    Maneuver(
        id="menacing-attack",
        name="Menacing Attack",
        description="Add the superiority die to damage. The target makes a Wisdom save or is frightened of you.",
        trigger=ManeuverTrigger.ON_HIT,
        adds_damage_die=True,
        saving_throw=ManeuverSave(
            ability=AbilityName.WISDOM, effect="Frightened until end of your next turn"
        ),
        condition=Condition.FRIGHTENED,
        condition_duration=1,
    ),
    Maneuver(
        id="pushing-attack",
        name="Pushing Attack",
        description="Add the superiority die to damage. The target makes a Strength save or is pushed up to 15 feet.",
        trigger=ManeuverTrigger.ON_HIT,
        adds_damage_die=True,
        saving_throw=ManeuverSave(ability=AbilityName.STRENGTH, effect="Pushed up to 15 feet"),
        push_distance=15,
    ),
    Maneuver(
        id="disarming-attack",
        name="Disarming Attack",
        description="Add the superiority die to damage. The target makes a Strength save or drops a held object.",
        trigger=ManeuverTrigger.ON_HIT,
        adds_damage_die=True,
        saving_throw=ManeuverSave(ability=AbilityName.STRENGTH, effect="Drops held object"),
    ),
    Maneuver(
        id="goading-attack",
        name="Goading Attack",
        description=(
            "Add the superiority die to damage. The target makes a Wisdom save or has "
            "disadvantage on attacks against anyone but you."
        ),
        trigger=ManeuverTrigger.ON_HIT,
        adds_damage_die=True,
        saving_throw=ManeuverSave(
            ability=AbilityName.WISDOM, effect="Disadvantage on attacks against others"
        ),
        condition=Condition.GOADED,
        condition_duration=1,
    ),
    Maneuver(
        id="distracting-strike",
        name="Distracting Strike",
        description=(
            "Add the superiority die to damage. The next attack against the target by "
            "someone else has advantage."
        ),
        trigger=ManeuverTrigger.ON_HIT,
        adds_damage_die=True,
        condition=Condition.DISTRACTED,
        condition_duration=1,
    ),
    Maneuver(
        id="sweeping-attack",
        name="Sweeping Attack",
        description=(
            "Pick another creature within 5 feet of the target. If the original attack roll "
            "would hit it, it takes the superiority die as damage."
        ),
        trigger=ManeuverTrigger.ON_HIT,
        requires_melee_weapon=True,
        sweep_damage=True,
    ),

    # =========================================================================
    # Bonus action
    # =========================================================================
    Maneuver(
        id="evasive-footwork",
        name="Evasive Footwork",
        description="Disengage and add the superiority die to your AC until the start of your next turn.",
        trigger=ManeuverTrigger.BONUS_ACTION,
        requires_weapon_attack=False,
    ),
    Maneuver(
        id="feinting-attack",
        name="Feinting Attack",
        description=(
            "Feint a creature within 5 feet: advantage on your next attack against it this "
            "turn, plus the superiority die to damage if it hits."
        ),
        trigger=ManeuverTrigger.BONUS_ACTION,
        requires_weapon_attack=False,
        requires_melee_weapon=True,
    ),
    Maneuver(
        id="lunging-attack",
        name="Lunging Attack",
        description="Dash, and add the superiority die to your next melee hit this turn.",
        trigger=ManeuverTrigger.BONUS_ACTION,
        requires_weapon_attack=False,
    ),

    # =========================================================================
    # Reaction
    # =========================================================================
    Maneuver(
        id="riposte",
        name="Riposte",
        description=(
            "When a creature misses you with a melee attack, make a melee attack against it "
            "and add the superiority die to damage."
        ),
        trigger=ManeuverTrigger.REACTION,
        adds_damage_die=True,
        requires_melee_weapon=True,
    ),
    Maneuver(
        id="parry",
        name="Parry",
        description="Reduce melee damage you take by the superiority die plus your Dexterity modifier.",
        trigger=ManeuverTrigger.REACTION,
        requires_weapon_attack=False,
        requires_melee_weapon=True,
        damage_reduction=True,
    ),
]

_MANEUVERS_BY_ID: Dict[str, Maneuver] = {m.id: m for m in MANEUVERS}


def get_maneuver_by_id(maneuver_id: str) -> Optional[Maneuver]:
    """Get a maneuver by its id, or None."""
    return _MANEUVERS_BY_ID.get(maneuver_id)


def require_maneuver(maneuver_id: str) -> Maneuver:
    """Get a maneuver by its id, raising CatalogLookupError if unknown."""
    maneuver = _MANEUVERS_BY_ID.get(maneuver_id)
    if maneuver is None:
        raise CatalogLookupError("Maneuver", maneuver_id)
    return maneuver


def get_all_maneuvers() -> List[Maneuver]:
    return list(MANEUVERS)


def get_maneuvers_by_trigger(trigger: ManeuverTrigger) -> List[Maneuver]:
    return [m for m in MANEUVERS if m.trigger == trigger]


def get_maneuvers_by_ids(maneuver_ids: List[str]) -> List[Maneuver]:
    """Resolve ids in order, silently dropping unknown ones."""
    return [_MANEUVERS_BY_ID[mid] for mid in maneuver_ids if mid in _MANEUVERS_BY_ID]
