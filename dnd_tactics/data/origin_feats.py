"""
Origin feat catalog.

The ten 2024 origin feats. Only some of them do anything in combat; the
rest carry no trigger and are ignored by the engine.
"""
from typing import Dict, List, Optional

from dnd_tactics.core.errors import CatalogLookupError
from dnd_tactics.models.feats import OriginFeat, OriginFeatTrigger


ORIGIN_FEATS: List[OriginFeat] = [
    OriginFeat(
        id="alert",
        name="Alert",
        description=(
            "Add your Proficiency Bonus to Initiative. Immediately after rolling Initiative "
            "you can swap it with a willing ally; neither of you can be Incapacitated."
        ),
        trigger=OriginFeatTrigger.ON_INITIATIVE,
    ),
    OriginFeat(
        id="crafter",
        name="Crafter",
        description="Tool proficiencies, a discount on nonmagical gear and fast crafting.",
    ),
    OriginFeat(
        id="healer",
        name="Healer",
        description=(
            "Battle Medic: as an action, a creature within 5 feet spends a Hit Die; you roll it "
            "and it regains the roll plus your Proficiency Bonus. Healing dice that roll a 1 "
            "are rerolled."
        ),
        trigger=OriginFeatTrigger.ACTION,
    ),
    OriginFeat(
        id="lucky",
        name="Lucky",
        description=(
            "Luck Points equal to your Proficiency Bonus. Spend one for Advantage on a D20 Test "
            "or to impose Disadvantage on an attack against you."
        ),
        trigger=OriginFeatTrigger.ON_ATTACK_ROLL,
    ),
    OriginFeat(
        id="magic-initiate",
        name="Magic Initiate",
        description="Two cantrips and a level 1 spell castable once per Long Rest without a slot.",
        repeatable=True,
    ),
    OriginFeat(
        id="musician",
        name="Musician",
        description="Instrument proficiencies. You start combat with Heroic Inspiration.",
        trigger=OriginFeatTrigger.ON_ATTACK_ROLL,
    ),
    OriginFeat(
        id="savage-attacker",
        name="Savage Attacker",
        description="Once per turn when you hit with a weapon, roll its damage dice twice and use either roll.",
        trigger=OriginFeatTrigger.ON_DAMAGE_ROLL,
        uses_per_turn=1,
    ),
    OriginFeat(
        id="skilled",
        name="Skilled",
        description="Proficiency in any three skills or tools.",
        repeatable=True,
    ),
    OriginFeat(
        id="tavern-brawler",
        name="Tavern Brawler",
        description=(
            "Unarmed strikes deal 1d4 + STR bludgeoning and reroll 1s. Once per turn, an "
            "unarmed hit can push the target 5 feet."
        ),
        trigger=OriginFeatTrigger.PASSIVE,
        uses_per_turn=1,
    ),
    OriginFeat(
        id="tough",
        name="Tough",
        description="Hit Point maximum increases by twice your character level.",
    ),
]

_ORIGIN_FEATS_BY_ID: Dict[str, OriginFeat] = {f.id: f for f in ORIGIN_FEATS}


def get_origin_feat_by_id(feat_id: str) -> Optional[OriginFeat]:
    return _ORIGIN_FEATS_BY_ID.get(feat_id)


def require_origin_feat(feat_id: str) -> OriginFeat:
    """Get an origin feat by its id, raising CatalogLookupError if unknown."""
    feat = _ORIGIN_FEATS_BY_ID.get(feat_id)
    if feat is None:
        raise CatalogLookupError("Origin feat", feat_id)
    return feat


def get_all_origin_feats() -> List[OriginFeat]:
    return list(ORIGIN_FEATS)


def get_combat_origin_feats() -> List[OriginFeat]:
    return [f for f in ORIGIN_FEATS if f.affects_combat]
