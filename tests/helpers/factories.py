from __future__ import annotations

from otogi_calc.constants import TOTAL_SLOTS
from otogi_calc.models import (
    Ability,
    AbilityParsedData,
    Bond,
    Card,
    CardStats,
    ParsedConditions,
    ParsedEffect,
    ParsedTarget,
    Skill,
    SkillImmediate,
    SkillParsedData,
    TeamMemberState,
)

ATTRIBUTE_IDS = {"Divina": 1, "Phantasma": 2, "Anima": 3, "Neutral": 4}


def make_card(
    card_id: str = "1000",
    *,
    attribute: str = "Divina",
    card_type: int = 1,
    type_name: str = "Melee",
    max_level: int = 80,
    base_atk: float = 1000.0,
    max_atk: float = 3000.0,
    base_hp: float = 500.0,
    max_hp: float = 1500.0,
    crit: int = 0,
    speed: int = 150,
    skill: Skill | None = None,
    abilities: list[Ability] | None = None,
    bonds: list[Bond] | None = None,
    name: str | None = None,
) -> Card:
    """Card with round numbers: ATK 3000 at level 80, 1.0s attack interval."""
    return Card(
        id=card_id,
        name=name or f"Card {card_id}",
        stats=CardStats(
            attribute=ATTRIBUTE_IDS.get(attribute, 0),
            attribute_name=attribute,
            type=card_type,
            type_name=type_name,
            rarity=5,
            max_level=max_level,
            speed=speed,
            base_atk=base_atk,
            max_atk=max_atk,
            base_hp=base_hp,
            max_hp=max_hp,
            crit=crit,
        ),
        skill=skill,
        abilities=abilities or [],
        bonds=bonds or [],
    )


def make_ability(
    ability_id: str,
    *,
    target_type: str = "self",
    count: int | None = 1,
    target_filter: str | None = None,
    trigger: str = "entry",
    effects: list[tuple[str, float]] | None = None,
    tags: list[str] | None = None,
    stackable: bool = True,
    unlock_level: int | None = None,
    mns_ids: list[str] | None = None,
    structured: bool = True,
) -> Ability:
    """Ability with structured data; effects are (type, value) on the 0-100 scale."""
    parsed = None
    if structured:
        parsed = AbilityParsedData(
            target=ParsedTarget(type=target_type, count=count, filter=target_filter),
            trigger=trigger,
            effects=[ParsedEffect(type=t, value=v) for t, v in (effects or [])],
            conditions=ParsedConditions(mns_ids=mns_ids) if mns_ids else None,
        )
    return Ability(
        id=ability_id,
        name=f"Ability {ability_id}",
        tags=tags or [],
        stackable=stackable,
        unlock_level=unlock_level,
        parsed=parsed,
    )


def make_attack_skill(slv1: float = 1000.0, slvup: float = 10.0, name: str = "Strike") -> Skill:
    return Skill(
        id="s1",
        name=name,
        tags=["DMG"],
        parsed=SkillParsedData(
            target=ParsedTarget(type="enemy", count=1),
            immediate=SkillImmediate(type="ATK"),
            slv1=slv1,
            slvup=slvup,
        ),
    )


def make_buff_skill(
    effects: list[tuple[str, float]],
    *,
    target_type: str = "ally",
    count: int = 99,
    scale: float = 0.0,
    name: str = "Rally",
) -> Skill:
    return Skill(
        id="s2",
        name=name,
        parsed=SkillParsedData(
            target=ParsedTarget(type=target_type, count=count),
            immediate=SkillImmediate(type="BUFF"),
            effects=[ParsedEffect(type=t, value=v, scale=scale) for t, v in effects],
        ),
    )


def make_member(card: Card | None = None, **kwargs) -> TeamMemberState:
    return TeamMemberState(card=card, **kwargs)


def make_team(*members: TeamMemberState | Card | None) -> list[TeamMemberState]:
    """Seven slots from members or bare cards, padded with empty slots."""
    slots = []
    for member in members:
        if isinstance(member, TeamMemberState):
            slots.append(member)
        else:
            slots.append(TeamMemberState(card=member))
    slots += [TeamMemberState() for _ in range(TOTAL_SLOTS - len(slots))]
    return slots
