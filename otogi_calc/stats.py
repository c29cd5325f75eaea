"""
Phase 1: base stats.

Derives each slot's effective level, ATK/HP at that level, crit rate, speed
and bond bonuses from the card data and the member's build choices.
"""

from .constants import CRIT_SCALE, LEVELS_PER_LB
from .models import BondMode, BondSlotType, BondType, Card, Phase1Result, TeamMemberState

# =============================================================================
# BOND VALUES
# =============================================================================

BOND_SLOT_VALUES: dict[BondSlotType, tuple[float, float]] = {
    # (atk, skill)
    BondSlotType.NONE: (0.0, 0.0),
    BondSlotType.ATK5: (0.05, 0.0),
    BondSlotType.ATK7: (0.075, 0.0),
    BondSlotType.SKILL5: (0.0, 0.05),
    BondSlotType.SKILL7: (0.0, 0.075),
}

BOND_VALUES: dict[BondType, tuple[float, float]] = {
    BondType.NONE: (0.0, 0.0),
    BondType.ATK15: (0.15, 0.0),
    BondType.SKILL15: (0.0, 0.15),
    BondType.ATK10: (0.10, 0.0),
    BondType.SKILL10: (0.0, 0.10),
    BondType.ATK7: (0.075, 0.0),
    BondType.SKILL7: (0.0, 0.075),
    BondType.ATK5: (0.05, 0.0),
    BondType.SKILL5: (0.0, 0.05),
    BondType.SPLIT5: (0.05, 0.05),
    BondType.SPLIT7: (0.075, 0.075),
}


def calc_stat_at_level(base: float, max_value: float, max_level: int, level: float) -> float:
    """
    Linear stat interpolation: base + (max - base) * (level - 1) / (max_level - 1).

    Extrapolates past max_level. Returns base when max_level <= 1.
    """
    if max_level <= 1:
        return base
    return base + (max_value - base) * (level - 1) / (max_level - 1)


def get_effective_level(max_level: int, limit_break: int, level_bonus: int) -> int:
    """Max level plus 5 levels per limit break plus the flat bonus."""
    return max_level + limit_break * LEVELS_PER_LB + level_bonus


def combine_bond_slots(
    bond1: BondSlotType,
    bond2: BondSlotType,
    bond3: BondSlotType,
) -> tuple[float, float]:
    """
    Sum three bond slots.

    Returns:
        (atk_bonus, skill_bonus) as decimals.
    """
    atk = 0.0
    skill = 0.0
    for slot in (bond1, bond2, bond3):
        slot_atk, slot_skill = BOND_SLOT_VALUES[slot]
        atk += slot_atk
        skill += slot_skill
    return atk, skill


def get_member_bond_bonus(member: TeamMemberState) -> tuple[float, float]:
    """Bond bonus from the member's own bond choices, per its bond mode."""
    if member.bond_mode == BondMode.LEGACY:
        return BOND_VALUES[member.bond_type]
    return combine_bond_slots(member.bond1, member.bond2, member.bond3)


def get_assist_bond_bonus(assist_card: Card | None) -> tuple[float, float]:
    """Bond bonus granted by an assist card's Attack/Skill bonds."""
    atk = 0.0
    skill = 0.0
    if assist_card is None:
        return atk, skill

    for bond in assist_card.bonds:
        if bond.type == "Attack":
            atk += bond.bonus_percent / 100
        elif bond.type == "Skill":
            skill += bond.bonus_percent / 100
    return atk, skill


def calculate_phase1_base_stats(members: list[TeamMemberState]) -> list[Phase1Result]:
    """
    Calculate base stats for every slot.

    Args:
        members: All team slots, in order.

    Returns:
        One Phase1Result per slot. Empty slots yield an all-zero record.
    """
    results = []
    for index, member in enumerate(members):
        if member.card is None:
            results.append(Phase1Result(member_index=index))
            continue

        stats = member.card.stats
        effective_level = get_effective_level(
            stats.max_level, member.limit_break, member.level_bonus
        )

        bond_atk, bond_skill = get_member_bond_bonus(member)
        assist_atk, assist_skill = get_assist_bond_bonus(member.assist_card)

        results.append(
            Phase1Result(
                member_index=index,
                has_card=True,
                effective_level=effective_level,
                base_atk=calc_stat_at_level(
                    stats.base_atk, stats.max_atk, stats.max_level, effective_level
                ),
                base_crit_rate=stats.crit / CRIT_SCALE,
                base_speed=stats.speed,
                base_hp=calc_stat_at_level(
                    stats.base_hp, stats.max_hp, stats.max_level, effective_level
                ),
                atk_bond_bonus=bond_atk + assist_atk,
                skill_bond_bonus=bond_skill + assist_skill,
                assist_atk_bond_bonus=assist_atk,
                assist_skill_bond_bonus=assist_skill,
            )
        )

    return results
