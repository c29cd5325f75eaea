"""
Phase 2: team context.

Rankings and lookup sets that ability targeting needs. Rebuilt from scratch
on every calculation.
"""

from .constants import LEADER_SLOT, MAIN_TEAM_SIZE
from .models import Attribute, AttributeCounts, Phase1Result, TeamContext, TeamMemberState


def _rank(results: list[Phase1Result], key) -> list[int]:
    # sorted() is stable, so ties keep slot order
    return [r.member_index for r in sorted(results, key=key, reverse=True)]


def calculate_phase2_team_context(
    phase1_results: list[Phase1Result],
    members: list[TeamMemberState],
) -> TeamContext:
    """
    Build the team context used by ability targeting.

    Args:
        phase1_results: Base stats from Phase 1.
        members: All team slots, in order.

    Returns:
        TeamContext with main team rankings, all-slot ATK ranking,
        attribute counts, present card/assist ids and the leader id.
    """
    with_cards = [r for r in phase1_results if members[r.member_index].card is not None]
    main_team = [r for r in with_cards if r.member_index < MAIN_TEAM_SIZE]

    counts = AttributeCounts()
    present_card_ids: set[str] = set()
    present_assist_ids: set[str] = set()

    for member in members:
        if member.card is not None:
            present_card_ids.add(member.card.id)
            attribute = member.card.attribute
            if attribute == Attribute.DIVINA:
                counts.divina += 1
            elif attribute == Attribute.PHANTASMA:
                counts.phantasma += 1
            elif attribute == Attribute.ANIMA:
                counts.anima += 1
        if member.assist_card is not None:
            present_assist_ids.add(member.assist_card.id)

    leader = members[LEADER_SLOT] if members else None

    return TeamContext(
        by_atk=_rank(main_team, lambda r: r.bond_adjusted_atk),
        # Higher speed stat = slower attacks; this ranking is for targeting only
        by_speed=_rank(main_team, lambda r: r.base_speed),
        by_hp=_rank(main_team, lambda r: r.base_hp),
        all_by_atk=_rank(with_cards, lambda r: r.bond_adjusted_atk),
        attribute_counts=counts,
        present_card_ids=present_card_ids,
        present_assist_ids=present_assist_ids,
        leader_card_id=leader.card_id if leader else None,
    )
