"""
Team damage pipeline.

Linear pipeline that:
1. Resolves base stats (Phase 1)
2. Builds the team context (Phase 2)
3. Applies abilities and active skill buffs (Phase 3)
4. Computes final stats and damage (Phase 4)
5. Sums team totals

Every call is a pure function of its inputs; nothing is cached between runs.
"""

import logging

from pydantic import BaseModel, Field

from .abilities import apply_skill_buffs, calculate_phase3_apply_abilities
from .constants import MAIN_TEAM_SIZE, TOTAL_SLOTS
from .context import calculate_phase2_team_context
from .damage import (
    calculate_phase4_final_damage,
    calculate_race_bonus,
    effective_defense,
    effective_shield,
)
from .models import (
    AbilityLedger,
    EnemyState,
    Phase1Result,
    Phase3Result,
    RandomTargetMode,
    TeamCalculationResult,
    TeamContext,
    TeamMemberState,
)
from .skills import parse_skill_effect
from .stats import calculate_phase1_base_stats

logger = logging.getLogger(__name__)


class PreparedTeam(BaseModel):
    """Output of phases 1-3, ready for Phase 4."""

    members: list[TeamMemberState]
    enemy: EnemyState
    phase1_results: list[Phase1Result]
    team_context: TeamContext
    phase3_results: list[Phase3Result]
    ledger: AbilityLedger = Field(default_factory=AbilityLedger)

    skill_debuff_total: float = 0.0
    shield_debuff_total: float = 0.0
    defense_debuff_total: float = 0.0
    race_bonus: float = 0.0


def normalize_members(members: list[TeamMemberState]) -> list[TeamMemberState]:
    """
    Return exactly 7 slots.

    Short lists are padded with empty slots; extra entries are dropped.
    """
    if len(members) > TOTAL_SLOTS:
        logger.warning(
            f"Team has {len(members)} members, ignoring everything after slot {TOTAL_SLOTS - 1}"
        )
        return list(members[:TOTAL_SLOTS])
    return list(members) + [TeamMemberState() for _ in range(TOTAL_SLOTS - len(members))]


def refresh_skill_effects(
    members: list[TeamMemberState],
    phase1_results: list[Phase1Result],
    phase3_results: list[Phase3Result],
) -> list[TeamMemberState]:
    """
    Re-parse active skills at each caster's final level.

    Ability LEVEL bonuses are only known after Phase 3, so skill buff
    magnitudes are rebuilt here before they are applied.
    """
    refreshed = list(members)
    for i in range(MAIN_TEAM_SIZE):
        member = members[i]
        if member.card is None or member.card.skill is None or not member.skill_active:
            continue

        final_level = phase1_results[i].effective_level + phase3_results[i].level_bonus
        refreshed[i] = member.model_copy(
            update={"skill_effect": parse_skill_effect(member.card, final_level, member.assist_card)}
        )
        logger.debug(f"Slot {i}: skill effect parsed at level {final_level:g}")
    return refreshed


def prepare_team(
    members: list[TeamMemberState],
    enemy: EnemyState,
    overrides: dict[str, list[int]] | None = None,
    mode: RandomTargetMode = RandomTargetMode.BEST,
) -> PreparedTeam:
    """
    Run phases 1-3 and the team-wide debuff and race sums.

    Args:
        members: Team slots (padded or truncated to 7).
        enemy: Enemy state.
        overrides: Manual ability id -> target slots for ranked abilities.
        mode: Random target mode.

    Returns:
        PreparedTeam for run_phase4().
    """
    members = normalize_members(members)

    phase1_results = calculate_phase1_base_stats(members)
    context = calculate_phase2_team_context(phase1_results, members)
    phase3_results, ledger = calculate_phase3_apply_abilities(
        members, phase1_results, context, enemy, overrides, mode
    )
    members = refresh_skill_effects(members, phase1_results, phase3_results)
    skill_debuff_total = apply_skill_buffs(members, phase3_results, context)

    main_team = phase3_results[:MAIN_TEAM_SIZE]
    shield_debuff_total = sum(r.enemy_shield_debuff for r in main_team)
    defense_debuff_total = sum(r.enemy_defense_debuff for r in main_team)

    race_bonus = calculate_race_bonus(members, enemy.attribute)

    logger.debug(
        f"Prepared team: skill debuff {skill_debuff_total:.3f}, "
        f"shield debuff {shield_debuff_total:.3f}, defense debuff {defense_debuff_total:.3f}, "
        f"race bonus {race_bonus:+.2f}"
    )

    return PreparedTeam(
        members=members,
        enemy=enemy,
        phase1_results=phase1_results,
        team_context=context,
        phase3_results=phase3_results,
        ledger=ledger,
        skill_debuff_total=skill_debuff_total,
        shield_debuff_total=shield_debuff_total,
        defense_debuff_total=defense_debuff_total,
        race_bonus=race_bonus,
    )


def run_phase4(
    prepared: PreparedTeam,
    phase3_results: list[Phase3Result] | None = None,
) -> TeamCalculationResult:
    """
    Run Phase 4 on a prepared team and sum the main team totals.

    Args:
        prepared: Output of prepare_team().
        phase3_results: Replacement Phase 3 results (e.g. with an extra stat
            bump). Defaults to the prepared ones.

    Returns:
        Complete TeamCalculationResult.
    """
    if phase3_results is None:
        phase3_results = prepared.phase3_results

    enemy = prepared.enemy
    phase4_results = calculate_phase4_final_damage(
        prepared.phase1_results,
        phase3_results,
        enemy,
        prepared.members,
        skill_debuff_total=prepared.skill_debuff_total,
        shield_debuff_total=prepared.shield_debuff_total,
        defense_debuff_total=prepared.defense_debuff_total,
        race_bonus=prepared.race_bonus,
    )

    total_dps = 0
    total_skill = 0
    for result in phase4_results[:MAIN_TEAM_SIZE]:
        if result.damage_result is not None:
            total_dps += result.damage_result.normal_dps
            total_skill += result.damage_result.skill_damage_expected

    enemy_debuff_contributions = [
        c for r in phase3_results[:MAIN_TEAM_SIZE] for c in r.enemy_debuff_contributions
    ]

    return TeamCalculationResult(
        members=phase4_results,
        team_context=prepared.team_context,
        effective_enemy_shield=effective_shield(
            enemy.base_shield,
            prepared.shield_debuff_total + prepared.skill_debuff_total,
            enemy.ignore_shield_cap,
        ),
        effective_enemy_defense=effective_defense(enemy.base_defense, prepared.defense_debuff_total),
        skill_debuff_total=prepared.skill_debuff_total,
        ability_debuff_total=prepared.shield_debuff_total,
        defense_debuff_total=prepared.defense_debuff_total,
        enemy_debuff_contributions=enemy_debuff_contributions,
        race_bonus=prepared.race_bonus,
        total_normal_dps_expected=total_dps,
        total_skill_damage_expected=total_skill,
    )


def calculate_team_damage(
    members: list[TeamMemberState],
    enemy: EnemyState,
    overrides: dict[str, list[int]] | None = None,
    mode: RandomTargetMode = RandomTargetMode.BEST,
) -> TeamCalculationResult:
    """
    Run all four phases and return the complete team result.

    Args:
        members: Team slots, 0-4 main team and 5-6 reserve.
        enemy: Enemy state.
        overrides: Manual ability id -> target slots for ranked abilities.
        mode: How "N random allies" abilities pick targets.

    Returns:
        TeamCalculationResult with per-slot stats, damage and team totals.
    """
    return run_phase4(prepare_team(members, enemy, overrides, mode))
