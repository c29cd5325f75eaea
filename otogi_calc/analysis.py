"""
Stat analysis for a single team member.

Re-runs Phase 4 on top of a prepared team with one member's Phase 3 bonuses
changed, so the comparison includes the full team context (abilities,
debuffs, race bonus).
"""

from .models import (
    EffectStat,
    EnemyState,
    HeatmapCell,
    MemberDamageResult,
    Phase3Result,
    RandomTargetMode,
    StatComparison,
    StatIncrement,
    TeamMemberState,
)
from .pipeline import PreparedTeam, prepare_team, run_phase4

STAT_INCREMENTS: list[StatIncrement] = [
    StatIncrement(stat=EffectStat.DMG, amount=0.10, label="+10% DMG"),
    StatIncrement(stat=EffectStat.CRIT_RATE, amount=0.10, label="+10% Crit Rate"),
    StatIncrement(stat=EffectStat.CRIT_DMG, amount=0.10, label="+10% Crit DMG"),
    StatIncrement(stat=EffectStat.SKILL_DMG, amount=0.10, label="+10% Skill DMG"),
    StatIncrement(stat=EffectStat.SPEED, amount=0.10, label="+10% Speed"),
    StatIncrement(stat=EffectStat.LEVEL, amount=5, label="+5 Level"),
]

# Phase3Result fields the analysis can adjust
ANALYSIS_FIELDS: dict[EffectStat, str] = {
    EffectStat.DMG: "dmg_bonus",
    EffectStat.CRIT_RATE: "crit_rate_bonus",
    EffectStat.CRIT_DMG: "crit_dmg_bonus",
    EffectStat.SKILL_DMG: "skill_dmg_bonus",
    EffectStat.SPEED: "speed_bonus",
    EffectStat.LEVEL: "level_bonus",
    EffectStat.NORMAL_DMG: "normal_dmg_bonus",
}


def _field(stat: EffectStat) -> str:
    if stat not in ANALYSIS_FIELDS:
        raise ValueError(f"Stat '{stat.value}' cannot be analysed")
    return ANALYSIS_FIELDS[stat]


def _with_change(
    prepared: PreparedTeam,
    slot: int,
    changes: dict[EffectStat, float],
    absolute: bool = False,
) -> list[Phase3Result]:
    """Copy of the Phase 3 results with one slot's bonuses changed."""
    results = [r.model_copy(deep=True) for r in prepared.phase3_results]
    target = results[slot]
    for stat, value in changes.items():
        field = _field(stat)
        setattr(target, field, value if absolute else getattr(target, field) + value)
    return results


def _member_damage(prepared: PreparedTeam, slot: int, phase3: list[Phase3Result]) -> MemberDamageResult:
    damage = run_phase4(prepared, phase3).members[slot].damage_result
    return damage or MemberDamageResult()


def _validate_slot(prepared: PreparedTeam, slot: int) -> None:
    if not 0 <= slot < len(prepared.members):
        raise ValueError(f"Slot {slot} is out of range")
    if prepared.members[slot].card is None:
        raise ValueError(f"Slot {slot} has no card")


def _gain_percent(gain: int, base: int) -> float:
    return gain / base * 100 if base > 0 else 0.0


def compare_stat_increments(
    members: list[TeamMemberState],
    enemy: EnemyState,
    slot: int,
    overrides: dict[str, list[int]] | None = None,
    mode: RandomTargetMode = RandomTargetMode.BEST,
    increments: list[StatIncrement] | None = None,
) -> list[StatComparison]:
    """
    Marginal value of stat increments for one member.

    Args:
        members: Team slots.
        enemy: Enemy state.
        slot: Member to analyse.
        overrides: Manual ability targets.
        mode: Random target mode.
        increments: Increments to compare. Defaults to STAT_INCREMENTS.

    Returns:
        One StatComparison per increment, in order.

    Raises:
        ValueError: If the slot is out of range or empty.
    """
    prepared = prepare_team(members, enemy, overrides, mode)
    _validate_slot(prepared, slot)

    base = _member_damage(prepared, slot, prepared.phase3_results)

    comparisons = []
    for increment in increments or STAT_INCREMENTS:
        new = _member_damage(
            prepared, slot, _with_change(prepared, slot, {increment.stat: increment.amount})
        )
        dps_gain = new.normal_dps - base.normal_dps
        skill_gain = new.skill_damage_expected - base.skill_damage_expected
        comparisons.append(
            StatComparison(
                increment=increment,
                new_dps=new.normal_dps,
                dps_gain=dps_gain,
                dps_gain_percent=_gain_percent(dps_gain, base.normal_dps),
                new_skill_damage=new.skill_damage_expected,
                skill_gain=skill_gain,
                skill_gain_percent=_gain_percent(skill_gain, base.skill_damage_expected),
            )
        )

    return comparisons


def generate_heatmap(
    members: list[TeamMemberState],
    enemy: EnemyState,
    slot: int,
    x_stat: EffectStat,
    y_stat: EffectStat,
    x_range: list[float],
    y_range: list[float],
    overrides: dict[str, list[int]] | None = None,
    mode: RandomTargetMode = RandomTargetMode.BEST,
) -> list[list[HeatmapCell]]:
    """
    DPS and skill damage over a grid of two stat bonuses.

    The member's bonus for each stat is set to the grid value (not added).

    Returns:
        Rows by y value, each a list of cells by x value.

    Raises:
        ValueError: If the slot is out of range or empty, or a stat cannot
            be analysed.
    """
    _field(x_stat)
    _field(y_stat)
    prepared = prepare_team(members, enemy, overrides, mode)
    _validate_slot(prepared, slot)

    rows = []
    for y in y_range:
        row = []
        for x in x_range:
            # y is applied last when both axes use the same stat
            changes = {x_stat: x}
            changes[y_stat] = y
            damage = _member_damage(
                prepared, slot, _with_change(prepared, slot, changes, absolute=True)
            )
            row.append(
                HeatmapCell(
                    x=x,
                    y=y,
                    dps=damage.normal_dps,
                    skill_damage=damage.skill_damage_expected,
                    capped=damage.normal_damage_capped or damage.skill_damage_capped,
                )
            )
        rows.append(row)

    return rows
