"""
Fight damage over time.

A fight is a sequence of snapshots: team results captured at different
configurations (e.g. base team vs. burst with skills on). Each snapshot
covers part of the fight; a base snapshot fills the time the others leave.
"""

import re

from .constants import MAIN_TEAM_SIZE
from .models import (
    FightCalculationResult,
    FightSnapshot,
    FightSnapshotMember,
    SnapshotDamage,
    TeamCalculationResult,
    TeamMemberState,
)

DEFAULT_SNAPSHOT_DURATION = 60.0


def _snapshot_id(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "snapshot"


def create_snapshot(
    result: TeamCalculationResult,
    members: list[TeamMemberState],
    name: str,
    is_base: bool = False,
    snapshot_id: str | None = None,
) -> FightSnapshot:
    """
    Capture a team result as a fight snapshot.

    Args:
        result: Team calculation result.
        members: Team slots the result was calculated for.
        name: Display name.
        is_base: Base snapshots fill the remaining fight time and default
            to 0 skill casts.
        snapshot_id: Snapshot id, derived from the name when omitted.

    Returns:
        FightSnapshot with one entry per main team member with damage.
    """
    snapshot_members = []
    for index in range(min(MAIN_TEAM_SIZE, len(result.members))):
        damage = result.members[index].damage_result
        if damage is None:
            continue

        card = members[index].card if index < len(members) else None
        has_damage_skill = damage.skill_base_damage > 0
        snapshot_members.append(
            FightSnapshotMember(
                member_index=index,
                card_name=card.name if card else None,
                dps=damage.normal_dps,
                dps_min=damage.normal_dps_min,
                dps_max=damage.normal_dps_max,
                has_damage_skill=has_damage_skill,
                skill_damage=damage.skill_damage_expected if has_damage_skill else 0,
                skill_damage_min=damage.skill_damage_expected_min if has_damage_skill else 0,
                skill_damage_max=damage.skill_damage_expected_max if has_damage_skill else 0,
                skill_casts=1 if has_damage_skill and not is_base else 0,
            )
        )

    return FightSnapshot(
        id=snapshot_id or _snapshot_id(name),
        name=name,
        members=snapshot_members,
        total_dps=sum(m.dps for m in snapshot_members),
        total_dps_min=sum(m.dps_min for m in snapshot_members),
        total_dps_max=sum(m.dps_max for m in snapshot_members),
        duration_seconds=0.0 if is_base else DEFAULT_SNAPSHOT_DURATION,
        is_base=is_base,
    )


def _snapshot_damage(snapshot: FightSnapshot, duration: float) -> SnapshotDamage:
    dps_damage = snapshot.total_dps * duration
    dps_damage_min = snapshot.total_dps_min * duration
    dps_damage_max = snapshot.total_dps_max * duration

    casting = [m for m in snapshot.members if m.has_damage_skill]
    skill_damage = sum(m.skill_damage * m.skill_casts for m in casting)
    skill_damage_min = sum(m.skill_damage_min * m.skill_casts for m in casting)
    skill_damage_max = sum(m.skill_damage_max * m.skill_casts for m in casting)

    return SnapshotDamage(
        snapshot_id=snapshot.id,
        duration=duration,
        dps_damage=dps_damage,
        dps_damage_min=dps_damage_min,
        dps_damage_max=dps_damage_max,
        skill_damage=skill_damage,
        skill_damage_min=skill_damage_min,
        skill_damage_max=skill_damage_max,
        total_damage=dps_damage + skill_damage,
        total_damage_min=dps_damage_min + skill_damage_min,
        total_damage_max=dps_damage_max + skill_damage_max,
    )


def calculate_fight_damage(
    snapshots: list[FightSnapshot],
    fight_duration: float,
) -> FightCalculationResult:
    """
    Total damage over a fight.

    Non-base snapshots run for their own duration. Base snapshots run for
    whatever is left of the fight (never negative).

    Args:
        snapshots: Snapshots in the fight.
        fight_duration: Fight length in seconds.

    Returns:
        Per-snapshot damage and fight totals.
    """
    timed = sum(s.duration_seconds for s in snapshots if not s.is_base)
    base_duration = max(0.0, fight_duration - timed)
    has_base = any(s.is_base for s in snapshots)

    snapshot_results = [
        _snapshot_damage(s, base_duration if s.is_base else s.duration_seconds)
        for s in snapshots
    ]

    duration_used = sum(r.duration for r in snapshot_results)

    return FightCalculationResult(
        snapshot_results=snapshot_results,
        total_damage=sum(r.total_damage for r in snapshot_results),
        total_damage_min=sum(r.total_damage_min for r in snapshot_results),
        total_damage_max=sum(r.total_damage_max for r in snapshot_results),
        total_duration_used=duration_used,
        remaining_duration=0.0 if has_base else max(0.0, fight_duration - duration_used),
        base_duration=base_duration,
    )
