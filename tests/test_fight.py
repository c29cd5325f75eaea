from __future__ import annotations

import pytest

from otogi_calc.fight import calculate_fight_damage, create_snapshot
from otogi_calc.models import EnemyState, FightSnapshot, FightSnapshotMember
from otogi_calc.pipeline import calculate_team_damage
from tests.helpers.factories import make_attack_skill, make_card, make_team


def _team():
    return make_team(
        make_card("a", name="Striker", skill=make_attack_skill()),
        make_card("b", name="Support"),
        None,
        None,
        None,
        make_card("r"),
    )


def _snapshot(snapshot_id: str, dps: int, duration: float = 60.0, is_base: bool = False, **member) -> FightSnapshot:
    return FightSnapshot(
        id=snapshot_id,
        name=snapshot_id,
        members=[FightSnapshotMember(member_index=0, dps=dps, **member)],
        total_dps=dps,
        total_dps_min=dps,
        total_dps_max=dps,
        duration_seconds=duration,
        is_base=is_base,
    )


def test_create_snapshot_captures_main_team() -> None:
    members = _team()
    snapshot = create_snapshot(calculate_team_damage(members, EnemyState()), members, "Burst Phase!")

    assert snapshot.id == "burst-phase"
    assert snapshot.duration_seconds == 60
    assert not snapshot.is_base
    assert snapshot.total_dps == 600
    assert [m.member_index for m in snapshot.members] == [0, 1]

    striker, support = snapshot.members
    assert striker.card_name == "Striker"
    assert striker.has_damage_skill
    assert striker.skill_damage == 1790
    assert striker.skill_casts == 1
    assert not support.has_damage_skill
    assert support.skill_damage == 0
    assert support.skill_casts == 0


def test_base_snapshot_has_no_casts() -> None:
    members = _team()
    snapshot = create_snapshot(
        calculate_team_damage(members, EnemyState()), members, "Base", is_base=True, snapshot_id="base"
    )

    assert snapshot.id == "base"
    assert snapshot.is_base
    assert snapshot.duration_seconds == 0
    assert all(m.skill_casts == 0 for m in snapshot.members)


def test_base_snapshot_fills_remaining_time() -> None:
    members = _team()
    result = calculate_team_damage(members, EnemyState())
    burst = create_snapshot(result, members, "Burst")
    base = create_snapshot(result, members, "Base", is_base=True)

    fight = calculate_fight_damage([burst, base], 180)

    assert fight.base_duration == 120
    assert fight.remaining_duration == 0
    assert fight.total_duration_used == 180
    burst_damage, base_damage = fight.snapshot_results
    assert burst_damage.dps_damage == 600 * 60
    assert burst_damage.skill_damage == 1790
    assert base_damage.dps_damage == 600 * 120
    assert base_damage.skill_damage == 0
    assert fight.total_damage == 600 * 180 + 1790


def test_remaining_time_without_base_snapshot() -> None:
    fight = calculate_fight_damage([_snapshot("opening", 1000, duration=30)], 180)

    assert fight.total_damage == 30000
    assert fight.total_duration_used == 30
    assert fight.remaining_duration == 150
    assert fight.base_duration == 150


def test_base_duration_never_goes_negative() -> None:
    snapshots = [
        _snapshot("one", 100, duration=100),
        _snapshot("two", 100, duration=100),
        _snapshot("base", 50, is_base=True),
    ]
    fight = calculate_fight_damage(snapshots, 180)

    assert fight.base_duration == 0
    assert fight.snapshot_results[2].total_damage == 0
    assert fight.total_damage == 20000


def test_skill_casts_multiply_skill_damage() -> None:
    snapshot = _snapshot(
        "burst",
        0,
        has_damage_skill=True,
        skill_damage=1000,
        skill_damage_min=900,
        skill_damage_max=1100,
        skill_casts=3,
    )
    fight = calculate_fight_damage([snapshot], 60)

    assert fight.total_damage == 3000
    assert fight.total_damage_min == 2700
    assert fight.total_damage_max == 3300


def test_skill_damage_without_damage_skill_is_ignored() -> None:
    snapshot = _snapshot("buffs", 0, has_damage_skill=False, skill_damage=5000, skill_casts=2)
    assert calculate_fight_damage([snapshot], 60).total_damage == pytest.approx(0)
