from __future__ import annotations

import logging

import pytest

from otogi_calc.models import (
    EnemyState,
    ParsedSkillEffect,
    SkillBuff,
    SkillTargetType,
    TeamMemberState,
)
from otogi_calc.pipeline import calculate_team_damage, normalize_members, prepare_team, run_phase4
from otogi_calc.skills import parse_skill_effect
from tests.helpers.factories import (
    make_ability,
    make_attack_skill,
    make_buff_skill,
    make_card,
    make_member,
    make_team,
)


def _debuff_member(card, debuff: float, active: bool = True) -> TeamMemberState:
    return make_member(
        card,
        skill_active=active,
        skill_effect=ParsedSkillEffect(
            target_type=SkillTargetType.ENEMY, buffs=SkillBuff(dmg_taken_debuff=debuff)
        ),
    )


def test_calculation_is_deterministic() -> None:
    aura = make_ability("aura", target_type="team", count=5, effects=[("ATK", 15), ("CHIT", 10)])
    members = make_team(
        make_card("a", abilities=[aura], skill=make_attack_skill()),
        make_card("b", max_atk=4000),
        None,
        None,
        None,
        make_card("r"),
    )
    enemy = EnemyState(base_shield=0.2)

    first = calculate_team_damage(members, enemy)
    second = calculate_team_damage(members, enemy)
    assert first == second


def test_short_teams_are_padded() -> None:
    result = calculate_team_damage([TeamMemberState(card=make_card())], EnemyState())
    assert len(result.members) == 7
    assert result.total_normal_dps_expected == 300


def test_long_teams_are_truncated_with_a_warning(caplog: pytest.LogCaptureFixture) -> None:
    members = [TeamMemberState(card=make_card(str(i))) for i in range(8)]

    with caplog.at_level(logging.WARNING, logger="otogi_calc.pipeline"):
        normalized = normalize_members(members)

    assert len(normalized) == 7
    assert normalized[-1].card_id == "6"
    assert "8 members" in caplog.text


def test_totals_only_count_the_main_team() -> None:
    members = make_team(
        make_card("a", skill=make_attack_skill()),
        make_card("b", skill=make_attack_skill()),
        None,
        None,
        None,
        make_card("r", skill=make_attack_skill(), max_atk=9000),
    )
    result = calculate_team_damage(members, EnemyState())

    assert result.total_normal_dps_expected == 600
    assert result.total_skill_damage_expected == 1790 * 2


def test_reserve_abilities_raise_main_team_damage() -> None:
    aura = make_ability("aura", target_type="team", count=5, effects=[("ATK", 20)])
    members = make_team(make_card("a"), None, None, None, None, make_card("r", abilities=[aura]))
    result = calculate_team_damage(members, EnemyState())

    assert result.members[0].damage_result.normal_damage == 360
    assert result.members[0].ability_contributions[0].source_member_index == 5
    assert result.total_normal_dps_expected == 360


def test_ability_shield_debuff_reaches_every_member() -> None:
    amp = make_ability("amp", target_type="enemy", effects=[("SHIELD", -20)])
    members = make_team(make_card("a"), make_card("b", abilities=[amp]))
    result = calculate_team_damage(members, EnemyState())

    assert result.ability_debuff_total == pytest.approx(0.2)
    assert result.effective_enemy_shield == pytest.approx(-0.2)
    assert result.members[0].damage_result.normal_damage == 360
    assert result.members[1].damage_result.normal_damage == 360
    assert len(result.enemy_debuff_contributions) == 1
    assert result.enemy_debuff_contributions[0].source_card_id == "b"


def test_defense_debuff_is_clamped_at_zero() -> None:
    shred = make_ability("shred", target_type="enemy", effects=[("DEFENSE", -50)])
    members = make_team(make_card("a", abilities=[shred]))
    result = calculate_team_damage(members, EnemyState(base_defense=0.3))

    assert result.defense_debuff_total == pytest.approx(0.5)
    assert result.effective_enemy_defense == 0
    assert result.members[0].damage_result.normal_damage == 300


def test_active_skill_debuff_applies_only_when_toggled_on() -> None:
    on = calculate_team_damage(make_team(_debuff_member(make_card(), 0.1)), EnemyState())
    off = calculate_team_damage(make_team(_debuff_member(make_card(), 0.1, active=False)), EnemyState())

    assert on.skill_debuff_total == pytest.approx(0.1)
    assert on.members[0].damage_result.normal_damage == 330
    assert off.skill_debuff_total == 0
    assert off.members[0].damage_result.normal_damage == 300


def test_reserve_skills_are_not_cast() -> None:
    members = make_team(make_card("a"), None, None, None, None, _debuff_member(make_card("r"), 0.5))
    result = calculate_team_damage(members, EnemyState())
    assert result.skill_debuff_total == 0


def test_prepared_team_matches_full_calculation() -> None:
    aura = make_ability("aura", target_type="team", count=5, effects=[("CHIT_ATK", 30)])
    members = make_team(make_card("a", crit=2500, abilities=[aura]), make_card("b"))
    enemy = EnemyState(base_shield=0.1, wave_count=2)

    prepared = prepare_team(members, enemy)
    assert run_phase4(prepared) == calculate_team_damage(members, enemy)
    assert len(prepared.members) == 7


def test_skill_buffs_scale_with_ability_level_bonus() -> None:
    card = make_card(
        "a",
        abilities=[make_ability("lv", effects=[("LEVEL", 10)])],
        skill=make_buff_skill([("CHIT", 10)], target_type="self", count=1, scale=1),
    )
    member = make_member(card, skill_active=True, skill_effect=parse_skill_effect(card, 80))
    assert member.skill_effect.buffs.crit_rate_bonus == pytest.approx(0.89)

    prepared = prepare_team(make_team(member), EnemyState())
    assert prepared.members[0].skill_effect.buffs.crit_rate_bonus == pytest.approx(0.99)
    assert prepared.phase3_results[0].crit_rate_bonus == pytest.approx(0.99)

    result = run_phase4(prepared)
    assert result.members[0].computed_stats.effective_level == 90
    assert result.members[0].computed_stats.effective_crit_rate == pytest.approx(0.99)


def test_inactive_skills_keep_their_effect() -> None:
    card = make_card(
        "a",
        abilities=[make_ability("lv", effects=[("LEVEL", 10)])],
        skill=make_buff_skill([("CHIT", 10)], target_type="self", count=1, scale=1),
    )
    effect = parse_skill_effect(card, 80)
    prepared = prepare_team(make_team(make_member(card, skill_effect=effect)), EnemyState())

    assert prepared.members[0].skill_effect == effect
    assert prepared.phase3_results[0].crit_rate_bonus == 0
