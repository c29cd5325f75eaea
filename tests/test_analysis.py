from __future__ import annotations

import pytest

from otogi_calc.analysis import STAT_INCREMENTS, compare_stat_increments, generate_heatmap
from otogi_calc.models import EffectStat, EnemyState, StatIncrement
from tests.helpers.factories import make_ability, make_attack_skill, make_card, make_team


def _by_label(comparisons):
    return {c.increment.label: c for c in comparisons}


def test_compare_default_increments() -> None:
    comparisons = _by_label(compare_stat_increments(make_team(make_card()), EnemyState(), 0))

    assert list(comparisons) == [i.label for i in STAT_INCREMENTS]

    dmg = comparisons["+10% DMG"]
    assert dmg.new_dps == 330
    assert dmg.dps_gain == 30
    assert dmg.dps_gain_percent == pytest.approx(10.0)

    assert comparisons["+10% Crit Rate"].new_dps == 330
    # No crits to boost at 0% crit rate
    assert comparisons["+10% Crit DMG"].dps_gain == 0
    assert comparisons["+10% Speed"].new_dps == 316
    assert comparisons["+5 Level"].new_dps == 313


def test_skill_gain_is_zero_without_attack_skill() -> None:
    for comparison in compare_stat_increments(make_team(make_card()), EnemyState(), 0):
        assert comparison.new_skill_damage == 0
        assert comparison.skill_gain == 0
        assert comparison.skill_gain_percent == 0


def test_skill_dmg_increment_only_moves_skill_damage() -> None:
    members = make_team(make_card(skill=make_attack_skill()))
    comparisons = _by_label(compare_stat_increments(members, EnemyState(), 0))

    skill = comparisons["+10% Skill DMG"]
    assert skill.dps_gain == 0
    assert skill.new_skill_damage == 1969
    assert skill.skill_gain == 179


def test_custom_increments_include_team_context() -> None:
    members = make_team(make_card("a"), make_card("b"))
    enemy = EnemyState(base_shield=0.5)
    increments = [StatIncrement(stat=EffectStat.DMG, amount=1.0, label="+100% DMG")]

    (comparison,) = compare_stat_increments(members, enemy, 1, increments=increments)

    assert comparison.new_dps == 300
    assert comparison.dps_gain == 150
    assert comparison.dps_gain_percent == pytest.approx(100.0)


@pytest.mark.parametrize("slot", [1, 9, -1])
def test_compare_rejects_empty_or_invalid_slots(slot: int) -> None:
    with pytest.raises(ValueError):
        compare_stat_increments(make_team(make_card()), EnemyState(), slot)


def test_heatmap_shape_and_values() -> None:
    rows = generate_heatmap(
        make_team(make_card()),
        EnemyState(),
        0,
        EffectStat.DMG,
        EffectStat.CRIT_RATE,
        [0.0, 0.5],
        [0.0, 0.5, 1.0],
    )

    assert len(rows) == 3
    assert all(len(row) == 2 for row in rows)
    assert rows[0][0].dps == 300
    assert rows[0][1].dps == 450
    assert rows[1][0].dps == 450
    assert rows[1][1].dps == 675
    assert rows[2][0].dps == 600
    assert (rows[2][1].x, rows[2][1].y) == (0.5, 1.0)
    assert not any(cell.capped for row in rows for cell in row)


def test_heatmap_values_replace_existing_bonuses() -> None:
    ability = make_ability("amp", effects=[("ATK", 50)])
    rows = generate_heatmap(
        make_team(make_card(abilities=[ability])),
        EnemyState(),
        0,
        EffectStat.DMG,
        EffectStat.SPEED,
        [0.0],
        [0.0],
    )
    assert rows[0][0].dps == 300


def test_heatmap_rejects_unsupported_stats() -> None:
    with pytest.raises(ValueError):
        generate_heatmap(
            make_team(make_card()), EnemyState(), 0, EffectStat.HP, EffectStat.DMG, [0.0], [0.0]
        )
