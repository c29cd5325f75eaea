from __future__ import annotations

import pytest

from otogi_calc.models import (
    ParsedEffect,
    ParsedTarget,
    Skill,
    SkillImmediate,
    SkillParsedData,
    SkillTargetPriority,
    SkillTargetType,
)
from otogi_calc.skills import parse_skill_effect
from tests.helpers.factories import make_ability, make_attack_skill, make_buff_skill, make_card


def test_card_without_skill_has_no_effect() -> None:
    assert parse_skill_effect(make_card(), 80) is None


def test_attack_skill_without_buffs_has_no_effect() -> None:
    assert parse_skill_effect(make_card(skill=make_attack_skill()), 80) is None


def test_ally_buff_scales_with_level() -> None:
    card = make_card(skill=make_buff_skill([("ATK", 20)], scale=1))
    effect = parse_skill_effect(card, 11)

    assert effect is not None
    assert effect.target_type == SkillTargetType.ALLY
    assert effect.target_count == 99
    assert effect.target_priority == SkillTargetPriority.ALL
    assert effect.buffs.dmg_bonus == pytest.approx(0.30)


def test_buff_effect_types() -> None:
    card = make_card(
        skill=make_buff_skill(
            [("CHIT", 20), ("CHIT_ATK", 40), ("SPD", 30), ("SHIELD", 25)],
            target_type="self",
            count=1,
        )
    )
    effect = parse_skill_effect(card, 1)

    assert effect.target_type == SkillTargetType.SELF
    assert effect.buffs.crit_rate_bonus == pytest.approx(0.20)
    assert effect.buffs.crit_dmg_bonus == pytest.approx(0.40)
    assert effect.buffs.speed_bonus == pytest.approx(0.30)
    assert effect.buffs.dmg_reduction == pytest.approx(0.25)
    assert effect.buffs.dmg_taken_debuff == 0


def test_enemy_debuffs() -> None:
    card = make_card(
        skill=make_buff_skill(
            [("SHIELD", -15), ("ATK", -10), ("SPD", -20), ("DEFENSE", -50)],
            target_type="enemy",
            count=1,
        )
    )
    effect = parse_skill_effect(card, 1)

    assert effect.target_type == SkillTargetType.ENEMY
    assert effect.buffs.dmg_taken_debuff == pytest.approx(0.15)
    assert effect.buffs.speed_debuff == pytest.approx(0.20)
    # DEFENSE overwrites the ATK reduction and is scaled down
    assert effect.buffs.dmg_dealt_debuff == pytest.approx(0.0005)
    assert effect.buffs.dmg_bonus == 0


def test_ranked_attack_skill_targets_enemy() -> None:
    skill = Skill(
        id="s3",
        name="Pierce",
        parsed=SkillParsedData(
            target=ParsedTarget(type="ranked", count=2, filter="max_atk"),
            immediate=SkillImmediate(type="ATK"),
            slv1=800,
            effects=[
                ParsedEffect(type="SHIELD", value=-10, duration=8),
                ParsedEffect(type="SPD", value=-5, duration=12),
            ],
        ),
    )
    effect = parse_skill_effect(make_card(skill=skill), 1)

    assert effect.target_type == SkillTargetType.ENEMY
    assert effect.target_count == 2
    assert effect.target_priority == SkillTargetPriority.HIGHEST_ATK
    assert effect.buffs.dmg_taken_debuff == pytest.approx(0.10)
    assert effect.duration == 12


def test_ranked_heal_skill_targets_allies() -> None:
    skill = Skill(
        name="Mend",
        parsed=SkillParsedData(
            target=ParsedTarget(type="ranked", count=1, filter="min_hpp"),
            immediate=SkillImmediate(type="HEAL"),
            effects=[ParsedEffect(type="ATK", value=10)],
        ),
    )
    effect = parse_skill_effect(make_card(skill=skill), 1)

    assert effect.target_type == SkillTargetType.ALLY
    assert effect.target_priority == SkillTargetPriority.LOWEST_HP
    assert effect.buffs.dmg_bonus == pytest.approx(0.10)


def test_tag_fallback_aoe_with_on_skill_ability() -> None:
    on_skill = make_ability("os", tags=["On Skill"], effects=[("CHIT", 10)])
    card = make_card(skill=Skill(name="Cheer", tags=["AoE"]), abilities=[on_skill])
    effect = parse_skill_effect(card, 80)

    assert effect.target_type == SkillTargetType.ALLY
    assert effect.target_count == 99
    assert effect.target_priority == SkillTargetPriority.ALL
    assert effect.buffs.crit_rate_bonus == pytest.approx(0.10)
    assert effect.duration is None


def test_assist_on_skill_abilities_stack_on_the_skill() -> None:
    card = make_card(skill=make_buff_skill([("CHIT", 10), ("ATK", 20)]))
    assist = make_card(
        "2000",
        card_type=4,
        abilities=[
            make_ability("os1", tags=["On Skill"], effects=[("CHIT", 15), ("SHIELD", -5)]),
            make_ability("os2", tags=["On Skill"], effects=[("ATK", 10)], unlock_level=999),
            make_ability("passive", effects=[("CHIT", 50)]),
        ],
    )
    effect = parse_skill_effect(card, 80, assist_card=assist)

    assert effect.buffs.crit_rate_bonus == pytest.approx(0.25)
    assert effect.buffs.dmg_taken_debuff == pytest.approx(0.05)
    assert effect.buffs.dmg_bonus == pytest.approx(0.20)


def test_zero_value_effects_have_no_effect() -> None:
    card = make_card(skill=make_buff_skill([("CHIT", 0), ("HEAL", 50)]))
    assert parse_skill_effect(card, 80) is None
