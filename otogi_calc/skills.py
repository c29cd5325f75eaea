"""
Active skill effect parsing.

Turns a card's structured skill data (plus any "On Skill" abilities of the
card and its assist) into the ParsedSkillEffect stored on a team member.
"""

import logging

from .constants import AOE_TARGET_COUNT, AOE_THRESHOLD, ON_SKILL_TAG
from .models import (
    Card,
    ParsedSkillEffect,
    Skill,
    SkillBuff,
    SkillTargetPriority,
    SkillTargetType,
)

logger = logging.getLogger(__name__)


def _resolve_target(skill: Skill) -> tuple[SkillTargetType, int, SkillTargetPriority | None]:
    tags = skill.tags
    target_type = SkillTargetType.ALLY
    target_count = 1
    priority = None

    parsed_target = skill.parsed.target if skill.parsed else None
    if parsed_target is not None:
        if parsed_target.type in ("self", "self_ime"):
            target_type = SkillTargetType.SELF
        elif parsed_target.type in ("enemy", "current_target"):
            target_type = SkillTargetType.ENEMY
        elif parsed_target.type == "ranked":
            # Ranked skills either hit enemies or heal allies
            if skill.is_attack or "DMG" in tags or "Deals" in skill.description:
                target_type = SkillTargetType.ENEMY

        target_count = parsed_target.count or 1

        target_filter = parsed_target.filter or ""
        if "max_atk" in target_filter:
            priority = SkillTargetPriority.HIGHEST_ATK
        elif "min_hp" in target_filter:
            priority = SkillTargetPriority.LOWEST_HP
        elif "max_hp" in target_filter or "max_spd" in target_filter:
            # HP/speed priorities are approximated by ATK
            priority = SkillTargetPriority.HIGHEST_ATK
        elif target_count >= AOE_THRESHOLD:
            priority = SkillTargetPriority.ALL
        return target_type, target_count, priority

    logger.debug(f"Skill '{skill.name}' has no parsed target, using tags")
    if "Heal" in tags:
        target_type = SkillTargetType.ALLY
    elif "DMG" in tags:
        target_type = SkillTargetType.ENEMY
    if "Self" in tags:
        target_type = SkillTargetType.SELF

    if "AoE" in tags:
        target_count = AOE_TARGET_COUNT
        priority = SkillTargetPriority.ALL
    elif "Multi" in tags:
        target_count = 2

    return target_type, target_count, priority


def _apply_skill_effects(
    skill: Skill,
    target_type: SkillTargetType,
    level: int,
    buffs: SkillBuff,
) -> float | None:
    """Set buffs from the skill's own effects. Returns the longest duration."""
    duration = None
    if skill.parsed is None:
        return duration

    for effect in skill.parsed.effects:
        value = effect.value / 100 + effect.scale / 100 * (level - 1)

        if effect.duration and effect.duration > 0:
            duration = max(duration or 0.0, effect.duration)

        if effect.type == "ATK":
            if target_type != SkillTargetType.ENEMY and value > 0:
                buffs.dmg_bonus = value
            else:
                buffs.dmg_dealt_debuff = abs(value)
        elif effect.type == "SHIELD":
            if value < 0:
                buffs.dmg_taken_debuff = abs(value)
            else:
                buffs.dmg_reduction = value
        elif effect.type == "CHIT":
            buffs.crit_rate_bonus = value
        elif effect.type == "CHIT_ATK":
            buffs.crit_dmg_bonus = value
        elif effect.type == "SPD":
            if value > 0:
                buffs.speed_bonus = value
            else:
                buffs.speed_debuff = abs(value)
        elif effect.type == "DEFENSE":
            if value < 0:
                buffs.dmg_dealt_debuff = abs(value) / 1000

    return duration


def _apply_on_skill_abilities(cards: list[Card], level: int, buffs: SkillBuff) -> None:
    """Add "On Skill" ability effects (card and assist) on top of the skill's."""
    for card in cards:
        for ability in card.abilities:
            if ON_SKILL_TAG not in ability.tags:
                continue
            if (ability.unlock_level or 1) > level:
                continue
            if ability.parsed is None:
                continue

            for effect in ability.parsed.effects:
                value = effect.value / 100
                if effect.type == "CHIT":
                    buffs.crit_rate_bonus += value
                elif effect.type == "CHIT_ATK":
                    buffs.crit_dmg_bonus += value
                elif effect.type == "SPD":
                    if value > 0:
                        buffs.speed_bonus += value
                    else:
                        buffs.speed_debuff += abs(value)
                elif effect.type == "SHIELD" and value < 0:
                    buffs.dmg_taken_debuff += abs(value)
                elif effect.type == "ATK" and value > 0:
                    buffs.dmg_bonus += value


def parse_skill_effect(
    card: Card,
    effective_level: float,
    assist_card: Card | None = None,
) -> ParsedSkillEffect | None:
    """
    Parse what a card's active skill does to its targets.

    Skill level follows the card's effective level.

    Args:
        card: Card with the skill.
        effective_level: Card's effective level.
        assist_card: Assist whose "On Skill" abilities also apply.

    Returns:
        ParsedSkillEffect, or None if the card has no skill or the skill
        has no buff or debuff.
    """
    if card.skill is None:
        return None

    skill = card.skill
    target_type, target_count, priority = _resolve_target(skill)

    buffs = SkillBuff()
    duration = _apply_skill_effects(skill, target_type, effective_level, buffs)

    sources = [card] if assist_card is None else [card, assist_card]
    _apply_on_skill_abilities(sources, effective_level, buffs)

    if not buffs.has_effect():
        return None

    return ParsedSkillEffect(
        target_type=target_type,
        target_count=target_count,
        target_priority=priority,
        buffs=buffs,
        duration=duration,
    )
