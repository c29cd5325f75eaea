"""
Phase 3: ability engine.

Normalizes card and assist abilities, resolves which slots they affect and
accumulates the resulting bonuses. Active skill buffs are folded in after
the abilities by apply_skill_buffs().

Gating order for each ability:
1. Non-stackable abilities apply once per ability id (ledger).
2. Final wave abilities need the enemy's final wave flag.
3. Synergy partners must be present as a card or an assist.
4. Leader abilities only work from slot 0.
"""

import logging

from .constants import AOE_TARGET_COUNT, AOE_THRESHOLD, LEADER_SLOT, MAIN_TEAM_SIZE, ON_SKILL_TAG
from .models import (
    Ability,
    AbilityContribution,
    AbilityDataSource,
    AbilityEffect,
    AbilityLedger,
    AbilityParsedData,
    AbilityTiming,
    Attribute,
    AttributeTarget,
    EffectStat,
    EffectValue,
    EnemyState,
    EnemyTarget,
    ParsedAbility,
    Phase1Result,
    Phase3Result,
    RandomTargetMode,
    RankedTarget,
    RankSortKey,
    ResolvedTargets,
    SelfTarget,
    SkillTargetType,
    TeamContext,
    TeamMemberState,
    TeamTarget,
)

logger = logging.getLogger(__name__)

# =============================================================================
# STRUCTURED DATA MAPPINGS
# =============================================================================

EFFECT_TYPE_MAP: dict[str, EffectStat] = {
    "ATK": EffectStat.DMG,
    "SKILL_ATK": EffectStat.SKILL_DMG,
    "CHIT": EffectStat.CRIT_RATE,
    "CHIT_ATK": EffectStat.CRIT_DMG,
    "SPD": EffectStat.SPEED,
    "SHIELD": EffectStat.SHIELD,
    "DEFENSE": EffectStat.DEFENSE,
    "LEVEL": EffectStat.LEVEL,
    "HP": EffectStat.HP,
    "NORM_ATK": EffectStat.NORMAL_DMG,
}

TIMING_MAP: dict[str, AbilityTiming] = {
    "entry": AbilityTiming.PASSIVE,
    "entry_wave": AbilityTiming.WAVE_START,
    "last_wave": AbilityTiming.FINAL_WAVE,
    "entry_leader": AbilityTiming.PASSIVE,  # leader flag carries the condition
    "attack_skill": AbilityTiming.PASSIVE,
    "attack_normal": AbilityTiming.PASSIVE,
}

ENEMY_TARGETING_TAGS = ("DMG Amp", "Enemy DMG Down", "Slow")

ATTRIBUTE_FILTERS: dict[str, Attribute] = {
    "type<1>": Attribute.DIVINA,
    "type<2>": Attribute.PHANTASMA,
    "type<3>": Attribute.ANIMA,
}

RANK_SORT_MAP: dict[str, RankSortKey] = {
    "max_atk": RankSortKey.ATK,
    "max_spd": RankSortKey.SPEED,
    "max_hp": RankSortKey.HP,
    "min_hp": RankSortKey.HP,
    "min_hpp": RankSortKey.HP,
}

# Phase3Result field each ally effect accumulates into
BONUS_FIELDS: dict[EffectStat, str] = {
    EffectStat.DMG: "dmg_bonus",
    EffectStat.CRIT_RATE: "crit_rate_bonus",
    EffectStat.CRIT_DMG: "crit_dmg_bonus",
    EffectStat.SKILL_DMG: "skill_dmg_bonus",
    EffectStat.SPEED: "speed_bonus",
    EffectStat.LEVEL: "level_bonus",
    EffectStat.HP: "hp_bonus",
    EffectStat.NORMAL_DMG: "normal_dmg_bonus",
}

ENEMY_DEBUFF_FIELDS: dict[EffectStat, str] = {
    EffectStat.SHIELD: "enemy_shield_debuff",
    EffectStat.DEFENSE: "enemy_defense_debuff",
}


def parse_attribute_filter(filter_value: str | None) -> Attribute | None:
    """Map a structured filter such as "type<1>" to an attribute."""
    if not filter_value:
        return None
    for token, attribute in ATTRIBUTE_FILTERS.items():
        if token in filter_value:
            return attribute
    return None


def parse_rank_sort(filter_value: str | None) -> RankSortKey | None:
    """Map a structured filter such as "max_atk" to a ranking stat."""
    if not filter_value:
        return None
    return RANK_SORT_MAP.get(filter_value)


# =============================================================================
# PARSING
# =============================================================================


def parse_ability(ability: Ability, source_card_id: str, is_from_assist: bool) -> ParsedAbility:
    """
    Normalize an ability into targeting, effects and timing.

    Uses the structured data when present. Otherwise only the tags are used
    and the result has no effects.

    Args:
        ability: Ability record from the card data.
        source_card_id: Id of the card (or assist) that owns the ability.
        is_from_assist: True if the ability comes from an assist card.

    Returns:
        ParsedAbility ready for target resolution.
    """
    if ability.parsed is not None:
        return _parse_structured(ability, source_card_id, is_from_assist, ability.parsed)
    return _parse_from_tags(ability, source_card_id, is_from_assist)


def _parse_structured(
    ability: Ability,
    source_card_id: str,
    is_from_assist: bool,
    parsed: AbilityParsedData,
) -> ParsedAbility:
    tags = ability.tags
    targets_enemy_by_tag = any(tag in ENEMY_TARGETING_TAGS for tag in tags)
    targets_enemy = targets_enemy_by_tag

    target_type = parsed.target.type if parsed.target else "self"
    count = (parsed.target.count if parsed.target else None) or 0
    target_filter = parsed.target.filter if parsed.target else None

    if target_type == "team":
        target = TeamTarget()
    elif target_type == "attribute":
        target = AttributeTarget(
            attribute=parse_attribute_filter(target_filter),
            count=count if count > 0 else None,
        )
    elif target_type == "ranked":
        if targets_enemy_by_tag:
            target = EnemyTarget()
        else:
            target = RankedTarget(count=count or None, sort_by=parse_rank_sort(target_filter))
    elif target_type in ("enemy", "current_target"):
        target = EnemyTarget()
        targets_enemy = True
    else:
        target = SelfTarget()

    if isinstance(target, SelfTarget) and count > 1:
        target = TeamTarget()

    effects = []
    for effect in parsed.effects:
        stat = EFFECT_TYPE_MAP.get(effect.type)
        if stat is None:
            continue

        value = effect.value if stat == EffectStat.LEVEL else effect.value / 100
        is_enemy_stat = stat in (EffectStat.SHIELD, EffectStat.DEFENSE)

        if targets_enemy:
            # Only shield/defense reductions change the team's damage
            if is_enemy_stat and value < 0:
                effects.append(AbilityEffect(stat=stat, value=abs(value), is_debuff=True))
            continue

        effects.append(
            AbilityEffect(stat=stat, value=abs(value), is_debuff=is_enemy_stat and value < 0)
        )

    synergy_partners = (
        parsed.conditions.mns_ids
        if parsed.conditions and parsed.conditions.mns_ids
        else ability.synergy_partners
    )

    return ParsedAbility(
        id=ability.id,
        name=ability.name,
        description=ability.description,
        unlock_level=ability.unlock_level or 1,
        source_card_id=source_card_id,
        is_from_assist=is_from_assist,
        target=target,
        effects=effects,
        synergy_partners=list(synergy_partners),
        requires_leader=parsed.trigger == "entry_leader" or "Leader" in tags,
        timing=TIMING_MAP.get(parsed.trigger or "", AbilityTiming.PASSIVE),
        stackable=ability.stackable,
        data_source=AbilityDataSource.STRUCTURED,
    )


def _parse_from_tags(ability: Ability, source_card_id: str, is_from_assist: bool) -> ParsedAbility:
    logger.warning(
        f"Ability '{ability.name}' ({ability.id}) has no parsed data, "
        f"using tag-based targeting only. Effects will be empty."
    )
    tags = ability.tags

    target = TeamTarget() if "Team" in tags else SelfTarget()

    for attribute in (Attribute.DIVINA, Attribute.PHANTASMA, Attribute.ANIMA):
        if attribute.value in tags:
            if isinstance(target, TeamTarget):
                target = AttributeTarget(attribute=attribute)
            break

    if "Multi" in tags:
        target = RankedTarget(count=2, sort_by=RankSortKey.ATK)

    timing = AbilityTiming.PASSIVE
    if "Wave Start" in tags:
        timing = AbilityTiming.WAVE_START
    elif "Final Wave" in tags:
        timing = AbilityTiming.FINAL_WAVE

    return ParsedAbility(
        id=ability.id,
        name=ability.name,
        description=ability.description,
        unlock_level=ability.unlock_level or 1,
        source_card_id=source_card_id,
        is_from_assist=is_from_assist,
        target=target,
        effects=[],
        synergy_partners=list(ability.synergy_partners),
        requires_leader="Leader" in tags,
        timing=timing,
        stackable=ability.stackable,
        data_source=AbilityDataSource.TAG_FALLBACK,
    )


def collect_member_abilities(member: TeamMemberState, effective_level: int) -> list[ParsedAbility]:
    """
    Unlocked passive abilities of a slot's card and assist.

    Card abilities need unlock_level <= effective_level. Assist abilities are
    always unlocked. "On Skill" abilities belong to the skill effect and are
    left out.
    """
    abilities = []
    if member.card is None:
        return abilities

    for ability in member.card.abilities:
        if ON_SKILL_TAG in ability.tags:
            continue
        if (ability.unlock_level or 1) > effective_level:
            continue
        abilities.append(parse_ability(ability, member.card.id, is_from_assist=False))

    if member.assist_card is not None:
        for ability in member.assist_card.abilities:
            if ON_SKILL_TAG in ability.tags:
                continue
            abilities.append(parse_ability(ability, member.assist_card.id, is_from_assist=True))

    return abilities


# =============================================================================
# TARGET RESOLUTION
# =============================================================================


def _main_team_with_cards(members: list[TeamMemberState]) -> list[int]:
    return [i for i in range(min(MAIN_TEAM_SIZE, len(members))) if members[i].card is not None]


def resolve_ability_targets(
    ability: ParsedAbility,
    source_index: int,
    context: TeamContext,
    members: list[TeamMemberState],
    overrides: dict[str, list[int]] | None = None,
    mode: RandomTargetMode = RandomTargetMode.BEST,
) -> ResolvedTargets:
    """
    Resolve the slots an ability affects.

    Args:
        ability: Parsed ability.
        source_index: Slot that owns the ability (the card an assist is on).
        context: Team context from Phase 2.
        members: All team slots.
        overrides: Manual ability id -> slot list for ranked abilities.
        mode: How "N random allies" abilities pick their targets.

    Returns:
        Target slot indices and the scale factor for their effects.
    """
    no_targets = ResolvedTargets()

    if ability.synergy_partners and not context.has_partner(ability.synergy_partners):
        return no_targets

    if ability.requires_leader and source_index != LEADER_SLOT:
        return no_targets

    target = ability.target

    if isinstance(target, SelfTarget):
        # For assists, "self" is the card the assist is attached to
        return ResolvedTargets(indices=[source_index])

    if isinstance(target, (TeamTarget, EnemyTarget)):
        return ResolvedTargets(indices=_main_team_with_cards(members))

    if isinstance(target, AttributeTarget):
        eligible = [
            i
            for i in _main_team_with_cards(members)
            if target.attribute is None or members[i].card.attribute == target.attribute
        ]
        count = target.count
        if not count or count >= len(eligible):
            return ResolvedTargets(indices=eligible)

        if mode == RandomTargetMode.AVERAGE:
            return ResolvedTargets(indices=eligible, scale_factor=count / len(eligible))
        if mode == RandomTargetMode.FIRST:
            return ResolvedTargets(indices=eligible[:count])
        if mode == RandomTargetMode.LAST:
            return ResolvedTargets(indices=eligible[-count:])

        by_atk = [i for i in context.by_atk if i in eligible]
        if mode == RandomTargetMode.WORST:
            return ResolvedTargets(indices=by_atk[-count:])
        return ResolvedTargets(indices=by_atk[:count])

    if isinstance(target, RankedTarget):
        if overrides and ability.id in overrides:
            populated = set(_main_team_with_cards(members))
            return ResolvedTargets(indices=[i for i in overrides[ability.id] if i in populated])

        if not target.count or target.sort_by is None:
            return no_targets

        if target.sort_by == RankSortKey.SPEED:
            ranking = context.by_speed
        elif target.sort_by == RankSortKey.HP:
            ranking = context.by_hp
        else:
            ranking = context.by_atk
        return ResolvedTargets(indices=ranking[: target.count])

    return ResolvedTargets(indices=[source_index])


# =============================================================================
# APPLICATION
# =============================================================================


def calculate_phase3_apply_abilities(
    members: list[TeamMemberState],
    phase1_results: list[Phase1Result],
    context: TeamContext,
    enemy: EnemyState,
    overrides: dict[str, list[int]] | None = None,
    mode: RandomTargetMode = RandomTargetMode.BEST,
) -> tuple[list[Phase3Result], AbilityLedger]:
    """
    Apply every slot's unlocked abilities.

    Reserve slots (5-6) are ability sources too. Enemy shield/defense
    debuffs are pooled on slot 0 and apply once per ability id.

    Args:
        members: All team slots.
        phase1_results: Base stats from Phase 1.
        context: Team context from Phase 2.
        enemy: Enemy state (wave count, final wave flag).
        overrides: Manual targets for ranked abilities.
        mode: Random target mode.

    Returns:
        Tuple of (per-slot results, ledger of applied abilities).
    """
    results = [Phase3Result(member_index=i) for i in range(len(members))]
    ledger = AbilityLedger()

    for source_index, member in enumerate(members):
        if member.card is None:
            continue

        effective_level = phase1_results[source_index].effective_level
        for ability in collect_member_abilities(member, effective_level):
            if not ability.stackable and not ledger.claim_non_stackable(ability.id):
                continue

            if ability.timing == AbilityTiming.FINAL_WAVE and not enemy.is_final_wave:
                continue

            wave_multiplier = enemy.wave_count if ability.timing == AbilityTiming.WAVE_START else 1

            resolved = resolve_ability_targets(
                ability, source_index, context, members, overrides, mode
            )
            if not resolved.indices:
                continue

            for target_index in resolved.indices:
                if target_index >= len(results):
                    continue
                _apply_effects(
                    ability,
                    source_index,
                    target_index,
                    wave_multiplier * resolved.scale_factor,
                    results,
                    ledger,
                )

    return results, ledger


def _contribution(ability: ParsedAbility, source_index: int) -> AbilityContribution:
    return AbilityContribution(
        ability_id=ability.id,
        ability_name=ability.name,
        source_card_id=ability.source_card_id,
        source_member_index=source_index,
        is_from_assist=ability.is_from_assist,
    )


def _apply_effects(
    ability: ParsedAbility,
    source_index: int,
    target_index: int,
    multiplier: float,
    results: list[Phase3Result],
    ledger: AbilityLedger,
) -> None:
    target_result = results[target_index]
    contribution = _contribution(ability, source_index)

    for effect in ability.effects:
        value = effect.value * multiplier

        if effect.stat in ENEMY_DEBUFF_FIELDS:
            if not effect.is_debuff or not ledger.claim_enemy_debuff(ability.id, effect.stat):
                continue
            pool = results[0]
            field = ENEMY_DEBUFF_FIELDS[effect.stat]
            setattr(pool, field, getattr(pool, field) + value)

            debuff = _contribution(ability, source_index)
            debuff.effects.append(EffectValue(stat=effect.stat, value=value))
            pool.enemy_debuff_contributions.append(debuff)
            continue

        field = BONUS_FIELDS[effect.stat]
        setattr(target_result, field, getattr(target_result, field) + value)
        contribution.effects.append(EffectValue(stat=effect.stat, value=value))

    if contribution.effects:
        target_result.ability_contributions.append(contribution)


# =============================================================================
# ACTIVE SKILL BUFFS
# =============================================================================


def apply_skill_buffs(
    members: list[TeamMemberState],
    phase3_results: list[Phase3Result],
    context: TeamContext,
) -> float:
    """
    Fold toggled-on active skill buffs into the Phase 3 results.

    Only main team members cast skills. Ally skills hit every main slot
    (count >= 5 or the AoE sentinel), the top N by ATK (count > 1) or the
    top ATK ally (single). Self skills hit the caster. Enemy skills only
    contribute their damage taken debuff.

    Args:
        members: All team slots.
        phase3_results: Phase 3 results, updated in place.
        context: Team context from Phase 2.

    Returns:
        Total damage taken debuff of the toggled-on skills.
    """
    skill_debuff_total = 0.0

    for caster_index in range(min(MAIN_TEAM_SIZE, len(members))):
        member = members[caster_index]
        if not member.skill_active or member.skill_effect is None:
            continue

        effect = member.skill_effect
        skill_debuff_total += effect.buffs.dmg_taken_debuff

        if effect.target_type == SkillTargetType.ALLY:
            if effect.target_count == AOE_TARGET_COUNT or effect.target_count >= AOE_THRESHOLD:
                targets = list(range(MAIN_TEAM_SIZE))
            elif effect.target_count > 1:
                targets = context.by_atk[: effect.target_count]
            else:
                targets = context.by_atk[:1]
        elif effect.target_type == SkillTargetType.SELF:
            targets = [caster_index]
        else:
            targets = []

        for target_index in targets:
            if target_index < len(members) and members[target_index].card is not None:
                _apply_skill_buff(member, caster_index, phase3_results[target_index])

    return skill_debuff_total


def _apply_skill_buff(caster: TeamMemberState, caster_index: int, target: Phase3Result) -> None:
    buffs = caster.skill_effect.buffs
    effects = []

    for stat, field, value in (
        (EffectStat.DMG, "dmg_bonus", buffs.dmg_bonus),
        (EffectStat.CRIT_RATE, "crit_rate_bonus", buffs.crit_rate_bonus),
        (EffectStat.CRIT_DMG, "crit_dmg_bonus", buffs.crit_dmg_bonus),
        (EffectStat.SPEED, "speed_bonus", buffs.speed_bonus),
    ):
        if value:
            setattr(target, field, getattr(target, field) + value)
            effects.append(EffectValue(stat=stat, value=value))

    if not effects:
        return

    skill_name = caster.card.skill.name if caster.card.skill and caster.card.skill.name else "Skill"
    target.ability_contributions.append(
        AbilityContribution(
            ability_id=f"skill-{caster.card.id}",
            ability_name=f"{skill_name} (Skill)",
            source_card_id=caster.card.id,
            source_member_index=caster_index,
            effects=effects,
        )
    )
