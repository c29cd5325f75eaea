"""
Phase 4: final stats and damage.

Damage chain, applied to internal ATK (normal attacks) and to the skill's
base damage (attack skills):

    base = power * exceed * (1 + dmg%) * (1 + type%) * (1 + race)
           * (1 - defense) * (1 - shield) * world_boss

Each figure is rounded half-up and capped (99,999 normal, 999,999 skill).
"""

import math

from .constants import (
    ATTACK_INTERVAL_DIVISOR,
    ATTACK_INTERVAL_OFFSET,
    BASE_CRIT_MULT,
    CRIT_RATE_CAP,
    INTERNAL_ATK_SCALE,
    LB_EXCEED_AVERAGE,
    LB_EXCEED_MAX,
    LB_EXCEED_MIN,
    LEADER_SLOT,
    LEVELS_PER_LB,
    MAIN_TEAM_SIZE,
    MIN_ATTACK_INTERVAL,
    NORMAL_DAMAGE_CAP,
    RACE_ASSIST_BONUS,
    RACE_BONUS_MAX,
    RACE_LEADER_BONUS,
    RACE_MEMBER_BONUS,
    SHIELD_MAX,
    SHIELD_MIN,
    SKILL_DAMAGE_CAP,
    SPEED_BUFF_CAP,
    SPEED_DEBUFF_CAP,
)
from .models import (
    Attribute,
    ComputedMemberStats,
    DamageBreakdown,
    DmgBreakdown,
    EnemyAttribute,
    EnemyState,
    LevelBreakdown,
    MemberDamageResult,
    Phase1Result,
    Phase3Result,
    Phase4Result,
    SkillDmgBreakdown,
    StatBreakdown,
    StatSource,
    TeamMemberState,
)
from .stats import calc_stat_at_level

# =============================================================================
# HELPERS
# =============================================================================


def round_half_up(value: float) -> int:
    """Round .5 up (toward +inf), the way the game client rounds."""
    return math.floor(value + 0.5)


def effective_shield(base_shield: float, debuff_total: float, ignore_cap: bool = False) -> float:
    """
    Enemy shield after debuffs, clamped to [-0.75, 0.85].

    With ignore_cap only the upper bound applies (world boss mode).
    """
    shield = min(base_shield - debuff_total, SHIELD_MAX)
    if ignore_cap:
        return shield
    return max(SHIELD_MIN, shield)


def effective_defense(base_defense: float, debuff_total: float) -> float:
    """Enemy defense after debuffs, clamped to [0, 0.85]."""
    return max(0.0, min(base_defense - debuff_total, SHIELD_MAX))


def calculate_attack_interval(speed: int, speed_bonus: float) -> float:
    """
    Seconds between normal attacks.

    Buffs (capped at 100%) are halved, debuffs (capped at -100%) apply in
    full. Never faster than 0.5s.
    """
    interval = (speed + ATTACK_INTERVAL_OFFSET) / ATTACK_INTERVAL_DIVISOR
    if speed_bonus >= 0:
        interval *= 1 - min(speed_bonus, SPEED_BUFF_CAP) / 2
    else:
        interval *= 1 + abs(max(speed_bonus, SPEED_DEBUFF_CAP))
    return max(interval, MIN_ATTACK_INTERVAL)


# =============================================================================
# RACE BONUS
# =============================================================================

# enemy attribute -> attribute that beats it
_ADVANTAGE = {
    EnemyAttribute.DIVINA: Attribute.ANIMA,
    EnemyAttribute.PHANTASMA: Attribute.DIVINA,
    EnemyAttribute.ANIMA: Attribute.PHANTASMA,
}

# enemy attribute -> attribute it beats
_DISADVANTAGE = {
    EnemyAttribute.DIVINA: Attribute.PHANTASMA,
    EnemyAttribute.PHANTASMA: Attribute.ANIMA,
    EnemyAttribute.ANIMA: Attribute.DIVINA,
}


def get_advantage_attribute(enemy_attribute: EnemyAttribute) -> Attribute | None:
    """Attribute with the upper hand against the enemy."""
    return _ADVANTAGE.get(enemy_attribute)


def get_disadvantage_attribute(enemy_attribute: EnemyAttribute) -> Attribute | None:
    """Attribute the enemy has the upper hand against."""
    return _DISADVANTAGE.get(enemy_attribute)


def calculate_race_bonus(members: list[TeamMemberState], enemy_attribute: EnemyAttribute) -> float:
    """
    Team race bonus from the leader's matchup against the enemy.

    Anima beats Divina, Divina beats Phantasma, Phantasma beats Anima.
    Advantage or disadvantage is worth 10% for the leader plus 5% per card
    (all 7 slots, leader included) and 5% per assist sharing the leader's
    attribute, capped at 45%.

    Args:
        members: All team slots.
        enemy_attribute: Enemy attribute, NONE disables the bonus.

    Returns:
        Signed bonus as a decimal (0.45 = +45%, -0.45 = -45%).
    """
    if enemy_attribute == EnemyAttribute.NONE or not members:
        return 0.0

    leader = members[LEADER_SLOT].card
    if leader is None:
        return 0.0

    leader_attribute = leader.attribute
    if leader_attribute in (None, Attribute.NEUTRAL):
        return 0.0

    if leader_attribute == get_advantage_attribute(enemy_attribute):
        sign = 1
    elif leader_attribute == get_disadvantage_attribute(enemy_attribute):
        sign = -1
    else:
        return 0.0

    bonus = RACE_LEADER_BONUS
    for member in members:
        if member.card is not None and member.card.attribute == leader_attribute:
            bonus += RACE_MEMBER_BONUS
        if member.assist_card is not None and member.assist_card.attribute == leader_attribute:
            bonus += RACE_ASSIST_BONUS

    return sign * min(bonus, RACE_BONUS_MAX)


# =============================================================================
# PHASE 4
# =============================================================================


def _capped(value: float, cap: int) -> int:
    return min(round_half_up(value), cap)


def _damage_figures(
    power: float,
    chain: float,
    exceed: tuple[float, float, float],
    crit_dmg: float,
    expected_crit_mult: float,
    cap: int,
) -> dict:
    """Base/crit/expected damage (average, min, max exceed) for one attack type."""
    exceed_avg, exceed_min, exceed_max = exceed
    base = power * exceed_avg * chain
    base_min = power * exceed_min * chain
    base_max = power * exceed_max * chain

    return {
        "raw": base,
        "damage": _capped(base, cap),
        "damage_min": _capped(base_min, cap),
        "damage_max": _capped(base_max, cap),
        "crit": _capped(base * crit_dmg, cap),
        "crit_min": _capped(base_min * crit_dmg, cap),
        "crit_max": _capped(base_max * crit_dmg, cap),
        "expected": _capped(base * expected_crit_mult, cap),
        "expected_min": _capped(base_min * expected_crit_mult, cap),
        "expected_max": _capped(base_max * expected_crit_mult, cap),
        # Flag uses the rounded crit before the cap
        "capped": round_half_up(base * crit_dmg) >= cap,
    }


def calculate_skill_base_damage(member: TeamMemberState, level: float) -> float:
    """slv1 + (level - 1) * slvup for attack skills, 0 otherwise."""
    skill = member.card.skill if member.card else None
    if skill is None or not skill.is_attack:
        return 0.0
    return skill.parsed.slv1 + (level - 1) * skill.parsed.slvup


def calculate_member_stats(
    member: TeamMemberState,
    phase1: Phase1Result,
    phase3: Phase3Result,
) -> ComputedMemberStats:
    """
    Final stats of a slot with a card.

    Args:
        member: Team slot.
        phase1: Base stats of the slot.
        phase3: Accumulated ability and skill bonuses of the slot.

    Returns:
        ComputedMemberStats with the per-stat source breakdown.
    """
    stats = member.card.stats
    final_level = phase1.effective_level + phase3.level_bonus

    final_atk = calc_stat_at_level(stats.base_atk, stats.max_atk, stats.max_level, final_level)
    display_atk = final_atk * (1 + phase1.atk_bond_bonus)

    crit_rate = min(phase1.base_crit_rate + phase3.crit_rate_bonus, CRIT_RATE_CAP)
    crit_dmg = BASE_CRIT_MULT + phase3.crit_dmg_bonus
    skill_dmg_bonus = phase1.skill_bond_bonus + phase3.skill_dmg_bonus
    assist_atk = final_atk * phase1.assist_atk_bond_bonus

    breakdown = StatBreakdown(
        level=LevelBreakdown(
            base=stats.max_level,
            limit_break=member.limit_break * LEVELS_PER_LB,
            bonus=member.level_bonus,
            abilities=phase3.level_bonus,
            total=final_level,
        ),
        atk=StatSource(
            base=final_atk,
            bond=final_atk * phase1.atk_bond_bonus - assist_atk,
            assist=assist_atk,
            total=display_atk,
        ),
        crit_rate=StatSource(
            base=phase1.base_crit_rate,
            abilities=phase3.crit_rate_bonus,
            total=crit_rate,
        ),
        crit_dmg=StatSource(
            base=BASE_CRIT_MULT,
            abilities=phase3.crit_dmg_bonus,
            total=crit_dmg,
        ),
        dmg=DmgBreakdown(abilities=phase3.dmg_bonus, total=phase3.dmg_bonus),
        normal_dmg=DmgBreakdown(
            abilities=phase3.normal_dmg_bonus, total=phase3.normal_dmg_bonus
        ),
        skill_dmg=SkillDmgBreakdown(
            bond=phase1.skill_bond_bonus - phase1.assist_skill_bond_bonus,
            assist=phase1.assist_skill_bond_bonus,
            abilities=phase3.skill_dmg_bonus,
            total=skill_dmg_bonus,
        ),
        # Speed bonus is a percentage; the raw stat is unchanged
        speed=StatSource(base=stats.speed, abilities=phase3.speed_bonus, total=stats.speed),
    )

    return ComputedMemberStats(
        effective_level=final_level,
        display_atk=display_atk,
        effective_speed=stats.speed,
        effective_crit_rate=crit_rate,
        effective_crit_dmg=crit_dmg,
        dmg_bonus=phase3.dmg_bonus,
        skill_dmg_bonus=skill_dmg_bonus,
        normal_dmg_bonus=phase3.normal_dmg_bonus,
        hp_bonus=phase3.hp_bonus,
        attack_interval=calculate_attack_interval(stats.speed, phase3.speed_bonus),
        breakdown=breakdown,
    )


def calculate_member_damage(
    member: TeamMemberState,
    computed: ComputedMemberStats,
    enemy: EnemyState,
    shield: float,
    defense: float,
    race_bonus: float,
) -> MemberDamageResult:
    """
    Normal and skill damage of a main team member.

    Args:
        member: Team slot with a card.
        computed: Final stats from calculate_member_stats().
        enemy: Enemy state.
        shield: Effective enemy shield.
        defense: Effective enemy defense.
        race_bonus: Team race bonus.

    Returns:
        MemberDamageResult. Healers deal nothing when the enemy state says
        healers don't attack.
    """
    if enemy.healers_dont_attack and member.card.is_healer:
        return MemberDamageResult()

    exceed = (
        LB_EXCEED_AVERAGE.get(member.limit_break, 1.0),
        LB_EXCEED_MIN.get(member.limit_break, 1.0),
        LB_EXCEED_MAX.get(member.limit_break, 1.0),
    )

    effective_atk = computed.display_atk / INTERNAL_ATK_SCALE
    crit_rate = computed.effective_crit_rate
    crit_dmg = computed.effective_crit_dmg
    expected_crit_mult = 1 + crit_rate * (crit_dmg - 1)

    dmg_mult = 1 + computed.dmg_bonus
    normal_dmg_mult = 1 + computed.normal_dmg_bonus
    skill_dmg_mult = 1 + computed.skill_dmg_bonus
    race_mult = 1 + race_bonus
    defense_mult = 1 - defense
    shield_mult = 1 - shield
    world_boss_mult = enemy.world_boss_bonus

    shared = dmg_mult * race_mult * defense_mult * shield_mult * world_boss_mult

    normal = _damage_figures(
        effective_atk,
        shared * normal_dmg_mult,
        exceed,
        crit_dmg,
        expected_crit_mult,
        NORMAL_DAMAGE_CAP,
    )

    skill_base_damage = calculate_skill_base_damage(member, computed.effective_level)
    skill = _damage_figures(
        skill_base_damage,
        shared * skill_dmg_mult,
        exceed,
        crit_dmg,
        expected_crit_mult,
        SKILL_DAMAGE_CAP,
    )

    interval = computed.attack_interval

    return MemberDamageResult(
        normal_damage=normal["damage"],
        normal_damage_min=normal["damage_min"],
        normal_damage_max=normal["damage_max"],
        normal_damage_crit=normal["crit"],
        normal_damage_crit_min=normal["crit_min"],
        normal_damage_crit_max=normal["crit_max"],
        normal_damage_expected=normal["expected"],
        normal_damage_expected_min=normal["expected_min"],
        normal_damage_expected_max=normal["expected_max"],
        normal_damage_capped=normal["capped"],
        normal_dps=round_half_up(normal["expected"] / interval),
        normal_dps_min=round_half_up(normal["expected_min"] / interval),
        normal_dps_max=round_half_up(normal["expected_max"] / interval),
        skill_base_damage=skill_base_damage,
        skill_damage=skill["damage"],
        skill_damage_min=skill["damage_min"],
        skill_damage_max=skill["damage_max"],
        skill_damage_crit=skill["crit"],
        skill_damage_crit_min=skill["crit_min"],
        skill_damage_crit_max=skill["crit_max"],
        skill_damage_expected=skill["expected"],
        skill_damage_expected_min=skill["expected_min"],
        skill_damage_expected_max=skill["expected_max"],
        skill_damage_capped=skill["capped"],
        breakdown=DamageBreakdown(
            effective_atk=effective_atk,
            skill_base_damage=skill_base_damage,
            attack_interval=interval,
            exceed_mult=exceed[0],
            dmg_mult=dmg_mult,
            normal_dmg_mult=normal_dmg_mult,
            skill_dmg_mult=skill_dmg_mult,
            defense_mult=defense_mult,
            shield_mult=shield_mult,
            race_mult=race_mult,
            world_boss_mult=world_boss_mult,
            effective_crit_rate=crit_rate,
            effective_crit_dmg=crit_dmg,
            expected_crit_mult=expected_crit_mult,
            normal_base_raw=normal["raw"],
            skill_base_raw=skill["raw"],
        ),
    )


def calculate_phase4_final_damage(
    phase1_results: list[Phase1Result],
    phase3_results: list[Phase3Result],
    enemy: EnemyState,
    members: list[TeamMemberState],
    skill_debuff_total: float = 0.0,
    shield_debuff_total: float = 0.0,
    defense_debuff_total: float = 0.0,
    race_bonus: float = 0.0,
) -> list[Phase4Result]:
    """
    Final stats for every slot and damage for main team slots.

    Args:
        phase1_results: Base stats from Phase 1.
        phase3_results: Bonuses from Phase 3 (skill buffs folded in).
        enemy: Enemy state.
        members: All team slots.
        skill_debuff_total: Damage taken debuffs from active skills.
        shield_debuff_total: Shield debuffs from abilities.
        defense_debuff_total: Defense debuffs from abilities.
        race_bonus: Team race bonus.

    Returns:
        One Phase4Result per slot. Reserve and empty slots have no damage.
    """
    shield = effective_shield(
        enemy.base_shield, shield_debuff_total + skill_debuff_total, enemy.ignore_shield_cap
    )
    defense = effective_defense(enemy.base_defense, defense_debuff_total)

    results = []
    for index, member in enumerate(members):
        if member.card is None:
            results.append(Phase4Result(member_index=index))
            continue

        phase3 = phase3_results[index]
        computed = calculate_member_stats(member, phase1_results[index], phase3)

        damage = None
        if index < MAIN_TEAM_SIZE:
            damage = calculate_member_damage(member, computed, enemy, shield, defense, race_bonus)

        results.append(
            Phase4Result(
                member_index=index,
                computed_stats=computed,
                damage_result=damage,
                ability_contributions=phase3.ability_contributions,
            )
        )

    return results
