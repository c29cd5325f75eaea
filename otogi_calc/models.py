"""
Pydantic models for the team damage calculator.

Card, skill and ability records come from the upstream card data export and
are treated as read-only. Team/enemy models are the calculator's inputs;
phase result models are what each calculation phase hands to the next.
"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from .constants import ASSIST_TYPE, ASSIST_TYPE_NAME, BASE_CRIT_MULT, HEALER_TYPE

# =============================================================================
# ENUMS
# =============================================================================


class Attribute(str, Enum):
    """Card attributes (race)."""

    DIVINA = "Divina"
    PHANTASMA = "Phantasma"
    ANIMA = "Anima"
    NEUTRAL = "Neutral"


class EnemyAttribute(str, Enum):
    """Enemy attribute for the race bonus. NONE disables the bonus."""

    NONE = "None"
    DIVINA = "Divina"
    PHANTASMA = "Phantasma"
    ANIMA = "Anima"


class BondSlotType(str, Enum):
    """Single bond slot choice."""

    NONE = "none"
    ATK5 = "atk5"
    ATK7 = "atk7"
    SKILL5 = "skill5"
    SKILL7 = "skill7"


class BondType(str, Enum):
    """Legacy single bond type (older saved builds)."""

    NONE = "none"
    ATK15 = "atk15"
    SKILL15 = "skill15"
    ATK10 = "atk10"
    SKILL10 = "skill10"
    ATK7 = "atk7"
    SKILL7 = "skill7"
    ATK5 = "atk5"
    SKILL5 = "skill5"
    SPLIT5 = "split5"
    SPLIT7 = "split7"


class BondMode(str, Enum):
    """Which bond fields of a member are used."""

    SLOTS = "slots"  # bond1..bond3
    LEGACY = "legacy"  # bond_type


class RandomTargetMode(str, Enum):
    """How to resolve "N random allies" abilities deterministically."""

    BEST = "best"  # top N by ATK
    WORST = "worst"  # bottom N by ATK
    FIRST = "first"  # first N by slot order
    LAST = "last"  # last N by slot order
    AVERAGE = "average"  # all eligible, effect scaled by N / eligible


class AbilityTiming(str, Enum):
    """When an ability takes effect."""

    PASSIVE = "passive"
    WAVE_START = "wave_start"
    FINAL_WAVE = "final_wave"


class EffectStat(str, Enum):
    """Stats an ability or skill can modify."""

    DMG = "dmg"
    SKILL_DMG = "skill_dmg"
    CRIT_RATE = "crit_rate"
    CRIT_DMG = "crit_dmg"
    SPEED = "speed"
    LEVEL = "level"
    HP = "hp"
    NORMAL_DMG = "normal_dmg"
    SHIELD = "shield"  # enemy shield (debuff)
    DEFENSE = "defense"  # enemy defense (debuff)


class RankSortKey(str, Enum):
    """Stat used by ranked ("top N") targeting."""

    ATK = "atk"
    SPEED = "speed"
    HP = "hp"


class AbilityDataSource(str, Enum):
    """Where a ParsedAbility's data came from."""

    STRUCTURED = "structured"  # upstream parsed data, full effects
    TAG_FALLBACK = "tag_fallback"  # tags only, no effects


class SkillTargetType(str, Enum):
    """Who an active skill affects."""

    ALLY = "ally"
    ENEMY = "enemy"
    SELF = "self"


class SkillTargetPriority(str, Enum):
    """Which targets a multi-target skill prefers."""

    HIGHEST_ATK = "highest_atk"
    LOWEST_HP = "lowest_hp"
    CURRENT = "current"
    ALL = "all"


# =============================================================================
# CARD DATA (upstream, read-only)
# =============================================================================


class ParsedTarget(BaseModel):
    """Structured target from the card data pipeline."""

    type: str = "self"  # self, team, attribute, ranked, enemy, current_target, ...
    count: int | None = 0
    filter: str | None = None  # e.g. "type<1>", "max_atk"


class ParsedEffect(BaseModel):
    """Structured effect. Values are on a 0-100 scale except LEVEL."""

    type: str  # ATK, SKILL_ATK, CHIT, CHIT_ATK, SPD, SHIELD, DEFENSE, LEVEL, HP, NORM_ATK
    value: float = 0.0
    scale: float = 0.0  # per skill level, skills only
    duration: float | None = None


class ParsedConditions(BaseModel):
    """Activation conditions."""

    mns_ids: list[str] = Field(default_factory=list)  # synergy partner card ids


class AbilityParsedData(BaseModel):
    """Structured ability data."""

    target: ParsedTarget | None = None
    trigger: str | None = None  # entry, entry_wave, last_wave, entry_leader, ...
    effects: list[ParsedEffect] = Field(default_factory=list)
    conditions: ParsedConditions | None = None


class Ability(BaseModel):
    """Card ability as exported upstream."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    name: str = ""
    description: str = ""
    unlock_level: int | None = None
    tags: list[str] = Field(default_factory=list)
    stackable: bool = True
    synergy_partners: list[str] = Field(default_factory=list)
    parsed: AbilityParsedData | None = None


class SkillImmediate(BaseModel):
    """Immediate skill action."""

    type: str | None = None  # ATK, HEAL, HEAL_DOT, ...


class SkillParsedData(BaseModel):
    """Structured skill data with damage scaling."""

    target: ParsedTarget | None = None
    immediate: SkillImmediate | None = None
    slv1: float = 0.0  # value at skill level 1
    slvup: float = 0.0  # increase per skill level
    effects: list[ParsedEffect] = Field(default_factory=list)


class Skill(BaseModel):
    """Card active skill."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str = ""
    name: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    parsed: SkillParsedData | None = None

    @property
    def is_attack(self) -> bool:
        """True if the skill deals damage."""
        return bool(self.parsed and self.parsed.immediate and self.parsed.immediate.type == "ATK")


class Bond(BaseModel):
    """Bond granted by a card."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str = ""
    target_id: str = ""
    type: str = ""  # Attack, Skill, HP, ...
    effect: str = ""
    bonus_percent: float = 0.0
    name: str = ""


class CardStats(BaseModel):
    """Card stats at level 1 and max level."""

    attribute: int = 0
    attribute_name: str = ""  # Divina, Phantasma, Anima, Neutral or Unknown(N)
    type: int = 0
    type_name: str = ""  # Melee, Ranged, Healer, Assist
    rarity: int = 0
    cost: int = 0
    max_level: int = 1
    speed: int = 0  # higher = slower attacks
    base_atk: float = 0.0
    max_atk: float = 0.0
    base_hp: float = 0.0
    max_hp: float = 0.0
    crit: int = 0  # fixed point, 10000 = 100%


class Card(BaseModel):
    """
    Card definition from the upstream card export.

    Immutable for the duration of a calculation.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    asset_id: str | None = None
    name: str | None = None
    description: str | None = None
    stats: CardStats = Field(default_factory=CardStats)
    skill: Skill | None = None
    abilities: list[Ability] = Field(default_factory=list)
    bonds: list[Bond] = Field(default_factory=list)

    @property
    def attribute(self) -> Attribute | None:
        """Card attribute, or None for unknown values."""
        try:
            return Attribute(self.stats.attribute_name)
        except ValueError:
            return None

    @property
    def is_assist(self) -> bool:
        return self.stats.type == ASSIST_TYPE or self.stats.type_name == ASSIST_TYPE_NAME

    @property
    def is_healer(self) -> bool:
        return self.stats.type == HEALER_TYPE

    def get_metadata(self) -> dict:
        """Short summary for listings."""
        return {
            "id": self.id,
            "name": self.name,
            "attribute": self.stats.attribute_name,
            "type": self.stats.type_name,
            "rarity": self.stats.rarity,
            "max_level": self.stats.max_level,
            "max_atk": self.stats.max_atk,
            "abilities": len(self.abilities),
            "has_skill": self.skill is not None,
        }


# =============================================================================
# TEAM & ENEMY INPUT
# =============================================================================


class SkillBuff(BaseModel):
    """What an active skill does to its targets. All values are decimals."""

    dmg_bonus: float = 0.0  # targets deal +X% DMG
    dmg_reduction: float = 0.0  # targets take -X% DMG
    dmg_taken_debuff: float = 0.0  # enemies take +X% DMG (shield debuff)
    dmg_dealt_debuff: float = 0.0  # enemies deal -X% DMG
    crit_rate_bonus: float = 0.0
    crit_dmg_bonus: float = 0.0
    speed_bonus: float = 0.0
    speed_debuff: float = 0.0  # enemies attack slower

    def has_effect(self) -> bool:
        return any(value != 0 for value in self.model_dump().values())


class ParsedSkillEffect(BaseModel):
    """Normalized active skill effect."""

    target_type: SkillTargetType = SkillTargetType.ALLY
    target_count: int = 1  # 1 = single, 2-4 = multi, >= 5 or 99 = all
    target_priority: SkillTargetPriority | None = None
    buffs: SkillBuff = Field(default_factory=SkillBuff)
    duration: float | None = None  # seconds


class TeamMemberState(BaseModel):
    """
    One of the 7 team slots (0-4 main team, 5-6 reserve).

    Read-only input to a calculation.
    """

    card: Card | None = None
    assist_card: Card | None = None

    # Build choices
    limit_break: int = Field(default=0, ge=0, le=5)
    level_bonus: int = Field(default=0, ge=0)
    bond_mode: BondMode = BondMode.SLOTS
    bond1: BondSlotType = BondSlotType.NONE
    bond2: BondSlotType = BondSlotType.NONE
    bond3: BondSlotType = BondSlotType.NONE  # locked to NONE when an assist is set
    bond_type: BondType = BondType.NONE  # used in LEGACY mode

    # Active skill
    skill_active: bool = False
    skill_effect: ParsedSkillEffect | None = None

    @property
    def card_id(self) -> str | None:
        return self.card.id if self.card else None

    @property
    def assist_card_id(self) -> str | None:
        return self.assist_card.id if self.assist_card else None


class EnemyState(BaseModel):
    """Enemy profile the team is attacking."""

    base_shield: float = 0.0  # -0.75 to 0.85, negative = vulnerability
    base_defense: float = 0.0  # 0 to 0.85, multiplicative with shield
    is_final_wave: bool = False
    wave_count: int = Field(default=1, ge=0)  # wave start abilities stack per wave
    attribute: EnemyAttribute = EnemyAttribute.NONE
    ignore_shield_cap: bool = False  # world boss: no -75% floor
    world_boss_bonus: float = 1.0
    healers_dont_attack: bool = False


# =============================================================================
# ABILITY PARSING
# =============================================================================


class AbilityEffect(BaseModel):
    """Single normalized effect. Values are decimals (0.15 = 15%), LEVEL is flat."""

    stat: EffectStat
    value: float
    is_debuff: bool = False


class SelfTarget(BaseModel):
    """The ability's own slot."""

    kind: Literal["self"] = "self"


class TeamTarget(BaseModel):
    """Every main team slot with a card."""

    kind: Literal["team"] = "team"


class AttributeTarget(BaseModel):
    """Main team slots of one attribute, optionally limited to N."""

    kind: Literal["attribute"] = "attribute"
    attribute: Attribute | None = None
    count: int | None = None


class RankedTarget(BaseModel):
    """Top N main team slots by a stat."""

    kind: Literal["ranked"] = "ranked"
    count: int | None = None
    sort_by: RankSortKey | None = None


class EnemyTarget(BaseModel):
    """Enemy or current target. Only shield/defense debuffs survive parsing."""

    kind: Literal["enemy"] = "enemy"


AbilityTarget = Annotated[
    SelfTarget | TeamTarget | AttributeTarget | RankedTarget | EnemyTarget,
    Field(discriminator="kind"),
]


class ParsedAbility(BaseModel):
    """Normalized ability ready for targeting and application."""

    id: str
    name: str = ""
    description: str = ""
    unlock_level: int = 1
    source_card_id: str
    is_from_assist: bool = False

    target: AbilityTarget = Field(default_factory=SelfTarget)
    effects: list[AbilityEffect] = Field(default_factory=list)

    synergy_partners: list[str] = Field(default_factory=list)
    requires_leader: bool = False
    timing: AbilityTiming = AbilityTiming.PASSIVE
    stackable: bool = True
    data_source: AbilityDataSource = AbilityDataSource.STRUCTURED


class ResolvedTargets(BaseModel):
    """Slots an ability affects and the scale applied to its effects."""

    indices: list[int] = Field(default_factory=list)
    scale_factor: float = 1.0  # < 1.0 only in average mode


# =============================================================================
# PHASE 1 & 2
# =============================================================================


class Phase1Result(BaseModel):
    """Base stats of one slot."""

    member_index: int
    has_card: bool = False
    effective_level: int = 0
    base_atk: float = 0.0  # at effective level
    base_crit_rate: float = 0.0
    base_speed: int = 0
    base_hp: float = 0.0

    # Bond contributions (totals include the assist's bonds)
    atk_bond_bonus: float = 0.0
    skill_bond_bonus: float = 0.0
    assist_atk_bond_bonus: float = 0.0
    assist_skill_bond_bonus: float = 0.0

    @property
    def bond_adjusted_atk(self) -> float:
        return self.base_atk * (1 + self.atk_bond_bonus)


class AttributeCounts(BaseModel):
    """Units per attribute across all 7 slots."""

    divina: int = 0
    phantasma: int = 0
    anima: int = 0


class TeamContext(BaseModel):
    """Cross-member snapshot used by ability targeting."""

    # Main team (0-4) slot indices, descending
    by_atk: list[int] = Field(default_factory=list)  # bond-adjusted ATK
    by_speed: list[int] = Field(default_factory=list)  # raw speed stat
    by_hp: list[int] = Field(default_factory=list)

    all_by_atk: list[int] = Field(default_factory=list)  # slots 0-6

    attribute_counts: AttributeCounts = Field(default_factory=AttributeCounts)

    present_card_ids: set[str] = Field(default_factory=set)
    present_assist_ids: set[str] = Field(default_factory=set)

    leader_card_id: str | None = None

    def has_partner(self, partner_ids: list[str]) -> bool:
        """True if any of the ids is present as a card or an assist."""
        return any(
            pid in self.present_card_ids or pid in self.present_assist_ids
            for pid in partner_ids
        )


# =============================================================================
# PHASE 3
# =============================================================================


class EffectValue(BaseModel):
    """Applied effect value (after wave and scale multipliers)."""

    stat: EffectStat
    value: float


class AbilityContribution(BaseModel):
    """Source tracking for a bonus that landed on a slot."""

    ability_id: str
    ability_name: str
    source_card_id: str
    source_member_index: int
    is_from_assist: bool = False
    effects: list[EffectValue] = Field(default_factory=list)


class Phase3Result(BaseModel):
    """Accumulated ability bonuses of one slot. All additive."""

    member_index: int

    dmg_bonus: float = 0.0
    crit_rate_bonus: float = 0.0
    crit_dmg_bonus: float = 0.0
    skill_dmg_bonus: float = 0.0
    speed_bonus: float = 0.0
    level_bonus: float = 0.0
    hp_bonus: float = 0.0  # display only
    normal_dmg_bonus: float = 0.0

    # Team-wide enemy debuffs, only slot 0 accumulates these
    enemy_shield_debuff: float = 0.0
    enemy_defense_debuff: float = 0.0

    ability_contributions: list[AbilityContribution] = Field(default_factory=list)
    enemy_debuff_contributions: list[AbilityContribution] = Field(default_factory=list)


class AbilityLedger(BaseModel):
    """
    Per-calculation record of what has already been applied.

    Created fresh by every Phase 3 run and returned with its results.
    """

    applied_non_stackable: set[str] = Field(default_factory=set)
    applied_enemy_debuffs: set[str] = Field(default_factory=set)

    def claim_non_stackable(self, ability_id: str) -> bool:
        """Record a non-stackable ability. False if it was already applied."""
        if ability_id in self.applied_non_stackable:
            return False
        self.applied_non_stackable.add(ability_id)
        return True

    def claim_enemy_debuff(self, ability_id: str, stat: EffectStat) -> bool:
        """Record an enemy debuff of an ability. False if it was already applied."""
        key = f"{ability_id}-{stat.value}"
        if key in self.applied_enemy_debuffs:
            return False
        self.applied_enemy_debuffs.add(key)
        return True


# =============================================================================
# PHASE 4
# =============================================================================


class StatSource(BaseModel):
    """Where a stat's value comes from."""

    base: float = 0.0
    bond: float = 0.0
    assist: float = 0.0
    abilities: float = 0.0
    total: float = 0.0


class LevelBreakdown(BaseModel):
    base: float = 0.0
    limit_break: float = 0.0
    bonus: float = 0.0
    abilities: float = 0.0
    total: float = 0.0


class DmgBreakdown(BaseModel):
    abilities: float = 0.0
    total: float = 0.0


class SkillDmgBreakdown(BaseModel):
    bond: float = 0.0
    assist: float = 0.0
    abilities: float = 0.0
    total: float = 0.0


class StatBreakdown(BaseModel):
    """Per-stat source breakdown for display."""

    level: LevelBreakdown = Field(default_factory=LevelBreakdown)
    atk: StatSource = Field(default_factory=StatSource)
    crit_rate: StatSource = Field(default_factory=StatSource)
    crit_dmg: StatSource = Field(default_factory=StatSource)
    dmg: DmgBreakdown = Field(default_factory=DmgBreakdown)
    normal_dmg: DmgBreakdown = Field(default_factory=DmgBreakdown)
    skill_dmg: SkillDmgBreakdown = Field(default_factory=SkillDmgBreakdown)
    speed: StatSource = Field(default_factory=StatSource)


class ComputedMemberStats(BaseModel):
    """Final stats of one slot."""

    effective_level: float = 0.0
    display_atk: float = 0.0
    effective_speed: int = 0  # raw speed stat
    effective_crit_rate: float = 0.0  # capped at 100%
    effective_crit_dmg: float = BASE_CRIT_MULT  # 2.0 + bonuses
    dmg_bonus: float = 0.0
    skill_dmg_bonus: float = 0.0
    normal_dmg_bonus: float = 0.0
    hp_bonus: float = 0.0
    attack_interval: float = 0.0  # seconds between attacks

    breakdown: StatBreakdown = Field(default_factory=StatBreakdown)


class DamageBreakdown(BaseModel):
    """Every multiplier of the damage chain, for debugging."""

    effective_atk: float
    skill_base_damage: float
    attack_interval: float
    exceed_mult: float
    dmg_mult: float
    normal_dmg_mult: float
    skill_dmg_mult: float
    defense_mult: float
    shield_mult: float
    race_mult: float
    world_boss_mult: float
    effective_crit_rate: float
    effective_crit_dmg: float
    expected_crit_mult: float
    normal_base_raw: float
    skill_base_raw: float


class MemberDamageResult(BaseModel):
    """Damage figures of one main team member."""

    normal_damage: int = 0
    normal_damage_min: int = 0  # no exceed bonus
    normal_damage_max: int = 0  # full exceed bonus
    normal_damage_crit: int = 0
    normal_damage_crit_min: int = 0
    normal_damage_crit_max: int = 0
    normal_damage_expected: int = 0
    normal_damage_expected_min: int = 0
    normal_damage_expected_max: int = 0
    normal_damage_capped: bool = False
    normal_dps: int = 0
    normal_dps_min: int = 0
    normal_dps_max: int = 0

    skill_base_damage: float = 0.0  # before modifiers
    skill_damage: int = 0
    skill_damage_min: int = 0
    skill_damage_max: int = 0
    skill_damage_crit: int = 0
    skill_damage_crit_min: int = 0
    skill_damage_crit_max: int = 0
    skill_damage_expected: int = 0
    skill_damage_expected_min: int = 0
    skill_damage_expected_max: int = 0
    skill_damage_capped: bool = False

    breakdown: DamageBreakdown | None = None


class Phase4Result(BaseModel):
    """Final result of one slot."""

    member_index: int
    computed_stats: ComputedMemberStats = Field(default_factory=ComputedMemberStats)
    damage_result: MemberDamageResult | None = None  # None for reserve and empty slots
    ability_contributions: list[AbilityContribution] = Field(default_factory=list)


class TeamCalculationResult(BaseModel):
    """Complete output of a team calculation."""

    members: list[Phase4Result]
    team_context: TeamContext

    # Enemy state with team debuffs applied
    effective_enemy_shield: float = 0.0
    effective_enemy_defense: float = 0.0

    skill_debuff_total: float = 0.0  # active skill dmg taken debuffs
    ability_debuff_total: float = 0.0  # ability shield debuffs
    defense_debuff_total: float = 0.0  # ability defense debuffs
    enemy_debuff_contributions: list[AbilityContribution] = Field(default_factory=list)

    race_bonus: float = 0.0

    # Main team only
    total_normal_dps_expected: int = 0
    total_skill_damage_expected: int = 0


# =============================================================================
# FIGHT SIMULATION
# =============================================================================


class FightSnapshotMember(BaseModel):
    """Damage values of one member captured in a snapshot."""

    member_index: int
    card_name: str | None = None
    dps: int = 0
    dps_min: int = 0
    dps_max: int = 0
    has_damage_skill: bool = False
    skill_damage: int = 0  # expected per cast
    skill_damage_min: int = 0
    skill_damage_max: int = 0
    skill_casts: int = Field(default=0, ge=0)


class FightSnapshot(BaseModel):
    """Team damage output at one configuration, used as a fight phase."""

    id: str
    name: str
    members: list[FightSnapshotMember] = Field(default_factory=list)
    total_dps: int = 0
    total_dps_min: int = 0
    total_dps_max: int = 0
    duration_seconds: float = Field(default=60.0, ge=0)  # ignored for base snapshots
    is_base: bool = False  # fills the remaining fight time


class SnapshotDamage(BaseModel):
    """Damage dealt during one snapshot's phase."""

    snapshot_id: str
    duration: float
    dps_damage: float = 0.0
    dps_damage_min: float = 0.0
    dps_damage_max: float = 0.0
    skill_damage: float = 0.0
    skill_damage_min: float = 0.0
    skill_damage_max: float = 0.0
    total_damage: float = 0.0
    total_damage_min: float = 0.0
    total_damage_max: float = 0.0


class FightCalculationResult(BaseModel):
    """Damage over a whole fight."""

    snapshot_results: list[SnapshotDamage] = Field(default_factory=list)
    total_damage: float = 0.0
    total_damage_min: float = 0.0
    total_damage_max: float = 0.0
    total_duration_used: float = 0.0
    remaining_duration: float = 0.0
    base_duration: float = 0.0


# =============================================================================
# STAT ANALYSIS
# =============================================================================


class StatIncrement(BaseModel):
    """A stat bump to evaluate."""

    stat: EffectStat
    amount: float
    label: str


class StatComparison(BaseModel):
    """Effect of one stat increment on a member."""

    increment: StatIncrement
    new_dps: int
    dps_gain: int
    dps_gain_percent: float
    new_skill_damage: int
    skill_gain: int
    skill_gain_percent: float


class HeatmapCell(BaseModel):
    """One cell of a two-stat heatmap."""

    x: float
    y: float
    dps: int
    skill_damage: int
    capped: bool


# =============================================================================
# TEAM FILES
# =============================================================================


class TeamMemberConfig(BaseModel):
    """Member entry of a team file. Cards are referenced by id."""

    card_id: str | None = None
    assist_card_id: str | None = None
    limit_break: int = Field(default=0, ge=0, le=5)
    level_bonus: int = Field(default=0, ge=0)
    bond_mode: BondMode = BondMode.SLOTS
    bonds: list[BondSlotType] = Field(default_factory=list, max_length=3)
    bond_type: BondType = BondType.NONE
    skill_active: bool = False

    model_config = ConfigDict(coerce_numbers_to_str=True)


class TeamConfig(BaseModel):
    """
    Saved team: up to 7 members, enemy and targeting choices.

    Human-edited YAML, loaded by the DataLoader.
    """

    name: str = "Unnamed team"
    members: list[TeamMemberConfig] = Field(default_factory=list, max_length=7)
    enemy: EnemyState = Field(default_factory=EnemyState)
    ability_target_overrides: dict[str, list[int]] = Field(default_factory=dict)
    random_target_mode: RandomTargetMode = RandomTargetMode.BEST
    notes: str | None = None
