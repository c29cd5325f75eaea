"""
Game constants for the team damage calculator.

Values were recovered from the game client (damage caps, stat caps, attack
interval timing, limit break exceed rolls, race bonus offsets). Keep them in
one place so the formulas in stats/damage/abilities read like the game does.
"""

# =============================================================================
# TEAM LAYOUT
# =============================================================================

MAIN_TEAM_SIZE = 5
RESERVE_SIZE = 2
TOTAL_SLOTS = MAIN_TEAM_SIZE + RESERVE_SIZE
LEADER_SLOT = 0

# =============================================================================
# CARD TYPES
# =============================================================================

HEALER_TYPE = 3
ASSIST_TYPE = 4
ASSIST_TYPE_NAME = "Assist"

# =============================================================================
# DAMAGE & STAT CAPS
# =============================================================================

NORMAL_DAMAGE_CAP = 99_999
SKILL_DAMAGE_CAP = 999_999

CRIT_RATE_CAP = 1.0
SHIELD_MAX = 0.85  # 85% damage reduction
SHIELD_MIN = -0.75  # enemies take 175% damage at most
SPEED_BUFF_CAP = 1.0  # halved when applied (50% faster)
SPEED_DEBUFF_CAP = -1.0  # 2x slower

BASE_CRIT_MULT = 2.0

# =============================================================================
# LEVELS & STAT SCALING
# =============================================================================

LEVELS_PER_LB = 5
MAX_LB = 5
CRIT_SCALE = 10_000  # raw crit 750 -> 7.5%
INTERNAL_ATK_SCALE = 10  # displayed ATK / 10

# interval = (speed_stat + 750) / 900
ATTACK_INTERVAL_OFFSET = 750
ATTACK_INTERVAL_DIVISOR = 900
MIN_ATTACK_INTERVAL = 0.5

# =============================================================================
# LIMIT BREAK EXCEED
# =============================================================================

# In game: Random(0, 5% x LB). The calculator uses the average roll and keeps
# the bounds for min/max figures.
LB_EXCEED_STEP = 0.05

LB_EXCEED_AVERAGE: dict[int, float] = {
    lb: 1.0 + LB_EXCEED_STEP * lb / 2 for lb in range(MAX_LB + 1)
}
LB_EXCEED_MIN: dict[int, float] = {lb: 1.0 for lb in range(MAX_LB + 1)}
LB_EXCEED_MAX: dict[int, float] = {
    lb: 1.0 + LB_EXCEED_STEP * lb for lb in range(MAX_LB + 1)
}

# =============================================================================
# RACE BONUS
# =============================================================================

RACE_LEADER_BONUS = 0.10
RACE_MEMBER_BONUS = 0.05
RACE_ASSIST_BONUS = 0.05
RACE_BONUS_MAX = 0.45

# =============================================================================
# SKILLS
# =============================================================================

AOE_TARGET_COUNT = 99  # sentinel for "all allies"
AOE_THRESHOLD = 5
ON_SKILL_TAG = "On Skill"
