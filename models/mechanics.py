"""
Mechanics tables — the fixed numbers behind every skill check.

Risk thresholds, outcome-tier bands, momentum deltas and the two five-step
tier scales (skills and attributes). Nothing here is computed per turn.
"""

from typing import Dict, List, Literal, Tuple, get_args

from pydantic import BaseModel, model_validator


RiskLevel = Literal["controlled", "standard", "risky", "desperate"]
OutcomeTier = Literal["breakthrough", "advance", "stall", "regress", "collapse"]
IntentType = Literal["action", "inquiry", "clarification", "possibility", "planning", "reflection"]
Attribute = Literal["vitality", "finesse", "focus", "resolve", "attunement", "ingenuity", "presence"]
AttributeTier = Literal["rudimentary", "standard", "advanced", "superior", "transcendent"]
SkillTier = Literal["fool", "apprentice", "artisan", "virtuoso", "legend"]

RISK_LEVELS: Tuple[str, ...] = get_args(RiskLevel)
INTENT_TYPES: Tuple[str, ...] = get_args(IntentType)
ATTRIBUTES: Tuple[str, ...] = get_args(Attribute)
SKILL_TIER_SEQUENCE: Tuple[str, ...] = get_args(SkillTier)

MOMENTUM_FLOOR = -2
MOMENTUM_CEILING = 3

RISK_LEVEL_MAP: Dict[str, int] = {
    "controlled": 7,
    "standard": 8,
    "risky": 9,
    "desperate": 10,
}

# Scanned top-down; the first threshold the margin meets wins.
# Anything below the last row is a collapse. Margin 1 is an advance here;
# older tables let it fall through to stall.
TIER_THRESHOLDS: List[Tuple[int, str]] = [
    (2, "breakthrough"),
    (1, "advance"),
    (-1, "stall"),
    (-3, "regress"),
]
FLOOR_TIER = "collapse"

MOMENTUM_DELTA: Dict[str, int] = {
    "breakthrough": 2,
    "advance": 1,
    "stall": 0,
    "regress": -1,
    "collapse": -2,
}

# Failure teaches more than routine success.
XP_REWARDS: Dict[str, int] = {
    "collapse": 2,
    "regress": 1,
}

SKILL_TIER_MODIFIER: Dict[str, int] = {
    "fool": -2,
    "apprentice": 0,
    "artisan": 1,
    "virtuoso": 2,
    "legend": 4,
}

ATTRIBUTE_TIER_MODIFIER: Dict[str, int] = {
    "rudimentary": -2,
    "standard": 0,
    "advanced": 1,
    "superior": 2,
    "transcendent": 4,
}


def clamp(value: int, floor: int, ceiling: int) -> int:
    return max(floor, min(ceiling, value))


class MomentumShift(BaseModel):
    """Outcome of one momentum adjustment."""

    before: int
    after: int
    delta: int
    clamped: bool


class MomentumState(BaseModel):
    """Bounded per-character momentum. `current` never leaves [floor, ceiling]."""

    current: int = 0
    floor: int = MOMENTUM_FLOOR
    ceiling: int = MOMENTUM_CEILING

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_bounds(self):
        if self.floor > self.ceiling:
            raise ValueError("momentum floor exceeds ceiling")
        if not self.floor <= self.current <= self.ceiling:
            raise ValueError(
                f"momentum {self.current} outside [{self.floor}, {self.ceiling}]"
            )
        return self

    def apply_delta(self, delta: int) -> Tuple["MomentumState", MomentumShift]:
        """Return the clamped next state and a description of the shift."""
        unclamped = self.current + delta
        after = clamp(unclamped, self.floor, self.ceiling)
        shift = MomentumShift(
            before=self.current,
            after=after,
            delta=after - self.current,
            clamped=after != unclamped,
        )
        return self.model_copy(update={"current": after}), shift


def outcome_tier_for_margin(margin: int) -> str:
    """Map a dice margin onto its outcome tier."""
    for threshold, tier in TIER_THRESHOLDS:
        if margin >= threshold:
            return tier
    return FLOOR_TIER


def momentum_delta_for(tier: str) -> int:
    return MOMENTUM_DELTA.get(tier, 0)


def xp_award_for(tier: str) -> int:
    return XP_REWARDS.get(tier, 0)
