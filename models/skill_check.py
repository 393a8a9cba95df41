"""
Skill-check schemas — plan, request and result.

Plan (advisory) binds to a Request (character + risk level), which resolves
to a Result. All three live for one turn only.
"""

import time
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from models.characters import Character
from models.mechanics import RISK_LEVEL_MAP, OutcomeTier, RiskLevel


def _now_ms() -> int:
    return int(time.time() * 1000)


class SkillCheckPlan(BaseModel):
    """Mechanical plan for a check, produced ahead of narration."""

    move: str
    move_tags: List[str] = []
    ability: str
    skill: Optional[str] = None
    risk_level: RiskLevel = "standard"
    advantage: Literal["advantage", "disadvantage", "none"] = "none"
    bonus_dice: int = Field(default=0, ge=0)
    rationale: str
    complication_seeds: List[str] = []
    audit_ref: str = ""
    prompt_hash: str = ""
    expires_at: str = ""
    tags: List[str] = []
    notes: List[str] = []
    created_at: int = Field(default_factory=_now_ms)

    @property
    def difficulty_value(self) -> int:
        return RISK_LEVEL_MAP[self.risk_level]


class SkillCheckRequest(BaseModel):
    """A plan bound to a character snapshot, ready to resolve."""

    check_id: str = Field(min_length=1)
    chronicle_id: str = ""
    attribute: Optional[str] = None
    skill: Optional[str] = None
    risk_level: RiskLevel
    character: Character
    flags: List[str] = []
    bonus_dice: int = Field(default=0, ge=0)


class SkillCheckResult(BaseModel):
    """Resolved check. Round-trips through model_dump / model_validate."""

    check_id: str
    chronicle_id: str = ""
    advantage: bool
    disadvantage: bool
    die_sum: int
    margin: int
    outcome_tier: OutcomeTier
    new_momentum: int
    total_modifier: int
    rolls: List[int] = []
    detail: str = ""
    tags: List[str] = []
    timestamp: int = Field(default_factory=_now_ms)
