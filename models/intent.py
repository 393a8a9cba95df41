"""
Intent schemas — the classified purpose of a player message.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator

from models.mechanics import ATTRIBUTES, IntentType


class BeatDirective(BaseModel):
    """Whether the turn advances an open beat, starts a new one, or stands alone."""

    kind: Literal["existing", "new", "independent"] = "independent"
    summary: Optional[str] = None
    target_beat_id: Optional[str] = None


class Intent(BaseModel):
    """Schema for a classified player intent."""

    intent_type: IntentType = "action"
    requires_check: bool = False
    skill: Optional[str] = None
    attribute: Optional[str] = None
    beat_directive: BeatDirective = Field(default_factory=BeatDirective)
    creative_spark: bool = False
    intent_summary: str = ""
    tone: str = "narrative"
    handler_hints: List[str] = []
    router_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    model_config = {"extra": "allow"}

    @field_validator("attribute")
    @classmethod
    def validate_attribute(cls, v):
        if v is None:
            return None
        normalized = v.strip().lower()
        return normalized if normalized in ATTRIBUTES else None


class SafetyAssessment(BaseModel):
    """Result of screening the player message before any mechanics run."""

    escalate: bool = False
    flags: List[str] = []
