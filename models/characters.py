"""
Character schemas — the player character snapshot a turn works against.

These models gate every character write the turn hands back to the stores.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from models.mechanics import (
    ATTRIBUTES,
    ATTRIBUTE_TIER_MODIFIER,
    SKILL_TIER_MODIFIER,
    Attribute,
    AttributeTier,
    MomentumState,
    SkillTier,
)


class Skill(BaseModel):
    """A learned skill, tied to the attribute it is usually rolled with."""

    name: str = Field(min_length=1)
    attribute: Attribute
    tier: SkillTier = "apprentice"
    xp: int = Field(default=0, ge=0)

    model_config = {"extra": "allow"}


class InventoryItem(BaseModel):
    """One stack of carried items."""

    name: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=0)
    slot: Optional[str] = None
    tags: List[str] = []

    model_config = {"extra": "allow"}


class Inventory(BaseModel):
    """Carried items plus whatever is equipped, keyed by slot."""

    items: List[InventoryItem] = []
    equipped: Dict[str, str] = {}

    model_config = {"extra": "allow"}


class Character(BaseModel):
    """Schema for the chronicle's player character."""

    id: str = Field(min_length=1)
    name: str
    pronouns: str = ""
    attributes: Dict[str, AttributeTier] = {}
    skills: Dict[str, Skill] = {}
    momentum: MomentumState = Field(default_factory=MomentumState)
    inventory: Inventory = Field(default_factory=Inventory)
    tags: List[str] = []

    model_config = {"extra": "allow"}

    @field_validator("attributes")
    @classmethod
    def known_attributes_only(cls, v):
        # Unknown attribute names are dropped rather than rejected.
        return {name: tier for name, tier in v.items() if name in ATTRIBUTES}

    def skill_modifier(self, skill_name: Optional[str]) -> int:
        """Tier modifier for a skill; skills the character lacks roll as `fool`."""
        skill = self.skills.get(skill_name or "")
        if skill is None:
            return SKILL_TIER_MODIFIER["fool"]
        return SKILL_TIER_MODIFIER[skill.tier]

    def attribute_modifier(self, attribute: Optional[str]) -> int:
        tier = self.attributes.get(attribute or "", "standard")
        return ATTRIBUTE_TIER_MODIFIER[tier]

    def has_skill(self, skill_name: str) -> bool:
        return skill_name in self.skills

