"""
World-delta schemas — pending inventory and location changes.

Produced by the delta nodes, committed by the character-update node.
An empty op list means there is nothing to commit.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class InventoryStoreOp(BaseModel):
    """A single store-level inventory mutation."""

    op: Literal["add", "remove", "equip", "unequip", "consume"]
    item: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    slot: Optional[str] = None


class InventoryStoreDelta(BaseModel):
    ops: List[InventoryStoreOp] = []

    def is_empty(self) -> bool:
        return len(self.ops) == 0


class LocationPlanOp(BaseModel):
    """A single location-graph mutation."""

    op: Literal["move", "create_place", "create_edge"]
    place_id: Optional[str] = None
    name: Optional[str] = None
    link: Optional[Literal["same", "adjacent", "inside", "linked"]] = None
    parent_id: Optional[str] = None


class LocationPlan(BaseModel):
    character_id: str
    ops: List[LocationPlanOp] = []
    notes: Optional[str] = None

    def is_empty(self) -> bool:
        return len(self.ops) == 0


class CharacterSkillProgress(BaseModel):
    attribute: str
    name: str
    xp_award: int = Field(default=0, ge=0)


class CharacterProgress(BaseModel):
    """Payload for WorldStateStore.apply_character_progress."""

    character_id: str
    momentum_delta: Optional[int] = None
    skill: Optional[CharacterSkillProgress] = None
