"""
Pydantic v2 data models — the contract for all turn state.

Everything a node reads or writes passes through these models first.
If validation fails, nothing reaches the stores.
"""

from models.mechanics import MomentumState, MomentumShift
from models.characters import Character, Skill, Inventory, InventoryItem
from models.chronicle import (
    Chronicle,
    ChronicleBeat,
    ChronicleState,
    LocationSummary,
    TranscriptEntry,
)
from models.intent import BeatDirective, Intent, SafetyAssessment
from models.skill_check import SkillCheckPlan, SkillCheckRequest, SkillCheckResult
from models.world_delta import (
    CharacterProgress,
    CharacterSkillProgress,
    InventoryStoreDelta,
    InventoryStoreOp,
    LocationPlan,
    LocationPlanOp,
)
from models.context import GraphContext, GmTrace

__all__ = [
    "MomentumState",
    "MomentumShift",
    "Character",
    "Skill",
    "Inventory",
    "InventoryItem",
    "Chronicle",
    "ChronicleBeat",
    "ChronicleState",
    "LocationSummary",
    "TranscriptEntry",
    "BeatDirective",
    "Intent",
    "SafetyAssessment",
    "SkillCheckPlan",
    "SkillCheckRequest",
    "SkillCheckResult",
    "CharacterProgress",
    "CharacterSkillProgress",
    "InventoryStoreDelta",
    "InventoryStoreOp",
    "LocationPlan",
    "LocationPlanOp",
    "GraphContext",
    "GmTrace",
]
