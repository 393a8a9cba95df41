"""
GraphContext — the per-turn working state every pipeline node consumes.

One context enters a node and a new one comes out. The model is frozen;
nodes derive the next context with `model_copy(update=...)` and never
mutate the one they were given.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from models.characters import Character
from models.chronicle import ChronicleBeat, ChronicleState, LocationSummary, TranscriptEntry
from models.intent import Intent, SafetyAssessment
from models.skill_check import SkillCheckPlan, SkillCheckResult
from models.world_delta import InventoryStoreDelta, LocationPlan


class GmTrace(BaseModel):
    """Which handler narrated, and the request id it used."""

    node_id: str
    request_id: str


class GraphContext(BaseModel):
    """State flowing through the turn pipeline.

    Collaborators (model client, telemetry sink, stores) ride along as opaque
    handles so nodes stay free of global state.
    """

    chronicle_id: str = Field(min_length=1)
    turn_sequence: int = Field(ge=0)
    player_message: TranscriptEntry
    chronicle: ChronicleState

    # classification
    player_intent: Optional[Intent] = None
    resolved_intent_type: Optional[str] = None
    safety: SafetyAssessment = Field(default_factory=SafetyAssessment)

    # mechanics
    skill_check_plan: Optional[SkillCheckPlan] = None
    skill_check_result: Optional[SkillCheckResult] = None

    # narration
    gm_message: Optional[TranscriptEntry] = None
    gm_trace: Optional[GmTrace] = None
    handler_id: Optional[str] = None
    gm_summary: Optional[str] = None
    chronicle_should_close: bool = False
    updated_beats: Optional[List[ChronicleBeat]] = None
    system_message: Optional[TranscriptEntry] = None

    # world deltas
    inventory_store_delta: Optional[InventoryStoreDelta] = None
    inventory_registry: Optional[Dict[str, Any]] = None
    location_plan: Optional[LocationPlan] = None
    location_summary: Optional[LocationSummary] = None
    updated_character: Optional[Character] = None
    world_delta_tags: List[str] = []

    advances_timeline: bool = False
    failure: bool = False

    # injected collaborators
    llm: Any = None
    telemetry: Any = None
    world_state_store: Any = None
    location_graph_store: Any = None

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def character(self) -> Optional[Character]:
        return self.chronicle.character

    @property
    def player_text(self) -> str:
        return self.player_message.content or ""

    def intent_type(self) -> str:
        """Explicit override, else the intent's own type, else `action`."""
        if self.resolved_intent_type:
            return self.resolved_intent_type
        if self.player_intent is not None and self.player_intent.intent_type:
            return self.player_intent.intent_type
        return "action"

    def fail(self) -> "GraphContext":
        return self.model_copy(update={"failure": True})

    def with_character(self, character: Character) -> "GraphContext":
        chronicle = self.chronicle.model_copy(update={"character": character})
        return self.model_copy(update={"chronicle": chronicle, "updated_character": character})

    def merged_world_delta_tags(self, tag: Optional[str]) -> List[str]:
        """Existing tags plus `tag`, de-duplicated, first occurrence wins."""
        tags = list(self.world_delta_tags)
        if tag and tag not in tags:
            tags.append(tag)
        return tags
