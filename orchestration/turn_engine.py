"""
Turn Engine — runs one player message through the turn pipeline.

Builds the initial GraphContext for a chronicle, runs the compiled graph
and returns a TurnRecord describing everything the turn produced. The
engine never persists anything; the caller owns the stores.

Usage:
    engine = TurnEngine(llm=GeminiModelClient.from_settings(settings))
    record = await engine.handle_player_message(chronicle_state, "I sneak past the guard")
"""

import random
import logging
from typing import Any, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from models.characters import Character
from models.chronicle import ChronicleBeat, ChronicleState, LocationSummary, TranscriptEntry
from models.context import GraphContext
from models.intent import Intent
from models.skill_check import SkillCheckPlan, SkillCheckResult
from models.world_delta import InventoryStoreDelta, LocationPlan
from pipeline.graph import TurnPipeline, build_default_nodes, build_turn_pipeline
from tools.config import EngineSettings
from tools.telemetry import ChronicleTelemetry

logger = logging.getLogger("TurnEngine")

SYSTEM_FAILURE_MESSAGE = "The chronicle engine could not resolve that turn. Please try again."


class TurnRecord(BaseModel):
    """Everything one turn produced, ready for the caller to persist."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    chronicle_id: str
    turn_sequence: int
    player_message: TranscriptEntry
    player_intent: Optional[Intent] = None
    handler_id: Optional[str] = None
    skill_check_plan: Optional[SkillCheckPlan] = None
    skill_check_result: Optional[SkillCheckResult] = None
    gm_message: Optional[TranscriptEntry] = None
    gm_summary: Optional[str] = None
    system_message: Optional[TranscriptEntry] = None
    advances_timeline: bool = False
    world_delta_tags: List[str] = []
    inventory_store_delta: Optional[InventoryStoreDelta] = None
    location_plan: Optional[LocationPlan] = None
    location_summary: Optional[LocationSummary] = None
    updated_character: Optional[Character] = None
    updated_beats: Optional[List[ChronicleBeat]] = None
    chronicle_should_close: bool = False
    failure: bool = False
    executed_nodes: List[str] = []

    @classmethod
    def from_context(cls, context: GraphContext, executed_nodes: List[str]) -> "TurnRecord":
        return cls(
            chronicle_id=context.chronicle_id,
            turn_sequence=context.turn_sequence,
            player_message=context.player_message,
            player_intent=context.player_intent,
            handler_id=context.handler_id,
            skill_check_plan=context.skill_check_plan,
            skill_check_result=context.skill_check_result,
            gm_message=context.gm_message,
            gm_summary=context.gm_summary,
            system_message=context.system_message,
            advances_timeline=context.advances_timeline,
            world_delta_tags=list(context.world_delta_tags),
            inventory_store_delta=context.inventory_store_delta,
            location_plan=context.location_plan,
            location_summary=context.location_summary,
            updated_character=context.updated_character,
            updated_beats=context.updated_beats,
            chronicle_should_close=context.chronicle_should_close,
            failure=context.failure,
            executed_nodes=executed_nodes,
        )


class TurnEngine:
    """Owns one compiled pipeline and the collaborators injected into each turn.

    Args:
        llm: ModelClient used by every model-backed node.
        world_state_store: Optional WorldStateStore for character commits.
        location_graph_store: Optional LocationGraphStore for location plans.
        telemetry: Telemetry sink (defaults to ChronicleTelemetry).
        settings: EngineSettings (planner refinement, dice mode).
        pipeline: Pre-built pipeline; built from the default nodes if omitted.
        rng: Optional seeded Random for reproducible rolls.
    """

    def __init__(
        self,
        llm: Any,
        world_state_store: Any = None,
        location_graph_store: Any = None,
        telemetry: Any = None,
        settings: Optional[EngineSettings] = None,
        pipeline: Optional[TurnPipeline] = None,
        rng: Optional[random.Random] = None,
    ):
        self.llm = llm
        self.world_state_store = world_state_store
        self.location_graph_store = location_graph_store
        self.telemetry = telemetry if telemetry is not None else ChronicleTelemetry()
        self.settings = settings or EngineSettings()
        self.pipeline = pipeline or build_turn_pipeline(
            build_default_nodes(
                refine_checks=self.settings.planner_refinement,
                dice_mode=self.settings.dice_mode,
                rng=rng,
            )
        )

    def build_context(self, chronicle_state: ChronicleState, player_text: str) -> GraphContext:
        chronicle_id = chronicle_state.chronicle.id
        turn_sequence = chronicle_state.turn_sequence
        player_message = TranscriptEntry(
            id=f"player-{chronicle_id}-{turn_sequence}",
            role="player",
            content=player_text,
        )
        return GraphContext(
            chronicle_id=chronicle_id,
            turn_sequence=turn_sequence,
            player_message=player_message,
            chronicle=chronicle_state,
            llm=self.llm,
            telemetry=self.telemetry,
            world_state_store=self.world_state_store,
            location_graph_store=self.location_graph_store,
        )

    async def handle_player_message(self, chronicle_state: ChronicleState, player_text: str) -> TurnRecord:
        """Resolve one player message. Never raises for a crashed pipeline."""
        context = self.build_context(chronicle_state, player_text)
        logger.info(f"[{context.chronicle_id}] Turn {context.turn_sequence}: {player_text[:80]}")

        try:
            outcome = await self.pipeline.run(context)
        except Exception as e:
            logger.error(f"[{context.chronicle_id}] Turn pipeline crashed: {e}", exc_info=True)
            system_message = TranscriptEntry(
                id=f"system-{context.chronicle_id}-{context.turn_sequence}",
                role="system",
                content=SYSTEM_FAILURE_MESSAGE,
            )
            failed = context.model_copy(update={"system_message": system_message, "failure": True})
            return TurnRecord.from_context(failed, executed_nodes=[])

        record = TurnRecord.from_context(outcome.context, outcome.executed_nodes)
        if record.failure:
            logger.warning(f"[{record.chronicle_id}] Turn {record.turn_sequence} failed")
        else:
            logger.info(
                f"[{record.chronicle_id}] Turn {record.turn_sequence} resolved by {record.handler_id}"
                + (f" ({record.skill_check_result.outcome_tier})" if record.skill_check_result else "")
            )
        return record
