"""
Intent Handler Nodes — one executor, six descriptors.

Each descriptor pairs an intent type with its prompt composer, sampling
temperature and timeline/world-delta behaviour. All six sit in the graph;
exactly one of them is eligible on any healthy turn, the one whose intent
type matches the turn's resolved type.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from uuid import uuid4

from models.chronicle import EntryMetadata, TranscriptEntry
from models.context import GmTrace, GraphContext
from pipeline.nodes.base import GraphNode
from pipeline.prompts import (
    GM_IDENTITY,
    IntentPromptComposer,
    compose_action_resolver_prompt,
    compose_clarification_responder_prompt,
    compose_inquiry_responder_prompt,
    compose_planning_narrator_prompt,
    compose_possibility_advisor_prompt,
    compose_reflection_weaver_prompt,
)

logger = logging.getLogger("pipeline.intent_handlers")

HANDLER_MAX_TOKENS = 650


@dataclass(frozen=True)
class HandlerDescriptor:
    id: str
    intent_type: str
    advances_timeline: bool
    temperature: float
    prompt_composer: IntentPromptComposer
    world_delta_tag: Optional[str] = None


HANDLER_DESCRIPTORS: List[HandlerDescriptor] = [
    HandlerDescriptor("action-resolver", "action", True, 0.85,
                      compose_action_resolver_prompt, world_delta_tag="action-delta"),
    HandlerDescriptor("inquiry-responder", "inquiry", False, 0.45,
                      compose_inquiry_responder_prompt),
    HandlerDescriptor("clarification-responder", "clarification", False, 0.10,
                      compose_clarification_responder_prompt),
    HandlerDescriptor("possibility-advisor", "possibility", False, 0.55,
                      compose_possibility_advisor_prompt),
    HandlerDescriptor("planning-narrator", "planning", True, 0.60,
                      compose_planning_narrator_prompt, world_delta_tag="planning-delta"),
    HandlerDescriptor("reflection-weaver", "reflection", False, 0.60,
                      compose_reflection_weaver_prompt),
]

DESCRIPTORS_BY_INTENT: Dict[str, HandlerDescriptor] = {d.intent_type: d for d in HANDLER_DESCRIPTORS}


class IntentHandlerNode(GraphNode):
    """Narrates the turn for one intent type."""

    def __init__(self, descriptor: HandlerDescriptor):
        self.descriptor = descriptor
        self.id = descriptor.id

    def is_eligible(self, context: GraphContext) -> bool:
        if context.player_intent is None:
            return False
        if not context.player_text.strip():
            return False
        return context.intent_type() == self.descriptor.intent_type

    async def run(self, context: GraphContext) -> GraphContext:
        if not self.is_eligible(context):
            return context

        d = self.descriptor
        prompt = d.prompt_composer(
            context.chronicle,
            context.player_intent,
            context.skill_check_plan,
            context.skill_check_result,
            context.player_text,
            context.turn_sequence,
        )
        request_id = f"gm-{context.chronicle_id}-{context.turn_sequence}-{uuid4()}"

        try:
            result = await context.llm.generate_text(
                prompt,
                system=GM_IDENTITY,
                temperature=d.temperature,
                max_tokens=HANDLER_MAX_TOKENS,
                metadata=self.metadata(context),
                request_id=request_id,
            )
        except Exception as e:
            logger.error(f"[{context.chronicle_id}] {d.id} generation failed: {e}")
            self.report_error(context, e, reference_id=request_id)
            return context.fail()

        text = (result.text or "").strip()
        if not text:
            logger.error(f"[{context.chronicle_id}] {d.id} returned empty narration")
            self.report_error(context, ValueError("empty narration"), reference_id=request_id)
            return context.fail()

        gm_message = TranscriptEntry(
            id=f"intent-{d.id}-{context.chronicle_id}-{context.turn_sequence}",
            role="gm",
            content=text,
            metadata=EntryMetadata(tags=[d.intent_type]),
        )
        logger.info(f"[{context.chronicle_id}] {d.id} narrated turn {context.turn_sequence}")

        return context.model_copy(update={
            "gm_message": gm_message,
            "gm_trace": GmTrace(node_id=d.id, request_id=result.request_id or request_id),
            "handler_id": d.id,
            "resolved_intent_type": d.intent_type,
            "advances_timeline": d.advances_timeline,
            "world_delta_tags": context.merged_world_delta_tags(d.world_delta_tag),
        })


def build_intent_handlers() -> List[IntentHandlerNode]:
    return [IntentHandlerNode(descriptor) for descriptor in HANDLER_DESCRIPTORS]
