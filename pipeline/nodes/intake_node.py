"""
Intake Node — screens the player message and classifies its intent.

First node of the turn. The blocklist screen runs before anything else;
the model then classifies the (filtered) message. When the model leaves
the intent type out, a keyword heuristic fills it in. A model failure here
is fatal: without an intent there is nothing to narrate.
"""

import re
import logging
from typing import Any, Dict, Optional

from models.context import GraphContext
from models.intent import BeatDirective, Intent
from models.mechanics import ATTRIBUTES, INTENT_TYPES
from pipeline.nodes.base import GraphNode
from pipeline.normalize import (
    normalize_bool,
    normalize_choice,
    normalize_confidence,
    normalize_string,
    normalize_string_list,
)
from pipeline.prompts import compose_intent_prompt, truncate_text
from tools.content_filter import screen_message

logger = logging.getLogger("pipeline.intake")

DEFAULT_SKILL = "talk"
DEFAULT_TONE = "narrative"
DEFAULT_ATTRIBUTE = ATTRIBUTES[0]

# Checked in order; the first match wins.
INTENT_HEURISTICS = [
    ("action", re.compile(r"\b(i|we)\s+(try|attack|push|steal|dive|grab|run|leap|strike)\b")),
    ("inquiry", re.compile(r"^(what|who|where|how|can i see|describe)")),
    ("clarification", re.compile(r"\b(wait|remind me|did we|what was my)\b")),
    ("possibility", re.compile(r"\b(could|would it be possible|can we|what if)\b")),
    ("planning", re.compile(r"\b(prepare|rest|travel|set up|plan|camp)\b")),
    ("reflection", re.compile(r"\b(i feel|i think|i pray|i reflect|my heart)\b")),
]


def classify_by_keywords(message: str) -> str:
    """Best-effort intent type from the message text alone."""
    normalized = message.strip().lower()
    for intent_type, pattern in INTENT_HEURISTICS:
        if pattern.search(normalized):
            return intent_type
    return "action"


class IntakeNode(GraphNode):
    id = "intake"

    async def run(self, context: GraphContext) -> GraphContext:
        message = context.player_text
        if not message.strip():
            return context

        filtered, safety = screen_message(message, context.chronicle_id)
        prompt = compose_intent_prompt(context.chronicle, filtered)

        try:
            result = await context.llm.generate_json(
                prompt,
                temperature=0.1,
                max_tokens=500,
                metadata=self.metadata(context),
            )
        except Exception as e:
            logger.error(f"[{context.chronicle_id}] Intent classification failed: {e}")
            self.report_error(context, e)
            return context.model_copy(update={"safety": safety, "failure": True})

        response = result.json if isinstance(result.json, dict) else {}
        intent = self.build_intent(context, response, filtered)
        logger.info(
            f"[{context.chronicle_id}] Intent: {intent.intent_type} "
            f"(check={intent.requires_check}, skill={intent.skill})"
        )
        return context.model_copy(update={"player_intent": intent, "safety": safety})

    def build_intent(self, context: GraphContext, response: Dict[str, Any], message: str) -> Intent:
        skill = normalize_string(response.get("skill")) or DEFAULT_SKILL
        intent_type = normalize_choice(response.get("intent_type"), INTENT_TYPES)

        return Intent(
            intent_type=intent_type or classify_by_keywords(message),
            requires_check=normalize_bool(response.get("requires_check")) or False,
            skill=skill,
            attribute=self._derive_attribute(context, skill, response.get("attribute")),
            beat_directive=self._beat_directive(response.get("beat_directive")),
            creative_spark=normalize_bool(response.get("creative_spark")) or False,
            intent_summary=normalize_string(response.get("intent_summary")) or self._summary_of(message),
            tone=normalize_string(response.get("tone")) or DEFAULT_TONE,
            handler_hints=normalize_string_list(response.get("handler_hints")) or [],
            router_confidence=normalize_confidence(response.get("router_confidence")),
        )

    def _derive_attribute(self, context: GraphContext, skill: str, override: Any) -> str:
        character = context.character
        if character is not None and skill in character.skills:
            return character.skills[skill].attribute
        return normalize_choice(override, ATTRIBUTES) or DEFAULT_ATTRIBUTE

    def _beat_directive(self, raw: Any) -> BeatDirective:
        if not isinstance(raw, dict):
            return BeatDirective()
        kind = normalize_choice(raw.get("kind"), ("existing", "new", "independent"))
        if kind is None:
            return BeatDirective()
        return BeatDirective(
            kind=kind,
            summary=normalize_string(raw.get("summary")),
            target_beat_id=normalize_string(raw.get("target_beat_id")),
        )

    @staticmethod
    def _summary_of(message: str) -> str:
        trimmed = message.strip()
        if not trimmed:
            return "No intent provided."
        return truncate_text(trimmed, 120)
