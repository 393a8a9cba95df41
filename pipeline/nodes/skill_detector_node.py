"""
Skill Detector Node — refines the skill/attribute pair for checked intents.

Only action and inquiry intents that require a check are refined. A model
failure keeps the intake's guess; it never fails the turn.
"""

import logging

from models.context import GraphContext
from models.mechanics import ATTRIBUTES
from pipeline.nodes.base import GraphNode
from pipeline.normalize import normalize_choice, normalize_string
from pipeline.prompts import compose_skill_detector_prompt

logger = logging.getLogger("pipeline.skill_detector")

REFINED_INTENTS = ("action", "inquiry")


class SkillDetectorNode(GraphNode):
    id = "skill-detector"

    async def run(self, context: GraphContext) -> GraphContext:
        intent = context.player_intent
        if intent is None or not intent.requires_check:
            return context
        if intent.intent_type not in REFINED_INTENTS:
            return context

        prompt = compose_skill_detector_prompt(context.chronicle, intent, context.player_text)
        try:
            result = await context.llm.generate_json(
                prompt,
                temperature=0.1,
                max_tokens=200,
                metadata=self.metadata(context),
            )
        except Exception as e:
            logger.warning(f"[{context.chronicle_id}] Skill detection failed (non-blocking): {e}")
            self.report_error(context, e)
            return context

        response = result.json if isinstance(result.json, dict) else {}
        skill = normalize_string(response.get("skill")) or intent.skill
        attribute = normalize_choice(response.get("attribute"), ATTRIBUTES) or intent.attribute

        # A skill the character already has keeps its own attribute.
        character = context.character
        if character is not None and skill in character.skills:
            attribute = character.skills[skill].attribute

        if skill == intent.skill and attribute == intent.attribute:
            return context

        updated = intent.model_copy(update={"skill": skill, "attribute": attribute})
        return context.model_copy(update={"player_intent": updated})
