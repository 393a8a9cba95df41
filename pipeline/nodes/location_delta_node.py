"""
Location Delta Node — decides whether the character moved this turn.

Reads the narration and asks the model for a move decision, then turns it
into LocationPlan ops for the character-update node to commit. Unknown
destinations get a create_place + create_edge before the move. Any failure
leaves the turn without a plan.
"""

import logging
from typing import List, Optional

from models.context import GraphContext
from models.world_delta import LocationPlan, LocationPlanOp
from pipeline.nodes.base import GraphNode
from pipeline.normalize import normalize_choice, normalize_string
from pipeline.prompts import compose_location_delta_prompt

logger = logging.getLogger("pipeline.location_delta")

LINKS = ("same", "adjacent", "inside", "linked")


class LocationDeltaNode(GraphNode):
    id = "location-delta"

    async def run(self, context: GraphContext) -> GraphContext:
        character = context.character
        if context.player_intent is None or context.gm_message is None or character is None:
            return context
        if context.chronicle.location is None:
            return context

        prompt = compose_location_delta_prompt(
            context.chronicle, context.player_intent, context.gm_message.content
        )
        try:
            result = await context.llm.generate_json(
                prompt,
                temperature=0.1,
                max_tokens=400,
                metadata=self.metadata(context),
            )
        except Exception as e:
            logger.warning(f"[{context.chronicle_id}] Location decision failed (non-blocking): {e}")
            self.report_error(context, e)
            return context

        decision = result.json if isinstance(result.json, dict) else {}
        plan = self.decision_to_plan(context, character.id, decision)
        if plan is None:
            return context

        logger.info(f"[{context.chronicle_id}] Location plan: {plan.notes} ({len(plan.ops)} ops)")
        return context.model_copy(update={
            "location_plan": plan,
            "world_delta_tags": context.merged_world_delta_tags("location-delta"),
        })

    def decision_to_plan(self, context: GraphContext, character_id: str, decision: dict) -> Optional[LocationPlan]:
        if normalize_choice(decision.get("action"), ("move",)) is None:
            return None
        destination = normalize_string(decision.get("destination"))
        if destination is None:
            return None
        link = normalize_choice(decision.get("link"), LINKS) or "adjacent"

        location = context.chronicle.location
        anchor = location.anchor_place_id or location.location_id
        known = self._known_places(context)

        ops: List[LocationPlanOp] = []
        if destination.lower() not in known:
            ops.append(LocationPlanOp(op="create_place", name=destination, link=link, parent_id=anchor))
            ops.append(LocationPlanOp(op="create_edge", name=destination, link=link, parent_id=anchor))
        ops.append(LocationPlanOp(op="move", name=destination, link=link))

        return LocationPlan(character_id=character_id, ops=ops, notes=f"move:{destination}")

    @staticmethod
    def _known_places(context: GraphContext) -> set:
        location = context.chronicle.location
        names = list(location.adjacent) + list(location.children)
        if location.parent:
            names.append(location.parent)
        names.extend(crumb.name for crumb in location.breadcrumb)
        return {name.strip().lower() for name in names if name}
