"""
Character Update Node — commits the turn's consequences.

Three sub-steps, in order:

    inventory  pending store delta -> resolve_inventory_delta -> upsert_character.
               Any error fails the turn and skips the rest.
    progress   only for checked intents: momentum delta from the outcome
               tier, XP for the rolled skill (unknown skills unlock at 0 XP).
    location   pending plan -> apply_plan -> summarize_character_location.
               Errors are logged and swallowed.

A sub-step whose store is not wired in is skipped; the pending deltas
still ride out on the context for the caller to persist.
"""

import logging
from typing import Optional

from models.context import GraphContext
from models.mechanics import momentum_delta_for, xp_award_for
from models.world_delta import CharacterProgress, CharacterSkillProgress
from pipeline.nodes.base import GraphNode

logger = logging.getLogger("pipeline.character_update")

INVENTORY_COMMIT_OPERATION = "inventory-delta.commit"


class CharacterUpdateNode(GraphNode):
    id = "character-update"

    async def run(self, context: GraphContext) -> GraphContext:
        if context.character is None:
            return context

        context = await self.commit_inventory(context)
        if context.failure:
            return context
        context = await self.apply_progress(context)
        return await self.apply_location_plan(context)

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    async def commit_inventory(self, context: GraphContext) -> GraphContext:
        delta = context.inventory_store_delta
        if delta is None or delta.is_empty() or context.world_state_store is None:
            return context

        store = context.world_state_store
        character = context.character
        try:
            inventory = store.resolve_inventory_delta(
                character.inventory, delta, registry=context.inventory_registry
            )
            saved = await store.upsert_character(character.model_copy(update={"inventory": inventory}))
        except Exception as e:
            logger.error(f"[{context.chronicle_id}] Inventory commit failed: {e}", exc_info=True)
            self.report_error(context, e, operation=INVENTORY_COMMIT_OPERATION)
            return context.fail()

        logger.info(f"[{context.chronicle_id}] Inventory committed ({len(delta.ops)} op(s))")
        return context.with_character(saved or character.model_copy(update={"inventory": inventory}))

    # ------------------------------------------------------------------
    # Skill / momentum
    # ------------------------------------------------------------------

    def build_progress(self, context: GraphContext) -> Optional[CharacterProgress]:
        intent = context.player_intent
        result = context.skill_check_result
        character = context.character
        if intent is None or not intent.requires_check or result is None:
            return None

        momentum_delta = momentum_delta_for(result.outcome_tier)
        skill_progress = None
        skill_name = intent.skill
        if skill_name:
            xp = xp_award_for(result.outcome_tier)
            known = character.skills.get(skill_name)
            attribute = known.attribute if known else intent.attribute
            # First use unlocks the skill even when the award is zero.
            if attribute and (known is None or xp > 0):
                skill_progress = CharacterSkillProgress(
                    attribute=attribute,
                    name=skill_name,
                    xp_award=xp,
                )

        if momentum_delta == 0 and skill_progress is None:
            return None
        return CharacterProgress(
            character_id=character.id,
            momentum_delta=momentum_delta or None,
            skill=skill_progress,
        )

    async def apply_progress(self, context: GraphContext) -> GraphContext:
        progress = self.build_progress(context)
        if progress is None or context.world_state_store is None:
            return context

        try:
            updated = await context.world_state_store.apply_character_progress(progress)
        except Exception as e:
            logger.warning(f"[{context.chronicle_id}] Character progress failed (non-blocking): {e}")
            self.report_error(context, e, operation="character-progress.apply")
            return context

        if updated is None:
            return context
        return context.with_character(updated)

    # ------------------------------------------------------------------
    # Location
    # ------------------------------------------------------------------

    async def apply_location_plan(self, context: GraphContext) -> GraphContext:
        plan = context.location_plan
        if plan is None or plan.is_empty() or context.location_graph_store is None:
            return context

        store = context.location_graph_store
        character = context.character
        location_id = context.chronicle.chronicle.location_id
        if not location_id:
            return context
        try:
            await store.apply_plan(character_id=character.id, location_id=location_id, plan=plan)
            summary = await store.summarize_character_location(
                character_id=character.id, location_id=location_id
            )
        except Exception as e:
            logger.warning(f"[{context.chronicle_id}] Location plan failed (non-blocking): {e}")
            self.report_error(context, e, operation="location-plan.apply")
            return context

        if summary is None:
            logger.warning(f"[{context.chronicle_id}] No location summary after plan {plan.notes}")
            return context
        return context.model_copy(update={"location_summary": summary})
