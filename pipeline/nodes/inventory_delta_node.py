"""
Inventory Delta Node — turns narrated item changes into store ops.

Asks the model which inventory changes the narration made explicit and
keeps only ops that validate. Nothing is committed here; the
character-update node applies the delta through the world-state store.
"""

import logging
from typing import Any, List

from pydantic import ValidationError

from models.context import GraphContext
from models.world_delta import InventoryStoreDelta, InventoryStoreOp
from pipeline.nodes.base import GraphNode
from pipeline.prompts import compose_inventory_delta_prompt

logger = logging.getLogger("pipeline.inventory_delta")


class InventoryDeltaNode(GraphNode):
    id = "inventory-delta"

    async def run(self, context: GraphContext) -> GraphContext:
        if context.character is None or context.player_intent is None:
            return context
        if context.gm_message is None or not context.gm_message.content.strip():
            return context
        if not context.player_intent.intent_summary.strip():
            return context

        prompt = compose_inventory_delta_prompt(
            context.chronicle, context.player_intent, context.gm_message.content
        )
        try:
            result = await context.llm.generate_json(
                prompt,
                temperature=0.1,
                max_tokens=500,
                metadata=self.metadata(context),
            )
        except Exception as e:
            logger.warning(f"[{context.chronicle_id}] Inventory delta failed (non-blocking): {e}")
            self.report_error(context, e)
            return context

        response = result.json if isinstance(result.json, dict) else {}
        ops = self.parse_ops(response.get("ops"), context.chronicle_id)
        if not ops:
            return context

        logger.info(f"[{context.chronicle_id}] Inventory delta: {len(ops)} op(s)")
        return context.model_copy(update={
            "inventory_store_delta": InventoryStoreDelta(ops=ops),
            "world_delta_tags": context.merged_world_delta_tags("inventory-delta"),
        })

    @staticmethod
    def parse_ops(raw: Any, chronicle_id: str = "") -> List[InventoryStoreOp]:
        if not isinstance(raw, list):
            return []
        ops = []
        for entry in raw:
            try:
                ops.append(InventoryStoreOp.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"[{chronicle_id}] Dropping invalid inventory op {entry!r}: {e.error_count()} error(s)")
        return ops
