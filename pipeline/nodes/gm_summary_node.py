"""
GM Summary Node — one-line turn summary and the close-chronicle flag.
"""

import logging

from models.context import GraphContext
from pipeline.nodes.base import GraphNode
from pipeline.normalize import normalize_bool, normalize_string
from pipeline.prompts import compose_gm_summary_prompt

logger = logging.getLogger("pipeline.gm_summary")


class GmSummaryNode(GraphNode):
    id = "gm-summary"

    async def run(self, context: GraphContext) -> GraphContext:
        if context.player_intent is None or context.gm_message is None:
            return context

        prompt = compose_gm_summary_prompt(
            context.chronicle,
            context.player_intent,
            context.skill_check_result,
            context.gm_message.content,
            context.turn_sequence,
        )
        try:
            result = await context.llm.generate_json(
                prompt,
                temperature=0.2,
                max_tokens=350,
                metadata=self.metadata(context),
            )
        except Exception as e:
            logger.warning(f"[{context.chronicle_id}] GM summary failed (non-blocking): {e}")
            self.report_error(context, e)
            return context

        response = result.json if isinstance(result.json, dict) else {}
        summary = normalize_string(response.get("summary"))
        if summary is None:
            logger.warning(f"[{context.chronicle_id}] GM summary missing from model response")
            return context

        return context.model_copy(update={
            "gm_summary": summary,
            "chronicle_should_close": normalize_bool(response.get("should_close_chronicle")) or False,
        })
