"""
Beat Detector Node — pins the intent's beat directive to real beats.

No model call. A directive that points at a beat which is not open is
downgraded: to `new` if it carries a summary, otherwise to `independent`.
With beats disabled every directive is `independent`.
"""

import logging

from models.context import GraphContext
from models.intent import BeatDirective
from pipeline.nodes.base import GraphNode

logger = logging.getLogger("pipeline.beat_detector")


class BeatDetectorNode(GraphNode):
    id = "beat-detector"

    async def run(self, context: GraphContext) -> GraphContext:
        intent = context.player_intent
        if intent is None:
            return context

        chronicle = context.chronicle.chronicle
        directive = intent.beat_directive
        normalized = self.normalize(directive, chronicle.open_beat_ids(), chronicle.beats_enabled)
        if normalized == directive:
            return context

        logger.debug(
            f"[{context.chronicle_id}] Beat directive {directive.kind} -> {normalized.kind}"
        )
        updated = intent.model_copy(update={"beat_directive": normalized})
        return context.model_copy(update={"player_intent": updated})

    @staticmethod
    def normalize(directive: BeatDirective, open_ids, beats_enabled: bool = True) -> BeatDirective:
        if not beats_enabled:
            return BeatDirective(kind="independent", summary=directive.summary)

        if directive.kind == "existing":
            if directive.target_beat_id in open_ids:
                return directive
            if directive.summary:
                return BeatDirective(kind="new", summary=directive.summary)
            return BeatDirective(kind="independent")

        if directive.kind == "new" and not directive.summary:
            return BeatDirective(kind="independent")

        if directive.target_beat_id is not None:
            return directive.model_copy(update={"target_beat_id": None})
        return directive
