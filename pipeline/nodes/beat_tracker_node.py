"""
Beat Tracker Node — applies the model's beat decision for this turn.

Produces `updated_beats` (the full beat list after the turn) when anything
changed. Persisting it is the caller's job. Failures are non-blocking.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from models.chronicle import ChronicleBeat
from models.context import GraphContext
from models.intent import Intent
from pipeline.nodes.base import GraphNode
from pipeline.normalize import normalize_bool, normalize_choice, normalize_string
from pipeline.prompts import compose_beat_tracker_prompt, truncate_text

logger = logging.getLogger("pipeline.beat_tracker")

BEAT_STATUSES = ("in_progress", "succeeded", "failed")


class BeatTrackerNode(GraphNode):
    id = "beat-tracker"

    @property
    def operation(self) -> str:
        return "beats.director"

    async def run(self, context: GraphContext) -> GraphContext:
        chronicle = context.chronicle.chronicle
        if not chronicle.beats_enabled:
            return context
        if context.player_intent is None or context.gm_message is None:
            return context

        prompt = compose_beat_tracker_prompt(
            context.chronicle, context.player_intent, context.gm_message.content
        )
        try:
            result = await context.llm.generate_json(
                prompt,
                temperature=0.15,
                max_tokens=600,
                metadata=self.metadata(context),
            )
        except Exception as e:
            logger.warning(f"[{context.chronicle_id}] Beat decision failed (non-blocking): {e}")
            self.report_error(context, e)
            return context

        decision = result.json if isinstance(result.json, dict) else {}
        beats, changed = self.apply_decision(chronicle.beats, decision, context.player_intent)
        if not changed:
            return context
        return context.model_copy(update={"updated_beats": beats})

    def apply_decision(
        self,
        beats: List[ChronicleBeat],
        decision: Dict[str, Any],
        intent: Intent,
    ) -> Tuple[List[ChronicleBeat], bool]:
        """Return the beat list after the decision, and whether anything changed."""
        by_id = {beat.id: beat for beat in beats}
        changed = False

        updates = decision.get("updates")
        if not isinstance(updates, list):
            updates = []
        for update in updates:
            if not isinstance(update, dict):
                continue
            beat = by_id.get(normalize_string(update.get("beat_id")))
            if beat is None:
                continue
            patch = {}
            status = normalize_choice(update.get("status"), BEAT_STATUSES)
            if status and status != beat.status:
                patch["status"] = status
            description = normalize_string(update.get("description"))
            if description and description != beat.description:
                patch["description"] = description
            if patch:
                by_id[beat.id] = beat.model_copy(update=patch)
                changed = True

        updated = [by_id[beat.id] for beat in beats]

        if normalize_bool(decision.get("should_start_new_beat")):
            new_beat = self._new_beat(decision, intent)
            if new_beat is not None:
                updated.append(new_beat)
                changed = True

        return updated, changed

    @staticmethod
    def _new_beat(decision: Dict[str, Any], intent: Intent) -> Optional[ChronicleBeat]:
        title = normalize_string(decision.get("new_beat_title")) or truncate_text(intent.intent_summary, 64)
        if not title:
            return None
        description = (
            normalize_string(decision.get("new_beat_description"))
            or intent.beat_directive.summary
            or intent.intent_summary
        )
        return ChronicleBeat(id=f"beat-{uuid4().hex[:12]}", title=title, description=description)
