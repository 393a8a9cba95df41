"""
Check Planner Node — plans and resolves the turn's skill check.

Runs only when the intent asks for a check, safety did not escalate the
turn, and there is a character to roll for.

    1. Heuristic baseline from the move library (keyword match).
    2. Optional model refinement: a partial JSON patch, each field validated
       on its own and falling back to the baseline when unusable.
    3. Bind the plan into a SkillCheckRequest and resolve it.

A refinement failure is recorded on the plan and in telemetry; the
heuristic plan still resolves. A resolver failure leaves
`skill_check_result` as None.
"""

import random
import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from models.context import GraphContext
from models.intent import Intent
from models.mechanics import ATTRIBUTES, RISK_LEVELS
from models.skill_check import SkillCheckPlan
from pipeline.nodes.base import GraphNode
from pipeline.normalize import (
    normalize_choice,
    normalize_rationale,
    normalize_string,
    normalize_string_list,
)
from pipeline.prompts import compose_check_planner_prompt
from tools.skill_check_resolver import resolve_skill_check

logger = logging.getLogger("pipeline.check_planner")

PLAN_TTL_SECONDS = 90
ADVANTAGE_CHOICES = ("advantage", "disadvantage", "none")
MAX_BONUS_DICE = 2


@dataclass(frozen=True)
class MoveTemplate:
    move: str
    keywords: Tuple[str, ...]
    ability: str
    risk_level: str
    rationale: str
    complication_seeds: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = field(default_factory=tuple)


MOVE_LIBRARY: List[MoveTemplate] = [
    MoveTemplate(
        move="stealth",
        keywords=("sneak", "quiet", "hide", "slip", "unseen"),
        ability="finesse",
        risk_level="risky",
        rationale="Moving unseen leaves no room for a second try.",
        complication_seeds=("A guard's attention lingers too long.", "Something underfoot gives way."),
        tags=("stealth", "covert"),
    ),
    MoveTemplate(
        move="diplomacy",
        keywords=("negotiate", "talk", "parley", "persuade", "convince"),
        ability="presence",
        risk_level="standard",
        rationale="They will listen, but they want something in return.",
        complication_seeds=("They agree, at a price.", "A rival overhears the offer."),
        tags=("social",),
    ),
    MoveTemplate(
        move="analysis",
        keywords=("analyze", "analyse", "scan", "hack", "study", "decode"),
        ability="ingenuity",
        risk_level="controlled",
        rationale="Careful work, with time on your side.",
        complication_seeds=("The answer raises a worse question.", "The system notices the intrusion."),
        tags=("technical",),
    ),
    MoveTemplate(
        move="clash",
        keywords=("attack", "strike", "fight", "shove", "charge", "grapple"),
        ability="vitality",
        risk_level="desperate",
        rationale="Violence moves fast and cuts both ways.",
        complication_seeds=("You take a hit in the exchange.", "Your weapon is knocked loose."),
        tags=("combat",),
    ),
]

FALLBACK_MOVE = MoveTemplate(
    move="improvise",
    keywords=(),
    ability="focus",
    risk_level="standard",
    rationale="Nothing about this is routine.",
    complication_seeds=("The universe disagrees with your intent.",),
    tags=("improvised",),
)


def match_move(text: str) -> MoveTemplate:
    lowered = text.lower()
    for template in MOVE_LIBRARY:
        if any(keyword in lowered for keyword in template.keywords):
            return template
    return FALLBACK_MOVE


def _dedupe(values) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


class CheckPlannerNode(GraphNode):
    """Heuristic-then-overlay check planner.

    Args:
        refine: Ask the model to refine the heuristic plan.
        dice_mode: Passed to the resolver ('advantage' or 'keep_drop').
        rng: Optional seeded Random for reproducible rolls.
    """

    id = "check-planner"

    def __init__(self, refine: bool = True, dice_mode: str = "advantage", rng: Optional[random.Random] = None):
        self.refine = refine
        self.dice_mode = dice_mode
        self.rng = rng

    async def run(self, context: GraphContext) -> GraphContext:
        intent = context.player_intent
        character = context.character
        if intent is None or not intent.requires_check:
            return context
        if context.safety.escalate or character is None:
            return context

        baseline = self.heuristic_plan(context, intent)
        prompt = compose_check_planner_prompt(
            context.chronicle, intent, baseline, None, context.player_text, context.turn_sequence
        )
        plan = await self._refine(context, baseline, prompt)

        result = resolve_skill_check(
            {
                "check_id": str(uuid4()),
                "chronicle_id": context.chronicle_id,
                "attribute": plan.ability,
                "skill": plan.skill,
                "risk_level": plan.risk_level,
                "character": character,
                "flags": self.build_flags(intent, plan),
                "bonus_dice": plan.bonus_dice,
            },
            mode=self.dice_mode,
            rng=self.rng,
            telemetry=context.telemetry,
        )
        return context.model_copy(update={"skill_check_plan": plan, "skill_check_result": result})

    def heuristic_plan(self, context: GraphContext, intent: Intent) -> SkillCheckPlan:
        template = match_move(f"{context.player_text} {intent.intent_summary}")
        character = context.character
        spark = intent.creative_spark or (character is not None and character.momentum.current >= 2)

        return SkillCheckPlan(
            move=template.move,
            move_tags=list(template.tags),
            ability=template.ability if template is not FALLBACK_MOVE else (intent.attribute or template.ability),
            skill=intent.skill,
            risk_level=template.risk_level,
            advantage="advantage" if spark else "none",
            bonus_dice=1 if spark else 0,
            rationale=template.rationale,
            complication_seeds=list(template.complication_seeds),
        )

    async def _refine(self, context: GraphContext, baseline: SkillCheckPlan, prompt: str) -> SkillCheckPlan:
        now = datetime.now(timezone.utc)
        audit = {
            "audit_ref": f"plan-{context.chronicle_id}-{context.turn_sequence}-{uuid4().hex[:8]}",
            "prompt_hash": hashlib.sha256(prompt.encode("utf-8")).hexdigest(),
            "expires_at": (now + timedelta(seconds=PLAN_TTL_SECONDS)).isoformat(),
            "tags": _dedupe(list(baseline.move_tags) + list(context.safety.flags)),
        }

        if not self.refine or context.llm is None:
            return baseline.model_copy(update={**audit, "notes": ["heuristic-only"]})

        try:
            result = await context.llm.generate_json(
                prompt,
                temperature=0.25,
                max_tokens=700,
                metadata=self.metadata(context),
            )
        except Exception as e:
            logger.warning(f"[{context.chronicle_id}] Plan refinement failed, using heuristic: {e}")
            self.report_error(context, e, reference_id=audit["audit_ref"])
            return baseline.model_copy(update={**audit, "notes": [f"refinement-unavailable: {e}"]})

        patch = result.json if isinstance(result.json, dict) else {}
        merged = self.merge_patch(baseline, patch)
        return merged.model_copy(update={**audit, "notes": ["refined"]})

    @staticmethod
    def merge_patch(baseline: SkillCheckPlan, patch: Dict[str, Any]) -> SkillCheckPlan:
        """Overlay a model patch; every unusable field keeps the baseline value."""
        bonus = patch.get("bonus_dice")
        if isinstance(bonus, bool) or not isinstance(bonus, int) or not 0 <= bonus <= MAX_BONUS_DICE:
            bonus = baseline.bonus_dice

        return baseline.model_copy(update={
            "move": normalize_string(patch.get("move")) or baseline.move,
            "ability": normalize_choice(patch.get("ability"), ATTRIBUTES) or baseline.ability,
            "risk_level": normalize_choice(patch.get("risk_level"), RISK_LEVELS) or baseline.risk_level,
            "advantage": normalize_choice(patch.get("advantage"), ADVANTAGE_CHOICES) or baseline.advantage,
            "bonus_dice": bonus,
            "rationale": normalize_rationale(patch.get("rationale")) or baseline.rationale,
            "complication_seeds": normalize_string_list(patch.get("complication_seeds")) or baseline.complication_seeds,
        })

    @staticmethod
    def build_flags(intent: Intent, plan: SkillCheckPlan) -> List[str]:
        flags = []
        if plan.advantage != "none":
            flags.append(plan.advantage)
        if intent.creative_spark:
            flags.append("creative-spark")
        return flags
