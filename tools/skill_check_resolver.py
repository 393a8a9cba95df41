"""
Skill Check Resolver — turns a bound check request into an outcome.

    modifier = skill tier + attribute tier + current momentum
    total    = 2d6 + modifier (advantage/disadvantage per DiceRoller)
    margin   = total - risk threshold
    tier     = first band in TIER_THRESHOLDS the margin meets, else collapse
    momentum = clamp(current + tier delta, floor, ceiling)

`resolve_skill_check()` is the entry point the pipeline uses: it never
raises, a failed roll resolves to None.
"""

import random
import logging
from typing import Any, Optional

from pydantic import ValidationError

from models.mechanics import RISK_LEVEL_MAP, momentum_delta_for, outcome_tier_for_margin
from models.skill_check import SkillCheckRequest, SkillCheckResult
from tools.dice_roller import DiceRoller, format_roll_detail
from tools.telemetry import safe_record

logger = logging.getLogger("SkillCheckResolver")


class SkillCheckResolver:
    """Resolves one SkillCheckRequest."""

    def __init__(self, request: SkillCheckRequest, mode: str = "advantage", rng: Optional[random.Random] = None):
        self.request = request
        self.mode = mode
        self.rng = rng

    def compute_modifier(self) -> int:
        character = self.request.character
        return (
            character.skill_modifier(self.request.skill)
            + character.attribute_modifier(self.request.attribute)
            + character.momentum.current
        )

    def resolve(self) -> SkillCheckResult:
        character = self.request.character
        roller = DiceRoller(
            flags=self.request.flags,
            momentum=character.momentum.current,
            mode=self.mode,
            rng=self.rng,
            bonus_dice=self.request.bonus_dice,
        )
        modifier = self.compute_modifier()
        die_sum = roller.compute_result(modifier)
        margin = die_sum - RISK_LEVEL_MAP[self.request.risk_level]
        tier = outcome_tier_for_margin(margin)
        next_momentum, shift = character.momentum.apply_delta(momentum_delta_for(tier))
        detail = format_roll_detail(roller, modifier)

        logger.info(
            f"Check {self.request.check_id}: {detail} vs {self.request.risk_level} "
            f"-> margin {margin:+d} ({tier}), momentum {shift.before} -> {shift.after}"
            + (" (clamped)" if shift.clamped else "")
        )

        return SkillCheckResult(
            check_id=self.request.check_id,
            chronicle_id=self.request.chronicle_id,
            advantage=roller.advantage,
            disadvantage=roller.disadvantage,
            die_sum=die_sum,
            margin=margin,
            outcome_tier=tier,
            new_momentum=next_momentum.current,
            total_modifier=modifier,
            rolls=list(roller.rolls),
            detail=detail,
        )


def resolve_skill_check(
    request: Any,
    *,
    mode: str = "advantage",
    rng: Optional[random.Random] = None,
    telemetry=None,
) -> Optional[SkillCheckResult]:
    """Resolve a request (model or plain dict). Returns None instead of raising.

    Args:
        request: A SkillCheckRequest, or a dict that validates into one.
        mode: Dice selection mode ('advantage' or 'keep_drop').
        rng: Optional seeded Random for reproducible rolls.
        telemetry: Optional sink; receives record_check_run(result).
    """
    check_id = _check_id_of(request)
    try:
        if not isinstance(request, SkillCheckRequest):
            request = SkillCheckRequest.model_validate(request)
        result = SkillCheckResolver(request, mode=mode, rng=rng).resolve()
    except ValidationError as e:
        logger.error(f"Invalid skill check request {check_id}: {e}")
        return None
    except Exception as e:
        logger.error(f"Skill check {check_id} failed: {e}", exc_info=True)
        return None

    safe_record(telemetry, "record_check_run", result=result)
    return result


def _check_id_of(request: Any) -> str:
    if isinstance(request, SkillCheckRequest):
        return request.check_id
    if isinstance(request, dict):
        return str(request.get("check_id", "unknown"))
    return "unknown"
