"""
Tests for pipeline/nodes/check_planner_node.py — heuristic plan, model
overlay with per-field fallback, and resolution.
"""

import asyncio
import hashlib
import random
from datetime import datetime, timezone

from conftest import ScriptedModelClient, make_character, make_context, make_intent
from models.intent import SafetyAssessment
from pipeline.nodes.check_planner_node import CheckPlannerNode, match_move


def _run(node, context):
    return asyncio.run(node.execute(context))


class TestMoveLibrary:

    def test_keyword_matches(self):
        assert match_move("I sneak along the wall").move == "stealth"
        assert match_move("Let me parley with the captain").move == "diplomacy"
        assert match_move("I scan the terminal").move == "analysis"
        assert match_move("I charge the gate").move == "clash"

    def test_fallback(self):
        assert match_move("I whistle a tune").move == "improvise"


class TestEligibility:

    def test_no_check_required(self, scripted_llm):
        context = make_context(llm=scripted_llm, player_intent=make_intent(requires_check=False))
        assert _run(CheckPlannerNode(), context) is context
        assert scripted_llm.calls == []

    def test_safety_veto(self, scripted_llm):
        context = make_context(
            llm=scripted_llm,
            player_intent=make_intent(),
            safety=SafetyAssessment(escalate=True, flags=["content-filtered"]),
        )
        assert _run(CheckPlannerNode(), context) is context

    def test_no_character(self, scripted_llm):
        context = make_context(llm=scripted_llm, player_intent=make_intent())
        chronicle = context.chronicle.model_copy(update={"character": None})
        context = context.model_copy(update={"chronicle": chronicle})
        assert _run(CheckPlannerNode(), context) is context

    def test_no_intent(self, scripted_llm):
        context = make_context(llm=scripted_llm)
        assert _run(CheckPlannerNode(), context) is context


class TestPlanning:

    def test_heuristic_plan_resolves(self, scripted_llm):
        context = make_context(llm=scripted_llm, player_intent=make_intent())
        result = _run(CheckPlannerNode(rng=random.Random(4)), context)

        plan = result.skill_check_plan
        assert plan.move == "stealth"
        assert plan.ability == "finesse"
        assert plan.risk_level == "risky"
        assert plan.advantage == "none"
        assert plan.notes == ["refined"]
        assert result.skill_check_result is not None
        assert result.skill_check_result.chronicle_id == "chr-1"
        assert result.failure is False

    def test_planner_call_settings(self, scripted_llm):
        context = make_context(llm=scripted_llm, player_intent=make_intent())
        _run(CheckPlannerNode(rng=random.Random(4)), context)
        call = scripted_llm.calls_for("check-planner")[0]
        assert call["temperature"] == 0.25
        assert call["max_tokens"] == 700

    def test_audit_fields(self, scripted_llm):
        context = make_context(llm=scripted_llm, player_intent=make_intent())
        plan = _run(CheckPlannerNode(rng=random.Random(4)), context).skill_check_plan

        prompt = scripted_llm.calls_for("check-planner")[0]["prompt"]
        assert plan.prompt_hash == hashlib.sha256(prompt.encode("utf-8")).hexdigest()
        assert plan.audit_ref.startswith("plan-chr-1-3-")
        remaining = datetime.fromisoformat(plan.expires_at) - datetime.now(timezone.utc)
        assert 80 <= remaining.total_seconds() <= 90
        assert plan.tags == ["stealth", "covert"]

    def test_momentum_grants_advantage_and_bonus_die(self, scripted_llm):
        context = make_context(
            llm=scripted_llm,
            character=make_character(momentum=2),
            player_intent=make_intent(),
        )
        result = _run(CheckPlannerNode(rng=random.Random(4)), context)
        assert result.skill_check_plan.advantage == "advantage"
        assert result.skill_check_plan.bonus_dice == 1
        assert result.skill_check_result.advantage is True

    def test_creative_spark_flag(self):
        plan = CheckPlannerNode().heuristic_plan(
            make_context(player_intent=make_intent(creative_spark=True)),
            make_intent(creative_spark=True),
        )
        flags = CheckPlannerNode.build_flags(make_intent(creative_spark=True), plan)
        assert flags == ["advantage", "creative-spark"]

    def test_patch_overrides_valid_fields(self):
        llm = ScriptedModelClient(json_by_node={"check-planner": {
            "risk_level": "Desperate",
            "rationale": "The sentry is already suspicious.",
            "complication_seeds": ["A dog starts barking."],
        }})
        context = make_context(llm=llm, player_intent=make_intent())
        plan = _run(CheckPlannerNode(rng=random.Random(4)), context).skill_check_plan
        assert plan.risk_level == "desperate"
        assert plan.rationale == "The sentry is already suspicious."
        assert plan.complication_seeds == ["A dog starts barking."]
        assert plan.move == "stealth"

    def test_invalid_patch_fields_fall_back(self):
        llm = ScriptedModelClient(json_by_node={"check-planner": {
            "move": "   ",
            "ability": "luck",
            "risk_level": "extreme",
            "advantage": "maybe",
            "bonus_dice": 7,
            "rationale": ["", "Because the floor creaks."],
            "complication_seeds": "not a list",
        }})
        context = make_context(llm=llm, player_intent=make_intent())
        plan = _run(CheckPlannerNode(rng=random.Random(4)), context).skill_check_plan
        assert plan.move == "stealth"
        assert plan.ability == "finesse"
        assert plan.risk_level == "risky"
        assert plan.advantage == "none"
        assert plan.bonus_dice == 0
        assert plan.rationale == "Because the floor creaks."
        assert plan.complication_seeds == [
            "A guard's attention lingers too long.",
            "Something underfoot gives way.",
        ]

    def test_refinement_failure_is_not_a_turn_failure(self, telemetry):
        llm = ScriptedModelClient(json_by_node={"check-planner": TimeoutError("model timed out")})
        context = make_context(llm=llm, telemetry=telemetry, player_intent=make_intent())
        result = _run(CheckPlannerNode(rng=random.Random(4)), context)

        assert result.failure is False
        assert result.skill_check_plan.notes[0].startswith("refinement-unavailable")
        assert result.skill_check_result is not None
        assert telemetry.errors[0]["operation"] == "llm.check-planner"
        assert telemetry.errors[0]["reference_id"] == result.skill_check_plan.audit_ref

    def test_refinement_disabled(self, scripted_llm):
        context = make_context(llm=scripted_llm, player_intent=make_intent())
        result = _run(CheckPlannerNode(refine=False, rng=random.Random(4)), context)
        assert scripted_llm.calls == []
        assert result.skill_check_plan.notes == ["heuristic-only"]
        assert result.skill_check_plan.prompt_hash != ""

    def test_bonus_dice_reach_the_roll(self):
        llm = ScriptedModelClient(json_by_node={"check-planner": {"advantage": "advantage", "bonus_dice": 2}})
        context = make_context(llm=llm, player_intent=make_intent())
        result = _run(CheckPlannerNode(dice_mode="keep_drop", rng=random.Random(4)), context)
        assert result.skill_check_plan.bonus_dice == 2
        assert len(result.skill_check_result.rolls) == 4
