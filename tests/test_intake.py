"""
Tests for pipeline/nodes/intake_node.py and pipeline/nodes/skill_detector_node.py.
"""

import asyncio

import pytest

from conftest import ScriptedModelClient, make_context, make_intent
from pipeline.nodes.intake_node import IntakeNode, classify_by_keywords
from pipeline.nodes.skill_detector_node import SkillDetectorNode


def _run(node, context):
    return asyncio.run(node.execute(context))


class TestKeywordHeuristics:

    @pytest.mark.parametrize("message, expected", [
        ("I attack the sentry", "action"),
        ("What is stencilled on the crate?", "inquiry"),
        ("Wait, did we already pay him?", "clarification"),
        ("Could I climb the gantry instead?", "possibility"),
        ("We camp by the river tonight", "planning"),
        ("I feel the weight of the letter", "reflection"),
        ("Hmm.", "action"),
    ])
    def test_classify(self, message, expected):
        assert classify_by_keywords(message) == expected


class TestIntake:

    def test_model_classification(self, scripted_llm):
        result = _run(IntakeNode(), make_context(llm=scripted_llm))
        intent = result.player_intent

        assert intent.intent_type == "action"
        assert intent.requires_check is True
        assert intent.skill == "stealth"
        assert intent.attribute == "finesse"
        assert intent.tone == "tense"
        assert intent.beat_directive.kind == "existing"
        assert intent.beat_directive.target_beat_id == "beat-1"
        assert result.safety.escalate is False

        call = scripted_llm.calls_for("intake")[0]
        assert call["temperature"] == 0.1
        assert call["max_tokens"] == 500

    def test_missing_fields_fall_back(self):
        llm = ScriptedModelClient(json_by_node={"intake": {"intent_type": "Banter", "requires_check": "yes"}})
        context = make_context(message="What does the sign say?", llm=llm)
        intent = _run(IntakeNode(), context).player_intent

        assert intent.intent_type == "inquiry"
        assert intent.requires_check is False
        assert intent.skill == "talk"
        assert intent.attribute == "vitality"
        assert intent.tone == "narrative"
        assert intent.intent_summary == "What does the sign say?"
        assert intent.beat_directive.kind == "independent"

    def test_known_skill_sets_attribute(self):
        llm = ScriptedModelClient(json_by_node={"intake": {
            "intent_type": "action",
            "skill": "haggle",
            "attribute": "finesse",
        }})
        intent = _run(IntakeNode(), make_context(message="I haggle over the fare", llm=llm)).player_intent
        assert intent.attribute == "presence"

    def test_long_message_summary_truncated(self):
        llm = ScriptedModelClient(json_by_node={"intake": {"intent_type": "action"}})
        message = "I creep " + "very " * 60 + "slowly."
        intent = _run(IntakeNode(), make_context(message=message, llm=llm)).player_intent
        assert len(intent.intent_summary) <= 120

    def test_blank_message_is_ignored(self, scripted_llm):
        context = make_context(message="   ", llm=scripted_llm)
        assert _run(IntakeNode(), context) is context
        assert scripted_llm.calls == []

    def test_model_failure_fails_turn(self, telemetry):
        llm = ScriptedModelClient(json_by_node={"intake": RuntimeError("quota exhausted")})
        result = _run(IntakeNode(), make_context(llm=llm, telemetry=telemetry))
        assert result.failure is True
        assert result.player_intent is None
        assert telemetry.errors[0]["operation"] == "llm.intake"

    def test_filtered_message_escalates(self, scripted_llm):
        context = make_context(message="I threaten the r*pe of the town", llm=scripted_llm)
        result = _run(IntakeNode(), context)

        assert result.safety.escalate is True
        assert result.safety.flags == ["content-filtered"]
        prompt = scripted_llm.calls_for("intake")[0]["prompt"]
        assert "r*pe" not in prompt
        assert "[inappropriate]" in prompt


class TestSkillDetector:

    def test_refines_skill(self):
        llm = ScriptedModelClient(json_by_node={"skill-detector": {"skill": "acrobatics", "attribute": "vitality"}})
        context = make_context(llm=llm, player_intent=make_intent(skill="talk", attribute="presence"))
        intent = _run(SkillDetectorNode(), context).player_intent
        assert intent.skill == "acrobatics"
        assert intent.attribute == "vitality"

    def test_known_skill_keeps_its_attribute(self):
        llm = ScriptedModelClient(json_by_node={"skill-detector": {"skill": "stealth", "attribute": "presence"}})
        context = make_context(llm=llm, player_intent=make_intent(skill="talk", attribute="presence"))
        intent = _run(SkillDetectorNode(), context).player_intent
        assert intent.skill == "stealth"
        assert intent.attribute == "finesse"

    @pytest.mark.parametrize("intent", [
        make_intent(requires_check=False),
        make_intent(intent_type="planning"),
    ])
    def test_ineligible_intents(self, scripted_llm, intent):
        context = make_context(llm=scripted_llm, player_intent=intent)
        assert _run(SkillDetectorNode(), context) is context
        assert scripted_llm.calls == []

    def test_failure_keeps_intake_guess(self, telemetry):
        llm = ScriptedModelClient(json_by_node={"skill-detector": RuntimeError("model down")})
        context = make_context(llm=llm, telemetry=telemetry, player_intent=make_intent())
        result = _run(SkillDetectorNode(), context)
        assert result.failure is False
        assert result.player_intent == context.player_intent
        assert telemetry.errors[0]["operation"] == "llm.skill-detector"
