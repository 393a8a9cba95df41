"""
Tests for pipeline/nodes/intent_handler_nodes.py — descriptor table,
eligibility and the shared executor.
"""

import asyncio

import pytest

from conftest import ScriptedModelClient, make_context, make_intent
from pipeline.nodes.intent_handler_nodes import (
    DESCRIPTORS_BY_INTENT,
    HANDLER_DESCRIPTORS,
    IntentHandlerNode,
    build_intent_handlers,
)


def _run(node, context):
    return asyncio.run(node.execute(context))


def _handler(intent_type):
    return IntentHandlerNode(DESCRIPTORS_BY_INTENT[intent_type])


class TestDescriptors:

    @pytest.mark.parametrize("node_id, intent_type, advances, temperature, tag", [
        ("action-resolver", "action", True, 0.85, "action-delta"),
        ("inquiry-responder", "inquiry", False, 0.45, None),
        ("clarification-responder", "clarification", False, 0.10, None),
        ("possibility-advisor", "possibility", False, 0.55, None),
        ("planning-narrator", "planning", True, 0.60, "planning-delta"),
        ("reflection-weaver", "reflection", False, 0.60, None),
    ])
    def test_table(self, node_id, intent_type, advances, temperature, tag):
        descriptor = DESCRIPTORS_BY_INTENT[intent_type]
        assert descriptor.id == node_id
        assert descriptor.advances_timeline is advances
        assert descriptor.temperature == temperature
        assert descriptor.world_delta_tag == tag

    def test_one_handler_per_intent(self):
        assert len(HANDLER_DESCRIPTORS) == 6
        assert [node.id for node in build_intent_handlers()] == [d.id for d in HANDLER_DESCRIPTORS]


class TestEligibility:

    def test_other_intent_type_is_ignored(self, scripted_llm):
        context = make_context(llm=scripted_llm, player_intent=make_intent())
        assert _run(_handler("inquiry"), context) is context
        assert scripted_llm.calls == []

    def test_no_intent(self, scripted_llm):
        context = make_context(llm=scripted_llm)
        assert _run(_handler("action"), context) is context

    def test_blank_message(self, scripted_llm):
        context = make_context(message="   ", llm=scripted_llm, player_intent=make_intent())
        assert _run(_handler("action"), context) is context

    def test_override_wins_over_intent(self, scripted_llm):
        context = make_context(
            llm=scripted_llm,
            player_intent=make_intent(),
            resolved_intent_type="reflection",
        )
        assert _run(_handler("action"), context) is context
        result = _run(_handler("reflection"), context)
        assert result.handler_id == "reflection-weaver"

    def test_failed_context_passes_through(self, scripted_llm):
        context = make_context(llm=scripted_llm, player_intent=make_intent(), failure=True)
        assert _run(_handler("action"), context) is context
        assert scripted_llm.calls == []


class TestNarration:

    def test_action_narration(self, scripted_llm):
        context = make_context(llm=scripted_llm, player_intent=make_intent())
        result = _run(_handler("action"), context)

        assert result.gm_message.id == "intent-action-resolver-chr-1-3"
        assert result.gm_message.role == "gm"
        assert result.gm_message.content == "You slip between the crates as the lamp gutters out."
        assert result.handler_id == "action-resolver"
        assert result.resolved_intent_type == "action"
        assert result.advances_timeline is True
        assert result.world_delta_tags == ["action-delta"]
        assert result.gm_trace.node_id == "action-resolver"
        assert result.gm_trace.request_id.startswith("gm-chr-1-3-")

    def test_call_settings(self, scripted_llm):
        context = make_context(llm=scripted_llm, player_intent=make_intent())
        _run(_handler("action"), context)
        call = scripted_llm.calls_for("action-resolver")[0]
        assert call["temperature"] == 0.85
        assert call["max_tokens"] == 650
        assert call["request_id"].startswith("gm-chr-1-3-")
        assert "I sneak past the sentry" in call["prompt"]

    def test_non_advancing_handler_adds_no_tag(self, scripted_llm):
        context = make_context(
            message="What is written on the crate?",
            llm=scripted_llm,
            player_intent=make_intent(intent_type="inquiry", requires_check=False),
        )
        result = _run(_handler("inquiry"), context)
        assert result.advances_timeline is False
        assert result.world_delta_tags == []

    def test_tag_not_duplicated(self, scripted_llm):
        context = make_context(
            llm=scripted_llm,
            player_intent=make_intent(),
            world_delta_tags=["inventory-delta", "action-delta"],
        )
        result = _run(_handler("action"), context)
        assert result.world_delta_tags == ["inventory-delta", "action-delta"]

    def test_generation_error_fails_turn(self, telemetry):
        llm = ScriptedModelClient(text_by_node={"action-resolver": RuntimeError("model down")})
        context = make_context(llm=llm, telemetry=telemetry, player_intent=make_intent())
        result = _run(_handler("action"), context)

        assert result.failure is True
        assert result.gm_message is None
        assert telemetry.errors[0]["operation"] == "llm.action-resolver"
        assert telemetry.errors[0]["message"] == "model down"

    def test_empty_text_fails_turn(self):
        llm = ScriptedModelClient(text_by_node={"action-resolver": "  \n "})
        context = make_context(llm=llm, player_intent=make_intent())
        result = _run(_handler("action"), context)
        assert result.failure is True
        assert result.gm_message is None
