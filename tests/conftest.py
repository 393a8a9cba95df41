"""
Shared pytest fixtures for the chronicle turn engine test suite.

Provides a scripted ModelClient keyed by node id, AsyncMock stores, a
recording telemetry sink and factories for characters and contexts.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from models.characters import Character, Inventory, InventoryItem, Skill
from models.chronicle import (
    Chronicle,
    ChronicleBeat,
    ChronicleState,
    LocationSummary,
    TranscriptEntry,
)
from models.context import GraphContext
from models.intent import Intent
from models.mechanics import MomentumState
from pipeline.ports import JsonGeneration, TextGeneration
from tools.telemetry import ChronicleTelemetry


# ---------------------------------------------------------------------------
# Model client fakes
# ---------------------------------------------------------------------------

DEFAULT_NARRATION = "You slip between the crates as the lamp gutters out."

DEFAULT_JSON = {
    "intake": {
        "intent_type": "action",
        "requires_check": True,
        "skill": "stealth",
        "attribute": "finesse",
        "intent_summary": "Sneak past the dock sentry",
        "tone": "tense",
        "beat_directive": {"kind": "existing", "target_beat_id": "beat-1"},
    },
    "skill-detector": {"skill": "stealth", "attribute": "finesse"},
    "check-planner": {},
    "location-delta": {"action": "no_change", "destination": "Dockside", "link": "same"},
    "gm-summary": {"summary": "Vesna slipped past the sentry.", "should_close_chronicle": False},
    "beat-tracker": {"updates": [], "should_start_new_beat": False},
    "inventory-delta": {"ops": []},
}


class ScriptedModelClient:
    """ModelClient fake that answers by the calling node's id.

    Values in `json_by_node` / `text_by_node` may be Exceptions; they are
    raised instead of returned.

    Usage:
        llm = ScriptedModelClient(text_by_node={"action-resolver": RuntimeError("boom")})
    """

    def __init__(self, json_by_node=None, text_by_node=None, default_text=DEFAULT_NARRATION):
        self.json_by_node = {**DEFAULT_JSON, **(json_by_node or {})}
        self.text_by_node = dict(text_by_node or {})
        self.default_text = default_text
        self.calls = []

    @staticmethod
    def _node_id(kwargs):
        return (kwargs.get("metadata") or {}).get("node_id")

    async def generate_text(self, prompt, **kwargs):
        node_id = self._node_id(kwargs)
        self.calls.append({"kind": "text", "node_id": node_id, "prompt": prompt, **kwargs})
        value = self.text_by_node.get(node_id, self.default_text)
        if isinstance(value, Exception):
            raise value
        return TextGeneration(text=value, request_id=kwargs.get("request_id"))

    async def generate_json(self, prompt, **kwargs):
        node_id = self._node_id(kwargs)
        self.calls.append({"kind": "json", "node_id": node_id, "prompt": prompt, **kwargs})
        value = self.json_by_node.get(node_id, {})
        if isinstance(value, Exception):
            raise value
        return JsonGeneration(json=value, request_id=kwargs.get("request_id"))

    def nodes_called(self):
        return [call["node_id"] for call in self.calls]

    def calls_for(self, node_id):
        return [call for call in self.calls if call["node_id"] == node_id]


class ScriptedRng:
    """Stand-in for random.Random that returns scripted die faces."""

    def __init__(self, faces):
        self.faces = list(faces)

    def randint(self, low, high):
        return self.faces.pop(0)


class MockGeminiResponse:
    """Simulates a Gemini response with .text property."""

    def __init__(self, text: str):
        self.text = text
        self.usage_metadata = None


class MockGeminiClient:
    """Mock google-genai client that returns canned text responses.

    Usage:
        client = MockGeminiClient(["response1", "response2"])
        resp = await client.aio.models.generate_content(model=..., contents=...)
        assert resp.text == "response1"
    """

    def __init__(self, responses=None):
        self._responses = responses or []
        self._call_count = 0
        self.requests = []

    @property
    def aio(self):
        return self

    @property
    def models(self):
        return self

    async def generate_content(self, **kwargs):
        self.requests.append(kwargs)
        if self._call_count < len(self._responses):
            resp = self._responses[self._call_count]
        else:
            resp = '{"error": "no more canned responses"}'
        self._call_count += 1
        if isinstance(resp, Exception):
            raise resp
        if isinstance(resp, str):
            return MockGeminiResponse(resp)
        return resp


# ---------------------------------------------------------------------------
# Domain factories
# ---------------------------------------------------------------------------

def make_character(momentum: int = 0, **overrides) -> Character:
    data = {
        "id": "char-1",
        "name": "Vesna Kade",
        "pronouns": "she/her",
        "attributes": {"finesse": "advanced", "presence": "standard", "vitality": "rudimentary"},
        "skills": {
            "stealth": Skill(name="stealth", attribute="finesse", tier="artisan"),
            "haggle": Skill(name="haggle", attribute="presence", tier="apprentice"),
        },
        "momentum": MomentumState(current=momentum),
        "inventory": Inventory(items=[InventoryItem(name="lockpick", quantity=2)]),
        "tags": ["scout"],
    }
    data.update(overrides)
    return Character(**data)


def make_chronicle_state(character=None, **overrides) -> ChronicleState:
    data = {
        "chronicle": Chronicle(
            id="chr-1",
            title="Glass Frontier",
            location_id="loc-1",
            beats=[ChronicleBeat(id="beat-1", title="Reach the relay", description="Get to the tower.")],
        ),
        "character": character,
        "location": LocationSummary(
            location_id="loc-1",
            anchor_place_id="place-dock",
            description="A rain-slick loading dock.",
            adjacent=["Warehouse Row"],
            parent="Harbor",
        ),
        "turns": [TranscriptEntry(id="t-1", role="gm", content="The sentry yawns.")],
        "turn_sequence": 3,
    }
    data.update(overrides)
    return ChronicleState(**data)


def make_intent(**overrides) -> Intent:
    data = {
        "intent_type": "action",
        "requires_check": True,
        "skill": "stealth",
        "attribute": "finesse",
        "intent_summary": "Sneak past the dock sentry",
    }
    data.update(overrides)
    return Intent(**data)


def make_context(
    message: str = "I sneak past the sentry",
    character=None,
    llm=None,
    telemetry=None,
    world_state_store=None,
    location_graph_store=None,
    **overrides,
) -> GraphContext:
    if character is None:
        character = make_character()
    chronicle_state = overrides.pop("chronicle", None) or make_chronicle_state(character=character)
    return GraphContext(
        chronicle_id="chr-1",
        turn_sequence=3,
        player_message=TranscriptEntry(id="player-chr-1-3", role="player", content=message),
        chronicle=chronicle_state,
        llm=llm,
        telemetry=telemetry,
        world_state_store=world_state_store,
        location_graph_store=location_graph_store,
        **overrides,
    )


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def scripted_llm():
    return ScriptedModelClient()


@pytest.fixture
def telemetry():
    return ChronicleTelemetry()


@pytest.fixture
def mock_world_store():
    """MagicMock WorldStateStore that echoes characters back."""
    store = MagicMock()
    store.resolve_inventory_delta = MagicMock(side_effect=lambda inventory, delta, registry=None: inventory)
    store.upsert_character = AsyncMock(side_effect=lambda character: character)
    store.apply_character_progress = AsyncMock(return_value=None)
    return store


@pytest.fixture
def mock_location_store():
    """MagicMock LocationGraphStore with a canned summary."""
    store = MagicMock()
    store.apply_plan = AsyncMock(return_value=None)
    store.summarize_character_location = AsyncMock(
        return_value=LocationSummary(location_id="loc-1", description="Warehouse Row, under the gantry.")
    )
    return store


@pytest.fixture
def mock_model_limiter():
    """AsyncMock for the rate limiter — patches acquire() as a no-op."""
    limiter = MagicMock()
    limiter.acquire = AsyncMock()
    return limiter
