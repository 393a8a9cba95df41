"""
Ports — the collaborators the turn pipeline consumes but does not own.

Model client, stores and telemetry are injected into GraphContext as
opaque handles. These Protocols document the shape nodes rely on; any
object with matching methods works (tests use AsyncMock).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from models.characters import Character, Inventory
from models.chronicle import LocationSummary
from models.world_delta import CharacterProgress, InventoryStoreDelta, LocationPlan


@dataclass
class TextGeneration:
    text: str
    usage: Dict[str, Any] = field(default_factory=dict)
    attempts: int = 1
    request_id: Optional[str] = None


@dataclass
class JsonGeneration:
    json: Dict[str, Any]
    usage: Dict[str, Any] = field(default_factory=dict)
    attempts: int = 1
    request_id: Optional[str] = None


class ModelClient(Protocol):
    """Text/JSON generation. Rejects on timeout or non-success; may retry internally."""

    async def generate_text(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        messages: Optional[List[Dict[str, str]]] = None,
        temperature: float = 0.7,
        max_tokens: int = 450,
        metadata: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> TextGeneration: ...

    async def generate_json(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        messages: Optional[List[Dict[str, str]]] = None,
        temperature: float = 0.2,
        max_tokens: int = 450,
        metadata: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> JsonGeneration: ...


class WorldStateStore(Protocol):
    async def upsert_character(self, character: Character) -> Character: ...

    async def apply_character_progress(self, progress: CharacterProgress) -> Optional[Character]: ...

    def resolve_inventory_delta(
        self,
        inventory: Inventory,
        delta: InventoryStoreDelta,
        *,
        registry: Optional[Dict[str, Any]] = None,
    ) -> Inventory: ...


class LocationGraphStore(Protocol):
    async def apply_plan(self, *, character_id: str, location_id: str, plan: LocationPlan) -> None: ...

    async def summarize_character_location(
        self, *, character_id: str, location_id: str
    ) -> Optional[LocationSummary]: ...


class TelemetrySink(Protocol):
    """Fire-and-forget. Nodes call it through tools.telemetry.safe_record."""

    def record_tool_error(
        self,
        operation: str,
        chronicle_id: str,
        attempt: int,
        message: str,
        reference_id: Optional[str] = None,
    ) -> None: ...
