"""
Chronicle schemas — the persisted story a turn reads from.

The turn engine never writes these directly; it returns a TurnRecord and
the caller persists it.
"""

import time
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator

from models.characters import Character


def _now_ms() -> int:
    return int(time.time() * 1000)


class EntryMetadata(BaseModel):
    tags: List[str] = []
    timestamp: int = Field(default_factory=_now_ms)


class TranscriptEntry(BaseModel):
    """One chat line: player, GM or system."""

    id: str
    role: Literal["player", "gm", "system"]
    content: str = ""
    metadata: EntryMetadata = Field(default_factory=EntryMetadata)


class ChronicleBeat(BaseModel):
    """A narrative thread the chronicle is following."""

    id: str
    title: str
    description: str = ""
    status: str = "in_progress"

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        valid = {"in_progress", "succeeded", "failed"}
        if v.lower() not in valid:
            return "in_progress"
        return v.lower()


class Chronicle(BaseModel):
    """Top-level chronicle record."""

    id: str
    title: str = ""
    location_id: Optional[str] = None
    status: str = "open"
    beats_enabled: bool = True
    beats: List[ChronicleBeat] = []
    target_end_turn: Optional[int] = None

    model_config = {"extra": "allow"}

    def open_beat_ids(self) -> List[str]:
        return [beat.id for beat in self.beats if beat.status == "in_progress"]


class LocationBreadcrumb(BaseModel):
    id: str
    name: str


class LocationSummary(BaseModel):
    """Denormalised view of where the character stands."""

    location_id: str
    anchor_place_id: Optional[str] = None
    description: str = ""
    breadcrumb: List[LocationBreadcrumb] = []
    adjacent: List[str] = []
    children: List[str] = []
    parent: Optional[str] = None

    model_config = {"extra": "allow"}

    def describe(self) -> str:
        if self.description.strip():
            return self.description
        path = " → ".join(entry.name for entry in self.breadcrumb)
        return path or "an unknown place"


class ChronicleState(BaseModel):
    """Everything the pipeline knows about the chronicle before the turn."""

    chronicle: Chronicle
    character: Optional[Character] = None
    location: Optional[LocationSummary] = None
    turns: List[TranscriptEntry] = []
    turn_sequence: int = Field(default=0, ge=0)
