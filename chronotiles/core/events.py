from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

EventType = Literal[
    "GAME_STARTED",
    "MOVE_RESOLVED",
    "EVENT_FIRED",
    "PHASE_CHANGED",
    "REWIND_RESOLVED",
    "LOCK_ENGAGED",
    "LOCK_RELEASED",
    "REWIND_CHARGED",
    "GAME_OVER",
]


@dataclass(frozen=True, slots=True)
class GameEvent:
    """A notification for rendering/audio/score collaborators.

    `at_ms` is game play time, not wall-clock time.
    """

    type: EventType
    payload: dict[str, Any]
    at_ms: float

    def to_fields(self) -> dict[str, str]:
        """Flat string fields, as stored in Redis Streams."""

        return {"type": self.type, "at_ms": f"{self.at_ms:.0f}", "payload": json.dumps(self.payload, sort_keys=True)}
