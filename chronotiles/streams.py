from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence, cast

import redis

from chronotiles.core.events import GameEvent

SCORES_STREAM_KEY = "chronotiles:scores"


@dataclass(frozen=True, slots=True)
class SessionStream:
    session_id: str

    @property
    def key(self) -> str:
        return f"session:{self.session_id}:events"


def publish_many(*, r: redis.Redis, entries: Sequence[tuple[str, Mapping[str, str]]]) -> list[str]:
    ids: list[str] = []
    for key, fields in entries:
        stream_id = r.xadd(key, {str(k): str(v) for k, v in fields.items()})
        ids.append(cast(str, stream_id))
    return ids


def entries_for_events(*, session_id: str, events: Sequence[GameEvent]) -> list[tuple[str, dict[str, str]]]:
    """Every event goes to the session stream; game over is also copied to the scores stream."""

    stream = SessionStream(session_id=session_id)
    entries: list[tuple[str, dict[str, str]]] = []
    for event in events:
        entries.append((stream.key, event.to_fields()))
        if event.type == "GAME_OVER":
            entries.append(
                (
                    SCORES_STREAM_KEY,
                    {
                        "session_id": session_id,
                        "difficulty": str(event.payload.get("difficulty", "")),
                        "score": str(event.payload.get("score", 0)),
                        "move_count": str(event.payload.get("move_count", 0)),
                    },
                )
            )
    return entries


def publish_events(*, r: redis.Redis, session_id: str, events: Sequence[GameEvent]) -> list[str]:
    if not events:
        return []
    return publish_many(r=r, entries=entries_for_events(session_id=session_id, events=events))
