from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Sequence

from fastapi import WebSocket

from chronotiles.core.events import GameEvent

logger = logging.getLogger(__name__)


def event_envelope(session_id: str, event: GameEvent) -> dict[str, Any]:
    """JSON frame sent to renderers for one game event."""

    return {"type": event.type, "session_id": session_id, "at_ms": event.at_ms, "payload": event.payload}


class SessionEventHub:
    """Pushes a session's game events to its attached renderers.

    A renderer (board view, audio) attaches with `subscribe` and then receives
    one `event_envelope` frame per event, in the order the events were
    published to the session's Redis stream. Callers must not interleave two
    `push` calls for the same session; `SessionRunner` holds its session lock
    across the push.

    A socket that fails a send is detached and gets none of the remaining
    frames of that batch.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def subscribe(self, session_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._subscribers[session_id].add(websocket)

    async def unsubscribe(self, session_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._subscribers.get(session_id)
            if sockets is None:
                return
            sockets.discard(websocket)
            if not sockets:
                del self._subscribers[session_id]

    def subscriber_count(self, session_id: str) -> int:
        return len(self._subscribers.get(session_id, ()))

    async def push(self, session_id: str, events: Sequence[GameEvent]) -> None:
        if not events:
            return
        async with self._lock:
            sockets = list(self._subscribers.get(session_id, ()))
        if not sockets:
            return

        frames = [event_envelope(session_id, event) for event in events]
        for ws in sockets:
            try:
                for frame in frames:
                    await ws.send_json(frame)
            except Exception:
                logger.debug("detaching renderer from session %s after a failed send", session_id, exc_info=True)
                await self.unsubscribe(session_id, ws)


hub = SessionEventHub()
