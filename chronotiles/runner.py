from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Sequence

import redis

from chronotiles.core.events import GameEvent
from chronotiles.session import GameSession, InputResult
from chronotiles.streams import publish_events
from chronotiles.websocket_hub import hub

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class SessionRunner:
    """Drives one `GameSession` from an asyncio loop.

    Ticks and input share one lock, so a tick body never interleaves with a
    move. Events are published to the session's Redis stream and pushed to
    renderers before the lock is released, so both see the same order.
    """

    def __init__(
        self,
        session: GameSession,
        *,
        r: redis.Redis,
        tick_ms: int = 16,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self.session = session
        self.r = r
        self.tick_ms = tick_ms
        self._clock = clock
        # Manual advances (dev endpoint, tests) shift the clock forward.
        self._offset_ms = 0.0
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None

    @property
    def session_id(self) -> str:
        return str(self.session.session_id)

    def now(self) -> float:
        return self._clock() + self._offset_ms

    @property
    def ticking(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, *, autotick: bool = True) -> list[GameEvent]:
        async with self._lock:
            events = self.session.start(self.now())
            await self._publish(events)
        if autotick:
            self._task = asyncio.create_task(self._loop(), name=f"session-{self.session_id}")
        return events

    async def _loop(self) -> None:
        interval = self.tick_ms / 1000.0
        while self.session.is_running:
            await asyncio.sleep(interval)
            await self.tick()
        logger.debug("tick loop for session %s stopped (%s)", self.session_id, self.session.status.value)

    async def tick(self) -> list[GameEvent]:
        async with self._lock:
            events = self.session.tick(self.now())
            await self._publish(events)
        return events

    async def advance(self, delta_ms: float) -> list[GameEvent]:
        """Jump the clock forward by `delta_ms` and tick once."""

        self._offset_ms += delta_ms
        return await self.tick()

    async def handle_input(self, command: str) -> InputResult:
        async with self._lock:
            result = self.session.handle_input(command, self.now())
            await self._publish(result.events)
        return result

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        async with self._lock:
            self.session.return_to_idle()

    async def _publish(self, events: Sequence[GameEvent]) -> None:
        if not events:
            return
        publish_events(r=self.r, session_id=self.session_id, events=events)
        await hub.push(self.session_id, events)
