from __future__ import annotations

import heapq
import itertools
import logging
import random
from dataclasses import dataclass, field
from typing import Callable
from uuid import UUID, uuid4

from chronotiles.config import SETTLE_DELAY_MS, Difficulty
from chronotiles.core.events import GameEvent
from chronotiles.engine import GameEngine, MoveResult, RewindOutcome
from chronotiles.fsm import SessionFSM, SessionStatus
from chronotiles.turn_processing.validators import (
    REWIND_COMMAND,
    InputContext,
    RejectReason,
    normalize_command,
    pipeline_for_command,
)

logger = logging.getLogger(__name__)


@dataclass(order=True, slots=True)
class Deferred:
    due_ms: float
    seq: int
    effect: Callable[[], None] = field(compare=False)


@dataclass(frozen=True, slots=True)
class InputResult:
    accepted: bool
    reason: RejectReason | None = None
    move: MoveResult | None = None
    rewind: RewindOutcome | None = None
    events: list[GameEvent] = field(default_factory=list)


class GameSession:
    """One player's session: input gating, ticks and the deferred effect queue.

    Callers feed it monotonic clock readings (`now_ms`). Input and ticks must
    not interleave; the async runner serializes them, tests just call in order.
    """

    def __init__(
        self,
        *,
        difficulty: Difficulty | str = Difficulty.normal,
        seed: int | None = None,
        session_id: UUID | None = None,
    ) -> None:
        self.session_id = session_id or uuid4()
        self.difficulty = Difficulty(difficulty)
        # For reproducibility/debugging.
        self.seed = seed if seed is not None else random.SystemRandom().randint(1, 2**31 - 1)
        self.rng = random.Random(self.seed)

        self.fsm = SessionFSM()
        self.engine: GameEngine | None = None
        self.last_move_at: float | None = None

        self._last_reading: float | None = None
        self._queue: list[Deferred] = []
        self._seq = itertools.count()

    @property
    def status(self) -> SessionStatus:
        return self.fsm.status

    @property
    def is_running(self) -> bool:
        return self.status in {SessionStatus.playing, SessionStatus.settling}

    def pending_effects(self) -> int:
        return len(self._queue)

    # --- lifecycle ---

    def start(self, now_ms: float) -> list[GameEvent]:
        if self.status != SessionStatus.idle:
            raise ValueError(f"Cannot start a session that is {self.status.value}")
        self.engine = GameEngine.new_game(self.difficulty, rng=self.rng)
        self.last_move_at = None
        self._last_reading = now_ms
        self._queue.clear()
        self.fsm.begin_game()
        logger.info("session %s started (seed=%s)", self.session_id, self.seed)
        return self.engine.drain_events()

    def restart(self, now_ms: float) -> list[GameEvent]:
        if self.status != SessionStatus.idle:
            self.return_to_idle()
        return self.start(now_ms)

    def return_to_idle(self) -> None:
        if self.status == SessionStatus.idle:
            return
        # Pending batches die with the game.
        self._queue.clear()
        self.fsm.go_idle()

    def _finish(self) -> None:
        self._queue.clear()
        if self.is_running:
            self.fsm.end_game()

    # --- deferred queue ---

    def _schedule(self, delay_ms: float, now_ms: float, effect: Callable[[], None]) -> None:
        heapq.heappush(self._queue, Deferred(due_ms=now_ms + delay_ms, seq=next(self._seq), effect=effect))

    def _drain_due(self, now_ms: float) -> None:
        while self._queue and self._queue[0].due_ms <= now_ms:
            item = heapq.heappop(self._queue)
            item.effect()
            if self.engine is not None and self.engine.state.over:
                self._finish()
                return

    def flush(self) -> list[GameEvent]:
        """Run every pending effect now, regardless of its due time."""

        self._drain_due(float("inf"))
        return self._drain_events()

    def _drain_events(self) -> list[GameEvent]:
        return self.engine.drain_events() if self.engine is not None else []

    # --- driving ---

    def tick(self, now_ms: float) -> list[GameEvent]:
        """Advance play time to `now_ms`, then run any deferred effects that came due."""

        if not self.is_running or self.engine is None:
            self._last_reading = now_ms
            return []

        delta = 0.0 if self._last_reading is None else max(0.0, now_ms - self._last_reading)
        self._last_reading = now_ms

        self.engine.advance(delta)
        if self.engine.state.over:
            self._finish()
            return self._drain_events()

        self._drain_due(now_ms)
        return self._drain_events()

    def handle_input(self, command: str, now_ms: float) -> InputResult:
        cmd = normalize_command(command)
        if cmd is None:
            return InputResult(accepted=False, reason=RejectReason.unknown_command)

        ctx = InputContext(command=cmd, now_ms=now_ms)
        reason = pipeline_for_command(cmd).check(ctx=ctx, session=self)
        if reason is not None:
            logger.debug("input %r rejected: %s", cmd, reason.value)
            return InputResult(accepted=False, reason=reason)

        engine = self.engine
        if engine is None:
            raise RuntimeError("Session is running without an engine")

        if cmd == REWIND_COMMAND:
            outcome = engine.rewind()
            return InputResult(accepted=outcome.ok, rewind=outcome, events=self._drain_events())

        self.last_move_at = now_ms
        result = engine.begin_move(cmd)
        if result.moved:
            self.fsm.accept_slide()
            self._schedule(SETTLE_DELAY_MS, now_ms, lambda: self._settle(result))
        return InputResult(accepted=True, move=result, events=self._drain_events())

    def _settle(self, result: MoveResult) -> None:
        if self.engine is None:
            return
        self.engine.settle(result)
        if not self.engine.state.over and self.status == SessionStatus.settling:
            self.fsm.settle_batch()
