from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import StrEnum

from chronotiles.config import BAD_MOVE_PENALTY_MS, EXPLOSION_PENALTY_MS, Difficulty
from chronotiles.core.board_text import format_board
from chronotiles.core.events import EventType, GameEvent
from chronotiles.core.grid import Position, Tile
from chronotiles.core.hazards import explode
from chronotiles.core.merge import Direction, slide
from chronotiles.core.scheduler import EventScheduler, FiredEvent
from chronotiles.core.state import GameState
from chronotiles.core.time_budget import merge_time_bonus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MergeBonus:
    value: int
    row: int
    col: int
    time_bonus_ms: int


@dataclass(slots=True)
class MoveResult:
    """Outcome of one move.

    A successful move is resolved in two steps: `begin_move` slides and merges,
    `settle` applies the deferred batch (time bonuses, bomb countdowns, the new
    tile, random events, the snapshot). `settled` tells which step it is at.
    """

    # None when the command named no known direction; such a move is ignored.
    direction: Direction | None
    moved: bool
    score_gained: int = 0
    merges: list[MergeBonus] = field(default_factory=list)
    explosions: list[Position] = field(default_factory=list)
    time_delta_ms: int = 0
    new_tile: Tile | None = None
    event: FiredEvent | None = None
    lock_engaged: bool = False
    game_over: bool = False
    settled: bool = False

    def as_payload(self) -> dict[str, object]:
        return {
            "direction": self.direction.value if self.direction is not None else None,
            "moved": self.moved,
            "score_gained": self.score_gained,
            "merges": [
                {"value": m.value, "row": m.row, "col": m.col, "time_bonus_ms": m.time_bonus_ms} for m in self.merges
            ],
            "explosions": [list(p) for p in self.explosions],
            "time_delta_ms": self.time_delta_ms,
            "new_tile": (
                {"row": self.new_tile.row, "col": self.new_tile.col, "value": self.new_tile.value}
                if self.new_tile is not None
                else None
            ),
            "event": self.event.as_payload() if self.event is not None else None,
            "lock_engaged": self.lock_engaged,
            "game_over": self.game_over,
        }


class RewindReason(StrEnum):
    ok = "ok"
    no_charges = "no_charges"
    nothing_to_rewind = "nothing_to_rewind"


@dataclass(frozen=True, slots=True)
class RewindOutcome:
    reason: RewindReason
    charges: int

    @property
    def ok(self) -> bool:
        return self.reason == RewindReason.ok


class GameEngine:
    """Applies moves, ticks and rewinds to one `GameState`.

    All randomness comes from the injected `rng`, so a seeded engine replays
    exactly. Notifications accumulate in an outbox; see `drain_events`.
    """

    def __init__(self, state: GameState, *, rng: random.Random) -> None:
        self.state = state
        self.rng = rng
        self.scheduler = EventScheduler(rng)
        self._outbox: list[GameEvent] = []

    @classmethod
    def new_game(cls, difficulty: Difficulty | str, *, rng: random.Random) -> "GameEngine":
        engine = cls(GameState.new(difficulty), rng=rng)
        engine.spawn_random_tile()
        engine.spawn_random_tile()
        engine.state.history.push(engine.state.capture())
        logger.info("game started: difficulty=%s", engine.state.difficulty.value)
        engine._emit("GAME_STARTED", {"difficulty": engine.state.difficulty.value, "rows": engine.state.grid.rows()})
        return engine

    # --- outbox ---

    def _emit(self, type: EventType, payload: dict[str, object]) -> None:
        self._outbox.append(GameEvent(type=type, payload=payload, at_ms=self.state.clock_ms))

    def drain_events(self) -> list[GameEvent]:
        events, self._outbox = self._outbox, []
        return events

    # --- building blocks ---

    def spawn_random_tile(self) -> Tile | None:
        empty = self.state.grid.empty_cells()
        if not empty:
            return None
        row, col = self.rng.choice(empty)
        value = 2 if self.rng.random() < 0.9 else 4
        return self.state.grid.add_tile(row, col, value)

    def _detonate(self, pos: Position) -> None:
        explode(grid=self.state.grid, hazards=self.state.hazards, row=pos[0], col=pos[1])
        self._explosion_penalty(pos)

    def _explosion_penalty(self, pos: Position) -> None:
        self.state.time.credit(-EXPLOSION_PENALTY_MS)
        logger.info("bomb exploded at %s", pos)

    def _game_over(self, reason: str) -> None:
        if self.state.over:
            return
        self.state.over = True
        logger.info("game over (%s): score=%s moves=%s", reason, self.state.score, self.state.move_count)
        logger.debug("final board:\n%s", format_board(self.state))
        self._emit(
            "GAME_OVER",
            {
                "reason": reason,
                "difficulty": self.state.difficulty.value,
                "score": self.state.score,
                "move_count": self.state.move_count,
            },
        )

    # --- moves ---

    def begin_move(self, direction: Direction | str) -> MoveResult:
        """Slide and merge now; a successful result still needs `settle`."""

        state = self.state
        try:
            direction = Direction(direction)
        except ValueError:
            logger.debug("ignoring unknown direction %r", direction)
            return MoveResult(direction=None, moved=False, settled=True)
        outcome = slide(grid=state.grid, hazards=state.hazards, direction=direction)
        result = MoveResult(direction=direction, moved=outcome.moved)

        if not outcome.moved:
            result.time_delta_ms = state.time.credit(-BAD_MOVE_PENALTY_MS)
            result.lock_engaged = state.lock.record_failure(state.clock_ms)
            result.settled = True
            if result.lock_engaged:
                logger.info("input locked until %.0fms", state.lock.locked_until_ms)
                self._emit("LOCK_ENGAGED", {"until_ms": state.lock.locked_until_ms})
            self._emit("MOVE_RESOLVED", result.as_payload())
            return result

        state.move_count += 1
        state.score += outcome.merge_score
        state.lock.record_success()
        result.score_gained = outcome.merge_score
        result.merges = [MergeBonus(value=m.value, row=m.row, col=m.col, time_bonus_ms=0) for m in outcome.merges]
        for pos in outcome.explosions:
            self._explosion_penalty(pos)
        result.explosions = list(outcome.explosions)
        return result

    def settle(self, result: MoveResult) -> MoveResult:
        """Apply the deferred batch of a successful move."""

        if result.settled or not result.moved:
            return result
        state = self.state

        # Time bonuses and milestone rewind charges, one per merge.
        bonuses: list[MergeBonus] = []
        for m in result.merges:
            base = merge_time_bonus(m.value, multiplier=state.config.time_multiplier)
            credited = state.time.credit(base, phase_bonus=state.phase.bonus)
            bonuses.append(MergeBonus(value=m.value, row=m.row, col=m.col, time_bonus_ms=credited))
            if state.rewind.grant_for_merge(m.value):
                self._emit("REWIND_CHARGED", {"charges": state.rewind.charges, "source": "milestone", "value": m.value})
        result.merges = bonuses

        # Bombs tick before the new tile lands.
        for pos in state.hazards.tick_bombs():
            self._detonate(pos)
            result.explosions.append(pos)

        result.new_tile = self.spawn_random_tile()

        result.event = self.scheduler.maybe_fire(state)
        if result.event is not None:
            self._emit("EVENT_FIRED", result.event.as_payload())

        state.history.push(state.capture())
        result.settled = True

        if state.grid.is_stuck():
            self._game_over("stuck")
        result.game_over = state.over
        self._emit("MOVE_RESOLVED", result.as_payload())
        return result

    def move(self, direction: Direction | str) -> MoveResult:
        """Resolve a whole move synchronously, for callers that sequence effects themselves."""

        return self.settle(self.begin_move(direction))

    # --- time ---

    def advance(self, delta_ms: float) -> None:
        """One tick of play time: countdown, phase, rewind regen, lock expiry."""

        state = self.state
        if state.over or delta_ms < 0:
            return
        state.clock_ms += delta_ms

        if state.time.tick(delta_ms):
            self._game_over("time")
            return

        change = state.phase.advance(delta_ms)
        if change is not None:
            logger.debug("phase -> %s (x%.1f)", change.phase.value, change.bonus)
            self._emit("PHASE_CHANGED", {"phase": change.phase.value, "bonus": change.bonus})

        if state.rewind.recharge(delta_ms, recharge_time_ms=state.config.rewind_recharge_time):
            self._emit("REWIND_CHARGED", {"charges": state.rewind.charges, "source": "regen"})

        if state.lock.release_if_expired(state.clock_ms):
            self._emit("LOCK_RELEASED", {})

    # --- rewind ---

    def rewind(self) -> RewindOutcome:
        state = self.state
        if state.rewind.charges <= 0:
            outcome = RewindOutcome(reason=RewindReason.no_charges, charges=state.rewind.charges)
        elif not state.history.can_rewind():
            outcome = RewindOutcome(reason=RewindReason.nothing_to_rewind, charges=state.rewind.charges)
        else:
            state.rewind.consume()
            state.restore(state.history.pop_to_previous())
            outcome = RewindOutcome(reason=RewindReason.ok, charges=state.rewind.charges)
            logger.info("rewound one move, %s charges left", outcome.charges)

        self._emit(
            "REWIND_RESOLVED",
            {"ok": outcome.ok, "reason": outcome.reason.value, "charges": outcome.charges, "rows": state.grid.rows()},
        )
        return outcome
