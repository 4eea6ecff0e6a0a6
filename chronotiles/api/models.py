from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from chronotiles.config import Difficulty
from chronotiles.core.events import GameEvent
from chronotiles.fsm import SessionStatus
from chronotiles.session import GameSession


class SessionCreateRequest(BaseModel):
    difficulty: Difficulty = Difficulty.normal
    seed: int | None = Field(None, ge=0, le=2**31 - 1)


class InputRequest(BaseModel):
    command: str = Field(..., min_length=1, max_length=16)


class TickRequest(BaseModel):
    delta_ms: float = Field(..., ge=0, le=60_000)


class TileView(BaseModel):
    row: int
    col: int
    value: int
    frozen: bool = False
    bomb_countdown: int | None = None
    bonus: bool = False


class SessionView(BaseModel):
    session_id: UUID
    status: SessionStatus
    difficulty: Difficulty
    created_at: datetime

    # For reproducibility/debugging.
    seed: int

    score: int = 0
    move_count: int = 0
    time_remaining_ms: float = 0
    max_time_ms: int = 0
    # Remaining time over the cap, for the time bar.
    time_fraction: float = Field(default=0.0, ge=0.0, le=1.0)
    phase: str | None = None
    phase_bonus: float = 1.0
    rewind_charges: int = 0
    rewind_progress: float = 0.0
    locked: bool = False
    consecutive_failures: int = 0

    rows: list[list[int]] = Field(default_factory=list)
    tiles: list[TileView] = Field(default_factory=list)


class EventView(BaseModel):
    type: str
    at_ms: float
    payload: dict[str, Any]


class InputResponse(BaseModel):
    accepted: bool
    # Set when the command was refused before reaching the engine.
    reason: str | None = None
    events: list[EventView] = Field(default_factory=list)
    session: SessionView


class TickResponse(BaseModel):
    events: list[EventView] = Field(default_factory=list)
    session: SessionView


class SessionListResponse(BaseModel):
    sessions: list[SessionView]


def event_view(event: GameEvent) -> EventView:
    return EventView(type=event.type, at_ms=event.at_ms, payload=event.payload)


def session_view(session: GameSession, *, created_at: datetime) -> SessionView:
    view = SessionView(
        session_id=session.session_id,
        status=session.status,
        difficulty=session.difficulty,
        created_at=created_at,
        seed=session.seed,
    )
    engine = session.engine
    if engine is None:
        return view

    state = engine.state
    tiles = [
        TileView(
            row=t.row,
            col=t.col,
            value=t.value,
            frozen=state.hazards.is_frozen(t.pos),
            bomb_countdown=state.hazards.bomb_at(t.pos),
            bonus=state.hazards.is_bonus(t.pos),
        )
        for t in sorted(state.grid.tiles, key=lambda t: t.pos)
    ]
    return view.model_copy(
        update={
            "score": state.score,
            "move_count": state.move_count,
            "time_remaining_ms": state.time.remaining,
            "max_time_ms": state.time.max_ms,
            "time_fraction": state.time.fraction,
            "phase": state.phase.current.value if state.phase.current is not None else None,
            "phase_bonus": state.phase.bonus,
            "rewind_charges": state.rewind.charges,
            "rewind_progress": state.rewind.progress,
            "locked": state.lock.is_locked(state.clock_ms),
            "consecutive_failures": state.lock.consecutive_failures,
            "rows": state.grid.rows(),
            "tiles": tiles,
        }
    )
