from __future__ import annotations

import os
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


# Gameplay constants. Times are milliseconds of play time.
GRID_SIZE = 4
MOVE_COOLDOWN_MS = 150
SETTLE_DELAY_MS = 130
BAD_MOVE_PENALTY_MS = 500
EXPLOSION_PENALTY_MS = 5_000
BOMB_COUNTDOWN = 3
LOCK_FAILURE_THRESHOLD = 3
LOCK_DURATION_MS = 3_000
HISTORY_DEPTH = 5
REWIND_CHARGE_CAP = 3
STARTING_REWIND_CHARGES = 1
MILESTONE_VALUES = frozenset({512, 1024, 2048})
EVENTS_AFTER_MOVES = 5
BONUS_TILE_VALUE = 8


class Difficulty(StrEnum):
    easy = "easy"
    normal = "normal"
    hard = "hard"


class DifficultyConfig(BaseModel):
    """Per-session tuning, picked once at game start and never mutated."""

    model_config = ConfigDict(frozen=True)

    label: str
    start_time: int = Field(..., gt=0)
    max_time: int = Field(..., gt=0)
    time_multiplier: float = Field(..., gt=0)
    bad_event_chance: float = Field(..., ge=0, le=1)
    good_event_chance: float = Field(..., ge=0, le=1)
    rewind_recharge_time: int = Field(..., gt=0)


DIFFICULTIES: dict[Difficulty, DifficultyConfig] = {
    Difficulty.easy: DifficultyConfig(
        label="Easy",
        start_time=60_000,
        max_time=90_000,
        time_multiplier=1.5,
        bad_event_chance=0.08,
        good_event_chance=0.15,
        rewind_recharge_time=20_000,
    ),
    Difficulty.normal: DifficultyConfig(
        label="Normal",
        start_time=45_000,
        max_time=75_000,
        time_multiplier=1.0,
        bad_event_chance=0.12,
        good_event_chance=0.12,
        rewind_recharge_time=30_000,
    ),
    Difficulty.hard: DifficultyConfig(
        label="Hard",
        start_time=30_000,
        max_time=60_000,
        time_multiplier=0.5,
        bad_event_chance=0.18,
        good_event_chance=0.08,
        rewind_recharge_time=45_000,
    ),
}


def difficulty_config(difficulty: Difficulty | str) -> DifficultyConfig:
    try:
        key = Difficulty(difficulty) if not isinstance(difficulty, Difficulty) else difficulty
    except ValueError as e:
        raise ValueError(f"Unknown difficulty: {difficulty}") from e
    return DIFFICULTIES[key]


class Settings(BaseModel):
    """Service settings, read from the environment."""

    redis_url: str = "redis://localhost:6379/0"
    tick_ms: int = Field(16, gt=0)
    # Off in tests so time only advances through explicit ticks.
    autotick: bool = True


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().casefold() not in {"0", "false", "no", "off", ""}


def load_settings() -> Settings:
    return Settings(
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        tick_ms=int(os.environ.get("CHRONOTILES_TICK_MS", "16")),
        autotick=_env_flag("CHRONOTILES_AUTOTICK", True),
    )
