from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

import redis

from chronotiles.config import Difficulty, Settings
from chronotiles.infra.redis_client import create_redis
from chronotiles.runner import SessionRunner
from chronotiles.session import GameSession

# Sessions live in this process only; nothing survives a restart.
_RUNNERS: dict[UUID, SessionRunner] = {}
_CREATED_AT: dict[UUID, datetime] = {}
# Runners outlive the request that created them, so they publish through this
# process-wide client rather than a request-scoped one.
_PUBLISHER: redis.Redis | None = None


def _now() -> datetime:
    return datetime.now(tz=UTC)


def publisher_redis() -> redis.Redis:
    """Return the Redis client shared by every session runner.

    Created on first use and kept until `shutdown_sessions`.
    """

    global _PUBLISHER
    if _PUBLISHER is None:
        _PUBLISHER = create_redis()
    return _PUBLISHER


async def create_session(
    *,
    r: redis.Redis,
    settings: Settings,
    difficulty: Difficulty | str,
    seed: int | None = None,
) -> SessionRunner:
    session = GameSession(difficulty=difficulty, seed=seed)
    runner = SessionRunner(session, r=r, tick_ms=settings.tick_ms)
    _RUNNERS[session.session_id] = runner
    _CREATED_AT[session.session_id] = _now()
    await runner.start(autotick=settings.autotick)
    return runner


def get_runner(session_id: UUID) -> SessionRunner | None:
    return _RUNNERS.get(session_id)


def require_runner(session_id: UUID) -> SessionRunner:
    runner = get_runner(session_id)
    if runner is None:
        raise LookupError("Session not found")
    return runner


def created_at(session_id: UUID) -> datetime:
    return _CREATED_AT[session_id]


def list_runners() -> list[SessionRunner]:
    out = list(_RUNNERS.values())
    out.sort(key=lambda runner: _CREATED_AT[runner.session.session_id], reverse=True)
    return out


async def close_session(session_id: UUID) -> SessionRunner:
    runner = require_runner(session_id)
    await runner.stop()
    return runner


async def shutdown_sessions() -> None:
    global _PUBLISHER
    for runner in list(_RUNNERS.values()):
        await runner.stop()
    if _PUBLISHER is not None:
        _PUBLISHER.close()
        _PUBLISHER = None


def reset_sessions_for_tests() -> None:
    """Forget every session. Tests call this between cases."""

    global _PUBLISHER
    _RUNNERS.clear()
    _CREATED_AT.clear()
    _PUBLISHER = None
