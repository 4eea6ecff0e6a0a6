from __future__ import annotations

import random
from collections.abc import Callable, Generator

import pytest

from chronotiles.core.grid import Grid
from chronotiles.core.state import GameState
from chronotiles.engine import GameEngine


@pytest.fixture(autouse=True)
def _reset_sessions() -> Generator[None, None, None]:
    """Keep the in-process session registry empty between tests."""

    from chronotiles.session_store import reset_sessions_for_tests

    reset_sessions_for_tests()
    yield
    reset_sessions_for_tests()


@pytest.fixture()
def client_and_redis():
    """FastAPI TestClient backed by fakeredis, with the tick loop disabled.

    Time only moves through `POST /session/{id}/tick`, so tests stay deterministic.
    """

    import fakeredis
    from fastapi.testclient import TestClient

    from chronotiles.api.deps import get_publisher_redis, get_redis, get_settings
    from chronotiles.config import Settings
    from chronotiles.main import app

    r = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    app.dependency_overrides[get_publisher_redis] = lambda: r
    app.dependency_overrides[get_settings] = lambda: Settings(autotick=False)
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()


@pytest.fixture()
def make_engine() -> Callable[..., GameEngine]:
    """Build an engine around a hand-made board.

    The board is pushed as the starting snapshot, like a freshly dealt game.
    Pass `spawn=False` to stop new tiles from landing after each move.
    """

    def _make(
        rows: list[list[int]],
        *,
        difficulty: str = "normal",
        seed: int = 0,
        spawn: bool = True,
    ) -> GameEngine:
        state = GameState.new(difficulty)
        state.grid = Grid.from_rows(rows)
        state.history.push(state.capture())
        engine = GameEngine(state, rng=random.Random(seed))
        if not spawn:
            engine.spawn_random_tile = lambda: None  # type: ignore[method-assign]
        return engine

    return _make
