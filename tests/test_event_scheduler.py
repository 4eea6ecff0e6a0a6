from __future__ import annotations

import random
from collections import Counter

import pytest

from chronotiles.core.grid import Grid
from chronotiles.core.scheduler import (
    BAD_EFFECTS,
    GOOD_EFFECTS,
    EffectKind,
    EventScheduler,
    apply_effect,
)
from chronotiles.core.state import GameState


class ScriptedRandom(random.Random):
    """Seeded Random whose `random()` replays a fixed list of rolls first."""

    rolls: list[float]

    def random(self) -> float:
        if self.rolls:
            return self.rolls.pop(0)
        return super().random()


def _rng(*rolls: float) -> ScriptedRandom:
    rng = ScriptedRandom(0)
    rng.rolls = list(rolls)
    return rng


def _state(rows: list[list[int]] | None = None, *, move_count: int = 5) -> GameState:
    state = GameState.new("normal")
    state.grid = Grid.from_rows(rows or [[2, 4, 0, 0], [0, 8, 0, 0], [0, 0, 16, 0], [0, 0, 0, 0]])
    state.move_count = move_count
    return state


def _spec(kind: EffectKind):
    return next(s for s in (*GOOD_EFFECTS, *BAD_EFFECTS) if s.kind == kind)


def test_no_events_during_the_opening_moves() -> None:
    rng = _rng(0.0)
    assert EventScheduler(rng).maybe_fire(_state(move_count=4)) is None
    # The roll was not consumed.
    assert rng.rolls == [0.0]


@pytest.mark.parametrize(
    ("roll", "expected"),
    [
        (0.05, "good"),
        (0.1199, "good"),
        (0.12, "bad"),
        (0.2399, "bad"),
        (0.24, None),
        (0.9, None),
    ],
)
def test_roll_thresholds(roll: float, expected: str | None) -> None:
    fired = EventScheduler(_rng(roll)).maybe_fire(_state())
    if expected is None:
        assert fired is None
    else:
        assert fired is not None
        assert fired.kind == expected
        pool = GOOD_EFFECTS if expected == "good" else BAD_EFFECTS
        assert fired.effect in pool


def test_each_pool_has_five_distinct_effects() -> None:
    assert len({s.kind for s in GOOD_EFFECTS}) == 5
    assert len({s.kind for s in BAD_EFFECTS}) == 5


def test_time_effects() -> None:
    state = _state()
    fired = apply_effect(state=state, spec=_spec(EffectKind.time_bonus), kind="good", rng=_rng())
    assert fired.time_delta_ms == 5_000
    assert state.time.remaining == 50_000

    fired = apply_effect(state=state, spec=_spec(EffectKind.time_drain), kind="bad", rng=_rng())
    assert fired.time_delta_ms == -3_000
    assert state.time.remaining == 47_000


def test_score_bonus() -> None:
    state = _state()
    apply_effect(state=state, spec=_spec(EffectKind.score_bonus), kind="good", rng=_rng())
    assert state.score == 500


def test_clear_bombs_and_unfreeze() -> None:
    state = _state()
    state.hazards.place_bomb((0, 0))
    state.hazards.freeze((1, 1))

    fired = apply_effect(state=state, spec=_spec(EffectKind.clear_bombs), kind="good", rng=_rng())
    assert fired.affected == [(0, 0)]
    assert state.hazards.bomb_positions() == []

    fired = apply_effect(state=state, spec=_spec(EffectKind.unfreeze), kind="good", rng=_rng())
    assert fired.affected == [(1, 1)]
    assert state.hazards.frozen_positions() == []


def test_bonus_tile_drops_a_tagged_eight() -> None:
    state = _state()
    fired = apply_effect(state=state, spec=_spec(EffectKind.bonus_tile), kind="good", rng=_rng())
    [pos] = fired.affected
    assert state.grid.tile_at(*pos).value == 8
    assert state.hazards.is_bonus(pos)


def test_bomb_and_freeze_target_tiles() -> None:
    state = _state()
    fired = apply_effect(state=state, spec=_spec(EffectKind.bomb), kind="bad", rng=_rng())
    [bomb] = fired.affected
    assert state.hazards.bomb_at(bomb) == 3
    assert state.grid.tile_at(*bomb) is not None

    fired = apply_effect(state=state, spec=_spec(EffectKind.freeze), kind="bad", rng=_rng())
    [frozen] = fired.affected
    assert frozen != bomb
    assert state.hazards.is_frozen(frozen)


def test_shuffle_and_possess() -> None:
    state = _state()
    values = Counter(t.value for t in state.grid.tiles)
    fired = apply_effect(state=state, spec=_spec(EffectKind.shuffle), kind="bad", rng=_rng())
    assert sorted(fired.affected) == sorted(state.grid.occupied_positions())
    assert Counter(t.value for t in state.grid.tiles) == values

    fired = apply_effect(state=state, spec=_spec(EffectKind.possess), kind="bad", rng=_rng())
    [pos] = fired.affected
    assert state.grid.tile_at(*pos).value == 2
    assert state.grid.total_value() < sum(v * n for v, n in values.items())


def test_fired_event_payload() -> None:
    fired = apply_effect(state=_state(), spec=_spec(EffectKind.time_drain), kind="bad", rng=_rng())
    payload = fired.as_payload()
    assert payload["kind"] == "bad"
    assert payload["tag"] == "time_drain"
    assert payload["name"] == "Time Leak"
    assert payload["time_delta_ms"] == -3_000


def test_engine_announces_fired_events(make_engine) -> None:
    engine = make_engine([[2, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]], spawn=False)
    engine.state.move_count = 4
    engine.scheduler.rng = _rng(0.0)

    result = engine.move("right")

    assert result.event is not None
    assert result.event.kind == "good"
    assert "EVENT_FIRED" in [e.type for e in engine.drain_events()]
