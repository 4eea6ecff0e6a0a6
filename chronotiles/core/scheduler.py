from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Literal

from chronotiles.config import EVENTS_AFTER_MOVES
from chronotiles.core.grid import Position
from chronotiles.core.hazards import (
    freeze_random_tile,
    possess_random_tile,
    shuffle_tiles,
    spawn_bomb,
    spawn_bonus_tile,
)
from chronotiles.core.state import GameState

logger = logging.getLogger(__name__)

EventKindName = Literal["good", "bad"]

TIME_BONUS_MS = 5_000
TIME_DRAIN_MS = 3_000
SCORE_BONUS = 500


class EffectKind(StrEnum):
    # good
    time_bonus = "time_bonus"
    clear_bombs = "clear_bombs"
    unfreeze = "unfreeze"
    bonus_tile = "bonus_tile"
    score_bonus = "score_bonus"
    # bad
    time_drain = "time_drain"
    bomb = "bomb"
    freeze = "freeze"
    shuffle = "shuffle"
    possess = "possess"


@dataclass(frozen=True, slots=True)
class EffectSpec:
    kind: EffectKind
    name: str
    description: str


GOOD_EFFECTS: tuple[EffectSpec, ...] = (
    EffectSpec(EffectKind.time_bonus, "Second Wind", "+5 seconds on the clock."),
    EffectSpec(EffectKind.clear_bombs, "Defused", "Every bomb on the board is disarmed."),
    EffectSpec(EffectKind.unfreeze, "Thaw", "Frozen tiles can move again."),
    EffectSpec(EffectKind.bonus_tile, "Gift Tile", "A bonus 8 tile drops in."),
    EffectSpec(EffectKind.score_bonus, "Jackpot", "+500 points."),
)

BAD_EFFECTS: tuple[EffectSpec, ...] = (
    EffectSpec(EffectKind.time_drain, "Time Leak", "-3 seconds drained away."),
    EffectSpec(EffectKind.bomb, "Live Bomb", "A tile is rigged to blow in 3 moves."),
    EffectSpec(EffectKind.freeze, "Deep Freeze", "A tile is frozen in place."),
    EffectSpec(EffectKind.shuffle, "Scramble", "The board is reshuffled."),
    EffectSpec(EffectKind.possess, "Reset", "A tile drops back to 2."),
)


@dataclass(frozen=True, slots=True)
class FiredEvent:
    kind: EventKindName
    effect: EffectSpec
    # Cells the effect touched, for the renderer.
    affected: list[Position] = field(default_factory=list)
    time_delta_ms: int = 0

    def as_payload(self) -> dict[str, object]:
        return {
            "kind": self.kind,
            "tag": self.effect.kind.value,
            "name": self.effect.name,
            "description": self.effect.description,
            "affected": [list(p) for p in self.affected],
            "time_delta_ms": self.time_delta_ms,
        }


def apply_effect(*, state: GameState, spec: EffectSpec, kind: EventKindName, rng: random.Random) -> FiredEvent:
    """Run one effect against the game state."""

    affected: list[Position] = []
    time_delta = 0
    effect = spec.kind

    if effect == EffectKind.time_bonus:
        time_delta = state.time.credit(TIME_BONUS_MS, phase_bonus=state.phase.bonus)
    elif effect == EffectKind.clear_bombs:
        affected = state.hazards.clear_bombs()
    elif effect == EffectKind.unfreeze:
        affected = state.hazards.unfreeze_all()
    elif effect == EffectKind.bonus_tile:
        tile = spawn_bonus_tile(grid=state.grid, hazards=state.hazards, rng=rng)
        if tile is not None:
            affected = [tile.pos]
    elif effect == EffectKind.score_bonus:
        state.score += SCORE_BONUS
    elif effect == EffectKind.time_drain:
        time_delta = state.time.credit(-TIME_DRAIN_MS)
    elif effect == EffectKind.bomb:
        pos = spawn_bomb(grid=state.grid, hazards=state.hazards, rng=rng)
        if pos is not None:
            affected = [pos]
    elif effect == EffectKind.freeze:
        pos = freeze_random_tile(grid=state.grid, hazards=state.hazards, rng=rng)
        if pos is not None:
            affected = [pos]
    elif effect == EffectKind.shuffle:
        shuffle_tiles(grid=state.grid, hazards=state.hazards, rng=rng)
        affected = state.grid.occupied_positions()
    elif effect == EffectKind.possess:
        tile = possess_random_tile(grid=state.grid, rng=rng)
        if tile is not None:
            affected = [tile.pos]
    else:
        raise ValueError(f"Unknown effect: {effect}")

    return FiredEvent(kind=kind, effect=spec, affected=affected, time_delta_ms=time_delta)


class EventScheduler:
    """One weighted draw per successful move, once the opening moves are over.

    The roll is checked against cumulative thresholds: below `good_event_chance`
    fires a good effect, below `good + bad` fires a bad one, anything above
    fires nothing.
    """

    def __init__(self, rng: random.Random) -> None:
        self.rng = rng

    def maybe_fire(self, state: GameState) -> FiredEvent | None:
        if state.move_count < EVENTS_AFTER_MOVES:
            return None

        good = state.config.good_event_chance
        bad = state.config.bad_event_chance
        roll = self.rng.random()

        if roll < good:
            kind: EventKindName = "good"
            spec = self.rng.choice(GOOD_EFFECTS)
        elif roll < good + bad:
            kind = "bad"
            spec = self.rng.choice(BAD_EFFECTS)
        else:
            return None

        fired = apply_effect(state=state, spec=spec, kind=kind, rng=self.rng)
        logger.info("event fired: %s/%s affected=%s", kind, spec.kind.value, fired.affected)
        return fired
