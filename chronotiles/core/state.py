from __future__ import annotations

from dataclasses import dataclass, field

from chronotiles.config import Difficulty, DifficultyConfig, difficulty_config
from chronotiles.core.control_lock import ControlLock
from chronotiles.core.grid import Grid, Tile
from chronotiles.core.hazards import HazardState
from chronotiles.core.history import HistoryEntry, HistoryStack, RewindState
from chronotiles.core.phase_clock import PhaseClock
from chronotiles.core.time_budget import TimeBudget


@dataclass(slots=True)
class GameState:
    """Everything one game mutates, passed explicitly to the engine's steps."""

    difficulty: Difficulty
    config: DifficultyConfig
    grid: Grid = field(default_factory=Grid)
    hazards: HazardState = field(default_factory=HazardState)
    time: TimeBudget = field(default_factory=lambda: TimeBudget(remaining=0, max_ms=1))
    phase: PhaseClock = field(default_factory=PhaseClock)
    history: HistoryStack = field(default_factory=HistoryStack)
    rewind: RewindState = field(default_factory=RewindState)
    lock: ControlLock = field(default_factory=ControlLock)
    score: int = 0
    move_count: int = 0
    # Play time since the game started; every timed rule reads this clock.
    clock_ms: float = 0.0
    over: bool = False

    @classmethod
    def new(cls, difficulty: Difficulty | str) -> "GameState":
        config = difficulty_config(difficulty)
        return cls(
            difficulty=Difficulty(difficulty),
            config=config,
            time=TimeBudget(remaining=config.start_time, max_ms=config.max_time),
        )

    def capture(self) -> HistoryEntry:
        return HistoryEntry(
            tiles=tuple(sorted((t.row, t.col, t.value) for t in self.grid.tiles)),
            score=self.score,
            time_remaining=self.time.remaining,
            hazards=self.hazards.snapshot(),
        )

    def restore(self, entry: HistoryEntry) -> None:
        self.grid = Grid(Tile(row=r, col=c, value=v) for r, c, v in entry.tiles)
        self.score = entry.score
        self.time.remaining = entry.time_remaining
        self.hazards.restore(entry.hazards)
