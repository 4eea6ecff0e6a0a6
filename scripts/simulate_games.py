"""Headless balance simulation.

Plays seeded games on every difficulty with a simple policy and prints a
per-difficulty summary (score, moves, duration, events, explosions).

Usage:
    uv run python scripts/simulate_games.py --games 50 --think-ms 400
    uv run python scripts/simulate_games.py --csv results.csv
    uv run python scripts/simulate_games.py --games 5 --show-last

The policy tries directions in a fixed order and pays the bad-move penalty
for every direction that does not move. Deterministic for a given --seed.
"""

from __future__ import annotations

import argparse
import random
from dataclasses import asdict, dataclass
from pathlib import Path

import pandas as pd

from chronotiles.config import Difficulty
from chronotiles.core.board_text import format_board, format_status
from chronotiles.core.merge import Direction
from chronotiles.engine import GameEngine

# Corner-hugging preference order; the policy takes the first direction that moves.
PREFERENCE: tuple[Direction, ...] = (Direction.down, Direction.left, Direction.right, Direction.up)
MAX_MOVES = 5_000


@dataclass(frozen=True)
class GameRecord:
    difficulty: str
    seed: int
    score: int
    moves: int
    max_tile: int
    duration_s: float
    good_events: int
    bad_events: int
    explosions: int
    rewinds_left: int


def play_one(*, difficulty: Difficulty, seed: int, think_ms: float, show: bool = False) -> GameRecord:
    rng = random.Random(seed)
    engine = GameEngine.new_game(difficulty, rng=rng)
    state = engine.state
    good = bad = explosions = 0

    while not state.over and state.move_count < MAX_MOVES:
        engine.advance(think_ms)
        if state.over:
            break
        for direction in PREFERENCE:
            result = engine.move(direction)
            if result.moved:
                explosions += len(result.explosions)
                if result.event is not None:
                    good += result.event.kind == "good"
                    bad += result.event.kind == "bad"
                break
        engine.drain_events()

    if show:
        print(f"[{difficulty.value} seed={seed}] {format_status(state)}")
        print(format_board(state))

    return GameRecord(
        difficulty=difficulty.value,
        seed=seed,
        score=state.score,
        moves=state.move_count,
        max_tile=state.grid.max_value(),
        duration_s=state.clock_ms / 1000.0,
        good_events=good,
        bad_events=bad,
        explosions=explosions,
        rewinds_left=state.rewind.charges,
    )


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--games", type=int, default=20, help="games per difficulty")
    parser.add_argument("--seed", type=int, default=1234)
    parser.add_argument("--think-ms", type=float, default=400.0, help="play time spent before each move")
    parser.add_argument("--csv", type=Path, default=None, help="write per-game rows to this file")
    parser.add_argument("--show-last", action="store_true", help="print the final board of each difficulty's last game")
    args = parser.parse_args()

    seeds = random.Random(args.seed)
    records: list[GameRecord] = []
    for difficulty in Difficulty:
        for i in range(args.games):
            show = args.show_last and i == args.games - 1
            seed = seeds.randint(1, 2**31 - 1)
            records.append(play_one(difficulty=difficulty, seed=seed, think_ms=args.think_ms, show=show))

    df = pd.DataFrame([asdict(rec) for rec in records])
    summary = df.groupby("difficulty")[["score", "moves", "max_tile", "duration_s", "explosions"]].agg(["mean", "max"])
    print(summary.round(1).to_string())

    if args.csv is not None:
        df.to_csv(args.csv, index=False)
        print(f"wrote {len(df)} rows to {args.csv}")


if __name__ == "__main__":
    main()
