from __future__ import annotations

import random
from dataclasses import dataclass

from chronotiles.config import BOMB_COUNTDOWN, BONUS_TILE_VALUE, GRID_SIZE
from chronotiles.core.grid import Grid, Position, Tile, all_positions, in_bounds


def blast_area(row: int, col: int) -> list[Position]:
    """The 3x3 neighbourhood around (row, col), clipped to the board."""

    return [
        (row + dr, col + dc)
        for dr in (-1, 0, 1)
        for dc in (-1, 0, 1)
        if in_bounds(row + dr, col + dc)
    ]


@dataclass(frozen=True, slots=True)
class HazardSnapshot:
    frozen: frozenset[Position]
    bombs: tuple[tuple[Position, int], ...]
    bonus: frozenset[Position]


class HazardState:
    """Per-cell hazard markers.

    `bombs[r][c]` holds the countdown for a bomb at (r, c), or None. A cell is
    never frozen and a bomb at the same time.
    """

    def __init__(self) -> None:
        self.frozen: list[list[bool]] = [[False] * GRID_SIZE for _ in range(GRID_SIZE)]
        self.bombs: list[list[int | None]] = [[None] * GRID_SIZE for _ in range(GRID_SIZE)]
        self.bonus: list[list[bool]] = [[False] * GRID_SIZE for _ in range(GRID_SIZE)]

    # --- queries ---

    def is_frozen(self, pos: Position) -> bool:
        r, c = pos
        return self.frozen[r][c]

    def bomb_at(self, pos: Position) -> int | None:
        r, c = pos
        return self.bombs[r][c]

    def is_bomb(self, pos: Position) -> bool:
        return self.bomb_at(pos) is not None

    def is_bonus(self, pos: Position) -> bool:
        r, c = pos
        return self.bonus[r][c]

    def frozen_positions(self) -> list[Position]:
        return [p for p in all_positions() if self.is_frozen(p)]

    def bomb_positions(self) -> list[Position]:
        return [p for p in all_positions() if self.is_bomb(p)]

    def bonus_positions(self) -> list[Position]:
        return [p for p in all_positions() if self.is_bonus(p)]

    # --- single-cell mutators ---

    def freeze(self, pos: Position) -> None:
        r, c = pos
        self.bombs[r][c] = None
        self.frozen[r][c] = True

    def place_bomb(self, pos: Position, countdown: int = BOMB_COUNTDOWN) -> None:
        r, c = pos
        self.frozen[r][c] = False
        self.bombs[r][c] = countdown

    def clear_bomb(self, pos: Position) -> None:
        r, c = pos
        self.bombs[r][c] = None

    def mark_bonus(self, pos: Position) -> None:
        r, c = pos
        self.bonus[r][c] = True

    def clear_bonus(self, pos: Position) -> None:
        r, c = pos
        self.bonus[r][c] = False

    def clear_at(self, pos: Position) -> None:
        r, c = pos
        self.frozen[r][c] = False
        self.bombs[r][c] = None
        self.bonus[r][c] = False

    def relocate(self, src: Position, dst: Position) -> None:
        """Carry every marker from `src` to `dst` after a tile slid."""

        (sr, sc), (dr, dc) = src, dst
        self.frozen[dr][dc] = self.frozen[sr][sc]
        self.bombs[dr][dc] = self.bombs[sr][sc]
        self.bonus[dr][dc] = self.bonus[sr][sc]
        self.clear_at(src)

    # --- board-wide mutators ---

    def unfreeze_all(self) -> list[Position]:
        cleared = self.frozen_positions()
        for r, c in cleared:
            self.frozen[r][c] = False
        return cleared

    def clear_bombs(self) -> list[Position]:
        cleared = self.bomb_positions()
        for pos in cleared:
            self.clear_bomb(pos)
        return cleared

    def clear_all(self) -> None:
        for pos in all_positions():
            self.clear_at(pos)

    def tick_bombs(self) -> list[Position]:
        """Decrement every countdown; returns (and clears) the bombs that hit zero."""

        expired: list[Position] = []
        for r, c in all_positions():
            countdown = self.bombs[r][c]
            if countdown is None:
                continue
            if countdown - 1 <= 0:
                self.bombs[r][c] = None
                expired.append((r, c))
            else:
                self.bombs[r][c] = countdown - 1
        return expired

    def snapshot(self) -> HazardSnapshot:
        bombs: list[tuple[Position, int]] = []
        for r, c in all_positions():
            countdown = self.bombs[r][c]
            if countdown is not None:
                bombs.append(((r, c), countdown))
        return HazardSnapshot(
            frozen=frozenset(self.frozen_positions()),
            bombs=tuple(bombs),
            bonus=frozenset(self.bonus_positions()),
        )

    def restore(self, snap: HazardSnapshot) -> None:
        self.clear_all()
        for pos in snap.frozen:
            self.freeze(pos)
        for pos, countdown in snap.bombs:
            self.place_bomb(pos, countdown)
        for pos in snap.bonus:
            self.mark_bonus(pos)


def explode(*, grid: Grid, hazards: HazardState, row: int, col: int) -> list[Tile]:
    """Destroy every tile in the blast area and wipe its hazards.

    The time penalty is the caller's concern. Returns the destroyed tiles.
    """

    destroyed: list[Tile] = []
    for pos in blast_area(row, col):
        tile = grid.remove_at(*pos)
        if tile is not None:
            destroyed.append(tile)
        hazards.clear_at(pos)
    return destroyed


# --- event-driven hazard effects ---


def spawn_bomb(*, grid: Grid, hazards: HazardState, rng: random.Random) -> Position | None:
    candidates = [t for t in grid.tiles if not hazards.is_bomb(t.pos) and not hazards.is_frozen(t.pos)]
    if not candidates:
        return None
    tile = rng.choice(candidates)
    hazards.place_bomb(tile.pos)
    return tile.pos


def freeze_random_tile(*, grid: Grid, hazards: HazardState, rng: random.Random) -> Position | None:
    candidates = [t for t in grid.tiles if not hazards.is_frozen(t.pos) and not hazards.is_bomb(t.pos)]
    if not candidates:
        return None
    tile = rng.choice(candidates)
    hazards.freeze(tile.pos)
    return tile.pos


def spawn_bonus_tile(*, grid: Grid, hazards: HazardState, rng: random.Random) -> Tile | None:
    empty = grid.empty_cells()
    if not empty:
        return None
    row, col = rng.choice(empty)
    tile = grid.add_tile(row, col, BONUS_TILE_VALUE)
    hazards.mark_bonus(tile.pos)
    return tile


def shuffle_tiles(*, grid: Grid, hazards: HazardState, rng: random.Random) -> None:
    """Permute tiles over the cells they already occupy; all hazards are dropped."""

    positions = grid.occupied_positions()
    rng.shuffle(positions)
    for tile, (row, col) in zip(grid.tiles, positions, strict=True):
        tile.row, tile.col = row, col
    hazards.clear_all()


def possess_random_tile(*, grid: Grid, rng: random.Random) -> Tile | None:
    candidates = [t for t in grid.tiles if t.value > 2]
    if not candidates:
        return None
    tile = rng.choice(candidates)
    tile.value = 2
    return tile
