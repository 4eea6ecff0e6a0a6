from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from chronotiles.config import GRID_SIZE

Position = tuple[int, int]


@dataclass(slots=True, eq=False)
class Tile:
    # Identity equality: two tiles with the same value are still different tiles.
    row: int
    col: int
    value: int

    @property
    def pos(self) -> Position:
        return (self.row, self.col)


def in_bounds(row: int, col: int) -> bool:
    return 0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE


def all_positions() -> list[Position]:
    return [(r, c) for r in range(GRID_SIZE) for c in range(GRID_SIZE)]


class Grid:
    """The tile collection. The 4x4 cell view is always derived from it."""

    def __init__(self, tiles: Iterable[Tile] = ()) -> None:
        self.tiles: list[Tile] = []
        for t in tiles:
            self.add_tile(t.row, t.col, t.value)

    @classmethod
    def from_rows(cls, rows: list[list[int]]) -> "Grid":
        """Build a grid from a 4x4 value matrix (0 = empty)."""

        if len(rows) != GRID_SIZE or any(len(row) != GRID_SIZE for row in rows):
            raise ValueError(f"Board must be {GRID_SIZE}x{GRID_SIZE}")
        grid = cls()
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                if value:
                    grid.add_tile(r, c, value)
        return grid

    def cells(self) -> list[list[Tile | None]]:
        view: list[list[Tile | None]] = [[None] * GRID_SIZE for _ in range(GRID_SIZE)]
        for t in self.tiles:
            view[t.row][t.col] = t
        return view

    def rows(self) -> list[list[int]]:
        return [[t.value if t else 0 for t in row] for row in self.cells()]

    def tile_at(self, row: int, col: int) -> Tile | None:
        return next((t for t in self.tiles if t.row == row and t.col == col), None)

    def is_empty(self, row: int, col: int) -> bool:
        return self.tile_at(row, col) is None

    def empty_cells(self) -> list[Position]:
        cells = self.cells()
        return [(r, c) for r, c in all_positions() if cells[r][c] is None]

    def occupied_positions(self) -> list[Position]:
        return [t.pos for t in self.tiles]

    def add_tile(self, row: int, col: int, value: int) -> Tile:
        if not in_bounds(row, col):
            raise ValueError(f"Position out of bounds: ({row}, {col})")
        if not self.is_empty(row, col):
            raise ValueError(f"Cell already occupied: ({row}, {col})")
        tile = Tile(row=row, col=col, value=value)
        self.tiles.append(tile)
        return tile

    def remove_tile(self, tile: Tile) -> None:
        self.tiles = [t for t in self.tiles if t is not tile]

    def remove_at(self, row: int, col: int) -> Tile | None:
        tile = self.tile_at(row, col)
        if tile is not None:
            self.remove_tile(tile)
        return tile

    def total_value(self) -> int:
        return sum(t.value for t in self.tiles)

    def max_value(self) -> int:
        return max((t.value for t in self.tiles), default=0)

    def has_adjacent_match(self) -> bool:
        cells = self.cells()
        for r, c in all_positions():
            tile = cells[r][c]
            if tile is None:
                continue
            right = cells[r][c + 1] if c + 1 < GRID_SIZE else None
            down = cells[r + 1][c] if r + 1 < GRID_SIZE else None
            if (right is not None and right.value == tile.value) or (down is not None and down.value == tile.value):
                return True
        return False

    def is_stuck(self) -> bool:
        return not self.empty_cells() and not self.has_adjacent_match()
