from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from chronotiles.config import GRID_SIZE
from chronotiles.core.grid import Grid, Position, Tile, in_bounds
from chronotiles.core.hazards import HazardState, explode


class Direction(StrEnum):
    up = "up"
    down = "down"
    left = "left"
    right = "right"


VECTORS: dict[Direction, tuple[int, int]] = {
    Direction.up: (-1, 0),
    Direction.down: (1, 0),
    Direction.left: (0, -1),
    Direction.right: (0, 1),
}


@dataclass(frozen=True, slots=True)
class Merge:
    value: int
    row: int
    col: int


@dataclass(slots=True)
class SlideOutcome:
    """What one slide/merge pass did to the board."""

    direction: Direction
    moved: bool = False
    merges: list[Merge] = field(default_factory=list)
    explosions: list[Position] = field(default_factory=list)

    @property
    def merge_score(self) -> int:
        return sum(m.value for m in self.merges)


def build_traversals(vector: tuple[int, int]) -> tuple[list[int], list[int]]:
    """Row and column visiting order, cells nearest the target wall first."""

    rows = list(range(GRID_SIZE))
    cols = list(range(GRID_SIZE))
    if vector[0] == 1:
        rows.reverse()
    if vector[1] == 1:
        cols.reverse()
    return rows, cols


def find_farthest_position(grid: Grid, row: int, col: int, vector: tuple[int, int]) -> tuple[Position, Position | None]:
    """Step from (row, col) along `vector` through empty cells.

    Returns the last empty cell reached (or the start) and the first blocking
    cell beyond it, which is None when the wall is hit.
    """

    dr, dc = vector
    prev = (row, col)
    cell = (row + dr, col + dc)
    while in_bounds(*cell) and grid.is_empty(*cell):
        prev = cell
        cell = (cell[0] + dr, cell[1] + dc)
    return prev, (cell if in_bounds(*cell) else None)


def slide(*, grid: Grid, hazards: HazardState, direction: Direction) -> SlideOutcome:
    """Run one directional pass over the board, mutating grid and hazards in place."""

    vector = VECTORS[direction]
    rows, cols = build_traversals(vector)
    outcome = SlideOutcome(direction=direction)
    merged: set[Tile] = set()

    for row in rows:
        for col in cols:
            tile = grid.tile_at(row, col)
            if tile is None or hazards.is_frozen((row, col)):
                continue

            farthest, nxt = find_farthest_position(grid, row, col, vector)
            target = grid.tile_at(*nxt) if nxt is not None else None

            if (
                target is not None
                and nxt is not None
                and target.value == tile.value
                and target not in merged
                and not hazards.is_frozen(nxt)
            ):
                target.value = tile.value * 2
                merged.add(target)
                grid.remove_tile(tile)
                hazards.clear_bonus((row, col))
                outcome.merges.append(Merge(value=target.value, row=nxt[0], col=nxt[1]))
                outcome.moved = True

                # A bomb that merges goes off on the spot, whatever its countdown.
                if hazards.is_bomb((row, col)) or hazards.is_bomb(nxt):
                    hazards.clear_bomb((row, col))
                    hazards.clear_bomb(nxt)
                    explode(grid=grid, hazards=hazards, row=nxt[0], col=nxt[1])
                    outcome.explosions.append(nxt)

            elif farthest != (row, col):
                tile.row, tile.col = farthest
                hazards.relocate((row, col), farthest)
                outcome.moved = True

    return outcome
