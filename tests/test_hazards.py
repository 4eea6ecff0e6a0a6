from __future__ import annotations

import random
from collections import Counter

from chronotiles.core.grid import Grid
from chronotiles.core.hazards import (
    HazardState,
    blast_area,
    explode,
    freeze_random_tile,
    possess_random_tile,
    shuffle_tiles,
    spawn_bomb,
    spawn_bonus_tile,
)

FULL = [[2, 4, 8, 16], [32, 64, 128, 256], [2, 4, 8, 16], [32, 64, 128, 256]]


def test_blast_area_is_clipped_to_the_board() -> None:
    assert len(blast_area(1, 1)) == 9
    assert sorted(blast_area(0, 0)) == [(0, 0), (0, 1), (1, 0), (1, 1)]
    assert len(blast_area(0, 2)) == 6
    assert len(blast_area(3, 3)) == 4


def test_explode_removes_tiles_and_hazards_in_the_blast_only() -> None:
    grid = Grid.from_rows(FULL)
    hz = HazardState()
    hz.freeze((2, 2))
    hz.freeze((3, 3))
    hz.mark_bonus((0, 0))

    destroyed = explode(grid=grid, hazards=hz, row=1, col=1)

    assert len(destroyed) == 9
    assert len(grid.tiles) == 7
    assert grid.rows()[3] == [32, 64, 128, 256]
    assert not hz.is_frozen((2, 2))
    assert not hz.is_bonus((0, 0))
    assert hz.is_frozen((3, 3))


def test_freeze_and_bomb_are_exclusive_per_cell() -> None:
    hz = HazardState()
    hz.place_bomb((1, 1))
    hz.freeze((1, 1))
    assert hz.is_frozen((1, 1))
    assert not hz.is_bomb((1, 1))

    hz.place_bomb((1, 1))
    assert hz.is_bomb((1, 1))
    assert not hz.is_frozen((1, 1))


def test_tick_bombs_counts_down_and_reports_expired() -> None:
    hz = HazardState()
    hz.place_bomb((0, 0))
    hz.place_bomb((2, 2), countdown=1)

    assert hz.tick_bombs() == [(2, 2)]
    assert hz.bomb_at((0, 0)) == 2
    assert hz.bomb_at((2, 2)) is None

    assert hz.tick_bombs() == []
    assert hz.tick_bombs() == [(0, 0)]
    assert hz.bomb_positions() == []


def test_snapshot_restores_every_marker() -> None:
    hz = HazardState()
    hz.freeze((0, 1))
    hz.place_bomb((2, 3), countdown=2)
    hz.mark_bonus((3, 0))
    snap = hz.snapshot()

    hz.clear_all()
    hz.restore(snap)

    assert hz.frozen_positions() == [(0, 1)]
    assert hz.bomb_at((2, 3)) == 2
    assert hz.bonus_positions() == [(3, 0)]
    assert hz.snapshot() == snap


def test_spawn_bomb_and_freeze_skip_marked_tiles() -> None:
    grid = Grid.from_rows([[2, 4, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])
    hz = HazardState()
    hz.freeze((0, 0))

    assert spawn_bomb(grid=grid, hazards=hz, rng=random.Random(1)) == (0, 1)
    assert hz.bomb_at((0, 1)) == 3

    # Both tiles now carry a marker; nothing left to target.
    assert freeze_random_tile(grid=grid, hazards=hz, rng=random.Random(1)) is None
    assert spawn_bomb(grid=grid, hazards=hz, rng=random.Random(1)) is None


def test_spawn_bonus_tile_lands_on_an_empty_cell() -> None:
    grid = Grid.from_rows([[2, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])
    hz = HazardState()

    tile = spawn_bonus_tile(grid=grid, hazards=hz, rng=random.Random(5))

    assert tile is not None
    assert tile.value == 8
    assert tile.pos != (0, 0)
    assert hz.bonus_positions() == [tile.pos]

    full = Grid.from_rows(FULL)
    assert spawn_bonus_tile(grid=full, hazards=HazardState(), rng=random.Random(5)) is None


def test_shuffle_keeps_values_and_occupied_cells_and_drops_hazards() -> None:
    rows = [[2, 0, 4, 0], [0, 8, 0, 16], [32, 0, 0, 0], [0, 0, 0, 64]]
    grid = Grid.from_rows(rows)
    hz = HazardState()
    hz.freeze((0, 0))
    hz.place_bomb((1, 1))
    hz.mark_bonus((3, 3))
    before_cells = set(grid.occupied_positions())
    before_values = Counter(t.value for t in grid.tiles)

    shuffle_tiles(grid=grid, hazards=hz, rng=random.Random(3))

    assert set(grid.occupied_positions()) == before_cells
    assert Counter(t.value for t in grid.tiles) == before_values
    assert hz.snapshot().frozen == frozenset()
    assert hz.bomb_positions() == []
    assert hz.bonus_positions() == []


def test_possess_resets_a_tile_above_two() -> None:
    grid = Grid.from_rows([[2, 2, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])
    assert possess_random_tile(grid=grid, rng=random.Random(0)) is None

    grid.add_tile(3, 3, 64)
    tile = possess_random_tile(grid=grid, rng=random.Random(0))
    assert tile is not None
    assert tile.pos == (3, 3)
    assert grid.tile_at(3, 3).value == 2
