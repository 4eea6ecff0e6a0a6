from __future__ import annotations

from dataclasses import dataclass

from chronotiles.config import GRID_SIZE
from chronotiles.core.state import GameState


@dataclass(frozen=True, slots=True)
class BoardTextOptions:
    cell_width: int = 6
    show_hazards: bool = True


def _cell_text(state: GameState, row: int, col: int, *, show_hazards: bool) -> str:
    tile = state.grid.tile_at(row, col)
    if tile is None:
        return "."
    text = str(tile.value)
    if not show_hazards:
        return text
    pos = (row, col)
    # Markers: * frozen, !n bomb with countdown n, + bonus.
    if state.hazards.is_frozen(pos):
        text += "*"
    countdown = state.hazards.bomb_at(pos)
    if countdown is not None:
        text += f"!{countdown}"
    if state.hazards.is_bonus(pos):
        text += "+"
    return text


def format_board(state: GameState, options: BoardTextOptions = BoardTextOptions()) -> str:
    """Plain-text board for logs and the CLI scripts."""

    lines: list[str] = []
    for row in range(GRID_SIZE):
        cells = [
            _cell_text(state, row, col, show_hazards=options.show_hazards).rjust(options.cell_width)
            for col in range(GRID_SIZE)
        ]
        lines.append("".join(cells))
    return "\n".join(lines)


def format_status(state: GameState) -> str:
    phase = state.phase.current.value if state.phase.current is not None else "-"
    return (
        f"score={state.score} moves={state.move_count} "
        f"time={state.time.remaining / 1000:.1f}s/{state.time.max_ms / 1000:.0f}s "
        f"phase={phase} rewinds={state.rewind.charges}"
    )
