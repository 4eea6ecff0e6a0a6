from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from chronotiles.config import HISTORY_DEPTH, MILESTONE_VALUES, REWIND_CHARGE_CAP, STARTING_REWIND_CHARGES
from chronotiles.core.hazards import HazardSnapshot


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Full game state as of the end of one move."""

    tiles: tuple[tuple[int, int, int], ...]  # (row, col, value)
    score: int
    time_remaining: float
    hazards: HazardSnapshot


class HistoryStack:
    def __init__(self, depth: int = HISTORY_DEPTH) -> None:
        self._entries: deque[HistoryEntry] = deque(maxlen=depth)

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, entry: HistoryEntry) -> None:
        # deque(maxlen=...) evicts the oldest entry.
        self._entries.append(entry)

    def can_rewind(self) -> bool:
        return len(self._entries) >= 2

    def pop_to_previous(self) -> HistoryEntry:
        """Drop the newest entry ("now") and return the one before it."""

        if not self.can_rewind():
            raise ValueError("Nothing to rewind")
        self._entries.pop()
        return self._entries[-1]

    def newest(self) -> HistoryEntry | None:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()


@dataclass(slots=True)
class RewindState:
    charges: int = STARTING_REWIND_CHARGES
    progress: float = 0.0
    cap: int = field(default=REWIND_CHARGE_CAP)

    def recharge(self, delta_ms: float, *, recharge_time_ms: float) -> bool:
        """Passive regeneration; True when a charge was granted."""

        if self.charges >= self.cap:
            return False
        self.progress += delta_ms / recharge_time_ms
        if self.progress < 1.0:
            return False
        self.charges += 1
        self.progress = 0.0
        return True

    def grant_for_merge(self, value: int) -> bool:
        # Milestone grants are not held to the passive cap.
        if value not in MILESTONE_VALUES:
            return False
        self.charges += 1
        return True

    def consume(self) -> bool:
        if self.charges <= 0:
            return False
        self.charges -= 1
        return True
