from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Phase(StrEnum):
    dawn = "dawn"
    day = "day"
    dusk = "dusk"
    night = "night"


PHASE_ORDER: tuple[Phase, ...] = (Phase.dawn, Phase.day, Phase.dusk, Phase.night)
PHASE_DURATION_MS = 30_000
CYCLE_MS = PHASE_DURATION_MS * len(PHASE_ORDER)

PHASE_BONUS: dict[Phase, float] = {
    Phase.dawn: 1.2,
    Phase.day: 1.0,
    Phase.dusk: 1.0,
    Phase.night: 0.8,
}


def phase_at(elapsed_ms: float) -> Phase:
    return PHASE_ORDER[int((elapsed_ms % CYCLE_MS) // PHASE_DURATION_MS)]


@dataclass(frozen=True, slots=True)
class PhaseChange:
    phase: Phase
    bonus: float


@dataclass(slots=True)
class PhaseClock:
    elapsed_ms: float = 0.0
    # Unset until the first advance() establishes it.
    current: Phase | None = None

    @property
    def bonus(self) -> float:
        if self.current is None:
            return 1.0
        return PHASE_BONUS[self.current]

    def advance(self, delta_ms: float) -> PhaseChange | None:
        self.elapsed_ms += delta_ms
        phase = phase_at(self.elapsed_ms)
        if phase == self.current:
            return None
        self.current = phase
        return PhaseChange(phase=phase, bonus=PHASE_BONUS[phase])
