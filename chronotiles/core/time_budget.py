from __future__ import annotations

from dataclasses import dataclass

# Base refund per merged value, before the difficulty multiplier.
TIME_BONUSES: dict[int, int] = {
    4: 200,
    8: 350,
    16: 500,
    32: 750,
    64: 1000,
    128: 1500,
    256: 2000,
    512: 3000,
    1024: 4500,
    2048: 6000,
}
DEFAULT_TIME_BONUS = 100


def merge_time_bonus(value: int, *, multiplier: float) -> float:
    return TIME_BONUSES.get(value, DEFAULT_TIME_BONUS) * multiplier


@dataclass(slots=True)
class TimeBudget:
    """The player's countdown, always within [0, max_ms]."""

    remaining: float
    max_ms: int

    def __post_init__(self) -> None:
        self.remaining = self._clamp(self.remaining)

    def _clamp(self, value: float) -> float:
        return min(float(self.max_ms), max(0.0, value))

    def credit(self, ms: float, *, phase_bonus: float = 1.0) -> int:
        """Add (or, when negative, remove) time.

        Only positive amounts are scaled by the phase bonus. Returns the scaled
        amount, before clamping.
        """

        delta = round(ms * phase_bonus) if ms > 0 else round(ms)
        self.remaining = self._clamp(self.remaining + delta)
        return delta

    def tick(self, delta_ms: float) -> bool:
        """Count down; True when the budget is exhausted."""

        self.remaining = self._clamp(self.remaining - delta_ms)
        return self.remaining <= 0

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    @property
    def fraction(self) -> float:
        return self.remaining / self.max_ms
