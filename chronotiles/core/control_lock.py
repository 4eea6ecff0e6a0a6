from __future__ import annotations

from dataclasses import dataclass

from chronotiles.config import LOCK_DURATION_MS, LOCK_FAILURE_THRESHOLD


@dataclass(slots=True)
class ControlLock:
    """Temporarily disables input after repeated failed moves."""

    consecutive_failures: int = 0
    locked_until_ms: float | None = None

    def is_locked(self, now_ms: float) -> bool:
        return self.locked_until_ms is not None and now_ms < self.locked_until_ms

    def record_failure(self, now_ms: float) -> bool:
        """Count a failed move; True if this failure engaged the lock."""

        self.consecutive_failures += 1
        if self.consecutive_failures < LOCK_FAILURE_THRESHOLD:
            return False
        # Counter restarts so unlocking needs three fresh failures to re-lock.
        self.consecutive_failures = 0
        self.locked_until_ms = now_ms + LOCK_DURATION_MS
        return True

    def record_success(self) -> None:
        self.consecutive_failures = 0

    def release_if_expired(self, now_ms: float) -> bool:
        if self.locked_until_ms is None or now_ms < self.locked_until_ms:
            return False
        self.locked_until_ms = None
        return True
