from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time copy of a component's counters."""

    processed: int = 0
    transformed: int = 0


class CallCounter:
    """Monotonic per-instance call counters, safe under concurrent calls."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._processed = 0
        self._transformed = 0

    def record(self, transformed: bool) -> None:
        """Count one finished call; *transformed* marks calls that changed text."""
        with self._lock:
            self._processed += 1
            if transformed:
                self._transformed += 1

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return StatsSnapshot(
                processed=self._processed,
                transformed=self._transformed,
            )
