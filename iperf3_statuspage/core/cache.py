"""
iperf3_statuspage/core/cache.py
═══════════════════════════════════════════════════════════════════════════
Single-slot result store.
  • Only the refresher calls set()
  • Only the query service / routers call get()
  • Every operation runs under one threading lock → a reference swap,
    never a partial write, so hold time does not depend on report size
  • Failed refreshes never call set() → the last good report stays valid
═══════════════════════════════════════════════════════════════════════════
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from iperf3_statuspage.core.models import Iperf3Report


@dataclass(frozen=True)
class CachedResult:
    report:      Iperf3Report
    captured_at: float  # epoch seconds

    def age(self, now: float) -> float:
        """Seconds between capture and `now`, never negative."""
        return max(0.0, now - self.captured_at)


class ResultStore:
    """Holds zero or one CachedResult. One instance per app, injected."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._entry: Optional[CachedResult] = None

    def get(self) -> Optional[CachedResult]:
        """Current entry, or None if never set / cleared."""
        with self._lock:
            return self._entry

    def set(self, report: Iperf3Report, captured_at: Optional[float] = None) -> CachedResult:
        """Atomically replace the cached report. The previous one is dropped."""
        entry = CachedResult(
            report=report,
            captured_at=self._clock() if captured_at is None else captured_at,
        )
        with self._lock:
            self._entry = entry
        return entry

    def clear(self) -> None:
        """Back to the never-populated state."""
        with self._lock:
            self._entry = None

    def summary(self) -> dict:
        """Metadata only, safe to expose in /health."""
        entry = self.get()
        if entry is None:
            return {}
        return {
            "captured_at": entry.captured_at,
            "age_s":       round(entry.age(self._clock()), 1),
            "report_time": entry.report.display_time,
        }
