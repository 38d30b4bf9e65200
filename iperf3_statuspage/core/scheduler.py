"""
iperf3_statuspage/core/scheduler.py
═══════════════════════════════════════════════════════════════════════════════
Background refresher with strict guarantees:

  1. ONE loop per Refresher (guarded by _running flag)
  2. ONE cycle at a time (asyncio.Lock: a second caller skips, never queues)
  3. Run immediately on startup, then on a fixed-period tick
  4. Overrun → next tick fires as soon as the cycle ends; missed ticks dropped
  5. Failed run / bad JSON → keep last valid result, never overwrite
  6. The iperf3 call happens outside the store lock → readers never wait on it

Cycle:  Idle → Invoking → ParseSuccess → Committed → Idle
                        ↘ ParseFailure → Idle
                        ↘ InvokeFailure → Idle
═══════════════════════════════════════════════════════════════════════════════
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from iperf3_statuspage.core.cache import ResultStore
from iperf3_statuspage.core.errors import MeasurementError, ReportParseError
from iperf3_statuspage.core.models import parse_report
from iperf3_statuspage.runners.base import MeasurementRunner, Target

log = logging.getLogger("scheduler")

MIN_INTERVAL_S = 1.0
_TICK_S        = 1e-6


class Refresher:
    def __init__(
        self,
        store: ResultStore,
        runner: MeasurementRunner,
        target: Target,
        interval_s: float,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.runner = runner
        self.target = target
        self.interval_s = max(float(interval_s), MIN_INTERVAL_S)
        self._clock = clock
        self._cycle_lock = asyncio.Lock()
        self._running = False

        self.cycles = 0
        self.successes = 0
        self.failures = 0
        self.consecutive_failures = 0
        self.last_error: Optional[str] = None
        self.last_success_at: Optional[float] = None

    # ── One cycle ─────────────────────────────────────────────────────────────

    async def run_cycle(self) -> bool:
        """Invoke → parse → store. True if the store was updated."""
        if self._cycle_lock.locked():
            log.warning("Previous iperf3 run still in progress — skipping cycle")
            return False

        async with self._cycle_lock:
            self.cycles += 1
            t0 = time.monotonic()
            try:
                raw = await self.runner.run(self.target)
                report = parse_report(raw)
            except (MeasurementError, ReportParseError) as ex:
                self._failed(str(ex))
                return False

            entry = self.store.set(report, self._capture_time())
            self.successes += 1
            self.consecutive_failures = 0
            self.last_error = None
            self.last_success_at = entry.captured_at
            log.info(
                f"Iperf3 result updated at {report.display_time} "
                f"({time.monotonic() - t0:.1f}s, target {self.target})"
            )
            return True

    def _capture_time(self) -> float:
        # Consecutive successes must order even on a coarse or frozen clock
        ts = self._clock()
        if self.last_success_at is not None and ts <= self.last_success_at:
            ts = self.last_success_at + _TICK_S
        return ts

    def _failed(self, message: str) -> None:
        self.failures += 1
        self.consecutive_failures += 1
        self.last_error = message
        log.error(f"{message} (consecutive failures: {self.consecutive_failures}, keeping last result)")

    # ── Loop ──────────────────────────────────────────────────────────────────

    async def run_forever(self) -> None:
        """
        Called once at startup. Runs until cancelled.
        Never starts a second loop on the same Refresher.
        """
        if self._running:
            log.warning("Refresher already running — ignoring duplicate start")
            return
        self._running = True
        loop = asyncio.get_running_loop()
        log.info(f"Refresher started: {self.target} every {self.interval_s:g}s")

        try:
            # Run immediately on startup so the cache is warm before the first tick
            next_tick = loop.time() + self.interval_s
            await self._guarded_cycle()

            while True:
                delay = next_tick - loop.time()
                if delay > 0:
                    await asyncio.sleep(delay)
                await self._guarded_cycle()

                next_tick += self.interval_s
                now = loop.time()
                if next_tick < now:
                    log.warning(f"iperf3 run overran the {self.interval_s:g}s interval — next run starts now")
                    next_tick = now
        finally:
            self._running = False
            log.info("Refresher stopped")

    async def _guarded_cycle(self) -> None:
        try:
            await self.run_cycle()
        except asyncio.CancelledError:
            raise
        except Exception as ex:
            self._failed(f"Cycle error (continuing): {ex!r}")

    def stats(self) -> dict:
        return {
            "running":              self._running,
            "interval_s":           self.interval_s,
            "cycles":               self.cycles,
            "successes":            self.successes,
            "failures":             self.failures,
            "consecutive_failures": self.consecutive_failures,
            "last_error":           self.last_error,
            "last_success_at":      self.last_success_at,
        }
