"""
health/unhealthy.py - Suppression of recently failed endpoints.

An address lands here when a probe against it fails and is skipped by
the selector until the next sweep. The sweep is a global amnesty that
clears the whole set every reset interval; there is no per-entry expiry.
An address suppressed just before a sweep gets almost no cooldown.
"""

import asyncio
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from core.constants import UNHEALTHY_RESET_INTERVAL_MS, ErrorCode
from core.logging import get_logger
from core.time import now_utc

logger = get_logger(__name__)

SuppressionListener = Callable[[str], None]


class UnhealthyCache:
    """
    Set of suppressed endpoint addresses plus one "last cleared" stamp.

    suppress/recover/sweep are serialized by a lock, so a sweep cannot
    lose a concurrent add: the add lands either before the sweep (and is
    cleared) or after it (and survives until the next one). Reads sweep
    lazily when the interval has elapsed, so the invariant holds even
    without the background task.
    """

    def __init__(
        self,
        reset_interval_ms: int = UNHEALTHY_RESET_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.reset_interval_ms = reset_interval_ms
        self._clock = clock
        self._lock = threading.Lock()
        self._suppressed: dict[str, Optional[ErrorCode]] = {}
        self._last_cleared_mono = clock()
        self._last_cleared_at: datetime = now_utc()
        self._listeners: list[SuppressionListener] = []
        self._sweeper: asyncio.Task | None = None

        self.total_suppressions = 0
        self.total_sweeps = 0

    @property
    def reset_interval_seconds(self) -> float:
        return self.reset_interval_ms / 1000

    @property
    def last_cleared_at(self) -> datetime:
        return self._last_cleared_at

    def add_listener(self, listener: SuppressionListener) -> None:
        """Call listener(address) whenever an address is newly suppressed."""
        self._listeners.append(listener)

    def _sweep_locked(self) -> int:
        cleared = len(self._suppressed)
        self._suppressed.clear()
        self._last_cleared_mono = self._clock()
        self._last_cleared_at = now_utc()
        self.total_sweeps += 1
        return cleared

    def _sweep_if_due_locked(self) -> None:
        elapsed_ms = (self._clock() - self._last_cleared_mono) * 1000
        if elapsed_ms >= self.reset_interval_ms:
            cleared = self._sweep_locked()
            if cleared:
                logger.info(
                    f"Unhealthy cache swept: {cleared} endpoints eligible again",
                    extra={"context": {"cleared": cleared, "trigger": "lazy"}},
                )

    def is_suppressed(self, address: str) -> bool:
        with self._lock:
            self._sweep_if_due_locked()
            return address in self._suppressed

    def suppress(self, address: str, reason: Optional[ErrorCode] = None) -> None:
        """Record a failed probe against address."""
        with self._lock:
            self._sweep_if_due_locked()
            is_new = address not in self._suppressed
            self._suppressed[address] = reason
            if is_new:
                self.total_suppressions += 1

        if is_new:
            logger.info(
                f"Suppressed endpoint: {address}",
                extra={"context": {
                    "address": address,
                    "reason": reason.value if reason else None,
                }},
            )
            for listener in self._listeners:
                listener(address)

    def recover(self, address: str) -> bool:
        """Drop one address ahead of the sweep. Returns True if it was present."""
        with self._lock:
            removed = self._suppressed.pop(address, _MISSING) is not _MISSING

        if removed:
            logger.info(f"Recovered endpoint: {address}", extra={"context": {"address": address}})
        return removed

    def sweep(self) -> int:
        """Clear the entire set. Returns the number of addresses cleared."""
        with self._lock:
            cleared = self._sweep_locked()

        if cleared:
            logger.info(
                f"Unhealthy cache swept: {cleared} endpoints eligible again",
                extra={"context": {"cleared": cleared, "trigger": "scheduled"}},
            )
        return cleared

    def snapshot(self) -> dict[str, Optional[str]]:
        """Currently suppressed addresses with their reason codes."""
        with self._lock:
            self._sweep_if_due_locked()
            return {
                address: reason.value if reason else None
                for address, reason in self._suppressed.items()
            }

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and self.is_suppressed(address)

    def __len__(self) -> int:
        with self._lock:
            self._sweep_if_due_locked()
            return len(self._suppressed)

    # -------------------------------------------------------------------------
    # Scheduled sweep
    # -------------------------------------------------------------------------

    async def _run_sweeper(self) -> None:
        while True:
            await asyncio.sleep(self.reset_interval_seconds)
            self.sweep()

    def start(self) -> None:
        """Start the periodic sweeper on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._run_sweeper())
            logger.debug(
                "Unhealthy cache sweeper started",
                extra={"context": {"interval_ms": self.reset_interval_ms}},
            )

    async def stop(self) -> None:
        """Stop the periodic sweeper."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    @property
    def running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def get_stats(self) -> dict:
        return {
            "suppressed": len(self),
            "total_suppressions": self.total_suppressions,
            "total_sweeps": self.total_sweeps,
            "last_cleared_at": self._last_cleared_at.isoformat(),
            "reset_interval_ms": self.reset_interval_ms,
        }


_MISSING = object()
