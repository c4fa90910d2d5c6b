"""
Fixed-window attempt counter for authentication-sensitive actions.

Each key (``"login:<ip>:<email>"`` and the like) owns one record of
``count`` and ``reset_at``. The first call for a key, or the first call after
its window has elapsed, opens a new window with ``count=1``; later calls
increment until ``limit`` is reached and are then refused until
``reset_at``. Bursts straddling a window boundary can reach ``2 * limit``,
which is acceptable for abuse throttling.

State lives in this process only. With several workers or instances every
process enforces its own budget; a deployment that needs a global bound has
to put a shared counter store behind ``check``.

A limiter is created once by the application (see ``brewrewards.main``) and
handed to routes through ``brewrewards.api.deps.get_rate_limiter``. Expired
records are dropped by ``sweep``, which ``start`` runs on an interval.
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


@dataclass(frozen=True)
class RateLimitRule:
    limit: int
    window_ms: int


RATE_LIMITS: dict[str, RateLimitRule] = {
    "LOGIN": RateLimitRule(limit=5, window_ms=60_000),
    "PASSWORD_RESET": RateLimitRule(limit=3, window_ms=300_000),
    "API_GENERAL": RateLimitRule(limit=100, window_ms=60_000),
    "API_SENSITIVE": RateLimitRule(limit=20, window_ms=60_000),
}


@dataclass
class _Record:
    count: int
    reset_at: float     # epoch seconds


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float     # epoch seconds
    limit: int

    @property
    def reset_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.reset_at, tz=timezone.utc)

    def retry_after(self, now: float) -> int:
        """Whole seconds until the window resets, never below zero."""
        return max(0, math.ceil(self.reset_at - now))


class RateLimiter:
    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._records: dict[str, _Record] = {}
        self._lock = threading.Lock()
        self._task: asyncio.Task | None = None

    def now(self) -> float:
        return self._clock()

    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        """Count one attempt for *key* and report whether it is allowed."""
        with self._lock:
            now = self._clock()
            record = self._records.get(key)

            if record is None or record.reset_at <= now:
                reset_at = now + window_ms / 1000
                self._records[key] = _Record(count=1, reset_at=reset_at)
                return RateLimitResult(
                    allowed=True, remaining=max(0, limit - 1), reset_at=reset_at, limit=limit,
                )

            if record.count >= limit:
                return RateLimitResult(
                    allowed=False, remaining=0, reset_at=record.reset_at, limit=limit,
                )

            record.count += 1
            return RateLimitResult(
                allowed=True, remaining=limit - record.count, reset_at=record.reset_at, limit=limit,
            )

    def check_rule(self, key: str, rule: RateLimitRule) -> RateLimitResult:
        return self.check(key, rule.limit, rule.window_ms)

    def sweep(self) -> int:
        """Drop every record whose window has passed. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, r in self._records.items() if r.reset_at <= now]
            for key in expired:
                del self._records[key]
        if expired:
            logger.debug("Rate limiter swept %d expired keys", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)

    # ── Lifecycle ────────────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        """Run ``sweep`` every *interval_seconds* on the current event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._sweep_loop(interval_seconds), name="rate-limiter-sweep",
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _sweep_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()
