"""Per-key fixed-window rate limiting for sensitive endpoint families.

Each key gets one window of *window_seconds* starting at its first request.
Within the window at most *max_requests* calls are admitted; further calls are
denied with ``remaining=0`` until ``reset_at``. An elapsed window is treated as
absent: the next call opens a fresh one.

Limiters are plain instances (no module-level singletons). Build one per
endpoint family with ``build_rate_limiters()`` so generation can be capped
more conservatively than listing endpoints.

Keys come from ``client_key()``: the first hop of ``X-Forwarded-For``, else
``X-Real-IP``, else ``"default"``. Without a trusted reverse proxy setting
those headers, every anonymous caller shares the ``"default"`` bucket.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Mapping

from synthgen.config import RateLimitsCfg
from synthgen.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

DEFAULT_KEY = "default"


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one admission check."""

    allowed: bool
    remaining: int
    reset_at: float
    limit: int

    def retry_after(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        return max(0, math.ceil(self.reset_at - now))

    def headers(self, now: float | None = None) -> dict[str, str]:
        """Standard rate-limit response headers for an HTTP layer."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after(now))
        return headers

    def to_dict(self) -> dict[str, object]:
        return {"allowed": self.allowed, "remaining": self.remaining, "resetAt": self.reset_at}


class RateLimiter:
    """Thread-safe in-memory limiter keyed by caller identity."""

    def __init__(
        self,
        window_seconds: float = 60.0,
        max_requests: int = 10,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            window_seconds: Length of each key's window.
            max_requests: Calls admitted per window.
            clock: Returns the current time in epoch seconds (injectable for tests).
        """
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")

        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    def check(self, key: str) -> RateLimitResult:
        """Count one call for *key* and report whether it is admitted."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)

            if entry is None or now > entry.reset_at:
                entry = RateLimitEntry(count=1, reset_at=now + self.window_seconds)
                self._entries[key] = entry
                return RateLimitResult(
                    allowed=True,
                    remaining=self.max_requests - 1,
                    reset_at=entry.reset_at,
                    limit=self.max_requests,
                )

            if entry.count >= self.max_requests:
                return RateLimitResult(
                    allowed=False, remaining=0, reset_at=entry.reset_at, limit=self.max_requests
                )

            entry.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=self.max_requests - entry.count,
                reset_at=entry.reset_at,
                limit=self.max_requests,
            )

    def enforce(self, key: str) -> RateLimitResult:
        """Like check(), but raise RateLimitExceeded when the call is denied."""
        result = self.check(key)
        if not result.allowed:
            logger.info("Rate limit hit for key %s (resets at %.0f)", key, result.reset_at)
            raise RateLimitExceeded(reset_at=result.reset_at, limit=result.limit)
        return result

    def sweep(self) -> int:
        """Drop entries whose window has elapsed. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if now > e.reset_at]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Swept %d expired rate limit entries", len(expired))
        return len(expired)

    def start_sweeper(self, interval_seconds: float = 300.0) -> threading.Thread:
        """Run sweep() every *interval_seconds* on a daemon thread until stop()."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return self._sweeper
        self._stop.clear()

        def _loop() -> None:
            while not self._stop.wait(interval_seconds):
                self.sweep()

        self._sweeper = threading.Thread(target=_loop, name="ratelimit-sweeper", daemon=True)
        self._sweeper.start()
        return self._sweeper

    def stop(self) -> None:
        """Stop the background sweeper, if running."""
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)
            self._sweeper = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"RateLimiter(window_seconds={self.window_seconds}, max_requests={self.max_requests})"


def client_key(headers: Mapping[str, str] | None) -> str:
    """Derive the caller key from proxy headers (case-insensitive names)."""
    if not headers:
        return DEFAULT_KEY
    lowered = {k.lower(): v for k, v in headers.items()}

    forwarded = lowered.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = (lowered.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    return DEFAULT_KEY


def build_rate_limiters(
    cfg: RateLimitsCfg,
    *,
    clock: Callable[[], float] = time.time,
) -> dict[str, RateLimiter]:
    """Create one limiter per configured endpoint family."""
    return {
        family: RateLimiter(f.window_seconds, f.max_requests, clock=clock)
        for family, f in cfg.families.items()
    }
