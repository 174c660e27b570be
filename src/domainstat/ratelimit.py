"""
Per-host rate limiting for RDAP requests.

Registries such as Verisign throttle aggressively. Every request to a host
goes through that host's HostRateLimiter, which caps concurrency, keeps
`min_delay` seconds between request starts and, after a 429, blocks the
host until its Retry-After (or an exponential backoff) has passed.
"""

import asyncio
import random
import time
from email.utils import parsedate_to_datetime

import httpx

MAX_BACKOFF = 32.0
BACKOFF_JITTER = 0.25


def backoff_delay(strikes: int) -> float:
    """2^strikes seconds, capped at MAX_BACKOFF, with +/-25% jitter."""
    base = min(2.0 ** strikes, MAX_BACKOFF)
    return base * (1 + BACKOFF_JITTER * (random.random() * 2 - 1))


def parse_retry_after(header: str | None) -> float | None:
    """
    Seconds to wait from a Retry-After header.

    Accepts delta-seconds ("120") or an HTTP date; dates in the past give 0.
    """
    value = (header or "").strip()
    if not value:
        return None
    if value.replace(".", "", 1).isdigit():
        return float(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, when.timestamp() - time.time())


class HostRateLimiter:
    """Concurrency cap, request spacing and 429 backoff for one host."""

    def __init__(self, host: str, max_concurrent: int = 2, min_delay: float = 0.5) -> None:
        self.host = host
        self.max_concurrent = max_concurrent
        self.min_delay = min_delay
        self.strikes = 0
        self._slots = asyncio.Semaphore(max_concurrent)
        self._gate = asyncio.Lock()
        self._next_start = 0.0
        self._blocked_until = 0.0

    def __repr__(self) -> str:
        return f"<HostRateLimiter {self.host} strikes={self.strikes}>"

    @property
    def blocked_for(self) -> float:
        return max(0.0, self._blocked_until - time.monotonic())

    async def acquire(self) -> None:
        """Wait for a free slot and for this host's next start time."""
        await self._slots.acquire()
        try:
            async with self._gate:
                wait = max(self._next_start, self._blocked_until) - time.monotonic()
                if wait > 0:
                    await asyncio.sleep(wait)
                self._next_start = time.monotonic() + self.min_delay
        except BaseException:
            self._slots.release()
            raise

    def release(self, rate_limited: bool = False, retry_after: float | None = None) -> None:
        """Give the slot back, recording whether the host answered 429."""
        if rate_limited:
            self.strikes += 1
            delay = retry_after if retry_after is not None else backoff_delay(self.strikes)
            self._blocked_until = max(self._blocked_until, time.monotonic() + delay)
        else:
            self.strikes = 0
        self._slots.release()


class RateLimiterRegistry:
    """One HostRateLimiter per host, created on first use."""

    def __init__(self, max_concurrent: int = 2, min_delay: float = 0.5) -> None:
        self.max_concurrent = max_concurrent
        self.min_delay = min_delay
        self._limiters: dict[str, HostRateLimiter] = {}

    def get_limiter(self, url: str) -> HostRateLimiter:
        host = httpx.URL(url).host.lower()
        if host not in self._limiters:
            self._limiters[host] = HostRateLimiter(host, self.max_concurrent, self.min_delay)
        return self._limiters[host]
