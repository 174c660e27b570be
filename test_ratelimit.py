#!/usr/bin/env python3
"""
Tests for the per-host rate limiter used by the RDAP adapter.

Usage:
    source .venv/bin/activate
    python test_ratelimit.py
"""

from _runner import run_module

import asyncio
import time

import anyio

from domainstat.ratelimit import HostRateLimiter, RateLimiterRegistry, backoff_delay, parse_retry_after


# =============================================================================
# parse_retry_after
# =============================================================================

def test_parse_retry_after_seconds():
    assert parse_retry_after("120") == 120.0
    assert parse_retry_after("0") == 0.0
    assert parse_retry_after("  60  ") == 60.0


def test_parse_retry_after_empty_or_invalid():
    assert parse_retry_after(None) is None
    assert parse_retry_after("") is None
    assert parse_retry_after("not-a-number") is None


def test_parse_retry_after_http_date():
    # Past dates clamp to zero
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0


# =============================================================================
# HostRateLimiter
# =============================================================================

def test_min_delay_between_requests():
    async def go():
        limiter = HostRateLimiter(host="test.example.com", max_concurrent=2, min_delay=0.1)
        start = time.monotonic()
        await limiter.acquire()
        limiter.release()
        await limiter.acquire()
        limiter.release()
        return time.monotonic() - start

    elapsed = anyio.run(go)
    assert elapsed >= 0.09, f"elapsed {elapsed:.3f}s, expected >= 0.1s"


def test_honors_retry_after():
    async def go():
        limiter = HostRateLimiter(host="backoff.example.com", max_concurrent=2, min_delay=0.0)
        await limiter.acquire()
        limiter.release(rate_limited=True, retry_after=0.2)
        start = time.monotonic()
        await limiter.acquire()
        limiter.release()
        return time.monotonic() - start

    elapsed = anyio.run(go)
    assert elapsed >= 0.15, f"elapsed {elapsed:.3f}s, expected >= 0.2s"


def test_consecutive_rate_limits_reset_on_success():
    limiter = HostRateLimiter(host="exp.example.com", max_concurrent=2, min_delay=0.0)

    async def go():
        await limiter.acquire()
        limiter.release(rate_limited=True, retry_after=0)
        assert limiter.strikes == 1
        await limiter.acquire()
        limiter.release(rate_limited=False)

    anyio.run(go)
    assert limiter.strikes == 0


def test_concurrency_cap():
    async def go():
        limiter = HostRateLimiter(host="cap.example.com", max_concurrent=2, min_delay=0.0)
        await limiter.acquire()
        await limiter.acquire()
        third = asyncio.ensure_future(limiter.acquire())
        await asyncio.sleep(0.02)
        blocked = not third.done()
        limiter.release()
        await asyncio.wait_for(third, 1)
        limiter.release()
        limiter.release()
        return blocked

    assert anyio.run(go) is True


def test_cancelled_waiter_gives_its_slot_back():
    async def go():
        limiter = HostRateLimiter(host="cancel.example.com", max_concurrent=1, min_delay=0.0)
        await limiter.acquire()
        limiter.release(rate_limited=True, retry_after=5)
        waiter = asyncio.ensure_future(limiter.acquire())
        await asyncio.sleep(0.02)
        waiter.cancel()
        await asyncio.gather(waiter, return_exceptions=True)
        return limiter._slots.locked()

    assert anyio.run(go) is False


def test_backoff_without_retry_after():
    for strikes, base in ((1, 2), (3, 8), (10, 32)):
        delay = backoff_delay(strikes)
        assert base * 0.75 <= delay <= base * 1.25, (strikes, delay)

    limiter = HostRateLimiter(host="nohdr.example.com", max_concurrent=1, min_delay=0.0)

    async def go():
        await limiter.acquire()
        limiter.release(rate_limited=True)

    anyio.run(go)
    assert 1.4 <= limiter.blocked_for <= 2.5
    assert limiter.strikes == 1


# =============================================================================
# RateLimiterRegistry
# =============================================================================

def test_registry_keys_limiters_by_host():
    registry = RateLimiterRegistry(max_concurrent=3, min_delay=0.1)

    limiter1 = registry.get_limiter("https://rdap.example.com/domain/test.com")
    limiter2 = registry.get_limiter("https://RDAP.example.com/domain/other.com")
    limiter3 = registry.get_limiter("https://rdap.other.com/domain/test.com")

    assert limiter1.host == "rdap.example.com"
    assert limiter1.max_concurrent == 3
    assert limiter1.min_delay == 0.1
    assert limiter1 is limiter2
    assert limiter1 is not limiter3


if __name__ == "__main__":
    run_module(globals(), "Rate limiting")
