#!/usr/bin/env python3
"""
Tests for the verdict caches and the cache helpers.

Usage:
    source .venv/bin/activate
    python test_cache.py
"""

from _runner import run_module

import json
import tempfile
import time
from pathlib import Path

import anyio

import _fakes
from domainstat.cache import FileCache, InMemoryCache, cache_get, cache_set, is_cache_admissible
from domainstat.errors import AdapterError, ErrorKind
from domainstat.models import Availability, DomainStatus


def status(domain="example.com", error=None):
    return DomainStatus(
        domain=domain,
        availability=Availability.UNKNOWN if error else Availability.UNAVAILABLE,
        resolver="app" if error else "rdap",
        raw={"rdap": {"ldhName": domain.upper()}, "dns.host": None},
        latencies={"rdap": 42, "dns.host": 3},
        error=error,
    )


# =============================================================================
# Admissibility
# =============================================================================

def test_admissibility():
    assert is_cache_admissible(status())
    assert is_cache_admissible(status(error=AdapterError.make(ErrorKind.UNSUPPORTED_TLD, "no")))
    assert not is_cache_admissible(status(error=AdapterError.timeout(100)))
    assert not is_cache_admissible(status(error=AdapterError.make(ErrorKind.RATE_LIMIT, "429")))


# =============================================================================
# InMemoryCache
# =============================================================================

def test_memory_cache_get_set():
    cache = InMemoryCache()
    assert cache.get("example.com") is None
    cache.set("example.com", status())
    assert cache.get("example.com") == status()
    assert len(cache) == 1


def test_memory_cache_expires_entries():
    cache = InMemoryCache(ttl=0.01)
    cache.set("example.com", status())
    time.sleep(0.03)
    assert cache.get("example.com") is None
    assert len(cache) == 0


def test_memory_cache_evicts_oldest():
    cache = InMemoryCache(max_size=2, ttl=None)
    cache.set("a.com", status("a.com"))
    cache.set("b.com", status("b.com"))
    cache.set("c.com", status("c.com"))
    assert cache.get("a.com") is None
    assert cache.get("b.com") is not None
    assert cache.get("c.com") is not None


# =============================================================================
# FileCache
# =============================================================================

def test_file_cache_persists_across_instances():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "verdicts.json"
        error = AdapterError.make(ErrorKind.UNSUPPORTED_TLD, "no whois server")

        async def go():
            await FileCache(path).set("example.com", status())
            await FileCache(path).set("example.org", status("example.org", error))
            reader = FileCache(path)
            return await reader.get("example.com"), await reader.get("example.org"), await reader.get("missing.com")

        first, second, missing = anyio.run(go)

    assert first == status()
    assert second == status("example.org", error)
    assert missing is None


def test_file_cache_ignores_expired_entries():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "verdicts.json"
        path.write_text(json.dumps({
            "example.com": {"expires": time.time() - 10, "status": status().to_dict()},
        }))

        assert anyio.run(FileCache(path).get, "example.com") is None


def test_file_cache_corrupt_file_reads_empty():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "verdicts.json"
        path.write_text("{not json")

        cache = FileCache(path)
        assert anyio.run(cache.get, "example.com") is None

        anyio.run(cache.set, "example.com", status())
        assert anyio.run(cache.get, "example.com") == status()


# =============================================================================
# Helpers
# =============================================================================

def test_helpers_accept_sync_and_async_backends():
    async def go():
        sync_cache, async_cache = InMemoryCache(), _fakes.AsyncDictCache()
        for cache in (sync_cache, async_cache):
            assert await cache_set(cache, "example.com", status()) is True
            assert await cache_get(cache, "example.com") == status()

    anyio.run(go)


def test_helpers_swallow_backend_failures():
    async def go():
        cache = _fakes.FailingCache()
        return await cache_get(cache, "example.com"), await cache_set(cache, "example.com", status())

    assert anyio.run(go) == (None, False)


def test_helpers_treat_missing_cache_as_miss():
    async def go():
        return await cache_get(None, "example.com"), await cache_set(None, "example.com", status())

    assert anyio.run(go) == (None, False)


if __name__ == "__main__":
    run_module(globals(), "Caches")
