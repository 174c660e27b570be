"""
Scripted adapters and cache backends for engine/checker tests.
"""

import asyncio
import time

from domainstat.adapters.base import BaseAdapter
from domainstat.errors import AdapterError, ErrorKind
from domainstat.models import Availability


class FakeAdapter(BaseAdapter):
    """
    Adapter that answers after `delay` seconds with a fixed verdict.

    Records how often and when it was launched so tests can check what the
    engine did.
    """

    def __init__(
        self,
        namespace: str,
        role: str,
        availability: Availability = Availability.UNKNOWN,
        delay: float = 0.0,
        error: AdapterError | None = None,
        exc: Exception | None = None,
        default_timeout_ms: int | None = None,
        cache=None,
    ):
        super().__init__(namespace, cache=cache)
        self.role = role
        self.availability = availability
        self.delay = delay
        self.error = error
        self.exc = exc
        self.default_timeout_ms = default_timeout_ms
        self.calls = 0
        self.launched_at: list[float] = []
        self.finished = 0
        self.cancelled = 0

    async def _lookup(self, domain, tld_config, timeout_ms):
        self.calls += 1
        self.launched_at.append(time.monotonic())
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        self.finished += 1
        if self.exc is not None:
            raise self.exc
        return self.respond(domain, self.availability, raw={"from": self.namespace}, error=self.error)


def dns(availability=Availability.UNKNOWN, **kwargs) -> FakeAdapter:
    return FakeAdapter("dns.host", "dns", availability, **kwargs)


def rdap(availability=Availability.UNKNOWN, **kwargs) -> FakeAdapter:
    return FakeAdapter("rdap", "rdap", availability, **kwargs)


def status(availability=Availability.UNKNOWN, **kwargs) -> FakeAdapter:
    return FakeAdapter("altstatus", "status", availability, **kwargs)


def whois(availability=Availability.UNKNOWN, **kwargs) -> FakeAdapter:
    return FakeAdapter("whois.lib", "whois", availability, **kwargs)


def error(kind: ErrorKind, message: str = "scripted failure") -> AdapterError:
    return AdapterError.make(kind, message)


class FailingCache:
    """Cache backend whose every operation raises."""

    def __init__(self):
        self.reads = 0
        self.writes = 0

    def get(self, key):
        self.reads += 1
        raise OSError("cache backend unavailable")

    def set(self, key, value):
        self.writes += 1
        raise OSError("cache backend unavailable")


class AsyncDictCache:
    """Coroutine-based cache backend."""

    def __init__(self):
        self.store = {}

    async def get(self, key):
        await asyncio.sleep(0)
        return self.store.get(key)

    async def set(self, key, value):
        await asyncio.sleep(0)
        self.store[key] = value


class BrokenAdapter(BaseAdapter):
    """Adapter whose check() itself raises instead of returning a response."""

    def __init__(self, namespace: str = "broken", role: str = "status", message: str = "adapter broke its contract"):
        super().__init__(namespace)
        self.role = role
        self.message = message
        self.calls = 0

    async def check(self, domain, timeout_ms=None, tld_config=None, token=None):
        self.calls += 1
        await asyncio.sleep(0)
        raise RuntimeError(self.message)
