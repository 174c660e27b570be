"""
Verdict caches.

The orchestrator only needs get(key) and set(key, value). Either may be a
plain method or a coroutine, and either may raise; callers go through
cache_get()/cache_set() which await when needed and never let a cache
failure fail a lookup.
"""

import asyncio
import inspect
import json
import logging
import os
import time
from collections import OrderedDict
from pathlib import Path
from typing import Any, Protocol

from .models import AdapterResponse, DomainStatus

logger = logging.getLogger(__name__)

# Default verdict lifetime (1 hour)
DEFAULT_TTL = 3600.0
DEFAULT_MAX_SIZE = 10000


class ResponseCache(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> Any: ...


class InMemoryCache:
    """Dictionary cache with per-entry expiry and oldest-first eviction."""

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, ttl: float | None = DEFAULT_TTL) -> None:
        self._store: OrderedDict[str, tuple[Any, float | None]] = OrderedDict()
        self.max_size = max_size
        self.ttl = ttl

    def get(self, key: str) -> Any:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires = entry
        if expires is not None and time.monotonic() > expires:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        if key in self._store:
            del self._store[key]
        elif len(self._store) >= self.max_size:
            self._store.popitem(last=False)
        expires = time.monotonic() + self.ttl if self.ttl is not None else None
        self._store[key] = (value, expires)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


def _default_cache_path() -> Path:
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('LOCALAPPDATA', Path.home()))
    else:  # macOS, Linux
        base = Path(os.environ.get('XDG_CACHE_HOME', Path.home() / '.cache'))
    return base / 'domainstat' / 'verdicts.json'


class FileCache:
    """
    DomainStatus cache persisted as a JSON file.

    File access runs in a worker thread so the event loop never blocks on
    disk I/O. A missing or corrupt file reads as an empty cache.
    """

    def __init__(self, path: Path | str | None = None, ttl: float | None = DEFAULT_TTL) -> None:
        self.path = Path(path) if path else _default_cache_path()
        self.ttl = ttl
        self._lock = asyncio.Lock()

    def _load(self) -> dict:
        try:
            if self.path.exists():
                with open(self.path, "r") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return data
        except (json.JSONDecodeError, OSError):
            pass
        return {}

    def _save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        with open(tmp, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, self.path)

    def _read_entry(self, key: str) -> DomainStatus | None:
        entry = self._load().get(key)
        if not entry:
            return None
        expires = entry.get("expires")
        if expires is not None and time.time() > expires:
            return None
        return DomainStatus.from_dict(entry["status"])

    def _write_entry(self, key: str, status: DomainStatus) -> None:
        data = self._load()
        now = time.time()
        # Drop expired entries while we're rewriting the file anyway
        data = {k: v for k, v in data.items() if v.get("expires") is None or v["expires"] > now}
        data[key] = {
            "expires": now + self.ttl if self.ttl is not None else None,
            "status": status.to_dict(),
        }
        self._save(data)

    async def get(self, key: str) -> DomainStatus | None:
        return await asyncio.to_thread(self._read_entry, key)

    async def set(self, key: str, value: DomainStatus) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write_entry, key, value)


async def cache_get(cache: ResponseCache | None, key: str) -> Any:
    """Read from a sync or async cache; failures count as a miss."""
    if cache is None:
        return None
    try:
        value = cache.get(key)
        if inspect.isawaitable(value):
            value = await value
        return value
    except Exception as e:
        logger.warning("cache read failed for %s: %s", key, e)
        return None


async def cache_set(cache: ResponseCache | None, key: str, value: Any) -> bool:
    """Write to a sync or async cache. Returns False if the write failed."""
    if cache is None:
        return False
    try:
        result = cache.set(key, value)
        if inspect.isawaitable(result):
            await result
        return True
    except Exception as e:
        logger.warning("cache write failed for %s: %s", key, e)
        return False


def is_cache_admissible(status: DomainStatus | AdapterResponse) -> bool:
    """Only error-free results and permanent failures are worth caching."""
    return status.error is None or not status.error.retryable
