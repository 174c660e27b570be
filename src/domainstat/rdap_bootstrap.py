"""
IANA RDAP bootstrap data.

The bootstrap file maps TLDs to their authoritative RDAP servers, which lets
the RDAP adapter skip the rdap.org redirector. The file is kept in memory,
mirrored to the user cache directory, and revalidated with a conditional GET
once it expires.

    bootstrap = RdapBootstrap()
    server = await bootstrap.server_for("com")  # "https://rdap.verisign.com/com/v1/"
"""

import asyncio
import json
import logging
import os
import time
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

IANA_BOOTSTRAP_URL = "https://data.iana.org/rdap/dns.json"

# Lifetime when IANA sends no Cache-Control max-age (24 hours)
DEFAULT_CACHE_TTL = 86400

# After a failed refresh, keep serving stale data this long before retrying
RETRY_INTERVAL = 300

FETCH_TIMEOUT = 10.0


def default_cache_path() -> Path:
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('LOCALAPPDATA', Path.home()))
    else:  # macOS, Linux
        base = Path(os.environ.get('XDG_CACHE_HOME', Path.home() / '.cache'))
    return base / 'domainstat' / 'rdap_bootstrap.json'


def parse_max_age(cache_control: str) -> int | None:
    """Seconds from a Cache-Control max-age directive, if any."""
    for directive in cache_control.split(","):
        name, _, value = directive.strip().lower().partition("=")
        if name == "max-age" and value.isdigit():
            return int(value)
    return None


def parse_bootstrap_services(data: dict) -> dict[str, list[str]]:
    """
    Flatten the IANA "services" list into a TLD -> server URLs mapping.

        {"services": [[["com", "net"], ["https://rdap.verisign.com/com/v1/"]], ...]}
    """
    services = {}
    for entry in data.get("services", []):
        if len(entry) < 2:
            continue
        tlds, urls = entry[0], entry[1]
        services.update({tld.lower(): list(urls) for tld in tlds})
    return services


class RdapBootstrap:
    """
    Bootstrap lookups backed by memory, then the disk mirror, then IANA.

    Args:
        path: Disk mirror location (defaults to the user cache directory)
        transport: httpx transport for the IANA request
        url: Bootstrap file URL
    """

    def __init__(
        self,
        path: Path | str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        url: str = IANA_BOOTSTRAP_URL,
    ) -> None:
        self.path = Path(path) if path else default_cache_path()
        self.url = url
        self._transport = transport
        self._entry: dict | None = None
        self._loaded = False
        self._retry_at = 0.0
        self._lock = asyncio.Lock()

    @property
    def services(self) -> dict[str, list[str]]:
        return (self._entry or {}).get("services", {})

    @property
    def fresh(self) -> bool:
        return self._entry is not None and time.time() < self._entry.get("expires", 0)

    def _read_disk(self) -> dict | None:
        try:
            entry = json.loads(self.path.read_text())
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("ignoring unreadable RDAP bootstrap cache %s: %s", self.path, e)
            return None
        if not isinstance(entry, dict) or not isinstance(entry.get("services"), dict):
            return None
        return entry

    def _write_disk(self, entry: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(entry, indent=2))
        except OSError as e:
            logger.warning("could not write RDAP bootstrap cache %s: %s", self.path, e)

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._entry = await asyncio.to_thread(self._read_disk)
            self._loaded = True

    async def refresh(self, force: bool = False) -> bool:
        """
        Revalidate the bootstrap data against IANA.

        Returns True when new data was downloaded. A 304 only extends the
        expiry; network failures and bad responses leave the current data in
        place and postpone the next attempt by RETRY_INTERVAL.
        """
        async with self._lock:
            await self._ensure_loaded()
            if not force and self.fresh:
                return False

            headers = {"Accept": "application/json", "User-Agent": "domainstat (RDAP Bootstrap)"}
            if self._entry:
                if self._entry.get("last_modified"):
                    headers["If-Modified-Since"] = self._entry["last_modified"]
                if self._entry.get("etag"):
                    headers["If-None-Match"] = self._entry["etag"]

            try:
                async with httpx.AsyncClient(transport=self._transport, timeout=FETCH_TIMEOUT) as client:
                    response = await client.get(self.url, headers=headers)
            except httpx.HTTPError as e:
                logger.warning("RDAP bootstrap refresh failed: %s", e)
                self._retry_at = time.monotonic() + RETRY_INTERVAL
                return False

            max_age = parse_max_age(response.headers.get("Cache-Control", ""))
            expires = time.time() + (max_age or DEFAULT_CACHE_TTL)

            if response.status_code == 304 and self._entry:
                self._entry = {**self._entry, "expires": expires}
                await asyncio.to_thread(self._write_disk, self._entry)
                return False

            services = {}
            if response.status_code == 200:
                try:
                    services = parse_bootstrap_services(response.json())
                except ValueError:
                    pass
            if not services:
                logger.warning("unusable RDAP bootstrap response: HTTP %s", response.status_code)
                self._retry_at = time.monotonic() + RETRY_INTERVAL
                return False

            self._entry = {
                "last_modified": response.headers.get("Last-Modified", ""),
                "etag": response.headers.get("ETag", ""),
                "expires": expires,
                "services": services,
            }
            await asyncio.to_thread(self._write_disk, self._entry)
            logger.debug("RDAP bootstrap updated: %d TLDs", len(services))
            return True

    async def server_for(self, tld: str) -> str | None:
        """First RDAP server listed for `tld`, or None if IANA lists none."""
        await self._ensure_loaded()
        if not self.fresh and time.monotonic() >= self._retry_at:
            await self.refresh()
        urls = self.services.get(tld.lower())
        return urls[0] if urls else None
