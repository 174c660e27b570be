"""
DNS adapters.

A name that resolves is certainly registered. A name that does not resolve
tells us nothing (plenty of registered domains have no A record), so that
case is reported as 'unknown' without an error and the engine moves on.
"""

import asyncio
import socket

from ..errors import classify_status
from ..models import AdapterResponse, Availability, ParsedDomain, TldConfig
from .base import ROLE_DNS, BaseAdapter, HttpAdapter

# getaddrinfo failures that mean "no such name / no address"
_NO_RECORD_ERRNOS = {
    getattr(socket, name)
    for name in ("EAI_NONAME", "EAI_NODATA", "EAI_ADDRFAMILY")
    if hasattr(socket, name)
}

CLOUDFLARE_DOH_URL = "https://cloudflare-dns.com/dns-query"


class HostAdapter(BaseAdapter):
    """Native resolver lookup via the event loop's getaddrinfo."""

    namespace = "dns.host"
    role = ROLE_DNS
    default_timeout_ms = 1000

    async def _lookup(
        self, domain: ParsedDomain, tld_config: TldConfig | None, timeout_ms: int | None
    ) -> AdapterResponse:
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(domain.domain, None, type=socket.SOCK_STREAM)
        except socket.gaierror as e:
            if e.errno in _NO_RECORD_ERRNOS:
                return self.respond(domain, Availability.UNKNOWN, raw=False)
            raise
        addresses = sorted({info[4][0] for info in infos})
        return self.respond(domain, Availability.UNAVAILABLE, raw=addresses)


class DohAdapter(HttpAdapter):
    """DNS-over-HTTPS lookup using the JSON API (application/dns-json)."""

    namespace = "dns.doh"
    role = ROLE_DNS
    default_timeout_ms = 2000

    def __init__(self, url: str = CLOUDFLARE_DOH_URL, **kwargs) -> None:
        super().__init__(**kwargs)
        self.url = url

    async def _lookup(
        self, domain: ParsedDomain, tld_config: TldConfig | None, timeout_ms: int | None
    ) -> AdapterResponse:
        response = await self.get(
            self.url,
            timeout_ms,
            params={"name": domain.domain, "type": "A"},
            headers={"Accept": "application/dns-json"},
        )

        if response.status_code != 200:
            return self.respond(
                domain,
                Availability.UNKNOWN,
                error=classify_status(response.status_code, f"doh query failed: {response.status_code}"),
            )

        data = response.json()
        if data.get("Answer"):
            return self.respond(domain, Availability.UNAVAILABLE, raw=data)
        return self.respond(domain, Availability.UNKNOWN, raw=data)
