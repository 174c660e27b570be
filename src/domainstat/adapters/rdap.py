"""
RDAP adapter.

Server selection, first match wins:
1. tld_config.rdap_server (per-call override, used as a URL prefix)
2. the adapter's fixed base_url
3. the authoritative server from the IANA bootstrap file
4. rdap.org, which redirects to the registry

404 means the registry has no such object (available), 200 means it does
(unavailable). Anything else is an error.
"""

from ..errors import classify_status
from ..models import AdapterResponse, Availability, ParsedDomain, TldConfig
from ..ratelimit import RateLimiterRegistry, parse_retry_after
from ..rdap_bootstrap import RdapBootstrap
from .base import ROLE_RDAP, HttpAdapter

RDAP_ORG_URL = "https://rdap.org/domain/"


class RdapAdapter(HttpAdapter):
    namespace = "rdap"
    role = ROLE_RDAP
    default_timeout_ms = 3000

    def __init__(
        self,
        base_url: str | None = None,
        use_bootstrap: bool = True,
        bootstrap: RdapBootstrap | None = None,
        max_concurrent_per_host: int = 2,
        min_delay_per_host: float = 0.2,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url
        if bootstrap is None and use_bootstrap:
            bootstrap = RdapBootstrap(transport=self._transport)
        self.bootstrap = bootstrap
        self._registry = RateLimiterRegistry(
            max_concurrent=max_concurrent_per_host,
            min_delay=min_delay_per_host,
        )

    async def resolve_base_url(self, domain: ParsedDomain, tld_config: TldConfig | None) -> str:
        if tld_config and tld_config.rdap_server:
            return tld_config.rdap_server
        if self.base_url:
            return self.base_url
        if self.bootstrap is not None and domain.tld:
            server = await self.bootstrap.server_for(domain.tld)
            if server:
                return server.rstrip("/") + "/domain/"
        return RDAP_ORG_URL

    async def _lookup(
        self, domain: ParsedDomain, tld_config: TldConfig | None, timeout_ms: int | None
    ) -> AdapterResponse:
        url = f"{await self.resolve_base_url(domain, tld_config)}{domain.domain}"
        limiter = self._registry.get_limiter(url)

        await limiter.acquire()
        rate_limited = False
        retry_after: float | None = None
        try:
            response = await self.get(url, timeout_ms, headers={"Accept": "application/rdap+json"})
            if response.status_code == 429:
                rate_limited = True
                retry_after = parse_retry_after(response.headers.get("Retry-After"))
        finally:
            limiter.release(rate_limited=rate_limited, retry_after=retry_after)

        if response.status_code == 404:
            return self.respond(domain, Availability.AVAILABLE)

        if response.status_code != 200:
            return self.respond(
                domain,
                Availability.UNKNOWN,
                raw=response.text,
                error=classify_status(
                    response.status_code, f"rdap failed: {response.status_code}", retry_after
                ),
            )

        try:
            raw = response.json()
        except ValueError:
            raw = response.text
        return self.respond(domain, Availability.UNAVAILABLE, raw=raw)
