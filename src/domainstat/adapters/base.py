"""
Adapter contract and the shared wrapper every concrete adapter runs under.

Subclasses implement `_lookup()`, which may return an AdapterResponse
(including one that carries an AdapterError) or simply raise. `check()`
wraps it with:

- latency measurement from call start to settlement
- a private timeout joined with the caller's cancellation token
- exception classification, so `check()` itself never raises
- an optional per-adapter response cache
"""

import asyncio
import dataclasses
import logging
import time
from typing import Any

import httpx

from ..cache import ResponseCache, cache_get, cache_set, is_cache_admissible
from ..cancellation import CancellationToken
from ..errors import AdapterError, classify_exception
from ..models import AdapterResponse, Availability, ParsedDomain, TldConfig

logger = logging.getLogger(__name__)

TIMEOUT_REASON = "timeout"

# Adapter roles, in the default lookup order
ROLE_DNS = "dns"
ROLE_RDAP = "rdap"
ROLE_STATUS = "status"
ROLE_WHOIS = "whois"
DEFAULT_ROLE_ORDER = (ROLE_DNS, ROLE_RDAP, ROLE_STATUS, ROLE_WHOIS)


class BaseAdapter:
    """Base class for all lookup adapters."""

    namespace: str = ""
    role: str = ""
    default_timeout_ms: int | None = None

    def __init__(self, namespace: str | None = None, cache: ResponseCache | None = None) -> None:
        if namespace:
            self.namespace = namespace
        if not self.namespace:
            raise ValueError(f"{self.__class__.__name__} requires a namespace")
        self.cache = cache

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.namespace}>"

    async def aclose(self) -> None:
        """Release held resources. The adapter stays usable afterwards."""

    def respond(
        self,
        domain: ParsedDomain,
        availability: Availability,
        raw: Any = None,
        error: AdapterError | None = None,
    ) -> AdapterResponse:
        return AdapterResponse(
            domain=domain.domain,
            availability=availability,
            source=self.namespace,
            raw=raw,
            error=error,
        )

    async def _lookup(
        self,
        domain: ParsedDomain,
        tld_config: TldConfig | None,
        timeout_ms: int | None,
    ) -> AdapterResponse:
        raise NotImplementedError

    async def check(
        self,
        domain: ParsedDomain,
        timeout_ms: int | None = None,
        tld_config: TldConfig | None = None,
        token: CancellationToken | None = None,
    ) -> AdapterResponse:
        """
        Run the lookup. Never raises.

        Args:
            domain: Parsed domain to look up
            timeout_ms: Per-call timeout; None uses the adapter default and
                0 disables the private timer
            tld_config: Optional RDAP server override / skip flag
            token: Parent cancellation token (usually the domain token)
        """
        start = time.monotonic()
        if timeout_ms is None:
            timeout_ms = self.default_timeout_ms

        cache_key = f"{self.namespace}:{domain.domain}"
        if self.cache is not None:
            cached = await cache_get(self.cache, cache_key)
            if isinstance(cached, AdapterResponse):
                return dataclasses.replace(cached, latency=_elapsed_ms(start))
            if cached is not None:
                logger.warning("%s: ignoring cached %s for %s", self.namespace, type(cached).__name__, cache_key)

        run_token = CancellationToken.any_of(token)
        if timeout_ms:
            run_token.cancel_after(timeout_ms / 1000, reason=TIMEOUT_REASON)

        lookup = asyncio.ensure_future(self._lookup(domain, tld_config, timeout_ms))
        waiter = asyncio.ensure_future(run_token.wait())
        try:
            await asyncio.wait({lookup, waiter}, return_when=asyncio.FIRST_COMPLETED)
            if lookup.done():
                try:
                    response = lookup.result()
                except Exception as e:
                    response = self.respond(domain, Availability.UNKNOWN, error=classify_exception(e, timeout_ms))
            elif run_token.reason == TIMEOUT_REASON:
                response = self.respond(domain, Availability.UNKNOWN, error=AdapterError.timeout(timeout_ms))
            else:
                response = self.respond(domain, Availability.UNKNOWN, error=AdapterError.cancelled())
        finally:
            waiter.cancel()
            if not lookup.done():
                lookup.cancel()
            run_token.detach()

        response = dataclasses.replace(response, latency=_elapsed_ms(start))

        if response.error is not None:
            logger.debug(
                "%s failed for %s: %s %s",
                self.namespace, domain.domain, response.error.code, response.error.message,
            )
        if self.cache is not None and is_cache_admissible(response):
            await cache_set(self.cache, cache_key, response)

        return response


class HttpAdapter(BaseAdapter):
    """
    Adapter backed by httpx. `transport` is injectable for tests.

    Lookups share one AsyncClient per adapter, created on first use in the
    running event loop and closed by `aclose()`. Timeouts are applied per
    request.
    """

    user_agent = "domainstat"
    client_options: dict[str, Any] = {}

    def __init__(
        self,
        namespace: str | None = None,
        cache: ResponseCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(namespace, cache)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_loop: asyncio.AbstractEventLoop | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        loop = asyncio.get_running_loop()
        if self._client is None or self._client.is_closed or self._client_loop is not loop:
            # A client bound to a finished loop cannot be reused or closed from this one
            self._client = httpx.AsyncClient(
                transport=self._transport,
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
                **self.client_options,
            )
            self._client_loop = loop
        return self._client

    async def get(self, url: str, timeout_ms: int | None, **kwargs) -> httpx.Response:
        return await self.client.get(url, timeout=timeout_ms / 1000 if timeout_ms else None, **kwargs)

    async def aclose(self) -> None:
        client, loop = self._client, self._client_loop
        self._client = self._client_loop = None
        if client is not None and not client.is_closed and loop is asyncio.get_running_loop():
            await client.aclose()


def _elapsed_ms(start: float) -> int:
    return int(round((time.monotonic() - start) * 1000))
