"""
Public entry points: check one domain, a batch, or a stream of results.

    from domainstat import check, check_batch, CheckOptions

    status = await check("example.com")
    statuses = await check_batch(["a.com", "b.io"], CheckOptions(concurrency=5))
"""

import logging
from typing import AsyncIterator, Iterable, Sequence

import httpx

from .adapters import (
    AltStatusAdapter,
    BaseAdapter,
    DohAdapter,
    HostAdapter,
    RdapAdapter,
    TldRegistry,
    WhoisApiAdapter,
    WhoisLibAdapter,
    default_tld_registry,
)
from .cache import InMemoryCache, ResponseCache, cache_get, cache_set, is_cache_admissible
from .engine import ResolutionEngine
from .models import ApiKeys, CheckOptions, DomainStatus
from .scheduler import stream_resolutions
from .validator import DomainValidator

logger = logging.getLogger(__name__)

DNS_STRATEGIES = ("native", "doh")
WHOIS_STRATEGIES = ("lib", "api")


def cache_key(domain: str, options: CheckOptions) -> str:
    """
    Verdict cache key for `domain` under `options`.

    Plain lookups use the bare domain. Lookups that narrow the adapter plan
    get their own key, so a verdict reached by a subset of adapters is never
    served to a full lookup.
    """
    parts = [domain]
    if options.only is not None:
        parts.append("only=" + ",".join(sorted(options.only)))
    if options.skip:
        parts.append("skip=" + ",".join(sorted(options.skip)))
    if options.tld_config.skip_rdap:
        parts.append("skip_rdap")
    if options.tld_config.rdap_server:
        parts.append("rdap=" + options.tld_config.rdap_server)
    return "|".join(parts)


class DomainChecker:
    """
    Validates, caches and resolves domains.

    Args:
        adapters: Fixed adapter list in launch order. When omitted, the
            default DNS -> RDAP -> status -> WHOIS set is built per set of
            API keys.
        dns_strategy: "native" (system resolver) or "doh" (DNS-over-HTTPS)
        whois_strategy: "lib" (port 43 via python-whois) or "api" (hosted)
        cache: Verdict cache; defaults to an in-memory cache
        validator: Domain validator
        tld_registry: Per-suffix adapter substitutions
        transport: httpx transport handed to every default HTTP adapter
    """

    def __init__(
        self,
        adapters: Sequence[BaseAdapter] | None = None,
        dns_strategy: str = "native",
        whois_strategy: str = "lib",
        cache: ResponseCache | None = None,
        validator: DomainValidator | None = None,
        tld_registry: TldRegistry | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if dns_strategy not in DNS_STRATEGIES:
            raise ValueError(f"dns_strategy must be one of {DNS_STRATEGIES}, got {dns_strategy!r}")
        if whois_strategy not in WHOIS_STRATEGIES:
            raise ValueError(f"whois_strategy must be one of {WHOIS_STRATEGIES}, got {whois_strategy!r}")

        self.dns_strategy = dns_strategy
        self.whois_strategy = whois_strategy
        self.transport = transport
        self.cache = cache if cache is not None else InMemoryCache()
        self.tld_registry = tld_registry if tld_registry is not None else default_tld_registry(transport)
        self.validator = validator or DomainValidator(tld_registry=self.tld_registry)
        self._fixed_adapters = list(adapters) if adapters is not None else None
        self._adapter_sets: dict[ApiKeys, list[BaseAdapter]] = {}

    def adapters_for(self, api_keys: ApiKeys) -> list[BaseAdapter]:
        if self._fixed_adapters is not None:
            return self._fixed_adapters
        if api_keys not in self._adapter_sets:
            self._adapter_sets[api_keys] = self._build_adapters(api_keys)
        return self._adapter_sets[api_keys]

    def _build_adapters(self, api_keys: ApiKeys) -> list[BaseAdapter]:
        if self.dns_strategy == "doh":
            dns = DohAdapter(transport=self.transport)
        else:
            dns = HostAdapter()

        if self.whois_strategy == "api":
            whois = WhoisApiAdapter(api_keys.whoisfreaks, api_keys.whoisxml, transport=self.transport)
        else:
            whois = WhoisLibAdapter()

        return [
            dns,
            RdapAdapter(transport=self.transport),
            AltStatusAdapter(api_keys.domainr, transport=self.transport),
            whois,
        ]

    def engine_for(self, options: CheckOptions) -> ResolutionEngine:
        return ResolutionEngine(self.adapters_for(options.api_keys), self.tld_registry)

    async def check(self, domain: str, options: CheckOptions | None = None) -> DomainStatus:
        """Resolve one domain. Never raises for lookup failures."""
        options = options or CheckOptions()

        parsed, rejected = self.validator.validate(domain)
        if rejected is not None:
            return rejected

        use_cache = options.cache and self.cache is not None
        key = cache_key(parsed.domain, options)
        if use_cache:
            cached = await cache_get(self.cache, key)
            if isinstance(cached, DomainStatus):
                logger.debug("cache hit for %s", key)
                return cached

        status = await self.engine_for(options).resolve(parsed, options)

        if use_cache and is_cache_admissible(status):
            await cache_set(self.cache, key, status)
        return status

    async def check_batch_stream(
        self, domains: Iterable[str], options: CheckOptions | None = None
    ) -> AsyncIterator[DomainStatus]:
        """Yield statuses in completion order, `options.concurrency` at a time."""
        options = options or CheckOptions()

        async def resolve(domain: str) -> DomainStatus:
            return await self.check(domain, options)

        stream = stream_resolutions(domains, resolve, options.concurrency)
        try:
            async for status in stream:
                yield status
        finally:
            await stream.aclose()

    async def check_batch(self, domains: Iterable[str], options: CheckOptions | None = None) -> list[DomainStatus]:
        return [status async for status in self.check_batch_stream(domains, options)]

    async def aclose(self) -> None:
        """Close the HTTP clients held by every adapter this checker built or was given."""
        adapters = list(self._fixed_adapters or [])
        for adapter_set in self._adapter_sets.values():
            adapters.extend(adapter_set)
        adapters.extend(self.tld_registry.adapters)
        closed = set()
        for adapter in adapters:
            if id(adapter) not in closed:
                closed.add(id(adapter))
                await adapter.aclose()

    async def __aenter__(self) -> "DomainChecker":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


_default_checker: DomainChecker | None = None


def get_default_checker() -> DomainChecker:
    global _default_checker
    if _default_checker is None:
        _default_checker = DomainChecker()
    return _default_checker


async def check(domain: str, options: CheckOptions | None = None) -> DomainStatus:
    return await get_default_checker().check(domain, options)


async def check_batch(domains: Iterable[str], options: CheckOptions | None = None) -> list[DomainStatus]:
    return await get_default_checker().check_batch(domains, options)


async def check_batch_stream(
    domains: Iterable[str], options: CheckOptions | None = None
) -> AsyncIterator[DomainStatus]:
    async for status in get_default_checker().check_batch_stream(domains, options):
        yield status
