"""
TLD-specific adapter overrides.

Some registries have no usable RDAP service, so for their suffixes a
dedicated adapter takes the place of the default one for a given role.
The registry is immutable and keyed by public suffix; lookup tries the full
suffix first and then its last label (so 'edu.ng' falls back to 'ng').
"""

from types import MappingProxyType
from typing import Mapping

from ..models import AdapterResponse, Availability, ParsedDomain, TldConfig
from .base import ROLE_RDAP, BaseAdapter, HttpAdapter

NIRA_SEARCH_URL = "https://whois.nic.net.ng/domains"


class NgAdapter(HttpAdapter):
    """NiRA (.ng) domain search, standing in for RDAP."""

    namespace = "rdap.ng"
    role = ROLE_RDAP
    default_timeout_ms = 3000

    # NiRA's certificate is routinely expired
    client_options = {"verify": False}

    async def _lookup(
        self, domain: ParsedDomain, tld_config: TldConfig | None, timeout_ms: int | None
    ) -> AdapterResponse:
        response = await self.get(
            NIRA_SEARCH_URL, timeout_ms, params={"name": domain.domain, "exactMatch": "true"}
        )
        response.raise_for_status()
        data = response.json()
        results = data.get("domainSearchResults")
        exists = isinstance(results, list) and len(results) > 0
        availability = Availability.UNAVAILABLE if exists else Availability.AVAILABLE
        return self.respond(domain, availability, raw=data)


class TldRegistry:
    """Read-only mapping of public suffix -> {role: adapter}."""

    def __init__(self, overrides: Mapping[str, Mapping[str, BaseAdapter]] | None = None) -> None:
        self._overrides = MappingProxyType({
            suffix.lower(): MappingProxyType(dict(roles))
            for suffix, roles in (overrides or {}).items()
        })

    def lookup(self, suffix: str | None) -> Mapping[str, BaseAdapter]:
        if not suffix:
            return MappingProxyType({})
        suffix = suffix.lower()
        if suffix in self._overrides:
            return self._overrides[suffix]
        return self._overrides.get(suffix.rsplit(".", 1)[-1], MappingProxyType({}))

    def __contains__(self, suffix: str) -> bool:
        return bool(self.lookup(suffix))

    @property
    def suffixes(self) -> frozenset[str]:
        return frozenset(self._overrides)

    @property
    def adapters(self) -> list[BaseAdapter]:
        """Distinct override adapters, in registration order."""
        seen: dict[int, BaseAdapter] = {}
        for roles in self._overrides.values():
            for adapter in roles.values():
                seen.setdefault(id(adapter), adapter)
        return list(seen.values())


def default_tld_registry(transport=None) -> TldRegistry:
    ng = NgAdapter(transport=transport)
    return TldRegistry({
        "ng": {ROLE_RDAP: ng},
        "com.ng": {ROLE_RDAP: ng},
        "org.ng": {ROLE_RDAP: ng},
        "net.ng": {ROLE_RDAP: ng},
    })
