"""
Third-party domain status APIs.

Domainr (RapidAPI) is tried first when a key is configured; any failure
there falls through to the keyless Mono Domains endpoint.
"""

import logging

from ..errors import ApiKeyMissingError, HttpStatusError, RateLimitError
from ..models import AdapterResponse, Availability, ParsedDomain, TldConfig
from .base import ROLE_STATUS, HttpAdapter

logger = logging.getLogger(__name__)

DOMAINR_URL = "https://domainr.p.rapidapi.com/v2/status"
MONO_URL = "https://api.mono.domains/availability/"


class AltStatusAdapter(HttpAdapter):
    namespace = "altstatus"
    role = ROLE_STATUS
    default_timeout_ms = 1000

    def __init__(self, domainr_key: str | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.domainr_key = domainr_key

    async def _fetch_domainr(self, domain: str, timeout_ms: int | None) -> dict:
        if not self.domainr_key:
            raise ApiKeyMissingError("domainr api key missing")
        response = await self.get(
            DOMAINR_URL,
            timeout_ms,
            params={"domain": domain, "mashape-key": self.domainr_key},
        )
        if response.status_code != 200:
            if response.status_code == 429 or "quota" in response.text.lower():
                raise RateLimitError(f"domainr failed: {response.status_code}")
            raise HttpStatusError(response.status_code, f"domainr failed: {response.status_code}")
        return response.json()

    async def _fetch_mono(self, domain: str, timeout_ms: int | None) -> dict:
        response = await self.get(f"{MONO_URL}{domain}", timeout_ms)
        if response.status_code != 200:
            raise HttpStatusError(response.status_code, f"mono domains failed: {response.status_code}")
        return response.json()

    async def _lookup(
        self, domain: ParsedDomain, tld_config: TldConfig | None, timeout_ms: int | None
    ) -> AdapterResponse:
        if self.domainr_key:
            try:
                data = await self._fetch_domainr(domain.domain, timeout_ms)
                summary = (data.get("status") or [{}])[0].get("summary")
                availability = Availability.AVAILABLE if summary == "inactive" else Availability.UNAVAILABLE
                return self.respond(domain, availability, raw={"provider": "domainr", "data": data})
            except Exception as e:
                logger.debug("domainr failed for %s, falling back to mono: %s", domain.domain, e)

        data = await self._fetch_mono(domain.domain, timeout_ms)

        if not data.get("success"):
            raise RuntimeError("mono domains failed")
        availability = Availability.AVAILABLE if data.get("isDomainAvailable") else Availability.UNAVAILABLE
        return self.respond(domain, availability, raw={"provider": "mono", "data": data})
