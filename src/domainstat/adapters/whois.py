"""
WHOIS adapters.

WhoisLibAdapter talks port 43 through the python-whois library, which is
blocking, so each lookup runs in a worker thread. WhoisApiAdapter uses
hosted WHOIS APIs for environments where port 43 is blocked.
"""

import asyncio
import json

import whois

from ..errors import ApiKeyMissingError, HttpStatusError, RateLimitError, UnsupportedTldError
from ..models import AdapterResponse, Availability, ParsedDomain, TldConfig
from .base import ROLE_WHOIS, BaseAdapter, HttpAdapter

# Phrases registries use for "no such domain"
AVAILABLE_PATTERNS = (
    "no match",
    "not found",
    "no object found",
    "no data found",
    "no entries found",
    "status: available",
)

WHOISFREAKS_URL = "https://api.whoisfreaks.com/v1.0/whois"
WHOISXML_URL = "https://www.whoisxmlapi.com/whoisserver/WhoisService"


def looks_available(text: str) -> bool:
    text = text.lower()
    return any(pattern in text for pattern in AVAILABLE_PATTERNS)


def _whois_query(domain: str) -> tuple[bool, str]:
    """Blocking lookup. Returns (available, raw text)."""
    try:
        entry = whois.whois(domain)
    except Exception as e:
        # python-whois raises with the raw response when the name is unregistered
        text = str(e)
        if looks_available(text):
            return True, text
        raise

    text = getattr(entry, "text", "") or ""
    if "tld is not supported" in text.lower():
        raise UnsupportedTldError(f"TLD of {domain} is not supported for whois")
    if entry.get("domain_name") or entry.get("creation_date"):
        return False, text
    return looks_available(text), text


class WhoisLibAdapter(BaseAdapter):
    namespace = "whois.lib"
    role = ROLE_WHOIS
    default_timeout_ms = 5000

    async def _lookup(
        self, domain: ParsedDomain, tld_config: TldConfig | None, timeout_ms: int | None
    ) -> AdapterResponse:
        # The thread keeps running if we are cancelled; its result is dropped
        available, text = await asyncio.to_thread(_whois_query, domain.domain)
        availability = Availability.AVAILABLE if available else Availability.UNAVAILABLE
        return self.respond(domain, availability, raw=text)


class WhoisApiAdapter(HttpAdapter):
    """
    WhoisFreaks, falling back to WhoisXML when the WhoisFreaks quota is hit
    or only a WhoisXML key is configured.
    """

    namespace = "whois.api"
    role = ROLE_WHOIS
    default_timeout_ms = 1000

    def __init__(self, whoisfreaks_key: str | None = None, whoisxml_key: str | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.whoisfreaks_key = whoisfreaks_key
        self.whoisxml_key = whoisxml_key

    async def _fetch_freaks(self, domain: str, timeout_ms: int | None) -> dict:
        if not self.whoisfreaks_key:
            raise ApiKeyMissingError("whoisfreaks api key missing")
        response = await self.get(
            WHOISFREAKS_URL,
            timeout_ms,
            params={"apiKey": self.whoisfreaks_key, "whois": "live", "domain": domain},
        )
        if response.status_code != 200:
            text = response.text.lower()
            if response.status_code == 429 or "quota" in text or "limit" in text:
                raise RateLimitError(f"whoisfreaks failed: {response.status_code}")
            raise HttpStatusError(response.status_code, f"whoisfreaks failed: {response.status_code}")
        return response.json()

    async def _fetch_xml(self, domain: str, timeout_ms: int | None) -> dict:
        if not self.whoisxml_key:
            raise ApiKeyMissingError("whoisxml api key missing")
        response = await self.get(
            WHOISXML_URL,
            timeout_ms,
            params={"apiKey": self.whoisxml_key, "domainName": domain, "outputFormat": "JSON"},
        )
        if response.status_code != 200:
            raise HttpStatusError(response.status_code, f"whoisxml failed: {response.status_code}")
        return response.json()

    async def _lookup(
        self, domain: ParsedDomain, tld_config: TldConfig | None, timeout_ms: int | None
    ) -> AdapterResponse:
        try:
            data = await self._fetch_freaks(domain.domain, timeout_ms)
        except RateLimitError:
            data = await self._fetch_xml(domain.domain, timeout_ms)
        except ApiKeyMissingError:
            if not self.whoisxml_key:
                raise
            data = await self._fetch_xml(domain.domain, timeout_ms)

        text = json.dumps(data).lower()
        available = "n/a" in text or looks_available(text)
        availability = Availability.AVAILABLE if available else Availability.UNAVAILABLE
        return self.respond(domain, availability, raw=data)
