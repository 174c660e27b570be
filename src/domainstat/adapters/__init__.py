"""
Lookup adapters.

Every adapter exposes the same `check(domain, timeout_ms, tld_config, token)`
coroutine and is identified by a stable namespace string.
"""

from .base import (
    DEFAULT_ROLE_ORDER,
    ROLE_DNS,
    ROLE_RDAP,
    ROLE_STATUS,
    ROLE_WHOIS,
    BaseAdapter,
    HttpAdapter,
)
from .dns import DohAdapter, HostAdapter
from .rdap import RdapAdapter
from .status import AltStatusAdapter
from .tld import NgAdapter, TldRegistry, default_tld_registry
from .whois import WhoisApiAdapter, WhoisLibAdapter

# Every namespace a verdict can come from; used to validate CLI maps
KNOWN_NAMESPACES = (
    "dns.host",
    "dns.doh",
    "rdap",
    "rdap.ng",
    "altstatus",
    "whois.lib",
    "whois.api",
)

__all__ = [
    "DEFAULT_ROLE_ORDER",
    "KNOWN_NAMESPACES",
    "ROLE_DNS",
    "ROLE_RDAP",
    "ROLE_STATUS",
    "ROLE_WHOIS",
    "AltStatusAdapter",
    "BaseAdapter",
    "DohAdapter",
    "HostAdapter",
    "HttpAdapter",
    "NgAdapter",
    "RdapAdapter",
    "TldRegistry",
    "WhoisApiAdapter",
    "WhoisLibAdapter",
    "default_tld_registry",
]
