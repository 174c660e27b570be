"""
domainstat MCP server.

Exposes the domain availability checker as MCP tools over stdio.
"""

import json
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from mcp.server.fastmcp import FastMCP

from . import __version__
from .adapters import DEFAULT_ROLE_ORDER, KNOWN_NAMESPACES
from .checker import DomainChecker
from .config import ConfigError, load_api_keys, load_defaults
from .models import Availability, CheckOptions

# Suppress httpx request logging by default (shows API keys in URLs)
# Set DOMAINSTAT_DEBUG=1 to enable verbose HTTP logging
if not os.environ.get("DOMAINSTAT_DEBUG"):
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

DEFAULT_TLDS = ["com", "io", "ai", "co", "app", "dev", "net", "org"]

ADAPTER_DESCRIPTIONS = {
    "dns.host": "System resolver; any address record means registered",
    "dns.doh": "Cloudflare DNS-over-HTTPS",
    "rdap": "Registry RDAP (IANA bootstrap, falling back to rdap.org)",
    "rdap.ng": "NiRA domain search for .ng names",
    "altstatus": "Domainr status API (with key), falling back to Mono Domains",
    "whois.lib": "Port 43 WHOIS via python-whois",
    "whois.api": "WhoisFreaks, falling back to WhoisXML",
}


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    try:
        yield
    finally:
        await _checker.aclose()


mcp = FastMCP("domainstat", lifespan=lifespan)
mcp._mcp_server.version = __version__

# Shared across tool calls so the verdict cache survives between requests
_checker = DomainChecker()


def expand_names(names: list[str], tlds: list[str]) -> list[str]:
    """Combine base names with each TLD; names containing a dot are kept as-is."""
    domains = []
    for name in names:
        name = name.strip()
        if not name:
            continue
        if "." in name:
            domains.append(name)
        else:
            for tld in tlds:
                domains.append(f"{name}.{tld.strip().lstrip('.')}")
    # Remove duplicates while preserving order
    return list(dict.fromkeys(d.lower() for d in domains))


@mcp.tool()
def version() -> str:
    """
    Get the version of the domainstat MCP server.

    Returns:
        Version string including server name and version number.
    """
    return f"domainstat MCP Server version {__version__}"


@mcp.tool()
def list_adapters() -> str:
    """
    List the lookup adapters that can be used with check_domains' only/skip filters.

    Returns:
        JSON with the adapter namespaces, their descriptions and the default lookup order.
    """
    return json.dumps({
        "adapters": [
            {"namespace": ns, "description": ADAPTER_DESCRIPTIONS.get(ns, "")}
            for ns in KNOWN_NAMESPACES
        ],
        "defaultOrder": list(DEFAULT_ROLE_ORDER),
    })


@mcp.tool()
async def check_domains(
    names: list[str],
    tlds: list[str] | None = None,
    burst: bool = False,
    only: list[str] | None = None,
    skip: list[str] | None = None,
    onlyReportAvailable: bool = False,
) -> str:
    """
    Check whether domain names are registered.

    Args:
        names: List of domain names or base names to check.
               If a name contains a dot, it's treated as a full domain.
               Otherwise, it's combined with each TLD.
        tlds: List of TLDs to check (default: com, io, ai, co, app, dev, net, org)
        burst: If true, query all adapters at once instead of one after another
        only: Adapter namespace prefixes to use (e.g. ["dns", "rdap"])
        skip: Adapter namespace prefixes to leave out
        onlyReportAvailable: If true, only return available domains in response

    Returns:
        JSON with available domains, unavailable domains and unresolved
        domains with their errors (unless onlyReportAvailable), and a summary.
    """
    if not names:
        return json.dumps({"error": "No domain names provided"})

    domains = expand_names(names, tlds or DEFAULT_TLDS)
    if not domains:
        return json.dumps({"error": "No valid domain names after expansion"})

    try:
        defaults = load_defaults()
        options = CheckOptions(
            concurrency=defaults.get("concurrency", 10),
            only=only or None,
            skip=skip or None,
            cache=defaults.get("cache", True),
            burst_mode=burst or defaults.get("burst_mode", False),
            timeout_config=defaults.get("timeout_config", {}),
            stagger_delay=defaults.get("stagger_delay", {}),
            api_keys=load_api_keys(),
        )
    except (ConfigError, ValueError) as e:
        return json.dumps({"error": f"Invalid configuration: {e}"})

    statuses = await _checker.check_batch(domains, options)
    # Report in request order rather than completion order
    order = {d: i for i, d in enumerate(domains)}
    statuses.sort(key=lambda s: order.get(s.domain, len(order)))

    available_list = []
    unavailable_list = []
    unknown_list = []
    for status in statuses:
        if status.availability == Availability.AVAILABLE:
            available_list.append({"domain": status.domain, "source": status.resolver})
        elif status.availability == Availability.UNAVAILABLE:
            unavailable_list.append(status.domain)
        else:
            entry = {"domain": status.domain, "availability": status.availability.value}
            if status.error:
                entry["error"] = status.error.to_dict()
            unknown_list.append(entry)

    response = {"available": available_list}
    if not onlyReportAvailable:
        response["unavailable"] = unavailable_list
        if unknown_list:
            response["unknown"] = unknown_list

    summary = {
        "checked": len(statuses),
        "available": len(available_list),
        "unavailable": len(unavailable_list),
        "unknown": len(unknown_list),
    }
    if available_list:
        summary["shortestAvailable"] = min(available_list, key=lambda x: len(x["domain"]))
    response["summary"] = summary

    return json.dumps(response)
