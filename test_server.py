#!/usr/bin/env python3
"""
Test suite for the domainstat MCP server tools.

The tools are called in-process against a checker wired to scripted
adapters, so no network access is needed.

Usage:
    source .venv/bin/activate
    python test_server.py
"""

from _runner import run_module

import json
from unittest import mock

import anyio

from domainstat import DomainChecker, server
from domainstat.adapters.base import ROLE_DNS, BaseAdapter
from domainstat.cache import InMemoryCache
from domainstat.config import ConfigError
from domainstat.errors import AdapterError
from domainstat.models import ApiKeys, Availability


class ScriptedAdapter(BaseAdapter):
    """Answers from a fixed domain -> availability table; anything else times out."""

    namespace = "dns.host"
    role = ROLE_DNS

    def __init__(self, answers):
        super().__init__()
        self.answers = answers
        self.seen = []

    async def _lookup(self, domain, tld_config, timeout_ms):
        self.seen.append(domain.domain)
        if domain.domain in self.answers:
            return self.respond(domain, self.answers[domain.domain])
        return self.respond(domain, Availability.UNKNOWN, error=AdapterError.timeout(100))


def call_check_domains(answers, defaults=None, **kwargs):
    adapter = ScriptedAdapter(answers)
    checker = DomainChecker(adapters=[adapter], cache=InMemoryCache())
    with mock.patch.object(server, "_checker", checker), \
            mock.patch.object(server, "load_defaults", return_value=defaults or {}), \
            mock.patch.object(server, "load_api_keys", return_value=ApiKeys()):
        result = anyio.run(lambda: server.check_domains(**kwargs))
    return json.loads(result), adapter


# =============================================================================
# Name expansion
# =============================================================================

def test_expand_names():
    assert server.expand_names(["acme"], ["com", ".io"]) == ["acme.com", "acme.io"]
    assert server.expand_names(["Acme.COM", "acme"], ["com"]) == ["acme.com"]
    assert server.expand_names(["", "   "], ["com"]) == []


# =============================================================================
# Tools
# =============================================================================

def test_version():
    assert server.version().startswith("domainstat MCP Server version ")


def test_list_adapters():
    data = json.loads(server.list_adapters())
    namespaces = [a["namespace"] for a in data["adapters"]]
    assert "rdap" in namespaces and "whois.lib" in namespaces
    assert all(a["description"] for a in data["adapters"])
    assert data["defaultOrder"] == ["dns", "rdap", "status", "whois"]


def test_tools_are_registered():
    tools = anyio.run(server.mcp.list_tools)
    assert {t.name for t in tools} >= {"version", "list_adapters", "check_domains"}


def test_check_domains_groups_results():
    data, adapter = call_check_domains(
        {"acme.com": Availability.AVAILABLE, "acme.io": Availability.UNAVAILABLE},
        names=["acme", "acme.zzz"],
        tlds=["com", "io", "dev"],
    )

    assert data["available"] == [{"domain": "acme.com", "source": "dns.host"}]
    assert data["unavailable"] == ["acme.io"]
    assert [u["domain"] for u in data["unknown"]] == ["acme.dev", "acme.zzz"]
    assert data["unknown"][0]["error"]["code"] == "TIMEOUT"
    assert data["unknown"][1]["availability"] == "unsupported"
    assert data["summary"] == {
        "checked": 4,
        "available": 1,
        "unavailable": 1,
        "unknown": 2,
        "shortestAvailable": {"domain": "acme.com", "source": "dns.host"},
    }
    assert "acme.zzz" not in adapter.seen


def test_check_domains_only_report_available():
    data, _ = call_check_domains(
        {"acme.com": Availability.AVAILABLE, "acme.io": Availability.UNAVAILABLE},
        names=["acme"],
        tlds=["com", "io"],
        onlyReportAvailable=True,
    )

    assert set(data) == {"available", "summary"}
    assert data["summary"]["checked"] == 2


def test_check_domains_empty_input():
    data, _ = call_check_domains({}, names=[])
    assert data == {"error": "No domain names provided"}

    data, _ = call_check_domains({}, names=["", "  "])
    assert data == {"error": "No valid domain names after expansion"}


def test_check_domains_skip_filter_applies():
    data, adapter = call_check_domains({"acme.com": Availability.AVAILABLE}, names=["acme.com"], skip=["dns"])

    assert adapter.seen == []
    assert data["unknown"][0]["domain"] == "acme.com"


def test_check_domains_reports_config_errors():
    adapter = ScriptedAdapter({})
    checker = DomainChecker(adapters=[adapter], cache=InMemoryCache())
    with mock.patch.object(server, "_checker", checker), \
            mock.patch.object(server, "load_defaults", side_effect=ConfigError("'concurrency' must be a positive integer")), \
            mock.patch.object(server, "load_api_keys", return_value=ApiKeys()):
        data = json.loads(anyio.run(lambda: server.check_domains(names=["acme.com"])))

    assert data["error"].startswith("Invalid configuration:")
    assert adapter.seen == []


if __name__ == "__main__":
    run_module(globals(), "MCP server tools")
