#!/usr/bin/env python3
"""
Tests for the domainstat command line.

Usage:
    source .venv/bin/activate
    python test_cli.py
"""

from _runner import run_module

import contextlib
import io
import json
from unittest import mock

import pytest

import _fakes
from domainstat import DomainChecker
from domainstat.cache import InMemoryCache
from domainstat.cli import (
    CliError,
    build_parser,
    format_json,
    format_pretty,
    main,
    options_from_args,
    parse_ms_map,
)
from domainstat.errors import AdapterError
from domainstat.models import ApiKeys, Availability, DomainStatus


# =============================================================================
# Argument parsing
# =============================================================================

def test_parse_ms_map():
    assert parse_ms_map("--timeout", "rdap=1500, whois.lib=3000") == {"rdap": 1500, "whois.lib": 3000}
    assert parse_ms_map("--timeout", "dns.host=0") == {"dns.host": 0}


def test_parse_ms_map_errors():
    cases = {
        "": "requires at least one entry",
        "rdap": "Expected adapter=milliseconds",
        "=100": "Expected adapter=milliseconds",
        "bogus=100": "unknown adapter 'bogus'",
        "rdap=fast": "invalid numeric value 'fast'",
        "rdap=-5": "invalid numeric value '-5'",
    }
    for raw, fragment in cases.items():
        with pytest.raises(CliError) as excinfo:
            parse_ms_map("--timeout", raw)
        assert fragment in str(excinfo.value), raw


def test_flags_override_config_defaults():
    args = build_parser().parse_args(["--timeout", "rdap=200", "--serial", "example.com"])
    defaults = {"concurrency": 3, "burst_mode": True, "timeout_config": {"rdap": 100, "dns.host": 50}}

    options = options_from_args(args, defaults)

    assert options.concurrency == 3
    assert options.burst_mode is False
    assert options.timeout_config == {"rdap": 200, "dns.host": 50}
    assert options.cache is True


def test_repeated_list_flags_are_merged():
    args = build_parser().parse_args(["--only", "dns,rdap", "--only", "dns", "--skip", "whois", "a.com"])

    options = options_from_args(args)

    assert options.only == ("dns", "rdap")
    assert options.skip == ("whois",)


def test_key_flags_win_over_environment():
    args = build_parser().parse_args(["--domainr-key", "from-flag", "a.com"])

    options = options_from_args(args, env_keys=ApiKeys(domainr="from-env", whoisxml="xml"))

    assert options.api_keys == ApiKeys(domainr="from-flag", whoisxml="xml")


def test_rdap_flags_build_tld_config():
    args = build_parser().parse_args(["--rdap-server", "https://rdap.test/", "--skip-rdap", "--no-cache", "a.com"])

    options = options_from_args(args)

    assert options.tld_config.rdap_server == "https://rdap.test/"
    assert options.tld_config.skip_rdap is True
    assert options.cache is False


# =============================================================================
# Output
# =============================================================================

def test_format_pretty():
    status = DomainStatus("example.com", Availability.UNAVAILABLE, "rdap", latencies={"rdap": 42, "dns.host": 7})
    assert format_pretty(status) == "🔴 example.com -> unavailable via rdap in 42ms"
    assert "\033[31munavailable\033[0m" in format_pretty(status, use_color=True)


def test_format_pretty_includes_error():
    status = DomainStatus(
        "example.com", Availability.UNKNOWN, "app", error=AdapterError.timeout(1500)
    )
    line = format_pretty(status)
    assert line.startswith("❔ example.com -> unknown via app")
    assert "error(TIMEOUT)" in line


def test_format_json():
    status = DomainStatus("example.com", Availability.AVAILABLE, "rdap", raw={"rdap": None})
    data = json.loads(format_json(status))
    assert data["availability"] == "available"
    assert data["raw"] == {"rdap": None}
    assert data["error"] is None


# =============================================================================
# main()
# =============================================================================

def test_no_domains_exits_1():
    stderr = io.StringIO()
    with contextlib.redirect_stderr(stderr):
        assert main([]) == 1
    assert "no domains provided" in stderr.getvalue()


def test_bad_flag_exits_1():
    with contextlib.redirect_stderr(io.StringIO()):
        with pytest.raises(SystemExit) as excinfo:
            main(["--concurrency", "many", "a.com"])
    assert excinfo.value.code == 1


def test_bad_option_value_exits_1():
    stderr = io.StringIO()
    with mock.patch("domainstat.cli.load_defaults", return_value={}), \
            mock.patch("domainstat.cli.load_api_keys", return_value=ApiKeys()), \
            contextlib.redirect_stderr(stderr):
        assert main(["--timeout", "bogus=5", "a.com"]) == 1
        assert main(["--concurrency", "0", "a.com"]) == 1
    assert "unknown adapter 'bogus'" in stderr.getvalue()


def test_json_output_streams_one_line_per_domain():
    dns = _fakes.dns(Availability.UNAVAILABLE)

    def fake_checker(**kwargs):
        assert kwargs == {"dns_strategy": "native", "whois_strategy": "lib"}
        return DomainChecker(adapters=[dns], cache=InMemoryCache())

    stdout = io.StringIO()
    with mock.patch("domainstat.cli.DomainChecker", side_effect=fake_checker), \
            mock.patch("domainstat.cli.load_defaults", return_value={}), \
            mock.patch("domainstat.cli.load_api_keys", return_value=ApiKeys()), \
            contextlib.redirect_stdout(stdout):
        code = main(["--json", "example.com", "foo.zzz", "EXAMPLE.com"])

    assert code == 0
    results = {r["domain"]: r for r in map(json.loads, stdout.getvalue().splitlines())}
    assert set(results) == {"example.com", "foo.zzz"}
    assert results["example.com"]["availability"] == "unavailable"
    assert results["example.com"]["resolver"] == "dns.host"
    assert results["foo.zzz"]["availability"] == "unsupported"
    assert dns.calls == 1


def test_strategy_flags_reach_the_checker():
    seen = {}

    def fake_checker(**kwargs):
        seen.update(kwargs)
        return DomainChecker(adapters=[_fakes.dns(Availability.AVAILABLE)], cache=InMemoryCache())

    with mock.patch("domainstat.cli.DomainChecker", side_effect=fake_checker), \
            mock.patch("domainstat.cli.load_defaults", return_value={}), \
            mock.patch("domainstat.cli.load_api_keys", return_value=ApiKeys()), \
            contextlib.redirect_stdout(io.StringIO()):
        assert main(["--dns", "doh", "--whois", "api", "--no-color", "example.com"]) == 0

    assert seen == {"dns_strategy": "doh", "whois_strategy": "api"}


if __name__ == "__main__":
    run_module(globals(), "Command line")
