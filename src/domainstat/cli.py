"""
CLI tool to check domain name availability.

Usage:
    domainstat example.com example.net
    domainstat --json --concurrency 5 a.com b.io c.dev
    domainstat --burst --only dns,rdap example.org

Results stream as each domain resolves, so output order is completion order.

Environment:
    DOMAINSTAT_DOMAINR_KEY, DOMAINSTAT_WHOISFREAKS_KEY, DOMAINSTAT_WHOISXML_KEY
    provide API keys when the corresponding flags are omitted.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from . import __version__
from .adapters import KNOWN_NAMESPACES
from .checker import DNS_STRATEGIES, WHOIS_STRATEGIES, DomainChecker
from .config import ConfigError, load_api_keys, load_defaults
from .models import ApiKeys, CheckOptions, DomainStatus, TldConfig

RESET = "\033[0m"
STATUS_COLORS = {
    "available": "\033[32m",
    "unavailable": "\033[31m",
    "unsupported": "\033[36m",
    "invalid": "\033[33m",
    "unknown": "\033[35m",
}
STATUS_ICONS = {
    "available": "🟢",
    "unavailable": "🔴",
    "unsupported": "⚪",
    "invalid": "⚠️",
    "unknown": "❔",
}


class CliError(Exception):
    """Bad command-line usage."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def parse_list(flag: str, raw: str) -> list[str]:
    values = [part.strip() for part in raw.split(",") if part.strip()]
    if not values:
        raise CliError(f"option '{flag}' requires at least one value")
    return values


def parse_ms_map(flag: str, raw: str) -> dict[str, int]:
    """Parse 'adapter=ms,adapter=ms' into a dict, validating adapter names."""
    entries = [part.strip() for part in raw.split(",") if part.strip()]
    if not entries:
        raise CliError(f"option '{flag}' requires at least one entry in the form adapter=milliseconds")

    result = {}
    for entry in entries:
        adapter, sep, value = entry.partition("=")
        adapter = adapter.strip()
        if not adapter or not sep:
            raise CliError(f"invalid format for option '{flag}': '{entry}'. Expected adapter=milliseconds")
        if adapter not in KNOWN_NAMESPACES:
            raise CliError(f"unknown adapter '{adapter}' supplied to option '{flag}'")
        try:
            ms = int(value)
        except ValueError:
            raise CliError(f"invalid numeric value '{value}' for adapter '{adapter}' in option '{flag}'") from None
        if ms < 0:
            raise CliError(f"invalid numeric value '{value}' for adapter '{adapter}' in option '{flag}'")
        result[adapter] = ms
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="domainstat",
        description="Check the availability of one or more domain names, streaming results as they arrive",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
    %(prog)s example.com example.net
    %(prog)s --json --concurrency 5 a.com b.io c.dev
    %(prog)s --timeout rdap=1500,whois.lib=3000 example.org

Adapters:
    {', '.join(KNOWN_NAMESPACES)}

Environment:
    DOMAINSTAT_DOMAINR_KEY, DOMAINSTAT_WHOISFREAKS_KEY, DOMAINSTAT_WHOISXML_KEY
        """,
    )
    parser.add_argument("domains", nargs="*", help="Domain names to check")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")

    output = parser.add_mutually_exclusive_group()
    output.add_argument("--json", dest="format", action="store_const", const="json",
                        help="Output newline-delimited JSON objects")
    output.add_argument("--pretty", dest="format", action="store_const", const="pretty",
                        help="Pretty text output (default)")

    color = parser.add_mutually_exclusive_group()
    color.add_argument("--color", dest="color", action="store_const", const=True,
                       help="Force ANSI colors")
    color.add_argument("--no-color", dest="color", action="store_const", const=False,
                       help="Disable ANSI colors")

    parser.add_argument("--concurrency", type=int, default=None,
                        help="Maximum concurrent domain lookups (default 10)")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--burst", dest="burst_mode", action="store_const", const=True,
                      help="Run all adapters in parallel")
    mode.add_argument("--serial", dest="burst_mode", action="store_const", const=False,
                      help="Launch adapters one at a time (default)")

    parser.add_argument("--only", action="append", default=[],
                        help="Comma-separated adapter namespace prefixes to allow")
    parser.add_argument("--skip", action="append", default=[],
                        help="Comma-separated adapter namespace prefixes to skip")

    cache = parser.add_mutually_exclusive_group()
    cache.add_argument("--cache", dest="cache", action="store_const", const=True,
                       help="Enable response caching (default)")
    cache.add_argument("--no-cache", dest="cache", action="store_const", const=False,
                       help="Disable response caching")

    parser.add_argument("--timeout", action="append", default=[], metavar="A=MS,...",
                        help="Abort adapters after the given milliseconds")
    parser.add_argument("--stagger-delay", action="append", default=[], metavar="A=MS,...",
                        help="Delay before launching the next adapter in serial mode")

    parser.add_argument("--rdap-server", default=None, help="Override the RDAP server URL")
    parser.add_argument("--skip-rdap", action="store_true", help="Skip RDAP lookups")

    parser.add_argument("--dns", choices=DNS_STRATEGIES, default="native",
                        help="DNS strategy: system resolver or DNS-over-HTTPS (default: native)")
    parser.add_argument("--whois", choices=WHOIS_STRATEGIES, default="lib",
                        help="WHOIS strategy: port 43 library or hosted API (default: lib)")

    parser.add_argument("--domainr-key", default=None, help="Domainr API key")
    parser.add_argument("--whoisfreaks-key", default=None, help="WhoisFreaks API key")
    parser.add_argument("--whoisxml-key", default=None, help="WhoisXML API key")

    parser.add_argument("--verbose", action="store_true", help="Emit adapter logs to stderr")
    return parser


def options_from_args(args: argparse.Namespace, defaults: dict | None = None, env_keys: ApiKeys | None = None) -> CheckOptions:
    """Merge config-file defaults, environment keys and flags (flags win)."""
    defaults = dict(defaults or {})

    only = [p for raw in args.only for p in parse_list("--only", raw)]
    skip = [p for raw in args.skip for p in parse_list("--skip", raw)]

    timeout_config = dict(defaults.get("timeout_config", {}))
    for raw in args.timeout:
        timeout_config.update(parse_ms_map("--timeout", raw))
    stagger_delay = dict(defaults.get("stagger_delay", {}))
    for raw in args.stagger_delay:
        stagger_delay.update(parse_ms_map("--stagger-delay", raw))

    concurrency = args.concurrency if args.concurrency is not None else defaults.get("concurrency", 10)
    if concurrency < 1:
        raise CliError("option '--concurrency' must be a positive integer")

    flag_keys = ApiKeys(domainr=args.domainr_key, whoisfreaks=args.whoisfreaks_key, whoisxml=args.whoisxml_key)
    api_keys = (env_keys or ApiKeys()).merged(flag_keys)

    return CheckOptions(
        concurrency=concurrency,
        only=list(dict.fromkeys(only)) or None,
        skip=list(dict.fromkeys(skip)) or None,
        cache=args.cache if args.cache is not None else defaults.get("cache", True),
        burst_mode=args.burst_mode if args.burst_mode is not None else defaults.get("burst_mode", False),
        timeout_config=timeout_config,
        stagger_delay=stagger_delay,
        api_keys=api_keys,
        tld_config=TldConfig(rdap_server=args.rdap_server, skip_rdap=args.skip_rdap),
    )


def colorize(text: str, color_code: str, enabled: bool) -> str:
    if not enabled or not color_code:
        return text
    return f"{color_code}{text}{RESET}"


def format_pretty(status: DomainStatus, use_color: bool = False) -> str:
    availability = status.availability.value
    icon = STATUS_ICONS.get(availability, "•")
    status_text = colorize(availability, STATUS_COLORS.get(availability, ""), use_color)
    latency = status.latencies.get(status.resolver)
    latency_text = f" in {latency}ms" if latency is not None else ""
    error_text = f" error({status.error.code}): {status.error.message}" if status.error else ""
    return f"{icon} {status.domain} -> {status_text} via {status.resolver}{latency_text}{error_text}"


def format_json(status: DomainStatus) -> str:
    return json.dumps(status.to_dict(), default=str)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )
    # Request URLs carry API keys
    if not os.environ.get("DOMAINSTAT_DEBUG"):
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


async def run(domains: list[str], options: CheckOptions, checker: DomainChecker, fmt: str, use_color: bool) -> None:
    async with checker:
        async for status in checker.check_batch_stream(domains, options):
            if fmt == "json":
                print(format_json(status), flush=True)
            else:
                print(format_pretty(status, use_color), flush=True)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.domains:
        print("domainstat: no domains provided.", file=sys.stderr)
        parser.print_help(sys.stderr)
        return 1

    setup_logging(args.verbose)

    try:
        options = options_from_args(args, load_defaults(), load_api_keys())
    except (CliError, ConfigError, ValueError) as e:
        print(f"domainstat: {e}", file=sys.stderr)
        return 1

    fmt = args.format or "pretty"
    default_color = sys.stdout.isatty() and "NO_COLOR" not in os.environ
    use_color = False if fmt == "json" else (args.color if args.color is not None else default_color)

    checker = DomainChecker(dns_strategy=args.dns, whois_strategy=args.whois)
    try:
        asyncio.run(run(args.domains, options, checker, fmt, use_color))
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        print(f"domainstat: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
