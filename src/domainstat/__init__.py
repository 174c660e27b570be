"""
domainstat

Domain availability checking that combines DNS, RDAP, WHOIS and hosted
status APIs into a single verdict per domain. Usable as a library, a CLI
(`domainstat`) and an MCP server (`domainstat-mcp`).
"""

__version__ = "0.2.0"

from .cache import FileCache, InMemoryCache
from .cancellation import CancellationToken
from .checker import DomainChecker, check, check_batch, check_batch_stream
from .engine import ResolutionEngine
from .errors import AdapterError, ErrorKind, classify_exception
from .models import (
    AdapterResponse,
    ApiKeys,
    Availability,
    CheckOptions,
    DomainStatus,
    ParsedDomain,
    TldConfig,
)
from .validator import DomainValidator, parse_domain

__all__ = [
    "__version__",
    "AdapterError",
    "AdapterResponse",
    "ApiKeys",
    "Availability",
    "CancellationToken",
    "CheckOptions",
    "DomainChecker",
    "DomainStatus",
    "DomainValidator",
    "ErrorKind",
    "FileCache",
    "InMemoryCache",
    "ParsedDomain",
    "ResolutionEngine",
    "TldConfig",
    "check",
    "check_batch",
    "check_batch_stream",
    "classify_exception",
    "parse_domain",
]


def main():
    """Main entry point for the MCP server."""
    import sys

    # Handle CLI arguments before importing heavy dependencies
    if "--help" in sys.argv or "-h" in sys.argv:
        print_help()
        sys.exit(0)

    if "--version" in sys.argv or "-V" in sys.argv:
        print(f"domainstat-mcp {__version__}")
        sys.exit(0)

    if "--setup" in sys.argv:
        run_setup()
        sys.exit(0)

    if "--show-config" in sys.argv:
        show_config()
        sys.exit(0)

    # Default: run the MCP server
    from .server import mcp
    mcp.run()


def print_help():
    """Print help message."""
    print(f"""domainstat-mcp {__version__}

An MCP server for checking whether domain names are registered.

Usage:
    domainstat-mcp                 Run the MCP server
    domainstat-mcp --setup         Configure API keys interactively
    domainstat-mcp --show-config   Show current configuration
    domainstat-mcp --version       Show version
    domainstat-mcp --help          Show this help

Configuration:
    The server works out of the box using DNS, RDAP, Mono Domains and WHOIS
    (no API key required).

    Optional API keys (Domainr, WhoisFreaks, WhoisXML) add more sources:
    1. Run: domainstat-mcp --setup
    2. Or set environment variables: DOMAINSTAT_DOMAINR_KEY,
       DOMAINSTAT_WHOISFREAKS_KEY, DOMAINSTAT_WHOISXML_KEY

MCP Client Setup:
    Add to your MCP client configuration:
    {{
      "mcpServers": {{
        "domainstat": {{
          "command": "uvx",
          "args": ["--from", "domainstat", "domainstat-mcp"]
        }}
      }}
    }}
""")


def run_setup():
    """Interactive setup wizard."""
    import getpass
    from .config import KEY_DESCRIPTIONS, KEY_NAMES, get_api_key, get_config_file, mask_key, set_api_key

    print("=" * 50)
    print("domainstat - Setup")
    print("=" * 50)

    for name in KEY_NAMES:
        print()
        print(f"{KEY_DESCRIPTIONS[name]} (optional)")

        current_key = get_api_key(name)
        if current_key:
            print(f"  Current key: {mask_key(current_key)}")
            response = input("  Update this key? [y/N]: ").strip().lower()
            if response != "y":
                continue

        key = getpass.getpass("  API Key (Enter to skip): ").strip()
        if not key:
            print("  ✓ Skipped")
            continue

        if set_api_key(name, key):
            print("  ✓ API key saved")
            test_api_key(name, key)
        else:
            print(f"  ✗ Failed to save API key ({get_config_file()})")

    print()
    print("Setup complete!")


def show_config():
    """Show current configuration."""
    from .config import KEY_DESCRIPTIONS, KEY_NAMES, ConfigError, get_api_key, get_config_file, get_key_source, load_defaults, mask_key

    print("Configuration")
    print("=" * 50)
    print()

    config_file = get_config_file()
    print(f"Config file: {config_file}")
    print(f"  Exists: {config_file.exists()}")
    print()

    for name in KEY_NAMES:
        key = get_api_key(name)
        if key:
            print(f"{KEY_DESCRIPTIONS[name]}: {mask_key(key)}")
            print(f"  Source: {get_key_source(name)}")
        else:
            print(f"{KEY_DESCRIPTIONS[name]}: Not configured")

    print()
    try:
        defaults = load_defaults()
    except ConfigError as e:
        print(f"Defaults: invalid ({e})")
        return
    if defaults:
        print("Defaults:")
        for field, value in defaults.items():
            print(f"  {field}: {value}")
    else:
        print("Defaults: none")


def test_api_key(name: str, key: str):
    """Run one lookup of example.com through the adapter that uses `name`."""
    import asyncio
    from .adapters import AltStatusAdapter, WhoisApiAdapter
    from .validator import parse_domain

    if name == "domainr":
        adapter = AltStatusAdapter(domainr_key=key)
    elif name == "whoisfreaks":
        adapter = WhoisApiAdapter(whoisfreaks_key=key)
    else:
        adapter = WhoisApiAdapter(whoisxml_key=key)

    print(f"  Testing {adapter.namespace}...")

    async def lookup_example():
        try:
            return await adapter.check(parse_domain("example.com"), timeout_ms=10000)
        finally:
            await adapter.aclose()

    response = asyncio.run(lookup_example())
    if response.error:
        print(f"  ✗ Test failed: {response.error.code} {response.error.message}")
    else:
        print(f"  ✓ Lookup succeeded ({response.availability.value} in {response.latency}ms)")
