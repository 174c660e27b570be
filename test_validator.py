#!/usr/bin/env python3
"""
Tests for domain parsing and validation.

Usage:
    source .venv/bin/activate
    python test_validator.py
"""

from _runner import run_module

import _fakes
from domainstat.adapters.tld import TldRegistry, default_tld_registry
from domainstat.errors import ErrorKind
from domainstat.models import Availability
from domainstat.validator import DomainValidator, parse_domain


# =============================================================================
# parse_domain
# =============================================================================

def test_parse_simple_domain():
    parsed = parse_domain("example.com")
    assert parsed.valid
    assert parsed.domain == "example.com"
    assert parsed.public_suffix == "com"
    assert parsed.tld == "com"


def test_parse_normalizes_case_space_and_trailing_dot():
    parsed = parse_domain("  Example.COM.  ")
    assert parsed.valid
    assert parsed.domain == "example.com"
    assert parsed.input == "  Example.COM.  "


def test_parse_multi_label_suffix():
    parsed = parse_domain("example.co.uk")
    assert parsed.valid
    assert parsed.public_suffix == "co.uk"
    assert parsed.tld == "uk"


def test_parse_uses_public_suffix_list():
    for text, suffix in (
        ("example.gov.au", "gov.au"),
        ("example.edu.au", "edu.au"),
        ("example.ac.jp", "ac.jp"),
        ("example.ninja", "ninja"),
        ("example.ltd", "ltd"),
    ):
        parsed = parse_domain(text)
        assert parsed.valid, text
        assert parsed.icann, text
        assert parsed.public_suffix == suffix, text

    assert not parse_domain("www.example.gov.au").valid


def test_parse_unlisted_suffix_is_not_icann():
    parsed = parse_domain("foo.zzz")
    assert parsed.valid
    assert parsed.public_suffix == "zzz"
    assert not parsed.icann


def test_parse_idn_to_punycode():
    parsed = parse_domain("bücher.de")
    assert parsed.valid
    assert parsed.domain == "xn--bcher-kva.de"


def test_parse_rejects_malformed_names():
    for text in ("", "localhost", "a..com", "-bad.com", "bad-.com", "exa mple.com", "example.123", "x" * 64 + ".com"):
        assert not parse_domain(text).valid, text


def test_parse_rejects_subdomains():
    parsed = parse_domain("www.example.com")
    assert not parsed.valid
    assert parsed.public_suffix == "com"

    assert not parse_domain("www.example.co.uk").valid


# =============================================================================
# DomainValidator
# =============================================================================

def test_validator_accepts_supported_names():
    validator = DomainValidator()
    for text in ("example.com", "example.io", "example.co.uk", "example.com.ng"):
        parsed, rejection = validator.validate(text)
        assert rejection is None, text
        assert parsed.valid


def test_validator_supports_every_icann_suffix():
    validator = DomainValidator()
    for text in ("example.gov.au", "example.ac.jp", "example.edu.au", "example.ninja", "example.ltd"):
        parsed, rejection = validator.validate(text)
        assert rejection is None, text
        assert parsed.icann


def test_validator_reports_invalid_names():
    parsed, rejection = DomainValidator().validate("www.example.com")

    assert rejection.availability == Availability.INVALID
    assert rejection.resolver == "validator"
    assert rejection.raw == {"validator": None}
    assert rejection.latencies == {}
    assert rejection.error.kind == ErrorKind.INVALID_DOMAIN
    assert "www.example.com" in rejection.error.message


def test_validator_reports_unsupported_suffixes():
    _, rejection = DomainValidator().validate("foo.zzz")

    assert rejection.domain == "foo.zzz"
    assert rejection.availability == Availability.UNSUPPORTED
    assert rejection.resolver == "validator"
    assert rejection.error.kind == ErrorKind.UNSUPPORTED_TLD
    assert rejection.error.retryable is False
    assert ".zzz" in rejection.error.message


def test_validator_honors_registry_suffixes():
    registry = TldRegistry({"zz": {"rdap": _fakes.rdap()}})
    validator = DomainValidator(supported_suffixes={"com"}, tld_registry=registry)

    assert validator.validate("example.zz")[1] is None
    assert validator.validate("example.com")[1] is None
    assert validator.validate("example.net")[1].availability == Availability.UNSUPPORTED


def test_default_registry_covers_ng():
    registry = default_tld_registry()
    assert "ng" in registry
    assert "com.ng" in registry
    assert "edu.ng" in registry
    assert "com" not in registry

    validator = DomainValidator(supported_suffixes=(), tld_registry=registry)
    assert validator.validate("example.ng")[1] is None


if __name__ == "__main__":
    run_module(globals(), "Validation")
