"""
Domain parsing and validation.

Input must be a registrable name: exactly one label in front of a public
suffix ("example.com", "example.co.uk"). Hostnames such as
"www.example.com" are rejected as invalid rather than silently trimmed,
since the caller probably meant something else.

Suffixes come from the Public Suffix List snapshot bundled with tldextract;
nothing is fetched at runtime. Only ICANN suffixes are supported by default,
plus whatever the TLD registry adds.
"""

import logging
import re
from typing import Iterable

import tldextract

from .adapters.tld import TldRegistry
from .errors import AdapterError, ErrorKind
from .models import (
    RESOLVER_VALIDATOR,
    Availability,
    DomainStatus,
    ParsedDomain,
)

logger = logging.getLogger(__name__)

_LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")

# Bundled snapshot only, ICANN section only
_extract = tldextract.TLDExtract(cache_dir=None, suffix_list_urls=(), include_psl_private_domains=False)


def parse_domain(text: str) -> ParsedDomain:
    """
    Normalize `text` and split off its public suffix.

    The result is marked invalid when the input is not exactly one LDH label
    followed by a suffix. Names whose suffix is not on the Public Suffix List
    keep their last label as the suffix, with `icann` False.
    """
    raw = text
    name = text.strip().lower().rstrip(".")
    try:
        name = name.encode("idna").decode("ascii")
    except UnicodeError:
        return ParsedDomain(input=raw, domain=name, public_suffix=None, valid=False, icann=False)

    labels = name.split(".")
    if len(labels) < 2 or not all(_LABEL_RE.match(label) for label in labels):
        return ParsedDomain(input=raw, domain=name, public_suffix=None, valid=False, icann=False)

    suffix = _extract(name).suffix
    icann = bool(suffix)
    if not icann:
        suffix = labels[-1]

    registrable_labels = suffix.count(".") + 2
    valid = len(labels) == registrable_labels and not labels[-1].isdigit()
    return ParsedDomain(input=raw, domain=name, public_suffix=suffix, valid=valid, icann=icann)


class DomainValidator:
    """
    Rejects malformed names and suffixes no adapter set can serve.

    Args:
        supported_suffixes: Restrict lookups to these suffixes. None accepts
            every ICANN suffix.
        tld_registry: Suffixes with override adapters, always accepted
    """

    def __init__(
        self,
        supported_suffixes: Iterable[str] | None = None,
        tld_registry: TldRegistry | None = None,
    ) -> None:
        self.supported_suffixes = (
            frozenset(s.lower() for s in supported_suffixes) if supported_suffixes is not None else None
        )
        self.tld_registry = tld_registry

    def is_supported(self, parsed: ParsedDomain) -> bool:
        suffix = parsed.public_suffix
        if self.tld_registry is not None and suffix in self.tld_registry:
            return True
        if self.supported_suffixes is None:
            return parsed.icann
        return suffix in self.supported_suffixes

    def validate(self, text: str) -> tuple[ParsedDomain, DomainStatus | None]:
        """
        Parse `text`. Returns the parsed domain and, when the name cannot be
        looked up, the final DomainStatus to report for it.
        """
        parsed = parse_domain(text)

        if not parsed.valid:
            message = f"Parse error: input: {text}, parsedName: {parsed.domain}, tld: {parsed.public_suffix}"
            logger.info("validation failed for %r: %s", text, message)
            return parsed, self._rejected(text, Availability.INVALID, ErrorKind.INVALID_DOMAIN, message)

        if not self.is_supported(parsed):
            message = f"The library does not support the tld .{parsed.public_suffix}"
            logger.info("validation failed for %r: %s", text, message)
            return parsed, self._rejected(text, Availability.UNSUPPORTED, ErrorKind.UNSUPPORTED_TLD, message)

        return parsed, None

    @staticmethod
    def _rejected(text: str, availability: Availability, kind: ErrorKind, message: str) -> DomainStatus:
        return DomainStatus(
            domain=text.strip().lower(),
            availability=availability,
            resolver=RESOLVER_VALIDATOR,
            raw={RESOLVER_VALIDATOR: None},
            latencies={},
            error=AdapterError.make(kind, message),
        )
