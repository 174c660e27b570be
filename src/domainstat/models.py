"""
Core data types shared by the validator, adapters and the orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import AdapterError

# Resolver names that are not adapter namespaces
RESOLVER_VALIDATOR = "validator"
RESOLVER_APP = "app"

DEFAULT_CONCURRENCY = 10


class Availability(str, Enum):
    """Availability verdicts for a domain."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    UNSUPPORTED = "unsupported"
    INVALID = "invalid"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ParsedDomain:
    """A normalized domain split into registrable name and public suffix."""

    input: str
    domain: str
    public_suffix: str | None
    valid: bool = True
    # False when the suffix is not on the ICANN section of the Public Suffix List
    icann: bool = True

    @property
    def tld(self) -> str | None:
        if not self.public_suffix:
            return None
        return self.public_suffix.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class AdapterResponse:
    """Outcome of one adapter invocation."""

    domain: str
    availability: Availability
    source: str
    raw: Any = None
    latency: int | None = None
    error: AdapterError | None = None

    @property
    def definitive(self) -> bool:
        """True for an error-free answer other than 'unknown'."""
        return self.error is None and self.availability != Availability.UNKNOWN


@dataclass(frozen=True)
class DomainStatus:
    """Final verdict for one domain."""

    domain: str
    availability: Availability
    resolver: str
    raw: dict[str, Any] = field(default_factory=dict)
    latencies: dict[str, int] = field(default_factory=dict)
    error: AdapterError | None = None

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "availability": self.availability.value,
            "resolver": self.resolver,
            "raw": dict(self.raw),
            "latencies": dict(self.latencies),
            "error": self.error.to_dict() if self.error else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DomainStatus":
        error = data.get("error")
        return cls(
            domain=data["domain"],
            availability=Availability(data["availability"]),
            resolver=data["resolver"],
            raw=dict(data.get("raw") or {}),
            latencies=dict(data.get("latencies") or {}),
            error=AdapterError.from_dict(error) if error else None,
        )


@dataclass(frozen=True)
class TldConfig:
    """Per-call RDAP tweaks."""

    rdap_server: str | None = None
    skip_rdap: bool = False


@dataclass(frozen=True)
class ApiKeys:
    """Credentials for the hosted lookup services."""

    domainr: str | None = None
    whoisfreaks: str | None = None
    whoisxml: str | None = None

    def merged(self, other: "ApiKeys | None") -> "ApiKeys":
        """Return a copy where keys set on `other` win."""
        if other is None:
            return self
        return ApiKeys(
            domainr=other.domainr or self.domainr,
            whoisfreaks=other.whoisfreaks or self.whoisfreaks,
            whoisxml=other.whoisxml or self.whoisxml,
        )


@dataclass(frozen=True)
class CheckOptions:
    """
    Options for a check or batch check.

    only/skip are adapter namespace prefixes. timeout_config and stagger_delay
    map adapter namespaces to milliseconds.
    """

    concurrency: int = DEFAULT_CONCURRENCY
    only: tuple[str, ...] | None = None
    skip: tuple[str, ...] | None = None
    cache: bool = True
    burst_mode: bool = False
    timeout_config: dict[str, int] = field(default_factory=dict)
    stagger_delay: dict[str, int] = field(default_factory=dict)
    api_keys: ApiKeys = field(default_factory=ApiKeys)
    tld_config: TldConfig = field(default_factory=TldConfig)

    def __post_init__(self) -> None:
        if not isinstance(self.concurrency, int) or self.concurrency < 1:
            raise ValueError(f"concurrency must be a positive integer, got {self.concurrency!r}")
        for name, mapping in (("timeout_config", self.timeout_config), ("stagger_delay", self.stagger_delay)):
            for namespace, ms in mapping.items():
                if ms < 0:
                    raise ValueError(f"{name}[{namespace!r}] must not be negative, got {ms}")
        # Accept plain lists for the prefix filters
        if self.only is not None:
            object.__setattr__(self, "only", tuple(self.only))
        if self.skip is not None:
            object.__setattr__(self, "skip", tuple(self.skip))

    def adapter_allowed(self, namespace: str) -> bool:
        if self.only and not any(namespace.startswith(p) for p in self.only):
            return False
        if self.skip and any(namespace.startswith(p) for p in self.skip):
            return False
        return True
