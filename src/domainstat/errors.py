"""
Adapter error taxonomy and classifier.

Adapters never let exceptions escape. Whatever goes wrong inside a lookup
(network failure, timeout, non-2xx status, subprocess exit, missing
credential) is turned into an AdapterError before the response leaves the
adapter. The orchestrator only ever looks at AdapterError.kind/retryable.

Internal exceptions below exist so adapters can signal a specific kind from
deep inside a fetch helper and let classify_exception() do the mapping.
"""

import asyncio
import re
from dataclasses import dataclass
from enum import Enum

import httpx


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    TIMEOUT = "TIMEOUT"
    RATE_LIMIT = "RATE_LIMIT"
    API_KEY_MISSING = "API_KEY_MISSING"
    UNSUPPORTED_TLD = "UNSUPPORTED_TLD"
    HTTP_CLIENT = "HTTP_CLIENT"  # 4xx other than 429
    HTTP_SERVER = "HTTP_SERVER"  # 5xx
    ADAPTER_ERROR = "ADAPTER_ERROR"
    CANCELLED = "CANCELLED"
    INVALID_DOMAIN = "INVALID_DOMAIN"  # validator only


DEFAULT_RETRYABLE = {
    ErrorKind.TIMEOUT: True,
    ErrorKind.RATE_LIMIT: True,
    ErrorKind.API_KEY_MISSING: False,
    ErrorKind.UNSUPPORTED_TLD: False,
    ErrorKind.HTTP_CLIENT: False,
    ErrorKind.HTTP_SERVER: True,
    ErrorKind.ADAPTER_ERROR: True,
    ErrorKind.CANCELLED: True,
    ErrorKind.INVALID_DOMAIN: False,
}


@dataclass(frozen=True)
class AdapterError:
    """
    Structured adapter failure.

    `code` is the user-facing string: the kind name, except for HTTP errors
    where it is HTTP_<status> (e.g. HTTP_404, HTTP_503).
    """

    kind: ErrorKind
    code: str
    message: str
    retryable: bool
    status_code: int | None = None
    retry_after: float | None = None

    def to_dict(self) -> dict:
        data = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.status_code is not None:
            data["status_code"] = self.status_code
        if self.retry_after is not None:
            data["retry_after"] = self.retry_after
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "AdapterError":
        code = data["code"]
        status_code = data.get("status_code")
        if code.startswith("HTTP_") and status_code is None:
            try:
                status_code = int(code[5:])
            except ValueError:
                status_code = None
        kind = _kind_for_code(code, status_code)
        return cls(
            kind=kind,
            code=code,
            message=data.get("message", ""),
            retryable=data.get("retryable", DEFAULT_RETRYABLE[kind]),
            status_code=status_code,
            retry_after=data.get("retry_after"),
        )

    @classmethod
    def make(cls, kind: ErrorKind, message: str, **kwargs) -> "AdapterError":
        return cls(kind=kind, code=kind.value, message=message, retryable=DEFAULT_RETRYABLE[kind], **kwargs)

    @classmethod
    def timeout(cls, timeout_ms: int | None = None) -> "AdapterError":
        message = f"Timed out after {timeout_ms}ms" if timeout_ms is not None else "Timed out"
        return cls.make(ErrorKind.TIMEOUT, message)

    @classmethod
    def cancelled(cls) -> "AdapterError":
        return cls.make(ErrorKind.CANCELLED, "Cancelled after another adapter answered")


def _kind_for_code(code: str, status_code: int | None) -> ErrorKind:
    if status_code is not None and code.startswith("HTTP_"):
        if status_code == 429:
            return ErrorKind.RATE_LIMIT
        if 400 <= status_code < 500:
            return ErrorKind.HTTP_CLIENT
        if status_code >= 500:
            return ErrorKind.HTTP_SERVER
    try:
        return ErrorKind(code)
    except ValueError:
        return ErrorKind.ADAPTER_ERROR


# =============================================================================
# Exceptions raised inside adapters
# =============================================================================

class AdapterFailure(Exception):
    """Base for failures raised inside an adapter's lookup code."""

    kind = ErrorKind.ADAPTER_ERROR


class ApiKeyMissingError(AdapterFailure):
    kind = ErrorKind.API_KEY_MISSING


class UnsupportedTldError(AdapterFailure):
    kind = ErrorKind.UNSUPPORTED_TLD


class RateLimitError(AdapterFailure):
    kind = ErrorKind.RATE_LIMIT

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class HttpStatusError(AdapterFailure):
    """Non-success status from an upstream HTTP service."""

    def __init__(self, status_code: int, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


# =============================================================================
# Classification
# =============================================================================

_API_KEY_RE = re.compile(r"api key missing", re.IGNORECASE)
_QUOTA_RE = re.compile(r"\b429\b|quota|rate.?limit", re.IGNORECASE)
_TIMEOUT_RE = re.compile(r"timed? ?out", re.IGNORECASE)
_UNSUPPORTED_RE = re.compile(r"tld is not supported|no whois server", re.IGNORECASE)


def classify_status(
    status_code: int,
    message: str | None = None,
    retry_after: float | None = None,
) -> AdapterError:
    """Map an unexpected HTTP status to an AdapterError."""
    message = message or f"HTTP status {status_code}"
    if status_code == 429:
        return AdapterError(
            kind=ErrorKind.RATE_LIMIT,
            code=ErrorKind.RATE_LIMIT.value,
            message=message,
            retryable=True,
            status_code=status_code,
            retry_after=retry_after,
        )
    if 400 <= status_code < 500:
        kind = ErrorKind.HTTP_CLIENT
    elif status_code >= 500:
        kind = ErrorKind.HTTP_SERVER
    else:
        return AdapterError(
            kind=ErrorKind.ADAPTER_ERROR,
            code=f"HTTP_{status_code}",
            message=message,
            retryable=True,
            status_code=status_code,
        )
    return AdapterError(
        kind=kind,
        code=f"HTTP_{status_code}",
        message=message,
        retryable=DEFAULT_RETRYABLE[kind],
        status_code=status_code,
        retry_after=retry_after,
    )


def classify_exception(exc: BaseException, timeout_ms: int | None = None) -> AdapterError:
    """
    Turn any exception raised during a lookup into an AdapterError.

    Typed exceptions are matched first; plain exceptions fall back to
    matching well-known phrases in their message.
    """
    message = str(exc) or exc.__class__.__name__

    if isinstance(exc, HttpStatusError):
        return classify_status(exc.status_code, message, exc.retry_after)
    if isinstance(exc, RateLimitError):
        return AdapterError.make(ErrorKind.RATE_LIMIT, message, retry_after=exc.retry_after)
    if isinstance(exc, AdapterFailure):
        return AdapterError.make(exc.kind, message)
    if isinstance(exc, httpx.HTTPStatusError):
        return classify_status(exc.response.status_code, message)
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return AdapterError.timeout(timeout_ms)
    if isinstance(exc, asyncio.CancelledError):
        return AdapterError.cancelled()

    if _API_KEY_RE.search(message):
        return AdapterError.make(ErrorKind.API_KEY_MISSING, message)
    if _QUOTA_RE.search(message):
        return AdapterError.make(ErrorKind.RATE_LIMIT, message)
    if _UNSUPPORTED_RE.search(message):
        return AdapterError.make(ErrorKind.UNSUPPORTED_TLD, message)
    if _TIMEOUT_RE.search(message):
        return AdapterError.timeout(timeout_ms)

    if isinstance(exc, httpx.HTTPError):
        message = f"{exc.__class__.__name__}: {message}"
    return AdapterError.make(ErrorKind.ADAPTER_ERROR, message[:200])

