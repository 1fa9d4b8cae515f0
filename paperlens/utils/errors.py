"""Custom exception hierarchy for PaperLens.

All application exceptions inherit from :class:`PaperLensError`, which
carries an optional ``provider_name`` so error handlers can identify which
backend (e.g. "openai", "ollama", "siliconflow-embedding") caused the
failure.

The hierarchy mirrors the failure classes a caller has to tell apart:

    PaperLensError  (base -- catch-all for any PaperLens error)
    +-- InvalidConfigurationError (missing API key, malformed base URL)
    +-- NetworkFailureError       (transport-level: refused, reset, timeout)
    +-- ProtocolError             (non-2xx HTTP status, carries code + body)
    +-- DecodeError               (malformed JSON where a payload was expected)
    +-- RequestCancelledError     (caller-initiated stop, never shown as error)
    +-- BudgetExceededError       (nothing fits the token budget -- soft)
    +-- InvalidPageRangeError     (page range expression yields no pages)
    +-- IngestionError            (document ingestion aborted)

Every class exposes a ``kind`` (:class:`ErrorKind`) so streaming code can
report the failure class inside a ``FailedEvent`` without re-raising.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Failure classes surfaced to callers of the network-facing providers."""

    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    NETWORK_FAILURE = "NETWORK_FAILURE"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    DECODE_ERROR = "DECODE_ERROR"
    CANCELLED = "CANCELLED"
    BUDGET_EXCEEDED = "BUDGET_EXCEEDED"
    INVALID_INPUT = "INVALID_INPUT"
    INGESTION_FAILED = "INGESTION_FAILED"


class PaperLensError(Exception):
    """Base exception for all PaperLens errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which backend triggered the error.
    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[deepseek] HTTP 401: invalid api key``.
    """

    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class InvalidConfigurationError(PaperLensError):
    """Raised when a provider is missing an API key or has a malformed base URL."""

    kind = ErrorKind.INVALID_CONFIGURATION

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Wire-level errors (embedding + inference backends)
# ---------------------------------------------------------------------------

class NetworkFailureError(PaperLensError):
    """Raised when the backend cannot be reached or the connection drops."""

    kind = ErrorKind.NETWORK_FAILURE

    def __init__(
        self,
        message: str = "Network request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProtocolError(PaperLensError):
    """Raised when the backend answers with a non-2xx HTTP status.

    ``status_code`` is the HTTP status and ``body`` whatever response text
    was available (truncated to keep log lines readable).
    """

    kind = ErrorKind.PROTOCOL_ERROR

    _BODY_LIMIT = 500

    def __init__(
        self,
        status_code: int,
        body: str = "",
        provider_name: str | None = None,
        message: str | None = None,
    ) -> None:
        self._status_code = status_code
        self._body = body[: self._BODY_LIMIT]
        super().__init__(
            message=message or f"HTTP {status_code}: {self._body or 'no response body'}",
            provider_name=provider_name,
        )

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def body(self) -> str:
        return self._body


class DecodeError(PaperLensError):
    """Raised when a response body is not the JSON shape the client expects."""

    kind = ErrorKind.DECODE_ERROR

    def __init__(
        self,
        message: str = "Malformed response body",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RequestCancelledError(PaperLensError):
    """Raised when a caller asks for the result of a stream it cancelled.

    Named to avoid clashing with :class:`asyncio.CancelledError`; this one
    is a normal outcome and should never be surfaced to the user as a
    failure.
    """

    kind = ErrorKind.CANCELLED

    def __init__(
        self,
        message: str = "Request cancelled",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Context / document errors
# ---------------------------------------------------------------------------

class BudgetExceededError(PaperLensError):
    """Raised when not even a single page fits within the token budget.

    Callers treat this as a soft condition and continue with an empty or
    truncated context.
    """

    kind = ErrorKind.BUDGET_EXCEEDED

    def __init__(
        self,
        message: str = "No content fits within the token budget",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidPageRangeError(PaperLensError):
    """Raised when a page range expression yields no valid pages."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(
        self,
        message: str = "Page range expression selects no pages",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IngestionError(PaperLensError):
    """Raised when document ingestion aborts before a new index is ready."""

    kind = ErrorKind.INGESTION_FAILED

    def __init__(
        self,
        message: str = "Document ingestion failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
