"""Error types and classifications."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

import msgspec


class ErrorKind(StrEnum):
    """Closed set of fetch failure kinds shared by every strategy."""

    NOT_AUTHENTICATED = "not_authenticated"
    INVALID_CREDENTIALS = "invalid_credentials"
    MISSING_USAGE_DATA = "missing_usage_data"
    NOT_INSTALLED = "not_installed"
    PARSE_FAILED = "parse_failed"
    TIMED_OUT = "timed_out"
    BLOCKED_BY_PROMPT = "blocked_by_prompt"
    NETWORK = "network"
    NO_CREDENTIAL_CANDIDATES = "no_credential_candidates"


class ClassifiedError(Exception):
    """A fetch failure with a machine-readable kind.

    Raised by attempt callables and carried as a value inside fetch results.
    Callers branch on ``kind``, never on the message text.
    """

    def __init__(
        self,
        kind: ErrorKind,
        detail: str | None = None,
        *,
        provider: str | None = None,
        raw_excerpt: str | None = None,
    ) -> None:
        self.kind = ErrorKind(kind)
        self.detail = detail
        self.provider = provider
        self.raw_excerpt = raw_excerpt
        super().__init__(detail or self.kind.value)

    def __repr__(self) -> str:
        return f"ClassifiedError({self.kind.value!r}, {self.detail!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClassifiedError):
            return NotImplemented
        return (self.kind, self.detail) == (other.kind, other.detail)

    def __hash__(self) -> int:
        return hash((self.kind, self.detail))

    def with_provider(self, provider: str) -> ClassifiedError:
        """Return a copy tagged with the provider id."""
        return ClassifiedError(
            self.kind, self.detail, provider=provider, raw_excerpt=self.raw_excerpt
        )

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(
            kind=self.kind,
            message=str(self),
            provider=self.provider,
            raw_excerpt=self.raw_excerpt,
        )


class ErrorInfo(msgspec.Struct, frozen=True):
    """Serializable view of a classified error, used for JSON output."""

    kind: ErrorKind
    message: str
    provider: str | None = None
    raw_excerpt: str | None = None
    timestamp: datetime = msgspec.field(
        default_factory=lambda: datetime.now().astimezone()
    )


HTTP_ERROR_KINDS: dict[int, ErrorKind] = {
    401: ErrorKind.INVALID_CREDENTIALS,
    403: ErrorKind.INVALID_CREDENTIALS,
    404: ErrorKind.NETWORK,
    429: ErrorKind.NETWORK,
}


def classify_http_status(status_code: int) -> ErrorKind:
    """Map an HTTP status code to an error kind."""
    return HTTP_ERROR_KINDS.get(status_code, ErrorKind.NETWORK)
