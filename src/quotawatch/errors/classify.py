"""Exception classification for structured error handling."""

from __future__ import annotations

import asyncio
import json

import httpx
import msgspec

from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind
from quotawatch.errors.types import classify_http_status
from quotawatch.probes.pty import PTYLaunchError


def classify_http_status_error(
    error: httpx.HTTPStatusError,
    provider_id: str | None = None,
) -> ClassifiedError:
    """Classify HTTP status errors into structured errors."""
    status = error.response.status_code
    return ClassifiedError(
        classify_http_status(status),
        f"HTTP {status}",
        provider=provider_id,
        raw_excerpt=error.response.text[:200] if error.response.text else None,
    )


def check_status(
    status_code: int,
    provider_id: str | None = None,
    body: str | None = None,
) -> None:
    """Raise a classified error for any non-200 response status.

    Raises:
        ClassifiedError: ``invalid_credentials`` for 401/403, ``network``
            (with the status) otherwise.
    """
    if status_code == 200:
        return
    raise ClassifiedError(
        classify_http_status(status_code),
        f"HTTP {status_code}",
        provider=provider_id,
        raw_excerpt=body[:400] if body else None,
    )


def classify_exception(
    e: BaseException,
    provider_id: str | None = None,
) -> ClassifiedError:
    """Classify any exception into a structured error."""

    if isinstance(e, ClassifiedError):
        if provider_id is not None and e.provider is None:
            return e.with_provider(provider_id)
        return e

    # Network errors - httpx specific
    if isinstance(e, httpx.TimeoutException):
        return ClassifiedError(
            ErrorKind.TIMED_OUT, "Request timed out", provider=provider_id
        )

    if isinstance(e, httpx.ConnectError):
        return ClassifiedError(
            ErrorKind.NETWORK, "Failed to connect to server", provider=provider_id
        )

    if isinstance(e, httpx.HTTPStatusError):
        return classify_http_status_error(e, provider_id)

    if isinstance(e, httpx.HTTPError):
        return ClassifiedError(ErrorKind.NETWORK, str(e), provider=provider_id)

    # Process launch
    if isinstance(e, PTYLaunchError):
        return ClassifiedError(
            ErrorKind.NOT_INSTALLED, str(e), provider=provider_id
        )

    # Parse errors
    if isinstance(e, (json.JSONDecodeError, msgspec.DecodeError)):
        return ClassifiedError(
            ErrorKind.PARSE_FAILED,
            f"Failed to parse response: {e}",
            provider=provider_id,
        )

    if isinstance(e, (KeyError, ValueError, TypeError)):
        return ClassifiedError(
            ErrorKind.PARSE_FAILED,
            f"Invalid response format: {e}",
            provider=provider_id,
        )

    # Async errors
    if isinstance(e, (asyncio.TimeoutError, TimeoutError)):
        return ClassifiedError(
            ErrorKind.TIMED_OUT, "Operation timed out", provider=provider_id
        )

    # File system errors
    if isinstance(e, FileNotFoundError):
        filename = e.filename or "executable"
        return ClassifiedError(
            ErrorKind.NOT_INSTALLED,
            f"Not found: {filename}",
            provider=provider_id,
        )

    if isinstance(e, PermissionError):
        return ClassifiedError(
            ErrorKind.NOT_AUTHENTICATED,
            f"Permission denied: {e.filename}" if e.filename else "Permission denied",
            provider=provider_id,
        )

    # Unknown
    return ClassifiedError(
        ErrorKind.NETWORK,
        f"{type(e).__name__}: {e}",
        provider=provider_id,
    )
