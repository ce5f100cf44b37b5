"""Error handling for quotawatch."""

from quotawatch.errors.classify import check_status
from quotawatch.errors.classify import classify_exception
from quotawatch.errors.classify import classify_http_status_error
from quotawatch.errors.messages import format_error
from quotawatch.errors.messages import get_provider_remediation
from quotawatch.errors.messages import truncate_excerpt
from quotawatch.errors.types import HTTP_ERROR_KINDS
from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorInfo
from quotawatch.errors.types import ErrorKind
from quotawatch.errors.types import classify_http_status

__all__ = [
    # Core types
    "ErrorKind",
    "ClassifiedError",
    "ErrorInfo",
    "HTTP_ERROR_KINDS",
    # Classification functions
    "classify_http_status",
    "check_status",
    "classify_exception",
    "classify_http_status_error",
    # Messages
    "format_error",
    "get_provider_remediation",
    "truncate_excerpt",
]
