"""Parser result contract.

Parsers turn raw probe output into a snapshot or a classified failure.
They return values for every expected outcome (signed out, no data, an
unexpected layout) and leave raising to the code that drives them.
"""

from __future__ import annotations

import re

import msgspec

from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind
from quotawatch.models import UsageSnapshot

RAW_EXCERPT_LIMIT = 400


class ParseSuccess(msgspec.Struct, frozen=True):
    snapshot: UsageSnapshot


class ParseFailure(msgspec.Struct, frozen=True):
    kind: ErrorKind
    detail: str | None = None
    raw_excerpt: str | None = None

    def to_error(self, provider: str | None = None) -> ClassifiedError:
        return ClassifiedError(
            self.kind, self.detail, provider=provider, raw_excerpt=self.raw_excerpt
        )


ParseResult = ParseSuccess | ParseFailure


def unwrap(result: ParseResult, provider: str | None = None) -> UsageSnapshot:
    """Return the snapshot or raise the failure as a ClassifiedError."""
    if isinstance(result, ParseFailure):
        raise result.to_error(provider)
    return result.snapshot


def excerpt(text: str, limit: int = RAW_EXCERPT_LIMIT) -> str:
    return text[:limit]


_FORM = re.compile(r"<form\b", re.IGNORECASE)
_PASSWORD = re.compile(r"""type\s*=\s*["']password["']""", re.IGNORECASE)
_EMAIL = re.compile(
    r"""type\s*=\s*["']email["']|name\s*=\s*["']email["']""", re.IGNORECASE
)
_SIGN_IN_HEADING = re.compile(
    r"<h[1-3][^>]*>\s*(?:sign\s*in|log\s*in|welcome back)", re.IGNORECASE
)
_AUTH_ROUTE = re.compile(
    r"""/api/auth/signin|/auth/signin|(?:action|href)\s*=\s*["']/(?:login|signin)["']""",
    re.IGNORECASE,
)


def looks_signed_out(html: str) -> bool:
    """Whether a page looks like a sign-in form rather than an account page.

    A lone "Sign in" link is not enough; an auth-shaped form is required.
    """
    has_form = bool(_FORM.search(html))
    if not has_form:
        return False
    has_heading = bool(_SIGN_IN_HEADING.search(html))
    has_password = bool(_PASSWORD.search(html))
    has_email = bool(_EMAIL.search(html))
    has_route = bool(_AUTH_ROUTE.search(html))

    if has_heading and (has_email or has_password or has_route):
        return True
    if has_route:
        return True
    return has_password and has_email
