"""Credential acquisition for quotawatch."""

from quotawatch.auth.base import MANUAL_SOURCE_LABEL
from quotawatch.auth.base import CredentialCandidate
from quotawatch.auth.base import SessionCookieSpec
from quotawatch.auth.cookies import BrowserCookieStore
from quotawatch.auth.cookies import normalize_cookie_header
from quotawatch.auth.cookies import resolve_candidates
from quotawatch.auth.tokens import cleaned
from quotawatch.auth.tokens import resolve_token_candidates

__all__ = [
    "MANUAL_SOURCE_LABEL",
    "CredentialCandidate",
    "SessionCookieSpec",
    "BrowserCookieStore",
    "normalize_cookie_header",
    "resolve_candidates",
    "cleaned",
    "resolve_token_candidates",
]
