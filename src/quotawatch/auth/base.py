"""Credential candidate types."""

from __future__ import annotations

import msgspec

MANUAL_SOURCE_LABEL = "manual cookie header"


class CredentialCandidate(msgspec.Struct, frozen=True):
    """One credential to try, with a human-readable origin.

    ``credential`` is a cookie header, a token, or None for CLI strategies
    that authenticate on their own.
    """

    credential: str | None
    source_label: str

    def __repr__(self) -> str:
        # Never leak the credential value into logs or tracebacks.
        return f"CredentialCandidate(source_label={self.source_label!r})"


class SessionCookieSpec(msgspec.Struct, frozen=True):
    """Which cookies prove a signed-in session for a provider."""

    provider_id: str
    domains: tuple[str, ...]
    session_names: frozenset[str]
    chunked_prefixes: tuple[str, ...] = ()

    def is_session_cookie(self, name: str) -> bool:
        """Match exact session names and chunked ``name.0``/``name.1`` parts."""
        if name in self.session_names:
            return True
        for prefix in self.chunked_prefixes:
            if name.startswith(prefix) and name[len(prefix):].isdigit():
                return True
        return False
