"""API token resolution from the environment and the secret store."""

from __future__ import annotations

import os
from collections.abc import Mapping

from quotawatch.auth.base import CredentialCandidate
from quotawatch.config.secrets import SecretStore


def cleaned(value: str | None) -> str | None:
    """Trim whitespace and one pair of surrounding quotes; empty becomes None."""
    if value is None:
        return None
    text = value.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        text = text[1:-1].strip()
    return text or None


def env_value(name: str, environ: Mapping[str, str] | None = None) -> str | None:
    environ = os.environ if environ is None else environ
    return cleaned(environ.get(name))


def resolve_token_candidates(
    provider_id: str,
    env_var: str,
    store: SecretStore | None = None,
    environ: Mapping[str, str] | None = None,
) -> list[CredentialCandidate]:
    """Environment token first, then the stored token."""
    candidates = []
    if token := env_value(env_var, environ):
        candidates.append(CredentialCandidate(credential=token, source_label=env_var))

    if store is not None:
        stored = cleaned(store.load_token(provider_id))
        if stored and all(c.credential != stored for c in candidates):
            candidates.append(
                CredentialCandidate(credential=stored, source_label="keyring")
            )
    return candidates
