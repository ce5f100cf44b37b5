"""System keyring storage for tokens and cookie headers.

Reads go through a ``TTLCache`` owned by the store instance so repeated
refreshes do not hit the OS keychain every poll. Writes and deletes
invalidate the cached entry immediately.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)

SERVICE_NAME = "quotawatch"
_MISSING = object()


class TTLCache:
    """Small per-key expiring cache."""

    def __init__(
        self,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, str | None]] = {}

    def get(self, key: str, default=_MISSING):
        entry = self._entries.get(key)
        if entry is None:
            return default
        stored_at, value = entry
        if self._clock() - stored_at > self.ttl:
            del self._entries[key]
            return default
        return value

    def set(self, key: str, value: str | None) -> None:
        self._entries[key] = (self._clock(), value)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not _MISSING


def secret_key(provider_id: str, secret_type: str) -> str:
    """Generate a keyring key for storage."""
    return f"{SERVICE_NAME}:{provider_id}:{secret_type}"


class SecretStore:
    """Keyring-backed secret storage with a read cache."""

    TOKEN = "token"
    COOKIE_HEADER = "cookie-header"
    COOKIE_CACHE = "cookie-cache"

    def __init__(self, cache: TTLCache, enabled: bool = True) -> None:
        self.cache = cache
        self.enabled = enabled

    def _read(self, provider_id: str, secret_type: str) -> str | None:
        if not self.enabled:
            return None

        key = secret_key(provider_id, secret_type)
        cached = self.cache.get(key)
        if cached is not _MISSING:
            return cached

        try:
            import keyring

            value = keyring.get_password(SERVICE_NAME, key)
        except Exception as e:
            logger.warning("Keyring read failed for %s: %s", key, e)
            return None

        self.cache.set(key, value)
        return value

    def _write(self, provider_id: str, secret_type: str, value: str | None) -> bool:
        if not self.enabled:
            return False

        key = secret_key(provider_id, secret_type)
        self.cache.invalidate(key)

        try:
            import keyring
            from keyring.errors import PasswordDeleteError

            if value is None:
                try:
                    keyring.delete_password(SERVICE_NAME, key)
                except PasswordDeleteError:
                    pass
            else:
                keyring.set_password(SERVICE_NAME, key, value)
        except Exception as e:
            logger.warning("Keyring write failed for %s: %s", key, e)
            return False

        logger.debug("Stored %s for %s", secret_type, provider_id)
        return True

    def load_token(self, provider_id: str) -> str | None:
        return self._read(provider_id, self.TOKEN)

    def store_token(self, provider_id: str, token: str | None) -> bool:
        return self._write(provider_id, self.TOKEN, token)

    def load_cookie_header(self, provider_id: str) -> str | None:
        """Load a manually supplied Cookie header."""
        return self._read(provider_id, self.COOKIE_HEADER)

    def store_cookie_header(self, provider_id: str, header: str | None) -> bool:
        return self._write(provider_id, self.COOKIE_HEADER, header)

    def load_raw(self, provider_id: str, secret_type: str) -> str | None:
        return self._read(provider_id, secret_type)

    def store_raw(self, provider_id: str, secret_type: str, value: str | None) -> bool:
        return self._write(provider_id, secret_type, value)


_store: SecretStore | None = None


def get_secret_store() -> SecretStore:
    """Get the process secret store, built from configuration."""
    global _store
    if _store is None:
        from .settings import get_config

        config = get_config()
        _store = SecretStore(
            TTLCache(config.credentials.secret_cache_ttl),
            enabled=config.credentials.use_keyring,
        )
    return _store


def set_secret_store(store: SecretStore | None) -> None:
    """Replace the process secret store (None resets to config defaults)."""
    global _store
    _store = store
