"""Cache of the last cookie header that produced a successful fetch."""

from __future__ import annotations

import logging
from datetime import UTC
from datetime import datetime

import msgspec

from quotawatch.config.secrets import SecretStore

logger = logging.getLogger(__name__)


class CookieCacheEntry(msgspec.Struct, frozen=True):
    """A cached cookie header and where it came from."""

    cookie_header: str
    source_label: str
    stored_at: datetime


class CookieHeaderCache:
    """Per-provider cookie header cache persisted through the secret store."""

    def __init__(self, store: SecretStore) -> None:
        self.secrets = store

    def load(self, provider_id: str) -> CookieCacheEntry | None:
        raw = self.secrets.load_raw(provider_id, SecretStore.COOKIE_CACHE)
        if not raw:
            return None
        try:
            return msgspec.json.decode(raw, type=CookieCacheEntry)
        except msgspec.DecodeError:
            logger.warning("Discarding unreadable cookie cache for %s", provider_id)
            self.clear(provider_id)
            return None

    def store(
        self,
        provider_id: str,
        cookie_header: str,
        source_label: str,
        now: datetime | None = None,
    ) -> None:
        entry = CookieCacheEntry(
            cookie_header=cookie_header,
            source_label=source_label,
            stored_at=now or datetime.now(UTC),
        )
        self.secrets.store_raw(
            provider_id,
            SecretStore.COOKIE_CACHE,
            msgspec.json.encode(entry).decode(),
        )
        logger.debug("Cached cookie header for %s from %s", provider_id, source_label)

    def clear(self, provider_id: str) -> None:
        self.secrets.store_raw(provider_id, SecretStore.COOKIE_CACHE, None)
