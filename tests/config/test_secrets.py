"""Tests for the keyring secret store, TTL cache and cookie header cache."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from quotawatch.config.cookie_cache import CookieHeaderCache
from quotawatch.config.secrets import SERVICE_NAME
from quotawatch.config.secrets import SecretStore
from quotawatch.config.secrets import TTLCache
from quotawatch.config.secrets import secret_key


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Tests for TTLCache."""

    def test_get_missing_returns_default(self):
        """Unknown keys return the default."""
        cache = TTLCache(10)
        assert cache.get("a", None) is None
        assert "a" not in cache

    def test_expires_after_ttl(self):
        """Entries disappear once the TTL has passed."""
        clock = FakeClock()
        cache = TTLCache(10, clock=clock)
        cache.set("a", "1")
        clock.now = 10
        assert cache.get("a") == "1"
        clock.now = 10.5
        assert cache.get("a", None) is None

    def test_caches_none(self):
        """A known-absent secret is cached too."""
        cache = TTLCache(10)
        cache.set("a", None)
        assert "a" in cache
        assert cache.get("a", "default") is None

    def test_invalidate_and_clear(self):
        """invalidate drops one key, clear drops all."""
        cache = TTLCache(10)
        cache.set("a", "1")
        cache.set("b", "2")
        cache.invalidate("a")
        assert "a" not in cache
        cache.clear()
        assert "b" not in cache


class TestSecretStore:
    """Tests for SecretStore against a mocked keyring."""

    def test_secret_key(self):
        """Keys are namespaced by provider and type."""
        assert secret_key("ollama", "token") == "quotawatch:ollama:token"

    def test_read_is_cached(self):
        """A second read within the TTL does not hit the keyring."""
        store = SecretStore(TTLCache(60))
        with patch("keyring.get_password", return_value="tok") as get_password:
            assert store.load_token("openrouter") == "tok"
            assert store.load_token("openrouter") == "tok"
        get_password.assert_called_once_with(SERVICE_NAME, "quotawatch:openrouter:token")

    def test_write_invalidates_cache(self):
        """Writing a secret makes the next read go to the keyring."""
        store = SecretStore(TTLCache(60))
        with patch("keyring.get_password", side_effect=["old", "new"]) as get_password, patch(
            "keyring.set_password"
        ) as set_password:
            assert store.load_token("openrouter") == "old"
            assert store.store_token("openrouter", "new") is True
            assert store.load_token("openrouter") == "new"
        set_password.assert_called_once_with(SERVICE_NAME, "quotawatch:openrouter:token", "new")
        assert get_password.call_count == 2

    def test_none_deletes(self):
        """Storing None deletes the keyring entry."""
        store = SecretStore(TTLCache(60))
        with patch("keyring.delete_password") as delete_password:
            assert store.store_cookie_header("ollama", None) is True
        delete_password.assert_called_once_with(SERVICE_NAME, "quotawatch:ollama:cookie-header")

    def test_read_failure_returns_none(self):
        """A broken keyring backend reads as no secret."""
        store = SecretStore(TTLCache(60))
        with patch("keyring.get_password", side_effect=RuntimeError("locked")):
            assert store.load_token("openrouter") is None

    def test_write_failure_returns_false(self):
        """A broken keyring backend reports the failed write."""
        store = SecretStore(TTLCache(60))
        with patch("keyring.set_password", side_effect=RuntimeError("locked")):
            assert store.store_token("openrouter", "x") is False

    def test_disabled_store(self):
        """use_keyring = false means nothing is read or written."""
        store = SecretStore(TTLCache(60), enabled=False)
        with patch("keyring.get_password") as get_password:
            assert store.load_token("openrouter") is None
            assert store.store_token("openrouter", "x") is False
        get_password.assert_not_called()


class TestCookieHeaderCache:
    """Tests for CookieHeaderCache."""

    def test_store_and_load(self, fake_secrets):
        """A stored header loads back with its label and time."""
        cache = CookieHeaderCache(fake_secrets)
        when = datetime(2025, 1, 15, 12, tzinfo=timezone.utc)
        cache.store("ollama", "session=abc", "Chrome", now=when)

        entry = cache.load("ollama")
        assert entry is not None
        assert entry.cookie_header == "session=abc"
        assert entry.source_label == "Chrome"
        assert entry.stored_at == when

    def test_load_missing(self, fake_secrets):
        """Nothing cached loads as None."""
        assert CookieHeaderCache(fake_secrets).load("ollama") is None

    def test_corrupt_entry_is_cleared(self, fake_secrets):
        """Unreadable cache data is discarded."""
        fake_secrets.values[("ollama", SecretStore.COOKIE_CACHE)] = "{not json"
        cache = CookieHeaderCache(fake_secrets)
        assert cache.load("ollama") is None
        assert ("ollama", SecretStore.COOKIE_CACHE) not in fake_secrets.values

    def test_clear(self, fake_secrets):
        """clear removes the entry."""
        cache = CookieHeaderCache(fake_secrets)
        cache.store("claude", "sessionKey=x", "Firefox")
        cache.clear("claude")
        assert cache.load("claude") is None


@pytest.fixture(autouse=True)
def _no_real_keyring():
    """Never touch the developer's keychain from tests."""
    with patch("keyring.get_password", return_value=None), patch(
        "keyring.set_password"
    ), patch("keyring.delete_password"):
        yield
