"""Tests for the cookie and key commands."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from quotawatch.cli.app import ExitCode
from quotawatch.cli.app import app
from quotawatch.config.cookie_cache import CookieHeaderCache
from quotawatch.config.secrets import SecretStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated(temp_config_dir):
    yield


class TestCookieCommand:
    """Tests for `quotawatch cookie`."""

    def test_store_cookie(self, fake_secrets):
        """A pasted header is normalized and stored."""
        result = runner.invoke(app, ["cookie", "ollama"], input="Cookie: session=abc;theme=dark\n")
        assert result.exit_code == 0
        assert fake_secrets.values[("ollama", SecretStore.COOKIE_HEADER)] == "session=abc; theme=dark"

    def test_store_clears_cached_header(self, fake_secrets):
        """Storing a manual header drops the cached browser header."""
        CookieHeaderCache(fake_secrets).store("claude", "sessionKey=old", "Chrome")
        runner.invoke(app, ["cookie", "claude"], input="sessionKey=new\n")
        assert CookieHeaderCache(fake_secrets).load("claude") is None

    def test_empty_cookie(self, fake_secrets):
        """Input without any cookie pair is rejected."""
        result = runner.invoke(app, ["cookie", "ollama"], input="not a cookie\n")
        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert ("ollama", SecretStore.COOKIE_HEADER) not in fake_secrets.values

    def test_clear(self, fake_secrets):
        """--clear removes the stored header."""
        fake_secrets.store_cookie_header("ollama", "session=abc")
        result = runner.invoke(app, ["cookie", "ollama", "--clear"])
        assert result.exit_code == 0
        assert ("ollama", SecretStore.COOKIE_HEADER) not in fake_secrets.values

    def test_unknown_provider(self, fake_secrets):
        """Unknown providers are rejected before prompting."""
        result = runner.invoke(app, ["cookie", "nope"])
        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert fake_secrets.writes == []

    def test_keyring_failure(self, fake_secrets):
        """A failed keyring write is a config error."""
        with patch.object(fake_secrets, "_write", return_value=False):
            result = runner.invoke(app, ["cookie", "ollama"], input="session=abc\n")
        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "keyring" in result.stdout


class TestKeyCommand:
    """Tests for `quotawatch key`."""

    def test_store_key(self, fake_secrets):
        """The key is stored without surrounding quotes."""
        result = runner.invoke(app, ["key", "openrouter"], input="'sk-or-v1-abc'\n")
        assert result.exit_code == 0
        assert fake_secrets.values[("openrouter", SecretStore.TOKEN)] == "sk-or-v1-abc"

    def test_clear(self, fake_secrets):
        """--clear removes the stored key."""
        fake_secrets.store_token("openrouter", "sk-or-v1-abc")
        result = runner.invoke(app, ["key", "openrouter", "--clear"])
        assert result.exit_code == 0
        assert ("openrouter", SecretStore.TOKEN) not in fake_secrets.values

    def test_empty_key(self, fake_secrets):
        """A key of only quotes is rejected."""
        result = runner.invoke(app, ["key", "openrouter"], input='""\n')
        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert fake_secrets.writes == []
