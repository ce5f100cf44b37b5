"""Tests for the cookie-authenticated web strategy."""

from __future__ import annotations

import pytest

from quotawatch.auth.base import MANUAL_SOURCE_LABEL
from quotawatch.auth.base import SessionCookieSpec
from quotawatch.config.cookie_cache import CookieHeaderCache
from quotawatch.config.settings import CookieSource
from quotawatch.config.settings import ProviderConfig
from quotawatch.config.settings import SourceMode
from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind
from quotawatch.strategies.base import FetchContext
from quotawatch.strategies.web import CookieWebStrategy

SPEC = SessionCookieSpec(
    provider_id="ollama",
    domains=("ollama.com",),
    session_names=frozenset({"session"}),
)


class FakeBrowserStore:
    def __init__(self, cookies: dict[str, list[tuple[str, str]]]):
        self.cookies = cookies

    def load(self, browser, domains):
        return self.cookies.get(browser, [])


class SiteStrategy(CookieWebStrategy):
    """Web strategy whose site answers per cookie header."""

    cookie_spec = SPEC
    display_name = "Ollama"

    def __init__(self, browser_store, responses: dict[str, object]):
        super().__init__(browser_store)
        self.responses = responses
        self.seen: list[str] = []

    async def fetch_with_cookie(self, cookie_header, context, diagnostics):
        self.seen.append(cookie_header)
        response = self.responses[cookie_header]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def context(fake_secrets) -> FetchContext:
    return FetchContext(
        provider_id="ollama",
        secrets=fake_secrets,
        cookie_cache=CookieHeaderCache(fake_secrets),
    )


SIGNED_OUT = ClassifiedError(ErrorKind.NOT_AUTHENTICATED, "signed out")


class TestAvailability:
    """Tests for is_available and should_fallback."""

    @pytest.mark.parametrize(
        "mode,expected",
        [(SourceMode.AUTO, True), (SourceMode.WEB, True), (SourceMode.CLI, False)],
    )
    def test_source_mode(self, mode, expected):
        """Only auto and web modes run the web strategy."""
        strategy = SiteStrategy(FakeBrowserStore({}), {})
        context = FetchContext(provider_id="ollama", settings=ProviderConfig(source_mode=mode))
        assert strategy.is_available(context) is expected

    def test_cookie_source_off(self):
        """cookie_source = off disables the strategy."""
        strategy = SiteStrategy(FakeBrowserStore({}), {})
        settings = ProviderConfig(cookie_source=CookieSource.OFF)
        assert not strategy.is_available(FetchContext(provider_id="ollama", settings=settings))

    def test_fallback_only_in_auto(self):
        """An explicit web mode does not fall back to other strategies."""
        strategy = SiteStrategy(FakeBrowserStore({}), {})
        auto = FetchContext(provider_id="ollama")
        web = FetchContext(provider_id="ollama", settings=ProviderConfig(source_mode=SourceMode.WEB))
        assert strategy.should_fallback(SIGNED_OUT, auto)
        assert not strategy.should_fallback(SIGNED_OUT, web)


class TestCookieWebStrategy:
    """Tests for CookieWebStrategy.fetch."""

    @pytest.mark.asyncio
    async def test_browser_success_is_cached(self, context, snapshot_factory):
        """A browser cookie that works is cached for next time."""
        snapshot = snapshot_factory(provider="ollama")
        strategy = SiteStrategy(
            FakeBrowserStore({"chrome": [("session", "ch")]}), {"session=ch": snapshot}
        )

        result = await strategy.fetch(context)

        assert result.success
        assert result.source_label == "Chrome"
        entry = context.cookie_cache.load("ollama")
        assert entry.cookie_header == "session=ch"
        assert entry.source_label == "Chrome"

    @pytest.mark.asyncio
    async def test_cached_header_tried_first(self, context, snapshot_factory):
        """The cached header is tried before browser import."""
        context.cookie_cache.store("ollama", "session=old", "Firefox")
        snapshot = snapshot_factory(provider="ollama")
        strategy = SiteStrategy(
            FakeBrowserStore({"chrome": [("session", "ch")]}),
            {"session=old": snapshot, "session=ch": snapshot},
        )

        result = await strategy.fetch(context)

        assert result.source_label == "Firefox (cached)"
        assert strategy.seen == ["session=old"]

    @pytest.mark.asyncio
    async def test_stale_cache_is_cleared(self, context, snapshot_factory):
        """A rejected cached header is dropped and the browser header cached."""
        context.cookie_cache.store("ollama", "session=old", "Firefox")
        snapshot = snapshot_factory(provider="ollama")
        strategy = SiteStrategy(
            FakeBrowserStore({"chrome": [("session", "ch")]}),
            {"session=old": SIGNED_OUT, "session=ch": snapshot},
        )

        result = await strategy.fetch(context)

        assert result.success
        assert result.source_label == "Chrome"
        assert result.diagnostics["retried"] == ["Firefox (cached)"]
        assert context.cookie_cache.load("ollama").cookie_header == "session=ch"

    @pytest.mark.asyncio
    async def test_only_stale_cache_is_cleared(self, context):
        """A lone cached header that fails is removed."""
        context.cookie_cache.store("ollama", "session=old", "Firefox")
        strategy = SiteStrategy(FakeBrowserStore({}), {"session=old": SIGNED_OUT})

        result = await strategy.fetch(context)

        assert result.error.kind is ErrorKind.NOT_AUTHENTICATED
        assert context.cookie_cache.load("ollama") is None

    @pytest.mark.asyncio
    async def test_manual_header_is_not_cached(self, context, fake_secrets, snapshot_factory):
        """A manual header wins and is never copied into the cache."""
        fake_secrets.store_cookie_header("ollama", "session=manual")
        snapshot = snapshot_factory(provider="ollama")
        strategy = SiteStrategy(
            FakeBrowserStore({"chrome": [("session", "ch")]}), {"session=manual": snapshot}
        )

        result = await strategy.fetch(context)

        assert result.source_label == MANUAL_SOURCE_LABEL
        assert context.cookie_cache.load("ollama") is None

    @pytest.mark.asyncio
    async def test_invalid_manual_header(self, context, fake_secrets):
        """A manual header without a session cookie fails as not authenticated."""
        fake_secrets.store_cookie_header("ollama", "theme=dark")
        strategy = SiteStrategy(FakeBrowserStore({"chrome": [("session", "ch")]}), {})

        result = await strategy.fetch(context)

        assert result.error.kind is ErrorKind.NOT_AUTHENTICATED
        assert strategy.seen == []

    @pytest.mark.asyncio
    async def test_no_candidates(self, context):
        """No cookie anywhere is reported as no credential candidates."""
        strategy = SiteStrategy(FakeBrowserStore({}), {})
        result = await strategy.fetch(context)
        assert result.error.kind is ErrorKind.NO_CREDENTIAL_CANDIDATES
        assert "Ollama" in str(result.error)

    @pytest.mark.asyncio
    async def test_missing_usage_becomes_parse_failure(self, context):
        """A signed-in page without usage data is reported as a parse failure."""
        missing = ClassifiedError(ErrorKind.MISSING_USAGE_DATA, "no usage", raw_excerpt="<html>")
        strategy = SiteStrategy(
            FakeBrowserStore({"chrome": [("session", "ch")], "firefox": [("session", "ff")]}),
            {"session=ch": missing, "session=ff": missing},
        )

        result = await strategy.fetch(context)

        assert strategy.seen == ["session=ch", "session=ff"]
        assert result.error.kind is ErrorKind.PARSE_FAILED
        assert result.error.raw_excerpt == "<html>"

    @pytest.mark.asyncio
    async def test_network_error_stops(self, context):
        """A network failure is not retried with other cookies."""
        offline = ClassifiedError(ErrorKind.NETWORK, "offline")
        strategy = SiteStrategy(
            FakeBrowserStore({"chrome": [("session", "ch")], "firefox": [("session", "ff")]}),
            {"session=ch": offline},
        )

        result = await strategy.fetch(context)

        assert result.error.kind is ErrorKind.NETWORK
        assert strategy.seen == ["session=ch"]
