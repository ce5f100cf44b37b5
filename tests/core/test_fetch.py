"""Tests for the fetch pipeline."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from quotawatch.core.fetch import execute_fetch_pipeline
from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind
from quotawatch.strategies.base import FetchContext
from quotawatch.strategies.base import FetchResult
from quotawatch.strategies.base import FetchStrategy
from quotawatch.strategies.base import StrategyKind


class FakeStrategy(FetchStrategy):
    """Strategy returning a canned result."""

    def __init__(
        self,
        name: str,
        result: FetchResult | None = None,
        *,
        available: bool = True,
        fallback: bool = True,
        raises: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.kind = StrategyKind.WEB
        self.result = result
        self.available = available
        self.fallback = fallback
        self.raises = raises
        self.delay = delay
        self.calls = 0

    def is_available(self, context: FetchContext) -> bool:
        return self.available

    async def fetch(self, context: FetchContext) -> FetchResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        assert self.result is not None
        return self.result

    def should_fallback(self, error: ClassifiedError, context: FetchContext) -> bool:
        return self.fallback


def failing(kind: ErrorKind = ErrorKind.NOT_AUTHENTICATED) -> FetchResult:
    return FetchResult.fail(ClassifiedError(kind, f"{kind.value} failure"))


@pytest.fixture
def context() -> FetchContext:
    return FetchContext(provider_id="claude")


@pytest.fixture(autouse=True)
def _isolated_config(temp_config_dir):
    yield


class TestExecuteFetchPipeline:
    """Tests for execute_fetch_pipeline."""

    @pytest.mark.asyncio
    async def test_first_success_wins(self, context, snapshot_factory):
        """The first successful strategy ends the pipeline."""
        web = FakeStrategy("web", FetchResult.ok(snapshot_factory(), "Chrome"))
        cli = FakeStrategy("cli", FetchResult.ok(snapshot_factory(used_percent=90)))

        outcome = await execute_fetch_pipeline("claude", [web, cli], context)

        assert outcome.success
        assert outcome.source == "web"
        assert outcome.source_label == "Chrome"
        assert cli.calls == 0
        assert [a.strategy for a in outcome.attempts] == ["web"]

    @pytest.mark.asyncio
    async def test_falls_back_after_failure(self, context, snapshot_factory):
        """A failed strategy that allows fallback hands over to the next."""
        web = FakeStrategy("web", failing())
        cli = FakeStrategy("cli", FetchResult.ok(snapshot_factory(), "claude CLI"))

        outcome = await execute_fetch_pipeline("claude", [web, cli], context)

        assert outcome.success
        assert outcome.source == "cli"
        assert [a.success for a in outcome.attempts] == [False, True]
        assert outcome.attempts[0].error.kind is ErrorKind.NOT_AUTHENTICATED

    @pytest.mark.asyncio
    async def test_no_fallback_stops(self, context, snapshot_factory):
        """A strategy that declines fallback surfaces its own error."""
        web = FakeStrategy("web", failing(ErrorKind.NETWORK), fallback=False)
        cli = FakeStrategy("cli", FetchResult.ok(snapshot_factory()))

        outcome = await execute_fetch_pipeline("claude", [web, cli], context)

        assert not outcome.success
        assert outcome.error.kind is ErrorKind.NETWORK
        assert outcome.error.provider == "claude"
        assert cli.calls == 0

    @pytest.mark.asyncio
    async def test_all_fail_surfaces_last_error(self, context):
        """When everything fails the last error is reported."""
        web = FakeStrategy("web", failing(ErrorKind.NOT_AUTHENTICATED))
        cli = FakeStrategy("cli", failing(ErrorKind.NOT_INSTALLED))

        outcome = await execute_fetch_pipeline("claude", [web, cli], context)

        assert not outcome.success
        assert outcome.snapshot is None
        assert outcome.error.kind is ErrorKind.NOT_INSTALLED

    @pytest.mark.asyncio
    async def test_unavailable_strategies_are_skipped(self, context, snapshot_factory):
        """Unavailable strategies are recorded but never run."""
        web = FakeStrategy("web", failing(), available=False)
        cli = FakeStrategy("cli", FetchResult.ok(snapshot_factory()))

        outcome = await execute_fetch_pipeline("claude", [web, cli], context)

        assert outcome.success
        assert web.calls == 0
        assert outcome.attempts[0].available is False

    @pytest.mark.asyncio
    async def test_nothing_available(self, context):
        """No runnable strategy is reported as no credential candidates."""
        outcome = await execute_fetch_pipeline(
            "claude", [FakeStrategy("web", available=False)], context
        )
        assert not outcome.success
        assert outcome.error.kind is ErrorKind.NO_CREDENTIAL_CANDIDATES

    @pytest.mark.asyncio
    async def test_no_strategies(self, context):
        """An empty strategy list fails the same way."""
        outcome = await execute_fetch_pipeline("claude", [], context)
        assert outcome.error.kind is ErrorKind.NO_CREDENTIAL_CANDIDATES
        assert outcome.attempts == []

    @pytest.mark.asyncio
    async def test_timeout(self, context):
        """A strategy that runs too long fails as timed out."""
        slow = FakeStrategy("cli", failing(), delay=5.0)
        outcome = await execute_fetch_pipeline("claude", [slow], context, timeout=0.05)
        assert outcome.error.kind is ErrorKind.TIMED_OUT

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_classified(self, context, snapshot_factory):
        """A strategy that raises is classified and the pipeline continues."""
        request = httpx.Request("GET", "https://claude.ai")
        broken = FakeStrategy("web", raises=httpx.ConnectError("refused", request=request))
        cli = FakeStrategy("cli", FetchResult.ok(snapshot_factory()))

        outcome = await execute_fetch_pipeline("claude", [broken, cli], context)

        assert outcome.success
        assert outcome.attempts[0].error.kind is ErrorKind.NETWORK

    @pytest.mark.asyncio
    async def test_default_context(self, snapshot_factory):
        """Without a context one is built from the loaded config."""
        strategy = FakeStrategy("api", FetchResult.ok(snapshot_factory(provider="openrouter")))
        outcome = await execute_fetch_pipeline("openrouter", [strategy])
        assert outcome.success
        assert outcome.provider_id == "openrouter"
