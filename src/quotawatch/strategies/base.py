"""Fetch strategy base classes."""

from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from collections.abc import Mapping
from enum import StrEnum

import httpx
import msgspec

from quotawatch.config.cookie_cache import CookieHeaderCache
from quotawatch.config.secrets import SecretStore
from quotawatch.config.settings import ProviderConfig
from quotawatch.config.settings import SourceMode
from quotawatch.errors.types import ClassifiedError
from quotawatch.models import UsageSnapshot
from quotawatch.probes.pty import PTYCommandRunner


class StrategyKind(StrEnum):
    WEB = "web"
    CLI = "cli"
    API = "api"
    OAUTH = "oauth"


class FetchContext(msgspec.Struct, kw_only=True):
    """Everything a strategy needs for one fetch, passed in explicitly."""

    provider_id: str
    settings: ProviderConfig = msgspec.field(default_factory=ProviderConfig)
    secrets: SecretStore | None = None
    cookie_cache: CookieHeaderCache | None = None
    runner: PTYCommandRunner | None = None
    http_client: httpx.AsyncClient | None = None
    environ: Mapping[str, str] | None = None

    @property
    def source_mode(self) -> SourceMode:
        return self.settings.source_mode


class FetchResult(msgspec.Struct, frozen=True):
    """Result of a fetch attempt."""

    success: bool
    snapshot: UsageSnapshot | None = None
    error: ClassifiedError | None = None
    source_label: str | None = None  # Which credential produced the snapshot
    diagnostics: dict | None = None

    @classmethod
    def ok(
        cls,
        snapshot: UsageSnapshot,
        source_label: str | None = None,
        diagnostics: dict | None = None,
    ) -> FetchResult:
        return cls(
            success=True,
            snapshot=snapshot,
            source_label=source_label,
            diagnostics=diagnostics,
        )

    @classmethod
    def fail(cls, error: ClassifiedError, diagnostics: dict | None = None) -> FetchResult:
        return cls(success=False, error=error, diagnostics=diagnostics)


class FetchAttempt(msgspec.Struct):
    """Record of a single fetch attempt."""

    strategy: str
    kind: StrategyKind
    success: bool
    error: ClassifiedError | None = None
    source_label: str | None = None
    duration_ms: int = 0
    available: bool = True
    diagnostics: dict | None = None


class FetchOutcome(msgspec.Struct):
    """Complete result of fetching from a provider."""

    provider_id: str
    success: bool
    snapshot: UsageSnapshot | None
    source: str | None  # Which strategy succeeded
    attempts: list[FetchAttempt]  # All attempts for debugging
    error: ClassifiedError | None = None  # Final error if all failed
    source_label: str | None = None  # Which credential succeeded

    @classmethod
    def succeeded(
        cls,
        provider_id: str,
        snapshot: UsageSnapshot,
        source: str,
        attempts: list[FetchAttempt],
        source_label: str | None = None,
    ) -> FetchOutcome:
        return cls(
            provider_id=provider_id,
            success=True,
            snapshot=snapshot,
            source=source,
            attempts=attempts,
            source_label=source_label,
        )

    @classmethod
    def failed(
        cls,
        provider_id: str,
        error: ClassifiedError,
        attempts: list[FetchAttempt],
    ) -> FetchOutcome:
        return cls(
            provider_id=provider_id,
            success=False,
            snapshot=None,
            source=None,
            attempts=attempts,
            error=error,
        )


class FetchStrategy(ABC):
    """Base class for fetch strategies.

    Strategies never raise out of ``fetch``: expected failures come back as
    ``FetchResult.fail`` with a classified error.
    """

    name: str
    kind: StrategyKind

    @abstractmethod
    def is_available(self, context: FetchContext) -> bool:
        """
        Check if this strategy can be attempted.

        Should be fast (no network calls, no subprocesses).
        """
        ...

    @abstractmethod
    async def fetch(self, context: FetchContext) -> FetchResult:
        """
        Attempt to fetch usage data.

        Returns FetchResult with snapshot or a classified error.
        """
        ...

    def should_fallback(self, error: ClassifiedError, context: FetchContext) -> bool:
        """Whether the pipeline should try the next strategy after ``error``."""
        return True
