"""Cookie-authenticated web strategy."""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod

from quotawatch.auth.base import MANUAL_SOURCE_LABEL
from quotawatch.auth.base import CredentialCandidate
from quotawatch.auth.base import SessionCookieSpec
from quotawatch.auth.cookies import BrowserCookieStore
from quotawatch.auth.cookies import resolve_candidates
from quotawatch.config.settings import SourceMode
from quotawatch.core.retry import NoCandidatesError
from quotawatch.core.retry import is_candidate_retryable
from quotawatch.core.retry import run_candidates
from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind
from quotawatch.models import UsageSnapshot
from quotawatch.strategies.base import FetchContext
from quotawatch.strategies.base import FetchResult
from quotawatch.strategies.base import FetchStrategy
from quotawatch.strategies.base import StrategyKind

logger = logging.getLogger(__name__)

CACHED_SUFFIX = " (cached)"


class CookieWebStrategy(FetchStrategy):
    """Fetch usage from a web page or JSON endpoint with a session cookie.

    Candidates come from the stored manual header, the last header that
    worked, and browser cookie import, in that order. Each candidate is
    tried until one yields a snapshot or a non-credential error occurs.
    Subclasses implement ``fetch_with_cookie`` for their site.
    """

    name = "web"
    kind = StrategyKind.WEB

    cookie_spec: SessionCookieSpec
    display_name: str

    def __init__(self, browser_store: BrowserCookieStore | None = None) -> None:
        self.browser_store = browser_store or BrowserCookieStore()

    @abstractmethod
    async def fetch_with_cookie(
        self,
        cookie_header: str,
        context: FetchContext,
        diagnostics: dict,
    ) -> UsageSnapshot:
        """Fetch a snapshot with one cookie header.

        Raises:
            ClassifiedError: For every expected failure.
        """

    def is_available(self, context: FetchContext) -> bool:
        if context.source_mode not in (SourceMode.AUTO, SourceMode.WEB):
            return False
        return context.settings.cookie_source.is_enabled

    def should_fallback(self, error: ClassifiedError, context: FetchContext) -> bool:
        return context.source_mode is SourceMode.AUTO

    async def resolve(self, context: FetchContext) -> list[CredentialCandidate]:
        """Ordered candidates for this fetch.

        Raises:
            ClassifiedError: When a manual header is invalid or missing.
        """
        settings = context.settings
        manual = None
        if context.secrets is not None:
            manual = context.secrets.load_cookie_header(context.provider_id)

        candidates = await asyncio.to_thread(
            resolve_candidates,
            self.cookie_spec,
            manual,
            settings.preferred_browsers,
            settings.allow_fallback_browsers,
            cookie_source=settings.cookie_source,
            store=self.browser_store,
        )
        if candidates and candidates[0].source_label == MANUAL_SOURCE_LABEL:
            return candidates

        if context.cookie_cache is not None:
            entry = context.cookie_cache.load(context.provider_id)
            if entry is not None and all(
                c.credential != entry.cookie_header for c in candidates
            ):
                cached = CredentialCandidate(
                    credential=entry.cookie_header,
                    source_label=entry.source_label + CACHED_SUFFIX,
                )
                candidates = [cached, *candidates]
        return candidates

    async def fetch(self, context: FetchContext) -> FetchResult:
        provider_id = context.provider_id
        diagnostics: dict = {"candidates": [], "retried": []}

        try:
            candidates = await self.resolve(context)
        except ClassifiedError as e:
            return FetchResult.fail(e, diagnostics)

        diagnostics["candidates"] = [c.source_label for c in candidates]

        def on_retry(candidate: CredentialCandidate, error: BaseException) -> None:
            logger.info(
                "%s: %s failed (%s), trying next cookie source",
                provider_id,
                candidate.source_label,
                getattr(error, "kind", error),
            )
            diagnostics["retried"].append(candidate.source_label)
            if candidate.source_label.endswith(CACHED_SUFFIX) and context.cookie_cache:
                context.cookie_cache.clear(provider_id)

        async def attempt(candidate: CredentialCandidate) -> tuple[UsageSnapshot, str]:
            snapshot = await self.fetch_with_cookie(
                candidate.credential or "", context, diagnostics
            )
            return snapshot, candidate.source_label

        try:
            snapshot, label = await run_candidates(
                candidates,
                attempt,
                should_retry=is_candidate_retryable,
                on_retry=on_retry,
            )
        except NoCandidatesError:
            return FetchResult.fail(
                ClassifiedError(
                    ErrorKind.NO_CREDENTIAL_CANDIDATES,
                    f"No {self.display_name} session found in any browser",
                    provider=provider_id,
                ),
                diagnostics,
            )
        except ClassifiedError as e:
            if (
                len(candidates) == 1
                and candidates[0].source_label.endswith(CACHED_SUFFIX)
                and is_candidate_retryable(e)
                and context.cookie_cache is not None
            ):
                context.cookie_cache.clear(provider_id)
            if e.kind is ErrorKind.MISSING_USAGE_DATA:
                e = ClassifiedError(
                    ErrorKind.PARSE_FAILED,
                    f"Missing {self.display_name} usage data.",
                    provider=provider_id,
                    raw_excerpt=e.raw_excerpt,
                )
            return FetchResult.fail(e, diagnostics)

        if (
            context.cookie_cache is not None
            and label != MANUAL_SOURCE_LABEL
            and not label.endswith(CACHED_SUFFIX)
        ):
            header = next(c.credential for c in candidates if c.source_label == label)
            context.cookie_cache.store(provider_id, header or "", label)

        return FetchResult.ok(snapshot, label, diagnostics)
