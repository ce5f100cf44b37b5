"""Fetch pipeline for executing provider fetch strategies."""

from __future__ import annotations

import asyncio
import logging
import time

from quotawatch.config.settings import get_config
from quotawatch.errors.classify import classify_exception
from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind
from quotawatch.strategies.base import FetchAttempt
from quotawatch.strategies.base import FetchContext
from quotawatch.strategies.base import FetchOutcome
from quotawatch.strategies.base import FetchResult
from quotawatch.strategies.base import FetchStrategy

logger = logging.getLogger(__name__)


async def _run_strategy(
    strategy: FetchStrategy,
    context: FetchContext,
    timeout: float,
) -> FetchResult:
    """Run one strategy, turning timeouts and stray exceptions into failures."""
    provider_id = context.provider_id
    try:
        return await asyncio.wait_for(strategy.fetch(context), timeout=timeout)
    except TimeoutError:
        return FetchResult.fail(
            ClassifiedError(
                ErrorKind.TIMED_OUT,
                f"{strategy.name} fetch timed out after {timeout:g}s",
                provider=provider_id,
            )
        )
    except Exception as e:
        logger.debug("%s %s strategy raised", provider_id, strategy.name, exc_info=True)
        return FetchResult.fail(classify_exception(e, provider_id))


async def execute_fetch_pipeline(
    provider_id: str,
    strategies: list[FetchStrategy],
    context: FetchContext | None = None,
    timeout: float | None = None,
) -> FetchOutcome:
    """Execute fetch strategies in priority order.

    Unavailable strategies are skipped. The first success wins. A failure
    stops the pipeline when its strategy declines to fall back; otherwise
    the next strategy runs and, if everything fails, the last failure is
    surfaced.

    Args:
        provider_id: Provider identifier
        strategies: Ordered list of fetch strategies to try
        context: Settings and collaborators handed to every strategy
        timeout: Per-strategy timeout (defaults to fetch.timeout)

    Returns:
        FetchOutcome with result or error
    """
    config = get_config()
    if context is None:
        context = FetchContext(
            provider_id=provider_id,
            settings=config.get_provider_config(provider_id),
        )
    if timeout is None:
        timeout = config.fetch.timeout

    attempts: list[FetchAttempt] = []
    last_error: ClassifiedError | None = None

    for strategy in strategies:
        if not strategy.is_available(context):
            attempts.append(
                FetchAttempt(
                    strategy=strategy.name,
                    kind=strategy.kind,
                    success=False,
                    available=False,
                )
            )
            continue

        start_time = time.monotonic()
        result = await _run_strategy(strategy, context, timeout)
        duration_ms = int((time.monotonic() - start_time) * 1000)

        if result.success and result.snapshot is not None:
            attempts.append(
                FetchAttempt(
                    strategy=strategy.name,
                    kind=strategy.kind,
                    success=True,
                    source_label=result.source_label,
                    duration_ms=duration_ms,
                    diagnostics=result.diagnostics,
                )
            )
            logger.debug(
                "%s fetched via %s (%s) in %dms",
                provider_id,
                strategy.name,
                result.source_label,
                duration_ms,
            )
            return FetchOutcome.succeeded(
                provider_id,
                result.snapshot,
                strategy.name,
                attempts,
                source_label=result.source_label,
            )

        error = result.error or ClassifiedError(
            ErrorKind.PARSE_FAILED, "Strategy returned no snapshot"
        )
        if error.provider is None:
            error = error.with_provider(provider_id)
        attempts.append(
            FetchAttempt(
                strategy=strategy.name,
                kind=strategy.kind,
                success=False,
                error=error,
                duration_ms=duration_ms,
                diagnostics=result.diagnostics,
            )
        )
        last_error = error
        logger.debug("%s %s failed: %r", provider_id, strategy.name, error)

        if not strategy.should_fallback(error, context):
            break

    if last_error is None:
        last_error = ClassifiedError(
            ErrorKind.NO_CREDENTIAL_CANDIDATES,
            "No fetch source is available",
            provider=provider_id,
        )

    return FetchOutcome.failed(provider_id, last_error, attempts)
