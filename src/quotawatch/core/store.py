"""Per-provider refresh coordination for quotawatch."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field

import httpx

from quotawatch.config.cookie_cache import CookieHeaderCache
from quotawatch.config.secrets import SecretStore
from quotawatch.config.secrets import get_secret_store
from quotawatch.config.settings import Config
from quotawatch.config.settings import get_config
from quotawatch.core.fetch import execute_fetch_pipeline
from quotawatch.core.gate import ConsecutiveFailureGate
from quotawatch.core.transitions import QuotaTransition
from quotawatch.core.transitions import SessionQuotaTracker
from quotawatch.errors.messages import format_error
from quotawatch.errors.types import ClassifiedError
from quotawatch.models import UsageSnapshot
from quotawatch.notifications import LoggingNotifier
from quotawatch.notifications import Notifier
from quotawatch.probes.pty import PTYCommandRunner
from quotawatch.providers.base import Provider
from quotawatch.strategies.base import FetchAttempt
from quotawatch.strategies.base import FetchContext
from quotawatch.strategies.base import FetchOutcome

logger = logging.getLogger(__name__)


@dataclass
class ProviderState:
    """What the UI shows for one provider."""

    provider_id: str
    snapshot: UsageSnapshot | None = None
    error_message: str | None = None
    error: ClassifiedError | None = None
    source: str | None = None
    source_label: str | None = None
    attempts: list[FetchAttempt] = field(default_factory=list)
    gate: ConsecutiveFailureGate = field(default_factory=ConsecutiveFailureGate)
    tracker: SessionQuotaTracker | None = None

    def __post_init__(self) -> None:
        if self.tracker is None:
            self.tracker = SessionQuotaTracker(self.provider_id)

    def clear(self) -> None:
        self.snapshot = None
        self.error_message = None
        self.error = None
        self.source = None
        self.source_label = None
        self.attempts = []
        self.gate.reset()
        self.tracker.reset()


class UsageStore:
    """Refreshes providers and keeps their latest state.

    Each provider's state is written only by its own refresh task.
    A refresh requested while another is in flight for the same provider
    cancels the older one.
    """

    def __init__(
        self,
        providers: Mapping[str, Provider],
        config: Config | None = None,
        notifier: Notifier | None = None,
        secrets: SecretStore | None = None,
        runner: PTYCommandRunner | None = None,
        http_client: httpx.AsyncClient | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.providers = dict(providers)
        self.config = config or get_config()
        self.notifier = notifier or LoggingNotifier()
        self.secrets = secrets
        self.runner = runner or PTYCommandRunner()
        self.http_client = http_client
        self.environ = environ
        self.states: dict[str, ProviderState] = {
            pid: ProviderState(pid) for pid in self.providers
        }
        self._tasks: dict[str, asyncio.Task] = {}

    def state(self, provider_id: str) -> ProviderState:
        if provider_id not in self.states:
            self.states[provider_id] = ProviderState(provider_id)
        return self.states[provider_id]

    def enabled_provider_ids(self) -> list[str]:
        return [pid for pid in self.providers if self.config.is_provider_enabled(pid)]

    def build_context(self, provider_id: str) -> FetchContext:
        secrets = self.secrets
        if secrets is None:
            secrets = self.secrets = get_secret_store()
        return FetchContext(
            provider_id=provider_id,
            settings=self.config.get_provider_config(provider_id),
            secrets=secrets,
            cookie_cache=CookieHeaderCache(secrets),
            runner=self.runner,
            http_client=self.http_client,
            environ=self.environ,
        )

    async def refresh_provider(self, provider_id: str) -> ProviderState:
        """Fetch one provider and fold the outcome into its state."""
        state = self.state(provider_id)
        if not self.config.is_provider_enabled(provider_id):
            state.clear()
            return state

        outcome = await self.fetch_outcome(provider_id)
        self.apply_outcome(outcome)
        return state

    async def fetch_outcome(self, provider_id: str) -> FetchOutcome:
        """Run the provider's pipeline once without touching its state."""
        provider = self.providers[provider_id]
        return await execute_fetch_pipeline(
            provider_id,
            provider.fetch_strategies(),
            self.build_context(provider_id),
            timeout=self.config.fetch.timeout,
        )

    def apply_outcome(self, outcome: FetchOutcome) -> ProviderState:
        """Update state from a finished fetch.

        A failure right after a success keeps the previous snapshot and
        shows no error; a repeated failure replaces the snapshot with the
        error message.
        """
        state = self.state(outcome.provider_id)
        state.attempts = outcome.attempts

        if outcome.success and outcome.snapshot is not None:
            self._observe_session(state, outcome.snapshot)
            state.snapshot = outcome.snapshot
            state.error_message = None
            state.error = None
            state.source = outcome.source
            state.source_label = outcome.source_label
            state.gate.record_success()
            return state

        error = outcome.error
        if state.gate.should_surface_error(state.snapshot is not None):
            state.error = error
            state.error_message = format_error(error) if error else "Unknown error"
            state.snapshot = None
        else:
            logger.info(
                "%s refresh failed once (%s), keeping last snapshot",
                outcome.provider_id,
                error.kind if error else "unknown",
            )
            state.error = None
            state.error_message = None
        return state

    def _observe_session(self, state: ProviderState, snapshot: UsageSnapshot) -> None:
        remaining = snapshot.session_remaining()
        if remaining is None:
            return
        change = state.tracker.observe(remaining)
        if change is QuotaTransition.NONE:
            return
        if not self.config.notifications.session_quota:
            logger.debug("%s %s notification disabled", state.provider_id, change.value)
            return
        self.notifier.notify(state.provider_id, change, snapshot)

    def request_refresh(self, provider_id: str) -> asyncio.Task:
        """Start a refresh, cancelling any refresh still running for the provider."""
        previous = self._tasks.get(provider_id)
        if previous is not None and not previous.done():
            logger.debug("%s refresh superseded", provider_id)
            previous.cancel()

        task = asyncio.create_task(
            self.refresh_provider(provider_id), name=f"refresh-{provider_id}"
        )
        self._tasks[provider_id] = task

        def _forget(done: asyncio.Task) -> None:
            if self._tasks.get(provider_id) is done:
                del self._tasks[provider_id]

        task.add_done_callback(_forget)
        return task

    async def _refresh_bounded(
        self, semaphore: asyncio.Semaphore, provider_id: str
    ) -> None:
        async with semaphore:
            task = self.request_refresh(provider_id)
            try:
                await task
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
                # A newer request for this provider took over.

    async def refresh_all(self) -> dict[str, ProviderState]:
        """Refresh every enabled provider concurrently."""
        semaphore = asyncio.Semaphore(self.config.fetch.max_concurrent)
        provider_ids = self.enabled_provider_ids()

        for pid in self.providers:
            if pid not in provider_ids:
                self.state(pid).clear()

        results = await asyncio.gather(
            *(self._refresh_bounded(semaphore, pid) for pid in provider_ids),
            return_exceptions=True,
        )
        for pid, result in zip(provider_ids, results):
            if isinstance(result, Exception):
                logger.error("%s refresh crashed: %s", pid, result, exc_info=result)
        return {pid: self.states[pid] for pid in provider_ids}

    async def run_forever(self, interval: float | None = None, on_refresh=None) -> None:
        """Poll all providers every ``interval`` seconds until cancelled."""
        interval = interval or self.config.fetch.poll_interval
        while True:
            states = await self.refresh_all()
            if on_refresh is not None:
                on_refresh(states)
            await asyncio.sleep(interval)

    async def close(self) -> None:
        tasks = [t for t in self._tasks.values() if not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
