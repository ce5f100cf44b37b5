"""Pseudo-terminal CLI strategy."""

from __future__ import annotations

import asyncio
import logging
import threading
from abc import abstractmethod
from datetime import UTC
from datetime import datetime

from quotawatch.config.settings import SourceMode
from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind
from quotawatch.parsing import ParseFailure
from quotawatch.parsing import ParseResult
from quotawatch.parsing import ParseSuccess
from quotawatch.probes.pty import PTYCommandRunner
from quotawatch.probes.pty import PTYLaunchError
from quotawatch.probes.pty import PTYOptions
from quotawatch.probes.pty import PTYResult
from quotawatch.strategies.base import FetchContext
from quotawatch.strategies.base import FetchResult
from quotawatch.strategies.base import FetchStrategy
from quotawatch.strategies.base import StrategyKind

logger = logging.getLogger(__name__)


class PTYCLIStrategy(FetchStrategy):
    """Run a provider CLI on a PTY, type a command, and parse the screen.

    ``probe_plan`` lists (input, options) runs. Later runs are only used
    when the previous one failed to parse, which covers CLIs that
    occasionally render a half-drawn panel.
    """

    name = "cli"
    kind = StrategyKind.CLI

    binary: str

    @abstractmethod
    def probe_plan(self) -> list[tuple[str, PTYOptions]]:
        """Ordered probe runs as (text to send, PTY options)."""

    @abstractmethod
    def parse(self, text: str, now: datetime) -> ParseResult:
        """Parse captured CLI output."""

    def binary_for(self, context: FetchContext) -> str:
        return context.settings.binary or self.binary

    def is_available(self, context: FetchContext) -> bool:
        return context.source_mode in (SourceMode.AUTO, SourceMode.CLI)

    def should_fallback(self, error: ClassifiedError, context: FetchContext) -> bool:
        return False

    async def run_probe(
        self, runner: PTYCommandRunner, binary: str, send: str, options: PTYOptions
    ) -> PTYResult:
        """Run one probe in a worker thread.

        If the awaiting task is cancelled (a fetch timeout or a superseding
        refresh), the run is told to stop and the child is torn down before
        the cancellation propagates.
        """
        cancel = threading.Event()
        worker = asyncio.ensure_future(
            asyncio.to_thread(runner.run, binary, send, options, cancel=cancel)
        )
        try:
            return await asyncio.shield(worker)
        except asyncio.CancelledError:
            cancel.set()
            await asyncio.wait([worker])
            if not worker.cancelled() and worker.exception() is not None:
                logger.debug("%s probe failed after cancel: %s", binary, worker.exception())
            raise

    async def fetch(self, context: FetchContext) -> FetchResult:
        provider_id = context.provider_id
        binary = self.binary_for(context)
        runner = context.runner or PTYCommandRunner()
        diagnostics: dict = {"runs": []}
        failure: ParseFailure | None = None

        for send, options in self.probe_plan():
            try:
                result = await self.run_probe(runner, binary, send, options)
            except PTYLaunchError as e:
                return FetchResult.fail(
                    ClassifiedError(ErrorKind.NOT_INSTALLED, str(e), provider=provider_id),
                    diagnostics,
                )

            diagnostics["runs"].append(
                {
                    "rows": options.rows,
                    "cols": options.cols,
                    "timed_out": result.timed_out,
                    "stopped_on": result.stopped_on,
                    "bytes": len(result.text),
                    "duration": round(result.duration, 2),
                }
            )

            parsed = self.parse(result.text, datetime.now(UTC))
            if isinstance(parsed, ParseSuccess):
                return FetchResult.ok(parsed.snapshot, f"{binary} CLI", diagnostics)

            failure = parsed
            if failure.kind is not ErrorKind.PARSE_FAILED:
                break
            logger.debug("%s output did not parse, retrying probe", binary)

        if failure is None:
            return FetchResult.fail(
                ClassifiedError(ErrorKind.PARSE_FAILED, "No CLI probe runs configured", provider=provider_id),
                diagnostics,
            )
        return FetchResult.fail(failure.to_error(provider_id), diagnostics)
