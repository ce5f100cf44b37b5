"""Codex (OpenAI) provider for quotawatch."""

from __future__ import annotations

from datetime import datetime

from quotawatch.config.paths import probe_workdir
from quotawatch.parsing import ParseResult
from quotawatch.probes.pty import PTYOptions
from quotawatch.providers.base import Provider
from quotawatch.providers.base import ProviderMetadata
from quotawatch.providers.codex.status import parse_codex_status
from quotawatch.strategies.cli import PTYCLIStrategy

CODEX_ARGS = ("-s", "read-only", "-a", "untrusted")


class CodexCLIStrategy(PTYCLIStrategy):
    """Read Codex limits from ``codex`` → ``/status``."""

    binary = "codex"

    def probe_plan(self) -> list[tuple[str, PTYOptions]]:
        cwd = str(probe_workdir())
        common = dict(
            extra_args=CODEX_ARGS,
            stop_on_substrings=("Weekly limit", "data not available yet"),
            settle_after_stop=0.5,
            cwd=cwd,
        )
        return [
            ("/status\n", PTYOptions(rows=60, cols=200, timeout=8.0, **common)),
            # Parse flakes get one shorter retry on a larger screen.
            ("/status\n", PTYOptions(rows=70, cols=220, timeout=4.0, **common)),
        ]

    def parse(self, text: str, now: datetime) -> ParseResult:
        return parse_codex_status(text, now)


class CodexProvider(Provider):
    """Provider for Codex usage."""

    metadata = ProviderMetadata(
        id="codex",
        name="Codex",
        description="OpenAI's Codex CLI",
        homepage="https://github.com/openai/codex",
        dashboard_url="https://chatgpt.com/codex/settings/usage",
    )

    def fetch_strategies(self):
        return [CodexCLIStrategy()]
