"""Claude (Anthropic) provider for quotawatch."""

from quotawatch.providers.base import Provider
from quotawatch.providers.base import ProviderMetadata
from quotawatch.providers.claude.cli import ClaudeCLIStrategy
from quotawatch.providers.claude.web import ClaudeWebStrategy


class ClaudeProvider(Provider):
    """Provider for Claude usage.

    The claude.ai session is tried first; the ``claude`` CLI is the
    fallback when no browser session works.
    """

    metadata = ProviderMetadata(
        id="claude",
        name="Claude",
        description="Anthropic's Claude AI assistant",
        homepage="https://claude.ai",
        dashboard_url="https://claude.ai/settings/usage",
    )

    def fetch_strategies(self):
        return [ClaudeWebStrategy(), ClaudeCLIStrategy()]
