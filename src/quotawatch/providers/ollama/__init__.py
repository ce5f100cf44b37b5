"""Ollama Cloud provider for quotawatch."""

from __future__ import annotations

from datetime import UTC
from datetime import datetime

from quotawatch.auth.base import SessionCookieSpec
from quotawatch.errors.classify import check_status
from quotawatch.models import UsageSnapshot
from quotawatch.parsing import unwrap
from quotawatch.probes.http import HTML_ACCEPT
from quotawatch.probes.http import HTTPProbe
from quotawatch.providers.base import Provider
from quotawatch.providers.base import ProviderMetadata
from quotawatch.providers.ollama.settings import parse_settings_page
from quotawatch.strategies.base import FetchContext
from quotawatch.strategies.web import CookieWebStrategy

SETTINGS_URL = "https://ollama.com/settings"

OLLAMA_COOKIES = SessionCookieSpec(
    provider_id="ollama",
    domains=("ollama.com",),
    session_names=frozenset(
        {
            "session",
            "ollama_session",
            "__Host-ollama_session",
            "__Secure-next-auth.session-token",
            "next-auth.session-token",
        }
    ),
    chunked_prefixes=(
        "__Secure-next-auth.session-token.",
        "next-auth.session-token.",
    ),
)


class OllamaWebStrategy(CookieWebStrategy):
    """Scrape Cloud usage bars from ollama.com/settings."""

    cookie_spec = OLLAMA_COOKIES
    display_name = "Ollama"

    async def fetch_with_cookie(
        self,
        cookie_header: str,
        context: FetchContext,
        diagnostics: dict,
    ) -> UsageSnapshot:
        probe = HTTPProbe("ollama.com", client=context.http_client)
        response = await probe.get(
            SETTINGS_URL,
            cookie_header=cookie_header,
            accept=HTML_ACCEPT,
            origin="https://ollama.com",
            referer=SETTINGS_URL,
        )
        diagnostics["settings"] = response.diagnostics()
        check_status(response.status_code, "ollama", response.text)
        return unwrap(parse_settings_page(response.text, datetime.now(UTC)), "ollama")


class OllamaProvider(Provider):
    """Provider for Ollama Cloud usage."""

    metadata = ProviderMetadata(
        id="ollama",
        name="Ollama",
        description="Ollama Cloud models",
        homepage="https://ollama.com",
        dashboard_url=SETTINGS_URL,
    )

    def fetch_strategies(self):
        return [OllamaWebStrategy()]
