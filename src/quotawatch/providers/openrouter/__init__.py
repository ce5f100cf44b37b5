"""OpenRouter provider for quotawatch."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC
from datetime import datetime

import httpx
import msgspec

from quotawatch.auth.tokens import env_value
from quotawatch.errors.classify import check_status
from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind
from quotawatch.models import ProviderCost
from quotawatch.models import ProviderIdentity
from quotawatch.models import RateWindow
from quotawatch.models import UsageSnapshot
from quotawatch.models import WindowKind
from quotawatch.models import clamp_percent
from quotawatch.probes.http import JSON_ACCEPT
from quotawatch.probes.http import HTTPProbe
from quotawatch.providers.base import Provider
from quotawatch.providers.base import ProviderMetadata
from quotawatch.strategies.api import TokenAPIStrategy
from quotawatch.strategies.base import FetchContext

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://openrouter.ai/api/v1"


class CreditsData(msgspec.Struct):
    total_credits: float = 0.0
    total_usage: float = 0.0


class CreditsResponse(msgspec.Struct):
    data: CreditsData


class KeyData(msgspec.Struct):
    limit: float | None = None
    usage: float | None = None


class KeyResponse(msgspec.Struct):
    data: KeyData


def api_url(environ: Mapping[str, str] | None = None) -> str:
    return (env_value("OPENROUTER_API_URL", environ) or DEFAULT_API_URL).rstrip("/")


def credits_snapshot(
    credits: CreditsData,
    key: KeyData | None = None,
    now: datetime | None = None,
) -> UsageSnapshot:
    """Build a snapshot from ``/credits`` and, when available, ``/key``."""
    total, usage = credits.total_credits, credits.total_usage
    used_percent = min(100.0, usage / total * 100) if total > 0 else 0.0
    balance = max(0.0, total - usage)

    secondary = None
    if key is not None and key.limit and key.limit > 0:
        secondary = RateWindow.create(
            clamp_percent((key.usage or 0.0) / key.limit * 100),
            WindowKind.CREDITS,
            label="Key limit",
        )

    return UsageSnapshot(
        provider="openrouter",
        primary=RateWindow.create(used_percent, WindowKind.CREDITS, label="Credits"),
        secondary=secondary,
        cost=ProviderCost(used=usage, limit=total),
        credits=balance,
        identity=ProviderIdentity(login_method=f"Balance: ${balance:.2f}"),
        updated_at=now or datetime.now(UTC),
    )


class OpenRouterAPIStrategy(TokenAPIStrategy):
    """Fetch credit usage from the OpenRouter REST API."""

    env_var = "OPENROUTER_API_KEY"

    async def fetch_with_token(
        self,
        token: str,
        context: FetchContext,
        diagnostics: dict,
    ) -> UsageSnapshot:
        base = api_url(context.environ)
        probe = HTTPProbe(httpx.URL(base).host, client=context.http_client)

        response = await probe.get(f"{base}/credits", token=token, accept=JSON_ACCEPT)
        diagnostics["credits"] = response.diagnostics()
        check_status(response.status_code, "openrouter", response.text)
        try:
            credits = msgspec.json.decode(response.text, type=CreditsResponse).data
        except msgspec.DecodeError as e:
            raise ClassifiedError(
                ErrorKind.PARSE_FAILED,
                f"Unexpected /credits response: {e}",
                raw_excerpt=response.text[:400],
            ) from e

        key = None
        try:
            response = await probe.get(f"{base}/key", token=token, accept=JSON_ACCEPT)
            diagnostics["key"] = response.diagnostics()
            if response.status_code == 200:
                key = msgspec.json.decode(response.text, type=KeyResponse).data
            else:
                logger.debug("OpenRouter /key returned HTTP %s", response.status_code)
        except (httpx.HTTPError, msgspec.DecodeError) as e:
            logger.warning("OpenRouter /key lookup failed: %s", e)

        return credits_snapshot(credits, key)


class OpenRouterProvider(Provider):
    """Provider for OpenRouter credit usage."""

    metadata = ProviderMetadata(
        id="openrouter",
        name="OpenRouter",
        description="Unified API for LLM providers",
        homepage="https://openrouter.ai",
        dashboard_url="https://openrouter.ai/settings/credits",
    )

    def fetch_strategies(self):
        return [OpenRouterAPIStrategy()]
