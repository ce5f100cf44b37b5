"""Web strategy for Claude provider: claude.ai session cookie."""

from __future__ import annotations

from datetime import UTC
from datetime import datetime

import msgspec

from quotawatch.auth.base import SessionCookieSpec
from quotawatch.errors.classify import check_status
from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind
from quotawatch.models import RateWindow
from quotawatch.models import UsageSnapshot
from quotawatch.models import WindowKind
from quotawatch.probes.http import JSON_ACCEPT
from quotawatch.probes.http import HTTPProbe
from quotawatch.strategies.base import FetchContext
from quotawatch.strategies.web import CookieWebStrategy

BASE_URL = "https://claude.ai"
ORGANIZATIONS_URL = f"{BASE_URL}/api/organizations"

CLAUDE_COOKIES = SessionCookieSpec(
    provider_id="claude",
    domains=("claude.ai",),
    session_names=frozenset({"sessionKey"}),
)

MODEL_KEYS = {
    "seven_day_opus": "Opus",
    "seven_day_sonnet": "Sonnet",
}


def _parse_time(value) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _window(period, kind: WindowKind, minutes: int, label: str) -> RateWindow | None:
    if not isinstance(period, dict):
        return None
    utilization = period.get("utilization")
    if utilization is None:
        return None
    return RateWindow.create(
        float(utilization),
        kind,
        window_minutes=minutes,
        resets_at=_parse_time(period.get("resets_at")),
        label=label,
    )


def select_organization(organizations) -> str | None:
    """Pick the chat-capable organization, else the first one."""
    if not isinstance(organizations, list):
        return None
    orgs = [org for org in organizations if isinstance(org, dict)]
    for org in orgs:
        if "chat" in (org.get("capabilities") or []):
            return org.get("uuid") or org.get("id")
    if orgs:
        return orgs[0].get("uuid") or orgs[0].get("id")
    return None


def parse_usage_response(data, now: datetime | None = None) -> UsageSnapshot:
    """Parse the organization usage JSON.

    Format:
        {
            "five_hour": {"utilization": 12.0, "resets_at": "2026-01-17T06:59:59+00:00"},
            "seven_day": {"utilization": 27.0, "resets_at": "..."},
            "seven_day_opus": {"utilization": 3.0, "resets_at": "..."}
        }

    Raises:
        ClassifiedError: ``missing_usage_data`` when no session window is present.
    """
    if not isinstance(data, dict):
        raise ClassifiedError(ErrorKind.MISSING_USAGE_DATA, "Usage response is not an object")

    primary = _window(data.get("five_hour"), WindowKind.SESSION, 300, "Session")
    if primary is None:
        raise ClassifiedError(
            ErrorKind.MISSING_USAGE_DATA, "No five_hour window in usage response"
        )

    secondary = _window(data.get("seven_day"), WindowKind.WEEKLY, 10080, "Weekly")
    tertiary = None
    for key, label in MODEL_KEYS.items():
        tertiary = _window(data.get(key), WindowKind.MODEL, 10080, label)
        if tertiary is not None:
            break

    return UsageSnapshot(
        provider="claude",
        primary=primary,
        secondary=secondary,
        tertiary=tertiary,
        updated_at=now or datetime.now(UTC),
    )


class ClaudeWebStrategy(CookieWebStrategy):
    """Fetch Claude usage from claude.ai with the ``sessionKey`` cookie."""

    cookie_spec = CLAUDE_COOKIES
    display_name = "Claude"

    async def fetch_with_cookie(
        self,
        cookie_header: str,
        context: FetchContext,
        diagnostics: dict,
    ) -> UsageSnapshot:
        probe = HTTPProbe("claude.ai", client=context.http_client)

        response = await probe.get(
            ORGANIZATIONS_URL, cookie_header=cookie_header, accept=JSON_ACCEPT
        )
        diagnostics["organizations"] = response.diagnostics()
        check_status(response.status_code, "claude", response.text)

        try:
            org_id = select_organization(response.json())
        except msgspec.DecodeError as e:
            raise ClassifiedError(
                ErrorKind.NOT_AUTHENTICATED,
                "Organizations response is not JSON; the session is likely signed out",
                raw_excerpt=response.text[:400],
            ) from e
        if not org_id:
            raise ClassifiedError(
                ErrorKind.NOT_AUTHENTICATED, "No organization for this Claude session"
            )

        response = await probe.get(
            f"{ORGANIZATIONS_URL}/{org_id}/usage",
            cookie_header=cookie_header,
            accept=JSON_ACCEPT,
        )
        diagnostics["usage"] = response.diagnostics()
        check_status(response.status_code, "claude", response.text)

        try:
            data = response.json()
        except msgspec.DecodeError as e:
            raise ClassifiedError(
                ErrorKind.PARSE_FAILED,
                f"Usage response is not JSON: {e}",
                raw_excerpt=response.text[:400],
            ) from e
        return parse_usage_response(data)
