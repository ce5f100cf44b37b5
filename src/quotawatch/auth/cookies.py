"""Cookie header handling and browser cookie import."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from collections.abc import Sequence

from quotawatch.auth.base import MANUAL_SOURCE_LABEL
from quotawatch.auth.base import CredentialCandidate
from quotawatch.auth.base import SessionCookieSpec
from quotawatch.config.settings import CookieSource
from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind

logger = logging.getLogger(__name__)

# Order used when no preferred browser finds a session.
DEFAULT_BROWSER_ORDER: tuple[str, ...] = (
    "chrome",
    "firefox",
    "safari",
    "brave",
    "edge",
    "arc",
    "chromium",
)

BROWSER_LABELS: dict[str, str] = {
    "chrome": "Chrome",
    "firefox": "Firefox",
    "safari": "Safari",
    "brave": "Brave",
    "edge": "Edge",
    "arc": "Arc",
    "chromium": "Chromium",
    "opera": "Opera",
    "vivaldi": "Vivaldi",
}


def cookie_pairs(header: str) -> list[tuple[str, str]]:
    """Split a Cookie header into (name, value) pairs, dropping empty ones."""
    text = header.strip()
    if text.lower().startswith("cookie:"):
        text = text[len("cookie:"):]

    pairs = []
    for part in text.split(";"):
        name, sep, value = part.strip().partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        pairs.append((name, value.strip()))
    return pairs


def normalize_cookie_header(header: str | None) -> str:
    """Normalize a pasted Cookie header to ``a=1; b=2`` form."""
    if not header:
        return ""
    return "; ".join(f"{name}={value}" for name, value in cookie_pairs(header))


def build_cookie_header(cookies: Iterable[tuple[str, str]]) -> str:
    return "; ".join(f"{name}={value}" for name, value in cookies if name)


def has_session_cookie(header: str, spec: SessionCookieSpec) -> bool:
    return any(spec.is_session_cookie(name) for name, _ in cookie_pairs(header))


def session_cookie_names(header: str, spec: SessionCookieSpec) -> list[str]:
    """Names (never values) of recognized session cookies, for diagnostics."""
    return [name for name, _ in cookie_pairs(header) if spec.is_session_cookie(name)]


class BrowserCookieStore:
    """Reads cookies from local browser profiles via browser_cookie3."""

    def load(self, browser: str, domains: Sequence[str]) -> list[tuple[str, str]]:
        """Return (name, value) pairs for the given domains.

        Raises whatever the browser backend raises; callers decide whether a
        single browser failing is fatal.
        """
        import browser_cookie3

        loader = getattr(browser_cookie3, browser, None)
        if loader is None:
            raise ValueError(f"Unsupported browser: {browser}")

        pairs: list[tuple[str, str]] = []
        seen: set[str] = set()
        for domain in domains:
            for cookie in loader(domain_name=domain):
                if cookie.name in seen:
                    continue
                seen.add(cookie.name)
                pairs.append((cookie.name, cookie.value or ""))
        return pairs


def resolve_manual_cookie_header(
    spec: SessionCookieSpec,
    manual_override: str | None,
    cookie_source: CookieSource = CookieSource.AUTO,
) -> CredentialCandidate | None:
    """Validate a manual Cookie header.

    Returns the candidate when the override carries a session cookie, None
    when there is no override and browser import may proceed.

    Raises:
        ClassifiedError: ``not_authenticated`` when a non-empty override has no
            recognized session cookie, or manual mode has no override at all.
    """
    normalized = normalize_cookie_header(manual_override)
    if normalized:
        if not has_session_cookie(normalized, spec):
            raise ClassifiedError(
                ErrorKind.NOT_AUTHENTICATED,
                "Manual cookie header has no recognized session cookie",
                provider=spec.provider_id,
            )
        return CredentialCandidate(credential=normalized, source_label=MANUAL_SOURCE_LABEL)

    if cookie_source is CookieSource.MANUAL:
        raise ClassifiedError(
            ErrorKind.NOT_AUTHENTICATED,
            "Manual cookie mode is on but no cookie header is stored",
            provider=spec.provider_id,
        )
    return None


def _import_from_browsers(
    spec: SessionCookieSpec,
    browsers: Sequence[str],
    store: BrowserCookieStore,
) -> list[CredentialCandidate]:
    candidates = []
    for browser in browsers:
        label = BROWSER_LABELS.get(browser, browser)
        try:
            pairs = store.load(browser, spec.domains)
        except Exception as e:
            logger.info("%s cookie import failed for %s: %s", label, spec.provider_id, e)
            continue

        header = build_cookie_header(pairs)
        names = session_cookie_names(header, spec)
        if not names:
            logger.debug("%s has no %s session cookie", label, spec.provider_id)
            continue

        logger.debug(
            "%s session cookies for %s: %s", label, spec.provider_id, ", ".join(names)
        )
        candidates.append(CredentialCandidate(credential=header, source_label=label))
    return candidates


def resolve_candidates(
    spec: SessionCookieSpec,
    manual_override: str | None,
    preferred_browsers: Sequence[str] = (),
    allow_fallback: bool = True,
    *,
    cookie_source: CookieSource = CookieSource.AUTO,
    store: BrowserCookieStore | None = None,
) -> list[CredentialCandidate]:
    """Produce the ordered credential candidates for a cookie-backed provider.

    A manual override wins outright (and fails fast when invalid). Otherwise
    browsers are queried in preferred order; when none of them has a session
    and ``allow_fallback`` is set, the remaining browsers in the default order
    are tried. Only browsers holding a recognized session cookie contribute.
    """
    if not cookie_source.is_enabled:
        return []

    manual = resolve_manual_cookie_header(spec, manual_override, cookie_source)
    if manual is not None:
        return [manual]

    store = store or BrowserCookieStore()
    preferred = list(preferred_browsers) or list(DEFAULT_BROWSER_ORDER)
    candidates = _import_from_browsers(spec, preferred, store)

    if not candidates and allow_fallback:
        remaining = [b for b in DEFAULT_BROWSER_ORDER if b not in preferred]
        if remaining:
            logger.debug(
                "No %s session in preferred browsers, trying %s",
                spec.provider_id,
                ", ".join(remaining),
            )
            candidates = _import_from_browsers(spec, remaining, store)

    return candidates
