"""Credentialed HTTP GET with manual redirect handling."""

from __future__ import annotations

import logging

import httpx
import msgspec

from quotawatch.core.http import get_http_client

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
JSON_ACCEPT = "application/json"
REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


class ProbeResponse(msgspec.Struct, frozen=True):
    """Final response of a probe plus the redirect chain that led to it."""

    status_code: int
    text: str
    url: str
    redirects: tuple[str, ...] = ()
    content_type: str | None = None

    def diagnostics(self) -> dict:
        return {
            "status": self.status_code,
            "final_url": self.url,
            "redirects": list(self.redirects),
        }

    def json(self):
        return msgspec.json.decode(self.text)


def host_matches(host: str, site: str) -> bool:
    """True when ``host`` is ``site`` or one of its subdomains."""
    host = host.lower().rstrip(".")
    site = site.lower()
    return host == site or host.endswith("." + site)


class HTTPProbe:
    """Fetches pages or JSON for one site, keeping credentials on that site.

    Redirects are followed by hand so that the Cookie or Authorization
    header is only ever re-sent to the probe's own host or its subdomains,
    and ``referer`` tracks the previous hop.
    """

    MAX_REDIRECTS = 10

    def __init__(
        self,
        site: str,
        client: httpx.AsyncClient | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.site = site
        self.client = client
        self.user_agent = user_agent

    def is_same_site(self, url: httpx.URL) -> bool:
        return host_matches(url.host, self.site)

    async def get(
        self,
        url: str,
        *,
        cookie_header: str | None = None,
        token: str | None = None,
        accept: str = HTML_ACCEPT,
        origin: str | None = None,
        referer: str | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> ProbeResponse:
        """GET ``url`` with credentials and return the final response.

        Raises:
            httpx.HTTPError: On transport failures or too many redirects.
        """
        if self.client is not None:
            return await self._get(
                self.client, url, cookie_header, token, accept, origin, referer, extra_headers
            )
        async with get_http_client() as client:
            return await self._get(
                client, url, cookie_header, token, accept, origin, referer, extra_headers
            )

    async def _get(
        self,
        client: httpx.AsyncClient,
        url: str,
        cookie_header: str | None,
        token: str | None,
        accept: str,
        origin: str | None,
        referer: str | None,
        extra_headers: dict[str, str] | None,
    ) -> ProbeResponse:
        current = httpx.URL(url)
        previous: httpx.URL | None = None
        redirects: list[str] = []

        for _ in range(self.MAX_REDIRECTS + 1):
            headers = {
                "accept": accept,
                "accept-language": "en-US,en;q=0.9",
                "user-agent": self.user_agent,
            }
            if origin:
                headers["origin"] = origin
            if previous is not None:
                headers["referer"] = str(previous)
            elif referer:
                headers["referer"] = referer
            if extra_headers:
                headers.update(extra_headers)

            if self.is_same_site(current):
                if cookie_header:
                    headers["cookie"] = cookie_header
                if token:
                    headers["authorization"] = f"Bearer {token}"

            request = httpx.Request("GET", current, headers=headers)
            response = await client.send(request, follow_redirects=False)

            location = response.headers.get("location")
            if response.status_code in REDIRECT_STATUSES and location:
                target = response.url.join(location)
                redirects.append(f"{response.status_code} {current} -> {target}")
                logger.debug("Redirect %s", redirects[-1])
                await response.aclose()
                previous, current = current, target
                continue

            return ProbeResponse(
                status_code=response.status_code,
                text=response.text,
                url=str(response.url),
                redirects=tuple(redirects),
                content_type=response.headers.get("content-type"),
            )

        raise httpx.TooManyRedirects(
            f"Exceeded {self.MAX_REDIRECTS} redirects", request=request
        )
