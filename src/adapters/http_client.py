"""httpx wrapper.

Why a wrapper:
- Standardizes timeouts, headers and the shared cookie jar for every endpoint.
- Eases testing: an `httpx.MockTransport` can be injected for all clients at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from http.cookiejar import CookieJar
from typing import Iterable, Sequence

import httpx

from core.config import AppSettings


@dataclass
class HttpSession:
    """Process-wide cookie store shared by every endpoint client.

    httpx copies `httpx.Cookies` instances but keeps a bare `CookieJar` by
    reference, so all clients built from one session read and write the same jar.
    """

    cookies: CookieJar = field(default_factory=CookieJar)


def build_async_client(
    settings: AppSettings | None = None,
    *,
    base_url: str = "",
    session: HttpSession | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    extra_headers: dict[str, str] | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` with the defaults every service call uses.

    Why a builder:
    - Centralizes timeouts/headers so RPC endpoints and the relayer behave the same.
    - Makes the transport injectable for tests.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        cookies=session.cookies if session is not None else None,
        transport=transport,
    )


@dataclass(frozen=True)
class Endpoint:
    """A base URL plus its pre-configured client."""

    base_url: str
    client: httpx.AsyncClient


class EndpointPool:
    """Ordered set of endpoints owned for the lifetime of one run."""

    def __init__(self, endpoints: Sequence[Endpoint]) -> None:
        if not endpoints:
            raise ValueError("an endpoint pool needs at least one endpoint")
        self._endpoints = tuple(endpoints)

    @classmethod
    def from_urls(
        cls,
        base_urls: Iterable[str],
        *,
        settings: AppSettings | None = None,
        session: HttpSession | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "EndpointPool":
        settings = settings or AppSettings()
        session = session or HttpSession()
        return cls(
            [
                Endpoint(
                    base_url=url.rstrip("/"),
                    client=build_async_client(
                        settings,
                        base_url=url.rstrip("/"),
                        session=session,
                        transport=transport,
                    ),
                )
                for url in base_urls
            ]
        )

    @property
    def endpoints(self) -> tuple[Endpoint, ...]:
        return self._endpoints

    @property
    def base_urls(self) -> list[str]:
        return [e.base_url for e in self._endpoints]

    async def aclose(self) -> None:
        for endpoint in self._endpoints:
            await endpoint.client.aclose()

    async def __aenter__(self) -> "EndpointPool":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
