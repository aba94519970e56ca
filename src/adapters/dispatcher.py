"""Resilient request dispatcher.

Runs one logical request against an `EndpointPool`:
- endpoints are tried in configured order;
- each endpoint gets `attempts` tries with exponential backoff between them
  (`backoff_base_seconds`, doubling per retry);
- any status in [200, 500) is accepted as the endpoint's answer, so a 404 or a
  JSON-RPC "unknown account" error is never mistaken for an outage;
- 5xx responses and httpx transport errors count as endpoint failures.

When every endpoint is exhausted, `AllEndpointsExhausted` carries the last error.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from adapters.http_client import Endpoint, EndpointPool
from core.domain.errors import AllEndpointsExhausted, TransportError
from core.interfaces.dispatcher import RequestBuilder, RequestDispatcher

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

_BODY_PREVIEW_CHARS = 500


def is_accepted_status(status_code: int) -> bool:
    return 200 <= status_code < 500


class ResilientDispatcher(RequestDispatcher):
    """Per-endpoint retry with whole-pool fallback."""

    def __init__(
        self,
        pool: EndpointPool,
        *,
        attempts: int = 2,
        backoff_base_seconds: float = 0.5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self._pool = pool
        self._attempts = attempts
        self._backoff_base_seconds = backoff_base_seconds
        self._sleep = sleep

    async def dispatch(self, build: RequestBuilder) -> httpx.Response:
        last_error: Exception | None = None
        for position, endpoint in enumerate(self._pool.endpoints):
            try:
                response = await self._try_endpoint(endpoint, build)
            except TransportError as exc:
                last_error = exc
                logger.warning(
                    "Endpoint %s exhausted after %d attempt(s): %s",
                    endpoint.base_url,
                    self._attempts,
                    exc,
                )
                continue
            if position > 0:
                logger.info("Request served by fallback endpoint %s", endpoint.base_url)
            return response

        raise AllEndpointsExhausted(self._pool.base_urls, last_error)

    async def _try_endpoint(self, endpoint: Endpoint, build: RequestBuilder) -> httpx.Response:
        last_error: TransportError | None = None
        for attempt in range(self._attempts):
            if attempt > 0:
                await self._sleep(self._backoff_base_seconds * (2 ** (attempt - 1)))

            spec = build()
            try:
                response = await endpoint.client.request(
                    spec.method,
                    spec.path,
                    headers=spec.headers or None,
                    json=spec.json,
                )
            except httpx.HTTPError as exc:
                last_error = TransportError(
                    f"{type(exc).__name__}: {exc}",
                    endpoint=endpoint.base_url,
                )
                last_error.__cause__ = exc
                logger.debug(
                    "Attempt %d/%d on %s failed: %s",
                    attempt + 1,
                    self._attempts,
                    endpoint.base_url,
                    last_error,
                )
                continue

            if is_accepted_status(response.status_code):
                return response

            last_error = TransportError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                endpoint=endpoint.base_url,
                status_code=response.status_code,
                body=response.text[:_BODY_PREVIEW_CHARS],
            )
            logger.debug(
                "Attempt %d/%d on %s returned HTTP %d",
                attempt + 1,
                self._attempts,
                endpoint.base_url,
                response.status_code,
            )

        assert last_error is not None
        raise last_error
