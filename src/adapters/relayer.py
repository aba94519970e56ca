"""Relayer client: account registration and referral redemption.

Both calls go through a `RequestDispatcher` built over a single-endpoint pool,
so they share the query service's retry discipline. Both require HTTP 201.
"""

from __future__ import annotations

import json
import logging

import httpx

from core.domain.errors import AllEndpointsExhausted, RedemptionRejected, RegistrationRejected
from core.interfaces.dispatcher import RequestDispatcher, RequestSpec

logger = logging.getLogger(__name__)

_CREATED = 201


def _read_token(response: httpx.Response) -> str:
    text = response.text.strip()
    try:
        parsed = json.loads(text)
    except ValueError:
        return text
    if isinstance(parsed, str):
        return parsed.strip()
    return text


def _describe(response: httpx.Response) -> str:
    return f"HTTP {response.status_code} {response.text.strip()}"


class RelayerClient:
    def __init__(
        self,
        dispatcher: RequestDispatcher,
        *,
        account_path: str = "/api/relayer/account",
        redeem_path: str = "/api/referral/redeem",
    ) -> None:
        self._dispatcher = dispatcher
        self._account_path = account_path
        self._redeem_path = redeem_path

    async def create_account(self, *, handle: str, public_key: str) -> str:
        """Register `handle` with `public_key`; return the opaque relayer token."""

        def build() -> RequestSpec:
            return RequestSpec(
                method="POST",
                path=self._account_path,
                json={"publicKey": public_key, "id": handle},
            )

        try:
            response = await self._dispatcher.dispatch(build)
        except AllEndpointsExhausted as exc:
            raise RegistrationRejected(
                f"Relayer create failed for {handle}: {exc.last_error}",
                status_code=getattr(exc.last_error, "status_code", None),
                body=exc.body,
            ) from exc

        if response.status_code != _CREATED:
            raise RegistrationRejected(
                f"Relayer create failed for {handle}: {_describe(response)}",
                status_code=response.status_code,
                body=response.text,
            )
        token = _read_token(response)
        logger.info("Relayer registered %s", handle)
        return token

    async def redeem_referral(self, *, code: str, address: str) -> None:
        def build() -> RequestSpec:
            return RequestSpec(
                method="POST",
                path=self._redeem_path,
                json={"redeemedCode": code, "address": address},
            )

        try:
            response = await self._dispatcher.dispatch(build)
        except AllEndpointsExhausted as exc:
            raise RedemptionRejected(
                f"Redeem failed for {address}: {exc.last_error}",
                status_code=getattr(exc.last_error, "status_code", None),
                body=exc.body,
            ) from exc

        if response.status_code != _CREATED:
            raise RedemptionRejected(
                f"Redeem failed for {address}: {_describe(response)}",
                status_code=response.status_code,
                body=response.text,
            )
        logger.info("Referral %s redeemed for %s", code, address)
