"""NEAR JSON-RPC query client.

Only one call is needed: ``query`` with ``request_type=view_account``. It is used
twice with different readings:
- before registration, to classify a candidate as AVAILABLE/TAKEN/INDETERMINATE;
- after registration, to check whether the account already shows up on chain.
"""

from __future__ import annotations

import json
import random
import re
from typing import Any

import httpx

from core.domain.models import Verdict
from core.interfaces.dispatcher import RequestBuilder, RequestDispatcher, RequestSpec

_NOT_FOUND_RE = re.compile(r"does not exist", re.IGNORECASE)
_UNKNOWN_ACCOUNT_RE = re.compile(r"UNKNOWN_ACCOUNT", re.IGNORECASE)


def build_view_account(
    account_id: str,
    *,
    finality: str = "optimistic",
    rng: random.Random | None = None,
) -> RequestBuilder:
    """Return a builder producing a fresh ``view_account`` envelope per attempt."""

    rng = rng or random.Random()

    def build() -> RequestSpec:
        return RequestSpec(
            method="POST",
            path="/",
            json={
                "jsonrpc": "2.0",
                "id": rng.randrange(1_000_000),
                "method": "query",
                "params": {
                    "request_type": "view_account",
                    "account_id": account_id,
                    "finality": finality,
                },
            },
        )

    return build


def decode_body(response: httpx.Response) -> Any:
    """Parsed JSON body, or the raw text when the body is not JSON."""

    try:
        return response.json()
    except ValueError:
        return response.text


def classify_availability(payload: Any) -> Verdict:
    """Classify a ``view_account`` answer.

    - an error whose message/data says the account "does not exist" -> AVAILABLE
    - a populated ``result`` -> TAKEN
    - an ``UNKNOWN_ACCOUNT`` marker anywhere in the body -> AVAILABLE
    - anything else -> INDETERMINATE
    """

    if isinstance(payload, dict):
        error = payload.get("error")
        if error:
            if isinstance(error, dict):
                texts = [error.get("message"), error.get("data")]
            else:
                texts = [error]
            if any(_NOT_FOUND_RE.search(str(t)) for t in texts if t):
                return Verdict.AVAILABLE
        if payload.get("result"):
            return Verdict.TAKEN
        text = json.dumps(payload, default=str)
    elif isinstance(payload, str):
        text = payload
    else:
        return Verdict.INDETERMINATE

    if _UNKNOWN_ACCOUNT_RE.search(text) or _NOT_FOUND_RE.search(text):
        return Verdict.AVAILABLE
    return Verdict.INDETERMINATE


class AccountQuery:
    """Read-only account lookups through the query-service dispatcher."""

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        *,
        finality: str = "optimistic",
        rng: random.Random | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._finality = finality
        self._rng = rng or random.Random()

    async def view_account(self, account_id: str) -> Any:
        response = await self._dispatcher.dispatch(
            build_view_account(account_id, finality=self._finality, rng=self._rng)
        )
        return decode_body(response)

    async def probe(self, account_id: str) -> Verdict:
        return classify_availability(await self.view_account(account_id))

    async def account_exists(self, account_id: str) -> bool:
        payload = await self.view_account(account_id)
        return isinstance(payload, dict) and bool(payload.get("result"))
