"""Request dispatch contract.

Why Protocol:
- Defines a structural contract (duck typing) without rigid inheritance.
- Lets the prober, the provisioner and the relayer client depend on "something
  that can run a request with retry/fallback", so tests can substitute a fake
  dispatcher or a real one over `httpx.MockTransport`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, runtime_checkable

import httpx


@dataclass(frozen=True)
class RequestSpec:
    """Method/path/headers/body of one request, relative to an endpoint's base URL."""

    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    json: Any | None = None


# Called once per attempt: payloads may embed a fresh random request id.
RequestBuilder = Callable[[], RequestSpec]


@runtime_checkable
class RequestDispatcher(Protocol):
    """Minimal contract for a resilient dispatcher.

    Design rules:
    - `dispatch` is asynchronous because it performs network I/O.
    - Any response with a status below 500 is returned as the authoritative answer;
      everything else is the dispatcher's problem to retry or escalate.
    """

    async def dispatch(self, build: RequestBuilder) -> httpx.Response:
        """Run the request built by `build` and return the accepted response."""

        ...
