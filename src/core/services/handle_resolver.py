"""Candidate resolution: generate names until the query service reports one free."""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from core.domain.errors import ExhaustedAttempts
from core.domain.models import Verdict

logger = logging.getLogger(__name__)


class CandidateSource(Protocol):
    def generate(self, prefix: str) -> str: ...


class AvailabilityProbe(Protocol):
    async def probe(self, account_id: str) -> Verdict: ...


async def resolve_handle(
    *,
    prefix: str,
    generator: CandidateSource,
    prober: AvailabilityProbe,
    max_attempts: int = 10,
    on_candidate: Callable[[str, Verdict], None] | None = None,
) -> str:
    """Return the first AVAILABLE candidate within `max_attempts` probe rounds.

    TAKEN and INDETERMINATE both consume one round and move on to a new
    candidate. Transport retries happen inside the dispatcher and do not count;
    if the dispatcher gives up, its `AllEndpointsExhausted` propagates.
    """

    for attempt in range(1, max_attempts + 1):
        candidate = generator.generate(prefix)
        verdict = await prober.probe(candidate)
        if on_candidate:
            on_candidate(candidate, verdict)
        if verdict is Verdict.AVAILABLE:
            logger.debug("Candidate %s available (round %d/%d)", candidate, attempt, max_attempts)
            return candidate
        logger.debug(
            "Candidate %s rejected as %s (round %d/%d)",
            candidate,
            verdict.value,
            attempt,
            max_attempts,
        )

    raise ExhaustedAttempts(prefix, max_attempts)
