"""Merge of a run's records into the persisted Result Document.

Format detection happens when the prior file is loaded (`adapters.json_exporter`);
here there is only one canonical `ResultDocument`. Stored counts are never
trusted: they are recomputed from the merged `accounts` every time.
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from core.domain.models import AccountRecord, ResultDocument, RunConfigSnapshot, is_failure, utcnow


def count_outcomes(records: Sequence[AccountRecord]) -> tuple[int, int]:
    """Return ``(created, failed)`` for `records`."""

    failed = sum(1 for record in records if is_failure(record))
    return len(records) - failed, failed


def merge_records(
    prior: ResultDocument | None,
    records: Sequence[AccountRecord],
    *,
    config: RunConfigSnapshot,
    requested: int,
    now: datetime | None = None,
) -> ResultDocument:
    """Append `records` to `prior` (or start a fresh document).

    A fresh document reports `requested` as ``totalRequested``; a merged one
    reports the merged length, since earlier runs' requested counts are not
    reliable once files have been edited or merged before.
    """

    now = now or utcnow()
    if prior is None:
        accounts = list(records)
        created, failed = count_outcomes(accounts)
        return ResultDocument(
            total_requested=max(requested, len(accounts)),
            total_created=created,
            total_failed=failed,
            created_at=now,
            config=config,
            accounts=accounts,
        )

    accounts = [*prior.accounts, *records]
    created, failed = count_outcomes(accounts)
    return ResultDocument(
        total_requested=len(accounts),
        total_created=created,
        total_failed=failed,
        created_at=prior.created_at,
        last_updated=now,
        config=config,
        accounts=accounts,
    )
