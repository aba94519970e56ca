"""Provisioning run orchestration.

This module drives whole runs (one account or a bulk batch) on top of the
resolver and the provisioner, and owns the read-merge-write of the Result
Document. Side-effects the user sees (printing, progress bars) stay in the CLI,
which subscribes through `RunHooks`.
"""

from __future__ import annotations

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Awaitable, Callable

import httpx

from adapters.dispatcher import ResilientDispatcher
from adapters.http_client import EndpointPool, HttpSession
from adapters.json_exporter import load_result_document, save_result_document
from adapters.keys import generate_keypair
from adapters.near_rpc import AccountQuery
from adapters.relayer import RelayerClient
from core.config import AppSettings
from core.domain.errors import HandleUnavailable, PersistenceError
from core.domain.models import (
    AccountRecord,
    FailedAttempt,
    Keypair,
    ProvisionedAccount,
    ResultDocument,
    RunConfig,
    Verdict,
    utcnow,
)
from core.services.handle_generator import HandleGenerator
from core.services.handle_resolver import resolve_handle
from core.services.provisioner import AccountProvisioner
from core.services.result_document import merge_records

logger = logging.getLogger(__name__)


@dataclass
class RunHooks:
    """Optional callbacks for UI layers (progress, warnings)."""

    attempt_started: Callable[[int, int], None] | None = None
    candidate_found: Callable[[int, str], None] | None = None
    attempt_finished: Callable[[int, AccountRecord], None] | None = None
    warning: Callable[[str], None] | None = None


@dataclass
class RunOutcome:
    """Output of a run: this run's records and the document they were merged into."""

    records: list[AccountRecord]
    document: ResultDocument
    output_path: str
    persisted: bool
    warnings: list[str] = field(default_factory=list)

    @property
    def created(self) -> list[ProvisionedAccount]:
        return [r for r in self.records if isinstance(r, ProvisionedAccount)]

    @property
    def failed(self) -> list[FailedAttempt]:
        return [r for r in self.records if isinstance(r, FailedAttempt)]


@dataclass
class ProvisioningContext:
    """Everything a run needs, wired once per invocation."""

    settings: AppSettings
    generator: HandleGenerator
    query: AccountQuery
    provisioner: AccountProvisioner
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    clock: Callable[[], datetime] = utcnow


@asynccontextmanager
async def open_context(
    settings: AppSettings | None = None,
    *,
    session: HttpSession | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    rng: random.Random | None = None,
    keygen: Callable[[], Keypair] = generate_keypair,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], datetime] = utcnow,
) -> AsyncIterator[ProvisioningContext]:
    """Build pools, dispatchers and clients; close every HTTP client on exit."""

    settings = settings or AppSettings()
    session = session or HttpSession()
    rng = rng or random.Random()

    rpc_pool = EndpointPool.from_urls(
        settings.rpc_endpoints, settings=settings, session=session, transport=transport
    )
    relayer_pool = EndpointPool.from_urls(
        [settings.relayer_base_url], settings=settings, session=session, transport=transport
    )
    async with rpc_pool, relayer_pool:
        rpc = ResilientDispatcher(
            rpc_pool,
            attempts=settings.request_attempts,
            backoff_base_seconds=settings.backoff_base_seconds,
            sleep=sleep,
        )
        relayer_dispatcher = ResilientDispatcher(
            relayer_pool,
            attempts=settings.relayer_attempts,
            backoff_base_seconds=settings.relayer_backoff_base_seconds,
            sleep=sleep,
        )
        query = AccountQuery(rpc, finality=settings.finality, rng=rng)
        relayer = RelayerClient(
            relayer_dispatcher,
            account_path=settings.relayer_account_path,
            redeem_path=settings.relayer_redeem_path,
        )
        yield ProvisioningContext(
            settings=settings,
            generator=HandleGenerator(domain=settings.account_domain, rng=rng),
            query=query,
            provisioner=AccountProvisioner(relayer=relayer, lookup=query, keygen=keygen, clock=clock),
            sleep=sleep,
            clock=clock,
        )


def _warn(hooks: RunHooks, warnings: list[str], message: str) -> None:
    warnings.append(message)
    if hooks.warning:
        hooks.warning(message)


def persist_records(
    ctx: ProvisioningContext,
    config: RunConfig,
    records: list[AccountRecord],
    *,
    hooks: RunHooks | None = None,
    warnings: list[str] | None = None,
) -> RunOutcome:
    """Merge `records` into the document at `config.output_path` and write it back.

    Persistence problems never abort the run: the merged document is still
    returned, with ``persisted=False``.
    """

    hooks = hooks or RunHooks()
    warnings = warnings if warnings is not None else []
    path = config.output_path
    persisted = False

    try:
        prior = load_result_document(path)
    except PersistenceError as exc:
        logger.error("Keeping results in memory only: %s", exc)
        _warn(hooks, warnings, f"Results not saved: {exc}")
        document = merge_records(
            None, records, config=config.snapshot(), requested=config.bulk_count, now=ctx.clock()
        )
    else:
        if prior is not None:
            logger.info("Merging %d record(s) into existing file %s", len(records), path)
        document = merge_records(
            prior, records, config=config.snapshot(), requested=config.bulk_count, now=ctx.clock()
        )
        try:
            save_result_document(document, path)
            persisted = True
        except PersistenceError as exc:
            logger.error("Keeping results in memory only: %s", exc)
            _warn(hooks, warnings, f"Results not saved: {exc}")

    return RunOutcome(
        records=list(records),
        document=document,
        output_path=str(path),
        persisted=persisted,
        warnings=warnings,
    )


async def provision_attempt(
    ctx: ProvisioningContext,
    config: RunConfig,
    *,
    index: int,
    hooks: RunHooks,
) -> ProvisionedAccount:
    """Resolve a free handle for `config.prefix` and provision it."""

    handle = await resolve_handle(
        prefix=config.prefix,
        generator=ctx.generator,
        prober=ctx.query,
        max_attempts=ctx.settings.max_handle_attempts,
    )
    if hooks.candidate_found:
        hooks.candidate_found(index, handle)
    return await ctx.provisioner.provision(handle, config.referral_code or None)


async def run_many(
    ctx: ProvisioningContext,
    config: RunConfig,
    *,
    hooks: RunHooks | None = None,
) -> RunOutcome:
    """Run `config.bulk_count` attempts sequentially and merge them into the output file.

    One failed attempt becomes a `FailedAttempt` record and the loop moves on.
    If the loop itself is interrupted, the records collected so far are still
    written before the interruption propagates.
    """

    hooks = hooks or RunHooks()
    warnings: list[str] = []
    records: list[AccountRecord] = []
    count = config.bulk_count

    if config.handle:
        _warn(hooks, warnings, "Custom handle specified but bulk mode is enabled. Ignoring custom handle.")

    try:
        for i in range(count):
            index = i + 1
            if hooks.attempt_started:
                hooks.attempt_started(index, count)
            record: AccountRecord
            try:
                record = await provision_attempt(ctx, config, index=index, hooks=hooks)
            except Exception as exc:
                logger.warning("Attempt %d/%d failed: %s", index, count, exc)
                record = FailedAttempt(index=index, error=str(exc), timestamp=ctx.clock())
            records.append(record)
            if hooks.attempt_finished:
                hooks.attempt_finished(index, record)

            if i < count - 1 and config.delay_ms > 0:
                await ctx.sleep(config.delay_ms / 1000)
    finally:
        outcome = persist_records(ctx, config, records, hooks=hooks, warnings=warnings)

    return outcome


async def run_single(
    ctx: ProvisioningContext,
    config: RunConfig,
    *,
    hooks: RunHooks | None = None,
) -> RunOutcome:
    """Provision exactly one account; any failure propagates to the caller.

    An explicit `config.handle` is probed as-is and must be AVAILABLE;
    otherwise a handle is generated from `config.prefix`.
    """

    hooks = hooks or RunHooks()
    if hooks.attempt_started:
        hooks.attempt_started(1, 1)

    if config.handle:
        domain_suffix = f".{ctx.settings.account_domain}"
        if not config.handle.endswith(domain_suffix):
            raise HandleUnavailable(config.handle, f"must end with {domain_suffix}")
        verdict = await ctx.query.probe(config.handle)
        if verdict is not Verdict.AVAILABLE:
            raise HandleUnavailable(config.handle, verdict.value)
        if hooks.candidate_found:
            hooks.candidate_found(1, config.handle)
        account = await ctx.provisioner.provision(config.handle, config.referral_code or None)
    else:
        account = await provision_attempt(ctx, config, index=1, hooks=hooks)

    if hooks.attempt_finished:
        hooks.attempt_finished(1, account)
    return persist_records(ctx, config, [account], hooks=hooks)
