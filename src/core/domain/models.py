"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation and self-documenting fields (Field) without coupling the
  core to I/O libraries.
- The Result Document is read back from disk, so the same models that write it
  must also be able to validate (and normalize) older files.

Note:
- These models describe *what* a provisioning run produces, not *how*.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


_RECORD_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="allow",
    frozen=True,
)


class Verdict(str, Enum):
    """Availability of an identifier according to the query service."""

    AVAILABLE = "available"
    TAKEN = "taken"
    INDETERMINATE = "indeterminate"


class AccountStatus(str, Enum):
    VERIFIED = "VERIFIED"
    PENDING = "PENDING"


class Keypair(BaseModel):
    """ed25519 keypair, base58-encoded the way the relayer expects it."""

    model_config = ConfigDict(frozen=True)

    public_key: str = Field(..., min_length=1, description="`ed25519:<base58>` public key.")
    secret_key: str = Field(..., min_length=1, description="base58 of the 64-byte secret key.")


class ProvisionedAccount(BaseModel):
    """A successfully registered account.

    Unknown keys from older documents are kept (``extra="allow"``) so that a
    read-modify-write cycle never loses information.
    """

    model_config = _RECORD_CONFIG

    identifier: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("identifier", "handle"),
        description="Registered account id, e.g. `ylcoolcat42.near`.",
    )
    public_key: str | None = None
    secret_key: str | None = None
    relayer_token: str | None = None
    referral_code: str | None = None
    verified: bool = False
    status: AccountStatus = AccountStatus.PENDING
    timestamp: datetime = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("timestamp", "createdAt"),
    )


class FailedAttempt(BaseModel):
    """One bulk attempt that did not produce an account."""

    model_config = _RECORD_CONFIG

    index: int = Field(..., ge=1, description="1-based position of the attempt within its run.")
    error: str = Field(
        ...,
        validation_alias=AliasChoices("error", "errorMessage"),
        description="Human readable failure reason.",
    )
    timestamp: datetime = Field(default_factory=utcnow)


class LegacyRecord(BaseModel):
    """A prior record that fits neither known shape, written back exactly as read.

    Older or hand-edited files may carry statuses, nulls or timestamps the
    current models reject; those entries still hold secret keys.
    """

    model_config = ConfigDict(frozen=True)

    raw: Any

    def has_error(self) -> bool:
        return isinstance(self.raw, dict) and bool(self.raw.get("error") or self.raw.get("errorMessage"))


AccountRecord = Union[ProvisionedAccount, FailedAttempt, LegacyRecord]


def parse_record(raw: dict[str, Any]) -> ProvisionedAccount | FailedAttempt:
    """Validate one persisted record, choosing the model by the presence of an error."""

    if raw.get("error") or raw.get("errorMessage"):
        return FailedAttempt.model_validate(raw)
    return ProvisionedAccount.model_validate(raw)


def is_failure(record: AccountRecord) -> bool:
    if isinstance(record, LegacyRecord):
        return record.has_error()
    return isinstance(record, FailedAttempt)


class RunConfigSnapshot(BaseModel):
    """Configuration recorded alongside the accounts it produced."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    prefix: str | None = None
    referral_code: str | None = None
    delay_ms: int | None = None


class ResultDocument(BaseModel):
    """Persisted aggregate of every provisioning attempt across invocations.

    Invariant: ``total_created + total_failed == len(accounts)``. Counts are
    always recomputed from ``accounts`` (see `core.services.result_document`).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_requested: int = Field(default=0, ge=0)
    total_created: int = Field(default=0, ge=0)
    total_failed: int = Field(default=0, ge=0)
    created_at: datetime | None = None
    last_updated: datetime | None = None
    config: RunConfigSnapshot | None = None
    accounts: list[AccountRecord] = Field(default_factory=list)


_PREFIX_RE = re.compile(r"^[a-z0-9]+$")


class RunConfig(BaseModel):
    """Resolved configuration handed to the core by the CLI (flags or prompts)."""

    handle: str | None = Field(
        default=None,
        description="Explicit account id (single mode only); generated when absent.",
    )
    prefix: str = Field(default="yl", min_length=1, max_length=32)
    referral_code: str = Field(default="E9418U")
    bulk_count: int = Field(default=1, ge=1)
    delay_ms: int = Field(default=2000, ge=0)
    output_path: Path = Field(default=Path("bulk_accounts.json"))

    @field_validator("prefix", mode="before")
    @classmethod
    def _normalize_prefix(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value and not _PREFIX_RE.match(value):
                raise ValueError("prefix can only contain letters and digits")
        return value

    @field_validator("handle", mode="before")
    @classmethod
    def _normalize_handle(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    @field_validator("referral_code", mode="before")
    @classmethod
    def _strip_referral(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    def snapshot(self) -> RunConfigSnapshot:
        return RunConfigSnapshot(
            prefix=self.prefix,
            referral_code=self.referral_code or None,
            delay_ms=self.delay_ms,
        )
