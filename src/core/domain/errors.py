"""Error hierarchy for the provisioning core.

Every failure the core can surface derives from `ProvisioningError`, so the CLI
has a single type to catch at the top level and the bulk loop a single type to
downgrade into a failure record.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class ProvisioningError(Exception):
    """Base class for every error raised by the core."""


class TransportError(ProvisioningError):
    """A single request failed at the network level or with a 5xx status."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class AllEndpointsExhausted(ProvisioningError):
    """Every configured endpoint failed all of its attempts."""

    def __init__(self, endpoints: Sequence[str], last_error: Exception | None) -> None:
        self.endpoints = tuple(endpoints)
        self.last_error = last_error
        super().__init__(
            f"All {len(self.endpoints)} endpoint(s) failed. Last error: {last_error}"
        )

    @property
    def body(self) -> str | None:
        return getattr(self.last_error, "body", None)


class ExhaustedAttempts(ProvisioningError):
    """No available identifier was found within the allowed probe rounds."""

    def __init__(self, prefix: str, attempts: int) -> None:
        self.prefix = prefix
        self.attempts = attempts
        super().__init__(
            f"Failed to find available handle for prefix '{prefix}' after {attempts} attempts"
        )


class HandleUnavailable(ProvisioningError):
    """An explicitly requested identifier is taken (or could not be confirmed free)."""

    def __init__(self, handle: str, verdict: str) -> None:
        self.handle = handle
        self.verdict = verdict
        super().__init__(
            f"Specified handle {handle} is not available ({verdict}). "
            "Try a different handle or use auto-generation."
        )


class UpstreamRejected(ProvisioningError):
    """The relayer answered, but not with the expected status."""

    step = "relayer"

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class RegistrationRejected(UpstreamRejected):
    step = "register"


class RedemptionRejected(UpstreamRejected):
    step = "redeem"


class VerificationFailed(ProvisioningError):
    """The on-chain lookup after registration could not be performed."""


class PersistenceError(ProvisioningError):
    """The Result Document could not be read from or written to disk."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")
