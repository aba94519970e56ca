"""Account provisioning: register -> redeem -> verify, strictly in that order.

No retries at this layer; each network call already retries inside its dispatcher.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Protocol

from core.domain.errors import AllEndpointsExhausted, VerificationFailed
from core.domain.models import AccountStatus, Keypair, ProvisionedAccount, utcnow

logger = logging.getLogger(__name__)


class Relayer(Protocol):
    async def create_account(self, *, handle: str, public_key: str) -> str: ...

    async def redeem_referral(self, *, code: str, address: str) -> None: ...


class AccountLookup(Protocol):
    async def account_exists(self, account_id: str) -> bool: ...


class AccountProvisioner:
    def __init__(
        self,
        *,
        relayer: Relayer,
        lookup: AccountLookup,
        keygen: Callable[[], Keypair],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._relayer = relayer
        self._lookup = lookup
        self._keygen = keygen
        self._clock = clock

    async def provision(self, handle: str, referral_code: str | None) -> ProvisionedAccount:
        """Register `handle`, redeem `referral_code` (if any) and check it on chain.

        Raises:
            RegistrationRejected: the relayer did not answer 201 to the creation call.
            RedemptionRejected: the relayer did not answer 201 to the redemption call.
            VerificationFailed: the on-chain lookup could not reach any endpoint.
        """

        keypair = self._keygen()
        token = await self._relayer.create_account(handle=handle, public_key=keypair.public_key)

        if referral_code:
            await self._relayer.redeem_referral(code=referral_code, address=handle)

        try:
            verified = await self._lookup.account_exists(handle)
        except AllEndpointsExhausted as exc:
            raise VerificationFailed(f"Could not verify {handle} on chain: {exc}") from exc

        status = AccountStatus.VERIFIED if verified else AccountStatus.PENDING
        logger.info("Provisioned %s (%s)", handle, status.value)
        return ProvisionedAccount(
            identifier=handle,
            public_key=keypair.public_key,
            secret_key=keypair.secret_key,
            relayer_token=token,
            referral_code=referral_code or None,
            verified=verified,
            status=status,
            timestamp=self._clock(),
        )
