"""ed25519 key generation (PyNaCl + base58).

The relayer expects NEAR's textual key formats:
- public key: ``ed25519:<base58(32-byte verify key)>``
- secret key: ``base58(32-byte seed || 32-byte verify key)``
"""

from __future__ import annotations

import base58
from nacl.signing import SigningKey

from core.domain.models import Keypair


def generate_keypair() -> Keypair:
    signing_key = SigningKey.generate()
    verify_key = bytes(signing_key.verify_key)
    secret = bytes(signing_key) + verify_key
    return Keypair(
        public_key="ed25519:" + base58.b58encode(verify_key).decode("ascii"),
        secret_key=base58.b58encode(secret).decode("ascii"),
    )
