"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without leaking into the CLI.
- Lets adapters (RPC/relayer) read endpoints, timeouts and retry policy consistently.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RPC_ENDPOINTS = (
    "https://near.lava.build",
    "https://free.rpc.fastnear.com",
    "https://rpc.mainnet.near.org",
)


class AppSettings(BaseSettings):
    """Central application configuration.

    Why pydantic-settings:
    - Typed + validated at the edge (env vars) without dirtying the core.
    - A single configuration contract for CLI and adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="NEAR_PROVISION_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    rpc_endpoints: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RPC_ENDPOINTS),
        min_length=1,
        description="Query (JSON-RPC) base URLs, tried in this order.",
    )
    relayer_base_url: str = Field(
        default="https://near-mobile-production.aws.peersyst.tech",
        min_length=8,
        description="Base URL of the relayer that registers accounts and redeems referrals.",
    )
    relayer_account_path: str = Field(default="/api/relayer/account", min_length=1)
    relayer_redeem_path: str = Field(default="/api/referral/redeem", min_length=1)

    default_referral: str = Field(default="E9418U", description="Referral code used when none is given.")
    default_prefix: str = Field(default="yl", min_length=1)
    default_output_path: Path = Field(default=Path("bulk_accounts.json"))
    default_delay_ms: int = Field(default=2000, ge=0)

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout (seconds).",
    )
    user_agent: str = Field(
        default="okhttp/4.9.2",
        min_length=1,
        description="User-Agent sent to the RPC endpoints and the relayer.",
    )

    request_attempts: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Attempts per RPC endpoint before falling back to the next one.",
    )
    backoff_base_seconds: float = Field(
        default=0.5,
        ge=0,
        description="First backoff delay between attempts on one endpoint; doubles each retry.",
    )
    relayer_attempts: int = Field(default=3, ge=1, le=10)
    relayer_backoff_base_seconds: float = Field(default=1.0, ge=0)

    max_handle_attempts: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Probe rounds before giving up on finding an available handle.",
    )
    account_domain: str = Field(default="near", pattern=r"^[a-z0-9]+$")
    finality: str = Field(default="optimistic", min_length=1)

    log_level: str = Field(default="INFO", description="Root log level for the CLI.")
