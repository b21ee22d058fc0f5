"""Syncer service configuration models.

Contract addresses and the primary RPC endpoint are deployment secrets
of a sort: when absent from the YAML they are read from the environment
variable named by the matching ``*_env`` field, the same way
[DatabaseConfig][nftsync.core.pool.DatabaseConfig] resolves its password.

See Also:
    [Syncer][nftsync.services.syncer.Syncer]: The service class that
        consumes these configurations.
    [BaseServiceConfig][nftsync.core.base_service.BaseServiceConfig]:
        Base class providing ``interval``, ``max_consecutive_failures``,
        and ``metrics`` fields.
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from nftsync.core.base_service import BaseServiceConfig
from nftsync.models.constants import DEFAULT_GATEWAYS, DEFAULT_RPC_ENDPOINTS, FALLBACK_RPC


def _resolve_from_env(
    data: Any, field: str, env_field: str, default_env: str, *, required: bool
) -> Any:
    """Fill ``data[field]`` from the environment variable named by ``data[env_field]``."""
    if isinstance(data, dict) and not data.get(field):
        env_var = data.get(env_field, default_env)
        value = os.getenv(env_var)
        if value:
            data[field] = value.strip()
        elif required:
            raise ValueError(f"{env_var} environment variable not set")
    return data


class ChainConfig(BaseModel):
    """Collection contract and RPC endpoint settings.

    The effective endpoint ring is ``primary_rpc`` (if set) followed by
    ``rpc_endpoints``; see
    [endpoints][nftsync.services.syncer.configs.ChainConfig.endpoints].

    Attributes:
        collection_address: ERC-721 contract address.
        collection_address_env: Env var used when ``collection_address`` is unset.
        primary_rpc: Preferred endpoint, tried first.
        primary_rpc_env: Env var used when ``primary_rpc`` is unset.
        rpc_endpoints: Public endpoints tried after the primary.
        fallback_rpc: Used when no endpoint survives filtering.
        request_timeout: Per-request RPC timeout in seconds.
    """

    collection_address: str = Field(min_length=1)
    collection_address_env: str = Field(default="NFT_CONTRACT_ADDRESS", min_length=1)
    primary_rpc: str | None = Field(default=None)
    primary_rpc_env: str = Field(default="APECHAIN_RPC", min_length=1)
    rpc_endpoints: list[str] = Field(default_factory=lambda: list(DEFAULT_RPC_ENDPOINTS))
    fallback_rpc: str = Field(default=FALLBACK_RPC, min_length=1)
    request_timeout: float = Field(default=10.0, ge=0.1, le=120.0)

    @model_validator(mode="before")
    @classmethod
    def resolve_env(cls, data: Any) -> Any:
        """Resolve the contract address (required) and primary RPC (optional)."""
        data = _resolve_from_env(
            data,
            "collection_address",
            "collection_address_env",
            "NFT_CONTRACT_ADDRESS",
            required=True,
        )
        return _resolve_from_env(
            data, "primary_rpc", "primary_rpc_env", "APECHAIN_RPC", required=False
        )

    @property
    def endpoints(self) -> list[str | None]:
        """Primary endpoint followed by the configured public endpoints."""
        return [self.primary_rpc, *self.rpc_endpoints]


class MarketplaceConfig(BaseModel):
    """Marketplace contract written alongside every row.

    Attributes:
        marketplace_address: Marketplace (Seaport) contract address.
        marketplace_address_env: Env var used when ``marketplace_address`` is unset.
    """

    marketplace_address: str = Field(min_length=1)
    marketplace_address_env: str = Field(default="SEAPORT_CONTRACT_ADDRESS", min_length=1)

    @model_validator(mode="before")
    @classmethod
    def resolve_env(cls, data: Any) -> Any:
        return _resolve_from_env(
            data,
            "marketplace_address",
            "marketplace_address_env",
            "SEAPORT_CONTRACT_ADDRESS",
            required=True,
        )


class MetadataConfig(BaseModel):
    """Metadata document retrieval settings.

    Attributes:
        gateways: Gateway base URLs, tried in this order on every fetch.
        timeout: Per-attempt time box in seconds.
        max_size: Maximum accepted document size in bytes.
    """

    gateways: list[str] = Field(default_factory=lambda: list(DEFAULT_GATEWAYS), min_length=1)
    timeout: float = Field(default=5.0, ge=0.1, le=60.0)
    max_size: int = Field(default=1_048_576, ge=1024, le=52_428_800)

    @field_validator("gateways")
    @classmethod
    def normalize_gateways(cls, v: list[str]) -> list[str]:
        """Ensure each gateway base ends with ``/`` so ``gateway + cid`` is a valid URL."""
        return [g if g.endswith("/") else g + "/" for g in v]


class BatchConfig(BaseModel):
    """Sweep batching.

    Attributes:
        size: Token ids processed concurrently per batch.
    """

    size: int = Field(default=10, ge=1, le=200)


class SyncerConfig(BaseServiceConfig):
    """Syncer service configuration.

    The address-bearing sections have no defaults: constructing this model
    without them (and without the matching environment variables) raises
    a ``ValidationError``.
    """

    chain: ChainConfig = Field(default_factory=lambda: ChainConfig())  # type: ignore[call-arg]
    marketplace: MarketplaceConfig = Field(
        default_factory=lambda: MarketplaceConfig()  # type: ignore[call-arg]
    )
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
