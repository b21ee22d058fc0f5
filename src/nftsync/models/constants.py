"""Shared constants for the models layer.

Defines enumerations and default values used across multiple modules.
Placing them here avoids circular dependencies between the models,
sources, and services layers.

See Also:
    [nftsync.sources.chain][]: Uses the RPC defaults when no endpoint list
        is configured.
    [nftsync.sources.metadata][]: Uses [DEFAULT_GATEWAYS][nftsync.models.constants.DEFAULT_GATEWAYS]
        as the fixed gateway order.
"""

from __future__ import annotations

from enum import StrEnum


class ServiceName(StrEnum):
    """Canonical service identifiers used in logging and metrics.

    Attributes:
        SYNCER: Periodic full-range ownership and metadata sweep
            ([Syncer][nftsync.services.syncer.Syncer]).
    """

    SYNCER = "syncer"


class LookupStatus(StrEnum):
    """Outcome of a single chain lookup.

    Attributes:
        FOUND: The token exists; owner and URI are populated.
        NOT_FOUND: The contract reported the token as nonexistent.
            This is a definitive answer, never retried.
    """

    FOUND = "found"
    NOT_FOUND = "not_found"


#: Scheme prefix of content-addressed metadata pointers.
IPFS_SCHEME = "ipfs://"

#: Path marker for gateway-style content-addressed URLs.
IPFS_PATH_MARKER = "/ipfs/"

#: Used when no configured RPC endpoint survives filtering.
FALLBACK_RPC = "https://rpc.apechain.com/http"

#: Public ApeChain RPC endpoints tried after the configured primary.
DEFAULT_RPC_ENDPOINTS: tuple[str, ...] = (
    "https://rpc.apechain.com/http",
    "https://apechain.drpc.org",
    "https://33139.rpc.thirdweb.com",
)

#: IPFS gateways, tried in this fixed order on every metadata fetch.
DEFAULT_GATEWAYS: tuple[str, ...] = (
    "https://dweb.link/ipfs/",
    "https://ipfs.io/ipfs/",
    "https://gateway.pinata.cloud/ipfs/",
    "https://cloudflare-ipfs.com/ipfs/",
)

#: Prefix of the display name synthesized when metadata has no name.
DEFAULT_NAME_PREFIX = "NFT #"
