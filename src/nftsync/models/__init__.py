"""Pure data models for nftsync.

Bottom layer of the package: frozen dataclasses and enums with zero I/O.
Every other layer may import from here; this package imports from none.

Attributes:
    TokenRecord: One persisted row per token id.
    ListingState: Prior listing subset read back before a write.
    TokenMetadata: Parsed metadata document with the image resolution rule.
    ChainLookup: Structured ``ownerOf`` + ``tokenURI`` result.
"""

from .constants import (
    DEFAULT_GATEWAYS,
    DEFAULT_NAME_PREFIX,
    DEFAULT_RPC_ENDPOINTS,
    FALLBACK_RPC,
    IPFS_PATH_MARKER,
    IPFS_SCHEME,
    LookupStatus,
    ServiceName,
)
from .token import ChainLookup, ListingState, TokenMetadata, TokenRecord, TokenRecordDbParams


__all__ = [
    "DEFAULT_GATEWAYS",
    "DEFAULT_NAME_PREFIX",
    "DEFAULT_RPC_ENDPOINTS",
    "FALLBACK_RPC",
    "IPFS_PATH_MARKER",
    "IPFS_SCHEME",
    "ChainLookup",
    "ListingState",
    "LookupStatus",
    "ServiceName",
    "TokenMetadata",
    "TokenRecord",
    "TokenRecordDbParams",
]
