r"""nftsync -- NFT ownership and metadata sync for marketplace databases.

A periodic sweep reads the owner and token URI of every token of an
ERC-721 collection, fetches its metadata through IPFS gateways, and
upserts one row per token into PostgreSQL while preserving or clearing
the marketplace's listing fields.

Imports flow strictly downward:

```text
               services          Reconciliation and orchestration
             /    |    \
          core sources  utils    Infrastructure, chain/gateway I/O, helpers
             \    |    /
               models            Pure frozen dataclasses (zero I/O)
```

Note:
    For lightweight usage, import directly from subpackages::

        from nftsync.models import TokenRecord
        from nftsync.core import Store

    Top-level imports (``from nftsync import Syncer``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("nftsync")

__all__ = [
    "BaseService",
    "ChainReader",
    "ConfigT",
    "EndpointRotator",
    "ListingState",
    "Logger",
    "MetadataFetcher",
    "Pool",
    "PoolConfig",
    "Store",
    "StoreConfig",
    "Syncer",
    "SyncerConfig",
    "TokenMetadata",
    "TokenRecord",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("nftsync.core", "BaseService"),
    "ConfigT": ("nftsync.core", "ConfigT"),
    "Logger": ("nftsync.core", "Logger"),
    "Pool": ("nftsync.core", "Pool"),
    "PoolConfig": ("nftsync.core", "PoolConfig"),
    "Store": ("nftsync.core", "Store"),
    "StoreConfig": ("nftsync.core", "StoreConfig"),
    "ListingState": ("nftsync.models", "ListingState"),
    "TokenMetadata": ("nftsync.models", "TokenMetadata"),
    "TokenRecord": ("nftsync.models", "TokenRecord"),
    "ChainReader": ("nftsync.sources", "ChainReader"),
    "EndpointRotator": ("nftsync.sources", "EndpointRotator"),
    "MetadataFetcher": ("nftsync.sources", "MetadataFetcher"),
    "Syncer": ("nftsync.services", "Syncer"),
    "SyncerConfig": ("nftsync.services", "SyncerConfig"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'nftsync' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
