"""Syncer service: full-range NFT ownership and metadata sweep.

Attributes:
    Syncer: The orchestrator service.
    SyncerConfig: Its configuration model.
    reconcile: Pure builder of the next persisted row.
"""

from .configs import BatchConfig, ChainConfig, MarketplaceConfig, MetadataConfig, SyncerConfig
from .reconcile import carry_listing, default_display_name, reconcile
from .service import Syncer, TokenOutcome
from .utils import SyncProgress, partition_ids


__all__ = [
    "BatchConfig",
    "ChainConfig",
    "MarketplaceConfig",
    "MetadataConfig",
    "SyncProgress",
    "Syncer",
    "SyncerConfig",
    "TokenOutcome",
    "carry_listing",
    "default_display_name",
    "partition_ids",
    "reconcile",
]
