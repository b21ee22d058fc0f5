"""Syncer service for nftsync.

Sweeps every token id in ``[1, totalSupply]`` and upserts one
``token_metadata`` row per existing token, reconciling on-chain ownership
and metadata with the marketplace's listing fields.

Per-token flow: chain read, metadata fetch, prior listing lookup,
[reconcile][nftsync.services.syncer.reconcile.reconcile], upsert.

Note:
    Batches run strictly one after another; the ids inside a batch run
    concurrently and the whole batch is awaited before the next starts.
    Each token is isolated: its failure is logged and counted, never
    propagated. Only a failed supply read aborts the sweep.

See Also:
    [SyncerConfig][nftsync.services.syncer.SyncerConfig]: Configuration
        model for chain, marketplace, metadata, and batching.
    [ChainReader][nftsync.sources.chain.ChainReader]: Owner and token URI
        reads with endpoint failover.
    [MetadataFetcher][nftsync.sources.metadata.MetadataFetcher]: Gateway
        failover for metadata documents.
    [upsert_token][nftsync.services.common.queries.upsert_token]: The
        single write this service performs.

Examples:
    ```python
    from nftsync.core import Store
    from nftsync.services import Syncer

    store = Store.from_yaml("config/database.yaml")
    syncer = Syncer.from_yaml("config/syncer.yaml", store=store)

    async with store:
        async with syncer:
            await syncer.run()
    ```
"""

from __future__ import annotations

import asyncio
import time
from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar

import aiohttp

from nftsync.core.base_service import BaseService
from nftsync.core.exceptions import (
    ChainUnavailable,
    MetadataUnavailable,
    PersistenceError,
    SupplyReadError,
    TokenNotFound,
)
from nftsync.core.metrics import BATCH_DURATION_SECONDS
from nftsync.models.constants import ServiceName
from nftsync.services.common.queries import get_listing_state, upsert_token
from nftsync.sources.chain import ChainReader
from nftsync.sources.metadata import MetadataFetcher

from .configs import SyncerConfig
from .reconcile import reconcile
from .utils import SyncProgress, partition_ids


if TYPE_CHECKING:
    from nftsync.core.store import Store
    from nftsync.models.token import TokenMetadata


class TokenOutcome(StrEnum):
    """How a single token's task ended."""

    SYNCED = "synced"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    PERSISTENCE_FAILED = "persistence_failed"


class Syncer(BaseService[SyncerConfig]):
    """Full-range ownership and metadata sweep.

    The chain reader lives as long as the service, so endpoint rotation
    carries over between sweeps. The metadata fetcher's HTTP session is
    opened per sweep unless a fetcher is injected.

    Args:
        store: Database facade.
        config: Service configuration.
        chain_reader: Optional pre-built reader (tests, custom bindings).
        fetcher: Optional pre-built metadata fetcher.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.SYNCER
    CONFIG_CLASS: ClassVar[type[SyncerConfig]] = SyncerConfig

    def __init__(
        self,
        store: Store,
        config: SyncerConfig | None = None,
        *,
        chain_reader: ChainReader | None = None,
        fetcher: MetadataFetcher | None = None,
    ) -> None:
        super().__init__(store=store, config=config)
        self._config: SyncerConfig
        chain = self._config.chain
        self._chain = chain_reader or ChainReader.from_endpoints(
            chain.endpoints,
            chain.collection_address,
            fallback=chain.fallback_rpc,
            timeout=chain.request_timeout,
        )
        self._fetcher = fetcher
        self._progress = SyncProgress()

    @property
    def progress(self) -> SyncProgress:
        """Counters of the current (or last) sweep."""
        return self._progress

    # -------------------------------------------------------------------------
    # Main Cycle
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """Execute one full sweep.

        Raises:
            SupplyReadError: If ``totalSupply()`` cannot be read. No batch
                is processed in that case.
        """
        self._progress.reset()
        self._logger.info(
            "cycle_started",
            collection=self._config.chain.collection_address,
            batch_size=self._config.batch.size,
        )

        try:
            total = await self._chain.total_supply()
        except SupplyReadError as e:
            self._logger.error("supply_read_failed", error=str(e))
            raise

        self._progress.total = total
        self._logger.info("supply_read", total_supply=total)
        self.set_gauge("total_supply", total)

        if self._fetcher is not None:
            await self._sweep(self._fetcher)
        else:
            meta = self._config.metadata
            async with aiohttp.ClientSession() as session:
                fetcher = MetadataFetcher(
                    session, meta.gateways, timeout=meta.timeout, max_size=meta.max_size
                )
                await self._sweep(fetcher)

        self._emit_metrics()
        self._logger.info(
            "cycle_completed",
            total_supply=self._progress.total,
            processed=self._progress.processed,
            synced=self._progress.synced,
            not_found=self._progress.not_found,
            failed=self._progress.failed,
            persistence_failed=self._progress.persistence_failed,
            metadata_missing=self._progress.metadata_missing,
            batches=self._progress.batches,
            duration_s=self._progress.elapsed,
        )

    async def _sweep(self, fetcher: MetadataFetcher) -> None:
        for batch in partition_ids(self._progress.total, self._config.batch.size):
            if not self.is_running:
                self._logger.info("sweep_interrupted", remaining=self._progress.remaining)
                break
            await self._process_batch(fetcher, batch)

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    async def _process_batch(self, fetcher: MetadataFetcher, batch: list[int]) -> None:
        """Run every token of *batch* concurrently and wait for all of them."""
        started = time.monotonic()
        tasks = [self._sync_token(fetcher, token_id) for token_id in batch]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        # Re-raise CancelledError: gather(return_exceptions=True) captures it as a result
        for r in results:
            if isinstance(r, asyncio.CancelledError):
                raise r

        for token_id, result in zip(batch, results, strict=True):
            if isinstance(result, BaseException):
                self._logger.error(
                    "token_failed",
                    token_id=token_id,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                result = TokenOutcome.FAILED
            self._progress.processed += 1
            self.inc_counter(f"tokens_{result}")
            if result is TokenOutcome.SYNCED:
                self._progress.synced += 1
            elif result is TokenOutcome.NOT_FOUND:
                self._progress.not_found += 1
            elif result is TokenOutcome.PERSISTENCE_FAILED:
                self._progress.persistence_failed += 1
            else:
                self._progress.failed += 1

        self._progress.batches += 1
        duration = time.monotonic() - started
        if self._config.metrics.enabled:
            BATCH_DURATION_SECONDS.labels(service=self.SERVICE_NAME).observe(duration)
        self._emit_metrics()
        self._logger.info(
            "batch_completed",
            batch=self._progress.batches,
            first_id=batch[0],
            last_id=batch[-1],
            remaining=self._progress.remaining,
            duration_s=round(duration, 2),
        )

    async def _sync_token(self, fetcher: MetadataFetcher, token_id: int) -> TokenOutcome:
        """Sync one token. Never raises except on cancellation."""
        try:
            return await self._sync_token_unchecked(fetcher, token_id)
        except Exception as e:  # Intentionally broad: per-token error boundary
            self._logger.error(
                "token_failed",
                token_id=token_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return TokenOutcome.FAILED

    async def _sync_token_unchecked(
        self, fetcher: MetadataFetcher, token_id: int
    ) -> TokenOutcome:
        try:
            owner, token_uri = await self._chain.read(token_id)
        except TokenNotFound:
            self._logger.warning("token_not_found", token_id=token_id)
            return TokenOutcome.NOT_FOUND
        except ChainUnavailable as e:
            self._logger.warning("token_failed", token_id=token_id, error=str(e))
            return TokenOutcome.FAILED

        metadata: TokenMetadata | None = None
        try:
            metadata = await fetcher.fetch(token_uri)
        except MetadataUnavailable as e:
            self._progress.metadata_missing += 1
            self._logger.warning("metadata_unavailable", token_id=token_id, error=str(e))

        try:
            prior = await get_listing_state(self._store, str(token_id))
            record = reconcile(
                token_id,
                owner,
                metadata,
                prior,
                collection_address=self._config.chain.collection_address,
                marketplace_address=self._config.marketplace.marketplace_address,
            )
            await upsert_token(self._store, record)
        except PersistenceError as e:
            self._logger.error("persistence_failed", token_id=token_id, error=str(e))
            return TokenOutcome.PERSISTENCE_FAILED

        self._logger.info(
            "token_synced",
            token_id=token_id,
            owner=record.owner_address,
            name=record.display_name,
            image=record.image_ref,
            listing_cleared=prior is not None and prior.owner_changed(owner),
        )
        return TokenOutcome.SYNCED

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def _emit_metrics(self) -> None:
        self.set_gauge("processed", self._progress.processed)
        self.set_gauge("synced", self._progress.synced)
        self.set_gauge("not_found", self._progress.not_found)
        self.set_gauge("failed", self._progress.failed)
        self.set_gauge("persistence_failed", self._progress.persistence_failed)
        self.set_gauge("metadata_missing", self._progress.metadata_missing)
