"""Batching helpers and per-run counters for the syncer."""

from __future__ import annotations

import time
from collections.abc import Iterator
from dataclasses import dataclass, field


def partition_ids(total: int, size: int) -> Iterator[list[int]]:
    """Yield consecutive batches covering ``[1, total]``.

    Every batch holds *size* ids except possibly the last. Nothing is
    yielded when *total* is zero or negative.

    Examples:
        ```python
        list(partition_ids(25, 10))
        # [[1..10], [11..20], [21..25]]
        ```
    """
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    for start in range(1, total + 1, size):
        yield list(range(start, min(start + size, total + 1)))


@dataclass(slots=True)
class SyncProgress:
    """Counters for one sweep. Reset at the start of every ``run()``.

    Attributes:
        total: Token ids in the sweep range (the supply read).
        processed: Ids whose task has finished, whatever the outcome.
        synced: Rows written.
        not_found: Ids the contract reported as nonexistent.
        failed: Ids skipped because of a chain or unexpected error.
        persistence_failed: Ids whose row read or write failed.
        metadata_missing: Rows written without a metadata document.
        batches: Completed batches.
    """

    total: int = 0
    processed: int = 0
    synced: int = 0
    not_found: int = 0
    failed: int = 0
    persistence_failed: int = 0
    metadata_missing: int = 0
    batches: int = 0
    _monotonic_start: float = field(default=0.0, repr=False)

    def reset(self) -> None:
        self.total = 0
        self.processed = 0
        self.synced = 0
        self.not_found = 0
        self.failed = 0
        self.persistence_failed = 0
        self.metadata_missing = 0
        self.batches = 0
        self._monotonic_start = time.monotonic()

    @property
    def remaining(self) -> int:
        return self.total - self.processed

    @property
    def elapsed(self) -> float:
        """Seconds since ``reset()``, rounded to 1 decimal."""
        return round(time.monotonic() - self._monotonic_start, 1)
