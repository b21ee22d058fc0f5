"""Domain-specific database queries for nftsync services.

All SQL used by services is centralized here. Each function accepts a
[Store][nftsync.core.store.Store] instance and returns typed results.
Services import from this module instead of writing inline SQL.

- **Listing state**: ``get_listing_state``
- **Token rows**: ``upsert_token``

Warning:
    Reads use ``timeouts.query`` and writes use ``timeouts.write`` from
    [StoreTimeoutsConfig][nftsync.core.store.StoreTimeoutsConfig].

Note:
    Driver and pool failures are re-raised as
    [PersistenceError][nftsync.core.exceptions.PersistenceError] so the
    per-token task boundary has a single type to contain.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import asyncpg

from nftsync.core.exceptions import DatabaseError, PersistenceError
from nftsync.models.token import ListingState, TokenRecord


if TYPE_CHECKING:
    from nftsync.core.store import Store

logger = logging.getLogger(__name__)

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, DatabaseError, OSError, TimeoutError)


# =============================================================================
# Listing state
# =============================================================================


async def get_listing_state(store: Store, token_id: str) -> ListingState | None:
    """Point lookup of the persisted owner and listing fields for *token_id*.

    Returns:
        The prior [ListingState][nftsync.models.token.ListingState], or
        ``None`` when no row exists yet.

    Raises:
        PersistenceError: If the lookup fails.
    """
    try:
        row = await store.fetchrow(
            """
            SELECT owner_address, listing_order, listing_price, listing_order_hash
            FROM token_metadata
            WHERE token_id = $1
            """,
            token_id,
        )
    except _DB_ERRORS as e:
        raise PersistenceError(token_id, f"listing lookup failed: {e}") from e

    if row is None:
        return None
    return ListingState.from_row(row)


# =============================================================================
# Token rows
# =============================================================================


async def upsert_token(store: Store, record: TokenRecord) -> None:
    """Insert or fully overwrite the row for ``record.token_id``.

    Every column is written from *record*: listing fields carried forward
    by the reconciler are written back unchanged, cleared ones as NULL.
    The write is a single atomic statement.

    Raises:
        PersistenceError: If the upsert fails.
    """
    try:
        await store.execute(
            """
            INSERT INTO token_metadata (
                token_id, collection_address, marketplace_address, owner_address,
                on_chain, display_name, image_ref, listing_order, listing_price,
                listing_order_hash, updated_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
            ON CONFLICT (token_id) DO UPDATE SET
                collection_address = EXCLUDED.collection_address,
                marketplace_address = EXCLUDED.marketplace_address,
                owner_address = EXCLUDED.owner_address,
                on_chain = EXCLUDED.on_chain,
                display_name = EXCLUDED.display_name,
                image_ref = EXCLUDED.image_ref,
                listing_order = EXCLUDED.listing_order,
                listing_price = EXCLUDED.listing_price,
                listing_order_hash = EXCLUDED.listing_order_hash,
                updated_at = EXCLUDED.updated_at
            """,
            *record.to_db_params(),
        )
    except _DB_ERRORS as e:
        raise PersistenceError(record.token_id, f"upsert failed: {e}") from e
