"""Pure merge of chain state, metadata, and prior listing state.

[reconcile()][nftsync.services.syncer.reconcile.reconcile] builds the
next persisted [TokenRecord][nftsync.models.token.TokenRecord] for one
token. It performs no I/O and reads the clock only when *now* is omitted.

Rules:

* ``display_name``: the metadata name, else ``"NFT #<id>"``.
* ``image_ref``: metadata ``image``, else ``image_url``, else ``None``.
  Without metadata it is always ``None``; a metadata pointer is never
  stored in its place.
* Listing fields: copied from *prior* when a prior row exists and its
  owner is unset or equal (case-insensitively) to *owner*; cleared
  otherwise.
"""

from __future__ import annotations

from datetime import UTC, datetime

from nftsync.models.constants import DEFAULT_NAME_PREFIX
from nftsync.models.token import ListingState, TokenMetadata, TokenRecord


def default_display_name(token_id: int) -> str:
    """Synthesized name for tokens whose metadata has none."""
    return f"{DEFAULT_NAME_PREFIX}{token_id}"


def carry_listing(owner: str, prior: ListingState | None) -> ListingState:
    """Listing fields for the next row: carried forward or cleared."""
    if prior is None or prior.owner_changed(owner):
        return ListingState.cleared(owner)
    return prior


def reconcile(
    token_id: int,
    owner: str,
    metadata: TokenMetadata | None,
    prior: ListingState | None,
    *,
    collection_address: str,
    marketplace_address: str,
    now: datetime | None = None,
) -> TokenRecord:
    """Build the row to upsert for *token_id*.

    Args:
        token_id: Token id as read from the sweep range.
        owner: Current on-chain owner (any case; stored lower-cased).
        metadata: Parsed metadata, or ``None`` if unavailable.
        prior: Persisted listing state, or ``None`` if no row exists.
        collection_address: NFT contract address.
        marketplace_address: Marketplace contract address.
        now: Write timestamp; defaults to the current UTC time.

    Returns:
        The complete [TokenRecord][nftsync.models.token.TokenRecord].
    """
    name = metadata.name if metadata is not None else None
    image_ref = metadata.image_ref if metadata is not None else None
    listing = carry_listing(owner, prior)

    return TokenRecord(
        token_id=str(token_id),
        collection_address=collection_address,
        marketplace_address=marketplace_address,
        owner_address=owner,
        display_name=name or default_display_name(token_id),
        image_ref=image_ref,
        listing_order=listing.listing_order,
        listing_price=listing.listing_price,
        listing_order_hash=listing.listing_order_hash,
        updated_at=now if now is not None else datetime.now(UTC),
        on_chain=True,
    )
