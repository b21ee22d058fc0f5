"""Unit tests for services.syncer.reconcile module.

Tests:
- Display name and image resolution rules
- Listing fields carried forward or cleared on owner change
- No prior row, prior row without owner
- Timestamp handling
"""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from nftsync.models import ListingState, TokenMetadata
from nftsync.services.syncer.reconcile import carry_listing, default_display_name, reconcile


COLLECTION = "0x1111111111111111111111111111111111111111"
MARKETPLACE = "0x2222222222222222222222222222222222222222"
OWNER_A = "0xAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAa"
OWNER_B = "0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"
NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _reconcile(owner, metadata, prior, token_id=1, **kwargs):
    kwargs.setdefault("now", NOW)
    return reconcile(
        token_id,
        owner,
        metadata,
        prior,
        collection_address=COLLECTION,
        marketplace_address=MARKETPLACE,
        **kwargs,
    )


class TestNameAndImage:
    def test_metadata_name_and_image(self, metadata):
        record = _reconcile(OWNER_A, metadata, None)
        assert record.display_name == "Ape #1"
        assert record.image_ref == "ipfs://QmImage"

    def test_image_url_fallback(self):
        record = _reconcile(OWNER_A, TokenMetadata(image_url="https://img/7.png"), None)
        assert record.image_ref == "https://img/7.png"

    def test_image_preferred_over_image_url(self):
        meta = TokenMetadata(image="ipfs://a", image_url="ipfs://b")
        assert _reconcile(OWNER_A, meta, None).image_ref == "ipfs://a"

    def test_no_metadata(self):
        record = _reconcile(OWNER_A, None, None, token_id=7)
        assert record.display_name == "NFT #7"
        assert record.image_ref is None

    def test_metadata_without_name(self):
        record = _reconcile(OWNER_A, TokenMetadata(image="ipfs://x"), None, token_id=12)
        assert record.display_name == "NFT #12"
        assert record.image_ref == "ipfs://x"

    def test_default_display_name(self):
        assert default_display_name(1234) == "NFT #1234"


class TestStaticFields:
    def test_record_fields(self, metadata):
        record = _reconcile(OWNER_A, metadata, None, token_id=5)
        assert record.token_id == "5"
        assert record.collection_address == COLLECTION
        assert record.marketplace_address == MARKETPLACE
        assert record.owner_address == OWNER_A.lower()
        assert record.on_chain is True
        assert record.updated_at == NOW

    def test_now_defaults_to_current_utc(self):
        before = datetime.now(UTC)
        record = reconcile(
            1,
            OWNER_A,
            None,
            None,
            collection_address=COLLECTION,
            marketplace_address=MARKETPLACE,
        )
        assert record.updated_at.utcoffset() == timedelta(0)
        assert before <= record.updated_at <= datetime.now(UTC)

    def test_naive_now_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            _reconcile(OWNER_A, None, None, now=datetime(2026, 1, 1))

    def test_other_timezone_same_instant(self):
        tz = timezone(timedelta(hours=2))
        now = datetime(2026, 1, 1, 14, 0, tzinfo=tz)
        assert _reconcile(OWNER_A, None, None, now=now).updated_at == NOW


class TestListingFields:
    def test_same_owner_carries_listing(self, listed_state):
        record = _reconcile(OWNER_A, None, listed_state)
        assert record.listing == listed_state

    def test_same_owner_different_case_carries_listing(self, listed_state):
        record = _reconcile(OWNER_A.upper().replace("0X", "0x"), None, listed_state)
        assert record.listing_price == "1.5"
        assert record.listing_order_hash == "0xdeadbeef"
        assert record.listing_order == listed_state.listing_order

    def test_owner_change_clears_listing(self, listed_state):
        record = _reconcile(OWNER_B, None, listed_state)
        assert record.owner_address == OWNER_B
        assert record.listing_order is None
        assert record.listing_price is None
        assert record.listing_order_hash is None

    def test_no_prior_row_starts_cleared(self):
        record = _reconcile(OWNER_A, None, None)
        assert (record.listing_order, record.listing_price, record.listing_order_hash) == (
            None,
            None,
            None,
        )

    def test_prior_without_owner_carries_listing(self):
        prior = ListingState(owner_address=None, listing_price="9", listing_order_hash="0xh")
        record = _reconcile(OWNER_B, None, prior)
        assert record.listing_price == "9"
        assert record.listing_order_hash == "0xh"

    def test_owner_change_clears_with_metadata_present(self, metadata, listed_state):
        record = _reconcile(OWNER_B, metadata, listed_state)
        assert record.display_name == "Ape #1"
        assert record.listing_price is None


class TestCarryListing:
    def test_returns_prior_unchanged(self, listed_state):
        assert carry_listing(OWNER_A, listed_state) is listed_state

    def test_cleared_state_owner(self, listed_state):
        state = carry_listing(OWNER_B, listed_state)
        assert state == ListingState.cleared(OWNER_B)

    def test_no_prior(self):
        assert carry_listing(OWNER_A, None).listing_order is None
