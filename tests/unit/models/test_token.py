"""
Unit tests for models.token module.

Tests:
- TokenMetadata parsing from JSON documents and image resolution order
- ChainLookup status construction
- ListingState row conversion, clearing, and owner comparison
- TokenRecord validation, normalization, and database parameters
"""

from datetime import UTC, datetime
from types import MappingProxyType

import pytest

from nftsync.models import (
    ChainLookup,
    ListingState,
    LookupStatus,
    TokenMetadata,
    TokenRecord,
    TokenRecordDbParams,
)


NOW = datetime(2026, 3, 1, tzinfo=UTC)


def _record(**overrides) -> TokenRecord:
    fields = {
        "token_id": "7",
        "collection_address": "0xcollection",
        "marketplace_address": "0xmarket",
        "owner_address": "0xOwNeR",
        "display_name": "NFT #7",
        "updated_at": NOW,
    }
    fields.update(overrides)
    return TokenRecord(**fields)


# ============================================================================
# TokenMetadata
# ============================================================================


class TestTokenMetadataFromJson:
    """TokenMetadata.from_json() parsing."""

    def test_all_fields(self):
        meta = TokenMetadata.from_json({"name": "Foo", "image": "ipfs://a", "image_url": "b"})
        assert meta.name == "Foo"
        assert meta.image == "ipfs://a"
        assert meta.image_url == "b"

    def test_missing_fields_are_none(self):
        meta = TokenMetadata.from_json({})
        assert meta == TokenMetadata()

    def test_non_string_values_ignored(self):
        meta = TokenMetadata.from_json({"name": 42, "image": ["x"], "image_url": None})
        assert meta.name is None
        assert meta.image is None
        assert meta.image_url is None

    def test_blank_strings_ignored(self):
        meta = TokenMetadata.from_json({"name": "   ", "image": ""})
        assert meta.name is None
        assert meta.image is None

    def test_null_bytes_ignored(self):
        meta = TokenMetadata.from_json({"name": "bad\x00name"})
        assert meta.name is None

    def test_extra_fields_ignored(self):
        meta = TokenMetadata.from_json({"name": "Foo", "attributes": [{"trait": "x"}]})
        assert meta.name == "Foo"

    @pytest.mark.parametrize("data", [[], "string", 42, None])
    def test_non_object_rejected(self, data):
        with pytest.raises(TypeError):
            TokenMetadata.from_json(data)


class TestImageRef:
    """TokenMetadata.image_ref resolution order."""

    def test_image_preferred(self):
        meta = TokenMetadata(image="ipfs://img", image_url="https://alt")
        assert meta.image_ref == "ipfs://img"

    def test_falls_back_to_image_url(self):
        assert TokenMetadata(image_url="https://alt").image_ref == "https://alt"

    def test_empty_image_falls_back(self):
        assert TokenMetadata(image="", image_url="https://alt").image_ref == "https://alt"

    def test_none_when_both_missing(self):
        assert TokenMetadata(name="x").image_ref is None

    def test_frozen(self):
        meta = TokenMetadata(name="x")
        with pytest.raises(AttributeError):
            meta.name = "y"  # type: ignore[misc]


# ============================================================================
# ChainLookup
# ============================================================================


class TestChainLookup:
    """ChainLookup construction."""

    def test_found(self):
        lookup = ChainLookup.found("0xabc", "ipfs://uri")
        assert lookup.status is LookupStatus.FOUND
        assert lookup.exists is True
        assert lookup.owner == "0xabc"
        assert lookup.token_uri == "ipfs://uri"

    def test_found_without_uri(self):
        assert ChainLookup.found("0xabc", None).token_uri is None

    def test_not_found(self):
        lookup = ChainLookup.not_found()
        assert lookup.exists is False
        assert lookup.owner is None

    def test_found_requires_owner(self):
        with pytest.raises(ValueError):
            ChainLookup.found("", None)

    def test_status_coerced_from_string(self):
        assert ChainLookup("not_found").status is LookupStatus.NOT_FOUND


# ============================================================================
# ListingState
# ============================================================================


class TestListingState:
    """ListingState conversion and comparison."""

    def test_from_row(self):
        row = {
            "owner_address": "0xabc",
            "listing_order": {"k": "v"},
            "listing_price": 15,
            "listing_order_hash": "0xhash",
        }
        state = ListingState.from_row(row)
        assert state.owner_address == "0xabc"
        assert state.listing_order == {"k": "v"}
        assert isinstance(state.listing_order, MappingProxyType)
        assert state.listing_price == "15"
        assert state.listing_order_hash == "0xhash"

    def test_from_row_nulls(self):
        row = dict.fromkeys(
            ("owner_address", "listing_order", "listing_price", "listing_order_hash")
        )
        assert ListingState.from_row(row) == ListingState()

    def test_cleared(self):
        state = ListingState.cleared("0xabc")
        assert state.owner_address == "0xabc"
        assert state.listing_order is None
        assert state.listing_price is None
        assert state.listing_order_hash is None

    def test_owner_changed_case_insensitive(self):
        state = ListingState(owner_address="0xABCdef")
        assert state.owner_changed("0xabcDEF") is False
        assert state.owner_changed("0x123456") is True

    def test_owner_changed_without_prior_owner(self):
        assert ListingState(owner_address=None).owner_changed("0xabc") is False
        assert ListingState(owner_address="").owner_changed("0xabc") is False


# ============================================================================
# TokenRecord
# ============================================================================


class TestTokenRecord:
    """TokenRecord validation and normalization."""

    def test_owner_lowercased(self):
        assert _record().owner_address == "0xowner"

    def test_defaults(self):
        record = _record()
        assert record.on_chain is True
        assert record.image_ref is None
        assert record.listing_order is None

    @pytest.mark.parametrize("token_id", ["", "abc", "-1", "1.5"])
    def test_invalid_token_id(self, token_id):
        with pytest.raises(ValueError):
            _record(token_id=token_id)

    def test_token_id_must_be_str(self):
        with pytest.raises(TypeError):
            _record(token_id=7)

    def test_naive_timestamp_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            _record(updated_at=datetime(2026, 1, 1))

    def test_empty_owner_rejected(self):
        with pytest.raises(ValueError):
            _record(owner_address="")

    def test_null_byte_rejected(self):
        with pytest.raises(ValueError):
            _record(display_name="bad\x00")

    def test_listing_order_frozen(self):
        record = _record(listing_order={"a": {"b": 1}})
        with pytest.raises(TypeError):
            record.listing_order["a"] = 2  # type: ignore[index]


class TestTokenRecordDbParams:
    """TokenRecord.to_db_params() column order and serialization."""

    def test_column_order(self):
        record = _record(
            image_ref="ipfs://img",
            listing_order={"a": [1, {"b": 2}]},
            listing_price="3",
            listing_order_hash="0xh",
        )
        params = record.to_db_params()
        assert isinstance(params, TokenRecordDbParams)
        assert tuple(params) == (
            "7",
            "0xcollection",
            "0xmarket",
            "0xowner",
            True,
            "NFT #7",
            "ipfs://img",
            {"a": [1, {"b": 2}]},
            "3",
            "0xh",
            NOW,
        )

    def test_listing_order_thawed(self):
        params = _record(listing_order={"a": {"b": 1}}).to_db_params()
        assert type(params.listing_order) is dict
        assert type(params.listing_order["a"]) is dict

    def test_cached(self):
        record = _record()
        assert record.to_db_params() is record.to_db_params()

    def test_listing_property(self):
        record = _record(listing_price="1", listing_order_hash="0xh")
        assert record.listing == ListingState(
            owner_address="0xowner", listing_price="1", listing_order_hash="0xh"
        )
