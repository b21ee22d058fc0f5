"""Token-level data containers for the sync pipeline.

Pure data containers with zero I/O: the row persisted per token
([TokenRecord][nftsync.models.token.TokenRecord]), the prior listing
subset read back before each write
([ListingState][nftsync.models.token.ListingState]), the parsed metadata
document ([TokenMetadata][nftsync.models.token.TokenMetadata]), and the
structured result of a chain lookup
([ChainLookup][nftsync.models.token.ChainLookup]).

All validation happens in ``__post_init__`` so invalid instances never
escape the constructor. Database parameter containers use ``NamedTuple``
with fields in table column order.

See Also:
    [nftsync.core.store][]: The database facade that consumes
        [TokenRecord][nftsync.models.token.TokenRecord] and produces
        [ListingState][nftsync.models.token.ListingState].
    [nftsync.services.syncer.reconcile][]: Pure transformation that
        combines these types into the next persisted row.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, NamedTuple

from ._validation import (
    deep_freeze,
    thaw,
    validate_mapping,
    validate_optional_str,
    validate_str_not_empty,
    validate_token_id,
)
from .constants import LookupStatus


def _text_field(data: Mapping[str, Any], key: str) -> str | None:
    """Return ``data[key]`` when it is a usable non-blank string, else None."""
    value = data.get(key)
    if not isinstance(value, str) or not value.strip() or "\x00" in value:
        return None
    return value


# ---------------------------------------------------------------------------
# Metadata Document
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TokenMetadata:
    """Parsed NFT metadata document.

    Only the fields this pipeline consumes are modelled. The image is an
    explicit two-field optional record because collections disagree on the
    field name: ``image`` (ERC-721 metadata JSON schema) or ``image_url``
    (OpenSea-style). Resolution order is fixed, see
    [image_ref][nftsync.models.token.TokenMetadata.image_ref].

    Attributes:
        name: Human-readable name, or ``None`` if missing or blank.
        image: Value of the ``image`` field, or ``None``.
        image_url: Value of the ``image_url`` field, or ``None``.

    Examples:
        ```python
        meta = TokenMetadata.from_json({"name": "Foo", "image_url": "ipfs://xyz"})
        meta.image_ref  # 'ipfs://xyz'
        ```
    """

    name: str | None = None
    image: str | None = None
    image_url: str | None = None

    def __post_init__(self) -> None:
        validate_optional_str(self.name, "name")
        validate_optional_str(self.image, "image")
        validate_optional_str(self.image_url, "image_url")

    @classmethod
    def from_json(cls, data: Any) -> TokenMetadata:
        """Build from a decoded JSON document.

        Non-string or blank values are treated as absent.

        Raises:
            TypeError: If *data* is not a JSON object.
        """
        validate_mapping(data, "metadata")
        return cls(
            name=_text_field(data, "name"),
            image=_text_field(data, "image"),
            image_url=_text_field(data, "image_url"),
        )

    @property
    def image_ref(self) -> str | None:
        """Resolved image pointer: ``image`` first, then ``image_url``, else None."""
        return self.image or self.image_url or None


# ---------------------------------------------------------------------------
# Chain Lookup Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ChainLookup:
    """Structured result of an ``ownerOf`` + ``tokenURI`` lookup.

    Nonexistence is a value, not an exception: bindings return
    ``ChainLookup.not_found()`` and reserve exceptions for transient
    faults that warrant endpoint rotation.
    """

    status: LookupStatus
    owner: str | None = None
    token_uri: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", LookupStatus(self.status))
        if self.status is LookupStatus.FOUND:
            validate_str_not_empty(self.owner, "owner")
            validate_optional_str(self.token_uri, "token_uri")

    @classmethod
    def found(cls, owner: str, token_uri: str | None) -> ChainLookup:
        return cls(LookupStatus.FOUND, owner, token_uri)

    @classmethod
    def not_found(cls) -> ChainLookup:
        return cls(LookupStatus.NOT_FOUND)

    @property
    def exists(self) -> bool:
        return self.status is LookupStatus.FOUND


# ---------------------------------------------------------------------------
# Prior Listing State
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ListingState:
    """Subset of a persisted row read back before each write.

    Listing fields are owned by the marketplace listing subsystem. This
    pipeline only ever carries them forward unchanged or clears them.

    Attributes:
        owner_address: Owner as last persisted (may be ``None``).
        listing_order: Opaque order payload (JSON), or ``None``.
        listing_price: Listing price as stored, or ``None``.
        listing_order_hash: Order hash, or ``None``.
    """

    owner_address: str | None = None
    listing_order: Any = None
    listing_price: str | None = None
    listing_order_hash: str | None = None

    def __post_init__(self) -> None:
        validate_optional_str(self.owner_address, "owner_address")
        validate_optional_str(self.listing_price, "listing_price")
        validate_optional_str(self.listing_order_hash, "listing_order_hash")
        object.__setattr__(self, "listing_order", deep_freeze(self.listing_order))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ListingState:
        """Build from a database row with the four listing-subset columns."""
        price = row["listing_price"]
        return cls(
            owner_address=row["owner_address"],
            listing_order=row["listing_order"],
            listing_price=str(price) if price is not None else None,
            listing_order_hash=row["listing_order_hash"],
        )

    @classmethod
    def cleared(cls, owner_address: str | None = None) -> ListingState:
        """Return a state with all listing fields set to ``None``."""
        return cls(owner_address=owner_address)

    def owner_changed(self, owner: str) -> bool:
        """Whether *owner* differs (case-insensitively) from the persisted owner.

        A persisted row without an owner never counts as a change.
        """
        if not self.owner_address:
            return False
        return self.owner_address.lower() != owner.lower()


# ---------------------------------------------------------------------------
# Persisted Row
# ---------------------------------------------------------------------------


class TokenRecordDbParams(NamedTuple):
    """Positional parameters for the ``token_metadata`` upsert.

    Column order matches
    [upsert_token][nftsync.services.common.queries.upsert_token].
    """

    token_id: str
    collection_address: str
    marketplace_address: str
    owner_address: str
    on_chain: bool
    display_name: str
    image_ref: str | None
    listing_order: Any
    listing_price: str | None
    listing_order_hash: str | None
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class TokenRecord:
    """One row of the ``token_metadata`` table, keyed on ``token_id``.

    Attributes:
        token_id: Decimal string form of the token id (conflict key).
        collection_address: NFT contract address (static configuration).
        marketplace_address: Marketplace contract address (static configuration).
        owner_address: Lower-cased owner as last observed on chain.
        on_chain: Always ``True`` for rows written by this pipeline.
        display_name: Metadata name or the synthesized ``"NFT #<id>"``.
        image_ref: Resolved image pointer, or ``None``.
        listing_order: Carried-forward or cleared order payload.
        listing_price: Carried-forward or cleared price.
        listing_order_hash: Carried-forward or cleared order hash.
        updated_at: Timezone-aware timestamp of this sync write.
    """

    token_id: str
    collection_address: str
    marketplace_address: str
    owner_address: str
    display_name: str
    updated_at: datetime
    on_chain: bool = True
    image_ref: str | None = None
    listing_order: Any = None
    listing_price: str | None = None
    listing_order_hash: str | None = None
    _db_params: TokenRecordDbParams = field(
        default=None,
        init=False,
        repr=False,
        compare=False,
        hash=False,  # type: ignore[assignment]
    )

    def __post_init__(self) -> None:
        validate_token_id(self.token_id)
        validate_str_not_empty(self.collection_address, "collection_address")
        validate_str_not_empty(self.marketplace_address, "marketplace_address")
        validate_str_not_empty(self.owner_address, "owner_address")
        validate_str_not_empty(self.display_name, "display_name")
        validate_optional_str(self.image_ref, "image_ref")
        validate_optional_str(self.listing_price, "listing_price")
        validate_optional_str(self.listing_order_hash, "listing_order_hash")
        if self.updated_at.tzinfo is None:
            raise ValueError("updated_at must be timezone-aware")

        object.__setattr__(self, "owner_address", self.owner_address.lower())
        object.__setattr__(self, "listing_order", deep_freeze(self.listing_order))
        object.__setattr__(self, "_db_params", self._compute_db_params())

    def _compute_db_params(self) -> TokenRecordDbParams:
        return TokenRecordDbParams(
            token_id=self.token_id,
            collection_address=self.collection_address,
            marketplace_address=self.marketplace_address,
            owner_address=self.owner_address,
            on_chain=self.on_chain,
            display_name=self.display_name,
            image_ref=self.image_ref,
            listing_order=thaw(self.listing_order),
            listing_price=self.listing_price,
            listing_order_hash=self.listing_order_hash,
            updated_at=self.updated_at,
        )

    def to_db_params(self) -> TokenRecordDbParams:
        """Return cached database parameters in upsert column order."""
        return self._db_params

    @property
    def listing(self) -> ListingState:
        """The listing subset of this row."""
        return ListingState(
            owner_address=self.owner_address,
            listing_order=self.listing_order,
            listing_price=self.listing_price,
            listing_order_hash=self.listing_order_hash,
        )
