"""nftsync exception hierarchy.

Typed exceptions for every error category so that the per-token task
boundary can distinguish terminal answers from transient faults and let
``CancelledError`` propagate untouched.

Exception hierarchy:

```text
NftSyncError (base -- never raised directly)
├── ConfigurationError       -- config validation, missing env, bad YAML
├── DatabaseError            -- pool/store failures
│   ├── ConnectionPoolError  -- transient: pool exhausted, network blip
│   └── PersistenceError     -- a token row could not be read or written
└── SourceError              -- chain RPC or content gateway failures
    ├── TokenNotFound        -- terminal: the contract says the id does not exist
    ├── ChainUnavailable     -- every RPC endpoint failed for one id
    ├── MetadataUnavailable  -- no gateway produced a parseable document
    └── SupplyReadError      -- totalSupply() failed; fatal for the run
```

Per-token errors are contained by
[Syncer][nftsync.services.syncer.Syncer]; only
[SupplyReadError][nftsync.core.exceptions.SupplyReadError] aborts a run.
"""

from __future__ import annotations


class NftSyncError(Exception):
    """Base exception for all nftsync errors. Never raised directly."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(NftSyncError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class DatabaseError(NftSyncError):
    """Base for all database-related errors."""


class ConnectionPoolError(DatabaseError):
    """Transient database error: pool exhausted, connection refused, network blip.

    Callers may retry after a backoff.
    """


class PersistenceError(DatabaseError):
    """Reading the prior row or upserting a token row failed.

    The token's update is lost for this pass; the sweep continues.

    Attributes:
        token_id: The token whose row could not be persisted.
    """

    def __init__(self, token_id: str, message: str) -> None:
        super().__init__(f"token {token_id}: {message}")
        self.token_id = token_id


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class SourceError(NftSyncError):
    """Base for chain RPC and content gateway failures."""


class TokenNotFound(SourceError):
    """The contract reported the token id as nonexistent.

    A definitive answer, not a transient fault: never retried on another
    endpoint and never written as a tombstone.
    """

    def __init__(self, token_id: int) -> None:
        super().__init__(f"token {token_id} does not exist")
        self.token_id = token_id


class ChainUnavailable(SourceError):
    """Every RPC endpoint attempt failed for a token lookup.

    Attributes:
        token_id: The token being looked up.
        attempts: Number of endpoint attempts made.
    """

    def __init__(self, token_id: int, attempts: int, last_error: str | None = None) -> None:
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"token {token_id}: chain read failed after {attempts} attempts{detail}")
        self.token_id = token_id
        self.attempts = attempts


class MetadataUnavailable(SourceError):
    """No direct URL or gateway produced a parseable metadata document.

    Callers treat this as "no metadata", not as a token failure.
    """


class SupplyReadError(SourceError):
    """Reading ``totalSupply()`` failed. Fatal: the run processes no batch."""
