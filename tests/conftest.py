"""
Pytest configuration and shared fixtures for nftsync tests.

Provides:
- Mock fixtures for Pool, Store, and asyncpg
- Environment fixtures for contract addresses and the database password
- Sample data fixtures for tokens and listing state
"""

import logging
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from nftsync.core.pool import DatabaseConfig, Pool, PoolConfig
from nftsync.core.store import Store
from nftsync.models import ListingState, TokenMetadata


COLLECTION = "0x1111111111111111111111111111111111111111"
MARKETPLACE = "0x2222222222222222222222222222222222222222"
OWNER_A = "0xAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAa"
OWNER_B = "0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"
FIXED_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture
def sync_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set every environment variable the syncer configuration reads."""
    monkeypatch.setenv("NFT_CONTRACT_ADDRESS", COLLECTION)
    monkeypatch.setenv("SEAPORT_CONTRACT_ADDRESS", MARKETPLACE)
    monkeypatch.delenv("APECHAIN_RPC", raising=False)
    monkeypatch.setenv("DB_PASSWORD", "test_password")


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_connection() -> MagicMock:
    """Create a mock asyncpg connection."""
    conn = MagicMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.execute = AsyncMock(return_value="INSERT 0 1")
    return conn


@pytest.fixture
def mock_asyncpg_pool(mock_connection: MagicMock) -> MagicMock:
    """Create a mock asyncpg pool."""
    pool = MagicMock()
    pool.close = AsyncMock()

    mock_acquire = MagicMock()
    mock_acquire.__aenter__ = AsyncMock(return_value=mock_connection)
    mock_acquire.__aexit__ = AsyncMock(return_value=None)
    pool.acquire = MagicMock(return_value=mock_acquire)

    return pool


@pytest.fixture
def mock_pool(
    mock_asyncpg_pool: MagicMock, mock_connection: MagicMock, monkeypatch: pytest.MonkeyPatch
) -> Pool:
    """Create a connected Pool with mocked internals."""
    monkeypatch.setenv("DB_PASSWORD", "test_password")

    config = PoolConfig(
        database=DatabaseConfig(
            host="localhost",
            port=5432,
            database="test_db",
            user="test_user",
        )
    )
    pool = Pool(config=config)
    pool._pool = mock_asyncpg_pool

    pool._mock_connection = mock_connection  # type: ignore[attr-defined]

    return pool


@pytest.fixture
def mock_store(mock_pool: Pool) -> Store:
    """Create a Store backed by the mocked pool."""
    return Store(pool=mock_pool)


@pytest.fixture
def stub_store() -> MagicMock:
    """A Store stand-in with the query facade stubbed."""
    store = MagicMock(spec=Store)
    store.fetchrow = AsyncMock(return_value=None)
    store.execute = AsyncMock(return_value="INSERT 0 1")
    return store


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def database_config_dict() -> dict[str, Any]:
    """Sample database configuration dictionary."""
    return {
        "pool": {
            "database": {
                "host": "localhost",
                "port": 5432,
                "database": "test_db",
                "user": "test_user",
            },
            "limits": {"min_size": 2, "max_size": 10},
            "retry": {
                "max_attempts": 2,
                "initial_delay": 0.5,
                "max_delay": 2.0,
            },
        },
        "timeouts": {"query": 15.0, "write": 20.0},
    }


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def metadata() -> TokenMetadata:
    return TokenMetadata(name="Ape #1", image="ipfs://QmImage")


@pytest.fixture
def listed_state() -> ListingState:
    """Prior row owned by OWNER_A with an active listing."""
    return ListingState(
        owner_address=OWNER_A.lower(),
        listing_order={"offerer": OWNER_A.lower(), "consideration": [{"amount": "1000"}]},
        listing_price="1.5",
        listing_order_hash="0xdeadbeef",
    )
