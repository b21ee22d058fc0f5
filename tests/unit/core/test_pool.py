"""
Unit tests for core.pool module.

Tests:
- Configuration models (DatabaseConfig, PoolLimitsConfig, PoolRetryConfig, PoolConfig)
- Backoff delays
- Connection lifecycle with retry and failure
- Query methods with retry on transient connection errors
- JSON codec helpers
"""

from unittest.mock import AsyncMock, MagicMock, patch

import asyncpg
import pytest
from pydantic import ValidationError

from nftsync.core.exceptions import ConnectionPoolError
from nftsync.core.pool import (
    DatabaseConfig,
    Pool,
    PoolConfig,
    PoolLimitsConfig,
    PoolRetryConfig,
    _init_connection,
    _json_encode,
)


class TestDatabaseConfig:
    """DatabaseConfig Pydantic model."""

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "test_pass")
        config = DatabaseConfig()
        assert config.host == "localhost"
        assert config.port == 5432
        assert config.database == "nftsync"
        assert config.user == "postgres"
        assert config.ssl == "prefer"

    def test_password_from_env(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "env_password")
        config = DatabaseConfig()
        assert config.password.get_secret_value() == "env_password"

    def test_custom_password_env(self, monkeypatch):
        monkeypatch.setenv("SYNC_DB_PASS", "other")
        config = DatabaseConfig(password_env="SYNC_DB_PASS")
        assert config.password.get_secret_value() == "other"

    def test_explicit_password(self):
        config = DatabaseConfig(password="inline")
        assert config.password.get_secret_value() == "inline"

    def test_password_missing_raises(self, monkeypatch):
        monkeypatch.delenv("DB_PASSWORD", raising=False)
        with pytest.raises(ValidationError, match="DB_PASSWORD"):
            DatabaseConfig()

    def test_password_not_in_repr(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "s3cret")
        assert "s3cret" not in repr(DatabaseConfig())

    def test_invalid_port(self):
        with pytest.raises(ValidationError):
            DatabaseConfig(port=0, password="x")


class TestLimitsAndRetry:
    def test_max_below_min_rejected(self):
        with pytest.raises(ValidationError, match="max_size"):
            PoolLimitsConfig(min_size=5, max_size=2)

    def test_max_delay_below_initial_rejected(self):
        with pytest.raises(ValidationError, match="max_delay"):
            PoolRetryConfig(initial_delay=5.0, max_delay=1.0)


class TestRetryDelay:
    def test_doubles_until_capped(self):
        retry = PoolRetryConfig(initial_delay=1.0, max_delay=5.0)
        assert [retry.delay(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]

    async def test_connect_sleeps_follow_backoff(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "pw")
        pool = Pool(PoolConfig(retry=PoolRetryConfig(max_attempts=4, initial_delay=0.5)))
        with (
            patch(
                "nftsync.core.pool.asyncpg.create_pool",
                AsyncMock(side_effect=[OSError("a"), OSError("b"), OSError("c"), MagicMock()]),
            ),
            patch("nftsync.core.pool.asyncio.sleep", AsyncMock()) as sleep,
        ):
            await pool.connect()
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0, 2.0]
        assert pool.is_connected is True


class TestFromDict:
    def test_builds_config(self, monkeypatch, database_config_dict):
        monkeypatch.setenv("DB_PASSWORD", "pw")
        pool = Pool.from_dict(database_config_dict["pool"])
        assert pool.config.database.database == "test_db"
        assert pool.config.retry.max_attempts == 2
        assert pool.is_connected is False


class TestConnect:
    """Pool.connect() lifecycle."""

    async def test_connect_success(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "pw")
        pool = Pool()
        fake = MagicMock()
        with patch("nftsync.core.pool.asyncpg.create_pool", AsyncMock(return_value=fake)) as cp:
            await pool.connect()
        assert pool.is_connected is True
        kwargs = cp.call_args.kwargs
        assert kwargs["init"] is _init_connection
        assert kwargs["server_settings"] == {"application_name": "nftsync"}

    async def test_connect_idempotent(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "pw")
        pool = Pool()
        with patch(
            "nftsync.core.pool.asyncpg.create_pool", AsyncMock(return_value=MagicMock())
        ) as cp:
            await pool.connect()
            await pool.connect()
        assert cp.await_count == 1

    async def test_connect_retries_then_fails(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "pw")
        pool = Pool(PoolConfig(retry=PoolRetryConfig(max_attempts=3, initial_delay=0.1)))
        with (
            patch(
                "nftsync.core.pool.asyncpg.create_pool",
                AsyncMock(side_effect=OSError("refused")),
            ) as cp,
            patch("nftsync.core.pool.asyncio.sleep", AsyncMock()) as sleep,
        ):
            with pytest.raises(ConnectionPoolError, match="after 3 attempts"):
                await pool.connect()
        assert cp.await_count == 3
        assert sleep.await_count == 2
        assert pool.is_connected is False

    async def test_close(self, mock_pool, mock_asyncpg_pool):
        await mock_pool.close()
        mock_asyncpg_pool.close.assert_awaited_once()
        assert mock_pool.is_connected is False
        await mock_pool.close()  # idempotent
        mock_asyncpg_pool.close.assert_awaited_once()


class TestQueries:
    """Query methods and transient retry."""

    async def test_fetchrow(self, mock_pool, mock_connection):
        mock_connection.fetchrow.return_value = {"a": 1}
        assert await mock_pool.fetchrow("SELECT $1", 1, timeout=2.0) == {"a": 1}
        mock_connection.fetchrow.assert_awaited_once_with("SELECT $1", 1, timeout=2.0)

    async def test_execute(self, mock_pool, mock_connection):
        assert await mock_pool.execute("DELETE FROM t") == "INSERT 0 1"

    async def test_retries_interface_error(self, mock_pool, mock_connection):
        mock_connection.execute.side_effect = [asyncpg.InterfaceError("gone"), "INSERT 0 1"]
        with patch("nftsync.core.pool.asyncio.sleep", AsyncMock()):
            assert await mock_pool.execute("INSERT") == "INSERT 0 1"
        assert mock_connection.execute.await_count == 2

    async def test_exhausted_retries_raise(self, mock_pool, mock_connection):
        mock_connection.fetchrow.side_effect = asyncpg.InterfaceError("gone")
        with (
            patch("nftsync.core.pool.asyncio.sleep", AsyncMock()),
            pytest.raises(ConnectionPoolError),
        ):
            await mock_pool.fetchrow("SELECT 1")

    async def test_query_errors_not_retried(self, mock_pool, mock_connection):
        mock_connection.execute.side_effect = asyncpg.PostgresError("syntax")
        with pytest.raises(asyncpg.PostgresError):
            await mock_pool.execute("BAD SQL")
        assert mock_connection.execute.await_count == 1

    def test_acquire_requires_connect(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "pw")
        with pytest.raises(ConnectionPoolError, match="not connected"):
            Pool().acquire()

    async def test_query_after_close_raises_pool_error(self, mock_pool, mock_connection):
        await mock_pool.close()
        with pytest.raises(ConnectionPoolError, match="not connected"):
            await mock_pool.fetchrow("SELECT 1")
        mock_connection.fetchrow.assert_not_awaited()


class TestJsonCodec:
    def test_encode_object(self):
        assert _json_encode({"a": 1}) == '{"a": 1}'

    def test_encode_passthrough_str(self):
        assert _json_encode('{"a": 1}') == '{"a": 1}'

    async def test_init_registers_codecs(self):
        conn = MagicMock()
        conn.set_type_codec = AsyncMock()
        await _init_connection(conn)
        names = [c.args[0] for c in conn.set_type_codec.await_args_list]
        assert names == ["jsonb", "json"]
