"""
asyncpg connection pool for the ``token_metadata`` table.

Connecting and querying share one retry loop with capped exponential
backoff. Only connection-level faults are retried; anything the server
rejects (bad SQL, constraint violations) surfaces on the first attempt.
Every connection gets JSON/JSONB codecs so ``listing_order`` is read and
written as a Python object.

Services reach the database through [Store][nftsync.core.store.Store],
which adds per-category timeouts on top of this pool.
"""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import Any, Literal, TypeVar, cast

import asyncpg
from pydantic import BaseModel, Field, SecretStr, ValidationInfo, field_validator, model_validator

from .exceptions import ConnectionPoolError
from .logger import Logger


T = TypeVar("T")

# Raised when the socket under a pooled connection is gone.
_TRANSIENT_QUERY_ERRORS = (asyncpg.InterfaceError, asyncpg.ConnectionDoesNotExistError)
_TRANSIENT_CONNECT_ERRORS = (asyncpg.PostgresError, OSError, ConnectionError)


def _json_encode(value: Any) -> str:
    # Strings are assumed to be JSON already.
    if isinstance(value, str):
        return value
    return json.dumps(value)


async def _init_connection(conn: asyncpg.Connection[asyncpg.Record]) -> None:
    """Install JSON codecs on a freshly opened connection."""
    for type_name in ("jsonb", "json"):
        await conn.set_type_codec(
            type_name, encoder=_json_encode, decoder=json.loads, schema="pg_catalog"
        )


class DatabaseConfig(BaseModel):
    """Where to connect. The password only ever comes from ``password_env``."""

    host: str = Field(default="localhost", min_length=1)
    port: int = Field(default=5432, ge=1, le=65535)
    database: str = Field(default="nftsync", min_length=1)
    user: str = Field(default="postgres", min_length=1)
    password_env: str = Field(default="DB_PASSWORD", min_length=1)  # pragma: allowlist secret
    password: SecretStr
    ssl: Literal["disable", "prefer", "require"] = "prefer"

    @model_validator(mode="before")
    @classmethod
    def resolve_password(cls, data: Any) -> Any:
        if isinstance(data, dict) and "password" not in data:
            env_var = data.get("password_env", "DB_PASSWORD")  # pragma: allowlist secret
            value = os.getenv(env_var)
            if not value:
                raise ValueError(f"{env_var} environment variable not set")
            data["password"] = SecretStr(value)
        return data


class PoolLimitsConfig(BaseModel):
    """Pool size. Keep ``max_size`` at or above the syncer batch size."""

    min_size: int = Field(default=2, ge=1, le=100)
    max_size: int = Field(default=10, ge=1, le=200)

    @field_validator("max_size")
    @classmethod
    def validate_max_size(cls, v: int, info: ValidationInfo) -> int:
        min_size = info.data.get("min_size", 2)
        if v < min_size:
            raise ValueError(f"max_size ({v}) must be >= min_size ({min_size})")
        return v


class PoolRetryConfig(BaseModel):
    """How often and how patiently to retry a connection-level fault."""

    max_attempts: int = Field(default=3, ge=1, le=10)
    initial_delay: float = Field(default=1.0, ge=0.1)
    max_delay: float = Field(default=10.0, ge=0.1)

    @field_validator("max_delay")
    @classmethod
    def validate_max_delay(cls, v: float, info: ValidationInfo) -> float:
        initial_delay = info.data.get("initial_delay", 1.0)
        if v < initial_delay:
            raise ValueError(f"max_delay ({v}) must be >= initial_delay ({initial_delay})")
        return v

    def delay(self, failures: int) -> float:
        """Seconds to wait after the *failures*-th consecutive failure (1-based)."""
        return float(min(self.initial_delay * 2 ** (failures - 1), self.max_delay))


class PoolConfig(BaseModel):
    database: DatabaseConfig = Field(default_factory=lambda: DatabaseConfig.model_validate({}))
    limits: PoolLimitsConfig = Field(default_factory=PoolLimitsConfig)
    retry: PoolRetryConfig = Field(default_factory=PoolRetryConfig)
    acquisition_timeout: float = Field(default=10.0, ge=0.1)
    application_name: str = "nftsync"


class Pool:
    """Lazily connected asyncpg pool.

    Nothing is opened until [connect()][nftsync.core.pool.Pool.connect]
    (or ``async with``). Queries made before that, or after
    [close()][nftsync.core.pool.Pool.close], raise
    [ConnectionPoolError][nftsync.core.exceptions.ConnectionPoolError].
    """

    def __init__(self, config: PoolConfig | None = None) -> None:
        self._config = config or PoolConfig()
        self._pool: asyncpg.Pool[asyncpg.Record] | None = None
        self._lock = asyncio.Lock()
        self._logger = Logger("pool")

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> Pool:
        return cls(config=PoolConfig(**config_dict))

    @property
    def config(self) -> PoolConfig:
        return self._config

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def _retrying(
        self,
        event: str,
        transient: tuple[type[BaseException], ...],
        attempt: Callable[[], Awaitable[T]],
    ) -> T:
        """Await ``attempt()`` until it succeeds or the retry budget is spent.

        Logs ``<event>_retry`` before each backoff and ``<event>_failed``
        when giving up, then raises ``ConnectionPoolError`` chained to the
        last transient error. Non-transient errors propagate unchanged.
        """
        retry = self._config.retry
        failures = 0
        while True:
            try:
                return await attempt()
            except transient as e:
                failures += 1
                if failures >= retry.max_attempts:
                    self._logger.error(f"{event}_failed", attempts=failures, error=str(e))
                    raise ConnectionPoolError(
                        f"{event} failed after {failures} attempts: {e}"
                    ) from e
                delay = retry.delay(failures)
                self._logger.warning(
                    f"{event}_retry", attempt=failures, delay_s=delay, error=str(e)
                )
                await asyncio.sleep(delay)

    async def connect(self) -> None:
        """Open the pool. A second call while connected does nothing."""
        async with self._lock:
            if self._pool is not None:
                return
            db = self._config.database
            self._logger.info(
                "connection_starting", host=db.host, port=db.port, database=db.database
            )
            self._pool = await self._retrying(
                "connection",
                _TRANSIENT_CONNECT_ERRORS,
                lambda: asyncpg.create_pool(
                    host=db.host,
                    port=db.port,
                    database=db.database,
                    user=db.user,
                    password=db.password.get_secret_value(),
                    ssl=db.ssl,
                    min_size=self._config.limits.min_size,
                    max_size=self._config.limits.max_size,
                    timeout=self._config.acquisition_timeout,
                    init=_init_connection,
                    server_settings={"application_name": self._config.application_name},
                ),
            )
            self._logger.info("connection_established")

    async def close(self) -> None:
        async with self._lock:
            pool, self._pool = self._pool, None
            if pool is not None:
                await pool.close()
                self._logger.info("connection_closed")

    def acquire(self) -> AbstractAsyncContextManager[asyncpg.Connection[asyncpg.Record]]:
        if self._pool is None:
            raise ConnectionPoolError("Pool not connected. Call connect() first.")
        return cast(
            "AbstractAsyncContextManager[asyncpg.Connection[asyncpg.Record]]",
            self._pool.acquire(),
        )

    async def _run(
        self,
        operation: Literal["fetchrow", "execute"],
        query: str,
        args: tuple[Any, ...],
        timeout: float | None,  # noqa: ASYNC109
    ) -> Any:
        # A fresh connection per attempt: a broken socket is never reused.
        async def attempt() -> Any:
            async with self.acquire() as conn:
                return await getattr(conn, operation)(query, *args, timeout=timeout)

        return await self._retrying("query", _TRANSIENT_QUERY_ERRORS, attempt)

    async def fetchrow(
        self, query: str, *args: Any, timeout: float | None = None  # noqa: ASYNC109
    ) -> asyncpg.Record | None:
        return cast("asyncpg.Record | None", await self._run("fetchrow", query, args, timeout))

    async def execute(
        self, query: str, *args: Any, timeout: float | None = None  # noqa: ASYNC109
    ) -> str:
        """Run a statement and return its status tag, e.g. ``"INSERT 0 1"``."""
        return cast("str", await self._run("execute", query, args, timeout))

    async def __aenter__(self) -> Pool:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        db = self._config.database
        return f"Pool(host={db.host}, database={db.database}, connected={self.is_connected})"
