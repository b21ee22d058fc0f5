"""
Database facade over the connection pool.

``Store`` owns a private [Pool][nftsync.core.pool.Pool] and exposes a
small generic query surface with per-category default timeouts. All
domain SQL (the ``token_metadata`` lookup and upsert) lives in
[nftsync.services.common.queries][], not here.

Example:
    ```python
    store = Store.from_yaml("config/database.yaml")

    async with store:
        status = await store.execute("SELECT 1")
    ```
"""

from __future__ import annotations

from typing import Any

import asyncpg  # noqa: TC002
from pydantic import BaseModel, Field, field_validator

from .logger import Logger
from .pool import Pool, PoolConfig
from .yaml import load_yaml


_MIN_TIMEOUT_SECONDS = 0.1


class StoreTimeoutsConfig(BaseModel):
    """Default timeouts for Store operations (seconds, None = no limit)."""

    query: float | None = Field(default=30.0, description="Read timeout (seconds)")
    write: float | None = Field(default=30.0, description="Upsert timeout (seconds)")

    @field_validator("query", "write", mode="after")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        """Validate timeout: None (infinite) or >= 0.1 seconds."""
        if v is not None and v < _MIN_TIMEOUT_SECONDS:
            raise ValueError(
                f"Timeout must be None (infinite) or >= {_MIN_TIMEOUT_SECONDS} seconds"
            )
        return v


class StoreConfig(BaseModel):
    """Store-level settings (the ``pool`` key is handled separately)."""

    timeouts: StoreTimeoutsConfig = Field(default_factory=StoreTimeoutsConfig)


class Store:
    """High-level database interface used by every service.

    Args:
        pool: Connection pool. Creates a default
            [Pool][nftsync.core.pool.Pool] if not provided.
        config: Timeout settings. Uses defaults if not provided.
    """

    def __init__(self, pool: Pool | None = None, config: StoreConfig | None = None) -> None:
        self._pool = pool or Pool()
        self._config = config or StoreConfig()
        self._logger = Logger("store")

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def pool_config(self) -> PoolConfig:
        return self._pool.config

    @classmethod
    def from_yaml(cls, config_path: str) -> Store:
        """Create a Store from a YAML file with a ``pool`` key and optional ``timeouts``."""
        return cls.from_dict(load_yaml(config_path))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> Store:
        """Create a Store, building the Pool from the ``pool`` key if present."""
        pool = Pool.from_dict(config_dict["pool"]) if "pool" in config_dict else None
        store_dict = {k: v for k, v in config_dict.items() if k != "pool"}
        config = StoreConfig(**store_dict) if store_dict else None
        return cls(pool=pool, config=config)

    # -------------------------------------------------------------------------
    # Query Facade
    # -------------------------------------------------------------------------

    async def fetchrow(
        self, query: str, *args: Any, timeout: float | None = None  # noqa: ASYNC109
    ) -> asyncpg.Record | None:
        """Return the first row; timeout defaults to ``timeouts.query``."""
        t = timeout if timeout is not None else self._config.timeouts.query
        return await self._pool.fetchrow(query, *args, timeout=t)

    async def execute(
        self, query: str, *args: Any, timeout: float | None = None  # noqa: ASYNC109
    ) -> str:
        """Run a write; timeout defaults to ``timeouts.write``."""
        t = timeout if timeout is not None else self._config.timeouts.write
        return await self._pool.execute(query, *args, timeout=t)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        await self._pool.connect()
        self._logger.debug("session_started")

    async def close(self) -> None:
        self._logger.debug("session_ending")
        await self._pool.close()

    async def __aenter__(self) -> Store:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        db = self._pool.config.database
        return f"Store(host={db.host}, database={db.database}, connected={self._pool.is_connected})"
