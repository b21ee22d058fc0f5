"""Core layer providing the foundation for nftsync services.

Depends only on [nftsync.models][] and is depended upon by
[nftsync.services][].

Attributes:
    Pool: Async PostgreSQL connection pool with retry/backoff.
    Store: Database facade; services use it, never Pool directly.
    BaseService: Abstract generic base class with one-shot and periodic
        lifecycle, factory methods, and metrics helpers.
    Logger: Structured logger emitting key=value context (JSON via the formatter).
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
"""

from .base_service import BaseService, BaseServiceConfig, ConfigT
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import MetricsConfig, MetricsServer, start_metrics_server
from .pool import DatabaseConfig, Pool, PoolConfig, PoolLimitsConfig, PoolRetryConfig
from .store import Store, StoreConfig, StoreTimeoutsConfig
from .yaml import load_yaml


__all__ = [
    "BaseService",
    "BaseServiceConfig",
    "ConfigT",
    "DatabaseConfig",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "Pool",
    "PoolConfig",
    "PoolLimitsConfig",
    "PoolRetryConfig",
    "Store",
    "StoreConfig",
    "StoreTimeoutsConfig",
    "StructuredFormatter",
    "format_kv_pairs",
    "load_yaml",
    "start_metrics_server",
]
