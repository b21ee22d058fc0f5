"""
Prometheus metrics collection and HTTP exposition.

Module-level metric objects are process-wide singletons.
[BaseService.run_forever()][nftsync.core.base_service.BaseService.run_forever]
records cycle counts, durations, and failure streaks; services add their
own values through ``set_gauge()`` and ``inc_counter()``.

``MetricsServer`` exposes the registry over an aiohttp endpoint for
scraping. It is only started in continuous (``--forever``) mode; one-shot
sweeps record metrics in-process but expose nothing.

Architecture:
    SERVICE_INFO:            Static metadata set once at startup.
    SERVICE_GAUGE:           Point-in-time values (last sweep's totals).
    SERVICE_COUNTER:         Cumulative totals across sweeps.
    CYCLE_DURATION_SECONDS:  Full-sweep latency histogram.
    BATCH_DURATION_SECONDS:  Per-batch latency histogram.
"""

from __future__ import annotations

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    Set ``host`` to ``"0.0.0.0"`` in container environments to allow
    external scraping.
    """

    enabled: bool = Field(default=False, description="Enable metrics collection")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


SERVICE_INFO = Info(
    "nftsync_service",
    "Service information and metadata",
)

CYCLE_DURATION_SECONDS = Histogram(
    "nftsync_cycle_duration_seconds",
    "Duration of a full-range sweep in seconds",
    ["service"],
    buckets=(10, 30, 60, 120, 300, 600, 1800, 3600, 7200),
)

BATCH_DURATION_SECONDS = Histogram(
    "nftsync_batch_duration_seconds",
    "Duration of one concurrent token batch in seconds",
    ["service"],
    buckets=(0.5, 1, 2, 5, 10, 20, 30, 60),
)

# Automatic names (BaseService.run_forever):
#   gauge:   consecutive_failures, last_cycle_timestamp
#   counter: cycles_success, cycles_failed, errors_{type}
# Syncer names:
#   gauge:   total_supply, processed, synced, not_found, failed,
#            persistence_failed, metadata_missing
#   counter: tokens_{outcome} (synced, not_found, failed, persistence_failed)
SERVICE_GAUGE = Gauge(
    "nftsync_service_gauge",
    "Service gauge values (point-in-time state)",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "nftsync_service_counter",
    "Service counter values (cumulative totals)",
    ["service", "name"],
)


class MetricsServer:
    """Async HTTP server exposing a Prometheus-compatible endpoint.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=8001))
        await server.start()
        # ... sweeps run ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Bind the endpoint. No-op when metrics are disabled.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()

    async def stop(self) -> None:
        """Stop the HTTP server. Idempotent."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    @staticmethod
    async def _handle_metrics(_request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )


async def start_metrics_server(config: MetricsConfig | None = None) -> MetricsServer:
    """Create and start a metrics server; the caller must ``stop()`` it."""
    server = MetricsServer(config or MetricsConfig())
    await server.start()
    return server
