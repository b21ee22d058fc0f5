"""
Lifecycle shared by nftsync services.

A service is a [Store][nftsync.core.store.Store] plus a typed pydantic
config and one abstract coroutine, ``run()``, that performs a single
sweep. The CLI either awaits ``run()`` once or hands control to
``run_forever()``, which repeats it on ``interval`` until a shutdown is
requested or too many sweeps fail back to back.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any, ClassVar, Generic, Self, TypeVar, cast

from pydantic import BaseModel, Field

from nftsync.models.constants import ServiceName

from .logger import Logger
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
)
from .store import Store
from .yaml import load_yaml


class BaseServiceConfig(BaseModel):
    """Settings that only periodic mode reads."""

    interval: float = Field(default=3600.0, ge=60.0, description="Seconds between sweeps")
    max_consecutive_failures: int = Field(
        default=5, ge=0, description="Failed sweeps in a row before giving up (0 = never)"
    )
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)


ConfigT = TypeVar("ConfigT", bound=BaseServiceConfig)


class BaseService(ABC, Generic[ConfigT]):
    """Base for services driven by the CLI.

    Subclasses declare ``SERVICE_NAME`` and ``CONFIG_CLASS`` and implement
    ``run()``. Entering ``async with service`` arms it; leaving it sets the
    shutdown flag so a sweep in progress can stop between batches.
    """

    SERVICE_NAME: ClassVar[ServiceName]
    CONFIG_CLASS: ClassVar[type[BaseModel]]

    def __init__(self, store: Store, config: ConfigT | None = None) -> None:
        self._store = store
        self._config: ConfigT = (
            config if config is not None else cast("ConfigT", self.CONFIG_CLASS())
        )
        self._logger = Logger(self.SERVICE_NAME)
        self._shutdown_event = asyncio.Event()

    @classmethod
    def from_yaml(cls, config_path: str, store: Store, **kwargs: Any) -> Self:
        return cls.from_dict(load_yaml(config_path), store=store, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], store: Store, **kwargs: Any) -> Self:
        config = cast("ConfigT", cls.CONFIG_CLASS(**data))
        return cls(store=store, config=config, **kwargs)

    @property
    def config(self) -> ConfigT:
        return self._config

    @abstractmethod
    async def run(self) -> None:
        """Perform one sweep. Check ``is_running`` between units of work."""

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return not self._shutdown_event.is_set()

    def request_shutdown(self) -> None:
        """Ask the service to stop. Callable from a signal handler."""
        self._shutdown_event.set()

    async def wait(self, timeout: float) -> bool:  # noqa: ASYNC109
        """Sleep for *timeout* seconds, waking early on shutdown.

        Returns:
            True if shutdown was requested during the sleep.
        """
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    # -------------------------------------------------------------------------
    # Periodic mode
    # -------------------------------------------------------------------------

    def _cycle_succeeded(self, started: float) -> None:
        self.inc_counter("cycles_success")
        if self._config.metrics.enabled:
            CYCLE_DURATION_SECONDS.labels(service=self.SERVICE_NAME).observe(
                time.monotonic() - started
            )
        self.set_gauge("last_cycle_timestamp", time.time())
        self.set_gauge("consecutive_failures", 0)

    def _cycle_failed(self, error: Exception, streak: int) -> None:
        self.inc_counter("cycles_failed")
        self.inc_counter(f"errors_{type(error).__name__}")
        self.set_gauge("consecutive_failures", streak)
        self._logger.error(
            "run_cycle_error",
            error=str(error),
            error_type=type(error).__name__,
            consecutive_failures=streak,
        )

    async def run_forever(self) -> None:
        """Await ``run()`` every ``interval`` seconds until told to stop.

        A failed sweep is logged and counted, then the loop sleeps and
        tries again. After ``max_consecutive_failures`` failures with no
        success in between the loop exits. Cancellation is never caught.
        """
        interval = self._config.interval
        limit = self._config.max_consecutive_failures
        if self._config.metrics.enabled:
            SERVICE_INFO.info({"service": self.SERVICE_NAME})
        self._logger.info("run_forever_started", interval=interval, max_consecutive_failures=limit)

        streak = 0
        while self.is_running:
            started = time.monotonic()
            try:
                await self.run()
            except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
                raise
            except Exception as e:  # Intentionally broad: one bad sweep must not end the loop
                streak += 1
                self._cycle_failed(e, streak)
                if limit and streak >= limit:
                    self._logger.critical(
                        "max_consecutive_failures_reached", failures=streak, limit=limit
                    )
                    break
            else:
                streak = 0
                self._cycle_succeeded(started)
                self._logger.info("next_cycle_scheduled", next_cycle_s=interval)

            if await self.wait(interval):
                break

        self._logger.info("run_forever_stopped")

    # -------------------------------------------------------------------------
    # Context manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        self._shutdown_event.clear()
        self._logger.info("service_started")
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        self._shutdown_event.set()
        self._logger.info("service_stopped")

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def set_gauge(self, name: str, value: float) -> None:
        """Set ``nftsync_service_gauge{service, name}``; no-op with metrics off."""
        if self._config.metrics.enabled:
            SERVICE_GAUGE.labels(service=self.SERVICE_NAME, name=name).set(value)

    def inc_counter(self, name: str, value: float = 1) -> None:
        """Add to ``nftsync_service_counter{service, name}``; no-op with metrics off."""
        if self._config.metrics.enabled:
            SERVICE_COUNTER.labels(service=self.SERVICE_NAME, name=name).inc(value)
