"""CLI entry point for the nftsync syncer.

Runs a single full-range sweep by default. With ``--forever`` the sweep
repeats every ``interval`` seconds behind a Prometheus metrics server
until SIGINT/SIGTERM.

Examples:
    ```bash
    python -m nftsync
    python -m nftsync --log-level DEBUG
    python -m nftsync --log-format json
    python -m nftsync --config config/syncer.yaml --forever
    ```
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from nftsync.core import Store, start_metrics_server
from nftsync.core.exceptions import ConnectionPoolError, NftSyncError
from nftsync.core.logger import Logger, StructuredFormatter
from nftsync.core.yaml import load_yaml
from nftsync.models.constants import ServiceName
from nftsync.services.syncer import Syncer


CONFIG_BASE = Path("config")
DATABASE_CONFIG = CONFIG_BASE / "database.yaml"
SYNCER_CONFIG = CONFIG_BASE / "syncer.yaml"

logger = Logger("cli")


async def run_syncer(syncer: Syncer, *, forever: bool) -> int:
    """Run one sweep, or sweep periodically until a shutdown signal.

    Returns:
        Exit code: 0 for success, 1 for failure.
    """
    if not forever:
        try:
            async with syncer:
                await syncer.run()
            logger.info("sync_completed")
            return 0
        except Exception as e:  # Intentionally broad: CLI error boundary for one-shot mode
            logger.error("sync_failed", error=str(e), error_type=type(e).__name__)
            return 1

    metrics_config = syncer.config.metrics
    metrics_server = await start_metrics_server(metrics_config)

    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        syncer.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with syncer:
            await syncer.run_forever()
        return 0
    except Exception as e:  # Intentionally broad: CLI error boundary for periodic mode
        logger.error("sync_failed", error=str(e), error_type=type(e).__name__)
        return 1
    finally:
        await metrics_server.stop()
        if metrics_config.enabled:
            logger.info("metrics_server_stopped")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="nftsync",
        description="Sync NFT ownership and metadata into PostgreSQL",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=SYNCER_CONFIG,
        help=f"Syncer config path (default: {SYNCER_CONFIG})",
    )

    parser.add_argument(
        "--database-config",
        type=Path,
        default=DATABASE_CONFIG,
        help=f"Database config path (default: {DATABASE_CONFIG})",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    parser.add_argument(
        "--log-format",
        choices=["kv", "json"],
        default="kv",
        help="Log line format: key=value or one JSON object per line (default: kv)",
    )

    parser.add_argument(
        "--forever",
        action="store_true",
        help="Sweep every `interval` seconds until stopped (default: one sweep)",
    )

    return parser.parse_args(argv)


def setup_logging(level: str, log_format: str = "kv") -> None:
    """Install a ``StructuredFormatter`` on the root handler.

    Unifies ``Logger`` output (with ``structured_kv`` extra) and plain
    ``logging.getLogger()`` calls from the sources layer as
    ``level name message key=value ...``, or as JSON lines when
    *log_format* is ``"json"``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter(json_output=log_format == "json"))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(path)


def _apply_pool_overrides(
    database_dict: dict[str, Any],
    pool_overrides: dict[str, Any] | None,
) -> None:
    """Merge the syncer's ``pool`` overrides into the database configuration.

    ``user`` and ``password_env`` go to ``pool.database``; ``min_size`` and
    ``max_size`` go to ``pool.limits``. ``application_name`` defaults to
    the service name.
    """
    pool = database_dict.setdefault("pool", {})
    pool.setdefault("application_name", str(ServiceName.SYNCER))

    if not pool_overrides:
        return

    if "application_name" in pool_overrides:
        pool["application_name"] = pool_overrides["application_name"]

    db_keys = ("user", "password_env")
    db_overrides = {k: pool_overrides[k] for k in db_keys if k in pool_overrides}
    if db_overrides:
        pool.setdefault("database", {}).update(db_overrides)

    limits_keys = ("min_size", "max_size")
    limits_overrides = {k: pool_overrides[k] for k in limits_keys if k in pool_overrides}
    if limits_overrides:
        pool.setdefault("limits", {}).update(limits_overrides)


async def main(argv: list[str] | None = None) -> int:
    """Parse args, build the Store and Syncer, and run."""
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_format)

    try:
        database_dict = _load_yaml_dict(args.database_config)
        syncer_dict = _load_yaml_dict(args.config)
        _apply_pool_overrides(database_dict, syncer_dict.pop("pool", None))
        store = Store.from_dict(database_dict)
        syncer = Syncer.from_dict(syncer_dict, store=store)
    except (ValidationError, NftSyncError) as e:
        logger.error("config_invalid", error=str(e))
        return 1

    try:
        async with store:
            return await run_syncer(syncer, forever=args.forever)
    except (ConnectionPoolError, ConnectionError) as e:
        logger.error("connection_failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
