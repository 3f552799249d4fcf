"""CLI entry point for the productivity hub.

Usage:
    python -m productivity_hub.server serve [options]
    python -m productivity_hub.server import FILE [options]
    python -m productivity_hub.server delete KIND ID [options]
    python -m productivity_hub.server init-config [--force] [options]

Options:
    --config PATH        Path to config.yaml (default: ./config.yaml)
    --db PATH            SQLite database path (overrides config)
    --log-level LEVEL    Log level (overrides config)

Serve options:
    --host HOST          Host to bind to (overrides config)
    --port PORT          Port to bind to (overrides config)

Init-config options:
    --force              Overwrite an existing config file

Settings are resolved as: config file, then HUB_* environment variables,
then command line flags.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from productivity_hub.errors import ValidationError
from productivity_hub.importer import load_records
from productivity_hub.records import KIND_ORDER
from productivity_hub.server.config import (
    HubConfig,
    apply_env_overrides,
    load_config,
    save_config,
)
from productivity_hub.server.service import HubService
from productivity_hub.store import RecordStore

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Parsed arguments namespace.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config.yaml (default: ./config.yaml)",
    )
    common.add_argument(
        "--db",
        type=Path,
        default=None,
        help="SQLite database path (overrides config)",
    )
    common.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=LOG_LEVELS,
        help="Log level (overrides config, default: INFO)",
    )

    parser = argparse.ArgumentParser(
        description="Productivity Hub - search and analytics service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Start with defaults
    python -m productivity_hub.server serve

    # Bind to all interfaces on port 9000
    python -m productivity_hub.server serve --host 0.0.0.0 --port 9000

    # Load an export into the database
    python -m productivity_hub.server import export.yaml --db state/hub.db

    # Remove a single record
    python -m productivity_hub.server delete tasks t1

    # Write the resolved settings to config.yaml
    python -m productivity_hub.server init-config --port 9000
""",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", parents=[common], help="Run the HTTP server")
    serve.add_argument("--host", type=str, default=None, help="Host to bind to")
    serve.add_argument("--port", type=int, default=None, help="Port to bind to")

    importer = subparsers.add_parser(
        "import", parents=[common], help="Load records from a YAML/JSON file"
    )
    importer.add_argument("file", type=Path, help="Export file to import")

    delete = subparsers.add_parser("delete", parents=[common], help="Delete a stored record")
    delete.add_argument("kind", choices=KIND_ORDER, help="Record kind")
    delete.add_argument("record_id", help="Record id")

    init_config = subparsers.add_parser(
        "init-config", parents=[common], help="Write the resolved settings to the config file"
    )
    init_config.add_argument("--host", type=str, default=None, help="Host to bind to")
    init_config.add_argument("--port", type=int, default=None, help="Port to bind to")
    init_config.add_argument(
        "--force", action="store_true", help="Overwrite an existing config file"
    )

    return parser.parse_args(args)


def setup_logging(level: str) -> None:
    """Configure logging.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_config(parsed: argparse.Namespace) -> HubConfig:
    """Resolve configuration from file, environment and flags."""
    config = apply_env_overrides(load_config(parsed.config))

    if parsed.db is not None:
        config.database.path = parsed.db
    if parsed.log_level is not None:
        config.logging.level = parsed.log_level
    if getattr(parsed, "host", None) is not None:
        config.server.host = parsed.host
    if getattr(parsed, "port", None) is not None:
        config.server.port = parsed.port

    return config


async def run_service(service: HubService, shutdown_event: asyncio.Event) -> None:
    """Run the service until shutdown event is set.

    Args:
        service: The HubService instance.
        shutdown_event: Event to signal shutdown.
    """
    await service.start()

    try:
        await shutdown_event.wait()
    finally:
        await service.stop()


async def run_import(db_path: Path, file_path: Path) -> int:
    """Load an export file into the store.

    Returns:
        Number of records written.
    """
    records = load_records(file_path)
    store = RecordStore(db_path)
    await store.safe_initialize()
    try:
        return await store.upsert_batch(records)
    finally:
        await store.close()


async def run_delete(db_path: Path, kind: str, record_id: str) -> bool:
    """Delete one record from the store.

    Returns:
        True if a record was deleted.
    """
    store = RecordStore(db_path)
    await store.safe_initialize()
    try:
        return await store.delete(kind, record_id)
    finally:
        await store.close()


def serve(config: HubConfig) -> int:
    logger = logging.getLogger(__name__)

    shutdown_event = asyncio.Event()
    service = HubService(config=config)

    def signal_handler(signum: int, frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logger.info(f"Received {sig_name}, initiating shutdown...")
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(f"Database: {config.database.path.absolute()}")
    logger.info(f"Server will listen on http://{config.server.host}:{config.server.port}")

    try:
        asyncio.run(run_service(service, shutdown_event))
        return 0
    except Exception as e:
        logger.error(f"Service error: {e}")
        return 1


def import_file(config: HubConfig, file_path: Path) -> int:
    logger = logging.getLogger(__name__)

    if not file_path.exists():
        logger.error(f"File not found: {file_path}")
        return 1

    try:
        count = asyncio.run(run_import(config.database.path, file_path))
    except ValidationError as e:
        for name, messages in e.details.items():
            for message in messages:
                logger.error(f"{name}: {message}")
        return 1

    logger.info(f"Imported {count} records into {config.database.path}")
    return 0


def delete_record(config: HubConfig, kind: str, record_id: str) -> int:
    logger = logging.getLogger(__name__)

    if not asyncio.run(run_delete(config.database.path, kind, record_id)):
        logger.error(f"No {kind} record with id {record_id}")
        return 1

    logger.info(f"Deleted {kind} record {record_id}")
    return 0


def init_config(config: HubConfig, config_path: Path, force: bool = False) -> int:
    logger = logging.getLogger(__name__)

    if config_path.exists() and not force:
        logger.error(f"Config file already exists: {config_path} (use --force to overwrite)")
        return 1

    save_config(config, config_path)
    logger.info(f"Wrote config to {config_path}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        args: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parsed = parse_args(args)

    try:
        config = build_config(parsed)
    except ValueError as e:
        setup_logging("ERROR")
        logging.getLogger(__name__).error(f"Invalid configuration: {e}")
        return 1

    setup_logging(config.logging.level)

    if parsed.command == "import":
        return import_file(config, parsed.file)
    if parsed.command == "delete":
        return delete_record(config, parsed.kind, parsed.record_id)
    if parsed.command == "init-config":
        return init_config(config, parsed.config, parsed.force)
    return serve(config)


if __name__ == "__main__":
    sys.exit(main())
