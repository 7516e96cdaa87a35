"""Command-line entry point for catalog sync."""

import argparse
import asyncio
import sys
import uuid
from typing import List, Optional

import structlog

from shared.logging import bind_context, clear_context, configure_logging
from shared.metrics import get_metrics, start_metrics_server

from .config import LOG_LEVELS, Config, get_config
from .database import create_pool
from .errors import CatalogSyncError
from .feed.loader import FeedLoader
from .processor import CatalogProcessor
from .writer.tables import get_table_ddl, get_table_names

logger = structlog.get_logger(__name__)

DB_COMMANDS = {"init-db", "sync", "columns", "is-unique", "ddl-change", "demo"}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="catalog-sync",
        description="Sync a YML catalog feed into PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create the tables, then import the configured feed
  catalog-sync init-db
  catalog-sync sync

  # Import only offers from a local file
  catalog-sync --feed-path ./export.xml sync offers

  # Columns missing from a live table, then add them
  catalog-sync ddl-change offers
  catalog-sync ddl-change --apply offers
""",
    )
    parser.add_argument("--feed-url", help="Feed URL (overrides FEED_URL)")
    parser.add_argument("--feed-path", help="Local feed file (overrides FEED_PATH)")
    parser.add_argument("--dsn", help="PostgreSQL DSN (overrides POSTGRES_DSN)")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level (overrides LOG_LEVEL)",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("tables", help="List the catalog tables")
    ddl = commands.add_parser("ddl", help="Print CREATE scripts")
    ddl.add_argument("table", nargs="?", help="Single table (default: all)")
    commands.add_parser("init-db", help="Create missing tables and indexes")
    sync = commands.add_parser("sync", help="Upsert feed rows into the tables")
    sync.add_argument("table", nargs="?", help="Single table (default: all)")
    columns = commands.add_parser("columns", help="Print the live columns of a table")
    columns.add_argument("table")
    unique = commands.add_parser("is-unique", help="Check that a column has no duplicate values")
    unique.add_argument("table")
    unique.add_argument("column")
    change = commands.add_parser("ddl-change", help="Print ADD COLUMN statements for a table")
    change.add_argument("table")
    change.add_argument("--apply", action="store_true", help="Execute the statements instead of printing them")
    commands.add_parser("demo", help="Walk through every operation against the configured feed")

    return parser.parse_args(argv)


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Return a copy of the config with command-line overrides applied."""
    feed_updates = {}
    if args.feed_url:
        feed_updates["url"] = args.feed_url
    if args.feed_path:
        feed_updates["path"] = args.feed_path

    updates = {}
    if feed_updates:
        updates["feed"] = config.feed.model_copy(update=feed_updates)
    if args.dsn:
        updates["postgres"] = config.postgres.model_copy(update={"dsn": args.dsn})
    if args.log_level:
        updates["log_level"] = args.log_level
    return config.model_copy(update=updates) if updates else config


async def run_command(args: argparse.Namespace, config: Config) -> int:
    """Execute one command; returns the process exit code."""
    if args.command == "tables":
        print("\n".join(get_table_names()))
        return 0

    if args.command == "ddl":
        for name in [args.table] if args.table else get_table_names():
            print(get_table_ddl(name))
        return 0

    pool = await create_pool(config.postgres)
    processor = CatalogProcessor(
        pool,
        FeedLoader(config.feed, metrics=get_metrics()),
        config=config.sync,
        metrics=get_metrics(),
    )
    try:
        if args.command == "init-db":
            print("\n".join(await processor.create_tables()))
        elif args.command == "sync":
            for name, rows in (await processor.update(args.table)).items():
                print(f"{name}: {rows}")
        elif args.command == "columns":
            print("\n".join(await processor.get_column_names(args.table)))
        elif args.command == "is-unique":
            print("true" if await processor.is_column_id(args.table, args.column) else "false")
        elif args.command == "ddl-change":
            if args.apply:
                print(await processor.apply_ddl_change(args.table), end="")
            else:
                print(await processor.get_ddl_change(args.table), end="")
        elif args.command == "demo":
            await run_demo(processor)
    finally:
        await processor.close()
    return 0


async def run_demo(processor: CatalogProcessor) -> None:
    """Exercise every processor operation, printing each result."""
    print(f"[1] Available tables: {processor.get_table_names()}")

    for name in processor.get_table_names():
        print(f"[2] DDL for table {name}:")
        print(processor.get_table_ddl(name))

    print("[3] Data updating...")
    await processor.create_tables()
    await processor.update()
    print("[3] Data updated successfully")

    table = "offers"
    print(f"[4] Table {table} columns: {await processor.get_column_names(table)}")

    column = "vendor_code"
    print(f"[5] Column {column} is unique: {await processor.is_column_id(table, column)}")

    print(f"[6] DDL change for table {table}:")
    print(await processor.get_ddl_change(table) or "-- up to date")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = apply_overrides(get_config(), args)

        clear_context()
        configure_logging(
            log_level=config.log_level,
            json_logs=config.json_logs,
            service_name=config.service_name
        )
        bind_context(run_id=uuid.uuid4().hex[:12])

        if args.command in DB_COMMANDS and start_metrics_server(config.metrics_port):
            logger.info("metrics_server_started", port=config.metrics_port)

        logger.info("catalog_sync_starting", command=args.command, feed=config.feed.path or config.feed.url)

        return asyncio.run(run_command(args, config))
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt_received")
        return 130
    except CatalogSyncError as e:
        logger.error("catalog_sync_failed", error_type=type(e).__name__, error=str(e))
        return 1
    except Exception as e:
        logger.error("fatal_error", error=str(e), exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
