"""
Command-line interface for the Constituant ingestion pipeline.

Usage:
    python -m constituant.cli.pipeline_cli fetch
    python -m constituant.cli.pipeline_cli fetch --source nosdeputes --mode direct
    python -m constituant.cli.pipeline_cli update-statuses
    python -m constituant.cli.pipeline_cli reclassify --limit 20 --force
    python -m constituant.cli.pipeline_cli init-db
    python -m constituant.cli.pipeline_cli --help
"""

import asyncio
import argparse
import logging
import sys
from typing import List, Optional

from ..bootstrap import build_components, configure_logging
from ..config import ImportMode, Settings, settings as default_settings
from ..db.session import Database

logger = logging.getLogger(__name__)


async def run_fetch(settings: Settings, sources: Optional[List[str]], mode: Optional[str]) -> int:
    """Run one ingestion cycle and print the per-source summary."""
    db = Database(settings.db)
    await db.initialize()
    components = build_components(settings, db, mode=ImportMode(mode) if mode else None)

    try:
        report = await components.orchestrator.run(only=sources)
    finally:
        await components.close()
        await db.close()

    print("\n" + "=" * 60)
    print("Import Summary")
    print("=" * 60)
    for result in report.results:
        print(
            f"{result.source:<15} {result.status.upper():<8} "
            f"new={result.new} updated={result.updated} "
            f"skipped={result.skipped} errors={result.errors} "
            f"({result.execution_time:.2f}s)"
        )
        for detail in result.error_details[:3]:
            print(f"  - {detail}")
    totals = report.totals()
    print("-" * 60)
    print(
        f"Sources: {totals['sources_run']} run, {totals['sources_failed']} failed | "
        f"New: {totals['new']} | Updated: {totals['updated']} | Errors: {totals['errors']}"
    )
    if report.lifecycle:
        print(f"Status updates: {report.lifecycle}")
    print("=" * 60 + "\n")

    return report.exit_code


async def run_update_statuses(settings: Settings) -> int:
    db = Database(settings.db)
    await db.initialize()
    components = build_components(settings, db)
    try:
        counts = await components.lifecycle_job.run()
    finally:
        await components.close()
        await db.close()

    print(f"Status updates: {counts}")
    return 0


async def run_reclassify(settings: Settings, limit: int, force: bool, published: bool) -> int:
    db = Database(settings.db)
    await db.initialize()
    components = build_components(settings, db)
    try:
        if published:
            stats = await components.reclassifier.run_published(limit=limit)
        else:
            stats = await components.reclassifier.run(limit=limit, force=force)
    finally:
        await components.close()
        await db.close()

    print(
        f"Processed: {stats['processed']} | Classified: {stats['classified']} | "
        f"Failed: {stats['failed']} | Skipped: {stats['skipped']}"
    )
    return 1 if stats["failed"] > 0 else 0


async def run_init_db(settings: Settings) -> int:
    db = Database(settings.db)
    await db.initialize()
    try:
        await db.create_tables()
    finally:
        await db.close()
    print("Database tables created")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Constituant bill ingestion pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Fetch every enabled source into the review queue
  python -m constituant.cli.pipeline_cli fetch

  # Publish NosDéputés bills directly, without review
  python -m constituant.cli.pipeline_cli fetch --source nosdeputes --mode direct

  # Retry classification of up to 20 pending bills
  python -m constituant.cli.pipeline_cli reclassify --limit 20
        """
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)"
    )

    subcommands = parser.add_subparsers(dest="command", required=True)

    fetch = subcommands.add_parser("fetch", help="Fetch, classify and store bills")
    fetch.add_argument(
        "--source",
        action="append",
        dest="sources",
        metavar="KEY",
        help="Only fetch this source (repeatable)"
    )
    fetch.add_argument(
        "--mode",
        choices=[mode.value for mode in ImportMode],
        help="Override the configured import mode"
    )

    subcommands.add_parser("update-statuses", help="Run the bill status lifecycle job")

    reclassify = subcommands.add_parser("reclassify", help="Re-run classification on uncategorized bills")
    reclassify.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of bills (default: 10)"
    )
    reclassify.add_argument(
        "--force",
        action="store_true",
        help="Re-classify every pending bill, even classified ones"
    )
    reclassify.add_argument(
        "--published",
        action="store_true",
        help="Work on published bills instead of the review queue"
    )

    subcommands.add_parser("init-db", help="Create database tables (development only)")

    return parser


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)
    settings = settings or default_settings

    configure_logging(settings.app.log_level, verbose=args.verbose)

    if args.command == "fetch":
        coro = run_fetch(settings, args.sources, args.mode)
    elif args.command == "update-statuses":
        coro = run_update_statuses(settings)
    elif args.command == "reclassify":
        coro = run_reclassify(settings, args.limit, args.force, args.published)
    else:
        coro = run_init_db(settings)

    try:
        return asyncio.run(coro)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
