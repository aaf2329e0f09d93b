# -*- coding: utf-8 -*-
"""
Command-line scrape: populate the wiki database.

Usage:
    wiki-search-scrape
    wiki-search-scrape --incremental
    wiki-search-scrape --database data/wiki.db
"""
import argparse
import asyncio
import sys
import time
from pathlib import Path

from .config import settings
from .database import Database
from .logging_config import setup_logging
from .scraper import WikiScraper


async def scrape(database: Path, incremental: bool) -> int:
    """Run one scrape and print a summary. Returns the process exit code."""
    print("=" * 60)
    print("  Wiki Scraper")
    print("=" * 60)
    print(f"\nMode: {'INCREMENTAL (new and edited pages)' if incremental else 'FULL SCRAPE (all pages)'}")

    db = Database(database)
    await db.initialize()
    start_time = time.time()

    try:
        existing = await db.count()
        if existing:
            print(f"Existing database has {existing} pages.")
        print()

        async with WikiScraper(db) as scraper:
            summary = await scraper.run(incremental=incremental)

        print(f"\nScraping complete! {summary.stored}/{summary.total} pages stored.")
        print(f"   - Skipped (stubs): {summary.skipped}")
        print(f"   - Failures: {summary.failed}")
        print(f"   - Categories: {summary.categories}")
        print(f"Total pages in database: {await db.count()}")
    except Exception as e:
        print(f"\nScraping failed: {e}", file=sys.stderr)
        return 1
    finally:
        await db.close()

    print(f"\nCompleted in {time.time() - start_time:.1f} seconds.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Scrape the wiki into the search database.")
    parser.add_argument(
        "-i",
        "--incremental",
        action="store_true",
        help="only scrape new pages and pages edited since they were stored",
    )
    parser.add_argument(
        "--database",
        type=Path,
        default=settings.DATABASE_PATH,
        help=f"SQLite database file (default: {settings.DATABASE_PATH})",
    )
    args = parser.parse_args(argv)

    setup_logging()
    return asyncio.run(scrape(args.database, args.incremental))


if __name__ == "__main__":
    sys.exit(main())
