"""Main entry point for the group media scraper."""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import config
from .crawler import run_crawler
from .logging_config import print_status, setup_logging
from .storage.database import init_db
from .storage.dataset import Dataset
from .storage.queue import RequestQueue

logger = structlog.get_logger()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fb_group_media",
        description="Scrape photos, videos and albums from Facebook groups.",
    )
    parser.add_argument(
        "--url",
        action="append",
        dest="urls",
        help="Group or media URL to start from (repeatable). Defaults to start_urls in config.yaml.",
    )
    parser.add_argument(
        "--max-entries",
        type=int,
        default=None,
        help="Stop scrolling a tab or album once more than this many links were found.",
    )
    parser.add_argument("--export", type=Path, default=None, help="Write the dataset to this JSON file when done.")
    parser.add_argument("--watch", action="store_true", help="Re-run the crawl every scheduler.interval_minutes.")
    return parser.parse_args(argv)


async def run_crawl_job(args: argparse.Namespace) -> dict[str, int]:
    """Run a single crawl over the start URLs."""
    start_urls = args.urls or config.start_urls
    logger.info("Starting crawl job", start_urls=start_urls)

    queue = RequestQueue()
    dataset = Dataset(include_personal_data=config.include_personal_data)
    if args.watch:
        # Each run revisits every page
        queue.purge()

    result = {"handled": 0, "failed": 0}
    try:
        result = await run_crawler(start_urls, queue=queue, dataset=dataset, max_entries=args.max_entries)
    except Exception as e:
        logger.error("Crawl job failed", error=str(e))

    if args.export:
        count = dataset.export_json(args.export)
        print_status(f"Exported {count} records to {args.export}")
    return result


def setup_scheduler(args: argparse.Namespace) -> AsyncIOScheduler:
    """Set up the job scheduler."""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_crawl_job,
        trigger=IntervalTrigger(minutes=config.scheduler_interval_minutes),
        args=[args],
        id="crawl_job",
        name="Facebook Group Media Crawler",
        replace_existing=True,
        max_instances=1,  # Prevent overlapping runs
    )
    return scheduler


async def main(argv: Optional[list[str]] = None):
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(config.log_level)

    if not (args.urls or config.start_urls):
        logger.error("No start URLs given, pass --url or set start_urls in config.yaml")
        return

    init_db()
    logger.info("Database initialized", path=str(config.database_path))

    if not args.watch:
        await run_crawl_job(args)
        return

    scheduler = setup_scheduler(args)
    scheduler.start()
    logger.info(f"Scheduler started, crawl interval: {config.scheduler_interval_minutes} minutes")

    # Run initial crawl
    await run_crawl_job(args)

    # Keep running
    try:
        while True:
            await asyncio.sleep(60)
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down...")
        scheduler.shutdown()


def run():
    """Entry point for the application."""
    # Handle signals gracefully
    def signal_handler(sig, frame):
        logger.info("Received shutdown signal")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    asyncio.run(main())


if __name__ == "__main__":
    run()
