"""Playwright crawler that feeds queued URLs through the route handlers."""

import asyncio
from datetime import datetime
from typing import Optional

import structlog
from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from .config import Config, config as default_config
from .handlers import CrawlContext, HandlerSettings, create_handlers, route_request
from .images import ImageMetaFetcher
from .logging_config import print_error, print_status, print_success
from .popups import popup_guard
from .storage.dataset import Dataset
from .storage.queue import QueuedRequest, RequestQueue

logger = structlog.get_logger()

USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
SESSION_FILE = "facebook_session.json"

# How often the crawl loop checks the queue while pages are still being visited
QUEUE_POLL_INTERVAL_SECS = 0.5


class GroupMediaCrawler:
    """Visits queued pages with up to `max_concurrency` browser tabs at once."""

    def __init__(
        self,
        queue: RequestQueue,
        dataset: Dataset,
        cfg: Optional[Config] = None,
        max_entries: Optional[int] = None,
        poll_interval: float = QUEUE_POLL_INTERVAL_SECS,
    ):
        self.cfg = cfg or default_config
        self.poll_interval = poll_interval
        self.queue = queue
        self.dataset = dataset
        self.handlers = create_handlers(HandlerSettings(
            output_max_entries=max_entries if max_entries is not None else self.cfg.output_max_entries,
            max_idle_scroll_ticks=self.cfg.max_idle_scroll_ticks,
        ))
        self.images = ImageMetaFetcher(enabled=self.cfg.fetch_image_metadata)

        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None

        self.handled = 0
        self.failed = 0

    async def start(self):
        """Start the browser and load the saved session if there is one."""
        print_status("Opening browser...")
        logger.info("Starting crawler", headless=self.cfg.headless)

        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.firefox.launch(headless=self.cfg.headless)

        session_path = self.cfg.session_path / SESSION_FILE
        storage_state = None
        if session_path.exists():
            print_status("Loading saved Facebook session...")
            logger.info("Loading existing session", path=str(session_path))
            storage_state = str(session_path)

        self.context = await self.browser.new_context(
            storage_state=storage_state,
            viewport={"width": 1920, "height": 1080},
            user_agent=USER_AGENT,
            locale="en-US",
        )
        # Timestamps are parsed from English tooltips
        await self.context.set_extra_http_headers({"Accept-Language": "en-US,en;q=0.9"})
        await self.images.start()

    async def stop(self):
        """Close the browser."""
        await self.images.stop()
        if self.context:
            await self.context.close()
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()
        print_status("Browser closed")
        logger.info("Crawler stopped")

    async def _visit(self, request: QueuedRequest) -> None:
        """Open the page and run its handler."""
        page = await self.context.new_page()
        try:
            await page.goto(request.url, wait_until="domcontentloaded")
            ctx = CrawlContext(
                page=page,
                queue=self.queue,
                dataset=self.dataset,
                images=self.images,
                request_url=request.url,
            )
            async with popup_guard(page):
                label = await asyncio.wait_for(
                    route_request(ctx, self.handlers),
                    timeout=self.cfg.request_handler_timeout_secs,
                )
            if label is None:
                logger.debug("No route matched, skipping", url=request.url)
        finally:
            await page.close()

    async def _process(self, request: QueuedRequest, semaphore: asyncio.Semaphore) -> None:
        async with semaphore:
            logger.debug("Processing request", url=request.url, retry_count=request.retry_count)
            try:
                await self._visit(request)
            except Exception as e:
                error = f"{type(e).__name__}: {e}"
                if request.retry_count < self.cfg.max_request_retries:
                    logger.warning("Request failed, retrying", url=request.url, error=error,
                                   retry_count=request.retry_count + 1)
                    self.queue.reclaim(request.id, error)
                else:
                    logger.error("Request failed", url=request.url, error=error)
                    self.queue.mark_failed(request.id, error)
                    self.failed += 1
                return

            self.queue.mark_handled(request.id)
            self.handled += 1

    async def run(self, start_urls: Optional[list[str]] = None) -> dict[str, int]:
        """Crawl until the queue is empty. Returns handled/failed counts."""
        start_time = datetime.utcnow()
        if start_urls:
            self.queue.add_requests([{"url": url} for url in start_urls])
        reclaimed = self.queue.reset_in_progress()
        if reclaimed:
            logger.info("Requeued unfinished requests", count=reclaimed)

        semaphore = asyncio.Semaphore(self.cfg.max_concurrency)
        tasks: set[asyncio.Task] = set()

        while True:
            # Fill free slots. Running handlers enqueue requests at any time,
            # so slots are also refilled every poll_interval.
            while len(tasks) < self.cfg.max_concurrency:
                request = self.queue.fetch_next()
                if request is None:
                    break
                tasks.add(asyncio.create_task(self._process(request, semaphore)))

            if not tasks:
                break
            _, tasks = await asyncio.wait(
                tasks, timeout=self.poll_interval, return_when=asyncio.FIRST_COMPLETED
            )

        elapsed = (datetime.utcnow() - start_time).total_seconds()
        logger.info("Crawl complete", handled=self.handled, failed=self.failed, elapsed_seconds=elapsed)
        if self.failed:
            print_error(f"{self.failed} pages failed")
        print_success(f"Crawled {self.handled} pages")
        return {"handled": self.handled, "failed": self.failed}


async def run_crawler(
    start_urls: list[str],
    queue: Optional[RequestQueue] = None,
    dataset: Optional[Dataset] = None,
    cfg: Optional[Config] = None,
    max_entries: Optional[int] = None,
) -> dict[str, int]:
    """Convenience function to run a crawl."""
    cfg = cfg or default_config
    queue = queue or RequestQueue()
    dataset = dataset or Dataset(include_personal_data=cfg.include_personal_data)

    crawler = GroupMediaCrawler(queue, dataset, cfg, max_entries=max_entries)
    try:
        await crawler.start()
        return await crawler.run(start_urls)
    finally:
        await crawler.stop()
