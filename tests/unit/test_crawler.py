"""Tests for the crawler's request loop and retry handling."""

import asyncio

from fb_group_media.crawler import GroupMediaCrawler
from fb_group_media.storage.queue import QueuedRequest

GROUP_URL = "https://www.facebook.com/groups/185350018231892"
MEDIA_URL = GROUP_URL + "/media"
BAD_URL = "https://www.facebook.com/photo/?fbid=404"
TAB_URL = GROUP_URL + "/media/photos"
PHOTO_URLS = [f"https://www.facebook.com/photo/?fbid={i}" for i in range(3)]


class FakeQueue:
    """Just enough of RequestQueue for the crawl loop."""

    def __init__(self):
        self.pending = []
        self.events = []
        self.reset_calls = 0

    def add_requests(self, requests):
        requests = list(requests)
        for r in requests:
            self.pending.append(QueuedRequest(id=r["url"], url=r["url"]))
        return len(requests)

    def reset_in_progress(self):
        self.reset_calls += 1
        return 0

    def fetch_next(self):
        return self.pending.pop(0) if self.pending else None

    def mark_handled(self, request_id):
        self.events.append(("handled", request_id))

    def reclaim(self, request_id, error):
        self.events.append(("reclaim", request_id))
        self.pending.append(QueuedRequest(id=request_id, url=request_id, retry_count=1))

    def mark_failed(self, request_id, error):
        self.events.append(("failed", request_id, error))


class ScriptedCrawler(GroupMediaCrawler):
    """Crawler whose page visits are scripted instead of opening a browser."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.visited = []

    async def _visit(self, request):
        self.visited.append(request.url)
        if request.url == GROUP_URL:
            # Handlers enqueue follow-up pages while the crawl is running
            self.queue.add_requests([{"url": MEDIA_URL}])
        if request.url == BAD_URL:
            raise RuntimeError("page crashed")


class TestCrawlLoop:

    def test_follow_up_requests_are_crawled(self, mock_config, dataset):
        queue = FakeQueue()
        crawler = ScriptedCrawler(queue, dataset, mock_config)
        result = asyncio.run(crawler.run([GROUP_URL]))

        assert result == {"handled": 2, "failed": 0}
        assert crawler.visited == [GROUP_URL, MEDIA_URL]
        assert queue.events == [("handled", GROUP_URL), ("handled", MEDIA_URL)]
        assert queue.reset_calls == 1

    def test_retries_then_fails(self, mock_config, dataset):
        mock_config.max_request_retries = 1
        queue = FakeQueue()
        crawler = ScriptedCrawler(queue, dataset, mock_config)
        result = asyncio.run(crawler.run([BAD_URL]))

        assert result == {"handled": 0, "failed": 1}
        assert crawler.visited == [BAD_URL, BAD_URL]
        assert queue.events == [
            ("reclaim", BAD_URL),
            ("failed", BAD_URL, "RuntimeError: page crashed"),
        ]

    def test_no_retries(self, mock_config, dataset):
        mock_config.max_request_retries = 0
        queue = FakeQueue()
        crawler = ScriptedCrawler(queue, dataset, mock_config)
        result = asyncio.run(crawler.run([BAD_URL, GROUP_URL]))

        assert result == {"handled": 2, "failed": 1}
        assert ("failed", BAD_URL, "RuntimeError: page crashed") in queue.events

    def test_empty_queue(self, mock_config, dataset):
        crawler = ScriptedCrawler(FakeQueue(), dataset, mock_config)
        assert asyncio.run(crawler.run()) == {"handled": 0, "failed": 0}


class LongTabCrawler(GroupMediaCrawler):
    """The tab visit enqueues photos early, then keeps scrolling for a while."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.started = {}
        self.tab_finished = None

    async def _visit(self, request):
        loop = asyncio.get_running_loop()
        self.started[request.url] = loop.time()
        if request.url == TAB_URL:
            self.queue.add_requests([{"url": url} for url in PHOTO_URLS])
            await asyncio.sleep(0.5)
            self.tab_finished = loop.time()


class TestIncrementalRefill:

    def test_follow_ups_start_while_tab_is_scrolling(self, mock_config, dataset):
        mock_config.max_concurrency = 5
        crawler = LongTabCrawler(FakeQueue(), dataset, mock_config, poll_interval=0.01)
        result = asyncio.run(crawler.run([TAB_URL]))

        assert result == {"handled": 4, "failed": 0}
        assert all(crawler.started[url] < crawler.tab_finished for url in PHOTO_URLS)


class TestCrawlerSettings:

    def test_max_entries_override(self, mock_config, dataset):
        mock_config.output_max_entries = 100
        crawler = GroupMediaCrawler(FakeQueue(), dataset, mock_config, max_entries=5)
        assert crawler.handlers["FB_GROUP"].keywords["settings"].output_max_entries == 5

    def test_max_entries_from_config(self, mock_config, dataset):
        mock_config.output_max_entries = 100
        crawler = GroupMediaCrawler(FakeQueue(), dataset, mock_config)
        assert crawler.handlers["FB_GROUP"].keywords["settings"].output_max_entries == 100

    def test_uses_global_config(self, mock_config, dataset):
        crawler = GroupMediaCrawler(FakeQueue(), dataset)
        assert crawler.cfg is mock_config
        assert crawler.images.enabled is False
