"""Shared fixtures for fb-group-media tests."""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from fb_group_media.storage.models import Base


# ---------------------------------------------------------------------------
# Mock config fixture
# ---------------------------------------------------------------------------

def _make_mock_config():
    """Build a MagicMock that behaves like fb_group_media.config.Config."""
    cfg = MagicMock()

    cfg.start_urls = ["https://www.facebook.com/groups/185350018231892"]
    cfg.log_level = "INFO"
    cfg.output_max_entries = None

    # Crawler
    cfg.max_concurrency = 2
    cfg.max_request_retries = 1
    cfg.request_handler_timeout_secs = 30
    cfg.headless = True
    cfg.max_idle_scroll_ticks = 3

    # Privacy / images
    cfg.include_personal_data = False
    cfg.fetch_image_metadata = False

    cfg.scheduler_interval_minutes = 60
    return cfg


@pytest.fixture()
def mock_config():
    """Patch fb_group_media.config.config globally and return the mock object."""
    cfg = _make_mock_config()
    with patch("fb_group_media.config.config", cfg), \
         patch("fb_group_media.crawler.default_config", cfg):
        yield cfg


# ---------------------------------------------------------------------------
# In-memory database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def db_engine():
    """Create an in-memory SQLite engine with tables."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(db_engine):
    """Yield a transactional DB session that rolls back after the test."""
    SessionLocal = sessionmaker(bind=db_engine)
    session: Session = SessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture()
def session_factory(db_engine):
    """Session factory for the queue and dataset (each call is a new session)."""
    return sessionmaker(bind=db_engine)


# ---------------------------------------------------------------------------
# Fake Playwright objects
# ---------------------------------------------------------------------------

class FakeHandle:
    """Stands in for a Playwright ElementHandle/JSHandle.

    `evaluate` answers from `results`, keyed by a substring of the JS source.
    """

    def __init__(self, results=None, attrs=None, element=True):
        self.results = results or {}
        self.attrs = attrs or {}
        self.calls = []
        self.disposed = False
        self._element = element

    async def evaluate(self, js, arg=None):
        self.calls.append((js, arg))
        for key, value in self.results.items():
            if isinstance(key, str) and key in js:
                return value(arg) if callable(value) else value
        return None

    async def evaluate_handle(self, js, arg=None):
        return await self.evaluate(js, arg)

    async def get_attribute(self, name):
        return self.attrs.get(name)

    async def query_selector(self, selector):
        return self.results.get(("query_selector", selector))

    async def query_selector_all(self, selector):
        return self.results.get(("query_selector_all", selector), [])

    async def hover(self, timeout=None):
        self.calls.append(("hover", timeout))

    def as_element(self):
        return self if self._element else None

    async def dispose(self):
        self.disposed = True


class FakeLocator:
    def __init__(self, page, selector):
        self.page = page
        self.selector = selector

    @property
    def first(self):
        return self

    async def click(self, timeout=None):
        self.page.calls.append(("click", self.selector))
        self.page.timeouts.append(timeout)

    async def evaluate(self, js, arg=None, timeout=None):
        self.page.timeouts.append(timeout)
        return self.page.locator_values.get(self.selector)

    async def evaluate_all(self, js):
        return self.page.locator_values.get(self.selector, [])


class FakeMouse:
    async def move(self, x, y):
        pass


class FakePage:
    """Minimal async Playwright Page with canned HTML."""

    def __init__(self, url, html="<html><body></body></html>", root=None, locator_values=None):
        self.url = url
        self.html = html
        self.root = root
        self.locator_values = locator_values or {}
        self.calls = []
        self.timeouts = []
        self.mouse = FakeMouse()
        self.closed = False
        self.content_reads = 0

    async def wait_for_load_state(self, state=None):
        self.calls.append(("wait_for_load_state", state))

    async def content(self):
        self.content_reads += 1
        return self.html

    async def query_selector(self, selector):
        return self.root if selector == ":root" else None

    async def query_selector_all(self, selector):
        return []

    async def wait_for_selector(self, selector, timeout=None):
        return None

    async def evaluate(self, js, arg=None):
        self.calls.append(("evaluate", arg))
        return None

    def locator(self, selector):
        return FakeLocator(self, selector)

    def is_closed(self):
        return self.closed


class RecordingQueue:
    """In-memory request sink."""

    def __init__(self):
        self.requests = []

    def add_requests(self, requests):
        requests = list(requests)
        self.requests.extend(requests)
        return len(requests)

    @property
    def urls(self):
        return [r["url"] for r in self.requests]


class RecordingDataset:
    """In-memory record sink that keeps the mask it was given."""

    def __init__(self):
        self.items = []
        self.masks = []

    def push_data(self, entry, privacy_mask=None):
        self.items.append(dict(entry))
        self.masks.append(privacy_mask)
        return entry


@pytest.fixture()
def queue():
    return RecordingQueue()


@pytest.fixture()
def dataset():
    return RecordingDataset()


# ---------------------------------------------------------------------------
# Sample pages
# ---------------------------------------------------------------------------

@pytest.fixture()
def photo_page_html():
    """Photo viewer markup with stats bar, post header and an embedded payload."""
    return """
<html><body>
<div data-pagelet="MediaViewerPhoto"><img src="https://scontent.example/preview.jpg" alt="May be an image of a lake"></div>
<div role="complementary">
  <div class="header">
    <div class="author">
      <svg><image xlink:href="https://scontent.example/avatar.jpg"></image></svg>
      <h2><a href="/jane.doe" role="link">Jane Doe</a></h2>
    </div>
    <span id="ts"><a role="link" tabindex="0" href="https://www.facebook.com/photo/?fbid=1">June 24, 2013</a></span>
    <div aria-haspopup="menu" role="button">...</div>
  </div>
  <div data-ad-preview="message">Sunset at the lake</div>
  <div class="stats">
    <div class="counts">
      <span aria-label="Like: 2,400 people"></span>
      <div data-visualcompletion="ignore-dynamic">
        <div role="button">Share</div>
        <div role="button">6,000 comments</div>
      </div>
    </div>
    <div>6.9K views</div>
  </div>
</div>
<script type="application/json">{"require": [["ScheduledServerJS", "handle", null, [{"__bbox": {"result": {"data": {"currMedia": {"__typename": "Photo", "id": "1", "image": {"uri": "https://scontent.example/payload.jpg", "width": 960, "height": 720}, "created_time": 1372094400, "feedback": {"reaction_count": {"count": 12}, "comment_count": {"total_count": 3}, "share_count": {"count": 1}}}}}}}]]]}</script>
</body></html>
"""


@pytest.fixture()
def make_handle():
    """Factory for fake element handles."""
    return FakeHandle


@pytest.fixture()
def make_page():
    """Factory for fake pages."""
    return FakePage
