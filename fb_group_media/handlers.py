"""Route handlers: one per page kind.

Group pages only discover and enqueue more pages. Photo, video and album
pages each produce one record, built by running field strategies in order
of preference and then pushed to the dataset with personal fields masked.
"""

import asyncio
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Protocol

import structlog
from playwright.async_api import Page

from .constants import (
    ALBUM_ITEM_SELECTOR,
    LINK_SELECTOR,
    POST_MENU_SELECTOR,
    TAB_SELECTOR,
    VIDEO_MENU_SELECTOR,
)
from .dom.live import LiveNode
from .dom.static import StaticNode
from .exceptions import ContainerNotFoundError
from .extraction.payloads import page_evaluator
from .extraction.pipeline import FieldStrategy, empty_record, resolve_fields
from .extraction.post import (
    get_album_data_from_payloads,
    get_album_post_metadata,
    get_authored_post_metadata,
    get_photo_data_from_payloads,
    get_photo_full_size,
    get_photo_preview,
    get_post_timestamp,
    get_post_timestamp_el,
    get_post_timestamp_from_dom,
    get_video_data_from_payloads,
    get_video_post_video,
    get_video_thumb,
)
from .extraction.stats import get_post_stats
from .images import ImageMetaFetcher
from .privacy import ALBUM_PRIVACY_MASK, PHOTO_PRIVACY_MASK, VIDEO_PRIVACY_MASK, PrivacyMask
from .router import match_params, match_route
from .scroll import LiveScrollSource, infinite_scroll, locate_scroll_container, max_entries_reached
from .utils.url import get_search_params, replace_path

logger = structlog.get_logger()

AUTHOR_FIELDS = ["authorName", "authorProfileUrl", "authorProfileImageThumb.url"]
STATS_FIELDS = ["likesCount", "commentsCount", "sharesCount", "viewsCount"]

PHOTO_FIELDS = [
    "description",
    "timestamp",
    "imagePreview.url",
    "imagePreview.alt",
    "imagePreview.width",
    "imagePreview.height",
    "imageFullSize.url",
    *STATS_FIELDS,
    *AUTHOR_FIELDS,
]

VIDEO_FIELDS = [
    "description",
    "timestamp",
    "videoUrl",
    "videoDuration",
    "videoHeight",
    "videoWidth",
    "videoThumbImage.url",
    "videoThumbImage.alt",
    *STATS_FIELDS,
    *AUTHOR_FIELDS,
]

ALBUM_FIELDS = [
    "albumId",
    "ownerFbid",
    "ownerName",
    "ownerUsername",
    "ownerType",
    "title",
    "description",
    "timestamp",
    *STATS_FIELDS,
    "contributors",
]


class RequestSink(Protocol):
    def add_requests(self, requests: Iterable[Mapping[str, str]]) -> int: ...


class RecordSink(Protocol):
    def push_data(self, entry: Mapping[str, Any], privacy_mask: Optional[PrivacyMask] = None) -> Any: ...


@dataclass
class HandlerSettings:
    output_max_entries: Optional[int] = None
    max_idle_scroll_ticks: int = 3
    tab_settle_secs: float = 2.0


@dataclass
class CrawlContext:
    """Everything a handler needs for one page visit."""
    page: Page
    queue: RequestSink
    dataset: RecordSink
    images: ImageMetaFetcher = field(default_factory=lambda: ImageMetaFetcher(enabled=False))
    request_url: Optional[str] = None

    @property
    def url(self) -> str:
        return self.request_url or self.page.url


Handler = Callable[[CrawlContext], Awaitable[None]]


class PageSnapshot:
    """Static DOM of the page's current markup, parsed on first use.

    Call `invalidate()` after interacting with the page so the next read
    sees the updated markup.
    """

    def __init__(self, page: Page):
        self.page = page
        self._dom: Optional[StaticNode] = None

    async def dom(self) -> StaticNode:
        if self._dom is None:
            self._dom = StaticNode.from_html(await self.page.content(), self.page.url)
        return self._dom

    def invalidate(self) -> None:
        self._dom = None


def _after_interaction(snapshot: PageSnapshot, action: Callable[[], Awaitable[Any]]):
    async def fill():
        try:
            return await action()
        finally:
            snapshot.invalidate()
    return fill


async def _author_metadata(snapshot: PageSnapshot, menu_selector: str, last_menu: bool, log) -> dict[str, Any]:
    dom = await snapshot.dom()
    if last_menu:
        menus = await dom.find_many(menu_selector)
        menu_el = menus[-1] if menus else None
    else:
        menu_el = await dom.find_one(menu_selector)
    timestamp_el = await get_post_timestamp_el(dom)
    return await get_authored_post_metadata(timestamp_el, menu_el, log)


def _timestamp_strategies(ctx: CrawlContext, snapshot: PageSnapshot, log) -> list[FieldStrategy]:
    async def static_timestamp():
        return await get_post_timestamp_from_dom(await snapshot.dom())

    return [
        FieldStrategy(
            "timestamp_tooltip",
            ["timestamp"],
            _after_interaction(snapshot, lambda: get_post_timestamp(ctx.page, log)),
        ),
        FieldStrategy("timestamp_markup", ["timestamp"], static_timestamp),
    ]


def _stats_strategy(snapshot: PageSnapshot, fields: list[str]) -> FieldStrategy:
    async def fill():
        return await get_post_stats(await snapshot.dom())
    return FieldStrategy("post_stats", fields, fill)


async def _emit(ctx: CrawlContext, entry: dict[str, Any], privacy_mask: PrivacyMask) -> None:
    ctx.dataset.push_data(entry, privacy_mask=privacy_mask)


def _url_params(ctx: CrawlContext, pattern_key: str) -> tuple[str, dict[str, str]]:
    """Params from the page URL, else from the requested URL (e.g. after a login redirect)."""
    for url in (ctx.page.url, ctx.url):
        params = match_params(url, pattern_key)
        if params:
            return url, params
    return ctx.page.url, {}


# ---------------------------------------------------------------------------
# Group pages
# ---------------------------------------------------------------------------

async def handle_group(ctx: CrawlContext, settings: HandlerSettings) -> None:
    """Redirect a group URL to the group's media page.

    E.g. https://www.facebook.com/groups/185350018231892
    """
    await ctx.page.wait_for_load_state("networkidle")
    url, params = _url_params(ctx, "FB_GROUP_URL")
    group_id = params.get("groupId")
    if group_id is None:
        logger.warning("Group ID not found in URL", url=ctx.url, page_url=ctx.page.url)
        return
    media_url = replace_path(url, f"/groups/{group_id}/media")

    logger.info("Redirecting to group media page", group_id=group_id)
    ctx.queue.add_requests([{"url": media_url}])


async def handle_group_media(ctx: CrawlContext, settings: HandlerSettings) -> None:
    """Enqueue the photos/videos/albums tabs of a group's media page."""
    await ctx.page.wait_for_load_state("networkidle")
    _, params = _url_params(ctx, "FB_GROUP_MEDIA_URL")
    group_id = params.get("groupId")

    logger.debug("Searching for media tabs", group_id=group_id)
    tab_links = await ctx.page.locator(TAB_SELECTOR).evaluate_all("els => els.map((el) => el.href)")
    tab_links = [link for link in tab_links if link]

    logger.info(f"Enqueuing {len(tab_links)} tab links", group_id=group_id, count=len(tab_links))
    ctx.queue.add_requests([{"url": link} for link in tab_links])


async def _scroll_and_enqueue(
    ctx: CrawlContext,
    settings: HandlerSettings,
    item_selector: str,
    log,
    **log_context,
) -> Optional[int]:
    """Enqueue links from an infinite-scroll list. None if the list wasn't found."""
    root = await LiveNode.from_page(ctx.page)
    try:
        if root is None:
            raise ContainerNotFoundError(item_selector)
        container = await locate_scroll_container(root, item_selector)
    except ContainerNotFoundError as e:
        log.error("Failed to find infinite scroll container", selector=e.selector, **log_context)
        return None

    async def on_batch(links: list[str], total: int) -> None:
        log.info(f"Enqueuing {len(links)} new links", count=len(links), total=total, **log_context)
        ctx.queue.add_requests([{"url": link} for link in links])
        log.debug(f"Done enqueuing {len(links)} new links", total=total, **log_context)

    log.info("Starting infinite scroll", **log_context)
    async with LiveScrollSource(ctx.page, container) as source:
        total = await infinite_scroll(
            source,
            on_batch,
            stop=max_entries_reached(settings.output_max_entries),
            max_idle_ticks=settings.max_idle_scroll_ticks,
            log=log,
        )
    log.info("Finished infinite scroll", total=total, **log_context)
    return total


async def handle_group_media_tab(ctx: CrawlContext, settings: HandlerSettings) -> None:
    """Scroll through a media tab and enqueue every photo/video/album link."""
    await ctx.page.wait_for_load_state("networkidle")
    await asyncio.sleep(settings.tab_settle_secs)

    _, params = _url_params(ctx, "FB_GROUP_MEDIA_TAB_URL")
    logger.debug("Looking for infinite scroll container", link_selector=LINK_SELECTOR, **params)
    await _scroll_and_enqueue(
        ctx, settings, LINK_SELECTOR, logger, group_id=params.get("groupId"), tab=params.get("tab")
    )


# ---------------------------------------------------------------------------
# Media pages
# ---------------------------------------------------------------------------

async def handle_photo(ctx: CrawlContext, settings: HandlerSettings) -> None:
    """Scrape a photo post.

    E.g. https://www.facebook.com/photo/?fbid=10152026359419698&set=g.185350018231892
    """
    await ctx.page.wait_for_load_state("networkidle")
    log = logger.bind(prefix="fb_photo_")
    page_url = ctx.page.url
    snapshot = PageSnapshot(ctx.page)

    log.debug("001: Extracting data from URL")
    group_id = match_params(page_url, "FB_GROUP_URL").get("groupId")
    ids = get_search_params(page_url, ["set", "fbid"])

    record = {
        "url": page_url,
        "type": "photo",
        "fbid": ids["fbid"],
        "albumId": ids["set"],
        "groupId": group_id,
        **empty_record(PHOTO_FIELDS),
    }

    async def from_payloads():
        return await get_photo_data_from_payloads(
            await snapshot.dom(), ids["fbid"], evaluate=page_evaluator(ctx.page)
        )

    async def preview():
        return await get_photo_preview(await snapshot.dom())

    strategies = [
        FieldStrategy("payloads", PHOTO_FIELDS, from_payloads),
        FieldStrategy(
            "full_size_image",
            ["imageFullSize.url"],
            _after_interaction(snapshot, lambda: get_photo_full_size(ctx.page)),
        ),
        FieldStrategy("preview_image", ["imagePreview.url", "imagePreview.alt"], preview),
        *_timestamp_strategies(ctx, snapshot, log),
        _stats_strategy(snapshot, ["likesCount", "commentsCount", "viewsCount"]),
        FieldStrategy(
            "post_metadata",
            [*AUTHOR_FIELDS, "description"],
            lambda: _author_metadata(snapshot, POST_MENU_SELECTOR, False, log),
        ),
    ]
    log.debug("002: Resolving post fields")
    await resolve_fields(record, strategies, log)

    log.debug("003: Fetching metadata for images")
    for key in ("imagePreview", "imageFullSize", "authorProfileImageThumb"):
        record[key] = await ctx.images.fetch(record.get(key))

    await _emit(ctx, record, PHOTO_PRIVACY_MASK)
    log.info("Scraped photo", fbid=record["fbid"])


async def handle_video(ctx: CrawlContext, settings: HandlerSettings) -> None:
    """Scrape a video post.

    E.g. https://www.facebook.com/milo.barnett/videos/10205524050998264/?idorvanity=185350018231892
    """
    await ctx.page.wait_for_load_state("networkidle")
    log = logger.bind(prefix="fb_video_")
    page_url = ctx.page.url
    snapshot = PageSnapshot(ctx.page)

    log.debug("001: Extracting data from URL")
    path_params = match_params(page_url, "FB_VIDEO_URL")
    ids = get_search_params(page_url, ["set", "fbid"])

    record = {
        "url": page_url,
        "type": "video",
        "fbid": ids["fbid"],
        "albumId": ids["set"],
        "userId": path_params.get("userId"),
        "videoId": path_params.get("videoId"),
        **empty_record(VIDEO_FIELDS),
    }

    async def from_payloads():
        return await get_video_data_from_payloads(
            await snapshot.dom(), record["videoId"], evaluate=page_evaluator(ctx.page)
        )

    async def video():
        # Duration and dimensions only exist on the live element
        root = await LiveNode.from_page(ctx.page)
        return await get_video_post_video(root) if root else {}

    async def thumb():
        return await get_video_thumb(await snapshot.dom())

    strategies = [
        FieldStrategy("payloads", VIDEO_FIELDS, from_payloads),
        FieldStrategy("video", ["videoUrl", "videoDuration", "videoHeight", "videoWidth"], video),
        FieldStrategy("video_thumb", ["videoThumbImage.url", "videoThumbImage.alt"], thumb),
        *_timestamp_strategies(ctx, snapshot, log),
        _stats_strategy(snapshot, STATS_FIELDS),
        FieldStrategy(
            "post_metadata",
            [*AUTHOR_FIELDS, "description"],
            lambda: _author_metadata(snapshot, VIDEO_MENU_SELECTOR, True, log),
        ),
    ]
    log.debug("002: Resolving post fields")
    await resolve_fields(record, strategies, log)

    log.debug("003: Fetching metadata for images")
    for key in ("videoThumbImage", "authorProfileImageThumb"):
        record[key] = await ctx.images.fetch(record.get(key))

    await _emit(ctx, record, VIDEO_PRIVACY_MASK)
    log.info("Scraped video", video_id=record["videoId"])


async def handle_album(ctx: CrawlContext, settings: HandlerSettings) -> None:
    """Scrape an album and enqueue its photos and videos.

    E.g. https://www.facebook.com/media/set/?set=oa.187284474705113
    """
    await ctx.page.wait_for_load_state("networkidle")
    log = logger.bind(prefix="fb_album_")
    page_url = ctx.page.url
    snapshot = PageSnapshot(ctx.page)

    # `fbid` might not exist for albums
    ids = get_search_params(page_url, ["set", "fbid"])
    url_album_id = ids["set"] or ids["fbid"]

    record = {"url": page_url, "type": "album", **empty_record(ALBUM_FIELDS)}

    async def from_payloads():
        return await get_album_data_from_payloads(
            await snapshot.dom(), url_album_id, evaluate=page_evaluator(ctx.page)
        )

    async def from_url():
        return {"albumId": url_album_id}

    async def album_metadata():
        return await get_album_post_metadata(await snapshot.dom())

    strategies = [
        FieldStrategy("payloads", ALBUM_FIELDS, from_payloads),
        FieldStrategy("url_ids", ["albumId"], from_url),
        FieldStrategy("album_metadata", ["title", "description"], album_metadata),
        *_timestamp_strategies(ctx, snapshot, log),
        _stats_strategy(snapshot, STATS_FIELDS),
    ]
    log.debug("001: Resolving album fields", album_id=url_album_id)
    await resolve_fields(record, strategies, log)
    album_id = record["albumId"]

    log.debug("002: Looking for infinite scroll container", album_id=album_id)
    items_count = await _scroll_and_enqueue(ctx, settings, ALBUM_ITEM_SELECTOR, log, album_id=album_id)
    if items_count is None:
        return

    record["itemsCount"] = items_count
    await _emit(ctx, record, ALBUM_PRIVACY_MASK)
    log.info("Scraped album", album_id=album_id, items_count=items_count)


def create_handlers(settings: Optional[HandlerSettings] = None) -> dict[str, Handler]:
    """Handlers keyed by route label."""
    settings = settings or HandlerSettings()
    handlers = {
        "FB_GROUP": handle_group,
        "FB_GROUP_MEDIA": handle_group_media,
        "FB_GROUP_MEDIA_TAB": handle_group_media_tab,
        "FB_MEDIA_PHOTO": handle_photo,
        "FB_MEDIA_VIDEO": handle_video,
        "FB_MEDIA_ALBUM": handle_album,
    }
    return {label: partial(handler, settings=settings) for label, handler in handlers.items()}


async def route_request(ctx: CrawlContext, handlers: Mapping[str, Handler]) -> Optional[str]:
    """Run the handler for the request's URL. Returns the route label, None if unhandled."""
    route = match_route(ctx.url)
    if route is None:
        return None
    logger.debug("Routing request", url=ctx.url, label=route.label)
    await handlers[route.label](ctx)
    return route.label
