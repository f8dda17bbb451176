"""Extraction actions for photo, video and album posts.

Three kinds of actions feed the field resolution pipeline:

- payload readers pick fields out of the JSON Facebook embeds in the page,
- page actions need the live page (clicks, hovers),
- DOM actions only read markup and work on either DOM backend.

Every action returns a patch keyed by output field path; fields it could
not find are None.
"""

import asyncio
from typing import Any, Optional

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..constants import (
    DOWNLOAD_MENU_ITEM_SELECTOR,
    PHOTO_PREVIEW_SELECTOR,
    POST_MENU_SELECTOR,
    TOOLTIP_SELECTOR,
    VIDEO_SELECTOR,
    VIDEO_THUMB_SELECTOR,
)
from ..dom.base import DOMNode
from ..dom.live import LiveNode
from ..utils.url import remove_search_params
from .payloads import Evaluator, search_payloads
from .timestamp import epoch_to_iso, parse_fb_timestamp

logger = structlog.get_logger()

TIMESTAMP_EL_SELECTORS = [
    "abbr[data-utime]",
    'a[role="link"][href*="/permalink/"]',
    'a[role="link"][href*="/posts/"]',
    'span[id] a[role="link"][tabindex="0"]',
]
AUTHOR_LINK_SELECTOR = "h2 a[href], h3 a[href], h4 a[href], strong a[href], a[href] strong"
AUTHOR_IMAGE_SELECTOR = "svg image, img"
MESSAGE_SELECTOR = '[data-ad-preview="message"], [data-ad-comet-preview="message"]'
TEXT_BLOCK_SELECTOR = 'div[dir="auto"], span[dir="auto"]'
ALBUM_TITLE_SELECTOR = '[role="main"] h1, [role="main"] h2'
ALBUM_DESCRIPTION_SELECTOR = '[role="main"] [data-ad-preview="message"], [role="main"] span[dir="auto"]'

# Timeout for clicks, hovers and menu reads on the live page
ACTION_TIMEOUT_MS = 5000


# ---------------------------------------------------------------------------
# Payload readers
# ---------------------------------------------------------------------------

def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _to_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.replace(",", "").isdigit():
        return int(value.replace(",", ""))
    return None


def _id_matches(node_id: Any, wanted: Optional[str]) -> bool:
    """Compare payload IDs loosely: "oa.187284474705113" matches "187284474705113"."""
    if not wanted:
        return True
    if node_id is None:
        return False
    node_id = str(node_id)
    return node_id == wanted or node_id == wanted.split(".")[-1]


def typename_predicate(typename: str, required_keys: tuple[str, ...] = (), entity_id: Optional[str] = None):
    """Predicate for payload nodes like `{"__typename": "Photo", "id": ..., "image": {...}}`."""
    def predicate(node: Any) -> bool:
        if not isinstance(node, dict) or node.get("__typename") != typename:
            return False
        if required_keys and not any(key in node for key in required_keys):
            return False
        return _id_matches(node.get("id"), entity_id)
    return predicate


def feedback_counts(feedback: Any) -> dict[str, Optional[int]]:
    """Likes/comments/shares from a `feedback` payload node (all None if absent)."""
    if not isinstance(feedback, dict):
        return {"likesCount": None, "commentsCount": None, "sharesCount": None}

    likes = _first(
        _to_int(_dig(feedback, "reaction_count", "count")),
        _to_int(_dig(feedback, "reactors", "count")),
        _to_int(feedback.get("i18n_reaction_count")),
    )
    comments = _first(
        _to_int(_dig(feedback, "comment_count", "total_count")),
        _to_int(feedback.get("total_comment_count")),
        _to_int(_dig(feedback, "comments", "total_count")),
    )
    shares = _first(
        _to_int(_dig(feedback, "share_count", "count")),
        _to_int(feedback.get("i18n_share_count")),
    )
    return {"likesCount": likes, "commentsCount": comments, "sharesCount": shares}


def _owner_fields(owner: Any) -> dict[str, Any]:
    return {
        "authorName": _dig(owner, "name"),
        "authorProfileUrl": _first(_dig(owner, "url"), _dig(owner, "profile_url")),
        "authorProfileImageThumb.url": _first(
            _dig(owner, "profile_picture", "uri"),
            _dig(owner, "profilePicture", "uri"),
        ),
    }


def photo_fields_from_payload(node: dict) -> dict[str, Any]:
    image = node.get("image") or {}
    patch = {
        "imagePreview.url": _first(image.get("uri"), image.get("url")),
        "imagePreview.alt": node.get("accessibility_caption"),
        "imagePreview.width": _to_int(image.get("width")),
        "imagePreview.height": _to_int(image.get("height")),
        "timestamp": epoch_to_iso(node.get("created_time")),
        "description": _first(_dig(node, "message", "text"), _dig(node, "title", "text")),
    }
    patch.update(_owner_fields(node.get("owner")))
    patch.update(feedback_counts(node.get("feedback")))
    return patch


def video_fields_from_payload(node: dict) -> dict[str, Any]:
    duration_ms = node.get("playable_duration_in_ms")
    patch = {
        "videoId": str(node["id"]) if node.get("id") is not None else None,
        "videoUrl": _first(
            node.get("browser_native_hd_url"),
            node.get("playable_url_quality_hd"),
            node.get("playable_url"),
            node.get("browser_native_sd_url"),
        ),
        "videoDuration": _first(
            duration_ms / 1000 if isinstance(duration_ms, (int, float)) else None,
            node.get("length_in_second"),
        ),
        "videoWidth": _to_int(_first(node.get("original_width"), node.get("width"))),
        "videoHeight": _to_int(_first(node.get("original_height"), node.get("height"))),
        "videoThumbImage.url": _first(
            _dig(node, "preferred_thumbnail", "image", "uri"),
            _dig(node, "thumbnailImage", "uri"),
        ),
        "videoThumbImage.alt": node.get("accessibility_caption"),
        "timestamp": epoch_to_iso(_first(node.get("created_time"), node.get("publish_time"))),
        "description": _first(_dig(node, "message", "text"), _dig(node, "savable_description", "text")),
        "viewsCount": _to_int(_first(
            node.get("video_view_count"),
            node.get("play_count"),
            _dig(node, "feedback", "video_view_count"),
        )),
    }
    patch.update(_owner_fields(node.get("owner")))
    patch.update(feedback_counts(node.get("feedback")))
    return patch


def _contributors(node: dict) -> Optional[list[dict[str, Any]]]:
    contributors = node.get("contributors")
    if isinstance(contributors, dict):
        contributors = contributors.get("nodes") or [
            edge.get("node") for edge in contributors.get("edges") or [] if isinstance(edge, dict)
        ]
    if not isinstance(contributors, list):
        return None
    return [
        {"fbid": c.get("id"), "name": c.get("name"), "url": c.get("url")}
        for c in contributors
        if isinstance(c, dict)
    ]


def album_fields_from_payload(node: dict) -> dict[str, Any]:
    owner = node.get("owner") or {}
    patch = {
        "albumId": str(node["id"]) if node.get("id") is not None else None,
        "title": _first(_dig(node, "title", "text"), node.get("name")),
        "description": _first(_dig(node, "message", "text"), _dig(node, "description", "text")),
        "timestamp": epoch_to_iso(node.get("created_time")),
        "ownerFbid": owner.get("id") if isinstance(owner, dict) else None,
        "ownerName": owner.get("name") if isinstance(owner, dict) else None,
        "ownerUsername": _first(owner.get("username"), owner.get("vanity")) if isinstance(owner, dict) else None,
        "ownerType": owner.get("__typename") if isinstance(owner, dict) else None,
        "contributors": _contributors(node),
        "viewsCount": None,
    }
    patch.update(feedback_counts(node.get("feedback")))
    return patch


async def _first_payload_match(dom: DOMNode, predicate, evaluate: Optional[Evaluator]) -> Optional[dict]:
    matches = await search_payloads(dom, predicate, evaluate=evaluate)
    return matches[0] if matches else None


async def get_photo_data_from_payloads(dom: DOMNode, fbid: Optional[str] = None, evaluate: Optional[Evaluator] = None) -> dict[str, Any]:
    node = await _first_payload_match(dom, typename_predicate("Photo", ("image",), fbid), evaluate)
    return photo_fields_from_payload(node) if node else {}


async def get_video_data_from_payloads(dom: DOMNode, video_id: Optional[str] = None, evaluate: Optional[Evaluator] = None) -> dict[str, Any]:
    predicate = typename_predicate(
        "Video", ("playable_url", "browser_native_hd_url", "browser_native_sd_url"), video_id
    )
    node = await _first_payload_match(dom, predicate, evaluate)
    return video_fields_from_payload(node) if node else {}


async def get_album_data_from_payloads(dom: DOMNode, album_id: Optional[str] = None, evaluate: Optional[Evaluator] = None) -> dict[str, Any]:
    node = await _first_payload_match(dom, typename_predicate("Album", ("title", "name", "owner"), album_id), evaluate)
    return album_fields_from_payload(node) if node else {}


# ---------------------------------------------------------------------------
# Page actions
# ---------------------------------------------------------------------------

async def get_photo_full_size(page: Page) -> dict[str, Any]:
    """Open the post menu and read the "Download" link (full-size image)."""
    menu = page.locator(POST_MENU_SELECTOR).first
    await menu.click(timeout=ACTION_TIMEOUT_MS)
    try:
        raw_img_url = await page.locator(DOWNLOAD_MENU_ITEM_SELECTOR).first.evaluate(
            "el => el.href", timeout=ACTION_TIMEOUT_MS
        )
    finally:
        # Close the menu again
        await menu.click(timeout=ACTION_TIMEOUT_MS)

    if not raw_img_url:
        return {"imageFullSize.url": None}
    # "dl=1" forces a download, drop it
    return {"imageFullSize.url": remove_search_params(raw_img_url, ["dl"])}


async def get_post_timestamp_value(page: Page, log=None) -> Optional[str]:
    """Hover the post's timestamp link and read the full date from the tooltip."""
    log = log or logger
    root = await LiveNode.from_page(page)
    if root is None:
        return None
    timestamp_el = await get_post_timestamp_el(root)
    if timestamp_el is None:
        log.debug("Timestamp element not found")
        return None

    await timestamp_el.node.hover(timeout=ACTION_TIMEOUT_MS)
    try:
        tooltip = await page.wait_for_selector(TOOLTIP_SELECTOR, timeout=ACTION_TIMEOUT_MS)
        value = (await tooltip.text_content() or "").strip() if tooltip else None
    except PlaywrightError as e:
        log.debug("Timestamp tooltip did not appear", error=str(e))
        value = None
    finally:
        await page.mouse.move(0, 0)
        await asyncio.sleep(0.2)
    return value or None


async def get_post_timestamp(page: Page, log=None) -> dict[str, Any]:
    raw = await get_post_timestamp_value(page, log)
    (log or logger).debug("Normalising timestamp", raw=raw)
    return {"timestamp": parse_fb_timestamp(raw) if raw else None}


# ---------------------------------------------------------------------------
# DOM actions
# ---------------------------------------------------------------------------

async def _image_props(dom: DOMNode, selector: str, prefix: str) -> dict[str, Any]:
    img_el = await dom.find_one(selector)
    url, alt = await img_el.props(["src", "alt"]) if img_el else (None, None)
    return {f"{prefix}.url": url, f"{prefix}.alt": alt}


async def get_photo_preview(dom: DOMNode) -> dict[str, Any]:
    return await _image_props(dom, PHOTO_PREVIEW_SELECTOR, "imagePreview")


async def get_video_thumb(dom: DOMNode) -> dict[str, Any]:
    return await _image_props(dom, VIDEO_THUMB_SELECTOR, "videoThumbImage")


async def get_video_post_video(dom: DOMNode) -> dict[str, Any]:
    video_el = await dom.find_one(VIDEO_SELECTOR)
    if video_el is None:
        return {}
    url, duration, height, width = await video_el.props(["src", "duration", "videoHeight", "videoWidth"])
    # MIME type omitted, it depends on the stream
    return {
        "videoUrl": url,
        "videoDuration": _to_float(duration),
        "videoHeight": _to_int(height),
        "videoWidth": _to_int(width),
    }


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


async def get_post_timestamp_el(dom: DOMNode) -> Optional[DOMNode]:
    for selector in TIMESTAMP_EL_SELECTORS:
        el = await dom.find_one(selector)
        if el is not None:
            return el
    return None


async def get_post_timestamp_from_dom(dom: DOMNode) -> dict[str, Any]:
    """Timestamp without interaction: `abbr[data-utime]` or a parsable aria-label/title."""
    el = await get_post_timestamp_el(dom)
    if el is None:
        return {"timestamp": None}
    utime = await el.attr("data-utime")
    if utime:
        return {"timestamp": epoch_to_iso(utime)}
    for name in ("title", "aria-label"):
        value = await el.attr(name)
        if value and parse_fb_timestamp(value):
            return {"timestamp": parse_fb_timestamp(value)}
    return {"timestamp": None}


async def _author_link(header: DOMNode) -> Optional[DOMNode]:
    for el in await header.find_many(AUTHOR_LINK_SELECTOR):
        link = await el.closest("a[href]")
        if link is not None and await link.text():
            return link
    for link in await header.find_many('a[role="link"][href]'):
        if await link.text():
            return link
    return None


async def _post_description(header: DOMNode, skip_texts: set[str]) -> Optional[str]:
    container = await header.closest('[role="complementary"]') or await header.parent()
    if container is None:
        return None

    message_el = await container.find_one(MESSAGE_SELECTOR)
    if message_el is not None:
        return await message_el.text() or None

    # Otherwise the longest text block that isn't the author or the date
    best = None
    for el in await container.find_many(TEXT_BLOCK_SELECTOR):
        text = await el.text()
        if not text or text in skip_texts:
            continue
        if best is None or len(text) > len(best):
            best = text
    return best


async def get_authored_post_metadata(
    timestamp_el: Optional[DOMNode],
    menu_el: Optional[DOMNode],
    log=None,
) -> dict[str, Any]:
    """Author and description from the post header.

    The header is the common ancestor of the timestamp link and the post's
    menu button.
    """
    log = log or logger
    empty = {
        "authorName": None,
        "authorProfileUrl": None,
        "authorProfileImageThumb.url": None,
        "description": None,
    }
    if timestamp_el is None or menu_el is None:
        log.debug("Post header not found", has_timestamp=timestamp_el is not None, has_menu=menu_el is not None)
        return empty

    header = await timestamp_el.get_common_ancestor(menu_el)
    if header is None:
        return empty

    author_name = author_url = None
    link = await _author_link(header)
    if link is not None:
        author_name = await link.text()
        author_url = await link.prop("href")

    thumb_url = None
    image_el = await header.find_one(AUTHOR_IMAGE_SELECTOR)
    if image_el is not None:
        thumb_url = _first(
            await image_el.attr("xlink:href"),
            await image_el.attr("href"),
            await image_el.prop("src"),
        )

    skip_texts = {t for t in (author_name, await timestamp_el.text()) if t}
    return {
        "authorName": author_name,
        "authorProfileUrl": author_url,
        "authorProfileImageThumb.url": thumb_url,
        "description": await _post_description(header, skip_texts),
    }


async def get_album_post_metadata(dom: DOMNode) -> dict[str, Any]:
    title_el = await dom.find_one(ALBUM_TITLE_SELECTOR)
    title = await title_el.text() if title_el else None

    description = None
    for el in await dom.find_many(ALBUM_DESCRIPTION_SELECTOR):
        text = await el.text()
        if text and text != title:
            description = text
            break
    return {"title": title or None, "description": description}
