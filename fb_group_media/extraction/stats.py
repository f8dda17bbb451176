"""Likes, comments and views counts scraped from the rendered post."""

import re
from typing import Optional

from ..dom.base import DOMNode

UNIT_MULTIPLIERS = {"k": 1e3, "m": 1e6, "b": 1e9, "t": 1e12}

# "2,400", "6.9K", "1.2 M"; a unit letter must not start a longer word ("5 min")
COUNT_REGEX = re.compile(r"(\d+(?:[.,\s ]\d+)*)\s*([kmbt])?(?![a-z])", re.IGNORECASE)
LIKES_REGEX = re.compile(r"Like:\s*(.*)", re.IGNORECASE)
COMMENTS_REGEX = re.compile(r"^\s*(\d[\d.,\s ]*[kmbt]?)\s+comments?\b", re.IGNORECASE)
VIEWS_REGEX = re.compile(r"^\s*(\d[\d.,\s ]*[kmbt]?)\s+views?\s*$", re.IGNORECASE)

LIKES_SELECTOR = '[aria-label*="Like:"]'
COMMENTS_CANDIDATES_SELECTOR = '[data-visualcompletion="ignore-dynamic"] [role="button"]'


def _to_number(number: str, has_unit: bool) -> float:
    number = re.sub(r"[\s ]", "", number)
    if has_unit:
        # "6.9K" or "6,9K" - separator is a decimal point
        decimal = re.match(r"^(\d+)[.,](\d{1,2})$", number)
        if decimal:
            return float(f"{decimal.group(1)}.{decimal.group(2)}")
    return float(number.replace(",", "").replace(".", ""))


def parse_count(text: Optional[str]) -> Optional[int]:
    """Parse the first count in a localized string: "6.9K views" -> 6900."""
    if not text:
        return None
    match = COUNT_REGEX.search(text)
    if not match:
        return None
    unit = (match.group(2) or "").lower()
    value = _to_number(match.group(1), bool(unit))
    return int(round(value * UNIT_MULTIPLIERS.get(unit, 1)))


async def _find_likes_el(dom: DOMNode) -> tuple[Optional[DOMNode], Optional[int]]:
    likes_el = await dom.find_one(LIKES_SELECTOR)
    if likes_el is None:
        return None, None
    label = await likes_el.attr("aria-label") or ""
    match = LIKES_REGEX.search(label)
    return likes_el, parse_count(match.group(1)) if match else None


async def _find_comments_el(dom: DOMNode) -> tuple[Optional[DOMNode], Optional[int]]:
    for candidate in await dom.find_many(COMMENTS_CANDIDATES_SELECTOR):
        text = await candidate.text() or ""
        match = COMMENTS_REGEX.match(text)
        if match:
            return candidate, parse_count(match.group(1))
    return None, None


async def _find_views_count(likes_el: DOMNode, comments_el: DOMNode) -> Optional[int]:
    """Views sit in a sibling of the element holding both likes and comments."""
    stats_el = await likes_el.get_common_ancestor(comments_el)
    if stats_el is None:
        return None
    stats_parent = await stats_el.parent()
    if stats_parent is None:
        return None
    for sibling in await stats_parent.children():
        text = await sibling.text() or ""
        match = VIEWS_REGEX.match(text)
        if match:
            return parse_count(match.group(1))
    return None


async def get_post_stats(dom: DOMNode) -> dict[str, Optional[int]]:
    """Scrape counts from the post's stats bar.

    Missing likes/comments count as 0, missing views as None. Shares are
    never rendered reliably, so they only come from embedded payloads.
    """
    likes_el, likes_count = await _find_likes_el(dom)
    comments_el, comments_count = await _find_comments_el(dom)

    views_count = None
    if likes_el is not None and comments_el is not None:
        views_count = await _find_views_count(likes_el, comments_el)

    return {
        "likesCount": likes_count or 0,
        "commentsCount": comments_count or 0,
        "sharesCount": None,
        "viewsCount": views_count,
    }
