"""Infinite scroll over a container of lazily loaded items.

Links are handed to `on_batch` as soon as they appear, so a failure late in
a long scroll does not lose what was already found.
"""

import asyncio
import itertools
from typing import Awaitable, Callable, Hashable, Optional, Protocol

import structlog
from playwright.async_api import Page

from .dom.base import DOMNode
from .exceptions import ContainerNotFoundError

logger = structlog.get_logger()

# (element key, link URL or None)
ScrollItem = tuple[Hashable, Optional[str]]
OnBatch = Callable[[list[str], int], Awaitable[None]]
StopPredicate = Callable[[int], bool]

JS_OBSERVE = """(container, key) => {
    const registry = (window.__fbGroupMediaScroll = window.__fbGroupMediaScroll || {});
    const state = { pending: [], ids: new WeakMap(), nextId: 0, observer: null };
    // Items already rendered count as new on the first read
    state.pending.push(...container.children);
    state.observer = new MutationObserver((mutations) => {
        for (const mutation of mutations) {
            for (const node of mutation.addedNodes) {
                if (node.nodeType === Node.ELEMENT_NODE) state.pending.push(node);
            }
        }
    });
    state.observer.observe(container, { childList: true });
    registry[key] = state;
}"""

JS_TAKE_NEW = """(key) => {
    const state = (window.__fbGroupMediaScroll || {})[key];
    if (!state) return [];
    return state.pending.splice(0).map((el) => {
        let id = state.ids.get(el);
        if (id === undefined) {
            id = state.nextId++;
            state.ids.set(el, id);
        }
        const linkEl = el.nodeName === 'A' ? el : el.querySelector('a');
        return [id, linkEl ? linkEl.href : null];
    });
}"""

JS_DISCONNECT = """(key) => {
    const registry = window.__fbGroupMediaScroll || {};
    if (registry[key]) {
        registry[key].observer.disconnect();
        delete registry[key];
    }
}"""

JS_SCROLL_LAST_CHILD = """(container, offsetY) => {
    const el = container.lastElementChild;
    if (!el) return;
    el.scrollIntoView({ behavior: 'instant' });
    // Then scroll a bit up again
    return new Promise((res) => {
        setTimeout(() => {
            window.scrollTo({ left: window.scrollX, top: window.scrollY - offsetY, behavior: 'smooth' });
            res();
        }, 500);
    });
}"""


class ScrollSource(Protocol):
    """What the paginator needs from a scrollable container."""

    async def take_new(self) -> list[ScrollItem]:
        """Items that appeared since the last call (all current items on the first call)."""

    async def scroll(self) -> None:
        """Trigger loading of more items."""

    async def wait(self) -> None:
        """Wait until the page has settled after a scroll."""


def max_entries_reached(max_entries: Optional[int]) -> Optional[StopPredicate]:
    """Stop once more than `max_entries` links were emitted. None means never stop early."""
    if max_entries is None:
        return None
    return lambda total: total > max_entries


async def locate_scroll_container(root: DOMNode, selector: str) -> DOMNode:
    """The common ancestor of every item matching `selector`."""
    container = await root.get_common_ancestor_from_selector(selector)
    if container is None:
        raise ContainerNotFoundError(selector)
    return container


async def infinite_scroll(
    source: ScrollSource,
    on_batch: OnBatch,
    stop: Optional[StopPredicate] = None,
    max_idle_ticks: int = 3,
    log=None,
) -> int:
    """Scroll until `stop` says so or no new items show up for `max_idle_ticks` ticks.

    An item is emitted at most once even if the source reports it again.
    Returns the number of links emitted.
    """
    log = log or logger
    seen: set[Hashable] = set()
    total = 0
    idle_ticks = 0

    for tick in itertools.count():
        items = await source.take_new()
        fresh = [(key, link) for key, link in items if key not in seen]
        seen.update(key for key, _ in fresh)

        if fresh:
            idle_ticks = 0
        else:
            idle_ticks += 1

        links = [link for _, link in fresh if link]
        if links:
            total += len(links)
            await on_batch(links, total)
            if stop is not None and stop(total):
                log.debug("Scroll stopped by predicate", tick=tick, total=total)
                break

        if idle_ticks >= max_idle_ticks:
            log.debug("No new items, scroll finished", tick=tick, total=total)
            break

        await source.scroll()
        await source.wait()

    await source.wait()
    return total


class LiveScrollSource:
    """Scroll source over a container element in a live page.

    New children are collected by a MutationObserver in the page, so each
    tick only transfers the items added since the previous one.

        async with LiveScrollSource(page, container) as source:
            await infinite_scroll(source, on_batch)
    """

    _keys = itertools.count()

    def __init__(self, page: Page, container: DOMNode, scroll_back_offset: int = 200):
        self.page = page
        self.container = container
        self.scroll_back_offset = scroll_back_offset
        self.key = f"scroll{next(self._keys)}"

    async def __aenter__(self) -> "LiveScrollSource":
        await self.container.node.evaluate(JS_OBSERVE, self.key)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self.page.is_closed():
            await self.page.evaluate(JS_DISCONNECT, self.key)

    async def take_new(self) -> list[ScrollItem]:
        return [tuple(item) for item in await self.page.evaluate(JS_TAKE_NEW, self.key)]

    async def scroll(self) -> None:
        await self.container.node.evaluate(JS_SCROLL_LAST_CHILD, self.scroll_back_offset)

    async def wait(self) -> None:
        await self.page.wait_for_load_state("networkidle")
        await asyncio.sleep(1)
        await self.page.wait_for_load_state("networkidle")
