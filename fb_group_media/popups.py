"""Dismiss cookie banners and login dialogs while a page is being scraped."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

logger = structlog.get_logger()

# Only dialogs that block the page. The media viewer also has a "Close"
# button, so the login dialog is matched by its email field.
POPUP_CLOSE_SELECTORS = [
    '[role="dialog"] [role="button"]:has-text("Allow all cookies")',
    '[role="dialog"] [role="button"]:has-text("Decline optional cookies")',
    'div[role="dialog"]:has(input[name="email"]) [aria-label="Close"]',
]

POPUP_CHECK_INTERVAL_SECS = 2.0


async def close_popups(page: Page) -> int:
    """Click every visible dismiss control once. Returns how many were clicked."""
    clicked = 0
    for selector in POPUP_CLOSE_SELECTORS:
        for button in await page.query_selector_all(selector):
            try:
                if await button.is_visible():
                    await button.click()
                    clicked += 1
                    logger.debug("Closed popup", selector=selector)
            except PlaywrightError as e:
                # The popup may have gone away on its own
                logger.debug("Failed to close popup", selector=selector, error=str(e))
    return clicked


async def _dismiss_forever(page: Page, interval: float) -> None:
    while not page.is_closed():
        try:
            await close_popups(page)
        except PlaywrightError as e:
            logger.debug("Popup check failed", error=str(e))
        await asyncio.sleep(interval)


@asynccontextmanager
async def popup_guard(page: Page, interval: float = POPUP_CHECK_INTERVAL_SECS) -> AsyncIterator[None]:
    """Keep closing popups in the background for the duration of the block.

        async with popup_guard(page):
            await handler(ctx)
    """
    task = asyncio.create_task(_dismiss_forever(page, interval))
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
