"""Tests for popup dismissal."""

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from fb_group_media.popups import POPUP_CLOSE_SELECTORS, close_popups, popup_guard


class FakeButton:
    def __init__(self, visible=True, fail=False):
        self.visible = visible
        self.fail = fail
        self.clicks = 0

    async def is_visible(self):
        return self.visible

    async def click(self):
        if self.fail:
            raise PlaywrightError("Element is not attached to the DOM")
        self.clicks += 1


class PopupPage:
    def __init__(self, buttons=None):
        self.buttons = buttons or {}
        self.checks = 0
        self.closed = False

    async def query_selector_all(self, selector):
        self.checks += 1
        return self.buttons.get(selector, [])

    def is_closed(self):
        return self.closed


class TestClosePopups:

    def test_clicks_visible_buttons(self):
        cookies = FakeButton()
        hidden = FakeButton(visible=False)
        page = PopupPage({POPUP_CLOSE_SELECTORS[0]: [cookies, hidden]})
        assert asyncio.run(close_popups(page)) == 1
        assert cookies.clicks == 1
        assert hidden.clicks == 0

    def test_detached_button_is_skipped(self):
        login = FakeButton()
        page = PopupPage({
            POPUP_CLOSE_SELECTORS[1]: [FakeButton(fail=True)],
            POPUP_CLOSE_SELECTORS[2]: [login],
        })
        assert asyncio.run(close_popups(page)) == 1
        assert login.clicks == 1

    def test_nothing_to_close(self):
        assert asyncio.run(close_popups(PopupPage())) == 0


class TestPopupGuard:

    def test_checks_while_block_runs(self):
        button = FakeButton()
        page = PopupPage({POPUP_CLOSE_SELECTORS[0]: [button]})

        async def go():
            async with popup_guard(page, interval=0.01):
                await asyncio.sleep(0.05)
            checks = page.checks
            await asyncio.sleep(0.05)
            return checks

        checks = asyncio.run(go())
        assert button.clicks >= 1
        # Stopped after the block
        assert page.checks == checks

    def test_block_errors_propagate(self):
        page = PopupPage()

        async def go():
            async with popup_guard(page, interval=0.01):
                raise ValueError("handler failed")

        with pytest.raises(ValueError, match="handler failed"):
            asyncio.run(go())
