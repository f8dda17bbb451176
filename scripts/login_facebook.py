#!/usr/bin/env python3
"""Interactive Facebook login script.

Runs the browser in headed (visible) mode so you can:
1. Log in to Facebook
2. Complete any CAPTCHA/verification challenges
3. Save the authenticated session for the crawler to use

Groups that are not public can only be scraped with a saved session.

Usage:
    python scripts/login_facebook.py [group URL to check]
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from playwright.async_api import async_playwright
from fb_group_media.config import config
from fb_group_media.crawler import SESSION_FILE, USER_AGENT


def count_facebook_cookies(storage_state: dict) -> int:
    """Number of facebook.com cookies in a Playwright storage state."""
    return sum(
        1 for cookie in storage_state.get("cookies", [])
        if "facebook.com" in cookie.get("domain", "")
    )


async def interactive_login(check_url: str = "https://www.facebook.com"):
    """Run browser in headed mode for manual login/verification."""
    print("=" * 50)
    print("  Facebook Interactive Login")
    print("=" * 50)
    print()
    print("A browser window will open. Please:")
    print("  1. Complete any verification challenges (CAPTCHA, etc.)")
    print("  2. Make sure you're logged into Facebook")
    print("  3. Open one of the groups you want to scrape to verify access")
    print("  4. Press Enter in this terminal when done")
    print()

    session_path = config.session_path / SESSION_FILE

    playwright = await async_playwright().start()

    # Same browser as the crawler, so the session carries over
    browser = await playwright.firefox.launch(
        headless=False,
        slow_mo=100,  # Slow down actions slightly for human interaction
    )

    # Try to load existing session if available
    storage_state = None
    if session_path.exists():
        print(f"Loading existing session from: {session_path}")
        storage_state = str(session_path)

    context = await browser.new_context(
        storage_state=storage_state,
        viewport={"width": 1280, "height": 900},
        user_agent=USER_AGENT,
        locale="en-US",
    )

    page = await context.new_page()

    print(f"\nNavigating to {check_url} ...")
    await page.goto(check_url)

    print("\n" + "=" * 50)
    print("  Browser is now open!")
    print("=" * 50)
    print()
    input("Press Enter when you're logged in and done with verification... ")

    # Save the session
    print("\nSaving session...")
    session_path.parent.mkdir(parents=True, exist_ok=True)
    storage_state_data = await context.storage_state(path=str(session_path))
    num_cookies = count_facebook_cookies(storage_state_data)
    print(f"  Session saved to: {session_path} ({num_cookies} Facebook cookies)")

    await browser.close()
    await playwright.stop()

    print()
    print("=" * 50)
    print("  Done! You can now run the crawler:")
    print("    python -m fb_group_media --url <group URL>")
    print("=" * 50)


if __name__ == "__main__":
    asyncio.run(interactive_login(*sys.argv[1:2]))
