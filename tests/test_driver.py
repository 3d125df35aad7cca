from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError
from tenacity import wait_none

from saas_reviews.driver import PlaywrightPageDriver


def driver_for(page, attempts=3):
    return PlaywrightPageDriver(page, timeout_ms=500, retry_attempts=attempts, retry_wait=wait_none())


@pytest.mark.asyncio
async def test_load_retries_transient_errors():
    page = MagicMock()
    page.goto = AsyncMock(side_effect=[PlaywrightError("net::ERR_CONNECTION_RESET"), None])
    assert await driver_for(page).load("https://www.g2.com/products/slack/reviews") is True
    assert page.goto.await_count == 2


@pytest.mark.asyncio
async def test_load_gives_up_after_attempts():
    page = MagicMock()
    page.goto = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 500ms exceeded"))
    assert await driver_for(page, attempts=2).load("https://www.g2.com") is False
    assert page.goto.await_count == 2


@pytest.mark.asyncio
async def test_wait_for_timeout_is_not_fatal():
    page = MagicMock()
    page.wait_for_selector = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 500ms exceeded"))
    assert await driver_for(page).wait_for(".review-card") is False


@pytest.mark.asyncio
async def test_click_skips_disabled_buttons():
    button = MagicMock()
    button.is_disabled = AsyncMock(return_value=True)
    page = MagicMock()
    page.query_selector = AsyncMock(return_value=button)
    assert await driver_for(page).click(".load-more") is False


@pytest.mark.asyncio
async def test_close_stops_everything():
    context, browser, pw = AsyncMock(), AsyncMock(), AsyncMock()
    driver = PlaywrightPageDriver(MagicMock(), context=context, browser=browser, playwright=pw)
    await driver.close()
    context.close.assert_awaited_once()
    browser.close.assert_awaited_once()
    pw.stop.assert_awaited_once()


@pytest.mark.asyncio
async def test_scroll_by_moves_window():
    page = MagicMock()
    page.evaluate = AsyncMock(return_value=None)
    await driver_for(page).scroll_by(180)
    page.evaluate.assert_awaited_once_with("(y) => window.scrollBy(0, y)", 180)
