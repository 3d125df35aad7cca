# saas_reviews/driver.py
import logging
import random
from typing import Any, Optional, Protocol

from playwright.async_api import (
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from saas_reviews.config import ScrapeOptions

log = logging.getLogger(__name__)

_UA_POOL = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
]

_BLOCKED_RESOURCES = {"stylesheet", "image", "font"}

_STEALTH_JS = """
Object.defineProperty(navigator,'webdriver',{get:()=>undefined});
Object.defineProperty(navigator,'languages',{get:()=>['en-US','en']});
Object.defineProperty(navigator,'plugins',{get:()=>[1,2,3,4,5]});
window.chrome = { runtime: {} };
"""

_AUTO_SCROLL_JS = """
async () => {
    await new Promise(resolve => {
        let total = 0;
        const distance = 200;
        const timer = setInterval(() => {
            const height = document.body.scrollHeight;
            window.scrollBy(0, distance);
            total += distance;
            if (total >= height) {
                clearInterval(timer);
                resolve();
            }
        }, 200);
    });
}
"""


class PageDriver(Protocol):
    """What the harvest core needs from a browser tab."""

    @property
    def url(self) -> str: ...

    async def load(self, url: str) -> bool: ...

    async def evaluate(self, script: str, arg: Any = None) -> Any: ...

    async def has_element(self, selector: str) -> bool: ...

    async def click(self, selector: str) -> bool: ...

    async def scroll_by(self, amount: int) -> None: ...

    async def scroll_height(self) -> int: ...

    async def auto_scroll(self) -> None: ...

    async def wait_for(self, selector: str, timeout_ms: Optional[int] = None) -> bool: ...

    async def title(self) -> str: ...

    async def close(self) -> None: ...


class PlaywrightPageDriver:
    """One isolated Chromium session: playwright, browser, context, page."""

    def __init__(self, page, *, timeout_ms: int = 30000, retry_attempts: int = 3,
                 retry_wait=None, browser=None, context=None, playwright=None):
        self.page = page
        self.timeout_ms = timeout_ms
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)
        self._browser = browser
        self._context = context
        self._playwright = playwright

    @classmethod
    async def open(cls, options: ScrapeOptions, rng: Optional[random.Random] = None) -> "PlaywrightPageDriver":
        rng = rng or random.Random()
        p = await async_playwright().start()
        try:
            launch_kwargs = {
                "headless": options.headless,
                "args": ["--no-sandbox", "--disable-setuid-sandbox"],
            }
            if options.proxy:
                launch_kwargs["proxy"] = {"server": options.proxy}
            browser = await p.chromium.launch(**launch_kwargs)
            ua = rng.choice(_UA_POOL)
            context = await browser.new_context(
                viewport={"width": 1366 + rng.randint(0, 100), "height": 768 + rng.randint(0, 100)},
                user_agent=ua,
                locale="en-US",
                ignore_https_errors=True,
                extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
            )
            await context.add_init_script(_STEALTH_JS)
            if options.block_resources:
                await context.route("**/*", _block_heavy_resources)
            page = await context.new_page()
            page.set_default_timeout(options.timeout_ms)
        except BaseException:
            await p.stop()
            raise
        log.debug("Browser initialized with UA: %s", ua)
        return cls(
            page,
            timeout_ms=options.timeout_ms,
            retry_attempts=options.retry_attempts,
            browser=browser,
            context=context,
            playwright=p,
        )

    @property
    def url(self) -> str:
        return self.page.url

    async def load(self, url: str) -> bool:
        log.debug("Navigating to: %s", url)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=self.retry_wait,
                retry=retry_if_exception_type(PlaywrightError),
                before_sleep=before_sleep_log(log, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    await self.page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)
        except PlaywrightError as e:
            log.error("Failed to navigate to %s: %s", url, e)
            return False
        return True

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return await self.page.evaluate(script)
        return await self.page.evaluate(script, arg)

    async def has_element(self, selector: str) -> bool:
        try:
            return await self.page.query_selector(selector) is not None
        except PlaywrightError:
            return False

    async def click(self, selector: str) -> bool:
        """Click the first enabled match; False when there is nothing to click."""
        try:
            el = await self.page.query_selector(selector)
            if not el or await el.is_disabled():
                return False
            if await el.get_attribute("aria-disabled") == "true":
                return False
            await el.click()
        except PlaywrightError as e:
            log.debug("Click on %s failed: %s", selector, e)
            return False
        try:
            await self.page.wait_for_load_state("networkidle", timeout=self.timeout_ms)
        except PlaywrightTimeoutError:
            pass
        return True

    async def scroll_by(self, amount: int) -> None:
        await self.page.evaluate("(y) => window.scrollBy(0, y)", amount)

    async def scroll_height(self) -> int:
        return int(await self.page.evaluate("() => document.body.scrollHeight") or 0)

    async def auto_scroll(self) -> None:
        try:
            await self.page.evaluate(_AUTO_SCROLL_JS)
        except PlaywrightError:
            log.debug("Auto scroll failed, continuing...")

    async def wait_for(self, selector: str, timeout_ms: Optional[int] = None) -> bool:
        try:
            await self.page.wait_for_selector(selector, timeout=timeout_ms or self.timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def title(self) -> str:
        try:
            return await self.page.title()
        except PlaywrightError:
            log.debug("Title check failed")
            return ""

    async def close(self) -> None:
        try:
            if self._context is not None:
                await self._context.close()
            if self._browser is not None:
                await self._browser.close()
        finally:
            if self._playwright is not None:
                await self._playwright.stop()
            self._context = self._browser = self._playwright = None
        log.debug("Browser cleanup completed")


async def _block_heavy_resources(route):
    if route.request.resource_type in _BLOCKED_RESOURCES:
        await route.abort()
    else:
        await route.continue_()


async def open_playwright_session(options: ScrapeOptions, rng: Optional[random.Random] = None) -> PlaywrightPageDriver:
    return await PlaywrightPageDriver.open(options, rng=rng)
