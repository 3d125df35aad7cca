# saas_reviews/guard.py
import asyncio
import enum
import logging
import sys
import threading

from saas_reviews.errors import BlockingDetected

log = logging.getLogger(__name__)

BLOCKING_KEYWORDS = (
    "access denied",
    "blocked",
    "captcha",
    "please verify",
    "security check",
    "403",
    "429",
)

CAPTCHA_SELECTORS = (
    '[src*="captcha"]',
    '[class*="captcha"]',
    '[id*="captcha"]',
    ".recaptcha",
    "#recaptcha",
)


class GuardState(enum.Enum):
    CLEAR = "clear"
    BLOCKED = "blocked"
    CAPTCHA_PENDING = "captcha_pending"


class CaptchaSignal:
    """Channel a human (or a test) uses to release a pending CAPTCHA wait."""

    def __init__(self):
        self._event = asyncio.Event()

    def resolve(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
        self._event.clear()


class ConsoleCaptchaSignal(CaptchaSignal):
    """Waits for Enter on stdin, or for ``resolve()``, without blocking the loop.

    stdin is read on a daemon thread rather than the default executor, so a
    wait abandoned by a cancelled run never holds up ``asyncio.run`` shutdown.
    """

    def __init__(self, stream=None):
        super().__init__()
        self.stream = stream
        self._reader = None

    def _read(self, loop) -> None:
        try:
            (self.stream or sys.stdin).readline()
        except (OSError, ValueError) as e:
            log.debug("Cannot read CAPTCHA confirmation from stdin: %s", e)
            return
        try:
            loop.call_soon_threadsafe(self._event.set)
        except RuntimeError:
            log.debug("Event loop closed before CAPTCHA confirmation arrived")

    async def wait(self) -> None:
        if self._reader is None or not self._reader.is_alive():
            self._reader = threading.Thread(
                target=self._read, args=(asyncio.get_running_loop(),), name="captcha-stdin", daemon=True
            )
            self._reader.start()
        await super().wait()


def is_blocking_title(title: str) -> bool:
    t = (title or "").lower()
    return any(k in t for k in BLOCKING_KEYWORDS)


class BlockingGuard:
    def __init__(self, signal: CaptchaSignal, source: str = ""):
        self.signal = signal
        self.source = source
        self.state = GuardState.CLEAR

    async def check(self, page) -> GuardState:
        """Inspect the loaded page; only returns once the state is CLEAR.

        Raises BlockingDetected on a blocking title. A CAPTCHA marker parks
        the harvest until the signal is resolved, with no timeout.
        """
        title = await page.title()
        if is_blocking_title(title):
            self.state = GuardState.BLOCKED
            raise BlockingDetected(f"Detected blocking on {self.source or page.url}: {title!r}")

        for selector in CAPTCHA_SELECTORS:
            if await page.has_element(selector):
                self.state = GuardState.CAPTCHA_PENDING
                log.warning("CAPTCHA detected on %s, solve it manually then press Enter...", self.source or page.url)
                await self.signal.wait()
                log.info("CAPTCHA released, resuming")
                break

        self.state = GuardState.CLEAR
        return self.state
