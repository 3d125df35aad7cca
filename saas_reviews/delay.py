# saas_reviews/delay.py
import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, Tuple

log = logging.getLogger(__name__)

JITTER_MS = (1000, 3000)

Sleep = Callable[[float], Awaitable[None]]


class DelayPolicy:
    """Unconditional politeness delays.

    ``pause`` runs between pagination iterations (configured base plus
    jitter); ``settle`` runs after each navigation (jitter only). Randomness
    and sleeping are injected so tests can make both deterministic.
    """

    def __init__(
        self,
        base_ms: int = 2000,
        jitter_ms: Tuple[int, int] = JITTER_MS,
        rng: Optional[random.Random] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.base_ms = base_ms
        self.jitter_ms = jitter_ms
        self.rng = rng or random.Random()
        self.sleep = sleep or asyncio.sleep

    def jitter(self) -> int:
        lo, hi = self.jitter_ms
        return self.rng.randint(lo, hi)

    async def pause(self) -> float:
        ms = self.base_ms + self.jitter()
        log.debug("pausing %sms", ms)
        await self.sleep(ms / 1000)
        return ms

    async def settle(self) -> float:
        ms = self.jitter()
        await self.sleep(ms / 1000)
        return ms
