# saas_reviews/orchestrator.py
import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from saas_reviews.config import ScrapeOptions
from saas_reviews.dedup import dedupe
from saas_reviews.delay import DelayPolicy, Sleep
from saas_reviews.driver import PageDriver, open_playwright_session
from saas_reviews.errors import HarvestCancelled, NoDataCollected, SourceUnavailable
from saas_reviews.filters import DateRange
from saas_reviews.guard import BlockingGuard, CaptchaSignal, ConsoleCaptchaSignal
from saas_reviews.models import HarvestResult, ReviewRecord, RunStatistics, SourceError
from saas_reviews.scrapers import SCRAPER_MAP
from saas_reviews.scrapers.base import CancelToken, IdFactory, SourceContext, SourceFactory, guarded, harvest

log = logging.getLogger(__name__)

SessionFactory = Callable[[ScrapeOptions], Awaitable[PageDriver]]


def sort_newest_first(reviews: Iterable[ReviewRecord]) -> List[ReviewRecord]:
    # stable: equal dates keep merge order, undated records go last
    return sorted(reviews, key=lambda r: (r.date is None, -r.date.toordinal() if r.date else 0))


class Orchestrator:
    """Runs the selected sources and merges them into one ordered result.

    A failing source only lands in ``stats.errors``; the run fails as a
    whole (``NoDataCollected``) only when nothing survives the date filter
    anywhere. Every source gets its own page session, closed on every exit
    path.
    """

    def __init__(
        self,
        options: ScrapeOptions,
        *,
        session_factory: Optional[SessionFactory] = None,
        sources: Optional[Dict[str, SourceFactory]] = None,
        captcha_signal: Optional[CaptchaSignal] = None,
        rng: Optional[random.Random] = None,
        sleep: Optional[Sleep] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.options = options
        self.session_factory = session_factory or open_playwright_session
        self.sources = sources if sources is not None else SCRAPER_MAP
        self.captcha_signal = captcha_signal or ConsoleCaptchaSignal()
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.clock = clock
        self.date_range = DateRange(options.start_date, options.end_date)
        self.token = CancelToken()
        self.stats = RunStatistics(start_date=options.start_date, end_date=options.end_date)
        self._lock = asyncio.Lock()

    def abort(self) -> None:
        log.warning("Abort requested, stopping in-flight harvests")
        self.token.cancel()

    async def _record_error(self, name: str, error: Exception) -> None:
        async with self._lock:
            self.stats.errors.append(SourceError(scraper=name, error=str(error) or type(error).__name__))

    def _context(self, page: PageDriver, name: str) -> SourceContext:
        return SourceContext(
            page=page,
            options=self.options.model_copy(deep=True),
            guard=BlockingGuard(self.captcha_signal, name),
            delay=DelayPolicy(self.options.delay_ms, rng=self.rng, sleep=self.sleep),
            new_id=IdFactory(self.rng),
        )

    async def _run_source(self, key: str, sink: List[ReviewRecord]) -> None:
        factory = self.sources[key]
        name = getattr(factory, "name", key)
        session = None
        source = None
        try:
            log.info("Scraping from %s...", name)
            session = await self.session_factory(self.options)
            ctx = self._context(session, name)
            source = factory(ctx)

            url = self.options.url or await guarded(
                source.resolve_product_url(self.options.company), self.token, "product lookup"
            )
            if not url:
                raise SourceUnavailable(f"Could not find product page for {self.options.company} on {name}")

            count = await harvest(
                source,
                url,
                limit=self.options.limit,
                date_range=self.date_range,
                delay=ctx.delay,
                sink=sink,
                token=self.token,
            )
            log.info("Collected %s reviews from %s", count, name)
        except SourceUnavailable as e:
            log.warning("%s", e)
            await self._record_error(name, e)
        except HarvestCancelled as e:
            log.warning("%s: %s, keeping %s reviews", name, e, len(sink))
            await self._record_error(name, e)
        except Exception as e:
            log.error("Error with %s: %s", name, e)
            await self._record_error(name, e)
        finally:
            try:
                if source is not None:
                    await source.cleanup()
                elif session is not None:
                    await session.close()
            except Exception as e:
                log.debug("Cleanup error for %s: %s", name, e)
            if sink:
                async with self._lock:
                    self.stats.sources.append(name)

    async def _run_all(self, keys: List[str], sinks: Dict[str, List[ReviewRecord]]) -> None:
        if self.options.concurrent:
            await asyncio.gather(*(self._run_source(k, sinks[k]) for k in keys))
            return
        for k in keys:
            if self.token.cancelled:
                log.warning("Run cancelled, skipping %s", k)
                await self._record_error(getattr(self.sources[k], "name", k), HarvestCancelled("skipped after cancel"))
                continue
            await self._run_source(k, sinks[k])

    async def run(self) -> HarvestResult:
        started = self.clock()
        log.info("Starting scraping for: %s", self.options.company)
        keys = self.options.selected_sources()
        sinks: Dict[str, List[ReviewRecord]] = {k: [] for k in keys}

        timer = None
        if self.options.run_timeout_ms:
            timer = asyncio.get_running_loop().call_later(self.options.run_timeout_ms / 1000, self.abort)
        try:
            await self._run_all(keys, sinks)
        finally:
            if timer is not None:
                timer.cancel()

        merged = [r for k in keys for r in sinks[k]]
        self.stats.raw_reviews = len(merged)
        self.stats.processing_time = round(self.clock() - started, 3)
        if not merged:
            log.error("No reviews were collected from any source")
            raise NoDataCollected(f"No reviews were collected for {self.options.company}")

        reviews = sort_newest_first(dedupe(merged))
        self.stats.total_reviews = len(reviews)
        self.stats.success_rate = round(len(reviews) / len(merged) * 100)
        return HarvestResult(reviews=reviews, stats=self.stats)
