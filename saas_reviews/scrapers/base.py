# saas_reviews/scrapers/base.py
import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Set, TypeVar

from pydantic import ValidationError

from saas_reviews.config import ScrapeOptions
from saas_reviews.dedup import review_key
from saas_reviews.delay import DelayPolicy
from saas_reviews.driver import PageDriver
from saas_reviews.errors import ExtractionError, HarvestCancelled
from saas_reviews.filters import DateRange
from saas_reviews.guard import BlockingGuard
from saas_reviews.models import ReviewRecord

log = logging.getLogger(__name__)

T = TypeVar("T")

NUDGE_PX = (100, 300)


@dataclass
class PaginationCursor:
    url: str
    page: int = 1
    step: int = 0
    collected: int = 0
    attempts: int = 0
    last_height: int = 0
    exhausted: bool = False
    seen: Set[str] = field(default_factory=set)

    def take_unseen(self, batch: List[ReviewRecord]) -> List[ReviewRecord]:
        fresh = []
        for r in batch:
            key = review_key(r)
            if key not in self.seen:
                self.seen.add(key)
                fresh.append(r)
        return fresh


class IdFactory:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def __call__(self, prefix: str) -> str:
        return f"{prefix}_{self.rng.getrandbits(48):012x}"


@dataclass
class SourceContext:
    """Everything an adapter gets for one harvest. Options are a private copy."""
    page: PageDriver
    options: ScrapeOptions
    guard: BlockingGuard
    delay: DelayPolicy
    new_id: IdFactory = field(default_factory=IdFactory)


class SourceDriver(Protocol):
    name: str

    async def resolve_product_url(self, identifier: str) -> Optional[str]: ...

    async def fetch_next_batch(self, cursor: PaginationCursor) -> List[ReviewRecord]: ...

    async def cleanup(self) -> None: ...


class CancelToken:
    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


async def open_page(ctx: SourceContext, url: str) -> bool:
    """Navigate, nudge the viewport, let the page settle and clear the blocking guard."""
    if not await ctx.page.load(url):
        return False
    await ctx.page.scroll_by(ctx.delay.rng.randint(*NUDGE_PX))
    await ctx.delay.settle()
    await ctx.guard.check(ctx.page)
    return True


def build_records(raw_items, ctx: SourceContext, source: str, prefix: str) -> List[ReviewRecord]:
    records: List[ReviewRecord] = []
    for idx, raw in enumerate(raw_items or []):
        try:
            if not isinstance(raw, dict):
                raise ExtractionError(f"unexpected review payload {type(raw).__name__}")
            data = dict(raw)
            data["id"] = data.get("id") or ctx.new_id(prefix)
            data["source"] = source
            try:
                records.append(ReviewRecord.model_validate(data))
            except ValidationError as e:
                raise ExtractionError(str(e)) from e
        except ExtractionError as e:
            log.warning("Skipping review %s from %s: %s", idx, source, e)
    return records


def pick_product_link(links: List[Dict], identifier: str) -> Optional[str]:
    """Prefer a link whose text contains the identifier, else the first one."""
    needle = identifier.lower()
    hrefs = [l for l in links or [] if l.get("href")]
    for l in hrefs:
        if needle in (l.get("text") or "").lower():
            return l["href"]
    return hrefs[0]["href"] if hrefs else None


async def guarded(coro: Awaitable[T], token: Optional[CancelToken], what: str = "step") -> T:
    """Await ``coro`` unless ``token`` fires first, then cancel it and raise."""
    if token is None:
        return await coro
    if token.cancelled:
        if asyncio.iscoroutine(coro):
            coro.close()
        raise HarvestCancelled(f"harvest cancelled before {what}")
    task = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()
    if not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        raise HarvestCancelled(f"harvest cancelled mid-{what}")
    return task.result()


async def harvest(
    source: SourceDriver,
    url: str,
    *,
    limit: int,
    date_range: DateRange,
    delay: DelayPolicy,
    sink: List[ReviewRecord],
    token: Optional[CancelToken] = None,
) -> int:
    """Drive one source page by page, appending accepted records to ``sink``.

    Stops when the limit is reached, a batch brings nothing new, a non-empty
    batch loses everything to the date filter (sites list newest first), or
    the adapter marks the cursor exhausted. Returns the number collected.
    """
    cursor = PaginationCursor(url=url)
    while True:
        if cursor.collected >= limit:
            log.debug("%s: limit %s reached", source.name, limit)
            break
        if cursor.exhausted:
            log.debug("%s: no more pages", source.name)
            break
        batch = cursor.take_unseen(await guarded(source.fetch_next_batch(cursor), token, "fetch"))
        cursor.step += 1
        if not batch:
            log.debug("%s: no new reviews found, stopping pagination", source.name)
            break
        kept = date_range.apply(batch)
        log.debug("%s step %s: %s raw, %s after date filter", source.name, cursor.step, len(batch), len(kept))
        if not kept:
            break
        kept = kept[: limit - cursor.collected]
        sink.extend(kept)
        cursor.collected += len(kept)
        if cursor.collected < limit and not cursor.exhausted:
            await guarded(delay.pause(), token, "pause")
    return cursor.collected


SourceFactory = Callable[[SourceContext], SourceDriver]
