# saas_reviews/scrapers/g2.py
import logging
import math
from typing import List, Optional

from saas_reviews.errors import NavigationFailure
from saas_reviews.models import ReviewRecord
from saas_reviews.scrapers.base import PaginationCursor, SourceContext, build_records, open_page
from saas_reviews.utils import slugify

log = logging.getLogger(__name__)

REVIEW_SELECTOR = 'article [itemprop="reviewRating"]'

EXTRACT_JS = """
() => {
    const reviews = [];
    document.querySelectorAll('article').forEach(el => {
        if (!el.querySelector('[itemprop="reviewRating"]')) return;
        const rating = el.querySelector('[itemprop="reviewRating"] meta[itemprop="ratingValue"]')?.content;
        const author = el.querySelector('[itemprop="author"] meta[itemprop="name"]')?.content;
        const date = el.querySelector('meta[itemprop="datePublished"]')?.content;
        const titleEl = el.querySelector('[itemprop="name"] .elv-font-bold') || el.querySelector('[itemprop="name"]');
        const content = el.querySelector('[itemprop="reviewBody"]')?.innerText || null;
        let pros = null, cons = null;
        el.querySelectorAll('section').forEach(sec => {
            const heading = (sec.querySelector('div')?.innerText || '').toLowerCase();
            const para = sec.querySelector('p')?.innerText || null;
            if (heading.includes('like best')) pros = para;
            if (heading.includes('dislike') || heading.includes('could be better')) cons = para;
        });
        reviews.push({
            title: titleEl ? titleEl.textContent : null,
            rating: rating || null,
            author: author || null,
            date: date || null,
            content, pros, cons
        });
    });
    return reviews;
}
"""


class G2Source:
    """G2 product reviews, paginated with ``?page=N``.

    G2 shows roughly ten reviews a page, so a harvest never asks for more
    than ``ceil(limit / 10)`` pages.
    """
    name = "G2"
    BASE_URL = "https://www.g2.com"
    PER_PAGE = 10

    def __init__(self, ctx: SourceContext):
        self.ctx = ctx
        self.max_pages = max(1, math.ceil(ctx.options.limit / self.PER_PAGE))

    async def resolve_product_url(self, identifier: str) -> Optional[str]:
        slug = slugify(identifier)
        if not slug:
            return None
        url = f"{self.BASE_URL}/products/{slug}/reviews"
        log.info("Using direct G2 URL: %s", url)
        return url

    def page_url(self, base: str, page: int) -> str:
        base = base.split("?")[0].split("#")[0]
        return base if page == 1 else f"{base}?page={page}#reviews"

    async def fetch_next_batch(self, cursor: PaginationCursor) -> List[ReviewRecord]:
        url = self.page_url(cursor.url, cursor.page)
        log.debug("Navigating to G2 page %s: %s", cursor.page, url)
        if not await open_page(self.ctx, url):
            if cursor.step == 0:
                raise NavigationFailure(f"Could not load {url}")
            return []

        if not await self.ctx.page.wait_for(REVIEW_SELECTOR, timeout_ms=self.ctx.options.timeout_ms):
            log.debug("Review elements not found on page %s, possibly slow load or block", cursor.page)
        await self.ctx.page.auto_scroll()

        raw = await self.ctx.page.evaluate(EXTRACT_JS)
        cursor.page += 1
        if cursor.page > self.max_pages:
            cursor.exhausted = True
        return build_records(raw, self.ctx, self.name, "g2")

    async def cleanup(self) -> None:
        await self.ctx.page.close()
