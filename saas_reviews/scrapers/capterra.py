# saas_reviews/scrapers/capterra.py
import logging
import math
from typing import List, Optional
from urllib.parse import quote

from saas_reviews.errors import NavigationFailure
from saas_reviews.models import ReviewRecord
from saas_reviews.scrapers.base import (
    PaginationCursor,
    SourceContext,
    build_records,
    open_page,
    pick_product_link,
)
from saas_reviews.utils import slugify

log = logging.getLogger(__name__)

SEARCH_RESULTS = ".SearchResultCard, .search-result"
REVIEW_CARDS = ".review-card, [data-container-view='ca-review']"

LINKS_JS = """
() => Array.from(document.querySelectorAll('a[href*="/p/"]')).map(a => ({
    href: a.href || '',
    text: (a.textContent || '').trim()
}))
"""

EXTRACT_JS = """
() => {
    const reviews = [];
    document.querySelectorAll(".review-card, [data-container-view='ca-review']").forEach(el => {
        const ratingText = el.querySelector('.ms-1')?.textContent || null;
        let pros = null, cons = null;
        el.querySelectorAll('p.fw-bold').forEach(label => {
            const text = label.innerText.trim().toLowerCase();
            if (text.startsWith('pros')) pros = label.nextElementSibling?.innerText || null;
            if (text.startsWith('cons')) cons = label.nextElementSibling?.innerText || null;
        });
        const body = [];
        el.querySelectorAll('p').forEach(p => {
            const txt = (p.innerText || '').trim();
            if (txt && !/^(pros|cons)\\s*:?$/i.test(txt) && txt !== pros && txt !== cons) body.push(txt);
        });
        reviews.push({
            title: el.querySelector('h3.h5')?.textContent || null,
            rating: ratingText,
            date: el.querySelector('.text-ash span.ms-2')?.textContent || null,
            author: el.querySelector('.h5.fw-bold')?.textContent || null,
            content: body.join('\\n') || null,
            pros, cons
        });
    });
    return reviews;
}
"""


class CapterraSource:
    name = "Capterra"
    BASE_URL = "https://www.capterra.com"
    SEARCH_URL = "https://www.capterra.com/search"
    PER_PAGE = 20

    def __init__(self, ctx: SourceContext):
        self.ctx = ctx
        self.max_pages = max(1, math.ceil(ctx.options.limit / self.PER_PAGE))

    async def resolve_product_url(self, identifier: str) -> Optional[str]:
        log.info("Searching for %s on Capterra...", identifier)
        search_url = f"{self.SEARCH_URL}?query={quote(slugify(identifier))}"
        if not await open_page(self.ctx, search_url):
            return None
        if not await self.ctx.page.wait_for(SEARCH_RESULTS, timeout_ms=10000):
            log.debug("Search results not found, trying alternative approach")

        link = pick_product_link(await self.ctx.page.evaluate(LINKS_JS), identifier)
        if not link:
            log.warning("No Capterra product found for %s", identifier)
            return None
        url = link.rstrip("/") + "/reviews"
        log.info("Found Capterra product page: %s", url)
        return url

    async def fetch_next_batch(self, cursor: PaginationCursor) -> List[ReviewRecord]:
        url = f"{cursor.url.rstrip('/')}?page={cursor.page}"
        log.debug("Navigating to Capterra page %s: %s", cursor.page, url)
        if not await open_page(self.ctx, url):
            if cursor.step == 0:
                raise NavigationFailure(f"Could not load {url}")
            return []

        await self.ctx.page.auto_scroll()
        if not await self.ctx.page.wait_for(REVIEW_CARDS, timeout_ms=self.ctx.options.timeout_ms):
            log.debug("No reviews found on page %s", cursor.page)

        raw = await self.ctx.page.evaluate(EXTRACT_JS)
        cursor.page += 1
        if cursor.page > self.max_pages:
            cursor.exhausted = True
        return build_records(raw, self.ctx, self.name, "capterra")

    async def cleanup(self) -> None:
        await self.ctx.page.close()
