"""TrustRadius adapter.

TrustRadius has no dependable end-of-list marker: a review page grows via a
"load more" button, infinite scroll, or occasionally classic pagination. Each
step advances by whichever of those works, then re-extracts every card on the
page; the harvest loop discards cards it has already seen. After
``MAX_ATTEMPTS`` steps the cursor is marked exhausted.
"""
import logging
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

log = logging.getLogger(__name__)

SEARCH_RESULTS = '.search-result, .product-card, [data-testid="search-result"]'
REVIEW_CARDS = '.review-card, .review-item, [data-testid="review"], .tr-review'
LOAD_MORE = (
    '[data-testid="load-more"], .load-more, .show-more, '
    'button[class*="more"], .btn-load-more, .tr-load-more'
)
NEXT_PAGE = (
    '[data-testid="pagination-next"], .pagination-next, '
    'a[aria-label="Next"], .next-page, [rel="next"]'
)

LINKS_JS = """
(selector) => Array.from(document.querySelectorAll(selector)).map(a => ({
    href: a.href || '',
    text: (a.textContent || '').trim()
}))
"""

EXTRACT_JS = """
() => {
    const pick = (el, sels) => el.querySelector(sels.join(', '));
    const text = node => node ? node.textContent : null;
    const ratingOf = node => {
        if (!node) return null;
        const attr = node.getAttribute('data-rating') || node.getAttribute('data-score') || node.getAttribute('data-value');
        if (attr) return attr;
        const stars = node.querySelectorAll('.star, [class*="star"]');
        if (stars.length) {
            let score = 0;
            stars.forEach(s => {
                if (s.classList.contains('filled') || s.classList.contains('active') || s.classList.contains('full')) score += 1;
                else if (s.classList.contains('half')) score += 0.5;
            });
            return score;
        }
        return node.getAttribute('aria-label') || node.getAttribute('title') || node.textContent;
    };
    const reviews = [];
    document.querySelectorAll('.review-card, .tr-review, [data-testid="review"], .review-item, .review-container').forEach(el => {
        const dateEl = pick(el, ['.review-date', '[datetime]', '.date', 'time', '.tr-review-date']);
        const helpful = text(pick(el, ['.helpful-count', '.vote-count', '.tr-helpful']));
        const review = {
            title: text(pick(el, ['.review-title', 'h3', '.title', '[data-testid="review-title"]', '.tr-review-title'])),
            content: text(pick(el, ['.review-body', '.review-text', '.content', 'p', '.tr-review-body'])),
            rating: ratingOf(pick(el, ['.rating', '.stars', '[data-testid="rating"]', '.tr-rating', '.score'])),
            author: text(pick(el, ['.reviewer-name', '.author', '.reviewer', '.tr-reviewer-name'])),
            date: dateEl ? (dateEl.getAttribute('datetime') || dateEl.textContent) : null,
            job_title: text(pick(el, ['.job-title', '.reviewer-title', '.tr-job-title'])),
            company_size: text(pick(el, ['.company-size', '.reviewer-company', '.tr-company-size'])),
            industry: text(pick(el, ['.industry', '.reviewer-industry', '.tr-industry'])),
            pros: text(pick(el, ['.pros', '.review-pros', '[data-testid="pros"]', '.tr-pros'])),
            cons: text(pick(el, ['.cons', '.review-cons', '[data-testid="cons"]', '.tr-cons'])),
            helpful_count: helpful && helpful.match(/\\d+/) ? parseInt(helpful.match(/\\d+/)[0]) : 0,
            verified: pick(el, ['.verified', '[data-testid="verified"]', '.tr-verified']) !== null
        };
        if (review.title || review.content) reviews.push(review);
    });
    return reviews;
}
"""


class TrustRadiusSource:
    name = "TrustRadius"
    BASE_URL = "https://www.trustradius.com"
    SEARCH_URL = "https://www.trustradius.com/search"
    MAX_ATTEMPTS = 10

    def __init__(self, ctx: SourceContext):
        self.ctx = ctx

    async def resolve_product_url(self, identifier: str) -> Optional[str]:
        log.info("Searching for %s on TrustRadius...", identifier)
        search_url = f"{self.SEARCH_URL}?query={quote(identifier)}"
        if not await open_page(self.ctx, search_url):
            return None
        if not await self.ctx.page.wait_for(SEARCH_RESULTS, timeout_ms=10000):
            log.debug("Search results not found")

        products = await self.ctx.page.evaluate(LINKS_JS, 'a[href*="/products/"]') or []
        vendors = await self.ctx.page.evaluate(LINKS_JS, 'a[href*="/vendor/"]') or []
        needle = identifier.lower()
        link = None
        for candidates in (products, vendors):
            exact = [c for c in candidates if needle in (c.get("text") or "").lower()]
            if exact:
                link = pick_product_link(exact, identifier)
                break
        if link is None:
            link = pick_product_link(products, identifier)
        if not link:
            log.warning("No TrustRadius product found for %s", identifier)
            return None

        url = link if "/reviews" in link else link.rstrip("/") + "/reviews"
        log.info("Found TrustRadius product page: %s", url)
        return url

    async def _advance(self, cursor: PaginationCursor) -> bool:
        page = self.ctx.page
        if await page.click(LOAD_MORE):
            await self.ctx.delay.settle()
            await self.ctx.guard.check(page)
            return True

        await page.auto_scroll()
        height = await page.scroll_height()
        if height > cursor.last_height:
            cursor.last_height = height
            await self.ctx.delay.settle()
            return True

        if await page.click(NEXT_PAGE):
            cursor.page += 1
            await self.ctx.delay.settle()
            await self.ctx.guard.check(page)
            return True
        return False

    async def fetch_next_batch(self, cursor: PaginationCursor) -> List[ReviewRecord]:
        cursor.attempts += 1
        if cursor.attempts >= self.MAX_ATTEMPTS:
            cursor.exhausted = True

        if cursor.step == 0:
            if not await open_page(self.ctx, cursor.url):
                raise NavigationFailure(f"Could not load {cursor.url}")
            cursor.last_height = await self.ctx.page.scroll_height()
        elif not await self._advance(cursor):
            log.debug("Nothing more to load on TrustRadius")
            cursor.exhausted = True
            return []

        if not await self.ctx.page.wait_for(REVIEW_CARDS, timeout_ms=10000):
            log.debug("Review elements not found")
        raw = await self.ctx.page.evaluate(EXTRACT_JS)
        return build_records(raw, self.ctx, self.name, "trustradius")

    async def cleanup(self) -> None:
        await self.ctx.page.close()
