"""Shared test doubles: a scripted page driver and stub sources."""

import random

import pytest

from saas_reviews.config import ScrapeOptions
from saas_reviews.delay import DelayPolicy
from saas_reviews.guard import BlockingGuard, CaptchaSignal
from saas_reviews.models import ReviewRecord
from saas_reviews.scrapers.base import IdFactory, SourceContext


async def instant_sleep(_seconds):
    return None


class FakePage:
    """PageDriver double.

    ``pages`` maps a URL to the raw review dicts extraction returns while that
    URL is loaded; ``cards`` is used for any other URL. ``links`` maps the
    selector passed to a link query (``None`` when there is none) to anchors.
    """

    def __init__(self, pages=None, links=None, title="Product Reviews", markers=(), failing=()):
        self.pages = dict(pages or {})
        self.links = dict(links or {})
        self.page_title = title
        self.markers = set(markers)
        self.failing = set(failing)
        self.loaded = []
        self.clickable = {}
        self.cards = []
        self.height = 1000
        self.closed = False
        self.scrolls = []
        self._url = "about:blank"

    @property
    def url(self):
        return self._url

    async def load(self, url):
        self.loaded.append(url)
        if url in self.failing:
            return False
        self._url = url
        return True

    async def evaluate(self, script, arg=None):
        if "href" in script:
            return self.links.get(arg, [])
        return self.pages.get(self._url, self.cards)

    async def has_element(self, selector):
        return selector in self.markers

    async def click(self, selector):
        left = self.clickable.get(selector, 0)
        if left <= 0:
            return False
        self.clickable[selector] = left - 1
        self.on_click(selector)
        return True

    def on_click(self, selector):
        pass

    async def scroll_by(self, amount):
        self.scrolls.append(amount)

    async def scroll_height(self):
        return self.height

    async def auto_scroll(self):
        pass

    async def wait_for(self, selector, timeout_ms=None):
        return True

    async def title(self):
        return self.page_title

    async def close(self):
        self.closed = True


def raw_review(n, date="2024-01-15", **extra):
    data = {
        "title": f"Review {n}",
        "content": f"Great product, take {n}",
        "author": f"user{n}",
        "date": date,
        "rating": 4,
    }
    data.update(extra)
    return data


def record(n, source="G2", date="2024-01-15", **extra):
    return ReviewRecord(id=f"{source.lower()}_{n}", source=source, **raw_review(n, date=date, **extra))


class StubSource:
    """SourceDriver that serves canned batches."""

    def __init__(self, ctx, name, batches, url="https://reviews.test/product/reviews",
                 error=None, cleanup_error=None):
        self.ctx = ctx
        self.name = name
        self.batches = list(batches)
        self.url = url
        self.error = error
        self.cleanup_error = cleanup_error
        self.fetches = 0
        self.resolved_with = None
        self.harvest_url = None
        self.cleaned = False

    async def resolve_product_url(self, identifier):
        self.resolved_with = identifier
        return self.url

    async def fetch_next_batch(self, cursor):
        self.harvest_url = cursor.url
        self.fetches += 1
        if self.error is not None:
            raise self.error
        if not self.batches:
            return []
        return self.batches.pop(0)

    async def cleanup(self):
        self.cleaned = True
        if self.cleanup_error is not None:
            raise self.cleanup_error


@pytest.fixture
def fake_page():
    return FakePage


@pytest.fixture
def make_record():
    return record


@pytest.fixture
def make_raw():
    return raw_review


@pytest.fixture
def options():
    return ScrapeOptions(company="Slack", limit=10, delay_ms=0, proxy=None)


@pytest.fixture
def make_ctx(options):
    def _make(page, signal=None, name="test", **overrides):
        opts = options.model_copy(update=overrides)
        return SourceContext(
            page=page,
            options=opts,
            guard=BlockingGuard(signal or CaptchaSignal(), name),
            delay=DelayPolicy(opts.delay_ms, rng=random.Random(7), sleep=instant_sleep),
            new_id=IdFactory(random.Random(7)),
        )
    return _make


@pytest.fixture
def stub_source():
    """Build a source factory; every instance it creates lands in ``created``."""
    def _factory(name, batches=(), created=None, **kwargs):
        def factory(ctx):
            src = StubSource(ctx, name, [list(b) for b in batches], **kwargs)
            if created is not None:
                created.append(src)
            return src
        factory.name = name
        return factory
    return _factory


@pytest.fixture
def session_factory():
    sessions = []

    async def _open(options):
        page = FakePage()
        sessions.append(page)
        return page

    _open.sessions = sessions
    return _open
