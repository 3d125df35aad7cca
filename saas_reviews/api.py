# saas_reviews/api.py
import logging

from fastapi import FastAPI, HTTPException

from saas_reviews.config import SOURCES, ScrapeOptions
from saas_reviews.errors import NoDataCollected
from saas_reviews.guard import CaptchaSignal
from saas_reviews.orchestrator import Orchestrator

log = logging.getLogger(__name__)

app = FastAPI(title="SaaS Review Scraper API", version="0.2.0")

# Harvests started over HTTP have no terminal; a pending CAPTCHA is released
# through POST /captcha/resolve instead.
captcha_signal = CaptchaSignal()


def build_orchestrator(options: ScrapeOptions) -> Orchestrator:
    return Orchestrator(options, captcha_signal=captcha_signal)


@app.get("/health")
async def health():
    return {"status": "ok", "mode": "async", "sources": list(SOURCES)}


@app.post("/captcha/resolve")
async def resolve_captcha():
    captcha_signal.resolve()
    return {"status": "resolved"}


@app.post("/scrape")
async def scrape(req: ScrapeOptions):
    orchestrator = build_orchestrator(req)
    try:
        result = await orchestrator.run()
    except NoDataCollected as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {
        "reviews": [r.to_output() for r in result.reviews],
        "stats": result.stats.model_dump(mode="json"),
    }
