# saas_reviews/dedup.py
import re
from typing import Iterable, List

from saas_reviews.models import ReviewRecord


def review_key(review: ReviewRecord) -> str:
    # ids are minted per extraction, so identity comes from the content itself
    content = (review.content or "")[:100]
    author = review.author or ""
    day = review.date.isoformat() if review.date else ""
    return re.sub(r"\s+", "", f"{content}_{author}_{day}".lower())


def dedupe(reviews: Iterable[ReviewRecord]) -> List[ReviewRecord]:
    """Drop later records whose key was already seen; first occurrence wins."""
    seen = set()
    unique: List[ReviewRecord] = []
    for r in reviews:
        key = review_key(r)
        if key in seen:
            continue
        seen.add(key)
        unique.append(r)
    return unique
