# saas_reviews/filters.py
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from saas_reviews.models import ReviewRecord


@dataclass(frozen=True)
class DateRange:
    """Inclusive [start, end] window.

    The window is only active when both bounds are set. While active, records
    with no parsable date are dropped; otherwise every record passes.
    """
    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def active(self) -> bool:
        return self.start is not None and self.end is not None

    def contains(self, review: ReviewRecord) -> bool:
        if not self.active:
            return True
        if review.date is None:
            return False
        return self.start <= review.date <= self.end

    def apply(self, reviews: Iterable[ReviewRecord]) -> List[ReviewRecord]:
        return [r for r in reviews if self.contains(r)]
