# saas_reviews/models.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Dict, Any
from datetime import date as Date

from saas_reviews.utils import clean_text, normalize_rating, parse_date_fuzzy, now_stamp

MAX_RATING = 5

CORE_FIELDS = (
    "id", "title", "content", "rating", "author", "date",
    "source", "pros", "cons", "scraped_at",
)


class ReviewRecord(BaseModel):
    """One normalized review, whatever site it came from.

    Text is whitespace-collapsed, ratings are clamped to 0..5 and dates are
    parsed into calendar dates on construction, so validating an already
    normalized record returns it unchanged.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    title: Optional[str] = None
    content: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=MAX_RATING)
    author: Optional[str] = None
    date: Optional[Date] = None
    source: str
    pros: Optional[str] = None
    cons: Optional[str] = None
    scraped_at: str = Field(default_factory=now_stamp)
    # site-specific extensions
    job_title: Optional[str] = None
    company_size: Optional[str] = None
    industry: Optional[str] = None
    helpful_count: Optional[int] = None
    verified: Optional[bool] = None

    @field_validator(
        "title", "content", "pros", "cons", "author",
        "job_title", "company_size", "industry",
        mode="before",
    )
    @classmethod
    def _clean(cls, v):
        return clean_text(v)

    @field_validator("rating", mode="before")
    @classmethod
    def _rating(cls, v):
        return normalize_rating(v, MAX_RATING)

    @field_validator("date", mode="before")
    @classmethod
    def _date(cls, v):
        return parse_date_fuzzy(v)

    def to_output(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        return {k: v for k, v in data.items() if k in CORE_FIELDS or v is not None}


class SourceError(BaseModel):
    scraper: str
    error: str


class RunStatistics(BaseModel):
    total_reviews: int = 0
    raw_reviews: int = 0
    sources: List[str] = Field(default_factory=list)
    errors: List[SourceError] = Field(default_factory=list)
    success_rate: int = 0
    processing_time: Optional[float] = None
    start_date: Optional[Date] = None
    end_date: Optional[Date] = None


class HarvestResult(BaseModel):
    reviews: List[ReviewRecord] = Field(default_factory=list)
    stats: RunStatistics
