# saas_reviews/config.py
import os
from datetime import date as Date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SOURCES = ("g2", "capterra", "trustradius")
VALID_SOURCES = SOURCES + ("all",)


def proxy_from_env() -> Optional[str]:
    return os.getenv("PLAYWRIGHT_PROXY") or os.getenv("HTTPS_PROXY") or os.getenv("HTTP_PROXY")


class ScrapeOptions(BaseModel):
    """Run configuration shared by the CLI and the HTTP API."""
    model_config = ConfigDict(extra="ignore")

    company: str
    url: Optional[str] = None
    source: str = "g2"
    start_date: Optional[Date] = None
    end_date: Optional[Date] = None
    limit: int = Field(100, gt=0)
    delay_ms: int = Field(2000, ge=0)
    timeout_ms: int = Field(30000, gt=0)
    headless: bool = True
    block_resources: bool = False
    proxy: Optional[str] = Field(default_factory=proxy_from_env)
    verbose: bool = False
    concurrent: bool = False
    run_timeout_ms: Optional[int] = Field(None, gt=0)
    retry_attempts: int = Field(3, ge=1)

    @field_validator("company")
    @classmethod
    def _company(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Company name is required")
        return v

    @field_validator("source")
    @classmethod
    def _source(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in VALID_SOURCES:
            raise ValueError(f"Invalid source. Valid options: {', '.join(VALID_SOURCES)}")
        return v

    @model_validator(mode="after")
    def _date_order(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("Start date cannot be after end date")
        return self

    def selected_sources(self) -> List[str]:
        if self.source == "all":
            return list(SOURCES)
        return [self.source]
