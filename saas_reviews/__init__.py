from saas_reviews.models import HarvestResult, ReviewRecord, RunStatistics
from saas_reviews.config import ScrapeOptions
from saas_reviews.orchestrator import Orchestrator

__all__ = ["HarvestResult", "Orchestrator", "ReviewRecord", "RunStatistics", "ScrapeOptions"]
