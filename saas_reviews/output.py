# saas_reviews/output.py
import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from saas_reviews.errors import PersistenceFailure
from saas_reviews.models import ReviewRecord, RunStatistics
from saas_reviews.utils import ensure_outputs_dir, sanitize_company_name


def output_filename(company: str, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"{sanitize_company_name(company) or 'company'}_reviews_{stamp}.json"


def _write_json(path: Path, data) -> str:
    try:
        ensure_outputs_dir(str(path.parent))
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str, ensure_ascii=False)
    except OSError as e:
        raise PersistenceFailure(f"Failed to save file: {e}") from e
    return str(path)


def write_reviews(reviews: List[ReviewRecord], company: str, out_dir: str = "output") -> str:
    path = Path(out_dir) / output_filename(company)
    return _write_json(path, [r.to_output() for r in reviews])


def write_stats(stats: RunStatistics, reviews_path: str) -> str:
    path = Path(reviews_path)
    path = path.with_name(path.name.replace(".json", "_stats.json"))
    return _write_json(path, stats.model_dump(mode="json"))


def format_stats(stats: RunStatistics) -> str:
    bar = "=" * 50
    lines = [
        bar,
        "SCRAPING STATISTICS",
        bar,
        f"Total Reviews Collected: {stats.total_reviews}",
        f"Sources Scraped: {', '.join(stats.sources)}",
        f"Date Range: {stats.start_date} to {stats.end_date}",
        f"Processing Time: {stats.processing_time}s",
        f"Success Rate: {stats.success_rate}%",
    ]
    if stats.errors:
        lines.append(f"Errors Encountered: {len(stats.errors)}")
    lines.append(bar)
    return "\n".join(lines)
