# saas_reviews/utils.py
from dateutil import parser as dateparser
from datetime import datetime, date, time, timedelta
from pathlib import Path
from typing import Optional
import re

_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %b %Y",
    "%Y-%m-%d %H:%M:%S",
    "%m-%d-%Y",
]

_RELATIVE = re.compile(r"\b(\d+|an?)\s*(minute|hour|day|week|month|year)s?\s+ago")
_RELATIVE_MINUTES = {"minute": 1, "hour": 60, "day": 1440, "week": 7 * 1440, "month": 30 * 1440, "year": 365 * 1440}


def _parse_relative(text: str, today: date) -> Optional[date]:
    if text == "today":
        return today
    if text == "yesterday":
        return today - timedelta(days=1)
    m = _RELATIVE.search(text)
    if m:
        n = 1 if m.group(1) in ("a", "an") else int(m.group(1))
        # "3 hours ago" is still today; only whole days move the date back
        return today - timedelta(days=n * _RELATIVE_MINUTES[m.group(2)] // 1440)
    return None


def parse_date_fuzzy(s, today: Optional[date] = None) -> Optional[date]:
    """Best-effort parse of a site date string into a calendar date."""
    if s is None:
        return None
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    text = str(s).strip()
    if not text:
        return None
    today = today or date.today()
    rel = _parse_relative(text.lower(), today)
    if rel:
        return rel
    for fmt in _FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        parsed = dateparser.parse(text, fuzzy=True, default=datetime.combine(today, time())).date()
    except (ValueError, OverflowError):
        return None
    # fuzzy parsing turns stray numbers ("Helpful 25") into dates; reviews are never dated ahead
    return parsed if parsed <= today else None


def clean_text(s) -> Optional[str]:
    if s is None:
        return None
    text = re.sub(r"\s+", " ", str(s)).strip()
    return text or None


def extract_rating(value) -> Optional[float]:
    # "4.5 out of 5" -> 4.5
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    m = re.search(r"(\d+(?:\.\d+)?)", str(value))
    return float(m.group(1)) if m else None


def normalize_rating(value, max_rating: float = 5) -> Optional[float]:
    rating = extract_rating(value)
    if rating is None:
        return None
    rating = min(max(rating, 0.0), float(max_rating))
    return round(rating, 1)


def slugify(name: str) -> str:
    s = name.lower().strip()
    s = re.sub(r"[^a-z0-9]+", "-", s)
    return re.sub(r"-+", "-", s).strip("-")


def sanitize_company_name(name: str) -> str:
    s = re.sub(r"[^a-z0-9\s]", "", (name or "").lower())
    return re.sub(r"\s+", "_", s.strip())


def now_stamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def ensure_outputs_dir(path: str = "output") -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p
