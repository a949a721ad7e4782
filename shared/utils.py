"""Shared utility functions."""
import uuid
from datetime import datetime, timezone
from typing import Optional

MASK = "••••••••"


def generate_job_id() -> str:
    """Generate a unique job ID."""
    return str(uuid.uuid4())


def get_utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime to ISO format string."""
    if dt is None:
        return None
    return dt.isoformat()


def seconds_between(start: datetime, end: datetime) -> float:
    """Seconds elapsed from start to end (negative if end is earlier)."""
    return (end - start).total_seconds()


def mask_credential(username: str) -> str:
    """Render a credential for display without its password."""
    return f"{username}:{MASK}"


def calculate_exponential_backoff(attempt: int, base_delay: float = 1.0, max_delay: float = 60.0) -> float:
    """Calculate exponential backoff delay."""
    delay = base_delay * (2 ** attempt)
    return min(delay, max_delay)


def progress_percentage(processed: int, total: int) -> float:
    """Percentage of processed items, clamped to [0, 100]; 0/0 is 0."""
    if total <= 0:
        return 0.0
    pct = 100.0 * processed / total
    return max(0.0, min(100.0, pct))
