"""
Miscellaneous helper utilities for Media Tracker.
"""

import os
import re
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from typing import Optional, Tuple, Union

from .display import log_info, log_warning

DateLike = Union[date, datetime, str]

# Trailing "Z" or fractional seconds of any precision are accepted
_FRACTION_PATTERN = re.compile(r'\.(\d+)')


@lru_cache(maxsize=1)
def get_project_root() -> str:
    """
    Get the project root directory path.

    Returns:
        Absolute path to the project root (parent of utils/).
    """
    return os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse an upstream ISO-8601 timestamp into an aware UTC datetime.

    Args:
        value: String such as "2024-01-02T10:00:00.000Z"

    Returns:
        Aware datetime, or None if the value is missing or unparseable
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'

    # fromisoformat() only takes 3 or 6 fractional digits on older interpreters
    match = _FRACTION_PATTERN.search(text)
    if match:
        digits = (match.group(1) + '000000')[:6]
        text = text[:match.start()] + '.' + digits + text[match.end():]

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """
    Render a datetime as ISO-8601 UTC with a trailing Z.

    Milliseconds are only included when non-zero.
    """
    if value is None:
        return None
    value = value.astimezone(timezone.utc)
    text = value.strftime('%Y-%m-%dT%H:%M:%S')
    if value.microsecond:
        text += f".{value.microsecond // 1000:03d}"
    return text + 'Z'


def _to_bound(value: DateLike, end_of_day: bool) -> datetime:
    if isinstance(value, str):
        parsed = parse_timestamp(value) if 'T' in value else None
        if parsed is not None:
            return parsed
        value = date.fromisoformat(value.strip())

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    bound = time(23, 59, 59, 999000) if end_of_day else time(0, 0, 0)
    return datetime.combine(value, bound, tzinfo=timezone.utc)


def resolve_date_range(start: DateLike, end: DateLike) -> Tuple[datetime, datetime]:
    """
    Turn a caller-supplied range into inclusive UTC datetime bounds.

    A bare date start means 00:00:00.000, a bare date end 23:59:59.999.

    Args:
        start: date, datetime or ISO string
        end: date, datetime or ISO string

    Returns:
        (start, end) as aware datetimes

    Raises:
        ValueError: If a bound cannot be parsed or start is after end
    """
    start_dt = _to_bound(start, end_of_day=False)
    end_dt = _to_bound(end, end_of_day=True)
    if start_dt > end_dt:
        raise ValueError(f"Start of range {start_dt} is after end {end_dt}")
    return start_dt, end_dt


def get_yesterday(today: Optional[date] = None) -> date:
    """Get yesterday's date, the default tracking range."""
    today = today or date.today()
    return today - timedelta(days=1)


def cleanup_old_logs(log_dir: str, retention_days: int) -> None:
    """
    Remove log files older than specified retention period.

    Args:
        log_dir: Directory containing log files
        retention_days: Number of days to retain logs (0 = keep all)
    """
    if retention_days <= 0:
        return

    try:
        cutoff_time = datetime.now() - timedelta(days=retention_days)

        for filename in os.listdir(log_dir):
            if not filename.endswith('.log'):
                continue

            filepath = os.path.join(log_dir, filename)
            try:
                file_mtime = datetime.fromtimestamp(os.path.getmtime(filepath))
                if file_mtime < cutoff_time:
                    os.remove(filepath)
                    log_info(f"Removed old log: {filename} (age: {(datetime.now() - file_mtime).days} days)")
            except Exception as e:
                log_warning(f"Failed to remove old log {filename}: {e}")

    except Exception as e:
        log_warning(f"Error during log cleanup: {e}")
