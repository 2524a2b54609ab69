"""
UTC time helpers shared by the backlog and daily quiz services
"""
from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """Format as ISO-8601 UTC with millisecond precision and a trailing Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def day_key(moment: datetime) -> str:
    """YYYY-MM-DD of the UTC calendar date."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d")


def next_utc_midnight(moment: datetime) -> datetime:
    moment = moment.astimezone(timezone.utc)
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + timedelta(days=1)
