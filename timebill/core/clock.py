from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    # all timestamps are stored naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def seconds_between(start: datetime, end: datetime) -> int:
    return int((to_naive_utc(end) - to_naive_utc(start)).total_seconds())


def seconds_to_hours(seconds) -> float:
    return round(int(seconds or 0) / 3600, 2)
