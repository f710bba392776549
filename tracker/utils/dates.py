"""
Date/time helpers shared by the domain rules and the services.

Timestamps are stored timezone-aware. SQLite (used by the tests) hands back
naive values, which are read as UTC.
"""
import math
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from tracker.config import get_settings

DAY = timedelta(days=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_iso(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp as stored inside JSONB documents"""
    if value is None or isinstance(value, datetime):
        return ensure_aware(value)
    return ensure_aware(datetime.fromisoformat(value.replace("Z", "+00:00")))


def to_iso(value: datetime) -> str:
    return ensure_aware(value).isoformat()


def local_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def local_day(value: datetime, tz: ZoneInfo | None = None) -> date:
    """Calendar day of a timestamp, truncated at local midnight"""
    return ensure_aware(value).astimezone(tz or local_tz()).date()


def days_until(due: datetime, now: datetime) -> int:
    """ceil((due - now) / 1 day); still 0 for the first day after the moment has passed"""
    delta = ensure_aware(due) - ensure_aware(now)
    return math.ceil(delta / DAY)


def local_day_bounds(day: date, tz: ZoneInfo | None = None) -> tuple[datetime, datetime]:
    """[start, end) of a local calendar day, as aware datetimes"""
    tz = tz or local_tz()
    start = datetime.combine(day, datetime.min.time(), tzinfo=tz)
    end = datetime.combine(day + DAY, datetime.min.time(), tzinfo=tz)
    return start, end
