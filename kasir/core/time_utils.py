from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from kasir.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def reference_zone() -> ZoneInfo:
    return ZoneInfo(settings.reference_timezone)


def local_date(value: datetime) -> date:
    """Calendar day of ``value`` in the configured reference timezone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(reference_zone()).date()


def today_local(now: datetime | None = None) -> date:
    return local_date(now or utcnow())


def tomorrow_local(now: datetime | None = None) -> date:
    return today_local(now) + timedelta(days=1)
