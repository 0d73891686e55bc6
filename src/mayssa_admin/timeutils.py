"""Clock helpers; all persisted timestamps are naive UTC."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from .config import get_settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def business_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def local_now() -> datetime:
    """Current wall-clock time in the shop's timezone (timezone aware)."""

    return datetime.now(business_tz())


def to_local(moment: datetime) -> datetime:
    """Interpret naive datetimes as business-local and convert aware ones."""

    tz = business_tz()
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)
