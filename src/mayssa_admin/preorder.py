"""Pre-order opening windows and service hours."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from . import schemas
from .database import atomic
from .feed import ChangeFeed, get_feed
from .logging_utils import get_logger
from .models import ShopSettings
from .timeutils import local_now, to_local

logger = get_logger(__name__)

DEFAULT_PREORDER_DAYS = [3, 6]


def _minutes(value: str) -> int:
    hours, _, minutes = value.partition(":")
    return int(hours or 0) * 60 + int(minutes or 0)


def _weekday(moment: datetime) -> int:
    """Day number with Sunday as 0, matching the stored openings."""

    return (moment.weekday() + 1) % 7


def is_open_now(openings: Iterable[schemas.PreorderOpening], now: Optional[datetime] = None) -> bool:
    now = to_local(now) if now is not None else local_now()
    today = _weekday(now)
    current = now.hour * 60 + now.minute
    for opening in openings:
        if opening.day != today:
            continue
        if opening.from_time in ("00:00", "0:00") or current >= _minutes(opening.from_time):
            return True
    return False


def is_within_service_hours(now: Optional[datetime] = None) -> bool:
    """The kitchen runs from 17:00 until 03:00 the next morning."""

    now = to_local(now) if now is not None else local_now()
    return now.hour >= 17 or now.hour < 3


def effective_openings(settings: schemas.ShopSettingsRead) -> list[schemas.PreorderOpening]:
    if settings.preorder_openings:
        return list(settings.preorder_openings)
    days = settings.preorder_days or DEFAULT_PREORDER_DAYS
    return [schemas.PreorderOpening(day=day, from_time="00:00") for day in days]


def _to_read(row: Optional[ShopSettings]) -> schemas.ShopSettingsRead:
    if row is None:
        return schemas.ShopSettingsRead(
            preorder_days=list(DEFAULT_PREORDER_DAYS), preorder_openings=[], preorder_message=""
        )
    return schemas.ShopSettingsRead(
        preorder_days=list(row.preorder_days or []),
        preorder_openings=[schemas.PreorderOpening(**item) for item in row.preorder_openings or []],
        preorder_message=row.preorder_message or "",
    )


def get_shop_settings(db: Session) -> schemas.ShopSettingsRead:
    return _to_read(db.get(ShopSettings, 1, populate_existing=True))


def update_shop_settings(
    db: Session, payload: schemas.ShopSettingsUpdate, *, feed: Optional[ChangeFeed] = None
) -> schemas.ShopSettingsRead:
    with atomic(db):
        row = db.get(ShopSettings, 1)
        if row is None:
            row = ShopSettings(id=1, preorder_days=list(DEFAULT_PREORDER_DAYS), preorder_openings=[], preorder_message="")
            db.add(row)
        if payload.preorder_days is not None:
            row.preorder_days = list(payload.preorder_days)
        if payload.preorder_openings is not None:
            row.preorder_openings = [opening.model_dump() for opening in payload.preorder_openings]
        if payload.preorder_message is not None:
            row.preorder_message = payload.preorder_message
    logger.info("Shop settings updated")
    result = get_shop_settings(db)
    (feed or get_feed()).publish("settings", result.model_dump(mode="json"))
    return result
