from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from mayssa_admin.preorder import (
    effective_openings,
    get_shop_settings,
    is_open_now,
    is_within_service_hours,
    update_shop_settings,
)
from mayssa_admin.schemas import PreorderOpening, ShopSettingsRead, ShopSettingsUpdate

PARIS = ZoneInfo("Europe/Paris")

# 2024-01-07 was a Sunday.
SUNDAY = datetime(2024, 1, 7, 10, 0, tzinfo=PARIS)
WEDNESDAY = datetime(2024, 1, 10, 10, 0, tzinfo=PARIS)
THURSDAY = datetime(2024, 1, 11, 10, 0, tzinfo=PARIS)


def test_default_settings_open_wednesday_and_saturday(db) -> None:
    settings = get_shop_settings(db)
    assert settings.preorder_days == [3, 6]
    openings = effective_openings(settings)
    assert is_open_now(openings, WEDNESDAY)
    assert not is_open_now(openings, THURSDAY)


def test_sunday_is_day_zero() -> None:
    openings = [PreorderOpening(day=0, from_time="00:00")]
    assert is_open_now(openings, SUNDAY)
    assert not is_open_now(openings, WEDNESDAY)


def test_opening_time_is_respected() -> None:
    openings = [PreorderOpening(day=3, from_time="18:30")]
    assert not is_open_now(openings, WEDNESDAY.replace(hour=18, minute=29))
    assert is_open_now(openings, WEDNESDAY.replace(hour=18, minute=30))
    assert is_open_now(openings, WEDNESDAY.replace(hour=23, minute=59))


def test_explicit_openings_take_precedence_over_days() -> None:
    settings = ShopSettingsRead(
        preorder_days=[3],
        preorder_openings=[PreorderOpening(day=4, from_time="09:00")],
        preorder_message="",
    )
    openings = effective_openings(settings)
    assert is_open_now(openings, THURSDAY)
    assert not is_open_now(openings, WEDNESDAY)


@pytest.mark.parametrize(
    ("hour", "expected"),
    [(16, False), (17, True), (23, True), (0, True), (2, True), (3, False), (12, False)],
)
def test_service_hours_wrap_past_midnight(hour: int, expected: bool) -> None:
    assert is_within_service_hours(WEDNESDAY.replace(hour=hour, minute=59 if hour == 2 else 0)) is expected


def test_update_settings_persists_and_publishes(db, feed) -> None:
    seen = []
    feed.subscribe("settings", lambda path, value: seen.append(value))

    updated = update_shop_settings(
        db,
        ShopSettingsUpdate(
            preorder_days=[5],
            preorder_openings=[PreorderOpening(day=5, from_time="12:00")],
            preorder_message="Précommandes ouvertes le vendredi midi",
        ),
        feed=feed,
    )
    assert updated.preorder_days == [5]
    assert get_shop_settings(db).preorder_openings[0].from_time == "12:00"
    assert seen[0]["preorder_message"] == "Précommandes ouvertes le vendredi midi"

    partial = update_shop_settings(db, ShopSettingsUpdate(preorder_message=""), feed=feed)
    assert partial.preorder_days == [5]
    assert partial.preorder_message == ""


@pytest.mark.parametrize("days", [[7], [-1], [3, 9]])
def test_weekdays_outside_sunday_to_saturday_are_refused(days) -> None:
    with pytest.raises(ValueError):
        ShopSettingsUpdate(preorder_days=days)
