from datetime import date, datetime, time, timezone

import pytz

from coachhub.core.timezone_utils import (
    ensure_utc,
    get_timezone,
    local_day_bounds_utc,
    local_to_utc,
    parse_hhmm,
    period_start,
)


def test_ensure_utc_assumes_naive_is_utc():
    naive = datetime(2025, 3, 1, 9, 30)
    assert ensure_utc(naive) == datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def test_ensure_utc_converts_aware_values():
    paris = pytz.timezone("Europe/Paris").localize(datetime(2025, 1, 10, 10, 0))
    assert ensure_utc(paris) == datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)


def test_unknown_timezone_falls_back_to_utc():
    assert get_timezone("Mars/Olympus") is pytz.utc
    assert get_timezone(None).zone == "UTC"


def test_parse_hhmm():
    assert parse_hhmm("07:45") == time(7, 45)


def test_local_to_utc_follows_daylight_saving():
    winter = local_to_utc(date(2025, 1, 15), time(9, 0), "America/New_York")
    summer = local_to_utc(date(2025, 7, 15), time(9, 0), "America/New_York")

    assert winter.hour == 14
    assert summer.hour == 13


def test_local_day_bounds():
    start, end = local_day_bounds_utc(date(2025, 7, 15), "Asia/Tokyo")

    assert start == datetime(2025, 7, 14, 15, 0, tzinfo=timezone.utc)
    assert end == datetime(2025, 7, 15, 15, 0, tzinfo=timezone.utc)


def test_period_start():
    now = datetime(2025, 7, 15, 13, 20, tzinfo=timezone.utc)

    assert period_start("day", now) == datetime(2025, 7, 15, tzinfo=timezone.utc)
    assert period_start("week", now) == datetime(2025, 7, 8, 13, 20, tzinfo=timezone.utc)
    assert period_start("month", now) == datetime(2025, 7, 1, tzinfo=timezone.utc)
    assert period_start("year", now) == datetime(2025, 1, 1, tzinfo=timezone.utc)
