from datetime import datetime, timedelta, timezone

import pytest

from workshop_launcher.provisioning.schedule import end_time, format_instant, next_weekday_at


def test_end_time_adds_duration():
    start = datetime(2024, 1, 1, 17, 0, tzinfo=timezone.utc)

    assert format_instant(end_time(start, 60)) == "2024-01-01T18:00:00.000Z"
    assert end_time(start, 90) - start == timedelta(minutes=90)


def test_end_time_crosses_midnight():
    start = datetime(2024, 12, 31, 23, 30, tzinfo=timezone.utc)

    assert format_instant(end_time(start, 45)) == "2025-01-01T00:15:00.000Z"


def test_format_instant_normalizes_to_utc():
    london_summer = timezone(timedelta(hours=1))
    value = datetime(2024, 6, 6, 18, 0, 0, 123456, tzinfo=london_summer)

    assert format_instant(value) == "2024-06-06T17:00:00.123Z"


def test_naive_datetimes_are_treated_as_utc():
    assert format_instant(datetime(2024, 1, 1, 17, 0)) == "2024-01-01T17:00:00.000Z"


@pytest.mark.parametrize(
    "now, expected",
    [
        # Monday -> same week's Thursday
        (datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc), datetime(2024, 1, 4, 17, 0, tzinfo=timezone.utc)),
        # Thursday -> following Thursday, even before the slot
        (datetime(2024, 1, 4, 9, 0, tzinfo=timezone.utc), datetime(2024, 1, 11, 17, 0, tzinfo=timezone.utc)),
        # Saturday -> next week's Thursday
        (datetime(2024, 1, 6, 23, 59, tzinfo=timezone.utc), datetime(2024, 1, 11, 17, 0, tzinfo=timezone.utc)),
    ],
)
def test_next_thursday_at_five(now, expected):
    assert next_weekday_at("thursday", 17, now) == expected


def test_weekday_accepts_index():
    monday = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    assert next_weekday_at(0, 10, monday) == datetime(2024, 1, 8, 10, 0, tzinfo=timezone.utc)


def test_unknown_weekday():
    with pytest.raises(ValueError):
        next_weekday_at("someday", 17)


@pytest.mark.parametrize("weekday", [-1, 7])
def test_weekday_index_out_of_range(weekday):
    with pytest.raises(ValueError):
        next_weekday_at(weekday, 17)
