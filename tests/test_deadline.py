from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from porra.utils.deadline import (
    compute_voting_deadline,
    find_next_race,
    is_voting_open,
    to_utc_date,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "race_date, expected",
    [
        (date(2025, 6, 8), utc(2025, 6, 13, 14)),  # Sunday closes the following Friday
        (date(2025, 6, 14), utc(2025, 6, 13, 14)),  # Saturday closes the Friday before
        (date(2025, 6, 13), utc(2025, 6, 13, 14)),  # Friday closes the same day
        (date(2025, 6, 11), utc(2025, 6, 13, 14)),  # Wednesday
        (date(2025, 6, 9), utc(2025, 6, 13, 14)),  # Monday
    ],
)
def test_deadline_is_friday_of_the_race_week(race_date, expected):
    assert compute_voting_deadline(race_date) == expected


def test_deadline_accepts_iso_strings_and_datetimes():
    expected = utc(2025, 6, 13, 14)
    assert compute_voting_deadline("2025-06-08T12:00:00+00:00") == expected
    assert compute_voting_deadline("2025-06-08T12:00:00Z") == expected
    assert compute_voting_deadline(datetime(2025, 6, 8, 12, 0)) == expected


def test_deadline_uses_utc_calendar_date():
    # 23:30 on Saturday in UTC-2 is already Sunday in UTC
    assert to_utc_date("2025-06-14T23:30:00-02:00") == date(2025, 6, 15)


def test_deadline_hour_is_configurable():
    assert compute_voting_deadline(date(2025, 6, 8), deadline_hour=9) == utc(
        2025, 6, 13, 9
    )


def test_voting_open_strictly_before_deadline():
    race_date = date(2025, 6, 8)
    assert is_voting_open(utc(2025, 6, 13, 13, 59, 59), race_date)
    assert not is_voting_open(utc(2025, 6, 13, 14, 0, 0), race_date)
    assert not is_voting_open(utc(2025, 6, 13, 15), race_date)


def test_naive_now_is_treated_as_utc():
    assert is_voting_open(datetime(2025, 6, 13, 13, 0), date(2025, 6, 8))


def test_no_race_means_voting_closed():
    assert not is_voting_open(utc(2025, 6, 1), None)


def races(*dates):
    return [SimpleNamespace(id=i, race_date=d) for i, d in enumerate(dates, start=1)]


def test_next_race_is_earliest_on_or_after_today():
    calendar = races(date(2025, 5, 4), date(2025, 6, 8), date(2025, 6, 22))
    assert find_next_race(calendar, date(2025, 6, 2)).id == 2
    assert find_next_race(calendar, date(2025, 6, 8)).id == 2
    assert find_next_race(calendar, date(2025, 6, 9)).id == 3


def test_next_race_ignores_input_order():
    calendar = races(date(2025, 6, 22), date(2025, 5, 4), date(2025, 6, 8))
    assert find_next_race(calendar, date(2025, 5, 10)).race_date == date(2025, 6, 8)


def test_next_race_falls_back_to_last_race_after_season():
    calendar = races(date(2025, 5, 4), date(2025, 6, 8))
    assert find_next_race(calendar, date(2025, 12, 1)).id == 2


def test_next_race_none_without_races():
    assert find_next_race([], date(2025, 6, 2)) is None
