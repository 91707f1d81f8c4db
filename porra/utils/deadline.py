"""
Voting window calculations.

Voting for a race closes on the Saturday-relative deadline of the race week
at ``VOTING_DEADLINE_HOUR`` UTC (14:00 by default).
"""

from datetime import date, datetime, time, timedelta, timezone

DEFAULT_DEADLINE_HOUR = 14


def to_utc_date(value):
    """Normalize a date, datetime or ISO-8601 string to a UTC calendar date"""
    if value is None:
        return None

    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))

    if isinstance(value, datetime):
        # If datetime is naive, assume it's UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).date()

    if isinstance(value, date):
        return value

    raise TypeError(f"Unsupported race date value: {value!r}")


def _utc_day_of_week(day):
    """Day of week with Sunday=0 .. Saturday=6"""
    return day.isoweekday() % 7


def compute_voting_deadline(race_date, deadline_hour=DEFAULT_DEADLINE_HOUR):
    """
    Compute the instant at which voting closes for a race.

    The deadline day is ``race_date + days_until_saturday - 1`` where
    ``days_until_saturday = (6 - day_of_week + 7) % 7``. A race dated on a
    Saturday therefore closes on the Friday before it.

    Returns:
        datetime: timezone-aware UTC datetime
    """
    race_day = to_utc_date(race_date)
    days_until_saturday = (6 - _utc_day_of_week(race_day) + 7) % 7
    deadline_day = race_day + timedelta(days=days_until_saturday - 1)
    return datetime.combine(deadline_day, time(deadline_hour), tzinfo=timezone.utc)


def is_voting_open(now, race_date, deadline_hour=DEFAULT_DEADLINE_HOUR):
    """Voting is open strictly before the deadline; no race means closed"""
    if race_date is None:
        return False

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    return now < compute_voting_deadline(race_date, deadline_hour)


def find_next_race(races, today=None):
    """
    Pick the race players are currently betting on.

    Args:
        races: iterable of objects with a ``race_date`` attribute
        today: date to compare against (defaults to the current UTC date)

    Returns:
        The earliest race dated today or later, the last race when the season
        has concluded, or None when there are no races.
    """
    ordered = sorted(races, key=lambda r: to_utc_date(r.race_date))
    if not ordered:
        return None

    today = to_utc_date(today) if today else datetime.now(timezone.utc).date()

    for race in ordered:
        if to_utc_date(race.race_date) >= today:
            return race

    return ordered[-1]
