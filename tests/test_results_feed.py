from datetime import date

import pytest
import requests

from porra.models import Race
from porra.utils import results_feed
from porra.utils.results_feed import (
    CalendarImport,
    ResultsFeed,
    ResultsFeedError,
    build_calendar,
    format_event_dates,
    format_remaining_time,
    iso_to_flag,
    live_timing_riders,
)

SEASONS = [
    {"id": "s-2024", "year": 2024, "current": False},
    {"id": "s-2025", "year": 2025, "current": True},
]

EVENTS = [
    {
        "id": "evt-aut",
        "sponsored_name": "Grand Prix of Austria",
        "date_start": "2025-08-15T00:00:00+00:00",
        "date_end": "2025-08-17T00:00:00+00:00",
        "circuit": {"name": "Red Bull Ring"},
        "country": {"iso": "AT", "name": "Austria"},
        "status": "NOT-STARTED",
        "test": False,
    },
    {
        "id": "evt-test",
        "sponsored_name": "Sepang Test",
        "date_start": "2025-02-05T00:00:00+00:00",
        "date_end": "2025-02-07T00:00:00+00:00",
        "circuit": {"name": "Sepang"},
        "country": {"iso": "MY", "name": "Malaysia"},
        "status": "FINISHED",
        "test": True,
    },
    {
        "id": "evt-tha",
        "sponsored_name": "Grand Prix of Thailand",
        "date_start": "2025-02-28T00:00:00+00:00",
        "date_end": "2025-03-02T00:00:00+00:00",
        "circuit": {"name": "Chang International Circuit"},
        "country": {"iso": "TH", "name": "Thailand"},
        "status": "FINISHED",
        "test": False,
    },
]


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    """Serves canned payloads keyed by endpoint path"""

    def __init__(self, routes):
        self.routes = routes
        self.headers = {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        endpoint = url.split("/motogp/v1/", 1)[1]
        payload = self.routes[endpoint]
        if isinstance(payload, Exception):
            raise payload
        return FakeResponse(payload)


@pytest.fixture()
def no_sleep(monkeypatch):
    delays = []
    monkeypatch.setattr(results_feed.time, "sleep", delays.append)
    return delays


def make_feed(routes):
    feed = ResultsFeed(session=FakeSession(routes))
    feed.min_request_interval = 0
    return feed


def test_iso_to_flag():
    assert iso_to_flag("es") == "\U0001F1EA\U0001F1F8"
    assert iso_to_flag("AT") == "\U0001F1E6\U0001F1F9"
    assert iso_to_flag("") == "\U0001F3C1"
    assert iso_to_flag(None) == "\U0001F3C1"
    assert iso_to_flag("ESP") == "\U0001F3C1"


def test_format_event_dates_spanish_months():
    assert (
        format_event_dates("2025-02-28T00:00:00+00:00", "2025-03-02T00:00:00+00:00")
        == "28 FEB - 2 MAR"
    )
    assert format_event_dates("2025-09-05", "2025-09-07") == "5 SEPT - 7 SEPT"
    assert format_event_dates("2025-01-31", "2025-02-01") == "31 ENE - 1 FEB"


def test_build_calendar_drops_tests_and_numbers_by_date():
    races = build_calendar(EVENTS)

    assert [r["external_event_id"] for r in races] == ["evt-tha", "evt-aut"]
    assert [r["id"] for r in races] == [1, 2]

    thailand = races[0]
    assert thailand["name"] == "Grand Prix of Thailand"
    assert thailand["country"] == "Thailand"
    assert thailand["circuit"] == "Chang International Circuit"
    assert thailand["dates"] == "28 FEB - 2 MAR"
    assert thailand["flag"] == iso_to_flag("TH")
    assert thailand["race_date"] == date(2025, 2, 28)
    assert thailand["status"] == "FINISHED"


def test_feed_endpoints(no_sleep):
    feed = make_feed(
        {
            "seasons": SEASONS,
            "categories": [{"id": "c-1", "name": "MotoGP™"}, {"id": "c-2", "name": "Moto2™"}],
            "results/sessions": [{"id": "sess-1", "type": "RAC", "number": None}],
            "results/session/sess-1/classification": {
                "classification": [{"position": 1, "rider": {"number": 93}, "points": 25}]
            },
        }
    )

    assert feed.get_current_season()["id"] == "s-2025"
    assert feed.find_category("s-2025", "MotoGP")["id"] == "c-1"
    assert feed.find_category("s-2025", "Moto3") is None
    assert feed.get_sessions("evt-tha", "c-1")[0]["type"] == "RAC"
    assert feed.get_classification("sess-1")[0]["points"] == 25

    url, params = feed.session.calls[-1]
    assert url.endswith("results/session/sess-1/classification")
    assert params == {"test": "false"}


def test_finished_events_query(no_sleep):
    feed = make_feed({"events": EVENTS})
    feed.get_events("s-2025", finished=True)
    assert feed.session.calls[-1][1] == {"seasonUuid": "s-2025", "isFinished": "true"}


def test_retries_with_backoff_then_fails(no_sleep):
    feed = make_feed({"seasons": requests.exceptions.ConnectionError("down")})

    with pytest.raises(ResultsFeedError):
        feed.get_seasons()

    assert len(feed.session.calls) == 3
    assert no_sleep == [1.0, 2.0]


def test_no_current_season(no_sleep):
    feed = make_feed({"seasons": [{"id": "s-2024", "year": 2024, "current": False}]})
    with pytest.raises(ResultsFeedError):
        CalendarImport(feed).fetch_calendar()


def test_empty_calendar_is_an_error(no_sleep):
    feed = make_feed({"seasons": SEASONS, "events": [EVENTS[1]]})
    with pytest.raises(ResultsFeedError):
        CalendarImport(feed).fetch_calendar()


def test_sync_calendar_upserts_races(app, no_sleep):
    feed = make_feed({"seasons": SEASONS, "events": EVENTS})

    success, message = CalendarImport(feed).sync_calendar()
    assert success, message
    assert message == "Imported 2 races for the 2025 season"
    assert [r.external_event_id for r in Race.get_calendar()] == ["evt-tha", "evt-aut"]

    # Second import updates in place
    success, _ = CalendarImport(feed).sync_calendar()
    assert success
    assert Race.query.count() == 2


def test_sync_calendar_reports_feed_failure(app, no_sleep):
    feed = make_feed({"seasons": requests.exceptions.Timeout("slow")})
    success, message = CalendarImport(feed).sync_calendar()
    assert not success
    assert "3 attempts" in message


def test_build_calendar_keeps_only_explicit_race_events():
    untagged = dict(EVENTS[0], id="evt-untagged")
    del untagged["test"]

    races = build_calendar(EVENTS + [untagged])
    assert [r["external_event_id"] for r in races] == ["evt-tha", "evt-aut"]


def test_world_standings(no_sleep):
    feed = make_feed(
        {
            "standings/worldstanding": {
                "classification": [
                    {"position": 1, "rider": {"full_name": "Marc Márquez", "number": 93}, "points": 545}
                ]
            }
        }
    )

    standings = feed.get_world_standings("s-2025", "c-1")
    assert standings[0]["points"] == 545
    assert feed.session.calls[-1][1] == {"seasonUuid": "s-2025", "categoryUuid": "c-1"}


def test_live_timing_riders_sorted_by_order(no_sleep):
    feed = make_feed(
        {
            "timing-gateway/livetiming-lite": {
                "head": {"session_name": "RAC", "remaining": "125"},
                "rider": {
                    "a": {"order": 2, "rider_surname": "Bagnaia"},
                    "b": {"order": 1, "rider_surname": "Márquez"},
                },
            }
        }
    )

    data = feed.get_live_timing()
    assert [r["rider_surname"] for r in live_timing_riders(data)] == ["Márquez", "Bagnaia"]
    assert live_timing_riders({}) == []


@pytest.mark.parametrize(
    "seconds, expected",
    [("125", "02:05"), (0, "00:00"), ("-3", "00:00"), ("abc", "00:00"), (None, "00:00")],
)
def test_format_remaining_time(seconds, expected):
    assert format_remaining_time(seconds) == expected
