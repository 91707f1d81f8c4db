from datetime import date, datetime, timedelta, timezone

import pytest

from porra import create_app, db
from porra.models import Point, Race, Vote
from porra.seed_data import PLAYERS, RIDERS
from porra.services.record_store import seed_reference_data

# Monday of the week before race 4
NOW = datetime(2025, 6, 2, 10, 0, tzinfo=timezone.utc)

SEASON_RACES = [
    (1, date(2025, 5, 4)),
    (2, date(2025, 5, 11)),
    (3, date(2025, 5, 25)),
    (4, date(2025, 6, 8)),  # next race at NOW, voting closes Fri 13 Jun 14:00 UTC
    (5, date(2025, 6, 22)),
]


@pytest.fixture()
def app():
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def now():
    return NOW


@pytest.fixture()
def seeded(app):
    success, message = seed_reference_data(PLAYERS, RIDERS)
    assert success, message
    return app


@pytest.fixture()
def make_race(app):
    def _make_race(race_id, race_date, name=None, external_event_id=None):
        race = Race(
            id=race_id,
            name=name or f"Grand Prix {race_id}",
            country="Spain",
            circuit="Circuit",
            dates="",
            flag="",
            race_date=race_date,
            status="NOT-STARTED",
            external_event_id=external_event_id,
        )
        db.session.add(race)
        db.session.commit()
        return race

    return _make_race


@pytest.fixture()
def season(seeded, make_race):
    """Players, riders and five races; race 4 is the next race at NOW"""
    for race_id, race_date in SEASON_RACES:
        make_race(race_id, race_date, external_event_id=f"evt-{race_id}")
    return seeded


@pytest.fixture()
def live_season(seeded, make_race):
    """Races placed around the real current date; race 2 is open for voting"""
    today = datetime.now(timezone.utc).date()
    make_race(1, today - timedelta(days=14), external_event_id="evt-1")
    make_race(2, today + timedelta(days=21), external_event_id="evt-2")
    make_race(3, today + timedelta(days=35), external_event_id="evt-3")
    return seeded


@pytest.fixture()
def add_vote(app):
    def _add_vote(player_id, race_id, rider_id, is_locked=False):
        vote = Vote(
            player_id=player_id, race_id=race_id, rider_id=rider_id, is_locked=is_locked
        )
        db.session.add(vote)
        db.session.commit()
        return vote

    return _add_vote


@pytest.fixture()
def add_point(app):
    def _add_point(player_id, race_id, rider_id, points, session_id="rac"):
        point = Point(
            player_id=player_id,
            race_id=race_id,
            rider_id=rider_id,
            session_id=session_id,
            session_name="RAC",
            points=points,
        )
        db.session.add(point)
        db.session.commit()
        return point

    return _add_point
