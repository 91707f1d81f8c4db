from datetime import date

from porra.models import Point
from porra.services.auto_scoring import score_finished_races
from porra.services.scoring_engine import ScoringEngine
from porra.utils.results_feed import ResultsFeedError


class FakeFeed:
    def __init__(self, sessions, classifications, fail_events=()):
        self.sessions = sessions
        self.classifications = classifications
        self.fail_events = set(fail_events)
        self.classification_requests = []

    def get_current_season(self):
        return {"id": "s-2025", "year": 2025, "current": True}

    def find_category(self, season_id, name):
        return {"id": "c-motogp", "name": f"{name}™"}

    def get_sessions(self, event_id, category_id):
        if event_id in self.fail_events:
            raise ResultsFeedError("feed down")
        return self.sessions.get(event_id, [])

    def get_classification(self, session_id):
        self.classification_requests.append(session_id)
        return self.classifications.get(session_id, [])


def feed_for_race_4(**kwargs):
    return FakeFeed(
        sessions={
            "evt-4": [
                {"id": "q2", "type": "Q", "number": 2},
                {"id": "spr", "type": "SPR", "number": None},
                {"id": "rac", "type": "RAC", "number": None},
            ]
        },
        classifications={
            "spr": [{"position": 1, "rider": {"number": 93}, "points": 12}],
            "rac": [{"position": 1, "rider": {"number": 93}, "points": 25}],
        },
        **kwargs,
    )


def test_scores_finished_sessions_once(season, add_vote):
    add_vote(1, 4, 1)
    feed = feed_for_race_4()

    summary = score_finished_races(feed, ScoringEngine(), today=date(2025, 6, 10))
    assert summary["races_checked"] == 4
    assert summary["sessions_scored"] == 2
    assert summary["points_awarded"] == 2
    assert summary["errors"] == []
    # Qualifying never awards points
    assert "q2" not in feed.classification_requests

    assert sorted(p.points for p in Point.query.all()) == [12, 25]

    again = score_finished_races(feed, ScoringEngine(), today=date(2025, 6, 10))
    assert again["sessions_scored"] == 0
    assert again["already_scored"] == 2
    assert Point.query.count() == 2


def test_future_races_are_not_checked(season, add_vote):
    add_vote(1, 4, 1)
    summary = score_finished_races(
        feed_for_race_4(), ScoringEngine(), today=date(2025, 6, 8)
    )
    assert summary["races_checked"] == 3
    assert Point.query.count() == 0


def test_feed_errors_do_not_stop_other_races(season, add_vote):
    add_vote(1, 4, 1)
    feed = feed_for_race_4(fail_events={"evt-2"})

    summary = score_finished_races(feed, ScoringEngine(), today=date(2025, 6, 10))
    assert summary["sessions_scored"] == 2
    assert len(summary["errors"]) == 1
    assert "feed down" in summary["errors"][0]


def test_malformed_classification_does_not_stop_the_run(season, add_vote):
    add_vote(1, 4, 1)
    feed = feed_for_race_4()
    feed.classifications["spr"] = [{"rider_number": "x", "points": 12}]

    summary = score_finished_races(feed, ScoringEngine(), today=date(2025, 6, 10))
    assert summary["sessions_scored"] == 1
    assert len(summary["errors"]) == 1
    assert summary["errors"][0].startswith("Invalid classification:")
    assert [p.points for p in Point.query.all()] == [25]
