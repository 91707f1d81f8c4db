from porra.models import Race
from porra.services.scheduler_service import SchedulerService
from porra.utils.results_feed import ResultsFeedError

AUSTRIA = {
    "id": "evt-aut",
    "sponsored_name": "Grand Prix of Austria",
    "date_start": "2025-08-15T00:00:00+00:00",
    "date_end": "2025-08-17T00:00:00+00:00",
    "circuit": {"name": "Red Bull Ring"},
    "country": {"iso": "AT", "name": "Austria"},
    "status": "NOT-STARTED",
    "test": False,
}


class CalendarFeed:
    def __init__(self, events=None, error=None):
        self.events = events or []
        self.error = error

    def get_current_season(self):
        if self.error:
            raise ResultsFeedError(self.error)
        return {"id": "s-2025", "year": 2025, "current": True}

    def get_events(self, season_id):
        return self.events


def make_service(app, feed):
    service = SchedulerService()
    service.app = app
    service.feed = feed
    return service


def test_force_calendar_sync_reports_import_failure(app):
    service = make_service(app, CalendarFeed(error="feed down"))

    success, message = service.force_sync("calendar")
    assert not success
    assert message == "Manual calendar sync failed: feed down"
    assert service.sync_stats["failed_runs"] == 1
    assert service.sync_stats["last_error"] == "feed down"


def test_force_calendar_sync_imports_races(app):
    service = make_service(app, CalendarFeed(events=[AUSTRIA]))

    success, message = service.force_sync("calendar")
    assert success
    assert message.endswith("Imported 1 races for the 2025 season")
    assert Race.query.count() == 1


def test_force_sync_unknown_type(app):
    success, message = make_service(app, CalendarFeed()).force_sync("bogus")
    assert not success
    assert message == "Unknown sync type: bogus"


def test_uninitialized_scheduler_declines():
    success, message = SchedulerService().force_sync("calendar")
    assert not success
    assert message == "Scheduler is not initialized"
