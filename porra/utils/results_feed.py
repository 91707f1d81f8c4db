import logging
import time
from datetime import datetime
from functools import wraps

import requests
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from porra import db
from porra.models import Race
from porra.utils.deadline import to_utc_date

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.motogp.pulselive.com/motogp/v1"

SPANISH_MONTHS = [
    "ENE",
    "FEB",
    "MAR",
    "ABR",
    "MAY",
    "JUN",
    "JUL",
    "AGO",
    "SEPT",
    "OCT",
    "NOV",
    "DIC",
]

CHEQUERED_FLAG = "\U0001F3C1"
REGIONAL_INDICATOR_OFFSET = 127397


class ResultsFeedError(Exception):
    """The official results feed could not be reached or returned bad data"""


def rate_limit_decorator(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to retry feed requests with exponential backoff (1s, 2s, ...)
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            last_error = None
            for attempt in range(max_retries):
                try:
                    return func(self, *args, **kwargs)
                except requests.exceptions.RequestException as e:
                    last_error = e
                    if attempt < max_retries - 1:
                        delay = base_delay * (backoff_factor**attempt)
                        logger.warning(
                            f"Feed request failed: {e}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                        )
                        time.sleep(delay)

            raise ResultsFeedError(
                f"Failed to fetch from the results feed after {max_retries} attempts: {last_error}"
            )

        return wrapper

    return decorator


def iso_to_flag(iso):
    """Two-letter country code to a flag emoji; chequered flag otherwise"""
    if not iso or len(iso) != 2:
        return CHEQUERED_FLAG
    return "".join(chr(ord(char) + REGIONAL_INDICATOR_OFFSET) for char in iso.upper())


def _parse_feed_datetime(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def format_event_dates(date_start, date_end):
    """Display string such as "27 FEB - 1 MAR" (Spanish short month names)"""
    start = to_utc_date(date_start)
    end = to_utc_date(date_end or date_start)
    return (
        f"{start.day} {SPANISH_MONTHS[start.month - 1]} - "
        f"{end.day} {SPANISH_MONTHS[end.month - 1]}"
    )


def build_calendar(events):
    """
    Turn feed events into Race dicts.

    Test events are dropped, the rest sorted by start date and numbered from 1.
    """
    race_events = [event for event in events if event.get("test") is False]
    race_events.sort(key=lambda event: _parse_feed_datetime(event["date_start"]))

    races = []
    for index, event in enumerate(race_events, start=1):
        country = event.get("country") or {}
        circuit = event.get("circuit") or {}
        races.append(
            {
                "id": index,
                "name": event.get("sponsored_name") or event.get("name"),
                "country": country.get("name"),
                "circuit": circuit.get("name"),
                "dates": format_event_dates(event["date_start"], event.get("date_end")),
                "flag": iso_to_flag(country.get("iso")),
                "race_date": to_utc_date(event["date_start"]),
                "status": event.get("status"),
                "external_event_id": event["id"],
            }
        )
    return races


class ResultsFeed:
    """
    Read-only client for the official MotoGP results API with rate limiting
    and retries
    """

    def __init__(self, api_base_url=None, session=None):
        self.api_base_url = (api_base_url or DEFAULT_API_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "Porra-App/1.0"})

        # Rate limiting configuration
        self.request_count = 0
        self.last_request_time = 0
        self.min_request_interval = 0.5  # Minimum 500ms between requests
        self.max_requests_per_minute = 60
        self.request_timestamps = []

    @classmethod
    def from_config(cls):
        return cls(current_app.config.get("RESULTS_API_BASE_URL"))

    def _enforce_rate_limit(self):
        """Enforce rate limiting before making requests"""
        current_time = time.time()

        # Remove timestamps older than 1 minute
        self.request_timestamps = [
            ts for ts in self.request_timestamps if current_time - ts < 60
        ]

        if len(self.request_timestamps) >= self.max_requests_per_minute:
            sleep_time = 60 - (current_time - self.request_timestamps[0])
            if sleep_time > 0:
                logger.info(f"Rate limit reached. Sleeping for {sleep_time:.1f}s")
                time.sleep(sleep_time)
                self.request_timestamps = []

        time_since_last = current_time - self.last_request_time
        if time_since_last < self.min_request_interval:
            time.sleep(self.min_request_interval - time_since_last)

        self.last_request_time = time.time()
        self.request_timestamps.append(self.last_request_time)
        self.request_count += 1

    @rate_limit_decorator(max_retries=3, base_delay=1.0)
    def _get(self, endpoint, params=None):
        """GET ``endpoint`` relative to the API base and decode the JSON body"""
        self._enforce_rate_limit()

        url = f"{self.api_base_url}/{endpoint}"
        response = self.session.get(url, params=params, timeout=30)
        response.raise_for_status()

        try:
            return response.json()
        except ValueError as e:
            raise ResultsFeedError(f"Invalid JSON from {url}: {e}") from e

    def get_rate_limit_status(self):
        current_time = time.time()
        self.request_timestamps = [
            ts for ts in self.request_timestamps if current_time - ts < 60
        ]
        return {
            "total_requests": self.request_count,
            "requests_last_minute": len(self.request_timestamps),
            "max_requests_per_minute": self.max_requests_per_minute,
        }

    def get_seasons(self):
        return self._get("seasons")

    def get_current_season(self):
        """The season flagged ``current``"""
        for season in self.get_seasons():
            if season.get("current") is True:
                return season
        raise ResultsFeedError("Could not find the current season in the results feed.")

    def get_categories(self, season_id):
        return self._get("categories", {"seasonUuid": season_id})

    def get_events(self, season_id, finished=False):
        params = {"seasonUuid": season_id}
        if finished:
            params["isFinished"] = "true"
        return self._get("events", params)

    def get_sessions(self, event_id, category_id):
        return self._get(
            "results/sessions", {"eventUuid": event_id, "categoryUuid": category_id}
        )

    def get_classification(self, session_id):
        """Classification rows of one session"""
        data = self._get(f"results/session/{session_id}/classification", {"test": "false"})
        if isinstance(data, dict):
            return data.get("classification") or []
        return data or []

    def get_world_standings(self, season_id, category_id):
        """Championship standings rows of one category"""
        data = self._get(
            "standings/worldstanding",
            {"seasonUuid": season_id, "categoryUuid": category_id},
        )
        if isinstance(data, dict):
            return data.get("classification") or []
        return data or []

    def get_live_timing(self):
        """Snapshot of the session running now (``head`` plus ``rider`` map)"""
        return self._get("timing-gateway/livetiming-lite")

    def find_category(self, season_id, name):
        """Category whose name matches ``name`` (e.g. "MotoGP" matches "MotoGP™")"""
        wanted = name.lower()
        categories = self.get_categories(season_id)
        for category in categories:
            if (category.get("name") or "").lower() == wanted:
                return category
        for category in categories:
            if (category.get("name") or "").lower().startswith(wanted):
                return category
        return None


class CalendarImport:
    """Imports the current season's calendar into the Race table"""

    def __init__(self, feed=None):
        self.feed = feed or ResultsFeed.from_config()

    def fetch_calendar(self):
        """
        Returns:
            tuple: (races, year) with races as Race dicts

        Raises:
            ResultsFeedError: no current season or no race events
        """
        season = self.feed.get_current_season()
        races = build_calendar(self.feed.get_events(season["id"]))

        if not races:
            raise ResultsFeedError(
                f"No race events found for the {season.get('year')} season."
            )

        return races, season.get("year")

    def sync_calendar(self):
        """
        Upsert the current calendar by race id.

        Returns:
            tuple: (success, message)
        """
        try:
            races, year = self.fetch_calendar()
        except ResultsFeedError as e:
            logger.error(f"Calendar import failed: {e}")
            return False, str(e)

        try:
            for entry in races:
                db.session.merge(Race(**entry))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error saving calendar: {e}")
            return False, str(e)

        from porra.utils.cache_utils import invalidate_model_cache

        invalidate_model_cache("Race")
        logger.info(f"Imported {len(races)} races for {year}")
        return True, f"Imported {len(races)} races for the {year} season"


def format_remaining_time(seconds):
    """Seconds left in a session as MM:SS; bad or negative input gives 00:00"""
    try:
        total = int(seconds)
    except (TypeError, ValueError):
        return "00:00"
    if total < 0:
        return "00:00"
    return f"{total // 60:02d}:{total % 60:02d}"


def live_timing_riders(data):
    """Riders of a live timing snapshot ordered by running position"""
    riders = (data or {}).get("rider") or {}
    return sorted(riders.values(), key=lambda rider: rider.get("order") or 0)
