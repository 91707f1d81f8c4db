"""
Automatic scoring of finished races from the official results feed
"""

import logging
from datetime import datetime, timezone

from flask import current_app

from porra.models import Point, Race
from porra.utils.results_feed import ResultsFeedError

logger = logging.getLogger(__name__)

# Sessions that award championship points (sprint and main race)
POINTS_SESSION_TYPES = ("SPR", "RAC")


def _finished_races(today):
    return (
        Race.query.filter(Race.race_date < today, Race.external_event_id.isnot(None))
        .order_by(Race.race_date)
        .all()
    )


def score_finished_races(feed, engine, today=None, category_name=None):
    """
    Score every points-awarding session of races dated before ``today``.

    Sessions already scored are counted and skipped; feed failures for one
    race are logged and do not stop the others.

    Returns:
        dict: summary counters plus the list of error messages
    """
    today = today or datetime.now(timezone.utc).date()
    category_name = category_name or current_app.config.get(
        "RESULTS_CATEGORY_NAME", "MotoGP"
    )

    summary = {
        "races_checked": 0,
        "sessions_scored": 0,
        "already_scored": 0,
        "points_awarded": 0,
        "errors": [],
    }

    races = _finished_races(today)
    if not races:
        logger.info("No finished races to score")
        return summary

    try:
        season = feed.get_current_season()
        category = feed.find_category(season["id"], category_name)
    except ResultsFeedError as e:
        logger.error(f"Auto-scoring could not load the season: {e}")
        summary["errors"].append(str(e))
        return summary

    if not category:
        message = f"Category {category_name} not found in the current season."
        logger.error(message)
        summary["errors"].append(message)
        return summary

    for race in races:
        summary["races_checked"] += 1
        try:
            sessions = feed.get_sessions(race.external_event_id, category["id"])
        except ResultsFeedError as e:
            logger.warning(f"Could not load sessions for {race.name}: {e}")
            summary["errors"].append(f"{race.name}: {e}")
            continue

        for session in sessions:
            if session.get("type") not in POINTS_SESSION_TYPES:
                continue

            if Point.session_already_scored(race.id, str(session["id"])):
                summary["already_scored"] += 1
                continue

            try:
                classification = feed.get_classification(session["id"])
            except ResultsFeedError as e:
                logger.warning(f"Could not load classification for {race.name}: {e}")
                summary["errors"].append(f"{race.name}: {e}")
                continue

            if not classification:
                # Session not run yet or results not published
                continue

            result = engine.award_session_points(
                race.external_event_id, session, classification
            )
            if result.success:
                summary["sessions_scored"] += 1
                summary["points_awarded"] += result.awarded
            elif "already scored" in result.message:
                summary["already_scored"] += 1
            else:
                summary["errors"].append(result.message)

    logger.info(
        f"Auto-scoring complete: {summary['sessions_scored']} sessions scored, "
        f"{summary['already_scored']} already scored, {len(summary['errors'])} errors"
    )
    return summary
