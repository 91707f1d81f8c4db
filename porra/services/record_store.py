"""
Record store access for the Porra

Loads the five collections the game is derived from and recognises the
bootstrap state (empty or missing Players/Riders) that needs one-time seeding.
"""

import logging
from collections import namedtuple
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from porra import db
from porra.models import Player, Point, Race, Rider, Vote
from porra.services.aggregation import build_season_snapshot
from porra.utils.cache_utils import cached_query, invalidate_model_cache
from porra.utils.deadline import find_next_race

logger = logging.getLogger(__name__)

SeasonData = namedtuple(
    "SeasonData", ["players", "riders", "races", "votes", "points", "needs_seeding"]
)


def _is_missing_table(error):
    message = str(error).lower()
    return "no such table" in message or (
        "relation" in message and "does not exist" in message
    )


def _load_optional(model, label, order_by=None):
    """Load a collection that may legitimately not exist yet"""
    try:
        query = model.query
        if order_by is not None:
            query = query.order_by(order_by)
        return query.all()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning(f"Could not load {label}: {e}. The table may not exist.")
        return []


def load_collections():
    """
    Select every collection from the store.

    Players and Riders are mandatory: a missing table or an empty Players
    collection returns ``needs_seeding=True``; any other failure propagates.
    """
    try:
        players = Player.query.order_by(Player.id).all()
        riders = Rider.query.order_by(Rider.id).all()
    except SQLAlchemyError as e:
        db.session.rollback()
        if _is_missing_table(e):
            logger.warning(f"Mandatory tables missing, seeding required: {e}")
            return SeasonData([], [], [], [], [], True)
        raise

    if not players:
        return SeasonData([], riders, [], [], [], True)

    races = _load_optional(Race, "races")
    races.sort(key=lambda r: r.race_date)

    return SeasonData(
        players,
        riders,
        races,
        _load_optional(Vote, "votes"),
        _load_optional(Point, "points", order_by=Point.id),
        False,
    )


@cached_query("Snapshot", timeout=300)
def load_season_snapshot(today_iso):
    """
    Derived season state for the given day (ISO date string).

    Cached until the next vote, scoring pass or calendar change.
    """
    data = load_collections()
    next_race = find_next_race(data.races, today_iso) if data.races else None

    snapshot = build_season_snapshot(
        data.players,
        data.votes,
        data.points,
        next_race_id=next_race.id if next_race else None,
    )
    snapshot["needs_seeding"] = data.needs_seeding
    snapshot["next_race_id"] = next_race.id if next_race else None
    return snapshot


def today_iso():
    return datetime.now(timezone.utc).date().isoformat()


def seed_reference_data(players, riders):
    """
    Upsert players and riders.

    Returns:
        tuple: (success, message)
    """
    try:
        for entry in players:
            db.session.merge(Player(**entry))
        for entry in riders:
            db.session.merge(Rider(**entry))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error seeding reference data: {e}")
        return False, str(e)

    invalidate_model_cache("Player")
    logger.info(f"Seeded {len(players)} players and {len(riders)} riders")
    return True, f"Seeded {len(players)} players and {len(riders)} riders"
