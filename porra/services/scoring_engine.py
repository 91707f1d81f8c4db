"""
Scoring Engine for the Porra

Turns the official classification of one session into Point rows for the
players who voted for a rider that scored. Each (race, session) pair is
scored at most once: a second pass is reported as "already scored" and writes
nothing, so a failed batch can simply be retried.
"""

import logging
from collections import namedtuple

from sqlalchemy.exc import SQLAlchemyError

from porra import db
from porra.models import Point, Race, Rider, Vote
from porra.utils.locks import keyed_lock
from porra.utils.logging_config import ContextualLogger

logger = logging.getLogger(__name__)

SessionInfo = namedtuple("SessionInfo", ["id", "type", "number"])
ClassificationEntry = namedtuple("ClassificationEntry", ["rider_number", "points"])
ScoringResult = namedtuple("ScoringResult", ["success", "message", "awarded"])


def normalize_session(session):
    """Accept a SessionInfo, a feed session dict or any object with id/type/number"""
    if isinstance(session, SessionInfo):
        return session
    if isinstance(session, dict):
        return SessionInfo(
            str(session["id"]), session.get("type") or "", session.get("number")
        )
    return SessionInfo(str(session.id), session.type or "", session.number)


def session_label(session):
    """Human-readable session name, e.g. "RAC 1" or "SPR" """
    number = "" if session.number is None else session.number
    return f"{session.type} {number}".strip()


def normalize_classification(entries):
    """
    Normalize classification rows to ClassificationEntry tuples.

    Rows may already be normalized (``rider_number``/``points``) or come
    straight from the results feed (``rider.number`` and optional ``points``).
    Rows without a rider number are skipped.
    """
    normalized = []
    for entry in entries or []:
        if isinstance(entry, ClassificationEntry):
            normalized.append(entry)
            continue

        if "rider_number" in entry:
            number = entry.get("rider_number")
        else:
            number = (entry.get("rider") or {}).get("number")

        if number is None:
            continue

        normalized.append(ClassificationEntry(int(number), int(entry.get("points") or 0)))
    return normalized


def build_point_awards(race_id, votes, number_lookup, session, classification):
    """
    Compute the Point rows one session produces.

    Args:
        race_id: internal race id
        votes: votes cast for this race (objects with player_id/rider_id)
        number_lookup: race number -> internal rider id
        session: SessionInfo of the scored session
        classification: ClassificationEntry rows

    Returns:
        list[dict]: one dict per player whose rider scored in this session
    """
    points_by_rider = {}
    for entry in classification:
        rider_id = number_lookup.get(entry.rider_number)
        if rider_id is not None and entry.points > 0:
            points_by_rider[rider_id] = entry.points

    label = session_label(session)
    awards = []
    for vote in votes:
        scored = points_by_rider.get(vote.rider_id)
        if not scored:
            continue
        awards.append(
            {
                "player_id": vote.player_id,
                "race_id": race_id,
                "rider_id": vote.rider_id,
                "session_id": session.id,
                "session_name": label,
                "points": scored,
            }
        )
    return awards


class ScoringEngine:
    """Awards points for official session results"""

    def award_session_points(self, external_event_id, session, classification):
        """
        Score one session of the race identified by ``external_event_id``.

        Returns:
            ScoringResult: (success, message, awarded) where ``awarded`` is the
            number of Point rows written
        """
        session = normalize_session(session)
        label = session_label(session)

        # One malformed row declines the whole session so it can be rescored later
        try:
            entries = normalize_classification(classification)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Invalid classification for {label} of {external_event_id}: {e}")
            return ScoringResult(False, f"Invalid classification: {e}", 0)

        try:
            race = Race.get_by_external_id(external_event_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error loading race for event {external_event_id}: {e}")
            return ScoringResult(False, f"Error awarding points: {e}", 0)

        if not race:
            return ScoringResult(False, f"Race not found for event {external_event_id}.", 0)

        race_id, race_name = race.id, race.name
        log = ContextualLogger(__name__, {"race_id": race_id, "session": label})

        with keyed_lock("score", race_id, session.id):
            try:
                # Row lock serializes scoring across worker processes
                Race.lock_row(race_id)

                if Point.session_already_scored(race_id, session.id):
                    db.session.rollback()
                    log.info("Session already scored, skipping")
                    return ScoringResult(
                        False, f"{label} already scored for {race_name}.", 0
                    )

                votes = Vote.query.filter_by(race_id=race_id).all()
                awards = build_point_awards(
                    race_id, votes, Rider.get_number_lookup(), session, entries
                )

                if not votes:
                    db.session.rollback()
                    return ScoringResult(
                        True, f"No votes for {race_name}; nothing to award.", 0
                    )
                if not awards:
                    db.session.rollback()
                    return ScoringResult(True, f"No one scored in {label}.", 0)

                db.session.add_all(Point(**award) for award in awards)
                db.session.commit()

            except SQLAlchemyError as e:
                db.session.rollback()
                log.error(f"Error awarding points: {e}")
                return ScoringResult(False, f"Error awarding points: {e}", 0)

        db.session.expire_all()
        log.info(f"Awarded points to {len(awards)} players")
        _notify_points_awarded(race_id, session.id, len(awards))

        return ScoringResult(
            True, f"Awarded points to {len(awards)} players for {label}.", len(awards)
        )


def _notify_points_awarded(race_id, session_id, count):
    from porra.utils.cache_utils import invalidate_model_cache

    invalidate_model_cache("Point")

    try:
        from porra.socketio_handlers import broadcast_points_awarded

        broadcast_points_awarded(race_id, session_id, count)
    except Exception as e:
        logger.error(f"Error emitting points update: {e}")
