import logging
from datetime import datetime, timezone

from flask import abort, jsonify, request

from porra import db, limiter
from porra.models import Player, Race, Rider
from porra.routes.api import bp
from porra.services.aggregation import player_vote_history
from porra.services.record_store import load_season_snapshot, today_iso
from porra.services.scoring_engine import ScoringEngine
from porra.services.vote_ledger import VoteLedger
from porra.utils.results_feed import (
    CalendarImport,
    ResultsFeed,
    ResultsFeedError,
    format_remaining_time,
    live_timing_riders,
)
from porra.utils.timezone_utils import convert_to_app_timezone, format_deadline

logger = logging.getLogger(__name__)


def _keyed_by_str(mapping):
    return {str(key): value for key, value in mapping.items()}


def _int_field(data, name):
    value = data.get(name)
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _feed_error(e):
    logger.warning(f"Results feed unavailable: {e}")
    return jsonify({"error": str(e)}), 503


@bp.route("/state")
def state():
    """Next race, its voting window and the current bets"""
    snapshot = load_season_snapshot(today_iso())

    race = None
    if snapshot["next_race_id"] is not None:
        race = db.session.get(Race, snapshot["next_race_id"])

    payload = {
        "needs_seeding": snapshot["needs_seeding"],
        "next_race": race.to_dict() if race else None,
        "voting_open": False,
        "deadline": None,
        "deadline_local": None,
        "deadline_display": None,
        "bets": _keyed_by_str(snapshot["bets"]),
        "locked": _keyed_by_str(snapshot["locked"]),
    }

    if race:
        deadline = race.voting_deadline
        payload["voting_open"] = race.is_voting_open(datetime.now(timezone.utc))
        payload["deadline"] = deadline.isoformat()
        payload["deadline_local"] = convert_to_app_timezone(deadline).isoformat()
        payload["deadline_display"] = format_deadline(deadline)

    return jsonify(payload)


@bp.route("/players")
def players():
    return jsonify([p.to_dict() for p in Player.query.order_by(Player.id).all()])


@bp.route("/riders")
def riders():
    return jsonify([r.to_dict() for r in Rider.query.order_by(Rider.id).all()])


@bp.route("/races")
def races():
    """Season calendar in date order"""
    return jsonify([race.to_dict() for race in Race.get_calendar()])


@bp.route("/standings")
def standings():
    """Leaderboard ordered by total points"""
    snapshot = load_season_snapshot(today_iso())
    names = {p.id: p.name for p in Player.query.all()}

    rows = []
    for row in snapshot["standings"]:
        entry = dict(row)
        entry["name"] = names.get(row["player_id"])
        rows.append(entry)

    return jsonify(
        {"last_scored_race_id": snapshot["last_scored_race_id"], "standings": rows}
    )


@bp.route("/players/<int:player_id>/history")
def player_history(player_id):
    """How often a player has voted for each rider this season"""
    player = db.session.get(Player, player_id)
    if not player:
        abort(404)

    snapshot = load_season_snapshot(today_iso())
    stats = next(
        (s for s in snapshot["player_stats"] if s.player_id == player_id), None
    )
    if stats is None:
        return jsonify({"player": player.to_dict(), "total_votes": 0, "history": []})

    riders_by_id = {r.id: r for r in Rider.query.all()}
    history = [
        {"rider": riders_by_id[rider_id].to_dict(), "count": count}
        for rider_id, count in player_vote_history(stats, set(riders_by_id))
    ]

    return jsonify(
        {
            "player": player.to_dict(),
            "points": stats.points,
            "total_votes": stats.total_votes,
            "history": history,
        }
    )


@bp.route("/stats")
def stats():
    """Season highlights"""
    snapshot = load_season_snapshot(today_iso())
    riders_by_id = {r.id: r for r in Rider.query.all()}
    players_by_id = {p.id: p for p in Player.query.all()}

    def rider_stat(entry, value_key):
        if entry is None:
            return None
        rider_id, value = entry
        rider = riders_by_id.get(rider_id)
        return {"rider": rider.to_dict() if rider else None, value_key: value}

    best = snapshot["best_player"]
    best_player = None
    if best is not None:
        player = players_by_id.get(best[0])
        best_player = {
            "player": player.to_dict() if player else None,
            "average": round(best[1], 2),
        }

    return jsonify(
        {
            "most_voted_rider": rider_stat(snapshot["most_voted_rider"], "votes"),
            "top_scoring_rider": rider_stat(snapshot["top_scoring_rider"], "points"),
            "best_player": best_player,
        }
    )


@bp.route("/votes", methods=["POST"])
@limiter.limit("30 per minute")
def submit_vote():
    """Cast, change or reconfirm a vote for the next race"""
    data = request.get_json(silent=True) or {}
    player_id = _int_field(data, "player_id")
    rider_id = _int_field(data, "rider_id")

    if player_id is None or rider_id is None:
        return jsonify({"success": False, "message": "player_id and rider_id are required."}), 400

    result = VoteLedger().submit_vote(player_id, rider_id)
    return jsonify(result._asdict()), 200 if result.success else 400


@bp.route("/scoring", methods=["POST"])
@limiter.limit("10 per minute")
def award_points():
    """Award points for one session's official classification"""
    data = request.get_json(silent=True) or {}
    event_id = data.get("event_id")
    session = data.get("session")
    classification = data.get("classification")

    if not event_id or not isinstance(session, dict) or not session.get("id"):
        return jsonify(
            {"success": False, "message": "event_id and session.id are required.", "awarded": 0}
        ), 400
    if not isinstance(classification, list):
        return jsonify(
            {"success": False, "message": "classification must be a list.", "awarded": 0}
        ), 400

    result = ScoringEngine().award_session_points(event_id, session, classification)
    return jsonify(result._asdict()), 200 if result.success else 400


@bp.route("/calendar/sync", methods=["POST"])
@limiter.limit("5 per hour")
def sync_calendar():
    """Import the current season's calendar from the results feed"""
    success, message = CalendarImport().sync_calendar()
    return jsonify({"success": success, "message": message}), 200 if success else 400


# Read-only pass-through for browsing official results


@bp.route("/results/seasons")
def results_seasons():
    try:
        seasons = ResultsFeed.from_config().get_seasons()
    except ResultsFeedError as e:
        return _feed_error(e)
    return jsonify(sorted(seasons, key=lambda s: s.get("year") or 0, reverse=True))


@bp.route("/results/categories")
def results_categories():
    season_id = request.args.get("season_id")
    if not season_id:
        return jsonify({"error": "season_id is required"}), 400
    try:
        return jsonify(ResultsFeed.from_config().get_categories(season_id))
    except ResultsFeedError as e:
        return _feed_error(e)


@bp.route("/results/events")
def results_events():
    """Finished events of a season, tests excluded"""
    season_id = request.args.get("season_id")
    if not season_id:
        return jsonify({"error": "season_id is required"}), 400
    try:
        events = ResultsFeed.from_config().get_events(season_id, finished=True)
    except ResultsFeedError as e:
        return _feed_error(e)
    return jsonify(
        [
            event
            for event in events
            if "test" not in (event.get("sponsored_name") or "").lower()
        ]
    )


@bp.route("/results/sessions")
def results_sessions():
    event_id = request.args.get("event_id")
    category_id = request.args.get("category_id")
    if not event_id or not category_id:
        return jsonify({"error": "event_id and category_id are required"}), 400
    try:
        return jsonify(ResultsFeed.from_config().get_sessions(event_id, category_id))
    except ResultsFeedError as e:
        return _feed_error(e)


@bp.route("/results/classification")
def results_classification():
    session_id = request.args.get("session_id")
    if not session_id:
        return jsonify({"error": "session_id is required"}), 400
    try:
        return jsonify(ResultsFeed.from_config().get_classification(session_id))
    except ResultsFeedError as e:
        return _feed_error(e)


@bp.route("/results/standings")
def results_standings():
    """World championship standings of one category"""
    season_id = request.args.get("season_id")
    category_id = request.args.get("category_id")
    if not season_id or not category_id:
        return jsonify({"error": "season_id and category_id are required"}), 400
    try:
        return jsonify(
            ResultsFeed.from_config().get_world_standings(season_id, category_id)
        )
    except ResultsFeedError as e:
        return _feed_error(e)


@bp.route("/live-timing")
def live_timing():
    """Session running now; ``head`` is null when nothing is on track"""
    try:
        data = ResultsFeed.from_config().get_live_timing() or {}
    except ResultsFeedError as e:
        return _feed_error(e)

    head = data.get("head")
    return jsonify(
        {
            "head": head,
            "remaining": format_remaining_time(head.get("remaining")) if head else None,
            "riders": live_timing_riders(data),
        }
    )


@bp.route("/admin/scheduler", methods=["GET", "POST"])
def admin_scheduler():
    """Scheduler status (GET) and actions (POST)"""
    from porra.services.scheduler_service import scheduler_service

    if request.method == "GET":
        return jsonify(scheduler_service.get_status())

    data = request.get_json(silent=True) or {}
    action = data.get("action")

    if action == "status":
        return jsonify(scheduler_service.get_status())

    if action == "force_sync":
        success, message = scheduler_service.force_sync(data.get("sync_type", "score"))
    elif action in ("pause_job", "resume_job"):
        job_id = data.get("job_id")
        if not job_id:
            return jsonify({"error": "Job ID required"}), 400
        if action == "pause_job":
            success, message = scheduler_service.pause_job(job_id)
        else:
            success, message = scheduler_service.resume_job(job_id)
    else:
        return jsonify({"error": "Unknown action"}), 400

    if success:
        return jsonify({"message": message})
    return jsonify({"error": message}), 400
