"""
SocketIO Event Handlers for Real-time Updates

Clients listen on the /porra namespace and reload their data whenever votes
change or points are awarded.
"""

import logging
from datetime import datetime, timezone

from flask import request
from flask_socketio import emit

from porra import socketio

logger = logging.getLogger(__name__)

NAMESPACE = "/porra"

# Track connected clients
connected_clients = {}


@socketio.on("connect", namespace=NAMESPACE)
def on_connect():
    """Send the current season summary to a new client"""
    try:
        from porra.services.record_store import load_season_snapshot, today_iso

        client_id = request.sid
        connected_clients[client_id] = {
            "connected_at": datetime.now(timezone.utc).isoformat()
        }
        logger.info(f"Client connected to {NAMESPACE}: {client_id}")

        snapshot = load_season_snapshot(today_iso())
        emit(
            "season_summary",
            {
                "needs_seeding": snapshot["needs_seeding"],
                "next_race_id": snapshot["next_race_id"],
                "standings": snapshot["standings"],
            },
        )

    except Exception as e:
        logger.error(f"Error in {NAMESPACE} connect: {e}")


@socketio.on("disconnect", namespace=NAMESPACE)
def on_disconnect(reason=None):
    client_id = request.sid
    if connected_clients.pop(client_id, None) is not None:
        logger.info(f"Client disconnected from {NAMESPACE}: {client_id}")


# Broadcast functions (called after successful mutations)
def broadcast_votes_updated(race_id):
    """Tell clients the votes for ``race_id`` changed"""
    try:
        socketio.emit(
            "votes_updated",
            {"race_id": race_id, "timestamp": datetime.now(timezone.utc).isoformat()},
            namespace=NAMESPACE,
        )
        logger.debug(f"Broadcasted votes update for race {race_id}")
    except Exception as e:
        logger.error(f"Error broadcasting votes update: {e}")


def broadcast_points_awarded(race_id, session_id, count):
    """Tell clients a scoring pass wrote ``count`` Point rows"""
    try:
        socketio.emit(
            "points_awarded",
            {
                "race_id": race_id,
                "session_id": session_id,
                "awarded": count,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            namespace=NAMESPACE,
        )
        logger.info(f"Broadcasted {count} point awards for race {race_id}")
    except Exception as e:
        logger.error(f"Error broadcasting points awarded: {e}")


def get_connected_clients_count():
    return len(connected_clients)
