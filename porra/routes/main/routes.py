from datetime import datetime, timezone

from flask import jsonify

from porra import limiter
from porra.routes.main import bp


@bp.route("/")
def index():
    """Service descriptor"""
    return jsonify({"name": "porra", "api": "/api", "socketio_namespace": "/porra"})


@bp.route("/health")
@limiter.exempt
def health():
    """Health check endpoint - exempt from rate limiting for monitoring systems"""
    from porra.socketio_handlers import get_connected_clients_count
    from porra.utils.cache_utils import get_cache_stats

    return jsonify(
        {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "connected_clients": get_connected_clients_count(),
            "cache": get_cache_stats(),
        }
    )
