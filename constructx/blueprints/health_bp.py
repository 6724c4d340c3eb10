"""
Health probes.

    GET /api/v1/health/ready  → 200 while the process is up
    GET /api/v1/health/live   → database + Redis status, 503 if the database is down

Both routes are exempt from API-key auth.
"""

import logging
import time

import redis
from flask import Blueprint, current_app, jsonify

from constructx.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


def _timed(fn):
    started = time.perf_counter()
    fn()
    return round((time.perf_counter() - started) * 1000, 1)


def _check_database():
    try:
        return {"status": "ok", "latency_ms": _timed(lambda: db.session.execute(db.text("SELECT 1")))}
    except Exception as exc:
        logger.error("Health check: database failed: %s", exc)
        return {"status": "error", "detail": str(exc)}


def _check_redis(url):
    # Redis only backs the rate limiter; memory:// storage means nothing to ping.
    if not url or not url.startswith(("redis://", "rediss://")):
        return {"status": "skipped", "detail": "no REDIS_URL configured"}
    try:
        return {"status": "ok", "latency_ms": _timed(redis.from_url(url, socket_timeout=2).ping)}
    except redis.RedisError as exc:
        logger.warning("Health check: redis unreachable: %s", exc)
        return {"status": "error", "detail": str(exc)}


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    checks = {
        "database": _check_database(),
        "redis": _check_redis(current_app.config.get("REDIS_URL", "")),
        "app": {
            "name": "ConstructX",
            "debug": current_app.debug,
            "testing": current_app.testing,
        },
    }
    healthy = checks["database"]["status"] == "ok"
    return jsonify({
        "status": "healthy" if healthy else "degraded",
        "checks": checks,
    }), 200 if healthy else 503
