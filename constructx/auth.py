"""
ConstructX
API-key authentication and role checks.

Provides:
    - X-API-Key header authentication for /api/v1/* (health excluded)
    - method-level role floor: GET → viewer, POST/PUT/PATCH → editor,
      DELETE → admin
    - ``require_role`` decorator for endpoints that need more than the floor
    - ``current_actor()`` for audit rows and created_by/approved_by fields

Configuration (env vars):
    API_KEYS          comma-separated "<key>:<role>[:<name>]" entries,
                      e.g. "k1:admin:alice,k2:viewer"
    API_AUTH_ENABLED  "false" disables auth (development/testing)
"""

import functools
import logging
import os

from flask import current_app, g, jsonify, request

logger = logging.getLogger(__name__)

ROLES = {"admin", "editor", "viewer"}

ROLE_HIERARCHY = {
    "admin": {"admin", "editor", "viewer"},
    "editor": {"editor", "viewer"},
    "viewer": {"viewer"},
}

METHOD_ROLES = {
    "GET": "viewer",
    "HEAD": "viewer",
    "POST": "editor",
    "PUT": "editor",
    "PATCH": "editor",
    "DELETE": "admin",
}

_OFF_VALUES = ("false", "0", "no", "off")


def _parse_api_keys() -> dict[str, tuple[str, str]]:
    """Parse API_KEYS into ``{key: (role, name)}``.

    Unknown roles fall back to viewer; a missing name becomes "api-<prefix>".
    """
    raw = os.getenv("API_KEYS", "")
    keys = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = [p.strip() for p in entry.split(":")]
        key = parts[0]
        role = parts[1].lower() if len(parts) > 1 and parts[1] else "viewer"
        if role not in ROLES:
            logger.warning("Unknown role '%s' for API key, defaulting to 'viewer'", role)
            role = "viewer"
        name = parts[2] if len(parts) > 2 and parts[2] else f"api-{key[:6]}"
        keys[key] = (role, name)
    return keys


def _is_auth_enabled() -> bool:
    env_val = os.getenv("API_AUTH_ENABLED", "")
    if env_val:
        return env_val.lower() not in _OFF_VALUES
    return str(current_app.config.get("API_AUTH_ENABLED", "true")).lower() not in _OFF_VALUES


def current_actor() -> str:
    """Name recorded on audit rows and approval fields.

    With auth disabled, an ``X-User`` header may name the caller.
    """
    actor = getattr(g, "actor", None)
    if actor:
        return actor
    return "system"


def require_role(minimum_role: str):
    """Require at least ``minimum_role`` on top of the method floor.

    Usage:
        @archive_bp.route("/project-archives/<int:pid>", methods=["DELETE"])
        @require_role("admin")
        def delete_archived_project(pid): ...
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user_role = getattr(g, "current_user_role", None)
            if not user_role:
                return jsonify({"error": "Authentication required"}), 401
            if minimum_role not in ROLE_HIERARCHY.get(user_role, set()):
                logger.warning("Access denied: role '%s' tried '%s'-level endpoint %s",
                               user_role, minimum_role, request.path)
                return jsonify({"error": "Insufficient permissions"}), 403
            return f(*args, **kwargs)
        return decorated
    return decorator


def init_auth(app):
    """Install the before_request authentication hook."""

    @app.before_request
    def _authenticate():
        if not request.path.startswith("/api/v1/"):
            return None
        if request.path.startswith("/api/v1/health") or request.method == "OPTIONS":
            return None

        if not _is_auth_enabled():
            g.current_user_role = "admin"
            g.actor = request.headers.get("X-User", "").strip() or "dev"
            return None

        api_key = request.headers.get("X-API-Key", "").strip()
        if not api_key:
            return jsonify({"error": "Authentication required. Provide X-API-Key header."}), 401

        api_keys = _parse_api_keys()
        if not api_keys:
            logger.error("API_KEYS is not configured but API_AUTH_ENABLED=true")
            return jsonify({"error": "Server authentication not configured"}), 500

        match = api_keys.get(api_key)
        if match is None:
            logger.warning("Invalid API key attempt: %s...", api_key[:8])
            return jsonify({"error": "Invalid API key"}), 401

        role, name = match
        needed = METHOD_ROLES.get(request.method, "admin")
        if needed not in ROLE_HIERARCHY[role]:
            logger.warning("Access denied: role '%s' cannot %s %s", role, request.method, request.path)
            return jsonify({"error": "Insufficient permissions"}), 403

        g.current_user_role = role
        g.actor = name
        return None

    logger.info("Auth middleware installed")
