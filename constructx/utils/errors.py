"""Standard JSON error envelope.

Usage
-----
    from constructx.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Budget not found")
    return api_error(E.CONFLICT_STATE, "Budget is already Approved")
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Machine-readable error codes carried in the ``code`` field."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    BUSINESS_RULE = "ERR_BUSINESS_RULE"

    NOT_FOUND = "ERR_NOT_FOUND"

    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"

    UNSUPPORTED_MEDIA = "ERR_UNSUPPORTED_MEDIA"
    NOT_IMPLEMENTED = "ERR_NOT_IMPLEMENTED"

    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.BUSINESS_RULE: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 422,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.UNSUPPORTED_MEDIA: 415,
    E.NOT_IMPLEMENTED: 501,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Build ``(jsonify(body), status)`` for a Flask view.

    The HTTP status falls back to the code's default, then to 400.
    """
    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details

    return jsonify(body), http_status
