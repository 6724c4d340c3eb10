"""
ConstructX
Blueprint registry helpers.
"""

import logging

from flask import request

from constructx.core.exceptions import ConflictError, NotFoundError, ValidationError
from constructx.models import db
from constructx.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def paginate_query(query, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    items = query.limit(limit).offset(offset).all()
    return items, total


def handle_service_error(error):
    """Translate a service-layer exception into the JSON error envelope.

    Anything raised mid-request may have left flushed rows behind, so the
    session is rolled back before responding.
    """
    db.session.rollback()
    if isinstance(error, NotFoundError):
        return api_error(E.NOT_FOUND, str(error))
    if isinstance(error, ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))
    if isinstance(error, ValidationError):
        return api_error(E.CONFLICT_STATE, str(error), details=error.details or None)
    return api_error(E.VALIDATION_INVALID, str(error))


def register_service_errors(bp):
    """Install :func:`handle_service_error` on ``bp`` for every service error type."""
    for exc_type in (NotFoundError, ConflictError, ValidationError, ValueError):
        bp.register_error_handler(exc_type, handle_service_error)
    return bp
