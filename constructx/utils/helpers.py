"""Shared helpers for blueprints and services.

parse_date:          lenient parse, None on bad input
parse_date_input:    strict parse, ValueError on bad input
validate_date_order: end ≥ start guard used by budgets, reports, allocations
parse_amount:        number coercion with a field-named ValueError
require_text:        non-blank string field, ValueError otherwise
db_commit_or_error:  commit with IntegrityError → 409, anything else → 500
"""
import logging
import math
from datetime import date, datetime

from flask import jsonify
from sqlalchemy.exc import IntegrityError, OperationalError

from constructx.models import db

logger = logging.getLogger(__name__)


def parse_date(value):
    """Parse ``YYYY-MM-DD``, a full ISO timestamp, or ``MM/DD/YYYY``.

    Returns None for empty or unparseable input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return datetime.strptime(text, "%m/%d/%Y").date()
    except ValueError:
        return None


def parse_date_input(value, field="date"):
    """Like :func:`parse_date` but raises ``ValueError`` on garbage."""
    if value in (None, ""):
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"Invalid {field}. Use YYYY-MM-DD.")
    return parsed


def validate_date_order(start, end, message="End date cannot be before start date"):
    if start and end and end < start:
        raise ValueError(message)


def parse_amount(value, field, *, required=False, minimum=None, allow_equal=True):
    """Coerce ``value`` to float.

    Raises ValueError naming ``field`` when missing (and required), not a
    number, or below ``minimum``.
    """
    if value is None or value == "":
        if required:
            raise ValueError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be a number") from None
    if not math.isfinite(number):
        raise ValueError(f"{field} must be a finite number")
    if minimum is not None:
        if number < minimum or (not allow_equal and number == minimum):
            op = ">=" if allow_equal else ">"
            raise ValueError(f"{field} must be {op} {minimum:g}")
    return number


def optional_text(data, field, default=""):
    """``data[field]`` stripped; ``default`` when absent or null.

    JSON numbers, lists and objects raise ValueError instead of being stored
    as text.
    """
    value = data.get(field)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a string")
    return value.strip()


def require_text(data, field):
    value = optional_text(data, field)
    if not value:
        raise ValueError(f"{field} is required")
    return value


def db_commit_or_error():
    """Commit the session; on failure roll back and return an error tuple.

    Returns None on success, else ``(response, status)``::

        err = db_commit_or_error()
        if err:
            return err
    """
    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return jsonify({"error": "Duplicate or constraint violation"}), 409
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return jsonify({"error": "Database error"}), 500
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return jsonify({"error": "Database error"}), 500
