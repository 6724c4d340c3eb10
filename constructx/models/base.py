"""
Shared column mixins and serialisation helpers for ConstructX models.

    TimestampMixin   created_at / updated_at (timezone-aware UTC)
    iso()            date/datetime → ISO string, None-safe
    next_code()      sequential "PREFIX-001" style codes
"""

from datetime import datetime, timezone

from constructx.models import db


def utcnow():
    return datetime.now(timezone.utc)


def iso(value):
    return value.isoformat() if value else None


class TimestampMixin:
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)


def next_code(model_class, prefix: str) -> str:
    """Return the next ``PREFIX-NNN`` code for ``model_class.code``.

    Looks at the highest id carrying the prefix; non-numeric suffixes restart
    the sequence at 1.
    """
    full_prefix = prefix + "-"
    last = (
        model_class.query
        .filter(model_class.code.like(f"{full_prefix}%"))
        .order_by(model_class.id.desc())
        .first()
    )
    num = 1
    if last:
        try:
            num = int(last.code.rsplit("-", 1)[1]) + 1
        except (IndexError, ValueError):
            num = 1
    return f"{full_prefix}{num:03d}"
