"""
Soft delete support.

Budgets, expenses, financial reports, documents and projects are never
removed by their regular DELETE endpoints; ``deleted_at`` is stamped instead
and every list/get goes through ``query_active()``.

    budget.soft_delete()
    Budget.query_active().filter_by(project_id=pid)
"""

from datetime import datetime, timezone

from constructx.models import db


class SoftDeleteMixin:

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, default=None, index=True)

    def soft_delete(self):
        self.deleted_at = datetime.now(timezone.utc)

    def restore(self):
        self.deleted_at = None

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @classmethod
    def query_active(cls):
        """Query excluding soft-deleted rows."""
        return cls.query.filter(cls.deleted_at.is_(None))
