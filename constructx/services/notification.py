"""
ConstructX
Notification service.

Creates and queries in-app notifications. ``create`` only flushes; the
calling route commits together with the change that triggered it.
"""

from constructx.models import db
from constructx.models.base import utcnow
from constructx.models.notification import Notification


def _for_recipient(recipient, project_id):
    q = Notification.query.filter(
        (Notification.recipient == recipient) | (Notification.recipient == "all")
    )
    if project_id:
        q = q.filter_by(project_id=project_id)
    return q


class NotificationService:
    """Stateless helpers around :class:`Notification`."""

    @staticmethod
    def create(*, title, message="", category="system", severity="info",
               recipient="all", project_id=None, entity_type="", entity_id=None):
        notif = Notification(
            project_id=project_id,
            recipient=recipient or "all",
            title=title,
            message=message,
            category=category,
            severity=severity,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.session.add(notif)
        db.session.flush()
        return notif

    @staticmethod
    def list_for_recipient(recipient="all", project_id=None, unread_only=False,
                           limit=50, offset=0):
        """Newest first. Returns ``(items, total)``."""
        q = _for_recipient(recipient, project_id)
        if unread_only:
            q = q.filter_by(is_read=False)
        total = q.count()
        items = (q.order_by(Notification.created_at.desc(), Notification.id.desc())
                 .offset(offset).limit(limit).all())
        return items, total

    @staticmethod
    def unread_count(recipient="all", project_id=None):
        return _for_recipient(recipient, project_id).filter_by(is_read=False).count()

    @staticmethod
    def mark_read(notification_id):
        notif = db.session.get(Notification, notification_id)
        if notif:
            notif.mark_read()
            db.session.flush()
        return notif

    @staticmethod
    def mark_all_read(recipient="all", project_id=None):
        q = _for_recipient(recipient, project_id).filter_by(is_read=False)
        count = q.update({"is_read": True, "read_at": utcnow()}, synchronize_session="fetch")
        db.session.flush()
        return count
