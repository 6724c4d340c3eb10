"""
ConstructX
Communication domain models.

Models:
    - Communication:         email, message, notification, meeting or announcement
    - CommunicationResponse: reply thread entry
"""

from constructx.models import db
from constructx.models.base import TimestampMixin, iso

# ── Constants ────────────────────────────────────────────────────────────────

COMMUNICATION_TYPES = {"email", "message", "notification", "meeting", "announcement"}
COMMUNICATION_STATUSES = {"draft", "sent", "delivered", "read", "scheduled", "cancelled"}
COMMUNICATION_PRIORITIES = {"low", "medium", "high", "urgent"}

# Statuses that imply the communication has left the outbox
DISPATCHED_STATUSES = {"sent", "delivered", "read"}


class Communication(TimestampMixin, db.Model):
    __tablename__ = "communications"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    subject = db.Column(db.String(300), nullable=False)
    type = db.Column(db.String(20), nullable=False, default="message")
    content = db.Column(db.Text, default="")
    sender = db.Column(db.String(150), default="")
    recipients = db.Column(db.JSON, default=list)
    status = db.Column(db.String(20), nullable=False, default="draft", index=True)
    priority = db.Column(db.String(10), nullable=False, default="medium")
    sent_date = db.Column(db.Date, nullable=True)
    scheduled_date = db.Column(db.Date, nullable=True)
    attachments = db.Column(db.JSON, default=list)
    tags = db.Column(db.JSON, default=list)

    responses = db.relationship(
        "CommunicationResponse", backref="communication", lazy="select",
        cascade="all, delete-orphan",
        order_by="CommunicationResponse.date",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "subject": self.subject,
            "type": self.type,
            "content": self.content,
            "sender": self.sender,
            "recipients": self.recipients or [],
            "status": self.status,
            "priority": self.priority,
            "sent_date": iso(self.sent_date),
            "scheduled_date": iso(self.scheduled_date),
            "attachments": self.attachments or [],
            "tags": self.tags or [],
            "responses": [r.to_dict() for r in self.responses],
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<Communication {self.id}: {self.subject[:40]}>"


class CommunicationResponse(db.Model):
    __tablename__ = "communication_responses"

    id = db.Column(db.Integer, primary_key=True)
    communication_id = db.Column(
        db.Integer, db.ForeignKey("communications.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    content = db.Column(db.Text, nullable=False)
    sender = db.Column(db.String(150), default="")
    date = db.Column(db.Date, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "content": self.content,
            "sender": self.sender,
            "date": iso(self.date),
        }
