"""
ConstructX
Sales lead domain models.

Models:
    - Lead:         prospective job in the sales pipeline
    - LeadContact:  person at the client; at most one is primary
    - LeadActivity: timeline entry (calls, meetings, system events)
    - LeadNote:     free-text note
"""

from constructx.models import db
from constructx.models.base import TimestampMixin, iso, utcnow

# ── Constants ────────────────────────────────────────────────────────────────

LEAD_STATUSES = ["New", "Contacted", "Qualified", "Proposal", "Negotiation", "Won", "Lost"]
ACTIVITY_TYPES = {"Call", "Email", "Meeting", "Note", "Task", "Document"}

# Fields a PUT may never touch
LEAD_PROTECTED_FIELDS = {"id", "created_by", "created_at", "updated_at", "last_activity_at"}

NOTE_PREVIEW_LENGTH = 100


class Lead(TimestampMixin, db.Model):
    __tablename__ = "leads"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    client_company = db.Column(db.String(200), default="")
    source = db.Column(db.String(100), default="")
    description = db.Column(db.Text, default="")
    estimated_value = db.Column(db.Float, nullable=False, default=0)
    estimated_start_date = db.Column(db.Date, nullable=True)
    estimated_duration = db.Column(db.Integer, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="New", index=True)
    probability = db.Column(db.Integer, nullable=False, default=0)
    assigned_to = db.Column(db.String(150), nullable=False, index=True)
    created_by = db.Column(db.String(150), default="system")
    last_activity_at = db.Column(db.DateTime(timezone=True), nullable=True)
    tags = db.Column(db.JSON, default=list)

    contacts = db.relationship(
        "LeadContact", backref="lead", lazy="dynamic", cascade="all, delete-orphan",
    )
    activities = db.relationship(
        "LeadActivity", backref="lead", lazy="dynamic", cascade="all, delete-orphan",
    )
    notes = db.relationship(
        "LeadNote", backref="lead", lazy="dynamic", cascade="all, delete-orphan",
    )

    def touch(self):
        self.last_activity_at = utcnow()

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "client_company": self.client_company,
            "source": self.source,
            "description": self.description,
            "estimated_value": self.estimated_value,
            "estimated_start_date": iso(self.estimated_start_date),
            "estimated_duration": self.estimated_duration,
            "status": self.status,
            "probability": self.probability,
            "assigned_to": self.assigned_to,
            "created_by": self.created_by,
            "last_activity_at": iso(self.last_activity_at),
            "tags": self.tags or [],
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Lead {self.id}: {self.name} [{self.status}]>"


class LeadContact(TimestampMixin, db.Model):
    __tablename__ = "lead_contacts"

    id = db.Column(db.Integer, primary_key=True)
    lead_id = db.Column(
        db.Integer, db.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(200), default="")
    phone = db.Column(db.String(50), default="")
    position = db.Column(db.String(100), default="")
    is_primary = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, default="")

    def to_dict(self):
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "position": self.position,
            "is_primary": self.is_primary,
            "notes": self.notes,
        }


class LeadActivity(db.Model):
    __tablename__ = "lead_activities"

    id = db.Column(db.Integer, primary_key=True)
    lead_id = db.Column(
        db.Integer, db.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    type = db.Column(db.String(20), nullable=False)
    title = db.Column(db.String(300), default="")
    description = db.Column(db.Text, default="")
    performed_by = db.Column(db.String(150), default="system")
    performed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    scheduled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    outcome = db.Column(db.Text, default="")

    def to_dict(self):
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "performed_by": self.performed_by,
            "performed_at": iso(self.performed_at),
            "scheduled_at": iso(self.scheduled_at),
            "outcome": self.outcome,
        }


class LeadNote(db.Model):
    __tablename__ = "lead_notes"

    id = db.Column(db.Integer, primary_key=True)
    lead_id = db.Column(
        db.Integer, db.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    content = db.Column(db.Text, nullable=False)
    created_by = db.Column(db.String(150), default="system")
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "content": self.content,
            "created_by": self.created_by,
            "created_at": iso(self.created_at),
        }
