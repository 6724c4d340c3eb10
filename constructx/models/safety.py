"""
ConstructX
Safety domain models.

Models:
    - SafetyItem:   hazard, incident, near miss, safety meeting or training
    - SafetyAction: remediation task attached to a safety item

An item's status follows its actions (``derive_safety_status``); meetings
use scheduled/completed instead of open/resolved.
"""

from constructx.models import db
from constructx.models.base import TimestampMixin, iso

# ── Constants ────────────────────────────────────────────────────────────────

SAFETY_TYPES = {"hazard", "incident", "near_miss", "safety_meeting", "training"}
SAFETY_STATUSES = {"open", "in_progress", "resolved", "closed", "scheduled", "completed"}
SAFETY_SEVERITIES = {"low", "medium", "high", "critical"}
ACTION_STATUSES = {"pending", "in_progress", "completed"}

# Item types whose creation at "critical" severity raises a notification
ALERT_TYPES = {"hazard", "incident", "near_miss"}

_MEETING_STATUS_MAP = {"resolved": "completed", "open": "scheduled"}


class SafetyItem(TimestampMixin, db.Model):
    __tablename__ = "safety_items"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    type = db.Column(db.String(20), nullable=False, default="hazard")
    location = db.Column(db.String(300), default="")
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(20), nullable=False, default="open", index=True)
    severity = db.Column(db.String(10), nullable=False, default="medium")
    reported_by = db.Column(db.String(150), default="")
    reported_date = db.Column(db.Date, nullable=True)
    assigned_to = db.Column(db.String(150), default="")
    due_date = db.Column(db.Date, nullable=True)
    completed_date = db.Column(db.Date, nullable=True)
    attachments = db.Column(db.JSON, default=list)
    tags = db.Column(db.JSON, default=list)
    notes = db.Column(db.Text, default="")

    actions = db.relationship(
        "SafetyAction", backref="safety_item", lazy="select",
        cascade="all, delete-orphan", order_by="SafetyAction.position",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "type": self.type,
            "location": self.location,
            "description": self.description,
            "status": self.status,
            "severity": self.severity,
            "reported_by": self.reported_by,
            "reported_date": iso(self.reported_date),
            "assigned_to": self.assigned_to,
            "due_date": iso(self.due_date),
            "completed_date": iso(self.completed_date),
            "attachments": self.attachments or [],
            "tags": self.tags or [],
            "notes": self.notes,
            "actions": [a.to_dict() for a in self.actions],
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<SafetyItem {self.id}: {self.type} [{self.status}]>"


class SafetyAction(db.Model):
    __tablename__ = "safety_actions"

    id = db.Column(db.Integer, primary_key=True)
    safety_item_id = db.Column(
        db.Integer, db.ForeignKey("safety_items.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    description = db.Column(db.String(500), nullable=False)
    assigned_to = db.Column(db.String(150), default="")
    due_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="pending")
    completed_date = db.Column(db.Date, nullable=True)
    position = db.Column(db.Integer, default=0)

    def to_dict(self):
        return {
            "id": self.id,
            "description": self.description,
            "assigned_to": self.assigned_to,
            "due_date": iso(self.due_date),
            "status": self.status,
            "completed_date": iso(self.completed_date),
        }


# ── Aggregation ──────────────────────────────────────────────────────────────


def derive_safety_status(item_type, action_statuses):
    """Reduce action statuses to an item status, or None for no actions."""
    statuses = list(action_statuses)
    if not statuses:
        return None

    completed = statuses.count("completed")
    in_progress = statuses.count("in_progress")
    pending = statuses.count("pending")

    if completed == len(statuses):
        status = "resolved"
    elif in_progress > 0 or (pending < len(statuses) and completed > 0):
        status = "in_progress"
    else:
        status = "open"

    if item_type == "safety_meeting":
        status = _MEETING_STATUS_MAP.get(status, status)
    return status
