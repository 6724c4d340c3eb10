"""
ConstructX
Quality control domain models.

Models:
    - QualityControl:   an inspection / test / checklist / audit
    - QualityCriterion: one checklist row with a pass/fail/pending result

The QC's status and score are derived from its criteria by
``derive_quality_status``; the service calls it after every criteria change.
"""

import math

from constructx.models import db
from constructx.models.base import TimestampMixin, iso

# ── Constants ────────────────────────────────────────────────────────────────

QC_TYPES = {"inspection", "test", "checklist", "audit"}
QC_STATUSES = {"pending", "in_progress", "passed", "failed", "remediated"}
CRITERION_STATUSES = {"pending", "passed", "failed", "n/a"}

SCORE_GREEN = 90
SCORE_YELLOW = 70


class QualityControl(TimestampMixin, db.Model):
    __tablename__ = "quality_controls"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    type = db.Column(db.String(20), nullable=False, default="inspection")
    location = db.Column(db.String(300), default="")
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    score = db.Column(db.Integer, nullable=True)
    scheduled_date = db.Column(db.Date, nullable=True)
    completed_date = db.Column(db.Date, nullable=True)
    inspector = db.Column(db.String(150), default="")
    attachments = db.Column(db.JSON, default=list)
    tags = db.Column(db.JSON, default=list)
    notes = db.Column(db.Text, default="")

    criteria = db.relationship(
        "QualityCriterion", backref="quality_control", lazy="select",
        cascade="all, delete-orphan", order_by="QualityCriterion.position",
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
            "score": self.score,
            "score_badge": score_badge(self.score),
            "scheduled_date": iso(self.scheduled_date),
            "completed_date": iso(self.completed_date),
            "inspector": self.inspector,
            "attachments": self.attachments or [],
            "tags": self.tags or [],
            "notes": self.notes,
            "criteria": [c.to_dict() for c in self.criteria],
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<QualityControl {self.id}: {self.title[:40]} [{self.status}]>"


class QualityCriterion(db.Model):
    __tablename__ = "quality_criteria"

    id = db.Column(db.Integer, primary_key=True)
    quality_control_id = db.Column(
        db.Integer, db.ForeignKey("quality_controls.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    description = db.Column(db.String(500), nullable=False)
    status = db.Column(db.String(10), nullable=False, default="pending")
    notes = db.Column(db.Text, default="")
    position = db.Column(db.Integer, default=0)

    def to_dict(self):
        return {
            "id": self.id,
            "description": self.description,
            "status": self.status,
            "notes": self.notes,
        }


# ── Aggregation ──────────────────────────────────────────────────────────────


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (82.5 → 83), unlike round()."""
    return int(math.floor(value + 0.5))


def derive_quality_status(criterion_statuses):
    """Reduce criterion statuses to ``(status, score)``.

    ``n/a`` rows are ignored. Returns ``(None, None)`` when nothing is left to
    judge, meaning the caller keeps the QC's current status. The score is
    only produced once no criterion is pending.
    """
    applicable = [s for s in criterion_statuses if s != "n/a"]
    if not applicable:
        return None, None

    passed = sum(1 for s in applicable if s == "passed")
    failed = sum(1 for s in applicable if s == "failed")
    pending = sum(1 for s in applicable if s == "pending")

    score = round_half_up(passed / len(applicable) * 100) if pending == 0 else None

    if pending > 0:
        status = "in_progress" if failed > 0 else "pending"
    else:
        status = "failed" if failed > 0 else "passed"
    return status, score


def score_badge(score):
    if score is None:
        return None
    if score >= SCORE_GREEN:
        return "green"
    if score >= SCORE_YELLOW:
        return "yellow"
    return "red"
