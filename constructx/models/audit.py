"""
ConstructX
Audit trail model.

Models:
    - AuditLog: append-only record of lifecycle events (create, approve, ...)
"""

import json

from constructx.models import db
from constructx.models.base import iso, utcnow


class AuditLog(db.Model):
    """One row per action; ``diff_json`` holds ``{field: {old, new}}``."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_entity", "entity_type", "entity_id"),
        db.Index("idx_audit_project", "project_id"),
        db.Index("idx_audit_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    # Plain integer (no FK) so the trail outlives permanently deleted projects
    project_id = db.Column(db.Integer, nullable=True)
    entity_type = db.Column(db.String(30), nullable=False)
    entity_id = db.Column(db.String(36), nullable=False)
    action = db.Column(db.String(60), nullable=False)
    actor = db.Column(db.String(150), nullable=False, default="system")
    diff_json = db.Column(db.Text, default="{}")
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def diff(self) -> dict:
        try:
            return json.loads(self.diff_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "actor": self.actor,
            "diff": self.diff,
            "timestamp": iso(self.timestamp),
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"


def field_diff(obj, data: dict, fields) -> dict:
    """Return ``{field: {"old", "new"}}`` for fields in ``data`` that change."""
    diff = {}
    for field in fields:
        if field not in data:
            continue
        old = getattr(obj, field, None)
        new = data[field]
        if old != new:
            diff[field] = {"old": old, "new": new}
    return diff


def write_audit(
    *,
    entity_type: str,
    entity_id,
    action: str,
    actor: str = "system",
    project_id: int | None = None,
    diff: dict | None = None,
) -> AuditLog:
    """Append an audit row. Flushes only; the caller owns the transaction."""
    log = AuditLog(
        project_id=project_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        actor=actor or "system",
        diff_json=json.dumps(diff or {}, default=str),
    )
    db.session.add(log)
    db.session.flush()
    return log
