"""Quality control service.

Transaction policy: functions flush, the route commits.

Criteria are replaced wholesale on create/update, or patched one at a time;
either way the QC's status and score are re-derived afterwards.
"""
import logging
from datetime import date

from sqlalchemy import or_

from constructx.core.exceptions import NotFoundError
from constructx.models import db
from constructx.models.quality import (
    CRITERION_STATUSES,
    QC_STATUSES,
    QC_TYPES,
    QualityControl,
    QualityCriterion,
    derive_quality_status,
)
from constructx.services.notification import NotificationService
from constructx.utils.helpers import optional_text, parse_date_input, require_text

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("title", "location", "description", "inspector", "notes")


def get_qc(qc_id):
    qc = db.session.get(QualityControl, qc_id)
    if not qc:
        raise NotFoundError(resource="Quality control", resource_id=qc_id)
    return qc


def list_qcs(project_id=None, filters=None):
    filters = filters or {}
    q = QualityControl.query
    if project_id is not None:
        q = q.filter_by(project_id=project_id)
    for field in ("type", "status"):
        if filters.get(field):
            q = q.filter(getattr(QualityControl, field) == filters[field])
    if filters.get("search"):
        like = f"%{filters['search']}%"
        q = q.filter(or_(
            QualityControl.title.ilike(like),
            QualityControl.location.ilike(like),
            QualityControl.inspector.ilike(like),
        ))
    return q.order_by(QualityControl.scheduled_date.desc(), QualityControl.id.desc())


def _build_criteria(raw):
    if not isinstance(raw, list):
        raise ValueError("criteria must be a list")
    rows = []
    for position, entry in enumerate(raw):
        description = optional_text(entry, "description") if isinstance(entry, dict) else ""
        if not description:
            raise ValueError("Each criterion needs a description")
        status = entry.get("status") or "pending"
        if not isinstance(status, str) or status not in CRITERION_STATUSES:
            raise ValueError(
                f"Invalid criterion status. Must be one of: {', '.join(sorted(CRITERION_STATUSES))}"
            )
        rows.append(QualityCriterion(
            description=description, status=status,
            notes=optional_text(entry, "notes"), position=position,
        ))
    return rows


def recompute_status(qc):
    """Apply the criteria aggregate to ``qc``; stamp completed_date when closed."""
    previous = qc.status
    status, score = derive_quality_status([c.status for c in qc.criteria])
    if status is not None:
        qc.status = status
        qc.score = score
    elif not qc.criteria:
        qc.score = None

    if qc.status in ("passed", "failed") and not qc.completed_date:
        qc.completed_date = date.today()

    if qc.status == "failed" and previous != "failed":
        NotificationService.create(
            title=f"Quality check failed: {qc.title[:80]}",
            message=f"Score {qc.score}" if qc.score is not None else "",
            category="quality", severity="error",
            project_id=qc.project_id, entity_type="quality_control", entity_id=qc.id,
        )
        logger.warning("QC %s failed (score=%s)", qc.id, qc.score)
    return qc


def _apply_fields(qc, data):
    for field in _TEXT_FIELDS:
        if field in data:
            setattr(qc, field, optional_text(data, field))
    if "type" in data:
        if not isinstance(data["type"], str) or data["type"] not in QC_TYPES:
            raise ValueError(f"Invalid type. Must be one of: {', '.join(sorted(QC_TYPES))}")
        qc.type = data["type"]
    if "status" in data:
        if not isinstance(data["status"], str) or data["status"] not in QC_STATUSES:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(sorted(QC_STATUSES))}")
        qc.status = data["status"]
    if "score" in data:
        score = data["score"]
        if score is not None and (isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= 100):
            raise ValueError("score must be an integer between 0 and 100")
        qc.score = score
    for field in ("scheduled_date", "completed_date"):
        if field in data:
            setattr(qc, field, parse_date_input(data[field], field))
    for field in ("attachments", "tags"):
        if field in data:
            setattr(qc, field, data[field] or [])


def create_qc(project_id, data):
    require_text(data, "title")
    qc = QualityControl(project_id=project_id, type="inspection", status="pending")
    _apply_fields(qc, {"type": "inspection", **data})
    if "criteria" in data:
        qc.criteria = _build_criteria(data["criteria"])
    db.session.add(qc)
    db.session.flush()
    if qc.criteria:
        recompute_status(qc)
        db.session.flush()
    return qc


def update_qc(qc, data):
    _apply_fields(qc, data)
    if not qc.title:
        raise ValueError("title is required")
    if "criteria" in data:
        qc.criteria = _build_criteria(data["criteria"])
        db.session.flush()
        recompute_status(qc)
    db.session.flush()
    return qc


def update_criterion(qc, criterion_id, data):
    criterion = next((c for c in qc.criteria if c.id == criterion_id), None)
    if criterion is None:
        raise NotFoundError(resource="Criterion", resource_id=criterion_id)
    if "status" in data:
        if not isinstance(data["status"], str) or data["status"] not in CRITERION_STATUSES:
            raise ValueError(
                f"Invalid criterion status. Must be one of: {', '.join(sorted(CRITERION_STATUSES))}"
            )
        criterion.status = data["status"]
    if "notes" in data:
        criterion.notes = optional_text(data, "notes")
    recompute_status(qc)
    db.session.flush()
    return qc


def delete_qc(qc):
    db.session.delete(qc)
    db.session.flush()


def quality_stats(project_id=None):
    qcs = list_qcs(project_id).all()
    by_status = {s: 0 for s in sorted(QC_STATUSES)}
    for qc in qcs:
        by_status[qc.status] = by_status.get(qc.status, 0) + 1
    scores = [qc.score for qc in qcs if qc.score is not None]
    decided = by_status["passed"] + by_status["failed"]
    return {
        "total": len(qcs),
        "by_status": by_status,
        "average_score": round(sum(scores) / len(scores), 1) if scores else None,
        "pass_rate": round(by_status["passed"] / decided * 100, 1) if decided else None,
    }
