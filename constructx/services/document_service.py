"""Document service — file records, version history, approvals and comments.

Transaction policy: functions flush, the route commits.

Approval flow:
    request_approval(approvers) → approval_status=pending, status=Under Review
    each approver reviews once (approved / rejected)
    all reviewed → approved, or rejected if any approver rejected
"""
import logging

from sqlalchemy import func, or_

from constructx.core.exceptions import NotFoundError, ValidationError
from constructx.models import db
from constructx.models.audit import write_audit
from constructx.models.base import iso, utcnow
from constructx.models.document import (
    DOCUMENT_STATUSES,
    REVIEW_DECISIONS,
    Document,
    DocumentApprover,
    DocumentComment,
    DocumentVersion,
)
from constructx.services.notification import NotificationService
from constructx.utils.helpers import optional_text, require_text

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("name", "description", "file_type", "file_path", "category", "uploaded_by")


def get_document(doc_id):
    doc = db.session.get(Document, doc_id)
    if not doc or doc.is_deleted:
        raise NotFoundError(resource="Document", resource_id=doc_id)
    return doc


def list_documents(project_id=None, filters=None):
    filters = filters or {}
    q = Document.query_active()
    if project_id is not None:
        q = q.filter_by(project_id=project_id)
    for field in ("category", "status"):
        if filters.get(field):
            q = q.filter(getattr(Document, field) == filters[field])
    if filters.get("search"):
        like = f"%{filters['search']}%"
        q = q.filter(or_(Document.name.ilike(like), Document.description.ilike(like)))
    return q.order_by(Document.updated_at.desc(), Document.id.desc())


def _file_size(value):
    if value in (None, ""):
        return 0
    try:
        size = int(value)
    except (TypeError, ValueError):
        raise ValueError("file_size must be an integer") from None
    if size < 0:
        raise ValueError("file_size must be >= 0")
    return size


def _apply_fields(doc, data):
    for field in _TEXT_FIELDS:
        if field in data:
            setattr(doc, field, optional_text(data, field))
    if "status" in data:
        if not isinstance(data["status"], str) or data["status"] not in DOCUMENT_STATUSES:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(sorted(DOCUMENT_STATUSES))}")
        doc.status = data["status"]
    if "file_size" in data:
        doc.file_size = _file_size(data["file_size"])
    if "tags" in data:
        doc.tags = data["tags"] or []


def create_document(project_id, data, actor="system"):
    require_text(data, "name")
    doc = Document(project_id=project_id, status="Draft", version=1,
                   approval_status="not_required", category="General")
    _apply_fields(doc, {"uploaded_by": actor, **data})
    db.session.add(doc)
    db.session.flush()
    write_audit(entity_type="document", entity_id=doc.id, action="create",
                actor=actor, project_id=project_id)
    return doc


def update_document(doc, data):
    _apply_fields(doc, data)
    if not doc.name:
        raise ValueError("name is required")
    db.session.flush()
    return doc


def delete_document(doc, actor="system"):
    doc.soft_delete()
    write_audit(entity_type="document", entity_id=doc.id, action="delete",
                actor=actor, project_id=doc.project_id)
    db.session.flush()


def archive_document(doc):
    if doc.status == "Archived":
        raise ValidationError("Document is already archived")
    doc.status = "Archived"
    db.session.flush()
    return doc


# ── Versions ─────────────────────────────────────────────────────────────


def upload_new_version(doc, data, actor="system"):
    """Push the current file into history and make the upload current."""
    file_path = require_text(data, "file_path")
    if doc.status == "Archived":
        raise ValidationError("Cannot add a version to an archived document")

    db.session.add(DocumentVersion(
        document_id=doc.id,
        version_number=doc.version,
        file_path=doc.file_path,
        file_size=doc.file_size,
        change_notes=optional_text(data, "change_notes"),
        updated_by=doc.uploaded_by,
    ))
    doc.version += 1
    doc.file_path = file_path
    doc.file_size = _file_size(data.get("file_size"))
    file_type = optional_text(data, "file_type")
    if file_type:
        doc.file_type = file_type
    doc.uploaded_by = actor

    if doc.approvers:
        for approver in doc.approvers:
            approver.status = "pending"
            approver.comments = ""
            approver.action_date = None
        doc.approval_status = "pending"
        doc.status = "Under Review"
    db.session.flush()
    db.session.refresh(doc)
    logger.info("Document %s now at version %s", doc.id, doc.version)
    return doc


def version_history(doc):
    """All versions newest first, the live one flagged ``is_current``."""
    current = {
        "version_number": doc.version,
        "file_path": doc.file_path,
        "file_size": doc.file_size,
        "change_notes": "",
        "updated_by": doc.uploaded_by,
        "created_at": iso(doc.updated_at),
        "is_current": True,
    }
    history = [v.to_dict() for v in sorted(doc.versions, key=lambda v: -v.version_number)]
    return [current] + history


def category_counts(project_id=None):
    q = db.session.query(Document.category, func.count(Document.id)).filter(
        Document.deleted_at.is_(None),
    )
    if project_id is not None:
        q = q.filter(Document.project_id == project_id)
    rows = q.group_by(Document.category).all()
    return [{"category": c or "General", "count": n} for c, n in sorted(rows, key=lambda r: r[0] or "")]


# ── Approvals ────────────────────────────────────────────────────────────


def request_approval(doc, approvers):
    if not isinstance(approvers, list):
        raise ValueError("approvers must be a non-empty list of names")
    names = [a.strip() for a in approvers if isinstance(a, str) and a.strip()]
    if not names:
        raise ValueError("approvers must be a non-empty list of names")
    if doc.status == "Archived":
        raise ValidationError("Cannot request approval for an archived document")

    doc.approvers = [DocumentApprover(approver=name, status="pending") for name in dict.fromkeys(names)]
    doc.approval_status = "pending"
    doc.status = "Under Review"
    db.session.flush()
    for name in dict.fromkeys(names):
        NotificationService.create(
            title=f"Review requested: {doc.name}",
            category="document", recipient=name,
            project_id=doc.project_id, entity_type="document", entity_id=doc.id,
        )
    return doc


def review_document(doc, approver, status, comments=""):
    if not isinstance(status, str) or status not in REVIEW_DECISIONS:
        raise ValueError("status must be 'approved' or 'rejected'")
    entry = next((a for a in doc.approvers if a.approver == approver), None)
    if entry is None:
        raise ValidationError(f"{approver} is not an approver for this document")
    if entry.status != "pending":
        raise ValidationError(f"{approver} has already reviewed this document")

    entry.status = status
    entry.comments = comments or ""
    entry.action_date = utcnow()

    decisions = [a.status for a in doc.approvers]
    if "pending" not in decisions:
        outcome = "rejected" if "rejected" in decisions else "approved"
        doc.approval_status = outcome
        doc.status = outcome.capitalize()
        NotificationService.create(
            title=f"Document {outcome}: {doc.name}",
            category="document",
            severity="success" if outcome == "approved" else "warning",
            recipient=doc.uploaded_by or "all",
            project_id=doc.project_id, entity_type="document", entity_id=doc.id,
        )
    db.session.flush()
    return doc


# ── Comments ─────────────────────────────────────────────────────────────


def add_comment(doc, data, actor="system"):
    content = require_text(data, "content")
    comment = DocumentComment(document_id=doc.id, author=optional_text(data, "author") or actor, content=content)
    db.session.add(comment)
    db.session.flush()
    return comment


def list_comments(doc):
    return DocumentComment.query.filter_by(document_id=doc.id).order_by(DocumentComment.id).all()
