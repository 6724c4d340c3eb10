"""
ConstructX
Document domain models.

Models:
    - Document:         project file record with version counter and approval state
    - DocumentVersion:  superseded versions (history), newest number highest
    - DocumentApprover: one reviewer's decision on the current version
    - DocumentComment:  free-text comment
"""

from constructx.models import db
from constructx.models.base import TimestampMixin, iso, utcnow
from constructx.models.soft_delete import SoftDeleteMixin

# ── Constants ────────────────────────────────────────────────────────────────

DOCUMENT_STATUSES = {"Draft", "Under Review", "Approved", "Rejected", "Archived"}
APPROVAL_STATES = {"not_required", "pending", "approved", "rejected"}
REVIEW_DECISIONS = {"approved", "rejected"}


class Document(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "documents"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    file_type = db.Column(db.String(50), default="")
    file_size = db.Column(db.Integer, default=0)
    file_path = db.Column(db.String(500), default="")
    category = db.Column(db.String(100), default="General", index=True)
    status = db.Column(db.String(20), nullable=False, default="Draft")
    version = db.Column(db.Integer, nullable=False, default=1)
    uploaded_by = db.Column(db.String(150), default="")
    approval_status = db.Column(db.String(20), nullable=False, default="not_required")
    tags = db.Column(db.JSON, default=list)

    versions = db.relationship(
        "DocumentVersion", backref="document", lazy="select",
        cascade="all, delete-orphan", order_by="DocumentVersion.version_number",
    )
    approvers = db.relationship(
        "DocumentApprover", backref="document", lazy="select",
        cascade="all, delete-orphan", order_by="DocumentApprover.id",
    )
    comments = db.relationship(
        "DocumentComment", backref="document", lazy="select",
        cascade="all, delete-orphan", order_by="DocumentComment.id",
    )

    def to_dict(self, include_children=False):
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "file_path": self.file_path,
            "category": self.category,
            "status": self.status,
            "version": self.version,
            "uploaded_by": self.uploaded_by,
            "approval_status": self.approval_status,
            "tags": self.tags or [],
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if include_children:
            result["approvers"] = [a.to_dict() for a in self.approvers]
            result["comments"] = [c.to_dict() for c in self.comments]
        return result

    def __repr__(self):
        return f"<Document {self.id}: {self.name} v{self.version}>"


class DocumentVersion(db.Model):
    __tablename__ = "document_versions"

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(
        db.Integer, db.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    version_number = db.Column(db.Integer, nullable=False)
    file_path = db.Column(db.String(500), default="")
    file_size = db.Column(db.Integer, default=0)
    change_notes = db.Column(db.Text, default="")
    updated_by = db.Column(db.String(150), default="")
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "version_number": self.version_number,
            "file_path": self.file_path,
            "file_size": self.file_size,
            "change_notes": self.change_notes,
            "updated_by": self.updated_by,
            "created_at": iso(self.created_at),
            "is_current": False,
        }


class DocumentApprover(db.Model):
    __tablename__ = "document_approvers"

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(
        db.Integer, db.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    approver = db.Column(db.String(150), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending")
    comments = db.Column(db.Text, default="")
    action_date = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "approver": self.approver,
            "status": self.status,
            "comments": self.comments,
            "action_date": iso(self.action_date),
        }


class DocumentComment(db.Model):
    __tablename__ = "document_comments"

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(
        db.Integer, db.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    author = db.Column(db.String(150), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "author": self.author,
            "content": self.content,
            "created_at": iso(self.created_at),
        }
