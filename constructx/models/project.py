"""
ConstructX
Project domain model.

A Project owns every project-scoped record (budgets, expenses, reports,
quality controls, safety items, communications, documents, resource
allocations and utilization records).
Archiving hides a project from the active list without deleting anything;
permanent deletion cascades to all owned records.
"""

from constructx.models import db
from constructx.models.base import TimestampMixin, iso, next_code
from constructx.models.soft_delete import SoftDeleteMixin

# ── Constants ────────────────────────────────────────────────────────────────

PROJECT_STATUSES = {"Planning", "Active", "On Hold", "Completed", "Cancelled"}


def _owned(target, order_by=None):
    return db.relationship(
        target, backref="project", lazy="dynamic",
        cascade="all, delete-orphan", order_by=order_by,
    )


class Project(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(30), nullable=False, unique=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(20), nullable=False, default="Planning")
    start_date = db.Column(db.Date, nullable=True)
    target_completion_date = db.Column(db.Date, nullable=True)
    actual_completion_date = db.Column(db.Date, nullable=True)
    budget = db.Column(db.Float, nullable=False, default=0)
    location = db.Column(db.String(300), default="")
    project_type = db.Column(db.String(100), default="")
    client_name = db.Column(db.String(200), default="")
    project_manager = db.Column(db.String(150), default="")
    lead_origin_id = db.Column(
        db.Integer, db.ForeignKey("leads.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    tags = db.Column(db.JSON, default=list)
    archived_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    # ── Owned records ────────────────────────────────────────────────────
    budgets = _owned("Budget")
    expenses = _owned("Expense")
    financial_reports = _owned("FinancialReport")
    financial_metrics = _owned("FinancialMetric")
    financial_dashboards = _owned("FinancialDashboard")
    financial_items = _owned("FinancialItem")
    quality_controls = _owned("QualityControl")
    safety_items = _owned("SafetyItem")
    communications = _owned("Communication")
    documents = _owned("Document")
    resource_allocations = _owned("ResourceAllocation")
    resource_utilization = _owned("ResourceUtilization")

    @property
    def is_archived(self):
        return self.archived_at is not None

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "start_date": iso(self.start_date),
            "target_completion_date": iso(self.target_completion_date),
            "actual_completion_date": iso(self.actual_completion_date),
            "budget": self.budget,
            "location": self.location,
            "project_type": self.project_type,
            "client_name": self.client_name,
            "project_manager": self.project_manager,
            "lead_origin_id": self.lead_origin_id,
            "tags": self.tags or [],
            "archived_at": iso(self.archived_at),
            "is_archived": self.is_archived,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Project {self.id}: {self.code}>"


def next_project_code() -> str:
    return next_code(Project, "PRJ")
