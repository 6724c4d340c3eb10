"""
ConstructX
Expense domain model.

An expense is recorded against a project and optionally linked to a budget
category and line item. Only Approved expenses count toward budget actuals.
"""

from constructx.models import db
from constructx.models.base import TimestampMixin, iso
from constructx.models.soft_delete import SoftDeleteMixin

# ── Constants ────────────────────────────────────────────────────────────────

APPROVAL_STATUSES = {"Pending", "Approved", "Rejected"}
PAYMENT_STATUSES = {"Pending", "Paid", "Overdue", "Cancelled"}
PAYMENT_METHODS = ["Cash", "Check", "Credit Card", "Bank Transfer", "Wire Transfer", "Purchase Order"]

# Fields a PUT may never touch
EXPENSE_PROTECTED_FIELDS = {
    "id", "project_id", "approval_status", "approved_by", "approved_at",
    "rejection_reason", "deleted_at", "created_by", "created_at", "updated_at",
}


class Expense(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "expenses"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    budget_category_id = db.Column(
        db.Integer, db.ForeignKey("budget_categories.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    budget_item_id = db.Column(
        db.Integer, db.ForeignKey("budget_items.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    description = db.Column(db.String(500), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    vendor = db.Column(db.String(200), default="")
    receipt_url = db.Column(db.String(500), nullable=True)
    payment_method = db.Column(db.String(50), nullable=True)
    payment_status = db.Column(db.String(20), nullable=False, default="Pending")
    approval_status = db.Column(db.String(20), nullable=False, default="Pending", index=True)
    approved_by = db.Column(db.String(150), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(150), default="system")

    budget_category = db.relationship("BudgetCategory", backref=db.backref("expenses", lazy="dynamic"))
    budget_item = db.relationship("BudgetItem", backref=db.backref("expenses", lazy="dynamic"))

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "budget_category_id": self.budget_category_id,
            "budget_category_name": self.budget_category.name if self.budget_category else None,
            "budget_item_id": self.budget_item_id,
            "budget_item_name": self.budget_item.name if self.budget_item else None,
            "description": self.description,
            "amount": self.amount,
            "date": iso(self.date),
            "vendor": self.vendor,
            "receipt_url": self.receipt_url,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "approval_status": self.approval_status,
            "approved_by": self.approved_by,
            "approved_at": iso(self.approved_at),
            "rejection_reason": self.rejection_reason,
            "created_by": self.created_by,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Expense {self.id}: {self.amount} [{self.approval_status}]>"
