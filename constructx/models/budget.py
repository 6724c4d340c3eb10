"""
ConstructX
Budget domain models.

Models:
    - Budget:          project-level budget with a Draft → Approved lifecycle
    - BudgetCategory:  cost bucket inside a budget (may nest one level or more)
    - BudgetItem:      line entry inside a category; total = quantity × unit price
"""

from constructx.models import db
from constructx.models.base import TimestampMixin, iso
from constructx.models.soft_delete import SoftDeleteMixin

# ── Constants ────────────────────────────────────────────────────────────────

BUDGET_STATUSES = {"Draft", "Approved", "Active", "Closed"}
BUDGET_UPDATABLE_FIELDS = ("name", "description", "total_amount", "start_date", "end_date")


class Budget(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "budgets"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False, default="Project Budget")
    description = db.Column(db.Text, default="")
    total_amount = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="Draft", index=True)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    created_by = db.Column(db.String(150), default="system")
    approved_by = db.Column(db.String(150), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    categories = db.relationship(
        "BudgetCategory", backref="budget", lazy="dynamic",
        cascade="all, delete-orphan", order_by="BudgetCategory.order",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "total_amount": self.total_amount,
            "status": self.status,
            "start_date": iso(self.start_date),
            "end_date": iso(self.end_date),
            "created_by": self.created_by,
            "approved_by": self.approved_by,
            "approved_at": iso(self.approved_at),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Budget {self.id}: {self.name} [{self.status}]>"


class BudgetCategory(TimestampMixin, db.Model):
    __tablename__ = "budget_categories"
    __table_args__ = (
        db.UniqueConstraint("budget_id", "parent_category_id", "name", name="uq_budget_category_name"),
    )

    id = db.Column(db.Integer, primary_key=True)
    budget_id = db.Column(
        db.Integer, db.ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    amount = db.Column(db.Float, nullable=False)
    parent_category_id = db.Column(
        db.Integer, db.ForeignKey("budget_categories.id", ondelete="CASCADE"), nullable=True,
    )
    order = db.Column(db.Integer, default=0)

    items = db.relationship(
        "BudgetItem", backref="category", lazy="dynamic",
        cascade="all, delete-orphan", order_by="BudgetItem.order",
    )
    subcategories = db.relationship(
        "BudgetCategory",
        backref=db.backref("parent", remote_side=[id]),
        lazy="dynamic",
    )

    def to_dict(self, actual_amount=None):
        result = {
            "id": self.id,
            "budget_id": self.budget_id,
            "name": self.name,
            "description": self.description,
            "amount": self.amount,
            "parent_category_id": self.parent_category_id,
            "order": self.order,
            "created_at": iso(self.created_at),
        }
        if actual_amount is not None:
            result["actual_amount"] = actual_amount
        return result

    def __repr__(self):
        return f"<BudgetCategory {self.id}: {self.name}>"


class BudgetItem(TimestampMixin, db.Model):
    __tablename__ = "budget_items"
    __table_args__ = (
        db.UniqueConstraint("category_id", "name", name="uq_budget_item_name"),
    )

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(
        db.Integer, db.ForeignKey("budget_categories.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    quantity = db.Column(db.Float, nullable=False, default=1)
    unit = db.Column(db.String(50), nullable=False)
    unit_price = db.Column(db.Float, nullable=False)
    total_price = db.Column(db.Float, nullable=False, default=0)
    order = db.Column(db.Integer, default=0)

    def recalculate_total(self):
        """Keep total_price equal to quantity × unit_price."""
        self.total_price = round((self.quantity or 0) * (self.unit_price or 0), 2)
        return self.total_price

    def to_dict(self, actual_amount=None):
        result = {
            "id": self.id,
            "category_id": self.category_id,
            "name": self.name,
            "description": self.description,
            "quantity": self.quantity,
            "unit": self.unit,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "order": self.order,
            "created_at": iso(self.created_at),
        }
        if actual_amount is not None:
            result["actual_amount"] = actual_amount
        return result

    def __repr__(self):
        return f"<BudgetItem {self.id}: {self.name}>"
