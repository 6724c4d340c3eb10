"""
ConstructX
Financial reporting models.

Models:
    - FinancialDashboard: one per project; stores the widget layout
    - FinancialMetric:    stored KPI snapshot (CPI, SPI, variance, ...)
    - FinancialReport:    generated report with its data frozen as JSON
    - FinancialItem:      lightweight ledger entry (budget/expense/invoice/payment)
"""

from datetime import date

from constructx.models import db
from constructx.models.base import TimestampMixin, iso
from constructx.models.soft_delete import SoftDeleteMixin

# ── Constants ────────────────────────────────────────────────────────────────

REPORT_TYPES = {"Budget Summary", "Expense Report", "Cash Flow", "Profit/Loss", "Custom"}
EXPORT_FORMATS = {"excel", "xlsx", "csv", "pdf"}

DEFAULT_DASHBOARD_LAYOUT = {
    "widgets": [
        {"id": "kpi-budget", "type": "Metric", "metricName": "Total Budget",
         "position": {"x": 0, "y": 0, "w": 2, "h": 1}},
        {"id": "kpi-expenses", "type": "Metric", "metricName": "Total Expenses",
         "position": {"x": 2, "y": 0, "w": 2, "h": 1}},
        {"id": "chart-bva", "type": "BudgetVsActual",
         "position": {"x": 0, "y": 1, "w": 4, "h": 2}},
        {"id": "chart-cashflow", "type": "CashFlow",
         "position": {"x": 4, "y": 1, "w": 4, "h": 2}},
        {"id": "list-recent", "type": "RecentExpenses",
         "position": {"x": 4, "y": 0, "w": 4, "h": 1}},
    ],
}

FINANCIAL_ITEM_TYPES = {"budget", "expense", "invoice", "payment"}
FINANCIAL_ITEM_STATUSES = {"draft", "approved", "pending", "paid", "overdue", "rejected"}
FINANCIAL_ITEM_CATEGORIES = {
    "budget": ["Project Budget", "Phase Budget", "Contingency Budget"],
    "expense": ["Site Work", "Materials", "Labor", "Equipment", "Permits",
                "Professional Services", "Overhead"],
    "invoice": ["Professional Services", "Contractor", "Supplier", "Utility", "Rental"],
    "payment": ["Contractor Payment", "Supplier Payment", "Refund", "Deposit"],
}


class FinancialDashboard(TimestampMixin, db.Model):
    __tablename__ = "financial_dashboards"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, unique=True, index=True,
    )
    name = db.Column(db.String(200), nullable=False, default="Financial Dashboard")
    description = db.Column(db.Text, default="")
    layout = db.Column(db.JSON, default=dict)
    created_by = db.Column(db.String(150), default="system")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "layout": self.layout or {},
            "created_by": self.created_by,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }


class FinancialMetric(TimestampMixin, db.Model):
    __tablename__ = "financial_metrics"
    __table_args__ = (
        db.Index("idx_fin_metric_project_name", "project_id", "name", "date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = db.Column(db.String(150), nullable=False)
    value = db.Column(db.Float, nullable=False)
    target = db.Column(db.Float, nullable=True)
    unit = db.Column(db.String(20), default="")
    date = db.Column(db.Date, nullable=False, default=date.today)
    category = db.Column(db.String(50), default="")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "value": self.value,
            "target": self.target,
            "unit": self.unit,
            "date": iso(self.date),
            "category": self.category,
        }


class FinancialReport(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "financial_reports"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    type = db.Column(db.String(30), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    data = db.Column(db.JSON, default=dict)
    created_by = db.Column(db.String(150), default="system")

    def to_dict(self, include_data=True):
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "date_range": {"start_date": iso(self.start_date), "end_date": iso(self.end_date)},
            "created_by": self.created_by,
            "created_at": iso(self.created_at),
        }
        if include_data:
            result["data"] = self.data or {}
        return result

    def __repr__(self):
        return f"<FinancialReport {self.id}: {self.type}>"


class FinancialItem(TimestampMixin, db.Model):
    __tablename__ = "financial_items"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    type = db.Column(db.String(20), nullable=False, index=True)
    category = db.Column(db.String(100), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="draft", index=True)
    description = db.Column(db.Text, default="")
    vendor = db.Column(db.String(200), default="")
    reference = db.Column(db.String(100), default="")
    attachments = db.Column(db.JSON, default=list)
    created_by = db.Column(db.String(150), default="system")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "type": self.type,
            "category": self.category,
            "amount": self.amount,
            "date": iso(self.date),
            "due_date": iso(self.due_date),
            "status": self.status,
            "description": self.description,
            "vendor": self.vendor,
            "reference": self.reference,
            "attachments": self.attachments or [],
            "created_by": self.created_by,
            "created_at": iso(self.created_at),
        }
