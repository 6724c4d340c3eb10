"""Financial service — dashboard layout, metrics and chart feeds.

Transaction policy: functions flush, the route commits.

Every read here counts Approved, non-deleted expenses only. ``date_range``
accepts ``month`` / ``quarter`` / ``year`` (rolling 30 / 90 / 365 days),
``all`` (default) or explicit ``start_date`` / ``end_date`` values.
"""
import logging
from collections import OrderedDict, defaultdict
from datetime import date, timedelta

from sqlalchemy import func

from constructx.models import db
from constructx.models.budget import Budget, BudgetCategory
from constructx.models.expense import Expense
from constructx.models.financial import (
    DEFAULT_DASHBOARD_LAYOUT,
    FinancialDashboard,
    FinancialMetric,
)
from constructx.services import budget_service
from constructx.utils.helpers import (
    optional_text,
    parse_amount,
    parse_date_input,
    require_text,
    validate_date_order,
)

logger = logging.getLogger(__name__)

_RANGE_DAYS = {"month": 30, "quarter": 90, "year": 365}


def resolve_date_range(date_range="all", start_date=None, end_date=None, today=None):
    """Return ``(start, end)``; either side may be None for an open bound."""
    start = parse_date_input(start_date, "start_date")
    end = parse_date_input(end_date, "end_date")
    if start or end:
        validate_date_order(start, end)
        return start, end
    date_range = (date_range or "all").lower()
    if date_range == "all":
        return None, None
    if not isinstance(date_range, str) or date_range not in _RANGE_DAYS:
        raise ValueError(f"Invalid date_range. Must be one of: all, {', '.join(_RANGE_DAYS)}")
    today = today or date.today()
    return today - timedelta(days=_RANGE_DAYS[date_range]), today


def approved_expenses(project_id, start=None, end=None):
    q = Expense.query_active().filter(
        Expense.project_id == project_id, Expense.approval_status == "Approved",
    )
    if start:
        q = q.filter(Expense.date >= start)
    if end:
        q = q.filter(Expense.date <= end)
    return q


# ── Dashboard ────────────────────────────────────────────────────────────


def get_dashboard(project_id, actor="system"):
    """Fetch the project's dashboard, creating it with the default layout."""
    dashboard = FinancialDashboard.query.filter_by(project_id=project_id).first()
    if dashboard is None:
        dashboard = FinancialDashboard(
            project_id=project_id,
            layout=DEFAULT_DASHBOARD_LAYOUT,
            created_by=actor,
        )
        db.session.add(dashboard)
        db.session.flush()
        logger.info("Created default financial dashboard for project %s", project_id)
    return dashboard


def update_dashboard_layout(project_id, layout, actor="system"):
    if not isinstance(layout, dict):
        raise ValueError("layout must be an object")
    dashboard = get_dashboard(project_id, actor=actor)
    dashboard.layout = layout
    db.session.flush()
    return dashboard


# ── Metrics ──────────────────────────────────────────────────────────────


def calculate_metrics(project_id, start=None, end=None):
    total_budget = (db.session.query(func.coalesce(func.sum(Budget.total_amount), 0.0))
                    .filter(Budget.project_id == project_id,
                            Budget.status == "Approved",
                            Budget.deleted_at.is_(None))
                    .scalar())
    total_expenses = (approved_expenses(project_id, start, end)
                      .with_entities(func.coalesce(func.sum(Expense.amount), 0.0))
                      .scalar())
    pending = Expense.query_active().filter_by(project_id=project_id, approval_status="Pending")
    if start:
        pending = pending.filter(Expense.date >= start)
    if end:
        pending = pending.filter(Expense.date <= end)
    pending_total = pending.with_entities(func.coalesce(func.sum(Expense.amount), 0.0)).scalar()

    total_budget = float(total_budget or 0)
    total_expenses = float(total_expenses or 0)
    return {
        "total_budget": round(total_budget, 2),
        "total_expenses": round(total_expenses, 2),
        "budget_variance": round(total_budget - total_expenses, 2),
        "pending_expenses": round(float(pending_total or 0), 2),
        "utilization_pct": round(total_expenses / total_budget * 100, 1) if total_budget else 0.0,
    }


def get_metrics(project_id, date_range="all", start_date=None, end_date=None):
    start, end = resolve_date_range(date_range, start_date, end_date)
    q = FinancialMetric.query.filter_by(project_id=project_id)
    if start:
        q = q.filter(FinancialMetric.date >= start)
    if end:
        q = q.filter(FinancialMetric.date <= end)
    stored = q.order_by(FinancialMetric.date.desc(), FinancialMetric.id.desc()).all()
    return {
        "stored_metrics": [m.to_dict() for m in stored],
        "calculated_metrics": calculate_metrics(project_id, start, end),
    }


def record_metric(project_id, data):
    name = require_text(data, "name")
    metric = FinancialMetric(
        project_id=project_id,
        name=name,
        value=parse_amount(data.get("value"), "value", required=True),
        target=parse_amount(data.get("target"), "target"),
        unit=optional_text(data, "unit"),
        date=parse_date_input(data.get("date"), "date") or date.today(),
        category=optional_text(data, "category"),
    )
    db.session.add(metric)
    db.session.flush()
    return metric


# ── Charts ───────────────────────────────────────────────────────────────


def budget_vs_actual(project_id, start=None, end=None):
    budget = budget_service.approved_budget_for_project(project_id)
    if budget is None:
        return {"budget_id": None, "categories": []}

    actuals = defaultdict(float)
    rows = (approved_expenses(project_id, start, end)
            .filter(Expense.budget_category_id.isnot(None))
            .with_entities(Expense.budget_category_id, func.sum(Expense.amount))
            .group_by(Expense.budget_category_id)
            .all())
    for category_id, total in rows:
        actuals[category_id] = float(total or 0)

    categories = budget_service.list_categories(budget)
    return {
        "budget_id": budget.id,
        "budget_name": budget.name,
        "categories": [
            {
                "category_id": c.id,
                "category": c.name,
                "budgeted": c.amount,
                "actual": round(actuals[c.id], 2),
            }
            for c in categories
        ],
    }


def monthly_cash_flow(expenses):
    """Bucket expenses by ``YYYY-MM`` and accumulate a running total."""
    buckets = OrderedDict()
    for expense in sorted(expenses, key=lambda e: (e.date, e.id)):
        key = expense.date.strftime("%Y-%m")
        buckets[key] = buckets.get(key, 0.0) + expense.amount
    running = 0.0
    result = []
    for month, outflow in buckets.items():
        running += outflow
        result.append({
            "month": month,
            "outflow": round(outflow, 2),
            "cumulative": round(running, 2),
        })
    return result


def cash_flow(project_id, start=None, end=None):
    return monthly_cash_flow(approved_expenses(project_id, start, end).all())


def expense_breakdown(project_id, start=None, end=None):
    totals = defaultdict(float)
    for expense in approved_expenses(project_id, start, end).all():
        name = expense.budget_category.name if expense.budget_category else "Uncategorized"
        totals[name] += expense.amount
    return [
        {"category": name, "amount": round(amount, 2)}
        for name, amount in sorted(totals.items(), key=lambda kv: -kv[1])
    ]


def recent_expenses(project_id, limit=5):
    return (Expense.query_active()
            .filter_by(project_id=project_id)
            .order_by(Expense.date.desc(), Expense.created_at.desc(), Expense.id.desc())
            .limit(limit)
            .all())


def vendors(project_id):
    rows = (db.session.query(Expense.vendor)
            .filter(Expense.project_id == project_id,
                    Expense.deleted_at.is_(None),
                    Expense.vendor.isnot(None),
                    Expense.vendor != "")
            .distinct()
            .all())
    return sorted(row[0] for row in rows)


def expense_categories(project_id):
    return (BudgetCategory.query
            .join(Budget, BudgetCategory.budget_id == Budget.id)
            .filter(Budget.project_id == project_id, Budget.deleted_at.is_(None))
            .order_by(BudgetCategory.name, BudgetCategory.id)
            .all())
