"""Financial report generation.

A report freezes its computed data as JSON at generation time, so later
expense changes do not alter a report that was already produced.
"""
import logging
from collections import defaultdict

from constructx.core.exceptions import NotFoundError
from constructx.models import db
from constructx.models.audit import write_audit
from constructx.models.expense import Expense
from constructx.models.financial import REPORT_TYPES, FinancialReport
from constructx.services import budget_service
from constructx.services.financial_service import (
    approved_expenses,
    monthly_cash_flow,
    resolve_date_range,
)
from constructx.utils.helpers import optional_text, parse_date_input, require_text, validate_date_order

logger = logging.getLogger(__name__)


def get_report(report_id):
    report = db.session.get(FinancialReport, report_id)
    if not report or report.is_deleted:
        raise NotFoundError(resource="Financial report", resource_id=report_id)
    return report


def list_reports(project_id, report_type=None):
    q = FinancialReport.query_active().filter_by(project_id=project_id)
    if report_type:
        q = q.filter_by(type=report_type)
    return q.order_by(FinancialReport.created_at.desc(), FinancialReport.id.desc())


def delete_report(report, actor="system"):
    report.soft_delete()
    write_audit(entity_type="financial_report", entity_id=report.id, action="delete",
                actor=actor, project_id=report.project_id)
    db.session.flush()


# ── Builders ─────────────────────────────────────────────────────────────


def _budget_summary_data(project_id, start, end):
    budget = budget_service.approved_budget_for_project(project_id)
    if budget is None:
        return {"message": "No approved budget found for this project."}
    return budget_service.budget_summary(budget)


def _expense_report_data(project_id, start, end):
    expenses = approved_expenses(project_id, start, end).order_by(Expense.date, Expense.id).all()
    by_category = defaultdict(float)
    by_vendor = defaultdict(float)
    for e in expenses:
        by_category[e.budget_category.name if e.budget_category else "Uncategorized"] += e.amount
        by_vendor[e.vendor or "Unknown"] += e.amount
    return {
        "total_expenses": round(sum(e.amount for e in expenses), 2),
        "expense_count": len(expenses),
        "by_category": {k: round(v, 2) for k, v in sorted(by_category.items())},
        "by_vendor": {k: round(v, 2) for k, v in sorted(by_vendor.items())},
        "expenses": [e.to_dict() for e in expenses],
    }


def _cash_flow_data(project_id, start, end):
    months = monthly_cash_flow(approved_expenses(project_id, start, end).all())
    return {
        "months": months,
        "total_outflow": months[-1]["cumulative"] if months else 0.0,
    }


def _profit_loss_data(project_id, start, end):
    budget = budget_service.approved_budget_for_project(project_id)
    revenue = budget.total_amount if budget else 0.0
    costs = round(sum(e.amount for e in approved_expenses(project_id, start, end).all()), 2)
    margin = round(revenue - costs, 2)
    return {
        "revenue": revenue,
        "costs": costs,
        "gross_margin": margin,
        "margin_pct": round(margin / revenue * 100, 1) if revenue else 0.0,
    }


def _custom_data(project_id, start, end, parameters=None):
    return {
        "message": "Custom report generated; data depends on the supplied parameters.",
        "parameters": parameters or {},
    }


_BUILDERS = {
    "Budget Summary": _budget_summary_data,
    "Expense Report": _expense_report_data,
    "Cash Flow": _cash_flow_data,
    "Profit/Loss": _profit_loss_data,
}


def _report_window(data):
    """Resolve the report period from ``start_date``/``end_date`` or ``date_range``.

    ``date_range`` is either ``{"start_date", "end_date"}`` or one of the named
    windows the charts use (month, quarter, year). Top-level dates win.
    """
    date_range = data.get("date_range")
    if isinstance(date_range, str):
        start, end = resolve_date_range(date_range, data.get("start_date"), data.get("end_date"))
        if not start or not end:
            raise ValueError("start_date and end_date are required")
        return start, end
    if date_range is not None and not isinstance(date_range, dict):
        raise ValueError("date_range must be a named range or an object with start_date/end_date")
    date_range = date_range or {}
    start = parse_date_input(data.get("start_date") or date_range.get("start_date"), "start_date")
    end = parse_date_input(data.get("end_date") or date_range.get("end_date"), "end_date")
    if not start or not end:
        raise ValueError("start_date and end_date are required")
    validate_date_order(start, end)
    return start, end


def generate_report(project_id, data, actor="system"):
    """Compute and persist a report of ``data["type"]`` for the date range."""
    report_type = data.get("type")
    if not report_type:
        raise ValueError("type is required")
    if not isinstance(report_type, str) or report_type not in REPORT_TYPES:
        raise ValueError(f"Invalid report type. Must be one of: {', '.join(sorted(REPORT_TYPES))}")
    name = require_text(data, "name")
    start, end = _report_window(data)

    if report_type == "Custom":
        payload = _custom_data(project_id, start, end, data.get("parameters"))
    else:
        payload = _BUILDERS[report_type](project_id, start, end)

    report = FinancialReport(
        project_id=project_id,
        type=report_type,
        name=name,
        description=optional_text(data, "description"),
        start_date=start,
        end_date=end,
        data=payload,
        created_by=actor,
    )
    db.session.add(report)
    db.session.flush()
    write_audit(entity_type="financial_report", entity_id=report.id, action="create",
                actor=actor, project_id=project_id)
    logger.info("Generated %s report %s for project %s", report_type, report.id, project_id)
    return report
