"""
ConstructX
Financial reporting blueprint — dashboard, metrics, reports, exports, charts.

Endpoints:
    DASHBOARD  /api/v1/projects/<pid>/financial-dashboard      GET, PUT  body: {layout}
    METRICS    /api/v1/projects/<pid>/financial-metrics        GET, POST
    REPORTS    /api/v1/projects/<pid>/financial-reports        GET, POST
               /api/v1/financial-reports/<id>                  GET, DELETE
               /api/v1/financial-reports/<id>/export           GET  ?format=excel|csv|pdf
    CHARTS     /api/v1/projects/<pid>/budget-vs-actual         GET
               /api/v1/projects/<pid>/cash-flow                GET
               /api/v1/projects/<pid>/expense-breakdown        GET
               /api/v1/projects/<pid>/recent-expenses          GET  ?limit=5
    LOOKUPS    /api/v1/projects/<pid>/vendors                  GET
               /api/v1/projects/<pid>/expense-categories       GET

Metrics and chart endpoints take ``date_range`` (month|quarter|year|all) or
explicit ``start_date`` / ``end_date`` query params.
"""

import io
import logging

from flask import Blueprint, jsonify, request, send_file

from constructx.auth import current_actor
from constructx.blueprints import paginate_query, register_service_errors
from constructx.services import export_service, financial_service, project_service, report_service
from constructx.utils.errors import E, api_error
from constructx.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

financial_bp = Blueprint("financial", __name__, url_prefix="/api/v1")
register_service_errors(financial_bp)


def _range_args():
    return financial_service.resolve_date_range(
        request.args.get("date_range", "all"),
        request.args.get("start_date"),
        request.args.get("end_date"),
    )


# ═══════════════════════════════════════════════════════════════════════════
#  DASHBOARD & METRICS
# ═══════════════════════════════════════════════════════════════════════════

@financial_bp.route("/projects/<int:pid>/financial-dashboard", methods=["GET"])
def get_dashboard(pid):
    project_service.get_project(pid)
    dashboard = financial_service.get_dashboard(pid, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(dashboard.to_dict())


@financial_bp.route("/projects/<int:pid>/financial-dashboard", methods=["PUT"])
def update_dashboard(pid):
    project_service.get_project(pid)
    data = request.get_json(silent=True) or {}
    dashboard = financial_service.update_dashboard_layout(pid, data.get("layout"), actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(dashboard.to_dict())


@financial_bp.route("/projects/<int:pid>/financial-metrics", methods=["GET"])
def get_metrics(pid):
    project_service.get_project(pid)
    return jsonify(financial_service.get_metrics(
        pid,
        request.args.get("date_range", "all"),
        request.args.get("start_date"),
        request.args.get("end_date"),
    ))


@financial_bp.route("/projects/<int:pid>/financial-metrics", methods=["POST"])
def record_metric(pid):
    project_service.get_project(pid)
    data = request.get_json(silent=True) or {}
    metric = financial_service.record_metric(pid, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(metric.to_dict()), 201


# ═══════════════════════════════════════════════════════════════════════════
#  REPORTS
# ═══════════════════════════════════════════════════════════════════════════

@financial_bp.route("/projects/<int:pid>/financial-reports", methods=["GET"])
def list_reports(pid):
    project_service.get_project(pid)
    reports, total = paginate_query(report_service.list_reports(pid, request.args.get("type")))
    return jsonify({"items": [r.to_dict(include_data=False) for r in reports], "total": total})


@financial_bp.route("/projects/<int:pid>/financial-reports", methods=["POST"])
def generate_report(pid):
    project_service.get_project(pid)
    data = request.get_json(silent=True) or {}
    report = report_service.generate_report(pid, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(report.to_dict()), 201


@financial_bp.route("/financial-reports/<int:rid>", methods=["GET"])
def get_report(rid):
    return jsonify(report_service.get_report(rid).to_dict())


@financial_bp.route("/financial-reports/<int:rid>", methods=["DELETE"])
def delete_report(rid):
    report = report_service.get_report(rid)
    report_service.delete_report(report, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Report deleted"}), 200


@financial_bp.route("/financial-reports/<int:rid>/export", methods=["GET"])
def export_report(rid):
    report = report_service.get_report(rid)
    try:
        payload, mimetype, filename = export_service.export_report(
            report, request.args.get("format", "excel"),
        )
    except export_service.ExportNotImplemented as exc:
        return api_error(E.NOT_IMPLEMENTED, str(exc))
    return send_file(
        io.BytesIO(payload),
        mimetype=mimetype,
        as_attachment=True,
        download_name=filename,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  CHARTS & LOOKUPS
# ═══════════════════════════════════════════════════════════════════════════

@financial_bp.route("/projects/<int:pid>/budget-vs-actual", methods=["GET"])
def budget_vs_actual(pid):
    project_service.get_project(pid)
    start, end = _range_args()
    return jsonify(financial_service.budget_vs_actual(pid, start, end))


@financial_bp.route("/projects/<int:pid>/cash-flow", methods=["GET"])
def cash_flow(pid):
    project_service.get_project(pid)
    start, end = _range_args()
    months = financial_service.cash_flow(pid, start, end)
    return jsonify({"items": months, "total": len(months)})


@financial_bp.route("/projects/<int:pid>/expense-breakdown", methods=["GET"])
def expense_breakdown(pid):
    project_service.get_project(pid)
    start, end = _range_args()
    rows = financial_service.expense_breakdown(pid, start, end)
    return jsonify({"items": rows, "total": len(rows)})


@financial_bp.route("/projects/<int:pid>/recent-expenses", methods=["GET"])
def recent_expenses(pid):
    project_service.get_project(pid)
    limit = min(max(request.args.get("limit", 5, type=int), 1), 100)
    expenses = financial_service.recent_expenses(pid, limit=limit)
    return jsonify({"items": [e.to_dict() for e in expenses], "total": len(expenses)})


@financial_bp.route("/projects/<int:pid>/vendors", methods=["GET"])
def vendors(pid):
    project_service.get_project(pid)
    names = financial_service.vendors(pid)
    return jsonify({"items": names, "total": len(names)})


@financial_bp.route("/projects/<int:pid>/expense-categories", methods=["GET"])
def expense_categories(pid):
    project_service.get_project(pid)
    categories = financial_service.expense_categories(pid)
    return jsonify({"items": [c.to_dict() for c in categories], "total": len(categories)})
