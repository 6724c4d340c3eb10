"""
ConstructX
Expense blueprint — expense recording, approval workflow and receipts.

Endpoints:
    /api/v1/projects/<pid>/expenses     GET, POST
        GET filters: start_date, end_date, approval_status, payment_status,
                     budget_category_id, budget_item_id, vendor
    /api/v1/expenses/<id>               GET, PUT, DELETE
    /api/v1/expenses/<id>/approve       PUT
    /api/v1/expenses/<id>/reject        PUT     body: {reason?}
    /api/v1/expenses/<id>/receipt       POST    multipart, field "receipt"
    /api/v1/payment-methods             GET
"""

import logging

from flask import Blueprint, jsonify, request

from constructx.auth import current_actor
from constructx.blueprints import paginate_query, register_service_errors
from constructx.models.expense import PAYMENT_METHODS
from constructx.services import expense_service, project_service
from constructx.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

expense_bp = Blueprint("expense", __name__, url_prefix="/api/v1")
register_service_errors(expense_bp)

_FILTERS = (
    "start_date", "end_date", "approval_status", "payment_status",
    "budget_category_id", "budget_item_id", "vendor",
)


@expense_bp.route("/projects/<int:pid>/expenses", methods=["GET"])
def list_expenses(pid):
    project_service.get_project(pid)
    filters = {k: request.args.get(k) for k in _FILTERS if request.args.get(k)}
    expenses, total = paginate_query(expense_service.list_expenses(pid, filters))
    return jsonify({"items": [e.to_dict() for e in expenses], "total": total})


@expense_bp.route("/projects/<int:pid>/expenses", methods=["POST"])
def create_expense(pid):
    project_service.get_project(pid)
    data = request.get_json(silent=True) or {}
    expense = expense_service.create_expense(pid, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(expense.to_dict()), 201


@expense_bp.route("/expenses/<int:eid>", methods=["GET"])
def get_expense(eid):
    return jsonify(expense_service.get_expense(eid).to_dict())


@expense_bp.route("/expenses/<int:eid>", methods=["PUT"])
def update_expense(eid):
    expense = expense_service.get_expense(eid)
    data = request.get_json(silent=True) or {}
    expense_service.update_expense(expense, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(expense.to_dict())


@expense_bp.route("/expenses/<int:eid>", methods=["DELETE"])
def delete_expense(eid):
    expense = expense_service.get_expense(eid)
    expense_service.delete_expense(expense, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Expense deleted"}), 200


@expense_bp.route("/expenses/<int:eid>/approve", methods=["PUT"])
def approve_expense(eid):
    expense = expense_service.get_expense(eid)
    expense_service.approve_expense(expense, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(expense.to_dict())


@expense_bp.route("/expenses/<int:eid>/reject", methods=["PUT"])
def reject_expense(eid):
    expense = expense_service.get_expense(eid)
    data = request.get_json(silent=True) or {}
    expense_service.reject_expense(expense, actor=current_actor(), reason=data.get("reason"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(expense.to_dict())


@expense_bp.route("/expenses/<int:eid>/receipt", methods=["POST"])
def upload_receipt(eid):
    expense = expense_service.get_expense(eid)
    expense_service.attach_receipt(expense, request.files.get("receipt"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(expense.to_dict())


@expense_bp.route("/payment-methods", methods=["GET"])
def payment_methods():
    return jsonify({"items": PAYMENT_METHODS, "total": len(PAYMENT_METHODS)})
