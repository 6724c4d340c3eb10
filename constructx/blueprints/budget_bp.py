"""
ConstructX
Budget blueprint — budgets, budget categories and budget line items.

Endpoints:
    BUDGET    /api/v1/projects/<pid>/budgets              GET, POST
              /api/v1/budgets/<id>                        GET, PUT, DELETE
              /api/v1/budgets/<id>/approve                PUT
              /api/v1/budgets/<id>/summary                GET

    CATEGORY  /api/v1/budgets/<id>/categories             GET, POST
              /api/v1/budget-categories/<id>              GET, PUT, DELETE

    ITEM      /api/v1/budget-categories/<id>/items        GET, POST
              /api/v1/budget-items/<id>                   GET, PUT, DELETE
"""

import logging

from flask import Blueprint, jsonify, request

from constructx.auth import current_actor
from constructx.blueprints import register_service_errors
from constructx.services import budget_service, project_service
from constructx.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

budget_bp = Blueprint("budget", __name__, url_prefix="/api/v1")
register_service_errors(budget_bp)


# ═══════════════════════════════════════════════════════════════════════════
#  BUDGETS
# ═══════════════════════════════════════════════════════════════════════════

@budget_bp.route("/projects/<int:pid>/budgets", methods=["GET"])
def list_budgets(pid):
    project_service.get_project(pid)
    budgets = budget_service.list_budgets(pid)
    return jsonify({"items": [b.to_dict() for b in budgets], "total": len(budgets)})


@budget_bp.route("/projects/<int:pid>/budgets", methods=["POST"])
def create_budget(pid):
    project_service.get_project(pid)
    data = request.get_json(silent=True) or {}
    budget = budget_service.create_budget(pid, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(budget.to_dict()), 201


@budget_bp.route("/budgets/<int:bid>", methods=["GET"])
def get_budget(bid):
    budget = budget_service.get_budget(bid)
    result = budget.to_dict()
    result["categories"] = [c.to_dict() for c in budget_service.list_categories(budget)]
    return jsonify(result)


@budget_bp.route("/budgets/<int:bid>", methods=["PUT"])
def update_budget(bid):
    budget = budget_service.get_budget(bid)
    data = request.get_json(silent=True) or {}
    budget_service.update_budget(budget, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(budget.to_dict())


@budget_bp.route("/budgets/<int:bid>", methods=["DELETE"])
def delete_budget(bid):
    budget = budget_service.get_budget(bid)
    budget_service.delete_budget(budget, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Budget deleted"}), 200


@budget_bp.route("/budgets/<int:bid>/approve", methods=["PUT"])
def approve_budget(bid):
    budget = budget_service.get_budget(bid)
    budget_service.approve_budget(budget, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(budget.to_dict())


@budget_bp.route("/budgets/<int:bid>/summary", methods=["GET"])
def budget_summary(bid):
    budget = budget_service.get_budget(bid)
    return jsonify(budget_service.budget_summary(budget))


# ═══════════════════════════════════════════════════════════════════════════
#  CATEGORIES
# ═══════════════════════════════════════════════════════════════════════════

@budget_bp.route("/budgets/<int:bid>/categories", methods=["GET"])
def list_categories(bid):
    budget = budget_service.get_budget(bid)
    categories = budget_service.list_categories(budget)
    return jsonify({"items": [c.to_dict() for c in categories], "total": len(categories)})


@budget_bp.route("/budgets/<int:bid>/categories", methods=["POST"])
def create_category(bid):
    budget = budget_service.get_budget(bid)
    data = request.get_json(silent=True) or {}
    category = budget_service.create_category(budget, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(category.to_dict()), 201


@budget_bp.route("/budget-categories/<int:cid>", methods=["GET"])
def get_category(cid):
    category = budget_service.get_category(cid)
    result = category.to_dict()
    result["items"] = [i.to_dict() for i in budget_service.list_items(category)]
    return jsonify(result)


@budget_bp.route("/budget-categories/<int:cid>", methods=["PUT"])
def update_category(cid):
    category = budget_service.get_category(cid)
    data = request.get_json(silent=True) or {}
    budget_service.update_category(category, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(category.to_dict())


@budget_bp.route("/budget-categories/<int:cid>", methods=["DELETE"])
def delete_category(cid):
    category = budget_service.get_category(cid)
    budget_service.delete_category(category)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Budget category deleted"}), 200


# ═══════════════════════════════════════════════════════════════════════════
#  ITEMS
# ═══════════════════════════════════════════════════════════════════════════

@budget_bp.route("/budget-categories/<int:cid>/items", methods=["GET"])
def list_items(cid):
    category = budget_service.get_category(cid)
    items = budget_service.list_items(category)
    return jsonify({"items": [i.to_dict() for i in items], "total": len(items)})


@budget_bp.route("/budget-categories/<int:cid>/items", methods=["POST"])
def create_item(cid):
    category = budget_service.get_category(cid)
    data = request.get_json(silent=True) or {}
    item = budget_service.create_item(category, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 201


@budget_bp.route("/budget-items/<int:iid>", methods=["GET"])
def get_item(iid):
    return jsonify(budget_service.get_item(iid).to_dict())


@budget_bp.route("/budget-items/<int:iid>", methods=["PUT"])
def update_item(iid):
    item = budget_service.get_item(iid)
    data = request.get_json(silent=True) or {}
    budget_service.update_item(item, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict())


@budget_bp.route("/budget-items/<int:iid>", methods=["DELETE"])
def delete_item(iid):
    item = budget_service.get_item(iid)
    budget_service.delete_item(item)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Budget item deleted"}), 200
