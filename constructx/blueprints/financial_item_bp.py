"""
ConstructX
Financial item ledger blueprint.

Endpoints:
    /api/v1/projects/<pid>/financial-items          GET, POST   (?type, status, category, search)
    /api/v1/projects/<pid>/financial-items/totals   GET
    /api/v1/financial-items/<id>                    GET, PUT, DELETE
"""

from flask import Blueprint, jsonify, request

from constructx.auth import current_actor
from constructx.blueprints import paginate_query, register_service_errors
from constructx.services import financial_item_service, project_service
from constructx.utils.helpers import db_commit_or_error

financial_item_bp = Blueprint("financial_item", __name__, url_prefix="/api/v1")
register_service_errors(financial_item_bp)


@financial_item_bp.route("/projects/<int:pid>/financial-items", methods=["GET"])
def list_items(pid):
    project_service.get_project(pid)
    filters = {k: request.args.get(k) for k in ("type", "status", "category", "search")}
    items, total = paginate_query(financial_item_service.list_items(pid, filters))
    return jsonify({"items": [i.to_dict() for i in items], "total": total})


@financial_item_bp.route("/projects/<int:pid>/financial-items", methods=["POST"])
def create_item(pid):
    project_service.get_project(pid)
    data = request.get_json(silent=True) or {}
    item = financial_item_service.create_item(pid, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 201


@financial_item_bp.route("/projects/<int:pid>/financial-items/totals", methods=["GET"])
def item_totals(pid):
    project_service.get_project(pid)
    return jsonify(financial_item_service.financial_item_totals(pid))


@financial_item_bp.route("/financial-items/<int:iid>", methods=["GET"])
def get_item(iid):
    return jsonify(financial_item_service.get_item(iid).to_dict())


@financial_item_bp.route("/financial-items/<int:iid>", methods=["PUT"])
def update_item(iid):
    item = financial_item_service.get_item(iid)
    data = request.get_json(silent=True) or {}
    financial_item_service.update_item(item, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict())


@financial_item_bp.route("/financial-items/<int:iid>", methods=["DELETE"])
def delete_item(iid):
    item = financial_item_service.get_item(iid)
    financial_item_service.delete_item(item)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Financial item deleted"}), 200
