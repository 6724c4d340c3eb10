"""
ConstructX
Safety blueprint — hazards, incidents, near misses, meetings and training.

Endpoints:
    /api/v1/projects/<pid>/safety-items              GET, POST   (?type, status, severity, search)
    /api/v1/projects/<pid>/safety-stats              GET
    /api/v1/safety-items/<id>                        GET, PUT, DELETE
    /api/v1/safety-items/<id>/actions/<aid>          PATCH
"""

from flask import Blueprint, jsonify, request

from constructx.blueprints import paginate_query, register_service_errors
from constructx.services import project_service, safety_service
from constructx.utils.helpers import db_commit_or_error

safety_bp = Blueprint("safety", __name__, url_prefix="/api/v1")
register_service_errors(safety_bp)


@safety_bp.route("/projects/<int:pid>/safety-items", methods=["GET"])
def list_items(pid):
    project_service.get_project(pid)
    filters = {k: request.args.get(k) for k in ("type", "status", "severity", "search")}
    items, total = paginate_query(safety_service.list_items(pid, filters))
    return jsonify({"items": [i.to_dict() for i in items], "total": total})


@safety_bp.route("/projects/<int:pid>/safety-items", methods=["POST"])
def create_item(pid):
    project_service.get_project(pid)
    data = request.get_json(silent=True) or {}
    item = safety_service.create_item(pid, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 201


@safety_bp.route("/projects/<int:pid>/safety-stats", methods=["GET"])
def safety_stats(pid):
    project_service.get_project(pid)
    return jsonify(safety_service.safety_stats(pid))


@safety_bp.route("/safety-items/<int:sid>", methods=["GET"])
def get_item(sid):
    return jsonify(safety_service.get_item(sid).to_dict())


@safety_bp.route("/safety-items/<int:sid>", methods=["PUT"])
def update_item(sid):
    item = safety_service.get_item(sid)
    data = request.get_json(silent=True) or {}
    safety_service.update_item(item, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict())


@safety_bp.route("/safety-items/<int:sid>/actions/<int:aid>", methods=["PATCH"])
def update_action(sid, aid):
    item = safety_service.get_item(sid)
    data = request.get_json(silent=True) or {}
    safety_service.update_action(item, aid, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict())


@safety_bp.route("/safety-items/<int:sid>", methods=["DELETE"])
def delete_item(sid):
    item = safety_service.get_item(sid)
    safety_service.delete_item(item)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Safety item deleted"}), 200
