"""
ConstructX
Communication blueprint.

Endpoints:
    /api/v1/projects/<pid>/communications          GET, POST   (?type, status, priority, search)
    /api/v1/communications/<id>                    GET, PUT, DELETE
    /api/v1/communications/<id>/send               POST
    /api/v1/communications/<id>/responses          GET, POST
"""

from flask import Blueprint, jsonify, request

from constructx.auth import current_actor
from constructx.blueprints import paginate_query, register_service_errors
from constructx.services import communication_service, project_service
from constructx.utils.helpers import db_commit_or_error

communication_bp = Blueprint("communication", __name__, url_prefix="/api/v1")
register_service_errors(communication_bp)


@communication_bp.route("/projects/<int:pid>/communications", methods=["GET"])
def list_communications(pid):
    project_service.get_project(pid)
    filters = {k: request.args.get(k) for k in ("type", "status", "priority", "search")}
    comms, total = paginate_query(communication_service.list_communications(pid, filters))
    return jsonify({"items": [c.to_dict() for c in comms], "total": total})


@communication_bp.route("/projects/<int:pid>/communications", methods=["POST"])
def create_communication(pid):
    project_service.get_project(pid)
    data = request.get_json(silent=True) or {}
    comm = communication_service.create_communication(pid, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(comm.to_dict()), 201


@communication_bp.route("/communications/<int:cid>", methods=["GET"])
def get_communication(cid):
    return jsonify(communication_service.get_communication(cid).to_dict())


@communication_bp.route("/communications/<int:cid>", methods=["PUT"])
def update_communication(cid):
    comm = communication_service.get_communication(cid)
    data = request.get_json(silent=True) or {}
    communication_service.update_communication(comm, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(comm.to_dict())


@communication_bp.route("/communications/<int:cid>", methods=["DELETE"])
def delete_communication(cid):
    comm = communication_service.get_communication(cid)
    communication_service.delete_communication(comm)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Communication deleted"}), 200


@communication_bp.route("/communications/<int:cid>/send", methods=["POST"])
def send_communication(cid):
    comm = communication_service.get_communication(cid)
    communication_service.send_communication(comm)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(comm.to_dict())


@communication_bp.route("/communications/<int:cid>/responses", methods=["GET"])
def list_responses(cid):
    comm = communication_service.get_communication(cid)
    responses = communication_service.list_responses(comm)
    return jsonify({"items": [r.to_dict() for r in responses], "total": len(responses)})


@communication_bp.route("/communications/<int:cid>/responses", methods=["POST"])
def add_response(cid):
    comm = communication_service.get_communication(cid)
    data = request.get_json(silent=True) or {}
    response = communication_service.add_response(comm, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(response.to_dict()), 201
