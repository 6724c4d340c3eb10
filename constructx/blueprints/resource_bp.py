"""
ConstructX
Resource blueprint — labor, equipment and material stock, allocations,
availability exceptions and utilization logs.

Endpoints:
    RESOURCE      /api/v1/resources                           GET, POST  (?type, status, project_id, search)
                  /api/v1/resources/<id>                      GET, PUT, DELETE
    ALLOCATION    /api/v1/resources/<id>/allocations          GET, POST
                  /api/v1/projects/<pid>/resource-allocations GET
                  /api/v1/resource-allocations/<id>           PUT, DELETE
    AVAILABILITY  /api/v1/resources/<id>/availability         GET, POST  (?start_date, end_date)
                  /api/v1/availability/<id>                   PUT, DELETE
    UTILIZATION   /api/v1/resources/<id>/utilization          GET, POST  (?start_date, end_date)
                  /api/v1/projects/<pid>/utilization          GET        (?start_date, end_date)
                  /api/v1/utilization/<id>                    PUT, DELETE
"""

import logging

from flask import Blueprint, jsonify, request

from constructx.auth import current_actor
from constructx.blueprints import paginate_query, register_service_errors
from constructx.services import project_service, resource_service
from constructx.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

resource_bp = Blueprint("resource", __name__, url_prefix="/api/v1")
register_service_errors(resource_bp)


@resource_bp.route("/resources", methods=["GET"])
def list_resources():
    filters = {k: request.args.get(k) for k in ("type", "status", "project_id", "search")}
    resources, total = paginate_query(resource_service.list_resources(filters))
    return jsonify({"items": [r.to_dict() for r in resources], "total": total})


@resource_bp.route("/resources", methods=["POST"])
def create_resource():
    data = request.get_json(silent=True) or {}
    resource = resource_service.create_resource(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(resource.to_dict()), 201


@resource_bp.route("/resources/<int:rid>", methods=["GET"])
def get_resource(rid):
    resource = resource_service.get_resource(rid)
    result = resource.to_dict()
    result["allocations"] = [a.to_dict() for a in resource_service.list_allocations(resource_id=rid)]
    return jsonify(result)


@resource_bp.route("/resources/<int:rid>", methods=["PUT"])
def update_resource(rid):
    resource = resource_service.get_resource(rid)
    data = request.get_json(silent=True) or {}
    resource_service.update_resource(resource, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(resource.to_dict())


@resource_bp.route("/resources/<int:rid>", methods=["DELETE"])
def delete_resource(rid):
    resource = resource_service.get_resource(rid)
    resource_service.delete_resource(resource)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Resource deleted"}), 200


# ── Allocations ──────────────────────────────────────────────────────────


@resource_bp.route("/resources/<int:rid>/allocations", methods=["GET"])
def list_resource_allocations(rid):
    resource_service.get_resource(rid)
    allocations, total = paginate_query(resource_service.list_allocations(resource_id=rid))
    return jsonify({"items": [a.to_dict() for a in allocations], "total": total})


@resource_bp.route("/resources/<int:rid>/allocations", methods=["POST"])
def create_allocation(rid):
    resource = resource_service.get_resource(rid)
    data = request.get_json(silent=True) or {}
    allocation = resource_service.create_allocation(resource, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(allocation.to_dict()), 201


@resource_bp.route("/projects/<int:pid>/resource-allocations", methods=["GET"])
def list_project_allocations(pid):
    project_service.get_project(pid)
    allocations, total = paginate_query(resource_service.list_allocations(project_id=pid))
    return jsonify({"items": [a.to_dict() for a in allocations], "total": total})


@resource_bp.route("/resource-allocations/<int:aid>", methods=["PUT"])
def update_allocation(aid):
    allocation = resource_service.get_allocation(aid)
    data = request.get_json(silent=True) or {}
    resource_service.update_allocation(allocation, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(allocation.to_dict())


@resource_bp.route("/resource-allocations/<int:aid>", methods=["DELETE"])
def delete_allocation(aid):
    allocation = resource_service.get_allocation(aid)
    resource_service.delete_allocation(allocation)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Allocation deleted"}), 200


# ── Availability exceptions ──────────────────────────────────────────────


@resource_bp.route("/resources/<int:rid>/availability", methods=["GET"])
def list_availability(rid):
    resource = resource_service.get_resource(rid)
    entries = resource_service.list_availability(
        resource, request.args.get("start_date"), request.args.get("end_date"),
    ).all()
    return jsonify({"items": [e.to_dict() for e in entries], "total": len(entries)})


@resource_bp.route("/resources/<int:rid>/availability", methods=["POST"])
def add_availability(rid):
    resource = resource_service.get_resource(rid)
    data = request.get_json(silent=True) or {}
    entry = resource_service.add_availability(resource, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(entry.to_dict()), 201


@resource_bp.route("/availability/<int:avid>", methods=["PUT"])
def update_availability(avid):
    entry = resource_service.get_availability(avid)
    data = request.get_json(silent=True) or {}
    resource_service.update_availability(entry, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(entry.to_dict())


@resource_bp.route("/availability/<int:avid>", methods=["DELETE"])
def delete_availability(avid):
    entry = resource_service.get_availability(avid)
    resource_service.delete_availability(entry)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Availability exception deleted"}), 200


# ── Utilization ──────────────────────────────────────────────────────────


def _utilization_page(**scope):
    q = resource_service.list_utilization(
        start=request.args.get("start_date"), end=request.args.get("end_date"), **scope,
    )
    records, total = paginate_query(q)
    return jsonify({"items": [r.to_dict() for r in records], "total": total})


@resource_bp.route("/resources/<int:rid>/utilization", methods=["GET"])
def list_resource_utilization(rid):
    resource_service.get_resource(rid)
    return _utilization_page(resource_id=rid)


@resource_bp.route("/projects/<int:pid>/utilization", methods=["GET"])
def list_project_utilization(pid):
    project_service.get_project(pid)
    return _utilization_page(project_id=pid)


@resource_bp.route("/resources/<int:rid>/utilization", methods=["POST"])
def record_utilization(rid):
    resource = resource_service.get_resource(rid)
    data = request.get_json(silent=True) or {}
    record = resource_service.record_utilization(resource, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(record.to_dict()), 201


@resource_bp.route("/utilization/<int:uid>", methods=["PUT"])
def update_utilization(uid):
    record = resource_service.get_utilization(uid)
    data = request.get_json(silent=True) or {}
    resource_service.update_utilization(record, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(record.to_dict())


@resource_bp.route("/utilization/<int:uid>", methods=["DELETE"])
def delete_utilization(uid):
    record = resource_service.get_utilization(uid)
    resource_service.delete_utilization(record)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Utilization record deleted"}), 200
