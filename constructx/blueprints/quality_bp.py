"""
ConstructX
Quality control blueprint.

Endpoints:
    /api/v1/projects/<pid>/quality-controls             GET, POST   (?type, status, search)
    /api/v1/projects/<pid>/quality-stats                GET
    /api/v1/quality-controls/<id>                       GET, PUT, DELETE
    /api/v1/quality-controls/<id>/criteria/<cid>        PATCH       body: {status?, notes?}
"""

import logging

from flask import Blueprint, jsonify, request

from constructx.blueprints import paginate_query, register_service_errors
from constructx.services import project_service, quality_service
from constructx.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

quality_bp = Blueprint("quality", __name__, url_prefix="/api/v1")
register_service_errors(quality_bp)


@quality_bp.route("/projects/<int:pid>/quality-controls", methods=["GET"])
def list_qcs(pid):
    project_service.get_project(pid)
    filters = {k: request.args.get(k) for k in ("type", "status", "search")}
    qcs, total = paginate_query(quality_service.list_qcs(pid, filters))
    return jsonify({"items": [qc.to_dict() for qc in qcs], "total": total})


@quality_bp.route("/projects/<int:pid>/quality-controls", methods=["POST"])
def create_qc(pid):
    project_service.get_project(pid)
    data = request.get_json(silent=True) or {}
    qc = quality_service.create_qc(pid, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(qc.to_dict()), 201


@quality_bp.route("/projects/<int:pid>/quality-stats", methods=["GET"])
def qc_stats(pid):
    project_service.get_project(pid)
    return jsonify(quality_service.quality_stats(pid))


@quality_bp.route("/quality-controls/<int:qid>", methods=["GET"])
def get_qc(qid):
    return jsonify(quality_service.get_qc(qid).to_dict())


@quality_bp.route("/quality-controls/<int:qid>", methods=["PUT"])
def update_qc(qid):
    qc = quality_service.get_qc(qid)
    data = request.get_json(silent=True) or {}
    quality_service.update_qc(qc, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(qc.to_dict())


@quality_bp.route("/quality-controls/<int:qid>/criteria/<int:cid>", methods=["PATCH"])
def update_criterion(qid, cid):
    qc = quality_service.get_qc(qid)
    data = request.get_json(silent=True) or {}
    quality_service.update_criterion(qc, cid, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(qc.to_dict())


@quality_bp.route("/quality-controls/<int:qid>", methods=["DELETE"])
def delete_qc(qid):
    qc = quality_service.get_qc(qid)
    quality_service.delete_qc(qc)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Quality control deleted"}), 200
