"""
ConstructX
Project blueprint — project CRUD and the project archive.

Endpoints:
    PROJECT  /api/v1/projects                          GET, POST
             /api/v1/projects/<pid>                    GET, PUT, DELETE
             /api/v1/projects/<pid>/archive            POST

    ARCHIVE  /api/v1/project-archives                  GET     (?search=)
             /api/v1/project-archives/<pid>            GET, DELETE (permanent)
             /api/v1/project-archives/<pid>/restore    POST
"""

import logging

from flask import Blueprint, jsonify, request

from constructx.auth import current_actor, require_role
from constructx.blueprints import paginate_query, register_service_errors
from constructx.services import project_service
from constructx.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

project_bp = Blueprint("project", __name__, url_prefix="/api/v1")
register_service_errors(project_bp)


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECTS
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects", methods=["GET"])
def list_projects():
    q = project_service.list_projects(
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    projects, total = paginate_query(q)
    return jsonify({"items": [p.to_dict() for p in projects], "total": total})


@project_bp.route("/projects", methods=["POST"])
def create_project():
    data = request.get_json(silent=True) or {}
    project = project_service.create_project(data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict()), 201


@project_bp.route("/projects/<int:pid>", methods=["GET"])
def get_project(pid):
    return jsonify(project_service.get_project(pid).to_dict())


@project_bp.route("/projects/<int:pid>", methods=["PUT"])
def update_project(pid):
    project = project_service.get_project(pid)
    data = request.get_json(silent=True) or {}
    project_service.update_project(project, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict())


@project_bp.route("/projects/<int:pid>", methods=["DELETE"])
def delete_project(pid):
    project = project_service.get_project(pid)
    project_service.delete_project(project, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Project deleted"}), 200


@project_bp.route("/projects/<int:pid>/archive", methods=["POST"])
def archive_project(pid):
    project = project_service.get_project(pid)
    project_service.archive_project(project, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  ARCHIVE
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/project-archives", methods=["GET"])
def list_archived_projects():
    q = project_service.list_archived_projects(search=request.args.get("search"))
    projects, total = paginate_query(q)
    return jsonify({"items": [p.to_dict() for p in projects], "total": total})


@project_bp.route("/project-archives/<int:pid>", methods=["GET"])
def get_archived_project(pid):
    return jsonify(project_service.get_archived_project(pid).to_dict())


@project_bp.route("/project-archives/<int:pid>/restore", methods=["POST"])
def restore_project(pid):
    project = project_service.restore_project(pid, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict())


@project_bp.route("/project-archives/<int:pid>", methods=["DELETE"])
@require_role("admin")
def delete_archived_project(pid):
    project_service.delete_archived_project(pid, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Project permanently deleted"}), 200
