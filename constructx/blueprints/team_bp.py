"""
ConstructX
Team blueprint — members and role definitions.

Endpoints:
    MEMBER  /api/v1/team/members          GET, POST  (?role, status, department, search)
            /api/v1/team/members/<id>     GET, PUT, DELETE
    ROLE    /api/v1/team/roles            GET, POST
            /api/v1/team/roles/<id>       GET, PUT, DELETE
"""

from flask import Blueprint, jsonify, request

from constructx.blueprints import paginate_query, register_service_errors
from constructx.services import team_service
from constructx.utils.helpers import db_commit_or_error

team_bp = Blueprint("team", __name__, url_prefix="/api/v1/team")
register_service_errors(team_bp)


@team_bp.route("/members", methods=["GET"])
def list_members():
    filters = {k: request.args.get(k) for k in ("role", "status", "department", "search")}
    members, total = paginate_query(team_service.list_members(filters))
    return jsonify({"items": [m.to_dict() for m in members], "total": total})


@team_bp.route("/members", methods=["POST"])
def create_member():
    data = request.get_json(silent=True) or {}
    member = team_service.create_member(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(member.to_dict()), 201


@team_bp.route("/members/<int:mid>", methods=["GET"])
def get_member(mid):
    return jsonify(team_service.get_member(mid).to_dict())


@team_bp.route("/members/<int:mid>", methods=["PUT"])
def update_member(mid):
    member = team_service.get_member(mid)
    data = request.get_json(silent=True) or {}
    team_service.update_member(member, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(member.to_dict())


@team_bp.route("/members/<int:mid>", methods=["DELETE"])
def delete_member(mid):
    member = team_service.get_member(mid)
    team_service.delete_member(member)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Team member deleted"}), 200


# ── Roles ────────────────────────────────────────────────────────────────


@team_bp.route("/roles", methods=["GET"])
def list_roles():
    roles = team_service.list_roles()
    return jsonify({"items": [r.to_dict() for r in roles], "total": len(roles)})


@team_bp.route("/roles", methods=["POST"])
def create_role():
    data = request.get_json(silent=True) or {}
    role = team_service.create_role(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(role.to_dict()), 201


@team_bp.route("/roles/<int:role_id>", methods=["GET"])
def get_role(role_id):
    return jsonify(team_service.get_role(role_id).to_dict())


@team_bp.route("/roles/<int:role_id>", methods=["PUT"])
def update_role(role_id):
    role = team_service.get_role(role_id)
    data = request.get_json(silent=True) or {}
    team_service.update_role(role, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(role.to_dict())


@team_bp.route("/roles/<int:role_id>", methods=["DELETE"])
def delete_role(role_id):
    role = team_service.get_role(role_id)
    team_service.delete_role(role)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Role deleted"}), 200
