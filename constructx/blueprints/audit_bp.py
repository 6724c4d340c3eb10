"""
ConstructX
Audit trail blueprint.

Endpoints:
    GET  /api/v1/audit                                   (?project_id, entity_type, entity_id, action, actor, page, per_page)
    GET  /api/v1/audit/<int:log_id>
    GET  /api/v1/audit/<entity_type>/<entity_id>/history
"""

from flask import Blueprint, jsonify, request

from constructx.models import db
from constructx.models.audit import AuditLog
from constructx.utils.errors import E, api_error

audit_bp = Blueprint("audit", __name__, url_prefix="/api/v1")

# query param → (column, exact match?)
_FILTERS = {
    "entity_type": (AuditLog.entity_type, True),
    "entity_id": (AuditLog.entity_id, True),
    "actor": (AuditLog.actor, True),
    "action": (AuditLog.action, False),
}


def _newest_first(q):
    return q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())


@audit_bp.route("/audit", methods=["GET"])
def list_audit_logs():
    """Paginated audit rows, newest first. ``action`` is a prefix match."""
    q = AuditLog.query
    project_id = request.args.get("project_id", type=int)
    if project_id is not None:
        q = q.filter(AuditLog.project_id == project_id)
    for param, (column, exact) in _FILTERS.items():
        value = request.args.get(param)
        if value:
            q = q.filter(column == value if exact else column.startswith(value))

    page = max(1, request.args.get("page", 1, type=int))
    per_page = min(200, max(1, request.args.get("per_page", 50, type=int)))
    result = _newest_first(q).paginate(page=page, per_page=per_page, error_out=False)

    return jsonify({
        "items": [log.to_dict() for log in result.items],
        "total": result.total,
        "page": result.page,
        "per_page": result.per_page,
        "pages": result.pages,
    })


@audit_bp.route("/audit/<int:log_id>", methods=["GET"])
def get_audit_log(log_id):
    log = db.session.get(AuditLog, log_id)
    if not log:
        return api_error(E.NOT_FOUND, "Audit log not found")
    return jsonify(log.to_dict())


@audit_bp.route("/audit/<entity_type>/<entity_id>/history", methods=["GET"])
def entity_history(entity_type, entity_id):
    rows = _newest_first(
        AuditLog.query.filter_by(entity_type=entity_type, entity_id=str(entity_id))
    ).all()
    return jsonify({"items": [r.to_dict() for r in rows], "total": len(rows)})
