"""
ConstructX
Notification blueprint — server-side feed for in-app alerts.

Endpoints:
    GET   /api/v1/notifications                 ?recipient, project_id, unread_only, limit, offset
    GET   /api/v1/notifications/unread-count
    PATCH /api/v1/notifications/<id>/read
    POST  /api/v1/notifications/mark-all-read   body: {recipient?, project_id?}
"""

from flask import Blueprint, jsonify, request

from constructx.services.notification import NotificationService
from constructx.utils.errors import E, api_error
from constructx.utils.helpers import db_commit_or_error

notification_bp = Blueprint("notification", __name__, url_prefix="/api/v1")


@notification_bp.route("/notifications", methods=["GET"])
def list_notifications():
    recipient = request.args.get("recipient", "all")
    project_id = request.args.get("project_id", type=int)
    unread_only = request.args.get("unread_only", "false").lower() == "true"
    limit = min(max(request.args.get("limit", 50, type=int), 1), 200)
    offset = max(request.args.get("offset", 0, type=int), 0)

    items, total = NotificationService.list_for_recipient(
        recipient=recipient, project_id=project_id,
        unread_only=unread_only, limit=limit, offset=offset,
    )
    return jsonify({
        "items": [n.to_dict() for n in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    })


@notification_bp.route("/notifications/unread-count", methods=["GET"])
def notification_unread_count():
    recipient = request.args.get("recipient", "all")
    project_id = request.args.get("project_id", type=int)
    count = NotificationService.unread_count(recipient=recipient, project_id=project_id)
    return jsonify({"unread_count": count})


@notification_bp.route("/notifications/<int:nid>/read", methods=["PATCH"])
def mark_notification_read(nid):
    notif = NotificationService.mark_read(nid)
    if not notif:
        return api_error(E.NOT_FOUND, "Notification not found")
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(notif.to_dict())


@notification_bp.route("/notifications/mark-all-read", methods=["POST"])
def mark_all_notifications_read():
    data = request.get_json(silent=True) or {}
    count = NotificationService.mark_all_read(
        recipient=data.get("recipient", "all"),
        project_id=data.get("project_id"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"marked_read": count})
