"""Safety service — hazards, incidents, meetings and their remediation actions.

Transaction policy: functions flush, the route commits.
"""
import logging
from datetime import date

from sqlalchemy import or_

from constructx.core.exceptions import NotFoundError
from constructx.models import db
from constructx.models.safety import (
    ACTION_STATUSES,
    ALERT_TYPES,
    SAFETY_SEVERITIES,
    SAFETY_STATUSES,
    SAFETY_TYPES,
    SafetyAction,
    SafetyItem,
    derive_safety_status,
)
from constructx.services.notification import NotificationService
from constructx.utils.helpers import optional_text, parse_date_input, require_text

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("title", "location", "description", "reported_by", "assigned_to", "notes")
_DATE_FIELDS = ("reported_date", "due_date", "completed_date")


def get_item(item_id):
    item = db.session.get(SafetyItem, item_id)
    if not item:
        raise NotFoundError(resource="Safety item", resource_id=item_id)
    return item


def list_items(project_id=None, filters=None):
    filters = filters or {}
    q = SafetyItem.query
    if project_id is not None:
        q = q.filter_by(project_id=project_id)
    for field in ("type", "status", "severity"):
        if filters.get(field):
            q = q.filter(getattr(SafetyItem, field) == filters[field])
    if filters.get("search"):
        like = f"%{filters['search']}%"
        q = q.filter(or_(SafetyItem.title.ilike(like), SafetyItem.location.ilike(like),
                         SafetyItem.description.ilike(like)))
    return q.order_by(SafetyItem.reported_date.desc(), SafetyItem.id.desc())


def _check_action_status(status):
    if not isinstance(status, str) or status not in ACTION_STATUSES:
        raise ValueError(f"Invalid action status. Must be one of: {', '.join(sorted(ACTION_STATUSES))}")


def _build_actions(raw):
    if not isinstance(raw, list):
        raise ValueError("actions must be a list")
    rows = []
    for position, entry in enumerate(raw):
        description = optional_text(entry, "description") if isinstance(entry, dict) else ""
        if not description:
            raise ValueError("Each action needs a description")
        status = entry.get("status") or "pending"
        _check_action_status(status)
        action = SafetyAction(
            description=description,
            assigned_to=optional_text(entry, "assigned_to"),
            due_date=parse_date_input(entry.get("due_date"), "due_date"),
            status=status,
            completed_date=parse_date_input(entry.get("completed_date"), "completed_date"),
            position=position,
        )
        if status == "completed" and not action.completed_date:
            action.completed_date = date.today()
        rows.append(action)
    return rows


def recompute_status(item):
    status = derive_safety_status(item.type, [a.status for a in item.actions])
    if status is not None:
        item.status = status
    if item.status in ("resolved", "completed") and not item.completed_date:
        item.completed_date = date.today()
    return item


def _apply_fields(item, data):
    for field in _TEXT_FIELDS:
        if field in data:
            setattr(item, field, optional_text(data, field))
    checks = (("type", SAFETY_TYPES), ("status", SAFETY_STATUSES), ("severity", SAFETY_SEVERITIES))
    for field, allowed in checks:
        if field in data:
            if not isinstance(data[field], str) or data[field] not in allowed:
                raise ValueError(f"Invalid {field}. Must be one of: {', '.join(sorted(allowed))}")
            setattr(item, field, data[field])
    for field in _DATE_FIELDS:
        if field in data:
            setattr(item, field, parse_date_input(data[field], field))
    for field in ("attachments", "tags"):
        if field in data:
            setattr(item, field, data[field] or [])


def create_item(project_id, data):
    require_text(data, "title")
    item = SafetyItem(project_id=project_id, type="hazard", status="open", severity="medium")
    _apply_fields(item, data)
    if item.type == "safety_meeting" and "status" not in data:
        item.status = "scheduled"
    if item.reported_date is None:
        item.reported_date = date.today()
    if "actions" in data:
        item.actions = _build_actions(data["actions"])
    db.session.add(item)
    db.session.flush()
    recompute_status(item)

    if item.severity == "critical" and item.type in ALERT_TYPES:
        NotificationService.create(
            title=f"Critical {item.type.replace('_', ' ')}: {item.title[:80]}",
            message=item.location or "",
            category="safety", severity="error",
            project_id=item.project_id, entity_type="safety_item", entity_id=item.id,
        )
        logger.warning("Critical safety item %s reported on project %s", item.id, item.project_id)
    db.session.flush()
    return item


def update_item(item, data):
    _apply_fields(item, data)
    if not item.title:
        raise ValueError("title is required")
    if "actions" in data:
        item.actions = _build_actions(data["actions"])
        db.session.flush()
        recompute_status(item)
    db.session.flush()
    return item


def update_action(item, action_id, data):
    action = next((a for a in item.actions if a.id == action_id), None)
    if action is None:
        raise NotFoundError(resource="Safety action", resource_id=action_id)
    if "description" in data:
        action.description = require_text(data, "description")
    if "assigned_to" in data:
        action.assigned_to = optional_text(data, "assigned_to")
    if "due_date" in data:
        action.due_date = parse_date_input(data["due_date"], "due_date")
    if "status" in data:
        _check_action_status(data["status"])
        action.status = data["status"]
        if action.status == "completed" and not action.completed_date:
            action.completed_date = date.today()
        elif action.status != "completed":
            action.completed_date = None
    recompute_status(item)
    db.session.flush()
    return item


def delete_item(item):
    db.session.delete(item)
    db.session.flush()


def safety_stats(project_id=None, today=None):
    today = today or date.today()
    items = list_items(project_id).all()
    by_type = {t: 0 for t in sorted(SAFETY_TYPES)}
    by_severity = {s: 0 for s in sorted(SAFETY_SEVERITIES)}
    open_critical = 0
    overdue_actions = 0
    for item in items:
        by_type[item.type] = by_type.get(item.type, 0) + 1
        by_severity[item.severity] = by_severity.get(item.severity, 0) + 1
        if item.severity == "critical" and item.status in ("open", "in_progress"):
            open_critical += 1
        overdue_actions += sum(
            1 for a in item.actions
            if a.due_date and a.due_date < today and a.status != "completed"
        )
    return {
        "total": len(items),
        "by_type": by_type,
        "by_severity": by_severity,
        "open_critical": open_critical,
        "overdue_actions": overdue_actions,
    }
