"""Communication service — project messages and their reply threads."""
import logging
from datetime import date

from sqlalchemy import or_

from constructx.core.exceptions import NotFoundError, ValidationError
from constructx.models import db
from constructx.models.communication import (
    COMMUNICATION_PRIORITIES,
    COMMUNICATION_STATUSES,
    COMMUNICATION_TYPES,
    DISPATCHED_STATUSES,
    Communication,
    CommunicationResponse,
)
from constructx.utils.helpers import optional_text, parse_date_input, require_text

logger = logging.getLogger(__name__)

_SENDABLE = {"draft", "scheduled"}


def get_communication(comm_id):
    comm = db.session.get(Communication, comm_id)
    if not comm:
        raise NotFoundError(resource="Communication", resource_id=comm_id)
    return comm


def list_communications(project_id=None, filters=None):
    filters = filters or {}
    q = Communication.query
    if project_id is not None:
        q = q.filter_by(project_id=project_id)
    for field in ("type", "status", "priority"):
        if filters.get(field):
            q = q.filter(getattr(Communication, field) == filters[field])
    if filters.get("search"):
        like = f"%{filters['search']}%"
        q = q.filter(or_(Communication.subject.ilike(like), Communication.content.ilike(like),
                         Communication.sender.ilike(like)))
    return q.order_by(Communication.created_at.desc(), Communication.id.desc())


def _apply_fields(comm, data):
    for field in ("subject", "content", "sender"):
        if field in data:
            setattr(comm, field, optional_text(data, field))
    checks = (
        ("type", COMMUNICATION_TYPES),
        ("status", COMMUNICATION_STATUSES),
        ("priority", COMMUNICATION_PRIORITIES),
    )
    for field, allowed in checks:
        if field in data:
            if not isinstance(data[field], str) or data[field] not in allowed:
                raise ValueError(f"Invalid {field}. Must be one of: {', '.join(sorted(allowed))}")
            setattr(comm, field, data[field])
    for field in ("sent_date", "scheduled_date"):
        if field in data:
            setattr(comm, field, parse_date_input(data[field], field))
    for field in ("recipients", "attachments", "tags"):
        if field in data:
            value = data[field] or []
            if not isinstance(value, list):
                raise ValueError(f"{field} must be a list")
            setattr(comm, field, value)
    if comm.status in DISPATCHED_STATUSES and not comm.sent_date:
        comm.sent_date = date.today()


def create_communication(project_id, data, actor=None):
    require_text(data, "subject")
    comm = Communication(project_id=project_id, type="message", status="draft", priority="medium")
    _apply_fields(comm, {"sender": actor or "", **data})
    db.session.add(comm)
    db.session.flush()
    return comm


def update_communication(comm, data):
    _apply_fields(comm, data)
    if not comm.subject:
        raise ValueError("subject is required")
    db.session.flush()
    return comm


def send_communication(comm):
    if comm.status not in _SENDABLE:
        raise ValidationError(f"Cannot send a communication that is {comm.status}")
    comm.status = "sent"
    comm.sent_date = date.today()
    db.session.flush()
    logger.info("Communication %s sent to %d recipient(s)", comm.id, len(comm.recipients or []))
    return comm


def add_response(comm, data, actor=None):
    content = require_text(data, "content")
    response = CommunicationResponse(
        communication_id=comm.id,
        content=content,
        sender=optional_text(data, "sender") or actor or "",
        date=parse_date_input(data.get("date"), "date") or date.today(),
    )
    db.session.add(response)
    db.session.flush()
    db.session.refresh(comm)
    return response


def list_responses(comm):
    return (CommunicationResponse.query.filter_by(communication_id=comm.id)
            .order_by(CommunicationResponse.date, CommunicationResponse.id).all())


def delete_communication(comm):
    db.session.delete(comm)
    db.session.flush()
