"""Lead service — sales pipeline, contacts, activity timeline and conversion.

Transaction policy: functions flush, the route commits.

Every mutation of a lead (or of its contacts and notes) bumps
``last_activity_at``; system events are recorded as LeadActivity rows so the
timeline shows them next to user-logged calls and meetings.
"""
import logging
from datetime import datetime

from sqlalchemy import or_

from constructx.core.exceptions import NotFoundError, ValidationError
from constructx.models import db
from constructx.models.audit import field_diff, write_audit
from constructx.models.base import utcnow
from constructx.models.lead import (
    ACTIVITY_TYPES,
    LEAD_PROTECTED_FIELDS,
    LEAD_STATUSES,
    NOTE_PREVIEW_LENGTH,
    Lead,
    LeadActivity,
    LeadContact,
    LeadNote,
)
from constructx.services import project_service
from constructx.utils.helpers import optional_text, parse_amount, parse_date_input, require_text

logger = logging.getLogger(__name__)

_UPDATABLE = (
    "name", "client_company", "source", "description", "estimated_value",
    "estimated_start_date", "estimated_duration", "status", "probability",
    "assigned_to", "tags",
)
_TEXT_FIELDS = ("name", "client_company", "source", "description", "assigned_to")
_CONTACT_FIELDS = ("first_name", "last_name", "email", "phone", "position", "notes")


def get_lead(lead_id):
    lead = db.session.get(Lead, lead_id)
    if not lead:
        raise NotFoundError(resource="Lead", resource_id=lead_id)
    return lead


def list_leads(filters=None):
    filters = filters or {}
    q = Lead.query
    for field in ("status", "assigned_to", "source"):
        if filters.get(field):
            q = q.filter(getattr(Lead, field) == filters[field])
    if filters.get("search"):
        like = f"%{filters['search']}%"
        q = q.filter(or_(Lead.name.ilike(like), Lead.client_company.ilike(like),
                         Lead.description.ilike(like)))
    return q.order_by(Lead.updated_at.desc(), Lead.id.desc())


def log_activity(lead, activity_type, title, description="", actor="system", **extra):
    activity = LeadActivity(
        lead_id=lead.id,
        type=activity_type,
        title=title,
        description=description,
        performed_by=actor,
        performed_at=extra.get("performed_at") or utcnow(),
        scheduled_at=extra.get("scheduled_at"),
        outcome=extra.get("outcome", ""),
    )
    db.session.add(activity)
    lead.touch()
    db.session.flush()
    return activity


def _normalize(data):
    """Validate and coerce the writable lead fields present in ``data``."""
    clean = {k: data[k] for k in _UPDATABLE if k in data}
    for field in _TEXT_FIELDS:
        if field in clean:
            clean[field] = optional_text(data, field)
    status = clean.get("status")
    if "status" in clean and (not isinstance(status, str) or status not in LEAD_STATUSES):
        raise ValueError(f"Invalid status. Must be one of: {', '.join(LEAD_STATUSES)}")
    if "estimated_value" in clean:
        clean["estimated_value"] = parse_amount(clean["estimated_value"], "estimated_value", minimum=0) or 0
    if "probability" in clean:
        probability = clean["probability"]
        if isinstance(probability, bool) or not isinstance(probability, int) or not 0 <= probability <= 100:
            raise ValueError("probability must be an integer between 0 and 100")
    if "estimated_duration" in clean and clean["estimated_duration"] is not None:
        try:
            clean["estimated_duration"] = int(clean["estimated_duration"])
        except (TypeError, ValueError):
            raise ValueError("estimated_duration must be a number of days") from None
    if "estimated_start_date" in clean:
        clean["estimated_start_date"] = parse_date_input(
            clean["estimated_start_date"], "estimated_start_date",
        )
    if "tags" in clean:
        clean["tags"] = clean["tags"] or []
    return clean


def create_lead(data, actor="system"):
    for required in ("name", "assigned_to"):
        require_text(data, required)
    lead = Lead(status="New", probability=0, estimated_value=0, created_by=actor)
    for field, value in _normalize(data).items():
        setattr(lead, field, value)
    db.session.add(lead)
    db.session.flush()

    log_activity(lead, "Note", "Lead Created", f"Lead '{lead.name}' created.", actor=actor)
    write_audit(entity_type="lead", entity_id=lead.id, action="create", actor=actor)
    return lead


def update_lead(lead, data, actor="system"):
    protected = sorted(LEAD_PROTECTED_FIELDS & set(data))
    if protected:
        raise ValueError(f"Cannot modify protected fields: {', '.join(protected)}")
    changes = _normalize(data)
    for required in ("name", "assigned_to"):
        if required in changes and not changes[required]:
            raise ValueError(f"{required} is required")

    diff = field_diff(lead, changes, _UPDATABLE)
    for field, value in changes.items():
        setattr(lead, field, value)
    db.session.flush()
    summary = f"Updated: {', '.join(sorted(diff))}" if diff else f"Lead details updated by {actor}"
    log_activity(lead, "Note", "Lead Updated", summary, actor=actor)
    if diff:
        write_audit(entity_type="lead", entity_id=lead.id, action="update",
                    actor=actor, diff=diff)
    return lead


def delete_lead(lead, actor="system"):
    write_audit(entity_type="lead", entity_id=lead.id, action="delete", actor=actor)
    db.session.delete(lead)
    db.session.flush()


# ── Contacts ─────────────────────────────────────────────────────────────


def _clear_primary(lead, keep_id=None):
    for contact in lead.contacts.filter_by(is_primary=True):
        if contact.id != keep_id:
            contact.is_primary = False


def get_contact(lead, contact_id):
    contact = lead.contacts.filter_by(id=contact_id).first()
    if not contact:
        raise NotFoundError(resource="Contact", resource_id=contact_id)
    return contact


def add_contact(lead, data):
    for required in ("first_name", "last_name"):
        require_text(data, required)
    contact = LeadContact(lead_id=lead.id, is_primary=bool(data.get("is_primary")))
    for field in _CONTACT_FIELDS:
        if field in data:
            setattr(contact, field, optional_text(data, field))
    if contact.is_primary:
        _clear_primary(lead)
    db.session.add(contact)
    lead.touch()
    db.session.flush()
    return contact


def update_contact(lead, contact_id, data):
    contact = get_contact(lead, contact_id)
    for field in _CONTACT_FIELDS:
        if field in data:
            if field in ("first_name", "last_name"):
                setattr(contact, field, require_text(data, field))
            else:
                setattr(contact, field, optional_text(data, field))
    if "is_primary" in data:
        contact.is_primary = bool(data["is_primary"])
        if contact.is_primary:
            _clear_primary(lead, keep_id=contact.id)
    lead.touch()
    db.session.flush()
    return contact


def remove_contact(lead, contact_id):
    contact = get_contact(lead, contact_id)
    db.session.delete(contact)
    lead.touch()
    db.session.flush()


# ── Activities & notes ───────────────────────────────────────────────────


def add_activity(lead, data, actor="system"):
    activity_type = data.get("type")
    if not activity_type:
        raise ValueError("type is required")
    if not isinstance(activity_type, str) or activity_type not in ACTIVITY_TYPES:
        raise ValueError(f"Invalid type. Must be one of: {', '.join(sorted(ACTIVITY_TYPES))}")
    return log_activity(
        lead, activity_type,
        optional_text(data, "title") or activity_type,
        optional_text(data, "description"),
        actor=data.get("performed_by") or actor,
        scheduled_at=_parse_timestamp(data.get("scheduled_at"), "scheduled_at"),
        outcome=optional_text(data, "outcome"),
    )


def _parse_timestamp(value, field):
    if value in (None, ""):
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Invalid {field}. Use ISO 8601.") from None


def list_activities(lead):
    return lead.activities.order_by(LeadActivity.performed_at.desc(), LeadActivity.id.desc()).all()


def note_preview(content):
    if len(content) <= NOTE_PREVIEW_LENGTH:
        return content
    return content[:NOTE_PREVIEW_LENGTH] + "..."


def add_note(lead, data, actor="system"):
    content = require_text(data, "content")
    note = LeadNote(lead_id=lead.id, content=content, created_by=actor)
    db.session.add(note)
    db.session.flush()
    log_activity(lead, "Note", "Note Added", note_preview(content), actor=actor)
    return note


def list_notes(lead):
    return lead.notes.order_by(LeadNote.created_at.desc(), LeadNote.id.desc()).all()


# ── Conversion & pipeline ────────────────────────────────────────────────


def convert_lead_to_project(lead, data, actor="system"):
    """Create a project from ``lead`` and mark the lead Won.

    Returns ``{"lead": Lead, "project": Project}``.
    """
    if lead.status == "Won":
        raise ValidationError("Lead has already been converted or marked as Won")
    if lead.status == "Lost":
        raise ValidationError("Cannot convert a Lost lead")

    project = project_service.create_project({
        "name": data.get("name") or lead.name,
        "description": data.get("description") or lead.description,
        "status": data.get("status") or "Planning",
        "start_date": data.get("start_date") or lead.estimated_start_date,
        "target_completion_date": data.get("target_completion_date"),
        "budget": lead.estimated_value,
        "client_name": data.get("client_name") or lead.client_company,
        "project_manager": data.get("project_manager") or lead.assigned_to,
        "location": data.get("location", ""),
        "project_type": data.get("project_type", ""),
        "lead_origin_id": lead.id,
        "tags": lead.tags or [],
    }, actor=actor)

    old_status = lead.status
    lead.status = "Won"
    log_activity(lead, "Note", "Lead Converted to Project",
                 f"Converted to project {project.code}: {project.name}", actor=actor)
    write_audit(entity_type="lead", entity_id=lead.id, action="convert", actor=actor,
                project_id=project.id, diff={"status": {"old": old_status, "new": "Won"}})
    logger.info("Lead %s converted to project %s", lead.id, project.code)
    return {"lead": lead, "project": project}


def pipeline_summary():
    stages = {s: {"count": 0, "total_value": 0.0, "weighted_value": 0.0} for s in LEAD_STATUSES}
    for lead in Lead.query.all():
        stage = stages.setdefault(lead.status, {"count": 0, "total_value": 0.0, "weighted_value": 0.0})
        stage["count"] += 1
        stage["total_value"] += lead.estimated_value or 0
        stage["weighted_value"] += (lead.estimated_value or 0) * (lead.probability or 0) / 100
    return {
        "stages": [
            {"status": s, "count": v["count"], "total_value": round(v["total_value"], 2),
             "weighted_value": round(v["weighted_value"], 2)}
            for s, v in stages.items()
        ],
        "total_count": sum(v["count"] for v in stages.values()),
        "total_value": round(sum(v["total_value"] for v in stages.values()), 2),
        "weighted_value": round(sum(v["weighted_value"] for v in stages.values()), 2),
    }
