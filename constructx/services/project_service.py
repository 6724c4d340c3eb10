"""Project service — project CRUD plus the archive lifecycle.

Transaction policy: functions flush, the route commits.

Archive lifecycle:
    active ──archive──▶ archived ──restore──▶ active
                           │
                           └──delete (permanent)──▶ gone, with all owned records
"""
import logging

from sqlalchemy import or_

from constructx.core.exceptions import NotFoundError, ValidationError
from constructx.models import db
from constructx.models.audit import write_audit
from constructx.models.base import utcnow
from constructx.models.notification import Notification
from constructx.models.project import PROJECT_STATUSES, Project, next_project_code
from constructx.models.resource import Resource
from constructx.utils.helpers import parse_amount, parse_date_input, validate_date_order

logger = logging.getLogger(__name__)

_UPDATABLE = (
    "name", "description", "status", "location", "project_type", "client_name",
    "project_manager", "tags",
)
_DATE_FIELDS = ("start_date", "target_completion_date", "actual_completion_date")


def _apply_dates(project, data):
    for field in _DATE_FIELDS:
        if field in data:
            setattr(project, field, parse_date_input(data[field], field))
    validate_date_order(
        project.start_date, project.target_completion_date,
        "Target completion date cannot be before start date",
    )


def _validate_status(status):
    if not isinstance(status, str) or status not in PROJECT_STATUSES:
        raise ValueError(f"Invalid status. Must be one of: {', '.join(sorted(PROJECT_STATUSES))}")


def get_project(pid, *, include_archived=False):
    project = db.session.get(Project, pid)
    if not project or project.is_deleted:
        raise NotFoundError(resource="Project", resource_id=pid)
    if project.is_archived and not include_archived:
        raise NotFoundError(resource="Project", resource_id=pid)
    return project


def list_projects(status=None, search=None):
    q = Project.query_active().filter(Project.archived_at.is_(None))
    if status:
        q = q.filter_by(status=status)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Project.name.ilike(like), Project.code.ilike(like)))
    return q.order_by(Project.created_at.desc(), Project.id.desc())


def create_project(data, actor="system"):
    if not data.get("name"):
        raise ValueError("name is required")
    status = data.get("status", "Planning")
    _validate_status(status)

    code = data.get("code") or next_project_code()
    if Project.query.filter_by(code=code).first():
        raise ValidationError(f"Project code '{code}' is already in use")

    project = Project(
        code=code,
        name=data["name"],
        description=data.get("description", ""),
        status=status,
        budget=parse_amount(data.get("budget"), "budget", minimum=0) or 0,
        location=data.get("location", ""),
        project_type=data.get("project_type", ""),
        client_name=data.get("client_name", ""),
        project_manager=data.get("project_manager", ""),
        lead_origin_id=data.get("lead_origin_id"),
        tags=data.get("tags") or [],
    )
    _apply_dates(project, data)
    db.session.add(project)
    db.session.flush()
    write_audit(entity_type="project", entity_id=project.id, action="create",
                actor=actor, project_id=project.id)
    return project


def update_project(project, data):
    if "status" in data:
        _validate_status(data["status"])
    for field in _UPDATABLE:
        if field in data:
            setattr(project, field, data[field])
    if "budget" in data:
        project.budget = parse_amount(data["budget"], "budget", minimum=0) or 0
    _apply_dates(project, data)
    db.session.flush()
    return project


def delete_project(project, actor="system"):
    project.soft_delete()
    write_audit(entity_type="project", entity_id=project.id, action="delete",
                actor=actor, project_id=project.id)
    db.session.flush()


# ── Archive ──────────────────────────────────────────────────────────────


def archive_project(project, actor="system"):
    if project.is_archived:
        raise ValidationError("Project is already archived")
    project.archived_at = utcnow()
    write_audit(entity_type="project", entity_id=project.id, action="archive",
                actor=actor, project_id=project.id)
    db.session.flush()
    logger.info("Project %s archived by %s", project.code, actor)
    return project


def list_archived_projects(search=None):
    q = Project.query_active().filter(Project.archived_at.isnot(None))
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Project.name.ilike(like), Project.description.ilike(like)))
    return q.order_by(Project.archived_at.desc(), Project.id.desc())


def get_archived_project(pid):
    project = db.session.get(Project, pid)
    if not project or project.is_deleted or not project.is_archived:
        raise NotFoundError(resource="Archived project", resource_id=pid)
    return project


def restore_project(pid, actor="system"):
    project = get_archived_project(pid)
    project.archived_at = None
    write_audit(entity_type="project", entity_id=project.id, action="restore",
                actor=actor, project_id=project.id)
    db.session.flush()
    logger.info("Project %s restored from archive by %s", project.code, actor)
    return project


def delete_archived_project(pid, actor="system"):
    """Permanently remove an archived project and everything it owns."""
    project = get_archived_project(pid)
    code = project.code

    # Rows that reference the project without being owned by it
    Notification.query.filter_by(project_id=project.id).delete(synchronize_session=False)
    Resource.query.filter_by(project_id=project.id).update(
        {"project_id": None}, synchronize_session=False,
    )

    write_audit(entity_type="project", entity_id=project.id, action="delete_permanent",
                actor=actor, project_id=project.id)
    db.session.delete(project)
    db.session.flush()
    logger.warning("Project %s permanently deleted by %s", code, actor)
