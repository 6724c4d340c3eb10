"""Team service — member roster and role definitions.

Members reference their role by name, so renaming a role rewrites the
``role`` column of every member that carried the old name.
"""
import logging

from sqlalchemy import func, or_

from constructx.core.exceptions import ConflictError, NotFoundError, ValidationError
from constructx.models import db
from constructx.models.team import MEMBER_STATUSES, TeamMember, TeamRole
from constructx.utils.helpers import optional_text, parse_date_input, require_text

logger = logging.getLogger(__name__)

_MEMBER_TEXT = ("name", "role", "phone", "department", "avatar")
_MEMBER_LISTS = ("projects", "skills", "certifications")


def get_member(member_id):
    member = db.session.get(TeamMember, member_id)
    if not member:
        raise NotFoundError(resource="Team member", resource_id=member_id)
    return member


def list_members(filters=None):
    filters = filters or {}
    q = TeamMember.query
    for field in ("role", "status", "department"):
        if filters.get(field):
            q = q.filter(getattr(TeamMember, field) == filters[field])
    if filters.get("search"):
        like = f"%{filters['search']}%"
        q = q.filter(or_(TeamMember.name.ilike(like), TeamMember.email.ilike(like)))
    return q.order_by(TeamMember.name, TeamMember.id)


def _check_email(email, exclude_id=None):
    q = TeamMember.query.filter(func.lower(TeamMember.email) == email.lower())
    if exclude_id:
        q = q.filter(TeamMember.id != exclude_id)
    if q.first():
        raise ConflictError("Team member", "email", email)


def _apply_member_fields(member, data):
    for field in _MEMBER_TEXT:
        if field in data:
            setattr(member, field, optional_text(data, field))
    if "status" in data:
        if not isinstance(data["status"], str) or data["status"] not in MEMBER_STATUSES:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(sorted(MEMBER_STATUSES))}")
        member.status = data["status"]
    for field in _MEMBER_LISTS:
        if field in data:
            setattr(member, field, data[field] or [])
    if "join_date" in data:
        member.join_date = parse_date_input(data["join_date"], "join_date")


def create_member(data):
    for required in ("name", "role"):
        require_text(data, required)
    email = require_text(data, "email")
    _check_email(email)
    member = TeamMember(email=email, status="active")
    _apply_member_fields(member, data)
    db.session.add(member)
    db.session.flush()
    return member


def update_member(member, data):
    if "email" in data:
        email = require_text(data, "email")
        _check_email(email, exclude_id=member.id)
        member.email = email
    _apply_member_fields(member, data)
    if not member.name or not member.role:
        raise ValueError("name and role are required")
    db.session.flush()
    return member


def delete_member(member):
    db.session.delete(member)
    db.session.flush()


# ── Roles ────────────────────────────────────────────────────────────────


def get_role(role_id):
    role = db.session.get(TeamRole, role_id)
    if not role:
        raise NotFoundError(resource="Role", resource_id=role_id)
    return role


def list_roles():
    return TeamRole.query.order_by(TeamRole.name).all()


def _check_role_name(name, exclude_id=None):
    q = TeamRole.query.filter(TeamRole.name == name)
    if exclude_id:
        q = q.filter(TeamRole.id != exclude_id)
    if q.first():
        raise ConflictError("Role", "name", name)


def _permissions(value):
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("permissions must be a list")
    return value


def create_role(data):
    name = require_text(data, "name")
    _check_role_name(name)
    role = TeamRole(
        name=name,
        description=optional_text(data, "description"),
        permissions=_permissions(data.get("permissions")),
    )
    db.session.add(role)
    db.session.flush()
    return role


def update_role(role, data):
    if "name" in data:
        name = require_text(data, "name")
        if name != role.name:
            _check_role_name(name, exclude_id=role.id)
            renamed = TeamMember.query.filter_by(role=role.name).update(
                {"role": name}, synchronize_session="fetch",
            )
            logger.info("Role %r renamed to %r (%d member(s) updated)", role.name, name, renamed)
            role.name = name
    if "description" in data:
        role.description = optional_text(data, "description")
    if "permissions" in data:
        role.permissions = _permissions(data["permissions"])
    db.session.flush()
    return role


def delete_role(role):
    count = role.member_count
    if count:
        raise ValidationError(f"Cannot delete role '{role.name}': {count} member(s) still assigned")
    db.session.delete(role)
    db.session.flush()
