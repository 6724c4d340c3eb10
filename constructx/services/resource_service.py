"""Resource service — labor, equipment and material stock.

Alongside the stock records it keeps project allocations, availability
exceptions (windows a resource is out of service) and daily utilization logs.
"""
import logging

from sqlalchemy import or_

from constructx.core.exceptions import NotFoundError
from constructx.models import db
from constructx.models.project import Project
from constructx.models.resource import (
    ALLOCATION_STATUSES,
    RESOURCE_STATUSES,
    RESOURCE_TYPES,
    RESOURCE_UNITS,
    UTILIZATION_MEASURE,
    Resource,
    ResourceAllocation,
    ResourceAvailability,
    ResourceUtilization,
)
from constructx.utils.helpers import (
    optional_text,
    parse_amount,
    parse_date_input,
    require_text,
    validate_date_order,
)

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("name", "location", "supplier", "notes")


def get_resource(resource_id):
    resource = db.session.get(Resource, resource_id)
    if not resource:
        raise NotFoundError(resource="Resource", resource_id=resource_id)
    return resource


def list_resources(filters=None):
    filters = filters or {}
    q = Resource.query
    for field in ("type", "status"):
        if filters.get(field):
            q = q.filter(getattr(Resource, field) == filters[field])
    if filters.get("project_id"):
        q = q.filter(Resource.project_id == int(filters["project_id"]))
    if filters.get("search"):
        like = f"%{filters['search']}%"
        q = q.filter(or_(Resource.name.ilike(like), Resource.supplier.ilike(like),
                         Resource.location.ilike(like)))
    return q.order_by(Resource.name, Resource.id)


def validate_unit(resource_type, unit):
    if not isinstance(resource_type, str) or resource_type not in RESOURCE_TYPES:
        raise ValueError(f"Invalid type. Must be one of: {', '.join(sorted(RESOURCE_TYPES))}")
    allowed = RESOURCE_UNITS[resource_type]
    if unit not in allowed:
        raise ValueError(f"Invalid unit '{unit}' for {resource_type}. Must be one of: {', '.join(allowed)}")


def _check_project(project_id):
    if project_id in (None, ""):
        return None
    if isinstance(project_id, bool) or not isinstance(project_id, (int, str)):
        raise ValueError("project_id must be an integer")
    try:
        project = db.session.get(Project, int(project_id))
    except ValueError:
        raise ValueError("project_id must be an integer") from None
    if not project or project.is_deleted:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project.id


def _apply_fields(resource, data):
    for field in _TEXT_FIELDS:
        if field in data:
            setattr(resource, field, optional_text(data, field))
    if "status" in data:
        if not isinstance(data["status"], str) or data["status"] not in RESOURCE_STATUSES:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(sorted(RESOURCE_STATUSES))}")
        resource.status = data["status"]
    for field in ("quantity", "cost"):
        if field in data:
            setattr(resource, field, parse_amount(data[field], field, minimum=0) or 0)
    if "delivery_date" in data:
        resource.delivery_date = parse_date_input(data["delivery_date"], "delivery_date")
    if "tags" in data:
        resource.tags = data["tags"] or []
    if "project_id" in data:
        resource.project_id = _check_project(data["project_id"])


def create_resource(data):
    require_text(data, "name")
    validate_unit(data.get("type"), data.get("unit"))
    resource = Resource(type=data["type"], unit=data["unit"], status="available",
                        quantity=0, cost=0)
    _apply_fields(resource, data)
    db.session.add(resource)
    db.session.flush()
    return resource


def update_resource(resource, data):
    if "type" in data or "unit" in data:
        resource_type = data.get("type", resource.type)
        unit = data.get("unit", resource.unit)
        validate_unit(resource_type, unit)
        resource.type, resource.unit = resource_type, unit
    _apply_fields(resource, data)
    if not resource.name:
        raise ValueError("name is required")
    db.session.flush()
    return resource


def delete_resource(resource):
    db.session.delete(resource)
    db.session.flush()


# ── Allocations ──────────────────────────────────────────────────────────


def get_allocation(allocation_id):
    allocation = db.session.get(ResourceAllocation, allocation_id)
    if not allocation:
        raise NotFoundError(resource="Allocation", resource_id=allocation_id)
    return allocation


def list_allocations(resource_id=None, project_id=None):
    q = ResourceAllocation.query
    if resource_id is not None:
        q = q.filter_by(resource_id=resource_id)
    if project_id is not None:
        q = q.filter_by(project_id=project_id)
    return q.order_by(ResourceAllocation.start_date, ResourceAllocation.id)


def _apply_allocation_fields(allocation, data):
    if "start_date" in data:
        allocation.start_date = parse_date_input(data["start_date"], "start_date")
    if "end_date" in data:
        allocation.end_date = parse_date_input(data["end_date"], "end_date")
    if not allocation.start_date or not allocation.end_date:
        raise ValueError("start_date and end_date are required")
    validate_date_order(allocation.start_date, allocation.end_date)
    if "quantity" in data:
        allocation.quantity = parse_amount(data["quantity"], "quantity", required=True, minimum=0)
    if "utilization" in data:
        utilization = parse_amount(data["utilization"], "utilization", minimum=0)
        if utilization is not None and utilization > 100:
            raise ValueError("utilization must be <= 100")
        allocation.utilization = utilization
    if "notes" in data:
        allocation.notes = optional_text(data, "notes")
    if "status" in data:
        if not isinstance(data["status"], str) or data["status"] not in ALLOCATION_STATUSES:
            raise ValueError(
                f"Invalid status. Must be one of: {', '.join(sorted(ALLOCATION_STATUSES))}"
            )
        allocation.status = data["status"]


def create_allocation(resource, data, actor="system"):
    if not data.get("project_id"):
        raise ValueError("project_id is required")
    project_id = _check_project(data["project_id"])
    allocation = ResourceAllocation(
        resource_id=resource.id, project_id=project_id,
        quantity=1, status="Planned", created_by=actor,
    )
    _apply_allocation_fields(allocation, data)
    db.session.add(allocation)
    if resource.status == "available":
        resource.status = "allocated"
    db.session.flush()
    logger.info("Resource %s allocated to project %s", resource.id, project_id)
    return allocation


def update_allocation(allocation, data):
    for field in ("resource_id", "project_id"):
        if field in data and data[field] != getattr(allocation, field):
            raise ValueError(f"Cannot change {field} of an allocation")
    _apply_allocation_fields(allocation, data)
    db.session.flush()
    return allocation


def delete_allocation(allocation):
    db.session.delete(allocation)
    db.session.flush()


# ── Availability exceptions ──────────────────────────────────────────────


def get_availability(availability_id):
    entry = db.session.get(ResourceAvailability, availability_id)
    if not entry:
        raise NotFoundError(resource="Availability record", resource_id=availability_id)
    return entry


def list_availability(resource, start=None, end=None):
    """Exceptions starting on/after ``start`` and ending on/before ``end``."""
    q = ResourceAvailability.query.filter_by(resource_id=resource.id)
    start = parse_date_input(start, "start_date")
    end = parse_date_input(end, "end_date")
    if start:
        q = q.filter(ResourceAvailability.start_date >= start)
    if end:
        q = q.filter(ResourceAvailability.end_date <= end)
    return q.order_by(ResourceAvailability.start_date, ResourceAvailability.id)


def _apply_availability_fields(entry, data):
    for field in ("start_date", "end_date"):
        if field in data:
            setattr(entry, field, parse_date_input(data[field], field))
    if not entry.start_date or not entry.end_date:
        raise ValueError("start_date, end_date and reason are required")
    validate_date_order(entry.start_date, entry.end_date,
                        "Availability end date cannot be before its start date")
    if "reason" in data or not entry.reason:
        entry.reason = require_text(data, "reason")
    if "notes" in data:
        entry.notes = optional_text(data, "notes")


def add_availability(resource, data, actor="system"):
    entry = ResourceAvailability(resource_id=resource.id, created_by=actor)
    _apply_availability_fields(entry, data)
    db.session.add(entry)
    db.session.flush()
    logger.info("Resource %s unavailable %s..%s (%s)",
                resource.id, entry.start_date, entry.end_date, entry.reason)
    return entry


def update_availability(entry, data):
    if "resource_id" in data and data["resource_id"] != entry.resource_id:
        raise ValueError("Cannot change resource_id of an availability record")
    _apply_availability_fields(entry, data)
    db.session.flush()
    return entry


def delete_availability(entry):
    db.session.delete(entry)
    db.session.flush()


# ── Utilization ──────────────────────────────────────────────────────────


def get_utilization(utilization_id):
    record = db.session.get(ResourceUtilization, utilization_id)
    if not record:
        raise NotFoundError(resource="Utilization record", resource_id=utilization_id)
    return record


def list_utilization(resource_id=None, project_id=None, start=None, end=None):
    """Utilization logs newest first, optionally bounded by ``start``/``end`` dates."""
    q = ResourceUtilization.query
    if resource_id is not None:
        q = q.filter_by(resource_id=resource_id)
    if project_id is not None:
        q = q.filter_by(project_id=project_id)
    start = parse_date_input(start, "start_date")
    end = parse_date_input(end, "end_date")
    if start:
        q = q.filter(ResourceUtilization.date >= start)
    if end:
        q = q.filter(ResourceUtilization.date <= end)
    return q.order_by(ResourceUtilization.date.desc(), ResourceUtilization.id.desc())


def _apply_utilization_fields(record, data):
    if "date" in data:
        record.date = parse_date_input(data["date"], "date")
    if not record.date:
        raise ValueError("date is required")
    for field in ("hours", "quantity"):
        if field in data:
            setattr(record, field, parse_amount(data[field], field, minimum=0))
    measure = UTILIZATION_MEASURE[record.resource_type]
    if not getattr(record, measure):
        raise ValueError(f"{measure} is required for {record.resource_type} utilization")
    if "project_id" in data:
        record.project_id = _check_project(data["project_id"])
    if "notes" in data:
        record.notes = optional_text(data, "notes")


def record_utilization(resource, data, actor="system"):
    record = ResourceUtilization(
        resource_id=resource.id, resource_type=resource.type, created_by=actor,
    )
    _apply_utilization_fields(record, data)
    db.session.add(record)
    db.session.flush()
    return record


def update_utilization(record, data):
    for field in ("resource_id", "resource_type"):
        if field in data and data[field] != getattr(record, field):
            raise ValueError(f"Cannot change {field} of a utilization record")
    _apply_utilization_fields(record, data)
    db.session.flush()
    return record


def delete_utilization(record):
    db.session.delete(record)
    db.session.flush()
