"""
ConstructX
Resource domain models.

Models:
    - Resource:             labor crew, equipment or material stock
    - ResourceAllocation:   booking of a resource onto a project for a date range
    - ResourceAvailability: window in which a resource cannot be used (maintenance, leave)
    - ResourceUtilization:  hours or quantity actually consumed on a given day
"""

from constructx.models import db
from constructx.models.base import TimestampMixin, iso

# ── Constants ────────────────────────────────────────────────────────────────

RESOURCE_TYPES = {"labor", "equipment", "material"}
RESOURCE_STATUSES = {"available", "allocated", "depleted", "on_order"}
RESOURCE_UNITS = {
    "labor": ["workers", "hours", "days", "weeks"],
    "equipment": ["units", "hours", "days", "weeks"],
    "material": ["cubic yards", "tons", "pallets", "pieces", "square feet", "gallons"],
}
ALLOCATION_STATUSES = {"Planned", "Confirmed", "In Use", "Completed", "Cancelled"}
# Labor and equipment are logged in hours, material in consumed quantity
UTILIZATION_MEASURE = {"labor": "hours", "equipment": "hours", "material": "quantity"}


class Resource(TimestampMixin, db.Model):
    __tablename__ = "resources"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(20), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default="available")
    quantity = db.Column(db.Float, nullable=False, default=0)
    unit = db.Column(db.String(30), nullable=False)
    cost = db.Column(db.Float, nullable=False, default=0)
    location = db.Column(db.String(300), default="")
    supplier = db.Column(db.String(200), default="")
    delivery_date = db.Column(db.Date, nullable=True)
    tags = db.Column(db.JSON, default=list)
    notes = db.Column(db.Text, default="")

    allocations = db.relationship(
        "ResourceAllocation", backref="resource", lazy="dynamic",
        cascade="all, delete-orphan", order_by="ResourceAllocation.start_date",
    )
    availability = db.relationship(
        "ResourceAvailability", backref="resource", lazy="dynamic",
        cascade="all, delete-orphan", order_by="ResourceAvailability.start_date",
    )
    utilization_records = db.relationship(
        "ResourceUtilization", backref="resource", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "type": self.type,
            "status": self.status,
            "quantity": self.quantity,
            "unit": self.unit,
            "cost": self.cost,
            "location": self.location,
            "supplier": self.supplier,
            "delivery_date": iso(self.delivery_date),
            "tags": self.tags or [],
            "notes": self.notes,
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<Resource {self.id}: {self.name} ({self.type})>"


class ResourceAllocation(TimestampMixin, db.Model):
    __tablename__ = "resource_allocations"

    id = db.Column(db.Integer, primary_key=True)
    resource_id = db.Column(
        db.Integer, db.ForeignKey("resources.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    quantity = db.Column(db.Float, nullable=False, default=1)
    utilization = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, default="")
    status = db.Column(db.String(20), nullable=False, default="Planned")
    created_by = db.Column(db.String(150), default="system")

    def to_dict(self):
        return {
            "id": self.id,
            "resource_id": self.resource_id,
            "resource_name": self.resource.name if self.resource else None,
            "project_id": self.project_id,
            "start_date": iso(self.start_date),
            "end_date": iso(self.end_date),
            "quantity": self.quantity,
            "utilization": self.utilization,
            "notes": self.notes,
            "status": self.status,
            "created_by": self.created_by,
        }


class ResourceAvailability(TimestampMixin, db.Model):
    __tablename__ = "resource_availability"
    __table_args__ = (
        db.Index("idx_availability_window", "resource_id", "start_date", "end_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    resource_id = db.Column(
        db.Integer, db.ForeignKey("resources.id", ondelete="CASCADE"), nullable=False,
    )
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    reason = db.Column(db.String(200), nullable=False)
    notes = db.Column(db.Text, default="")
    created_by = db.Column(db.String(150), default="system")

    def to_dict(self):
        return {
            "id": self.id,
            "resource_id": self.resource_id,
            "start_date": iso(self.start_date),
            "end_date": iso(self.end_date),
            "reason": self.reason,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": iso(self.created_at),
        }


class ResourceUtilization(TimestampMixin, db.Model):
    __tablename__ = "resource_utilization"
    __table_args__ = (
        db.Index("idx_utilization_resource_date", "resource_id", "date"),
        db.Index("idx_utilization_project_date", "project_id", "date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    resource_id = db.Column(
        db.Integer, db.ForeignKey("resources.id", ondelete="CASCADE"), nullable=False,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True,
    )
    # Copied from the resource so hours/quantity rules survive a later type change
    resource_type = db.Column(db.String(20), nullable=False)
    date = db.Column(db.Date, nullable=False)
    hours = db.Column(db.Float, nullable=True)
    quantity = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, default="")
    created_by = db.Column(db.String(150), default="system")

    def to_dict(self):
        return {
            "id": self.id,
            "resource_id": self.resource_id,
            "resource_name": self.resource.name if self.resource else None,
            "resource_type": self.resource_type,
            "project_id": self.project_id,
            "date": iso(self.date),
            "hours": self.hours,
            "quantity": self.quantity,
            "notes": self.notes,
            "created_by": self.created_by,
        }
