"""
ConstructX
Team domain models.

Models:
    - TeamMember: person on the company roster
    - TeamRole:   named permission set; members reference it by name
"""

from constructx.models import db
from constructx.models.base import TimestampMixin, iso

# ── Constants ────────────────────────────────────────────────────────────────

MEMBER_STATUSES = {"active", "inactive", "on_leave"}


class TeamMember(TimestampMixin, db.Model):
    __tablename__ = "team_members"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    role = db.Column(db.String(100), nullable=False, index=True)
    email = db.Column(db.String(200), nullable=False, unique=True)
    phone = db.Column(db.String(50), default="")
    department = db.Column(db.String(100), default="")
    status = db.Column(db.String(20), nullable=False, default="active")
    avatar = db.Column(db.String(500), default="")
    projects = db.Column(db.JSON, default=list)
    skills = db.Column(db.JSON, default=list)
    certifications = db.Column(db.JSON, default=list)
    join_date = db.Column(db.Date, nullable=True)
    last_active = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "email": self.email,
            "phone": self.phone,
            "department": self.department,
            "status": self.status,
            "avatar": self.avatar,
            "projects": self.projects or [],
            "skills": self.skills or [],
            "certifications": self.certifications or [],
            "join_date": iso(self.join_date),
            "last_active": iso(self.last_active),
        }

    def __repr__(self):
        return f"<TeamMember {self.id}: {self.name}>"


class TeamRole(TimestampMixin, db.Model):
    __tablename__ = "team_roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text, default="")
    permissions = db.Column(db.JSON, default=list)

    @property
    def member_count(self):
        return TeamMember.query.filter_by(role=self.name).count()

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "permissions": self.permissions or [],
            "member_count": self.member_count,
        }
