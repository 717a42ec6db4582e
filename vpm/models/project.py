"""
Project domain models — clients, projects, deliverables, revisions.

Workflow constants live here so services, queries and tests share one
definition of the status machine:

    NEW -> ASSIGNED            (assignment, only from NEW)
    ASSIGNED|EDITING|QC|REVISION_REQUESTED   (editor's choice)
    -> READY -> DELIVERED      (QC decisions)
    ARCHIVED, ON_HOLD          (representable, not reachable by an action)
"""

from datetime import datetime, timezone

from vpm.models import db
from vpm.utils.helpers import isoformat

# ── Constants ────────────────────────────────────────────────────────────────

PROJECT_STATUSES = (
    "NEW",
    "ASSIGNED",
    "EDITING",
    "QC",
    "REVISION_REQUESTED",
    "READY",
    "DELIVERED",
    "ARCHIVED",
    "ON_HOLD",
)

# Statuses an editor may pick from their queue
EDITOR_STATUSES = frozenset({"ASSIGNED", "EDITING", "QC", "REVISION_REQUESTED"})

# Excluded from overdue and active queues
CLOSED_STATUSES = frozenset({"DELIVERED", "ARCHIVED"})

# Workload breakdown columns, in display order
ACTIVE_STATUSES = ("NEW", "ASSIGNED", "EDITING", "QC", "REVISION_REQUESTED", "READY", "ON_HOLD")

PRIORITIES = ("normal", "rush")
DEFAULT_PRIORITY = "normal"

_STATUS_SQL = ", ".join(f"'{s}'" for s in PROJECT_STATUSES)
_PRIORITY_SQL = ", ".join(f"'{p}'" for p in PRIORITIES)


def _now():
    return datetime.now(timezone.utc)


class Client(db.Model):
    __tablename__ = "clients"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)

    def to_dict(self):
        return {"id": self.id, "name": self.name}


class Project(db.Model):
    """A video project moving through intake, editing, QC and delivery."""

    __tablename__ = "projects"
    __table_args__ = (
        db.CheckConstraint(f"status IN ({_STATUS_SQL})", name="ck_projects_status"),
        db.CheckConstraint(f"priority IN ({_PRIORITY_SQL})", name="ck_projects_priority"),
        db.CheckConstraint("revision_count >= 0", name="ck_projects_revision_count"),
        db.Index("idx_projects_status", "status"),
        db.Index("idx_projects_due_at", "due_at"),
        db.Index("idx_projects_editor", "assigned_editor_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    address = db.Column(db.String(300), nullable=True)
    type = db.Column(db.String(100), nullable=True, comment="e.g. listing video, reel, walkthrough")
    priority = db.Column(db.String(10), nullable=False, default=DEFAULT_PRIORITY)
    status = db.Column(db.String(30), nullable=False, default="NEW")
    due_at = db.Column(db.DateTime(timezone=True), nullable=True)

    client_id = db.Column(
        db.Integer, db.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True,
    )
    assigned_editor_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    created_by = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )

    # ── Links ──
    raw_footage_url = db.Column(db.String(1000))
    brand_assets_url = db.Column(db.String(1000))
    music_assets_url = db.Column(db.String(1000))
    preview_url = db.Column(db.String(1000))
    final_delivery_url = db.Column(db.String(1000))

    notes = db.Column(db.Text)
    revision_count = db.Column(db.Integer, nullable=False, default=0)
    needs_info = db.Column(
        db.Boolean, nullable=False, default=False,
        comment="True = waiting on the client; excluded from SLA metrics",
    )

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    client = db.relationship("Client")
    assigned_editor = db.relationship("User", foreign_keys=[assigned_editor_id])
    creator = db.relationship("User", foreign_keys=[created_by])

    deliverables = db.relationship(
        "Deliverable", back_populates="project",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="Deliverable.id",
    )
    revisions = db.relationship(
        "Revision", back_populates="project",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="Revision.id",
    )
    activity = db.relationship(
        "ActivityLogEntry", back_populates="project",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="ActivityLogEntry.id",
    )
    messages = db.relationship(
        "ProjectMessage", back_populates="project",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="ProjectMessage.id",
    )

    def to_dict(self, include_children=False):
        d = {
            "id": self.id,
            "title": self.title,
            "address": self.address,
            "type": self.type,
            "priority": self.priority,
            "status": self.status,
            "due_at": isoformat(self.due_at),
            "client_id": self.client_id,
            "client_name": self.client.name if self.client else None,
            "assigned_editor_id": self.assigned_editor_id,
            "assigned_editor_name": (
                self.assigned_editor.display_name if self.assigned_editor else None
            ),
            "created_by": self.created_by,
            "raw_footage_url": self.raw_footage_url,
            "brand_assets_url": self.brand_assets_url,
            "music_assets_url": self.music_assets_url,
            "preview_url": self.preview_url,
            "final_delivery_url": self.final_delivery_url,
            "notes": self.notes,
            "revision_count": self.revision_count,
            "needs_info": self.needs_info,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_children:
            d["deliverables"] = [x.to_dict() for x in self.deliverables]
            d["revisions"] = [r.to_dict() for r in self.revisions]
        return d

    def __repr__(self):
        return f"<Project {self.id}: {self.title} [{self.status}]>"


class Deliverable(db.Model):
    """A named output expected for a project (e.g. "Main video")."""

    __tablename__ = "deliverables"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    label = db.Column(db.String(300), nullable=False)
    specs = db.Column(db.String(500))
    completed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)

    project = db.relationship("Project", back_populates="deliverables")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "label": self.label,
            "specs": self.specs,
            "completed": self.completed,
        }


class Revision(db.Model):
    """A QC rework request. Only created by the request_revision decision."""

    __tablename__ = "revisions"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    requested_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    editor_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    tags = db.Column(db.JSON, nullable=False, default=list)
    notes = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)

    project = db.relationship("Project", back_populates="revisions")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "requested_by": self.requested_by,
            "editor_id": self.editor_id,
            "tags": list(self.tags or []),
            "notes": self.notes,
            "created_at": isoformat(self.created_at),
        }
