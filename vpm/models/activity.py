"""
Activity domain model — append-only project timeline.

Models:
    - ActivityLogEntry: one row per workflow event on a project.

Cycle-time metrics are derived from this table (first PROJECT_ASSIGNED to
first EDITOR_SUBMITTED_QC), so rows are never updated or deleted except by
the project cascade.
"""

from datetime import datetime, timezone

from vpm.models import db
from vpm.utils.helpers import isoformat

# ── Constants ────────────────────────────────────────────────────────────────

ACTIVITY_ACTIONS = {
    "PROJECT_CREATED",
    "PROJECT_ASSIGNED",
    "EDITOR_SUBMITTED_QC",
    "EDITOR_STATUS_UPDATED",
    "REVISION_REQUESTED",
    "PROJECT_READY",
    "PROJECT_DELIVERED",
    "PROJECT_UPDATED",
    "MESSAGE_SENT",
}


class ActivityLogEntry(db.Model):
    __tablename__ = "activity_log"
    __table_args__ = (
        db.Index("idx_activity_project_ts", "project_id", "created_at"),
        db.Index("idx_activity_action", "action"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    actor_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Null for system-originated entries",
    )
    action = db.Column(
        db.String(40), nullable=False,
        comment="PROJECT_ASSIGNED | EDITOR_SUBMITTED_QC | …",
    )
    meta = db.Column(db.JSON, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    project = db.relationship("Project", back_populates="activity")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "actor_id": self.actor_id,
            "action": self.action,
            "meta": self.meta or {},
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<ActivityLogEntry {self.id}: {self.action} on project {self.project_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_activity(
    *,
    project_id: int,
    action: str,
    actor_id: int | None = None,
    meta: dict | None = None,
) -> ActivityLogEntry:
    """
    Append a single activity row.  Uses ``flush`` so callers keep
    transaction control.

    Returns the (flushed) ActivityLogEntry instance.
    """
    if action not in ACTIVITY_ACTIONS:
        raise ValueError(f"Unknown activity action: {action}")

    entry = ActivityLogEntry(
        project_id=project_id,
        actor_id=actor_id,
        action=action,
        meta=meta,
    )
    db.session.add(entry)
    db.session.flush()
    return entry
