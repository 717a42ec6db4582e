"""
Messaging models — project chat and server-side read markers.

Models:
    - ProjectMessage: append-only chat line; ``sender_id`` is null for
      system messages written by QC decisions.
    - MessageReadMarker: per-(user, project) last-seen watermark, used only
      when READ_STATE_BACKEND = "server".
"""

from datetime import datetime, timezone

from vpm.models import db
from vpm.utils.helpers import isoformat

MESSAGE_TYPES = ("user", "system")


def _now():
    return datetime.now(timezone.utc)


class ProjectMessage(db.Model):
    __tablename__ = "project_messages"
    __table_args__ = (
        db.CheckConstraint("message_type IN ('user', 'system')", name="ck_project_messages_type"),
        db.Index("idx_messages_project_ts", "project_id", "created_at"),
        db.Index("idx_messages_ts", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    message = db.Column(db.Text, nullable=False)
    message_type = db.Column(db.String(10), nullable=False, default="user")
    meta = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)

    project = db.relationship("Project", back_populates="messages")
    sender = db.relationship("User")

    @property
    def sender_name(self) -> str:
        if self.sender is not None:
            return self.sender.display_name
        return "System" if self.message_type == "system" else "Team member"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "sender_id": self.sender_id,
            "sender_name": self.sender_name,
            "message": self.message,
            "message_type": self.message_type,
            "meta": self.meta or {},
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<ProjectMessage {self.id} project={self.project_id} [{self.message_type}]>"


class MessageReadMarker(db.Model):
    __tablename__ = "message_read_markers"
    __table_args__ = (
        db.UniqueConstraint("user_id", "project_id", name="uq_read_marker_user_project"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False,
    )
    last_seen_at = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "project_id": self.project_id,
            "last_seen_at": isoformat(self.last_seen_at),
        }
