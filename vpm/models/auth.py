"""
Auth Models — user profiles and roles.

The identity record doubles as the profile: display name plus a single role
(admin | qc | editor). Projects, activity entries, revisions and messages
reference users; they never own them.
"""

from datetime import datetime, timezone

from vpm.models import db
from vpm.utils.helpers import isoformat

ROLES = ("admin", "qc", "editor")

# Roles that run intake, assignment and QC
STAFF_ROLES = frozenset({"admin", "qc"})

# A profile without a role is treated as an editor
DEFAULT_ROLE = "editor"


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), nullable=False, unique=True)
    username = db.Column(db.String(100), nullable=True, unique=True)
    full_name = db.Column(db.String(200))
    role = db.Column(
        db.String(20), nullable=True, default=DEFAULT_ROLE,
        comment="admin | qc | editor",
    )
    password_hash = db.Column(db.String(256))
    last_login_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_users_role", "role"),
    )

    @property
    def effective_role(self) -> str:
        return self.role if self.role in ROLES else DEFAULT_ROLE

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "Team member"

    @property
    def is_staff(self) -> bool:
        return self.effective_role in STAFF_ROLES

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "full_name": self.full_name,
            "role": self.effective_role,
            "last_login_at": isoformat(self.last_login_at),
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email} ({self.effective_role})>"
