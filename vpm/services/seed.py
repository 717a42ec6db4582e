"""
Demo seed — a small studio with three roles and projects in every stage.

Creates:
  - admin@demo.local (admin), qc@demo.local (qc),
    editor1@demo.local / editor2@demo.local (editor)
  - six projects walked through the real workflow actions, so activity,
    revisions and system messages look exactly like production data

Idempotent: does nothing when the demo admin already exists.

Usage:
    flask seed-demo
    DEMO_SEED_PASSWORD="another-secret" flask seed-demo
"""

import logging
from datetime import timedelta

from vpm.models import db
from vpm.models.auth import User
from vpm.services import message_service, workflow
from vpm.utils.crypto import hash_password
from vpm.utils.helpers import utcnow

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "demo-password"

DEMO_USERS = [
    ("admin@demo.local", "Avery Admin", "admin"),
    ("qc@demo.local", "Quinn Checker", "qc"),
    ("editor1@demo.local", "Editor One", "editor"),
    ("editor2@demo.local", "Editor Two", "editor"),
]

DEMO_PROJECTS = [
    # title, client, type, priority, due offset (days), deliverables, target stage
    ("Acme - 12 Oak St", "Acme Realty", "Listing video", "normal", 3,
     "Main video, Social cut", "EDITING"),
    ("Bluebird - 55 Ridge Ln", "Bluebird Homes", "Listing video", "rush", -1,
     "Main video\nTeaser", "REVISION_REQUESTED"),
    ("Canyon - 18 Desert Way", "Canyon Estates", "Walkthrough", "normal", 6,
     "Main video", "ASSIGNED"),
    ("Canyon - 66 Mesa Dr", "Canyon Estates", "Reel", "rush", -2,
     "Vertical reel", "QC"),
    ("Bluebird - 9 Sunset Blvd", "Bluebird Homes", "Listing video", "normal", 10,
     "Main video, Photos slideshow", "READY"),
    ("Bluebird - 301 Grove St", "Bluebird Homes", "Listing video", "normal", 14,
     "Main video", "NEW"),
]


def _ensure_user(email, full_name, role, password) -> User:
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, full_name=full_name, role=role,
                    password_hash=hash_password(password))
        db.session.add(user)
        db.session.flush()
    return user


def seed_demo(password: str = DEMO_PASSWORD) -> dict:
    """Seed demo users and projects. Commits. Returns counts."""
    if User.query.filter_by(email=DEMO_USERS[0][0]).first():
        logger.info("Demo data already present, skipping")
        return {"users": 0, "projects": 0}

    users = {email: _ensure_user(email, name, role, password)
             for email, name, role in DEMO_USERS}
    admin = users["admin@demo.local"]
    qc = users["qc@demo.local"]
    editors = [users["editor1@demo.local"], users["editor2@demo.local"]]

    now = utcnow()
    created = 0
    for i, (title, client, ptype, priority, due_days, deliverables, stage) in enumerate(DEMO_PROJECTS):
        due_at = now + timedelta(days=due_days)
        project_id = workflow.create_project(
            admin,
            {
                "title": title,
                "client_name": client,
                "type": ptype,
                "priority": priority,
                "due_at": due_at,
                "raw_footage_url": f"https://drive.example.com/raw/{i + 1}",
                "notes": "Client wants twilight exterior shots first." if i == 0 else None,
            },
            deliverables,
        )
        created += 1
        if stage == "NEW":
            continue

        editor = editors[i % len(editors)]
        workflow.assign_project(qc, project_id, editor.id, due_at)
        if stage == "ASSIGNED":
            continue

        workflow.update_editor_work(editor, project_id, "EDITING", None, None)
        if stage == "EDITING":
            message_service.send_message(editor, project_id, "First cut is underway.")
            continue

        workflow.update_editor_work(
            editor, project_id, "QC", f"https://preview.example.com/{project_id}", None,
        )
        if stage == "QC":
            continue
        if stage == "REVISION_REQUESTED":
            workflow.qc_decision(qc, project_id, "request_revision",
                                 tags=["Color", "Music"], notes="Warm up the kitchen shots.")
        elif stage == "READY":
            workflow.qc_decision(qc, project_id, "ready")

    db.session.commit()
    logger.info("Seeded %d demo users and %d projects", len(users), created)
    return {"users": len(users), "projects": created}
