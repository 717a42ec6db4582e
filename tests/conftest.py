"""
Shared pytest fixtures for the Video Production Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - admin / qc / editor / editor2: pre-created users, one per role
    - make_user / make_project: factories for extra rows
    - auth_headers: Bearer header for a user
"""

from datetime import timedelta

import pytest

from vpm import create_app
from vpm.models import db as _db
from vpm.models.auth import User
from vpm.models.project import Client, Deliverable, Project
from vpm.models.schema import stamp_schema_version
from vpm.services.jwt_service import generate_access_token
from vpm.utils.crypto import hash_password
from vpm.utils.helpers import utcnow

TEST_PASSWORD = "correct-horse-battery"

# bcrypt is deliberately slow; hash once per session
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
        stamp_schema_version()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()
        stamp_schema_version()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Users ────────────────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    counter = {"n": 0}

    def _make(role="editor", full_name=None, email=None, username=None):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=email or f"{role or 'norole'}{n}@studio.test",
            username=username,
            full_name=full_name or f"{(role or 'user').title()} {n}",
            role=role,
            password_hash=_PASSWORD_HASH,
        )
        _db.session.add(user)
        _db.session.commit()
        if role is None:
            # insert default sets a role; clear it for a role-less profile
            user.role = None
            _db.session.commit()
        return user

    return _make


@pytest.fixture()
def admin(make_user):
    return make_user("admin", full_name="Avery Admin", email="admin@studio.test")


@pytest.fixture()
def qc(make_user):
    return make_user("qc", full_name="Quinn Checker", email="qc@studio.test")


@pytest.fixture()
def editor(make_user):
    return make_user("editor", full_name="Eddie Editor", email="editor@studio.test")


@pytest.fixture()
def editor2(make_user):
    return make_user("editor", full_name="Erin Editor", email="editor2@studio.test")


@pytest.fixture()
def password():
    return TEST_PASSWORD


@pytest.fixture()
def auth_headers():
    def _headers(user):
        token = generate_access_token(user.id, user.effective_role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ── Projects ─────────────────────────────────────────────────────────────


@pytest.fixture()
def make_project():
    """Insert a project row directly (bypasses workflow rules)."""

    def _make(title="Acme - 12 Oak St", created_by=None, deliverables=("Main video",), **overrides):
        client = Client.query.filter_by(name="Acme Realty").first()
        if client is None:
            client = Client(name="Acme Realty")
            _db.session.add(client)
            _db.session.flush()
        fields = {
            "title": title,
            "type": "Listing video",
            "priority": "normal",
            "status": "NEW",
            "due_at": utcnow() + timedelta(days=5),
            "client_id": client.id,
            "created_by": created_by.id if created_by is not None else None,
            "raw_footage_url": "https://drive.example.com/raw/1",
            "revision_count": 0,
            "needs_info": False,
        }
        fields.update(overrides)
        project = Project(**fields)
        _db.session.add(project)
        _db.session.flush()
        for label in deliverables:
            _db.session.add(Deliverable(project_id=project.id, label=label))
        _db.session.commit()
        return project

    return _make


@pytest.fixture()
def intake_fields():
    return {
        "title": "Bluebird - 55 Ridge Ln",
        "client_name": "Bluebird Homes",
        "address": "55 Ridge Ln",
        "type": "Listing video",
        "priority": "rush",
        "due_at": "2030-02-11",
        "raw_footage_url": "https://drive.example.com/raw/55",
    }
