"""
User Service — invite flow, role management, account settings, login.

Mutating functions raise typed exceptions and only flush; call them through
``run_action`` so each one is a single transaction.
"""

import logging

from email_validator import EmailNotValidError, validate_email

from vpm.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from vpm.models import db
from vpm.models.auth import ROLES, User
from vpm.services.permission import check_permission
from vpm.utils.crypto import hash_password, verify_password
from vpm.utils.helpers import clean_str, utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _normalize_email(email) -> str:
    raw = clean_str(email)
    if raw is None:
        raise ValidationError("Email is required", details={"email": "required"})
    try:
        return validate_email(raw, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": "invalid"})


def _check_password(password) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            details={"password": "too short"},
        )
    return password


def _check_role(role) -> str:
    role = (clean_str(role) or "").lower()
    if role not in ROLES:
        raise ValidationError(
            f"Role must be one of: {', '.join(ROLES)}",
            details={"role": "invalid"},
        )
    return role


def _email_taken(email: str, exclude_id: int | None = None) -> bool:
    q = User.query.filter(db.func.lower(User.email) == email.lower())
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return db.session.query(q.exists()).scalar()


# ═══════════════════════════════════════════════════════════════
# Admin operations
# ═══════════════════════════════════════════════════════════════
def invite_user(actor, email, password, role, full_name=None, username=None) -> int:
    """Create an account (admin only). Returns the new user id."""
    check_permission(actor, "user_invite")
    email = _normalize_email(email)
    _check_password(password)
    role = _check_role(role)
    username = clean_str(username)

    if _email_taken(email):
        raise ValidationError(f"User with email {email} already exists", details={"email": "taken"})
    if username and User.query.filter_by(username=username).first():
        raise ValidationError(f"Username {username} is taken", details={"username": "taken"})

    user = User(
        email=email,
        username=username,
        full_name=clean_str(full_name),
        role=role,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.flush()
    logger.info("User invited: id=%s role=%s by user=%s", user.id, role, actor.id)
    return user.id


def update_user_role(actor, user_id: int, role) -> None:
    check_permission(actor, "user_role_update")
    role = _check_role(role)
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    previous = user.effective_role
    user.role = role
    db.session.flush()
    logger.info("User %s role %s -> %s by user=%s", user_id, previous, role, actor.id)


def users_query(role: str | None = None):
    """Users ordered by name, optionally filtered by role (missing role counts as editor)."""
    q = User.query
    if role:
        role = role.strip().lower()
        if role == "editor":
            q = q.filter(db.or_(User.role == "editor", User.role.is_(None)))
        else:
            q = q.filter(User.role == role)
    return q.order_by(User.full_name.asc(), User.email.asc())


# ═══════════════════════════════════════════════════════════════
# Account settings (self-service)
# ═══════════════════════════════════════════════════════════════
def update_own_email(actor, email) -> None:
    if actor is None:
        raise PermissionDenied(None, "account_update", "not signed in")
    email = _normalize_email(email)
    if _email_taken(email, exclude_id=actor.id):
        raise ValidationError(f"User with email {email} already exists", details={"email": "taken"})
    actor.email = email
    db.session.flush()
    logger.info("User %s changed email", actor.id)


def update_own_password(actor, password) -> None:
    if actor is None:
        raise PermissionDenied(None, "account_update", "not signed in")
    actor.password_hash = hash_password(_check_password(password))
    db.session.flush()
    logger.info("User %s changed password", actor.id)


# ═══════════════════════════════════════════════════════════════
# Authentication
# ═══════════════════════════════════════════════════════════════
def authenticate(login, password) -> User | None:
    """Return the user for *login* (email or username) and *password*, else None."""
    login = clean_str(login)
    if not login or not password:
        return None
    user = User.query.filter(
        db.or_(db.func.lower(User.email) == login.lower(), User.username == login)
    ).first()
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", login)
        return None
    user.last_login_at = utcnow()
    db.session.flush()
    return user
