"""
Identity — who is calling, and what their profile says.

The JWT middleware stores the authenticated user id on ``g``; these helpers
turn it into a ``User`` (the profile record). A profile without a role is
treated as an editor everywhere (see ``User.effective_role``).

Usage:
    user, err = require_user()
    if err:
        return err
"""

from flask import g

from vpm.models import db
from vpm.models.auth import User
from vpm.utils.errors import E, api_error


def get_current_user() -> User | None:
    user_id = getattr(g, "jwt_user_id", None)
    if user_id is None:
        return None
    return db.session.get(User, user_id)


def get_profile(user_id) -> dict | None:
    """Display name and role for *user_id*, or None when unknown."""
    user = db.session.get(User, user_id) if user_id is not None else None
    if user is None:
        return None
    return {"id": user.id, "full_name": user.display_name, "role": user.effective_role}


def require_user():
    """Resolve the caller or return a 401 error tuple.

    - Success: (user, None)
    - Failure: (None, (response, 401))
    """
    user = get_current_user()
    if user is None:
        return None, api_error(E.UNAUTHORIZED, "Authentication required")
    return user, None

