"""
Role-Based Access Control (RBAC) Service

Three fixed roles (admin, qc, editor) plus two ownership rules:
  - editor work may only be updated by the project's assigned editor
  - project details may be edited by an admin or the project's creator

Usage:
    from vpm.services.permission import check_permission, PermissionDenied

    # Raises PermissionDenied if not allowed
    check_permission(actor, "project_assign")

    # Boolean check
    if has_role_permission(actor.effective_role, "project_delete"):
        ...
"""

from vpm.core.exceptions import PermissionDenied

# action -> roles allowed to perform it
ACTION_ROLES: dict[str, frozenset[str]] = {
    "project_create": frozenset({"admin", "qc"}),
    "project_assign": frozenset({"admin", "qc"}),
    "project_qc_decision": frozenset({"admin", "qc"}),
    "project_delete": frozenset({"admin"}),
    "user_invite": frozenset({"admin"}),
    "user_role_update": frozenset({"admin"}),
    "dashboard_view": frozenset({"admin", "qc"}),
}


def has_role_permission(role: str | None, action: str) -> bool:
    return role in ACTION_ROLES.get(action, frozenset())


def check_permission(actor, action: str) -> None:
    """
    Assert the actor's role grants *action*; raise PermissionDenied if not.

    Raises:
        PermissionDenied: If actor is missing or lacks the required role.
    """
    if actor is None:
        raise PermissionDenied(None, action, "not signed in")
    if not has_role_permission(actor.effective_role, action):
        raise PermissionDenied(actor.id, action, f"role '{actor.effective_role}' not allowed")


def check_owner_or_admin(actor, project, action: str = "project_update") -> None:
    if actor is None:
        raise PermissionDenied(None, action, "not signed in")
    if actor.effective_role == "admin":
        return
    if project.created_by is not None and project.created_by == actor.id:
        return
    raise PermissionDenied(actor.id, action, "only an admin or the project creator may edit")


def check_assigned_editor(actor, project, action: str = "editor_update") -> None:
    if actor is None:
        raise PermissionDenied(None, action, "not signed in")
    if project.assigned_editor_id is None or project.assigned_editor_id != actor.id:
        raise PermissionDenied(actor.id, action, "not the assigned editor")
