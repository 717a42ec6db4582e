"""
Project Workflow Service

Manages project status transitions with:
  - Role / ownership checks (vpm.services.permission)
  - Transition validation
  - Derived writes: activity log, revision rows, system chat messages

Transitions:
  assign            NEW -> ASSIGNED (other statuses untouched)
  editor update     any of ASSIGNED | EDITING | QC | REVISION_REQUESTED
  QC ready          -> READY
  QC delivered      -> DELIVERED
  QC revision       -> REVISION_REQUESTED (revision_count + 1)

Every function raises typed exceptions and only flushes; run them through
``vpm.core.result.run_action`` so each action commits as one transaction.

Usage:
    from vpm.core.result import run_action
    from vpm.services import workflow

    result = run_action(
        workflow.qc_decision, actor, project_id, "request_revision",
        tags=["Color", "Audio"], notes="Fix the grade in the kitchen shot",
    )
"""

import logging
import re

from vpm.core.exceptions import NotFoundError, ValidationError
from vpm.models import db
from vpm.models.activity import write_activity
from vpm.models.auth import User
from vpm.models.message import ProjectMessage
from vpm.models.project import (
    DEFAULT_PRIORITY,
    EDITOR_STATUSES,
    PRIORITIES,
    Client,
    Deliverable,
    Project,
    Revision,
)
from vpm.services.permission import (
    check_assigned_editor,
    check_owner_or_admin,
    check_permission,
)
from vpm.utils.helpers import as_bool, clean_str, isoformat, parse_datetime

logger = logging.getLogger(__name__)

# QC decision -> (target status, activity action, system message)
QC_DECISIONS = {
    "ready": ("READY", "PROJECT_READY", "QC approved this project and marked it ready."),
    "delivered": ("DELIVERED", "PROJECT_DELIVERED", "QC marked this project as delivered."),
}
REQUEST_REVISION = "request_revision"

_REQUIRED_INTAKE = {
    "title": "Title",
    "client_name": "Client",
    "type": "Type",
    "due_at": "Due date",
    "raw_footage_url": "Raw footage URL",
}

_SPLIT_RE = re.compile(r"[\n,]")


# ── Helpers ──────────────────────────────────────────────────────────────────

def parse_deliverables(text) -> list[str]:
    """Split free text on newlines or commas into trimmed, non-empty labels.

    >>> parse_deliverables("Main video, Social cut\\nTeaser")
    ['Main video', 'Social cut', 'Teaser']
    """
    if not text:
        return []
    return [part.strip() for part in _SPLIT_RE.split(str(text)) if part.strip()]


def parse_tags(value) -> list[str]:
    """Accept a list or a comma string; trim, drop blanks, de-duplicate in order."""
    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else list(value)
    tags: list[str] = []
    for item in items:
        tag = clean_str(item)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def _get_project(project_id) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project", project_id)
    return project


def _parse_due(value, field_name: str = "due_at"):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        raise ValidationError("Invalid due date", details={field_name: "invalid date"})
    return parsed


def _validate_priority(value) -> str | None:
    priority = clean_str(value)
    if priority is None:
        return None
    priority = priority.lower()
    if priority not in PRIORITIES:
        raise ValidationError(
            f"Priority must be one of: {', '.join(PRIORITIES)}",
            details={"priority": "invalid"},
        )
    return priority


def _system_message(project_id: int, text: str, meta: dict | None = None) -> ProjectMessage:
    msg = ProjectMessage(
        project_id=project_id,
        sender_id=None,
        message=text,
        message_type="system",
        meta=meta,
    )
    db.session.add(msg)
    db.session.flush()
    return msg


def _resolve_client(name: str) -> Client:
    client = Client.query.filter_by(name=name).first()
    if client is None:
        client = Client(name=name)
        db.session.add(client)
        db.session.flush()
        logger.info("Client created: %s (id=%s)", name, client.id)
    return client


# ── Actions ──────────────────────────────────────────────────────────────────

def create_project(actor, fields: dict, deliverables_text) -> int:
    """
    Intake a new project.

    Args:
        actor: Caller profile (admin or qc).
        fields: title, client_name, address, type, priority, due_at,
            raw_footage_url, brand_assets_url, music_assets_url,
            final_delivery_url, notes, needs_info.
        deliverables_text: Free text, one deliverable per line or comma.

    Returns:
        The new project id.

    Raises:
        PermissionDenied, ValidationError
    """
    check_permission(actor, "project_create")
    fields = fields or {}

    missing = {
        key: "required" for key in _REQUIRED_INTAKE if clean_str(fields.get(key)) is None
    }
    if missing:
        labels = ", ".join(_REQUIRED_INTAKE[k] for k in missing)
        raise ValidationError(f"Missing required fields: {labels}", details=missing)

    labels = parse_deliverables(deliverables_text)
    if not labels:
        raise ValidationError(
            "At least one deliverable is required",
            details={"deliverables": "required"},
        )

    due_at = _parse_due(fields.get("due_at"))
    priority = _validate_priority(fields.get("priority")) or DEFAULT_PRIORITY
    notes = clean_str(fields.get("notes"))

    client = _resolve_client(clean_str(fields["client_name"]))
    project = Project(
        title=clean_str(fields["title"]),
        address=clean_str(fields.get("address")),
        type=clean_str(fields["type"]),
        priority=priority,
        status="NEW",
        due_at=due_at,
        client_id=client.id,
        created_by=actor.id,
        raw_footage_url=clean_str(fields["raw_footage_url"]),
        brand_assets_url=clean_str(fields.get("brand_assets_url")),
        music_assets_url=clean_str(fields.get("music_assets_url")),
        final_delivery_url=clean_str(fields.get("final_delivery_url")),
        notes=notes,
        needs_info=as_bool(fields.get("needs_info")),
        revision_count=0,
    )
    db.session.add(project)
    db.session.flush()

    for label in labels:
        db.session.add(Deliverable(project_id=project.id, label=label))
    db.session.flush()

    if notes:
        write_activity(
            project_id=project.id, action="PROJECT_CREATED",
            actor_id=actor.id, meta={"notes": notes},
        )

    logger.info(
        "Project created: id=%s by user=%s (%d deliverables)",
        project.id, actor.id, len(labels),
    )
    return project.id


def assign_project(actor, project_id: int, editor_id, due_at) -> None:
    """
    Set (or clear) the assigned editor and due date.

    Status moves NEW -> ASSIGNED only when the current status is exactly
    NEW; any other status is left as is.

    Raises:
        PermissionDenied, NotFoundError, ValidationError
    """
    check_permission(actor, "project_assign")
    project = _get_project(project_id)

    if editor_id in ("", None):
        editor_id = None
    else:
        try:
            editor_id = int(editor_id)
        except (TypeError, ValueError):
            raise ValidationError("Invalid editor id", details={"editor_id": "invalid"})
        editor = db.session.get(User, editor_id)
        if editor is None:
            raise NotFoundError("User", editor_id)
        if editor.effective_role != "editor":
            raise ValidationError(
                "Projects can only be assigned to editors",
                details={"editor_id": "not an editor"},
            )

    due = _parse_due(due_at)

    project.assigned_editor_id = editor_id
    project.due_at = due
    previous = project.status
    if project.status == "NEW":
        project.status = "ASSIGNED"
    db.session.flush()

    write_activity(
        project_id=project.id,
        action="PROJECT_ASSIGNED",
        actor_id=actor.id,
        meta={"assigned_editor_id": editor_id, "due_at": isoformat(due)},
    )
    logger.info(
        "Project %s assigned to editor=%s by user=%s (%s -> %s)",
        project.id, editor_id, actor.id, previous, project.status,
    )


def update_editor_work(actor, project_id: int, status=None, preview_url=None, final_url=None) -> None:
    """
    Editor-side update: status within the editor set plus preview/final links.

    Links are written unconditionally (blank clears). A status change logs
    EDITOR_SUBMITTED_QC when the new status is QC, EDITOR_STATUS_UPDATED
    otherwise.

    Raises:
        PermissionDenied, NotFoundError, ValidationError
    """
    project = _get_project(project_id)
    check_assigned_editor(actor, project)

    new_status = clean_str(status)
    if new_status is not None:
        new_status = new_status.upper()
        if new_status not in EDITOR_STATUSES:
            raise ValidationError(
                f"Editors may only set: {', '.join(sorted(EDITOR_STATUSES))}",
                details={"status": "invalid"},
            )

    project.preview_url = clean_str(preview_url)
    project.final_delivery_url = clean_str(final_url)

    if new_status is not None and new_status != project.status:
        previous = project.status
        project.status = new_status
        db.session.flush()
        action = "EDITOR_SUBMITTED_QC" if new_status == "QC" else "EDITOR_STATUS_UPDATED"
        write_activity(
            project_id=project.id, action=action,
            actor_id=actor.id, meta={"status": new_status},
        )
        logger.info(
            "Project %s editor update by user=%s: %s -> %s",
            project.id, actor.id, previous, new_status,
        )
    else:
        db.session.flush()


def qc_decision(actor, project_id: int, decision: str, tags=None, notes=None) -> None:
    """
    Apply a QC outcome: ready, delivered or request_revision.

    A revision request needs non-empty notes and at least one tag; nothing is
    written when either is missing.

    Raises:
        PermissionDenied, NotFoundError, ValidationError
    """
    check_permission(actor, "project_qc_decision")
    decision = (clean_str(decision) or "").lower()
    if decision not in QC_DECISIONS and decision != REQUEST_REVISION:
        raise ValidationError(f"Unknown QC decision: {decision or '(empty)'}",
                              details={"decision": "invalid"})

    project = _get_project(project_id)

    if decision in QC_DECISIONS:
        status, action, text = QC_DECISIONS[decision]
        project.status = status
        db.session.flush()
        write_activity(project_id=project.id, action=action, actor_id=actor.id)
        _system_message(project.id, text)
        logger.info("Project %s QC %s by user=%s", project.id, decision, actor.id)
        return

    tag_list = parse_tags(tags)
    note_text = clean_str(notes)
    errors = {}
    if not tag_list:
        errors["tags"] = "required"
    if not note_text:
        errors["notes"] = "required"
    if errors:
        raise ValidationError("Revision requests need tags and notes", details=errors)

    db.session.add(Revision(
        project_id=project.id,
        requested_by=actor.id,
        editor_id=project.assigned_editor_id,
        tags=tag_list,
        notes=note_text,
    ))
    project.status = "REVISION_REQUESTED"
    project.revision_count = (project.revision_count or 0) + 1
    db.session.flush()

    write_activity(
        project_id=project.id, action="REVISION_REQUESTED",
        actor_id=actor.id, meta={"tags": tag_list},
    )
    _system_message(
        project.id,
        f"Revision requested: {', '.join(tag_list)}.",
        meta={"notes": note_text},
    )
    logger.info(
        "Project %s revision #%d requested by user=%s",
        project.id, project.revision_count, actor.id,
    )


# Fields where a blank value keeps what is stored
_KEEP_ON_BLANK = ("title", "type", "raw_footage_url")
# Fields where a blank value clears the column
_CLEAR_ON_BLANK = (
    "address", "notes", "brand_assets_url", "music_assets_url", "final_delivery_url",
)


def update_project_details(actor, project_id: int, fields: dict, deliverables=None) -> None:
    """
    Edit intake details and deliverables (admin or project creator).

    Keys absent from *fields* are left untouched. Present-but-blank values
    keep the current value for title/type/priority/raw footage and
    clear address, notes and the other links.

    Each deliverable row ``{"id"?, "label", "specs", "completed"}`` updates
    the existing deliverable (scoped to this project) or inserts a new one;
    new rows with a blank label are skipped.

    Raises:
        PermissionDenied, NotFoundError, ValidationError
    """
    project = _get_project(project_id)
    check_owner_or_admin(actor, project)
    fields = fields or {}

    for key in _KEEP_ON_BLANK:
        if key in fields:
            value = clean_str(fields[key])
            if value is not None:
                setattr(project, key, value)

    if "priority" in fields:
        priority = _validate_priority(fields["priority"])
        if priority is not None:
            project.priority = priority

    for key in _CLEAR_ON_BLANK:
        if key in fields:
            setattr(project, key, clean_str(fields[key]))

    if "needs_info" in fields:
        project.needs_info = as_bool(fields["needs_info"])

    for row in deliverables or []:
        row = row or {}
        label = clean_str(row.get("label"))
        row_id = row.get("id")
        if row_id not in (None, ""):
            try:
                item = db.session.get(Deliverable, int(row_id))
            except (TypeError, ValueError):
                raise ValidationError("Invalid deliverable id", details={"deliverables": "invalid id"})
            if item is None or item.project_id != project.id:
                raise NotFoundError("Deliverable", row_id)
            if label is not None:
                item.label = label
            if "specs" in row:
                item.specs = clean_str(row.get("specs"))
            if "completed" in row:
                item.completed = as_bool(row.get("completed"))
        elif label is not None:
            db.session.add(Deliverable(
                project_id=project.id,
                label=label,
                specs=clean_str(row.get("specs")),
                completed=as_bool(row.get("completed")),
            ))

    db.session.flush()
    write_activity(project_id=project.id, action="PROJECT_UPDATED", actor_id=actor.id)
    logger.info("Project %s details updated by user=%s", project.id, actor.id)


def delete_project(actor, project_id: int) -> None:
    """
    Delete a project and everything hanging off it (admin only).

    Raises:
        PermissionDenied, NotFoundError
    """
    check_permission(actor, "project_delete")
    project = _get_project(project_id)
    db.session.delete(project)
    db.session.flush()
    logger.info("Project %s deleted by user=%s", project_id, actor.id)
