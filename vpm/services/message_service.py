"""
Project chat: send, list, inbox previews and unread counts.

``send_message`` follows the workflow convention (raise + flush, run via
``run_action``); the read helpers return plain dicts / model lists.

Usage:
    from vpm.services import message_service

    run_action(message_service.send_message, actor, project_id, "Uploaded v2")
    rows = message_service.list_messages(project_id)
"""

import logging

from vpm.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from vpm.models import db
from vpm.models.activity import write_activity
from vpm.models.message import ProjectMessage
from vpm.models.project import Project
from vpm.services.read_state import is_unread, mark_read, unread_count
from vpm.utils.helpers import clean_str, isoformat

logger = logging.getLogger(__name__)

CHAT_PAGE_SIZE = 50
INBOX_SCAN_LIMIT = 500
SIDEBAR_SCAN_LIMIT = 400


def send_message(actor, project_id: int, text) -> int:
    """Append a user message and a MESSAGE_SENT activity. Returns the message id."""
    if actor is None:
        raise PermissionDenied(None, "message_send", "not signed in")
    body = clean_str(text)
    if not body:
        raise ValidationError("Message cannot be empty", details={"message": "required"})
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project", project_id)

    msg = ProjectMessage(
        project_id=project.id,
        sender_id=actor.id,
        message=body,
        message_type="user",
    )
    db.session.add(msg)
    db.session.flush()
    write_activity(project_id=project.id, action="MESSAGE_SENT", actor_id=actor.id)
    logger.info("Message %s sent on project %s by user=%s", msg.id, project.id, actor.id)
    return msg.id


def list_messages(project_id: int, limit: int = CHAT_PAGE_SIZE) -> list[ProjectMessage]:
    """Latest *limit* messages of a project, returned oldest first."""
    rows = (
        ProjectMessage.query
        .filter_by(project_id=project_id)
        .order_by(ProjectMessage.created_at.desc(), ProjectMessage.id.desc())
        .limit(limit)
        .all()
    )
    rows.reverse()
    return rows


def recent_messages(limit: int) -> list[ProjectMessage]:
    return (
        ProjectMessage.query
        .order_by(ProjectMessage.created_at.desc(), ProjectMessage.id.desc())
        .limit(limit)
        .all()
    )


def mark_project_read(store, user_id, project_id: int):
    """Advance the watermark to the newest loaded chat message."""
    return mark_read(store, user_id, project_id, list_messages(project_id))


def inbox(store, user_id, limit: int = INBOX_SCAN_LIMIT) -> list[dict]:
    """
    Per-project previews over the latest *limit* messages.

    Each preview carries the project's latest message and time plus its
    unread count; only projects with unread messages are returned, newest
    first.
    """
    previews: dict[int, dict] = {}
    for msg in recent_messages(limit):
        if msg.project is None:
            continue
        unread = is_unread(store, user_id, msg)
        preview = previews.get(msg.project_id)
        if preview is None:
            previews[msg.project_id] = {
                "project_id": msg.project_id,
                "project_title": msg.project.title,
                "latest_message": msg.message,
                "latest_sender": msg.sender_name,
                "latest_at": isoformat(msg.created_at),
                "unread_count": 1 if unread else 0,
            }
        elif unread:
            preview["unread_count"] += 1

    result = [p for p in previews.values() if p["unread_count"] > 0]
    result.sort(key=lambda p: (p["latest_at"] or ""), reverse=True)
    return result


def unread_count_for(store, user_id, limit: int = SIDEBAR_SCAN_LIMIT) -> int:
    return unread_count(store, user_id, recent_messages(limit))
