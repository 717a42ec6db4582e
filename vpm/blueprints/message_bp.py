"""
Message Blueprint — project chat, read markers, inbox.

Endpoints:
    GET  /api/v1/projects/<id>/messages        — latest messages (oldest first)
    POST /api/v1/projects/<id>/messages        — send a message
    POST /api/v1/projects/<id>/messages/read   — advance the caller's watermark
    POST /api/v1/messages/inbox                — unread previews per project
    POST /api/v1/messages/unread-count         — total unread for the sidebar

Read-state endpoints are POST so the client backend can send its
watermarks: ``{"last_seen": {"<project_id>": "<iso timestamp>"}}``.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from vpm.blueprints import json_body
from vpm.core.result import run_action
from vpm.models.project import Project
from vpm.services import message_service
from vpm.services.identity import require_user
from vpm.services.read_state import ClientReadState, get_read_state
from vpm.utils.errors import result_response
from vpm.utils.helpers import get_or_404, isoformat

logger = logging.getLogger(__name__)

message_bp = Blueprint("messages", __name__, url_prefix="/api/v1")

MAX_CHAT_LIMIT = 200


def _chat_poll():
    return current_app.config.get("CHAT_POLL_SECONDS", 8)


def _inbox_poll():
    return current_app.config.get("INBOX_POLL_SECONDS", 10)


@message_bp.route("/projects/<int:project_id>/messages", methods=["GET"])
def list_messages(project_id):
    user, err = require_user()
    if err:
        return err
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    try:
        limit = int(request.args.get("limit", message_service.CHAT_PAGE_SIZE))
    except (TypeError, ValueError):
        limit = message_service.CHAT_PAGE_SIZE
    limit = max(1, min(limit, MAX_CHAT_LIMIT))

    rows = message_service.list_messages(project.id, limit=limit)
    return jsonify({
        "items": [m.to_dict() for m in rows],
        "poll_seconds": _chat_poll(),
    }), 200


@message_bp.route("/projects/<int:project_id>/messages", methods=["POST"])
def send_message(project_id):
    """Body: { message: "..." }"""
    user, err = require_user()
    if err:
        return err
    result = run_action(message_service.send_message, user, project_id, json_body().get("message"))
    if not result.ok:
        return result_response(result)
    return jsonify({"id": result.value}), 201


@message_bp.route("/projects/<int:project_id>/messages/read", methods=["POST"])
def mark_read(project_id):
    user, err = require_user()
    if err:
        return err
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    store = get_read_state(json_body())
    result = run_action(message_service.mark_project_read, store, user.id, project.id)
    if not result.ok:
        return result_response(result)
    body = {"last_seen_at": isoformat(result.value)}
    if isinstance(store, ClientReadState):
        body["last_seen"] = store.updated
    return jsonify(body), 200


@message_bp.route("/messages/inbox", methods=["POST"])
def inbox():
    user, err = require_user()
    if err:
        return err
    store = get_read_state(json_body())
    items = message_service.inbox(store, user.id)
    return jsonify({"items": items, "poll_seconds": _inbox_poll()}), 200


@message_bp.route("/messages/unread-count", methods=["POST"])
def unread_count():
    user, err = require_user()
    if err:
        return err
    store = get_read_state(json_body())
    count = message_service.unread_count_for(store, user.id)
    return jsonify({"unread": count, "poll_seconds": _inbox_poll()}), 200
