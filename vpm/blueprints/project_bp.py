"""
Project Blueprint — intake, board, detail and workflow actions.

Endpoints:
    POST   /api/v1/projects                     — create (admin, qc)
    GET    /api/v1/projects                     — filtered list (editor, priority, due)
    GET    /api/v1/projects/board               — kanban columns
    GET    /api/v1/projects/<id>                — detail + deliverables + latest messages
    PUT    /api/v1/projects/<id>                — edit details (admin or creator)
    POST   /api/v1/projects/<id>/assign         — assign editor / due date (admin, qc)
    POST   /api/v1/projects/<id>/editor-update  — status + links (assigned editor)
    POST   /api/v1/projects/<id>/qc-decision    — ready | delivered | request_revision
    DELETE /api/v1/projects/<id>                — delete (admin)
    GET    /api/v1/my-queue                     — caller's assigned projects
"""

import logging

from flask import Blueprint, jsonify, request

from vpm.blueprints import json_body
from vpm.core.result import run_action
from vpm.models.activity import ActivityLogEntry
from vpm.models.project import Project
from vpm.services import dashboard_service, workflow
from vpm.services.demo_data import load_with_fallback
from vpm.services.identity import require_user
from vpm.services.message_service import list_messages
from vpm.utils.errors import result_response
from vpm.utils.helpers import get_or_404

logger = logging.getLogger(__name__)

project_bp = Blueprint("projects", __name__, url_prefix="/api/v1")

_INTAKE_FIELDS = (
    "title", "client_name", "address", "type", "priority", "due_at",
    "raw_footage_url", "brand_assets_url", "music_assets_url", "final_delivery_url",
    "notes", "needs_info",
)
_DETAIL_FIELDS = (
    "title", "address", "type", "priority", "notes", "needs_info",
    "raw_footage_url", "brand_assets_url", "music_assets_url", "final_delivery_url",
)


# ═════════════════════════════════════════════════════════════════════════
# Intake
# ═════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects", methods=["POST"])
def create_project():
    """
    Body: { title, client_name, type, due_at, raw_footage_url, deliverables, ... }

    ``deliverables`` is free text (one per line or comma) or a list of labels.
    """
    user, err = require_user()
    if err:
        return err
    data = json_body()
    fields = {k: data.get(k) for k in _INTAKE_FIELDS if k in data}
    deliverables = data.get("deliverables")
    if isinstance(deliverables, list):
        deliverables = "\n".join(str(d) for d in deliverables if d is not None)

    result = run_action(workflow.create_project, user, fields, deliverables)
    if not result.ok:
        return result_response(result)
    return jsonify({"id": result.value, "redirect": f"/projects/{result.value}"}), 201


# ═════════════════════════════════════════════════════════════════════════
# Board / list
# ═════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects", methods=["GET"])
def list_projects():
    user, err = require_user()
    if err:
        return err
    filters = dashboard_service.parse_board_filters(request.args)

    def _load():
        rows = dashboard_service.filtered_projects(filters)
        return {"items": [p.to_dict() for p in rows], "total": len(rows), "filters": filters}

    return jsonify(load_with_fallback("projects", _load)), 200


@project_bp.route("/projects/board", methods=["GET"])
def project_board():
    user, err = require_user()
    if err:
        return err
    filters = dashboard_service.parse_board_filters(request.args)
    payload = load_with_fallback("board", lambda: dashboard_service.project_board(filters))
    return jsonify(payload), 200


@project_bp.route("/my-queue", methods=["GET"])
def my_queue():
    user, err = require_user()
    if err:
        return err
    payload = load_with_fallback(
        "queue", lambda: {"projects": dashboard_service.editor_queue(user)},
    )
    return jsonify(payload), 200


# ═════════════════════════════════════════════════════════════════════════
# Detail
# ═════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id):
    user, err = require_user()
    if err:
        return err
    project, err = get_or_404(Project, project_id)
    if err:
        return err

    activity = (
        ActivityLogEntry.query
        .filter_by(project_id=project.id)
        .order_by(ActivityLogEntry.created_at.desc(), ActivityLogEntry.id.desc())
        .limit(50)
        .all()
    )
    body = project.to_dict(include_children=True)
    body["messages"] = [m.to_dict() for m in list_messages(project.id)]
    body["activity"] = [a.to_dict() for a in activity]
    body["permissions"] = {
        "can_edit": user.effective_role == "admin" or project.created_by == user.id,
        "can_assign": user.is_staff,
        "can_qc": user.is_staff,
        "can_delete": user.effective_role == "admin",
        "is_assigned_editor": project.assigned_editor_id == user.id,
    }
    return jsonify(body), 200


@project_bp.route("/projects/<int:project_id>", methods=["PUT"])
def update_project(project_id):
    """Body: any of the detail fields plus ``deliverables: [{id?, label, specs, completed}]``."""
    user, err = require_user()
    if err:
        return err
    data = json_body()
    fields = {k: data.get(k) for k in _DETAIL_FIELDS if k in data}
    deliverables = data.get("deliverables") or []
    if not isinstance(deliverables, list):
        deliverables = []

    result = run_action(workflow.update_project_details, user, project_id, fields, deliverables)
    return result_response(result)


@project_bp.route("/projects/<int:project_id>", methods=["DELETE"])
def delete_project(project_id):
    user, err = require_user()
    if err:
        return err
    result = run_action(workflow.delete_project, user, project_id)
    return result_response(result, {"ok": True, "redirect": "/projects"})


# ═════════════════════════════════════════════════════════════════════════
# Workflow actions
# ═════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects/<int:project_id>/assign", methods=["POST"])
def assign_project(project_id):
    """Body: { editor_id: int | null, due_at: ISO date | null }"""
    user, err = require_user()
    if err:
        return err
    data = json_body()
    result = run_action(
        workflow.assign_project, user, project_id,
        data.get("editor_id"), data.get("due_at"),
    )
    return result_response(result)


@project_bp.route("/projects/<int:project_id>/editor-update", methods=["POST"])
def editor_update(project_id):
    """Body: { status?, preview_url?, final_delivery_url? }"""
    user, err = require_user()
    if err:
        return err
    data = json_body()
    result = run_action(
        workflow.update_editor_work, user, project_id,
        data.get("status"), data.get("preview_url"),
        data.get("final_delivery_url", data.get("final_url")),
    )
    return result_response(result)


@project_bp.route("/projects/<int:project_id>/qc-decision", methods=["POST"])
def qc_decision(project_id):
    """Body: { decision: ready | delivered | request_revision, tags?, notes? }"""
    user, err = require_user()
    if err:
        return err
    data = json_body()
    result = run_action(
        workflow.qc_decision, user, project_id,
        data.get("decision"), data.get("tags"), data.get("notes"),
    )
    return result_response(result)
