"""
Admin Blueprint — user management.

    POST /api/v1/admin/users             — create a user (admin)
    PUT  /api/v1/admin/users/<id>/role   — change a user's role (admin)
    GET  /api/v1/users?role=editor       — user directory (any signed-in user)
"""

from flask import Blueprint, jsonify, request

from vpm.blueprints import json_body, paginate_query
from vpm.core.result import run_action
from vpm.models import db
from vpm.models.auth import User
from vpm.services import user_service
from vpm.services.identity import require_user
from vpm.utils.errors import result_response

admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1")


@admin_bp.route("/admin/users", methods=["POST"])
def invite_user():
    """Body: { email, password, role, full_name?, username? }"""
    user, err = require_user()
    if err:
        return err
    data = json_body()
    result = run_action(
        user_service.invite_user, user,
        data.get("email"), data.get("password"), data.get("role"),
        full_name=data.get("full_name"), username=data.get("username"),
    )
    if not result.ok:
        return result_response(result)
    created = db.session.get(User, result.value)
    return jsonify({"id": result.value, "user": created.to_dict()}), 201


@admin_bp.route("/admin/users/<int:user_id>/role", methods=["PUT"])
def update_role(user_id):
    """Body: { role: admin | qc | editor }"""
    user, err = require_user()
    if err:
        return err
    result = run_action(user_service.update_user_role, user, user_id, json_body().get("role"))
    return result_response(result)


@admin_bp.route("/users", methods=["GET"])
def list_users():
    user, err = require_user()
    if err:
        return err
    query = user_service.users_query(request.args.get("role"))
    items, total = paginate_query(query)
    return jsonify({"items": [u.to_dict() for u in items], "total": total}), 200
