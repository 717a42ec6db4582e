"""
Auth Blueprint — JWT authentication and account settings.

  POST /api/v1/auth/login        — email (or username) + password → access token
  GET  /api/v1/auth/me           — current profile + client polling settings
  PUT  /api/v1/auth/me/email     — change own email
  PUT  /api/v1/auth/me/password  — change own password (min 8 chars)
"""

from flask import Blueprint, current_app, jsonify

from vpm.blueprints import json_body
from vpm.core.result import run_action
from vpm.services import user_service
from vpm.services.identity import require_user
from vpm.services.jwt_service import token_response
from vpm.utils.errors import E, api_error, result_response

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/login
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Body: { "email": "...", "password": "..." }  (``login`` accepted for username)
    """
    data = json_body()
    login_name = data.get("email") or data.get("login") or data.get("username")
    password = data.get("password") or ""

    if not login_name or not password:
        return api_error(E.BAD_REQUEST, "Email and password are required")

    result = run_action(user_service.authenticate, login_name, password)
    if not result.ok:
        return result_response(result)
    if result.value is None:
        return api_error(E.UNAUTHORIZED, "Invalid email or password")
    return jsonify(token_response(result.value)), 200


# ═══════════════════════════════════════════════════════════════
# GET /api/v1/auth/me
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/me", methods=["GET"])
def me():
    user, err = require_user()
    if err:
        return err
    cfg = current_app.config
    return jsonify({
        "user": user.to_dict(),
        "settings": {
            "read_state_backend": cfg.get("READ_STATE_BACKEND", "client"),
            "chat_poll_seconds": cfg.get("CHAT_POLL_SECONDS", 8),
            "inbox_poll_seconds": cfg.get("INBOX_POLL_SECONDS", 10),
            "demo_mode": bool(cfg.get("DEMO_MODE")),
        },
    }), 200


# ═══════════════════════════════════════════════════════════════
# Account settings
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/me/email", methods=["PUT"])
def change_email():
    user, err = require_user()
    if err:
        return err
    result = run_action(user_service.update_own_email, user, json_body().get("email"))
    return result_response(result, {"ok": True, "email": user.email} if result.ok else None)


@auth_bp.route("/me/password", methods=["PUT"])
def change_password():
    user, err = require_user()
    if err:
        return err
    result = run_action(user_service.update_own_password, user, json_body().get("password"))
    return result_response(result)
