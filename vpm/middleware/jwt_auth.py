"""
JWT Auth Middleware — Parses JWT from Authorization header, sets g.jwt_*.

The hook never rejects a request itself: it only records who the caller is.
Blueprints decide (via ``vpm.services.identity``) whether a session is
required and answer 401 when it is missing.

    Authorization: Bearer <token>  ->  g.jwt_user_id (int), g.jwt_role
"""

import logging

import jwt as pyjwt
from flask import g, request

from vpm.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/health",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_role = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]  # Strip "Bearer "

        try:
            payload = decode_access_token(token)
            g.jwt_user_id = payload["sub"]
            g.jwt_role = payload.get("role")
        except pyjwt.ExpiredSignatureError:
            logger.debug("Expired access token on %s", path)
        except pyjwt.InvalidTokenError:
            logger.debug("Invalid access token on %s", path)
