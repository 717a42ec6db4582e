"""Standardised API error responses.

Usage
-----
    from vpm.utils.errors import api_error, result_response, E

    return api_error(E.NOT_FOUND, "Project not found")
    return api_error(E.VALIDATION_REQUIRED, "title is required")
    return result_response(run_action(...), status=201)
"""

from __future__ import annotations

from flask import jsonify

from vpm.core.result import ActionResult, ResultKind


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Authentication – HTTP 401
    UNAUTHORIZED = "ERR_UNAUTHORIZED"

    # Validation – HTTP 422 (business rule) / 400 (malformed request)
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    BAD_REQUEST = "ERR_BAD_REQUEST"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Permissions – HTTP 403
    FORBIDDEN = "ERR_FORBIDDEN"

    # Store – HTTP 503
    STORE_UNAVAILABLE = "ERR_STORE_UNAVAILABLE"

    # Server – HTTP 500
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.UNAUTHORIZED: 401,
    E.VALIDATION_REQUIRED: 422,
    E.VALIDATION_INVALID: 422,
    E.BAD_REQUEST: 400,
    E.NOT_FOUND: 404,
    E.FORBIDDEN: 403,
    E.STORE_UNAVAILABLE: 503,
    E.INTERNAL: 500,
}

_RESULT_CODES: dict[ResultKind, str] = {
    ResultKind.VALIDATION_ERROR: E.VALIDATION_INVALID,
    ResultKind.PERMISSION_DENIED: E.FORBIDDEN,
    ResultKind.NOT_FOUND: E.NOT_FOUND,
    ResultKind.STORE_ERROR: E.STORE_UNAVAILABLE,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Field-level breakdown (missing fields, invalid values).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def result_response(result: ActionResult, payload: dict | None = None, *, status: int = 200):
    """Translate an ActionResult into a Flask response tuple.

    On success returns ``payload`` (default ``{"ok": true}``) with *status*;
    on failure an ``api_error`` body with the status for the failure kind.
    """
    if result.ok:
        return jsonify(payload if payload is not None else {"ok": True}), status
    return api_error(
        _RESULT_CODES.get(result.kind, E.INTERNAL),
        result.message or "Request failed",
        details=result.details or None,
    )
