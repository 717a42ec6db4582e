"""
Dashboard Blueprint — operations metrics for admin / QC.

    GET /api/v1/dashboards/overdue     — overdue projects (earliest due first)
    GET /api/v1/dashboards/operations  — overdue, workload, cycle time, revisions

Both fall back to sample data (``fallback: true``) when the store is down
and DEMO_MODE is on.
"""

from flask import Blueprint, jsonify

from vpm.services import dashboard_service
from vpm.services.demo_data import load_with_fallback
from vpm.services.identity import require_user
from vpm.services.permission import has_role_permission
from vpm.utils.errors import E, api_error

dashboard_bp = Blueprint("dashboards", __name__, url_prefix="/api/v1/dashboards")


def _require_dashboard_access():
    user, err = require_user()
    if err:
        return None, err
    if not has_role_permission(user.effective_role, "dashboard_view"):
        return None, api_error(E.FORBIDDEN, "Dashboards are available to admin and QC")
    return user, None


@dashboard_bp.route("/overdue", methods=["GET"])
def overdue():
    user, err = _require_dashboard_access()
    if err:
        return err

    def _load():
        rows = dashboard_service.get_overdue_projects()
        return {"projects": [dashboard_service.project_card(p) for p in rows]}

    return jsonify(load_with_fallback("overdue", _load)), 200


@dashboard_bp.route("/operations", methods=["GET"])
def operations():
    user, err = _require_dashboard_access()
    if err:
        return err
    return jsonify(load_with_fallback("operations", dashboard_service.operations_summary)), 200
