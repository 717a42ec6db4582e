"""
Video Production Tracker
Blueprint registry and shared request helpers.
"""

from flask import request


def paginate_query(query, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit  — max items (default 200, clamped to 1..max_limit)
        offset — starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    try:
        limit = max(1, min(int(request.args.get("limit", default_limit)), max_limit))
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    items = query.limit(limit).offset(offset).all()
    return items, total


def json_body() -> dict:
    """Request JSON as a dict ({} when absent or not an object)."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def all_blueprints():
    from vpm.blueprints.admin_bp import admin_bp
    from vpm.blueprints.auth_bp import auth_bp
    from vpm.blueprints.dashboard_bp import dashboard_bp
    from vpm.blueprints.health_bp import health_bp
    from vpm.blueprints.message_bp import message_bp
    from vpm.blueprints.project_bp import project_bp

    return [auth_bp, project_bp, message_bp, dashboard_bp, admin_bp, health_bp]
