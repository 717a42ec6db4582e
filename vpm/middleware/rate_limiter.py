"""
Rate limiting configuration.

The Limiter instance is created in vpm/__init__.py with no default limits;
this module applies limits per blueprint once they are registered.

Usage:
    from vpm.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "300/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Login:              LOGIN_RATE_LIMIT (default 10/minute)
        - Project / admin:    60/minute
        - Messages / dashboards: 300/minute (polled by the UI)
        - Health check:       exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    login_view = app.view_functions.get("auth.login")
    if login_view is not None:
        app.view_functions["auth.login"] = limiter.limit(
            app.config.get("LOGIN_RATE_LIMIT", "10/minute")
        )(login_view)

    for bp_name in ("projects", "admin"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    for bp_name in ("messages", "dashboards"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — login: %s, write: %s, polled reads: %s",
        app.config.get("LOGIN_RATE_LIMIT", "10/minute"), WRITE_LIMIT, READ_LIMIT,
    )
