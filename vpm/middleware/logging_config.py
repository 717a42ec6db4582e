"""
Logging setup for the production tracker.

Request lines carry the request id, the signed-in user and the project the
URL points at, so a project's history can be followed across workers.
Production writes one JSON object per line; development writes plain text.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Attributes the timing middleware attaches through ``extra=``
REQUEST_CONTEXT = ("request_id", "method", "path", "status", "duration_ms", "user_id", "project_id")

_QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "flask_limiter")


def request_context(record: logging.LogRecord) -> dict:
    """The request attributes present on *record*, in a stable order."""
    ctx = {}
    for key in REQUEST_CONTEXT:
        value = getattr(record, key, None)
        if value is not None and value != "":
            ctx[key] = round(value, 1) if key == "duration_ms" else value
    return ctx


class JSONLineFormatter(logging.Formatter):
    def format(self, record):
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(request_context(record))
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """``12:00:01 INFO vpm.services.workflow: msg [req=ab12 user=3 project=7]``"""

    _SHORT = {"request_id": "req", "user_id": "user", "project_id": "project"}

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%H:%M:%S")

    def format(self, record):
        line = super().format(record)
        ctx = request_context(record)
        tags = " ".join(f"{short}={ctx[key]}" for key, short in self._SHORT.items() if key in ctx)
        return f"{line} [{tags}]" if tags else line


def configure_logging(app):
    """
    Attach a single stderr handler to the root logger.

    ``LOG_LEVEL`` overrides the level (DEBUG in development, INFO otherwise).
    JSON lines are used outside debug and testing, or when ``LOG_JSON=1``.
    """
    debug = app.config.get("DEBUG", False)
    testing = app.config.get("TESTING", False)
    use_json = os.getenv("LOG_JSON", "").lower() in ("1", "true") or not (debug or testing)

    level_name = os.getenv("LOG_LEVEL", "DEBUG" if debug else "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONLineFormatter() if use_json else TextFormatter())

    # Repeated create_app() calls replace the handler instead of stacking
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    app.logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
