"""Shared utility functions used by models, services and blueprints.

get_or_404:    tuple-return lookup for blueprints
parse_datetime: ISO date/datetime -> tz-aware UTC datetime (None on bad input)
as_utc:        normalise naive (SQLite) datetimes to UTC
clean_str:     trimmed string or None
"""
import logging
from datetime import date, datetime, time, timezone

from flask import jsonify

from vpm.models import db

logger = logging.getLogger(__name__)


def get_or_404(model, pk, label=None):
    """Fetch a model instance by primary key or return a 404 error tuple.

    - Success: (obj, None)
    - Failure: (None, (jsonify_response, 404))

        obj, err = get_or_404(Project, pid)
        if err:
            return err
    """
    label = label or model.__name__
    obj = db.session.get(model, pk)
    if not obj:
        return None, (jsonify({"error": f"{label} not found"}), 404)
    return obj, None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value):
    """Return *value* as an aware UTC datetime.

    SQLite hands back naive datetimes even for ``DateTime(timezone=True)``
    columns; everything is stored in UTC, so naive means UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value):
    value = as_utc(value)
    return value.isoformat() if value else None


def parse_datetime(value):
    """Parse an ISO date or datetime into an aware UTC datetime.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (midnight UTC)
    - YYYY-MM-DDTHH:MM[:SS][+offset|Z]
    - date / datetime objects
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.combine(date.fromisoformat(text), time.min, tzinfo=timezone.utc)
    except (ValueError, TypeError):
        return None


def clean_str(value):
    """Trimmed string, or None when blank/missing."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "1", "yes", "on")
