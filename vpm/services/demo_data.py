"""
Built-in sample data for read views when the store cannot be reached.

Only used with ``DEMO_MODE`` on. Outside demo mode a store failure surfaces
as ``StoreUnavailableError`` (503).

Usage:
    payload = load_with_fallback("board", lambda: {"columns": ...})
"""

import copy
import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from vpm.core.exceptions import StoreUnavailableError
from vpm.models import db

logger = logging.getLogger(__name__)

FALLBACK_BANNER = "Data store unavailable. Showing sample data."

_SAMPLE_BOARD = {
    "columns": [
        {"status": "NEW", "projects": [
            {"id": 1, "title": "Bluebird - 301 Grove St", "status": "NEW", "priority": "normal",
             "due_at": "2026-02-16T00:00:00+00:00", "assigned_editor_id": None,
             "assigned_editor_name": None, "needs_info": False},
            {"id": 2, "title": "Canyon - 88 Ridge Ln", "status": "NEW", "priority": "normal",
             "due_at": "2026-02-18T00:00:00+00:00", "assigned_editor_id": None,
             "assigned_editor_name": None, "needs_info": False},
        ]},
        {"status": "EDITING", "projects": [
            {"id": 3, "title": "Acme - 12 Oak St", "status": "EDITING", "priority": "normal",
             "due_at": "2026-02-12T00:00:00+00:00", "assigned_editor_id": 101,
             "assigned_editor_name": "Editor One", "needs_info": False},
            {"id": 4, "title": "Canyon - 18 Desert Way", "status": "EDITING", "priority": "normal",
             "due_at": "2026-02-17T00:00:00+00:00", "assigned_editor_id": 102,
             "assigned_editor_name": "Editor Two", "needs_info": False},
        ]},
        {"status": "QC", "projects": [
            {"id": 5, "title": "Canyon - 66 Mesa Dr", "status": "QC", "priority": "rush",
             "due_at": "2026-02-11T00:00:00+00:00", "assigned_editor_id": 101,
             "assigned_editor_name": "Editor One", "needs_info": False},
        ]},
        {"status": "REVISION_REQUESTED", "projects": [
            {"id": 7, "title": "Bluebird - 55 Ridge Ln", "status": "REVISION_REQUESTED",
             "priority": "rush", "due_at": "2026-02-11T00:00:00+00:00",
             "assigned_editor_id": 101, "assigned_editor_name": "Editor One",
             "needs_info": False},
        ]},
    ],
    "filters": {"editor": None, "priority": None, "due": None},
}

_SAMPLE_OVERDUE = [
    {"id": 7, "title": "Bluebird - 55 Ridge Ln", "status": "REVISION_REQUESTED",
     "priority": "rush", "due_at": "2026-02-11T00:00:00+00:00",
     "assigned_editor_id": 101, "assigned_editor_name": "Editor One", "needs_info": False},
    {"id": 5, "title": "Canyon - 66 Mesa Dr", "status": "QC", "priority": "rush",
     "due_at": "2026-02-11T00:00:00+00:00", "assigned_editor_id": 101,
     "assigned_editor_name": "Editor One", "needs_info": False},
]

_SAMPLE_QUEUE = [
    {"id": 3, "title": "Acme - 12 Oak St", "status": "EDITING", "priority": "normal",
     "due_at": "2026-02-12T00:00:00+00:00", "assigned_editor_id": 101,
     "assigned_editor_name": "Editor One", "needs_info": False},
    {"id": 7, "title": "Bluebird - 55 Ridge Ln", "status": "REVISION_REQUESTED",
     "priority": "rush", "due_at": "2026-02-11T00:00:00+00:00", "assigned_editor_id": 101,
     "assigned_editor_name": "Editor One", "needs_info": False},
]


def _workload_row(editor_id, name, **counts):
    by_status = {s: 0 for s in ("NEW", "ASSIGNED", "EDITING", "QC",
                                "REVISION_REQUESTED", "READY", "ON_HOLD")}
    by_status.update(counts)
    return {"editor_id": editor_id, "name": name,
            "total": sum(by_status.values()), "by_status": by_status}


_SAMPLE_OPERATIONS = {
    "overdue": _SAMPLE_OVERDUE,
    "overdue_count": len(_SAMPLE_OVERDUE),
    "workload": [
        _workload_row(101, "Editor One", EDITING=1, QC=1, REVISION_REQUESTED=1),
        _workload_row(102, "Editor Two", EDITING=1),
    ],
    "max_workload": 3,
    "average_cycle_time_days": None,
    "average_revisions": None,
    "display": {"average_cycle_time": "N/A", "average_revisions": "N/A"},
    "cycle_times": [],
}

SAMPLES = {
    "board": _SAMPLE_BOARD,
    "projects": {
        "items": [card for column in _SAMPLE_BOARD["columns"] for card in column["projects"]],
        "total": 6,
        "filters": _SAMPLE_BOARD["filters"],
    },
    "overdue": {"projects": _SAMPLE_OVERDUE},
    "queue": {"projects": _SAMPLE_QUEUE},
    "operations": _SAMPLE_OPERATIONS,
}


def sample(view: str) -> dict:
    """A fresh copy of the sample payload for *view*, flagged as fallback."""
    payload = copy.deepcopy(SAMPLES[view])
    payload["fallback"] = True
    payload["banner"] = FALLBACK_BANNER
    return payload


def load_with_fallback(view: str, loader) -> dict:
    """
    Run *loader*; on a store failure serve sample data in demo mode.

    Raises:
        StoreUnavailableError: store failed and DEMO_MODE is off.
    """
    try:
        payload = loader()
    except SQLAlchemyError as exc:
        db.session.rollback()
        if current_app.config.get("DEMO_MODE"):
            logger.warning("Store unavailable for %s view, serving sample data: %s", view, exc)
            return sample(view)
        logger.exception("Store unavailable for %s view", view)
        raise StoreUnavailableError(f"Data store unavailable while loading {view}") from exc
    payload.setdefault("fallback", False)
    return payload
