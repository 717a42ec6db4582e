"""
Operations Dashboard Service

Aggregates production metrics for staff dashboards:
  - Overdue projects (SLA-eligible, open, past due)
  - Editor workload by active status
  - Cycle time (first assignment -> first submission to QC)
  - Average revisions per project
  - Kanban board and editor queue queries

The metric functions are pure: they take project / activity rows (model
instances or any objects with the same attributes) and return plain data.
The ``get_*`` / ``operations_summary`` wrappers load rows from the database.
"""

import logging
from collections import defaultdict
from datetime import datetime, time, timedelta, timezone

from sqlalchemy import or_

from vpm.core.exceptions import ValidationError
from vpm.models.activity import ActivityLogEntry
from vpm.models.auth import User
from vpm.models.project import (
    ACTIVE_STATUSES,
    CLOSED_STATUSES,
    PRIORITIES,
    PROJECT_STATUSES,
    Project,
)
from vpm.utils.helpers import as_utc, isoformat, utcnow

logger = logging.getLogger(__name__)

MS_PER_DAY = 86_400_000
DUE_WINDOWS = {"3d": 3, "7d": 7}
NOT_AVAILABLE = "N/A"


# ── Pure metrics ─────────────────────────────────────────────────────────────

def average(values):
    """Arithmetic mean, or None for an empty input (never 0)."""
    values = list(values)
    if not values:
        return None
    return sum(values) / len(values)


def format_metric(value, suffix: str = "", digits: int = 1) -> str:
    """Render a metric for display; None becomes "N/A"."""
    if value is None:
        return NOT_AVAILABLE
    return f"{value:.{digits}f}{suffix}"


def _due_sort_key(project):
    due = as_utc(project.due_at)
    return (due is None, due or datetime.max.replace(tzinfo=timezone.utc), project.id or 0)


def overdue_projects(projects, now=None) -> list:
    """Open, SLA-eligible projects whose due date has passed, earliest first."""
    now = as_utc(now) or utcnow()
    rows = [
        p for p in projects
        if not p.needs_info
        and p.due_at is not None
        and p.status not in CLOSED_STATUSES
        and as_utc(p.due_at) < now
    ]
    return sorted(rows, key=_due_sort_key)


def editor_workload(editors, projects) -> dict:
    """
    Per-editor project counts over ACTIVE_STATUSES.

    Returns:
        {"rows": [{editor_id, name, total, by_status}], "max_workload": int}
        ``max_workload`` is at least 1 so it can be used as a bar scale.
    """
    counts = defaultdict(lambda: dict.fromkeys(ACTIVE_STATUSES, 0))
    for p in projects:
        if p.assigned_editor_id is None or p.status not in ACTIVE_STATUSES:
            continue
        counts[p.assigned_editor_id][p.status] += 1

    rows = []
    for editor in editors:
        by_status = dict(counts.get(editor.id) or dict.fromkeys(ACTIVE_STATUSES, 0))
        rows.append({
            "editor_id": editor.id,
            "name": editor.display_name,
            "total": sum(by_status.values()),
            "by_status": by_status,
        })
    max_workload = max([1] + [r["total"] for r in rows])
    return {"rows": rows, "max_workload": max_workload}


def cycle_times(projects, activities) -> list[dict]:
    """
    Days from the first PROJECT_ASSIGNED to the first EDITOR_SUBMITTED_QC.

    Projects waiting on client info are skipped, as are projects missing
    either event or whose QC submission precedes the assignment.
    """
    ordered = sorted(
        activities,
        key=lambda a: (as_utc(a.created_at), a.id or 0),
    )
    first_assigned = {}
    first_qc = {}
    for a in ordered:
        if a.action == "PROJECT_ASSIGNED":
            first_assigned.setdefault(a.project_id, as_utc(a.created_at))
        elif a.action == "EDITOR_SUBMITTED_QC":
            first_qc.setdefault(a.project_id, as_utc(a.created_at))

    result = []
    for p in projects:
        if p.needs_info:
            continue
        assigned = first_assigned.get(p.id)
        qc = first_qc.get(p.id)
        if assigned is None or qc is None or qc < assigned:
            continue
        days = (qc - assigned) / timedelta(milliseconds=1) / MS_PER_DAY
        result.append({"project_id": p.id, "title": p.title, "days": days})
    return result


def average_cycle_time(projects, activities):
    return average(row["days"] for row in cycle_times(projects, activities))


def average_revisions(projects):
    return average(p.revision_count or 0 for p in projects)


# ── Database wrappers ────────────────────────────────────────────────────────

def _editors_query():
    return User.query.filter(or_(User.role == "editor", User.role.is_(None)))


def get_editors() -> list[User]:
    return _editors_query().order_by(User.full_name.asc(), User.id.asc()).all()


def get_overdue_projects(now=None) -> list[Project]:
    """Overdue projects; SQL narrows the candidates, Python applies the rule."""
    now = as_utc(now) or utcnow()
    candidates = (
        Project.query
        .filter(
            Project.needs_info.is_(False),
            Project.due_at.isnot(None),
            Project.status.notin_(CLOSED_STATUSES),
        )
        .order_by(Project.due_at.asc())
        .all()
    )
    return overdue_projects(candidates, now)


def _cycle_activities():
    return (
        ActivityLogEntry.query
        .filter(ActivityLogEntry.action.in_(("PROJECT_ASSIGNED", "EDITOR_SUBMITTED_QC")))
        .order_by(ActivityLogEntry.created_at.asc(), ActivityLogEntry.id.asc())
        .all()
    )


def operations_summary(now=None) -> dict:
    """Everything the operations dashboard shows, in one payload."""
    projects = Project.query.all()
    activities = _cycle_activities()
    editors = get_editors()

    overdue = overdue_projects(projects, now)
    workload = editor_workload(editors, projects)
    avg_cycle = average_cycle_time(projects, activities)
    avg_revisions = average_revisions(projects)

    logger.debug(
        "operations_summary: %d projects, %d overdue, %d editors",
        len(projects), len(overdue), len(editors),
    )
    return {
        "overdue": [project_card(p) for p in overdue],
        "overdue_count": len(overdue),
        "workload": workload["rows"],
        "max_workload": workload["max_workload"],
        "average_cycle_time_days": avg_cycle,
        "average_revisions": avg_revisions,
        "display": {
            "average_cycle_time": format_metric(avg_cycle, " days"),
            "average_revisions": format_metric(avg_revisions),
        },
        "cycle_times": cycle_times(projects, activities),
    }


def project_card(p) -> dict:
    editor = getattr(p, "assigned_editor", None)
    return {
        "id": p.id,
        "title": p.title,
        "status": p.status,
        "priority": p.priority,
        "due_at": isoformat(p.due_at),
        "assigned_editor_id": p.assigned_editor_id,
        "assigned_editor_name": editor.display_name if editor else None,
        "needs_info": p.needs_info,
    }


def _start_of_day(now) -> datetime:
    return datetime.combine(now.date(), time.min, tzinfo=timezone.utc)


def parse_board_filters(args) -> dict:
    """Normalise ``editor`` / ``priority`` / ``due`` filters ("all" or blank = none)."""
    args = args or {}

    def _value(key):
        raw = args.get(key)
        if raw is None:
            return None
        raw = str(raw).strip()
        return None if raw in ("", "all") else raw

    filters = {"editor": None, "priority": None, "due": None}
    editor = _value("editor")
    if editor is not None:
        try:
            filters["editor"] = int(editor)
        except ValueError:
            raise ValidationError("Invalid editor filter", details={"editor": "invalid"})
    priority = _value("priority")
    if priority is not None:
        if priority.lower() not in PRIORITIES:
            raise ValidationError("Invalid priority filter", details={"priority": "invalid"})
        filters["priority"] = priority.lower()
    due = _value("due")
    if due is not None:
        if due not in DUE_WINDOWS and due != "overdue":
            raise ValidationError("Invalid due filter", details={"due": "invalid"})
        filters["due"] = due
    return filters


def filtered_projects(filters: dict, now=None) -> list[Project]:
    now = as_utc(now) or utcnow()
    query = Project.query
    if filters.get("editor") is not None:
        query = query.filter(Project.assigned_editor_id == filters["editor"])
    if filters.get("priority"):
        query = query.filter(Project.priority == filters["priority"])

    due = filters.get("due")
    if due:
        start = _start_of_day(now)
        if due in DUE_WINDOWS:
            query = query.filter(
                Project.due_at >= start,
                Project.due_at <= start + timedelta(days=DUE_WINDOWS[due]),
            )
        elif due == "overdue":
            query = query.filter(Project.due_at <= start)

    return (
        query
        .order_by(Project.due_at.is_(None), Project.due_at.asc(), Project.id.asc())
        .all()
    )


def project_board(filters: dict | None = None, now=None) -> dict:
    """Projects grouped into status columns (fixed order, empty columns dropped)."""
    filters = filters or {}
    grouped = {status: [] for status in PROJECT_STATUSES}
    for p in filtered_projects(filters, now):
        if p.status in grouped:
            grouped[p.status].append(project_card(p))
    columns = [
        {"status": status, "projects": items}
        for status, items in grouped.items()
        if items
    ]
    return {"columns": columns, "filters": filters}


def editor_queue(editor) -> list[dict]:
    """An editor's assigned projects, soonest due first (no due date last)."""
    rows = (
        Project.query
        .filter(Project.assigned_editor_id == editor.id)
        .order_by(Project.due_at.is_(None), Project.due_at.asc(), Project.id.asc())
        .all()
    )
    return [project_card(p) for p in rows]
