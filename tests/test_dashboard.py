"""
Tests: operations dashboard metrics, board and queue.

Covers:
    - average / format_metric (None, never 0)
    - overdue_projects: needs_info, closed and undated projects excluded
    - editor_workload: active statuses only, max_workload floor
    - cycle_times: first assignment -> first QC submission
    - parse_board_filters / project_board / editor_queue
    - operations_summary on empty and populated stores
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from vpm.core.exceptions import ValidationError
from vpm.core.result import run_action
from vpm.services import dashboard_service as ds
from vpm.services import workflow

NOW = datetime(2030, 1, 10, 15, 0, tzinfo=timezone.utc)


def _p(pid, **kw):
    defaults = {
        "id": pid, "title": f"P{pid}", "status": "EDITING", "priority": "normal",
        "due_at": None, "needs_info": False, "assigned_editor_id": None,
        "revision_count": 0,
    }
    defaults.update(kw)
    return SimpleNamespace(**defaults)


def _a(aid, project_id, action, created_at):
    return SimpleNamespace(id=aid, project_id=project_id, action=action, created_at=created_at)


# ═════════════════════════════════════════════════════════════════════════════
# PURE METRICS
# ═════════════════════════════════════════════════════════════════════════════


class TestAverage:
    def test_empty_is_none(self):
        assert ds.average([]) is None

    def test_mean(self):
        assert ds.average([4, 6]) == 5

    def test_format_metric(self):
        assert ds.format_metric(None) == "N/A"
        assert ds.format_metric(2.0, " days") == "2.0 days"
        assert ds.format_metric(1.26) == "1.3"


class TestOverdue:
    def test_needs_info_is_ignored(self):
        projects = [
            _p(1, due_at=NOW - timedelta(days=1), needs_info=True),
            _p(2, due_at=NOW - timedelta(days=1)),
        ]
        assert [p.id for p in ds.overdue_projects(projects, NOW)] == [2]

    def test_closed_and_undated_excluded(self):
        projects = [
            _p(1, due_at=NOW - timedelta(days=3), status="DELIVERED"),
            _p(2, due_at=NOW - timedelta(days=3), status="ARCHIVED"),
            _p(3, due_at=None),
            _p(4, due_at=NOW + timedelta(hours=1)),
            _p(5, due_at=NOW - timedelta(hours=1), status="READY"),
        ]
        assert [p.id for p in ds.overdue_projects(projects, NOW)] == [5]

    def test_sorted_by_due_date(self):
        projects = [
            _p(1, due_at=NOW - timedelta(days=1)),
            _p(2, due_at=NOW - timedelta(days=5)),
            _p(3, due_at=NOW - timedelta(days=2)),
        ]
        assert [p.id for p in ds.overdue_projects(projects, NOW)] == [2, 3, 1]

    def test_naive_datetimes_treated_as_utc(self):
        projects = [_p(1, due_at=(NOW - timedelta(minutes=5)).replace(tzinfo=None))]
        assert len(ds.overdue_projects(projects, NOW)) == 1


class TestWorkload:
    def test_counts_active_statuses_only(self):
        editors = [SimpleNamespace(id=1, display_name="Ed"), SimpleNamespace(id=2, display_name="Em")]
        projects = [
            _p(1, assigned_editor_id=1, status="EDITING"),
            _p(2, assigned_editor_id=1, status="QC"),
            _p(3, assigned_editor_id=1, status="DELIVERED"),
            _p(4, assigned_editor_id=2, status="ON_HOLD"),
            _p(5, assigned_editor_id=None, status="NEW"),
        ]
        result = ds.editor_workload(editors, projects)
        rows = {r["editor_id"]: r for r in result["rows"]}
        assert rows[1]["total"] == 2
        assert rows[1]["by_status"]["QC"] == 1
        assert "DELIVERED" not in rows[1]["by_status"]
        assert rows[2]["total"] == 1
        assert result["max_workload"] == 2

    def test_max_workload_floor_is_one(self):
        editors = [SimpleNamespace(id=1, display_name="Ed")]
        result = ds.editor_workload(editors, [])
        assert result["rows"][0]["total"] == 0
        assert result["max_workload"] == 1


class TestCycleTime:
    def test_two_day_cycle(self):
        t0 = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)
        activities = [
            _a(1, 1, "PROJECT_ASSIGNED", t0),
            _a(2, 1, "EDITOR_SUBMITTED_QC", t0 + timedelta(days=2)),
        ]
        rows = ds.cycle_times([_p(1)], activities)
        assert rows == [{"project_id": 1, "title": "P1", "days": 2.0}]
        assert ds.average_cycle_time([_p(1)], activities) == 2.0

    def test_submission_before_assignment_excluded(self):
        t0 = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)
        activities = [
            _a(1, 1, "EDITOR_SUBMITTED_QC", t0),
            _a(2, 1, "PROJECT_ASSIGNED", t0 + timedelta(days=2)),
        ]
        assert ds.cycle_times([_p(1)], activities) == []
        assert ds.average_cycle_time([_p(1)], activities) is None

    def test_first_events_win(self):
        t0 = datetime(2030, 1, 1, tzinfo=timezone.utc)
        activities = [
            _a(3, 1, "PROJECT_ASSIGNED", t0 + timedelta(days=1)),
            _a(1, 1, "PROJECT_ASSIGNED", t0),
            _a(2, 1, "EDITOR_SUBMITTED_QC", t0 + timedelta(days=3)),
            _a(4, 1, "EDITOR_SUBMITTED_QC", t0 + timedelta(days=9)),
        ]
        assert ds.cycle_times([_p(1)], activities)[0]["days"] == 3.0

    def test_needs_info_and_missing_events_skipped(self):
        t0 = datetime(2030, 1, 1, tzinfo=timezone.utc)
        activities = [
            _a(1, 1, "PROJECT_ASSIGNED", t0),
            _a(2, 1, "EDITOR_SUBMITTED_QC", t0 + timedelta(days=1)),
            _a(3, 2, "PROJECT_ASSIGNED", t0),
        ]
        projects = [_p(1, needs_info=True), _p(2)]
        assert ds.cycle_times(projects, activities) == []

    def test_average_revisions(self):
        assert ds.average_revisions([]) is None
        assert ds.average_revisions([_p(1, revision_count=1), _p(2, revision_count=2)]) == 1.5


# ═════════════════════════════════════════════════════════════════════════════
# FILTERS
# ═════════════════════════════════════════════════════════════════════════════


class TestBoardFilters:
    def test_all_and_blank_mean_no_filter(self):
        assert ds.parse_board_filters({"editor": "all", "priority": "", "due": None}) == {
            "editor": None, "priority": None, "due": None,
        }

    def test_valid_values(self):
        filters = ds.parse_board_filters({"editor": "3", "priority": "RUSH", "due": "7d"})
        assert filters == {"editor": 3, "priority": "rush", "due": "7d"}

    @pytest.mark.parametrize("args", [
        {"editor": "bob"},
        {"priority": "urgent"},
        {"due": "30d"},
    ])
    def test_invalid_values(self, args):
        with pytest.raises(ValidationError):
            ds.parse_board_filters(args)


# ═════════════════════════════════════════════════════════════════════════════
# DATABASE QUERIES
# ═════════════════════════════════════════════════════════════════════════════


class TestBoardQueries:
    def test_board_columns_in_status_order(self, make_project):
        make_project(title="Q", status="QC")
        make_project(title="N", status="NEW")
        make_project(title="E", status="EDITING")
        board = ds.project_board({}, NOW)
        assert [c["status"] for c in board["columns"]] == ["NEW", "EDITING", "QC"]
        assert board["columns"][0]["projects"][0]["title"] == "N"

    def test_due_windows(self, make_project):
        make_project(title="soon", due_at=datetime(2030, 1, 12, tzinfo=timezone.utc))
        make_project(title="week", due_at=datetime(2030, 1, 16, tzinfo=timezone.utc))
        make_project(title="late", due_at=datetime(2030, 1, 8, tzinfo=timezone.utc))
        make_project(title="undated", due_at=None)

        def titles(due):
            return [p.title for p in ds.filtered_projects({"due": due}, NOW)]

        assert titles("3d") == ["soon"]
        assert titles("7d") == ["soon", "week"]
        assert titles("overdue") == ["late"]
        assert [p.title for p in ds.filtered_projects({}, NOW)] == ["late", "soon", "week", "undated"]

    def test_editor_and_priority_filters(self, editor, make_project):
        make_project(title="mine", assigned_editor_id=editor.id, priority="rush")
        make_project(title="mine normal", assigned_editor_id=editor.id)
        make_project(title="other", priority="rush")
        rows = ds.filtered_projects({"editor": editor.id, "priority": "rush"}, NOW)
        assert [p.title for p in rows] == ["mine"]

    def test_editor_queue_nulls_last(self, editor, make_project):
        make_project(title="undated", assigned_editor_id=editor.id, due_at=None)
        make_project(title="later", assigned_editor_id=editor.id, due_at=NOW + timedelta(days=4))
        make_project(title="sooner", assigned_editor_id=editor.id, due_at=NOW + timedelta(days=1))
        make_project(title="not mine", due_at=NOW)
        queue = ds.editor_queue(editor)
        assert [c["title"] for c in queue] == ["sooner", "later", "undated"]
        assert queue[0]["assigned_editor_name"] == "Eddie Editor"

    def test_get_overdue_projects(self, make_project):
        make_project(title="late", due_at=NOW - timedelta(days=1))
        make_project(title="late but waiting", due_at=NOW - timedelta(days=1), needs_info=True)
        make_project(title="late but shipped", due_at=NOW - timedelta(days=1), status="DELIVERED")
        assert [p.title for p in ds.get_overdue_projects(NOW)] == ["late"]


class TestOperationsSummary:
    def test_empty_store(self):
        summary = ds.operations_summary(NOW)
        assert summary["overdue_count"] == 0
        assert summary["average_cycle_time_days"] is None
        assert summary["average_revisions"] is None
        assert summary["display"] == {"average_cycle_time": "N/A", "average_revisions": "N/A"}
        assert summary["max_workload"] == 1

    def test_populated_store(self, qc, editor, make_project):
        project = make_project(due_at=NOW - timedelta(days=2), revision_count=2)
        run_action(workflow.assign_project, qc, project.id, editor.id, NOW - timedelta(days=2))
        run_action(workflow.update_editor_work, editor, project.id, "QC", None, None)
        make_project(title="fresh", due_at=NOW + timedelta(days=3))

        summary = ds.operations_summary(NOW)
        assert summary["overdue_count"] == 1
        assert summary["overdue"][0]["id"] == project.id
        assert summary["average_revisions"] == 1.0
        assert summary["average_cycle_time_days"] is not None
        assert len(summary["cycle_times"]) == 1
        workload = {r["editor_id"]: r["total"] for r in summary["workload"]}
        assert workload[editor.id] == 1
