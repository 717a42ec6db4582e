"""
Tests: project workflow service + action boundary.

Covers:
    - parse_deliverables / parse_tags
    - create_project: role check, required fields, deliverables, client reuse
    - assign_project: NEW -> ASSIGNED only, editor validation
    - update_editor_work: assigned editor only, editor status set, activity
    - qc_decision: ready / delivered / request_revision (+ validation)
    - update_project_details: blank handling, deliverable scoping
    - delete_project: admin only, cascade
    - run_action: rollback on failure, result kinds
"""

from datetime import timedelta

from sqlalchemy.exc import OperationalError

from vpm.core.exceptions import ValidationError
from vpm.core.result import ResultKind, run_action
from vpm.models import db
from vpm.models.activity import ActivityLogEntry
from vpm.models.message import ProjectMessage
from vpm.models.project import Client, Deliverable, Project, Revision
from vpm.services import workflow
from vpm.utils.helpers import utcnow


def _actions(project_id):
    rows = (ActivityLogEntry.query.filter_by(project_id=project_id)
            .order_by(ActivityLogEntry.id).all())
    return [r.action for r in rows]


# ═════════════════════════════════════════════════════════════════════════════
# PARSING
# ═════════════════════════════════════════════════════════════════════════════


class TestParsing:
    def test_deliverables_split_on_commas_and_newlines(self):
        assert workflow.parse_deliverables("Main video, Social cut\nTeaser") == [
            "Main video", "Social cut", "Teaser",
        ]

    def test_deliverables_drop_blanks(self):
        assert workflow.parse_deliverables(" ,\n\n Reel ,") == ["Reel"]
        assert workflow.parse_deliverables("") == []
        assert workflow.parse_deliverables(None) == []

    def test_tags_from_string_or_list(self):
        assert workflow.parse_tags("Color, Audio,,Color") == ["Color", "Audio"]
        assert workflow.parse_tags([" Music ", ""]) == ["Music"]
        assert workflow.parse_tags(None) == []


# ═════════════════════════════════════════════════════════════════════════════
# CREATE
# ═════════════════════════════════════════════════════════════════════════════


class TestCreateProject:
    def test_qc_creates_new_project(self, qc, intake_fields):
        result = run_action(workflow.create_project, qc, intake_fields, "Main video, Social cut\nTeaser")
        assert result.ok
        project = db.session.get(Project, result.value)
        assert project.status == "NEW"
        assert project.priority == "rush"
        assert project.created_by == qc.id
        assert project.revision_count == 0
        assert project.client.name == "Bluebird Homes"
        assert [d.label for d in project.deliverables] == ["Main video", "Social cut", "Teaser"]

    def test_existing_client_is_reused(self, admin, intake_fields):
        run_action(workflow.create_project, admin, intake_fields, "Main video")
        run_action(workflow.create_project, admin, {**intake_fields, "title": "Second"}, "Reel")
        assert Client.query.filter_by(name="Bluebird Homes").count() == 1

    def test_notes_log_created_activity(self, admin, intake_fields):
        result = run_action(workflow.create_project, admin,
                            {**intake_fields, "notes": "Twilight shots first"}, "Main video")
        entry = ActivityLogEntry.query.filter_by(project_id=result.value).one()
        assert entry.action == "PROJECT_CREATED"
        assert entry.meta == {"notes": "Twilight shots first"}

    def test_no_notes_no_activity(self, admin, intake_fields):
        result = run_action(workflow.create_project, admin, intake_fields, "Main video")
        assert _actions(result.value) == []

    def test_default_priority_is_normal(self, admin, intake_fields):
        fields = {**intake_fields}
        fields.pop("priority")
        result = run_action(workflow.create_project, admin, fields, "Main video")
        assert db.session.get(Project, result.value).priority == "normal"

    def test_final_delivery_link_at_intake(self, admin, intake_fields):
        stored = run_action(workflow.create_project, admin,
                            {**intake_fields, "final_delivery_url": " https://final.example.com/1 "},
                            "Main video")
        blank = run_action(workflow.create_project, admin,
                           {**intake_fields, "title": "Second", "final_delivery_url": "  "},
                           "Main video")
        assert db.session.get(Project, stored.value).final_delivery_url == "https://final.example.com/1"
        assert db.session.get(Project, blank.value).final_delivery_url is None

    def test_editor_cannot_create(self, editor, intake_fields):
        result = run_action(workflow.create_project, editor, intake_fields, "Main video")
        assert result.kind is ResultKind.PERMISSION_DENIED
        assert Project.query.count() == 0

    def test_missing_required_fields(self, admin):
        result = run_action(workflow.create_project, admin, {"title": "Only a title"}, "Main video")
        assert result.kind is ResultKind.VALIDATION_ERROR
        assert set(result.details) == {"client_name", "type", "due_at", "raw_footage_url"}
        assert Project.query.count() == 0

    def test_deliverables_required(self, admin, intake_fields):
        result = run_action(workflow.create_project, admin, intake_fields, " , \n")
        assert result.kind is ResultKind.VALIDATION_ERROR
        assert "deliverables" in result.details

    def test_invalid_priority_and_due(self, admin, intake_fields):
        bad_priority = run_action(workflow.create_project, admin,
                                  {**intake_fields, "priority": "urgent"}, "Main video")
        bad_due = run_action(workflow.create_project, admin,
                             {**intake_fields, "due_at": "next tuesday"}, "Main video")
        assert bad_priority.kind is ResultKind.VALIDATION_ERROR
        assert bad_due.kind is ResultKind.VALIDATION_ERROR
        assert Client.query.count() == 0


# ═════════════════════════════════════════════════════════════════════════════
# ASSIGN
# ═════════════════════════════════════════════════════════════════════════════


class TestAssignProject:
    def test_new_becomes_assigned(self, qc, editor, make_project):
        project = make_project()
        due = (utcnow() + timedelta(days=2)).isoformat()
        result = run_action(workflow.assign_project, qc, project.id, editor.id, due)
        assert result.ok
        project = db.session.get(Project, project.id)
        assert project.status == "ASSIGNED"
        assert project.assigned_editor_id == editor.id
        entry = ActivityLogEntry.query.filter_by(project_id=project.id).one()
        assert entry.action == "PROJECT_ASSIGNED"
        assert entry.meta["assigned_editor_id"] == editor.id

    def test_non_new_status_is_untouched(self, qc, editor, editor2, make_project):
        project = make_project(status="EDITING", assigned_editor_id=editor.id)
        result = run_action(workflow.assign_project, qc, project.id, editor2.id, None)
        assert result.ok
        project = db.session.get(Project, project.id)
        assert project.status == "EDITING"
        assert project.assigned_editor_id == editor2.id
        assert project.due_at is None

    def test_clear_editor(self, admin, editor, make_project):
        project = make_project(status="ASSIGNED", assigned_editor_id=editor.id)
        result = run_action(workflow.assign_project, admin, project.id, "", None)
        assert result.ok
        assert db.session.get(Project, project.id).assigned_editor_id is None

    def test_only_editors_can_be_assigned(self, qc, make_project):
        project = make_project()
        result = run_action(workflow.assign_project, qc, project.id, qc.id, None)
        assert result.kind is ResultKind.VALIDATION_ERROR
        assert db.session.get(Project, project.id).status == "NEW"

    def test_unknown_editor(self, qc, make_project):
        project = make_project()
        result = run_action(workflow.assign_project, qc, project.id, 9999, None)
        assert result.kind is ResultKind.NOT_FOUND

    def test_unknown_project(self, qc, editor):
        result = run_action(workflow.assign_project, qc, 9999, editor.id, None)
        assert result.kind is ResultKind.NOT_FOUND

    def test_editor_cannot_assign(self, editor, make_project):
        project = make_project()
        result = run_action(workflow.assign_project, editor, project.id, editor.id, None)
        assert result.kind is ResultKind.PERMISSION_DENIED
        assert db.session.get(Project, project.id).assigned_editor_id is None


# ═════════════════════════════════════════════════════════════════════════════
# EDITOR UPDATE
# ═════════════════════════════════════════════════════════════════════════════


class TestEditorUpdate:
    def test_submit_to_qc(self, editor, make_project):
        project = make_project(status="EDITING", assigned_editor_id=editor.id)
        result = run_action(workflow.update_editor_work, editor, project.id, "QC",
                            "https://preview.example.com/1", None)
        assert result.ok
        project = db.session.get(Project, project.id)
        assert project.status == "QC"
        assert project.preview_url == "https://preview.example.com/1"
        assert _actions(project.id) == ["EDITOR_SUBMITTED_QC"]

    def test_other_status_change(self, editor, make_project):
        project = make_project(status="ASSIGNED", assigned_editor_id=editor.id)
        run_action(workflow.update_editor_work, editor, project.id, "editing", None, None)
        assert db.session.get(Project, project.id).status == "EDITING"
        assert _actions(project.id) == ["EDITOR_STATUS_UPDATED"]

    def test_same_status_logs_nothing(self, editor, make_project):
        project = make_project(status="EDITING", assigned_editor_id=editor.id,
                               preview_url="https://old.example.com")
        result = run_action(workflow.update_editor_work, editor, project.id, "EDITING", "", None)
        assert result.ok
        assert db.session.get(Project, project.id).preview_url is None
        assert _actions(project.id) == []

    def test_status_outside_editor_set(self, editor, make_project):
        project = make_project(status="EDITING", assigned_editor_id=editor.id)
        result = run_action(workflow.update_editor_work, editor, project.id, "READY", None, None)
        assert result.kind is ResultKind.VALIDATION_ERROR
        assert db.session.get(Project, project.id).status == "EDITING"

    def test_unassigned_editor_denied(self, editor, editor2, make_project):
        project = make_project(status="EDITING", assigned_editor_id=editor.id)
        result = run_action(workflow.update_editor_work, editor2, project.id, "QC", None, None)
        assert result.kind is ResultKind.PERMISSION_DENIED

    def test_admin_is_not_the_assigned_editor(self, admin, editor, make_project):
        project = make_project(status="EDITING", assigned_editor_id=editor.id)
        result = run_action(workflow.update_editor_work, admin, project.id, "QC", None, None)
        assert result.kind is ResultKind.PERMISSION_DENIED


# ═════════════════════════════════════════════════════════════════════════════
# QC DECISION
# ═════════════════════════════════════════════════════════════════════════════


class TestQCDecision:
    def test_ready(self, qc, editor, make_project):
        project = make_project(status="QC", assigned_editor_id=editor.id)
        result = run_action(workflow.qc_decision, qc, project.id, "ready")
        assert result.ok
        assert db.session.get(Project, project.id).status == "READY"
        assert _actions(project.id) == ["PROJECT_READY"]
        msg = ProjectMessage.query.filter_by(project_id=project.id).one()
        assert msg.message_type == "system"
        assert msg.sender_id is None

    def test_delivered(self, admin, make_project):
        project = make_project(status="READY")
        run_action(workflow.qc_decision, admin, project.id, "delivered")
        assert db.session.get(Project, project.id).status == "DELIVERED"
        assert _actions(project.id) == ["PROJECT_DELIVERED"]

    def test_request_revision_increments_count(self, qc, editor, make_project):
        project = make_project(status="QC", assigned_editor_id=editor.id, revision_count=1)
        result = run_action(workflow.qc_decision, qc, project.id, "request_revision",
                            tags=["Color", "Audio"], notes="Fix the grade")
        assert result.ok
        project = db.session.get(Project, project.id)
        assert project.status == "REVISION_REQUESTED"
        assert project.revision_count == 2
        revision = Revision.query.filter_by(project_id=project.id).one()
        assert revision.tags == ["Color", "Audio"]
        assert revision.editor_id == editor.id
        assert revision.requested_by == qc.id
        msg = ProjectMessage.query.filter_by(project_id=project.id).one()
        assert msg.message == "Revision requested: Color, Audio."

    def test_revision_without_notes_changes_nothing(self, qc, make_project):
        project = make_project(status="QC")
        result = run_action(workflow.qc_decision, qc, project.id, "request_revision",
                            tags=["Color"], notes="  ")
        assert result.kind is ResultKind.VALIDATION_ERROR
        assert "notes" in result.details
        project = db.session.get(Project, project.id)
        assert project.revision_count == 0
        assert project.status == "QC"
        assert Revision.query.count() == 0
        assert ProjectMessage.query.count() == 0

    def test_revision_without_tags(self, qc, make_project):
        project = make_project(status="QC")
        result = run_action(workflow.qc_decision, qc, project.id, "request_revision",
                            tags=[], notes="Fix it")
        assert result.kind is ResultKind.VALIDATION_ERROR
        assert result.details == {"tags": "required"}

    def test_unknown_decision(self, qc, make_project):
        project = make_project(status="QC")
        result = run_action(workflow.qc_decision, qc, project.id, "approve")
        assert result.kind is ResultKind.VALIDATION_ERROR

    def test_editor_cannot_decide(self, editor, make_project):
        project = make_project(status="QC", assigned_editor_id=editor.id)
        result = run_action(workflow.qc_decision, editor, project.id, "ready")
        assert result.kind is ResultKind.PERMISSION_DENIED
        assert db.session.get(Project, project.id).status == "QC"


# ═════════════════════════════════════════════════════════════════════════════
# DETAILS
# ═════════════════════════════════════════════════════════════════════════════


class TestUpdateDetails:
    def test_creator_can_edit(self, qc, make_project):
        project = make_project(created_by=qc, notes="old notes")
        result = run_action(workflow.update_project_details, qc, project.id,
                            {"title": "  ", "notes": "", "priority": "rush", "needs_info": "true"})
        assert result.ok
        project = db.session.get(Project, project.id)
        assert project.title == "Acme - 12 Oak St"
        assert project.notes is None
        assert project.priority == "rush"
        assert project.needs_info is True
        assert _actions(project.id) == ["PROJECT_UPDATED"]

    def test_absent_keys_untouched(self, admin, make_project):
        project = make_project(notes="keep me")
        run_action(workflow.update_project_details, admin, project.id, {"address": "12 Oak St"})
        project = db.session.get(Project, project.id)
        assert project.notes == "keep me"
        assert project.address == "12 Oak St"

    def test_blank_values_clear_or_keep(self, admin, make_project):
        project = make_project(address="12 Oak St",
                               brand_assets_url="https://drive.example.com/brand/1",
                               music_assets_url="https://drive.example.com/music/1")
        result = run_action(workflow.update_project_details, admin, project.id, {
            "address": "",
            "brand_assets_url": " ",
            "music_assets_url": "",
            "type": "",
            "raw_footage_url": "  ",
            "priority": "",
        })
        assert result.ok
        project = db.session.get(Project, project.id)
        assert project.address is None
        assert project.brand_assets_url is None
        assert project.music_assets_url is None
        assert project.type == "Listing video"
        assert project.raw_footage_url == "https://drive.example.com/raw/1"
        assert project.priority == "normal"

    def test_other_qc_denied(self, qc, make_user, make_project):
        project = make_project(created_by=qc)
        other = make_user("qc")
        result = run_action(workflow.update_project_details, other, project.id, {"title": "Mine"})
        assert result.kind is ResultKind.PERMISSION_DENIED

    def test_deliverables_update_and_insert(self, admin, make_project):
        project = make_project(deliverables=("Main video",))
        existing = Deliverable.query.filter_by(project_id=project.id).one()
        rows = [
            {"id": existing.id, "label": "Main video 4K", "completed": True},
            {"label": "Teaser", "specs": "15s"},
            {"label": "   "},
        ]
        result = run_action(workflow.update_project_details, admin, project.id, {}, rows)
        assert result.ok
        labels = sorted(d.label for d in Deliverable.query.filter_by(project_id=project.id))
        assert labels == ["Main video 4K", "Teaser"]
        assert db.session.get(Deliverable, existing.id).completed is True

    def test_foreign_deliverable_rolls_back(self, admin, make_project):
        project = make_project(title="One")
        other = make_project(title="Two")
        foreign = Deliverable.query.filter_by(project_id=other.id).one()
        result = run_action(workflow.update_project_details, admin, project.id,
                            {"title": "Renamed"}, [{"id": foreign.id, "label": "Stolen"}])
        assert result.kind is ResultKind.NOT_FOUND
        assert db.session.get(Project, project.id).title == "One"
        assert db.session.get(Deliverable, foreign.id).label == "Main video"


# ═════════════════════════════════════════════════════════════════════════════
# DELETE
# ═════════════════════════════════════════════════════════════════════════════


class TestDeleteProject:
    def test_non_admin_denied_and_row_intact(self, qc, make_project):
        project = make_project(created_by=qc)
        result = run_action(workflow.delete_project, qc, project.id)
        assert result.kind is ResultKind.PERMISSION_DENIED
        assert db.session.get(Project, project.id) is not None

    def test_admin_delete_cascades(self, admin, qc, make_project):
        project = make_project(status="QC")
        run_action(workflow.qc_decision, qc, project.id, "request_revision",
                   tags=["Color"], notes="Warmer")
        result = run_action(workflow.delete_project, admin, project.id)
        assert result.ok
        assert Project.query.count() == 0
        assert Deliverable.query.count() == 0
        assert Revision.query.count() == 0
        assert ActivityLogEntry.query.count() == 0
        assert ProjectMessage.query.count() == 0

    def test_missing_project(self, admin):
        result = run_action(workflow.delete_project, admin, 9999)
        assert result.kind is ResultKind.NOT_FOUND


# ═════════════════════════════════════════════════════════════════════════════
# ACTION BOUNDARY
# ═════════════════════════════════════════════════════════════════════════════


class TestRunAction:
    def test_partial_writes_rolled_back(self):
        def _action():
            db.session.add(Client(name="Ghost"))
            db.session.flush()
            raise ValidationError("nope", details={"x": "bad"})

        result = run_action(_action)
        assert result.kind is ResultKind.VALIDATION_ERROR
        assert result.details == {"x": "bad"}
        assert Client.query.count() == 0

    def test_store_error(self):
        def _action():
            raise OperationalError("SELECT 1", {}, Exception("db down"))

        result = run_action(_action)
        assert result.kind is ResultKind.STORE_ERROR
        assert not result.ok

    def test_success_value(self):
        result = run_action(lambda: 42)
        assert result.ok
        assert result.value == 42
