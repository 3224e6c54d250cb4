"""
Tests: RACI assignment resolver and checklist threads.
"""

import pytest

from docmanager.services.raci_service import classify_raci_group, get_user_assigned_owner_ids
from docmanager.services.thread_service import get_threads_by_checklist_ids
from seed_helpers import (
    USER_ID,
    commit,
    make_activity,
    make_process,
    make_project,
    make_raci,
    make_stagegate,
    make_subactivity,
    make_task,
    make_thread,
)


# ═════════════════════════════════════════════════════════════════════════════
# RACI
# ═════════════════════════════════════════════════════════════════════════════


class TestClassifyGroup:
    @pytest.mark.parametrize("label,kind", [
        ("ProcessRaci", "process"),
        ("project-task", "task"),
        ("SubActivity", "subactivity"),
        ("subactivityraci", "subactivity"),
        ("ActivityRaci", "activity"),
        ("", None),
        (None, None),
        ("Milestone", None),
    ])
    def test_labels(self, label, kind):
        assert classify_raci_group(label) == kind


class TestAssignedOwners:
    def test_resolves_each_level_including_legacy_columns(self, store):
        process = make_process(make_stagegate(make_project()), "P")
        task = make_task(process, "T")
        activity = make_activity(task, "A")
        sub = make_subactivity(activity, "S")
        make_raci("process", process)
        make_raci("task", task, legacy=True)
        make_raci("activity", activity, group="activity")
        make_raci("subactivity", sub, group="SubActivityRaci")
        make_raci("process", make_process(make_stagegate(make_project(pmweb_project_id=9)), "Other"),
                  assignee_id=999)
        commit()

        owners = get_user_assigned_owner_ids(store, USER_ID)

        assert owners.process == {process.id}
        assert owners.task == {task.id}
        assert owners.activity == {activity.id}
        assert owners.subactivity == {sub.id}

    def test_no_assignments(self, store):
        owners = get_user_assigned_owner_ids(store, USER_ID)
        assert owners.process == set() and owners.subactivity == set()


# ═════════════════════════════════════════════════════════════════════════════
# Threads
# ═════════════════════════════════════════════════════════════════════════════


class TestThreads:
    def test_attachments_merged_with_legacy_fallback(self, store):
        make_thread("c1", created_by="ana", participants=["ana", "ben"],
                    sample_attachments=[{"name": "s.pdf"}], thread_attachements=[{"name": "t.pdf"}])
        make_thread("c2", created_by="ben", sample_attachements=[{"name": "old.pdf"}])
        make_thread("c3", created_by="zed")
        commit()

        threads = get_threads_by_checklist_ids(store, ["c1", "c2"])

        assert threads == [
            {
                "checklistIdStr": "c1",
                "createdBy": "ana",
                "participants": ["ana", "ben"],
                "attachments": [{"name": "s.pdf"}, {"name": "t.pdf"}],
            },
            {
                "checklistIdStr": "c2",
                "createdBy": "ben",
                "participants": [],
                "attachments": [{"name": "old.pdf"}],
            },
        ]

    def test_empty_input(self, store):
        assert get_threads_by_checklist_ids(store, []) == []
