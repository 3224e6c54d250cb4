"""
Tests: document tree builder.

Covers:
  1. phase_slug / locale_sort_key helpers
  2. group_hierarchy_rows: community / phase fallbacks, owner dedup, names
  3. assemble_tree: leaf shape, dedup, pruning, sorting, idempotence
  4. build_document_tree end to end against the test database
"""

import copy

import pytest

from docmanager.core.exceptions import ValidationError
from docmanager.services import file_service
from docmanager.services.checklist_service import OWNER_KINDS, ChecklistIndex
from docmanager.services.document_tree import (
    KIND_RANK,
    assemble_tree,
    build_document_tree,
    build_leaf_node,
    group_hierarchy_rows,
    locale_sort_key,
    phase_slug,
    restrict_owners,
)
from seed_helpers import (
    PMWEB_PROJECT_ID,
    USER_ID,
    commit,
    make_activity,
    make_checklist,
    make_file,
    make_phase_details,
    make_process,
    make_process_with_files,
    make_project,
    make_raci,
    make_stagegate,
    make_subactivity,
    make_task,
)


# ── Helpers ───────────────────────────────────────────────────────────────────


def _row(community="North", phase="Construction", project_name="North Field", **owners):
    """Hierarchy row; owners given as process=("p1", "Drill"), task=..."""
    row = {"community": community, "phaseName": phase, "projectName": project_name}
    for kind in OWNER_KINDS:
        owner_id, name = owners.get(kind, (None, None))
        row[f"{kind}Id"] = owner_id
        row[f"{kind}Name"] = name
    return row


def _index(**by_kind) -> ChecklistIndex:
    index = ChecklistIndex()
    for kind, owners in by_kind.items():
        index.by_kind[kind] = owners
        for cids in owners.values():
            index.all_ids.update(cids)
    return index


def _files(**by_checklist) -> dict:
    """checklist id → [{fileId, fileName}] from c1=[("f1", "a.pdf")]."""
    return {
        cid: [{"fileId": fid, "fileName": name} for fid, name in items]
        for cid, items in by_checklist.items()
    }


def _walk_leaves(tree):
    for phases in tree.values():
        for phase in phases:
            yield from phase["children"]


# ═════════════════════════════════════════════════════════════════════════════
# 1. Helpers
# ═════════════════════════════════════════════════════════════════════════════


class TestPhaseSlug:
    def test_lowercases_and_dashes_whitespace(self):
        assert phase_slug("  Early   Works ") == "early-works"

    def test_missing_name_uses_site_wide(self):
        assert phase_slug(None) == "site-wide"
        assert phase_slug("") == "site-wide"


class TestLocaleSortKey:
    def test_case_and_accent_insensitive_primary_order(self):
        names = ["delta", "Éclair", "beta", "Alpha"]
        assert sorted(names, key=locale_sort_key) == ["Alpha", "beta", "delta", "Éclair"]

    def test_lowercase_sorts_before_uppercase_on_tie(self):
        assert sorted(["Alpha", "alpha"], key=locale_sort_key) == ["alpha", "Alpha"]

    def test_none_is_empty(self):
        assert locale_sort_key(None) == ("", "", "")


# ═════════════════════════════════════════════════════════════════════════════
# 2. Grouping
# ═════════════════════════════════════════════════════════════════════════════


class TestGroupHierarchyRows:
    def test_community_falls_back_to_project_name_then_default(self):
        skeleton = group_hierarchy_rows([
            _row(community=None, project_name="  West Basin "),
            _row(community=None, project_name=None),
        ])
        assert list(skeleton.communities) == ["West Basin", "Community"]

    def test_phase_defaults_to_site_wide(self):
        skeleton = group_hierarchy_rows([_row(phase=None)])
        group = skeleton.communities["North"][0]
        assert (group.phase_id, group.phase_name) == ("site-wide", "Site Wide")

    def test_rows_with_same_slug_share_one_group(self):
        skeleton = group_hierarchy_rows([
            _row(phase="Early Works", process=("p1", "A")),
            _row(phase="Early  Works", process=("p2", "B")),
        ])
        groups = skeleton.communities["North"]
        assert len(groups) == 1
        assert list(groups[0].owners["process"]) == ["p1", "p2"]

    def test_owner_ids_deduplicated_in_first_seen_order(self):
        skeleton = group_hierarchy_rows([
            _row(process=("p2", "Second"), task=("t1", "T")),
            _row(process=("p1", "First")),
            _row(process=("p2", "Second again"), task=("t1", "T")),
        ])
        assert skeleton.owner_ids("process") == ["p2", "p1"]
        assert skeleton.owner_ids("task") == ["t1"]
        assert skeleton.owner_names["process"]["p2"] == "Second"

    def test_missing_levels_are_skipped(self):
        skeleton = group_hierarchy_rows([_row()])
        assert all(skeleton.owner_ids(kind) == [] for kind in OWNER_KINDS)
        assert len(skeleton.communities["North"]) == 1

    def test_restrict_owners_keeps_only_allowed(self):
        skeleton = group_hierarchy_rows([
            _row(process=("p1", "A"), task=("t1", "T")),
            _row(process=("p2", "B")),
        ])
        restrict_owners(skeleton, {"process": {"p2"}})
        assert skeleton.owner_ids("process") == ["p2"]
        assert skeleton.owner_ids("task") == []


# ═════════════════════════════════════════════════════════════════════════════
# 3. Assembly
# ═════════════════════════════════════════════════════════════════════════════


class TestBuildLeafNode:
    def test_leaf_shape(self):
        leaf = build_leaf_node("p1", "Drill", ["c1"], _files(c1=[("f1", "a.pdf")]))
        assert leaf == {
            "id": "p1",
            "name": "Drill",
            "checklistId": "c1",
            "checklistIdStr": "c1",
            "documents": {
                "checklist": [{"bucket": "f1", "displayName": "a.pdf", "key": "f1"}],
                "general": [],
                "final": [{"bucket": "f1", "displayName": "a.pdf", "key": "f1"}],
            },
            "fileCount": 1,
        }

    def test_name_falls_back_to_id(self):
        assert build_leaf_node("p1", None, [], {})["name"] == "p1"

    def test_no_checklists(self):
        leaf = build_leaf_node("p1", "Drill", [], {})
        assert leaf["checklistId"] is None
        assert leaf["fileCount"] == 0
        assert leaf["documents"]["final"] == []

    def test_same_file_under_two_checklists_counted_once(self):
        files = _files(c1=[("f1", "a.pdf")], c2=[("f1", "a.pdf"), ("f2", "b.xlsx")])
        leaf = build_leaf_node("p1", "Drill", ["c1", "c2", "c1"], files)
        assert [d["key"] for d in leaf["documents"]["final"]] == ["f1", "f2"]
        assert leaf["fileCount"] == 2


class TestAssembleTree:
    def test_two_checklists_two_files(self):
        skeleton = group_hierarchy_rows([_row(process=("p1", "Drill"))])
        tree = assemble_tree(
            skeleton,
            _index(process={"p1": ["c1", "c2"]}),
            _files(c1=[("f1", "a.pdf")], c2=[("f2", "b.docx")]),
        )
        phase = tree["North"][0]
        assert phase["id"] == "construction"
        assert phase["fileCount"] == 2
        assert phase["children"][0]["fileCount"] == 2

    def test_pruning_drops_empty_leaves_phases_and_communities(self):
        skeleton = group_hierarchy_rows([
            _row(community="North", phase="A", process=("p1", "Full")),
            _row(community="North", phase="A", process=("p2", "Empty")),
            _row(community="North", phase="B", process=("p3", "Empty too")),
            _row(community="South", phase="C", process=("p4", "Nothing")),
        ])
        tree = assemble_tree(skeleton, _index(process={"p1": ["c1"]}), _files(c1=[("f1", "a.pdf")]))

        assert list(tree) == ["North"]
        assert [p["name"] for p in tree["North"]] == ["A"]
        assert [leaf["id"] for leaf in tree["North"][0]["children"]] == ["p1"]

    def test_pruning_disabled_keeps_zero_counts(self):
        skeleton = group_hierarchy_rows([
            _row(community="South", phase="C", process=("p4", "Nothing")),
        ])
        tree = assemble_tree(skeleton, _index(), {}, prune=False)
        phase = tree["South"][0]
        assert phase["fileCount"] == 0
        assert phase["children"][0]["fileCount"] == 0

    def test_children_sorted_by_kind_rank_then_name(self):
        skeleton = group_hierarchy_rows([
            _row(
                process=("p1", "zeta"),
                task=("t1", "alpha"),
                activity=("a1", "Beta"),
                subactivity=("s1", "aardvark"),
            ),
            _row(process=("p2", "Alpha"), task=("t2", "beta")),
        ])
        tree = assemble_tree(skeleton, _index(), {}, prune=False)
        names = [leaf["name"] for leaf in tree["North"][0]["children"]]
        assert names == ["Alpha", "zeta", "alpha", "beta", "Beta", "aardvark"]

    def test_phases_sorted_by_file_count_desc_then_name(self):
        skeleton = group_hierarchy_rows([
            _row(phase="Bravo", process=("p1", "X")),
            _row(phase="Alpha", process=("p2", "Y")),
            _row(phase="Charlie", process=("p3", "Z")),
        ])
        index = _index(process={"p1": ["c1"], "p2": ["c2"], "p3": ["c3"]})
        files = _files(
            c1=[("f1", "a.pdf")],
            c2=[("f2", "b.pdf")],
            c3=[("f3", "c.pdf"), ("f4", "d.pdf")],
        )
        tree = assemble_tree(skeleton, index, files)
        assert [p["name"] for p in tree["North"]] == ["Charlie", "Alpha", "Bravo"]

    def test_communities_keep_first_appearance_order(self):
        skeleton = group_hierarchy_rows([
            _row(community="Zulu", process=("p1", "X")),
            _row(community="Alpha", process=("p2", "Y")),
        ])
        tree = assemble_tree(skeleton, _index(), {}, prune=False)
        assert list(tree) == ["Zulu", "Alpha"]

    def test_idempotent(self):
        rows = [
            _row(phase="A", process=("p1", "One"), task=("t1", "Two")),
            _row(phase="B", process=("p2", "Three")),
        ]
        index = _index(process={"p1": ["c1"], "p2": ["c2"]}, task={"t1": ["c3"]})
        files = _files(c1=[("f1", "a.pdf")], c2=[("f2", "b.pdf")], c3=[("f3", "c.pdf")])

        first = assemble_tree(group_hierarchy_rows(copy.deepcopy(rows)), index, files)
        second = assemble_tree(group_hierarchy_rows(copy.deepcopy(rows)), index, files)
        assert first == second

    def test_file_count_matches_final_documents_and_no_internal_keys(self):
        skeleton = group_hierarchy_rows([
            _row(process=("p1", "One"), task=("t1", "Two")),
        ])
        index = _index(process={"p1": ["c1", "c2"]}, task={"t1": ["c2"]})
        files = _files(c1=[("f1", "a.pdf"), ("f1", "a.pdf")], c2=[("f2", "b.pdf")])
        tree = assemble_tree(skeleton, index, files)

        for leaf in _walk_leaves(tree):
            assert leaf["fileCount"] == len(leaf["documents"]["final"])
            assert len({d["key"] for d in leaf["documents"]["final"]}) == leaf["fileCount"]
            assert not any(key.startswith("_") for key in leaf)
        phase = tree["North"][0]
        assert phase["fileCount"] == sum(c["fileCount"] for c in phase["children"])
        assert set(phase) == {"id", "name", "children", "fileCount"}

    def test_kind_rank_table(self):
        assert sorted(KIND_RANK, key=KIND_RANK.get) == list(OWNER_KINDS)


# ═════════════════════════════════════════════════════════════════════════════
# 4. build_document_tree against the database
# ═════════════════════════════════════════════════════════════════════════════


class TestBuildDocumentTree:
    def test_one_process_two_checklists(self, store):
        make_process_with_files(file_names=("a.pdf", "b.docx"))
        commit()

        tree = build_document_tree(store, USER_ID)

        assert list(tree) == ["North Field"]
        phase = tree["North Field"][0]
        assert (phase["id"], phase["name"], phase["fileCount"]) == ("site-wide", "Site Wide", 2)
        leaf = phase["children"][0]
        assert leaf["name"] == "Drilling"
        assert leaf["fileCount"] == 2
        assert {d["displayName"] for d in leaf["documents"]["final"]} == {"a.pdf", "b.docx"}

    def test_stagegate_without_processes(self, store):
        project = make_project()
        make_stagegate(project)
        commit()

        assert build_document_tree(store, USER_ID) == {}

        tree = build_document_tree(store, USER_ID, prune=False)
        assert tree == {
            "North Field": [{"id": "site-wide", "name": "Site Wide", "children": [], "fileCount": 0}],
        }

    def test_unknown_user_yields_empty_tree(self, store):
        make_process_with_files()
        commit()
        assert build_document_tree(store, 999) == {}

    def test_numeric_string_user_id_accepted(self, store):
        make_process_with_files()
        commit()
        assert build_document_tree(store, str(USER_ID)) != {}

    def test_non_numeric_user_id_rejected(self, store):
        with pytest.raises(ValidationError):
            build_document_tree(store, "abc")

    def test_inactive_stagegates_are_ignored(self, store):
        project = make_project()
        gate = make_stagegate(project, active=False)
        process = make_process(gate, "Hidden")
        checklist = make_checklist("process", process)
        make_file("process", checklist.id, "hidden.pdf")
        commit()

        assert build_document_tree(store, USER_ID) == {}

    def test_phase_details_override_project_labels(self, store):
        project = make_project(community="Project Community", phase="Project Phase")
        make_phase_details(community="Asset Community", phase="Execute")
        gate = make_stagegate(project)
        process = make_process(gate, "Drilling")
        make_file("process", make_checklist("process", process).id, "plan.pdf")
        commit()

        tree = build_document_tree(store, USER_ID)
        assert list(tree) == ["Asset Community"]
        assert tree["Asset Community"][0]["id"] == "execute"

    def test_all_four_levels_and_extension_filter(self, store):
        project = make_project()
        gate = make_stagegate(project)
        process = make_process(gate, "P")
        task = make_task(process, "T")
        activity = make_activity(task, "A")
        sub = make_subactivity(activity, "S")
        for kind, owner in (("process", process), ("task", task), ("activity", activity), ("subactivity", sub)):
            checklist = make_checklist(kind, owner)
            make_file(kind, checklist.id, f"{kind}.PDF")
            make_file(kind, checklist.id, f"{kind}.png")
        commit()

        tree = build_document_tree(store, USER_ID)
        children = tree["North Field"][0]["children"]
        assert [c["name"] for c in children] == ["P", "T", "A", "S"]
        assert all(c["fileCount"] == 1 for c in children)

    def test_file_shared_across_tables_counted_once(self, store):
        project = make_project()
        gate = make_stagegate(project)
        process = make_process(gate, "P")
        checklist = make_checklist("process", process)
        # same canonical file referenced from two file tables
        make_file("process", checklist.id, "shared.pdf", file_id="file-1")
        make_file("task", checklist.id, "shared.pdf", file_id="file-1")
        commit()

        leaf = build_document_tree(store, USER_ID)["North Field"][0]["children"][0]
        assert leaf["fileCount"] == 1
        assert leaf["documents"]["final"] == [{"bucket": "file-1", "displayName": "shared.pdf", "key": "file-1"}]

    def test_project_filter(self, store):
        make_process_with_files()
        other = make_project(pmweb_project_id=7002, name="South Field")
        make_process_with_files(project=other, process_name="Survey")
        commit()

        tree = build_document_tree(store, USER_ID, pmweb_project_id=7002)
        assert list(tree) == ["South Field"]
        assert list(build_document_tree(store, USER_ID, PMWEB_PROJECT_ID)) == ["North Field"]

    def test_assigned_only_restricts_to_raci_owners(self, store):
        project = make_project()
        gate = make_stagegate(project)
        mine = make_process(gate, "Mine")
        theirs = make_process(gate, "Theirs")
        for process in (mine, theirs):
            make_file("process", make_checklist("process", process).id, "doc.pdf")
        make_raci("process", mine)
        commit()

        everything = build_document_tree(store, USER_ID)
        assert len(everything["North Field"][0]["children"]) == 2

        assigned = build_document_tree(store, USER_ID, assigned_only=True)
        assert [c["name"] for c in assigned["North Field"][0]["children"]] == ["Mine"]

    def test_file_resolver_failure_aborts_without_partial_tree(self, store, monkeypatch):
        make_process_with_files(file_names=("a.pdf",))
        commit()
        resolve_files = file_service._file_query

        def _activity_table_down(model, checklist_ids):
            if model is file_service.ActivityFile:
                def _query(session):
                    raise RuntimeError("activity files unavailable")
                return _query
            return resolve_files(model, checklist_ids)

        monkeypatch.setattr(file_service, "_file_query", _activity_table_down)

        tree = None
        with pytest.raises(RuntimeError, match="activity files unavailable"):
            tree = build_document_tree(store, USER_ID)
        assert tree is None
