"""
Document tree builder: hierarchy rows → community / phase / leaf tree.

Pipeline:

    1. group_hierarchy_rows   rows → (community, phase) groups holding the
                              distinct owner ids seen at each leaf level
    2. fan-out                Checklist Resolver once over the union of all
                              owner ids, File Resolver once over every
                              checklist id it returned
    3. assemble_tree          leaf nodes with deduplicated documents,
                              pruning, sorting, internal-field cleanup

Output shape:

    {
      "<community>": [
        {"id": "site-wide", "name": "Site Wide", "fileCount": 3,
         "children": [
            {"id", "name", "checklistId", "checklistIdStr",
             "documents": {"checklist": [...], "general": [], "final": [...]},
             "fileCount"}
         ]},
      ]
    }

Ordering:
    children  kind rank (process < task < activity < subactivity), then name
    phases    file count descending, then name
    communities keep first-appearance order

A failure in any resolver aborts the whole build; no partial tree.
"""

import logging
import re
import unicodedata
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from docmanager.services.checklist_service import OWNER_KINDS, ChecklistIndex, get_checklist_ids_parallel
from docmanager.services.file_service import get_files_by_checklist_ids, index_files_by_checklist
from docmanager.services.hierarchy_service import get_stagegate_hierarchy_rows
from docmanager.services.raci_service import get_user_assigned_owner_ids

logger = logging.getLogger(__name__)

DEFAULT_COMMUNITY = "Community"
DEFAULT_PHASE_NAME = "Site Wide"

KIND_RANK: dict[str, int] = {"process": 1, "task": 2, "activity": 3, "subactivity": 4}

# kind → (row id field, row name field)
_ROW_OWNER_FIELDS: dict[str, tuple[str, str]] = {
    "process": ("processId", "processName"),
    "task": ("taskId", "taskName"),
    "activity": ("activityId", "activityName"),
    "subactivity": ("subactivityId", "subactivityName"),
}

_WHITESPACE_RUN = re.compile(r"\s+")


# ── Text helpers ─────────────────────────────────────────────────────────


def _text(value) -> str:
    return "" if value is None else str(value)


def _norm(value) -> str:
    return _text(value).strip()


def phase_slug(name) -> str:
    """Stable phase id: lowercase name, whitespace runs collapsed to '-'."""
    return _WHITESPACE_RUN.sub("-", _norm(name or DEFAULT_PHASE_NAME).lower())


def locale_sort_key(name) -> tuple[str, str, str]:
    """Collation-style key: accents and case ignored first, then accents,
    then case with lowercase ahead of uppercase."""
    text = _text(name)
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), text.casefold(), text.swapcase()


# ── Step 1: grouping ─────────────────────────────────────────────────────


@dataclass
class PhaseGroup:
    community: str
    phase_id: str
    phase_name: str
    # kind → owner ids in first-seen order (dict used as ordered set)
    owners: dict[str, dict[str, None]] = field(
        default_factory=lambda: {kind: {} for kind in OWNER_KINDS}
    )


@dataclass
class TreeSkeleton:
    # community → phase groups in first-appearance order
    communities: dict[str, list[PhaseGroup]] = field(default_factory=dict)
    # kind → owner id → first-seen display name
    owner_names: dict[str, dict[str, str | None]] = field(
        default_factory=lambda: {kind: {} for kind in OWNER_KINDS}
    )

    def groups(self) -> Iterable[PhaseGroup]:
        for phases in self.communities.values():
            yield from phases

    def owner_ids(self, kind: str) -> list[str]:
        """Union of the owner ids of ``kind`` across every phase group."""
        union: dict[str, None] = {}
        for group in self.groups():
            union.update(group.owners[kind])
        return list(union)


def group_hierarchy_rows(rows: Iterable[Mapping]) -> TreeSkeleton:
    """Group rows by (community, phase id) and collect distinct owners."""
    skeleton = TreeSkeleton()
    index: dict[tuple[str, str], PhaseGroup] = {}

    for row in rows:
        community = _norm(row.get("community") or row.get("projectName") or DEFAULT_COMMUNITY)
        phase_name = _norm(row.get("phaseName") or DEFAULT_PHASE_NAME)
        phase_id = phase_slug(phase_name)

        group = index.get((community, phase_id))
        if group is None:
            group = PhaseGroup(community=community, phase_id=phase_id, phase_name=phase_name)
            index[(community, phase_id)] = group
            skeleton.communities.setdefault(community, []).append(group)

        for kind, (id_field, name_field) in _ROW_OWNER_FIELDS.items():
            raw_id = row.get(id_field)
            if not raw_id:
                continue
            owner_id = _text(raw_id)
            group.owners[kind].setdefault(owner_id, None)
            skeleton.owner_names[kind].setdefault(owner_id, row.get(name_field) or None)

    return skeleton


def restrict_owners(skeleton: TreeSkeleton, allowed: Mapping[str, set[str]]) -> TreeSkeleton:
    """Drop every owner not listed in ``allowed[kind]``; phase groups stay."""
    for group in skeleton.groups():
        for kind in OWNER_KINDS:
            permitted = allowed.get(kind, set())
            group.owners[kind] = {oid: None for oid in group.owners[kind] if oid in permitted}
    return skeleton


# ── Step 3-6: node construction, pruning, sorting, cleanup ──────────────


def _push_unique_doc(documents: list[dict], file_id, file_name, seen: set[str]) -> None:
    key = _text(file_id)
    if not key or not file_name or key in seen:
        return
    seen.add(key)
    documents.append({"bucket": key, "displayName": file_name, "key": key})


def build_leaf_node(owner_id: str, name, checklist_ids, files_by_checklist: Mapping[str, list[dict]]) -> dict:
    """Leaf node for one owner, documents unique by canonical file id."""
    unique_cids: dict[str, None] = {}
    for raw in checklist_ids or ():
        cid = _text(raw)
        if cid:
            unique_cids.setdefault(cid, None)
    representative = next(iter(unique_cids), None)

    checklist_docs: list[dict] = []
    seen_file_ids: set[str] = set()
    for cid in unique_cids:
        for item in files_by_checklist.get(cid, ()):
            _push_unique_doc(checklist_docs, item["fileId"], item["fileName"], seen_file_ids)

    final_docs = list(checklist_docs)
    return {
        "id": _text(owner_id),
        "name": name or _text(owner_id),
        "checklistId": representative,
        "checklistIdStr": representative,
        "documents": {"checklist": checklist_docs, "general": [], "final": final_docs},
        "fileCount": len(final_docs),
    }


def _build_phase(group: PhaseGroup, skeleton: TreeSkeleton, checklists: ChecklistIndex,
                 files_by_checklist: Mapping[str, list[dict]], prune: bool) -> dict:
    drafts: list[tuple[str, dict]] = []
    for kind in OWNER_KINDS:
        names = skeleton.owner_names[kind]
        for owner_id in group.owners[kind]:
            node = build_leaf_node(owner_id, names.get(owner_id), checklists.for_owner(kind, owner_id),
                                   files_by_checklist)
            drafts.append((kind, node))

    if prune:
        drafts = [(kind, node) for kind, node in drafts if node["fileCount"] > 0]

    drafts.sort(key=lambda d: (KIND_RANK.get(d[0], 99), locale_sort_key(d[1]["name"])))
    children = [node for _kind, node in drafts]

    return {
        "id": group.phase_id,
        "name": group.phase_name,
        "children": children,
        "fileCount": sum(child["fileCount"] for child in children),
    }


def assemble_tree(skeleton: TreeSkeleton, checklists: ChecklistIndex,
                  files_by_checklist: Mapping[str, list[dict]], prune: bool = True) -> dict:
    """Build, prune and sort the tree from resolved checklist / file maps."""
    tree: dict[str, list[dict]] = {}
    for community, groups in skeleton.communities.items():
        phases = [_build_phase(g, skeleton, checklists, files_by_checklist, prune) for g in groups]
        if prune:
            phases = [p for p in phases if p["fileCount"] > 0]
            if not phases:
                continue
        phases.sort(key=lambda p: (-p["fileCount"], locale_sort_key(p["name"])))
        tree[community] = phases
    return tree


# ── Orchestration ────────────────────────────────────────────────────────


def build_document_tree(store, user_id, pmweb_project_id=None, *, prune: bool | None = None,
                        assigned_only: bool = False, allowed_extensions=None) -> dict:
    """Resolve and assemble the document tree visible to ``user_id``.

    Args:
        store: DocumentStore handle.
        user_id: PMWB user id.
        pmweb_project_id: Optional project-scope filter.
        prune: Drop leaves / phases / communities without files; None means on.
        assigned_only: Keep only owners the user holds a RACI assignment for.
        allowed_extensions: Override of the file extension allow-list.

    Returns:
        ``{community: [phase, ...]}``; ``{}`` when nothing is visible.

    Raises:
        ValidationError, StoreTimeoutError or any resolver failure; the
        build is aborted as a whole.
    """
    rows = get_stagegate_hierarchy_rows(store, user_id, pmweb_project_id)
    if not rows:
        logger.info("No hierarchy rows for user %s", user_id, extra={"user_id": user_id})
        return {}

    skeleton = group_hierarchy_rows(rows)
    if assigned_only:
        assigned = get_user_assigned_owner_ids(store, user_id)
        restrict_owners(skeleton, {kind: assigned.for_kind(kind) for kind in OWNER_KINDS})

    checklists = get_checklist_ids_parallel(
        store,
        process_ids=skeleton.owner_ids("process"),
        task_ids=skeleton.owner_ids("task"),
        activity_ids=skeleton.owner_ids("activity"),
        subactivity_ids=skeleton.owner_ids("subactivity"),
    )
    file_refs = (
        get_files_by_checklist_ids(store, sorted(checklists.all_ids), allowed_extensions)
        if checklists.all_ids else []
    )
    tree = assemble_tree(
        skeleton, checklists, index_files_by_checklist(file_refs), prune=True if prune is None else prune
    )

    logger.info(
        "Document tree for user %s: %d rows, %d checklists, %d files, %d communities",
        user_id, len(rows), len(checklists.all_ids), len(file_refs), len(tree),
        extra={"user_id": user_id},
    )
    return tree
