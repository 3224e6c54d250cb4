"""
Checklist Resolver: owner ids → checklist ids at four leaf levels.

The four level lookups are independent and run concurrently through
``store.fan_out``; the call returns only after all four have finished.
An empty owner-id set short-circuits without issuing a query.

Owners without checklists are simply absent from the per-level maps;
callers use ``ChecklistIndex.for_owner`` which treats "absent" as "none".
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import select

from docmanager.models.checklist import (
    ActivityChecklist,
    ProcessChecklist,
    SubActivityChecklist,
    TaskChecklist,
)
from docmanager.services.identifiers import unique_ref_ids
from docmanager.store import raise_first_failure

logger = logging.getLogger(__name__)

# Leaf levels in rank order (process < task < activity < subactivity)
OWNER_KINDS: tuple[str, ...] = ("process", "task", "activity", "subactivity")

# kind → (checklist model, owner column name)
CHECKLIST_SOURCES = {
    "process": (ProcessChecklist, "process_id"),
    "task": (TaskChecklist, "task_id"),
    "activity": (ActivityChecklist, "activity_id"),
    "subactivity": (SubActivityChecklist, "subactivity_id"),
}


@dataclass
class ChecklistIndex:
    """Checklist ids grouped by owner, per level, plus the union of all ids."""

    by_kind: dict[str, dict[str, list[str]]] = field(
        default_factory=lambda: {kind: {} for kind in OWNER_KINDS}
    )
    all_ids: set[str] = field(default_factory=set)

    @property
    def by_process(self) -> dict[str, list[str]]:
        return self.by_kind["process"]

    @property
    def by_task(self) -> dict[str, list[str]]:
        return self.by_kind["task"]

    @property
    def by_activity(self) -> dict[str, list[str]]:
        return self.by_kind["activity"]

    @property
    def by_subactivity(self) -> dict[str, list[str]]:
        return self.by_kind["subactivity"]

    def for_owner(self, kind: str, owner_id: str) -> list[str]:
        return self.by_kind.get(kind, {}).get(owner_id, [])


def _checklist_query(kind: str, owner_ids: list[str]):
    model, owner_field = CHECKLIST_SOURCES[kind]
    owner_col = getattr(model, owner_field)
    stmt = (
        select(model.id, owner_col.label("owner_id"))
        .where(owner_col.in_(owner_ids))
        .order_by(owner_col, model.id)
    )

    def _query(session):
        return [(str(r.owner_id), str(r.id)) for r in session.execute(stmt)]

    return _query


def get_checklist_ids_parallel(
    store,
    process_ids=None,
    task_ids=None,
    activity_ids=None,
    subactivity_ids=None,
) -> ChecklistIndex:
    """Resolve the checklist ids attached to each owner at each level.

    Returns:
        ChecklistIndex with ``by_process`` / ``by_task`` / ``by_activity`` /
        ``by_subactivity`` maps (owner id → checklist ids ordered by id) and
        ``all_ids``.

    Raises:
        The first failing level's error (e.g. StoreTimeoutError); no partial
        index is returned.
    """
    requested = {
        "process": unique_ref_ids(process_ids),
        "task": unique_ref_ids(task_ids),
        "activity": unique_ref_ids(activity_ids),
        "subactivity": unique_ref_ids(subactivity_ids),
    }
    calls = {
        f"checklists:{kind}": _checklist_query(kind, ids)
        for kind, ids in requested.items()
        if ids
    }

    index = ChecklistIndex()
    if not calls:
        return index

    outcomes = store.fan_out(calls)
    raise_first_failure(outcomes)

    for kind in OWNER_KINDS:
        outcome = outcomes.get(f"checklists:{kind}")
        if outcome is None:
            continue
        bucket = index.by_kind[kind]
        for owner_id, checklist_id in outcome.value:
            bucket.setdefault(owner_id, []).append(checklist_id)
            index.all_ids.add(checklist_id)

    logger.debug(
        "Resolved %d checklists for %s owners",
        len(index.all_ids),
        {kind: len(ids) for kind, ids in requested.items()},
    )
    return index
