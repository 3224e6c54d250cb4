"""
RACI assignment resolver: which owners a user is responsible for.

Business context:
    A RACI assignment links a user to a RACI row in one of four owner-level
    RACI tables.  The assignment's group label names the table; labels are
    free text ("ProcessRaci", "project-task", "SubActivity"...), so they are
    classified by lowercase substring, checked in the order
    process → task → sub → activity ("subactivity" contains "activity").

    The document tree uses the resolved owner ids to restrict leaves to the
    processes / tasks / activities / sub-activities assigned to the user.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import select

from docmanager.models.raci import ActivityRaci, ProcessRaci, RaciAssignee, SubActivityRaci, TaskRaci
from docmanager.services.identifiers import parse_ref_id, parse_user_id
from docmanager.services.normalize import RACI_GROUP_FIELDS, RACI_ID_FIELDS, coalesce
from docmanager.store import raise_first_failure

logger = logging.getLogger(__name__)

# kind → (RACI model, owner column name)
RACI_SOURCES = {
    "process": (ProcessRaci, "process_id"),
    "task": (TaskRaci, "task_id"),
    "activity": (ActivityRaci, "activity_id"),
    "subactivity": (SubActivityRaci, "subactivity_id"),
}

# substring → kind, checked in order
_GROUP_MATCHERS = (
    ("process", "process"),
    ("task", "task"),
    ("sub", "subactivity"),
    ("activity", "activity"),
)


@dataclass
class OwnerIdSets:
    process: set[str] = field(default_factory=set)
    task: set[str] = field(default_factory=set)
    activity: set[str] = field(default_factory=set)
    subactivity: set[str] = field(default_factory=set)

    def for_kind(self, kind: str) -> set[str]:
        return getattr(self, kind)


def classify_raci_group(label) -> str | None:
    """Map a free-text RACI group label to an owner kind, or None."""
    lowered = str(label or "").lower()
    for needle, kind in _GROUP_MATCHERS:
        if needle in lowered:
            return kind
    return None


def _assignments_query(assignee: int):
    stmt = (
        select(
            RaciAssignee.raci_id,
            RaciAssignee.raci_id_alt,
            RaciAssignee.raci_group,
            RaciAssignee.raci_group_alt,
        )
        .where(RaciAssignee.assignee_id == assignee)
        .order_by(RaciAssignee.id)
    )

    def _query(session):
        return [dict(row._mapping) for row in session.execute(stmt)]

    return _query


def _owner_query(kind: str, raci_ids: list[str]):
    model, owner_field = RACI_SOURCES[kind]
    owner_col = getattr(model, owner_field)
    stmt = select(owner_col).where(model.id.in_(raci_ids))

    def _query(session):
        return [value for value in session.execute(stmt).scalars() if value]

    return _query


def get_user_assigned_owner_ids(store, user_id) -> OwnerIdSets:
    """Return the owner ids (per level) the user holds a RACI assignment for.

    Assignments with an unrecognised group or without a RACI id are skipped.
    """
    assignee = parse_user_id(user_id)
    assignments = store.run("raci:assignments", _assignments_query(assignee))

    raci_ids_by_kind: dict[str, list[str]] = {kind: [] for kind in RACI_SOURCES}
    skipped = 0
    for row in assignments:
        kind = classify_raci_group(coalesce(row, RACI_GROUP_FIELDS, ""))
        raci_id = parse_ref_id(coalesce(row, RACI_ID_FIELDS))
        if kind is None or raci_id is None:
            skipped += 1
            continue
        raci_ids_by_kind[kind].append(raci_id)

    result = OwnerIdSets()
    calls = {
        f"raci:{kind}": _owner_query(kind, ids)
        for kind, ids in raci_ids_by_kind.items()
        if ids
    }
    if not calls:
        return result

    outcomes = store.fan_out(calls)
    raise_first_failure(outcomes)
    for kind in RACI_SOURCES:
        outcome = outcomes.get(f"raci:{kind}")
        if outcome is not None:
            result.for_kind(kind).update(str(v) for v in outcome.value)

    logger.debug("RACI owners for user %s: %d assignments, %d skipped", assignee, len(assignments), skipped)
    return result
