"""Checklist discussion threads with their attachments flattened into one list."""

import logging

from sqlalchemy import select

from docmanager.models.checklist import ProjectThread
from docmanager.services.identifiers import unique_ref_ids
from docmanager.services.normalize import SAMPLE_ATTACHMENT_FIELDS, THREAD_ATTACHMENT_FIELDS, coalesce

logger = logging.getLogger(__name__)


def _serialize_thread(row: dict) -> dict:
    sample = coalesce(row, SAMPLE_ATTACHMENT_FIELDS, []) or []
    thread = coalesce(row, THREAD_ATTACHMENT_FIELDS, []) or []
    return {
        "checklistIdStr": str(row["checklist_id"]),
        "createdBy": row.get("created_by"),
        "participants": row.get("participants") or [],
        "attachments": list(sample) + list(thread),
    }


def get_threads_by_checklist_ids(store, checklist_ids) -> list[dict]:
    """Return threads for the given checklists; sample attachments come first."""
    ids = unique_ref_ids(checklist_ids)
    if not ids:
        return []

    stmt = (
        select(
            ProjectThread.checklist_id,
            ProjectThread.created_by,
            ProjectThread.participants,
            ProjectThread.sample_attachments,
            ProjectThread.sample_attachements,
            ProjectThread.thread_attachments,
            ProjectThread.thread_attachements,
        )
        .where(ProjectThread.checklist_id.in_(ids))
        .order_by(ProjectThread.checklist_id, ProjectThread.created_at, ProjectThread.id)
    )

    def _query(session):
        return [dict(row._mapping) for row in session.execute(stmt)]

    rows = store.run("threads_by_checklist", _query)
    return [_serialize_thread(row) for row in rows]
