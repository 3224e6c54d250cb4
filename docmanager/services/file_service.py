"""
File Resolver: checklist ids → file references.

Four file tables (one per leaf level) are searched concurrently for the
given checklist ids.  Each candidate row is normalized once:

    fileName = file_name → name (legacy)
    fileId   = file_id → row id (row-id-as-file-id storage shape)

and rejected unless its name carries an allowed extension (case-insensitive
suffix match).
"""

import logging
from collections.abc import Iterable

from sqlalchemy import select

from docmanager.models.checklist import ActivityFile, ProcessFile, SubActivityFile, TaskFile
from docmanager.services.identifiers import unique_ref_ids
from docmanager.services.normalize import FILE_ID_FIELDS, FILE_NAME_FIELDS, coalesce
from docmanager.store import raise_first_failure

logger = logging.getLogger(__name__)

ALLOWED_FILE_EXTENSIONS: tuple[str, ...] = (".docx", ".pdf", ".xlsx")

# Fixed level order, also the output order
FILE_SOURCES = (
    ("process", ProcessFile),
    ("task", TaskFile),
    ("activity", ActivityFile),
    ("subactivity", SubActivityFile),
)


def has_allowed_extension(name, allowed: Iterable[str] | None = None) -> bool:
    """Case-insensitive suffix match against the extension allow-list."""
    if not name:
        return False
    lowered = str(name).lower()
    return any(lowered.endswith(ext.lower()) for ext in (allowed or ALLOWED_FILE_EXTENSIONS))


def _file_query(model, checklist_ids: list[str]):
    stmt = (
        select(model.id, model.checklist_id, model.file_id, model.file_name, model.name)
        .where(model.checklist_id.in_(checklist_ids))
        .order_by(model.checklist_id, model.id)
    )

    def _query(session):
        return [dict(row._mapping) for row in session.execute(stmt)]

    return _query


def _to_file_ref(row: dict, allowed) -> dict | None:
    file_name = coalesce(row, FILE_NAME_FIELDS)
    if not has_allowed_extension(file_name, allowed):
        return None
    return {
        "fileId": str(coalesce(row, FILE_ID_FIELDS)),
        "docId": str(row["id"]),
        "checklistId": str(row["checklist_id"]),
        "fileName": file_name,
    }


def get_files_by_checklist_ids(store, checklist_ids, allowed_extensions=None) -> list[dict]:
    """Return ``{fileId, docId, checklistId, fileName}`` for every allowed file.

    Empty input yields ``[]`` without touching the store.

    Raises:
        The first failing table's error; no partial list is returned.
    """
    ids = unique_ref_ids(checklist_ids)
    if not ids:
        return []

    outcomes = store.fan_out({f"files:{kind}": _file_query(model, ids) for kind, model in FILE_SOURCES})
    raise_first_failure(outcomes)

    refs: list[dict] = []
    rejected = 0
    for kind, _model in FILE_SOURCES:
        for row in outcomes[f"files:{kind}"].value:
            ref = _to_file_ref(row, allowed_extensions)
            if ref is None:
                rejected += 1
                continue
            refs.append(ref)

    logger.debug("Resolved %d files for %d checklists (%d rejected)", len(refs), len(ids), rejected)
    return refs


def index_files_by_checklist(file_refs: Iterable[dict]) -> dict[str, list[dict]]:
    """Group file refs by checklist id, unique by canonical file id."""
    indexed: dict[str, list[dict]] = {}
    for ref in file_refs:
        bucket = indexed.setdefault(str(ref["checklistId"]), [])
        file_id = str(ref["fileId"])
        if any(item["fileId"] == file_id for item in bucket):
            continue
        bucket.append({"fileId": file_id, "fileName": ref["fileName"]})
    return indexed
