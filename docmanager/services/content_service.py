"""
Content Resolver: file ids (or legacy file names) → content + metadata.

Each requested key yields one entry:

    {
      "content":     portable text (str) or None,
      "createdDate": ISO-8601 or None,
      "fileType":    ..., "fileSize": ..., "fileName": ...,
      "source":      "inline" | "external" | None,
      "error":       present only when the key could not be resolved
    }

Resolution order per key:
    1. inline payload (``content_text`` → legacy ``content_blob``); an
       empty string is a present, empty payload
    2. external blob via signed URL (only when a signer is passed in)
    3. otherwise "no content found"

Failures are isolated per key: the batch call never raises because one key
failed.  A store timeout on the batch read itself still propagates.
"""

import base64
import logging

from sqlalchemy import select

from docmanager.core.exceptions import UpstreamFailure
from docmanager.models.content import FileContent, FileContentVersion
from docmanager.services.comment_service import comments_by_file_ids
from docmanager.services.identifiers import unique_ref_ids
from docmanager.services.normalize import INLINE_CONTENT_FIELDS, first_present
from docmanager.store import BranchOutcome

logger = logging.getLogger(__name__)

NO_CONTENT = "no content found"

_CONTENT_COLUMNS = (
    FileContent.id,
    FileContent.file_name,
    FileContent.file_type,
    FileContent.file_size,
    FileContent.content_text,
    FileContent.content_blob,
    FileContent.storage_path,
    FileContent.created_date,
)


# ── Payload normalization ────────────────────────────────────────────────


def _b64(raw) -> str:
    return base64.b64encode(bytes(raw)).decode("ascii")


def to_portable_text(value) -> str | None:
    """Normalize a stored payload to text.

    str passes through; raw bytes and byte wrappers (``.buffer`` or
    ``.tobytes()``) are base64-encoded; anything else is stringified.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _b64(value)
    buffer = getattr(value, "buffer", None)
    if isinstance(buffer, (bytes, bytearray, memoryview)):
        return _b64(buffer)
    tobytes = getattr(value, "tobytes", None)
    if callable(tobytes):
        return _b64(tobytes())
    return str(value)


# ── Entry construction ───────────────────────────────────────────────────


def _empty_entry(error: str = NO_CONTENT) -> dict:
    return {
        "content": None,
        "createdDate": None,
        "fileType": None,
        "fileSize": None,
        "fileName": None,
        "source": None,
        "error": error,
    }


def _entry(row: dict, content, source, error: str | None = None) -> dict:
    created = row.get("created_date")
    entry = {
        "content": content,
        "createdDate": created.isoformat() if created else None,
        "fileType": row.get("file_type"),
        "fileSize": row.get("file_size"),
        "fileName": row.get("file_name"),
        "source": source,
    }
    if error:
        entry["error"] = error
    return entry


def _resolve_rows(store, rows_by_key: dict[str, dict | None], signer) -> dict[str, dict]:
    """Build entries for every key; external fetches run concurrently."""
    result: dict[str, dict] = {}
    external: dict[str, dict] = {}

    for key, row in rows_by_key.items():
        if row is None:
            result[key] = _empty_entry()
            continue

        payload = first_present(row, INLINE_CONTENT_FIELDS)
        if payload is not None:
            try:
                result[key] = _entry(row, to_portable_text(payload), "inline")
            except (TypeError, ValueError) as exc:
                logger.warning("Content normalization failed for %s: %s", key, exc)
                result[key] = _entry(row, None, None, error=str(exc))
            continue

        if signer is not None and row.get("storage_path"):
            external[key] = row
            continue

        result[key] = _entry(row, None, None, error=NO_CONTENT)

    if external:
        outcomes = store.fan_out({
            key: (lambda _session, path=row["storage_path"]: signer.fetch(path))
            for key, row in external.items()
        })
        for key, row in external.items():
            outcome: BranchOutcome = outcomes[key]
            if outcome.ok:
                result[key] = _entry(row, to_portable_text(outcome.value), "external")
            else:
                failure = outcome.error
                if not isinstance(failure, UpstreamFailure):
                    failure = UpstreamFailure(key, str(failure))
                logger.warning("External content fetch failed for %s: %s", key, failure)
                result[key] = _entry(row, None, None, error=str(failure))

    # keep request order
    return {key: result[key] for key in rows_by_key}


# ── Public API ───────────────────────────────────────────────────────────


def get_file_content_meta_by_ids(store, file_ids, signer=None) -> dict[str, dict]:
    """Return ``{file_id: entry}`` for every requested id. Empty input → {}."""
    ids = unique_ref_ids(file_ids)
    if not ids:
        return {}

    stmt = select(*_CONTENT_COLUMNS).where(FileContent.id.in_(ids))

    def _query(session):
        return {str(row.id): dict(row._mapping) for row in session.execute(stmt)}

    found = store.run("content:by_id", _query)
    entries = _resolve_rows(store, {fid: found.get(fid) for fid in ids}, signer)
    logger.debug("Content lookup: %d requested, %d found", len(ids), len(found))
    return entries


def get_file_content_meta_by_file_names(store, file_names, signer=None) -> dict[str, dict]:
    """Legacy lookup keyed by file name; the newest record per name wins."""
    names = unique_ref_ids(file_names)
    if not names:
        return {}

    stmt = (
        select(*_CONTENT_COLUMNS)
        .where(FileContent.file_name.in_(names))
        .order_by(FileContent.created_date.desc(), FileContent.id)
    )

    def _query(session):
        newest: dict[str, dict] = {}
        for row in session.execute(stmt):
            newest.setdefault(row.file_name, dict(row._mapping))
        return newest

    found = store.run("content:by_name", _query)
    return _resolve_rows(store, {name: found.get(name) for name in names}, signer)


def get_file_details(store, file_ids, signer=None) -> dict[str, dict]:
    """Content entries plus ``comments`` (oldest first) and ``versions``
    (newest first) for each id."""
    entries = get_file_content_meta_by_ids(store, file_ids, signer=signer)
    if not entries:
        return {}

    ids = list(entries)
    versions_stmt = (
        select(FileContentVersion)
        .where(FileContentVersion.file_id.in_(ids))
        .order_by(FileContentVersion.file_id, FileContentVersion.version_no.desc())
    )

    def _versions(session):
        grouped: dict[str, list[dict]] = {}
        for row in session.execute(versions_stmt).scalars():
            grouped.setdefault(row.file_id, []).append(row.to_dict())
        return grouped

    outcomes = store.fan_out({
        "details:comments": lambda session: comments_by_file_ids(session, ids),
        "details:versions": _versions,
    })
    comments = outcomes["details:comments"]
    versions = outcomes["details:versions"]

    for fid, entry in entries.items():
        entry["comments"] = comments.value.get(fid, []) if comments.ok else []
        entry["versions"] = versions.value.get(fid, []) if versions.ok else []
        failures = [str(o.error) for o in (comments, versions) if not o.ok]
        if failures:
            entry["detailsError"] = "; ".join(failures)
    return entries
