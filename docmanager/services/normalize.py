"""
Record normalization: legacy field coalescing in one place.

Several concepts are stored under more than one field name.  Each concept
lists its accepted source fields in priority order; ``coalesce`` resolves a
row to the first non-empty one; ``first_present`` to the first non-None one
(inline payloads, where an empty string is a real value).  Callers read only
the canonical value.
"""

from collections.abc import Mapping, Sequence

# concept → accepted source fields, highest priority first
FILE_NAME_FIELDS = ("file_name", "name")
FILE_ID_FIELDS = ("file_id", "id")
INLINE_CONTENT_FIELDS = ("content_text", "content_blob")
RACI_ID_FIELDS = ("raci_id", "raci_id_alt")
RACI_GROUP_FIELDS = ("raci_group", "raci_group_alt")
SAMPLE_ATTACHMENT_FIELDS = ("sample_attachments", "sample_attachements")
THREAD_ATTACHMENT_FIELDS = ("thread_attachments", "thread_attachements")


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def coalesce(row: Mapping, fields: Sequence[str], default=None):
    """Return the first non-empty value of ``fields`` in ``row``."""
    for field in fields:
        value = row.get(field)
        if not _is_empty(value):
            return value
    return default


def first_present(row: Mapping, fields: Sequence[str], default=None):
    """Return the first value of ``fields`` that is not None; "" counts."""
    for field in fields:
        value = row.get(field)
        if value is not None:
            return value
    return default
