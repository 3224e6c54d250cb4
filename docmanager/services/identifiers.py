"""
Identifier parsing: one normalize function per identifier kind.

Two kinds exist:
  - numeric ids (PMWB user id, PMWEB project id) → int
  - opaque reference ids (stage-gates, owners, checklists, files) → str

Applied at every ingress boundary (route params, resolver inputs) so that
nothing deeper in the pipeline branches on str-vs-int forms.
"""

from collections.abc import Iterable

from docmanager.core.exceptions import ValidationError


def parse_user_id(value, field: str = "userId") -> int:
    """Coerce a numeric identifier given as int or numeric string."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be numeric", details={field: value})
    if isinstance(value, int):
        return value
    raw = str(value).strip() if value is not None else ""
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{field} must be numeric", details={field: value}) from None


def parse_optional_int(value, field: str) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_user_id(value, field)


def parse_ref_id(value) -> str | None:
    """Opaque reference id as a trimmed string; None/empty → None."""
    if value is None:
        return None
    ref = str(value).strip()
    return ref or None


def unique_ref_ids(values: Iterable | None) -> list[str]:
    """Parse, drop empties and dedup, keeping first-seen order."""
    seen: dict[str, None] = {}
    for value in values or ():
        ref = parse_ref_id(value)
        if ref is not None:
            seen.setdefault(ref, None)
    return list(seen)
