"""
Platform-wide exception hierarchy.

Services raise these; the documents blueprint registers handlers against
them once and maps each to a fixed HTTP status.

Absence of matching rows is never an exception: resolvers return empty
lists / maps.  NotFoundError is reserved for direct single-resource lookups.

Usage:
    from docmanager.core.exceptions import StoreTimeoutError, ValidationError

    raise ValidationError("author could not be resolved", details={"author": "x@y"})
    raise StoreTimeoutError("hierarchy_rows", budget_ms=25000)
"""


class NotFoundError(Exception):
    """Raised when a directly addressed resource does not exist.

    Args:
        resource: Human-readable entity name (e.g. "FileContent").
        resource_id: The identifier that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when an identifier or payload is malformed or unresolvable.

    Maps to HTTP 400. The operation is aborted before any write.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class StoreTimeoutError(Exception):
    """Raised when a single data-store operation exceeds its time budget.

    Fails that operation only; sibling operations already in flight keep
    running. No internal retry. Maps to HTTP 504.

    Args:
        operation: Label of the store operation (e.g. "checklists:process").
        budget_ms: The budget that was exceeded.
    """

    def __init__(self, operation: str, budget_ms: int | None = None) -> None:
        self.operation = operation
        self.budget_ms = budget_ms
        msg = f"Store operation '{operation}' timed out"
        if budget_ms is not None:
            msg += f" after {budget_ms}ms"
        super().__init__(msg)


class UpstreamFailure(Exception):
    """Raised when fetching content for one key of a batch fails.

    Content resolution records this per key instead of letting it escape.
    """

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(message)
