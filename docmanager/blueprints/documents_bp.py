"""Document manager blueprint.

Thin adapters: parse request parameters, call the service layer with the
app's DocumentStore handle, wrap the result in a JSON envelope.

Endpoints:
  Document tree        GET  /api/v1/documents/users/<user_id>/tree
                            ?project_id=&prune=&assigned_only=
  File content         POST /api/v1/documents/file-data
                            {"key": id} | {"keys": [...]}, "extended"?
  File content (name)  POST /api/v1/documents/file-data/by-name  {"names": [...]}
  Comments             POST /api/v1/documents/files/<file_id>/comments
                       GET  /api/v1/documents/files/<file_id>/comments
  Checklist threads    GET  /api/v1/documents/checklists/threads?ids=a,b

Errors:
  ValidationError     400 {"error", "code", "details"?}
  NotFoundError       404
  StoreTimeoutError   504
  anything else       500 {"message": "Error fetching ...", "error": str(exc)}
"""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from docmanager.core.exceptions import NotFoundError, StoreTimeoutError, ValidationError
from docmanager.services import comment_service, content_service, thread_service
from docmanager.services.document_tree import build_document_tree
from docmanager.services.identifiers import parse_optional_int, parse_user_id
from docmanager.store import get_document_store
from docmanager.utils.errors import E, api_error

logger = logging.getLogger(__name__)

documents_bp = Blueprint("documents", __name__, url_prefix="/api/v1/documents")

# endpoint → message used in the 500 envelope
_FAILURE_MESSAGES = {
    "documents.get_document_tree": "Error fetching document tree",
    "documents.get_file_data": "Error fetching file data",
    "documents.get_file_data_by_name": "Error fetching file data",
    "documents.create_comment": "Error creating comment",
    "documents.list_comments": "Error fetching comments",
    "documents.list_checklist_threads": "Error fetching checklist threads",
}

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


# ── Error handlers ────────────────────────────────────────────────────────────


@documents_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    return api_error(E.VALIDATION_INVALID, str(error), details=error.details or None)


@documents_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    return api_error(E.NOT_FOUND, str(error))


@documents_bp.errorhandler(StoreTimeoutError)
def _handle_store_timeout(error: StoreTimeoutError):
    logger.warning("Store timeout endpoint=%s operation=%s", request.endpoint, error.operation,
                   extra={"operation": error.operation})
    return api_error(E.STORE_TIMEOUT, str(error))


@documents_bp.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    if isinstance(error, HTTPException):
        return error
    logger.exception("Unexpected error in documents endpoint=%s", request.endpoint)
    message = _FAILURE_MESSAGES.get(request.endpoint, "Error processing request")
    return jsonify({"message": message, "error": str(error)}), 500


# ── Request helpers ───────────────────────────────────────────────────────────


def _flag(name: str, default: bool) -> bool:
    raw = request.args.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValidationError(f"{name} must be a boolean", details={name: raw})


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _key_list(data: dict, single: str, plural: str) -> list:
    """Accept ``{single: x}`` or ``{plural: [...]}``."""
    if plural in data:
        values = data[plural]
        if not isinstance(values, list):
            raise ValidationError(f"{plural} must be a list", details={plural: "not_a_list"})
        return values
    if data.get(single) not in (None, ""):
        return [data[single]]
    raise ValidationError(f"{single} or {plural} is required", details={single: "required"})


def _signer():
    if not current_app.config.get("EXTERNAL_CONTENT_ENABLED"):
        return None
    return current_app.extensions.get("signed_url_issuer")


# ═════════════════════════════════════════════════════════════════════════
# Document tree
# ═════════════════════════════════════════════════════════════════════════


@documents_bp.route("/users/<user_id>/tree", methods=["GET"])
def get_document_tree(user_id):
    """Community → phase → leaf tree of documents visible to the user.

    Query params:
        project_id     optional PMWEB project filter
        prune          drop empty nodes (default DOCUMENT_TREE_PRUNE_EMPTY)
        assigned_only  restrict leaves to the user's RACI assignments
    """
    uid = parse_user_id(user_id)
    project_id = parse_optional_int(request.args.get("project_id"), "project_id")
    prune = _flag("prune", current_app.config.get("DOCUMENT_TREE_PRUNE_EMPTY", True))
    assigned_only = _flag("assigned_only", False)

    tree = build_document_tree(
        get_document_store(),
        uid,
        project_id,
        prune=prune,
        assigned_only=assigned_only,
        allowed_extensions=current_app.config.get("ALLOWED_FILE_EXTENSIONS"),
    )
    return jsonify({"tree": tree}), 200


# ═════════════════════════════════════════════════════════════════════════
# File content
# ═════════════════════════════════════════════════════════════════════════


@documents_bp.route("/file-data", methods=["POST"])
def get_file_data():
    """Content + metadata per file id; ``extended`` adds comments and versions."""
    data = _json_body()
    keys = _key_list(data, "key", "keys")
    store = get_document_store()
    if data.get("extended") is True:
        file_data = content_service.get_file_details(store, keys, signer=_signer())
    else:
        file_data = content_service.get_file_content_meta_by_ids(store, keys, signer=_signer())
    return jsonify({"fileData": file_data}), 200


@documents_bp.route("/file-data/by-name", methods=["POST"])
def get_file_data_by_name():
    """Legacy lookup for records without a resolvable file id."""
    data = _json_body()
    names = _key_list(data, "name", "names")
    file_data = content_service.get_file_content_meta_by_file_names(
        get_document_store(), names, signer=_signer()
    )
    return jsonify({"fileData": file_data}), 200


# ═════════════════════════════════════════════════════════════════════════
# Comments
# ═════════════════════════════════════════════════════════════════════════


@documents_bp.route("/files/<file_id>/comments", methods=["POST"])
def create_comment(file_id):
    """Body: {comment, author, createdBy?} → 201 {"comment": {...}}"""
    data = _json_body()
    created = comment_service.create_file_comment(
        get_document_store(),
        file_id,
        data.get("comment"),
        data.get("author"),
        created_by=data.get("createdBy"),
    )
    return jsonify({"comment": created}), 201


@documents_bp.route("/files/<file_id>/comments", methods=["GET"])
def list_comments(file_id):
    comments = comment_service.list_file_comments(get_document_store(), file_id)
    return jsonify({"comments": comments}), 200


# ═════════════════════════════════════════════════════════════════════════
# Checklist threads
# ═════════════════════════════════════════════════════════════════════════


@documents_bp.route("/checklists/threads", methods=["GET"])
def list_checklist_threads():
    raw = request.args.get("ids", "")
    ids = [part for part in raw.split(",") if part.strip()]
    if not ids:
        raise ValidationError("ids is required", details={"ids": "required"})
    threads = thread_service.get_threads_by_checklist_ids(get_document_store(), ids)
    return jsonify({"threads": threads}), 200
