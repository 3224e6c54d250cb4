"""
File comments: create and list.

Authors are referenced in several forms; ``resolve_user`` tries them in
order:

    1. object reference   exact ``users.object_ref`` match
    2. numeric code       digits only → ``users.code``, then ``users.id``;
                          a miss falls through to the username lookup
    3. email              contains "@", case-insensitive
    4. username           case-insensitive

Creation is an insert followed by a separate read-back operation; a
comment deleted between the two surfaces as NotFoundError.
"""

import logging

from sqlalchemy import func, select

from docmanager.core.exceptions import NotFoundError, ValidationError
from docmanager.models import _utcnow
from docmanager.models.auth import User
from docmanager.models.content import FileComment
from docmanager.services.identifiers import parse_ref_id, unique_ref_ids

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 4000


def resolve_user(session, identifier) -> User | None:
    """Find a user by object ref, numeric code / id, email or username."""
    if identifier is None or isinstance(identifier, bool):
        return None
    raw = str(identifier).strip()
    if not raw:
        return None

    user = session.execute(select(User).where(User.object_ref == raw)).scalars().first()
    if user is not None:
        return user

    if raw.isdigit():
        number = int(raw)
        user = session.execute(select(User).where(User.code == number)).scalars().first()
        if user is None:
            user = session.get(User, number)
        if user is not None:
            return user

    if "@" in raw:
        return session.execute(
            select(User).where(func.lower(User.email) == raw.lower())
        ).scalars().first()

    return session.execute(
        select(User).where(func.lower(User.username) == raw.lower())
    ).scalars().first()


def _validate_comment_text(comment) -> str:
    text = comment.strip() if isinstance(comment, str) else ""
    if not text:
        raise ValidationError("comment is required", details={"comment": "required"})
    if len(text) > MAX_COMMENT_LENGTH:
        raise ValidationError(
            f"comment must be at most {MAX_COMMENT_LENGTH} characters",
            details={"comment": "too_long"},
        )
    return text


def create_file_comment(store, file_id, comment, author, created_by=None) -> dict:
    """Insert a comment on ``file_id`` and return it as stored.

    ``created_by`` defaults to the author.

    Raises:
        ValidationError: empty / oversize text, missing file id, or an
            author / creator that resolves to no user.
        NotFoundError: the comment vanished before read-back.
    """
    fid = parse_ref_id(file_id)
    if fid is None:
        raise ValidationError("fileId is required", details={"fileId": "required"})
    text = _validate_comment_text(comment)
    if author is None or not str(author).strip():
        raise ValidationError("author is required", details={"author": "required"})

    def _insert(session):
        author_user = resolve_user(session, author)
        if author_user is None:
            raise ValidationError("author could not be resolved", details={"author": str(author)})

        if created_by is None or not str(created_by).strip():
            creator = author_user
        else:
            creator = resolve_user(session, created_by)
            if creator is None:
                raise ValidationError("createdBy could not be resolved", details={"createdBy": str(created_by)})

        now = _utcnow()
        row = FileComment(
            file_id=fid,
            comment=text,
            author_id=author_user.id,
            created_by_id=creator.id,
            created_at=now,
            updated_at=now,
        )
        session.add(row)
        session.commit()
        return row.id

    comment_id = store.run("comments:insert", _insert)
    logger.info("Comment %s created on file %s", comment_id, fid)

    def _read_back(session):
        row = session.get(FileComment, comment_id)
        return row.to_dict() if row is not None else None

    created = store.run("comments:read_back", _read_back)
    if created is None:
        raise NotFoundError("FileComment", comment_id)
    return created


def comments_by_file_ids(session, file_ids: list[str]) -> dict[str, list[dict]]:
    """file id → serialized comments, oldest first."""
    if not file_ids:
        return {}
    stmt = (
        select(FileComment)
        .where(FileComment.file_id.in_(file_ids))
        .order_by(FileComment.created_at, FileComment.id)
    )
    grouped: dict[str, list[dict]] = {}
    for row in session.execute(stmt).unique().scalars():
        grouped.setdefault(row.file_id, []).append(row.to_dict())
    return grouped


def list_file_comments(store, file_id) -> list[dict]:
    """Comments on one file, oldest first. Unknown file → []."""
    ids = unique_ref_ids([file_id])
    if not ids:
        raise ValidationError("fileId is required", details={"fileId": "required"})
    grouped = store.run("comments:list", lambda session: comments_by_file_ids(session, ids))
    return grouped.get(ids[0], [])
