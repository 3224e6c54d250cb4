"""
Checklist, checklist-file and checklist-thread models.

Each of the four leaf levels (process / task / activity / sub-activity) has
its own checklist table and its own file table.  File rows reference a
checklist by id only (no FK): the file resolver searches all four file
tables for any checklist id, so a row may point at a checklist that lives
in another level's table.

Two storage shapes coexist in the file tables:
  - explicit ``file_id`` column pointing at ``file_contents.id``
  - row id doubling as the file id (``file_id`` NULL)
and the display name may sit in ``file_name`` or in the legacy ``name``.
"""

from docmanager.models import _utcnow, _uuid, db

__all__ = [
    "ProcessChecklist",
    "TaskChecklist",
    "ActivityChecklist",
    "SubActivityChecklist",
    "ProcessFile",
    "TaskFile",
    "ActivityFile",
    "SubActivityFile",
    "ProjectThread",
]


# ═════════════════════════════════════════════════════════════════════════════
# 1. Checklists, one owner each
# ═════════════════════════════════════════════════════════════════════════════

class ProcessChecklist(db.Model):
    __tablename__ = "project_process_checklists"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    process_id = db.Column(
        db.String(36), db.ForeignKey("project_processes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(255), nullable=True)


class TaskChecklist(db.Model):
    __tablename__ = "project_task_checklists"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    task_id = db.Column(
        db.String(36), db.ForeignKey("project_tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(255), nullable=True)


class ActivityChecklist(db.Model):
    __tablename__ = "project_activity_checklists"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    activity_id = db.Column(
        db.String(36), db.ForeignKey("project_activities.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(255), nullable=True)


class SubActivityChecklist(db.Model):
    __tablename__ = "project_subactivity_checklists"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    subactivity_id = db.Column(
        db.String(36), db.ForeignKey("project_subactivities.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(255), nullable=True)


# ═════════════════════════════════════════════════════════════════════════════
# 2. Checklist files, one table per level
# ═════════════════════════════════════════════════════════════════════════════

class _ChecklistFileColumns:
    """Columns shared by the four checklist file tables."""

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    checklist_id = db.Column(db.String(36), nullable=False, index=True)
    file_id = db.Column(db.String(36), nullable=True, comment="NULL → row id is the file id")
    file_name = db.Column(db.String(255), nullable=True)
    name = db.Column(db.String(255), nullable=True, comment="Legacy display name")
    uploaded_at = db.Column(db.DateTime(timezone=True), default=_utcnow)


class ProcessFile(_ChecklistFileColumns, db.Model):
    __tablename__ = "project_process_files"


class TaskFile(_ChecklistFileColumns, db.Model):
    __tablename__ = "project_task_files"


class ActivityFile(_ChecklistFileColumns, db.Model):
    __tablename__ = "project_activity_files"


class SubActivityFile(_ChecklistFileColumns, db.Model):
    __tablename__ = "project_subactivity_files"


# ═════════════════════════════════════════════════════════════════════════════
# 3. Checklist discussion threads
# ═════════════════════════════════════════════════════════════════════════════

class ProjectThread(db.Model):
    """Discussion thread attached to a checklist.

    Attachment lists exist under both the canonical and the historically
    misspelled column names; readers coalesce them.
    """

    __tablename__ = "project_threads"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    checklist_id = db.Column(db.String(36), nullable=False, index=True)
    created_by = db.Column(db.String(255), nullable=True)
    participants = db.Column(db.JSON, nullable=True)
    sample_attachments = db.Column(db.JSON, nullable=True)
    sample_attachements = db.Column(db.JSON, nullable=True)
    thread_attachments = db.Column(db.JSON, nullable=True)
    thread_attachements = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
