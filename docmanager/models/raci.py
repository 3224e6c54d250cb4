"""
RACI responsibility models.

RaciAssignee links a user to a RACI row; ``raci_group`` says which of the
four owner-level RACI tables the row lives in.  Older rows populated the
``*_alt`` columns instead of the canonical ones.
"""

from docmanager.models import _uuid, db

__all__ = [
    "RaciAssignee",
    "ProcessRaci",
    "TaskRaci",
    "ActivityRaci",
    "SubActivityRaci",
]


class RaciAssignee(db.Model):
    __tablename__ = "raci_assignees"

    id = db.Column(db.Integer, primary_key=True)
    assignee_id = db.Column(db.Integer, nullable=False, index=True)
    raci_id = db.Column(db.String(36), nullable=True)
    raci_id_alt = db.Column(db.String(36), nullable=True, comment="Legacy RaciId")
    raci_group = db.Column(db.String(50), nullable=True)
    raci_group_alt = db.Column(db.String(50), nullable=True, comment="Legacy RaciGroup")
    role = db.Column(db.String(1), nullable=True)  # R | A | C | I


class ProcessRaci(db.Model):
    __tablename__ = "project_process_raci"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    process_id = db.Column(db.String(36), nullable=True, index=True)


class TaskRaci(db.Model):
    __tablename__ = "project_task_raci"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    task_id = db.Column(db.String(36), nullable=True, index=True)


class ActivityRaci(db.Model):
    __tablename__ = "project_activity_raci"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    activity_id = db.Column(db.String(36), nullable=True, index=True)


class SubActivityRaci(db.Model):
    __tablename__ = "project_subactivity_raci"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    subactivity_id = db.Column(db.String(36), nullable=True, index=True)
