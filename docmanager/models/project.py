"""
Project hierarchy models: user scope down to sub-activities.

Containment chain (each level optional beneath its parent):

    ProjectUser ──(pmweb_project_id)──▶ SgProject ──▶ ProjectStagegate (active only)
        ──▶ ProjectProcess ──▶ ProjectTask ──▶ ProjectActivity ──▶ ProjectSubActivity

ProjectPhaseAssetDetail carries the community / phase labels used to group
the document tree; SgProject carries the fallback labels.

Every lookup column used by the hierarchy join is indexed.
"""

from docmanager.models import _uuid, db

__all__ = [
    "ProjectUser",
    "SgProject",
    "ProjectPhaseAssetDetail",
    "ProjectStagegate",
    "ProjectProcess",
    "ProjectTask",
    "ProjectActivity",
    "ProjectSubActivity",
]


class ProjectUser(db.Model):
    """User-scope index: which PMWEB projects a PMWB user can see."""

    __tablename__ = "project_users"
    __table_args__ = (
        db.Index("idx_pu_user_project", "pmwb_user_id", "pmweb_project_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    pmwb_user_id = db.Column(db.Integer, nullable=False, index=True)
    pmweb_project_id = db.Column(db.Integer, nullable=False)


class SgProject(db.Model):
    """Project index keyed by the numeric PMWEB project id."""

    __tablename__ = "sg_projects"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    pmweb_project_id = db.Column(db.Integer, nullable=False, index=True)
    pmweb_project_name = db.Column(db.String(255), nullable=True)
    project_community = db.Column(db.String(255), nullable=True)
    project_phase_or_project = db.Column(db.String(255), nullable=True)


class ProjectPhaseAssetDetail(db.Model):
    """Phase / asset metadata: preferred source of community and phase labels."""

    __tablename__ = "project_phase_asset_details"

    id = db.Column(db.Integer, primary_key=True)
    pmweb_project_id = db.Column(db.Integer, nullable=False, index=True)
    community = db.Column(db.String(255), nullable=True)
    project = db.Column(db.String(255), nullable=True, comment="Phase label")


class ProjectStagegate(db.Model):
    __tablename__ = "project_stagegates"
    __table_args__ = (
        db.Index("idx_sg_project_active", "project_id", "is_active"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), db.ForeignKey("sg_projects.id", ondelete="CASCADE"), nullable=False,
    )
    name = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)


class ProjectProcess(db.Model):
    __tablename__ = "project_processes"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    stagegate_id = db.Column(
        db.String(36), db.ForeignKey("project_stagegates.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(255), nullable=True)


class ProjectTask(db.Model):
    __tablename__ = "project_tasks"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    process_id = db.Column(
        db.String(36), db.ForeignKey("project_processes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(255), nullable=True)


class ProjectActivity(db.Model):
    __tablename__ = "project_activities"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    task_id = db.Column(
        db.String(36), db.ForeignKey("project_tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(255), nullable=True)


class ProjectSubActivity(db.Model):
    __tablename__ = "project_subactivities"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    activity_id = db.Column(
        db.String(36), db.ForeignKey("project_activities.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(255), nullable=True)
