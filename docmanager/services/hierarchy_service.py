"""
Hierarchy Resolver: flattened project paths visible to a user.

One SQL statement joins six nesting levels:

    project_users ─(inner)─▶ sg_projects
                  ─(left)──▶ project_phase_asset_details
                  ─(left)──▶ project_stagegates (active only)
                  ─(left)──▶ processes ─(left)─▶ tasks ─(left)─▶ activities ─(left)─▶ sub-activities

Every join compares against the immediate parent id only.  A user row
without a matching project is dropped (inner join); every deeper level is
optional, so a project without active stage-gates still yields one row with
NULL stage-gate / process / ... columns.

Labels:
    community = phase.community → project.community → project.name
    phaseName = phase.project → project.phase_or_project

Result rows are plain dicts keyed by the camelCase names the tree builder
and the UI consume (ROW_FIELDS).
"""

import logging

from sqlalchemy import and_, func, select

from docmanager.models.project import (
    ProjectActivity,
    ProjectPhaseAssetDetail,
    ProjectProcess,
    ProjectStagegate,
    ProjectSubActivity,
    ProjectTask,
    ProjectUser,
    SgProject,
)
from docmanager.services.identifiers import parse_optional_int, parse_user_id

logger = logging.getLogger(__name__)

ROW_FIELDS: tuple[str, ...] = (
    "userId",
    "pmwebProjectId",
    "projectId",
    "projectName",
    "community",
    "phaseName",
    "stagegateId",
    "stagegateName",
    "processId",
    "processName",
    "taskId",
    "taskName",
    "activityId",
    "activityName",
    "subactivityId",
    "subactivityName",
)


def _hierarchy_statement(user_id: int, pmweb_project_id: int | None):
    community = func.coalesce(
        ProjectPhaseAssetDetail.community,
        SgProject.project_community,
        SgProject.pmweb_project_name,
    )
    phase_name = func.coalesce(
        ProjectPhaseAssetDetail.project,
        SgProject.project_phase_or_project,
    )

    stmt = (
        select(
            ProjectUser.pmwb_user_id.label("userId"),
            SgProject.pmweb_project_id.label("pmwebProjectId"),
            SgProject.id.label("projectId"),
            SgProject.pmweb_project_name.label("projectName"),
            community.label("community"),
            phase_name.label("phaseName"),
            ProjectStagegate.id.label("stagegateId"),
            ProjectStagegate.name.label("stagegateName"),
            ProjectProcess.id.label("processId"),
            ProjectProcess.name.label("processName"),
            ProjectTask.id.label("taskId"),
            ProjectTask.name.label("taskName"),
            ProjectActivity.id.label("activityId"),
            ProjectActivity.name.label("activityName"),
            ProjectSubActivity.id.label("subactivityId"),
            ProjectSubActivity.name.label("subactivityName"),
        )
        .select_from(ProjectUser)
        .join(SgProject, SgProject.pmweb_project_id == ProjectUser.pmweb_project_id)
        .outerjoin(
            ProjectPhaseAssetDetail,
            ProjectPhaseAssetDetail.pmweb_project_id == ProjectUser.pmweb_project_id,
        )
        .outerjoin(
            ProjectStagegate,
            and_(
                ProjectStagegate.project_id == SgProject.id,
                ProjectStagegate.is_active.is_(True),
            ),
        )
        .outerjoin(ProjectProcess, ProjectProcess.stagegate_id == ProjectStagegate.id)
        .outerjoin(ProjectTask, ProjectTask.process_id == ProjectProcess.id)
        .outerjoin(ProjectActivity, ProjectActivity.task_id == ProjectTask.id)
        .outerjoin(ProjectSubActivity, ProjectSubActivity.activity_id == ProjectActivity.id)
        .where(ProjectUser.pmwb_user_id == user_id)
    )
    if pmweb_project_id is not None:
        stmt = stmt.where(ProjectUser.pmweb_project_id == pmweb_project_id)

    return stmt.order_by(
        ProjectUser.id,
        SgProject.id,
        ProjectPhaseAssetDetail.id,
        ProjectStagegate.id,
        ProjectProcess.id,
        ProjectTask.id,
        ProjectActivity.id,
        ProjectSubActivity.id,
    )


def get_stagegate_hierarchy_rows(store, user_id, pmweb_project_id=None) -> list[dict]:
    """Return one flattened row per most-granular node visible to the user.

    Args:
        store: DocumentStore handle.
        user_id: PMWB user id (int or numeric string).
        pmweb_project_id: Optional project-scope filter.

    Returns:
        List of dicts with the ROW_FIELDS keys; reference ids are strings,
        missing deeper levels are None.  Empty list when nothing is visible.

    Raises:
        ValidationError: non-numeric user / project id.
        StoreTimeoutError: the join exceeded the store time budget.
    """
    uid = parse_user_id(user_id)
    project_filter = parse_optional_int(pmweb_project_id, "projectId")
    stmt = _hierarchy_statement(uid, project_filter)

    def _query(session):
        return [dict(row._mapping) for row in session.execute(stmt)]

    rows = store.run("hierarchy_rows", _query)
    logger.debug("Hierarchy rows for user %s (project=%s): %d", uid, project_filter, len(rows))
    return rows
