"""
ORM seed helpers for document manager tests.

Every helper flushes; call ``commit()`` before exercising a resolver,
because store operations read through their own connections.
"""

from docmanager.models import db as _db
from docmanager.models.auth import User
from docmanager.models.checklist import (
    ActivityChecklist,
    ActivityFile,
    ProcessChecklist,
    ProcessFile,
    ProjectThread,
    SubActivityChecklist,
    SubActivityFile,
    TaskChecklist,
    TaskFile,
)
from docmanager.models.content import FileContent, FileContentVersion
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
from docmanager.models.raci import (
    ActivityRaci,
    ProcessRaci,
    RaciAssignee,
    SubActivityRaci,
    TaskRaci,
)

USER_ID = 101
PMWEB_PROJECT_ID = 5001

_CHECKLIST_MODELS = {
    "process": (ProcessChecklist, "process_id"),
    "task": (TaskChecklist, "task_id"),
    "activity": (ActivityChecklist, "activity_id"),
    "subactivity": (SubActivityChecklist, "subactivity_id"),
}

_FILE_MODELS = {
    "process": ProcessFile,
    "task": TaskFile,
    "activity": ActivityFile,
    "subactivity": SubActivityFile,
}

_RACI_MODELS = {
    "process": (ProcessRaci, "process_id"),
    "task": (TaskRaci, "task_id"),
    "activity": (ActivityRaci, "activity_id"),
    "subactivity": (SubActivityRaci, "subactivity_id"),
}


def _add(obj):
    _db.session.add(obj)
    _db.session.flush()
    return obj


def commit():
    _db.session.commit()


# ── Hierarchy ─────────────────────────────────────────────────────────────────


def make_project(
    user_id: int = USER_ID,
    pmweb_project_id: int = PMWEB_PROJECT_ID,
    name: str = "North Field",
    community: str | None = None,
    phase: str | None = None,
) -> SgProject:
    _add(ProjectUser(pmwb_user_id=user_id, pmweb_project_id=pmweb_project_id))
    return _add(SgProject(
        pmweb_project_id=pmweb_project_id,
        pmweb_project_name=name,
        project_community=community,
        project_phase_or_project=phase,
    ))


def make_phase_details(pmweb_project_id: int = PMWEB_PROJECT_ID, community: str | None = None,
                       phase: str | None = None) -> ProjectPhaseAssetDetail:
    return _add(ProjectPhaseAssetDetail(pmweb_project_id=pmweb_project_id, community=community, project=phase))


def make_stagegate(project: SgProject, name: str = "Gate 1", active: bool = True) -> ProjectStagegate:
    return _add(ProjectStagegate(project_id=project.id, name=name, is_active=active))


def make_process(stagegate: ProjectStagegate, name: str = "Process") -> ProjectProcess:
    return _add(ProjectProcess(stagegate_id=stagegate.id, name=name))


def make_task(process: ProjectProcess, name: str = "Task") -> ProjectTask:
    return _add(ProjectTask(process_id=process.id, name=name))


def make_activity(task: ProjectTask, name: str = "Activity") -> ProjectActivity:
    return _add(ProjectActivity(task_id=task.id, name=name))


def make_subactivity(activity: ProjectActivity, name: str = "Sub-activity") -> ProjectSubActivity:
    return _add(ProjectSubActivity(activity_id=activity.id, name=name))


# ── Checklists & files ────────────────────────────────────────────────────────


def make_checklist(kind: str, owner, title: str = "Checklist"):
    model, owner_field = _CHECKLIST_MODELS[kind]
    return _add(model(**{owner_field: owner.id, "title": title}))


def make_file(kind: str, checklist_id: str, file_name: str | None = "spec.docx",
              file_id: str | None = None, legacy_name: str | None = None):
    model = _FILE_MODELS[kind]
    return _add(model(checklist_id=checklist_id, file_id=file_id, file_name=file_name, name=legacy_name))


def make_thread(checklist_id: str, **kwargs) -> ProjectThread:
    return _add(ProjectThread(checklist_id=checklist_id, **kwargs))


# ── Content, users, RACI ──────────────────────────────────────────────────────


def make_content(**kwargs) -> FileContent:
    kwargs.setdefault("file_name", "spec.docx")
    kwargs.setdefault("file_type", "application/vnd.openxmlformats-officedocument.wordprocessingml.document")
    kwargs.setdefault("file_size", 1024)
    return _add(FileContent(**kwargs))


def make_version(file_id: str, version_no: int, **kwargs) -> FileContentVersion:
    return _add(FileContentVersion(file_id=file_id, version_no=version_no, **kwargs))


def make_user(**kwargs) -> User:
    return _add(User(**kwargs))


def make_raci(kind: str, owner, assignee_id: int = USER_ID, group: str | None = None,
              legacy: bool = False) -> RaciAssignee:
    model, owner_field = _RACI_MODELS[kind]
    raci_row = _add(model(**{owner_field: owner.id}))
    label = group or f"{kind.capitalize()}Raci"
    if legacy:
        return _add(RaciAssignee(assignee_id=assignee_id, raci_id_alt=raci_row.id, raci_group_alt=label, role="R"))
    return _add(RaciAssignee(assignee_id=assignee_id, raci_id=raci_row.id, raci_group=label, role="R"))


# ── Composite scenario ───────────────────────────────────────────────────────


def make_process_with_files(project=None, process_name: str = "Drilling", file_names=("a.pdf", "b.docx")):
    """One active stage-gate, one process, one checklist per file."""
    project = project or make_project()
    gate = make_stagegate(project)
    process = make_process(gate, process_name)
    for name in file_names:
        checklist = make_checklist("process", process)
        make_file("process", checklist.id, file_name=name)
    return project, gate, process
