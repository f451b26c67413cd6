"""Project status derivation and the project audit log.

Task operations call `apply_project_status` after every stage change so the
derivation rule lives in one place.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from marketplace.models import Project, ProjectLog, ProjectTask

logger = logging.getLogger(__name__)

# Statuses the task aggregate can move a project through, in order.
PROGRESSION: tuple[str, ...] = (
    Project.Status.NEW,
    Project.Status.DESIGN,
    Project.Status.WAITING_DESIGN_APPROVAL,
    Project.Status.WAITING_STAFF,
    Project.Status.IN_PROGRESS,
    Project.Status.WAITING_REVIEW,
)

IGNORED_TASK_STAGES = frozenset({ProjectTask.Stage.DRAFT, ProjectTask.Stage.DELETED})

STAFFED_TASK_TYPES = frozenset({ProjectTask.Type.PROJECT_MANAGEMENT, ProjectTask.Type.DOMAIN_WORK})


def _is_covered(task: ProjectTask, volunteer_counts: dict[int, int] | None) -> bool:
    if task.stage == ProjectTask.Stage.COMPLETED:
        return True
    if volunteer_counts is not None:
        return volunteer_counts.get(task.pk, 0) > 0
    return task.roles.exists()


def derive_project_status(
    tasks: Iterable[ProjectTask],
    *,
    volunteer_counts: dict[int, int] | None = None,
) -> str:
    """Return the status implied by the stages and volunteers of `tasks`.

    `volunteer_counts` maps task id to its number of volunteers; when omitted
    each task's role rows are queried.
    """

    tasks = list(tasks)
    live = [task for task in tasks if task.stage not in IGNORED_TASK_STAGES]
    # A scoping task gates the project until it is completed, even while in Draft.
    scoping = [
        task for task in tasks if task.type == ProjectTask.Type.SCOPING and task.stage != ProjectTask.Stage.DELETED
    ]
    if not live and not scoping:
        return Project.Status.NEW

    staffed_tasks = [task for task in live if task.type in STAFFED_TASK_TYPES]
    domain_work = [task for task in live if task.type == ProjectTask.Type.DOMAIN_WORK]

    scoping_staffed = any(_is_covered(task, volunteer_counts) for task in scoping)
    scoping_done = all(task.stage == ProjectTask.Stage.COMPLETED for task in scoping)
    staffed = bool(staffed_tasks) and all(_is_covered(task, volunteer_counts) for task in staffed_tasks)
    delivered = bool(domain_work) and all(task.stage == ProjectTask.Stage.COMPLETED for task in domain_work)

    if scoping_done and staffed and delivered:
        return Project.Status.WAITING_REVIEW
    if scoping_done and staffed:
        return Project.Status.IN_PROGRESS
    if scoping_done:
        return Project.Status.WAITING_STAFF
    if scoping_staffed:
        return Project.Status.DESIGN
    return Project.Status.NEW


def next_project_status(current: str, derived: str) -> str:
    """Combine the stored and derived statuses without ever moving backwards."""

    if current not in PROGRESSION:
        return current
    if PROGRESSION.index(derived) > PROGRESSION.index(current):
        return derived
    return current


def recompute_project_status(project: Project, tasks: Sequence[ProjectTask] | None = None) -> str:
    """Return the status `project` should have given its tasks.

    Does not save; callers persist the result when it differs.
    """

    if tasks is None:
        tasks = list(project.tasks.all())
    derived = derive_project_status(tasks)
    status = next_project_status(project.status, derived)
    logger.debug(
        "recompute_project_status: project_id=%s current=%s derived=%s result=%s",
        project.pk,
        project.status,
        derived,
        status,
    )
    return status


def apply_project_status(*, project: Project, author: Any) -> bool:
    """Recompute and persist `project.status`; log the change when it moves."""

    status = recompute_project_status(project)
    if status == project.status:
        return False

    previous = project.get_status_display()
    project.status = status
    project.save(update_fields=["status", "last_modified_date"])
    write_project_log(
        project=project,
        author=author,
        change_type=ProjectLog.ChangeType.PROJECT,
        change_target=project.pk,
        description=f"Project status changed from {previous} to {project.get_status_display()}",
    )
    logger.info("Project status changed: project_id=%s status=%s", project.pk, status)
    return True


def write_project_log(
    *,
    project: Project,
    author: Any,
    change_type: str,
    change_target: int,
    description: str,
) -> ProjectLog:
    return ProjectLog.objects.create(
        project=project,
        author=author,
        change_type=change_type,
        change_target=change_target,
        change_description=description,
    )
