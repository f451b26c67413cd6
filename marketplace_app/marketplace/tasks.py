"""Task lifecycle operations.

Every mutating operation checks permissions first, then the task state, then
writes the change, one project log entry for it and finally refreshes the
derived project status.
"""

from __future__ import annotations

import logging
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from marketplace.authorization import (
    PROJECT_TASK_APPLY,
    PROJECT_TASK_DELETE,
    PROJECT_TASK_EDIT,
    PROJECT_TASK_REVIEW_DO,
    PROJECT_TASK_REVIEW_VIEW,
    PROJECT_TASKS_VIEW,
    PROJECT_VOLUNTEER_TASK_CANCEL,
    PROJECT_VOLUNTEER_TASK_FINISH,
    PROJECT_VOLUNTEERS_APPLICATION_REVIEW,
    PROJECT_VOLUNTEERS_EDIT,
    PROJECT_VOLUNTEERS_REMOVE,
    ensure_permission,
    has_permission,
)
from marketplace.errors import ConsistencyError, validate_consistent_keys
from marketplace.lifecycle import apply_project_status, write_project_log
from marketplace.models import (
    Project,
    ProjectLog,
    ProjectTask,
    ProjectTaskReview,
    ProjectTaskRole,
    ReviewStatus,
    User,
    UserNotification,
    VolunteerApplication,
)
from marketplace.notifications import notify
from marketplace.projects import get_project_officials
from marketplace.volunteers import record_accepted_review

logger = logging.getLogger(__name__)

# Task types that take a single volunteer; accepting one closes the task.
EXCLUSIVE_TASK_TYPES = frozenset({ProjectTask.Type.SCOPING, ProjectTask.Type.DOMAIN_WORK})

OPEN_STAGES = frozenset({ProjectTask.Stage.NOT_STARTED, ProjectTask.Stage.ACCEPTING_VOLUNTEERS})
CLOSED_TASK_STAGES = frozenset({ProjectTask.Stage.DRAFT, ProjectTask.Stage.DELETED, ProjectTask.Stage.COMPLETED})
CLOSED_PROJECT_STATUSES = frozenset({Project.Status.COMPLETED, Project.Status.DELETED})
# Projects whose tasks take no applications.
NON_RECRUITING_PROJECT_STATUSES = frozenset(
    {Project.Status.DRAFT, Project.Status.COMPLETED, Project.Status.EXPIRED, Project.Status.DELETED}
)


def _locked_task(*, project_id: int, task_id: int, check_project: bool = True) -> ProjectTask:
    task = ProjectTask.objects.select_for_update().select_related("project").get(pk=task_id)
    if check_project:
        validate_consistent_keys(task, ("project_id", project_id))
    return task


def _log(*, task: ProjectTask, user: Any, change_type: str, change_target: int, description: str) -> None:
    write_project_log(
        project=task.project,
        author=user,
        change_type=change_type,
        change_target=change_target,
        description=description,
    )


def _release_if_unstaffed(task: ProjectTask) -> bool:
    """Reopen a task whose last volunteer left."""

    if task.roles.exists():
        return False
    if task.stage not in OPEN_STAGES | {ProjectTask.Stage.STARTED}:
        return False
    task.stage = ProjectTask.Stage.NOT_STARTED
    task.accepting_volunteers = True
    task.save(update_fields=["stage", "accepting_volunteers", "last_modified_date"])
    logger.debug("_release_if_unstaffed: task_id=%s reopened", task.pk)
    return True


def _start_with_volunteer(task: ProjectTask, *, had_volunteers: bool) -> None:
    update_fields = ["last_modified_date"]
    if not had_volunteers and task.stage in OPEN_STAGES:
        task.stage = ProjectTask.Stage.STARTED
        if task.actual_start_date is None:
            task.actual_start_date = timezone.localdate()
        update_fields += ["stage", "actual_start_date"]
    if task.type in EXCLUSIVE_TASK_TYPES and task.accepting_volunteers:
        task.accepting_volunteers = False
        update_fields.append("accepting_volunteers")
    task.save(update_fields=update_fields)


def _task_volunteers(task: ProjectTask) -> QuerySet[User]:
    return User.objects.filter(task_roles__task=task).order_by("pk")


# Queries


def get_project_task(*, project_id: int, task_id: int) -> ProjectTask:
    return ProjectTask.objects.select_related("project").get(pk=task_id, project_id=project_id)


def get_all_tasks(*, user: Any, project: Project) -> QuerySet[ProjectTask]:
    ensure_permission(user, project, PROJECT_TASKS_VIEW)
    return project.tasks.exclude(stage=ProjectTask.Stage.DELETED).order_by("creation_date", "id")


def get_public_tasks(project: Project) -> QuerySet[ProjectTask]:
    return project.tasks.exclude(stage__in=(ProjectTask.Stage.DRAFT, ProjectTask.Stage.DELETED))


def get_open_tasks(project: Project) -> QuerySet[ProjectTask]:
    return get_public_tasks(project).filter(accepting_volunteers=True).exclude(stage=ProjectTask.Stage.COMPLETED)


def get_non_finished_tasks(project: Project) -> QuerySet[ProjectTask]:
    return project.tasks.exclude(stage__in=(ProjectTask.Stage.COMPLETED, ProjectTask.Stage.DELETED))


def task_has_volunteers(task: ProjectTask) -> bool:
    return task.roles.exists()


def get_task_volunteers(task: ProjectTask) -> QuerySet[User]:
    return _task_volunteers(task)


def get_volunteer_current_tasks(*, user: Any, project_id: int) -> QuerySet[ProjectTask]:
    return ProjectTask.objects.filter(
        project_id=project_id,
        roles__user=user,
        stage__in=(ProjectTask.Stage.STARTED, ProjectTask.Stage.WAITING_REVIEW),
    ).distinct()


def get_user_in_progress_tasks(user: Any) -> QuerySet[ProjectTask]:
    return ProjectTask.objects.filter(roles__user=user, stage=ProjectTask.Stage.STARTED).distinct()


def get_volunteer_open_task_applications(*, user: Any, project_id: int | None = None) -> QuerySet[VolunteerApplication]:
    applications = VolunteerApplication.objects.filter(volunteer=user, status=ReviewStatus.NEW)
    if project_id is not None:
        applications = applications.filter(task__project_id=project_id)
    return applications


def get_task_reviews(*, user: Any, task: ProjectTask) -> list[ProjectTaskReview]:
    ensure_permission(user, task.project, PROJECT_TASKS_VIEW)
    return [
        review
        for review in task.reviews.select_related("volunteer", "task__project").order_by("-review_request_date", "-id")
        if has_permission(user, review, PROJECT_TASK_REVIEW_VIEW)
    ]


def get_project_task_review(*, user: Any, project_id: int, task_id: int, review_id: int) -> ProjectTaskReview:
    review = ProjectTaskReview.objects.select_related("task__project", "volunteer").get(
        pk=review_id,
        task_id=task_id,
        task__project_id=project_id,
    )
    ensure_permission(user, review, PROJECT_TASK_REVIEW_VIEW)
    return review


# Task editing


@transaction.atomic
def create_default_task(*, user: Any, project_id: int) -> ProjectTask:
    project = Project.objects.select_for_update().get(pk=project_id)
    ensure_permission(user, project, PROJECT_TASK_EDIT)
    if project.status in CLOSED_PROJECT_STATUSES:
        raise ConsistencyError("Tasks cannot be added to a finished project.")

    task = ProjectTask.objects.create(
        project=project,
        name="New task",
        type=ProjectTask.Type.DOMAIN_WORK,
        stage=ProjectTask.Stage.DRAFT,
        accepting_volunteers=False,
    )
    _log(
        task=task,
        user=user,
        change_type=ProjectLog.ChangeType.TASK,
        change_target=task.pk,
        description=f"Created task {task.name}",
    )
    return task


@transaction.atomic
def save_task(*, user: Any, project_id: int, task_id: int, task: ProjectTask) -> ProjectTask:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_TASK_EDIT)
    validate_consistent_keys(task, ("pk", task_id), ("project_id", project_id))

    current = _locked_task(project_id=project_id, task_id=task_id)
    if task.stage != current.stage and not (
        current.stage == ProjectTask.Stage.NOT_STARTED and task.stage == ProjectTask.Stage.STARTED
    ):
        raise ConsistencyError(
            f"The task stage cannot be changed from {current.get_stage_display()} to {task.get_stage_display()}."
        )

    task.save()
    _log(
        task=task,
        user=user,
        change_type=ProjectLog.ChangeType.TASK,
        change_target=task.pk,
        description=f"Edited task {task.name}",
    )
    apply_project_status(project=task.project, author=user)
    return task


@transaction.atomic
def publish_project_task(*, user: Any, project_id: int, task_id: int, task: ProjectTask) -> ProjectTask:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_TASK_EDIT)
    validate_consistent_keys(task, ("pk", task_id), ("project_id", project_id))

    current = _locked_task(project_id=project_id, task_id=task_id)
    if current.stage != ProjectTask.Stage.DRAFT:
        raise ConsistencyError("Only draft tasks can be published.")

    task.stage = ProjectTask.Stage.NOT_STARTED
    task.save()
    _log(
        task=task,
        user=user,
        change_type=ProjectLog.ChangeType.TASK,
        change_target=task.pk,
        description=f"Published task {task.name}",
    )
    apply_project_status(project=task.project, author=user)
    return task


@transaction.atomic
def toggle_task_accepting_volunteers(*, user: Any, project_id: int, task_id: int) -> ProjectTask:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_TASK_EDIT)

    task = _locked_task(project_id=project_id, task_id=task_id)
    if task.stage in (ProjectTask.Stage.COMPLETED, ProjectTask.Stage.DELETED):
        raise ConsistencyError("Finished tasks cannot accept volunteers.")

    task.accepting_volunteers = not task.accepting_volunteers
    task.save(update_fields=["accepting_volunteers", "last_modified_date"])
    state = "open to" if task.accepting_volunteers else "closed to"
    _log(
        task=task,
        user=user,
        change_type=ProjectLog.ChangeType.TASK,
        change_target=task.pk,
        description=f"Task {task.name} is now {state} new volunteers",
    )
    return task


@transaction.atomic
def delete_task(*, user: Any, project_id: int, task: ProjectTask) -> ProjectTask:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_TASK_DELETE)

    locked = _locked_task(project_id=project_id, task_id=task.pk)
    if locked.stage == ProjectTask.Stage.DELETED:
        raise ConsistencyError("The task has already been deleted.")
    if locked.stage == ProjectTask.Stage.COMPLETED:
        raise ConsistencyError("Completed tasks cannot be deleted.")
    if task_has_volunteers(locked):
        raise ConsistencyError("Cannot delete a task that has volunteers.")

    locked.stage = ProjectTask.Stage.DELETED
    locked.accepting_volunteers = False
    locked.save(update_fields=["stage", "accepting_volunteers", "last_modified_date"])
    task.stage = locked.stage
    task.accepting_volunteers = locked.accepting_volunteers
    closed_applications = _close_pending_applications(task=locked, user=user)
    _log(
        task=locked,
        user=user,
        change_type=ProjectLog.ChangeType.TASK,
        change_target=locked.pk,
        description=f"Deleted task {locked.name}",
    )
    apply_project_status(project=locked.project, author=user)

    if closed_applications:
        notify(
            [application.volunteer for application in closed_applications],
            f"Task {locked.name} of {locked.project.name} was removed, so your application to it was closed.",
            severity=UserNotification.Severity.WARNING,
            source=UserNotification.Source.VOLUNTEER_APPLICATION,
            target_id=locked.pk,
        )
    return locked


def _close_pending_applications(*, task: ProjectTask, user: Any) -> list[VolunteerApplication]:
    """Reject every pending application of a task that no longer takes volunteers."""

    pending = list(
        VolunteerApplication.objects.select_for_update()
        .filter(task=task, status=ReviewStatus.NEW)
        .select_related("volunteer")
    )
    for application in pending:
        application.status = ReviewStatus.REJECTED
        application.reviewer = user
        application.resolution_date = timezone.now()
        application.save(update_fields=["status", "reviewer", "resolution_date"])
    if pending:
        logger.debug("_close_pending_applications: task_id=%s closed=%s", task.pk, len(pending))
    return pending


# Volunteer applications


@transaction.atomic
def apply_to_volunteer(
    *,
    user: Any,
    project_id: int,
    task_id: int,
    application: VolunteerApplication,
) -> VolunteerApplication:
    task = _locked_task(project_id=project_id, task_id=task_id, check_project=False)
    ensure_permission(user, task, PROJECT_TASK_APPLY)
    validate_consistent_keys(task, ("project_id", project_id))

    if task.project.status in NON_RECRUITING_PROJECT_STATUSES:
        raise ConsistencyError("This project is not open for applications.")
    if task.stage in CLOSED_TASK_STAGES:
        raise ConsistencyError("This task is not open for applications.")
    if not task.accepting_volunteers:
        raise ConsistencyError("This task is not accepting volunteers.")
    if ProjectTaskRole.objects.filter(task=task, user=user).exists():
        raise ConsistencyError("You are already a volunteer on this task.")
    if VolunteerApplication.objects.filter(task=task, volunteer=user, status=ReviewStatus.NEW).exists():
        raise ConsistencyError("You already have a pending application for this task.")

    application.task = task
    application.volunteer = user
    application.status = ReviewStatus.NEW
    application.save()
    _log(
        task=task,
        user=user,
        change_type=ProjectLog.ChangeType.VOLUNTEER_APPLICATION,
        change_target=application.pk,
        description=f"{user} applied to volunteer on task {task.name}",
    )
    logger.debug("apply_to_volunteer: application_id=%s task_id=%s user_id=%s", application.pk, task.pk, user.pk)

    notify(
        get_project_officials(task.project),
        f"{user} applied to volunteer on task {task.name} of {task.project.name}.",
        source=UserNotification.Source.VOLUNTEER_APPLICATION,
        target_id=application.pk,
    )
    return application


def _locked_new_application(*, task: ProjectTask, application: VolunteerApplication) -> VolunteerApplication:
    validate_consistent_keys(application, ("task_id", task.pk))
    locked = VolunteerApplication.objects.select_for_update().get(pk=application.pk)
    if locked.status != ReviewStatus.NEW:
        raise ConsistencyError("This application has already been reviewed.")
    return locked


@transaction.atomic
def accept_volunteer(
    *,
    user: Any,
    project_id: int,
    task_id: int,
    application: VolunteerApplication,
) -> VolunteerApplication:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_VOLUNTEERS_APPLICATION_REVIEW)

    task = _locked_task(project_id=project_id, task_id=task_id)
    if task.stage in CLOSED_TASK_STAGES:
        raise ConsistencyError("Volunteers can only be accepted on open tasks.")
    _locked_new_application(task=task, application=application)

    application.status = ReviewStatus.ACCEPTED
    application.reviewer = user
    application.resolution_date = timezone.now()
    application.save()

    had_volunteers = task_has_volunteers(task)
    try:
        with transaction.atomic():
            ProjectTaskRole.objects.create(
                user=application.volunteer,
                task=task,
                role=ProjectTaskRole.Role.VOLUNTEER,
            )
    except IntegrityError as exc:
        raise ConsistencyError("The applicant is already a volunteer on this task.") from exc
    _start_with_volunteer(task, had_volunteers=had_volunteers)

    _log(
        task=task,
        user=user,
        change_type=ProjectLog.ChangeType.VOLUNTEER_APPLICATION,
        change_target=application.pk,
        description=f"Accepted {application.volunteer} as a volunteer on task {task.name}",
    )
    logger.info(
        "Volunteer accepted: application_id=%s task_id=%s volunteer_id=%s",
        application.pk,
        task.pk,
        application.volunteer_id,
    )
    apply_project_status(project=task.project, author=user)

    notify(
        application.volunteer,
        f"Congratulations! You have been accepted as a volunteer on task {task.name} of {task.project.name}.",
        source=UserNotification.Source.VOLUNTEER_APPLICATION,
        target_id=application.pk,
    )
    return application


@transaction.atomic
def reject_volunteer(
    *,
    user: Any,
    project_id: int,
    task_id: int,
    application: VolunteerApplication,
) -> VolunteerApplication:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_VOLUNTEERS_APPLICATION_REVIEW)

    task = _locked_task(project_id=project_id, task_id=task_id)
    _locked_new_application(task=task, application=application)

    application.status = ReviewStatus.REJECTED
    application.reviewer = user
    application.resolution_date = timezone.now()
    application.save()
    _log(
        task=task,
        user=user,
        change_type=ProjectLog.ChangeType.VOLUNTEER_APPLICATION,
        change_target=application.pk,
        description=f"Rejected the application of {application.volunteer} to task {task.name}",
    )

    notify(
        application.volunteer,
        f"Your application to volunteer on task {task.name} of {task.project.name} was not accepted.",
        severity=UserNotification.Severity.WARNING,
        source=UserNotification.Source.VOLUNTEER_APPLICATION,
        target_id=application.pk,
    )
    return application


# Completion and review


@transaction.atomic
def mark_task_as_completed(
    *,
    user: Any,
    project_id: int,
    task_id: int,
    review: ProjectTaskReview,
) -> ProjectTaskReview:
    task = _locked_task(project_id=project_id, task_id=task_id, check_project=False)
    ensure_permission(user, task, PROJECT_VOLUNTEER_TASK_FINISH)
    validate_consistent_keys(task, ("project_id", project_id))
    if task.stage != ProjectTask.Stage.STARTED:
        raise ConsistencyError("Only tasks in progress can be marked as completed.")

    review.task = task
    review.volunteer = user
    review.review_result = ReviewStatus.NEW
    review.save()

    task.stage = ProjectTask.Stage.WAITING_REVIEW
    task.save(update_fields=["stage", "last_modified_date"])
    _log(
        task=task,
        user=user,
        change_type=ProjectLog.ChangeType.TASK_REVIEW,
        change_target=review.pk,
        description=f"{user} marked task {task.name} as completed",
    )
    apply_project_status(project=task.project, author=user)

    reviewers = [reviewer for reviewer in get_project_officials(task.project) if reviewer.pk != user.pk]
    notify(
        reviewers,
        f"{user} marked task {task.name} of {task.project.name} as completed and is waiting for a review.",
        source=UserNotification.Source.TASK,
        target_id=task.pk,
    )
    return review


def _locked_new_review(*, task: ProjectTask, review: ProjectTaskReview) -> None:
    validate_consistent_keys(review, ("task_id", task.pk))
    locked = ProjectTaskReview.objects.select_for_update().get(pk=review.pk)
    if locked.review_result != ReviewStatus.NEW:
        raise ConsistencyError("This review has already been resolved.")
    if task.stage != ProjectTask.Stage.WAITING_REVIEW:
        raise ConsistencyError("The task is not waiting for a review.")


@transaction.atomic
def accept_task_review(
    *,
    user: Any,
    project_id: int,
    task_id: int,
    review: ProjectTaskReview,
) -> ProjectTaskReview:
    task = _locked_task(project_id=project_id, task_id=task_id, check_project=False)
    ensure_permission(user, task, PROJECT_TASK_REVIEW_DO)
    validate_consistent_keys(task, ("project_id", project_id))
    _locked_new_review(task=task, review=review)

    review.review_result = ReviewStatus.ACCEPTED
    review.reviewer = user
    review.review_date = timezone.now()
    review.save()

    task.stage = ProjectTask.Stage.COMPLETED
    task.percentage_complete = 1.0
    task.actual_effort_hours = review.volunteer_effort_hours
    task.actual_end_date = timezone.localdate()
    task.accepting_volunteers = False
    task.save(
        update_fields=[
            "stage",
            "percentage_complete",
            "actual_effort_hours",
            "actual_end_date",
            "accepting_volunteers",
            "last_modified_date",
        ]
    )
    record_accepted_review(review=review)

    _log(
        task=task,
        user=user,
        change_type=ProjectLog.ChangeType.TASK_REVIEW,
        change_target=review.pk,
        description=f"Accepted the completion of task {task.name}",
    )
    logger.info("Task review accepted: review_id=%s task_id=%s reviewer_id=%s", review.pk, task.pk, user.pk)
    apply_project_status(project=task.project, author=user)

    notify(
        _task_volunteers(task),
        f"The work on task {task.name} of {task.project.name} has been accepted. Thank you!",
        source=UserNotification.Source.TASK,
        target_id=task.pk,
    )
    return review


@transaction.atomic
def reject_task_review(
    *,
    user: Any,
    project_id: int,
    task_id: int,
    review: ProjectTaskReview,
) -> ProjectTaskReview:
    task = _locked_task(project_id=project_id, task_id=task_id, check_project=False)
    ensure_permission(user, task, PROJECT_TASK_REVIEW_DO)
    validate_consistent_keys(task, ("project_id", project_id))
    _locked_new_review(task=task, review=review)

    review.review_result = ReviewStatus.REJECTED
    review.reviewer = user
    review.review_date = timezone.now()
    review.save()

    task.stage = ProjectTask.Stage.STARTED
    task.save(update_fields=["stage", "last_modified_date"])
    _log(
        task=task,
        user=user,
        change_type=ProjectLog.ChangeType.TASK_REVIEW,
        change_target=review.pk,
        description=f"Rejected the completion of task {task.name}",
    )

    notify(
        _task_volunteers(task),
        f"The work on task {task.name} of {task.project.name} needs more work before it can be accepted.",
        severity=UserNotification.Severity.WARNING,
        source=UserNotification.Source.TASK,
        target_id=task.pk,
    )
    return review


# Volunteer roles


@transaction.atomic
def cancel_volunteering(*, user: Any, project_id: int, task_id: int, role: ProjectTaskRole) -> ProjectTask:
    task = _locked_task(project_id=project_id, task_id=task_id, check_project=False)
    ensure_permission(user, task, PROJECT_VOLUNTEER_TASK_CANCEL)
    validate_consistent_keys(task, ("project_id", project_id))
    validate_consistent_keys(role, ("task_id", task.pk), ("user_id", user.pk))
    if task.stage in (ProjectTask.Stage.COMPLETED, ProjectTask.Stage.WAITING_REVIEW):
        raise ConsistencyError("You cannot stop volunteering on a task that is finished or waiting for review.")

    role_pk = role.pk
    role.delete()
    _release_if_unstaffed(task)
    _log(
        task=task,
        user=user,
        change_type=ProjectLog.ChangeType.TASK_ROLE,
        change_target=role_pk,
        description=f"{user} stopped volunteering on task {task.name}",
    )
    logger.info("Volunteer cancelled: task_id=%s user_id=%s", task.pk, user.pk)
    apply_project_status(project=task.project, author=user)

    notify(
        get_project_officials(task.project),
        f"{user} stopped volunteering on task {task.name} of {task.project.name}.",
        severity=UserNotification.Severity.WARNING,
        source=UserNotification.Source.TASK,
        target_id=task.pk,
    )
    return task


@transaction.atomic
def save_project_task_role(*, user: Any, project_id: int, task_id: int, role: ProjectTaskRole) -> ProjectTaskRole:
    """Move a volunteer from task `task_id` to the task currently set on `role`."""

    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_VOLUNTEERS_EDIT)

    current = ProjectTaskRole.objects.select_related("task").get(pk=role.pk)
    if current.task_id != task_id or current.user_id != role.user_id:
        raise ConsistencyError("Role does not match task or user")
    source = _locked_task(project_id=project_id, task_id=task_id)
    target = _locked_task(project_id=project_id, task_id=role.task_id)
    if target.stage in (ProjectTask.Stage.DRAFT, ProjectTask.Stage.DELETED, ProjectTask.Stage.COMPLETED):
        raise ConsistencyError("Volunteers can only be moved to open tasks.")

    if target.pk == source.pk:
        role.save()
        return role

    had_volunteers = task_has_volunteers(target)
    try:
        with transaction.atomic():
            role.task = target
            role.save()
    except IntegrityError as exc:
        raise ConsistencyError("The volunteer is already assigned to that task.") from exc
    _release_if_unstaffed(source)
    _start_with_volunteer(target, had_volunteers=had_volunteers)

    _log(
        task=target,
        user=user,
        change_type=ProjectLog.ChangeType.TASK_ROLE,
        change_target=role.pk,
        description=f"Moved {role.user} from task {source.name} to task {target.name}",
    )
    apply_project_status(project=target.project, author=user)

    notify(
        role.user,
        f"You have been moved from task {source.name} to task {target.name} of {target.project.name}.",
        source=UserNotification.Source.TASK,
        target_id=target.pk,
    )
    return role


@transaction.atomic
def delete_project_task_role(*, user: Any, project_id: int, task_id: int, role: ProjectTaskRole) -> ProjectTask:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_VOLUNTEERS_REMOVE)

    task = _locked_task(project_id=project_id, task_id=task_id)
    validate_consistent_keys(role, ("task_id", task.pk))
    if task.stage in (ProjectTask.Stage.COMPLETED, ProjectTask.Stage.WAITING_REVIEW):
        raise ConsistencyError("Volunteers cannot be removed from a task that is finished or waiting for review.")

    volunteer = role.user
    role_pk = role.pk
    role.delete()
    _release_if_unstaffed(task)
    _log(
        task=task,
        user=user,
        change_type=ProjectLog.ChangeType.TASK_ROLE,
        change_target=role_pk,
        description=f"Removed {volunteer} from task {task.name}",
    )
    apply_project_status(project=task.project, author=user)

    notify(
        volunteer,
        f"You have been removed from task {task.name} of {task.project.name}.",
        severity=UserNotification.Severity.WARNING,
        source=UserNotification.Source.TASK,
        target_id=task.pk,
    )
    return task
