from __future__ import annotations

import logging
from typing import Any

from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from marketplace import roles
from marketplace.authorization import (
    ORGANIZATION_PROJECT_CREATE,
    PROJECT_APPROVE_AS_COMPLETED,
    PROJECT_INFORMATION_EDIT,
    PROJECT_LOG_VIEW,
    PROJECT_PUBLISH,
    PROJECT_STAFF_EDIT,
    PROJECT_STAFF_REMOVE,
    PROJECT_STAFF_VIEW,
    PROJECT_VIEW,
    PROJECT_VOLUNTEERS_APPLICATION_VIEW,
    PROJECT_VOLUNTEERS_VIEW,
    ensure_permission,
)
from marketplace.errors import ConsistencyError, validate_consistent_keys
from marketplace.lifecycle import apply_project_status, write_project_log
from marketplace.models import (
    Organization,
    Project,
    ProjectFollower,
    ProjectLog,
    ProjectRole,
    ProjectTask,
    ProjectTaskReview,
    ProjectTaskRole,
    ReviewStatus,
    User,
    UserNotification,
    VolunteerApplication,
)
from marketplace.notifications import notify

logger = logging.getLogger(__name__)

HIDDEN_PROJECT_STATUSES = (Project.Status.DRAFT, Project.Status.EXPIRED, Project.Status.DELETED)

LAST_OWNER_MESSAGE = (
    "You are trying to remove the last owner of the project. "
    "Please appoint another owner before removing the current one."
)

DEFAULT_TASK_NAMES = {
    ProjectTask.Type.SCOPING: "Project scoping",
    ProjectTask.Type.PROJECT_MANAGEMENT: "Project management",
    ProjectTask.Type.DOMAIN_WORK: "Domain work",
    ProjectTask.Type.QA: "Quality assurance",
}


# Queries


def get_project(project_id: int) -> Project | None:
    return Project.objects.select_related("organization").filter(pk=project_id).first()


def get_all_public_projects() -> QuerySet[Project]:
    return Project.objects.exclude(status__in=HIDDEN_PROJECT_STATUSES).order_by("-creation_date", "id")


def get_all_organization_projects(organization: Organization) -> QuerySet[Project]:
    return Project.objects.filter(organization=organization).order_by("-creation_date", "id")


def get_organization_public_projects(organization: Organization) -> QuerySet[Project]:
    return get_all_public_projects().filter(organization=organization)


def get_featured_project() -> Project | None:
    return (
        get_all_public_projects()
        .exclude(status=Project.Status.COMPLETED)
        .order_by("-last_modified_date", "id")
        .first()
    )


def get_user_projects_in_draft_status(user: Any) -> QuerySet[Project]:
    if not getattr(user, "is_authenticated", False):
        return Project.objects.none()
    return Project.objects.filter(
        roles__user=user,
        roles__role=ProjectRole.Role.OWNER,
        status=Project.Status.DRAFT,
    ).distinct()


def get_user_projects_with_pending_volunteer_requests(user: Any) -> QuerySet[Project]:
    if not getattr(user, "is_authenticated", False):
        return Project.objects.none()
    return Project.objects.filter(
        roles__user=user,
        roles__role=ProjectRole.Role.OWNER,
        tasks__applications__status=ReviewStatus.NEW,
    ).distinct()


def get_user_projects_with_pending_task_requests(user: Any) -> list[Project]:
    """Projects with a task review the user is allowed to resolve."""

    if not getattr(user, "is_authenticated", False):
        return []
    pending_reviews = (
        ProjectTaskReview.objects.filter(review_result=ReviewStatus.NEW)
        .select_related("task__project")
        .order_by("review_request_date")
    )
    projects: dict[int, Project] = {}
    for review in pending_reviews:
        project = review.task.project
        if project.pk not in projects and roles.can_review_task(user, review.task):
            projects[project.pk] = project
    return list(projects.values())


def get_project_log(*, user: Any, project_id: int) -> QuerySet[ProjectLog]:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_LOG_VIEW)
    return project.log_entries.select_related("author").order_by("-change_date", "-id")


def get_project_owners(*, user: Any, project_id: int) -> QuerySet[ProjectRole]:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_STAFF_VIEW)
    return project.roles.filter(role=ProjectRole.Role.OWNER)


def get_all_project_staff(*, user: Any, project_id: int) -> QuerySet[ProjectRole]:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_STAFF_VIEW)
    return project.roles.select_related("user").order_by("role", "id")


def get_project_role(*, project_id: int, role_id: int) -> ProjectRole:
    return ProjectRole.objects.select_related("project", "user").get(project_id=project_id, pk=role_id)


def get_all_project_volunteers(*, user: Any, project_id: int) -> QuerySet[ProjectTaskRole]:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_VOLUNTEERS_VIEW)
    return (
        ProjectTaskRole.objects.filter(task__project=project)
        .exclude(task__stage=ProjectTask.Stage.DELETED)
        .select_related("user", "task")
    )


def get_all_volunteer_applications(*, user: Any, project_id: int) -> QuerySet[VolunteerApplication]:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_VOLUNTEERS_VIEW)
    return VolunteerApplication.objects.filter(task__project=project).select_related("volunteer", "task")


def get_volunteer_application(
    *,
    user: Any,
    project_id: int,
    task_id: int,
    application_id: int,
) -> VolunteerApplication:
    application = VolunteerApplication.objects.select_related("task__project", "volunteer").get(
        pk=application_id,
        task_id=task_id,
        task__project_id=project_id,
    )
    ensure_permission(user, application, PROJECT_VOLUNTEERS_APPLICATION_VIEW)
    return application


def get_project_followers(project: Project) -> QuerySet[User]:
    return User.objects.filter(followed_projects__project=project).distinct()


def get_project_officials(project: Project) -> QuerySet[User]:
    volunteer_officials = (
        ProjectTaskRole.objects.filter(
            task__project=project,
            task__type__in=(ProjectTask.Type.SCOPING, ProjectTask.Type.PROJECT_MANAGEMENT),
        )
        .exclude(task__stage=ProjectTask.Stage.DELETED)
        .values("user_id")
    )
    owners = ProjectRole.objects.filter(project=project, role=ProjectRole.Role.OWNER).values("user_id")
    return User.objects.filter(Q(pk__in=owners) | Q(pk__in=volunteer_officials)).order_by("pk")


def query_notification_users(project: Project) -> QuerySet[User]:
    """Everyone with a stake in `project`: staff, volunteers and followers."""

    staff = ProjectRole.objects.filter(project=project).values("user_id")
    volunteers = ProjectTaskRole.objects.filter(task__project=project).values("user_id")
    followers = ProjectFollower.objects.filter(project=project).values("user_id")
    return User.objects.filter(Q(pk__in=staff) | Q(pk__in=volunteers) | Q(pk__in=followers)).order_by("pk")


# Mutations


@transaction.atomic
def create_project(*, user: Any, organization_id: int, project: Project) -> Project:
    organization = Organization.objects.get(pk=organization_id)
    ensure_permission(user, organization, ORGANIZATION_PROJECT_CREATE)

    project.organization = organization
    project.status = Project.Status.DRAFT
    project.save()

    ProjectRole.objects.create(user=user, project=project, role=ProjectRole.Role.OWNER)
    for task_type in ProjectTask.Type:
        ProjectTask.objects.create(
            project=project,
            name=DEFAULT_TASK_NAMES[task_type],
            type=task_type,
            stage=ProjectTask.Stage.DRAFT,
            accepting_volunteers=False,
        )

    write_project_log(
        project=project,
        author=user,
        change_type=ProjectLog.ChangeType.PROJECT,
        change_target=project.pk,
        description=f"Created project {project.name}",
    )
    logger.info("Project created: project_id=%s organization_id=%s user_id=%s", project.pk, organization.pk, user.pk)

    notify(
        user,
        f"You have created the project {project.name} within {organization.name}.",
        source=UserNotification.Source.PROJECT,
        target_id=project.pk,
    )
    return project


@transaction.atomic
def save_project(*, user: Any, project_id: int, project: Project) -> Project:
    ensure_permission(user, project, PROJECT_INFORMATION_EDIT)
    validate_consistent_keys(project, ("pk", project_id))

    current = Project.objects.select_for_update().get(pk=project_id)
    if project.status != current.status:
        raise ConsistencyError("The project status cannot be changed directly.")

    project.save()
    write_project_log(
        project=project,
        author=user,
        change_type=ProjectLog.ChangeType.PROJECT,
        change_target=project.pk,
        description="Edited project information",
    )
    return project


@transaction.atomic
def publish_project(*, user: Any, project_id: int, project: Project) -> Project:
    ensure_permission(user, project, PROJECT_PUBLISH)
    validate_consistent_keys(project, ("pk", project_id))

    locked = Project.objects.select_for_update().get(pk=project_id)
    if locked.status != Project.Status.DRAFT:
        logger.debug("publish_project: already published project_id=%s status=%s", project_id, locked.status)
        project.status = locked.status
        return project

    project.status = Project.Status.NEW
    project.save(update_fields=["status", "last_modified_date"])
    write_project_log(
        project=project,
        author=user,
        change_type=ProjectLog.ChangeType.PROJECT,
        change_target=project.pk,
        description="Published project",
    )
    apply_project_status(project=project, author=user)
    logger.info("Project published: project_id=%s user_id=%s", project.pk, user.pk)

    notify(
        query_notification_users(project),
        f"The project {project.name} has been published.",
        source=UserNotification.Source.PROJECT,
        target_id=project.pk,
    )
    return project


@transaction.atomic
def finish_project(*, user: Any, project_id: int, project: Project) -> Project:
    ensure_permission(user, project, PROJECT_APPROVE_AS_COMPLETED)
    validate_consistent_keys(project, ("pk", project_id))

    locked = Project.objects.select_for_update().get(pk=project_id)
    if locked.status != Project.Status.WAITING_REVIEW:
        raise ConsistencyError("Only projects waiting for review can be marked as completed.")

    project.status = Project.Status.COMPLETED
    project.actual_end_date = timezone.localdate()
    project.save(update_fields=["status", "actual_end_date", "last_modified_date"])
    write_project_log(
        project=project,
        author=user,
        change_type=ProjectLog.ChangeType.PROJECT,
        change_target=project.pk,
        description="Marked project as completed",
    )
    logger.info("Project completed: project_id=%s user_id=%s", project.pk, user.pk)

    notify(
        query_notification_users(project),
        f"The project {project.name} has been completed.",
        source=UserNotification.Source.PROJECT,
        target_id=project.pk,
    )
    return project


def _is_last_owner(project_role: ProjectRole) -> bool:
    return (
        not ProjectRole.objects.filter(project_id=project_role.project_id, role=ProjectRole.Role.OWNER)
        .exclude(pk=project_role.pk)
        .exists()
    )


@transaction.atomic
def add_staff_member(*, user: Any, project_id: int, project_role: ProjectRole) -> ProjectRole:
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_STAFF_EDIT)

    project_role.project = project
    try:
        with transaction.atomic():
            project_role.save()
    except IntegrityError as exc:
        raise ConsistencyError("Duplicate user role") from exc

    write_project_log(
        project=project,
        author=user,
        change_type=ProjectLog.ChangeType.PROJECT_ROLE,
        change_target=project_role.pk,
        description=f"Added {project_role.user} as {project_role.get_role_display()}",
    )
    notify(
        project_role.user,
        f"You have been added to {project.name} with {project_role.get_role_display()} role.",
        source=UserNotification.Source.PROJECT,
        target_id=project.pk,
    )
    return project_role


@transaction.atomic
def save_project_role(*, user: Any, project_id: int, project_role: ProjectRole) -> ProjectRole:
    ensure_permission(user, project_role.project, PROJECT_STAFF_EDIT)
    validate_consistent_keys(project_role, ("project.pk", project_id))

    current = ProjectRole.objects.get(pk=project_role.pk)
    if current.project_id != project_id:
        raise ConsistencyError("Role does not match project")
    if current.user_id != project_role.user_id:
        raise ConsistencyError("Role does not match user")
    if (
        current.role == ProjectRole.Role.OWNER
        and project_role.role != ProjectRole.Role.OWNER
        and _is_last_owner(current)
    ):
        raise ConsistencyError(LAST_OWNER_MESSAGE)

    project_role.save()
    write_project_log(
        project=project_role.project,
        author=user,
        change_type=ProjectLog.ChangeType.PROJECT_ROLE,
        change_target=project_role.pk,
        description=f"Changed role of {project_role.user} to {project_role.get_role_display()}",
    )
    notify(
        project_role.user,
        f"Your role within {project_role.project.name} has been changed to {project_role.get_role_display()}.",
        source=UserNotification.Source.PROJECT,
        target_id=project_id,
    )
    return project_role


@transaction.atomic
def delete_project_role(*, user: Any, project_id: int, project_role: ProjectRole) -> None:
    ensure_permission(user, project_role.project, PROJECT_STAFF_REMOVE)
    validate_consistent_keys(project_role, ("project.pk", project_id))

    current = ProjectRole.objects.get(pk=project_role.pk)
    if current.project_id != project_id:
        raise ConsistencyError("Role does not match project")
    if current.role == ProjectRole.Role.OWNER and _is_last_owner(current):
        raise ConsistencyError(LAST_OWNER_MESSAGE)

    project = project_role.project
    member = project_role.user
    role_pk = project_role.pk
    project_role.delete()
    write_project_log(
        project=project,
        author=user,
        change_type=ProjectLog.ChangeType.PROJECT_ROLE,
        change_target=role_pk,
        description=f"Removed {member} from the project staff",
    )
    notify(
        member,
        f"You were removed from the staff of {project.name}",
        source=UserNotification.Source.PROJECT,
        target_id=project.pk,
    )


@transaction.atomic
def toggle_follower(*, user: Any, project_id: int) -> bool:
    """Follow or unfollow a project; returns True if the user now follows it."""

    if not getattr(user, "is_authenticated", False):
        raise PermissionDenied(PROJECT_VIEW)
    project = Project.objects.get(pk=project_id)
    ensure_permission(user, project, PROJECT_VIEW)

    deleted, _ = ProjectFollower.objects.filter(user=user, project=project).delete()
    if deleted:
        return False
    ProjectFollower.objects.create(user=user, project=project)
    return True
