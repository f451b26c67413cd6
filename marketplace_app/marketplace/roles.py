"""Role predicates over persisted role assignments.

Every predicate takes the acting user first and the target object second,
queries the role tables on each call and returns False for anonymous users.
"""

from __future__ import annotations

from typing import Any

from marketplace.models import (
    Organization,
    OrganizationMembershipRequest,
    OrganizationRole,
    Project,
    ProjectFollower,
    ProjectRole,
    ProjectTask,
    ProjectTaskReview,
    ProjectTaskRole,
    ReviewStatus,
    User,
    VolunteerApplication,
    VolunteerProfile,
)


def _authenticated(user: Any) -> bool:
    return user is not None and bool(getattr(user, "is_authenticated", False))


def _has_project_task_role(user: Any, project: Project, *task_types: str) -> bool:
    if not _authenticated(user):
        return False
    roles = ProjectTaskRole.objects.filter(user=user, task__project=project).exclude(
        task__stage=ProjectTask.Stage.DELETED,
    )
    if task_types:
        roles = roles.filter(task__type__in=task_types)
    return roles.exists()


# Organizations


def is_organization_admin(user: Any, organization: Organization) -> bool:
    return _authenticated(user) and OrganizationRole.objects.filter(
        user=user,
        organization=organization,
        role=OrganizationRole.Role.ADMINISTRATOR,
    ).exists()


def is_organization_staff(user: Any, organization: Organization) -> bool:
    return _authenticated(user) and OrganizationRole.objects.filter(
        user=user,
        organization=organization,
        role=OrganizationRole.Role.STAFF,
    ).exists()


def is_organization_member(user: Any, organization: Organization) -> bool:
    return _authenticated(user) and OrganizationRole.objects.filter(user=user, organization=organization).exists()


def is_pending_membership(user: Any, organization: Organization) -> bool:
    return _authenticated(user) and OrganizationMembershipRequest.objects.filter(
        user=user,
        organization=organization,
        status=ReviewStatus.NEW,
    ).exists()


def is_organization_creator(user: Any, target: object = None) -> bool:
    return _authenticated(user) and user.initial_type == User.InitialType.ORGANIZATION


def is_marketplace_staff(user: Any, target: object = None) -> bool:
    return _authenticated(user) and user.initial_type == User.InitialType.STAFF


def is_organization_role_admin(user: Any, organization_role: OrganizationRole) -> bool:
    return is_organization_admin(user, organization_role.organization)


def is_own_membership(user: Any, organization_role: OrganizationRole) -> bool:
    return _authenticated(user) and organization_role.user_id == user.pk


def can_view_membership_request(user: Any, membership_request: OrganizationMembershipRequest) -> bool:
    if not _authenticated(user):
        return False
    return membership_request.user_id == user.pk or is_organization_member(user, membership_request.organization)


def can_review_membership_request(user: Any, membership_request: OrganizationMembershipRequest) -> bool:
    return is_organization_admin(user, membership_request.organization)


# Projects


def is_project_owner(user: Any, project: Project) -> bool:
    return _authenticated(user) and ProjectRole.objects.filter(
        user=user,
        project=project,
        role=ProjectRole.Role.OWNER,
    ).exists()


def is_project_staff(user: Any, project: Project) -> bool:
    return _authenticated(user) and ProjectRole.objects.filter(
        user=user,
        project=project,
        role=ProjectRole.Role.STAFF,
    ).exists()


def is_project_volunteer(user: Any, project: Project) -> bool:
    return _has_project_task_role(user, project)


def is_project_scoper(user: Any, project: Project) -> bool:
    return _has_project_task_role(user, project, ProjectTask.Type.SCOPING)


def is_project_manager(user: Any, project: Project) -> bool:
    return _has_project_task_role(user, project, ProjectTask.Type.PROJECT_MANAGEMENT)


def is_project_reviewer(user: Any, project: Project) -> bool:
    return _has_project_task_role(user, project, ProjectTask.Type.QA)


def is_project_volunteer_official(user: Any, project: Project) -> bool:
    return _has_project_task_role(
        user,
        project,
        ProjectTask.Type.SCOPING,
        ProjectTask.Type.PROJECT_MANAGEMENT,
    )


def is_project_official(user: Any, project: Project) -> bool:
    return is_project_owner(user, project) or is_project_volunteer_official(user, project)


def is_project_member(user: Any, project: Project) -> bool:
    if not _authenticated(user):
        return False
    if ProjectRole.objects.filter(user=user, project=project).exists():
        return True
    return is_project_volunteer_official(user, project)


def is_project_follower(user: Any, project: Project) -> bool:
    return _authenticated(user) and ProjectFollower.objects.filter(user=user, project=project).exists()


def is_task_editor(user: Any, project: Project) -> bool:
    return is_project_owner(user, project) or is_project_scoper(user, project)


def can_view_project(user: Any, project: Project) -> bool:
    if project.status == Project.Status.DRAFT:
        return is_project_member(user, project) or is_project_volunteer(user, project)
    return True


def can_edit_project_information(user: Any, project: Project) -> bool:
    return is_project_official(user, project)


def can_complete_project(user: Any, project: Project) -> bool:
    return is_project_owner(user, project)


def can_review_tasks(user: Any, project: Project) -> bool:
    return is_project_official(user, project) or is_project_reviewer(user, project)


def can_view_tasks(user: Any, project: Project) -> bool:
    return can_view_project(user, project)


# Tasks


def is_task_volunteer(user: Any, task: ProjectTask) -> bool:
    return _authenticated(user) and ProjectTaskRole.objects.filter(user=user, task=task).exists()


def can_review_task(user: Any, task: ProjectTask) -> bool:
    if is_task_volunteer(user, task):
        return False
    return can_review_tasks(user, task.project)


def can_apply_to_task(user: Any, task: ProjectTask | None = None) -> bool:
    return has_approved_volunteer_profile(user)


def can_view_volunteer_application(user: Any, application: VolunteerApplication) -> bool:
    if not _authenticated(user):
        return False
    return application.volunteer_id == user.pk or is_project_official(user, application.task.project)


def belongs_to_task_review(user: Any, review: ProjectTaskReview) -> bool:
    return _authenticated(user) and review.volunteer_id == user.pk


def can_view_task_review(user: Any, review: ProjectTaskReview) -> bool:
    return belongs_to_task_review(user, review) or can_review_tasks(user, review.task.project)


# Users


def has_approved_volunteer_profile(user: Any, target: object = None) -> bool:
    return _authenticated(user) and VolunteerProfile.objects.filter(
        user=user,
        volunteer_status=ReviewStatus.ACCEPTED,
    ).exists()


def is_same_user(user: Any, target_user: Any) -> bool:
    return _authenticated(user) and target_user is not None and user.pk == target_user.pk
