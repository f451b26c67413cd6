from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from django.core.exceptions import PermissionDenied

from marketplace import roles

logger = logging.getLogger(__name__)

Predicate = Callable[[Any, Any], bool]

ORGANIZATION_CREATE = "organization.create"
ORGANIZATION_INFORMATION_EDIT = "organization.information_edit"
ORGANIZATION_STAFF_VIEW = "organization.staff_view"
ORGANIZATION_STAFF_EDIT = "organization.staff_edit"
ORGANIZATION_ROLE_ADD = "organization.role_add"
ORGANIZATION_ROLE_EDIT = "organization.role_edit"
ORGANIZATION_ROLE_DELETE = "organization.role_delete"
ORGANIZATION_MEMBERSHIP_REQUEST_VIEW = "organization.membership_request_view"
ORGANIZATION_MEMBERSHIP_REVIEW = "organization.membership_review"
ORGANIZATION_MEMBERSHIP_LEAVE = "organization.membership_leave"
ORGANIZATION_PROJECT_CREATE = "organization.project_create"

PROJECT_VIEW = "project.view"
PROJECT_INFORMATION_EDIT = "project.information_edit"
PROJECT_PUBLISH = "project.publish"
PROJECT_APPROVE_AS_COMPLETED = "project.approve_as_completed"
PROJECT_LOG_VIEW = "project.log_view"
PROJECT_VOLUNTEER_TASK_FINISH = "project.volunteer_task_finish"
PROJECT_VOLUNTEER_TASK_CANCEL = "project.volunteer_task_cancel"
PROJECT_TASK_REVIEW_VIEW = "project.task_review_view"
PROJECT_TASK_REVIEW_DO = "project.task_review_do"
PROJECT_TASKS_VIEW = "project.tasks_view"
PROJECT_TASK_EDIT = "project.task_edit"
PROJECT_TASK_APPLY = "project.task_apply"
PROJECT_TASK_DELETE = "project.task_delete"
PROJECT_STAFF_VIEW = "project.staff_view"
PROJECT_STAFF_EDIT = "project.staff_edit"
PROJECT_STAFF_REMOVE = "project.staff_remove"
PROJECT_VOLUNTEERS_VIEW = "project.volunteers_view"
PROJECT_VOLUNTEERS_EDIT = "project.volunteers_edit"
PROJECT_VOLUNTEERS_REMOVE = "project.volunteers_remove"
PROJECT_VOLUNTEERS_APPLICATION_VIEW = "project.volunteers_application_view"
PROJECT_VOLUNTEERS_APPLICATION_REVIEW = "project.volunteers_application_review"

USER_IS_SAME_USER = "user.is_same_user"
VOLUNTEER_NEW_USER_REVIEW = "volunteer.new_user_review"

# Permission name -> predicate(user, target). The target type is fixed per
# name: organizations, projects, tasks, roles, applications or reviews.
PERMISSIONS: Mapping[str, Predicate] = MappingProxyType(
    {
        ORGANIZATION_CREATE: roles.is_organization_creator,
        ORGANIZATION_INFORMATION_EDIT: roles.is_organization_admin,
        ORGANIZATION_STAFF_VIEW: roles.is_organization_member,
        ORGANIZATION_STAFF_EDIT: roles.is_organization_admin,
        ORGANIZATION_ROLE_ADD: roles.is_organization_role_admin,
        ORGANIZATION_ROLE_EDIT: roles.is_organization_role_admin,
        ORGANIZATION_ROLE_DELETE: roles.is_organization_role_admin,
        ORGANIZATION_MEMBERSHIP_REQUEST_VIEW: roles.can_view_membership_request,
        ORGANIZATION_MEMBERSHIP_REVIEW: roles.can_review_membership_request,
        ORGANIZATION_MEMBERSHIP_LEAVE: roles.is_own_membership,
        ORGANIZATION_PROJECT_CREATE: roles.is_organization_admin,
        PROJECT_VIEW: roles.can_view_project,
        PROJECT_INFORMATION_EDIT: roles.can_edit_project_information,
        PROJECT_PUBLISH: roles.is_project_owner,
        PROJECT_APPROVE_AS_COMPLETED: roles.can_complete_project,
        PROJECT_LOG_VIEW: roles.is_project_member,
        PROJECT_VOLUNTEER_TASK_FINISH: roles.is_task_volunteer,
        PROJECT_VOLUNTEER_TASK_CANCEL: roles.is_task_volunteer,
        PROJECT_TASK_REVIEW_VIEW: roles.can_view_task_review,
        PROJECT_TASK_REVIEW_DO: roles.can_review_task,
        PROJECT_TASKS_VIEW: roles.can_view_tasks,
        PROJECT_TASK_EDIT: roles.is_task_editor,
        PROJECT_TASK_APPLY: roles.can_apply_to_task,
        PROJECT_TASK_DELETE: roles.is_task_editor,
        PROJECT_STAFF_VIEW: roles.is_project_official,
        PROJECT_STAFF_EDIT: roles.is_project_owner,
        PROJECT_STAFF_REMOVE: roles.is_project_owner,
        PROJECT_VOLUNTEERS_VIEW: roles.is_project_official,
        PROJECT_VOLUNTEERS_EDIT: roles.is_project_official,
        PROJECT_VOLUNTEERS_REMOVE: roles.is_project_official,
        PROJECT_VOLUNTEERS_APPLICATION_VIEW: roles.can_view_volunteer_application,
        PROJECT_VOLUNTEERS_APPLICATION_REVIEW: roles.is_project_official,
        USER_IS_SAME_USER: roles.is_same_user,
        VOLUNTEER_NEW_USER_REVIEW: roles.is_marketplace_staff,
    }
)


def has_permission(user: Any, target: Any, name: str) -> bool:
    predicate = PERMISSIONS.get(name)
    if predicate is None:
        logger.warning("has_permission: unknown permission name=%s", name)
        return False
    return bool(predicate(user, target))


def ensure_permission(user: Any, target: Any, name: str) -> None:
    """Raise PermissionDenied unless `user` holds permission `name` on `target`."""

    if not has_permission(user, target, name):
        logger.debug(
            "ensure_permission: denied user=%s permission=%s target=%r",
            getattr(user, "pk", None),
            name,
            target,
        )
        raise PermissionDenied(name)
