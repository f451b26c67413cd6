from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import Case, Count, IntegerField, QuerySet, Value, When
from django.utils import timezone

from marketplace import roles
from marketplace.authorization import (
    ORGANIZATION_CREATE,
    ORGANIZATION_INFORMATION_EDIT,
    ORGANIZATION_MEMBERSHIP_LEAVE,
    ORGANIZATION_MEMBERSHIP_REVIEW,
    ORGANIZATION_ROLE_DELETE,
    ORGANIZATION_ROLE_EDIT,
    ORGANIZATION_STAFF_EDIT,
    ORGANIZATION_STAFF_VIEW,
    ensure_permission,
)
from marketplace.errors import ConsistencyError, validate_consistent_keys
from marketplace.models import (
    Organization,
    OrganizationMembershipRequest,
    OrganizationRole,
    OrganizationSocialCause,
    ReviewStatus,
    User,
    UserNotification,
)
from marketplace.notifications import notify

logger = logging.getLogger(__name__)

LAST_ADMINISTRATOR_MESSAGE = (
    "You are trying to remove the last administrator of the organization. "
    "Please appoint another administrator before removing the current one."
)


def _as_list(value: str | Iterable[str]) -> list[str]:
    if isinstance(value, str):
        return [value]
    return list(value)


def get_all_organizations(search_config: Mapping[str, Any] | None = None) -> QuerySet[Organization]:
    """Search organizations.

    Supported keys: "name" (substring), "social_cause", "type" and
    "project_status" (a code or a list of codes each).
    """

    queryset = Organization.objects.all()
    if search_config:
        if search_config.get("name"):
            queryset = queryset.filter(name__icontains=search_config["name"])
        if search_config.get("social_cause"):
            queryset = queryset.filter(social_causes__social_cause__in=_as_list(search_config["social_cause"]))
        if search_config.get("type"):
            queryset = queryset.filter(type__in=_as_list(search_config["type"]))
        if search_config.get("project_status"):
            queryset = queryset.filter(projects__status__in=_as_list(search_config["project_status"]))
    return queryset.distinct().order_by("name")


def get_organization(organization_id: int) -> Organization:
    return Organization.objects.get(pk=organization_id)


def get_featured_organization() -> Organization | None:
    return (
        Organization.objects.filter(type=Organization.Type.SOCIAL_GOOD)
        .annotate(project_count=Count("projects"))
        .order_by("-project_count", "name")
        .first()
    )


def get_organization_members(organization: Organization) -> QuerySet[User]:
    return User.objects.filter(organization_roles__organization=organization).distinct()


def get_organization_admins(organization: Organization) -> QuerySet[User]:
    return User.objects.filter(
        organization_roles__organization=organization,
        organization_roles__role=OrganizationRole.Role.ADMINISTRATOR,
    ).distinct()


def get_organization_staff(*, user: Any, organization: Organization) -> QuerySet[OrganizationRole]:
    ensure_permission(user, organization, ORGANIZATION_STAFF_VIEW)
    return organization.roles.select_related("user").order_by("role", "id")


def get_organization_role(*, organization_id: int, role_id: int) -> OrganizationRole:
    return OrganizationRole.objects.select_related("organization", "user").get(
        organization_id=organization_id,
        pk=role_id,
    )


def get_organization_membership_request(*, organization_id: int, request_id: int) -> OrganizationMembershipRequest:
    return OrganizationMembershipRequest.objects.select_related("organization", "user").get(
        organization_id=organization_id,
        pk=request_id,
    )


def get_user_organizations_with_pending_requests(user: Any) -> QuerySet[Organization]:
    return Organization.objects.filter(
        roles__user=user,
        roles__role=OrganizationRole.Role.ADMINISTRATOR,
        membership_requests__status=ReviewStatus.NEW,
    ).distinct()


def get_organizations_with_user_create_project_permission(user: Any) -> list[Organization]:
    if not getattr(user, "is_authenticated", False):
        return []
    return [
        organization
        for organization in Organization.objects.filter(roles__user=user, type=Organization.Type.SOCIAL_GOOD)
        if roles.is_organization_admin(user, organization)
    ]


@transaction.atomic
def create_organization(
    *,
    user: Any,
    organization: Organization,
    organization_type: str = Organization.Type.SOCIAL_GOOD,
) -> Organization:
    ensure_permission(user, None, ORGANIZATION_CREATE)
    if Organization.objects.filter(name=organization.name).exists():
        raise ConsistencyError("An organization with this name already exists.")

    organization.type = organization_type or Organization.Type.SOCIAL_GOOD
    organization.save()
    OrganizationRole.objects.create(
        user=user,
        organization=organization,
        role=OrganizationRole.Role.ADMINISTRATOR,
    )
    logger.info("Organization created: organization_id=%s user_id=%s", organization.pk, user.pk)

    notify(
        user,
        f"You have created the organization {organization.name} and have been made its administrator user.",
        source=UserNotification.Source.ORGANIZATION,
        target_id=organization.pk,
    )
    return organization


def save_organization_info(*, user: Any, organization_id: int, organization: Organization) -> Organization:
    ensure_permission(user, organization, ORGANIZATION_INFORMATION_EDIT)
    validate_consistent_keys(organization, ("pk", organization_id))
    organization.save()
    return organization


@transaction.atomic
def save_organization_social_causes(
    *,
    user: Any,
    organization_id: int,
    organization: Organization,
    social_causes: Iterable[str],
) -> list[OrganizationSocialCause]:
    ensure_permission(user, organization, ORGANIZATION_INFORMATION_EDIT)
    validate_consistent_keys(organization, ("pk", organization_id))

    OrganizationSocialCause.objects.filter(organization=organization).delete()
    return [
        OrganizationSocialCause.objects.create(organization=organization, social_cause=cause)
        for cause in dict.fromkeys(social_causes)
    ]


@transaction.atomic
def add_staff_member(*, user: Any, organization_id: int, organization_role: OrganizationRole) -> OrganizationRole:
    organization = Organization.objects.get(pk=organization_id)
    ensure_permission(user, organization, ORGANIZATION_STAFF_EDIT)

    organization_role.organization = organization
    try:
        with transaction.atomic():
            organization_role.save()
    except IntegrityError as exc:
        raise ConsistencyError("Duplicate user role") from exc

    notify(
        organization_role.user,
        f"You have been added as a member of {organization.name} with {organization_role.get_role_display()} role.",
        source=UserNotification.Source.ORGANIZATION,
        target_id=organization.pk,
    )
    return organization_role


def add_staff_member_by_id(
    *,
    user: Any,
    organization_id: int,
    user_id: int,
    role: int | None = None,
) -> OrganizationRole:
    organization_role = OrganizationRole(
        user=User.objects.get(pk=user_id),
        role=OrganizationRole.Role.STAFF if role is None else role,
    )
    return add_staff_member(user=user, organization_id=organization_id, organization_role=organization_role)


@transaction.atomic
def create_membership_request(
    *,
    user: Any,
    organization_id: int,
    membership_request: OrganizationMembershipRequest | None = None,
) -> OrganizationMembershipRequest:
    organization = Organization.objects.get(pk=organization_id)
    if roles.is_organization_member(user, organization):
        raise ConsistencyError(f"User is already a member of {organization.name}.")
    if roles.is_pending_membership(user, organization):
        raise ConsistencyError(f"There is already a pending membership request for {organization.name}.")

    membership_request = membership_request or OrganizationMembershipRequest()
    membership_request.organization = organization
    membership_request.user = user
    membership_request.status = ReviewStatus.NEW
    membership_request.role = OrganizationRole.Role.STAFF
    membership_request.save()
    logger.debug(
        "create_membership_request: request_id=%s organization_id=%s user_id=%s",
        membership_request.pk,
        organization.pk,
        user.pk,
    )

    notify(
        user,
        f"You have applied to be a member of {organization.name}. You will be notified when the "
        "organization's administrators review your membership request.",
        source=UserNotification.Source.MEMBERSHIP_REQUEST,
        target_id=membership_request.pk,
    )
    notify(
        get_organization_admins(organization),
        f"{user} has requested to join {organization.name}.",
        source=UserNotification.Source.MEMBERSHIP_REQUEST,
        target_id=membership_request.pk,
    )
    return membership_request


def get_membership_requests(*, user: Any, organization: Organization) -> QuerySet[OrganizationMembershipRequest]:
    """Membership requests of `organization`, pending ones first."""

    ensure_permission(user, organization, ORGANIZATION_STAFF_VIEW)
    return organization.membership_requests.select_related("user").order_by(
        Case(
            When(status=ReviewStatus.NEW, then=Value(0)),
            default=Value(1),
            output_field=IntegerField(),
        ),
        "-request_date",
    )


def _resolve_membership_request(
    *,
    user: Any,
    organization_id: int,
    membership_request: OrganizationMembershipRequest,
    status: str,
) -> OrganizationMembershipRequest:
    ensure_permission(user, membership_request, ORGANIZATION_MEMBERSHIP_REVIEW)
    validate_consistent_keys(membership_request, ("organization.pk", organization_id))

    locked = OrganizationMembershipRequest.objects.select_for_update().get(pk=membership_request.pk)
    if locked.status != ReviewStatus.NEW:
        raise ConsistencyError("This membership request has already been resolved.")

    membership_request.status = status
    membership_request.reviewer = user
    membership_request.resolution_date = timezone.now()
    membership_request.save()

    if status == ReviewStatus.ACCEPTED and not roles.is_organization_member(
        membership_request.user, membership_request.organization
    ):
        OrganizationRole.objects.create(
            user=membership_request.user,
            organization=membership_request.organization,
            role=membership_request.role,
        )

    logger.info(
        "Membership request resolved: request_id=%s status=%s reviewer_id=%s",
        membership_request.pk,
        status,
        user.pk,
    )
    return membership_request


@transaction.atomic
def accept_membership_request(
    *,
    user: Any,
    organization_id: int,
    membership_request: OrganizationMembershipRequest,
) -> OrganizationMembershipRequest:
    _resolve_membership_request(
        user=user,
        organization_id=organization_id,
        membership_request=membership_request,
        status=ReviewStatus.ACCEPTED,
    )
    notify(
        membership_request.user,
        f"Congratulations! Your membership request for {membership_request.organization.name} was accepted.",
        source=UserNotification.Source.MEMBERSHIP_REQUEST,
        target_id=membership_request.pk,
    )
    return membership_request


@transaction.atomic
def reject_membership_request(
    *,
    user: Any,
    organization_id: int,
    membership_request: OrganizationMembershipRequest,
) -> OrganizationMembershipRequest:
    _resolve_membership_request(
        user=user,
        organization_id=organization_id,
        membership_request=membership_request,
        status=ReviewStatus.REJECTED,
    )
    notify(
        membership_request.user,
        f"Your membership request for {membership_request.organization.name} was rejected.",
        severity=UserNotification.Severity.WARNING,
        source=UserNotification.Source.MEMBERSHIP_REQUEST,
        target_id=membership_request.pk,
    )
    return membership_request


def _is_last_administrator(organization_role: OrganizationRole) -> bool:
    return (
        OrganizationRole.objects.filter(
            organization_id=organization_role.organization_id,
            role=OrganizationRole.Role.ADMINISTRATOR,
        )
        .exclude(pk=organization_role.pk)
        .count()
        == 0
    )


@transaction.atomic
def save_organization_role(
    *,
    user: Any,
    organization_id: int,
    organization_role: OrganizationRole,
) -> OrganizationRole:
    ensure_permission(user, organization_role, ORGANIZATION_ROLE_EDIT)
    validate_consistent_keys(organization_role, ("organization.pk", organization_id))

    current = OrganizationRole.objects.get(pk=organization_role.pk)
    if current.organization_id != organization_id:
        raise ConsistencyError("Role does not match organization")
    if current.user_id != organization_role.user_id:
        raise ConsistencyError("Role does not match user")
    if (
        current.role == OrganizationRole.Role.ADMINISTRATOR
        and organization_role.role != OrganizationRole.Role.ADMINISTRATOR
        and _is_last_administrator(current)
    ):
        raise ConsistencyError(LAST_ADMINISTRATOR_MESSAGE)

    organization_role.save()
    notify(
        organization_role.user,
        f"Your role within {organization_role.organization.name} has been changed to "
        f"{organization_role.get_role_display()}.",
        source=UserNotification.Source.ORGANIZATION,
        target_id=organization_role.organization_id,
    )
    return organization_role


@transaction.atomic
def delete_organization_role(*, user: Any, organization_id: int, organization_role: OrganizationRole) -> None:
    ensure_permission(user, organization_role, ORGANIZATION_ROLE_DELETE)
    validate_consistent_keys(organization_role, ("organization.pk", organization_id))

    current = OrganizationRole.objects.get(pk=organization_role.pk)
    if current.organization_id != organization_id:
        raise ConsistencyError("Role does not match organization")
    if current.role == OrganizationRole.Role.ADMINISTRATOR and _is_last_administrator(current):
        raise ConsistencyError(LAST_ADMINISTRATOR_MESSAGE)

    organization = organization_role.organization
    member = organization_role.user
    organization_role.delete()
    notify(
        member,
        f"You were removed as a staff member of {organization.name}",
        source=UserNotification.Source.ORGANIZATION,
        target_id=organization.pk,
    )


@transaction.atomic
def leave_organization(*, user: Any, organization_id: int, organization_role: OrganizationRole) -> None:
    ensure_permission(user, organization_role, ORGANIZATION_MEMBERSHIP_LEAVE)
    validate_consistent_keys(organization_role, ("organization.pk", organization_id))

    current = OrganizationRole.objects.get(pk=organization_role.pk)
    if current.organization_id != organization_id:
        raise ConsistencyError("Role does not match organization")
    if current.role == OrganizationRole.Role.ADMINISTRATOR and _is_last_administrator(current):
        raise ConsistencyError(LAST_ADMINISTRATOR_MESSAGE)

    organization = organization_role.organization
    organization_role.delete()
    logger.info("Member left organization: organization_id=%s user_id=%s", organization.pk, user.pk)

    notify(
        user,
        f"You left {organization.name}",
        source=UserNotification.Source.ORGANIZATION,
        target_id=organization.pk,
    )
    notify(
        get_organization_admins(organization),
        f"{user} left {organization.name}",
        source=UserNotification.Source.ORGANIZATION,
        target_id=organization.pk,
    )
