from __future__ import annotations

from marketplace.models import (
    Organization,
    Project,
    ProjectTask,
    ReviewStatus,
    User,
    VolunteerProfile,
)
from marketplace.organizations import create_organization
from marketplace.projects import create_project


def make_user(
    username: str,
    *,
    initial_type: str = User.InitialType.VOLUNTEER,
    email: str | None = None,
) -> User:
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com" if email is None else email,
        password="pw",
        first_name=username.capitalize(),
        initial_type=initial_type,
    )


def make_volunteer(username: str, *, status: str = ReviewStatus.ACCEPTED) -> User:
    user = make_user(username)
    VolunteerProfile.objects.create(user=user, volunteer_status=status, is_edited=True)
    return user


def make_organization(admin: User, name: str = "Org1") -> Organization:
    return create_organization(user=admin, organization=Organization(name=name))


def make_project(owner: User, organization: Organization, name: str = "P1") -> Project:
    return create_project(
        user=owner,
        organization_id=organization.pk,
        project=Project(name=name, short_summary="Summary", motivation="Motivation"),
    )


def task_of_type(project: Project, task_type: str) -> ProjectTask:
    return project.tasks.get(type=task_type)
