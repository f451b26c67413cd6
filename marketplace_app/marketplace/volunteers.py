from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Avg, Q, QuerySet

from marketplace.authorization import USER_IS_SAME_USER, VOLUNTEER_NEW_USER_REVIEW, ensure_permission
from marketplace import organizations, projects
from marketplace.errors import ConsistencyError
from marketplace.models import (
    OrganizationRole,
    ProjectTaskReview,
    ProjectTaskRole,
    ReviewStatus,
    Skill,
    User,
    UserBadge,
    UserNotification,
    VolunteerProfile,
    VolunteerSkill,
)
from marketplace.notifications import notify

logger = logging.getLogger(__name__)

# Minimum value needed for each tier, highest tier first.
COMPLETED_TASK_BADGE_TIERS: tuple[tuple[int, float], ...] = (
    (UserBadge.Tier.MASTER, 20),
    (UserBadge.Tier.ADVANCED, 5),
    (UserBadge.Tier.BASIC, 1),
)
REVIEW_SCORE_BADGE_TIERS: tuple[tuple[int, float], ...] = (
    (UserBadge.Tier.MASTER, 4.5),
    (UserBadge.Tier.ADVANCED, 4.0),
    (UserBadge.Tier.BASIC, 3.5),
)


def badge_tier_for(value: float, tiers: tuple[tuple[int, float], ...]) -> int | None:
    for tier, minimum in tiers:
        if value >= minimum:
            return tier
    return None


def early_user_badge_tier(position: int) -> int | None:
    """Tier of the early-user badge for the `position`-th volunteer profile (1-based)."""

    thresholds = settings.EARLY_USER_BADGE_THRESHOLDS
    if position <= thresholds["master"]:
        return UserBadge.Tier.MASTER
    if position <= thresholds["advanced"]:
        return UserBadge.Tier.ADVANCED
    if position <= thresholds["basic"]:
        return UserBadge.Tier.BASIC
    return None


def _award_badge(*, user: User, badge_type: str, tier: int | None) -> UserBadge | None:
    """Create or upgrade a badge; tiers never go down."""

    if tier is None:
        return None
    badge, created = UserBadge.objects.get_or_create(user=user, type=badge_type, defaults={"tier": tier})
    if not created and badge.tier < tier:
        badge.tier = tier
        badge.save(update_fields=["tier", "awarded_date"])
    elif not created:
        return badge

    logger.info("Badge awarded: user_id=%s type=%s tier=%s", user.pk, badge_type, tier)
    notify(
        user,
        f"You have earned the {badge.get_type_display()} badge ({badge.get_tier_display()}).",
        source=UserNotification.Source.VOLUNTEER,
        target_id=badge.pk,
    )
    return badge


@transaction.atomic
def create_volunteer_profile(*, user: Any, user_id: int) -> VolunteerProfile:
    target = User.objects.get(pk=user_id)
    ensure_permission(user, target, USER_IS_SAME_USER)

    profile = VolunteerProfile(user=target, volunteer_status=ReviewStatus.NEW, is_edited=False)
    if settings.AUTOMATICALLY_ACCEPT_VOLUNTEERS:
        profile.volunteer_status = ReviewStatus.ACCEPTED
        profile.is_edited = True

    try:
        with transaction.atomic():
            profile.save()
    except IntegrityError as exc:
        raise ConsistencyError("User already has a volunteer profile") from exc

    position = VolunteerProfile.objects.filter(pk__lte=profile.pk).count()
    _award_badge(user=target, badge_type=UserBadge.Type.EARLY_USER, tier=early_user_badge_tier(position))
    logger.debug(
        "create_volunteer_profile: profile_id=%s user_id=%s status=%s position=%s",
        profile.pk,
        target.pk,
        profile.volunteer_status,
        position,
    )
    return profile


def get_pending_volunteer_profiles(*, user: Any) -> QuerySet[VolunteerProfile]:
    ensure_permission(user, None, VOLUNTEER_NEW_USER_REVIEW)
    return (
        VolunteerProfile.objects.filter(volunteer_status=ReviewStatus.NEW)
        .select_related("user")
        .order_by("is_edited", "-creation_date")
    )


def _review_volunteer_profile(*, user: Any, profile_id: int, status: str, message: str) -> VolunteerProfile:
    ensure_permission(user, None, VOLUNTEER_NEW_USER_REVIEW)
    profile = VolunteerProfile.objects.select_for_update().select_related("user").get(pk=profile_id)
    profile.volunteer_status = status
    profile.is_edited = True
    profile.save(update_fields=["volunteer_status", "is_edited"])
    logger.info("Volunteer profile reviewed: profile_id=%s status=%s reviewer_id=%s", profile.pk, status, user.pk)

    notify(profile.user, message, source=UserNotification.Source.VOLUNTEER, target_id=profile.pk)
    return profile


@transaction.atomic
def accept_volunteer_profile(*, user: Any, profile_id: int) -> VolunteerProfile:
    return _review_volunteer_profile(
        user=user,
        profile_id=profile_id,
        status=ReviewStatus.ACCEPTED,
        message="Congratulations! You have been accepted as a volunteer and can now apply to work on open projects.",
    )


@transaction.atomic
def reject_volunteer_profile(*, user: Any, profile_id: int) -> VolunteerProfile:
    return _review_volunteer_profile(
        user=user,
        profile_id=profile_id,
        status=ReviewStatus.REJECTED,
        message="Unfortunately your volunteer application was not approved at this time.",
    )


@transaction.atomic
def record_accepted_review(*, review: ProjectTaskReview) -> VolunteerProfile | None:
    """Refresh the volunteer's statistics and badges after an accepted review.

    Users without a volunteer profile (e.g. project staff doing the work
    themselves) get no statistics.
    """

    volunteer = review.volunteer
    profile = VolunteerProfile.objects.select_for_update().filter(user=volunteer).first()
    if profile is None:
        return None

    accepted = ProjectTaskReview.objects.filter(volunteer=volunteer, review_result=ReviewStatus.ACCEPTED)
    profile.completed_task_count = accepted.order_by().values("task").distinct().count()
    average = accepted.exclude(review_score__isnull=True).aggregate(average=Avg("review_score"))["average"]
    profile.average_review_score = float(average or 0.0)
    profile.save(update_fields=["completed_task_count", "average_review_score"])

    _award_badge(
        user=volunteer,
        badge_type=UserBadge.Type.NUMBER_OF_PROJECTS,
        tier=badge_tier_for(profile.completed_task_count, COMPLETED_TASK_BADGE_TIERS),
    )
    if average is not None:
        _award_badge(
            user=volunteer,
            badge_type=UserBadge.Type.REVIEW_SCORE,
            tier=badge_tier_for(profile.average_review_score, REVIEW_SCORE_BADGE_TIERS),
        )

    logger.debug(
        "record_accepted_review: user_id=%s completed=%s average=%.2f",
        volunteer.pk,
        profile.completed_task_count,
        profile.average_review_score,
    )
    return profile


def get_all_approved_volunteer_profiles(
    search_config: Mapping[str, Any] | None = None,
) -> QuerySet[VolunteerProfile]:
    """Search accepted volunteers.

    Supported keys: "username" and "skills" (whitespace separated fragments,
    all of which must match) and "badges" (a badge type code or a list of them).
    """

    queryset = VolunteerProfile.objects.filter(volunteer_status=ReviewStatus.ACCEPTED)
    if search_config:
        for fragment in (search_config.get("username") or "").split():
            queryset = queryset.filter(
                Q(user__first_name__icontains=fragment)
                | Q(user__last_name__icontains=fragment)
                | Q(user__username__icontains=fragment)
            )
        for fragment in (search_config.get("skills") or "").split():
            queryset = queryset.filter(user__skills__skill__name__icontains=fragment)
        badges = search_config.get("badges")
        if badges:
            if isinstance(badges, str):
                badges = [badges]
            queryset = queryset.filter(user__badges__type__in=badges)
    return queryset.select_related("user").distinct().order_by("user__first_name", "user__last_name")


def get_volunteer_leaderboards(size: int = 10) -> list[dict[str, Any]]:
    accepted = User.objects.filter(volunteer_profile__volunteer_status=ReviewStatus.ACCEPTED)
    return [
        {
            "title": "Best reviewed",
            "badge_type": UserBadge.Type.REVIEW_SCORE,
            "users": list(accepted.order_by("-volunteer_profile__average_review_score", "pk")[:size]),
        },
        {
            "title": "Most completed tasks",
            "badge_type": UserBadge.Type.NUMBER_OF_PROJECTS,
            "users": list(accepted.order_by("-volunteer_profile__completed_task_count", "pk")[:size]),
        },
    ]


# Skills


def get_skill_levels() -> list[tuple[int, str]]:
    return VolunteerSkill.Level.choices


def user_has_skills(user: Any) -> bool:
    return VolunteerSkill.objects.filter(user_id=user.pk).exists()


def get_volunteer_skills(*, user_id: int) -> dict[str, list[dict[str, Any]]]:
    """Every skill grouped by area, each paired with the volunteer's level row (or None)."""

    owned = {vs.skill_id: vs for vs in VolunteerSkill.objects.filter(user_id=user_id)}
    result: dict[str, list[dict[str, Any]]] = {}
    for skill in Skill.objects.order_by("area", "name"):
        result.setdefault(skill.area, []).append({"skill": skill, "volunteer_skill": owned.get(skill.pk)})
    return result


@transaction.atomic
def set_volunteer_skills(*, user: Any, user_id: int, levels: Mapping[int, int | None]) -> list[VolunteerSkill]:
    """Set the level of each skill in `levels`; a level of None removes the skill.

    Skills missing from `levels` are left as they are.
    """

    target = User.objects.get(pk=user_id)
    ensure_permission(user, target, USER_IS_SAME_USER)

    skills = Skill.objects.in_bulk(list(levels))
    unknown = set(levels) - set(skills)
    if unknown:
        raise ConsistencyError(f"Unknown skills: {sorted(unknown)}")
    valid_levels = set(VolunteerSkill.Level.values)
    for skill_id, level in levels.items():
        if level is not None and level not in valid_levels:
            raise ConsistencyError(f"Invalid level {level} for skill {skills[skill_id]}")

    for skill_id, level in levels.items():
        if level is None:
            VolunteerSkill.objects.filter(user=target, skill_id=skill_id).delete()
        else:
            VolunteerSkill.objects.update_or_create(user=target, skill_id=skill_id, defaults={"level": level})
    logger.debug("set_volunteer_skills: user_id=%s changed=%s", target.pk, len(levels))
    return list(VolunteerSkill.objects.filter(user=target).select_related("skill"))


def get_user_todos(*, user: Any, target_user: User) -> list[str]:
    """Reminders shown on a user's home page."""

    ensure_permission(user, target_user, USER_IS_SAME_USER)
    todos: list[str] = []
    if target_user.initial_type == User.InitialType.VOLUNTEER:
        profile = VolunteerProfile.objects.filter(user=target_user).first()
        if profile is None:
            todos.append("You have not created a volunteer profile yet!")
        else:
            if not profile.is_edited:
                todos.append("You should fill out your volunteer profile.")
            elif profile.is_accepted and not ProjectTaskRole.objects.filter(user=target_user).exists():
                todos.append("You are not volunteering for any organization, find a new project.")
            if not user_has_skills(target_user):
                todos.append("You have no listed skills, add your expertise to your profile.")
    elif target_user.initial_type == User.InitialType.ORGANIZATION:
        if not OrganizationRole.objects.filter(user=target_user).exists():
            todos.append("You are not part of any organization, create or join one!")

    for organization in organizations.get_user_organizations_with_pending_requests(target_user):
        todos.append(f"Organization {organization.name} has pending membership request reviews.")
    for project in projects.get_user_projects_with_pending_volunteer_requests(target_user):
        todos.append(f"Project {project.name} has pending volunteer application reviews.")
    for project in projects.get_user_projects_with_pending_task_requests(target_user):
        todos.append(f"Project {project.name} has pending task reviews.")
    for project in projects.get_user_projects_in_draft_status(target_user):
        todos.append(f"Project {project.name} is still in draft status and needs to be completed and published.")
    return todos
