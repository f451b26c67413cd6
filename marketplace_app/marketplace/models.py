from __future__ import annotations

from typing import override

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q


class ReviewStatus(models.TextChoices):
    NEW = "NEW", "Pending review"
    ACCEPTED = "ACC", "Accepted"
    REJECTED = "REJ", "Rejected"


class SocialCause(models.TextChoices):
    EDUCATION = "ED", "Education"
    HEALTH = "HE", "Health"
    ENVIRONMENT = "EN", "Environment"
    SOCIAL_SERVICES = "SS", "Social Services"
    TRANSPORTATION = "TR", "Transportation"
    ENERGY = "EE", "Energy and Environment"
    INTERNATIONAL_DEVELOPMENT = "ID", "International development"
    PUBLIC_SAFETY = "PS", "Public Safety"
    ECONOMIC_DEVELOPMENT = "EC", "Economic Development"
    OTHER = "OT", "Other"


class User(AbstractUser):
    class InitialType(models.TextChoices):
        VOLUNTEER = "VOL", "Volunteer"
        ORGANIZATION = "ORG", "Organization"
        STAFF = "STF", "Marketplace staff"

    initial_type = models.CharField(
        max_length=3,
        choices=InitialType.choices,
        default=InitialType.VOLUNTEER,
    )

    def __str__(self) -> str:
        full_name = self.get_full_name()
        return full_name or self.username


class Organization(models.Model):
    class Type(models.TextChoices):
        SOCIAL_GOOD = "SGP", "Social good organization"
        VOLUNTEER = "VOL", "Volunteer group"

    class Budget(models.TextChoices):
        B100K = "B000", "<$100K"
        B500K = "B001", "$100K-$500K"
        B1M = "B005", "$500K-$1MM"
        B5M = "B010", "$1MM-$5MM"
        B20M = "B050", "$5MM-$20MM"
        B50M = "B200", "$20MM-$50MM"
        B50MP = "B500", ">$50MM"

    class YearsInOperation(models.TextChoices):
        Y0 = "Y00", "less than 1 year"
        Y1 = "Y01", "1 to 5 years"
        Y5 = "Y05", "5 to 10 years"
        Y10 = "Y10", "10 to 25 years"
        Y25 = "Y25", "25 or more years"

    class GeographicalScope(models.TextChoices):
        LOCAL = "LO", "City/Local"
        STATE = "ST", "State"
        REGION = "RE", "Region (i.e. Midwest, Northeast, etc.)"
        COUNTRY = "CO", "Country"
        MULTINATIONAL = "MN", "Multi-national"
        OTHER = "OT", "Other"

    name = models.CharField(max_length=200, unique=True)
    type = models.CharField(max_length=3, choices=Type.choices, default=Type.SOCIAL_GOOD)
    short_summary = models.TextField(max_length=1000, blank=True, default="")
    description = models.TextField(max_length=5000, blank=True, default="")
    website_url = models.URLField(blank=True, default="")
    budget = models.CharField(max_length=4, choices=Budget.choices, blank=True, default="")
    years_operation = models.CharField(max_length=3, choices=YearsInOperation.choices, blank=True, default="")
    organization_scope = models.CharField(max_length=2, choices=GeographicalScope.choices, blank=True, default="")
    creation_date = models.DateTimeField(auto_now_add=True)
    last_modified_date = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("name", "id")

    def __str__(self) -> str:
        return f"{self.name}"

    def is_volunteer_group(self) -> bool:
        return self.type == self.Type.VOLUNTEER


class OrganizationSocialCause(models.Model):
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="social_causes")
    social_cause = models.CharField(max_length=2, choices=SocialCause.choices)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["organization", "social_cause"], name="uniq_org_social_cause"),
        ]


class OrganizationRole(models.Model):
    class Role(models.IntegerChoices):
        ADMINISTRATOR = 0, "Administrator"
        STAFF = 1, "Staff"

    role = models.IntegerField(choices=Role.choices, default=Role.STAFF)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="organization_roles")
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="roles")
    creation_date = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "organization"], name="uniq_org_role_user"),
        ]
        ordering = ("role", "id")

    def __str__(self) -> str:
        return f"{self.user} ({self.get_role_display()} of {self.organization})"


class OrganizationMembershipRequest(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="membership_requests")
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="membership_requests")
    role = models.IntegerField(choices=OrganizationRole.Role.choices, default=OrganizationRole.Role.STAFF)
    status = models.CharField(max_length=3, choices=ReviewStatus.choices, default=ReviewStatus.NEW, db_index=True)
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="reviewed_membership_requests",
    )
    public_reviewer_comments = models.TextField(max_length=2000, blank=True, default="")
    request_date = models.DateTimeField(auto_now_add=True)
    resolution_date = models.DateTimeField(blank=True, null=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "organization"],
                condition=Q(status="NEW"),
                name="uniq_org_membership_request_open",
            ),
        ]
        indexes = [
            models.Index(fields=["organization", "status"], name="omr_org_status"),
        ]
        ordering = ("-request_date",)

    def __str__(self) -> str:
        return f"{self.user} → {self.organization} ({self.get_status_display()})"

    def is_new(self) -> bool:
        return self.status == ReviewStatus.NEW


class Project(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DR", "Draft"
        NEW = "NW", "New"
        DESIGN = "DE", "In scoping phase"
        WAITING_DESIGN_APPROVAL = "DA", "Waiting for design review"
        WAITING_STAFF = "WS", "Waiting for volunteers"
        IN_PROGRESS = "IP", "In progress"
        WAITING_REVIEW = "WR", "Waiting review"
        COMPLETED = "CO", "Completed"
        EXPIRED = "EX", "Expired"
        DELETED = "RM", "Deleted"

    name = models.CharField(max_length=200)
    short_summary = models.TextField(max_length=1000, blank=True, default="")
    motivation = models.TextField(max_length=5000, blank=True, default="")
    project_cause = models.CharField(max_length=2, choices=SocialCause.choices, default=SocialCause.EDUCATION)
    intended_start_date = models.DateField(blank=True, null=True)
    intended_end_date = models.DateField(blank=True, null=True)
    actual_start_date = models.DateField(blank=True, null=True)
    actual_end_date = models.DateField(blank=True, null=True)
    status = models.CharField(max_length=2, choices=Status.choices, default=Status.DRAFT, db_index=True)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="projects")
    creation_date = models.DateTimeField(auto_now_add=True)
    last_modified_date = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-creation_date", "id")

    def __str__(self) -> str:
        return f"{self.name}"

    def is_completed(self) -> bool:
        return self.status == self.Status.COMPLETED


class ProjectRole(models.Model):
    class Role(models.IntegerChoices):
        OWNER = 0, "Owner"
        STAFF = 1, "Staff"

    role = models.IntegerField(choices=Role.choices, default=Role.STAFF)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="project_roles")
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="roles")

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "project"], name="uniq_project_role_user"),
        ]
        ordering = ("role", "id")

    def __str__(self) -> str:
        return f"{self.user} ({self.get_role_display()} of {self.project})"


class ProjectFollower(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="followed_projects")
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="followers")

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "project"], name="uniq_project_follower"),
        ]


class ProjectLog(models.Model):
    """Append-only audit trail of lifecycle changes within a project."""

    class ChangeType(models.TextChoices):
        PROJECT = "project", "Project"
        PROJECT_ROLE = "project_role", "Project role"
        TASK = "task", "Task"
        TASK_ROLE = "task_role", "Task role"
        VOLUNTEER_APPLICATION = "volunteer_application", "Volunteer application"
        TASK_REVIEW = "task_review", "Task review"

    change_type = models.CharField(max_length=32, choices=ChangeType.choices)
    change_target = models.BigIntegerField()
    change_description = models.TextField(max_length=1000)
    change_date = models.DateTimeField(auto_now_add=True)
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="log_entries")
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="project_log_entries")

    class Meta:
        indexes = [
            models.Index(fields=["project", "change_date"], name="plog_proj_date"),
        ]
        ordering = ("-change_date", "-id")

    def __str__(self) -> str:
        return f"{self.change_date:%Y-%m-%d %H:%M}: {self.change_description}"

    @override
    def save(self, *args, **kwargs) -> None:
        if self.pk is not None:
            raise ValueError("Project log entries are append-only")
        super().save(*args, **kwargs)

    @override
    def delete(self, *args, **kwargs):
        raise ValueError("Project log entries are append-only")


class ProjectTask(models.Model):
    class Type(models.TextChoices):
        SCOPING = "SCT", "Project scoping"
        PROJECT_MANAGEMENT = "PMT", "Project management"
        DOMAIN_WORK = "DWT", "Domain work"
        QA = "QAT", "QA"

    class Stage(models.TextChoices):
        DRAFT = "DRA", "Draft"
        NOT_STARTED = "NOT", "Not started"
        ACCEPTING_VOLUNTEERS = "AVL", "Accepting volunteers"
        STARTED = "STA", "Started"
        WAITING_REVIEW = "PRW", "Pending review"
        COMPLETED = "COM", "Completed"
        DELETED = "DEL", "Deleted"

    name = models.CharField(max_length=200)
    description = models.TextField(max_length=5000, blank=True, default="")
    onboarding_instructions = models.TextField(max_length=5000, blank=True, default="")
    type = models.CharField(max_length=3, choices=Type.choices, default=Type.DOMAIN_WORK)
    stage = models.CharField(max_length=3, choices=Stage.choices, default=Stage.DRAFT, db_index=True)
    accepting_volunteers = models.BooleanField(default=False)
    percentage_complete = models.FloatField(
        default=0.0,
        validators=[MinValueValidator(0.0), MaxValueValidator(1.0)],
    )
    estimated_start_date = models.DateField(blank=True, null=True)
    estimated_end_date = models.DateField(blank=True, null=True)
    actual_start_date = models.DateField(blank=True, null=True)
    actual_end_date = models.DateField(blank=True, null=True)
    estimated_effort_hours = models.PositiveIntegerField(blank=True, null=True)
    actual_effort_hours = models.PositiveIntegerField(blank=True, null=True)
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="tasks")
    creation_date = models.DateTimeField(auto_now_add=True)
    last_modified_date = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("creation_date", "id")

    def __str__(self) -> str:
        return f"{self.name}"

    def is_in_progress(self) -> bool:
        return self.stage == self.Stage.STARTED

    def is_pending_review(self) -> bool:
        return self.stage == self.Stage.WAITING_REVIEW

    def is_completed(self) -> bool:
        return self.stage == self.Stage.COMPLETED


class ProjectTaskRole(models.Model):
    class Role(models.IntegerChoices):
        VOLUNTEER = 0, "Volunteer"

    role = models.IntegerField(choices=Role.choices, default=Role.VOLUNTEER)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="task_roles")
    task = models.ForeignKey(ProjectTask, on_delete=models.CASCADE, related_name="roles")

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "task"], name="uniq_task_role_user"),
        ]

    def __str__(self) -> str:
        return f"{self.user} ({self.get_role_display()} on {self.task})"


class VolunteerApplication(models.Model):
    task = models.ForeignKey(ProjectTask, on_delete=models.CASCADE, related_name="applications")
    volunteer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="applications")
    status = models.CharField(max_length=3, choices=ReviewStatus.choices, default=ReviewStatus.NEW, db_index=True)
    volunteer_application_letter = models.TextField(max_length=5000, blank=True, default="")
    public_reviewer_comments = models.TextField(max_length=5000, blank=True, default="")
    private_reviewer_notes = models.TextField(max_length=5000, blank=True, default="")
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="reviewed_applications",
    )
    application_date = models.DateTimeField(auto_now_add=True)
    resolution_date = models.DateTimeField(blank=True, null=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["task", "volunteer"],
                condition=Q(status="NEW"),
                name="uniq_volunteer_application_open",
            ),
        ]
        ordering = ("-application_date", "-id")

    def __str__(self) -> str:
        return f"{self.volunteer} → {self.task} ({self.get_status_display()})"

    def is_new(self) -> bool:
        return self.status == ReviewStatus.NEW


class ProjectTaskReview(models.Model):
    class Score(models.IntegerChoices):
        ONE_STAR = 1, "Needs improvement"
        TWO_STARS = 2, "Fair"
        THREE_STARS = 3, "Good"
        FOUR_STARS = 4, "Excellent"
        FIVE_STARS = 5, "Outstanding"

    task = models.ForeignKey(ProjectTask, on_delete=models.CASCADE, related_name="reviews")
    volunteer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="submitted_task_reviews",
    )
    volunteer_comment = models.TextField(max_length=2000, blank=True, default="")
    volunteer_effort_hours = models.PositiveIntegerField(default=0)
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="resolved_task_reviews",
    )
    reviewer_comment = models.TextField(max_length=2000, blank=True, default="")
    review_result = models.CharField(max_length=3, choices=ReviewStatus.choices, default=ReviewStatus.NEW)
    review_score = models.IntegerField(choices=Score.choices, blank=True, null=True)
    review_request_date = models.DateTimeField(auto_now_add=True)
    review_date = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ("-review_request_date", "-id")

    def __str__(self) -> str:
        return f"Review of {self.task} ({self.get_review_result_display()})"


class VolunteerProfile(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="volunteer_profile")
    volunteer_status = models.CharField(max_length=3, choices=ReviewStatus.choices, default=ReviewStatus.NEW)
    is_edited = models.BooleanField(default=False)
    completed_task_count = models.PositiveIntegerField(default=0)
    average_review_score = models.FloatField(default=0.0)
    creation_date = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-creation_date", "id")

    def __str__(self) -> str:
        return f"Volunteer profile of {self.user}"

    @property
    def is_accepted(self) -> bool:
        return self.volunteer_status == ReviewStatus.ACCEPTED


class Skill(models.Model):
    area = models.CharField(max_length=100)
    name = models.CharField(max_length=100)

    class Meta:
        ordering = ("area", "name")
        constraints = [
            models.UniqueConstraint(fields=["area", "name"], name="uniq_skill_area_name"),
        ]

    def __str__(self) -> str:
        return f"{self.area}/{self.name}"


class VolunteerSkill(models.Model):
    class Level(models.IntegerChoices):
        BEGINNER = 0, "Beginner"
        INTERMEDIATE = 1, "Intermediate"
        EXPERT = 2, "Expert"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="skills")
    skill = models.ForeignKey(Skill, on_delete=models.CASCADE, related_name="volunteer_skills")
    level = models.IntegerField(choices=Level.choices, default=Level.BEGINNER)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "skill"], name="uniq_volunteer_skill"),
        ]

    def __str__(self) -> str:
        return f"{self.user}: {self.skill} ({self.get_level_display()})"

class UserBadge(models.Model):
    class Type(models.TextChoices):
        EARLY_USER = "EAR", "Early user"
        NUMBER_OF_PROJECTS = "NPR", "Completed tasks"
        REVIEW_SCORE = "RSC", "Review score"

    class Tier(models.IntegerChoices):
        BASIC = 0, "Basic"
        ADVANCED = 1, "Advanced"
        MASTER = 2, "Master"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="badges")
    type = models.CharField(max_length=3, choices=Type.choices)
    tier = models.IntegerField(choices=Tier.choices, default=Tier.BASIC)
    awarded_date = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "type"], name="uniq_user_badge_type"),
        ]

    def __str__(self) -> str:
        return f"{self.user}: {self.get_type_display()} ({self.get_tier_display()})"


class UserNotification(models.Model):
    class Severity(models.IntegerChoices):
        INFO = 0, "Info"
        WARNING = 1, "Warning"
        CRITICAL = 2, "Critical"

    class Source(models.TextChoices):
        ORGANIZATION = "ORG", "Organization"
        MEMBERSHIP_REQUEST = "OMR", "Organization membership request"
        PROJECT = "PRJ", "Project"
        TASK = "TSK", "Task"
        VOLUNTEER_APPLICATION = "VAP", "Volunteer application"
        VOLUNTEER = "VOL", "Volunteer"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications")
    notification_description = models.TextField(max_length=2000)
    severity = models.IntegerField(choices=Severity.choices, default=Severity.INFO)
    source = models.CharField(max_length=3, choices=Source.choices)
    target_id = models.BigIntegerField(blank=True, null=True)
    is_read = models.BooleanField(default=False)
    notification_date = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["user", "is_read"], name="notif_user_read"),
        ]
        ordering = ("-notification_date", "-id")

    def __str__(self) -> str:
        return f"{self.user}: {self.notification_description[:50]}"
