from __future__ import annotations

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

REVIEW_STATUS_CHOICES = [("NEW", "Pending review"), ("ACC", "Accepted"), ("REJ", "Rejected")]

SOCIAL_CAUSE_CHOICES = [
    ("ED", "Education"),
    ("HE", "Health"),
    ("EN", "Environment"),
    ("SS", "Social Services"),
    ("TR", "Transportation"),
    ("EE", "Energy and Environment"),
    ("ID", "International development"),
    ("PS", "Public Safety"),
    ("EC", "Economic Development"),
    ("OT", "Other"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                (
                    "is_superuser",
                    models.BooleanField(
                        default=False,
                        help_text="Designates that this user has all permissions without explicitly assigning them.",
                        verbose_name="superuser status",
                    ),
                ),
                (
                    "username",
                    models.CharField(
                        error_messages={"unique": "A user with that username already exists."},
                        help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.",
                        max_length=150,
                        unique=True,
                        validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                        verbose_name="username",
                    ),
                ),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="email address")),
                (
                    "is_staff",
                    models.BooleanField(
                        default=False,
                        help_text="Designates whether the user can log into this admin site.",
                        verbose_name="staff status",
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text=(
                            "Designates whether this user should be treated as active. "
                            "Unselect this instead of deleting accounts."
                        ),
                        verbose_name="active",
                    ),
                ),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                (
                    "initial_type",
                    models.CharField(
                        choices=[("VOL", "Volunteer"), ("ORG", "Organization"), ("STF", "Marketplace staff")],
                        default="VOL",
                        max_length=3,
                    ),
                ),
                (
                    "groups",
                    models.ManyToManyField(
                        blank=True,
                        help_text=(
                            "The groups this user belongs to. A user will get all permissions "
                            "granted to each of their groups."
                        ),
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.group",
                        verbose_name="groups",
                    ),
                ),
                (
                    "user_permissions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Specific permissions for this user.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.permission",
                        verbose_name="user permissions",
                    ),
                ),
            ],
            options={
                "verbose_name": "user",
                "verbose_name_plural": "users",
                "abstract": False,
            },
            managers=[
                ("objects", django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name="Organization",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, unique=True)),
                (
                    "type",
                    models.CharField(
                        choices=[("SGP", "Social good organization"), ("VOL", "Volunteer group")],
                        default="SGP",
                        max_length=3,
                    ),
                ),
                ("short_summary", models.TextField(blank=True, default="", max_length=1000)),
                ("description", models.TextField(blank=True, default="", max_length=5000)),
                ("website_url", models.URLField(blank=True, default="")),
                (
                    "budget",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("B000", "<$100K"),
                            ("B001", "$100K-$500K"),
                            ("B005", "$500K-$1MM"),
                            ("B010", "$1MM-$5MM"),
                            ("B050", "$5MM-$20MM"),
                            ("B200", "$20MM-$50MM"),
                            ("B500", ">$50MM"),
                        ],
                        default="",
                        max_length=4,
                    ),
                ),
                (
                    "years_operation",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("Y00", "less than 1 year"),
                            ("Y01", "1 to 5 years"),
                            ("Y05", "5 to 10 years"),
                            ("Y10", "10 to 25 years"),
                            ("Y25", "25 or more years"),
                        ],
                        default="",
                        max_length=3,
                    ),
                ),
                (
                    "organization_scope",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("LO", "City/Local"),
                            ("ST", "State"),
                            ("RE", "Region (i.e. Midwest, Northeast, etc.)"),
                            ("CO", "Country"),
                            ("MN", "Multi-national"),
                            ("OT", "Other"),
                        ],
                        default="",
                        max_length=2,
                    ),
                ),
                ("creation_date", models.DateTimeField(auto_now_add=True)),
                ("last_modified_date", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("name", "id"),
            },
        ),
        migrations.CreateModel(
            name="OrganizationSocialCause",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("social_cause", models.CharField(choices=SOCIAL_CAUSE_CHOICES, max_length=2)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="social_causes",
                        to="marketplace.organization",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="OrganizationRole",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.IntegerField(choices=[(0, "Administrator"), (1, "Staff")], default=1)),
                ("creation_date", models.DateTimeField(auto_now_add=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="roles",
                        to="marketplace.organization",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="organization_roles",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("role", "id"),
            },
        ),
        migrations.CreateModel(
            name="OrganizationMembershipRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.IntegerField(choices=[(0, "Administrator"), (1, "Staff")], default=1)),
                (
                    "status",
                    models.CharField(choices=REVIEW_STATUS_CHOICES, db_index=True, default="NEW", max_length=3),
                ),
                ("public_reviewer_comments", models.TextField(blank=True, default="", max_length=2000)),
                ("request_date", models.DateTimeField(auto_now_add=True)),
                ("resolution_date", models.DateTimeField(blank=True, null=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="membership_requests",
                        to="marketplace.organization",
                    ),
                ),
                (
                    "reviewer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reviewed_membership_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="membership_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("-request_date",),
            },
        ),
        migrations.CreateModel(
            name="Project",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("short_summary", models.TextField(blank=True, default="", max_length=1000)),
                ("motivation", models.TextField(blank=True, default="", max_length=5000)),
                ("project_cause", models.CharField(choices=SOCIAL_CAUSE_CHOICES, default="ED", max_length=2)),
                ("intended_start_date", models.DateField(blank=True, null=True)),
                ("intended_end_date", models.DateField(blank=True, null=True)),
                ("actual_start_date", models.DateField(blank=True, null=True)),
                ("actual_end_date", models.DateField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DR", "Draft"),
                            ("NW", "New"),
                            ("DE", "In scoping phase"),
                            ("DA", "Waiting for design review"),
                            ("WS", "Waiting for volunteers"),
                            ("IP", "In progress"),
                            ("WR", "Waiting review"),
                            ("CO", "Completed"),
                            ("EX", "Expired"),
                            ("RM", "Deleted"),
                        ],
                        db_index=True,
                        default="DR",
                        max_length=2,
                    ),
                ),
                ("creation_date", models.DateTimeField(auto_now_add=True)),
                ("last_modified_date", models.DateTimeField(auto_now=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="projects",
                        to="marketplace.organization",
                    ),
                ),
            ],
            options={
                "ordering": ("-creation_date", "id"),
            },
        ),
        migrations.CreateModel(
            name="ProjectRole",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.IntegerField(choices=[(0, "Owner"), (1, "Staff")], default=1)),
                (
                    "project",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="roles",
                        to="marketplace.project",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="project_roles",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("role", "id"),
            },
        ),
        migrations.CreateModel(
            name="ProjectFollower",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "project",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="followers",
                        to="marketplace.project",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="followed_projects",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="ProjectLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "change_type",
                    models.CharField(
                        choices=[
                            ("project", "Project"),
                            ("project_role", "Project role"),
                            ("task", "Task"),
                            ("task_role", "Task role"),
                            ("volunteer_application", "Volunteer application"),
                            ("task_review", "Task review"),
                        ],
                        max_length=32,
                    ),
                ),
                ("change_target", models.BigIntegerField()),
                ("change_description", models.TextField(max_length=1000)),
                ("change_date", models.DateTimeField(auto_now_add=True)),
                (
                    "author",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="project_log_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "project",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="log_entries",
                        to="marketplace.project",
                    ),
                ),
            ],
            options={
                "ordering": ("-change_date", "-id"),
            },
        ),
        migrations.CreateModel(
            name="ProjectTask",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="", max_length=5000)),
                ("onboarding_instructions", models.TextField(blank=True, default="", max_length=5000)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("SCT", "Project scoping"),
                            ("PMT", "Project management"),
                            ("DWT", "Domain work"),
                            ("QAT", "QA"),
                        ],
                        default="DWT",
                        max_length=3,
                    ),
                ),
                (
                    "stage",
                    models.CharField(
                        choices=[
                            ("DRA", "Draft"),
                            ("NOT", "Not started"),
                            ("AVL", "Accepting volunteers"),
                            ("STA", "Started"),
                            ("PRW", "Pending review"),
                            ("COM", "Completed"),
                            ("DEL", "Deleted"),
                        ],
                        db_index=True,
                        default="DRA",
                        max_length=3,
                    ),
                ),
                ("accepting_volunteers", models.BooleanField(default=False)),
                (
                    "percentage_complete",
                    models.FloatField(
                        default=0.0,
                        validators=[
                            django.core.validators.MinValueValidator(0.0),
                            django.core.validators.MaxValueValidator(1.0),
                        ],
                    ),
                ),
                ("estimated_start_date", models.DateField(blank=True, null=True)),
                ("estimated_end_date", models.DateField(blank=True, null=True)),
                ("actual_start_date", models.DateField(blank=True, null=True)),
                ("actual_end_date", models.DateField(blank=True, null=True)),
                ("estimated_effort_hours", models.PositiveIntegerField(blank=True, null=True)),
                ("actual_effort_hours", models.PositiveIntegerField(blank=True, null=True)),
                ("creation_date", models.DateTimeField(auto_now_add=True)),
                ("last_modified_date", models.DateTimeField(auto_now=True)),
                (
                    "project",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tasks",
                        to="marketplace.project",
                    ),
                ),
            ],
            options={
                "ordering": ("creation_date", "id"),
            },
        ),
        migrations.CreateModel(
            name="ProjectTaskRole",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.IntegerField(choices=[(0, "Volunteer")], default=0)),
                (
                    "task",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="roles",
                        to="marketplace.projecttask",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="task_roles",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="VolunteerApplication",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "status",
                    models.CharField(choices=REVIEW_STATUS_CHOICES, db_index=True, default="NEW", max_length=3),
                ),
                ("volunteer_application_letter", models.TextField(blank=True, default="", max_length=5000)),
                ("public_reviewer_comments", models.TextField(blank=True, default="", max_length=5000)),
                ("private_reviewer_notes", models.TextField(blank=True, default="", max_length=5000)),
                ("application_date", models.DateTimeField(auto_now_add=True)),
                ("resolution_date", models.DateTimeField(blank=True, null=True)),
                (
                    "reviewer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reviewed_applications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "task",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="applications",
                        to="marketplace.projecttask",
                    ),
                ),
                (
                    "volunteer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="applications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("-application_date", "-id"),
            },
        ),
        migrations.CreateModel(
            name="ProjectTaskReview",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("volunteer_comment", models.TextField(blank=True, default="", max_length=2000)),
                ("volunteer_effort_hours", models.PositiveIntegerField(default=0)),
                ("reviewer_comment", models.TextField(blank=True, default="", max_length=2000)),
                ("review_result", models.CharField(choices=REVIEW_STATUS_CHOICES, default="NEW", max_length=3)),
                (
                    "review_score",
                    models.IntegerField(
                        blank=True,
                        choices=[
                            (1, "Needs improvement"),
                            (2, "Fair"),
                            (3, "Good"),
                            (4, "Excellent"),
                            (5, "Outstanding"),
                        ],
                        null=True,
                    ),
                ),
                ("review_request_date", models.DateTimeField(auto_now_add=True)),
                ("review_date", models.DateTimeField(blank=True, null=True)),
                (
                    "reviewer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="resolved_task_reviews",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "task",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reviews",
                        to="marketplace.projecttask",
                    ),
                ),
                (
                    "volunteer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="submitted_task_reviews",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("-review_request_date", "-id"),
            },
        ),
        migrations.CreateModel(
            name="VolunteerProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("volunteer_status", models.CharField(choices=REVIEW_STATUS_CHOICES, default="NEW", max_length=3)),
                ("is_edited", models.BooleanField(default=False)),
                ("completed_task_count", models.PositiveIntegerField(default=0)),
                ("average_review_score", models.FloatField(default=0.0)),
                ("creation_date", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="volunteer_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("-creation_date", "id"),
            },
        ),
        migrations.CreateModel(
            name="UserBadge",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[("EAR", "Early user"), ("NPR", "Completed tasks"), ("RSC", "Review score")],
                        max_length=3,
                    ),
                ),
                ("tier", models.IntegerField(choices=[(0, "Basic"), (1, "Advanced"), (2, "Master")], default=0)),
                ("awarded_date", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="badges",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="UserNotification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("notification_description", models.TextField(max_length=2000)),
                ("severity", models.IntegerField(choices=[(0, "Info"), (1, "Warning"), (2, "Critical")], default=0)),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("ORG", "Organization"),
                            ("OMR", "Organization membership request"),
                            ("PRJ", "Project"),
                            ("TSK", "Task"),
                            ("VAP", "Volunteer application"),
                            ("VOL", "Volunteer"),
                        ],
                        max_length=3,
                    ),
                ),
                ("target_id", models.BigIntegerField(blank=True, null=True)),
                ("is_read", models.BooleanField(default=False)),
                ("notification_date", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("-notification_date", "-id"),
            },
        ),
        migrations.AddConstraint(
            model_name="organizationsocialcause",
            constraint=models.UniqueConstraint(fields=("organization", "social_cause"), name="uniq_org_social_cause"),
        ),
        migrations.AddConstraint(
            model_name="organizationrole",
            constraint=models.UniqueConstraint(fields=("user", "organization"), name="uniq_org_role_user"),
        ),
        migrations.AddConstraint(
            model_name="organizationmembershiprequest",
            constraint=models.UniqueConstraint(
                condition=models.Q(("status", "NEW")),
                fields=("user", "organization"),
                name="uniq_org_membership_request_open",
            ),
        ),
        migrations.AddIndex(
            model_name="organizationmembershiprequest",
            index=models.Index(fields=["organization", "status"], name="omr_org_status"),
        ),
        migrations.AddConstraint(
            model_name="projectrole",
            constraint=models.UniqueConstraint(fields=("user", "project"), name="uniq_project_role_user"),
        ),
        migrations.AddConstraint(
            model_name="projectfollower",
            constraint=models.UniqueConstraint(fields=("user", "project"), name="uniq_project_follower"),
        ),
        migrations.AddIndex(
            model_name="projectlog",
            index=models.Index(fields=["project", "change_date"], name="plog_proj_date"),
        ),
        migrations.AddConstraint(
            model_name="projecttaskrole",
            constraint=models.UniqueConstraint(fields=("user", "task"), name="uniq_task_role_user"),
        ),
        migrations.AddConstraint(
            model_name="volunteerapplication",
            constraint=models.UniqueConstraint(
                condition=models.Q(("status", "NEW")),
                fields=("task", "volunteer"),
                name="uniq_volunteer_application_open",
            ),
        ),
        migrations.AddConstraint(
            model_name="userbadge",
            constraint=models.UniqueConstraint(fields=("user", "type"), name="uniq_user_badge_type"),
        ),
        migrations.AddIndex(
            model_name="usernotification",
            index=models.Index(fields=["user", "is_read"], name="notif_user_read"),
        ),
    ]
