from __future__ import annotations

import post_office.mail
from django.conf import settings
from django.core.management.base import BaseCommand
from django.db.models import Count, Q
from django.utils import timezone
from post_office.models import Email

from marketplace.models import Project, ReviewStatus
from marketplace.projects import get_project_officials


class Command(BaseCommand):
    help = "Remind project officials about pending volunteer applications and task reviews."

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--force",
            action="store_true",
            help="Send even if a reminder was already queued today.",
        )

    def handle(self, *args, **options) -> None:
        force: bool = bool(options.get("force"))
        template_name = settings.PENDING_REVIEWS_EMAIL_TEMPLATE_NAME

        projects = (
            Project.objects.annotate(
                application_count=Count(
                    "tasks__applications",
                    filter=Q(tasks__applications__status=ReviewStatus.NEW),
                    distinct=True,
                ),
                review_count=Count(
                    "tasks__reviews",
                    filter=Q(tasks__reviews__review_result=ReviewStatus.NEW),
                    distinct=True,
                ),
            )
            .filter(Q(application_count__gt=0) | Q(review_count__gt=0))
            .order_by("pk")
        )
        if not projects:
            self.stdout.write("No pending reviews.")
            return

        today = timezone.localdate()
        queued = 0
        skipped = 0
        for project in projects:
            for official in get_project_officials(project):
                address = str(official.email or "").strip()
                if not address:
                    continue

                if not force:
                    already_sent = Email.objects.filter(
                        to=address,
                        template__name=template_name,
                        context__project_id=project.pk,
                        created__date=today,
                    ).exists()
                    if already_sent:
                        skipped += 1
                        continue

                post_office.mail.send(
                    recipients=[address],
                    sender=settings.DEFAULT_FROM_EMAIL,
                    template=template_name,
                    context={
                        "full_name": official.get_full_name() or official.username,
                        "project_id": project.pk,
                        "project_name": project.name,
                        "application_count": project.application_count,
                        "review_count": project.review_count,
                        "pending_count": project.application_count + project.review_count,
                        "site_name": settings.SITE_NAME,
                    },
                    render_on_delivery=True,
                )
                queued += 1

        self.stdout.write(
            f"Projects with pending reviews: {len(projects)}; queued {queued} email(s), skipped {skipped}."
        )
