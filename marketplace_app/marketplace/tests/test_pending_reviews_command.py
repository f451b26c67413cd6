from __future__ import annotations

from io import StringIO

from django.conf import settings
from django.core.management import call_command
from django.test import TestCase
from post_office.models import Email

from marketplace import projects, tasks
from marketplace.models import ProjectTask, User, VolunteerApplication
from marketplace.tests.helpers import make_organization, make_project, make_user, make_volunteer, task_of_type


class PendingReviewsCommandTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.owner = make_user("owner", initial_type=User.InitialType.ORGANIZATION)
        self.project = make_project(self.owner, make_organization(self.owner))
        projects.publish_project(user=self.owner, project_id=self.project.pk, project=self.project)
        self.task = task_of_type(self.project, ProjectTask.Type.DOMAIN_WORK)
        tasks.publish_project_task(user=self.owner, project_id=self.project.pk, task_id=self.task.pk, task=self.task)
        tasks.toggle_task_accepting_volunteers(user=self.owner, project_id=self.project.pk, task_id=self.task.pk)

    def _reminders(self) -> int:
        return Email.objects.filter(template__name=settings.PENDING_REVIEWS_EMAIL_TEMPLATE_NAME).count()

    def _run(self, *args: str) -> str:
        out = StringIO()
        call_command("marketplace_pending_reviews", *args, stdout=out)
        return out.getvalue()

    def test_nothing_pending(self) -> None:
        output = self._run()

        self.assertIn("No pending reviews.", output)
        self.assertEqual(self._reminders(), 0)

    def test_reminds_officials_once_per_day(self) -> None:
        tasks.apply_to_volunteer(
            user=make_volunteer("vol"),
            project_id=self.project.pk,
            task_id=self.task.pk,
            application=VolunteerApplication(),
        )

        output = self._run()
        self.assertIn("queued 1 email(s), skipped 0", output)
        self.assertEqual(self._reminders(), 1)

        email = Email.objects.get(template__name=settings.PENDING_REVIEWS_EMAIL_TEMPLATE_NAME)
        self.assertEqual(email.to, ["owner@example.com"])
        self.assertEqual(email.context["application_count"], 1)
        self.assertEqual(email.context["review_count"], 0)
        self.assertEqual(email.context["project_name"], self.project.name)

        output = self._run()
        self.assertIn("queued 0 email(s), skipped 1", output)
        self.assertEqual(self._reminders(), 1)

    def test_force_sends_again(self) -> None:
        tasks.apply_to_volunteer(
            user=make_volunteer("vol"),
            project_id=self.project.pk,
            task_id=self.task.pk,
            application=VolunteerApplication(),
        )

        self._run()
        self._run("--force")

        self.assertEqual(self._reminders(), 2)
